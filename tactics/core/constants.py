# tactics/core/constants.py

MAP_WIDTH = 30
MAP_HEIGHT = 30
MAX_MOVE_DISTANCE = 3            # cells per move action
ENGAGE_DISTANCE = 7              # shoot at a visible enemy only beyond this range
SCAN_RADIUS = MAX_MOVE_DISTANCE  # ring search radius around our ship

DEFAULT_MAX_HEAT = 25            # heat above this damages the ship
DEFAULT_HEAT_LIMIT = 20          # "too hot" threshold, no shooting at or above it
DEFAULT_MAX_SHOT_SPEED = 3       # exclusive bound of the speed axis of the heat lattice
DEFAULT_MAX_SHOT_MASS = 4        # exclusive bound of the mass axis of the heat lattice
DEFAULT_TURN_RATE = 1            # compass steps per tick when no match context is known
DEFAULT_PROJECTILE_SPEED = 1     # assumed when a projectile reports no speed

AIM_TOLERANCE_RADIANS = 0.15     # ~8.6 degrees

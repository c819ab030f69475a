"""
Gridship wire protocol - envelope definitions and codec.

Every frame is a JSON object of the form
``{"eventType": <string>, "data": <object>}`` sent as one text message
over the websocket. This module maps frames to typed envelopes and the
tactics data model, and commands back to frames.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Union
import json

from tactics.entities import (
    ActionType,
    Cell,
    CellType,
    Command,
    CompassDirection,
    Coordinates,
    GameState,
    MoveAction,
    ProjectileData,
    ShipData,
    ShootAction,
    TeamAiContext,
    TurnAction,
)
from tactics.utils.errors import InvariantViolation


class ProtocolError(ValueError):
    """Frame could not be parsed or decoded."""
    pass


class UnknownEventError(ProtocolError):
    """Frame carries an event type this client does not handle."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type}")


class InboundEvent(Enum):
    """Events sent by the game server."""
    AUTH_ACK = "authAck"
    START_GAME = "startGame"
    GAME_TICK = "gameTick"
    END_GAME = "endGame"

    @classmethod
    def parse(cls, name: str) -> "InboundEvent":
        """Look up an event type, ignoring case."""
        lowered = name.lower()
        for event in cls:
            if event.value.lower() == lowered:
                return event
        raise UnknownEventError(name)


class OutboundEvent(Enum):
    """Events sent by this client."""
    AUTH = "auth"
    START_ACK = "startAck"
    GAME_ACTION = "gameAction"
    END_ACK = "endAck"


# Wire names of compass directions (lowercase abbreviations)
DIRECTION_NAMES: Mapping[CompassDirection, str] = {
    CompassDirection.NORTH: "n",
    CompassDirection.NORTH_EAST: "ne",
    CompassDirection.EAST: "e",
    CompassDirection.SOUTH_EAST: "se",
    CompassDirection.SOUTH: "s",
    CompassDirection.SOUTH_WEST: "sw",
    CompassDirection.WEST: "w",
    CompassDirection.NORTH_WEST: "nw",
}
_DIRECTIONS_BY_NAME = {name: direction for direction, name in DIRECTION_NAMES.items()}


@dataclass
class Envelope:
    """
    Message envelope for both directions.

    `event_type` is kept as the raw string so unknown inbound events can
    still be logged.
    """
    event_type: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {"eventType": self.event_type, "data": self.data}

    def to_wire(self) -> str:
        """Serialize to wire format (one JSON text message)."""
        return json.dumps(self.to_dict())

    @classmethod
    def auth(cls, token: str, bot_name: str) -> "Envelope":
        """Create the authentication request."""
        return cls(OutboundEvent.AUTH.value, {"token": token, "botName": bot_name})

    @classmethod
    def start_ack(cls) -> "Envelope":
        return cls(OutboundEvent.START_ACK.value, {})

    @classmethod
    def end_ack(cls) -> "Envelope":
        return cls(OutboundEvent.END_ACK.value, {})

    @classmethod
    def game_action(cls, command: Command) -> "Envelope":
        """Wrap a command for delivery."""
        return cls(OutboundEvent.GAME_ACTION.value, encode_command(command))


def parse_envelope(frame: Union[str, bytes]) -> Envelope:
    """
    Parse an envelope from wire format.

    Args:
        frame: Raw text (or bytes) message

    Returns:
        Parsed Envelope

    Raises:
        ProtocolError: If the frame is empty, not a JSON object or has no eventType
    """
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Invalid UTF-8: {e}")
    if not frame or not frame.strip():
        raise ProtocolError("Empty frame")

    try:
        payload = json.loads(frame)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON: {e}")

    if not isinstance(payload, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(payload).__name__}")

    event_type = payload.get("eventType")
    if not event_type or not isinstance(event_type, str):
        raise ProtocolError("Missing 'eventType' field")

    data = payload.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProtocolError(f"'data' of {event_type} must be an object")
    return Envelope(event_type=event_type, data=data)


def encode_direction(direction: CompassDirection) -> str:
    return DIRECTION_NAMES[direction]


def decode_direction(value: Any) -> CompassDirection:
    """Parse a compass abbreviation such as "ne" (case-insensitive)."""
    if not isinstance(value, str) or value.lower() not in _DIRECTIONS_BY_NAME:
        raise ProtocolError(f"Invalid compass direction: {value!r}")
    return _DIRECTIONS_BY_NAME[value.lower()]


def decode_coordinates(value: Any) -> Coordinates:
    try:
        return Coordinates(int(value["x"]), int(value["y"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid coordinates {value!r}: {e}")


def _optional_int(data: Mapping[str, Any], *keys: str):
    for key in keys:
        if data.get(key) is not None:
            return int(data[key])
    return None


def decode_cell(value: Any) -> Cell:
    """
    Decode one map cell.

    Args:
        value: ``{"type": <cell type>, "data": <payload or {}>}``

    Returns:
        Cell with the payload matching its type

    Raises:
        ProtocolError: On an unknown type or a malformed payload
    """
    if not isinstance(value, dict):
        raise ProtocolError(f"Cell must be an object, got {value!r}")
    raw_type = value.get("type")
    try:
        cell_type = CellType(str(raw_type).lower())
    except ValueError:
        raise ProtocolError(f"Unknown cell type: {raw_type!r}")

    data = value.get("data") or {}
    try:
        if cell_type is CellType.HIT_BOX:
            return Cell.hit_box(str(data["entityId"]))
        if cell_type is CellType.SHIP:
            return Cell.ship(ShipData(
                id=str(data["id"]),
                position=decode_coordinates(data["position"]),
                direction=decode_direction(data["direction"]),
                health=_optional_int(data, "health"),
                heat=_optional_int(data, "heat"),
            ))
        if cell_type is CellType.PROJECTILE:
            return Cell.projectile(ProjectileData(
                id=str(data["id"]),
                position=decode_coordinates(data["position"]),
                direction=decode_direction(data["direction"]),
                speed=_optional_int(data, "speed", "velocity"),
                mass=_optional_int(data, "mass"),
            ))
        return Cell(cell_type)
    except (KeyError, TypeError, ValueError, InvariantViolation) as e:
        if isinstance(e, ProtocolError):
            raise
        raise ProtocolError(f"Invalid {cell_type.value} cell data {data!r}: {e}")


def decode_game_state(data: Mapping[str, Any]) -> GameState:
    """Decode the data of a gameTick event."""
    try:
        turn_number = int(data["turnNumber"])
        rows = data["gameMap"]
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid game tick: {e}")
    if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
        raise ProtocolError("gameMap must be a list of rows")
    return GameState(
        turn_number=turn_number,
        game_map=[[decode_cell(cell) for cell in row] for row in rows],
    )


def decode_start_game(data: Mapping[str, Any]) -> TeamAiContext:
    """Decode the data of a startGame event."""
    try:
        return TeamAiContext(
            tick_length_ms=int(data["tickLength"]),
            turn_rate=int(data["turnRate"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid game start: {e}")


def encode_command(command: Command) -> dict:
    """Command as ``{"action": ..., "payload": {...}}``."""
    payload = {
        key: encode_direction(value) if isinstance(value, CompassDirection) else value
        for key, value in command.payload().items()
    }
    return {"action": command.action.value, "payload": payload}


def decode_command(value: Mapping[str, Any]) -> Command:
    """Parse an encoded command back into its action type."""
    try:
        action = ActionType(str(value["action"]).lower())
        payload = value.get("payload") or {}
        if action is ActionType.MOVE:
            return MoveAction(distance=int(payload["distance"]))
        if action is ActionType.TURN:
            return TurnAction(direction=decode_direction(payload["direction"]))
        return ShootAction(speed=int(payload["speed"]), mass=int(payload["mass"]))
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, ProtocolError):
            raise
        raise ProtocolError(f"Invalid command {value!r}: {e}")

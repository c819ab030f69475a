"""
Contract tests for the gridship wire protocol.

These tests pin the envelope and payload formats exchanged with the game
server. A change that breaks them breaks compatibility with the server.
"""

import json

import pytest

from client.protocol import (
    DIRECTION_NAMES,
    Envelope,
    InboundEvent,
    OutboundEvent,
    ProtocolError,
    UnknownEventError,
    decode_cell,
    decode_command,
    decode_direction,
    decode_game_state,
    decode_start_game,
    encode_command,
    encode_direction,
    parse_envelope,
)
from tactics.entities import (
    CellType,
    CompassDirection,
    Coordinates,
    MoveAction,
    ShootAction,
    TeamAiContext,
    TurnAction,
)


class TestEnvelope:
    """Contract tests for the message envelope."""

    def test_parse_envelope(self):
        envelope = parse_envelope('{"eventType": "gameTick", "data": {"turnNumber": 1}}')
        assert envelope.event_type == "gameTick"
        assert envelope.data == {"turnNumber": 1}

    def test_parse_envelope_accepts_bytes_and_missing_data(self):
        envelope = parse_envelope(b'{"eventType": "authAck"}')
        assert envelope.event_type == "authAck"
        assert envelope.data == {}

    @pytest.mark.parametrize("frame", [
        "",
        "   ",
        "not json",
        "[1, 2]",
        '{"data": {}}',
        '{"eventType": "", "data": {}}',
        '{"eventType": "gameTick", "data": [1]}',
    ])
    def test_malformed_frames_raise(self, frame):
        with pytest.raises(ProtocolError):
            parse_envelope(frame)

    def test_auth_envelope(self):
        wire = Envelope.auth("tok", "bot").to_wire()
        assert json.loads(wire) == {"eventType": "auth", "data": {"token": "tok", "botName": "bot"}}

    def test_acks_have_empty_data(self):
        assert Envelope.start_ack().to_dict() == {"eventType": "startAck", "data": {}}
        assert Envelope.end_ack().to_dict() == {"eventType": "endAck", "data": {}}

    def test_game_action_envelope(self):
        wire = Envelope.game_action(TurnAction(CompassDirection.SOUTH_WEST)).to_wire()
        assert json.loads(wire) == {
            "eventType": "gameAction",
            "data": {"action": "turn", "payload": {"direction": "sw"}},
        }

    def test_wire_rejects_values_outside_json(self):
        """Payloads are encoded before wrapping, nothing is stringified silently"""
        with pytest.raises(TypeError):
            Envelope("gameAction", {"direction": CompassDirection.NORTH, "seen": {1, 2}}).to_wire()


class TestEvents:
    """Event type lookup."""

    def test_inbound_events_match_case_insensitively(self):
        assert InboundEvent.parse("gameTick") is InboundEvent.GAME_TICK
        assert InboundEvent.parse("GAMETICK") is InboundEvent.GAME_TICK
        assert InboundEvent.parse("authack") is InboundEvent.AUTH_ACK

    def test_unknown_event(self):
        with pytest.raises(UnknownEventError) as excinfo:
            InboundEvent.parse("chat")
        assert excinfo.value.event_type == "chat"
        assert isinstance(excinfo.value, ProtocolError)

    def test_outbound_event_names(self):
        assert [e.value for e in OutboundEvent] == ["auth", "startAck", "gameAction", "endAck"]


class TestDirections:
    """Compass directions travel as lowercase abbreviations."""

    def test_every_direction_round_trips(self):
        for direction in CompassDirection:
            assert decode_direction(encode_direction(direction)) is direction

    def test_abbreviations(self):
        assert list(DIRECTION_NAMES.values()) == ["n", "ne", "e", "se", "s", "sw", "w", "nw"]
        assert decode_direction("NE") is CompassDirection.NORTH_EAST

    @pytest.mark.parametrize("value", ["north", "NorthEast", "x", "", None, 3])
    def test_other_spellings_rejected(self, value):
        with pytest.raises(ProtocolError):
            decode_direction(value)


class TestCells:
    """Decoding of map cells."""

    def test_simple_cells(self):
        assert decode_cell({"type": "Empty", "data": {}}).cell_type is CellType.EMPTY
        assert decode_cell({"type": "OUTOFVISION"}).cell_type is CellType.OUT_OF_VISION
        assert decode_cell({"type": "audioSignature", "data": None}).cell_type is CellType.AUDIO_SIGNATURE

    def test_hitbox_cell(self):
        cell = decode_cell({"type": "HitBox", "data": {"entityId": "ship:a:b"}})
        assert cell.data.entity_id == "ship:a:b"

    def test_ship_cell(self):
        cell = decode_cell({"type": "ship", "data": {
            "id": "ship:a:b", "position": {"x": 3, "y": 4}, "direction": "W", "health": 20, "heat": 5,
        }})
        ship = cell.data
        assert ship.position == Coordinates(3, 4)
        assert ship.direction is CompassDirection.WEST
        assert (ship.health, ship.heat) == (20, 5)

    def test_ship_cell_optional_fields(self):
        cell = decode_cell({"type": "ship", "data": {
            "id": "s", "position": {"x": 1, "y": 1}, "direction": "n",
        }})
        assert cell.data.health is None
        assert cell.data.heat is None

    def test_projectile_velocity_alias(self):
        cell = decode_cell({"type": "projectile", "data": {
            "id": "p", "position": {"x": 1, "y": 2}, "direction": "se", "velocity": 3, "mass": 2,
        }})
        assert cell.data.speed == 3
        assert cell.data.mass == 2

    @pytest.mark.parametrize("value", [
        {"type": "lava", "data": {}},
        {"type": "hitbox", "data": {}},
        {"type": "ship", "data": {"id": "s", "position": {"x": 1}, "direction": "n"}},
        {"type": "ship", "data": {"id": "s", "position": {"x": 1, "y": 1}, "direction": "north"}},
        "empty",
    ])
    def test_invalid_cells(self, value):
        with pytest.raises(ProtocolError):
            decode_cell(value)


def test_decode_game_state():
    data = {"turnNumber": 12, "gameMap": [
        [{"type": "empty", "data": {}}, {"type": "audiosignature", "data": {}}],
        [{"type": "outofvision", "data": {}}, {"type": "empty", "data": {}}],
    ]}
    state = decode_game_state(data)
    assert state.turn_number == 12
    assert state.cell_at(1, 0).cell_type is CellType.AUDIO_SIGNATURE
    assert state.cell_at(0, 1).cell_type is CellType.OUT_OF_VISION


@pytest.mark.parametrize("data", [{}, {"turnNumber": 1}, {"turnNumber": 1, "gameMap": "x"}])
def test_decode_bad_game_state(data):
    with pytest.raises(ProtocolError):
        decode_game_state(data)


def test_decode_start_game():
    assert decode_start_game({"tickLength": 1000, "turnRate": 2}) == TeamAiContext(1000, 2)
    with pytest.raises(ProtocolError):
        decode_start_game({"tickLength": 1000})


@pytest.mark.parametrize("command", [
    MoveAction(distance=3),
    TurnAction(direction=CompassDirection.NORTH_WEST),
    ShootAction(speed=2, mass=3),
])
def test_command_survives_wire(command):
    """Encoding a command and parsing the emitted JSON gives it back"""
    wire = json.dumps(encode_command(command))
    assert decode_command(json.loads(wire)) == command


def test_command_payload_format():
    assert encode_command(MoveAction(1)) == {"action": "move", "payload": {"distance": 1}}
    assert encode_command(ShootAction(1, 3)) == {"action": "shoot", "payload": {"speed": 1, "mass": 3}}
    assert encode_command(TurnAction(CompassDirection.EAST)) == {"action": "turn", "payload": {"direction": "e"}}


def test_decode_bad_command():
    with pytest.raises(ProtocolError):
        decode_command({"action": "dance", "payload": {}})
    with pytest.raises(ProtocolError):
        decode_command({"action": "move", "payload": {}})


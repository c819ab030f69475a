"""
Connection lifecycle and tick deadline handling.

The state machine is driven by the transport one frame at a time. Each
game tick is answered with exactly one gameAction: the engine's command
if it finishes before the deadline, otherwise the default Move 0.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from client.config import DEFAULT_SAFETY_MARGIN_MS
from client.protocol import (
    Envelope,
    InboundEvent,
    ProtocolError,
    UnknownEventError,
    decode_game_state,
    decode_start_game,
    parse_envelope,
)
from tactics.entities import DEFAULT_COMMAND, Command, TeamAiContext

logger = logging.getLogger(__name__)

SendFn = Callable[[str], Awaitable[None]]

# A decision that misses its deadline keeps its thread until it stops
DECISION_WORKERS = 4


class ConnectionState(Enum):
    """Lifecycle states of the connection."""
    UNAUTHORIZED = "unauthorized"
    IDLE = "idle"
    IN_GAME = "in_game"


class ProtocolStateMachine:
    """
    Dispatches inbound events and sends the replies.

    The decision engine runs on a small thread pool so the event loop can
    stop waiting for it at the deadline. A late result is discarded. The
    engine hands each tick its own buffers, so neither the next tick nor a
    reset between matches waits for a decision left running.
    """

    def __init__(self, engine, send: SendFn, token: str, bot_name: str,
                 safety_margin_ms: int = DEFAULT_SAFETY_MARGIN_MS):
        """
        Initialize the state machine.

        Args:
            engine: Object with process_tick(game_state, context, cancel_event) and reset()
            send: Coroutine function delivering one text frame
            token: Authentication token
            bot_name: Name to register our bot under
            safety_margin_ms: Subtracted from half the tick length
        """
        self.engine = engine
        self._send = send
        self.token = token
        self.bot_name = bot_name
        self.safety_margin_ms = safety_margin_ms

        self.state = ConnectionState.UNAUTHORIZED
        self.context: Optional[TeamAiContext] = None
        self._executor = ThreadPoolExecutor(max_workers=DECISION_WORKERS, thread_name_prefix="decision")

        self._handlers = {
            InboundEvent.AUTH_ACK: self._on_auth_ack,
            InboundEvent.START_GAME: self._on_start_game,
            InboundEvent.GAME_TICK: self._on_game_tick,
            InboundEvent.END_GAME: self._on_end_game,
        }

    def close(self) -> None:
        """Stop accepting work; an orphaned decision is left to finish on its own."""
        self._executor.shutdown(wait=False)

    def deadline_seconds(self) -> Optional[float]:
        """Time the engine gets per tick, or None for no limit."""
        if self.context is None or self.context.tick_length_ms == 0:
            return None
        return max(0.0, self.context.tick_length_ms / 2 - self.safety_margin_ms) / 1000.0

    async def on_connect(self) -> None:
        """Send the authentication request."""
        logger.info(f"Authenticating as {self.bot_name}")
        await self._send(Envelope.auth(self.token, self.bot_name).to_wire())

    async def handle_frame(self, frame) -> None:
        """
        Handle one inbound text frame completely.

        Malformed frames and unknown events are logged and dropped.
        """
        try:
            envelope = parse_envelope(frame)
            event = InboundEvent.parse(envelope.event_type)
        except UnknownEventError as e:
            logger.warning(f"Ignoring {e}")
            return
        except ProtocolError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            return

        logger.debug(f"Received {event.value} in state {self.state.value}")
        await self._handlers[event](envelope.data)

    async def _on_auth_ack(self, data: Dict[str, Any]) -> None:
        if self.state is not ConnectionState.UNAUTHORIZED:
            logger.debug("Duplicate authAck ignored")
            return
        self.state = ConnectionState.IDLE
        logger.info("Authenticated")

    async def _on_start_game(self, data: Dict[str, Any]) -> None:
        if self.state is not ConnectionState.IDLE:
            logger.warning(f"startGame ignored in state {self.state.value}")
            return
        try:
            context = decode_start_game(data)
        except ProtocolError as e:
            logger.error(f"Cannot start game: {e}")
            return

        self.engine.reset()
        self.context = context
        self.state = ConnectionState.IN_GAME
        logger.info(f"Game started: tick length {context.tick_length_ms} ms, turn rate {context.turn_rate}")
        await self._send(Envelope.start_ack().to_wire())

    async def _on_end_game(self, data: Dict[str, Any]) -> None:
        if self.state is not ConnectionState.IN_GAME:
            logger.warning(f"endGame ignored in state {self.state.value}")
            return
        self.engine.reset()
        self.context = None
        self.state = ConnectionState.IDLE
        logger.info("Game ended")
        await self._send(Envelope.end_ack().to_wire())

    async def _on_game_tick(self, data: Dict[str, Any]) -> None:
        command = await self.decide(data)
        await self._send(Envelope.game_action(command).to_wire())

    async def decide(self, data: Dict[str, Any]) -> Command:
        """
        Run the engine on a tick, bounded by the deadline.

        Never raises: every failure yields the default command.
        """
        try:
            game_state = decode_game_state(data)
        except ProtocolError as e:
            logger.error(f"Undecodable game tick: {e}")
            return DEFAULT_COMMAND

        deadline = self.deadline_seconds()
        if deadline is None:
            try:
                return self.engine.process_tick(game_state, self.context)
            except Exception as e:
                logger.error(f"Decision failed on turn {game_state.turn_number}: {e}", exc_info=True)
                return DEFAULT_COMMAND

        cancel_event = threading.Event()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            self._executor, self.engine.process_tick, game_state, self.context, cancel_event
        )
        try:
            return await asyncio.wait_for(future, timeout=deadline)
        except asyncio.TimeoutError:
            cancel_event.set()
            logger.warning(
                f"Decision for turn {game_state.turn_number} missed the {deadline * 1000:.0f} ms deadline"
            )
            return DEFAULT_COMMAND
        except Exception as e:
            logger.error(f"Decision failed on turn {game_state.turn_number}: {e}", exc_info=True)
            return DEFAULT_COMMAND

#!/usr/bin/env python3
"""
Gridship bot client entrypoint.

Connects to the game server over a websocket, authenticates and answers
every game tick until the connection drops. Connection loss is fatal;
the process exits with status 1.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import websockets

from client.config import ClientConfig, parse_level
from client.state_machine import ProtocolStateMachine
from tactics.armament import ArmamentPlanner, HeatLattice
from tactics.decision_engine import TacticalDecisionEngine
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


class ConnectionLostError(Exception):
    """The server connection failed or closed. Not recoverable."""
    pass


class BotClient:
    """Websocket transport feeding frames to the protocol state machine."""

    def __init__(self, config: ClientConfig):
        self.config = config
        lattice = HeatLattice.build(config.max_shot_speed, config.max_shot_mass)
        planner = ArmamentPlanner(lattice, config.max_heat, config.heat_limit)
        self.engine = TacticalDecisionEngine(config.own_ship_id, planner)
        self.machine = ProtocolStateMachine(
            self.engine,
            self.send,
            token=config.token,
            bot_name=config.bot_name,
            safety_margin_ms=config.safety_margin_ms,
        )
        self.websocket = None

    async def send(self, message: str) -> None:
        if self.websocket is None:
            raise ConnectionLostError("Not connected")
        try:
            await self.websocket.send(message)
        except websockets.exceptions.ConnectionClosed as e:
            raise ConnectionLostError(f"Connection closed while sending: {e}") from e

    async def run(self) -> None:
        """
        Connect and process frames one at a time until the connection ends.

        Raises:
            ConnectionLostError: Always, once the connection is gone
        """
        uri = self.config.connection_uri()
        logger.info(f"Connecting to {self.config.uri} as {self.config.bot_name}")
        try:
            async with websockets.connect(uri) as websocket:
                self.websocket = websocket
                logger.info("Connected")
                await self.machine.on_connect()
                async for message in websocket:
                    await self.machine.handle_frame(message)
        except websockets.exceptions.WebSocketException as e:
            raise ConnectionLostError(f"Websocket error: {e}") from e
        except OSError as e:
            raise ConnectionLostError(f"Cannot reach {self.config.uri}: {e}") from e
        finally:
            self.websocket = None
            self.machine.close()
        raise ConnectionLostError("Server closed the connection")


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    ap = argparse.ArgumentParser(
        description="Gridship combat bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m client.main --token abc --bot-name rover
  python -m client.main --config bot.yaml --ai-log-level debug
  GRIDSHIP_URI=ws://game:8765 python -m client.main
        """,
    )
    ap.add_argument("--config", default=None, help="YAML or JSON config file (default: environment)")
    ap.add_argument("--uri", default=None, help="Game server websocket URI")
    ap.add_argument("--token", default=None, help="Authentication token")
    ap.add_argument("--bot-name", default=None, help="Bot name")
    ap.add_argument("--safety-margin-ms", type=int, default=None,
                    help="Milliseconds subtracted from half the tick length")
    ap.add_argument("--log-file", default=None, help="Log file path or directory")
    ap.add_argument("--log-level", default=None, help="Log level (debug, info, warning, ...)")
    ap.add_argument("--ai-log-level", default=None, help="Log level of the decision engine")
    ap.add_argument("--no-console", action="store_true", help="Log to the file only")
    return ap


def load_config(args: argparse.Namespace) -> ClientConfig:
    """Config from file or environment, with CLI flags taking precedence."""
    config = ClientConfig.from_file(args.config) if args.config else ClientConfig.from_env()

    if args.uri is not None:
        config.uri = args.uri
    if args.token is not None:
        config.token = args.token
    if args.bot_name is not None:
        config.bot_name = args.bot_name
    if args.safety_margin_ms is not None:
        config.safety_margin_ms = args.safety_margin_ms
    if args.log_file is not None:
        config.logging.log_file = args.log_file
    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.ai_log_level is not None:
        config.logging.tactics_level = args.ai_log_level
    if args.no_console:
        config.logging.log_to_console = False
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)
    config = load_config(args)

    log_config = config.logging
    log_path = setup_logging(
        log_config.log_file,
        level=parse_level(log_config.level),
        tactics_level=parse_level(log_config.tactics_level) if log_config.tactics_level else None,
        log_to_console=log_config.log_to_console,
    )
    logger.info(f"Logging to file: {log_path}")

    client = BotClient(config)
    try:
        asyncio.run(client.run())
    except ConnectionLostError as e:
        logger.critical(f"Connection lost: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())

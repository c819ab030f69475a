"""Tests for client configuration loading"""

import json
import logging

import pytest

from client.config import (
    DEFAULT_SAFETY_MARGIN_MS,
    DEFAULT_URI,
    ClientConfig,
    parse_level,
)
from client.main import build_arg_parser, load_config


def test_defaults():
    config = ClientConfig()
    assert config.uri == DEFAULT_URI
    assert config.safety_margin_ms == DEFAULT_SAFETY_MARGIN_MS
    assert (config.max_heat, config.heat_limit) == (25, 20)
    assert (config.max_shot_speed, config.max_shot_mass) == (3, 4)
    assert config.logging.log_to_console is True


def test_own_ship_id_and_connection_uri():
    config = ClientConfig(uri="ws://game:9000/bots", token="a b", bot_name="rover")
    assert config.own_ship_id == "ship:a b:rover"
    assert config.connection_uri() == "ws://game:9000/bots?token=a+b&botName=rover"


def test_connection_uri_keeps_existing_query():
    config = ClientConfig(uri="ws://game/?v=2", token="t", bot_name="b")
    assert config.connection_uri() == "ws://game/?v=2&token=t&botName=b"


def test_from_env(monkeypatch):
    monkeypatch.setenv("GRIDSHIP_URI", "ws://env:1")
    monkeypatch.setenv("GRIDSHIP_TOKEN", "envtok")
    monkeypatch.setenv("GRIDSHIP_BOT_NAME", "envbot")
    monkeypatch.setenv("GRIDSHIP_SAFETY_MARGIN_MS", "20")
    monkeypatch.setenv("GRIDSHIP_AI_LOG_LEVEL", "debug")
    monkeypatch.setenv("GRIDSHIP_LOG_CONSOLE", "false")

    config = ClientConfig.from_env()

    assert config.uri == "ws://env:1"
    assert config.own_ship_id == "ship:envtok:envbot"
    assert config.safety_margin_ms == 20
    assert config.logging.tactics_level == "debug"
    assert config.logging.log_to_console is False


def test_from_yaml_file(tmp_path):
    path = tmp_path / "bot.yaml"
    path.write_text(
        "uri: ws://yaml:2\n"
        "token: ytok\n"
        "botName: ybot\n"
        "heat_limit: 18\n"
        "unknown_key: ignored\n"
        "logging:\n"
        "  level: WARNING\n"
        "  log_to_console: false\n"
    )

    config = ClientConfig.from_file(str(path))

    assert config.uri == "ws://yaml:2"
    assert config.bot_name == "ybot"
    assert config.heat_limit == 18
    assert config.logging.level == "WARNING"
    assert config.logging.log_to_console is False


def test_from_json_file(tmp_path):
    path = tmp_path / "bot.json"
    path.write_text(json.dumps({"token": "jtok", "bot_name": "jbot", "safety_margin_ms": 10}))

    config = ClientConfig.from_file(str(path))

    assert config.own_ship_id == "ship:jtok:jbot"
    assert config.safety_margin_ms == 10


def test_from_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        ClientConfig.from_file(str(tmp_path / "missing.yaml"))

    path = tmp_path / "bot.toml"
    path.write_text("token = 'x'")
    with pytest.raises(ValueError):
        ClientConfig.from_file(str(path))


def test_parse_level():
    assert parse_level("debug") == logging.DEBUG
    assert parse_level("WARNING") == logging.WARNING
    assert parse_level(logging.ERROR) == logging.ERROR
    with pytest.raises(ValueError):
        parse_level("chatty")


def test_cli_flags_override_config(monkeypatch):
    monkeypatch.delenv("GRIDSHIP_URI", raising=False)
    args = build_arg_parser().parse_args([
        "--uri", "ws://cli:3", "--token", "ctok", "--bot-name", "cbot",
        "--safety-margin-ms", "5", "--log-level", "debug", "--ai-log-level", "warning",
        "--no-console",
    ])

    config = load_config(args)

    assert config.uri == "ws://cli:3"
    assert config.own_ship_id == "ship:ctok:cbot"
    assert config.safety_margin_ms == 5
    assert config.logging.level == "debug"
    assert config.logging.tactics_level == "warning"
    assert config.logging.log_to_console is False

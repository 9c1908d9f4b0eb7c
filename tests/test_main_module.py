import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

from lexcord import main


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LEXCORD_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("LEXCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "lexcord.exe")])

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("LEXCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_build_intents_enables_members():
    intents = main.build_intents()

    assert intents.members is True
    assert intents.guilds is True


def test_load_environment_exits_without_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit):
        main.load_environment()


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "abc")

    assert main.load_environment() == "abc"


@pytest.mark.asyncio
async def test_shutdown_runtime_closes_bot_then_runtime():
    order = []
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock(side_effect=lambda: order.append("bot"))
    runtime = MagicMock()
    runtime.shutdown = AsyncMock(side_effect=lambda: order.append("runtime"))

    await main.shutdown_runtime(bot, runtime)

    assert order == ["bot", "runtime"]


@pytest.mark.asyncio
async def test_shutdown_runtime_survives_bot_close_failure():
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock(side_effect=RuntimeError("gateway gone"))
    runtime = MagicMock()
    runtime.shutdown = AsyncMock()

    await main.shutdown_runtime(bot, runtime)

    runtime.shutdown.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_main_fails_when_database_cannot_open(monkeypatch):
    runtime = MagicMock()
    runtime.start = AsyncMock(side_effect=OSError("read-only file system"))
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "LexcordRuntime", lambda: runtime)

    assert await main.async_main() == 1

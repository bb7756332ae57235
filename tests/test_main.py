"""Tests for the serve loop behind the console entry point."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from switchboard.exceptions import RegistryLoadError
from switchboard.main import serve


class FakeClient:

    def __init__(self, behaviour="finish"):
        self.behaviour = behaviour
        self.cancelled = False

    async def run(self, bot):
        if self.behaviour == "fail":
            raise RegistryLoadError("command directory does not exist", path="/nope")
        if self.behaviour == "block":
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled = True
                raise


@pytest.mark.asyncio
async def test_client_finishing_stops_bot():
    bot = AsyncMock()
    await serve(bot, FakeClient(), asyncio.Event())
    bot.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_stop_event_cancels_client():
    bot = AsyncMock()
    client = FakeClient("block")
    stop = asyncio.Event()
    asyncio.get_running_loop().call_later(0.01, stop.set)

    await serve(bot, client, stop)

    assert client.cancelled
    bot.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_client_error_propagates_after_stop():
    bot = AsyncMock()
    with pytest.raises(RegistryLoadError):
        await serve(bot, FakeClient("fail"), asyncio.Event())
    bot.stop.assert_awaited_once()

"""Tests for background turn tracking in the WebSocket endpoint."""

import asyncio

from support_relay.api.ws import endpoint
from support_relay.api.ws.endpoint import cancel_background_turns


async def _hang() -> None:
    await asyncio.Event().wait()


async def _finish(done: list[str]) -> None:
    await asyncio.sleep(0)
    done.append("finished")


class TestBackgroundTurns:
    async def test_shutdown_cancels_turns_past_grace(self):
        task = asyncio.create_task(_hang())
        endpoint._track_task(task)

        await cancel_background_turns(grace=0.01)

        assert task.cancelled()
        assert task not in endpoint._background_turns

    async def test_shutdown_lets_quick_turns_finish(self):
        done: list[str] = []
        task = asyncio.create_task(_finish(done))
        endpoint._track_task(task)

        await cancel_background_turns(grace=1.0)

        assert done == ["finished"]
        assert not task.cancelled()
        assert not endpoint._background_turns

    async def test_no_turns_is_noop(self):
        await cancel_background_turns(grace=0.01)

"""Tests for the Action Queue and paced command sends."""

import asyncio
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from habibot import NotConnectedError
from habibot.dispatch import ActionQueue

pytestmark = pytest.mark.asyncio


class TestActionQueue:
    """Tests for FIFO, single-flight execution."""

    async def test_runs_in_enqueue_order(self):
        queue = ActionQueue()
        order = []

        def unit(name, delay):
            async def run():
                order.append(f"start {name}")
                await asyncio.sleep(delay)
                order.append(f"end {name}")
                return name
            return run

        futures = [
            queue.add(unit("a", 0.03)),
            queue.add(unit("b", 0.0)),
            queue.add(unit("c", 0.01)),
        ]
        assert await asyncio.gather(*futures) == ["a", "b", "c"]
        assert order == ["start a", "end a", "start b", "end b", "start c", "end c"]

    async def test_failure_does_not_stop_queue(self):
        queue = ActionQueue()

        async def boom():
            raise RuntimeError("boom")

        async def ok():
            return "ok"

        failed = queue.add(boom)
        succeeded = queue.add(ok)
        with pytest.raises(RuntimeError):
            await failed
        assert await succeeded == "ok"

    async def test_join_and_idle(self):
        queue = ActionQueue()
        assert queue.idle

        async def nap():
            await asyncio.sleep(0.01)

        queue.add(nap)
        queue.add(nap)
        assert len(queue) == 2
        await queue.join()
        assert queue.idle

    async def test_restarts_after_draining(self):
        queue = ActionQueue()

        async def one():
            return 1

        assert await queue.add(one) == 1
        assert await queue.add(one) == 1


class TestSend:
    """Tests for send / send_with_delay / wait."""

    async def test_writes_in_order_after_cumulative_delays(self, make_bot):
        bot, fake = make_bot()
        loop = asyncio.get_running_loop()
        start = loop.time()
        delays = [30, 10, 20]

        futures = [
            bot.send_with_delay({"op": f"c{i}"}, delay)
            for i, delay in enumerate(delays)
        ]
        await asyncio.gather(*futures)

        ops = [json.loads(data)["op"] for _, data in fake.writes]
        assert ops == ["c0", "c1", "c2"]

        cumulative = 0
        for (written_at, _), delay in zip(fake.writes, delays):
            cumulative += delay
            # Allow for timer granularity
            assert written_at - start >= cumulative / 1000 - 0.005

    async def test_frame_format(self, make_bot):
        bot, fake = make_bot(send_delay_millis=0)
        await bot.send({"op": "SPEAK", "to": "session", "text": "hi"})
        data = fake.writes[0][1]
        assert data.endswith(b"}\n\n")
        assert json.loads(data) == {"op": "SPEAK", "to": "session", "text": "hi"}

    async def test_not_connected(self, make_bot):
        bot, fake = make_bot(send_delay_millis=0)
        fake.connected = False
        with pytest.raises(NotConnectedError):
            await bot.send({"op": "SPEAK"})
        assert fake.writes == []

    async def test_disconnect_during_delay(self, make_bot):
        """A connection lost while pacing fails the command instead of writing."""
        bot, fake = make_bot()
        future = bot.send_with_delay({"op": "SPEAK"}, 30)
        await asyncio.sleep(0.01)
        fake.connected = False
        with pytest.raises(NotConnectedError):
            await future
        assert fake.writes == []

    async def test_queued_commands_fail_fast_after_drop(self, make_bot):
        bot, fake = make_bot(send_delay_millis=0)
        fake.connected = False
        futures = [bot.send({"op": "A"}), bot.send({"op": "B"})]
        results = await asyncio.gather(*futures, return_exceptions=True)
        assert all(isinstance(r, NotConnectedError) for r in results)

    async def test_wait_paces_following_command(self, make_bot):
        bot, fake = make_bot(send_delay_millis=0)
        loop = asyncio.get_running_loop()
        start = loop.time()
        bot.wait(30)
        await bot.send({"op": "AFTER"})
        assert fake.writes[0][0] - start >= 0.025

    async def test_command_template_not_mutated(self, make_bot):
        bot, fake = make_bot(send_delay_millis=0)
        command = {"op": "SPEAK", "to": "ME", "text": "$ME.name"}
        await bot.send(command)
        assert command == {"op": "SPEAK", "to": "ME", "text": "$ME.name"}

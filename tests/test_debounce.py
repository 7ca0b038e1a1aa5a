import asyncio

from tracker.client.debounce import Debouncer


async def test_rescheduling_supersedes_pending_call():
    debouncer = Debouncer()
    calls = []

    def make(value):
        async def call():
            calls.append(value)
        return call

    for value in (1, 2, 3):
        debouncer.schedule("key", 0.05, make(value))
    assert debouncer.pending_count == 1

    await debouncer.drain()
    assert calls == [3]
    assert debouncer.pending_count == 0


async def test_keys_are_independent():
    debouncer = Debouncer()
    calls = []

    async def call_a():
        calls.append("a")

    async def call_b():
        calls.append("b")

    debouncer.schedule("a", 0.01, call_a)
    debouncer.schedule("b", 0.01, call_b)
    await debouncer.drain()
    assert sorted(calls) == ["a", "b"]


async def test_fired_call_is_not_cancelled():
    debouncer = Debouncer()
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def slow():
        started.set()
        await release.wait()
        finished.append("slow")

    async def fast():
        finished.append("fast")

    debouncer.schedule("key", 0, slow)
    await started.wait()
    assert debouncer.pending_count == 0

    debouncer.schedule("key", 0, fast)
    release.set()
    await debouncer.drain()
    assert sorted(finished) == ["fast", "slow"]


async def test_cancel_and_close():
    debouncer = Debouncer()
    calls = []

    async def call():
        calls.append(1)

    debouncer.schedule("one", 0.05, call)
    assert debouncer.cancel("one") is True
    assert debouncer.cancel("one") is False

    debouncer.schedule("two", 0.05, call)
    await debouncer.close()
    await asyncio.sleep(0.1)
    assert calls == []


async def test_failing_call_does_not_break_drain():
    debouncer = Debouncer()

    async def boom():
        raise RuntimeError("boom")

    debouncer.schedule("key", 0, boom)
    await debouncer.drain()
    assert debouncer.pending_count == 0

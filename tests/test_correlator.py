from __future__ import annotations

import asyncio

from safe_py_grader.correlator import (
    CANCELLED,
    FAILURE,
    HOST_FAILURE,
    NOT_READY,
    OUTPUT,
    DispatchCorrelator,
)
from safe_py_grader.execution.types import HostMessage, RunRequest


class _FakeHost:
    def __init__(self, ready: bool = True) -> None:
        self.ready = ready
        self.sink = None
        self.posted: list[RunRequest] = []
        self.closed = False
        self.fail_post = False

    async def start(self, sink) -> None:
        self.sink = sink
        if self.ready:
            sink(HostMessage(kind="ready"))

    async def post(self, request: RunRequest) -> None:
        if self.fail_post:
            raise ConnectionError("pipe closed")
        self.posted.append(request)

    async def close(self) -> None:
        self.closed = True


def test_not_ready_send_resolves_immediately_and_registers_nothing() -> None:
    async def scenario() -> None:
        host = _FakeHost(ready=False)
        correlator = DispatchCorrelator(host)
        await correlator.start()
        outcome = await correlator.send("print(1)")
        assert outcome.kind == NOT_READY
        assert outcome.delivered is False
        assert host.posted == []
        assert correlator.pending_count == 0

    asyncio.run(scenario())


def test_replies_are_matched_by_id_not_arrival_order() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()

        first = asyncio.create_task(correlator.send("a"))
        second = asyncio.create_task(correlator.send("b"))
        await asyncio.sleep(0)
        assert [r.program for r in host.posted] == ["a", "b"]
        id_a, id_b = host.posted[0].id, host.posted[1].id
        assert id_b > id_a

        correlator.deliver(HostMessage(kind="result", id=id_b, output="B"))
        correlator.deliver(HostMessage(kind="error", id=id_a, error="NameError: x", output="partial"))

        out_a, out_b = await first, await second
        assert out_b.kind == OUTPUT and out_b.text == "B"
        assert out_a.kind == FAILURE and out_a.text == "NameError: x" and out_a.output == "partial"
        assert correlator.pending_count == 0

    asyncio.run(scenario())


def test_duplicate_and_unknown_replies_are_discarded() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()

        task = asyncio.create_task(correlator.send("x"))
        await asyncio.sleep(0)
        request_id = host.posted[0].id
        correlator.deliver(HostMessage(kind="result", id=request_id, output="first"))
        correlator.deliver(HostMessage(kind="result", id=request_id, output="second"))
        correlator.deliver(HostMessage(kind="result", id=999, output="stray"))
        outcome = await task
        assert outcome.text == "first"

    asyncio.run(scenario())


def test_ids_are_never_reused() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()
        for program in ("a", "b", "c"):
            task = asyncio.create_task(correlator.send(program))
            await asyncio.sleep(0)
            correlator.deliver(HostMessage(kind="result", id=host.posted[-1].id, output=""))
            await task
        ids = [r.id for r in host.posted]
        assert ids == sorted(set(ids))

    asyncio.run(scenario())


def test_host_failure_drains_pending_and_refuses_later_sends() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()

        task = asyncio.create_task(correlator.send("while True: pass"))
        await asyncio.sleep(0)
        correlator.deliver(HostMessage(kind="error", error="Execution host exited with code -9"))
        outcome = await task
        assert outcome.kind == HOST_FAILURE
        assert "exited" in outcome.text
        assert correlator.ready is False
        assert correlator.failure == "Execution host exited with code -9"

        later = await correlator.send("print(1)")
        assert later.kind == HOST_FAILURE
        assert len(host.posted) == 1

    asyncio.run(scenario())


def test_post_error_marks_host_failed() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        host.fail_post = True
        correlator = DispatchCorrelator(host)
        await correlator.start()
        outcome = await correlator.send("print(1)")
        assert outcome.kind == HOST_FAILURE
        assert correlator.pending_count == 0
        assert "unreachable" in (correlator.failure or "")

    asyncio.run(scenario())


def test_wait_until_ready_settles_on_ready_or_failure() -> None:
    async def scenario() -> None:
        host = _FakeHost(ready=False)
        correlator = DispatchCorrelator(host)
        await correlator.start()
        waiter = asyncio.create_task(correlator.wait_until_ready())
        await asyncio.sleep(0)
        assert not waiter.done()
        correlator.deliver(HostMessage(kind="ready"))
        assert await waiter is True

        failing = DispatchCorrelator(_FakeHost(ready=False))
        await failing.start()
        failing.deliver(HostMessage(kind="error", error="Host initialization failed: boom"))
        assert await failing.wait_until_ready() is False

    asyncio.run(scenario())


def test_close_cancels_pending_and_closes_host() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()
        task = asyncio.create_task(correlator.send("x"))
        await asyncio.sleep(0)
        await correlator.close()
        outcome = await task
        assert outcome.kind == CANCELLED
        assert host.closed is True
        assert correlator.pending_count == 0

    asyncio.run(scenario())


def test_reply_after_caller_cancelled_is_dropped() -> None:
    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()
        task = asyncio.create_task(correlator.send("x"))
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.sleep(0)
        correlator.deliver(HostMessage(kind="result", id=host.posted[0].id, output="late"))
        assert correlator.pending_count == 0

    asyncio.run(scenario())


def test_reply_stderr_is_decoded_but_not_part_of_the_output() -> None:
    message = HostMessage.from_wire(
        {"type": "error", "id": 1, "error": "ValueError: bad", "output": "a\n", "stderr": "Traceback ...\n"}
    )
    assert message.stderr == "Traceback ...\n"

    async def scenario() -> None:
        host = _FakeHost()
        correlator = DispatchCorrelator(host)
        await correlator.start()
        task = asyncio.create_task(correlator.send("raise ValueError('bad')"))
        await asyncio.sleep(0)
        correlator.deliver(message)
        outcome = await task
        assert outcome.kind == FAILURE
        assert outcome.text == "ValueError: bad"
        assert outcome.output == "a\n"

    asyncio.run(scenario())

from __future__ import annotations

import asyncio

import pytest

from safe_py_grader.collaborators import MemoryProgressTracker
from safe_py_grader.engine import NO_OUTPUT_MESSAGE, NOT_READY_MESSAGE, GradingEngine
from safe_py_grader.errors import HostFailureError, UnknownExerciseError
from safe_py_grader.execution.types import HostMessage, RunRequest
from safe_py_grader.session import RESET_PROGRAM
from safe_py_grader.verdict import Verdict


class _ScriptedHost:
    """Answers each request with the next scripted reply (default: empty result)."""

    def __init__(self, ready: bool = True) -> None:
        self.ready = ready
        self.sink = None
        self.posted: list[RunRequest] = []
        self.replies: list[dict] = []
        self.closed = False

    async def start(self, sink) -> None:
        self.sink = sink
        if self.ready:
            sink(HostMessage(kind="ready"))

    async def post(self, request: RunRequest) -> None:
        self.posted.append(request)
        reply = self.replies.pop(0) if self.replies else {"type": "result", "output": ""}
        self.sink(HostMessage.from_wire({"id": request.id, **reply}))

    async def close(self) -> None:
        self.closed = True


def _engine(host: _ScriptedHost, **kwargs) -> GradingEngine:
    return GradingEngine(host=host, **kwargs)


def test_run_returns_output_or_placeholder() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            host.replies.append({"type": "result", "output": "hi\n"})
            assert await engine.run("1", "print('hi')") == "hi\n"
            assert await engine.run("1", "x = 1") == NO_OUTPUT_MESSAGE
        assert host.closed is True

    asyncio.run(scenario())


def test_run_failure_is_rendered_after_partial_output() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            host.replies.append(
                {"type": "error", "error": "ZeroDivisionError: division by zero", "output": "a\n"}
            )
            text = await engine.run("1", "print('a')\n1/0")
            assert text == "a\nError: ZeroDivisionError: division by zero"

    asyncio.run(scenario())


def test_first_run_and_exercise_switch_carry_reset() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            await engine.run("1", "a = 1")
            await engine.run("1", "b = 2")
            await engine.run("2", "c = 3")
            await engine.run("2", "d = 4")
        assert [r.reset for r in host.posted] == [True, False, True, False]

    asyncio.run(scenario())


def test_submit_always_resets_and_records_completion() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        tracker = MemoryProgressTracker()
        async with _engine(host, tracker=tracker) as engine:
            await engine.sign_in("ada")
            host.replies.append({"type": "result", "output": "PASS: All test cases passed for reverse_string!\n"})
            verdict = await engine.submit("2", "def reverse_string(s):\n    return s[::-1]\n")
            assert verdict.passed is True
            assert engine.state.verdict == verdict
            assert host.posted[-1].reset is True
            assert host.posted[-1].program.startswith("def reverse_string(s):")
        assert tracker.is_completed("ada", "2")

    asyncio.run(scenario())


def test_failed_submit_does_not_record_completion() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        tracker = MemoryProgressTracker()
        async with _engine(host, tracker=tracker) as engine:
            host.replies.append({"type": "result", "output": "FAIL: nope\nPASS: yes\n"})
            verdict = await engine.submit("2", "def reverse_string(s):\n    return s\n")
            assert verdict.passed is False
            assert verdict.message == "FAIL: nope"
        assert tracker.completed == {}

    asyncio.run(scenario())


def test_submit_execution_error_is_classified_as_failed() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            host.replies.append({"type": "error", "error": "SyntaxError: invalid syntax"})
            verdict = await engine.submit("1", "def hello_world(:\n")
            assert verdict.passed is False
            assert "SyntaxError" in verdict.raw_output

    asyncio.run(scenario())


def test_not_ready_host() -> None:
    async def scenario() -> None:
        host = _ScriptedHost(ready=False)
        tracker = MemoryProgressTracker()
        async with _engine(host, tracker=tracker) as engine:
            assert await engine.run("1", "print(1)") == NOT_READY_MESSAGE
            verdict = await engine.submit("1", "def hello_world():\n    return 'Hello, World!'\n")
            assert verdict.passed is False
            assert verdict.message == NOT_READY_MESSAGE
        assert host.posted == []
        assert tracker.completed == {}

    asyncio.run(scenario())


def test_host_failure_raises() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            host.sink(HostMessage(kind="error", error="Execution host exited with code 137"))
            with pytest.raises(HostFailureError, match="code 137"):
                await engine.run("1", "print(1)")
            with pytest.raises(HostFailureError):
                await engine.submit("1", "print(1)")

    asyncio.run(scenario())


def test_sign_in_and_out_issue_reset_requests() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            engine.open_exercise("1")
            await engine.sign_in("ada")
            await engine.sign_out()
            assert [(r.program, r.reset) for r in host.posted] == [
                (RESET_PROGRAM, True),
                (RESET_PROGRAM, True),
            ]
            assert engine.session.identity.user_id is None

    asyncio.run(scenario())


def test_reset_returns_same_template_twice() -> None:
    engine = _engine(_ScriptedHost())
    first = engine.reset("1")
    assert engine.reset("1") == first
    assert first == engine.catalog.template("1")


def test_open_exercise_and_edit() -> None:
    engine = _engine(_ScriptedHost())
    assert engine.open_exercise("3") == engine.catalog.template("3")
    engine.edit("def sum_list(numbers):\n    return sum(numbers)\n")
    assert engine.state.code.startswith("def sum_list")


def test_unknown_exercise_is_rejected_before_dispatch() -> None:
    async def scenario() -> None:
        host = _ScriptedHost()
        async with _engine(host) as engine:
            with pytest.raises(UnknownExerciseError):
                await engine.run("999", "print(1)")
        assert host.posted == []

    asyncio.run(scenario())


def test_review_forwards_to_tutor() -> None:
    class _Tutor:
        async def review(self, descriptor, source, verdict) -> str:
            return f"{descriptor.title}|{source}|{verdict.message}"

    async def scenario() -> None:
        engine = _engine(_ScriptedHost(), tutor=_Tutor())
        text = await engine.review("1", "x = 1", Verdict(False, "FAIL: x"))
        assert text == "Hello World|x = 1|FAIL: x"

    asyncio.run(scenario())

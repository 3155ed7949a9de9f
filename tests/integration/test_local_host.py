from __future__ import annotations

import asyncio
import sys

import pytest

from safe_py_grader import GradingEngine, HostFailureError, HostPolicy
from safe_py_grader.collaborators import MemoryProgressTracker
from safe_py_grader.config import EngineConfig
from safe_py_grader.execution import LocalHost


async def _ready_engine(**kwargs) -> GradingEngine:
    engine = GradingEngine(**kwargs)
    await engine.start()
    assert await engine.wait_until_ready() is True
    return engine


def test_run_prints_through_real_worker() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            assert await engine.run("2", "print('hello'[::-1])") == "olleh\n"
            assert await engine.run("2", "x = 1") == "Code executed successfully with no output."
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_submit_grades_hello_world() -> None:
    async def scenario() -> None:
        tracker = MemoryProgressTracker()
        engine = await _ready_engine(tracker=tracker)
        try:
            verdict = await engine.submit("1", "def hello_world():\n    return 'Hello, World!'\n")
            assert verdict.passed is True
            assert verdict.message == "PASS: Your hello_world function correctly returns 'Hello, World!'"
        finally:
            await engine.close()
        assert tracker.is_completed(None, "1")

    asyncio.run(scenario())


def test_submit_reports_wrong_answer() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            verdict = await engine.submit("2", "def reverse_string(s):\n    return s\n")
            assert verdict.passed is False
            assert verdict.message == (
                "FAIL: For input reverse_string('hello'), expected 'olleh', but got 'hello'"
            )
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_identity_switch_hides_previous_users_names() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            await engine.run("1", "secret = 42")
            assert await engine.run("1", "print(secret)") == "42\n"
            await engine.sign_in("bob")
            text = await engine.run("1", "print(secret)")
            assert text == "Error: NameError: name 'secret' is not defined"
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_exercise_switch_starts_fresh_namespace() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            await engine.run("1", "carried = 'yes'")
            text = await engine.run("2", "print(carried)")
            assert text == "Error: NameError: name 'carried' is not defined"
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_submit_does_not_see_earlier_run_state() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            await engine.run("2", "def reverse_string(s):\n    return s[::-1]\n")
            verdict = await engine.submit("2", "print('no function here')")
            assert verdict.passed is False
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_blocked_import_through_engine() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            text = await engine.run("1", "import os")
            assert text == "Error: ImportError: Import 'os' is blocked by policy"
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_unencodable_output_does_not_break_the_host() -> None:
    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            assert await engine.run("2", "print('\\ud800')") == "\ud800\n"
            assert await engine.run("2", "print('ok')") == "ok\n"
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_reply_at_every_field_cap_reaches_its_caller() -> None:
    program = "print('\\x00' * 131072)\nraise ValueError('\\x00' * 131072)"

    async def scenario() -> None:
        engine = await _ready_engine()
        try:
            text = await asyncio.wait_for(engine.run("2", program), timeout=60)
            assert text.startswith("\x00" * 1024)
            assert "Error: ValueError: " in text
            assert engine.correlator.pending_count == 0
            assert await engine.run("2", "print('ok')") == "ok\n"
        finally:
            await engine.close()

    asyncio.run(scenario())


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="RLIMIT_AS is enforced on Linux")
def test_memory_limit_reports_memory_error() -> None:
    async def scenario() -> None:
        config = EngineConfig(policy=HostPolicy(memory_limit_mb=128))
        engine = await _ready_engine(config=config)
        try:
            text = await engine.run("1", "blob = bytearray(512 * 1024 * 1024)")
            assert text == "Error: MemoryError: Memory limit exceeded"
            assert await engine.run("1", "print('recovered')") == "recovered\n"
        finally:
            await engine.close()

    asyncio.run(scenario())


def test_unstartable_host_raises_host_failure() -> None:
    async def scenario() -> None:
        host = LocalHost(HostPolicy(python_executable="/nonexistent/python3"))
        engine = GradingEngine(host=host)
        await engine.start()
        try:
            assert await engine.wait_until_ready() is False
            with pytest.raises(HostFailureError, match="Failed to start execution host"):
                await engine.run("1", "print(1)")
        finally:
            await engine.close()

    asyncio.run(scenario())

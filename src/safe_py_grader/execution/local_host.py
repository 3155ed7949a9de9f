from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from ..policy import HostPolicy
from .host import MessageSink
from .types import ERROR, HostMessage, RunRequest

logger = logging.getLogger(__name__)

# A reply carries up to three capped text fields (output, error, stderr). With
# ASCII escaping one character can take 12 bytes (an astral surrogate pair).
_REPLY_TEXT_FIELDS = 3
_MAX_ESCAPED_CHAR_BYTES = 12
_LINE_OVERHEAD_BYTES = 64 * 1024


def _reply_line_limit(max_output_kb: int) -> int:
    """Return the largest reply line the worker can produce for an output cap.

    Example:
        ```python
        limit = _reply_line_limit(128)
        ```
    """
    cap = max_output_kb * 1024
    return _REPLY_TEXT_FIELDS * _MAX_ESCAPED_CHAR_BYTES * cap + _LINE_OVERHEAD_BYTES


def _worker_path() -> Path:
    """Return the absolute path to the worker module file.

    Example:
        ```python
        path = _worker_path()
        ```
    """
    return Path(__file__).resolve().parents[1] / "worker.py"


class LocalHost:
    """Run the execution host as a local worker subprocess.

    Example:
        ```python
        host = LocalHost(HostPolicy(memory_limit_mb=128))
        ```
    """

    def __init__(self, policy: HostPolicy | None = None) -> None:
        """Store the guardrails handed to the worker at start-up.

        Example:
            ```python
            host = LocalHost()
            ```
        """
        self._policy = policy or HostPolicy()
        self._process: asyncio.subprocess.Process | None = None
        self._reader: asyncio.Task[None] | None = None
        self._stderr_reader: asyncio.Task[None] | None = None
        self._sink: MessageSink | None = None
        self._closing = False
        self._line_limit = _reply_line_limit(self._policy.max_output_kb)

    @property
    def running(self) -> bool:
        """Return whether the worker process is alive.

        Example:
            ```python
            alive = host.running
            ```
        """
        return self._process is not None and self._process.returncode is None

    async def start(self, sink: MessageSink) -> None:
        """Spawn the worker and start forwarding its messages to `sink`.

        Example:
            ```python
            await host.start(correlator.deliver)
            ```
        """
        if self._process is not None:
            raise RuntimeError("LocalHost is already started")
        self._sink = sink
        self._closing = False
        cmd = [
            self._policy.python_executable,
            "-I",
            "-B",
            str(_worker_path()),
            json.dumps(self._policy.to_payload()),
        ]
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self._line_limit,
            )
        except OSError as exc:
            logger.error("Failed to spawn execution host: %s", exc)
            sink(HostMessage(kind=ERROR, error=f"Failed to start execution host: {exc}"))
            return
        logger.info("Execution host started (pid=%s)", self._process.pid)
        self._reader = asyncio.create_task(self._read_messages())
        self._stderr_reader = asyncio.create_task(self._drain_stderr())

    async def post(self, request: RunRequest) -> None:
        """Write one request line to the worker.

        Example:
            ```python
            await host.post(RunRequest(id=1, program="x = 1"))
            ```
        """
        process = self._process
        if process is None or process.stdin is None or process.returncode is not None:
            raise ConnectionError("Execution host is not running")
        line = json.dumps(request.to_wire()) + "\n"
        process.stdin.write(line.encode("utf-8"))
        await process.stdin.drain()

    async def close(self) -> None:
        """Stop the worker and its reader tasks.

        Example:
            ```python
            await host.close()
            ```
        """
        self._closing = True
        process = self._process
        if process is not None:
            if process.stdin is not None and not process.stdin.is_closing():
                process.stdin.close()
            if process.returncode is None:
                process.terminate()
            await process.wait()
            logger.info("Execution host stopped (pid=%s)", process.pid)
        for task in (self._reader, self._stderr_reader):
            if task is not None:
                await task
        self._process = None
        self._reader = None
        self._stderr_reader = None

    async def _read_messages(self) -> None:
        """Decode stdout lines into host messages until the worker exits.

        Example:
            ```python
            await host._read_messages()
            ```
        """
        process = self._process
        assert process is not None and process.stdout is not None
        while True:
            try:
                line = await process.stdout.readline()
            except ValueError:
                # An unreadable reply leaves its caller unmatched; fail the host to release it.
                logger.error("Execution host sent a reply over the %s byte line limit", self._line_limit)
                self._deliver(HostMessage(kind=ERROR, error="Execution host sent an oversized reply"))
                continue
            if not line:
                break
            try:
                message = HostMessage.from_wire(json.loads(line))
            except ValueError as exc:
                logger.warning("Ignoring undecodable host line: %s", exc)
                continue
            self._deliver(message)
        returncode = await process.wait()
        if not self._closing:
            logger.error("Execution host exited unexpectedly with code %s", returncode)
            self._deliver(
                HostMessage(kind=ERROR, error=f"Execution host exited with code {returncode}")
            )

    async def _drain_stderr(self) -> None:
        """Forward worker stderr to the debug log.

        Example:
            ```python
            await host._drain_stderr()
            ```
        """
        process = self._process
        assert process is not None and process.stderr is not None
        while True:
            line = await process.stderr.readline()
            if not line:
                return
            logger.debug("host stderr: %s", line.decode("utf-8", errors="replace").rstrip())

    def _deliver(self, message: HostMessage) -> None:
        """Hand one message to the registered sink.

        Example:
            ```python
            host._deliver(HostMessage(kind="ready"))
            ```
        """
        if self._sink is not None:
            self._sink(message)

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass

from .execution.host import ExecutionHost
from .execution.types import READY, RESULT, HostMessage, RunRequest

logger = logging.getLogger(__name__)

OUTPUT = "output"
FAILURE = "failure"
NOT_READY = "not_ready"
HOST_FAILURE = "host_failure"
CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Result of one dispatched request.

    `kind` is `output` or `failure` when the host answered, and one of
    `not_ready`, `host_failure` or `cancelled` when it did not.

    Example:
        ```python
        outcome = RunOutcome(kind="output", text="hi\\n", request_id=4)
        ```
    """

    kind: str
    text: str = ""
    output: str = ""
    request_id: int | None = None

    @property
    def delivered(self) -> bool:
        """Return whether the host actually executed the request.

        Example:
            ```python
            RunOutcome(kind="not_ready").delivered
            ```
        """
        return self.kind in {OUTPUT, FAILURE}


class DispatchCorrelator:
    """Pair tagged requests with the replies an execution host sends back.

    Owns the pending continuation table; all access happens on the event
    loop thread.

    Example:
        ```python
        correlator = DispatchCorrelator(LocalHost())
        ```
    """

    def __init__(self, host: ExecutionHost) -> None:
        """Bind the correlator to one execution host.

        Example:
            ```python
            correlator = DispatchCorrelator(host)
            ```
        """
        self._host = host
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[RunOutcome]] = {}
        self._ready = asyncio.Event()
        self._settled = asyncio.Event()
        self._failure: str | None = None

    @property
    def ready(self) -> bool:
        """Return whether the host has signalled readiness and not failed.

        Example:
            ```python
            if correlator.ready: ...
            ```
        """
        return self._ready.is_set() and self._failure is None

    @property
    def failure(self) -> str | None:
        """Return the host-level failure description, if any.

        Example:
            ```python
            reason = correlator.failure
            ```
        """
        return self._failure

    @property
    def pending_count(self) -> int:
        """Return how many requests are still awaiting replies.

        Example:
            ```python
            assert correlator.pending_count == 0
            ```
        """
        return len(self._pending)

    async def start(self) -> None:
        """Start the host with this correlator as its message sink.

        Example:
            ```python
            await correlator.start()
            ```
        """
        await self._host.start(self.deliver)

    async def wait_until_ready(self) -> bool:
        """Wait for the ready signal or a host-level failure.

        Returns `True` when the host is ready.

        Example:
            ```python
            ok = await correlator.wait_until_ready()
            ```
        """
        await self._settled.wait()
        return self.ready

    async def send(self, program: str, reset: bool = False) -> RunOutcome:
        """Dispatch one program and wait for its correlated reply.

        Example:
            ```python
            outcome = await correlator.send("print('hi')", reset=True)
            ```
        """
        if self._failure is not None:
            return RunOutcome(kind=HOST_FAILURE, text=self._failure)
        if not self._ready.is_set():
            return RunOutcome(kind=NOT_READY)

        request = RunRequest(id=next(self._ids), program=program, reset=reset)
        future: asyncio.Future[RunOutcome] = asyncio.get_running_loop().create_future()
        self._pending[request.id] = future
        try:
            await self._host.post(request)
        except (ConnectionError, OSError) as exc:
            self._pending.pop(request.id, None)
            self._fail(f"Execution host is unreachable: {exc}")
            return RunOutcome(kind=HOST_FAILURE, text=self._failure or str(exc))
        logger.debug("Dispatched request %s (reset=%s)", request.id, reset)
        return await future

    def deliver(self, message: HostMessage) -> None:
        """Route one host message to its waiting caller.

        Example:
            ```python
            correlator.deliver(HostMessage(kind="result", id=1, output="ok"))
            ```
        """
        if message.kind == READY:
            if not self._ready.is_set():
                logger.info("Execution host is ready")
            self._ready.set()
            self._settled.set()
            return
        if message.is_host_failure:
            self._fail(message.error or "Unknown host failure")
            return

        assert message.id is not None
        future = self._pending.pop(message.id, None)
        if future is None:
            logger.debug("Discarding reply for unknown request id %s", message.id)
            return
        if future.done():
            # The caller went away; the reply is stale.
            logger.debug("Discarding stale reply for request %s", message.id)
            return
        if message.stderr:
            logger.debug("Request %s stderr:\n%s", message.id, message.stderr.rstrip())
        if message.kind == RESULT:
            future.set_result(
                RunOutcome(
                    kind=OUTPUT,
                    text=message.output,
                    output=message.output,
                    request_id=message.id,
                )
            )
        else:
            future.set_result(
                RunOutcome(
                    kind=FAILURE,
                    text=message.error or "",
                    output=message.output,
                    request_id=message.id,
                )
            )

    def cancel_all(self, kind: str = CANCELLED, reason: str = "") -> int:
        """Resolve every pending request without a reply.

        Example:
            ```python
            dropped = correlator.cancel_all()
            ```
        """
        pending, self._pending = self._pending, {}
        for request_id, future in pending.items():
            if not future.done():
                future.set_result(RunOutcome(kind=kind, text=reason, request_id=request_id))
        if pending:
            logger.info("Resolved %d pending request(s) as %s", len(pending), kind)
        return len(pending)

    async def close(self) -> None:
        """Cancel outstanding requests and tear the host down.

        Example:
            ```python
            await correlator.close()
            ```
        """
        self.cancel_all()
        await self._host.close()

    def _fail(self, reason: str) -> None:
        """Enter the failed state and release every waiting caller.

        Example:
            ```python
            correlator._fail("Execution host exited with code 1")
            ```
        """
        if self._failure is None:
            logger.error("Execution host failed: %s", reason)
            self._failure = reason
        self._settled.set()
        self.cancel_all(kind=HOST_FAILURE, reason=reason)

from __future__ import annotations

from typing import Callable, Protocol

from .types import HostMessage, RunRequest

MessageSink = Callable[[HostMessage], None]


class ExecutionHost(Protocol):
    """Asynchronous channel to an isolated, persistent interpreter.

    A host emits one untagged ready message, then exactly one tagged result
    or error message per posted request. Every message goes to the sink
    given to `start`.
    """

    async def start(self, sink: MessageSink) -> None:
        """Bring the host up and begin delivering messages to `sink`.

        Example:
            ```python
            await host.start(correlator.deliver)
            ```
        """
        ...

    async def post(self, request: RunRequest) -> None:
        """Hand one tagged request to the host without waiting for its reply.

        Example:
            ```python
            await host.post(RunRequest(id=1, program="x = 1"))
            ```
        """
        ...

    async def close(self) -> None:
        """Tear the host down.

        Example:
            ```python
            await host.close()
            ```
        """
        ...

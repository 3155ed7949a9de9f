from __future__ import annotations

from dataclasses import dataclass
from typing import Any

READY = "ready"
RESULT = "result"
ERROR = "error"


@dataclass(frozen=True, slots=True)
class RunRequest:
    """Tagged request sent to an execution host.

    Example:
        ```python
        req = RunRequest(id=1, program="print('hi')", reset=False)
        ```
    """

    id: int
    program: str
    reset: bool = False

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready request object.

        Example:
            ```python
            payload = RunRequest(1, "x = 1").to_wire()
            ```
        """
        return {"id": self.id, "program": self.program, "reset": self.reset}


@dataclass(frozen=True, slots=True)
class HostMessage:
    """One message emitted by an execution host.

    `id` is `None` for the ready signal and for host-level errors. `stderr`
    carries whatever the program wrote to stderr, tracebacks included.

    Example:
        ```python
        msg = HostMessage(kind="result", id=1, output="hi\\n")
        ```
    """

    kind: str
    id: int | None = None
    output: str = ""
    error: str | None = None
    stderr: str = ""

    @property
    def is_host_failure(self) -> bool:
        """Return whether this is an untagged error for the whole host.

        Example:
            ```python
            HostMessage(kind="error", error="boom").is_host_failure
            ```
        """
        return self.kind == ERROR and self.id is None

    @classmethod
    def from_wire(cls, raw: Any) -> "HostMessage":
        """Validate and decode a host message object.

        Example:
            ```python
            msg = HostMessage.from_wire({"type": "result", "id": 3, "output": ""})
            ```
        """
        if not isinstance(raw, dict):
            raise ValueError("Host message must be a JSON object")
        kind = raw.get("type")
        if kind not in {READY, RESULT, ERROR}:
            raise ValueError(f"Unknown host message type: {kind!r}")
        msg_id = raw.get("id")
        if msg_id is not None and (not isinstance(msg_id, int) or isinstance(msg_id, bool)):
            raise ValueError("Host message 'id' must be an integer")
        if kind == RESULT and msg_id is None:
            raise ValueError("Result messages must carry an 'id'")
        output = raw.get("output") or ""
        stderr = raw.get("stderr") or ""
        error = raw.get("error")
        if kind == ERROR and not error:
            error = "Unknown error"
        return cls(
            kind=kind,
            id=None if kind == READY else msg_id,
            output=str(output),
            error=None if error is None else str(error),
            stderr=str(stderr),
        )

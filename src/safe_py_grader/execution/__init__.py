from .host import ExecutionHost, MessageSink
from .local_host import LocalHost
from .types import HostMessage, RunRequest

__all__ = [
    "ExecutionHost",
    "HostMessage",
    "LocalHost",
    "MessageSink",
    "RunRequest",
]

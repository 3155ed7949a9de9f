from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def _default_policy_path() -> Path:
    """Return bundled default policy TOML path.

    Example:
        ```python
        path = _default_policy_path()
        ```
    """
    return Path(__file__).with_name("default_policy.toml")


def _read_policy_toml(path: Path) -> dict[str, Any]:
    """Read policy TOML and return the normalized `[policy]` table.

    Example:
        ```python
        raw = _read_policy_toml(Path("/tmp/grader.toml"))
        ```
    """
    if not path.exists():
        return {
            "mode": "restrict",
            "memory_limit_mb": 256,
            "max_output_kb": 128,
            "blocked_imports": ["os", "subprocess", "socket", "ctypes", "importlib"],
            "blocked_builtins": ["eval", "exec", "open", "compile", "breakpoint"],
            "allowed_imports": [],
            "allowed_builtins": [],
        }
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    policy_obj = raw.get("policy", raw)
    if not isinstance(policy_obj, dict):
        raise ValueError("Policy config must be a TOML table")
    return policy_obj


def _list_of_str(value: Any, field_name: str) -> list[str]:
    """Validate and normalize a list-of-strings policy field.

    Example:
        ```python
        blocked = _list_of_str(["os", "subprocess"], "blocked_imports")
        ```
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{field_name}' must contain only strings")
        out.append(item)
    return out


_DEFAULT_POLICY_RAW = _read_policy_toml(_default_policy_path())
DEFAULT_MODE = str(_DEFAULT_POLICY_RAW.get("mode", "restrict"))
DEFAULT_MEMORY_LIMIT_MB = int(_DEFAULT_POLICY_RAW.get("memory_limit_mb", 256))
DEFAULT_MAX_OUTPUT_KB = int(_DEFAULT_POLICY_RAW.get("max_output_kb", 128))
DEFAULT_BLOCKED_IMPORTS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("blocked_imports", []), "blocked_imports"
)
DEFAULT_BLOCKED_BUILTINS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("blocked_builtins", []), "blocked_builtins"
)
DEFAULT_ALLOWED_IMPORTS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("allowed_imports", []), "allowed_imports"
)
DEFAULT_ALLOWED_BUILTINS = _list_of_str(
    _DEFAULT_POLICY_RAW.get("allowed_builtins", []), "allowed_builtins"
)

# Names the verification harness relies on inside the host.
HARNESS_IMPORTS = ("sys", "io", "inspect", "functools", "time", "random")
HARNESS_BUILTINS = (
    "__build_class__",
    "BaseException",
    "Exception",
    "IndexError",
    "RuntimeError",
    "ValueError",
    "all",
    "callable",
    "dict",
    "enumerate",
    "getattr",
    "globals",
    "hasattr",
    "int",
    "isinstance",
    "len",
    "list",
    "range",
    "repr",
    "sorted",
    "str",
    "type",
    "zip",
)


@dataclass(slots=True)
class HostPolicy:
    """Guardrails applied by the execution host worker at start-up.

    Example:
        ```python
        policy = HostPolicy(memory_limit_mb=128, blocked_imports=["os"])
        ```
    """

    mode: str = DEFAULT_MODE
    memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB
    max_output_kb: int = DEFAULT_MAX_OUTPUT_KB
    allowed_imports: list[str] = field(default_factory=lambda: DEFAULT_ALLOWED_IMPORTS.copy())
    blocked_imports: list[str] = field(default_factory=lambda: DEFAULT_BLOCKED_IMPORTS.copy())
    allowed_builtins: list[str] = field(default_factory=lambda: DEFAULT_ALLOWED_BUILTINS.copy())
    blocked_builtins: list[str] = field(default_factory=lambda: DEFAULT_BLOCKED_BUILTINS.copy())
    python_executable: str = field(default_factory=lambda: sys.executable)
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate mode and limits after dataclass initialization.

        Example:
            ```python
            HostPolicy(mode="restrict")
            ```
        """
        if self.mode not in {"allow", "restrict"}:
            raise ValueError("mode must be 'allow' or 'restrict'")
        if self.memory_limit_mb <= 0:
            raise ValueError("'memory_limit_mb' must be positive")
        if self.max_output_kb <= 0:
            raise ValueError("'max_output_kb' must be positive")
        if self.mode == "allow":
            self.allowed_imports.extend(
                name for name in HARNESS_IMPORTS if name not in self.allowed_imports
            )
            self.allowed_builtins.extend(
                name for name in HARNESS_BUILTINS if name not in self.allowed_builtins
            )
            return
        blocked = sorted(
            (set(HARNESS_IMPORTS) & set(self.blocked_imports))
            | (set(HARNESS_BUILTINS) & set(self.blocked_builtins))
        )
        if blocked:
            raise ValueError(
                "The verification harness needs these names, they cannot be blocked: "
                + ", ".join(blocked)
            )

    @classmethod
    def from_file(cls, config_path: str) -> "HostPolicy":
        """Create a policy instance from a TOML file.

        Example:
            ```python
            policy = HostPolicy.from_file("/tmp/grader.toml")
            ```
        """
        raw = _read_policy_toml(Path(config_path))
        return cls(
            mode=str(raw.get("mode", DEFAULT_MODE)),
            memory_limit_mb=int(raw.get("memory_limit_mb", DEFAULT_MEMORY_LIMIT_MB)),
            max_output_kb=int(raw.get("max_output_kb", DEFAULT_MAX_OUTPUT_KB)),
            allowed_imports=_list_of_str(raw.get("allowed_imports", []), "allowed_imports"),
            blocked_imports=_list_of_str(raw.get("blocked_imports", []), "blocked_imports"),
            allowed_builtins=_list_of_str(
                raw.get("allowed_builtins", []), "allowed_builtins"
            ),
            blocked_builtins=_list_of_str(
                raw.get("blocked_builtins", []), "blocked_builtins"
            ),
            python_executable=str(raw.get("python_executable", sys.executable)),
            config_path=config_path,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize the guardrails handed to the worker on its command line.

        Example:
            ```python
            payload = HostPolicy().to_payload()
            ```
        """
        return {
            "mode": self.mode,
            "memory_limit_mb": self.memory_limit_mb,
            "max_output_kb": self.max_output_kb,
            "allowed_imports": self.allowed_imports,
            "blocked_imports": self.blocked_imports,
            "allowed_builtins": self.allowed_builtins,
            "blocked_builtins": self.blocked_builtins,
        }

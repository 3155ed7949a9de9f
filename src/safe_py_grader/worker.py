from __future__ import annotations

import contextlib
import io
import json
import sys
import traceback
from typing import Any, Callable, TextIO

_resource: Any
try:
    import resource as _resource_module  # POSIX only
    _resource = _resource_module
except Exception:  # pragma: no cover - platform specific
    _resource = None


def _set_limits(memory_limit_mb: int) -> list[str]:
    """Cap the address space of this process and return any notes.

    Example:
        ```python
        notes = _set_limits(memory_limit_mb=256)
        ```
    """
    errors: list[str] = []
    if _resource is None:
        errors.append("RLIMIT limits unavailable on this platform")
        return errors

    mem_bytes = int(memory_limit_mb) * 1024 * 1024

    try:
        _, current_hard = _resource.getrlimit(_resource.RLIMIT_AS)
        if current_hard in (-1, _resource.RLIM_INFINITY):
            target_hard = mem_bytes
        else:
            target_hard = min(mem_bytes, current_hard)
        target_soft = min(mem_bytes, target_hard)
        _resource.setrlimit(_resource.RLIMIT_AS, (target_soft, target_hard))
    except (ValueError, OSError) as exc:
        errors.append(f"RLIMIT_AS not applied: {exc}")

    return errors


def _safe_import_factory_mode(
    mode: str,
    allowed_imports: set[str],
    blocked_imports: set[str],
) -> Callable[..., Any]:
    """Build the `__import__` replacement enforcing the import policy.

    Example:
        ```python
        safe_import = _safe_import_factory_mode("restrict", set(), {"os"})
        ```
    """
    def _safe_import(
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: Any = (),
        level: int = 0,
    ) -> Any:
        """Import `name` unless the policy forbids it.

        Example:
            ```python
            math = _safe_import("math")
            ```
        """
        if name == "importlib" or name.startswith("importlib."):
            raise ImportError("Import 'importlib' is blocked by policy")

        root = name.split(".")[0]
        if mode == "allow":
            if root not in allowed_imports:
                raise ImportError(f"Import '{name}' is not allowed by policy")
        elif root in blocked_imports:
            raise ImportError(f"Import '{name}' is blocked by policy")
        return __import__(name, globals, locals, fromlist, level)

    return _safe_import


def _build_safe_builtins(
    mode: str,
    allowed_builtins: set[str],
    blocked_builtins: set[str],
    safe_import: Any,
) -> dict[str, Any]:
    """Return the builtins mapping learner code is allowed to see.

    Example:
        ```python
        safe = _build_safe_builtins("restrict", set(), {"eval"}, __import__)
        ```
    """
    raw_builtins = __builtins__
    if isinstance(raw_builtins, dict):
        builtins_obj: dict[str, Any] = raw_builtins
    else:
        builtins_obj = vars(raw_builtins)

    safe = {}
    for name, value in builtins_obj.items():
        if mode == "allow":
            if name not in allowed_builtins:
                continue
        elif name in blocked_builtins:
            continue
        safe[name] = value

    safe["__import__"] = safe_import
    return safe


def _fresh_namespace(safe_builtins: dict[str, Any]) -> dict[str, Any]:
    """Return an empty `__main__` namespace.

    Example:
        ```python
        namespace = _fresh_namespace(safe_builtins)
        ```
    """
    # Copy so learner code cannot poison builtins across a reset.
    return {"__builtins__": dict(safe_builtins), "__name__": "__main__"}


def _emit(channel: TextIO, message: dict[str, Any]) -> None:
    """Write one JSON line to the reply channel.

    Example:
        ```python
        _emit(sys.stdout, {"type": "ready"})
        ```
    """
    # ASCII escapes keep lone surrogates and control characters encodable on any pipe.
    channel.write(json.dumps(message, default=str) + "\n")
    channel.flush()


def _describe(exc: BaseException) -> str:
    """Format an exception as `Type: message`.

    Example:
        ```python
        _describe(ValueError("bad"))  # "ValueError: bad"
        ```
    """
    return f"{type(exc).__name__}: {exc}"


def _execute(
    program: str,
    namespace: dict[str, Any],
    max_output_bytes: int,
) -> dict[str, Any]:
    """Run one program in the persistent namespace and build its reply body.

    Example:
        ```python
        body = _execute("print(1)", namespace, max_output_bytes=131072)
        ```
    """
    stdout_buffer = io.StringIO()
    stderr_buffer = io.StringIO()
    error: str | None = None

    try:
        byte_code = compile(program, "<learner_code>", "exec")
    except SyntaxError as exc:
        return {"error": f"SyntaxError: {exc}"[:max_output_bytes], "output": ""}

    saved_stdin = sys.stdin
    sys.stdin = io.StringIO()
    try:
        with (
            contextlib.redirect_stdout(stdout_buffer),
            contextlib.redirect_stderr(stderr_buffer),
        ):
            exec(byte_code, namespace, namespace)
    except SystemExit as exc:
        # Preserve Python semantics: non-zero/str exits are failures.
        if exc.code not in (None, 0):
            error = f"SystemExit: {exc.code}"
    except MemoryError:
        error = "MemoryError: Memory limit exceeded"
    except Exception as exc:
        error = _describe(exc)
        stderr_buffer.write(traceback.format_exc())
    finally:
        sys.stdin = saved_stdin

    try:
        output = stdout_buffer.getvalue()[:max_output_bytes]
        stderr = stderr_buffer.getvalue()[:max_output_bytes]
    except ValueError:
        output = ""
        stderr = ""
    body: dict[str, Any] = {"output": output}
    if stderr:
        body["stderr"] = stderr
    if error is not None:
        body["error"] = error[:max_output_bytes]
    return body


def serve(requests: TextIO, channel: TextIO, policy: dict[str, Any]) -> int:
    """Answer newline-delimited JSON requests until `requests` reaches EOF.

    Example:
        ```python
        serve(sys.stdin, sys.stdout, HostPolicy().to_payload())
        ```
    """
    mode = str(policy.get("mode", "restrict"))
    if mode not in {"allow", "restrict"}:
        raise ValueError("mode must be 'allow' or 'restrict'")
    memory_limit_mb = int(policy.get("memory_limit_mb", 256))
    max_output_bytes = int(policy.get("max_output_kb", 128)) * 1024

    for note in _set_limits(memory_limit_mb=memory_limit_mb):
        sys.stderr.write(note + "\n")
    safe_import = _safe_import_factory_mode(
        mode,
        set(policy.get("allowed_imports", [])),
        set(policy.get("blocked_imports", [])),
    )
    safe_builtins = _build_safe_builtins(
        mode,
        set(policy.get("allowed_builtins", [])),
        set(policy.get("blocked_builtins", [])),
        safe_import,
    )
    namespace = _fresh_namespace(safe_builtins)
    _emit(channel, {"type": "ready"})

    for line in requests:
        if not line.strip():
            continue
        try:
            req = json.loads(line)
        except ValueError as exc:
            sys.stderr.write(f"Ignoring malformed request: {exc}\n")
            continue
        request_id = req.get("id") if isinstance(req, dict) else None
        if not isinstance(request_id, int) or isinstance(request_id, bool):
            sys.stderr.write("Ignoring request without an integer id\n")
            continue
        program = req.get("program")
        if not isinstance(program, str):
            _emit(
                channel,
                {"type": "error", "id": request_id, "error": "Malformed request: 'program' must be a string"},
            )
            continue
        reset = bool(req.get("reset", False))

        if reset:
            namespace = _fresh_namespace(safe_builtins)
        body = _execute(program, namespace, max_output_bytes)
        kind = "error" if "error" in body else "result"
        try:
            _emit(channel, {"type": kind, "id": request_id, **body})
        except (TypeError, ValueError) as exc:
            _emit(
                channel,
                {"type": "error", "id": request_id, "error": f"Reply could not be encoded: {_describe(exc)}"},
            )
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the worker with the JSON policy passed as the first argument.

    Example:
        ```python
        # python worker.py '{"mode": "restrict"}'
        ```
    """
    args = sys.argv[1:] if argv is None else argv
    # Keep private handles: learner code may rebind sys.stdin/sys.stdout.
    requests = sys.stdin
    channel = sys.stdout
    try:
        policy = json.loads(args[0]) if args else {}
        if not isinstance(policy, dict):
            raise ValueError("policy must be a JSON object")
        return serve(requests, channel, policy)
    except Exception as exc:
        # Untagged error: the host as a whole failed to initialize.
        _emit(channel, {"type": "error", "error": f"Host initialization failed: {_describe(exc)}"})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

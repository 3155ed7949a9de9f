from __future__ import annotations

import logging
import textwrap
from functools import singledispatch
from typing import Mapping

from .verdict import FAIL_MARKER, PASS_MARKER
from .verification import (
    UNCHECKED,
    Assertion,
    CustomCheck,
    DefinesNames,
    LeavesArgumentUnmodified,
    MethodSequence,
    ParameterCount,
    PrintsLines,
    RaisesError,
    ReturnsInstance,
    ReturnsValue,
    VerificationSpec,
)

logger = logging.getLogger(__name__)

# Every name the harness binds starts with this prefix so learner code cannot collide with it.
PREFIX = "_spg_"
ENTRY_POINT = "solution"

_PREAMBLE = f"""
# ---- verification harness ----
import sys as {PREFIX}sys
from io import StringIO as {PREFIX}StringIO

{PREFIX}stdout = {PREFIX}sys.stdout
{PREFIX}sys.stdout = {PREFIX}StringIO()


def {PREFIX}guard(check):
    try:
        return check()
    except Exception as exc:
        return f"Error during execution - {{type(exc).__name__}}: {{exc}}"


def {PREFIX}show(value):
    try:
        return repr(value)
    except Exception:
        return "<unprintable>"
"""

_EPILOGUE = f"""
{PREFIX}failures = []
for {PREFIX}check in {PREFIX}checks:
    {PREFIX}failure = {PREFIX}guard({PREFIX}check)
    if {PREFIX}failure is not None:
        {PREFIX}failures.append(str({PREFIX}failure))
{PREFIX}sys.stdout = {PREFIX}stdout
if {PREFIX}failures:
    {PREFIX}first = ({PREFIX}failures[0].splitlines() or ["Check failed"])[0]
    {PREFIX}stdout.write({FAIL_MARKER!r} + " " + {PREFIX}first + "\\n")
else:
    {PREFIX}stdout.write({PREFIX}success + "\\n")
"""

_GENERIC_CHECK = f"""
# ---- generic check (no verification spec) ----
import sys as {PREFIX}sys
from io import StringIO as {PREFIX}StringIO

{PREFIX}stdout = {PREFIX}sys.stdout
{PREFIX}stdout.write("INFO: No specific test cases defined for this problem. Running basic validation...\\n")
{PREFIX}candidate = globals().get({ENTRY_POINT!r})
if callable({PREFIX}candidate):
    {PREFIX}sys.stdout = {PREFIX}StringIO()
    try:
        {PREFIX}candidate()
    except Exception as exc:
        {PREFIX}sys.stdout = {PREFIX}stdout
        {PREFIX}stdout.write({FAIL_MARKER!r} + f" Your {ENTRY_POINT}() function raised an error: {{exc}}\\n")
    else:
        {PREFIX}sys.stdout = {PREFIX}stdout
        {PREFIX}stdout.write("CAUTION: The {ENTRY_POINT} function runs without errors, but its correctness hasn't been verified.\\n")
        {PREFIX}stdout.write({FAIL_MARKER!r} + " This problem requires specific test cases to verify correctness.\\n")
else:
    {PREFIX}names = [
        name for name, value in list(globals().items())
        if callable(value) and not name.startswith("_") and not isinstance(value, type({PREFIX}sys))
    ]
    if {PREFIX}names:
        {PREFIX}stdout.write("Found user-defined functions: " + ", ".join({PREFIX}names) + "\\n")
        {PREFIX}stdout.write({FAIL_MARKER!r} + " Cannot automatically verify the correctness of these functions. This problem requires specific test cases.\\n")
    else:
        {PREFIX}stdout.write({FAIL_MARKER!r} + " No user-defined functions found. Make sure you've implemented the required functionality.\\n")
"""


def _literal(value: object) -> str:
    """Render a Python literal for embedding in harness source.

    Example:
        ```python
        _literal([1, 2])  # "[1, 2]"
        ```
    """
    return repr(value)


@singledispatch
def render_check(assertion: Assertion) -> list[str]:
    """Return the body lines of the check function for one assertion.

    Example:
        ```python
        lines = render_check(ReturnsValue(call("f", 1), 2))
        ```
    """
    raise TypeError(f"Unsupported assertion type: {type(assertion).__name__}")


@render_check.register
def _(assertion: DefinesNames) -> list[str]:
    """Render a name-existence check.

    Example:
        ```python
        render_check(DefinesNames(("hello_world",)))
        ```
    """
    return [
        f"for name in {_literal(assertion.names)}:",
        "    if name not in globals():",
        f"        return {_literal(assertion.message)}.format(name=name)",
        "return None",
    ]


@render_check.register
def _(assertion: ReturnsValue) -> list[str]:
    """Render an expected-return-value check.

    Example:
        ```python
        render_check(ReturnsValue(call("gcd", 4, 6), 2))
        ```
    """
    source = assertion.call.source()
    return [
        f"result = {source}",
        f"expected = {_literal(assertion.expected)}",
        "if result != expected:",
        f"    return {_literal(assertion.message)}.format(",
        f"        call={_literal(source)},",
        f"        expected={PREFIX}show(expected),",
        f"        result={PREFIX}show(result),",
        "    )",
        "return None",
    ]


@render_check.register
def _(assertion: ReturnsInstance) -> list[str]:
    """Render a return-type check against a builtin type.

    Example:
        ```python
        render_check(ReturnsInstance(call("fizzbuzz", 3), "list"))
        ```
    """
    source = assertion.call.source()
    return [
        f"result = {source}",
        f"if not isinstance(result, {assertion.type_name}):",
        f"    return {_literal(assertion.message)}.format(",
        f"        call={_literal(source)},",
        f"        type_name={_literal(assertion.type_name)},",
        "        result_type=type(result).__name__,",
        "    )",
        "return None",
    ]


@render_check.register
def _(assertion: LeavesArgumentUnmodified) -> list[str]:
    """Render an in-place mutation check.

    Example:
        ```python
        render_check(LeavesArgumentUnmodified(call("sort_list", [2, 1])))
        ```
    """
    rendered_args = [_literal(arg) for arg in assertion.call.args]
    rendered_kwargs = [f"{key}={_literal(value)}" for key, value in assertion.call.kwargs]
    return [
        f"args = [{', '.join(rendered_args)}]",
        f"original = {rendered_args[assertion.index]}",
        f"{assertion.call.function}(*args{''.join(', ' + kw for kw in rendered_kwargs)})",
        f"if args[{assertion.index}] != original:",
        f"    return {_literal(assertion.message)}.format(call={_literal(assertion.call.source())})",
        "return None",
    ]


@render_check.register
def _(assertion: ParameterCount) -> list[str]:
    """Render a signature-arity check.

    Example:
        ```python
        render_check(ParameterCount("sort_list", 1, 2))
        ```
    """
    return [
        "import inspect",
        f"count = len(inspect.signature({assertion.function}).parameters)",
        f"if not {assertion.minimum} <= count <= {assertion.maximum}:",
        f"    return {_literal(assertion.message)}.format(",
        f"        function={_literal(assertion.function)},",
        f"        minimum={assertion.minimum},",
        f"        maximum={assertion.maximum},",
        "        count=count,",
        "    )",
        "return None",
    ]


@render_check.register
def _(assertion: RaisesError) -> list[str]:
    """Render an expected-exception check.

    Example:
        ```python
        render_check(RaisesError(call("f"), "ValueError"))
        ```
    """
    message = (
        f"{_literal(assertion.message)}.format("
        f"call={_literal(assertion.call.source())}, exception={_literal(assertion.exception)})"
    )
    return [
        "try:",
        f"    {assertion.call.source()}",
        f"except {assertion.exception}:",
        "    return None",
        "except Exception as exc:",
        f"    return {message} + f' (got {{type(exc).__name__}})'",
        f"return {message}",
    ]


@render_check.register
def _(assertion: PrintsLines) -> list[str]:
    """Render a captured-print check.

    Example:
        ```python
        render_check(PrintsLines(call("hanoi", 1, "A", "B", "C"), ("Move disk 1 from A to C",)))
        ```
    """
    source = assertion.call.source()
    return [
        f"buffer = {PREFIX}StringIO()",
        f"previous = {PREFIX}sys.stdout",
        f"{PREFIX}sys.stdout = buffer",
        "try:",
        f"    {source}",
        "finally:",
        f"    {PREFIX}sys.stdout = previous",
        "lines = [line.strip() for line in buffer.getvalue().splitlines() if line.strip()]",
        f"expected = {_literal(list(assertion.expected))}",
        "if len(lines) != len(expected):",
        f"    return {_literal(assertion.count_message)}.format(",
        "        expected_count=len(expected),",
        f"        call={_literal(source)},",
        "        count=len(lines),",
        "    )",
        "for position, (actual, wanted) in enumerate(zip(lines, expected), start=1):",
        "    if actual != wanted:",
        f"        return f{_literal(assertion.label + ' {position} incorrect. Expected: {wanted!r}, got: {actual!r}')}",
        "return None",
    ]


@render_check.register
def _(assertion: MethodSequence) -> list[str]:
    """Render a stateful object-protocol check.

    Example:
        ```python
        render_check(MethodSequence("Stack", (MethodStep("is_empty", expected=True),)))
        ```
    """
    factory_args = ", ".join(_literal(arg) for arg in assertion.factory_args)
    lines = [f"obj = {assertion.factory}({factory_args})"]
    for step in assertion.steps:
        invocation = f"obj.{step.method}({', '.join(_literal(arg) for arg in step.args)})"
        message = (
            f"{_literal(step.message)}.format("
            f"method={_literal(step.method)}, expected={PREFIX}show({_literal(step.expected)}), "
            f"result={PREFIX}show(result))"
        )
        if step.raises is not None:
            lines.extend(
                [
                    "try:",
                    f"    {invocation}",
                    f"except {step.raises}:",
                    "    pass",
                    "except Exception as exc:",
                    f"    return {_literal(step.message)} + f' (got {{type(exc).__name__}})'",
                    "else:",
                    f"    return {_literal(step.message)}",
                ]
            )
        elif step.expected is UNCHECKED:
            lines.append(invocation)
        else:
            lines.extend(
                [
                    f"result = {invocation}",
                    f"if result != {_literal(step.expected)}:",
                    f"    return {message}",
                ]
            )
    lines.append("return None")
    return lines


@render_check.register
def _(assertion: CustomCheck) -> list[str]:
    """Render a free-form check body.

    Example:
        ```python
        render_check(CustomCheck("return None"))
        ```
    """
    body = textwrap.dedent(assertion.body).strip("\n")
    return [*body.splitlines(), "return None"]


def render_spec(spec: VerificationSpec) -> str:
    """Compile a verification spec into harness check functions plus the check list.

    Example:
        ```python
        text = render_spec(VERIFICATION_SPECS["2"])
        ```
    """
    chunks: list[str] = []
    names: list[str] = []
    for index, assertion in enumerate(spec.assertions, start=1):
        name = f"{PREFIX}check_{index}"
        names.append(name)
        body = textwrap.indent("\n".join(render_check(assertion)), "    ")
        chunks.append(f"def {name}():\n{body}\n")
    chunks.append(f"{PREFIX}checks = [{', '.join(names)}]")
    chunks.append(f"{PREFIX}success = {_literal(PASS_MARKER + ' ' + spec.success_message)}")
    return "\n\n".join(chunks) + "\n"


def _with_newline(source: str) -> str:
    """Ensure learner source ends with a newline before anything is appended.

    Example:
        ```python
        _with_newline("x = 1")  # "x = 1\\n"
        ```
    """
    return source if source.endswith("\n") else source + "\n"


class HarnessSynthesizer:
    """Build the program text sent to the execution host for run and submit.

    Example:
        ```python
        synthesizer = HarnessSynthesizer(VERIFICATION_SPECS)
        ```
    """

    def __init__(self, specs: Mapping[str, VerificationSpec]) -> None:
        """Store the verification specs keyed by exercise id.

        Example:
            ```python
            synthesizer = HarnessSynthesizer({})
            ```
        """
        self._specs = specs

    def has_spec(self, exercise_id: str) -> bool:
        """Return whether an exercise is graded by a dedicated spec.

        Example:
            ```python
            synthesizer.has_spec("1")
            ```
        """
        return exercise_id in self._specs

    def for_run(self, source: str) -> str:
        """Return the program for a plain run: the learner source as-is.

        Example:
            ```python
            program = synthesizer.for_run("print('hi')")
            ```
        """
        return source

    def for_submit(self, exercise_id: str, source: str) -> str:
        """Return the learner source followed by the verification harness.

        Example:
            ```python
            program = synthesizer.for_submit("2", "def reverse_string(s):\\n    return s[::-1]\\n")
            ```
        """
        spec = self._specs.get(exercise_id)
        if spec is None:
            logger.info("No verification spec for exercise %s; using generic check", exercise_id)
            return _with_newline(source) + _GENERIC_CHECK
        return _with_newline(source) + _PREAMBLE + "\n\n" + render_spec(spec) + _EPILOGUE

"""Typed assertions that describe how an exercise is graded.

These objects are the source of truth for grading. `harness.py` compiles
them into program text only when a submission is dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


class _Unchecked:
    """Sentinel for method steps whose return value is ignored."""

    _instance: "_Unchecked | None" = None

    def __new__(cls) -> "_Unchecked":
        """Return the shared sentinel instance.

        Example:
            ```python
            assert _Unchecked() is UNCHECKED
            ```
        """
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        """Render the sentinel.

        Example:
            ```python
            repr(UNCHECKED)
            ```
        """
        return "UNCHECKED"


UNCHECKED: Any = _Unchecked()


def _require_identifier(name: str, what: str) -> None:
    """Reject names that cannot appear as Python identifiers.

    Example:
        ```python
        _require_identifier("reverse_string", "function")
        ```
    """
    if not name.isidentifier():
        raise ValueError(f"{what} must be a Python identifier, got {name!r}")


@dataclass(frozen=True, slots=True)
class Call:
    """A call to a learner-defined function with literal arguments.

    Example:
        ```python
        c = Call("gcd", (56, 98))
        ```
    """

    function: str
    args: tuple[Any, ...] = ()
    kwargs: tuple[tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        """Validate the function and keyword names.

        Example:
            ```python
            Call("reverse_string", ("hello",))
            ```
        """
        _require_identifier(self.function, "function")
        for key, _ in self.kwargs:
            _require_identifier(key, "keyword")

    def source(self) -> str:
        """Render the call as Python source.

        Example:
            ```python
            Call("gcd", (56, 98)).source()  # "gcd(56, 98)"
            ```
        """
        parts = [repr(arg) for arg in self.args]
        parts.extend(f"{key}={value!r}" for key, value in self.kwargs)
        return f"{self.function}({', '.join(parts)})"


def call(function: str, *args: Any, **kwargs: Any) -> Call:
    """Build a `Call` from natural Python call syntax.

    Example:
        ```python
        c = call("convert_case", "Hello World", "upper")
        ```
    """
    return Call(function, tuple(args), tuple(kwargs.items()))


@dataclass(frozen=True, slots=True)
class DefinesNames:
    """The learner must define every listed top-level name.

    `message` may use `{name}` for the first missing name.

    Example:
        ```python
        DefinesNames(("Stack",), "Stack class not defined")
        ```
    """

    names: tuple[str, ...]
    message: str = "Could not find '{name}' in your code"

    def __post_init__(self) -> None:
        """Validate listed names.

        Example:
            ```python
            DefinesNames(("hello_world",))
            ```
        """
        if not self.names:
            raise ValueError("DefinesNames needs at least one name")
        for name in self.names:
            _require_identifier(name, "name")


@dataclass(frozen=True, slots=True)
class ReturnsValue:
    """A call must return a value equal to `expected`.

    `message` may use `{call}`, `{expected}` and `{result}`.

    Example:
        ```python
        ReturnsValue(call("reverse_string", "hello"), "olleh")
        ```
    """

    call: Call
    expected: Any
    message: str = "{call} expected {expected}, got {result}"


@dataclass(frozen=True, slots=True)
class ReturnsInstance:
    """A call must return an instance of a builtin type.

    Example:
        ```python
        ReturnsInstance(call("word_count", "a b"), "dict", "Function should return a dictionary")
        ```
    """

    call: Call
    type_name: str
    message: str = "{call} should return a {type_name}, got {result_type}"

    def __post_init__(self) -> None:
        """Validate the builtin type name.

        Example:
            ```python
            ReturnsInstance(call("f"), "list")
            ```
        """
        _require_identifier(self.type_name, "type_name")


@dataclass(frozen=True, slots=True)
class LeavesArgumentUnmodified:
    """Calling the function must not mutate the argument at `index`.

    Example:
        ```python
        LeavesArgumentUnmodified(call("sort_list", [3, 1, 2]))
        ```
    """

    call: Call
    index: int = 0
    message: str = "Original argument was modified by {call}"

    def __post_init__(self) -> None:
        """Check that `index` points at a positional argument.

        Example:
            ```python
            LeavesArgumentUnmodified(call("f", [1]), index=0)
            ```
        """
        if not 0 <= self.index < len(self.call.args):
            raise ValueError("index must refer to a positional argument of the call")


@dataclass(frozen=True, slots=True)
class ParameterCount:
    """The function signature must accept between `minimum` and `maximum` parameters.

    Example:
        ```python
        ParameterCount("sort_list", 1, 2, "Function must take 1-2 parameters")
        ```
    """

    function: str
    minimum: int
    maximum: int
    message: str = "{function} must take {minimum}-{maximum} parameters, found {count}"

    def __post_init__(self) -> None:
        """Validate function name and bounds.

        Example:
            ```python
            ParameterCount("f", 1, 1)
            ```
        """
        _require_identifier(self.function, "function")
        if self.minimum < 0 or self.maximum < self.minimum:
            raise ValueError("ParameterCount bounds must satisfy 0 <= minimum <= maximum")


@dataclass(frozen=True, slots=True)
class RaisesError:
    """A call must raise the named builtin exception.

    Example:
        ```python
        RaisesError(call("pop_from_empty"), "IndexError")
        ```
    """

    call: Call
    exception: str
    message: str = "{call} should raise {exception}"

    def __post_init__(self) -> None:
        """Validate the exception name.

        Example:
            ```python
            RaisesError(call("f"), "ValueError")
            ```
        """
        _require_identifier(self.exception, "exception")


@dataclass(frozen=True, slots=True)
class PrintsLines:
    """A call must print exactly `expected` (non-blank lines, stripped).

    Example:
        ```python
        PrintsLines(call("hanoi", 1, "A", "B", "C"), ("Move disk 1 from A to C",))
        ```
    """

    call: Call
    expected: tuple[str, ...]
    label: str = "Line"
    count_message: str = "Expected {expected_count} lines from {call}, got {count}"


@dataclass(frozen=True, slots=True)
class MethodStep:
    """One method call on an object built by a `MethodSequence`.

    Example:
        ```python
        MethodStep("push", (1,))
        MethodStep("peek", expected=1, message="peek() should return 1 after pushing 1")
        ```
    """

    method: str
    args: tuple[Any, ...] = ()
    expected: Any = UNCHECKED
    raises: str | None = None
    message: str = "{method}() returned {result}, expected {expected}"

    def __post_init__(self) -> None:
        """Validate the method and exception names.

        Example:
            ```python
            MethodStep("pop", raises="IndexError")
            ```
        """
        _require_identifier(self.method, "method")
        if self.raises is not None:
            _require_identifier(self.raises, "raises")
            if self.expected is not UNCHECKED:
                raise ValueError("A step cannot both raise and expect a value")


@dataclass(frozen=True, slots=True)
class MethodSequence:
    """Build an object from a learner class and drive it through steps in order.

    Example:
        ```python
        MethodSequence("Stack", (MethodStep("is_empty", expected=True),))
        ```
    """

    factory: str
    steps: tuple[MethodStep, ...]
    factory_args: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        """Validate the factory name.

        Example:
            ```python
            MethodSequence("Queue", ())
            ```
        """
        _require_identifier(self.factory, "factory")


@dataclass(frozen=True, slots=True)
class CustomCheck:
    """Free-form check body for behavior the typed assertions cannot express.

    The body runs inside a function; it returns a failure message or `None`.

    Example:
        ```python
        CustomCheck("if gcd(0, 0) != 0:\\n    return 'gcd(0, 0) should return 0'")
        ```
    """

    body: str
    description: str = ""


Assertion = Union[
    DefinesNames,
    ReturnsValue,
    ReturnsInstance,
    LeavesArgumentUnmodified,
    ParameterCount,
    RaisesError,
    PrintsLines,
    MethodSequence,
    CustomCheck,
]


@dataclass(frozen=True, slots=True)
class VerificationSpec:
    """Ordered checks for one exercise plus the message shown when all pass.

    Example:
        ```python
        spec = VerificationSpec(
            exercise_id="1",
            assertions=(DefinesNames(("hello_world",)),),
            success_message="Your hello_world function works",
        )
        ```
    """

    exercise_id: str
    assertions: tuple[Assertion, ...]
    success_message: str = "All test cases passed!"
    entry_points: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Reject empty specs.

        Example:
            ```python
            VerificationSpec("1", (DefinesNames(("hello_world",)),))
            ```
        """
        if not self.assertions:
            raise ValueError(f"Verification spec for exercise {self.exercise_id} has no assertions")

    @property
    def required_names(self) -> tuple[str, ...]:
        """Return every name these checks expect the learner to define.

        Example:
            ```python
            names = spec.required_names
            ```
        """
        names: list[str] = list(self.entry_points)
        for assertion in self.assertions:
            if isinstance(assertion, DefinesNames):
                names.extend(assertion.names)
        return tuple(dict.fromkeys(names))

import pytest

from safe_py_grader.verification import (
    UNCHECKED,
    Call,
    DefinesNames,
    LeavesArgumentUnmodified,
    MethodStep,
    ParameterCount,
    ReturnsValue,
    VerificationSpec,
    call,
)


def test_call_source_renders_literals_and_keywords() -> None:
    assert call("convert_case", "Hello World", "upper").source() == "convert_case('Hello World', 'upper')"
    assert call("debug_function", 1, 2, c=4).source() == "debug_function(1, 2, c=4)"
    assert Call("gcd", (56, 98)).source() == "gcd(56, 98)"


def test_identifiers_are_validated() -> None:
    with pytest.raises(ValueError, match="Python identifier"):
        call("os.system", "ls")
    with pytest.raises(ValueError, match="Python identifier"):
        DefinesNames(("not a name",))
    with pytest.raises(ValueError, match="Python identifier"):
        MethodStep("pop()", ())


def test_defines_names_requires_at_least_one_name() -> None:
    with pytest.raises(ValueError, match="at least one name"):
        DefinesNames(())


def test_parameter_count_bounds() -> None:
    with pytest.raises(ValueError, match="minimum <= maximum"):
        ParameterCount("f", 2, 1)


def test_unmodified_argument_index_must_exist() -> None:
    with pytest.raises(ValueError, match="positional argument"):
        LeavesArgumentUnmodified(call("sort_list", [1]), index=1)


def test_method_step_cannot_raise_and_expect() -> None:
    with pytest.raises(ValueError, match="both raise and expect"):
        MethodStep("pop", expected=1, raises="IndexError")
    assert MethodStep("push", (1,)).expected is UNCHECKED


def test_spec_rejects_empty_assertions() -> None:
    with pytest.raises(ValueError, match="no assertions"):
        VerificationSpec("1", ())


def test_required_names_are_collected_in_order_without_duplicates() -> None:
    spec = VerificationSpec(
        "20",
        (
            DefinesNames(("matrix_add",)),
            ReturnsValue(call("matrix_add", [[1]], [[2]]), [[3]]),
            DefinesNames(("matrix_multiply", "matrix_add")),
        ),
        entry_points=("main",),
    )
    assert spec.required_names == ("main", "matrix_add", "matrix_multiply")

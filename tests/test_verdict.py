from safe_py_grader.verdict import UNRESOLVED_MESSAGE, classify


def test_pass_only_output_passes_with_first_pass_line() -> None:
    verdict = classify("some learner print\nPASS: All test cases passed!\n")
    assert verdict.passed is True
    assert verdict.message == "PASS: All test cases passed!"


def test_fail_wins_over_pass_regardless_of_position() -> None:
    verdict = classify("...FAIL: boundary case\n...PASS: main case")
    assert verdict.passed is False
    assert verdict.message == "FAIL: boundary case"

    verdict = classify("PASS: main case\nFAIL: boundary case\n")
    assert verdict.passed is False
    assert verdict.message == "FAIL: boundary case"


def test_first_fail_line_is_reported() -> None:
    verdict = classify("FAIL: first\nFAIL: second\n")
    assert verdict.message == "FAIL: first"


def test_no_marker_is_never_a_pass() -> None:
    verdict = classify("Hello, World!\n")
    assert verdict.passed is False
    assert verdict.message == UNRESOLVED_MESSAGE
    assert verdict.raw_output == "Hello, World!\n"


def test_empty_output_fails() -> None:
    assert classify("").passed is False

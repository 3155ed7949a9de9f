from __future__ import annotations

from dataclasses import dataclass

PASS_MARKER = "PASS:"
FAIL_MARKER = "FAIL:"
UNRESOLVED_MESSAGE = (
    "Your solution could not be properly evaluated. Please review your code "
    "and make sure it implements all required functionality."
)


@dataclass(frozen=True, slots=True)
class Verdict:
    """Structured outcome of a submit.

    Example:
        ```python
        verdict = Verdict(passed=True, message="PASS: ok", raw_output="PASS: ok\\n")
        ```
    """

    passed: bool
    message: str
    raw_output: str = ""


def _first_line_with(text: str, marker: str) -> str:
    """Return the first marker occurrence through the end of its line.

    Example:
        ```python
        _first_line_with("x\\nFAIL: nope\\n", "FAIL:")
        ```
    """
    start = text.index(marker)
    end = text.find("\n", start)
    line = text[start:] if end == -1 else text[start:end]
    return line.rstrip()


def classify(raw_output: str) -> Verdict:
    """Turn captured harness output into a verdict.

    Any `FAIL:` marker wins over `PASS:` markers regardless of position;
    text with neither marker is never treated as passing.

    Example:
        ```python
        verdict = classify("PASS: All test cases passed!\\n")
        ```
    """
    if FAIL_MARKER in raw_output:
        return Verdict(False, _first_line_with(raw_output, FAIL_MARKER), raw_output)
    if PASS_MARKER in raw_output:
        return Verdict(True, _first_line_with(raw_output, PASS_MARKER), raw_output)
    return Verdict(False, UNRESOLVED_MESSAGE, raw_output)

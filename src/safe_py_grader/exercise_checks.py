"""Verification specs for the bundled exercise catalog, keyed by exercise id."""

from __future__ import annotations

from .verification import (
    CustomCheck,
    DefinesNames,
    LeavesArgumentUnmodified,
    MethodSequence,
    MethodStep,
    ParameterCount,
    PrintsLines,
    ReturnsInstance,
    ReturnsValue,
    VerificationSpec,
    call,
)

_FOR_INPUT = "For input {call}, expected {expected}, but got {result}"


def _returns(function: str, cases: list[tuple[tuple, object]], message: str = _FOR_INPUT) -> tuple[ReturnsValue, ...]:
    """Expand `(args, expected)` pairs into `ReturnsValue` assertions.

    Example:
        ```python
        _returns("gcd", [((56, 98), 14)])
        ```
    """
    return tuple(ReturnsValue(call(function, *args), expected, message) for args, expected in cases)


HELLO_WORLD = VerificationSpec(
    exercise_id="1",
    assertions=(
        DefinesNames(
            ("hello_world",),
            "Could not find a 'hello_world' function in your code. Make sure you've defined it correctly.",
        ),
        ReturnsValue(
            call("hello_world"),
            "Hello, World!",
            "Expected exactly {expected}, but got {result}",
        ),
    ),
    success_message="Your hello_world function correctly returns 'Hello, World!'",
)

REVERSE_STRING = VerificationSpec(
    exercise_id="2",
    assertions=(
        DefinesNames(("reverse_string",), "Could not find a 'reverse_string' function in your code"),
        *_returns("reverse_string", [(("hello",), "olleh"), (("Python",), "nohtyP"), (("",), "")]),
    ),
    success_message="All test cases passed for reverse_string!",
)

SUM_LIST = VerificationSpec(
    exercise_id="3",
    assertions=(
        DefinesNames(("sum_list",), "Could not find a 'sum_list' function in your code"),
        *_returns("sum_list", [(([1, 2, 3, 4, 5],), 15), (([-1, 0, 1],), 0), (([],), 0)]),
    ),
    success_message="All test cases passed for sum_list!",
)

IS_PALINDROME = VerificationSpec(
    exercise_id="4",
    assertions=(
        DefinesNames(("is_palindrome",), "Could not find an 'is_palindrome' function in your code"),
        *_returns(
            "is_palindrome",
            [
                (("racecar",), True),
                (("hello",), False),
                (("A man, a plan, a canal, Panama",), True),
                (("",), True),
            ],
        ),
    ),
    success_message="All test cases passed for is_palindrome!",
)

SORT_LIST = VerificationSpec(
    exercise_id="5",
    assertions=(
        DefinesNames(("sort_list",), "Missing function 'sort_list'"),
        ParameterCount("sort_list", 1, 2, "Function must take 1-2 parameters"),
        *_returns(
            "sort_list",
            [
                (([3, 1, 4, 1, 5],), [1, 1, 3, 4, 5]),
                (([],), []),
                (([-5, -1, -3],), [-5, -3, -1]),
            ],
            "Input {call}: Expected {expected}, got {result}",
        ),
        LeavesArgumentUnmodified(call("sort_list", [3, 1, 4, 1, 5]), message="Original list was modified"),
        LeavesArgumentUnmodified(call("sort_list", [-5, -1, -3]), message="Original list was modified"),
    ),
    success_message="All tests passed!",
)

FACTORIAL = VerificationSpec(
    exercise_id="7",
    assertions=(
        DefinesNames(("factorial",), "Function 'factorial' not defined"),
        *_returns(
            "factorial",
            [((5,), 120), ((0,), 1), ((1,), 1), ((10,), 3628800), ((2,), 2), ((3,), 6)],
            "{call} expected {expected}, got {result}",
        ),
        ReturnsValue(
            call("factorial", 20),
            2432902008176640000,
            "factorial(20) gave incorrect result",
        ),
    ),
    success_message="All requirements satisfied",
)

FIBONACCI = VerificationSpec(
    exercise_id="8",
    assertions=(
        DefinesNames(("fibonacci",), "Function 'fibonacci' not defined"),
        *_returns(
            "fibonacci",
            [((1,), 0), ((2,), 1), ((7,), 8), ((10,), 34), ((3,), 1), ((4,), 2), ((5,), 3)],
            "{call} expected {expected}, got {result}",
        ),
        ReturnsValue(call("fibonacci", 30), 514229, "fibonacci(30) gave incorrect result"),
    ),
    success_message="All requirements satisfied",
)

GCD = VerificationSpec(
    exercise_id="9",
    assertions=(
        DefinesNames(("gcd",), "Function 'gcd' not defined"),
        *_returns(
            "gcd",
            [
                ((56, 98), 14),
                ((17, 23), 1),
                ((0, 5), 5),
                ((48, 18), 6),
                ((0, 0), 0),
                ((12, 18), 6),
                ((1, 1), 1),
            ],
            "{call} expected {expected}, got {result}",
        ),
        ReturnsValue(call("gcd", 123456, 987654), 6, "gcd(123456, 987654) gave incorrect result"),
    ),
    success_message="All requirements satisfied",
)

_FIZZBUZZ_15 = [
    "1", "2", "Fizz", "4", "Buzz", "Fizz", "7", "8", "Fizz",
    "Buzz", "11", "Fizz", "13", "14", "FizzBuzz",
]

FIZZBUZZ = VerificationSpec(
    exercise_id="10",
    assertions=(
        DefinesNames(("fizzbuzz",), "Function 'fizzbuzz' not defined"),
        ReturnsInstance(call("fizzbuzz", 15), "list", "Function should return a list"),
        CustomCheck(
            f"""
            expected_output = {_FIZZBUZZ_15!r}
            result = fizzbuzz(15)
            if len(result) != 15:
                return f"Expected 15 elements, got {{len(result)}}"
            for i in range(15):
                if result[i] != expected_output[i]:
                    return f"At position {{i + 1}} expected {{expected_output[i]!r}}, got {{result[i]!r}}"
            """,
            "fizzbuzz(15) element by element",
        ),
        *_returns(
            "fizzbuzz",
            [
                ((1,), ["1"]),
                ((3,), ["1", "2", "Fizz"]),
                ((5,), ["1", "2", "Fizz", "4", "Buzz"]),
                ((16,), [*_FIZZBUZZ_15, "16"]),
            ],
            "{call} gave incorrect output",
        ),
        CustomCheck(
            """
            if "FizzBuzz" in fizzbuzz(14):
                return "Found FizzBuzz when shouldn't exist"
            if not all(isinstance(x, str) for x in fizzbuzz(2)):
                return "All elements should be strings"
            """,
            "FizzBuzz only on multiples of 15, all elements strings",
        ),
    ),
    success_message="All FizzBuzz requirements satisfied",
)

IS_PRIME = VerificationSpec(
    exercise_id="11",
    assertions=(
        DefinesNames(("is_prime",), "Function 'is_prime' not defined"),
        *_returns(
            "is_prime",
            [((7,), True), ((4,), False), ((1,), False), ((29,), True), ((100,), False)],
            "{call} expected {expected}, got {result}",
        ),
        *_returns(
            "is_prime",
            [((2,), True), ((3,), True), ((9,), False), ((15,), False), ((7919,), True)],
            "{call} should be {expected}",
        ),
        ReturnsValue(call("is_prime", 9973), True, "9973 should be prime"),
        ReturnsValue(call("is_prime", 9999), False, "9999 should not be prime"),
    ),
    success_message="All prime number checks correct",
)

STACK = VerificationSpec(
    exercise_id="12",
    assertions=(
        DefinesNames(("Stack",), "Stack class not defined"),
        MethodSequence(
            "Stack",
            (
                MethodStep("is_empty", expected=True, message="New stack should be empty"),
                MethodStep("size", expected=0, message="New stack size should be 0"),
                MethodStep("push", (1,)),
                MethodStep("peek", expected=1, message="peek() should return 1 after pushing 1"),
                MethodStep("size", expected=1, message="size() should be 1 after one push"),
                MethodStep("push", (2,)),
                MethodStep("push", (3,)),
                MethodStep("peek", expected=3, message="peek() should return 3 after pushing 2 then 3"),
                MethodStep("size", expected=3, message="size() should be 3 after three pushes"),
                MethodStep("pop", expected=3, message="First pop() should return 3"),
                MethodStep("pop", expected=2, message="Second pop() should return 2"),
                MethodStep("size", expected=1, message="size() should be 1 after two pops"),
            ),
        ),
        MethodSequence(
            "Stack",
            (
                MethodStep("pop", raises="IndexError", message="pop() should raise IndexError on empty stack"),
                MethodStep("peek", raises="IndexError", message="peek() should raise IndexError on empty stack"),
            ),
        ),
        MethodSequence(
            "Stack",
            (
                MethodStep("push", ("a",)),
                MethodStep("push", ("b",)),
                MethodStep("pop", expected="b", message="Should handle string values"),
            ),
        ),
        MethodSequence(
            "Stack",
            (
                MethodStep("is_empty", expected=True, message="New stack should be empty"),
                MethodStep("push", (1,)),
                MethodStep("is_empty", expected=False, message="Stack with items should not be empty"),
                MethodStep("pop"),
                MethodStep("is_empty", expected=True, message="Stack should be empty after pop"),
            ),
        ),
    ),
    success_message="All stack operations working correctly",
)

QUEUE = VerificationSpec(
    exercise_id="13",
    assertions=(
        DefinesNames(("Queue",), "Queue class not defined"),
        MethodSequence(
            "Queue",
            (
                MethodStep("is_empty", expected=True, message="New queue should be empty"),
                MethodStep("size", expected=0, message="New queue size should be 0"),
                MethodStep("enqueue", (1,)),
                MethodStep("peek", expected=1, message="peek() should return 1 after enqueuing 1"),
                MethodStep("size", expected=1, message="size() should be 1 after one enqueue"),
                MethodStep("enqueue", (2,)),
                MethodStep("enqueue", (3,)),
                MethodStep(
                    "peek",
                    expected=1,
                    message="peek() should return first item (1) after enqueuing 2 and 3",
                ),
                MethodStep("size", expected=3, message="size() should be 3 after three enqueues"),
                MethodStep("dequeue", expected=1, message="First dequeue() should return 1 (FIFO)"),
                MethodStep("dequeue", expected=2, message="Second dequeue() should return 2 (FIFO)"),
                MethodStep("size", expected=1, message="size() should be 1 after two dequeues"),
            ),
        ),
        MethodSequence(
            "Queue",
            (
                MethodStep(
                    "dequeue",
                    raises="IndexError",
                    message="dequeue() should raise IndexError on empty queue",
                ),
                MethodStep("peek", raises="IndexError", message="peek() should raise IndexError on empty queue"),
            ),
        ),
        MethodSequence(
            "Queue",
            (
                MethodStep("enqueue", ("a",)),
                MethodStep("enqueue", ("b",)),
                MethodStep("dequeue", expected="a", message="Should handle string values (FIFO order)"),
            ),
        ),
        MethodSequence(
            "Queue",
            (
                MethodStep("is_empty", expected=True, message="New queue should be empty"),
                MethodStep("enqueue", (1,)),
                MethodStep("is_empty", expected=False, message="Queue with items should not be empty"),
                MethodStep("dequeue"),
                MethodStep("is_empty", expected=True, message="Queue should be empty after dequeue"),
            ),
        ),
        MethodSequence(
            "Queue",
            tuple(MethodStep("enqueue", (i,)) for i in range(1, 6))
            + tuple(
                MethodStep(
                    "dequeue",
                    expected=i,
                    message=f"Expected FIFO order, got wrong item at position {i}",
                )
                for i in range(1, 6)
            ),
        ),
    ),
    success_message="All queue operations working correctly (FIFO order maintained)",
)

BINARY_SEARCH_TREE = VerificationSpec(
    exercise_id="14",
    assertions=(
        DefinesNames(
            ("BinarySearchTree",),
            "Could not find a 'BinarySearchTree' class in your code",
        ),
        CustomCheck(
            """
            bst = BinarySearchTree()
            bst.insert(5)
            bst.insert(3)
            bst.insert(7)
            if not hasattr(bst, "search") or not bst.search(5):
                return "search method not working correctly"
            if not hasattr(bst, "inorder_traversal"):
                return "inorder_traversal method not implemented"
            """,
            "basic insert/search/inorder_traversal",
        ),
    ),
    success_message="Basic BST operations appear to be working",
)

LINKED_LIST = VerificationSpec(
    exercise_id="15",
    assertions=(
        DefinesNames(("Node", "LinkedList"), "Node or LinkedList class not defined"),
        CustomCheck(
            """
            ll = LinkedList()
            if ll.head is not None or ll.tail is not None:
                return "New linked list should have null head and tail"
            if ll.to_list() != []:
                return "Empty list should convert to empty Python list"
            ll.append(1)
            if ll.to_list() != [1]:
                return "Append first item failed"
            if ll.head.value != 1 or ll.tail.value != 1:
                return "Head and tail should point to first node"
            ll.append(2)
            if ll.to_list() != [1, 2]:
                return "Append second item failed"
            if ll.tail.value != 2:
                return "Tail should point to last node"
            ll.prepend(0)
            if ll.to_list() != [0, 1, 2]:
                return "Prepend item failed"
            if ll.head.value != 0:
                return "Head should point to new first node"
            if not ll.search(1):
                return "Search failed to find existing item"
            if ll.search(5):
                return "Search incorrectly found non-existent item"
            ll.delete(1)
            if ll.to_list() != [0, 2]:
                return "Delete middle item failed"
            ll.delete(0)
            if ll.to_list() != [2]:
                return "Delete first item failed"
            if ll.head.value != 2 or ll.tail.value != 2:
                return "Head and tail should point to remaining node"
            ll.delete(2)
            if ll.to_list() != []:
                return "Delete last item failed"
            if ll.head is not None or ll.tail is not None:
                return "Empty list should have null head and tail"
            ll.append(1)
            ll.append(1)
            ll.delete(1)
            if ll.to_list() != [1]:
                return "Should only delete first occurrence"
            ll.delete(99)
            if ll.to_list() != [1]:
                return "Deleting non-existent item should not modify list"
            """,
            "append/prepend/search/delete with head and tail bookkeeping",
        ),
        CustomCheck(
            """
            str_list = LinkedList()
            str_list.append("a")
            str_list.append("b")
            str_list.prepend("c")
            if str_list.to_list() != ["c", "a", "b"]:
                return "String handling failed"
            """,
            "string payloads",
        ),
    ),
    success_message="All linked list operations working correctly",
)

DECORATORS = VerificationSpec(
    exercise_id="16",
    assertions=(
        DefinesNames(("timer",), "timer decorator not defined"),
        DefinesNames(("debug",), "debug decorator not defined"),
        DefinesNames(("retry",), "retry decorator not defined"),
        CustomCheck(
            """
            import time

            @timer
            def timed_function():
                time.sleep(0.1)
                return "Timed result"

            buffer = _spg_StringIO()
            previous = _spg_sys.stdout
            _spg_sys.stdout = buffer
            try:
                result = timed_function()
            finally:
                _spg_sys.stdout = previous
            if not buffer.getvalue().startswith("Execution of timed_function took"):
                return "timer decorator missing execution time output"
            if result != "Timed result":
                return "timer decorator modified return value"
            """,
            "timer prints elapsed time and preserves the return value",
        ),
        CustomCheck(
            """
            @debug
            def debug_function(a, b, c=3):
                return a + b + c

            buffer = _spg_StringIO()
            previous = _spg_sys.stdout
            _spg_sys.stdout = buffer
            try:
                result = debug_function(1, 2, c=4)
            finally:
                _spg_sys.stdout = previous
            output = buffer.getvalue()
            for line in ("Calling debug_function(1, 2, c=4)", "Returning 7"):
                if line not in output:
                    return f"debug decorator missing expected output: {line}"
            if result != 7:
                return "debug decorator modified return value"
            """,
            "debug logs calls and return values",
        ),
        CustomCheck(
            """
            @retry(3)
            def failing_function(attempts_to_succeed=2):
                failing_function.call_count += 1
                if failing_function.call_count < attempts_to_succeed:
                    raise ValueError("Not ready yet")
                return "Success"

            failing_function.call_count = 0
            buffer = _spg_StringIO()
            previous = _spg_sys.stdout
            _spg_sys.stdout = buffer
            try:
                result = failing_function(2)
            finally:
                _spg_sys.stdout = previous
            if "Attempt 1/3 failed: Not ready yet" not in buffer.getvalue():
                return "retry decorator missing failure message"
            if result != "Success":
                return "retry decorator didn't return successful result"
            """,
            "retry retries until success",
        ),
        CustomCheck(
            """
            @retry(2)
            def always_fails():
                always_fails.call_count += 1
                raise RuntimeError("Always fails")

            always_fails.call_count = 0
            buffer = _spg_StringIO()
            previous = _spg_sys.stdout
            _spg_sys.stdout = buffer
            try:
                always_fails()
            except RuntimeError as exc:
                if str(exc) != "Always fails":
                    return f"retry decorator raised wrong exception: {exc}"
            else:
                return "retry decorator should have raised exception"
            finally:
                _spg_sys.stdout = previous
            if always_fails.call_count != 2:
                return f"retry decorator didn't make expected attempts (expected 2, got {always_fails.call_count})"
            if "Attempt 2/2 failed: Always fails" not in buffer.getvalue():
                return "retry decorator missing final failure message"
            """,
            "retry gives up after the attempt budget",
        ),
    ),
    success_message="All decorators working correctly",
)

WORD_COUNT = VerificationSpec(
    exercise_id="18",
    assertions=(
        DefinesNames(("word_count",), "Function 'word_count' not defined"),
        ReturnsInstance(call("word_count", "Hello world"), "dict", "Function should return a dictionary"),
        *_returns(
            "word_count",
            [
                (("Hello world, hello Python!",), {"hello": 2, "world": 1, "python": 1}),
                (
                    ("The quick brown fox jumps over the lazy dog.",),
                    {
                        "the": 2, "quick": 1, "brown": 1, "fox": 1,
                        "jumps": 1, "over": 1, "lazy": 1, "dog": 1,
                    },
                ),
            ],
            "For input {call}, expected {expected}, got {result}",
        ),
        ReturnsValue(call("word_count", ""), {}, "Empty string should return empty dictionary"),
        ReturnsValue(call("word_count", "Hello HELLO hello"), {"hello": 3}, "Should be case insensitive"),
        ReturnsValue(call("word_count", "word! word? word."), {"word": 3}, "Should ignore punctuation"),
    ),
    success_message="All requirements satisfied",
)

_HANOI_3 = (
    "Move disk 1 from A to C",
    "Move disk 2 from A to B",
    "Move disk 1 from C to B",
    "Move disk 3 from A to C",
    "Move disk 1 from B to A",
    "Move disk 2 from B to C",
    "Move disk 1 from A to C",
)

TOWER_OF_HANOI = VerificationSpec(
    exercise_id="19",
    assertions=(
        DefinesNames(("hanoi",), "Function 'hanoi' not defined"),
        PrintsLines(
            call("hanoi", 3, "A", "B", "C"),
            _HANOI_3,
            label="Move",
            count_message="Expected {expected_count} moves for 3 disks, got {count}",
        ),
        CustomCheck(
            """
            buffer = _spg_StringIO()
            previous = _spg_sys.stdout
            _spg_sys.stdout = buffer
            try:
                hanoi(3, "A", "B", "C")
            finally:
                _spg_sys.stdout = previous
            rods = {"A": [3, 2, 1], "B": [], "C": []}
            for move in [line.strip() for line in buffer.getvalue().splitlines() if line.strip()]:
                parts = move.split()
                disk, from_rod, to_rod = int(parts[2]), parts[4], parts[6]
                if not rods[from_rod] or rods[from_rod][-1] != disk:
                    return f"Invalid move - Disk {disk} not top of {from_rod}"
                if rods[to_rod] and rods[to_rod][-1] < disk:
                    return f"Invalid move - Cannot place disk {disk} on {rods[to_rod][-1]}"
                rods[from_rod].pop()
                rods[to_rod].append(disk)
            """,
            "every printed move is legal",
        ),
    ),
    success_message="All moves valid and correct",
)

MATRIX_OPERATIONS = VerificationSpec(
    exercise_id="20",
    assertions=(
        DefinesNames(("matrix_add",), "matrix_add function not found"),
        ReturnsValue(
            call("matrix_add", [[1, 2], [3, 4]], [[5, 6], [7, 8]]),
            [[6, 8], [10, 12]],
            "Addition incorrect. Expected {expected}, got {result}",
        ),
        DefinesNames(("matrix_multiply",), "matrix_multiply function not found"),
        ReturnsValue(
            call("matrix_multiply", [[1, 2], [3, 4]], [[5, 6], [7, 8]]),
            [[19, 22], [43, 50]],
            "Multiplication incorrect. Expected {expected}, got {result}",
        ),
        DefinesNames(("matrix_transpose",), "matrix_transpose function not found"),
        ReturnsValue(
            call("matrix_transpose", [[1, 2, 3], [4, 5, 6]]),
            [[1, 4], [2, 5], [3, 6]],
            "Transpose incorrect. Expected {expected}, got {result}",
        ),
        ReturnsValue(call("matrix_add", [[]], [[]]), [[]], "Empty matrix addition failed"),
        ReturnsValue(call("matrix_multiply", [[2]], [[3]]), [[6]], "1x1 matrix multiplication failed"),
    ),
    success_message="All matrix operations correct",
)

CONVERT_CASE = VerificationSpec(
    exercise_id="23",
    assertions=(
        DefinesNames(("convert_case",), "Function 'convert_case' not defined"),
        *_returns(
            "convert_case",
            [
                (("Hello World", "upper"), "HELLO WORLD"),
                (("Hello World", "lower"), "hello world"),
                (("hello world", "title"), "Hello World"),
                (("Hello World", "invalid"), "Hello World"),
                (("", "upper"), ""),
                (("python programming", "title"), "Python Programming"),
            ],
            "Input {call} expected {expected}, got {result}",
        ),
        ReturnsValue(
            call("convert_case", "multi word string", "title"),
            "Multi Word String",
            "Title case should capitalize each word",
        ),
        ReturnsValue(
            call("convert_case", "123 numbers", "upper"),
            "123 NUMBERS",
            "Should handle numbers correctly",
        ),
    ),
    success_message="All requirements satisfied",
)

VERIFICATION_SPECS: dict[str, VerificationSpec] = {
    spec.exercise_id: spec
    for spec in (
        HELLO_WORLD,
        REVERSE_STRING,
        SUM_LIST,
        IS_PALINDROME,
        SORT_LIST,
        FACTORIAL,
        FIBONACCI,
        GCD,
        FIZZBUZZ,
        IS_PRIME,
        STACK,
        QUEUE,
        BINARY_SEARCH_TREE,
        LINKED_LIST,
        DECORATORS,
        WORD_COUNT,
        TOWER_OF_HANOI,
        MATRIX_OPERATIONS,
        CONVERT_CASE,
    )
}

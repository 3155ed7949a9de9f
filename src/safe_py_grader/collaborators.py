"""External collaborators of the grading engine.

The engine only talks to these through the protocols below. The bundled
implementations cover local use and tests.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from .catalog import ExerciseDescriptor
from .verdict import Verdict

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


class SnapshotStore(Protocol):
    """Persisted editor code keyed by signed-in user and exercise.

    Example:
        ```python
        store: SnapshotStore = MemorySnapshotStore()
        ```
    """

    def load(self, user_id: str, exercise_id: str) -> str | None:
        """Return saved code or `None`.

        Example:
            ```python
            code = store.load("ada", "2")
            ```
        """
        ...

    def save(self, user_id: str, exercise_id: str, code: str) -> None:
        """Persist code for one user and exercise.

        Example:
            ```python
            store.save("ada", "2", "def reverse_string(s):\\n    return s[::-1]\\n")
            ```
        """
        ...


class ProgressTracker(Protocol):
    """Receives completion records for passing submits.

    Example:
        ```python
        tracker: ProgressTracker = MemoryProgressTracker()
        ```
    """

    def mark_completed(self, user_id: str | None, exercise_id: str) -> None:
        """Record that a user solved an exercise.

        Example:
            ```python
            tracker.mark_completed("ada", "1")
            ```
        """
        ...


class Tutor(Protocol):
    """Text-in/text-out tutoring service.

    Example:
        ```python
        tutor: Tutor = HintTutor()
        ```
    """

    async def review(self, descriptor: ExerciseDescriptor, source: str, verdict: Verdict) -> str:
        """Return feedback on a graded submission.

        Example:
            ```python
            text = await tutor.review(descriptor, source, verdict)
            ```
        """
        ...


def snapshot_key(user_id: str, exercise_id: str) -> str:
    """Return the storage key for one user's code on one exercise.

    Example:
        ```python
        snapshot_key("ada", "2")  # "code-ada-2"
        ```
    """
    return f"code-{user_id}-{exercise_id}"


class MemorySnapshotStore:
    """In-process snapshot store.

    Example:
        ```python
        store = MemorySnapshotStore()
        store.save("ada", "1", "x = 1")
        ```
    """

    def __init__(self) -> None:
        """Start with no snapshots.

        Example:
            ```python
            store = MemorySnapshotStore()
            ```
        """
        self.snapshots: dict[str, str] = {}

    def load(self, user_id: str, exercise_id: str) -> str | None:
        """Return saved code or `None`.

        Example:
            ```python
            MemorySnapshotStore().load("ada", "1")
            ```
        """
        return self.snapshots.get(snapshot_key(user_id, exercise_id))

    def save(self, user_id: str, exercise_id: str, code: str) -> None:
        """Store code in memory.

        Example:
            ```python
            MemorySnapshotStore().save("ada", "1", "x = 1")
            ```
        """
        self.snapshots[snapshot_key(user_id, exercise_id)] = code


class JsonSnapshotStore:
    """Snapshot store backed by one JSON file in a directory.

    The file is rewritten atomically on every save.

    Example:
        ```python
        store = JsonSnapshotStore(Path("/tmp/spg-snapshots"))
        ```
    """

    FILE_NAME = "snapshots.json"

    def __init__(self, directory: Path) -> None:
        """Bind the store to a directory, created on first save.

        Example:
            ```python
            store = JsonSnapshotStore(Path("/tmp/spg-snapshots"))
            ```
        """
        self.path = Path(directory) / self.FILE_NAME

    def _read(self) -> dict[str, str]:
        """Read the snapshot file, treating a missing file as empty.

        Example:
            ```python
            data = store._read()
            ```
        """
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot file {self.path} must contain a JSON object")
        return {str(key): str(value) for key, value in data.items()}

    def load(self, user_id: str, exercise_id: str) -> str | None:
        """Return saved code or `None`.

        Example:
            ```python
            code = store.load("ada", "2")
            ```
        """
        return self._read().get(snapshot_key(user_id, exercise_id))

    def save(self, user_id: str, exercise_id: str, code: str) -> None:
        """Persist code, replacing the file atomically.

        Example:
            ```python
            store.save("ada", "2", "print('hi')")
            ```
        """
        data = self._read()
        data[snapshot_key(user_id, exercise_id)] = code
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".snapshots-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved snapshot %s", snapshot_key(user_id, exercise_id))


class MemoryProgressTracker:
    """Completion records kept in memory, keyed by user.

    Example:
        ```python
        tracker = MemoryProgressTracker()
        tracker.mark_completed(None, "1")
        ```
    """

    def __init__(self) -> None:
        """Start with no completions.

        Example:
            ```python
            tracker = MemoryProgressTracker()
            ```
        """
        self.completed: dict[str, set[str]] = {}

    def mark_completed(self, user_id: str | None, exercise_id: str) -> None:
        """Record a completion; repeated records are harmless.

        Example:
            ```python
            tracker.mark_completed("ada", "1")
            ```
        """
        self.completed.setdefault(user_id or ANONYMOUS, set()).add(exercise_id)

    def is_completed(self, user_id: str | None, exercise_id: str) -> bool:
        """Return whether a user has solved an exercise.

        Example:
            ```python
            tracker.is_completed("ada", "1")
            ```
        """
        return exercise_id in self.completed.get(user_id or ANONYMOUS, set())


class HintTutor:
    """Offline tutor that answers from the exercise's own hints.

    Example:
        ```python
        text = await HintTutor().review(descriptor, source, verdict)
        ```
    """

    async def review(self, descriptor: ExerciseDescriptor, source: str, verdict: Verdict) -> str:
        """Return congratulations on a pass, otherwise the failure plus a hint.

        Example:
            ```python
            text = await HintTutor().review(descriptor, "x = 1", verdict)
            ```
        """
        if verdict.passed:
            return f"Nice work on \"{descriptor.title}\"! All checks passed."
        lines = [verdict.message]
        if descriptor.hints:
            lines.append(f"Here's a hint that might help: {descriptor.hints[0]}")
        else:
            lines.append(
                f"For this {descriptor.difficulty.lower()} problem, try breaking it down into steps "
                "and checking the edge cases."
            )
        return "\n".join(lines)

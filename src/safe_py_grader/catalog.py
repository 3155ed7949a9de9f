from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from .errors import ConfigError, UnknownExerciseError

DIFFICULTY_ORDER = {"Easy": 1, "Medium": 2, "Hard": 3}

DEFAULT_STARTER = (
    "def solution():\n"
    "    # Write your code here\n"
    "    pass\n"
    "\n"
    "# Test your solution\n"
    "solution()\n"
)


def _default_catalog_path() -> Path:
    """Return the bundled catalog TOML path.

    Example:
        ```python
        path = _default_catalog_path()
        ```
    """
    return Path(__file__).with_name("catalog.toml")


def _text(raw: dict[str, Any], key: str, where: str, default: str | None = None) -> str:
    """Read a string field from a catalog table.

    Example:
        ```python
        title = _text({"title": "Hello World"}, "title", "exercise 1")
        ```
    """
    value = raw.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{where}: '{key}' must be a string")
    return value


def _texts(raw: dict[str, Any], key: str, where: str) -> tuple[str, ...]:
    """Read an optional list-of-strings field from a catalog table.

    Example:
        ```python
        hints = _texts({"hints": ["Use slicing"]}, "hints", "exercise 2")
        ```
    """
    value = raw.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{where}: '{key}' must be a list of strings")
    return tuple(value)


@dataclass(frozen=True, slots=True)
class Example:
    """One worked input/output pair shown with an exercise.

    Example:
        ```python
        ex = Example(input='reverse_string("hello")', output='"olleh"')
        ```
    """

    input: str
    output: str
    explanation: str = ""


@dataclass(frozen=True, slots=True)
class Solution:
    """Reference solution for an exercise.

    Example:
        ```python
        sol = Solution(explanation="Use slicing.", code="def f(s):\\n    return s[::-1]\\n")
        ```
    """

    explanation: str
    code: str


@dataclass(frozen=True, slots=True)
class ExerciseDescriptor:
    """Read-only description of one exercise.

    Example:
        ```python
        descriptor = Catalog.default().get("1")
        ```
    """

    id: str
    title: str
    slug: str
    difficulty: str
    category: str
    description: str
    examples: tuple[Example, ...] = ()
    constraints: tuple[str, ...] = ()
    hints: tuple[str, ...] = ()
    solution: Solution | None = None
    starter_code: str | None = None

    @classmethod
    def from_table(cls, raw: dict[str, Any]) -> "ExerciseDescriptor":
        """Build a descriptor from one `[[exercises]]` TOML table.

        Example:
            ```python
            descriptor = ExerciseDescriptor.from_table({
                "id": "1", "title": "Hello World", "slug": "hello-world",
                "difficulty": "Easy", "category": "Introduction",
                "description": "Return 'Hello, World!'",
            })
            ```
        """
        exercise_id = raw.get("id")
        if not isinstance(exercise_id, str) or not exercise_id:
            raise ConfigError("Every exercise needs a non-empty string 'id'")
        where = f"exercise {exercise_id}"

        examples: list[Example] = []
        for item in raw.get("examples", []):
            if not isinstance(item, dict):
                raise ConfigError(f"{where}: 'examples' must be a list of tables")
            examples.append(
                Example(
                    input=_text(item, "input", where),
                    output=_text(item, "output", where),
                    explanation=_text(item, "explanation", where, ""),
                )
            )

        solution = None
        solution_raw = raw.get("solution")
        if solution_raw is not None:
            if not isinstance(solution_raw, dict):
                raise ConfigError(f"{where}: 'solution' must be a table")
            solution = Solution(
                explanation=_text(solution_raw, "explanation", where, ""),
                code=_text(solution_raw, "code", where),
            )

        starter = raw.get("starter_code")
        if starter is not None and not isinstance(starter, str):
            raise ConfigError(f"{where}: 'starter_code' must be a string")

        return cls(
            id=exercise_id,
            title=_text(raw, "title", where),
            slug=_text(raw, "slug", where),
            difficulty=_text(raw, "difficulty", where),
            category=_text(raw, "category", where),
            description=_text(raw, "description", where),
            examples=tuple(examples),
            constraints=_texts(raw, "constraints", where),
            hints=_texts(raw, "hints", where),
            solution=solution,
            starter_code=starter,
        )


def default_template(descriptor: ExerciseDescriptor) -> str:
    """Return the editor text a fresh or reset session starts from.

    Example:
        ```python
        text = default_template(Catalog.default().get("2"))
        ```
    """
    first_line = descriptor.description.split("\n")[0]
    header = f"# {descriptor.title}\n# {first_line}\n\n"
    return header + (descriptor.starter_code or DEFAULT_STARTER)


@dataclass(slots=True)
class Catalog:
    """Exercises keyed by id, in catalog file order.

    Example:
        ```python
        catalog = Catalog.default()
        ids = [d.id for d in catalog]
        ```
    """

    exercises: dict[str, ExerciseDescriptor] = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str | Path) -> "Catalog":
        """Load a catalog from a TOML file of `[[exercises]]` tables.

        Example:
            ```python
            catalog = Catalog.from_file("/tmp/catalog.toml")
            ```
        """
        catalog_path = Path(path)
        if not catalog_path.exists():
            raise ConfigError(f"Catalog file not found: {catalog_path}")
        try:
            raw = tomllib.loads(catalog_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Catalog file {catalog_path} is not valid TOML: {exc}") from exc
        tables = raw.get("exercises", [])
        if not isinstance(tables, list):
            raise ConfigError("'exercises' must be an array of tables")

        exercises: dict[str, ExerciseDescriptor] = {}
        for table in tables:
            if not isinstance(table, dict):
                raise ConfigError("'exercises' must be an array of tables")
            descriptor = ExerciseDescriptor.from_table(table)
            if descriptor.id in exercises:
                raise ConfigError(f"Duplicate exercise id '{descriptor.id}'")
            exercises[descriptor.id] = descriptor
        return cls(exercises)

    @classmethod
    def default(cls) -> "Catalog":
        """Load the catalog bundled with the package.

        Example:
            ```python
            catalog = Catalog.default()
            ```
        """
        return cls.from_file(_default_catalog_path())

    def get(self, exercise_id: str) -> ExerciseDescriptor:
        """Return one descriptor or raise `UnknownExerciseError`.

        Example:
            ```python
            descriptor = catalog.get("3")
            ```
        """
        try:
            return self.exercises[exercise_id]
        except KeyError:
            raise UnknownExerciseError(exercise_id) from None

    def __contains__(self, exercise_id: object) -> bool:
        """Return whether an id is in the catalog.

        Example:
            ```python
            "1" in catalog
            ```
        """
        return exercise_id in self.exercises

    def __iter__(self) -> Iterator[ExerciseDescriptor]:
        """Iterate descriptors in catalog order.

        Example:
            ```python
            titles = [d.title for d in catalog]
            ```
        """
        return iter(self.exercises.values())

    def __len__(self) -> int:
        """Return the number of exercises.

        Example:
            ```python
            len(catalog)
            ```
        """
        return len(self.exercises)

    def by_category(self) -> dict[str, list[ExerciseDescriptor]]:
        """Group exercises by category, easiest first within each group.

        Categories keep the order in which they first appear.

        Example:
            ```python
            groups = catalog.by_category()
            ```
        """
        groups: dict[str, list[ExerciseDescriptor]] = {}
        for descriptor in self:
            groups.setdefault(descriptor.category, []).append(descriptor)
        for members in groups.values():
            members.sort(key=lambda d: DIFFICULTY_ORDER.get(d.difficulty, 4))
        return groups

    def template(self, exercise_id: str) -> str:
        """Return the default template for an exercise id.

        Example:
            ```python
            text = catalog.template("1")
            ```
        """
        return default_template(self.get(exercise_id))

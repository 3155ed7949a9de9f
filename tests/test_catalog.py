from pathlib import Path

import pytest

from safe_py_grader.catalog import DEFAULT_STARTER, Catalog, default_template
from safe_py_grader.errors import ConfigError, UnknownExerciseError


def test_default_catalog_loads_in_file_order() -> None:
    catalog = Catalog.default()
    ids = [d.id for d in catalog]
    assert ids[:3] == ["1", "2", "3"]
    assert "27" in catalog
    assert len(catalog) == len(ids)


def test_descriptor_fields() -> None:
    descriptor = Catalog.default().get("2")
    assert descriptor.title == "Reverse a String"
    assert descriptor.slug == "reverse-a-string"
    assert descriptor.difficulty == "Easy"
    assert descriptor.examples[0].input == 'reverse_string("hello")'
    assert descriptor.solution is not None
    assert "s[::-1]" in descriptor.solution.code


def test_unknown_exercise() -> None:
    with pytest.raises(UnknownExerciseError, match="999"):
        Catalog.default().get("999")


def test_template_uses_starter_code_when_present() -> None:
    template = Catalog.default().template("1")
    assert template.startswith("# Hello World\n# Welcome to coding challenges!")
    assert "def hello_world():\n    # Your code here\n    pass\n" in template


def test_template_falls_back_to_solution_stub() -> None:
    descriptor = Catalog.default().get("25")
    template = default_template(descriptor)
    assert template == "# Insertion Sort\n# Implement the insertion sort algorithm in Python.\n\n" + DEFAULT_STARTER


def test_by_category_sorts_easiest_first() -> None:
    groups = Catalog.default().by_category()
    assert list(groups)[0] == "Introduction"
    sorting = [d.difficulty for d in groups["Sorting"]]
    assert sorting == ["Easy", "Medium", "Hard"]


def test_duplicate_ids_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "catalog.toml"
    entry = (
        "[[exercises]]\n"
        "id = \"1\"\n"
        "title = \"A\"\n"
        "slug = \"a\"\n"
        "difficulty = \"Easy\"\n"
        "category = \"X\"\n"
        "description = \"d\"\n"
    )
    path.write_text(entry + entry, encoding="utf-8")
    with pytest.raises(ConfigError, match="Duplicate exercise id"):
        Catalog.from_file(path)


def test_missing_field_is_reported(tmp_path: Path) -> None:
    path = tmp_path / "catalog.toml"
    path.write_text("[[exercises]]\nid = \"9\"\ntitle = \"T\"\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="exercise 9: 'slug'"):
        Catalog.from_file(path)


def test_missing_catalog_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        Catalog.from_file(tmp_path / "nope.toml")

from __future__ import annotations

import argparse
import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Never, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich_argparse import RawTextRichHelpFormatter
from safe_py_grader import Catalog, EngineConfig, GraderError, GradingEngine

_CONSOLE = Console(no_color=False)
_LOG_CONSOLE = Console(stderr=True)


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="spg")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {escape(message)}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for browsing, running and grading exercises.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="spg",
        description=(
            "safe-py-grader CLI\n"
            "Browse the exercise catalog, run code in the sandboxed host,\n"
            "and grade solutions against each exercise's checks."
        ),
        epilog=(
            "Quick Examples:\n"
            "  spg list\n"
            "  spg show 2\n"
            "  spg template 2 > reverse.py\n"
            "  spg run 2 reverse.py\n"
            "  spg submit 2 reverse.py --review\n\n"
            "Config Examples:\n"
            "  spg --config grader.toml --user ada submit 1 hello.py\n"
            "  spg --log-level DEBUG run 1 hello.py"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--config",
        help=(
            "TOML file with [policy] and [engine] tables.\n"
            "Defaults to the bundled policy and catalog."
        ),
    )
    parser.add_argument(
        "--user",
        help="Sign in as this user before running (snapshots and progress are kept per user).",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Override the engine log level (default: from config, else WARNING).",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    sub.add_parser(
        "list",
        help="List exercises grouped by category.",
        description=(
            "Show every exercise in the catalog.\n"
            "Includes id, title, difficulty, category, and whether dedicated checks exist."
        ),
        formatter_class=_HELP_FORMATTER,
    )

    show_cmd = sub.add_parser(
        "show",
        help="Show one exercise description.",
        description="Show description, examples, constraints, and hints for one exercise.",
        epilog="Example:\n  spg show 12",
        formatter_class=_HELP_FORMATTER,
    )
    show_cmd.add_argument("exercise_id")

    template_cmd = sub.add_parser(
        "template",
        help="Print the starter template for an exercise.",
        description="Print the default editor template as plain text.",
        epilog="Example:\n  spg template 2 > reverse.py",
        formatter_class=_HELP_FORMATTER,
    )
    template_cmd.add_argument("exercise_id")

    run_cmd = sub.add_parser(
        "run",
        help="Run a file and show what it prints.",
        description=(
            "Run learner code as-is in the sandboxed host.\n"
            "Nothing is graded."
        ),
        epilog="Example:\n  spg run 2 reverse.py",
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("exercise_id")
    run_cmd.add_argument("path", type=Path)

    submit_cmd = sub.add_parser(
        "submit",
        help="Grade a file against the exercise's checks.",
        description=(
            "Grade learner code in a fresh namespace.\n"
            "Exit code is 0 when every check passes and 1 otherwise."
        ),
        epilog=(
            "Examples:\n"
            "  spg submit 2 reverse.py\n"
            "  spg submit 2 reverse.py --review"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    submit_cmd.add_argument("exercise_id")
    submit_cmd.add_argument("path", type=Path)
    submit_cmd.add_argument(
        "--review",
        action="store_true",
        help="Ask the tutor for feedback after grading.",
    )

    return parser


def load_config(args: argparse.Namespace) -> EngineConfig:
    """Build engine settings from global CLI flags.

    Example:
        ```python
        config = load_config(args)
        ```
    """
    config = EngineConfig.from_file(args.config) if args.config else EngineConfig()
    if args.log_level:
        config.log_level = args.log_level
    return config


def configure_logging(config: EngineConfig) -> None:
    """Send library logs to stderr through Rich.

    Example:
        ```python
        configure_logging(EngineConfig(log_level="INFO"))
        ```
    """
    logging.basicConfig(
        level=config.log_level_value,
        format="%(name)s | %(message)s",
        handlers=[RichHandler(console=_LOG_CONSOLE, show_path=False)],
        force=True,
    )


def build_engine(config: EngineConfig) -> GradingEngine:
    """Create a GradingEngine from CLI settings.

    Example:
        ```python
        engine = build_engine(EngineConfig())
        ```
    """
    return GradingEngine(config)


def _print_catalog(engine: GradingEngine) -> None:
    """Render the catalog in a rich table.

    Example:
        ```python
        _print_catalog(GradingEngine())
        ```
    """
    table = Table(title="Exercises")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="magenta")
    table.add_column("Difficulty")
    table.add_column("Category")
    table.add_column("Graded")
    for category, members in engine.catalog.by_category().items():
        for descriptor in members:
            graded = "yes" if engine.synthesizer.has_spec(descriptor.id) else "basic"
            table.add_row(descriptor.id, descriptor.title, descriptor.difficulty, category, graded)
    _CONSOLE.print(table)


def _print_descriptor(catalog: Catalog, exercise_id: str) -> None:
    """Render one exercise in a panel.

    Example:
        ```python
        _print_descriptor(Catalog.default(), "1")
        ```
    """
    descriptor = catalog.get(exercise_id)
    parts = [
        f"[bold]{escape(descriptor.title)}[/bold]  ({descriptor.difficulty}, {escape(descriptor.category)})",
        "",
        escape(descriptor.description),
    ]
    if descriptor.examples:
        parts.extend(["", "[bold magenta]Examples[/bold magenta]"])
        for example in descriptor.examples:
            parts.append(f"  {escape(example.input)} -> {escape(example.output)}")
            if example.explanation:
                parts.append(f"    {escape(example.explanation)}")
    if descriptor.constraints:
        parts.extend(["", "[bold magenta]Constraints[/bold magenta]"])
        parts.extend(f"  - {escape(item)}" for item in descriptor.constraints)
    if descriptor.hints:
        parts.extend(["", "[bold magenta]Hints[/bold magenta]"])
        parts.extend(f"  - {escape(item)}" for item in descriptor.hints)
    _CONSOLE.print(Panel("\n".join(parts), title=f"Exercise {descriptor.id}", border_style="cyan"))


async def _run_file(engine: GradingEngine, args: argparse.Namespace, source: str) -> int:
    """Start the engine, execute one command against it and close it.

    Example:
        ```python
        code = await _run_file(engine, args, "print('hi')")
        ```
    """
    async with engine:
        if not await engine.wait_until_ready():
            raise GraderError(engine.correlator.failure or "Execution host failed to start")
        if args.user:
            await engine.sign_in(args.user)
        engine.open_exercise(args.exercise_id)
        engine.edit(source)

        if args.command == "run":
            output = await engine.run(args.exercise_id, source)
            _CONSOLE.print(Panel(escape(output), title="Output", border_style="cyan"))
            return 0

        verdict = await engine.submit(args.exercise_id, source)
        style = "green" if verdict.passed else "red"
        title = "Passed" if verdict.passed else "Failed"
        _CONSOLE.print(Panel.fit(f"[bold {style}]{escape(verdict.message)}[/bold {style}]", title=title, border_style=style))
        if args.review:
            feedback = await engine.review(args.exercise_id, source, verdict)
            _CONSOLE.print(Panel(escape(feedback), title="Tutor", border_style="magenta"))
        return 0 if verdict.passed else 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `spg` CLI command handler.

    Example:
        ```python
        code = main(["list"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        config = load_config(args)
        configure_logging(config)
        engine = build_engine(config)

        if args.command == "list":
            _print_catalog(engine)
            return 0
        if args.command == "show":
            _print_descriptor(engine.catalog, args.exercise_id)
            return 0
        if args.command == "template":
            _CONSOLE.out(engine.reset(args.exercise_id), highlight=False, end="")
            return 0
        if args.command in {"run", "submit"}:
            source = args.path.read_text(encoding="utf-8")
            return asyncio.run(_run_file(engine, args, source))
    except (GraderError, ValueError, OSError) as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {escape(str(exc))}", border_style="red"))
        return 1

    parser.error("Unhandled command")

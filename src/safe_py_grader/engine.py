from __future__ import annotations

import logging
from types import TracebackType
from typing import Mapping

from .catalog import Catalog, ExerciseDescriptor
from .collaborators import (
    HintTutor,
    JsonSnapshotStore,
    MemoryProgressTracker,
    MemorySnapshotStore,
    ProgressTracker,
    SnapshotStore,
    Tutor,
)
from .config import EngineConfig
from .correlator import FAILURE, NOT_READY, OUTPUT, DispatchCorrelator, RunOutcome
from .errors import HostFailureError
from .exercise_checks import VERIFICATION_SPECS
from .execution.host import ExecutionHost
from .execution.local_host import LocalHost
from .harness import HarnessSynthesizer
from .session import SessionLifecycleController, SessionState
from .verdict import Verdict, classify
from .verification import VerificationSpec

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Python environment is still loading. Please wait..."
NO_OUTPUT_MESSAGE = "Code executed successfully with no output."


def _failure_text(outcome: RunOutcome) -> str:
    """Render a per-request execution failure with any output printed before it.

    Example:
        ```python
        _failure_text(RunOutcome(kind="failure", text="ZeroDivisionError: division by zero"))
        ```
    """
    return f"{outcome.output}Error: {outcome.text}"


class GradingEngine:
    """Run and grade learner code against the exercise catalog.

    Example:
        ```python
        async with GradingEngine() as engine:
            await engine.wait_until_ready()
            verdict = await engine.submit("1", "def hello_world():\\n    return 'Hello, World!'\\n")
        ```
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        host: ExecutionHost | None = None,
        catalog: Catalog | None = None,
        specs: Mapping[str, VerificationSpec] | None = None,
        store: SnapshotStore | None = None,
        tracker: ProgressTracker | None = None,
        tutor: Tutor | None = None,
    ) -> None:
        """Wire the engine from config, with any collaborator overridable.

        Example:
            ```python
            engine = GradingEngine(EngineConfig.from_file("grader.toml"))
            ```
        """
        self.config = config or EngineConfig()
        if catalog is None:
            if self.config.catalog_path is not None:
                catalog = Catalog.from_file(self.config.catalog_path)
            else:
                catalog = Catalog.default()
        if store is None:
            if self.config.snapshot_dir is not None:
                store = JsonSnapshotStore(self.config.snapshot_dir)
            else:
                store = MemorySnapshotStore()

        self.catalog = catalog
        self.store = store
        self.tracker = tracker or MemoryProgressTracker()
        self.tutor = tutor or HintTutor()
        self.correlator = DispatchCorrelator(host or LocalHost(self.config.policy))
        self.synthesizer = HarnessSynthesizer(VERIFICATION_SPECS if specs is None else specs)
        self.session = SessionLifecycleController(self.catalog, self.correlator, self.store)

    @property
    def state(self) -> SessionState:
        """Return the live session state.

        Example:
            ```python
            verdict = engine.state.verdict
            ```
        """
        return self.session.state

    async def start(self) -> None:
        """Start the execution host.

        Example:
            ```python
            await engine.start()
            ```
        """
        await self.correlator.start()

    async def wait_until_ready(self) -> bool:
        """Wait until the host is ready or has failed.

        Example:
            ```python
            ready = await engine.wait_until_ready()
            ```
        """
        return await self.correlator.wait_until_ready()

    async def close(self) -> None:
        """Cancel outstanding requests and stop the host.

        Example:
            ```python
            await engine.close()
            ```
        """
        await self.correlator.close()

    async def __aenter__(self) -> "GradingEngine":
        """Start the engine for an `async with` block.

        Example:
            ```python
            async with GradingEngine() as engine:
                ...
            ```
        """
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the engine when the `async with` block exits.

        Example:
            ```python
            async with GradingEngine() as engine:
                ...
            ```
        """
        await self.close()

    async def _dispatch(self, program: str, reset: bool) -> RunOutcome:
        """Send a program and raise when the host as a whole is unusable.

        Example:
            ```python
            outcome = await engine._dispatch("print(1)", reset=False)
            ```
        """
        outcome = await self.correlator.send(program, reset=reset)
        self.session.note_dispatched(outcome, reset)
        if outcome.kind in {OUTPUT, FAILURE, NOT_READY}:
            return outcome
        raise HostFailureError(outcome.text or self.correlator.failure or "Execution host is unavailable")

    async def run(self, exercise_id: str, source: str) -> str:
        """Execute learner source as-is and return what it printed.

        Example:
            ```python
            text = await engine.run("2", "print('hello'[::-1])")
            ```
        """
        self.session.change_exercise(exercise_id)
        reset = self.session.reset_needed()
        outcome = await self._dispatch(self.synthesizer.for_run(source), reset)
        if outcome.kind == NOT_READY:
            return NOT_READY_MESSAGE
        if outcome.kind == FAILURE:
            return _failure_text(outcome)
        return outcome.text or NO_OUTPUT_MESSAGE

    async def submit(self, exercise_id: str, source: str) -> Verdict:
        """Grade learner source against the exercise's checks.

        A passing verdict is reported to the progress tracker.

        Example:
            ```python
            verdict = await engine.submit("2", "def reverse_string(s):\\n    return s[::-1]\\n")
            ```
        """
        self.session.change_exercise(exercise_id)
        reset = self.session.reset_needed(submit=True)
        outcome = await self._dispatch(self.synthesizer.for_submit(exercise_id, source), reset)
        if outcome.kind == NOT_READY:
            return Verdict(False, NOT_READY_MESSAGE)
        if outcome.kind == FAILURE:
            verdict = classify(_failure_text(outcome))
        else:
            verdict = classify(outcome.text)

        self.session.record_verdict(verdict)
        logger.info("Exercise %s graded: %s", exercise_id, "passed" if verdict.passed else "failed")
        if verdict.passed:
            self.tracker.mark_completed(self.session.identity.user_id, exercise_id)
        return verdict

    def reset(self, exercise_id: str) -> str:
        """Put the editor back to the exercise's default template and return it.

        Example:
            ```python
            template = engine.reset("1")
            ```
        """
        self.session.change_exercise(exercise_id)
        return self.session.reset_code()

    async def sign_in(self, user_id: str) -> None:
        """Switch the session to a signed-in user.

        Example:
            ```python
            await engine.sign_in("ada")
            ```
        """
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        await self.session.change_identity(user_id)

    async def sign_out(self) -> None:
        """Switch the session to anonymous.

        Example:
            ```python
            await engine.sign_out()
            ```
        """
        await self.session.change_identity(None)

    def open_exercise(self, exercise_id: str) -> str:
        """Open an exercise and return the code the editor should show.

        Example:
            ```python
            code = engine.open_exercise("3")
            ```
        """
        self.session.change_exercise(exercise_id)
        return self.session.load_code()

    def edit(self, code: str) -> None:
        """Record an editor change for the open exercise.

        Example:
            ```python
            engine.edit("def sum_list(numbers):\\n    return sum(numbers)\\n")
            ```
        """
        self.session.update_code(code)

    def descriptor(self, exercise_id: str) -> ExerciseDescriptor:
        """Return the catalog entry for an exercise.

        Example:
            ```python
            title = engine.descriptor("1").title
            ```
        """
        return self.catalog.get(exercise_id)

    async def review(self, exercise_id: str, source: str, verdict: Verdict) -> str:
        """Ask the tutor for feedback on a graded submission.

        Example:
            ```python
            feedback = await engine.review("2", source, verdict)
            ```
        """
        return await self.tutor.review(self.catalog.get(exercise_id), source, verdict)

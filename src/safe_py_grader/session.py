from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .catalog import Catalog
from .collaborators import SnapshotStore
from .correlator import DispatchCorrelator, RunOutcome
from .verdict import Verdict

logger = logging.getLogger(__name__)

RESET_PROGRAM = "# Reset environment"


@dataclass(frozen=True, slots=True)
class SessionIdentity:
    """Who is working on which exercise. `user_id=None` is anonymous.

    Example:
        ```python
        identity = SessionIdentity(user_id="ada", exercise_id="2")
        ```
    """

    user_id: str | None = None
    exercise_id: str | None = None

    @property
    def signed_in(self) -> bool:
        """Return whether a user is signed in.

        Example:
            ```python
            SessionIdentity("ada").signed_in
            ```
        """
        return self.user_id is not None


@dataclass(slots=True)
class SessionState:
    """Mutable editor state owned by the lifecycle controller.

    `reset_pending` starts set so the first request after start-up runs in a
    fresh namespace.

    Example:
        ```python
        state = SessionState(SessionIdentity())
        ```
    """

    identity: SessionIdentity
    code: str = ""
    verdict: Verdict | None = None
    first_load: bool = True
    reset_pending: bool = True


class SessionLifecycleController:
    """Decide when the host's persistent namespace must be wiped.

    Identity changes reset proactively; exercise changes defer the reset to
    the next request; submits always reset.

    Example:
        ```python
        controller = SessionLifecycleController(Catalog.default(), correlator, MemorySnapshotStore())
        ```
    """

    def __init__(
        self,
        catalog: Catalog,
        correlator: DispatchCorrelator,
        store: SnapshotStore | None = None,
    ) -> None:
        """Create a controller for an anonymous session with no exercise open.

        Example:
            ```python
            controller = SessionLifecycleController(catalog, correlator)
            ```
        """
        self._catalog = catalog
        self._correlator = correlator
        self._store = store
        self._state = SessionState(SessionIdentity())

    @property
    def state(self) -> SessionState:
        """Return the live session state.

        Example:
            ```python
            code = controller.state.code
            ```
        """
        return self._state

    @property
    def identity(self) -> SessionIdentity:
        """Return the current identity.

        Example:
            ```python
            user = controller.identity.user_id
            ```
        """
        return self._state.identity

    def _template(self) -> str:
        """Return the default template for the current exercise, if any.

        Example:
            ```python
            text = controller._template()
            ```
        """
        exercise_id = self._state.identity.exercise_id
        if exercise_id is None:
            return ""
        return self._catalog.template(exercise_id)

    async def change_identity(self, user_id: str | None) -> bool:
        """Switch to another user (or anonymous) and wipe the host namespace.

        Returns `False` when the identity is unchanged.

        Example:
            ```python
            await controller.change_identity("ada")
            ```
        """
        if user_id == self._state.identity.user_id:
            return False
        logger.info(
            "Identity changed from %s to %s",
            self._state.identity.user_id or "anonymous",
            user_id or "anonymous",
        )
        self._state.identity = replace(self._state.identity, user_id=user_id)
        self._state.code = self._template()
        self._state.verdict = None
        self._state.first_load = True
        self._state.reset_pending = True

        outcome = await self._correlator.send(RESET_PROGRAM, reset=True)
        self.note_dispatched(outcome, reset=True)
        if not outcome.delivered:
            logger.warning("Reset after identity change not applied (%s); next request will reset", outcome.kind)
        self.load_code()
        return True

    def change_exercise(self, exercise_id: str) -> bool:
        """Open another exercise; the next request carries `reset=True`.

        Returns `False` when the exercise is unchanged.

        Example:
            ```python
            controller.change_exercise("3")
            ```
        """
        if exercise_id == self._state.identity.exercise_id:
            return False
        self._catalog.get(exercise_id)
        logger.info("Exercise changed to %s", exercise_id)
        self._state.identity = replace(self._state.identity, exercise_id=exercise_id)
        self._state.code = self._template()
        self._state.verdict = None
        self._state.first_load = True
        self._state.reset_pending = True
        return True

    def reset_needed(self, submit: bool = False) -> bool:
        """Return whether the next request must carry `reset=True`.

        Example:
            ```python
            reset = controller.reset_needed(submit=True)  # always True
            ```
        """
        return submit or self._state.reset_pending

    def note_dispatched(self, outcome: RunOutcome, reset: bool) -> None:
        """Clear the pending reset once a resetting request reached the host.

        Example:
            ```python
            controller.note_dispatched(outcome, reset=True)
            ```
        """
        if reset and outcome.delivered:
            self._state.reset_pending = False

    def load_code(self) -> str:
        """Return the editor code, loading a saved snapshot once per first load.

        Anonymous sessions always start from the template.

        Example:
            ```python
            code = controller.load_code()
            ```
        """
        if self._state.first_load:
            identity = self._state.identity
            saved = None
            if identity.signed_in and identity.exercise_id is not None and self._store is not None:
                saved = self._store.load(identity.user_id, identity.exercise_id)
            self._state.code = saved if saved else self._template()
            self._state.first_load = False
        return self._state.code

    def update_code(self, code: str) -> None:
        """Record an edit, clear the verdict and persist for signed-in users.

        Example:
            ```python
            controller.update_code("def hello_world():\\n    return 'Hello, World!'\\n")
            ```
        """
        self._state.code = code
        self._state.verdict = None
        identity = self._state.identity
        if (
            not self._state.first_load
            and identity.signed_in
            and identity.exercise_id is not None
            and self._store is not None
        ):
            self._store.save(identity.user_id, identity.exercise_id, code)

    def reset_code(self) -> str:
        """Put the editor back to the exercise template.

        Example:
            ```python
            template = controller.reset_code()
            ```
        """
        template = self._template()
        self._state.first_load = False
        self.update_code(template)
        return template

    def record_verdict(self, verdict: Verdict) -> None:
        """Store the latest verdict for the open exercise.

        Example:
            ```python
            controller.record_verdict(Verdict(True, "PASS: ok"))
            ```
        """
        self._state.verdict = verdict

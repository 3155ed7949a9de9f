from __future__ import annotations


class GraderError(Exception):
    """Base class for engine-level failures.

    Learner code failing is never a `GraderError`; it is reported as output
    or as a failed verdict.

    Example:
        ```python
        raise GraderError("engine misconfigured")
        ```
    """


class HostFailureError(GraderError):
    """The execution host failed as a whole and cannot serve requests.

    Example:
        ```python
        raise HostFailureError("Execution host exited with code 1")
        ```
    """


class UnknownExerciseError(GraderError, KeyError):
    """An exercise id is not present in the catalog.

    Example:
        ```python
        raise UnknownExerciseError("999")
        ```
    """

    def __str__(self) -> str:
        """Render the missing exercise id.

        Example:
            ```python
            str(UnknownExerciseError("999"))
            ```
        """
        return f"Unknown exercise '{self.args[0]}'" if self.args else "Unknown exercise"


class ConfigError(GraderError, ValueError):
    """Invalid engine or catalog configuration.

    Example:
        ```python
        raise ConfigError("'log_level' must be a string")
        ```
    """

from .catalog import Catalog, ExerciseDescriptor, default_template
from .config import EngineConfig
from .engine import GradingEngine
from .errors import ConfigError, GraderError, HostFailureError, UnknownExerciseError
from .exercise_checks import VERIFICATION_SPECS
from .policy import HostPolicy
from .verdict import Verdict, classify

__all__ = [
    "Catalog",
    "ConfigError",
    "EngineConfig",
    "ExerciseDescriptor",
    "GraderError",
    "GradingEngine",
    "HostFailureError",
    "HostPolicy",
    "UnknownExerciseError",
    "VERIFICATION_SPECS",
    "Verdict",
    "classify",
    "default_template",
]

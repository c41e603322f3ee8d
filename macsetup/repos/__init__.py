from .destinations import DestinationResolver, DestinationRules, RepoDestinationRule, Resolution, RuleKind
from .diagnostics import CloneDiagnostic, diagnose
from .scheduler import CloneBatchResult, CloneScheduler, CloneStatus, CloneTask

__all__ = [
    "CloneBatchResult",
    "CloneDiagnostic",
    "CloneScheduler",
    "CloneStatus",
    "CloneTask",
    "DestinationResolver",
    "DestinationRules",
    "RepoDestinationRule",
    "Resolution",
    "RuleKind",
    "diagnose",
]

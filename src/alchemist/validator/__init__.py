from alchemist.validator.basic import FieldValidator
from alchemist.validator.consistency import ConsistencyValidator
from alchemist.validator.graph import DependencyGraph
from alchemist.validator.orchestrator import ValidationOrchestrator, validate_snapshot
from alchemist.validator.rules import RuleValidator

__all__ = [
    "ConsistencyValidator",
    "DependencyGraph",
    "FieldValidator",
    "RuleValidator",
    "ValidationOrchestrator",
    "validate_snapshot",
]

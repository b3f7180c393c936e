from alchemist.schemas.models import (
    AlchemistConfig,
    Client,
    Task,
    ValidationConfig,
    ValidationFinding,
    Worker,
)
from alchemist.schemas.rules import BusinessRule, PrioritizationWeights

__all__ = [
    "AlchemistConfig",
    "BusinessRule",
    "Client",
    "PrioritizationWeights",
    "Task",
    "ValidationConfig",
    "ValidationFinding",
    "Worker",
]

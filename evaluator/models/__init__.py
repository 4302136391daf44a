from evaluator.models.container import (
    Container,
    ContainerState,
)
from evaluator.models.evaluation import (
    Evaluation,
    Package,
    ResourceLimits,
)
from evaluator.models.results import Result

__all__ = [
    "Container",
    "ContainerState",
    "Evaluation",
    "Package",
    "ResourceLimits",
    "Result",
]

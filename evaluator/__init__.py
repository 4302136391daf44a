from evaluator.codecs import (
    ArchiveTranscoder,
    StreamDemultiplexer,
)

from evaluator.exceptions import (
    ContainerCreationError,
    EvaluatorError,
    ExecutionError,
    ExtractionError,
    InjectionError,
    LogStreamError,
    PackageFormatError,
    PackageValidationError,
    TranscodeError,
)

from evaluator.managers import ContainerOrchestrator

from evaluator.models import (
    Container,
    ContainerState,
    Evaluation,
    ResourceLimits,
    Result,
)

from evaluator.security import PackageValidator

from evaluator.services import EvaluationService

__all__ = [
    # Codecs
    "ArchiveTranscoder",
    "StreamDemultiplexer",
    # Errors
    "ContainerCreationError",
    "EvaluatorError",
    "ExecutionError",
    "ExtractionError",
    "InjectionError",
    "LogStreamError",
    "PackageFormatError",
    "PackageValidationError",
    "TranscodeError",
    # Models
    "Container",
    "ContainerState",
    "Evaluation",
    "ResourceLimits",
    "Result",
    # Managers & Services
    "ContainerOrchestrator",
    "EvaluationService",
    "PackageValidator",
]

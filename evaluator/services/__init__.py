from evaluator.services.evaluation_service import (
    EvaluationService,
    resolve_image_identifier,
)

__all__ = [
    "EvaluationService",
    "resolve_image_identifier",
]

from evaluator.managers.container_orchestrator import ContainerOrchestrator

__all__ = [
    "ContainerOrchestrator",
]

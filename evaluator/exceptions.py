class EvaluatorError(Exception):
    """Base class for failures while evaluating a package."""


class PackageFormatError(EvaluatorError):
    """The submitted package is not a readable zip archive."""


class PackageValidationError(PackageFormatError):
    """The submitted package is a zip archive but is unsafe to inject."""

    def __init__(self, message: str, violations: list = None):
        super().__init__(message)
        self.violations = violations or []


class TranscodeError(EvaluatorError):
    pass


class ContainerCreationError(EvaluatorError):
    pass


class InjectionError(EvaluatorError):
    pass


class ExecutionError(EvaluatorError):
    pass


class LogStreamError(EvaluatorError):
    pass


class ExtractionError(EvaluatorError):
    pass

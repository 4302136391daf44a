"""
Package evaluation service.

Runs a submitted package to completion in a fresh container:
1. Create the container for the evaluation's language and limits
2. Transcode the zip package to tar and inject it under the home directory
3. Start the container and wait for it to exit
4. Collect stdout/stderr and the test report, if one was written
The container is destroyed on every path once it has been created.
"""
import time
from typing import Any, Callable, Optional

from loguru import logger

from config import Settings, config
from evaluator.codecs.archive_transcoder import ArchiveTranscoder, ensure_seekable
from evaluator.exceptions import PackageValidationError
from evaluator.managers.container_orchestrator import ContainerOrchestrator
from evaluator.models.container import Container
from evaluator.models.evaluation import Evaluation
from evaluator.models.results import Result
from evaluator.security.package_validator import PackageValidator

ImageResolver = Callable[[Any], str]


def resolve_image_identifier(language: Any) -> str:
    """Languages expose their image through `docker_image`; plain values are used as-is."""
    image = getattr(language, "docker_image", None)
    return str(image) if image else str(language)


class EvaluationService:
    def __init__(
        self,
        orchestrator: Optional[ContainerOrchestrator] = None,
        transcoder: Optional[ArchiveTranscoder] = None,
        validator: Optional[PackageValidator] = None,
        image_resolver: Optional[ImageResolver] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or config
        self.orchestrator = orchestrator or ContainerOrchestrator(settings=self.settings)
        self.transcoder = transcoder or ArchiveTranscoder(prefix=self.settings.evaluator_package_dir)
        self.validator = validator or PackageValidator(settings=self.settings)
        self.image_resolver = image_resolver or resolve_image_identifier

    def execute(self, evaluation: Evaluation) -> Result:
        image_identifier = self.image_resolver(evaluation.language)
        start_time = time.time()

        with self.orchestrator.provision(image_identifier, evaluation.limits) as container:
            self._copy_package(container, evaluation)
            exit_code = self.orchestrator.run(container)

            stdout, stderr = self.orchestrator.collect_logs(container)
            test_report = self.orchestrator.extract_file(container, self.settings.report_path)

        result = Result(
            stdout=stdout,
            stderr=stderr,
            test_report=test_report,
            exit_code=exit_code,
        )

        logger.info(
            "evaluation_completed",
            evaluation_id=evaluation.id,
            image=container.image,
            exit_code=exit_code,
            has_test_report=test_report is not None,
            elapsed_seconds=time.time() - start_time,
        )
        return result

    def _copy_package(self, container: Container, evaluation: Evaluation) -> None:
        package = ensure_seekable(evaluation.package)

        if self.settings.evaluator_validate_packages:
            violations = self.validator.validate(package)
            if violations:
                logger.warning(
                    "package_rejected",
                    evaluation_id=evaluation.id,
                    violations=len(violations),
                    error=violations[0]["message"],
                )
                raise PackageValidationError(
                    f"package_validation_failed: {violations[0]['message']}",
                    violations=violations,
                )

        archive = self.transcoder.transcode(package)
        self.orchestrator.inject(container, archive)

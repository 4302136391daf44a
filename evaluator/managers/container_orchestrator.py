import io
import math
import posixpath
import tarfile
import time
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, Optional, Tuple

import docker
import requests
from docker.errors import DockerException, ImageNotFound, NotFound, create_api_error_from_http_exception
from loguru import logger

from config import Settings, config
from evaluator.codecs.stream_demultiplexer import StreamDemultiplexer
from evaluator.engine import get_docker_client
from evaluator.exceptions import (
    ContainerCreationError,
    ExecutionError,
    ExtractionError,
    InjectionError,
    LogStreamError,
)
from evaluator.models.container import Container, ContainerState
from evaluator.models.evaluation import ResourceLimits

# Memory limits arrive in megabytes, the image entrypoint expects kilobytes
MEMORY_LIMIT_RATIO = 1024

ENGINE_ERRORS = (DockerException, requests.exceptions.RequestException)


class ContainerOrchestrator:
    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        demultiplexer: Optional[StreamDemultiplexer] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or config
        self.client = client or get_docker_client(self.settings)
        self.demultiplexer = demultiplexer or StreamDemultiplexer()

    def image_reference(self, image_identifier: str) -> str:
        return f"{self.settings.evaluator_image_prefix}{image_identifier}"

    @staticmethod
    def container_arguments(limits: ResourceLimits) -> List[str]:
        """
        Translate resource limits into entrypoint flags.

        The flags are interpreted by the image's entrypoint; an absent limit
        leaves the entrypoint's own default in place.
        """
        # Fractional limits round up so a positive limit never becomes zero
        arguments = []
        if limits.time_limit is not None:
            arguments.append(f"-c{math.ceil(limits.time_limit)}")
        if limits.memory_limit is not None:
            arguments.append(f"-m{math.ceil(limits.memory_limit * MEMORY_LIMIT_RATIO)}")
        return arguments

    @contextmanager
    def provision(self, image_identifier: str, limits: ResourceLimits) -> Iterator[Container]:
        """
        Create a container and destroy it however the block exits.

        Creation failures propagate directly since there is nothing to
        destroy.
        """
        container = self.create_container(image_identifier, limits)
        try:
            yield container
        finally:
            self.destroy(container)

    def create_container(self, image_identifier: str, limits: ResourceLimits) -> Container:
        image = self.image_reference(image_identifier)
        argv = self.container_arguments(limits)

        start_time = time.time()
        try:
            if self.settings.evaluator_pull_missing_images:
                self._ensure_image(image)
            handle = self.client.containers.create(image, command=argv or None)
        except ENGINE_ERRORS as e:
            logger.error("container_create_failed", image=image, error=str(e))
            raise ContainerCreationError(f"container_create_failed: {image}: {e}") from e

        container = Container(id=handle.id, image=image, argv=argv, handle=handle)
        logger.info(
            "container_created",
            container_id=container.id,
            image=image,
            argv=argv,
            elapsed_seconds=time.time() - start_time,
        )
        return container

    def _ensure_image(self, image: str) -> None:
        try:
            self.client.images.get(image)
        except ImageNotFound:
            logger.info("image_pulling", image=image)
            self.client.images.pull(image)

    def inject(self, container: Container, archive: BinaryIO) -> None:
        chunk_size = self.settings.evaluator_chunk_size
        destination = self.settings.evaluator_home_path

        def chunks() -> Iterator[bytes]:
            while True:
                chunk = archive.read(chunk_size)
                if not chunk:
                    return
                yield chunk

        try:
            accepted = container.handle.put_archive(destination, chunks())
        except (*ENGINE_ERRORS, OSError) as e:
            raise InjectionError(f"inject_failed: {container.id}: {e}") from e

        if not accepted:
            raise InjectionError(f"inject_rejected: {container.id}: {destination}")
        logger.debug("package_injected", container_id=container.id, destination=destination)

    def run(self, container: Container) -> int:
        """Start the container and block until it exits, returning its exit code."""
        start_time = time.time()
        try:
            container.handle.start()
            container.state = ContainerState.STARTED
            status = container.handle.wait(timeout=self.settings.evaluator_wait_timeout_seconds)
        except ENGINE_ERRORS as e:
            raise ExecutionError(f"execution_failed: {container.id}: {e}") from e

        try:
            exit_code = int(status["StatusCode"])
        except (KeyError, TypeError, ValueError) as e:
            raise ExecutionError(f"exit_status_unavailable: {container.id}: {status!r}") from e

        container.exit_code = exit_code
        container.state = ContainerState.EXITED
        logger.info(
            "container_exited",
            container_id=container.id,
            exit_code=exit_code,
            execution_time_seconds=time.time() - start_time,
        )
        return exit_code

    def collect_logs(self, container: Container) -> Tuple[bytes, bytes]:
        try:
            raw = self._fetch_raw_logs(container)
        except ENGINE_ERRORS as e:
            raise LogStreamError(f"log_retrieval_failed: {container.id}: {e}") from e

        return self.demultiplexer.demultiplex(raw)

    def _fetch_raw_logs(self, container: Container) -> bytes:
        # The high-level logs() call joins both channels, so read the framed stream directly
        api = self.client.api
        url = f"{api.base_url}/v{api.api_version}/containers/{container.id}/logs"
        response = api.get(
            url,
            params={"stdout": 1, "stderr": 1, "follow": 0, "timestamps": 0, "tail": "all"},
            timeout=self.settings.docker_client_timeout,
        )
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise create_api_error_from_http_exception(e) from e
        return response.content

    def extract_file(self, container: Container, path: str) -> Optional[bytes]:
        """
        Read a single file out of the container filesystem.

        Returns:
            File contents, or None when the path does not exist
        """
        stream = io.BytesIO()
        try:
            chunks, _ = container.handle.get_archive(path, chunk_size=self.settings.evaluator_chunk_size)
            for chunk in chunks:
                stream.write(chunk)
        except NotFound:
            logger.debug("container_file_absent", container_id=container.id, path=path)
            return None
        except ENGINE_ERRORS as e:
            raise ExtractionError(f"extract_failed: {container.id}: {path}: {e}") from e

        # The engine names the entry after the last path component
        name = posixpath.basename(path.rstrip("/"))
        stream.seek(0)
        try:
            with tarfile.open(fileobj=stream, mode="r") as tar_file:
                for member in tar_file:
                    if member.isfile() and member.name == name:
                        return tar_file.extractfile(member).read()
        except tarfile.TarError as e:
            raise ExtractionError(f"extract_malformed: {container.id}: {path}: {e}") from e

        logger.warning("container_file_not_regular", container_id=container.id, path=path)
        return None

    def destroy(self, container: Container) -> bool:
        """
        Remove the container. Failures are logged and reported, never raised,
        so they cannot replace an error or result already in flight.
        """
        start_time = time.time()
        try:
            container.handle.remove(force=True)
        except ENGINE_ERRORS as e:
            logger.error("container_destroy_failed", container_id=container.id, error=str(e))
            return False

        container.state = ContainerState.DESTROYED
        logger.info(
            "container_destroyed",
            container_id=container.id,
            elapsed_seconds=time.time() - start_time,
        )
        return True

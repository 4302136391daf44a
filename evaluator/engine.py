from typing import Optional

import docker

from config import Settings, config


def get_docker_client(settings: Optional[Settings] = None) -> docker.DockerClient:
    settings = settings or config
    if settings.docker_base_url:
        return docker.DockerClient(
            base_url=settings.docker_base_url,
            timeout=settings.docker_client_timeout,
        )
    return docker.from_env(timeout=settings.docker_client_timeout)

import io
import itertools
import struct
import tarfile
import zipfile
from typing import Callable, Dict, List, Optional, Tuple

import pytest
import requests
from docker.errors import APIError, NotFound

from config import Settings

Frames = List[Tuple[int, bytes]]
Program = Callable[[Dict[str, bytes]], Tuple[Frames, int, Dict[str, bytes]]]


def frame(channel: int, payload: bytes) -> bytes:
    return struct.pack(">BxxxL", channel, len(payload)) + payload


def make_zip(files: Dict[str, bytes], directories: Tuple[str, ...] = ()) -> io.BytesIO:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
        for directory in directories:
            zip_file.writestr(zipfile.ZipInfo(directory.rstrip("/") + "/"), b"")
        for name, content in files.items():
            zip_file.writestr(name, content)
    buffer.seek(0)
    return buffer


def read_tar(data: bytes) -> Dict[str, tarfile.TarInfo]:
    with tarfile.open(fileobj=io.BytesIO(data), mode="r") as tar_file:
        return {member.name: member for member in tar_file.getmembers()}


def tar_contents(data: bytes) -> Dict[str, bytes]:
    contents = {}
    with tarfile.open(fileobj=io.BytesIO(data), mode="r") as tar_file:
        for member in tar_file.getmembers():
            if member.isfile():
                contents[member.name] = tar_file.extractfile(member).read()
    return contents


def single_file_tar(name: str, content: bytes) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar_file:
        info = tarfile.TarInfo(name=name)
        info.size = len(content)
        tar_file.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def hello_world(files: Dict[str, bytes]) -> Tuple[Frames, int, Dict[str, bytes]]:
    return [(1, b"Hello, world!\n")], 0, {}


class FakeResponse:
    def __init__(self, content: bytes):
        self.content = content

    def raise_for_status(self) -> None:
        return None


class FakeContainer:
    """Container that "runs" a Python callable against the injected files."""

    def __init__(self, engine: "FakeEngine", container_id: str, image: str, command: Optional[List[str]]):
        self.engine = engine
        self.id = container_id
        self.image = image
        self.command = command
        self.files: Dict[str, bytes] = {}
        self.logs = b""
        self.status = "created"
        self.injected: List[Tuple[str, bytes, int]] = []

    def put_archive(self, path, data):
        self.engine.fail_if("put_archive")
        chunks = list(data)
        archive = b"".join(chunks)
        self.injected.append((path, archive, len(chunks)))
        for name, content in tar_contents(archive).items():
            self.files[f"{path.rstrip('/')}/{name}"] = content
        return True

    def start(self):
        self.engine.fail_if("start")
        self.status = "running"

    def wait(self, timeout=None):
        self.engine.fail_if("wait")
        self.engine.wait_timeouts.append(timeout)
        frames, exit_code, written = self.engine.program(dict(self.files))
        self.files.update(written)
        self.logs = b"".join(frame(channel, payload) for channel, payload in frames)
        self.status = "exited"
        return {"StatusCode": exit_code, "Error": None}

    def get_archive(self, path, chunk_size=None):
        self.engine.fail_if("get_archive")
        if path not in self.files:
            raise NotFound(f"Could not find the file {path} in container {self.id}")
        data = single_file_tar(path.rsplit("/", 1)[-1], self.files[path])
        return iter([data[:512], data[512:]]), {"name": path}

    def remove(self, force=False):
        self.engine.removed.append(self.id)
        self.engine.fail_if("remove")
        self.status = "removed"


class FakeContainers:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine

    def create(self, image, command=None):
        self.engine.fail_if("create")
        container = FakeContainer(self.engine, f"container-{next(self.engine.ids)}", image, command)
        self.engine.created.append(container)
        return container


class FakeImages:
    def __init__(self, engine: "FakeEngine"):
        self.engine = engine

    def get(self, image):
        return image

    def pull(self, image):
        return image


class FakeApi:
    base_url = "http+docker://localhost"
    api_version = "1.43"

    def __init__(self, engine: "FakeEngine"):
        self.engine = engine
        self.requests: List[Tuple[str, dict]] = []

    def get(self, url, params=None, timeout=None):
        self.engine.fail_if("logs")
        self.requests.append((url, params))
        container_id = url.split("/containers/")[1].split("/")[0]
        container = next(c for c in self.engine.created if c.id == container_id)
        return FakeResponse(container.logs)


class FakeEngine:
    """Stands in for docker.DockerClient with just the calls the evaluator makes."""

    def __init__(self, program: Program = hello_world):
        self.program = program
        self.ids = itertools.count(1)
        self.created: List[FakeContainer] = []
        self.removed: List[str] = []
        self.wait_timeouts: List[Optional[int]] = []
        self.failures: Dict[str, Exception] = {}
        self.containers = FakeContainers(self)
        self.images = FakeImages(self)
        self.api = FakeApi(self)

    def fail_on(self, step: str, error: Optional[Exception] = None) -> None:
        self.failures[step] = error or APIError(f"{step} failed")

    def fail_if(self, step: str) -> None:
        if step in self.failures:
            raise self.failures[step]

    @property
    def container(self) -> FakeContainer:
        return self.created[-1]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def connection_error() -> Exception:
    return requests.exceptions.ConnectionError("engine unreachable")

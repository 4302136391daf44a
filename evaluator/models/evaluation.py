from dataclasses import dataclass
from typing import Any, BinaryIO, Optional

# A readable binary stream holding a zip archive of the submission
Package = BinaryIO


@dataclass(frozen=True)
class ResourceLimits:
    time_limit: Optional[int] = None
    memory_limit: Optional[int] = None


@dataclass(frozen=True)
class Evaluation:
    """
    A single evaluation request.

    Attributes:
        package: Stream containing the zip archive, consumed once
        language: Opaque language value, only used to resolve the image
        time_limit: CPU time budget in seconds
        memory_limit: Memory budget in megabytes
        id: Identifier used to correlate log events
    """

    package: Package
    language: Any
    time_limit: Optional[int] = None
    memory_limit: Optional[int] = None
    id: Optional[str] = None

    def __post_init__(self):
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"invalid_time_limit: {self.time_limit}")
        if self.memory_limit is not None and self.memory_limit <= 0:
            raise ValueError(f"invalid_memory_limit: {self.memory_limit}")

    @property
    def limits(self) -> ResourceLimits:
        return ResourceLimits(time_limit=self.time_limit, memory_limit=self.memory_limit)

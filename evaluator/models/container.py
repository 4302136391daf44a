from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class ContainerState(str, Enum):
    CREATED = "created"
    STARTED = "started"
    EXITED = "exited"
    DESTROYED = "destroyed"


@dataclass
class Container:
    """Handle to one engine-managed sandbox, owned by a single evaluation."""

    id: str
    image: str
    argv: List[str] = field(default_factory=list)
    state: ContainerState = ContainerState.CREATED
    exit_code: Optional[int] = None
    handle: Any = field(default=None, repr=False)

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Result:
    stdout: bytes
    stderr: bytes
    test_report: Optional[bytes]
    exit_code: int

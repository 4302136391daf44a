import posixpath
import zipfile
from typing import BinaryIO, List, Optional

from loguru import logger

from config import Settings, config
from evaluator.codecs.archive_transcoder import is_regular_file
from evaluator.exceptions import PackageFormatError


class PackageValidator:
    """
    Checks a zip package before it is injected.

    Size and count limits are only enforced when configured; entries that
    escape the package directory are always flagged. Holds no per-call state,
    so one instance can serve concurrent evaluations.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or config
        self.max_files: Optional[int] = settings.evaluator_max_files
        self.max_file_size_mb: Optional[float] = settings.evaluator_max_file_size_mb
        self.max_total_size_mb: Optional[float] = settings.evaluator_max_total_size_mb

    def validate(self, package: BinaryIO) -> List[dict]:
        """
        Inspect the zip central directory without extracting anything.

        The stream is left at the position it had on entry, so it can be
        handed to the transcoder afterwards.
        """
        violations: List[dict] = []

        position = package.tell()
        try:
            with zipfile.ZipFile(package) as zip_file:
                entries = [e for e in zip_file.infolist() if is_regular_file(e)]
        except zipfile.BadZipFile as e:
            raise PackageFormatError(f"package_malformed: {e}") from e
        finally:
            package.seek(position)

        if self.max_files is not None and len(entries) > self.max_files:
            violations.append({
                "type": "too_many_files",
                "message": f"Found {len(entries)} files, max is {self.max_files}",
            })

        total_size = 0
        for entry in entries:
            self._validate_entry(entry, violations)
            total_size += entry.file_size

        total_size_mb = total_size / (1024 * 1024)
        if self.max_total_size_mb is not None and total_size_mb > self.max_total_size_mb:
            violations.append({
                "type": "total_size_exceeded",
                "message": f"Total size {total_size_mb:.2f}MB exceeds {self.max_total_size_mb}MB",
            })

        logger.info(
            "package_validation_complete",
            files_checked=len(entries),
            total_size_mb=total_size_mb,
            violations_found=len(violations),
        )

        return violations

    def _validate_entry(self, entry: zipfile.ZipInfo, violations: List[dict]) -> None:
        name = entry.filename
        parts = name.replace("\\", "/").split("/")

        if posixpath.isabs(name) or name.startswith("\\") or ".." in parts:
            violations.append({
                "type": "unsafe_path",
                "file": name,
                "message": f"Entry escapes the package directory: {name}",
            })

        size_mb = entry.file_size / (1024 * 1024)
        if self.max_file_size_mb is not None and size_mb > self.max_file_size_mb:
            violations.append({
                "type": "file_too_large",
                "file": name,
                "message": f"File size {size_mb:.2f}MB exceeds {self.max_file_size_mb}MB",
            })

    def is_valid(self, package: BinaryIO) -> bool:
        violations = self.validate(package)
        return len(violations) == 0

"""
Zip to tar conversion for container filesystem injection.

The engine only accepts tar archives for injection, while submissions arrive
as zip archives. Every entry is placed under a package directory so that the
archive unpacks to {home}/package/... inside the container.
"""
import calendar
import io
import stat
import tarfile
import zipfile
import zlib
from typing import BinaryIO

from loguru import logger

from evaluator.exceptions import PackageFormatError, TranscodeError


def ensure_seekable(stream: BinaryIO) -> BinaryIO:
    """Zip archives need random access, so buffer streams that cannot seek."""
    seekable = getattr(stream, "seekable", None)
    if seekable is not None and seekable():
        return stream
    return io.BytesIO(stream.read())


def is_regular_file(entry: zipfile.ZipInfo) -> bool:
    if entry.is_dir():
        return False
    # Unix mode bits live in the high word of external_attr; many writers leave the type bits unset
    file_type = stat.S_IFMT(entry.external_attr >> 16)
    return file_type in (0, stat.S_IFREG)


class ArchiveTranscoder:
    ENTRY_MODE: int = 0o664

    def __init__(self, prefix: str = "package"):
        self.prefix = prefix

    def transcode(self, package: BinaryIO) -> io.BytesIO:
        """
        Convert a zip package into a tar stream positioned at its start.

        Args:
            package: Readable stream containing the zip archive

        Returns:
            BytesIO holding the tar archive

        Raises:
            PackageFormatError: The package is not a valid zip archive
            TranscodeError: Reading or writing failed
        """
        output = io.BytesIO()
        copied = 0

        try:
            with zipfile.ZipFile(ensure_seekable(package)) as zip_file:
                with tarfile.open(fileobj=output, mode="w", format=tarfile.PAX_FORMAT) as tar_file:
                    for entry in zip_file.infolist():
                        if not is_regular_file(entry):
                            continue
                        self._copy_entry(zip_file, tar_file, entry)
                        copied += 1
        except (zipfile.BadZipFile, zlib.error) as e:
            raise PackageFormatError(f"package_malformed: {e}") from e
        except (OSError, EOFError, tarfile.TarError, zipfile.LargeZipFile) as e:
            raise TranscodeError(f"transcode_failed: {e}") from e

        output.seek(0)
        logger.debug("package_transcoded", entries=copied, tar_bytes=len(output.getbuffer()))
        return output

    def entry_name(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def _copy_entry(
        self,
        zip_file: zipfile.ZipFile,
        tar_file: tarfile.TarFile,
        entry: zipfile.ZipInfo,
    ) -> None:
        tar_entry = tarfile.TarInfo(name=self.entry_name(entry.filename))
        tar_entry.size = entry.file_size
        tar_entry.mode = self.ENTRY_MODE
        tar_entry.mtime = calendar.timegm(entry.date_time + (0, 0, 0))

        # addfile copies exactly `size` bytes in blocks from the open entry
        with zip_file.open(entry) as entry_stream:
            tar_file.addfile(tar_entry, entry_stream)

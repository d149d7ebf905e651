"""Archive Reader: pull export.xml out of a health export zip.

Health exports are zip files with a single top-level directory. The only
member healthfold reads is ``apple_health_export/export.xml``; everything
else in the archive (export_cda.xml, workout-routes/, electrocardiograms/)
is ignored.
"""

from __future__ import annotations

import codecs
import logging
import time
import zipfile
import zlib
from contextlib import contextmanager
from typing import IO, Iterator

from healthfold.errors import DecodeError, EntryNotFoundError, OpenError

logger = logging.getLogger(__name__)

EXPORT_ROOT = "apple_health_export"
EXPORT_MEMBER = f"{EXPORT_ROOT}/export.xml"
EXPORT_ENCODING = "utf-8"

# Damaged members fail inside read(), not at open time.
_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, OSError, RuntimeError, NotImplementedError)


def _open_archive(path: str) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except FileNotFoundError as e:
        raise OpenError(f"Archive not found: {path}") from e
    except zipfile.BadZipFile as e:
        raise OpenError(f"Not a valid zip archive: {path} ({e})") from e
    except OSError as e:
        raise OpenError(f"Cannot open archive {path}: {e}") from e


def _get_member(archive: zipfile.ZipFile, path: str, member: str) -> zipfile.ZipInfo:
    try:
        info = archive.getinfo(member)
    except KeyError as e:
        raise EntryNotFoundError(path, member) from e
    logger.debug("Found %d MB of data in %s", info.file_size // 1024 // 1024, member)
    return info


def load_export(path: str, member: str = EXPORT_MEMBER) -> str:
    """Read the export member of a zip archive and return it as text.

    Args:
        path: Filesystem path to the export zip.
        member: Exact member name inside the archive. There is no fallback
            if it is absent.

    Raises:
        OpenError: The file is missing, unreadable, or not a zip.
        EntryNotFoundError: The archive has no member with that name.
        DecodeError: The member is not valid UTF-8.
    """
    start = time.perf_counter()
    with _open_archive(path) as archive:
        info = _get_member(archive, path, member)
        logger.info("Reading %s from zip archive %s", info.filename, path)
        try:
            payload = archive.read(info)
        except _READ_ERRORS as e:
            raise OpenError(f"Cannot read {member} from {path}: {e}") from e

    try:
        text = payload.decode(EXPORT_ENCODING)
    except UnicodeDecodeError as e:
        raise DecodeError(f"{member} in {path} is not valid {EXPORT_ENCODING}: {e}") from e

    logger.info("Read %s in %.2fs", path, time.perf_counter() - start)
    return text


class ExportStream:
    """Binary reader over the export member for the incremental parser.

    Damaged zip data and invalid UTF-8 are reported with the same errors
    load_export raises, as each chunk is read.
    """

    def __init__(self, raw: IO[bytes], path: str, member: str):
        self._raw = raw
        self._path = path
        self._member = member
        self._decoder = codecs.getincrementaldecoder(EXPORT_ENCODING)()

    def read(self, size: int = -1) -> bytes:
        try:
            chunk = self._raw.read(size)
        except _READ_ERRORS as e:
            raise OpenError(f"Cannot read {self._member} from {self._path}: {e}") from e
        try:
            self._decoder.decode(chunk, final=not chunk)
        except UnicodeDecodeError as e:
            raise DecodeError(
                f"{self._member} in {self._path} is not valid {EXPORT_ENCODING}: {e}"
            ) from e
        return chunk


@contextmanager
def open_export(path: str, member: str = EXPORT_MEMBER) -> Iterator[ExportStream]:
    """Open the export member as a binary stream for incremental parsing.

    Archive and member errors are raised before anything is yielded, so a
    caller never starts writing output for an unusable archive.
    """
    with _open_archive(path) as archive:
        info = _get_member(archive, path, member)
        logger.info("Streaming %s from zip archive %s", info.filename, path)
        try:
            raw = archive.open(info)
        except _READ_ERRORS as e:
            raise OpenError(f"Cannot read {member} from {path}: {e}") from e
        with raw:
            yield ExportStream(raw, path, member)

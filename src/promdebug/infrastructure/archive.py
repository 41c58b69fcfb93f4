"""Atomic ``.tar.gz`` bundle writer."""

from __future__ import annotations

import io
import os
import tarfile
import tempfile
import time
from collections.abc import Sequence
from contextlib import suppress
from pathlib import Path

from promdebug.infrastructure.errors import ArchiveWriteError, DuplicateEntryError
from promdebug.infrastructure.logging import get_logger

ARCHIVE_MEMBER_MODE = 0o644

_logger = get_logger("promdebug.archive")


def _check_unique(members: Sequence[tuple[str, bytes]]) -> None:
    seen: set[str] = set()
    for name, _ in members:
        if name in seen:
            raise DuplicateEntryError(name)
        seen.add(name)


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes, mtime: float) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mtime = int(mtime)
    info.mode = ARCHIVE_MEMBER_MODE
    info.type = tarfile.REGTYPE
    tar.addfile(info, io.BytesIO(data))


def write_bundle_archive(
    path: str | os.PathLike[str],
    members: Sequence[tuple[str, bytes]],
    *,
    mtime: float | None = None,
) -> Path:
    """Write ``members`` to a gzip-compressed tarball at ``path``.

    Members are stored in the given order. The archive is assembled in a
    temporary file next to ``path``, synced to disk and renamed into place, so
    afterwards ``path`` either holds this call's complete archive or does not
    exist.

    Raises
    ------
    DuplicateEntryError
        Two members share a name. Nothing is written.
    ArchiveWriteError
        Any filesystem failure. The temporary file and any file previously
        at ``path`` are removed.
    """

    target = Path(path)
    if not str(path):
        raise ArchiveWriteError("archive path must not be empty")
    _check_unique(members)

    timestamp = time.time() if mtime is None else mtime
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        with os.fdopen(fd, "wb") as handle:
            with tarfile.open(fileobj=handle, mode="w:gz") as tar:
                for name, data in members:
                    _add_bytes(tar, name, data, timestamp)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, ARCHIVE_MEMBER_MODE)
        os.replace(tmp_name, target)
    except (OSError, tarfile.TarError) as exc:
        if tmp_name is not None:
            with suppress(OSError):
                os.unlink(tmp_name)
        # An archive from an earlier run must not pass for this one.
        with suppress(OSError):
            os.unlink(target)
        _logger.error("archive.write_failed", path=str(target), error=str(exc))
        raise ArchiveWriteError(
            f"failed to write archive {target}: {exc}",
            path=str(target),
            user_message=f"Could not write {target}: {exc}",
        ) from exc

    _logger.info("archive.written", path=str(target), members=len(members))
    return target


__all__ = ["ARCHIVE_MEMBER_MODE", "write_bundle_archive"]

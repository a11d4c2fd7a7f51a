"""Zip codec used to move workflow file-sets over the wire."""

from __future__ import annotations

import io
import zipfile

from workflow_sync.sync.hashing import WorkflowFile


def encode(files: list[WorkflowFile]) -> bytes:
    """Pack *files* into an in-memory zip archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for f in files:
            archive.writestr(f.name, f.content)
    return buffer.getvalue()


def decode(data: bytes) -> list[WorkflowFile]:
    """Unpack a zip archive into a flat file-set.

    Directory entries are skipped.  Entries nested in folders keep only
    their base name, since workflow file names are not paths.

    Raises:
        zipfile.BadZipFile: If *data* is not a zip archive.
    """
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return [
            WorkflowFile(name=info.filename.rsplit("/", 1)[-1], content=archive.read(info))
            for info in archive.infolist()
            if not info.is_dir()
        ]

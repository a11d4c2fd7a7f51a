"""Content hashing for workflow file-sets.

A file-set digest has one SHA-256 digest per file plus an aggregate
digest.  The aggregate is computed from the ``name:digest`` pairs sorted
by file name, so it does not depend on enumeration order but changes
whenever any file's content changes or a file is added or removed.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field

_ENTRY_DELIMITER = "|"


@dataclass(frozen=True)
class WorkflowFile:
    """A single named file of a workflow.  Names are flat, not paths."""

    name: str
    content: bytes


@dataclass(frozen=True)
class FileSetDigest:
    """Aggregate digest of a file-set plus the per-file digests."""

    aggregate: str
    per_file: dict[str, str] = field(default_factory=dict)


def compute_digest(content: bytes) -> str:
    """Return the hex-encoded SHA-256 digest of *content*."""
    return hashlib.sha256(content).hexdigest()


def combine_digests(per_file: dict[str, str]) -> str:
    """Derive the aggregate digest from a ``name -> digest`` map."""
    joined = _ENTRY_DELIMITER.join(
        f"{name}:{per_file[name]}" for name in sorted(per_file)
    )
    return compute_digest(joined.encode("utf-8"))


def compute_fileset_digest(files: Iterable[WorkflowFile]) -> FileSetDigest:
    """Digest a whole file-set.

    Args:
        files: The workflow files, in any order.  Names must be unique.

    Returns:
        A ``FileSetDigest`` whose ``per_file`` map is keyed by file name
        in ascending order.
    """
    ordered = sorted(files, key=lambda f: f.name)
    per_file = {f.name: compute_digest(f.content) for f in ordered}
    return FileSetDigest(aggregate=combine_digests(per_file), per_file=per_file)

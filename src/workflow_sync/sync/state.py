"""Baseline persistence using JSON-backed Pydantic models.

The baseline file records, per workflow, the file-set digest that the
local copy and the remote store last agreed on.  It is always read and
rewritten as a whole so the file on disk reflects one consistent view.
The layout is::

    {
      "workflows": {
        "<name>": {"hash": "<digest>", "fileHashes": {"<file>": "<digest>"}}
      }
    }
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from workflow_sync.errors import BaselineError
from workflow_sync.sync.hashing import FileSetDigest

logger = logging.getLogger(__name__)


class BaselineEntry(BaseModel):
    """Last agreed digest for one workflow."""

    model_config = ConfigDict(populate_by_name=True)

    hash: str
    file_hashes: dict[str, str] = Field(default_factory=dict, alias="fileHashes")

    @classmethod
    def from_digest(cls, digest: FileSetDigest) -> BaselineEntry:
        return cls(hash=digest.aggregate, file_hashes=dict(digest.per_file))

    def to_digest(self) -> FileSetDigest:
        return FileSetDigest(aggregate=self.hash, per_file=dict(self.file_hashes))


class BaselineData(BaseModel):
    """Root model for the persisted baseline file."""

    workflows: dict[str, BaselineEntry] = Field(default_factory=dict)


class BaselineStore:
    """Reads and rewrites the baseline file.

    The store keeps no in-memory copy between calls: every ``read()``
    goes to disk and every ``write_whole()`` replaces the entire file.
    A single process is assumed to own the project directory.

    Args:
        baseline_file: Path to the JSON baseline file.
    """

    def __init__(self, baseline_file: Path | str) -> None:
        self._path = Path(baseline_file)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> BaselineData:
        """Load the baseline from disk.

        A missing or empty file yields an empty baseline.  So does a file
        that is not valid JSON or does not match the expected layout; in
        that case prior reconciliation history is lost and every workflow
        reads as UNKNOWN until it is synced again.

        Returns:
            The deserialized ``BaselineData``.
        """
        if not self._path.exists() or self._path.stat().st_size == 0:
            return BaselineData()
        try:
            raw = self._path.read_text(encoding="utf-8")
            return BaselineData.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.warning(
                "Ignoring malformed baseline file %s (%s); treating it as empty",
                self._path,
                exc,
            )
            return BaselineData()

    def write_whole(self, data: BaselineData) -> None:
        """Persist *data* as pretty-printed JSON, replacing the file.

        The new content is written to a sibling temporary file first and
        then moved over the old one, so a crash mid-write leaves the
        previous baseline intact.

        Raises:
            BaselineError: If the file cannot be written.
        """
        payload = data.model_dump_json(indent=2, by_alias=True) + "\n"
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise BaselineError(
                f"Failed to write baseline file {self._path}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Convenience helpers (each is one read plus at most one whole write)
    # ------------------------------------------------------------------

    def get(self, workflow: str) -> BaselineEntry | None:
        """Return the baseline entry for *workflow*, or ``None``."""
        return self.read().workflows.get(workflow)

    def record(self, workflow: str, digest: FileSetDigest) -> None:
        """Set *workflow*'s baseline to *digest* and persist."""
        data = self.read()
        data.workflows[workflow] = BaselineEntry.from_digest(digest)
        self.write_whole(data)
        logger.info("Baseline for %s set to %s", workflow, digest.aggregate)

    def forget(self, workflows: list[str]) -> list[str]:
        """Drop the entries for *workflows* and persist.

        Returns:
            The names that actually had an entry.
        """
        data = self.read()
        removed = [name for name in workflows if name in data.workflows]
        if removed:
            for name in removed:
                del data.workflows[name]
            self.write_whole(data)
        return removed

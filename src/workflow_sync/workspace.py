"""Local working copy of the tracked workflows.

Each workflow lives in its own directory under the project root; a
scoped workflow ``@scope/name`` lives in ``@scope/name/``.  A
``manifest.json`` inside marks the directory as a workflow.
Only regular files directly inside the directory belong to the
workflow's file-set; subdirectories are left alone.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from workflow_sync.errors import LocalStorageError
from workflow_sync.sync.hashing import WorkflowFile

MANIFEST_FILENAME = "manifest.json"


class Workspace:
    """Filesystem access to the workflow directories of one project.

    Args:
        project_root: Directory holding one subdirectory per workflow.
    """

    def __init__(self, project_root: Path | str) -> None:
        self._root = Path(project_root)

    @property
    def root(self) -> Path:
        return self._root

    def workflow_path(self, workflow: str) -> Path:
        return self._root / workflow

    def is_tracked(self, workflow: str) -> bool:
        """Return ``True`` if *workflow*'s directory carries a manifest."""
        return (self.workflow_path(workflow) / MANIFEST_FILENAME).is_file()

    def list_workflows(self) -> list[str]:
        """Names of all workflow directories carrying a manifest.

        An ``@scope`` directory groups scoped workflows one level deeper;
        those are listed as ``@scope/name``.
        """
        if not self._root.is_dir():
            return []
        names: list[str] = []
        for entry in self._root.iterdir():
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            if (entry / MANIFEST_FILENAME).is_file():
                names.append(entry.name)
            elif entry.name.startswith("@"):
                names.extend(
                    f"{entry.name}/{child.name}"
                    for child in entry.iterdir()
                    if child.is_dir()
                    and not child.name.startswith(".")
                    and (child / MANIFEST_FILENAME).is_file()
                )
        return sorted(names)

    def read_files(self, workflow: str) -> list[WorkflowFile] | None:
        """Read the flat file-set of *workflow*.

        Returns:
            The files sorted by name, or ``None`` when the workflow
            directory does not exist.

        Raises:
            LocalStorageError: If the directory or a file cannot be read.
        """
        path = self.workflow_path(workflow)
        if not path.is_dir():
            return None
        try:
            return [
                WorkflowFile(name=entry.name, content=entry.read_bytes())
                for entry in sorted(path.iterdir())
                if entry.is_file()
            ]
        except OSError as exc:
            raise LocalStorageError(
                f"Cannot read workflow '{workflow}'", path
            ) from exc

    def write_files(self, workflow: str, files: list[WorkflowFile]) -> None:
        """Make *workflow*'s file-set on disk equal to *files*.

        Files directly inside the directory that are not part of *files*
        are removed.  Subdirectories are not touched.

        Raises:
            LocalStorageError: If the directory cannot be written.
        """
        path = self.workflow_path(workflow)
        incoming = {f.name for f in files}
        try:
            path.mkdir(parents=True, exist_ok=True)
            for entry in path.iterdir():
                if entry.is_file() and entry.name not in incoming:
                    entry.unlink()
            for f in files:
                (path / f.name).write_bytes(f.content)
        except OSError as exc:
            raise LocalStorageError(
                f"Cannot write workflow '{workflow}'", path
            ) from exc

    def delete(self, workflow: str) -> None:
        """Remove *workflow*'s directory and everything in it."""
        path = self.workflow_path(workflow)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as exc:
            raise LocalStorageError(
                f"Cannot delete workflow '{workflow}'", path
            ) from exc

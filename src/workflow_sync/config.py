from __future__ import annotations

import os
from pathlib import Path


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        self.base_url: str = os.environ.get("WORKFLOW_SYNC_BASE_URL", "")
        self.token: str = os.environ.get("WORKFLOW_SYNC_TOKEN", "")
        self.project_dir: str = os.environ.get("WORKFLOW_SYNC_PROJECT_DIR", ".")
        self.baseline_file: str = os.environ.get(
            "WORKFLOW_SYNC_BASELINE_FILE", "workflow-sync.lock.json"
        )
        self.debounce_ms: int = int(os.environ.get("WORKFLOW_SYNC_DEBOUNCE_MS", "1000"))
        self.timeout: float = float(os.environ.get("WORKFLOW_SYNC_TIMEOUT", "30"))

    @property
    def project_root(self) -> Path:
        return Path(self.project_dir).resolve()

    @property
    def baseline_path(self) -> Path:
        path = Path(self.baseline_file)
        if path.is_absolute():
            return path
        return self.project_root / path

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("WORKFLOW_SYNC_BASE_URL environment variable is required")
        if not self.token:
            raise ValueError("WORKFLOW_SYNC_TOKEN environment variable is required")


settings = Settings()

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(Enum):
    written = "written"
    unchanged = "unchanged"
    up_to_date = "up-to-date"
    outdated = "outdated"
    removed = "removed"
    failed = "failed"


class FileEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: str
    destination: str
    status: FileStatus
    error: Optional[str] = None


class Report(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: str
    toolVersion: str
    engineVersion: str
    files: List[FileEntry] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(f.status is FileStatus.failed for f in self.files)


__all__ = ["FileStatus", "FileEntry", "Report"]

import re
from enum import Enum
from pathlib import PurePath
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeKind(str, Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    COPIED = "Copied"


class ProcessingStage(str, Enum):
    """The pipeline phase at which a processing unit failed."""

    STATUS = "Status"
    DIFF = "Diff"
    GENERATION = "Generation"
    STAGE = "Stage"
    COMMIT = "Commit"


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    kind: ChangeKind
    lines_added: int = Field(0, ge=0)
    lines_deleted: int = Field(0, ge=0)
    # Source path of a rename or copy.
    original_path: Optional[str] = None

    @property
    def commit_paths(self) -> List[str]:
        """Pathspecs a commit of this change must cover; a rename also removes its old path."""
        if self.kind is ChangeKind.RENAMED and self.original_path:
            return [self.original_path, self.path]
        return [self.path]


class ProcessingRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    repo_path: str
    model: str
    commit_individually: bool = True


class ProcessedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    commit_message: str
    commit_hash: Optional[str] = None
    duration_ms: int = 0


class ProcessingError(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    message: str
    stage: ProcessingStage


class ProcessingResult(BaseModel):
    """The outcome of one pipeline run. Both lists keep the discovery order of the changes."""

    model_config = ConfigDict(frozen=True)

    processed_files: List[ProcessedFile] = Field(default_factory=list)
    errors: List[ProcessingError] = Field(default_factory=list)
    total_commits: int = 0


class RepoPath(str):
    """A repository path that is non-empty and free of parent-directory traversal."""

    @classmethod
    def parse(cls, value: object) -> "RepoPath":
        if not isinstance(value, str) or not value.strip():
            raise ValueError("repository path must be a non-empty string")
        if "\x00" in value:
            raise ValueError(f"Invalid repository path: {value!r}")
        if ".." in PurePath(value).parts:
            raise ValueError(f"Invalid repository path: {value}")
        return cls(value)


MODEL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]+$")


class ModelName(str):
    """A generation backend model identifier, e.g. `llama2` or `llama3.2:latest`."""

    @classmethod
    def parse(cls, value: object) -> "ModelName":
        if not isinstance(value, str) or not MODEL_NAME_PATTERN.match(value):
            raise ValueError(f"Invalid model name: {value}")
        return cls(value)

from typing import List, Optional, Protocol, Sequence

from core.contracts.models import FileChange


class VersionControlClient(Protocol):
    """
    Version control operations against a single repository.

    Every operation except `is_valid_repository` may raise `GitError`.
    """

    def is_valid_repository(self, repo_path: str) -> bool:
        ...

    def list_changes(self, repo_path: str) -> List[FileChange]:
        ...

    def diff(self, repo_path: str, file_path: Optional[str] = None, staged: bool = False) -> str:
        ...

    def stage(self, repo_path: str, file_path: str) -> None:
        ...

    def commit(self, repo_path: str, message: str, paths: Optional[Sequence[str]] = None) -> str:
        ...

    def snapshot_index(self, repo_path: str) -> str:
        ...

    def restore_index(self, repo_path: str, snapshot: str) -> None:
        ...

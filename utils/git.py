import os
import subprocess
from typing import List, Optional, Sequence, Tuple

from core.contracts.models import ChangeKind, FileChange
from utils.errors import GitError
from utils.logger import logger

STATUS_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.COPIED,
}


def _unquote(path: str) -> str:
    """Undoes git's C-style quoting of paths with special characters."""
    if len(path) >= 2 and path[0] == '"' and path[-1] == '"':
        raw = path[1:-1].encode("latin-1", "backslashreplace")
        return raw.decode("unicode_escape").encode("latin-1").decode("utf-8", "replace")
    return path


def parse_status_line(line: str) -> Tuple[ChangeKind, str, Optional[str]]:
    """
    Parses one line of `git status --porcelain` output.

    Returns:
        The change kind, the (new) path of the file and, for renames and
        copies, the path it came from.
    """
    status, path = line[:2], line[3:]
    original_path = None
    if " -> " in path:
        original_path, path = path.split(" -> ", 1)
        original_path = _unquote(original_path)
    path = _unquote(path)

    if status == "??":
        return ChangeKind.ADDED, path, None
    for code in status:
        if code in STATUS_KINDS:
            return STATUS_KINDS[code], path, original_path
    return ChangeKind.MODIFIED, path, original_path


def parse_numstat(output: str) -> Tuple[int, int]:
    """Parses `git diff --numstat` output for a single file. Binary files count as 0."""
    line = output.strip().splitlines()[0] if output.strip() else ""
    if not line:
        return 0, 0
    parts = line.split("\t")
    if len(parts) < 2:
        return 0, 0
    added = int(parts[0]) if parts[0].isdigit() else 0
    deleted = int(parts[1]) if parts[1].isdigit() else 0
    return added, deleted


class GitClient:
    """
    Runs git commands against a repository on disk.
    """

    def __init__(self, command_timeout_sec: int = 30):
        self.command_timeout_sec = command_timeout_sec

    def _run(self, repo_path: str, args: Sequence[str], ok_codes: Sequence[int] = (0,)) -> str:
        command = ["git", *args]
        logger.debug(f"Running {command} in {repo_path}")
        try:
            result = subprocess.run(
                command,
                cwd=repo_path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.command_timeout_sec,
            )
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH.")
        except subprocess.TimeoutExpired:
            raise GitError(f"git {args[0]} timed out after {self.command_timeout_sec}s")
        except OSError as e:
            raise GitError(f"Failed to run git {args[0]}: {e}") from e

        if result.returncode not in ok_codes:
            error_message = (result.stderr or "").strip() or f"exit code {result.returncode}"
            raise GitError(f"git {args[0]} failed: {error_message}")
        return result.stdout

    def is_valid_repository(self, repo_path: str) -> bool:
        """Checks if the given path is a directory inside a Git work tree."""
        if not os.path.isdir(repo_path):
            return False
        try:
            return self._run(repo_path, ["rev-parse", "--is-inside-work-tree"]).strip() == "true"
        except GitError:
            return False

    def list_changes(self, repo_path: str) -> List[FileChange]:
        """
        Lists uncommitted changes, in the order git reports them.

        Raises:
            GitError: If `git status` fails.
        """
        output = self._run(repo_path, ["status", "--porcelain", "--untracked-files=all"])
        changes: List[FileChange] = []
        seen = set()
        for line in output.splitlines():
            if not line.strip():
                continue
            kind, path, original_path = parse_status_line(line)
            if path in seen:
                continue
            seen.add(path)
            added, deleted = self._line_counts(repo_path, path)
            changes.append(FileChange(
                path=path,
                kind=kind,
                lines_added=added,
                lines_deleted=deleted,
                original_path=original_path,
            ))
        return changes

    def _line_counts(self, repo_path: str, file_path: str) -> Tuple[int, int]:
        try:
            return parse_numstat(self._run(repo_path, ["diff", "--numstat", "--", file_path]))
        except GitError as e:
            logger.debug(f"Could not count lines for {file_path}: {e}")
            return 0, 0

    def diff(self, repo_path: str, file_path: Optional[str] = None, staged: bool = False) -> str:
        """
        Returns the diff of the work tree (or of the index, when staged is set).

        For a single untracked file, the diff against an empty file is returned.
        """
        args = ["diff"]
        if staged:
            args.append("--cached")
        if file_path:
            args.extend(["--", file_path])
        output = self._run(repo_path, args)

        if output.strip() or not file_path or staged:
            return output
        if not os.path.isfile(os.path.join(repo_path, file_path)):
            return output
        # `--no-index` exits with 1 when the files differ.
        return self._run(repo_path, ["diff", "--no-index", "--", os.devnull, file_path], ok_codes=(0, 1))

    def stage(self, repo_path: str, file_path: str) -> None:
        """Adds a file (or its deletion) to the index."""
        self._run(repo_path, ["add", "--all", "--", file_path])

    def commit(self, repo_path: str, message: str, paths: Optional[Sequence[str]] = None) -> str:
        """
        Commits staged changes, optionally restricted to the given paths.

        Returns:
            The hash of the new commit.
        """
        args = ["commit", "-m", message]
        if paths:
            args.extend(["--", *paths])
        self._run(repo_path, args)
        return self._run(repo_path, ["rev-parse", "HEAD"]).strip()

    def snapshot_index(self, repo_path: str) -> str:
        """
        Records the current index as a tree object.

        Returns:
            The tree hash, to be passed to `restore_index`.
        """
        return self._run(repo_path, ["write-tree"]).strip()

    def restore_index(self, repo_path: str, snapshot: str) -> None:
        """Resets the index to a tree recorded by `snapshot_index`. The work tree is untouched."""
        self._run(repo_path, ["read-tree", snapshot])

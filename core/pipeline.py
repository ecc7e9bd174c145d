import asyncio
import fnmatch
import time
from typing import Dict, List, Sequence

from config.models import Config
from core.aggregator import UnitOutcome, aggregate
from core.contracts.models import (
    ChangeKind,
    FileChange,
    ProcessedFile,
    ProcessingError,
    ProcessingRequest,
    ProcessingResult,
    ProcessingStage,
)
from core.contracts.provider import GenerationClient
from core.contracts.vcs import VersionControlClient
from core.formatter.message import truncate_message
from core.gate import ConcurrencyGate
from utils.logger import logger

INVALID_REPOSITORY = "invalid repository"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class ChangeProcessingPipeline:
    """
    Turns the uncommitted changes of a repository into commits with generated messages.

    In individual mode every file is its own processing unit: units run
    concurrently through a ConcurrencyGate and a failing unit never affects the
    others. In batch mode all files go into one commit, and any failure fails
    the whole batch without committing anything. A failed stage or commit
    restores the index to its state before staging began.
    """

    def __init__(self, vcs: VersionControlClient, generator: GenerationClient, config: Config):
        """
        Args:
            vcs: Runs status/diff/stage/commit against the repository.
            generator: Produces commit messages.
            config: The application configuration.
        """
        self.vcs = vcs
        self.generator = generator
        self.config = config
        self._commit_locks: Dict[str, asyncio.Lock] = {}

    def _commit_lock(self, repo_path: str) -> asyncio.Lock:
        """One lock per repository: stage and commit must not interleave on a shared index."""
        if repo_path not in self._commit_locks:
            self._commit_locks[repo_path] = asyncio.Lock()
        return self._commit_locks[repo_path]

    async def process(self, repo_path: str, model: str, commit_individually: bool = True) -> ProcessingResult:
        """
        Processes every uncommitted change in the repository.

        Per-file failures are reported in the result, never raised.
        """
        request = ProcessingRequest(repo_path=repo_path, model=model, commit_individually=commit_individually)
        logger.info(f"Starting repository processing: {repo_path}")
        logger.debug(
            f"model={model}, commit_individually={commit_individually}, "
            f"max_concurrent={self.config.processing.max_concurrent_files}"
        )

        if not await asyncio.to_thread(self.vcs.is_valid_repository, repo_path):
            logger.error(f"Invalid git repository: {repo_path}")
            return ProcessingResult(
                errors=[ProcessingError(path=repo_path, message=INVALID_REPOSITORY, stage=ProcessingStage.STATUS)],
            )

        try:
            changes = await asyncio.to_thread(self.vcs.list_changes, repo_path)
        except Exception as e:
            logger.error(f"Failed to list changes in {repo_path}: {e}")
            return ProcessingResult(
                errors=[ProcessingError(path=repo_path, message=_describe(e), stage=ProcessingStage.STATUS)],
            )

        changes = self._apply_excludes(changes)
        if not changes:
            logger.info(f"No changes to commit in {repo_path}")
            return ProcessingResult()

        if request.commit_individually:
            result = await self._process_individually(request, changes)
        else:
            result = aggregate([await self._process_batch(request, changes)])

        logger.info(
            f"Repository processing completed: {result.total_commits} commits, {len(result.errors)} errors"
        )
        return result

    def _apply_excludes(self, changes: List[FileChange]) -> List[FileChange]:
        patterns = self.config.git.exclude_patterns
        if not patterns:
            return changes
        kept = []
        for change in changes:
            if any(fnmatch.fnmatch(change.path, pattern) for pattern in patterns):
                logger.debug(f"Skipping excluded file: {change.path}")
                continue
            kept.append(change)
        return kept

    async def _restore_index(self, repo_path: str, snapshot: str) -> None:
        """Puts the index back as it was before a failed stage or commit."""
        try:
            await asyncio.to_thread(self.vcs.restore_index, repo_path, snapshot)
        except Exception as e:
            logger.error(f"Could not restore the index of {repo_path} to {snapshot}: {e}")

    async def _process_individually(self, request: ProcessingRequest, changes: List[FileChange]) -> ProcessingResult:
        gate = ConcurrencyGate(self.config.processing.max_concurrent_files)
        # gather() returns outcomes in submission order, which is discovery order.
        outcomes = await asyncio.gather(
            *(self._process_file(request, change, gate) for change in changes)
        )
        return aggregate(outcomes)

    async def _process_file(self, request: ProcessingRequest, change: FileChange, gate: ConcurrencyGate) -> UnitOutcome:
        """Runs diff -> generate -> stage -> commit for one file, under one permit."""
        async with gate.permit():
            started = time.monotonic()
            stage = ProcessingStage.DIFF
            try:
                diff = await asyncio.to_thread(self.vcs.diff, request.repo_path, change.path)

                stage = ProcessingStage.GENERATION
                raw_message = await self.generator.generate_message(
                    request.model, change.path, diff, change.kind
                )
                message = truncate_message(raw_message, self.config.processing.commit_message_max_length)

                async with self._commit_lock(request.repo_path):
                    stage = ProcessingStage.STAGE
                    snapshot = await asyncio.to_thread(self.vcs.snapshot_index, request.repo_path)
                    try:
                        await asyncio.to_thread(self.vcs.stage, request.repo_path, change.path)
                        stage = ProcessingStage.COMMIT
                        commit_hash = await asyncio.to_thread(
                            self.vcs.commit, request.repo_path, message, change.commit_paths
                        )
                    except Exception:
                        await self._restore_index(request.repo_path, snapshot)
                        raise
            except Exception as e:
                logger.warning(f"Failed to process {change.path} at stage {stage.value}: {e}")
                return ProcessingError(path=change.path, message=_describe(e), stage=stage)

            logger.info(f"Committed {change.path}: {message}")
            return ProcessedFile(
                path=change.path,
                commit_message=message,
                commit_hash=commit_hash,
                duration_ms=_elapsed_ms(started),
            )

    async def _process_batch(self, request: ProcessingRequest, changes: Sequence[FileChange]) -> UnitOutcome:
        """Commits all changes together with one message. Nothing is committed on failure."""
        started = time.monotonic()
        paths = [change.path for change in changes]
        label = ", ".join(paths)
        kinds = {change.kind for change in changes}
        kind = kinds.pop() if len(kinds) == 1 else ChangeKind.MODIFIED

        stage = ProcessingStage.DIFF
        try:
            diffs = []
            for change in changes:
                diffs.append(await asyncio.to_thread(self.vcs.diff, request.repo_path, change.path))
            combined_diff = "\n".join(diffs)

            stage = ProcessingStage.GENERATION
            raw_message = await self.generator.generate_message(request.model, label, combined_diff, kind)
            message = truncate_message(raw_message, self.config.processing.commit_message_max_length)

            async with self._commit_lock(request.repo_path):
                stage = ProcessingStage.STAGE
                snapshot = await asyncio.to_thread(self.vcs.snapshot_index, request.repo_path)
                try:
                    for path in paths:
                        await asyncio.to_thread(self.vcs.stage, request.repo_path, path)
                    stage = ProcessingStage.COMMIT
                    commit_paths = [p for change in changes for p in change.commit_paths]
                    commit_hash = await asyncio.to_thread(
                        self.vcs.commit, request.repo_path, message, commit_paths
                    )
                except Exception:
                    await self._restore_index(request.repo_path, snapshot)
                    raise
        except Exception as e:
            logger.warning(f"Batch commit failed at stage {stage.value}: {e}")
            return ProcessingError(path=label, message=_describe(e), stage=stage)

        logger.info(f"Committed {len(paths)} files in one commit: {message}")
        return ProcessedFile(
            path=label,
            commit_message=message,
            commit_hash=commit_hash,
            duration_ms=_elapsed_ms(started),
        )

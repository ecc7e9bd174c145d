from typing import Iterable, List, Union

from core.contracts.models import ProcessedFile, ProcessingError, ProcessingResult

UnitOutcome = Union[ProcessedFile, ProcessingError]


def aggregate(outcomes: Iterable[UnitOutcome]) -> ProcessingResult:
    """
    Splits unit outcomes into successes and errors, keeping their relative order.

    The outcomes must already be in discovery order; completion order plays no part.
    """
    processed_files: List[ProcessedFile] = []
    errors: List[ProcessingError] = []
    for outcome in outcomes:
        if isinstance(outcome, ProcessedFile):
            processed_files.append(outcome)
        else:
            errors.append(outcome)
    return ProcessingResult(
        processed_files=processed_files,
        errors=errors,
        total_commits=len(processed_files),
    )

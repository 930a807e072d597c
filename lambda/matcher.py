"""
Decide whether observed submissions satisfy a pending challenge.

Pure functions with no network or database dependencies.
"""
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from models import Outcome, ProblemRef, Submission


NO_SUBMISSION_MESSAGE = "No submission found to the specified problem"


@dataclass(frozen=True)
class MatchResult:
    outcome: Outcome
    message: str
    submission: Optional[Submission] = None

    @property
    def verified(self) -> bool:
        return self.outcome is Outcome.VERIFIED


def evaluate(
    problem_ref: ProblemRef,
    started_at_seconds: int,
    submissions: Iterable[Submission],
    is_compilation_error: Callable[[Optional[str]], bool]
) -> MatchResult:
    """
    Evaluate submissions against a challenge.

    A submission qualifies when it targets the challenge problem, its verdict
    is a compilation error and it was made at or after the challenge start.
    Submissions made before the start never count, even with the right
    problem and verdict.

    Args:
        problem_ref: Problem the user was asked to submit to
        started_at_seconds: Challenge start, epoch seconds
        submissions: Recent submissions of the claimed account
        is_compilation_error: Backend rule classifying a verdict

    Returns:
        VERIFIED with the qualifying submission, else MISMATCH with the most
        recent post-start submission to the problem, else NOT_YET
    """
    mismatch = None

    for submission in submissions:
        if not submission.problem_ref.matches(problem_ref):
            continue
        if submission.timestamp_seconds < started_at_seconds:
            continue

        if is_compilation_error(submission.verdict):
            return MatchResult(Outcome.VERIFIED, "Compilation Error submission found!", submission)

        if mismatch is None:
            mismatch = submission

    if mismatch is not None:
        return MatchResult(
            Outcome.MISMATCH,
            f"Found submission but verdict was \"{mismatch.verdict or 'PENDING'}\" "
            f"instead of \"Compilation Error\"",
            mismatch
        )

    return MatchResult(Outcome.NOT_YET, NO_SUBMISSION_MESSAGE)

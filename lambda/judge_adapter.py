"""
Common surface for competitive programming judge backends.

Every backend answers the same questions (does this user exist, what is
their profile, what did they submit recently) so the verification service
never has to know which judge it is talking to.
"""
from typing import List, Optional

import requests

from errors import BackendUnavailable
from logging_utils import log_judge_error
from models import Platform, Problem, ProblemRef, Submission, UserProfile
from rate_limit import RequestGate


DEFAULT_TIMEOUT_SECONDS = 15.0


class JudgeAdapter:
    """
    Base class for judge adapters.

    Subclasses set `platform` and implement the capability methods. All
    outbound HTTP goes through `_get`, which waits on the adapter's gate
    and maps transport failures to BackendUnavailable.
    """

    platform: Platform = None

    def __init__(self, gate: RequestGate, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.gate = gate
        self.timeout = timeout

    def _get(self, url: str, operation: str, **kwargs) -> requests.Response:
        """
        Issue a rate-limited GET request.

        Args:
            url: Absolute URL
            operation: Short name used in logs
            **kwargs: Extra arguments for requests.get (params, headers, ...)

        Returns:
            The response, whatever its status code

        Raises:
            BackendUnavailable: On timeout or connection failure
        """
        self.gate.wait()
        try:
            return requests.get(url, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            log_judge_error(self.platform.value, operation, detail='timeout')
            raise BackendUnavailable(self.platform.value, f"{operation} timed out")
        except requests.RequestException as e:
            log_judge_error(self.platform.value, operation, detail=str(e))
            raise BackendUnavailable(self.platform.value, f"{operation} failed: {e}")

    # Capability surface

    def validate_user(self, username: str) -> bool:
        raise NotImplementedError

    def resolve_username(self, username: str) -> str:
        """Return the backend-canonical username. Raises NotFound if it does not exist."""
        raise NotImplementedError

    def fetch_profile(self, username: str) -> UserProfile:
        raise NotImplementedError

    def fetch_recent_submissions(self, username: str, count: int = 20) -> List[Submission]:
        raise NotImplementedError

    def list_problems(self) -> Optional[List[Problem]]:
        """Full problem list, or None when the backend offers no bulk listing."""
        return None

    def parse_problem_ref(self, problem_id: str) -> ProblemRef:
        raise NotImplementedError

    def problem_url(self, ref: ProblemRef) -> str:
        raise NotImplementedError

    def is_compilation_error(self, verdict: Optional[str]) -> bool:
        raise NotImplementedError

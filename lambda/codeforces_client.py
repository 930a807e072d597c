"""
Codeforces adapter.

Talks to the public Codeforces REST API, which wraps every answer in
{"status": "OK" | "FAILED", "result" | "comment"}.
"""
import re
from typing import Any, Dict, List, Optional

from errors import BackendUnavailable, NotFound
from judge_adapter import JudgeAdapter
from logging_utils import log_judge_error
from models import Platform, Problem, ProblemRef, Submission, UserProfile


CODEFORCES_API_BASE = "https://codeforces.com/api"
CODEFORCES_BASE = "https://codeforces.com"

COMPILATION_ERROR_VERDICT = "COMPILATION_ERROR"

# Rank ladder as reported by user.info, lowest first
CODEFORCES_RANKS = [
    'newbie',
    'pupil',
    'specialist',
    'expert',
    'candidate master',
    'master',
    'international master',
    'grandmaster',
    'international grandmaster',
    'legendary grandmaster',
]

# "1000A", "1800A1", "1B"
PROBLEM_ID_PATTERN = re.compile(r'^(\d+)([A-Za-z]\d*)$')


class CodeforcesAdapter(JudgeAdapter):
    platform = Platform.CODEFORCES

    def _call(self, method: str, params: Optional[Dict[str, Any]] = None,
              username: Optional[str] = None) -> Any:
        """
        Call an API method and unwrap the result envelope.

        Args:
            method: API method name, e.g. "user.info"
            params: Query parameters
            username: Handle the call is about, for NotFound reporting

        Returns:
            The "result" member of the envelope

        Raises:
            NotFound: If the API reports the handle does not exist
            BackendUnavailable: On any other failure
        """
        response = self._get(f"{CODEFORCES_API_BASE}/{method}", method, params=params or {})

        try:
            data = response.json()
        except ValueError:
            log_judge_error(self.platform.value, method, response.status_code, 'non-JSON response')
            raise BackendUnavailable(self.platform.value, f"{method} returned HTTP {response.status_code}")

        if not isinstance(data, dict):
            log_judge_error(self.platform.value, method, response.status_code, 'unexpected payload')
            raise BackendUnavailable(self.platform.value, f"{method} returned an unexpected payload")

        if data.get('status') == 'OK' and response.ok:
            return data.get('result')

        comment = data.get('comment') or f"HTTP {response.status_code}"
        if username is not None and 'not found' in comment.lower():
            raise NotFound(self.platform.value, username)

        log_judge_error(self.platform.value, method, response.status_code, comment)
        raise BackendUnavailable(self.platform.value, comment)

    def resolve_username(self, username: str) -> str:
        users = self._call('user.info', {'handles': username}, username=username)
        if not users:
            raise NotFound(self.platform.value, username)
        return users[0].get('handle', username)

    def validate_user(self, username: str) -> bool:
        try:
            self.resolve_username(username)
            return True
        except NotFound:
            return False

    def fetch_profile(self, username: str) -> UserProfile:
        users = self._call('user.info', {'handles': username}, username=username)
        if not users:
            raise NotFound(self.platform.value, username)

        user = users[0]
        return UserProfile(
            username=user.get('handle', username),
            rank=user.get('rank') or 'unrated',
            rating=user.get('rating') or 0
        )

    def fetch_recent_submissions(self, username: str, count: int = 20) -> List[Submission]:
        """
        Fetch the user's most recent submissions, newest first.

        Args:
            username: Codeforces handle
            count: Number of submissions to request

        Returns:
            List of submissions
        """
        raw = self._call(
            'user.status',
            {'handle': username, 'from': 1, 'count': count},
            username=username
        )

        submissions = []
        for sub in raw or []:
            problem = sub.get('problem', {})
            submissions.append(Submission(
                problem_ref=ProblemRef(problem.get('contestId'), str(problem.get('index', ''))),
                # Submissions still in the queue have no verdict yet
                verdict=sub.get('verdict') or '',
                timestamp_seconds=int(sub.get('creationTimeSeconds', 0)),
                submission_id=str(sub['id']) if 'id' in sub else None
            ))
        return submissions

    def list_problems(self) -> List[Problem]:
        result = self._call('problemset.problems')
        problems = []
        for problem in (result or {}).get('problems', []):
            contest_id = problem.get('contestId')
            index = problem.get('index')
            if contest_id is None or not index:
                continue
            ref = ProblemRef(contest_id, index)
            problems.append(Problem(
                id=str(ref),
                name=problem.get('name', str(ref)),
                url=self.problem_url(ref),
                rating=problem.get('rating')
            ))
        return problems

    def parse_problem_ref(self, problem_id: str) -> ProblemRef:
        """
        Split a stored problem ID into contest and index.

        Raises:
            ValueError: If the ID is not <contestId><index>
        """
        match = PROBLEM_ID_PATTERN.match(problem_id or '')
        if not match:
            raise ValueError(f"Invalid problem ID format: {problem_id}")
        return ProblemRef(int(match.group(1)), match.group(2).upper())

    def problem_url(self, ref: ProblemRef) -> str:
        return f"{CODEFORCES_BASE}/problemset/problem/{ref.contest_id}/{ref.index}"

    def is_compilation_error(self, verdict: Optional[str]) -> bool:
        return verdict == COMPILATION_ERROR_VERDICT

"""
CodeChef adapter.

CodeChef has no stable public API. Existence is checked against the public
profile page, the profile comes from the unofficial ratings endpoint and
submissions come from the unofficial submissions endpoint with an HTML
fallback. Everything here is best-effort: malformed or drifting payloads
degrade to empty results instead of errors.
"""
import re
from datetime import datetime, timezone
from typing import Any, List, Optional
from urllib.parse import urlparse

from errors import BackendUnavailable, NotFound
from judge_adapter import JudgeAdapter
from logging_utils import log_judge_error
from models import Platform, ProblemRef, Submission, UserProfile


CODECHEF_BASE = "https://www.codechef.com"
CODECHEF_API_BASE = f"{CODECHEF_BASE}/api"

BROWSER_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36',
}

# Known phrasings of a compilation failure on CodeChef pages and payloads
COMPILATION_ERROR_PHRASES = ('compilation error', 'compile error', 'compilation_error')

# Beginner practice problems that are always available
CODECHEF_PROBLEMS = [
    ('TEST', 'Life, the Universe, and Everything'),
    ('INTEST', 'Enormous Input Test'),
    ('HS08TEST', 'ATM'),
    ('FLOW001', 'Add Two Numbers'),
    ('FLOW002', 'Sum of Digits'),
    ('FLOW003', 'FLOW003'),
    ('FLOW004', 'First and Last Digit'),
    ('FLOW005', 'Smallest Number in the List'),
    ('FLOW006', 'Reversed Number'),
    ('FLOW007', 'Reverse The Number'),
    ('FLOW008', 'FLOW008'),
    ('START01', 'Start Practice'),
    ('LADDU', 'Chef and Laddus'),
    ('CARVANS', 'Carvans'),
    ('LTIME', 'Lucky Time'),
    ('CHEFSTUD', 'Chef and his Students'),
    ('CNOTE', 'Chef and Notebook'),
    ('CHOPRT', 'Chopsticks'),
    ('DIFFSUM', 'Difference Sum'),
    ('REMISS', 'Remove Mission'),
]

PROBLEM_CODE_PATTERN = re.compile(r'^[A-Za-z0-9_]{1,32}$')

SUBMISSION_ROW_PATTERN = re.compile(
    r'data-problemcode="([^"]+)"[^>]*>.*?<span[^>]*class="[^"]*(?:AC|WA|CE|TLE|RTE|NZEC)[^"]*"[^>]*>([^<]+)',
    re.IGNORECASE | re.DOTALL
)


def stars_from_rating(rating: int) -> int:
    """
    Get CodeChef star count from rating.

    Args:
        rating: CodeChef rating

    Returns:
        Number of stars (1-7)
    """
    if rating >= 2500:
        return 7
    if rating >= 2200:
        return 6
    if rating >= 2000:
        return 5
    if rating >= 1800:
        return 4
    if rating >= 1600:
        return 3
    if rating >= 1400:
        return 2
    return 1


def star_rank_label(stars: int) -> str:
    return f"{stars} star"


CODECHEF_RANKS = [star_rank_label(stars) for stars in range(1, 8)]


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        match = re.search(r'\d+', str(value)) if value is not None else None
        return int(match.group(0)) if match else default


def _parse_timestamp(value: Any, fallback: int) -> int:
    """Epoch seconds from a number, a digit string or an ISO-8601 string."""
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return fallback
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    return fallback


class CodechefAdapter(JudgeAdapter):
    platform = Platform.CODECHEF

    def resolve_username(self, username: str) -> str:
        response = self._get(
            f"{CODECHEF_BASE}/users/{username}",
            'profile',
            headers=BROWSER_HEADERS,
            allow_redirects=True
        )

        if response.status_code == 404:
            raise NotFound(self.platform.value, username)

        if response.status_code == 200:
            # Unknown users get redirected away from /users/
            if '/users/' not in urlparse(response.url or '').path:
                raise NotFound(self.platform.value, username)
            return username

        log_judge_error(self.platform.value, 'profile', response.status_code)
        raise BackendUnavailable(self.platform.value, f"profile returned HTTP {response.status_code}")

    def validate_user(self, username: str) -> bool:
        try:
            self.resolve_username(username)
            return True
        except NotFound:
            return False

    def fetch_profile(self, username: str) -> UserProfile:
        response = self._get(f"{CODECHEF_API_BASE}/ratings/{username}", 'ratings')

        if response.status_code == 404:
            raise NotFound(self.platform.value, username)
        if response.status_code >= 500:
            log_judge_error(self.platform.value, 'ratings', response.status_code)
            raise BackendUnavailable(self.platform.value, f"ratings returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            # The endpoint drifts; fall back to a plain existence check
            print(f"CodeChef ratings payload unusable for {username}, falling back to profile check")
            canonical = self.resolve_username(username)
            return UserProfile(username=canonical, rank=None, rating=0)

        rating = _to_int(data.get('rating') or data.get('currentRating'))
        stars = _to_int(data.get('stars')) or stars_from_rating(rating)
        return UserProfile(username=username, rank=star_rank_label(stars), rating=rating)

    def fetch_recent_submissions(self, username: str, count: int = 20) -> List[Submission]:
        """
        Fetch recent submissions, newest first. Best-effort: entries without
        a parseable time, and every row of the HTML fallback, get the fetch
        time as their timestamp.

        Args:
            username: CodeChef username
            count: Number of submissions to request

        Returns:
            List of submissions (possibly empty)

        Raises:
            BackendUnavailable: On network failure or a 5xx from the fallback page
        """
        fetched_at = int(datetime.now(timezone.utc).timestamp())

        response = self._get(
            f"{CODECHEF_API_BASE}/submissions",
            'submissions',
            params={'username': username, 'limit': count},
            headers={'Accept': 'application/json', **BROWSER_HEADERS}
        )
        payload = self._json_or_none(response)
        if response.ok and isinstance(payload, list):
            return self._parse_submission_list(payload, fetched_at)[:count]

        response = self._get(
            f"{CODECHEF_BASE}/recent/user",
            'recent',
            params={'page': 0, 'user_handle': username},
            headers={'Accept': 'application/json', 'X-Requested-With': 'XMLHttpRequest'}
        )
        if response.status_code >= 500:
            log_judge_error(self.platform.value, 'recent', response.status_code)
            raise BackendUnavailable(self.platform.value, f"recent returned HTTP {response.status_code}")

        payload = self._json_or_none(response)
        if response.ok and isinstance(payload, dict) and isinstance(payload.get('content'), str):
            return parse_submissions_from_html(payload['content'], fetched_at)[:count]

        print(f"No usable CodeChef submission data for {username}")
        return []

    @staticmethod
    def _json_or_none(response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _parse_submission_list(entries: list, fetched_at: int) -> List[Submission]:
        submissions = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            code = entry.get('problemCode') or entry.get('problem_code')
            if not code:
                continue
            submissions.append(Submission(
                problem_ref=ProblemRef(None, str(code).strip()),
                verdict=str(entry.get('result') or entry.get('verdict') or ''),
                timestamp_seconds=_parse_timestamp(entry.get('date') or entry.get('time'), fetched_at),
                submission_id=str(entry['id']) if entry.get('id') is not None else None
            ))
        return submissions

    def parse_problem_ref(self, problem_id: str) -> ProblemRef:
        code = (problem_id or '').strip()
        if not PROBLEM_CODE_PATTERN.match(code):
            raise ValueError(f"Invalid problem code: {problem_id}")
        return ProblemRef(None, code.upper())

    def problem_url(self, ref: ProblemRef) -> str:
        return f"{CODECHEF_BASE}/problems/{ref.index}"

    def is_compilation_error(self, verdict: Optional[str]) -> bool:
        normalized = (verdict or '').strip().lower()
        if normalized == 'ce':
            return True
        return any(phrase in normalized for phrase in COMPILATION_ERROR_PHRASES)


def parse_submissions_from_html(html: str, fetched_at: int) -> List[Submission]:
    """
    Extract (problem code, verdict) pairs from the recent-submissions HTML.

    The page carries no machine-readable time, so every row is stamped with
    fetched_at. A compilation error made on the assigned problem before the
    session started therefore still counts while it stays in the recent list;
    CodeChef verification is weaker against replay than Codeforces.
    """
    submissions = []
    for match in SUBMISSION_ROW_PATTERN.finditer(html or ''):
        submissions.append(Submission(
            problem_ref=ProblemRef(None, match.group(1).strip()),
            verdict=match.group(2).strip(),
            timestamp_seconds=fetched_at
        ))
    return submissions

"""
Challenge problem selection.

Backends with a bulk problem listing are fetched once and cached; backends
without one pick from a curated list shipped with the bot.
"""
import random
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from errors import BackendUnavailable, VerificationError
from models import Platform, Problem, ProblemRef


class CachedProblemSource:
    """
    Problems from a bulk listing, filtered to a rating band and cached.

    Args:
        fetch: Returns the full problem list (may raise)
        min_rating: Lowest accepted rating, inclusive
        max_rating: Highest accepted rating, inclusive
        ttl_seconds: Cache lifetime
        clock: Monotonic clock (injectable for tests)
        rng: Random source (injectable for tests)
    """

    def __init__(
        self,
        fetch: Callable[[], List[Problem]],
        min_rating: int = 800,
        max_rating: int = 1500,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None
    ):
        self._fetch = fetch
        self.min_rating = min_rating
        self.max_rating = max_rating
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._cache: Optional[List[Problem]] = None
        self._cached_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        return (
            self._cache is not None
            and self._cached_at is not None
            and self._clock() - self._cached_at < self.ttl_seconds
        )

    def problems(self) -> List[Problem]:
        """
        Return the filtered problem list, refreshing the cache when stale.

        A failed refresh serves the stale cache if one exists.
        """
        with self._lock:
            if self._is_fresh():
                return self._cache

            try:
                fetched = self._fetch() or []
            except VerificationError as e:
                if self._cache is not None:
                    print(f"Problem list refresh failed ({e}), using stale cache")
                    return self._cache
                raise

            self._cache = [
                problem for problem in fetched
                if problem.rating is not None and self.min_rating <= problem.rating <= self.max_rating
            ]
            self._cached_at = self._clock()
            print(f"Cached {len(self._cache)} problems rated {self.min_rating}-{self.max_rating}")
            return self._cache

    def pick(self) -> Problem:
        problems = self.problems()
        if not problems:
            raise BackendUnavailable('catalog', "No problems available in the configured rating band")
        return self._rng.choice(problems)

    def contains(self, ref: ProblemRef) -> bool:
        return any(problem.id.upper() == str(ref).upper() for problem in self.problems())


class CuratedProblemSource:
    """Uniform choice over a fixed list of (code, name) pairs. No network, no cache."""

    def __init__(
        self,
        problems: Sequence[Tuple[str, str]],
        url_builder: Callable[[ProblemRef], str],
        rng: Optional[random.Random] = None
    ):
        self._problems = [
            Problem(id=code, name=name, url=url_builder(ProblemRef(None, code)))
            for code, name in problems
        ]
        self._rng = rng or random.Random()

    def problems(self) -> List[Problem]:
        return list(self._problems)

    def pick(self) -> Problem:
        if not self._problems:
            raise BackendUnavailable('catalog', "Curated problem list is empty")
        return self._rng.choice(self._problems)

    def contains(self, ref: ProblemRef) -> bool:
        return any(problem.id.upper() == str(ref).upper() for problem in self._problems)


class ProblemCatalog:
    """Routes problem requests to the source registered for each platform."""

    def __init__(self, sources: Dict[Platform, object]):
        self._sources = dict(sources)

    def _source(self, platform: Platform):
        try:
            return self._sources[platform]
        except KeyError:
            raise ValueError(f"No problem source registered for {platform.value}")

    def pick_problem(self, platform: Platform) -> Problem:
        """
        Pick a random challenge problem.

        Raises:
            BackendUnavailable: If the listing cannot be fetched and nothing is cached
        """
        return self._source(platform).pick()

    def validate_problem_exists(self, platform: Platform, ref: ProblemRef) -> bool:
        try:
            return self._source(platform).contains(ref)
        except (VerificationError, ValueError) as e:
            print(f"Could not validate problem {ref} on {platform.value}: {e}")
            return False

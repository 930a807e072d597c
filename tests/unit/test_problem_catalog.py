"""
Unit tests for problem_catalog module.

Tests challenge problem selection including:
- Rating band filtering
- Cache lifetime and refresh
- Stale cache served when a refresh fails
- Curated lists for backends without a listing
- Problem existence checks
"""
import pytest
import random
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add lambda directory to path
lambda_dir = Path(__file__).parent.parent.parent / 'lambda'
sys.path.insert(0, str(lambda_dir))

from errors import BackendUnavailable
from models import Platform, Problem, ProblemRef
from problem_catalog import CachedProblemSource, CuratedProblemSource, ProblemCatalog


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def cf(problem_id, rating):
    return Problem(id=problem_id, name=f"Problem {problem_id}", url=f"https://example/{problem_id}", rating=rating)


LISTING = [
    cf('1A', 1000),
    cf('2B', 800),
    cf('3C', 1500),
    cf('4D', 799),
    cf('5E', 1501),
    cf('6F', None),
    cf('7G', 2400),
]


@pytest.fixture
def clock():
    return FakeClock()


# ==============================================================================
# Cached Source
# ==============================================================================

@pytest.mark.unit
class TestCachedProblemSource:
    """Tests for CachedProblemSource."""

    def test_filters_to_inclusive_rating_band(self, clock):
        source = CachedProblemSource(lambda: LISTING, clock=clock)

        assert [p.id for p in source.problems()] == ['1A', '2B', '3C']

    def test_pick_stays_in_band(self, clock):
        source = CachedProblemSource(lambda: LISTING, clock=clock, rng=random.Random(7))

        for _ in range(50):
            assert 800 <= source.pick().rating <= 1500

    def test_custom_band(self, clock):
        source = CachedProblemSource(lambda: LISTING, min_rating=2000, max_rating=3000, clock=clock)

        assert [p.id for p in source.problems()] == ['7G']

    def test_listing_fetched_once_within_ttl(self, clock):
        fetch = MagicMock(return_value=LISTING)
        source = CachedProblemSource(fetch, ttl_seconds=3600, clock=clock)

        source.pick()
        clock.now = 3599
        source.pick()

        assert fetch.call_count == 1

    def test_refetch_after_ttl(self, clock):
        fetch = MagicMock(return_value=LISTING)
        source = CachedProblemSource(fetch, ttl_seconds=3600, clock=clock)

        source.pick()
        clock.now = 3600
        source.pick()

        assert fetch.call_count == 2

    def test_stale_cache_served_when_refresh_fails(self, clock):
        fetch = MagicMock(side_effect=[LISTING, BackendUnavailable('codeforces', 'down')])
        source = CachedProblemSource(fetch, ttl_seconds=10, clock=clock)

        source.pick()
        clock.now = 60
        problem = source.pick()

        assert problem.id in {'1A', '2B', '3C'}
        assert fetch.call_count == 2

    def test_failure_without_cache_raises(self, clock):
        source = CachedProblemSource(
            MagicMock(side_effect=BackendUnavailable('codeforces', 'down')),
            clock=clock
        )

        with pytest.raises(BackendUnavailable):
            source.pick()

    def test_empty_band_raises(self, clock):
        source = CachedProblemSource(lambda: [cf('7G', 2400)], clock=clock)

        with pytest.raises(BackendUnavailable) as exc_info:
            source.pick()

        assert exc_info.value.platform == 'catalog'

    def test_contains(self, clock):
        source = CachedProblemSource(lambda: LISTING, clock=clock)

        assert source.contains(ProblemRef(1, 'a')) is True
        assert source.contains(ProblemRef(7, 'G')) is False


# ==============================================================================
# Curated Source
# ==============================================================================

@pytest.mark.unit
class TestCuratedProblemSource:
    """Tests for CuratedProblemSource."""

    def test_builds_urls(self, codechef_adapter):
        source = CuratedProblemSource([('TEST', 'Life')], codechef_adapter.problem_url)

        problem = source.pick()

        assert problem.id == 'TEST'
        assert problem.name == 'Life'
        assert problem.url == 'https://www.codechef.com/problems/TEST'
        assert problem.rating is None

    def test_pick_from_list(self, codechef_adapter):
        codes = [('TEST', 'a'), ('INTEST', 'b'), ('FLOW001', 'c')]
        source = CuratedProblemSource(codes, codechef_adapter.problem_url, rng=random.Random(1))

        picked = {source.pick().id for _ in range(60)}

        assert picked <= {'TEST', 'INTEST', 'FLOW001'}
        assert len(picked) > 1

    def test_empty_list_raises(self, codechef_adapter):
        source = CuratedProblemSource([], codechef_adapter.problem_url)

        with pytest.raises(BackendUnavailable):
            source.pick()

    def test_contains_case_insensitive(self, codechef_adapter):
        source = CuratedProblemSource([('TEST', 'Life')], codechef_adapter.problem_url)

        assert source.contains(ProblemRef(None, 'test')) is True
        assert source.contains(ProblemRef(None, 'OTHER')) is False


# ==============================================================================
# Catalog
# ==============================================================================

@pytest.mark.unit
class TestProblemCatalog:
    """Tests for ProblemCatalog routing."""

    def test_pick_routes_by_platform(self, catalog):
        assert catalog.pick_problem(Platform.CODEFORCES).id == '1000A'
        assert catalog.pick_problem(Platform.CODECHEF).id == 'TEST'

    def test_validate_problem_exists(self, catalog):
        assert catalog.validate_problem_exists(Platform.CODEFORCES, ProblemRef(1000, 'A')) is True
        assert catalog.validate_problem_exists(Platform.CODECHEF, ProblemRef(None, 'NOPE')) is False

    def test_validate_swallows_backend_failure(self, clock):
        catalog = ProblemCatalog({
            Platform.CODEFORCES: CachedProblemSource(
                MagicMock(side_effect=BackendUnavailable('codeforces', 'down')), clock=clock
            )
        })

        assert catalog.validate_problem_exists(Platform.CODEFORCES, ProblemRef(1, 'A')) is False

    def test_unregistered_platform(self, clock):
        catalog = ProblemCatalog({})

        with pytest.raises(ValueError):
            catalog.pick_problem(Platform.CODECHEF)
        assert catalog.validate_problem_exists(Platform.CODECHEF, ProblemRef(None, 'TEST')) is False

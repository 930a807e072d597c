"""
Verification session orchestration.

A session moves NONE -> PENDING -> VERIFIED | EXPIRED. PENDING is the only
state that is stored; reaching either terminal state deletes the session.

Every public method returns VerificationResult objects instead of raising,
so the command layer only has to render them.
"""
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Dict, List, Optional

import dynamodb_operations as store
import matcher
from codechef_client import CODECHEF_PROBLEMS, CodechefAdapter
from codeforces_client import CodeforcesAdapter
from config import Settings, load_settings
from discord_api import assign_verification_roles
from errors import BackendUnavailable, DuplicateLink, NotFound, PersistenceError, VerificationError
from judge_adapter import JudgeAdapter
from models import (
    LinkedAccount,
    Outcome,
    Platform,
    RoleAssignment,
    VerificationResult,
    VerificationSession,
)
from problem_catalog import CachedProblemSource, CuratedProblemSource, ProblemCatalog
from rate_limit import RequestGate
from validation_utils import validate_judge_username
from verification_logic import format_remaining, get_expiration_time


RoleAssigner = Callable[[str, str, Platform, Optional[str]], RoleAssignment]


class VerificationService:
    """
    Coordinates judge adapters, the problem catalog and the session store.

    Args:
        adapters: One adapter per supported platform
        catalog: Source of challenge problems
        settings: Window length and fetch sizes
        assign_roles: Called after a successful verification with
            (user_id, guild_id, platform, rank)
    """

    def __init__(
        self,
        adapters: Dict[Platform, JudgeAdapter],
        catalog: ProblemCatalog,
        settings: Optional[Settings] = None,
        assign_roles: Optional[RoleAssigner] = None
    ):
        self.adapters = dict(adapters)
        self.catalog = catalog
        self.settings = settings or Settings()
        self._assign_roles = assign_roles

    def _adapter(self, platform: Platform) -> JudgeAdapter:
        try:
            return self.adapters[platform]
        except KeyError:
            raise ValueError(f"No adapter registered for {platform.value}")

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def start_session(self, user_id: str, guild_id: str, platform: Platform,
                      username: str) -> VerificationResult:
        """
        Validate the claimed account, pick a challenge problem and store a
        pending session, replacing any pending session for the same platform.

        Args:
            user_id: Discord user ID
            guild_id: Discord guild ID
            platform: Judge to link
            username: Claimed judge username

        Returns:
            STARTED with the challenge problem, or the reason it could not start
        """
        adapter = self._adapter(platform)
        name = platform.display_name
        username = (username or '').strip()

        def result(outcome: Outcome, message: str, **kwargs) -> VerificationResult:
            return VerificationResult(platform=platform, username=username, outcome=outcome,
                                      message=message, **kwargs)

        if not validate_judge_username(username):
            return result(Outcome.INVALID_INPUT,
                          f"**{username}** is not a valid {name} username.")

        try:
            username = adapter.resolve_username(username)
        except NotFound:
            return result(Outcome.NOT_FOUND,
                          f"{name} user **{username}** not found.\n\n"
                          f"Please check the username and try again.")
        except BackendUnavailable as e:
            print(f"Could not validate {platform.value} user: {e}")
            return result(Outcome.BACKEND_UNAVAILABLE,
                          f"Could not reach {name} to validate your account. Please try again later.")

        try:
            store.ensure_account_available(guild_id, platform, username, user_id)
        except DuplicateLink:
            return result(Outcome.DUPLICATE_LINK,
                          f"The {name} account **{username}** is already linked to another "
                          f"Discord user in this server.")
        except PersistenceError as e:
            print(f"Duplicate link check failed: {e}")
            return result(Outcome.STORAGE_ERROR, "Could not check existing links. Please try again later.")

        try:
            problem = self.catalog.pick_problem(platform)
        except BackendUnavailable as e:
            print(f"Could not pick a {platform.value} problem: {e}")
            return result(Outcome.BACKEND_UNAVAILABLE,
                          f"Could not fetch a {name} problem. Please try again later.")

        now = self._now()
        session = VerificationSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            guild_id=guild_id,
            platform=platform,
            username=username,
            problem_id=problem.id,
            problem_url=problem.url,
            problem_name=problem.name,
            started_at=now,
            expires_at=get_expiration_time(now, self.settings.verification_window_minutes)
        )

        try:
            store.save_session(session)
        except PersistenceError:
            return result(Outcome.STORAGE_ERROR,
                          "Could not save your verification. Please try again later.")

        remaining = session.remaining(now)
        return result(
            Outcome.STARTED,
            f"To verify you own the {name} account **{username}**, submit a "
            f"**Compilation Error** to the problem below, then run `/verify`.",
            problem_url=problem.url,
            problem_name=problem.name,
            problem_rating=problem.rating,
            time_remaining=format_remaining(remaining),
            remaining_seconds=int(remaining.total_seconds())
        )

    # ------------------------------------------------------------------
    # Verifying
    # ------------------------------------------------------------------

    def attempt_verify(self, user_id: str, guild_id: str,
                       platform: Optional[Platform] = None) -> List[VerificationResult]:
        """
        Check every pending session of the user (or only the given platform).

        Returns:
            One result per pending session; empty if there are none
        """
        try:
            sessions = store.list_sessions(user_id, guild_id, platform)
        except PersistenceError as e:
            print(f"Could not load pending verifications: {e}")
            return [VerificationResult(
                platform=platform, username=None, outcome=Outcome.STORAGE_ERROR,
                message="Could not load your pending verifications. Please try again later."
            )]

        now = self._now()
        return [self._verify_session(session, now) for session in sessions]

    def _verify_session(self, session: VerificationSession, now: datetime) -> VerificationResult:
        adapter = self._adapter(session.platform)
        name = session.platform.display_name

        if session.is_expired(now):
            try:
                store.delete_session(session.user_id, session.guild_id, session.platform, session.id)
            except PersistenceError as e:
                # The sweep removes it later
                print(f"Could not delete expired session {session.id}: {e}")
            return VerificationResult(
                platform=session.platform, username=session.username, outcome=Outcome.EXPIRED,
                message="Verification expired. Please start a new verification with `/link`.",
                time_remaining=format_remaining(session.remaining(now)), remaining_seconds=0
            )

        remaining = session.remaining(now)
        pending = dict(
            platform=session.platform,
            username=session.username,
            problem_url=session.problem_url,
            problem_name=session.problem_name,
            time_remaining=format_remaining(remaining),
            remaining_seconds=int(remaining.total_seconds())
        )

        try:
            problem_ref = adapter.parse_problem_ref(session.problem_id)
            submissions = adapter.fetch_recent_submissions(
                session.username, self.settings.submission_fetch_count)
        except ValueError as e:
            print(f"Stored session {session.id} is unusable: {e}")
            return VerificationResult(
                outcome=Outcome.INVALID_INPUT,
                message="This verification is corrupted. Please start again with `/link`.",
                **pending
            )
        except NotFound:
            return VerificationResult(
                outcome=Outcome.NOT_FOUND,
                message=f"{name} no longer reports the user **{session.username}**.",
                **pending
            )
        except BackendUnavailable as e:
            print(f"Error verifying {session.platform.value}: {e}")
            return VerificationResult(
                outcome=Outcome.BACKEND_UNAVAILABLE,
                message=f"Failed to check {name} submissions. Please try again later.",
                **pending
            )

        match = matcher.evaluate(
            problem_ref, session.started_at_seconds, submissions, adapter.is_compilation_error)
        print(f"Session {session.id} ({session.platform.value}): {match.outcome.value}")

        if match.verified:
            return self._finalize(session, adapter)

        return VerificationResult(outcome=match.outcome, message=match.message, **pending)

    def _finalize(self, session: VerificationSession, adapter: JudgeAdapter) -> VerificationResult:
        """Persist the link, drop the session, then request roles."""
        not_saved = VerificationResult(
            platform=session.platform, username=session.username,
            outcome=Outcome.VERIFIED_NOT_SAVED,
            message="Verification successful but failed to save. "
                    "Please run `/verify` again; there is no need to relink.",
            problem_url=session.problem_url, problem_name=session.problem_name
        )

        # Another member may have verified the same account since /link
        try:
            store.ensure_account_available(
                session.guild_id, session.platform, session.username, session.user_id)
        except DuplicateLink:
            try:
                store.delete_session(session.user_id, session.guild_id, session.platform, session.id)
            except PersistenceError as e:
                print(f"Could not delete session {session.id} for an account linked elsewhere: {e}")
            return VerificationResult(
                platform=session.platform, username=session.username, outcome=Outcome.DUPLICATE_LINK,
                message=f"The {session.platform.display_name} account **{session.username}** was "
                        f"linked to another Discord user in this server while you were verifying."
            )
        except PersistenceError as e:
            print(f"Duplicate link check failed during verification: {e}")
            return not_saved

        rank = None
        try:
            rank = adapter.fetch_profile(session.username).rank
        except VerificationError as e:
            print(f"Could not fetch rank for {session.platform.value} user, continuing without it: {e}")

        account = LinkedAccount(
            user_id=session.user_id,
            guild_id=session.guild_id,
            platform=session.platform,
            username=session.username,
            rank=rank,
            verified_at=self._now()
        )

        try:
            store.save_linked_account(account)
        except PersistenceError:
            not_saved.rank = rank
            return not_saved

        try:
            store.delete_session(session.user_id, session.guild_id, session.platform, session.id)
        except PersistenceError as e:
            print(f"Linked account saved but session {session.id} was not deleted: {e}")

        roles = RoleAssignment()
        message = "Account verified successfully!"
        if self._assign_roles is not None:
            try:
                roles = self._assign_roles(
                    session.user_id, session.guild_id, session.platform, rank) or RoleAssignment()
            except Exception as e:
                # The link is already recorded; a role outage must not undo it
                print(f"ERROR: Role assignment failed after verification: {e}")
                message += "\nI could not assign your roles. Please contact a server administrator."

        return VerificationResult(
            platform=session.platform, username=session.username, outcome=Outcome.VERIFIED,
            message=message, rank=rank, roles=roles
        )

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Delete all sessions past their expiry, whether or not their owner
        ever ran /verify.

        Raises:
            PersistenceError: If the sweep cannot complete
        """
        deleted = store.delete_expired_sessions(now or self._now())
        if deleted:
            print(f"Cleaned up {deleted} expired verification(s)")
        return deleted

    def linked_accounts(self, user_id: str, guild_id: str) -> List[LinkedAccount]:
        """Verified accounts of a user in a guild. Raises PersistenceError."""
        return store.get_linked_accounts(user_id, guild_id)


def build_verification_service(settings: Optional[Settings] = None) -> VerificationService:
    """
    Wire adapters, gates and the catalog from settings. Each adapter gets
    its own gate, created here and nowhere else.
    """
    settings = settings or load_settings()
    timeout = settings.judge_request_timeout_seconds

    codeforces = CodeforcesAdapter(RequestGate(settings.cf_request_spacing_ms / 1000), timeout)
    codechef = CodechefAdapter(RequestGate(settings.cc_request_spacing_ms / 1000), timeout)

    catalog = ProblemCatalog({
        Platform.CODEFORCES: CachedProblemSource(
            codeforces.list_problems,
            min_rating=settings.cf_min_rating,
            max_rating=settings.cf_max_rating,
            ttl_seconds=settings.problem_cache_seconds
        ),
        Platform.CODECHEF: CuratedProblemSource(CODECHEF_PROBLEMS, codechef.problem_url),
    })

    return VerificationService(
        adapters={Platform.CODEFORCES: codeforces, Platform.CODECHEF: codechef},
        catalog=catalog,
        settings=settings,
        assign_roles=assign_verification_roles
    )


@lru_cache(maxsize=1)
def get_verification_service() -> VerificationService:
    """Service shared by every invocation in this Lambda container."""
    return build_verification_service()

"""
Runtime settings read from the Lambda environment.
Secrets are not here; they come from SSM via ssm_utils.
"""
import os
from dataclasses import dataclass
from functools import lru_cache

from errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    verification_window_minutes: int = 10
    cf_min_rating: int = 800
    cf_max_rating: int = 1500
    problem_cache_seconds: int = 3600
    cf_request_spacing_ms: int = 250
    cc_request_spacing_ms: int = 500
    sweep_interval_minutes: int = 5
    judge_request_timeout_seconds: float = 15.0
    submission_fetch_count: int = 20
    bot_token_parameter: str = '/cp-verification-bot/token'

    def validate(self) -> 'Settings':
        """
        Reject settings that would break session invariants.

        Returns:
            self, so the call can be chained

        Raises:
            ConfigurationError: If a value is out of range
        """
        if self.verification_window_minutes <= 0:
            raise ConfigurationError("VERIFICATION_WINDOW_MINUTES must be positive")
        if self.cf_min_rating > self.cf_max_rating:
            raise ConfigurationError("CF_MIN_RATING must not exceed CF_MAX_RATING")
        if self.problem_cache_seconds < 0:
            raise ConfigurationError("PROBLEM_CACHE_SECONDS must not be negative")
        if self.cf_request_spacing_ms < 0 or self.cc_request_spacing_ms < 0:
            raise ConfigurationError("Request spacing must not be negative")
        if self.sweep_interval_minutes <= 0:
            raise ConfigurationError("SWEEP_INTERVAL_MINUTES must be positive")
        if self.judge_request_timeout_seconds <= 0:
            raise ConfigurationError("JUDGE_REQUEST_TIMEOUT_SECONDS must be positive")
        if self.submission_fetch_count <= 0:
            raise ConfigurationError("SUBMISSION_FETCH_COUNT must be positive")
        return self


def _env_number(name: str, default, cast=int):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def settings_from_env() -> Settings:
    """Build Settings from environment variables, falling back to defaults."""
    defaults = Settings()
    return Settings(
        verification_window_minutes=_env_number(
            'VERIFICATION_WINDOW_MINUTES', defaults.verification_window_minutes),
        cf_min_rating=_env_number('CF_MIN_RATING', defaults.cf_min_rating),
        cf_max_rating=_env_number('CF_MAX_RATING', defaults.cf_max_rating),
        problem_cache_seconds=_env_number('PROBLEM_CACHE_SECONDS', defaults.problem_cache_seconds),
        cf_request_spacing_ms=_env_number('CF_REQUEST_SPACING_MS', defaults.cf_request_spacing_ms),
        cc_request_spacing_ms=_env_number('CC_REQUEST_SPACING_MS', defaults.cc_request_spacing_ms),
        sweep_interval_minutes=_env_number('SWEEP_INTERVAL_MINUTES', defaults.sweep_interval_minutes),
        judge_request_timeout_seconds=_env_number(
            'JUDGE_REQUEST_TIMEOUT_SECONDS', defaults.judge_request_timeout_seconds, float),
        submission_fetch_count=_env_number('SUBMISSION_FETCH_COUNT', defaults.submission_fetch_count),
        bot_token_parameter=os.environ.get('BOT_TOKEN_PARAMETER', defaults.bot_token_parameter),
    ).validate()


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Process-wide settings, read once per Lambda container."""
    settings = settings_from_env()
    print(f"Loaded settings: window={settings.verification_window_minutes}m, "
          f"cf_band=[{settings.cf_min_rating},{settings.cf_max_rating}], "
          f"sweep={settings.sweep_interval_minutes}m")
    return settings

"""Environment-driven settings for the ping client and collector."""

import os
from dataclasses import dataclass

from pingmon.backoff import BackoffPolicy

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DATA_PATH = "/data"
DEFAULT_PROBE_URL = "https://fundraiseup.com/"
DEFAULT_COLLECTOR_URL = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}{DATA_PATH}"


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_int(name: str, default: int | None, minimum: int = 1) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class ClientSettings:
    """Settings of the ping client process."""

    probe_url: str = DEFAULT_PROBE_URL
    collector_url: str = DEFAULT_COLLECTOR_URL
    interval_ms: int = 1000
    timeout_ms: int = 10_000
    backoff: BackoffPolicy = BackoffPolicy.EXPONENTIAL
    max_attempts: int | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Read settings from PINGMON_* environment variables.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        backoff_name = _env_str("PINGMON_BACKOFF", BackoffPolicy.EXPONENTIAL.value)
        try:
            backoff = BackoffPolicy(backoff_name.lower())
        except ValueError:
            raise ValueError(f"Unknown PINGMON_BACKOFF: {backoff_name!r}") from None

        return cls(
            probe_url=_env_str("PINGMON_PROBE_URL", DEFAULT_PROBE_URL),
            collector_url=_env_str("PINGMON_COLLECTOR_URL", DEFAULT_COLLECTOR_URL),
            interval_ms=_env_int("PINGMON_PROBE_INTERVAL_MS", 1000),
            timeout_ms=_env_int("PINGMON_REQUEST_TIMEOUT_MS", 10_000),
            backoff=backoff,
            max_attempts=_env_int("PINGMON_MAX_ATTEMPTS", None),
        )


@dataclass(frozen=True)
class CollectorSettings:
    """Settings of the collector process."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    outcome: str = "random"
    seed: int | None = None

    @classmethod
    def from_env(cls) -> "CollectorSettings":
        """Read settings from PINGMON_* environment variables.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        return cls(
            host=_env_str("PINGMON_HOST", DEFAULT_HOST),
            port=_env_int("PINGMON_PORT", DEFAULT_PORT, minimum=0),
            outcome=_env_str("PINGMON_OUTCOME", "random").lower(),
            seed=_env_int("PINGMON_SEED", None, minimum=0),
        )

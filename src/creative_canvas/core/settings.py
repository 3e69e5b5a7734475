"""
Execution Settings - Tunables for job polling and run coordination.

Settings are stored as JSON under ~/.config/creative_canvas/settings.json.
A missing file yields defaults; a corrupt file is logged and also yields
defaults so the engine can always start.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "creative_canvas" / "settings.json"

FAILURE_POLICIES = ("skip-dependents", "abort")


@dataclass
class ExecutionSettings:
    """
    Configuration for JobTracker and ExecutionCoordinator.

    Attributes:
        service_url: Base URL of the generation service
        api_key: API key sent to the generation service
        poll_interval: Seconds between status polls
        max_poll_retries: Consecutive transient poll failures tolerated
        backoff_base: First retry delay in seconds (doubles per attempt)
        backoff_max: Upper bound for a retry delay
        job_timeout: Wall-clock limit for one job in seconds
        failure_policy: "skip-dependents" or "abort"
        max_concurrent_jobs: Cap on in-flight jobs per wave (0 = no cap)
        model_cache_ttl: Seconds a discovered model list stays fresh
    """
    service_url: str = "http://localhost:8000/api"
    api_key: str = ""
    poll_interval: float = 2.0
    max_poll_retries: int = 5
    backoff_base: float = 0.5
    backoff_max: float = 8.0
    job_timeout: float = 600.0
    failure_policy: str = "skip-dependents"
    max_concurrent_jobs: int = 0
    model_cache_ttl: float = 300.0

    def __post_init__(self):
        if self.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"Unknown failure policy '{self.failure_policy}', "
                f"expected one of {', '.join(FAILURE_POLICIES)}"
            )
        if self.poll_interval < 0 or self.job_timeout <= 0:
            raise ValueError("poll_interval must be >= 0 and job_timeout > 0")
        if self.max_poll_retries < 0 or self.max_concurrent_jobs < 0:
            raise ValueError("max_poll_retries and max_concurrent_jobs must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExecutionSettings:
        """Create settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.debug("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
        return cls(**{key: value for key, value in data.items() if key in known})


def load_settings(path: Path | None = None) -> ExecutionSettings:
    """Load settings from file, falling back to defaults."""
    if path is None:
        path = DEFAULT_SETTINGS_PATH

    if not path.exists():
        return ExecutionSettings()

    try:
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings file must contain a JSON object")
        return ExecutionSettings.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Failed to load settings from %s: %s", path, e)
        return ExecutionSettings()


def save_settings(settings: ExecutionSettings, path: Path | None = None) -> Path:
    """Save settings to file. Returns the path written."""
    if path is None:
        path = DEFAULT_SETTINGS_PATH

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path

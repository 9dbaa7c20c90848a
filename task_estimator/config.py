"""Configuration for the task estimator.

The estimator configuration is immutable once constructed. It can be
built from defaults, environment variables, a dictionary or a TOML file:

    [estimator]
    ai_enabled = true
    ai_provider = "anthropic"
    min_confidence = 0.3
    fallback_hours = 0.5
    auto_sync_interval_hours = 4
    ai_cache_ttl_days = 7
    cache_path = "${HOME}/.local/share/tasksh/ai_cache.sqlite3"
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .utils import default_data_dir, resolve_env_vars_in_dict

logger = logging.getLogger(__name__)

SUPPORTED_AI_PROVIDERS = ("openai", "anthropic")


@dataclass(frozen=True)
class EstimatorConfig:
    """Estimator behavior configuration."""

    use_ai: bool = False
    ai_enabled: bool = False
    ai_provider: str = "openai"
    ai_model: str | None = None  # Uses provider default if not set
    prefer_tracked_time: bool = True
    min_confidence: float = 0.3
    cache_ai_estimates: bool = True
    cache_path: Path | None = None
    ai_cache_ttl: timedelta = timedelta(days=7)
    fallback_hours: float = 0.5  # 30 minutes is a reasonable default
    auto_sync_interval: timedelta = timedelta(hours=4)
    auto_sync_enabled: bool = True
    sync_window: timedelta = timedelta(days=7)

    @property
    def ai_active(self) -> bool:
        """Whether the AI source should participate in estimation."""
        return self.ai_enabled or self.use_ai

    @property
    def resolved_cache_path(self) -> Path:
        """Cache database path, defaulting to the shared tasksh data directory."""
        return self.cache_path or (default_data_dir() / "ai_cache.sqlite3")

    @classmethod
    def default(cls) -> "EstimatorConfig":
        """Create a default configuration."""
        return cls()

    @classmethod
    def with_env_defaults(cls) -> "EstimatorConfig":
        """Create config with AI provider defaults from environment variables."""
        return cls(
            ai_provider=os.getenv("TASK_ESTIMATOR_AI_PROVIDER", "openai"),
            ai_model=os.getenv("TASK_ESTIMATOR_AI_MODEL"),  # None if not set
        )

    @classmethod
    def from_file(cls, path: Path) -> "EstimatorConfig":
        """Load configuration from a TOML file.

        Args:
            path: Path to TOML configuration file

        Returns:
            EstimatorConfig instance

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in configuration file: {e}")

        try:
            resolved = resolve_env_vars_in_dict(data)
        except ValueError as e:
            raise ConfigError(str(e))

        return cls.from_dict(resolved.get("estimator", {}))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EstimatorConfig":
        """Create configuration from a dictionary.

        Durations are given in hours/days; unknown keys are ignored.

        Args:
            data: Configuration dictionary (contents of the [estimator] table)

        Returns:
            EstimatorConfig instance

        Raises:
            ConfigError: If a value has the wrong type or fails validation
        """
        defaults = cls.with_env_defaults()
        cache_path = data.get("cache_path")

        try:
            config = cls(
                use_ai=bool(data.get("use_ai", defaults.use_ai)),
                ai_enabled=bool(data.get("ai_enabled", defaults.ai_enabled)),
                ai_provider=str(data.get("ai_provider", defaults.ai_provider)),
                ai_model=data.get("ai_model", defaults.ai_model),
                prefer_tracked_time=bool(
                    data.get("prefer_tracked_time", defaults.prefer_tracked_time)
                ),
                min_confidence=float(data.get("min_confidence", defaults.min_confidence)),
                cache_ai_estimates=bool(
                    data.get("cache_ai_estimates", defaults.cache_ai_estimates)
                ),
                cache_path=Path(cache_path).expanduser() if cache_path else None,
                ai_cache_ttl=timedelta(days=float(data.get("ai_cache_ttl_days", 7))),
                fallback_hours=float(data.get("fallback_hours", defaults.fallback_hours)),
                auto_sync_interval=timedelta(
                    hours=float(data.get("auto_sync_interval_hours", 4))
                ),
                auto_sync_enabled=bool(
                    data.get("auto_sync_enabled", defaults.auto_sync_enabled)
                ),
                sync_window=timedelta(days=float(data.get("sync_window_days", 7))),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid estimator configuration: {e}")

        errors = config.validate()
        if errors:
            raise ConfigError(
                "Invalid estimator configuration:\n  - " + "\n  - ".join(errors),
                details=errors,
            )
        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        data: dict[str, Any] = {
            "use_ai": self.use_ai,
            "ai_enabled": self.ai_enabled,
            "ai_provider": self.ai_provider,
            "prefer_tracked_time": self.prefer_tracked_time,
            "min_confidence": self.min_confidence,
            "cache_ai_estimates": self.cache_ai_estimates,
            "ai_cache_ttl_days": self.ai_cache_ttl / timedelta(days=1),
            "fallback_hours": self.fallback_hours,
            "auto_sync_interval_hours": self.auto_sync_interval / timedelta(hours=1),
            "auto_sync_enabled": self.auto_sync_enabled,
            "sync_window_days": self.sync_window / timedelta(days=1),
        }
        # TOML has no null
        if self.ai_model is not None:
            data["ai_model"] = self.ai_model
        if self.cache_path is not None:
            data["cache_path"] = str(self.cache_path)
        return data

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not 0.0 <= self.min_confidence <= 1.0:
            errors.append(f"min_confidence must be between 0 and 1, got {self.min_confidence}")
        if self.fallback_hours <= 0:
            errors.append(f"fallback_hours must be positive, got {self.fallback_hours}")
        if self.auto_sync_interval <= timedelta(0):
            errors.append("auto_sync_interval must be positive")
        if self.ai_cache_ttl <= timedelta(0):
            errors.append("ai_cache_ttl must be positive")
        if self.sync_window <= timedelta(0):
            errors.append("sync_window must be positive")
        if self.ai_provider.lower() not in SUPPORTED_AI_PROVIDERS:
            errors.append(
                f"Unknown AI provider: {self.ai_provider}. "
                f"Supported: {list(SUPPORTED_AI_PROVIDERS)}"
            )

        return errors


def load_config(path: Path | None = None) -> EstimatorConfig:
    """Load estimator configuration.

    Args:
        path: Optional TOML file; environment defaults are used without one

    Returns:
        Loaded EstimatorConfig
    """
    if path is None:
        logger.debug("No configuration file given, using environment defaults")
        return EstimatorConfig.with_env_defaults()
    return EstimatorConfig.from_file(path)

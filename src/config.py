"""Configuration management for Hook Janitor.

Loads environment variables and provides centralized config access.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

from src.analyzer.similarity import SimilaritySettings

__version__ = "1.0.0"


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self):
        """Initialize config by loading .env file."""
        # Load .env from project root
        project_root = Path(__file__).parent.parent
        self.project_root = project_root
        env_path = project_root / ".env"
        load_dotenv(env_path)

        # Validate values eagerly so a bad setting fails before a pass starts
        self._validate()

    def _validate(self):
        """Validate numeric settings.

        Raises:
            ValueError: If a value does not parse or is out of range
        """
        for label, value in (
            ("HOOK_JANITOR_SIMILARITY_THRESHOLD", self.similarity_threshold),
            ("HOOK_JANITOR_NAME_WEIGHT", self.name_weight),
            ("HOOK_JANITOR_PARAM_WEIGHT", self.param_weight),
        ):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{label} must be between 0 and 1, got {value}")

        if self.suggestion_limit < 1:
            raise ValueError(f"HOOK_JANITOR_SUGGESTION_LIMIT must be at least 1, got {self.suggestion_limit}")
        if self.workers < 1:
            raise ValueError(f"HOOK_JANITOR_WORKERS must be at least 1, got {self.workers}")

    @staticmethod
    def _number(name: str, default, cast):
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return cast(raw)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {raw!r}") from None

    @property
    def rules_dir(self) -> Path:
        """Get hook rules directory.

        Returns:
            HOOK_JANITOR_RULES_DIR, or rules/hooks under the project root
        """
        return Path(os.getenv("HOOK_JANITOR_RULES_DIR", str(self.project_root / "rules" / "hooks")))

    @property
    def similarity_threshold(self) -> float:
        return self._number("HOOK_JANITOR_SIMILARITY_THRESHOLD", 0.5, float)

    @property
    def name_weight(self) -> float:
        return self._number("HOOK_JANITOR_NAME_WEIGHT", 0.6, float)

    @property
    def param_weight(self) -> float:
        return self._number("HOOK_JANITOR_PARAM_WEIGHT", 0.4, float)

    @property
    def suggestion_limit(self) -> int:
        return self._number("HOOK_JANITOR_SUGGESTION_LIMIT", 5, int)

    @property
    def workers(self) -> int:
        """Get analysis thread count.

        Returns:
            Number of declarations evaluated concurrently
        """
        return self._number("HOOK_JANITOR_WORKERS", 4, int)

    def similarity_settings(self) -> SimilaritySettings:
        """Snapshot the scoring settings for one analysis pass."""
        return SimilaritySettings(
            name_weight=self.name_weight,
            param_weight=self.param_weight,
            threshold=self.similarity_threshold,
            limit=self.suggestion_limit,
        )


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached Config so the next get_config() re-reads the environment."""
    global _config
    _config = None

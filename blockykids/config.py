"""
BlockyKids Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # Remote execution service
    EXECUTOR_URL: str = os.getenv("BLOCKYKIDS_EXECUTOR_URL", "http://localhost:2358")
    EXECUTOR_TIMEOUT_MS: int = int(os.getenv("BLOCKYKIDS_EXECUTOR_TIMEOUT_MS", "10000"))
    EXECUTOR_BASE64: bool = _env_bool("BLOCKYKIDS_BASE64", "true")
    HEALTH_TIMEOUT_SECONDS: float = float(os.getenv("BLOCKYKIDS_HEALTH_TIMEOUT", "5"))

    # Local interpreter bounds
    LOCAL_TIMEOUT_MS: int = int(os.getenv("BLOCKYKIDS_LOCAL_TIMEOUT_MS", "2000"))
    STEP_BUDGET: int = int(os.getenv("BLOCKYKIDS_STEP_BUDGET", "10000"))
    ACTION_BUDGET: int = int(os.getenv("BLOCKYKIDS_ACTION_BUDGET", "1000"))

    # Replay pacing multiplier (0 disables animation delays)
    REPLAY_PACE: float = float(os.getenv("BLOCKYKIDS_REPLAY_PACE", "1.0"))

    # Failed attempts on a level before the next hint unlocks
    ASSIST_AFTER: int = int(os.getenv("BLOCKYKIDS_ASSIST_AFTER", "3"))

    # Sessions
    SESSION_MAX_AGE_SECONDS: int = int(os.getenv("BLOCKYKIDS_SESSION_MAX_AGE", "3600"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_JSON: bool = _env_bool("LOG_JSON", "false")

    # HTTP API
    ALLOWED_ORIGINS: list[str] = os.getenv("ALLOWED_ORIGINS", "*").split(",")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors for unusable values."""
        if not cls.EXECUTOR_URL.startswith(("http://", "https://")):
            raise ValueError(
                "BLOCKYKIDS_EXECUTOR_URL must be an http(s) URL, "
                f"got {cls.EXECUTOR_URL!r}"
            )
        if cls.EXECUTOR_TIMEOUT_MS <= 0 or cls.LOCAL_TIMEOUT_MS <= 0:
            raise ValueError("Execution timeouts must be positive")
        if cls.STEP_BUDGET <= 0 or cls.ACTION_BUDGET <= 0:
            raise ValueError("Step and action budgets must be positive")
        if cls.REPLAY_PACE < 0:
            raise ValueError("BLOCKYKIDS_REPLAY_PACE cannot be negative")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "BlockyKids Configuration:",
            f"  Executor: {cls.EXECUTOR_URL} (timeout {cls.EXECUTOR_TIMEOUT_MS}ms, base64={cls.EXECUTOR_BASE64})",
            f"  Local: timeout {cls.LOCAL_TIMEOUT_MS}ms, {cls.STEP_BUDGET} steps, {cls.ACTION_BUDGET} actions",
            f"  Replay pace: {cls.REPLAY_PACE}x",
            f"  Assist after: {cls.ASSIST_AFTER} failed attempts",
            f"  Log level: {cls.LOG_LEVEL}",
        ]
        return "\n".join(lines)

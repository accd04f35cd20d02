"""Environment-driven settings for the agent service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("sqlite", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_number(name: str, raw: Optional[str], default, cast):
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class AgentSettings:
    """Validated runtime settings.

    Attributes:
        openai_api_key: Key for the OpenAI client. Optional when a client is injected.
        model: Responses API model name.
        timeout_seconds: Per-request timeout for the OpenAI client.
        max_output_tokens: Output token cap for each model call.
        storage_backend: ``sqlite`` or ``memory``.
        database_dir: Directory holding ``app.db``; required for sqlite.
        reset_database: Delete the database file on startup.
        include_screenshot: Attach page screenshots to the model context.
        commit_attempts: Tries for a turn commit that hits a locked database.
        commit_backoff_seconds: Linear backoff step between commit tries.
        log_level: Root log level.
    """

    openai_api_key: Optional[str] = None
    model: str = "gpt-5"
    timeout_seconds: float = 120.0
    max_output_tokens: int = 8192
    storage_backend: str = "sqlite"
    database_dir: Optional[str] = None
    reset_database: bool = False
    include_screenshot: bool = False
    commit_attempts: int = 3
    commit_backoff_seconds: float = 0.1
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.storage_backend = self.storage_backend.strip().lower()
        self.log_level = self.log_level.strip().upper()
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"AGENT_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {self.storage_backend!r}"
            )
        if self.storage_backend == "sqlite" and not (self.database_dir and self.database_dir.strip()):
            raise ValueError("DATABASE_DIR must be set when AGENT_STORAGE_BACKEND is sqlite")
        if not self.model.strip():
            raise ValueError("OPENAI_MODEL must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("OPENAI_TIMEOUT_SECONDS must be positive")
        if self.max_output_tokens <= 0:
            raise ValueError("AGENT_MAX_OUTPUT_TOKENS must be positive")
        if self.commit_attempts < 1:
            raise ValueError("AGENT_COMMIT_ATTEMPTS must be at least 1")
        if self.commit_backoff_seconds < 0:
            raise ValueError("AGENT_COMMIT_BACKOFF_SECONDS must not be negative")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AgentSettings":
        """Build settings from `environ`, or from os.environ after loading `.env`."""
        if environ is None:
            load_dotenv()
            environ = os.environ
        env = environ.get
        return cls(
            openai_api_key=env("OPENAI_API_KEY") or None,
            model=env("OPENAI_MODEL") or "gpt-5",
            timeout_seconds=_parse_number("OPENAI_TIMEOUT_SECONDS", env("OPENAI_TIMEOUT_SECONDS"), 120.0, float),
            max_output_tokens=_parse_number("AGENT_MAX_OUTPUT_TOKENS", env("AGENT_MAX_OUTPUT_TOKENS"), 8192, int),
            storage_backend=env("AGENT_STORAGE_BACKEND") or "sqlite",
            database_dir=env("DATABASE_DIR") or None,
            reset_database=_parse_bool("DATABASE_RESET_ON_STARTUP", env("DATABASE_RESET_ON_STARTUP"), False),
            include_screenshot=_parse_bool("AGENT_INCLUDE_SCREENSHOT", env("AGENT_INCLUDE_SCREENSHOT"), False),
            commit_attempts=_parse_number("AGENT_COMMIT_ATTEMPTS", env("AGENT_COMMIT_ATTEMPTS"), 3, int),
            commit_backoff_seconds=_parse_number(
                "AGENT_COMMIT_BACKOFF_SECONDS", env("AGENT_COMMIT_BACKOFF_SECONDS"), 0.1, float
            ),
            log_level=env("LOG_LEVEL") or "INFO",
        )

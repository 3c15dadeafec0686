from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _int_env(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """
    Global application settings loaded from environment variables.

    This class should remain dependency-free and side-effect free
    except for loading environment variables.
    """

    # Environment
    env: str
    log_level: str

    # Discord
    discord_token: str
    discord_guild_id: int | None

    # Database
    db_path: Path

    # Leaderboard
    leaderboard_channel_id: int | None
    leaderboard_window_size: int
    leaderboard_cache_ttl_seconds: int
    leaderboard_admin_role: str | None

    @classmethod
    def load(cls) -> "Settings":
        """
        Load settings from environment variables.
        """

        # Load .env for local development
        load_dotenv()

        env = os.getenv("ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")

        discord_token = os.getenv("DISCORD_TOKEN")
        if not discord_token:
            raise RuntimeError("DISCORD_TOKEN is required")

        db_path = Path(os.getenv("DB_PATH", "./data/leaderboard.sqlite"))
        db_path.parent.mkdir(parents=True, exist_ok=True)

        window_size = _int_env("LEADERBOARD_WINDOW_SIZE", 50)
        if window_size < 0:
            raise RuntimeError("LEADERBOARD_WINDOW_SIZE must be >= 0")

        cache_ttl = _int_env("LEADERBOARD_CACHE_TTL_SECONDS", 30)
        if cache_ttl < 0:
            raise RuntimeError("LEADERBOARD_CACHE_TTL_SECONDS must be >= 0")

        # 0 disables the channel panel
        channel_id = _int_env("LEADERBOARD_CHANNEL_ID", None) or None

        return cls(
            env=env,
            log_level=log_level,
            discord_token=discord_token,
            discord_guild_id=_int_env("DISCORD_GUILD_ID", None),
            db_path=db_path,
            leaderboard_channel_id=channel_id,
            leaderboard_window_size=window_size,
            leaderboard_cache_ttl_seconds=cache_ttl,
            leaderboard_admin_role=os.getenv("LEADERBOARD_ADMIN_ROLE") or None,
        )

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDESLIGA_TEAMS = [
    "Bayer 04 Leverkusen",
    "Bayern München",
    "Borussia Dortmund",
    "RB Leipzig",
    "VfB Stuttgart",
    "Eintracht Frankfurt",
    "SC Freiburg",
    "TSG Hoffenheim",
    "1. FC Heidenheim",
    "Werder Bremen",
    "VfL Wolfsburg",
    "FC Augsburg",
    "Borussia Mönchengladbach",
    "1. FC Union Berlin",
    "VfL Bochum",
    "1. FC Köln",
    "FSV Mainz 05",
    "SV Darmstadt 98",
]


class FanCircleSettings(BaseSettings):
    """Unified configuration for fancircle.

    Environment variables are prefixed with FANCIRCLE_.
    """

    model_config = SettingsConfigDict(env_prefix="FANCIRCLE_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="WARNING", description="Python logging level")

    # --- Graph DB (Neo4j) ---
    neo4j_uri: str = Field(default="bolt://localhost:7687")
    neo4j_user: str = Field(default="neo4j")
    neo4j_password: str | None = Field(default=None)
    neo4j_database: str = Field(default="neo4j")
    neo4j_connect_attempts: int = Field(default=5, description="Attempts before giving up on connect")

    # --- Sessions ---
    secret_key: str = Field(default="change-me", description="HMAC key for session tokens")
    session_file: str = Field(default="~/.fancircle/session.token")
    session_ttl_seconds: int = 3600
    bcrypt_rounds: int = 12

    # --- Admin bootstrap ---
    admin_email: str = "admin@admin.de"
    admin_password: str = "admin123"

    # --- Feeds ---
    teams: list[str] = Field(default_factory=lambda: list(BUNDESLIGA_TEAMS))
    extra_team_threshold: int = Field(
        default=5, description="Friends sharing a club before it enters a fan's feed"
    )
    journalist_top_limit: int = 5
    recent_window_ms: int = 86_400_000


settings = FanCircleSettings()

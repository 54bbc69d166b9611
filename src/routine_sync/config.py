"""Engine configuration loaded from environment variables.

Both observed variants of the routine viewer are reproducible from one engine:
the auto-selecting, non-clearable one and the clearable one that waits for the
user to pick a class.
"""

from pydantic import Field
from pydantic_settings import BaseSettings

# Upstream period documents are not uniformly shaped. First non-empty wins.
DEFAULT_FIELD_ALIASES: dict[str, list[str]] = {
    "subject": ["sname", "subject", "name"],
    "teacher": ["tname", "teacher", "faculty"],
    "code": ["scode", "code"],
    "room": ["room", "venue"],
}


class RoutineSyncConfig(BaseSettings):
    """Engine configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Data source
    entity_collection: str = Field(
        default="routines",
        description="Top-level collection holding one document per class",
    )

    # Selection behaviour
    auto_select_first: bool = Field(
        default=False,
        description="Select the first class on the first non-empty catalog load",
    )
    clearable: bool = Field(
        default=True,
        description="Allow the selection to be cleared back to no class",
    )
    show_offline_overlay: bool = Field(
        default=True,
        description="Expose connectivity loss to the rendering consumer",
    )

    # Record normalization
    field_aliases: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_FIELD_ALIASES.items()},
        description="Ordered source field names per period field (JSON in env)",
    )

    # Subscription retry
    subscribe_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts when opening a listener fails transiently",
    )
    subscribe_retry_wait_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Fixed wait between listener open attempts",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "ROUTINE_SYNC_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: RoutineSyncConfig | None = None


def get_config() -> RoutineSyncConfig:
    """Get the engine configuration singleton.

    Returns:
        RoutineSyncConfig: Engine configuration instance
    """
    global _config
    if _config is None:
        _config = RoutineSyncConfig()
    return _config

"""Configuration models for the KB revision sync engine."""

import uuid

from pydantic import BaseModel, Field, HttpUrl, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class KbCoordinates(BaseModel):
    """Where the KB lives on the remote server and the identity used to reach it.

    Credentials are resolved by the caller; they are carried here as opaque
    values and handed to the collaborators untouched.
    """

    server_url: HttpUrl = Field(default=..., description="Remote KB server URL")
    kb_name: str = Field(default=..., min_length=1, description="KB alias on the server")
    kb_version: str | None = Field(default=None, description="KB version to track (None for trunk)")
    username: str | None = Field(default=None, description="Resolved server username")
    password: SecretStr | None = Field(default=None, description="Resolved server password")


class KbDatabaseOptions(BaseModel):
    """Options for the local KB database, used on checkout only."""

    server_instance: str | None = Field(default=None, description="Database server instance")
    database_name: str | None = Field(default=None, description="Database name for the local KB")
    username: str | None = Field(default=None, description="Database username")
    password: SecretStr | None = Field(default=None, description="Database password")
    create_db_in_kb_folder: bool = Field(
        default=True, description="Create the database files inside the KB folder"
    )
    get_all_kb_versions: bool = Field(
        default=False, description="Check out every KB version instead of the tracked one"
    )

    @property
    def use_integrated_security(self) -> bool:
        return not self.username

    def resolve_database_name(self, kb_name: str) -> str:
        """Return the configured database name, or a unique one derived from the KB name."""
        if self.database_name and self.database_name.strip():
            return self.database_name
        return f"GX_KB_{kb_name}_{uuid.uuid4()}"


class StoreConfig(BaseModel):
    """Configuration for per-build revision records."""

    revision_file_name: str = Field(
        default="revision.json", description="Record file name inside each build directory"
    )
    legacy_revision_file_names: list[str] = Field(
        default_factory=lambda: ["revision.txt"],
        description="Older record names read when the current one is absent",
    )
    changelog_file_name: str = Field(
        default="changelog.json", description="Changelog file name inside each build directory"
    )


class WorkspaceConfig(BaseModel):
    """Configuration for local workspace inspection."""

    kb_marker_pattern: str = Field(
        default="*.gxw", description="Glob matched (case-insensitive) to detect an existing KB"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    Loaded from environment variables with the KBSYNC_ prefix, or built from a
    YAML document by ConfigLoader.
    """

    model_config = SettingsConfigDict(
        env_prefix="KBSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    kb: KbCoordinates
    database: KbDatabaseOptions = Field(default_factory=KbDatabaseOptions)
    store: StoreConfig = Field(default_factory=StoreConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

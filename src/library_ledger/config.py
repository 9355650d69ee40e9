"""Configuration management for the Library Ledger server.

Settings come from ``LIBRARY_LEDGER_*`` environment variables or a local
``.env`` file. The entry point builds one ``LedgerConfig`` and passes what
each component needs to it directly: the database URL to the
``DatabaseManager``, the history limit to the loan resources, and the
startup integrity policy to ``main()``. Nothing below the entry point reads
configuration on its own.
"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Server configuration for one library database."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        # Unknown LIBRARY_LEDGER_* keys are tolerated, not stored
        extra="ignore",
    )

    # === Identity ===

    server_name: str = Field(
        default="library-ledger",
        description="Name reported to clients in the MCP handshake",
        pattern=r"^[a-z0-9-]+$",
        min_length=3,
        max_length=50,
    )

    server_version: str = Field(
        default="0.1.0",
        description="Semantic version reported in the MCP handshake",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    # === Storage ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="Location of the SQLite ledger file",
    )

    # === Front End ===

    transport: str = Field(
        default="stdio",
        description="The front end talks to the server over stdin/stdout only",
        pattern=r"^stdio$",
    )

    history_limit: int = Field(
        default=50,
        description="Transactions listed by the library://loans/history resource",
        ge=1,
        le=500,
    )

    # === Startup Checks ===

    check_integrity_on_start: bool = Field(
        default=True,
        description="Compare every book's available copies with its open loans at startup",
    )

    repair_on_start: bool = Field(
        default=False,
        description="Rewrite drifted availability counters at startup",
    )

    # === Logging ===

    debug: bool = Field(default=False, description="Verbose logging, including fastmcp")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("database_path")
    @classmethod
    def prepare_database_path(cls, v: Path) -> Path:
        """Anchor the ledger file to an absolute path and create its directory."""
        db_file = v.expanduser().absolute()
        try:
            db_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ValueError(f"Cannot create database directory {db_file.parent}: {e}") from e
        if db_file.is_dir():
            raise ValueError(f"Database path {db_file} is a directory")
        return db_file

    @model_validator(mode="after")
    def repair_needs_check(self) -> "LedgerConfig":
        if self.repair_on_start and not self.check_integrity_on_start:
            raise ValueError("repair_on_start requires check_integrity_on_start")
        return self

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        """Identity logged at startup and sent in the handshake."""
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def get_database_url(self) -> str:
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Holds the process-wide configuration once the entry point asks for it."""

    instance: LedgerConfig | None = None


def get_config() -> LedgerConfig:
    """Load the configuration on first use and return the same object afterwards."""
    if _ConfigStore.instance is None:
        _ConfigStore.instance = LedgerConfig()
    return _ConfigStore.instance


def reset_config() -> None:
    """Forget the loaded configuration so the next ``get_config()`` re-reads it."""
    _ConfigStore.instance = None

"""
Identity Audit Bridge Configuration.

Settings for the audit database, logging and the identity provider client,
loaded from environment variables (and an optional .env file).
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeConfig(BaseSettings):
    """
    Bridge configuration from environment variables.

    Environment Variables:
        BRIDGE_AUDIT_DB_PATH: SQLite file written by the audit store (default: data/audit.db)
        BRIDGE_AUDIT_DB_RO_PATH: SQLite file read by queries, e.g. a replica (default: same as write path)
        BRIDGE_LOG_LEVEL: Log level (default: INFO)
        BRIDGE_JSON_LOGS: JSON log output (default: True)
        BRIDGE_LOG_FILE: Optional log file in addition to stdout
        BRIDGE_BACK_OFFICE_ORIGIN: Origin tag of audit trail entries (default: back-office)
        BRIDGE_PROVIDER_ORIGIN: Origin tag of ingested provider events (default: keycloak)
        BRIDGE_PROVIDER_TIMEOUT_SECONDS: Deadline for identity provider calls (default: 5)

    Usage:
        config = BridgeConfig()
        store = AuditStore(config.audit_db_path, config.audit_db_ro_path)
    """

    model_config = SettingsConfigDict(
        env_prefix="BRIDGE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Audit storage
    audit_db_path: str = Field(default="data/audit.db", description="Read-write audit database")
    audit_db_ro_path: Optional[str] = Field(default=None, description="Read-only audit database")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=True, description="Render logs as JSON")
    log_file: Optional[str] = Field(default=None, description="Additional log file")

    # Origins written into audit rows
    back_office_origin: str = Field(default="back-office", min_length=1)
    provider_origin: str = Field(default="keycloak", min_length=1)

    # Identity provider
    provider_timeout_seconds: float = Field(default=5.0, gt=0, le=120, description="Provider call deadline")


def load_config() -> BridgeConfig:
    """Load configuration from the environment."""
    return BridgeConfig()

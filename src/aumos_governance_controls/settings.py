"""Service-specific settings for aumos-governance-controls.

Settings use the AUMOS_GOVERNANCE_CONTROLS_ prefix and cover:
- Structured logging output
- Default catalog seeding at engine construction
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for aumos-governance-controls.

    Environment variable prefix: AUMOS_GOVERNANCE_CONTROLS_
    """

    service_name: str = "aumos-governance-controls"

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(
        default="INFO",
        description="Root log level: DEBUG | INFO | WARNING | ERROR | CRITICAL.",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines instead of human-readable console output.",
    )

    # -------------------------------------------------------------------------
    # Catalog seeding
    # -------------------------------------------------------------------------

    seed_default_catalog: bool = Field(
        default=False,
        description="Load the bundled default tenant controls and sample environments "
        "when the engine is constructed.",
    )
    catalog_path: Path | None = Field(
        default=None,
        description="Optional YAML catalog to load at construction, after the default "
        "catalog when both are enabled.",
    )

    model_config = SettingsConfigDict(env_prefix="AUMOS_GOVERNANCE_CONTROLS_")

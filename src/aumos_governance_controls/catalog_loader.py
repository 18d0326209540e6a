"""YAML catalog loading for governance controls and environments.

A catalog file has three optional top-level keys:

    environments:          list of environment definitions
    tenant_controls:       list of tenant control definitions
    environment_controls:  mapping of environment id -> list of control definitions

Entries are kept as raw mappings here; the catalog and registry validate
them on insertion so a catalog goes through the same checks as any write.
"""

from pathlib import Path
from typing import Any

import yaml

from aumos_governance_controls.errors import NotFoundError, ValidationError
from aumos_governance_controls.observability import get_logger

logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "default_catalog.yaml"


class CatalogDocument:
    """Parsed catalog file.

    Args:
        data: YAML-deserialized catalog mapping.
        source: Where the catalog came from, for log context.
    """

    def __init__(self, data: dict[str, Any], source: str = "inline") -> None:
        self.source = source
        self.environments: list[dict[str, Any]] = list(data.get("environments") or [])
        self.tenant_controls: list[dict[str, Any]] = list(data.get("tenant_controls") or [])
        self.environment_controls: dict[str, list[dict[str, Any]]] = {
            environment_id: list(controls or [])
            for environment_id, controls in (data.get("environment_controls") or {}).items()
        }

    def control_count(self) -> int:
        return len(self.tenant_controls) + sum(
            len(controls) for controls in self.environment_controls.values()
        )


def parse_catalog(text: str, source: str = "inline") -> CatalogDocument:
    """Parse catalog YAML text.

    Raises:
        ValidationError: If the text is not valid YAML or not a mapping.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValidationError(message=f"Catalog {source} is not valid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError(message=f"Catalog {source} must be a mapping at the top level")
    for key in ("environments", "tenant_controls"):
        if raw.get(key) is not None and not isinstance(raw[key], list):
            raise ValidationError(message=f"Catalog key '{key}' must be a list", field=key)
    if raw.get("environment_controls") is not None and not isinstance(
        raw["environment_controls"], dict
    ):
        raise ValidationError(
            message="Catalog key 'environment_controls' must be a mapping",
            field="environment_controls",
        )
    return CatalogDocument(raw, source=source)


def load_catalog_file(path: Path) -> CatalogDocument:
    """Read and parse a catalog file.

    Raises:
        NotFoundError: If the file does not exist.
        ValidationError: If the file cannot be parsed.
    """
    if not path.exists():
        raise NotFoundError(message=f"Catalog file '{path}' not found", field="catalog_path")

    document = parse_catalog(path.read_text(encoding="utf-8"), source=str(path))
    logger.debug(
        "Catalog file parsed",
        path=str(path),
        environments=len(document.environments),
        controls=document.control_count(),
    )
    return document

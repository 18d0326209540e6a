"""Governance controls engine: the call API consumed by dashboards and reports.

Wires the components together, leaves first:

    EnvironmentCatalog + ControlRegistry
        -> InheritanceResolver (applicability + merge)
        -> ComplianceValidator
        -> GovernanceReporter

One engine is constructed per process (see create_default_engine) and
passed to whatever serves reads. There is no module-level instance.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from aumos_governance_controls.catalog_loader import (
    DEFAULT_CATALOG_PATH,
    CatalogDocument,
    load_catalog_file,
)
from aumos_governance_controls.core.catalog import EnvironmentCatalog
from aumos_governance_controls.core.configuration import ConfigurationView, configuration_view
from aumos_governance_controls.core.models import (
    ComplianceResult,
    ControlPriority,
    ControlStatus,
    ControlType,
    ControlWriteResult,
    EffectiveControl,
    EnvironmentContext,
    EnvironmentSummary,
    GovernanceControl,
    GovernanceSummary,
    PolicyInheritance,
)
from aumos_governance_controls.core.registry import ControlRegistry
from aumos_governance_controls.core.reporter import GovernanceReporter
from aumos_governance_controls.core.resolver import InheritanceResolver
from aumos_governance_controls.core.validator import ComplianceValidator
from aumos_governance_controls.observability import configure_logging, get_logger
from aumos_governance_controls.settings import Settings

logger = get_logger(__name__)


class GovernanceControlsEngine:
    """Facade over the catalog, registry, resolver, validator and reporter.

    Args:
        catalog: Environment catalog. A new empty catalog when omitted.
        registry: Control registry bound to ``catalog``. Created when omitted.
    """

    def __init__(
        self,
        catalog: EnvironmentCatalog | None = None,
        registry: ControlRegistry | None = None,
    ) -> None:
        self.catalog = catalog or EnvironmentCatalog()
        self.registry = registry or ControlRegistry(self.catalog)
        self.resolver = InheritanceResolver(self.registry, self.catalog)
        self.validator = ComplianceValidator(self.registry, self.catalog)
        self.reporter = GovernanceReporter(self.registry, self.catalog)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def put_tenant_control(
        self, control: GovernanceControl | Mapping[str, Any]
    ) -> GovernanceControl:
        return self.registry.put_tenant_control(control)

    def put_environment_control(
        self,
        environment_id: str,
        control: GovernanceControl | Mapping[str, Any],
    ) -> ControlWriteResult:
        return self.registry.put_environment_control(environment_id, control)

    def get_tenant_controls(
        self,
        control_type: ControlType | None = None,
        priority: ControlPriority | None = None,
        status: ControlStatus | None = None,
    ) -> list[GovernanceControl]:
        return self.registry.get_tenant_controls(
            control_type=control_type, priority=priority, status=status
        )

    def get_environment_controls(
        self,
        environment_id: str,
        control_type: ControlType | None = None,
        include_inherited: bool = False,
    ) -> list[GovernanceControl]:
        return self.registry.get_environment_controls(
            environment_id, control_type=control_type, include_inherited=include_inherited
        )

    def effective_controls(self, environment_id: str) -> list[EffectiveControl]:
        return self.resolver.effective_controls(environment_id)

    def describe_inheritance(self, control_id: str) -> PolicyInheritance:
        return self.resolver.describe_inheritance(control_id)

    def inheritance_matrix(self) -> list[PolicyInheritance]:
        return self.resolver.inheritance_matrix()

    @staticmethod
    def typed_configuration(control: GovernanceControl) -> ConfigurationView:
        """Return the typed configuration view for a stored or effective control."""
        return configuration_view(control)

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    def list_environments(self) -> list[EnvironmentContext]:
        return self.catalog.list_environments()

    def get_environment(self, environment_id: str) -> EnvironmentContext:
        return self.catalog.get_environment(environment_id)

    def upsert_environment(
        self, environment: EnvironmentContext | Mapping[str, Any]
    ) -> EnvironmentContext:
        return self.catalog.upsert_environment(environment)

    def update_environment(self, environment_id: str, **changes: Any) -> EnvironmentContext:
        return self.catalog.update_environment(environment_id, **changes)

    # ------------------------------------------------------------------
    # Compliance and reporting
    # ------------------------------------------------------------------

    def validate(self) -> ComplianceResult:
        return self.validator.validate()

    def summary(self) -> GovernanceSummary:
        return self.reporter.summary()

    def environment_summaries(self) -> list[EnvironmentSummary]:
        return self.reporter.environment_summaries()

    # ------------------------------------------------------------------
    # Catalog loading
    # ------------------------------------------------------------------

    def apply_catalog(self, document: CatalogDocument) -> None:
        """Insert every entry of a parsed catalog.

        Environments go first so that environment controls can reference
        them, then tenant controls, then environment controls. Entries are
        applied one by one; a malformed entry raises and leaves the entries
        before it in place.
        """
        for environment in document.environments:
            self.catalog.upsert_environment(environment)
        for control in document.tenant_controls:
            self.registry.put_tenant_control(control)
        for environment_id, controls in document.environment_controls.items():
            for control in controls:
                self.registry.put_environment_control(environment_id, control)

        logger.info(
            "Governance catalog applied",
            source=document.source,
            environments=len(document.environments),
            controls=document.control_count(),
        )

    def load_catalog(self, path: Path) -> None:
        """Load a YAML catalog file into the engine."""
        self.apply_catalog(load_catalog_file(path))

    def load_default_catalog(self) -> None:
        """Load the bundled default controls and sample environments."""
        self.load_catalog(DEFAULT_CATALOG_PATH)


def create_default_engine(
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> GovernanceControlsEngine:
    """Construct the process-wide engine from settings.

    Args:
        settings: Engine settings. Read from the environment when omitted.
        configure_logs: Configure structlog from the settings.

    Returns:
        A ready GovernanceControlsEngine, seeded as the settings request.
    """
    settings = settings or Settings()
    if configure_logs:
        configure_logging(level=settings.log_level, json_output=settings.log_json)

    engine = GovernanceControlsEngine()
    if settings.seed_default_catalog:
        engine.load_default_catalog()
    if settings.catalog_path is not None:
        engine.load_catalog(settings.catalog_path)

    logger.info(
        "Governance controls engine ready",
        service=settings.service_name,
        environments=len(engine.list_environments()),
        tenant_controls=len(engine.get_tenant_controls()),
    )
    return engine

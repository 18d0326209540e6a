"""Inheritance resolver: tenant controls plus environment overrides.

For one environment the resolver walks every enabled tenant control that
applies to it and combines it with the environment's override (if any):

- no override: the tenant control is emitted verbatim
- override, overridable: tenant and override are merged
- override, not overridable: the tenant control wins and a scope conflict
  is recorded

Environment records with no tenant counterpart are then appended as
environment-only controls. Output order is tenant insertion order followed
by environment insertion order; callers sort for display.

Merge rules:
- enforcement: the override applies only when the tenant is not ``strict``
- configuration: shallow key-wise union, override keys win
- status: taken from the override when the override sets it
- everything else comes from the tenant record
"""

from collections.abc import Mapping

from aumos_governance_controls.core.applicability import applies
from aumos_governance_controls.core.catalog import EnvironmentCatalog
from aumos_governance_controls.core.configuration import merge_configuration
from aumos_governance_controls.core.models import (
    Conflict,
    EffectiveControl,
    EnvironmentContext,
    GovernanceControl,
    PolicyInheritance,
)
from aumos_governance_controls.core.registry import (
    ControlRegistry,
    RegistrySnapshot,
    override_conflict,
)
from aumos_governance_controls.errors import NotFoundError
from aumos_governance_controls.observability import get_logger

logger = get_logger(__name__)


def merge_controls(
    tenant_control: GovernanceControl, override: GovernanceControl
) -> GovernanceControl:
    """Apply an environment override as a partial patch on a tenant control.

    Args:
        tenant_control: The tenant-level record.
        override: The environment record sharing the same id.

    Returns:
        A new control at ``environment`` level. Inputs are not mutated.
    """
    update: dict[str, object] = {
        "level": "environment",
        "configuration": merge_configuration(
            tenant_control.configuration, override.configuration
        ),
    }
    if override.is_set("enforcement") and tenant_control.enforcement != "strict":
        update["enforcement"] = override.enforcement
    if override.is_set("status"):
        update["status"] = override.status
    return tenant_control.model_copy(deep=True, update=update)


def enforcement_conflict(
    tenant_control: GovernanceControl,
    override: GovernanceControl,
    environment_id: str,
) -> Conflict | None:
    """Return a conflict when an override tries to weaken strict enforcement."""
    if tenant_control.enforcement != "strict":
        return None
    if not override.is_set("enforcement") or override.enforcement == "strict":
        return None
    return Conflict(
        control_id=tenant_control.id,
        environment_id=environment_id,
        conflict_type="enforcement",
        description=(
            f"Override requested '{override.enforcement}' enforcement but tenant "
            f"enforcement for '{tenant_control.display_name}' is strict"
        ),
        resolution="tenant_wins",
    )


def resolve_effective_controls(
    snapshot: RegistrySnapshot, environment: EnvironmentContext
) -> list[EffectiveControl]:
    """Resolve the effective controls of one environment from a registry snapshot."""
    overrides = snapshot.overrides_for(environment.id)
    effective: list[EffectiveControl] = []

    for tenant_control in snapshot.tenant_controls.values():
        if tenant_control.status != "enabled" or not applies(tenant_control, environment):
            continue

        override = overrides.get(tenant_control.id)
        if override is None:
            effective.append(
                EffectiveControl.from_control(
                    tenant_control.model_copy(update={"level": "tenant"}), "tenant"
                )
            )
            continue

        conflict = override_conflict(tenant_control, environment.id)
        if conflict is not None:
            effective.append(
                EffectiveControl.from_control(
                    tenant_control.model_copy(update={"level": "tenant"}),
                    "tenant",
                    [conflict],
                )
            )
            continue

        conflicts: list[Conflict] = []
        weakened = enforcement_conflict(tenant_control, override, environment.id)
        if weakened is not None:
            conflicts.append(weakened)
        effective.append(
            EffectiveControl.from_control(
                merge_controls(tenant_control, override),
                "environment-override",
                conflicts,
            )
        )

    for control_id, record in overrides.items():
        if control_id in snapshot.tenant_controls:
            continue
        effective.append(
            EffectiveControl.from_control(
                record.model_copy(update={"level": "environment"}), "environment"
            )
        )

    return effective


def describe_inheritance(
    snapshot: RegistrySnapshot,
    environments: Mapping[str, EnvironmentContext],
    control_id: str,
) -> PolicyInheritance:
    """Describe how one tenant control is overridden across environments.

    Raises:
        NotFoundError: If no tenant control has the given id.
    """
    tenant_control = snapshot.tenant_controls.get(control_id)
    if tenant_control is None:
        raise NotFoundError(
            message=f"Tenant control '{control_id}' not found",
            field="control_id",
        )

    inheritance = PolicyInheritance(
        control_id=control_id,
        tenant_policy=tenant_control.model_copy(deep=True),
    )
    for environment_id in environments:
        override = snapshot.overrides_for(environment_id).get(control_id)
        if override is None:
            continue
        inheritance.environment_overrides[environment_id] = override.model_copy(deep=True)
        inheritance.inheritance_chain.append(environment_id)
        conflict = override_conflict(tenant_control, environment_id)
        if conflict is not None:
            inheritance.conflicts.append(conflict)
    return inheritance


class InheritanceResolver:
    """Resolves effective controls from the live registry and catalog.

    Every call works on a fresh snapshot; nothing is cached.

    Args:
        registry: The control registry.
        catalog: The environment catalog.
    """

    def __init__(self, registry: ControlRegistry, catalog: EnvironmentCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    def effective_controls(self, environment_id: str) -> list[EffectiveControl]:
        """Return the effective controls for an environment.

        Raises:
            NotFoundError: If the environment is unknown.
        """
        environment = self._catalog.get_environment(environment_id)
        effective = resolve_effective_controls(self._registry.snapshot(), environment)
        logger.debug(
            "Resolved effective controls",
            environment_id=environment_id,
            count=len(effective),
            conflicts=sum(len(control.conflicts) for control in effective),
        )
        return effective

    def describe_inheritance(self, control_id: str) -> PolicyInheritance:
        """Describe one tenant control's overrides across all environments."""
        return describe_inheritance(
            self._registry.snapshot(), self._catalog.snapshot(), control_id
        )

    def inheritance_matrix(self) -> list[PolicyInheritance]:
        """Describe every tenant control, in tenant insertion order."""
        snapshot = self._registry.snapshot()
        environments = self._catalog.snapshot()
        return [
            describe_inheritance(snapshot, environments, control_id)
            for control_id in snapshot.tenant_controls
        ]

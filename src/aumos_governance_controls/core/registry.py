"""Control registry: the single owner of all GovernanceControl records.

The registry keeps tenant controls keyed by id and one override map per
environment id, also keyed by control id. State is held in an immutable
RegistrySnapshot that is rebuilt and swapped atomically on every write:

- Readers call snapshot() and work on a consistent view without locking.
- Writers serialize on a lock, so concurrent writes never lose updates.

Environment writes that target a non-overridable tenant control are stored
anyway and reported as latent conflicts. The Inheritance Resolver is the
component that decides the outcome (tenant wins).
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import pydantic

from aumos_governance_controls.core.applicability import applies
from aumos_governance_controls.core.catalog import EnvironmentCatalog
from aumos_governance_controls.core.models import (
    Conflict,
    ControlPriority,
    ControlStatus,
    ControlType,
    ControlWriteResult,
    GovernanceControl,
)
from aumos_governance_controls.errors import NotFoundError, ValidationError
from aumos_governance_controls.observability import get_logger

logger = get_logger(__name__)

_EMPTY: Mapping[str, GovernanceControl] = MappingProxyType({})


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the registry at one point in time.

    Attributes:
        tenant_controls: Tenant controls by id, in insertion order.
        environment_controls: Per-environment records by control id.
    """

    tenant_controls: Mapping[str, GovernanceControl] = field(
        default_factory=lambda: MappingProxyType({})
    )
    environment_controls: Mapping[str, Mapping[str, GovernanceControl]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def overrides_for(self, environment_id: str) -> Mapping[str, GovernanceControl]:
        return self.environment_controls.get(environment_id, _EMPTY)


def override_conflict(
    tenant_control: GovernanceControl, environment_id: str
) -> Conflict | None:
    """Return the scope conflict raised by overriding a non-overridable control."""
    if tenant_control.override_allowed:
        return None
    return Conflict(
        control_id=tenant_control.id,
        environment_id=environment_id,
        conflict_type="scope",
        description=(
            f"Environment override not allowed by tenant policy "
            f"'{tenant_control.display_name}'"
        ),
        resolution="tenant_wins",
    )


def _coerce_control(data: GovernanceControl | Mapping[str, Any]) -> GovernanceControl:
    if isinstance(data, GovernanceControl):
        return data.model_copy(deep=True)
    try:
        return GovernanceControl.model_validate(data)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field_name = ".".join(str(part) for part in first["loc"]) or None
        raise ValidationError(
            message=f"Invalid control definition: {first['msg']}",
            field=field_name,
        ) from exc


def _matches_filter(
    control: GovernanceControl,
    control_type: ControlType | None,
    priority: ControlPriority | None,
    status: ControlStatus | None,
) -> bool:
    if control_type is not None and control.type != control_type:
        return False
    if priority is not None and control.priority != priority:
        return False
    if status is not None and control.status != status:
        return False
    return True


class ControlRegistry:
    """Copy-on-write store for tenant controls and environment overrides.

    Args:
        catalog: Environment catalog used to reject writes for unknown
            environments and to evaluate inherited controls.
    """

    def __init__(self, catalog: EnvironmentCatalog) -> None:
        self._catalog = catalog
        self._snapshot = RegistrySnapshot()
        self._write_lock = threading.Lock()

    def snapshot(self) -> RegistrySnapshot:
        """Return the current immutable registry snapshot."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put_tenant_control(
        self, control: GovernanceControl | Mapping[str, Any]
    ) -> GovernanceControl:
        """Insert or replace a tenant-level control.

        ``level`` is forced to ``tenant``; a ``scope`` of ``environment`` is
        widened to ``both``. Replacing an existing id keeps its position in
        insertion order.

        Args:
            control: The control definition.

        Returns:
            A copy of the stored control.

        Raises:
            ValidationError: If the control is malformed or has no type.
        """
        record = _coerce_control(control)
        if record.type is None:
            raise ValidationError(
                message=f"Tenant control '{record.id}' must declare a type",
                field="type",
            )
        update: dict[str, Any] = {"level": "tenant"}
        if record.scope == "environment":
            update["scope"] = "both"
        record = record.model_copy(update=update)

        with self._write_lock:
            current = self._snapshot
            tenant_controls = dict(current.tenant_controls)
            tenant_controls[record.id] = record
            self._snapshot = RegistrySnapshot(
                tenant_controls=MappingProxyType(tenant_controls),
                environment_controls=current.environment_controls,
            )
            overridden_in = [
                env_id
                for env_id, overrides in current.environment_controls.items()
                if record.id in overrides
            ]

        logger.info(
            "Tenant control stored",
            control_id=record.id,
            control_type=record.type,
            priority=record.priority,
            override_allowed=record.override_allowed,
        )
        if overridden_in and not record.override_allowed:
            logger.warning(
                "Tenant control is not overridable but has environment overrides",
                control_id=record.id,
                environment_ids=overridden_in,
            )
        return record.model_copy(deep=True)

    def put_environment_control(
        self,
        environment_id: str,
        control: GovernanceControl | Mapping[str, Any],
    ) -> ControlWriteResult:
        """Insert or replace an environment-level control or override.

        The write always succeeds for a known environment, even when the
        tenant counterpart forbids overrides; in that case the returned
        result carries the latent conflict.

        Args:
            environment_id: Target environment.
            control: The control definition or partial override.

        Returns:
            ControlWriteResult with a copy of the stored record and the
            latent conflict, if any.

        Raises:
            NotFoundError: If the environment is unknown.
            ValidationError: If the control is malformed, or is an untyped
                record with no tenant counterpart.
        """
        if self._catalog.find_environment(environment_id) is None:
            raise NotFoundError(
                message=f"Environment '{environment_id}' not found",
                field="environment_id",
            )
        record = _coerce_control(control).model_copy(update={"level": "environment"})

        with self._write_lock:
            current = self._snapshot
            tenant_control = current.tenant_controls.get(record.id)
            if tenant_control is None and record.type is None:
                raise ValidationError(
                    message=(
                        f"Environment control '{record.id}' has no tenant counterpart "
                        "and must declare a type"
                    ),
                    field="type",
                )
            environment_controls = dict(current.environment_controls)
            overrides = dict(environment_controls.get(environment_id, _EMPTY))
            overrides[record.id] = record
            environment_controls[environment_id] = MappingProxyType(overrides)
            self._snapshot = RegistrySnapshot(
                tenant_controls=current.tenant_controls,
                environment_controls=MappingProxyType(environment_controls),
            )

        conflict = override_conflict(tenant_control, environment_id) if tenant_control else None
        if conflict is not None:
            logger.warning(
                "Environment override stored for non-overridable control",
                control_id=record.id,
                environment_id=environment_id,
                resolution=conflict.resolution,
            )
        else:
            logger.info(
                "Environment control stored",
                control_id=record.id,
                environment_id=environment_id,
                is_override=tenant_control is not None,
            )
        return ControlWriteResult(control=record.model_copy(deep=True), conflict=conflict)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_tenant_controls(
        self,
        control_type: ControlType | None = None,
        priority: ControlPriority | None = None,
        status: ControlStatus | None = None,
    ) -> list[GovernanceControl]:
        """Return tenant controls matching all given filters, in insertion order."""
        return [
            control.model_copy(deep=True)
            for control in self._snapshot.tenant_controls.values()
            if _matches_filter(control, control_type, priority, status)
        ]

    def get_environment_controls(
        self,
        environment_id: str,
        control_type: ControlType | None = None,
        include_inherited: bool = False,
    ) -> list[GovernanceControl]:
        """Return the records stored for an environment.

        Args:
            environment_id: Target environment.
            control_type: Optional exact-match type filter.
            include_inherited: Also return inheritable tenant controls that
                apply to the environment, after the environment's own records.

        Raises:
            NotFoundError: If the environment is unknown.
        """
        environment = self._catalog.get_environment(environment_id)
        snapshot = self._snapshot
        controls = list(snapshot.overrides_for(environment_id).values())

        if include_inherited:
            controls.extend(
                control
                for control in snapshot.tenant_controls.values()
                if control.inheritance_allowed and applies(control, environment)
            )

        return [
            control.model_copy(deep=True)
            for control in controls
            if _matches_filter(control, control_type, None, None)
        ]

    def latent_conflicts(self) -> list[Conflict]:
        """Return a conflict for every stored override of a non-overridable control."""
        snapshot = self._snapshot
        conflicts: list[Conflict] = []
        for environment_id, overrides in snapshot.environment_controls.items():
            for control_id in overrides:
                tenant_control = snapshot.tenant_controls.get(control_id)
                if tenant_control is None:
                    continue
                conflict = override_conflict(tenant_control, environment_id)
                if conflict is not None:
                    conflicts.append(conflict)
        return conflicts

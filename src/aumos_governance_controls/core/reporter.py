"""Governance reporter: read-only aggregates for dashboard summary cards.

The reporter holds no decision logic: scores and violations come from the
validator. The per-environment ``display_score`` is a card heuristic,
max(0, 100 - 10 * violations), and is not the validator score.
"""

from collections import Counter

from aumos_governance_controls.core.catalog import EnvironmentCatalog
from aumos_governance_controls.core.models import (
    EnvironmentSummary,
    GovernanceControl,
    GovernanceSummary,
)
from aumos_governance_controls.core.registry import ControlRegistry, RegistrySnapshot
from aumos_governance_controls.core.resolver import resolve_effective_controls
from aumos_governance_controls.core.validator import evaluate_compliance

_DISPLAY_PENALTY_PER_VIOLATION = 10
_UNCLASSIFIED = "unclassified"


def display_score(violation_count: int) -> int:
    """Summary card score: 100 minus 10 per violation, floored at 0."""
    return max(0, 100 - _DISPLAY_PENALTY_PER_VIOLATION * violation_count)


def _classify(record: GovernanceControl, snapshot: RegistrySnapshot) -> tuple[str, str]:
    # Partial overrides report the type and priority of their tenant control
    # unless they set their own.
    tenant_control = snapshot.tenant_controls.get(record.id)
    control_type = record.type
    priority = record.priority
    if tenant_control is not None and record.level == "environment":
        control_type = control_type or tenant_control.type
        if not record.is_set("priority"):
            priority = tenant_control.priority
    return control_type or _UNCLASSIFIED, priority


class GovernanceReporter:
    """Builds summary aggregates from the registry, catalog and validator.

    Args:
        registry: The control registry.
        catalog: The environment catalog.
    """

    def __init__(self, registry: ControlRegistry, catalog: EnvironmentCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    def summary(self) -> GovernanceSummary:
        """Return the executive governance summary."""
        snapshot = self._registry.snapshot()
        environments = self._catalog.snapshot()
        compliance = evaluate_compliance(snapshot, environments)

        records = list(snapshot.tenant_controls.values())
        for overrides in snapshot.environment_controls.values():
            records.extend(overrides.values())

        by_type: Counter[str] = Counter()
        by_priority: Counter[str] = Counter()
        for record in records:
            control_type, priority = _classify(record, snapshot)
            by_type[control_type] += 1
            by_priority[priority] += 1

        return GovernanceSummary(
            tenant_controls=len(snapshot.tenant_controls),
            environment_controls=sum(
                len(overrides) for overrides in snapshot.environment_controls.values()
            ),
            total_environments=len(environments),
            compliance_score=compliance.overall.score,
            critical_violations=compliance.overall.critical_violations,
            controls_by_type=dict(by_type),
            controls_by_priority=dict(by_priority),
        )

    def environment_summaries(self) -> list[EnvironmentSummary]:
        """Return one summary card per environment, in catalog order."""
        snapshot = self._registry.snapshot()
        environments = self._catalog.snapshot()
        compliance = evaluate_compliance(snapshot, environments)

        summaries: list[EnvironmentSummary] = []
        for environment_id, environment in environments.items():
            result = compliance.environments[environment_id]
            violation_count = len(result.violations)
            summaries.append(
                EnvironmentSummary(
                    environment_id=environment_id,
                    name=environment.name or environment_id,
                    type=environment.type,
                    region=environment.region,
                    compliance_level=environment.compliance_level,
                    effective_controls=len(resolve_effective_controls(snapshot, environment)),
                    environment_controls=len(snapshot.overrides_for(environment_id)),
                    violations=violation_count,
                    critical_violations=sum(
                        1 for violation in result.violations if violation.severity == "critical"
                    ),
                    compliant=result.compliant,
                    display_score=display_score(violation_count),
                )
            )
        return summaries

"""Compliance validator: score and violations across tenant and environments.

Three checks feed one ComplianceResult:

1. Tenant check: every control with required_at_tenant must be enabled.
2. Environment checks, per known environment:
   - an effective critical control that is disabled is a critical violation
   - a prod environment without strict compliance level is a high violation
3. Score: round(100 * (checks - violations) / checks), clamped to [0, 100],
   where checks = PER_ENVIRONMENT_CHECKS * environments + required controls.

PER_ENVIRONMENT_CHECKS stays 3 even though two environment checks exist
today: the third slot is reserved and the constant keeps scores comparable
across runs. Adding a third environment check must revisit this formula.

validate() reads one registry snapshot and one catalog snapshot and has no
side effects, so repeated calls without writes return equal results.
"""

import math
from collections.abc import Mapping

from aumos_governance_controls.core.catalog import EnvironmentCatalog
from aumos_governance_controls.core.models import (
    ComplianceResult,
    ComplianceViolation,
    EffectiveControl,
    EnvironmentCompliance,
    EnvironmentContext,
    OverallCompliance,
    TenantCompliance,
)
from aumos_governance_controls.core.registry import (
    ControlRegistry,
    RegistrySnapshot,
    override_conflict,
)
from aumos_governance_controls.core.resolver import resolve_effective_controls
from aumos_governance_controls.observability import get_logger

logger = get_logger(__name__)

PER_ENVIRONMENT_CHECKS = 3

COMPLIANCE_LEVEL_CONTROL_ID = "compliance-level"


def compute_compliance_score(total_checks: int, total_violations: int) -> int:
    """Compute the 0-100 compliance score.

    Halves round up. With no checks at all the score is 100.

    Args:
        total_checks: Number of checks performed.
        total_violations: Number of violations found.

    Returns:
        Integer score clamped to [0, 100].
    """
    if total_checks <= 0:
        return 100
    raw = math.floor(100 * (total_checks - total_violations) / total_checks + 0.5)
    return max(0, min(100, raw))


def check_tenant(snapshot: RegistrySnapshot) -> TenantCompliance:
    """Check tenant-level requirements.

    Overrides stored against non-overridable controls are listed as
    configuration issues. They are informational and do not affect the
    compliant flag or the score.
    """
    missing_required = [
        control.display_name
        for control in snapshot.tenant_controls.values()
        if control.required_at_tenant and control.status != "enabled"
    ]

    configuration_issues: list[str] = []
    for environment_id, overrides in snapshot.environment_controls.items():
        for control_id in overrides:
            tenant_control = snapshot.tenant_controls.get(control_id)
            if tenant_control is None:
                continue
            conflict = override_conflict(tenant_control, environment_id)
            if conflict is not None:
                configuration_issues.append(
                    f"{conflict.description} (environment '{environment_id}', "
                    f"resolution {conflict.resolution})"
                )

    return TenantCompliance(
        compliant=not missing_required,
        missing_required=missing_required,
        configuration_issues=configuration_issues,
    )


def check_environment(
    environment: EnvironmentContext, effective: list[EffectiveControl]
) -> EnvironmentCompliance:
    """Check one environment's effective controls and compliance level."""
    violations = [
        ComplianceViolation(
            control_id=control.id,
            severity="critical",
            description=f"Critical control '{control.display_name}' is disabled",
        )
        for control in effective
        if control.priority == "critical" and control.status == "disabled"
    ]

    if environment.type == "prod" and environment.compliance_level != "strict":
        violations.append(
            ComplianceViolation(
                control_id=COMPLIANCE_LEVEL_CONTROL_ID,
                severity="high",
                description="Production environment should have strict compliance level",
            )
        )

    return EnvironmentCompliance(compliant=not violations, violations=violations)


def evaluate_compliance(
    snapshot: RegistrySnapshot,
    environments: Mapping[str, EnvironmentContext],
) -> ComplianceResult:
    """Evaluate compliance over one consistent registry and catalog view."""
    tenant = check_tenant(snapshot)

    environment_results: dict[str, EnvironmentCompliance] = {}
    for environment_id, environment in environments.items():
        effective = resolve_effective_controls(snapshot, environment)
        environment_results[environment_id] = check_environment(environment, effective)

    environment_violations = [
        violation
        for result in environment_results.values()
        for violation in result.violations
    ]
    total_violations = len(environment_violations) + len(tenant.missing_required)
    required_count = sum(
        1 for control in snapshot.tenant_controls.values() if control.required_at_tenant
    )
    total_checks = PER_ENVIRONMENT_CHECKS * len(environments) + required_count

    overall = OverallCompliance(
        compliant=total_violations == 0,
        score=compute_compliance_score(total_checks, total_violations),
        critical_violations=sum(
            1 for violation in environment_violations if violation.severity == "critical"
        ),
    )
    return ComplianceResult(overall=overall, tenant=tenant, environments=environment_results)


class ComplianceValidator:
    """Computes ComplianceResult from the live registry and catalog.

    Args:
        registry: The control registry.
        catalog: The environment catalog.
    """

    def __init__(self, registry: ControlRegistry, catalog: EnvironmentCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    def validate(self) -> ComplianceResult:
        """Run all compliance checks against the current state."""
        result = evaluate_compliance(self._registry.snapshot(), self._catalog.snapshot())
        logger.info(
            "Governance compliance validated",
            score=result.overall.score,
            compliant=result.overall.compliant,
            critical_violations=result.overall.critical_violations,
            environments=len(result.environments),
        )
        return result

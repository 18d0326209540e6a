"""Pydantic domain models for the governance controls engine.

Models:
- GovernanceControl  : a named policy unit, stored at tenant or environment level
- EnvironmentContext : metadata for one governed scope (prod, test, dev, sandbox)
- Conflict           : a recorded disagreement between a tenant control and an override
- EffectiveControl   : a control resolved against one environment (never stored)
- PolicyInheritance  : per-control view of overrides across all environments
- ComplianceResult   : output of one validation run

Environment records that share an id with a tenant control are partial
patches. Only the fields a caller explicitly set on such a record are
considered present when merging (see GovernanceControl.is_set).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

WILDCARD = "*"

ControlType = Literal["policy", "security", "compliance", "cost", "data"]
ControlScope = Literal["tenant", "environment", "both"]
ControlLevel = Literal["tenant", "environment"]
ControlStatus = Literal["enabled", "disabled", "inherited"]
ControlPriority = Literal["critical", "high", "medium", "low"]
EnforcementMode = Literal["strict", "warn", "audit"]

EnvironmentType = Literal["prod", "test", "dev", "sandbox"]
ComplianceLevel = Literal["strict", "standard", "relaxed"]
BusinessCriticality = Literal["critical", "important", "standard", "low"]
DataClassification = Literal["public", "internal", "confidential", "restricted"]

ConflictType = Literal["scope", "enforcement", "configuration"]
ConflictResolution = Literal["tenant_wins", "environment_wins", "merge", "error"]
Provenance = Literal["tenant", "environment-override", "environment"]
Severity = Literal["critical", "high", "medium", "low"]


# ---------------------------------------------------------------------------
# GovernanceControl
# ---------------------------------------------------------------------------


class ControlApplicability(BaseModel):
    """Declared applicability of a control. ``*`` matches everything."""

    model_config = ConfigDict(extra="forbid")

    environment_types: list[EnvironmentType | Literal["*"]] = Field(
        default_factory=lambda: [WILDCARD],
        description="Environment types this control applies to",
    )
    regions: list[str] = Field(
        default_factory=lambda: [WILDCARD],
        description="Regions this control applies to",
    )
    user_roles: list[str] = Field(
        default_factory=lambda: [WILDCARD],
        description="Roles this control targets (declarative only)",
    )


class ControlMetadata(BaseModel):
    """Authoring metadata carried with a control."""

    model_config = ConfigDict(extra="forbid")

    created_by: str = Field(default="system", description="Author of the control")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    last_modified: datetime | None = Field(default=None, description="Last modification timestamp")
    version: str = Field(default="1.0", description="Control definition version")
    compliance: list[str] = Field(
        default_factory=list,
        description="Compliance framework tags: [SOX, GDPR, ISO27001, ...]",
    )


class GovernanceControl(BaseModel):
    """A named governance policy unit.

    The same id identifies "the same" control at tenant level and in any
    environment override map. ``level`` is stamped by the ControlRegistry on
    insertion; any value supplied by the caller is overwritten.

    ``type`` is optional only so that an environment record can be a partial
    patch of a tenant control. The registry rejects untyped tenant controls
    and untyped environment-only controls.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Stable control identifier")
    name: str = Field(default="", description="Human-readable control name")
    description: str = Field(default="", description="What this control enforces")
    type: ControlType | None = Field(default=None, description="Control category")
    scope: ControlScope = Field(default="both", description="Where this control may live")
    level: ControlLevel = Field(default="tenant", description="Where this record lives")
    status: ControlStatus = Field(default="enabled", description="Activation state")
    priority: ControlPriority = Field(default="medium", description="Business priority")
    enforcement: EnforcementMode = Field(default="warn", description="Enforcement mode")
    inheritance_allowed: bool = Field(
        default=True,
        description="Whether environments automatically receive this control",
    )
    override_allowed: bool = Field(
        default=True,
        description="Whether an environment may patch this control",
    )
    required_at_tenant: bool = Field(
        default=False,
        description="Must exist and be enabled at tenant level for compliance",
    )
    applies_to: ControlApplicability = Field(default_factory=ControlApplicability)
    configuration: dict[str, Any] = Field(
        default_factory=dict,
        description="Control-specific settings, merged key-wise on override",
    )
    metadata: ControlMetadata = Field(default_factory=ControlMetadata)

    @property
    def display_name(self) -> str:
        """Return the control name, falling back to its id."""
        return self.name or self.id

    def is_set(self, field_name: str) -> bool:
        """Return True if the caller explicitly supplied this field."""
        return field_name in self.model_fields_set


# ---------------------------------------------------------------------------
# EnvironmentContext
# ---------------------------------------------------------------------------


class EnvironmentContext(BaseModel):
    """Metadata for one governed environment.

    ``user_count`` and ``app_count`` are reporting counters and never take
    part in policy decisions.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Environment identifier")
    name: str = Field(default="", description="Display name")
    type: EnvironmentType = Field(description="Environment class")
    region: str = Field(description="Deployment region, e.g. 'East US'")
    parent_tenant: str = Field(default="", description="Owning tenant identifier")
    compliance_level: ComplianceLevel = Field(default="standard")
    business_criticality: BusinessCriticality = Field(default="standard")
    data_classification: DataClassification = Field(default="internal")
    user_count: int = Field(default=0, ge=0)
    app_count: int = Field(default=0, ge=0)
    last_audit: datetime | None = Field(default=None, description="Last audit timestamp")


# ---------------------------------------------------------------------------
# Resolution output
# ---------------------------------------------------------------------------


class Conflict(BaseModel):
    """A disagreement between a tenant control and an environment record."""

    model_config = ConfigDict(frozen=True)

    control_id: str
    environment_id: str
    conflict_type: ConflictType
    description: str
    resolution: ConflictResolution


class EffectiveControl(GovernanceControl):
    """A GovernanceControl resolved against one environment.

    Attributes:
        provenance: ``tenant`` when inherited verbatim (including when a
            non-overridable tenant control wins over an override),
            ``environment-override`` when merged with an override,
            ``environment`` for environment-only controls.
        conflicts: Conflicts recorded while resolving this control.
    """

    provenance: Provenance
    conflicts: list[Conflict] = Field(default_factory=list)

    @classmethod
    def from_control(
        cls,
        control: GovernanceControl,
        provenance: Provenance,
        conflicts: list[Conflict] | None = None,
    ) -> "EffectiveControl":
        return cls(
            **control.model_dump(),
            provenance=provenance,
            conflicts=conflicts or [],
        )

    def as_control(self) -> GovernanceControl:
        """Strip resolution details and return a plain GovernanceControl."""
        return GovernanceControl.model_validate(
            self.model_dump(exclude={"provenance", "conflicts"})
        )


class PolicyInheritance(BaseModel):
    """How one tenant control is inherited and overridden across environments."""

    control_id: str
    tenant_policy: GovernanceControl
    environment_overrides: dict[str, GovernanceControl] = Field(default_factory=dict)
    inheritance_chain: list[str] = Field(default_factory=lambda: ["tenant"])
    conflicts: list[Conflict] = Field(default_factory=list)


class ControlWriteResult(BaseModel):
    """Outcome of a registry write: the stored record plus any latent conflict."""

    control: GovernanceControl
    conflict: Conflict | None = None


# ---------------------------------------------------------------------------
# Compliance results
# ---------------------------------------------------------------------------


class ComplianceViolation(BaseModel):
    """A single compliance violation within an environment."""

    control_id: str
    severity: Severity
    description: str


class EnvironmentCompliance(BaseModel):
    """Compliance outcome for one environment."""

    compliant: bool = True
    violations: list[ComplianceViolation] = Field(default_factory=list)


class TenantCompliance(BaseModel):
    """Compliance outcome for tenant-level requirements."""

    compliant: bool = True
    missing_required: list[str] = Field(default_factory=list)
    configuration_issues: list[str] = Field(default_factory=list)


class OverallCompliance(BaseModel):
    """Aggregate compliance outcome."""

    compliant: bool = True
    score: int = Field(default=100, ge=0, le=100)
    critical_violations: int = 0


class ComplianceResult(BaseModel):
    """Result of one ComplianceValidator.validate() run."""

    overall: OverallCompliance = Field(default_factory=OverallCompliance)
    tenant: TenantCompliance = Field(default_factory=TenantCompliance)
    environments: dict[str, EnvironmentCompliance] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Reporting aggregates
# ---------------------------------------------------------------------------


class GovernanceSummary(BaseModel):
    """Executive summary card data."""

    tenant_controls: int
    environment_controls: int
    total_environments: int
    compliance_score: int
    critical_violations: int
    controls_by_type: dict[str, int] = Field(default_factory=dict)
    controls_by_priority: dict[str, int] = Field(default_factory=dict)


class EnvironmentSummary(BaseModel):
    """Per-environment summary card data.

    ``display_score`` is the cheap card heuristic, not the validator score.
    """

    environment_id: str
    name: str
    type: EnvironmentType
    region: str
    compliance_level: ComplianceLevel
    effective_controls: int
    environment_controls: int
    violations: int
    critical_violations: int
    compliant: bool
    display_score: int

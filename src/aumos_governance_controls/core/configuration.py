"""Control configuration merging and typed configuration views.

A control's configuration is stored as an ordered string-keyed map so that
overrides can be merged key by key. Typed views expose the known keys for
each control type with validated types while keeping unknown keys as extras.
"""

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict

from aumos_governance_controls.core.models import GovernanceControl


def merge_configuration(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Shallow key-wise union of two configuration maps.

    Keys present in ``patch`` replace the value from ``base``; keys absent
    from ``patch`` keep the ``base`` value. Key order follows ``base`` with
    new keys from ``patch`` appended. Neither input is mutated.

    Args:
        base: Tenant configuration.
        patch: Override configuration.

    Returns:
        A new merged configuration map.
    """
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        merged[key] = copy.deepcopy(value)
    return merged


# ---------------------------------------------------------------------------
# Typed views
# ---------------------------------------------------------------------------


class ConfigurationView(BaseModel):
    """Generic configuration view. Unknown keys are kept as extras."""

    model_config = ConfigDict(extra="allow", frozen=True)

    def extras(self) -> dict[str, Any]:
        """Return keys that are not modeled by this view."""
        return dict(self.model_extra or {})


class SecurityConfiguration(ConfigurationView):
    mfa_required: bool | None = None
    session_timeout_hours: int | None = None
    privileged_access_review_days: int | None = None
    password_complexity: str | None = None
    audit_logging: str | None = None
    encryption_at_rest: bool | None = None
    encryption_in_transit: bool | None = None
    max_users: int | None = None
    guest_access_allowed: bool | None = None
    api_access_controls: bool | None = None
    ip_whitelisting: bool | None = None
    device_compliance: bool | None = None


class CostConfiguration(ConfigurationView):
    monthly_budget_limit: float | None = None
    alert_thresholds: list[int] | None = None
    auto_shutdown_enabled: bool | None = None
    approval_required: bool | None = None
    cost_center: str | None = None
    max_apps: int | None = None
    max_flows: int | None = None
    max_connections: int | None = None
    storage_quota_gb: int | None = None
    api_call_limit: int | None = None
    compute_hours: int | None = None


class DataConfiguration(ConfigurationView):
    data_classification_required: bool | None = None
    dlp_policies_enabled: bool | None = None
    data_retention_periods: dict[str, int] | None = None
    cross_border_transfer_restricted: bool | None = None
    encryption_required: bool | None = None
    backup_required: bool | None = None
    auto_cleanup_enabled: bool | None = None
    retention_period_days: int | None = None
    archive_before_delete: bool | None = None


_VIEWS_BY_TYPE: dict[str, type[ConfigurationView]] = {
    "security": SecurityConfiguration,
    "cost": CostConfiguration,
    "data": DataConfiguration,
}


def configuration_view(control: GovernanceControl) -> ConfigurationView:
    """Return a typed view over a control's configuration.

    Policy and compliance controls (and untyped partial records) get the
    generic view.

    Raises:
        pydantic.ValidationError: If a known key holds a value of the wrong type.
    """
    view_cls = _VIEWS_BY_TYPE.get(control.type or "", ConfigurationView)
    return view_cls.model_validate(control.configuration)

"""Who may see or change a campaign.

Everything here is a pure function of its arguments. Capabilities are
recomputed on every render, so two resolutions of the same inputs must
always agree.
"""

from __future__ import annotations

from dataclasses import replace

from camptrack.domain.models import Campaign, CapabilitySet, RoleBundle
from camptrack.domain.stages import SessionKind

BLURRED_TITLE = "••••••"

FULL_ACCESS = CapabilitySet(
    can_read_clear=True,
    can_edit=True,
    can_change_status=True,
    can_delete=True,
    can_create=True,
    can_annotate=True,
)
OPERATOR_ACCESS = CapabilitySet(
    can_read_clear=True,
    can_change_status=True,
    can_create=True,
    can_annotate=True,
)
HOME_DEPARTMENT_ACCESS = CapabilitySet(can_read_clear=True, can_annotate=True)
BLURRED_ACCESS = CapabilitySet(can_read_blurred=True)


def resolve_capabilities(role: RoleBundle, campaign: Campaign) -> CapabilitySet:
    if role.session_kind == SessionKind.OWNER:
        return FULL_ACCESS
    if role.session_kind == SessionKind.DEPARTMENT_MEMBER:
        # A department login carrying the designer role acts as the owner.
        if role.is_owner_role:
            return FULL_ACCESS
        if role.is_operator_role:
            return OPERATOR_ACCESS
        if campaign.department_id is not None and campaign.department_id == role.home_department:
            return HOME_DEPARTMENT_ACCESS
        return BLURRED_ACCESS
    return BLURRED_ACCESS


def can_create_campaign(role: RoleBundle) -> bool:
    if role.session_kind == SessionKind.OWNER:
        return True
    return role.session_kind == SessionKind.DEPARTMENT_MEMBER and (
        role.is_owner_role or role.is_operator_role
    )


def can_request_work(role: RoleBundle, submission_enabled: bool) -> bool:
    """Work requests come from business-unit department logins only."""
    return (
        submission_enabled
        and role.session_kind == SessionKind.DEPARTMENT_MEMBER
        and role.is_business_unit
    )


def redact(campaign: Campaign, capabilities: CapabilitySet) -> Campaign:
    if capabilities.can_read_clear:
        return campaign
    return replace(campaign, title=BLURRED_TITLE, description=None, note=None)


def visible_campaigns(role: RoleBundle, campaigns: list[Campaign]) -> list[tuple[Campaign, CapabilitySet]]:
    result = []
    for campaign in campaigns:
        capabilities = resolve_capabilities(role, campaign)
        result.append((redact(campaign, capabilities), capabilities))
    return result

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Annotated

import typer

from camptrack import __version__
from camptrack.config import (
    WorkspaceConfig,
    WorkspaceError,
    ensure_workspaces_dir,
    load_workspace,
    set_current_workspace,
    workspace_config_path,
    write_workspace_config,
)
from camptrack.domain import rules
from camptrack.domain.models import Campaign, CapabilitySet, LifecycleResult, RoleBundle
from camptrack.domain.rules import ValidationError
from camptrack.domain.stages import CampaignStatus
from camptrack.services import lifecycle, ranking, requests, schedule, visibility
from camptrack.services.events import EffectDispatcher, list_notifications
from camptrack.services.requests import RequestError
from camptrack.store import directory
from camptrack.store.campaigns import CampaignFilter, CampaignStore, NotFoundError, WriteFailedError
from camptrack.store.sqlite import SqliteStore

app = typer.Typer(help="Campaign tracker CLI")
workspace_app = typer.Typer(help="Workspace management")
schema_app = typer.Typer(help="Schema operations")
person_app = typer.Typer(help="Assignable staff")
department_app = typer.Typer(help="Departments")
campaign_app = typer.Typer(help="Campaign lifecycle")
access_app = typer.Typer(help="Capability checks")
champion_app = typer.Typer(help="Monthly champion leaderboards")
schedule_app = typer.Typer(help="Scheduled presentation mode")
request_app = typer.Typer(help="Work requests from business units")
notification_app = typer.Typer(help="Stored notifications")

app.add_typer(workspace_app, name="workspace")
app.add_typer(schema_app, name="schema")
app.add_typer(person_app, name="person")
app.add_typer(department_app, name="department")
app.add_typer(campaign_app, name="campaign")
app.add_typer(access_app, name="access")
app.add_typer(champion_app, name="champion")
app.add_typer(schedule_app, name="schedule")
app.add_typer(request_app, name="request")
app.add_typer(notification_app, name="notification")

SessionOption = Annotated[
    str, typer.Option("--as", help="Session kind: owner, member or guest.")
]
DepartmentOption = Annotated[
    str | None, typer.Option("--home-department", help="Home department of a member session.")
]
OperatorOption = Annotated[
    bool, typer.Option("--operator", help="Member carries the campaign-operator role.")
]
DesignerOption = Annotated[
    bool, typer.Option("--designer", help="Member carries the owner/designer role.")
]
BusinessUnitOption = Annotated[
    bool, typer.Option("--business-unit", help="Member belongs to a business unit.")
]

CAMPAIGN_ERRORS = (ValidationError, NotFoundError, WriteFailedError)


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
def init() -> None:
    """Initialize the workspaces directory."""
    ensure_workspaces_dir()
    typer.echo("Initialized camptrack directories.")


@workspace_app.command("add")
def workspace_add(
    name: str = typer.Argument(...),
    use: bool = typer.Option(True, "--use/--no-use", help="Set as current workspace."),
    force: bool = typer.Option(
        False, "--force", help="Overwrite existing workspace config if it exists."
    ),
) -> None:
    config_path = workspace_config_path(name)
    if config_path.exists() and not force:
        raise typer.BadParameter(
            f"Workspace already exists: {config_path}. Use --force to overwrite."
        )
    config_path = write_workspace_config(name)
    if use:
        set_current_workspace(name)
    typer.echo(f"Workspace created: {config_path}")


@workspace_app.command("use")
def workspace_use(name: str = typer.Argument(...)) -> None:
    if not workspace_config_path(name).exists():
        raise typer.BadParameter(f"Workspace config not found: {workspace_config_path(name)}")
    set_current_workspace(name)
    typer.echo(f"Active workspace: {name}")


@schema_app.command("apply")
def schema_apply() -> None:
    ws = _load_workspace()
    SqliteStore(ws.store.sqlite_path).apply_schema()
    typer.echo("Applied schema to local SQLite.")


@person_app.command("add")
def person_add(
    name: str = typer.Option(..., "--name"),
    email: str = typer.Option(..., "--email"),
    phone: str | None = typer.Option(None, "--phone"),
    avatar: str | None = typer.Option(None, "--avatar"),
) -> None:
    ws = _load_workspace()
    try:
        person = directory.add_person(
            SqliteStore(ws.store.sqlite_path), name=name, email=email, phone=phone, avatar=avatar
        )
    except ValidationError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Created person: {person.person_id}")


@person_app.command("list")
def person_list() -> None:
    ws = _load_workspace()
    for person in directory.list_people(SqliteStore(ws.store.sqlite_path)):
        typer.echo(f"{person.person_id} | {person.avatar or ''} {person.name} | {person.email}")


@department_app.command("add")
def department_add(
    department_id: str = typer.Argument(...), name: str = typer.Argument(...)
) -> None:
    ws = _load_workspace()
    try:
        directory.add_department(SqliteStore(ws.store.sqlite_path), department_id, name)
    except ValidationError as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Saved department: {department_id}")


@campaign_app.command("add")
def campaign_add(
    title: str = typer.Option(..., "--title"),
    when: str = typer.Option(..., "--date", help="ISO date or datetime."),
    urgency: str = typer.Option("medium", "--urgency"),
    difficulty: str | None = typer.Option(None, "--difficulty"),
    assignee: str | None = typer.Option(None, "--assignee"),
    department: str | None = typer.Option(None, "--department"),
    description: str | None = typer.Option(None, "--description"),
    requires_report: bool = typer.Option(False, "--requires-report"),
    report_due: str | None = typer.Option(None, "--report-due"),
    actor: str | None = typer.Option(None, "--actor"),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    role = _role(session, home_department, operator, designer, False)
    if not visibility.can_create_campaign(role):
        _exit_with_error("This session may not create campaigns.")
    campaigns = _campaigns(ws)
    try:
        result = lifecycle.create_campaign(
            campaigns,
            title=title,
            scheduled_at=rules.parse_datetime(when, "date"),
            urgency=urgency,
            difficulty=difficulty,
            assignee_id=assignee,
            department_id=department,
            description=description,
            requires_report=requires_report,
            report_due_date=rules.parse_date(report_due, "report due"),
            actor=actor,
            holidays=ws.holidays,
        )
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    _dispatch(ws, campaigns, result)
    typer.echo(f"Created campaign: {result.campaign.campaign_id}")


@campaign_app.command("list")
def campaign_list(
    month: str | None = typer.Option(None, "--month", help="YYYY-MM"),
    status: str | None = typer.Option(None, "--status"),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    role = _role(session, home_department, operator, designer, False)
    try:
        start = end = None
        if month:
            start, end = ranking.month_bounds(month)
        rules.validate_enum(status, [s.value for s in CampaignStatus], "status")
    except ValidationError as exc:
        _exit_with_error(str(exc))
    rows = _campaigns(ws).query(
        CampaignFilter(start=start, end=end, status=CampaignStatus(status) if status else None)
    )
    for campaign, capabilities in visibility.visible_campaigns(role, rows):
        marker = "" if capabilities.can_read_clear else " (blurred)"
        typer.echo(
            f"{campaign.campaign_id} | {campaign.scheduled_at.date().isoformat()} | "
            f"{campaign.title}{marker} | {campaign.status.value} | {campaign.urgency.label}"
        )


@campaign_app.command("show")
def campaign_show(
    campaign_id: str = typer.Argument(...),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    campaign, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    campaign = visibility.redact(campaign, capabilities)
    payload = {
        "id": campaign.campaign_id,
        "reference": campaign.reference_code,
        "title": campaign.title,
        "date": campaign.scheduled_at.isoformat(),
        "status": campaign.status.value,
        "urgency": campaign.urgency.value,
        "difficulty": campaign.difficulty.value if campaign.difficulty else None,
        "assignee_id": campaign.assignee_id,
        "department_id": campaign.department_id,
        "note": campaign.note,
        "report_due_date": campaign.report_due_date.isoformat() if campaign.report_due_date else None,
    }
    if capabilities.can_read_clear:
        payload["history"] = campaign.history.to_list()
    typer.echo(json.dumps(payload, indent=2))


@campaign_app.command("status")
def campaign_status(
    campaign_id: str = typer.Argument(...),
    new_status: str = typer.Argument(..., help="planned, completed or cancelled"),
    actor: str | None = typer.Option(None, "--actor"),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    _, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    if not capabilities.can_change_status:
        _exit_with_error("This session may not change the campaign status.")
    campaigns = _campaigns(ws)
    try:
        result = lifecycle.transition(campaigns, campaign_id, new_status, actor=actor)
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    _dispatch(ws, campaigns, result)
    typer.echo(f"{result.campaign.reference_code} is {result.campaign.status.value}")


@campaign_app.command("reassign")
def campaign_reassign(
    campaign_id: str = typer.Argument(...),
    assignee: str = typer.Argument(..., help="Person id of the new assignee."),
    actor: str | None = typer.Option(None, "--actor"),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    _, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    if not capabilities.can_edit:
        _exit_with_error("This session may not edit the campaign.")
    campaigns = _campaigns(ws)
    try:
        result = lifecycle.reassign(campaigns, campaign_id, assignee, actor=actor, cc=ws.email.cc)
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    _dispatch(ws, campaigns, result)
    typer.echo(f"{result.campaign.reference_code} assigned to {result.campaign.assignee_id}")


@campaign_app.command("reschedule")
def campaign_reschedule(
    campaign_id: str = typer.Argument(...),
    when: str = typer.Argument(..., help="ISO date or datetime."),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    _, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    if not capabilities.can_edit:
        _exit_with_error("This session may not edit the campaign.")
    try:
        result = lifecycle.reschedule(
            _campaigns(ws), campaign_id, rules.parse_datetime(when, "date"), holidays=ws.holidays
        )
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    typer.echo(f"{result.campaign.reference_code} scheduled for {result.campaign.scheduled_at.isoformat()}")


@campaign_app.command("note")
def campaign_note(
    campaign_id: str = typer.Argument(...),
    text: str | None = typer.Argument(None),
    clear: bool = typer.Option(False, "--clear", help="Remove the note."),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    _, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    if not capabilities.can_annotate:
        _exit_with_error("This session may not annotate the campaign.")
    try:
        if clear:
            lifecycle.clear_note(_campaigns(ws), campaign_id)
        else:
            lifecycle.set_note(_campaigns(ws), campaign_id, text or "")
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    typer.echo("Note cleared." if clear else "Note saved.")


@campaign_app.command("delete")
def campaign_delete(
    campaign_id: str = typer.Argument(...),
    session: SessionOption = "owner",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
) -> None:
    ws = _load_workspace()
    _, capabilities = _resolve(ws, campaign_id, session, home_department, operator, designer)
    if not capabilities.can_delete:
        _exit_with_error("This session may not delete the campaign.")
    campaigns = _campaigns(ws)
    try:
        result = lifecycle.delete_campaign(campaigns, campaign_id)
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    _dispatch(ws, campaigns, result)
    typer.echo(f"Deleted campaign: {result.campaign.reference_code}")


@access_app.command("check")
def access_check(
    campaign_id: str = typer.Argument(...),
    session: SessionOption = "guest",
    home_department: DepartmentOption = None,
    operator: OperatorOption = False,
    designer: DesignerOption = False,
    business_unit: BusinessUnitOption = False,
) -> None:
    ws = _load_workspace()
    role = _role(session, home_department, operator, designer, business_unit)
    campaign = _get_campaign(ws, campaign_id)
    capabilities = visibility.resolve_capabilities(role, campaign)
    payload = _capabilities_dict(capabilities)
    payload["can_request_work"] = visibility.can_request_work(
        role, ws.requests.submission_enabled
    )
    typer.echo(json.dumps(payload, indent=2))


@champion_app.command("compute")
def champion_compute(
    reference: str | None = typer.Option(None, "--date", help="Reference date (YYYY-MM-DD)."),
    force: bool = typer.Option(False, "--force", help="Recompute even if cached."),
) -> None:
    """Rank last month's completed campaigns."""
    ws = _load_workspace()
    if not ws.ranking.enabled:
        typer.echo("Gamification is disabled for this workspace.")
        return
    try:
        reference_date = rules.parse_date(reference, "date") or date.today()
        snapshot = ranking.compute_champion(
            _campaigns(ws), reference_date, force=force, config=ws.ranking
        )
    except CAMPAIGN_ERRORS as exc:
        _exit_with_error(str(exc))
    if snapshot is None:
        typer.echo(f"No champion for {ranking.target_month(reference_date)}.")
        return
    typer.echo(json.dumps(snapshot.to_dict(), indent=2))


@champion_app.command("show")
def champion_show(month: str | None = typer.Option(None, "--month", help="YYYY-MM")) -> None:
    ws = _load_workspace()
    try:
        snapshot = ranking.get_cached_snapshot(SqliteStore(ws.store.sqlite_path), month)
    except (NotFoundError, ValidationError) as exc:
        _exit_with_error(str(exc))
    payload = snapshot.to_dict()
    payload["badges"] = {
        name: list(winners)
        for name, winners in ranking.badges(snapshot, ws.ranking.enabled).items()
    }
    typer.echo(json.dumps(payload, indent=2))


@schedule_app.command("check")
def schedule_check(
    now: str | None = typer.Option(None, "--now", help="Local wall-clock ISO datetime."),
    active: bool = typer.Option(False, "--active/--inactive", help="Current mode state."),
) -> None:
    """Print whether the scheduled mode should be on."""
    ws = _load_workspace()
    try:
        moment = datetime.fromisoformat(now) if now else datetime.now()
    except ValueError:
        _exit_with_error("--now must be ISO 8601.")
    marker = schedule.read_override_marker(ws.path)
    decision = schedule.should_mode_be_active(ws.schedule_mode, marker, moment, active)
    typer.echo("active" if decision else "inactive")


@schedule_app.command("toggle")
def schedule_toggle() -> None:
    """Record a manual mode toggle at the current local time."""
    ws = _load_workspace()
    path = schedule.write_override_marker(ws.path, datetime.now())
    typer.echo(f"Override recorded in {path}")


@request_app.command("submit")
def request_submit(
    title: str = typer.Option(..., "--title"),
    target: str = typer.Option(..., "--date", help="YYYY-MM-DD"),
    urgency: str = typer.Option("medium", "--urgency"),
    description: str | None = typer.Option(None, "--description"),
    email: str | None = typer.Option(None, "--email"),
    home_department: DepartmentOption = None,
    business_unit: BusinessUnitOption = False,
) -> None:
    ws = _load_workspace()
    role = RoleBundle.department_member(home_department, is_business_unit=business_unit)
    try:
        request = requests.submit_work_request(
            SqliteStore(ws.store.sqlite_path),
            role,
            ws.requests.submission_enabled,
            title=title,
            urgency=urgency,
            target_date=rules.parse_date(target, "date"),
            description=description,
            requester_email=email,
        )
    except (RequestError, ValidationError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Submitted work request: {request.request_id}")


@request_app.command("list")
def request_list(status: str | None = typer.Option("pending", "--status")) -> None:
    ws = _load_workspace()
    try:
        items = requests.list_work_requests(SqliteStore(ws.store.sqlite_path), status)
    except ValidationError as exc:
        _exit_with_error(str(exc))
    for item in items:
        typer.echo(
            f"{item.request_id} | {item.target_date.isoformat()} | {item.title} | "
            f"{item.department_id or '-'} | {item.status.value}"
        )


@request_app.command("approve")
def request_approve(
    request_id: str = typer.Argument(...),
    assignee: str | None = typer.Option(None, "--assignee"),
    actor: str | None = typer.Option(None, "--actor"),
) -> None:
    ws = _load_workspace()
    campaigns = _campaigns(ws)
    try:
        result = requests.approve_work_request(
            campaigns, request_id, assignee_id=assignee, actor=actor, holidays=ws.holidays
        )
    except (RequestError, *CAMPAIGN_ERRORS) as exc:
        _exit_with_error(str(exc))
    _dispatch(ws, campaigns, result)
    typer.echo(f"Created campaign: {result.campaign.campaign_id}")


@request_app.command("reject")
def request_reject(request_id: str = typer.Argument(...)) -> None:
    ws = _load_workspace()
    try:
        requests.reject_work_request(SqliteStore(ws.store.sqlite_path), request_id)
    except (RequestError, NotFoundError) as exc:
        _exit_with_error(str(exc))
    typer.echo(f"Rejected work request: {request_id}")


@notification_app.command("list")
def notification_list(
    recipient: str | None = typer.Option(None, "--recipient"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    ws = _load_workspace()
    for row in list_notifications(SqliteStore(ws.store.sqlite_path), recipient, limit):
        typer.echo(f"{row['created_at']} | {row['kind']} | {row['title']} | {row['message']}")


def _load_workspace() -> WorkspaceConfig:
    try:
        return load_workspace()
    except WorkspaceError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


def _campaigns(ws: WorkspaceConfig) -> CampaignStore:
    return CampaignStore(SqliteStore(ws.store.sqlite_path))


def _get_campaign(ws: WorkspaceConfig, campaign_id: str) -> Campaign:
    try:
        return _campaigns(ws).get(campaign_id)
    except NotFoundError as exc:
        _exit_with_error(str(exc))


def _resolve(
    ws: WorkspaceConfig,
    campaign_id: str,
    session: str,
    home_department: str | None,
    operator: bool,
    designer: bool,
) -> tuple[Campaign, CapabilitySet]:
    role = _role(session, home_department, operator, designer, False)
    campaign = _get_campaign(ws, campaign_id)
    return campaign, visibility.resolve_capabilities(role, campaign)


def _role(
    session: str,
    home_department: str | None,
    operator: bool,
    designer: bool,
    business_unit: bool,
) -> RoleBundle:
    if session == "owner":
        return RoleBundle.owner()
    if session == "guest":
        return RoleBundle.guest()
    if session == "member":
        return RoleBundle.department_member(
            home_department,
            is_owner_role=designer,
            is_operator_role=operator,
            is_business_unit=business_unit,
        )
    raise typer.BadParameter("--as must be 'owner', 'member' or 'guest'")


def _dispatch(ws: WorkspaceConfig, campaigns: CampaignStore, result: LifecycleResult) -> None:
    dispatcher = EffectDispatcher(
        store=campaigns.store,
        outbox_path=ws.path / "outbox.ndjson",
        workspace=ws.name,
        enabled=ws.email.enabled,
    )
    dispatcher.dispatch(result.effects)


def _capabilities_dict(capabilities: CapabilitySet) -> dict[str, bool]:
    return {
        "can_read": capabilities.can_read,
        "can_read_clear": capabilities.can_read_clear,
        "can_read_blurred": capabilities.can_read_blurred,
        "can_edit": capabilities.can_edit,
        "can_change_status": capabilities.can_change_status,
        "can_delete": capabilities.can_delete,
        "can_create": capabilities.can_create,
        "can_annotate": capabilities.can_annotate,
    }


def _exit_with_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

"""
API routes for the Case & Report Tracker.

This module contains all JSON API endpoints for the application. Every
response carries a ``success`` flag; failures add an ``error`` message.
All routes except sign-in and registration require a signed-in user, whose
email scopes the case and report collections.
"""

from typing import Any, Dict, List, Optional

from flask import Blueprint, Response, jsonify, request

from casetrack import get_services
from casetrack.models.entities import Case, Defendant, Report, ReportStage
from casetrack.services.case_store import new_id
from casetrack.services.deadline_service import extend_detention, extend_investigation
from casetrack.services.export_service import ExportError, export_cases, export_filename, export_reports
from casetrack.services.penal_code import format_penal_code_display, search_penal_code
from casetrack.services.prosecutor_service import NOT_FOUND as PROSECUTOR_NOT_FOUND
from casetrack.services.search_service import (
    CASE_VIEWS,
    REPORT_VIEWS,
    cases_for_view,
    filter_records,
    reports_for_view,
)
from casetrack.services.statistics_service import get_dashboard_statistics
from casetrack.services.transfer_service import prosecute_new_report, transfer_report_to_case
from casetrack.services.workspace import Workspace
from casetrack.utils.helpers import resolve_prosecutor_name
from casetrack.utils.logging_config import get_logger
from casetrack.utils.security import current_user, login_required, login_user, logout_user
from casetrack.utils.validators import ValidationError, validator

api_bp = Blueprint("api", __name__)
logger = get_logger("api")


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", "body", "INVALID_TYPE")
    return data


def _not_found(entity: str):
    return jsonify({"success": False, "error": f"{entity} not found"}), 404


def _workspace() -> Workspace:
    return get_services().workspaces.for_user(current_user()["email"])


def _owner() -> str:
    return current_user()["id"]


def _prosecutors() -> List:
    # An unavailable directory yields an empty list; names then fall back to ids
    return get_services().prosecutors.list(_owner()).data or []


def _check_prosecutor(prosecutor_id: str, current: Optional[str] = None) -> None:
    """Reject an id the directory does not know; an unreachable directory is not a rejection"""
    if prosecutor_id == current:
        return
    result = get_services().prosecutors.get(_owner(), prosecutor_id)
    if not result.success and result.error == PROSECUTOR_NOT_FOUND:
        raise ValidationError("Unknown prosecutor", "prosecutor", "INVALID_VALUE")


def _case_json(case: Case, prosecutors: List) -> Dict[str, Any]:
    data = case.to_dict()
    data["prosecutor_name"] = resolve_prosecutor_name(prosecutors, case.prosecutor)
    data["warnings"] = get_services().evaluator.case_warnings(case)
    return data


def _report_json(report: Report, prosecutors: List) -> Dict[str, Any]:
    data = report.to_dict()
    data["prosecutor_name"] = resolve_prosecutor_name(prosecutors, report.prosecutor)
    data["warnings"] = get_services().evaluator.report_warnings(report)
    return data


def _list_filters():
    term = validator.validate_search_query(request.args.get("q", ""))
    prosecutor_id = request.args.get("prosecutor") or None
    return term, prosecutor_id


def _view(views: Dict[str, Any]) -> str:
    return validator.validate_choice(request.args.get("view", "all"), "view", list(views))


def _attachment(payload: bytes, kind: str) -> Response:
    return Response(
        payload,
        content_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={export_filename(kind)}"},
    )


# Authentication


@api_bp.route("/auth/login", methods=["POST"])
def login():
    data = _json_body()
    email = validator.validate_email(data.get("email"))
    result = get_services().auth.sign_in(email, data.get("password") or "")
    if not result.success:
        return jsonify(result.to_dict()), 401

    login_user(result.user.to_dict())
    return jsonify(result.to_dict())


@api_bp.route("/auth/register", methods=["POST"])
def register():
    data = _json_body()
    email = validator.validate_email(data.get("email"))
    password = validator.validate_password(data.get("password"))
    display_name = validator.validate_text(data.get("display_name"), "display_name", max_length=200)

    result = get_services().auth.register(email, password, display_name)
    if not result.success:
        return jsonify(result.to_dict()), 409
    return jsonify(result.to_dict()), 201


@api_bp.route("/auth/logout", methods=["POST"])
@login_required
def logout():
    services = get_services()
    user = current_user()
    services.auth.sign_out(user)
    # Pending writes land before the cached workspace is dropped
    services.writer.flush()
    services.workspaces.evict(user["email"])
    logout_user()
    return jsonify({"success": True})


@api_bp.route("/auth/me")
@login_required
def me():
    return jsonify({"success": True, "user": current_user()})


@api_bp.route("/auth/password", methods=["POST"])
@login_required
def change_password():
    data = _json_body()
    password = validator.validate_password(data.get("password"))
    result = get_services().auth.update_password(_owner(), password)
    if not result.success:
        return jsonify(result.to_dict()), 400
    return jsonify(result.to_dict())


# Cases


@api_bp.route("/cases")
@login_required
def list_cases():
    view = _view(CASE_VIEWS)
    term, prosecutor_id = _list_filters()
    cases = filter_records(cases_for_view(_workspace().cases, view), term, prosecutor_id)
    prosecutors = _prosecutors()
    return jsonify(
        {"success": True, "view": view, "count": len(cases), "data": [_case_json(c, prosecutors) for c in cases]}
    )


@api_bp.route("/cases", methods=["POST"])
@login_required
def create_case():
    form = validator.validate_case_form(_json_body())
    _check_prosecutor(form["prosecutor"])
    case = _workspace().cases.add(form)
    return jsonify({"success": True, "data": _case_json(case, _prosecutors())}), 201


@api_bp.route("/cases/expiring")
@login_required
def expiring_cases():
    cases = _workspace().cases.expiring_soon()
    prosecutors = _prosecutors()
    return jsonify({"success": True, "count": len(cases), "data": [_case_json(c, prosecutors) for c in cases]})


@api_bp.route("/cases/export")
@login_required
def export_case_table():
    view = _view(CASE_VIEWS)
    term, prosecutor_id = _list_filters()
    cases = filter_records(cases_for_view(_workspace().cases, view), term, prosecutor_id)
    try:
        payload = export_cases(cases, view, get_services().evaluator, _prosecutors())
    except ExportError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    return _attachment(payload, "cases")


@api_bp.route("/cases/<case_id>")
@login_required
def get_case(case_id):
    case = _workspace().cases.get(case_id)
    if case is None:
        return _not_found("Case")
    return jsonify({"success": True, "data": _case_json(case, _prosecutors())})


@api_bp.route("/cases/<case_id>", methods=["PUT"])
@login_required
def update_case(case_id):
    store = _workspace().cases
    existing = store.get(case_id)
    if existing is None:
        return _not_found("Case")

    form = validator.validate_case_form(_json_body())
    _check_prosecutor(form["prosecutor"], existing.prosecutor)
    known_ids = {d.id for d in existing.defendants}
    defendants = []
    for entry in form["defendants"]:
        if entry.get("id") not in known_ids:
            entry["id"] = new_id()
        defendants.append(Defendant.from_dict(entry))

    updated = Case(
        id=existing.id,
        name=form["name"],
        charges=form["charges"],
        investigation_deadline=form["investigation_deadline"],
        prosecutor=form["prosecutor"],
        stage=existing.stage,
        prosecution_transfer_date=existing.prosecution_transfer_date,
        trial_transfer_date=existing.trial_transfer_date,
        defendants=defendants,
        created_at=existing.created_at,
        notes=form["notes"],
    )
    if not store.update(updated):
        return _not_found("Case")
    return jsonify({"success": True, "data": _case_json(updated, _prosecutors())})


@api_bp.route("/cases/<case_id>", methods=["DELETE"])
@login_required
def delete_case(case_id):
    if not _workspace().cases.delete(case_id):
        return _not_found("Case")
    return jsonify({"success": True})


@api_bp.route("/cases/<case_id>/stage", methods=["POST"])
@login_required
def transfer_case_stage(case_id):
    store = _workspace().cases
    existing = store.get(case_id)
    if existing is None:
        return _not_found("Case")

    stage = validator.validate_case_transition(existing.stage, _json_body().get("stage"))
    case = store.transfer_stage(case_id, stage)
    if case is None:
        return _not_found("Case")
    return jsonify({"success": True, "data": _case_json(case, _prosecutors())})


@api_bp.route("/cases/<case_id>/extend", methods=["POST"])
@login_required
def extend_case_deadline(case_id):
    store = _workspace().cases
    existing = store.get(case_id)
    if existing is None:
        return _not_found("Case")

    extension = validator.validate_extension(_json_body())
    try:
        if extension["target"] == "investigation":
            updated = extend_investigation(existing, extension["days"], extension["new_deadline"])
        else:
            updated = extend_detention(
                existing, extension["defendant_id"], extension["days"], extension["new_deadline"]
            )
    except ValueError as e:
        raise ValidationError(str(e), "days", "INVALID_VALUE")

    if updated is None:
        raise ValidationError("No detained defendant with that id in this case", "defendant_id", "INVALID_VALUE")
    if not store.update(updated):
        return _not_found("Case")
    return jsonify({"success": True, "data": _case_json(updated, _prosecutors())})


# Reports


@api_bp.route("/reports")
@login_required
def list_reports():
    view = _view(REPORT_VIEWS)
    term, prosecutor_id = _list_filters()
    reports = filter_records(reports_for_view(_workspace().reports, view), term, prosecutor_id)
    prosecutors = _prosecutors()
    return jsonify(
        {
            "success": True,
            "view": view,
            "count": len(reports),
            "data": [_report_json(r, prosecutors) for r in reports],
        }
    )


@api_bp.route("/reports", methods=["POST"])
@login_required
def create_report():
    form = validator.validate_report_form(_json_body())
    _check_prosecutor(form["prosecutor"])
    report = _workspace().reports.add(form)
    return jsonify({"success": True, "data": _report_json(report, _prosecutors())}), 201


@api_bp.route("/reports/prosecute", methods=["POST"])
@login_required
def prosecute_report_form():
    """Open a case directly from a report form that is not saved as a report"""
    form = validator.validate_report_form(_json_body())
    _check_prosecutor(form["prosecutor"])
    case = prosecute_new_report(_workspace().cases, form)
    return jsonify({"success": True, "case": _case_json(case, _prosecutors())}), 201


@api_bp.route("/reports/expiring")
@login_required
def expiring_reports():
    reports = _workspace().reports.expiring_soon()
    prosecutors = _prosecutors()
    return jsonify(
        {"success": True, "count": len(reports), "data": [_report_json(r, prosecutors) for r in reports]}
    )


@api_bp.route("/reports/export")
@login_required
def export_report_table():
    view = _view(REPORT_VIEWS)
    term, prosecutor_id = _list_filters()
    reports = filter_records(reports_for_view(_workspace().reports, view), term, prosecutor_id)
    try:
        payload = export_reports(reports, view, get_services().evaluator, _prosecutors())
    except ExportError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    return _attachment(payload, "reports")


@api_bp.route("/reports/<report_id>")
@login_required
def get_report(report_id):
    report = _workspace().reports.get(report_id)
    if report is None:
        return _not_found("Report")
    return jsonify({"success": True, "data": _report_json(report, _prosecutors())})


@api_bp.route("/reports/<report_id>", methods=["PUT"])
@login_required
def update_report(report_id):
    store = _workspace().reports
    existing = store.get(report_id)
    if existing is None:
        return _not_found("Report")

    form = validator.validate_report_form(_json_body())
    _check_prosecutor(form["prosecutor"], existing.prosecutor)
    updated = Report(
        id=existing.id,
        name=form["name"],
        charges=form["charges"],
        report_date=form["report_date"] or existing.report_date,
        resolution_deadline=form["resolution_deadline"],
        prosecutor=form["prosecutor"],
        stage=existing.stage,
        prosecution_date=existing.prosecution_date,
        resolution_date=existing.resolution_date,
        created_at=existing.created_at,
        notes=form["notes"],
    )
    if not store.update(updated):
        return _not_found("Report")
    return jsonify({"success": True, "data": _report_json(updated, _prosecutors())})


@api_bp.route("/reports/<report_id>", methods=["DELETE"])
@login_required
def delete_report(report_id):
    if not _workspace().reports.delete(report_id):
        return _not_found("Report")
    return jsonify({"success": True})


@api_bp.route("/reports/<report_id>/stage", methods=["POST"])
@login_required
def transfer_report_stage(report_id):
    store = _workspace().reports
    existing = store.get(report_id)
    if existing is None:
        return _not_found("Report")

    stage = validator.validate_report_transition(existing.stage, _json_body().get("stage"))
    report = store.transfer_stage(report_id, stage)
    if report is None:
        return _not_found("Report")
    return jsonify({"success": True, "data": _report_json(report, _prosecutors())})


@api_bp.route("/reports/<report_id>/transfer-to-case", methods=["POST"])
@login_required
def transfer_report(report_id):
    workspace = _workspace()
    existing = workspace.reports.get(report_id)
    if existing is None:
        return _not_found("Report")
    validator.validate_report_transition(existing.stage, ReportStage.PROSECUTED)

    transferred = transfer_report_to_case(workspace.reports, workspace.cases, report_id)
    if transferred is None:
        return _not_found("Report")
    report, case = transferred
    prosecutors = _prosecutors()
    return (
        jsonify(
            {"success": True, "report": _report_json(report, prosecutors), "case": _case_json(case, prosecutors)}
        ),
        201,
    )


# Reference data


def _prosecutor_response(result, success_status: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_status
    status = 404 if result.error == PROSECUTOR_NOT_FOUND else 503
    return jsonify(result.to_dict()), status


@api_bp.route("/prosecutors")
@login_required
def list_prosecutors():
    query = validator.validate_search_query(request.args.get("q", ""))
    provider = get_services().prosecutors
    result = provider.search(_owner(), query) if query else provider.list(_owner())
    return _prosecutor_response(result)


@api_bp.route("/prosecutors", methods=["POST"])
@login_required
def create_prosecutor():
    entry = validator.validate_prosecutor_form(_json_body())
    return _prosecutor_response(get_services().prosecutors.add(_owner(), entry), 201)


@api_bp.route("/prosecutors/<prosecutor_id>", methods=["PUT"])
@login_required
def update_prosecutor(prosecutor_id):
    fields = validator.validate_prosecutor_form(_json_body(), partial=True)
    return _prosecutor_response(get_services().prosecutors.update(_owner(), prosecutor_id, fields))


@api_bp.route("/prosecutors/<prosecutor_id>", methods=["DELETE"])
@login_required
def delete_prosecutor(prosecutor_id):
    return _prosecutor_response(get_services().prosecutors.delete(_owner(), prosecutor_id))


@api_bp.route("/penal-code")
@login_required
def penal_code():
    query = validator.validate_search_query(request.args.get("q", ""))
    limit = validator.validate_positive_int(request.args.get("limit", 10), "limit")
    items = search_penal_code(query, limit=min(limit, 100))
    return jsonify(
        {
            "success": True,
            "data": [
                {
                    "article": item.article,
                    "clause": item.clause,
                    "title": item.title,
                    "description": item.description,
                    "display": format_penal_code_display(item),
                }
                for item in items
            ],
        }
    )


@api_bp.route("/stats")
@login_required
def stats():
    workspace = _workspace()
    logger.debug("Statistics requested", extra={"event": "stats_requested", "user_key": workspace.user_key})
    return jsonify({"success": True, "data": get_dashboard_statistics(workspace)})

"""Financial report and monthly summary (admin only)."""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ...extensions import db
from ...services.reporting import financial_report, financial_summary
from ...utils import to_jsonable

financial_bp = Blueprint("financial", __name__, url_prefix="/api/financial")


@financial_bp.route("/report")
@login_required
def report():
    data = financial_report(
        db.session,
        current_user,
        year=request.args.get("year"),
        month=request.args.get("month"),
    )
    return jsonify(to_jsonable(data))


@financial_bp.route("/summary")
@login_required
def summary():
    return jsonify(to_jsonable(financial_summary(db.session, current_user)))

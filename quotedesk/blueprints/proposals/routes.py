"""
quotedesk/blueprints/proposals/routes.py

Proposal and technical drawing routes.

- POST /api/proposals                                       supplier bids on a quote
- POST /api/proposals/<id>/technical-drawing                winning knife supplier uploads drawing
- POST /api/proposals/<id>/technical-drawing/resubmit       ... after a rejection
- GET  /api/proposals/technical-drawings/pending            admin review queue
- POST /api/proposals/technical-drawings/<id>/review        admin approves / rejects
"""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...forms import ApiForm, TechnicalDrawingForm
from ...security import Operation, enforce
from ...utils import lifecycle_engine, parse_id, request_data

proposals_bp = Blueprint("proposals", __name__, url_prefix="/api/proposals")


@proposals_bp.route("", methods=["POST"])
@login_required
def create_proposal():
    enforce(current_user, Operation.CREATE_PROPOSAL)

    data = request_data()
    quote_id = parse_id(data.get("quote_id"), "Quote is required")

    proposal = lifecycle_engine().create_proposal(current_user, quote_id, data.get("value"), data.get("observations"))
    return jsonify({"id": proposal.id, "message": "Proposal submitted successfully"}), 201


@proposals_bp.route("/<int:proposal_id>/technical-drawing", methods=["POST"])
@login_required
def upload_technical_drawing(proposal_id: int):
    enforce(current_user, Operation.SUBMIT_DRAWING)
    form = TechnicalDrawingForm().validated()

    drawing = lifecycle_engine().submit_technical_drawing(
        current_user, proposal_id, ApiForm.incoming(form.technical_drawing)
    )
    return jsonify({"id": drawing.id, "message": "Technical drawing uploaded successfully"}), 201


@proposals_bp.route("/<int:proposal_id>/technical-drawing/resubmit", methods=["POST"])
@login_required
def resubmit_technical_drawing(proposal_id: int):
    enforce(current_user, Operation.RESUBMIT_DRAWING)
    form = TechnicalDrawingForm().validated()

    lifecycle_engine().resubmit_technical_drawing(current_user, proposal_id, ApiForm.incoming(form.technical_drawing))
    return jsonify({"message": "Technical drawing resubmitted successfully"})


@proposals_bp.route("/technical-drawings/pending", methods=["GET"])
@login_required
def pending_technical_drawings():
    return jsonify(lifecycle_engine().pending_technical_drawings(current_user))


@proposals_bp.route("/technical-drawings/<int:drawing_id>/review", methods=["POST"])
@login_required
def review_technical_drawing(drawing_id: int):
    data = request_data()
    lifecycle_engine().review_technical_drawing(
        current_user,
        drawing_id,
        data.get("status"),
        data.get("rejection_reason"),
    )
    return jsonify({"message": "Technical drawing reviewed successfully"})

"""
quotedesk/blueprints/quotes/routes.py

Quote routes.

Includes:
- List (role-filtered), create (multipart with original file), edit
- Correction file upload/removal (pending quotes only)
- Proposal approval (admin picks the winning bid)
- Delete (with every file the quote owns)
- File download

IMPORTANT:
- Routes only parse and serialize. Permissions, state checks and
  transactions live in LifecycleEngine.
"""

from __future__ import annotations

from io import BytesIO

from flask import Blueprint, jsonify, send_file
from flask_login import current_user, login_required

from ...forms import ApiForm, CorrectionFileForm, QuoteForm
from ...security import Operation, enforce
from ...utils import lifecycle_engine, request_data

quotes_bp = Blueprint("quotes", __name__, url_prefix="/api/quotes")


@quotes_bp.route("", methods=["GET"])
@login_required
def list_quotes():
    engine = lifecycle_engine()
    quotes = engine.list_quotes(current_user)
    return jsonify([q.to_dict(proposals=engine.visible_proposals(current_user, q)) for q in quotes])


@quotes_bp.route("", methods=["POST"])
@login_required
def create_quote():
    engine = lifecycle_engine()
    # policy first: a supplier gets 403, not a form error
    enforce(current_user, Operation.CREATE_QUOTE)
    form = QuoteForm().validated()

    quote = engine.create_quote(
        current_user,
        name=form.name.data,
        supplier_type=form.supplier_type.data,
        material_type=form.material_type.data,
        knife_type=form.knife_type.data,
        observations=form.observations.data,
        upload=ApiForm.incoming(form.file),
    )
    return jsonify(
        {"id": quote.id, "quote_number": quote.quote_number, "message": "Quote created successfully"}
    ), 201


@quotes_bp.route("/<int:quote_id>", methods=["PUT"])
@login_required
def update_quote(quote_id: int):
    data = request_data()
    lifecycle_engine().update_quote(current_user, quote_id, data.get("name"), data.get("observations"))
    return jsonify({"message": "Quote updated successfully"})


@quotes_bp.route("/<int:quote_id>", methods=["DELETE"])
@login_required
def delete_quote(quote_id: int):
    lifecycle_engine().delete_quote(current_user, quote_id)
    return jsonify({"message": "Quote deleted successfully"})


@quotes_bp.route("/<int:quote_id>/correction", methods=["POST"])
@login_required
def upload_correction_file(quote_id: int):
    enforce(current_user, Operation.MANAGE_CORRECTION_FILE)
    form = CorrectionFileForm().validated()

    lifecycle_engine().upload_correction_file(current_user, quote_id, ApiForm.incoming(form.correction_file))
    return jsonify({"message": "Correction file uploaded successfully"})


@quotes_bp.route("/<int:quote_id>/correction", methods=["DELETE"])
@login_required
def delete_correction_file(quote_id: int):
    lifecycle_engine().delete_correction_file(current_user, quote_id)
    return jsonify({"message": "Correction file deleted successfully"})


@quotes_bp.route("/<int:quote_id>/approve/<int:proposal_id>", methods=["POST"])
@login_required
def approve_proposal(quote_id: int, proposal_id: int):
    lifecycle_engine().approve_proposal(current_user, quote_id, proposal_id)
    return jsonify({"message": "Proposal approved successfully"})


@quotes_bp.route("/download/<string:filename>", methods=["GET"])
@login_required
def download_file(filename: str):
    data, download_name = lifecycle_engine().open_file(current_user, filename)
    return send_file(BytesIO(data), as_attachment=True, download_name=download_name)

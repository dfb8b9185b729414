"""
User Management (Admin Only).

Rules enforced (server-side, in quotedesk/services/users.py):
- email, role and name required; password required on create.
- Role must be admin / knife-supplier / die-supplier.
- An admin cannot delete or deactivate their own account.

Audit:
- CREATE / UPDATE / DELETE logged
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...extensions import db
from ...services import users as user_service
from ...utils import parse_optional_bool, request_data

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("", methods=["GET"])
@login_required
def list_users():
    users = user_service.list_users(db.session, current_user)
    return jsonify([u.to_dict() for u in users])


@users_bp.route("", methods=["POST"])
@login_required
def create_user():
    data = request_data()
    user = user_service.create_user(
        db.session,
        current_user,
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role"),
        name=data.get("name"),
        company_name=data.get("company_name"),
    )
    return jsonify({"id": user.id, "message": "User created successfully"}), 201


@users_bp.route("/<int:user_id>", methods=["PUT"])
@login_required
def update_user(user_id):
    data = request_data()
    user_service.update_user(
        db.session,
        current_user,
        user_id,
        email=data.get("email"),
        role=data.get("role"),
        name=data.get("name"),
        company_name=data.get("company_name"),
        is_active=parse_optional_bool(data.get("is_active")),
        password=data.get("password"),
    )
    return jsonify({"message": "User updated successfully"})


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@login_required
def delete_user(user_id):
    user_service.delete_user(db.session, current_user, user_id)
    return jsonify({"message": "User deleted successfully"})


@users_bp.route("/<int:user_id>/toggle-status", methods=["PATCH"])
@login_required
def toggle_user_status(user_id):
    user = user_service.toggle_user_status(db.session, current_user, user_id)
    return jsonify({"message": "User status updated successfully", "is_active": bool(user.is_active)})

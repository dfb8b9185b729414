"""
Authentication Routes

Provides:
- POST /api/auth/login  (email + password -> bearer token)
- GET  /api/auth/me     (identity behind the presented token)

Rules:
- Only active users may log in.
- Credentials validated via password hash.
- Every other route reads the token through the Flask-Login request_loader.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...extensions import db
from ...services.users import authenticate
from ...tokens import issue_token
from ...utils import request_data

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request_data()
    user = authenticate(db.session, data.get("email"), data.get("password"))
    return jsonify({"token": issue_token(user), "user": user.to_dict()})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(current_user.to_dict())

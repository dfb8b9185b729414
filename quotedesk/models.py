"""
Quote Desk – Domain Models

Tables:
- users               (admin / knife-supplier / die-supplier accounts)
- quotes              (pricing requests published by the admin)
- proposals           (one supplier's bid on one quote)
- technical_drawings  (drawing a winning knife supplier must submit)
- quote_counter       (singleton row backing sequential quote numbers)
- audit_logs          (who did what to which entity)

IMPORTANT:
- State transitions live in quotedesk/services/lifecycle.py. Models only
  describe columns, relationships and read-only helpers.
- UI is never trusted. Any selection must be validated server-side.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db


# ---------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------
ROLE_ADMIN = "admin"
ROLE_KNIFE_SUPPLIER = "knife-supplier"
ROLE_DIE_SUPPLIER = "die-supplier"
ROLES = (ROLE_ADMIN, ROLE_KNIFE_SUPPLIER, ROLE_DIE_SUPPLIER)
SUPPLIER_ROLES = (ROLE_KNIFE_SUPPLIER, ROLE_DIE_SUPPLIER)

SUPPLIER_TYPE_KNIFE = "knife"
SUPPLIER_TYPE_DIE = "die"
SUPPLIER_TYPES = (SUPPLIER_TYPE_KNIFE, SUPPLIER_TYPE_DIE)

ROLE_SUPPLIER_TYPE = {
    ROLE_KNIFE_SUPPLIER: SUPPLIER_TYPE_KNIFE,
    ROLE_DIE_SUPPLIER: SUPPLIER_TYPE_DIE,
}

MATERIAL_TYPES = ("micro-ondulado", "onda-t", "onda-b", "onda-c", "onda-tt", "onda-bc")
KNIFE_TYPES = ("plana", "rotativa", "rotativa-plana")

QUOTE_PENDING = "pending"
QUOTE_APPROVED = "approved"
QUOTE_COMPLETED = "completed"
QUOTE_STATUSES = (QUOTE_PENDING, QUOTE_APPROVED, QUOTE_COMPLETED)

PROPOSAL_PENDING = "pending"
PROPOSAL_APPROVED = "approved"
PROPOSAL_REJECTED = "rejected"
PROPOSAL_STATUSES = (PROPOSAL_PENDING, PROPOSAL_APPROVED, PROPOSAL_REJECTED)

DRAWING_PENDING = "pending"
DRAWING_APPROVED = "approved"
DRAWING_REJECTED = "rejected"
DRAWING_STATUSES = (DRAWING_PENDING, DRAWING_APPROVED, DRAWING_REJECTED)


def _in_check(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user. Role decides which lifecycle operations are allowed."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    company_name = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.CheckConstraint(_in_check("role", ROLES), name="ck_users_role"),)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def supplier_type(self) -> str | None:
        """Quote type this account may bid on (None for admins)."""
        return ROLE_SUPPLIER_TYPE.get(self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "company_name": self.company_name,
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


# ---------------------------------------------------------------------
# Quote numbering
# ---------------------------------------------------------------------
class QuoteCounter(db.Model):
    """
    Singleton counter row (id = 1).

    Incremented with one UPDATE ... RETURNING inside the quote insert
    transaction, see LifecycleEngine.next_quote_number().
    """

    __tablename__ = "quote_counter"

    id = db.Column(db.Integer, primary_key=True)
    last_number = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (db.CheckConstraint("id = 1", name="ck_quote_counter_singleton"),)


# ---------------------------------------------------------------------
# Quote domain
# ---------------------------------------------------------------------
class Quote(db.Model):
    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)

    quote_number = db.Column(db.Integer, unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    supplier_type = db.Column(db.String(10), nullable=False, index=True)
    # knife quotes only
    material_type = db.Column(db.String(30), nullable=True)
    knife_type = db.Column(db.String(30), nullable=True)

    observations = db.Column(db.Text, nullable=False, default="")

    # storage keys (File Custodian) + names shown on download
    original_file_path = db.Column(db.String(255), nullable=False)
    original_file_name = db.Column(db.String(255), nullable=False)
    correction_file_path = db.Column(db.String(255), nullable=True)
    correction_file_name = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=QUOTE_PENDING, index=True)

    approved_supplier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    creator = db.relationship("User", foreign_keys=[created_by])
    approved_supplier = db.relationship("User", foreign_keys=[approved_supplier_id])

    proposals = db.relationship(
        "Proposal",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="Proposal.created_at",
    )

    __table_args__ = (
        db.CheckConstraint(_in_check("supplier_type", SUPPLIER_TYPES), name="ck_quotes_supplier_type"),
        db.CheckConstraint(_in_check("status", QUOTE_STATUSES), name="ck_quotes_status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == QUOTE_PENDING

    @property
    def approved_proposal(self) -> "Proposal | None":
        for proposal in self.proposals or []:
            if proposal.status == PROPOSAL_APPROVED:
                return proposal
        return None

    def file_keys(self) -> list[str]:
        """
        Every storage key owned by this quote, transitively.

        Order: original, correction, then technical drawings per proposal.
        """
        keys = [self.original_file_path, self.correction_file_path]
        for proposal in self.proposals or []:
            if proposal.technical_drawing is not None:
                keys.append(proposal.technical_drawing.file_path)
        return [k for k in keys if k]

    def to_dict(self, proposals: list["Proposal"] | None = None) -> dict:
        data = {
            "id": self.id,
            "quote_number": self.quote_number,
            "name": self.name,
            "supplier_type": self.supplier_type,
            "material_type": self.material_type,
            "knife_type": self.knife_type,
            "observations": self.observations or "",
            "original_file_path": self.original_file_path,
            "original_file_name": self.original_file_name,
            "correction_file_path": self.correction_file_path,
            "correction_file_name": self.correction_file_name,
            "status": self.status,
            "approved_supplier_id": self.approved_supplier_id,
            "approved_supplier_name": self.approved_supplier.name if self.approved_supplier else None,
            "approved_supplier_company": self.approved_supplier.company_name if self.approved_supplier else None,
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
            "created_at": _iso(self.created_at),
        }
        if proposals is not None:
            data["proposals"] = [p.to_dict() for p in proposals]
        return data

    def __repr__(self):
        return f"<Quote #{self.quote_number} {self.status}>"


class Proposal(db.Model):
    __tablename__ = "proposals"

    id = db.Column(db.Integer, primary_key=True)

    quote_id = db.Column(
        db.Integer,
        db.ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    supplier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    value = db.Column(db.Numeric(10, 2), nullable=False)
    observations = db.Column(db.Text, nullable=False, default="")

    status = db.Column(db.String(20), nullable=False, default=PROPOSAL_PENDING, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    quote = db.relationship("Quote", back_populates="proposals")
    supplier = db.relationship("User", foreign_keys=[supplier_id])

    technical_drawing = db.relationship(
        "TechnicalDrawing",
        back_populates="proposal",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("quote_id", "supplier_id", name="uq_proposal_quote_supplier"),
        db.CheckConstraint(_in_check("status", PROPOSAL_STATUSES), name="ck_proposals_status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "quote_id": self.quote_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "supplier_company": self.supplier.company_name if self.supplier else None,
            "value": float(self.value if self.value is not None else Decimal("0.00")),
            "observations": self.observations or "",
            "status": self.status,
            "created_at": _iso(self.created_at),
            "technical_drawing": self.technical_drawing.to_dict() if self.technical_drawing else None,
        }


class TechnicalDrawing(db.Model):
    """
    Drawing slot of an approved knife proposal (at most one per proposal).

    pending -> approved (terminal)
    pending -> rejected -> pending (resubmission replaces the file)
    """

    __tablename__ = "technical_drawings"

    id = db.Column(db.Integer, primary_key=True)

    proposal_id = db.Column(
        db.Integer,
        db.ForeignKey("proposals.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    file_path = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=DRAWING_PENDING, index=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    reviewed_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    reviewed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    proposal = db.relationship("Proposal", back_populates="technical_drawing")
    reviewer = db.relationship("User", foreign_keys=[reviewed_by])

    __table_args__ = (
        db.CheckConstraint(_in_check("status", DRAWING_STATUSES), name="ck_technical_drawings_status"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": _iso(self.reviewed_at),
            "created_at": _iso(self.created_at),
        }


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Audit trail of lifecycle and user-management mutations."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

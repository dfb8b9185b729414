"""
quotedesk/services/lifecycle.py

Quote / proposal / technical-drawing lifecycle.

Quote:       pending --approve(proposal)--> approved      (never back)
Proposal:    pending --> approved | rejected              (only via quote approval)
Drawing:     (none) --submit--> pending --review--> approved (terminal)
                                        --review--> rejected --resubmit--> pending

Every public method:
1) checks the access policy (quotedesk/security.py),
2) validates input and the current state,
3) applies the transition in one transaction with its audit entry,
4) performs file side effects through the FileStore.

File rules:
- New uploads are saved before the transaction and removed again if it fails.
- Files that a committed change no longer references are removed after the
  commit, best effort (a missing file is not an error).
- Resubmission removes the rejected drawing's file before the row is updated.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import selectinload

from ..audit import log_action, serialize_model
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models import (
    DRAWING_APPROVED,
    DRAWING_PENDING,
    DRAWING_REJECTED,
    KNIFE_TYPES,
    MATERIAL_TYPES,
    PROPOSAL_APPROVED,
    PROPOSAL_PENDING,
    PROPOSAL_REJECTED,
    QUOTE_APPROVED,
    QUOTE_PENDING,
    SUPPLIER_TYPE_KNIFE,
    SUPPLIER_TYPES,
    Proposal,
    Quote,
    QuoteCounter,
    TechnicalDrawing,
    User,
)
from ..security import Operation, enforce
from ..storage import FileStore, IncomingFile
from .transactions import unit_of_work

logger = logging.getLogger(__name__)

DRAWING_KEY_PREFIX = "technical"


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _parse_value(value: Any) -> Decimal:
    """Positive monetary value with at most 2 decimal places (accepts comma or dot)."""
    raw = _clean(value).replace(",", ".")
    if not raw:
        raise ValidationError("Value is required")
    try:
        amount = Decimal(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError("Value must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Value must be greater than zero")
    if amount.as_tuple().exponent < -2:
        raise ValidationError("Value accepts at most 2 decimal places")
    return amount


class LifecycleEngine:
    """Guarded state transitions over an explicitly passed session and file store."""

    def __init__(self, session, files: FileStore):
        self.session = session
        self.files = files

    # -----------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------
    def get_quote(self, quote_id: int) -> Quote:
        quote = self.session.get(Quote, quote_id)
        if quote is None:
            raise NotFoundError("Quote not found")
        return quote

    def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = self.session.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found")
        return proposal

    def get_technical_drawing(self, drawing_id: int) -> TechnicalDrawing:
        drawing = self.session.get(TechnicalDrawing, drawing_id)
        if drawing is None:
            raise NotFoundError("Technical drawing not found")
        return drawing

    # -----------------------------------------------------------------
    # Quote numbering
    # -----------------------------------------------------------------
    def next_quote_number(self) -> int:
        """
        Increment the counter and return the new value in ONE statement.

        Must run inside the transaction that inserts the quote: the row
        stays write-locked until commit, so concurrent creators serialize
        on it and never observe the same number.
        """
        stmt = (
            update(QuoteCounter)
            .where(QuoteCounter.id == 1)
            .values(last_number=QuoteCounter.last_number + 1)
            .returning(QuoteCounter.last_number)
        )
        number = self.session.execute(stmt).scalar_one_or_none()
        if number is None:
            # first quote ever on a store that was never seeded
            self.session.add(QuoteCounter(id=1, last_number=0))
            self.session.flush()
            number = self.session.execute(stmt).scalar_one()
        return number

    # -----------------------------------------------------------------
    # Quotes
    # -----------------------------------------------------------------
    def list_quotes(self, actor: User) -> list[Quote]:
        """
        Admin: every quote.
        Supplier: quotes of its type that are still open or were awarded to it.
        Newest first.
        """
        enforce(actor, Operation.LIST_QUOTES)

        q = self.session.query(Quote).options(
            selectinload(Quote.creator),
            selectinload(Quote.approved_supplier),
            selectinload(Quote.proposals).selectinload(Proposal.supplier),
            selectinload(Quote.proposals).selectinload(Proposal.technical_drawing),
        )
        if not actor.is_admin:
            q = q.filter(Quote.supplier_type == actor.supplier_type).filter(
                (Quote.status == QUOTE_PENDING) | (Quote.approved_supplier_id == actor.id)
            )
        return q.order_by(Quote.created_at.desc(), Quote.id.desc()).all()

    def visible_proposals(self, actor: User, quote: Quote) -> list[Proposal]:
        """Admins see every bid; suppliers only their own."""
        if actor.is_admin:
            return list(quote.proposals)
        return [p for p in quote.proposals if p.supplier_id == actor.id]

    def create_quote(
        self,
        actor: User,
        name: str,
        supplier_type: str,
        material_type: Optional[str] = None,
        knife_type: Optional[str] = None,
        observations: Optional[str] = None,
        upload: Optional[IncomingFile] = None,
    ) -> Quote:
        enforce(actor, Operation.CREATE_QUOTE)

        name = _clean(name)
        supplier_type = _clean(supplier_type)
        material_type = _clean(material_type) or None
        knife_type = _clean(knife_type) or None

        if not name:
            raise ValidationError("Name is required")
        if supplier_type not in SUPPLIER_TYPES:
            raise ValidationError("Invalid supplier type")
        if supplier_type == SUPPLIER_TYPE_KNIFE:
            if material_type and material_type not in MATERIAL_TYPES:
                raise ValidationError("Invalid material type")
            if knife_type and knife_type not in KNIFE_TYPES:
                raise ValidationError("Invalid knife type")
        else:
            material_type = knife_type = None
        if upload is None:
            raise ValidationError("File is required")

        key = self.files.save(upload.data, upload.filename)
        try:
            with unit_of_work(self.session):
                quote = Quote(
                    quote_number=self.next_quote_number(),
                    name=name,
                    supplier_type=supplier_type,
                    material_type=material_type,
                    knife_type=knife_type,
                    observations=_clean(observations),
                    original_file_path=key,
                    original_file_name=upload.filename,
                    status=QUOTE_PENDING,
                    created_by=actor.id,
                )
                self.session.add(quote)
                self.session.flush()
                log_action(self.session, quote, "CREATE", actor, after=serialize_model(quote))
        except Exception:
            self.files.delete(key)
            raise

        logger.info("Quote #%s created by user=%s", quote.quote_number, actor.id)
        return quote

    def update_quote(self, actor: User, quote_id: int, name: str, observations: Optional[str] = None) -> Quote:
        """Only name and observations are editable."""
        enforce(actor, Operation.UPDATE_QUOTE)

        name = _clean(name)
        if not name:
            raise ValidationError("Name is required")

        quote = self.get_quote(quote_id)
        with unit_of_work(self.session):
            before = serialize_model(quote)
            quote.name = name
            quote.observations = _clean(observations)
            self.session.flush()
            log_action(self.session, quote, "UPDATE", actor, before=before, after=serialize_model(quote))
        return quote

    def upload_correction_file(self, actor: User, quote_id: int, upload: Optional[IncomingFile]) -> Quote:
        enforce(actor, Operation.MANAGE_CORRECTION_FILE)

        if upload is None:
            raise ValidationError("Correction file is required")
        quote = self.get_quote(quote_id)
        if not quote.is_pending:
            raise ConflictError("Cannot upload correction file for approved quotes")

        previous_key = quote.correction_file_path
        key = self.files.save(upload.data, upload.filename)
        try:
            with unit_of_work(self.session):
                before = serialize_model(quote)
                quote.correction_file_path = key
                quote.correction_file_name = upload.filename
                self.session.flush()
                log_action(self.session, quote, "UPDATE", actor, before=before, after=serialize_model(quote))
        except Exception:
            self.files.delete(key)
            raise

        self.files.delete(previous_key)
        return quote

    def delete_correction_file(self, actor: User, quote_id: int) -> Quote:
        enforce(actor, Operation.MANAGE_CORRECTION_FILE)

        quote = self.get_quote(quote_id)
        if not quote.is_pending:
            raise ConflictError("Cannot delete correction file for approved quotes")
        if not quote.correction_file_path:
            raise NotFoundError("No correction file found")

        key = quote.correction_file_path
        with unit_of_work(self.session):
            before = serialize_model(quote)
            quote.correction_file_path = None
            quote.correction_file_name = None
            self.session.flush()
            log_action(self.session, quote, "UPDATE", actor, before=before, after=serialize_model(quote))

        self.files.delete(key)
        return quote

    def approve_proposal(self, actor: User, quote_id: int, proposal_id: int) -> Quote:
        """
        pending -> approved, atomically:
        - quote.status = approved, quote.approved_supplier_id = winner
        - winning proposal approved, every sibling rejected

        The quote update is conditional on status = pending, so a second
        approval (even a concurrent one) matches no row and is refused.
        """
        enforce(actor, Operation.APPROVE_PROPOSAL)

        quote = self.get_quote(quote_id)
        proposal = self.session.get(Proposal, proposal_id)
        if proposal is None or proposal.quote_id != quote.id:
            raise NotFoundError("Proposal not found for this quote")
        if not quote.is_pending:
            raise ConflictError("Quote is not pending")

        with unit_of_work(self.session):
            before = serialize_model(quote)

            result = self.session.execute(
                update(Quote)
                .where(Quote.id == quote.id, Quote.status == QUOTE_PENDING)
                .values(status=QUOTE_APPROVED, approved_supplier_id=proposal.supplier_id)
            )
            if result.rowcount != 1:
                raise ConflictError("Quote is not pending")

            self.session.execute(
                update(Proposal).where(Proposal.id == proposal.id).values(status=PROPOSAL_APPROVED)
            )
            self.session.execute(
                update(Proposal)
                .where(Proposal.quote_id == quote.id, Proposal.id != proposal.id)
                .values(status=PROPOSAL_REJECTED)
            )

            self.session.refresh(quote)
            log_action(self.session, quote, "APPROVE", actor, before=before, after=serialize_model(quote))

        logger.info(
            "Quote #%s approved: proposal=%s supplier=%s",
            quote.quote_number,
            proposal.id,
            proposal.supplier_id,
        )
        return quote

    def delete_quote(self, actor: User, quote_id: int) -> int:
        """
        Delete a quote with its proposals and drawings (ORM cascade), then
        remove every file it owned. Returns the number of files released.

        Keys are collected before anything is deleted; files go only after
        the commit, so no surviving row can point at a removed file.
        """
        enforce(actor, Operation.DELETE_QUOTE)

        quote = self.get_quote(quote_id)
        keys = quote.file_keys()
        number = quote.quote_number

        with unit_of_work(self.session):
            log_action(self.session, quote, "DELETE", actor, before=serialize_model(quote))
            self.session.delete(quote)

        for key in keys:
            self.files.delete(key)

        logger.info("Quote #%s deleted by user=%s (%d files)", number, actor.id, len(keys))
        return len(keys)

    # -----------------------------------------------------------------
    # Proposals
    # -----------------------------------------------------------------
    def create_proposal(self, actor: User, quote_id: int, value: Any, observations: Optional[str] = None) -> Proposal:
        enforce(actor, Operation.CREATE_PROPOSAL)

        amount = _parse_value(value)
        quote = self.get_quote(quote_id)

        if not quote.is_pending:
            raise ConflictError("Quote is no longer accepting proposals")
        if quote.supplier_type != actor.supplier_type:
            raise AuthorizationError("Quote not available for your supplier type")

        exists = (
            self.session.query(Proposal.id)
            .filter(Proposal.quote_id == quote.id, Proposal.supplier_id == actor.id)
            .first()
        )
        if exists:
            raise ConflictError("Proposal already submitted for this quote")

        with unit_of_work(self.session, conflict_message="Proposal already submitted for this quote"):
            proposal = Proposal(
                quote_id=quote.id,
                supplier_id=actor.id,
                value=amount,
                observations=_clean(observations),
                status=PROPOSAL_PENDING,
            )
            self.session.add(proposal)
            self.session.flush()
            log_action(self.session, proposal, "CREATE", actor, after=serialize_model(proposal))

        logger.info("Proposal %s on quote #%s by supplier=%s", proposal.id, quote.quote_number, actor.id)
        return proposal

    # -----------------------------------------------------------------
    # Technical drawings
    # -----------------------------------------------------------------
    def submit_technical_drawing(
        self, actor: User, proposal_id: int, upload: Optional[IncomingFile]
    ) -> TechnicalDrawing:
        enforce(actor, Operation.SUBMIT_DRAWING)

        if upload is None:
            raise ValidationError("Technical drawing file is required")
        proposal = self.get_proposal(proposal_id)
        enforce(actor, Operation.SUBMIT_DRAWING, proposal)

        if proposal.status != PROPOSAL_APPROVED:
            raise ConflictError("Can only upload technical drawings for approved proposals")
        if proposal.quote.supplier_type != SUPPLIER_TYPE_KNIFE:
            raise ValidationError("Technical drawings are only required for knife suppliers")
        if proposal.technical_drawing is not None:
            raise ConflictError("Technical drawing already uploaded")

        key = self.files.save(upload.data, upload.filename, prefix=DRAWING_KEY_PREFIX)
        try:
            with unit_of_work(self.session, conflict_message="Technical drawing already uploaded"):
                drawing = TechnicalDrawing(
                    proposal_id=proposal.id,
                    file_path=key,
                    file_name=upload.filename,
                    status=DRAWING_PENDING,
                )
                self.session.add(drawing)
                self.session.flush()
                log_action(self.session, drawing, "CREATE", actor, after=serialize_model(drawing))
        except Exception:
            self.files.delete(key)
            raise

        logger.info("Technical drawing %s submitted for proposal=%s", drawing.id, proposal.id)
        return drawing

    def review_technical_drawing(
        self,
        actor: User,
        drawing_id: int,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> TechnicalDrawing:
        """
        pending -> approved | rejected. Rejection needs a reason.
        Reviewer and review time are recorded on both outcomes.
        """
        enforce(actor, Operation.REVIEW_DRAWING)

        status = _clean(status)
        reason = _clean(rejection_reason)
        if status not in (DRAWING_APPROVED, DRAWING_REJECTED):
            raise ValidationError("Invalid status")
        if status == DRAWING_REJECTED and not reason:
            raise ValidationError("Rejection reason is required")

        drawing = self.get_technical_drawing(drawing_id)
        if drawing.status != DRAWING_PENDING:
            raise ConflictError("Technical drawing has already been reviewed")

        with unit_of_work(self.session):
            before = serialize_model(drawing)
            drawing.status = status
            drawing.rejection_reason = reason if status == DRAWING_REJECTED else None
            drawing.reviewed_by = actor.id
            drawing.reviewed_at = datetime.utcnow()
            self.session.flush()
            log_action(self.session, drawing, "REVIEW", actor, before=before, after=serialize_model(drawing))

        logger.info("Technical drawing %s %s by user=%s", drawing.id, status, actor.id)
        return drawing

    def resubmit_technical_drawing(
        self, actor: User, proposal_id: int, upload: Optional[IncomingFile]
    ) -> TechnicalDrawing:
        """rejected -> pending with a new file. Review fields are cleared."""
        enforce(actor, Operation.RESUBMIT_DRAWING)

        if upload is None:
            raise ValidationError("Technical drawing file is required")
        proposal = self.get_proposal(proposal_id)
        enforce(actor, Operation.RESUBMIT_DRAWING, proposal)

        drawing = proposal.technical_drawing
        if drawing is None or drawing.status != DRAWING_REJECTED:
            raise ConflictError("No rejected technical drawing found for this proposal")

        key = self.files.save(upload.data, upload.filename, prefix=DRAWING_KEY_PREFIX)
        self.files.delete(drawing.file_path)
        try:
            with unit_of_work(self.session):
                before = serialize_model(drawing)
                drawing.file_path = key
                drawing.file_name = upload.filename
                drawing.status = DRAWING_PENDING
                drawing.rejection_reason = None
                drawing.reviewed_by = None
                drawing.reviewed_at = None
                drawing.created_at = datetime.utcnow()
                self.session.flush()
                log_action(self.session, drawing, "RESUBMIT", actor, before=before, after=serialize_model(drawing))
        except Exception:
            self.files.delete(key)
            raise

        logger.info("Technical drawing %s resubmitted for proposal=%s", drawing.id, proposal.id)
        return drawing

    def pending_technical_drawings(self, actor: User) -> list[dict]:
        """Review queue, oldest submission first."""
        enforce(actor, Operation.VIEW_PENDING_DRAWINGS)

        rows = (
            self.session.query(TechnicalDrawing, Proposal, Quote, User)
            .join(Proposal, TechnicalDrawing.proposal_id == Proposal.id)
            .join(Quote, Proposal.quote_id == Quote.id)
            .join(User, Proposal.supplier_id == User.id)
            .filter(TechnicalDrawing.status == DRAWING_PENDING)
            .order_by(TechnicalDrawing.created_at.asc(), TechnicalDrawing.id.asc())
            .all()
        )

        queue = []
        for drawing, proposal, quote, supplier in rows:
            item = drawing.to_dict()
            item.update(
                proposal_value=float(proposal.value),
                quote_id=quote.id,
                quote_name=quote.name,
                quote_number=quote.quote_number,
                supplier_name=supplier.name,
                supplier_company=supplier.company_name,
            )
            queue.append(item)
        return queue

    # -----------------------------------------------------------------
    # Downloads
    # -----------------------------------------------------------------
    def open_file(self, actor: User, key: str) -> tuple[bytes, str]:
        """Return (content, download name) for a storage key."""
        enforce(actor, Operation.DOWNLOAD_FILE)

        data = self.files.read(key)

        quote = (
            self.session.query(Quote)
            .filter((Quote.original_file_path == key) | (Quote.correction_file_path == key))
            .first()
        )
        if quote is not None:
            if quote.original_file_path == key:
                return data, quote.original_file_name
            return data, quote.correction_file_name or key

        drawing = self.session.query(TechnicalDrawing).filter(TechnicalDrawing.file_path == key).first()
        if drawing is not None:
            return data, drawing.file_name
        return data, key

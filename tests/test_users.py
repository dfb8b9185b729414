"""User management service and login."""
import pytest

from quotedesk.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from quotedesk.extensions import db
from quotedesk.models import AuditLog, User
from quotedesk.services import users as user_service
from quotedesk.seed import seed_default_admin


def _create(people, **overrides):
    fields = dict(
        email="New@Supplier.test",
        password="pw12345",
        role="die-supplier",
        name="New Supplier",
        company_name="NS",
    )
    fields.update(overrides)
    return user_service.create_user(db.session, people.admin, **fields)


class TestAuthenticate:
    def test_valid(self, people):
        user = user_service.authenticate(db.session, " KNIFE@cutters.test ", "secret123")
        assert user.id == people.knife.id

    def test_wrong_password(self, people):
        with pytest.raises(AuthenticationError):
            user_service.authenticate(db.session, people.knife.email, "nope")

    def test_unknown_email(self, people):
        with pytest.raises(AuthenticationError):
            user_service.authenticate(db.session, "ghost@x.test", "secret123")

    def test_inactive(self, people):
        people.knife.is_active = False
        db.session.commit()
        with pytest.raises(AuthorizationError):
            user_service.authenticate(db.session, people.knife.email, "secret123")


class TestCreateUser:
    def test_email_lowercased_and_password_hashed(self, people):
        user = _create(people)
        assert user.email == "new@supplier.test"
        assert user.password_hash != "pw12345"
        assert user.check_password("pw12345")

    def test_duplicate_email(self, people):
        with pytest.raises(ConflictError, match="Email already exists"):
            _create(people, email=people.knife.email.upper())

    @pytest.mark.parametrize("field", ["email", "password", "role", "name"])
    def test_required_fields(self, people, field):
        with pytest.raises(ValidationError):
            _create(people, **{field: ""})

    def test_invalid_role(self, people):
        with pytest.raises(ValidationError):
            _create(people, role="viewer")

    def test_supplier_cannot_manage(self, people):
        with pytest.raises(AuthorizationError):
            user_service.create_user(db.session, people.knife, "a@b.c", "pw", "admin", "A")

    def test_audit_excludes_password_hash(self, people):
        user = _create(people)
        entry = db.session.query(AuditLog).filter_by(entity_type="User", entity_id=user.id).one()
        assert "password_hash" not in entry.after_data


class TestUpdateUser:
    def test_keeps_password_when_blank(self, people):
        user_service.update_user(
            db.session, people.admin, people.die.id, "die@dies.test", "die-supplier", "Renamed", password=""
        )
        assert people.die.name == "Renamed"
        assert people.die.check_password("secret123")

    def test_changes_password(self, people):
        user_service.update_user(
            db.session, people.admin, people.die.id, "die@dies.test", "die-supplier", "Dee", password="newpass"
        )
        assert people.die.check_password("newpass")

    def test_email_taken_by_other(self, people):
        with pytest.raises(ConflictError):
            user_service.update_user(db.session, people.admin, people.die.id, people.knife.email, "die-supplier", "D")

    def test_cannot_deactivate_self(self, people):
        with pytest.raises(AuthorizationError):
            user_service.update_user(
                db.session, people.admin, people.admin.id, people.admin.email, "admin", "Ana", is_active=False
            )

    def test_unknown_user(self, people):
        with pytest.raises(NotFoundError):
            user_service.update_user(db.session, people.admin, 999, "x@y.z", "admin", "X")


class TestDeleteAndToggle:
    def test_delete(self, people):
        user = _create(people)
        user_id = user.id
        user_service.delete_user(db.session, people.admin, user_id)
        assert db.session.get(User, user_id) is None

    def test_cannot_delete_self(self, people):
        with pytest.raises(AuthorizationError):
            user_service.delete_user(db.session, people.admin, people.admin.id)

    def test_referenced_user_is_kept(self, engine, people, make_file):
        quote = engine.create_quote(people.admin, name="Q", supplier_type="knife", upload=make_file())
        engine.create_proposal(people.knife, quote.id, "10")
        with pytest.raises(ConflictError):
            user_service.delete_user(db.session, people.admin, people.knife.id)

    def test_toggle(self, people):
        user = user_service.toggle_user_status(db.session, people.admin, people.die.id)
        assert user.is_active is False
        user = user_service.toggle_user_status(db.session, people.admin, people.die.id)
        assert user.is_active is True

    def test_cannot_toggle_self(self, people):
        with pytest.raises(AuthorizationError):
            user_service.toggle_user_status(db.session, people.admin, people.admin.id)


def test_seed_default_admin_is_idempotent(app, ctx):
    first = seed_default_admin()
    second = seed_default_admin()
    assert first.id == second.id
    assert first.email == app.config["DEFAULT_ADMIN_EMAIL"]
    assert first.is_admin
    assert db.session.query(User).count() == 1

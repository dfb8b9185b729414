"""
HTTP tests through the Flask test client: authentication, the quote ->
proposal -> approval -> drawing workflow, uploads, users and reports.
"""
from io import BytesIO

import pytest

from quotedesk.forms import QUOTE_FILE_MAX_BYTES


def _quote_form(name="Caixa 40x30", supplier_type="knife", filename="artwork.pdf", data=b"%PDF-1.4"):
    return {
        "name": name,
        "supplier_type": supplier_type,
        "material_type": "onda-b" if supplier_type == "knife" else "",
        "knife_type": "plana" if supplier_type == "knife" else "",
        "observations": "rush",
        "file": (BytesIO(data), filename),
    }


def _create_quote(client, headers, **kwargs):
    resp = client.post("/api/quotes", data=_quote_form(**kwargs), headers=headers, content_type="multipart/form-data")
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _bid(client, headers, quote_id, value="150.00"):
    resp = client.post("/api/proposals", json={"quote_id": quote_id, "value": value}, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


# ── Authentication ────────────────────────────────────────────────────────────

class TestAuth:
    def test_login_returns_token_and_user(self, client, accounts):
        resp = client.post("/api/auth/login", json={"email": "admin@onducart.test", "password": "secret123"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["user"]["role"] == "admin"
        assert "password_hash" not in body["user"]

    def test_bad_credentials(self, client, accounts):
        resp = client.post("/api/auth/login", json={"email": "admin@onducart.test", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid credentials"}

    def test_me(self, client, login):
        resp = client.get("/api/auth/me", headers=login("die"))
        assert resp.get_json()["email"] == "die@dies.test"

    def test_token_required(self, client):
        resp = client.get("/api/quotes")
        assert resp.status_code == 401
        assert "error" in resp.get_json()

    def test_garbage_token(self, client):
        resp = client.get("/api/quotes", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_deactivated_user_token_stops_working(self, client, login, accounts):
        headers = login("die")
        resp = client.patch(f"/api/users/{accounts['die']}/toggle-status", headers=login("admin"))
        assert resp.get_json()["is_active"] is False
        assert client.get("/api/auth/me", headers=headers).status_code == 401


# ── Quote workflow ────────────────────────────────────────────────────────────

class TestQuoteWorkflow:
    def test_end_to_end(self, client, login, accounts):
        admin, knife, knife2 = login("admin"), login("knife"), login("knife2")

        created = _create_quote(client, admin)
        assert created["quote_number"] == 1
        quote_id = created["id"]

        winner = _bid(client, knife, quote_id, "150.00")
        _bid(client, knife2, quote_id, "175.50")

        # suppliers only see their own bid
        listed = client.get("/api/quotes", headers=knife).get_json()
        assert [p["id"] for p in listed[0]["proposals"]] == [winner]

        resp = client.post(f"/api/quotes/{quote_id}/approve/{winner}", headers=admin)
        assert resp.status_code == 200

        quote = client.get("/api/quotes", headers=admin).get_json()[0]
        assert quote["status"] == "approved"
        assert quote["approved_supplier_id"] == accounts["knife"]
        assert sorted(p["status"] for p in quote["proposals"]) == ["approved", "rejected"]

        # the loser no longer sees the quote
        assert client.get("/api/quotes", headers=knife2).get_json() == []

        resp = client.post(
            f"/api/proposals/{winner}/technical-drawing",
            data={"technical_drawing": (BytesIO(b"dxf v1"), "knife.dxf")},
            headers=knife,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        drawing_id = resp.get_json()["id"]

        queue = client.get("/api/proposals/technical-drawings/pending", headers=admin).get_json()
        assert [d["id"] for d in queue] == [drawing_id]
        assert queue[0]["quote_number"] == 1

        resp = client.post(
            f"/api/proposals/technical-drawings/{drawing_id}/review",
            json={"status": "rejected"},
            headers=admin,
        )
        assert resp.status_code == 400

        resp = client.post(
            f"/api/proposals/technical-drawings/{drawing_id}/review",
            json={"status": "rejected", "rejection_reason": "radius too small"},
            headers=admin,
        )
        assert resp.status_code == 200

        resp = client.post(
            f"/api/proposals/{winner}/technical-drawing/resubmit",
            data={"technical_drawing": (BytesIO(b"dxf v2"), "knife-v2.dxf")},
            headers=knife,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200

        drawing = client.get("/api/quotes", headers=knife).get_json()[0]["proposals"][0]["technical_drawing"]
        assert drawing["status"] == "pending"
        assert drawing["rejection_reason"] is None

        resp = client.get(f"/api/quotes/download/{drawing['file_path']}", headers=admin)
        assert resp.status_code == 200
        assert resp.data == b"dxf v2"
        assert "knife-v2.dxf" in resp.headers["Content-Disposition"]

    def test_second_approval_is_conflict(self, client, login):
        admin = login("admin")
        quote_id = _create_quote(client, admin)["id"]
        first = _bid(client, login("knife"), quote_id)
        second = _bid(client, login("knife2"), quote_id)
        assert client.post(f"/api/quotes/{quote_id}/approve/{first}", headers=admin).status_code == 200
        resp = client.post(f"/api/quotes/{quote_id}/approve/{second}", headers=admin)
        assert resp.status_code == 409

    def test_duplicate_and_mismatched_proposals(self, client, login):
        quote_id = _create_quote(client, login("admin"))["id"]
        _bid(client, login("knife"), quote_id)

        resp = client.post("/api/proposals", json={"quote_id": quote_id, "value": 99}, headers=login("knife"))
        assert resp.status_code == 409
        resp = client.post("/api/proposals", json={"quote_id": quote_id, "value": 99}, headers=login("die"))
        assert resp.status_code == 403

    def test_proposal_needs_quote(self, client, login):
        resp = client.post("/api/proposals", json={"value": 10}, headers=login("knife"))
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Quote is required"}

    @pytest.mark.parametrize("quote_id", [1.7, True, "1.0", "abc", "", "-1", 0, None, [1]])
    def test_malformed_quote_id(self, client, login, quote_id):
        _create_quote(client, login("admin"))
        resp = client.post("/api/proposals", json={"quote_id": quote_id, "value": 10}, headers=login("knife"))
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Quote is required"}

    def test_quote_id_as_form_string(self, client, login):
        quote_id = _create_quote(client, login("admin"))["id"]
        resp = client.post("/api/proposals", data={"quote_id": f" {quote_id} ", "value": "10"}, headers=login("knife"))
        assert resp.status_code == 201

    def test_delete_quote_removes_files(self, client, login, upload_dir):
        admin = login("admin")
        quote_id = _create_quote(client, admin)["id"]
        assert len(list(upload_dir.iterdir())) == 1

        assert client.delete(f"/api/quotes/{quote_id}", headers=admin).status_code == 200
        assert list(upload_dir.iterdir()) == []
        assert client.delete(f"/api/quotes/{quote_id}", headers=admin).status_code == 404

    def test_update_and_correction_file(self, client, login):
        admin = login("admin")
        quote_id = _create_quote(client, admin)["id"]

        resp = client.put(f"/api/quotes/{quote_id}", json={"name": "Renamed", "observations": ""}, headers=admin)
        assert resp.status_code == 200

        resp = client.post(
            f"/api/quotes/{quote_id}/correction",
            data={"correction_file": (BytesIO(b"fix"), "fix.pdf")},
            headers=admin,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200

        quote = client.get("/api/quotes", headers=admin).get_json()[0]
        assert quote["name"] == "Renamed"
        assert quote["correction_file_name"] == "fix.pdf"

        assert client.delete(f"/api/quotes/{quote_id}/correction", headers=admin).status_code == 200
        assert client.delete(f"/api/quotes/{quote_id}/correction", headers=admin).status_code == 404


class TestUploadsAndPermissions:
    def test_supplier_cannot_create_quote(self, client, login):
        resp = client.post(
            "/api/quotes", data=_quote_form(), headers=login("knife"), content_type="multipart/form-data"
        )
        assert resp.status_code == 403

    def test_file_required(self, client, login):
        form = _quote_form()
        del form["file"]
        resp = client.post("/api/quotes", data=form, headers=login("admin"), content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "File is required"}

    def test_extension_filter(self, client, login):
        resp = client.post(
            "/api/quotes",
            data=_quote_form(filename="payload.exe"),
            headers=login("admin"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_size_limit(self, client, login):
        resp = client.post(
            "/api/quotes",
            data=_quote_form(data=b"x" * (QUOTE_FILE_MAX_BYTES + 1)),
            headers=login("admin"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "method,url",
        [
            ("get", "/api/users"),
            ("get", "/api/financial/report"),
            ("get", "/api/financial/summary"),
            ("get", "/api/proposals/technical-drawings/pending"),
            ("delete", "/api/quotes/1"),
        ],
    )
    def test_admin_only_endpoints(self, client, login, method, url):
        resp = getattr(client, method)(url, headers=login("die"))
        assert resp.status_code == 403

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()


# ── Users & reports ───────────────────────────────────────────────────────────

class TestUsersApi:
    def test_crud(self, client, login):
        admin = login("admin")
        resp = client.post(
            "/api/users",
            json={"email": "new@x.test", "password": "pw", "role": "knife-supplier", "name": "New"},
            headers=admin,
        )
        assert resp.status_code == 201
        user_id = resp.get_json()["id"]

        resp = client.put(
            f"/api/users/{user_id}",
            json={"email": "new@x.test", "role": "die-supplier", "name": "Newer", "is_active": "false"},
            headers=admin,
        )
        assert resp.status_code == 200

        listed = {u["id"]: u for u in client.get("/api/users", headers=admin).get_json()}
        assert listed[user_id]["role"] == "die-supplier"
        assert listed[user_id]["is_active"] is False

        assert client.delete(f"/api/users/{user_id}", headers=admin).status_code == 200

    def test_duplicate_email(self, client, login):
        resp = client.post(
            "/api/users",
            json={"email": "knife@cutters.test", "password": "pw", "role": "knife-supplier", "name": "Dup"},
            headers=login("admin"),
        )
        assert resp.status_code == 409

    def test_cannot_delete_self(self, client, login, accounts):
        resp = client.delete(f"/api/users/{accounts['admin']}", headers=login("admin"))
        assert resp.status_code == 403


class TestFinancialApi:
    def test_report_and_summary(self, client, login):
        admin = login("admin")
        for name, supplier, value in (("a", "knife", "100.10"), ("b", "knife2", "200.20")):
            quote_id = _create_quote(client, admin, name=name)["id"]
            proposal_id = _bid(client, login(supplier), quote_id, value)
            client.post(f"/api/quotes/{quote_id}/approve/{proposal_id}", headers=admin)

        report = client.get("/api/financial/report", headers=admin).get_json()
        assert report["count"] == 2
        assert report["total"] == pytest.approx(300.30)
        assert isinstance(report["items"][0]["value"], float)

        summary = client.get("/api/financial/summary", headers=admin).get_json()
        assert len(summary) == 1
        assert summary[0]["supplier_type"] == "knife"
        assert summary[0]["count"] == 2

    @pytest.mark.parametrize("query", ["month=13", "month=%C2%B2", "year=%C2%B2%C2%B2%C2%B2%C2%B2"])
    def test_bad_period(self, client, login, query):
        resp = client.get(f"/api/financial/report?{query}", headers=login("admin"))
        assert resp.status_code == 400
        assert "error" in resp.get_json()

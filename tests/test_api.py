"""End-to-end tests for the HTTP API using FastAPI's TestClient."""
import pytest
from fastapi.testclient import TestClient

from tests.fakes import FailingMailer
from vaultnote.api.app import create_application


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client, mailer):
    """Register and verify a user over HTTP, returning the token response."""
    def _signup(username, password="password123"):
        email = f"{username}@example.com"
        response = client.post(
            "/users/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201
        response = client.post(
            "/users/verify-email",
            json={"email": email, "code": mailer.last_code(email)},
        )
        assert response.status_code == 200
        return response.json()
    return _signup


@pytest.fixture
def alice(signup):
    return signup("alice")


@pytest.fixture
def bob(signup):
    return signup("bob")


def create_vault(client, token, name="Work"):
    response = client.post("/vaults", json={"name": name}, headers=auth_header(token))
    assert response.status_code == 201
    return response.json()


def create_note(client, token, vault_id, title, **fields):
    body = {"title": title, "vaultId": vault_id, **fields}
    response = client.post("/notes", json=body, headers=auth_header(token))
    assert response.status_code == 201
    return response.json()


class TestServiceEndpoints:
    """Tests for liveness and health."""

    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json() == {"message": "pong"}

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert "total_operations" in body["metrics"]

    def test_health_reports_service_operations(self, client, alice):
        create_vault(client, alice["token"])
        operations = client.get("/health").json()["metrics"]["operations"]
        assert operations["create_vault"]["calls"] >= 1
        assert operations["verify_email"]["calls"] >= 1


class TestUserEndpoints:
    """Tests for registration, verification and login."""

    def test_register(self, client, mailer):
        response = client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "verification code sent"
        assert body["user"]["isVerified"] is False
        assert "passwordHash" not in body["user"]
        assert len(mailer.sent) == 1

    def test_register_missing_fields(self, client):
        response = client.post("/users/register", json={"email": "alice@example.com"})
        assert response.status_code == 400
        assert response.json() == {
            "error": "username, email and password required",
            "code": "VALIDATION_FAILED",
        }

    def test_register_duplicate_email(self, client, alice):
        response = client.post(
            "/users/register",
            json={"username": "other", "email": "alice@example.com", "password": "password123"},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_ALREADY_REGISTERED"

    def test_malformed_body(self, client):
        response = client.post(
            "/users/login", content="{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    def test_verify_returns_token(self, alice):
        assert alice["role"] == "user"
        assert alice["token"]
        assert alice["user"]["isVerified"] is True

    def test_verify_twice(self, client, mailer, alice):
        response = client.post(
            "/users/verify-email",
            json={"email": "alice@example.com", "code": mailer.last_code("alice@example.com")},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "email already verified"}

    def test_verify_wrong_code(self, client, mailer):
        client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )
        code = mailer.last_code("alice@example.com")
        wrong = "100000" if code != "100000" else "100001"
        response = client.post(
            "/users/verify-email", json={"email": "alice@example.com", "code": wrong}
        )
        assert response.status_code == 401

    def test_verify_unknown_email(self, client):
        response = client.post(
            "/users/verify-email", json={"email": "nobody@example.com", "code": "123456"}
        )
        assert response.status_code == 404

    def test_resend_code(self, client, mailer):
        client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )
        response = client.post("/users/resend-code", json={"email": "alice@example.com"})
        assert response.status_code == 200
        assert response.json() == {"message": "verification code sent"}
        assert len(mailer.sent) == 2

    def test_login_unverified(self, client):
        client.post(
            "/users/register",
            json={"username": "alice", "email": "alice@example.com", "password": "password123"},
        )
        response = client.post(
            "/users/login", json={"email": "alice@example.com", "password": "password123"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_NOT_VERIFIED"

    def test_login(self, client, alice):
        response = client.post(
            "/users/login", json={"email": "alice@example.com", "password": "password123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == alice["user"]["id"]

    def test_login_wrong_password(self, client, alice):
        response = client.post(
            "/users/login", json={"email": "alice@example.com", "password": "nope-nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "invalid credentials"


class TestAccountEndpoints:
    """Tests for changing and deleting an account."""

    def test_change_username(self, client, alice):
        user_id = alice["user"]["id"]
        response = client.put(
            f"/users/{user_id}", json={"username": "alicia"}, headers=auth_header(alice["token"])
        )
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alicia"

    def test_change_username_taken(self, client, alice, bob):
        response = client.put(
            f"/users/{alice['user']['id']}",
            json={"username": "bob"},
            headers=auth_header(alice["token"]),
        )
        assert response.status_code == 409

    def test_cannot_modify_another_account(self, client, alice, bob):
        response = client.put(
            f"/users/{bob['user']['id']}",
            json={"username": "hijacked"},
            headers=auth_header(alice["token"]),
        )
        assert response.status_code == 403

    def test_requires_token(self, client, alice):
        response = client.put(f"/users/{alice['user']['id']}", json={"username": "alicia"})
        assert response.status_code == 401

    def test_change_password(self, client, alice):
        user_id = alice["user"]["id"]
        response = client.put(
            f"/users/{user_id}/password",
            json={"currentPassword": "password123", "newPassword": "new-password-456"},
            headers=auth_header(alice["token"]),
        )
        assert response.status_code == 200
        response = client.post(
            "/users/login", json={"email": "alice@example.com", "password": "new-password-456"}
        )
        assert response.status_code == 200

    def test_delete_account(self, client, alice):
        user_id = alice["user"]["id"]
        headers = auth_header(alice["token"])
        create_vault(client, alice["token"])

        response = client.request(
            "DELETE", f"/users/{user_id}", json={"password": "password123"}, headers=headers
        )
        assert response.status_code == 200
        response = client.post(
            "/users/login", json={"email": "alice@example.com", "password": "password123"}
        )
        assert response.status_code == 401

    def test_deleted_account_token_cannot_create_vault(self, client, alice):
        headers = auth_header(alice["token"])
        client.request(
            "DELETE", f"/users/{alice['user']['id']}", json={"password": "password123"}, headers=headers
        )

        response = client.post("/vaults", json={"name": "Work"}, headers=headers)
        assert response.status_code == 500
        assert response.json()["code"] == "STORAGE_WRITE_FAILED"

    def test_delete_account_wrong_password(self, client, alice):
        response = client.request(
            "DELETE",
            f"/users/{alice['user']['id']}",
            json={"password": "wrong-password"},
            headers=auth_header(alice["token"]),
        )
        assert response.status_code == 401


class TestAdminEndpoints:
    """Tests for the admin override and user listing."""

    @pytest.fixture
    def admin_token(self, client):
        response = client.post("/users/login", json={"email": "admin", "password": "admin"})
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "admin"
        assert body["user"] is None
        return body["token"]

    def test_list_users(self, client, admin_token, alice, bob):
        response = client.get("/users/admin/users", headers=auth_header(admin_token))
        assert response.status_code == 200
        assert {u["username"] for u in response.json()} == {"alice", "bob"}

    def test_list_users_with_user_token(self, client, alice):
        response = client.get("/users/admin/users", headers=auth_header(alice["token"]))
        assert response.status_code == 403

    def test_list_users_without_token(self, client):
        assert client.get("/users/admin/users").status_code == 401

    def test_admin_token_cannot_use_resource_routes(self, client, admin_token):
        assert client.get("/vaults", headers=auth_header(admin_token)).status_code == 401


class TestVaultEndpoints:
    """Tests for /vaults."""

    def test_requires_token(self, client):
        assert client.get("/vaults").status_code == 401
        assert client.get("/vaults", headers=auth_header("garbage")).status_code == 401

    def test_create_and_list(self, client, alice):
        vault = create_vault(client, alice["token"], "  Work ")
        assert vault["name"] == "Work"
        assert vault["ownerId"] == alice["user"]["id"]

        response = client.get("/vaults", headers=auth_header(alice["token"]))
        assert [v["id"] for v in response.json()] == [vault["id"]]

    def test_duplicate_name(self, client, alice):
        create_vault(client, alice["token"])
        response = client.post("/vaults", json={"name": "Work"}, headers=auth_header(alice["token"]))
        assert response.status_code == 409

    def test_empty_name(self, client, alice):
        response = client.post("/vaults", json={"name": "  "}, headers=auth_header(alice["token"]))
        assert response.status_code == 400
        assert "details" not in response.json()

    def test_delete_others_vault(self, client, alice, bob):
        vault = create_vault(client, alice["token"])
        response = client.delete(f"/vaults/{vault['id']}", headers=auth_header(bob["token"]))
        assert response.status_code == 403

    def test_delete_missing_vault(self, client, alice):
        assert client.delete("/vaults/999", headers=auth_header(alice["token"])).status_code == 404

    def test_delete_invalid_id(self, client, alice):
        assert client.delete("/vaults/abc", headers=auth_header(alice["token"])).status_code == 400

    def test_delete_cascades(self, client, alice):
        token = alice["token"]
        vault = create_vault(client, token)
        a = create_note(client, token, vault["id"], "A")
        b = create_note(client, token, vault["id"], "B")
        client.post("/links", json={"fromNoteId": a["id"], "toNoteId": b["id"]}, headers=auth_header(token))

        response = client.delete(f"/vaults/{vault['id']}", headers=auth_header(token))
        assert response.status_code == 200
        assert response.json() == {"message": "vault deleted", "notesDeleted": 2, "linksDeleted": 1}
        assert client.get(f"/notes/{a['id']}", headers=auth_header(token)).status_code == 404


class TestNoteAndLinkEndpoints:
    """Tests for /notes and /links."""

    def test_note_lifecycle(self, client, alice):
        token = alice["token"]
        headers = auth_header(token)
        vault = create_vault(client, token)

        note = create_note(client, token, vault["id"], "  First ", content="Body", hexKey="ff")
        assert note["title"] == "First"
        assert note["hexKey"] == "ff"

        listed = client.get("/notes", params={"vaultId": vault["id"]}, headers=headers).json()
        assert [n["id"] for n in listed] == [note["id"]]

        response = client.put(f"/notes/{note['id']}", json={"title": "Renamed"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert response.json()["content"] == "Body"

        response = client.delete(f"/notes/{note['id']}", headers=headers)
        assert response.status_code == 200
        assert client.get(f"/notes/{note['id']}", headers=headers).status_code == 404

    def test_list_requires_vault_id(self, client, alice):
        assert client.get("/notes", headers=auth_header(alice["token"])).status_code == 400

    def test_create_without_title(self, client, alice):
        vault = create_vault(client, alice["token"])
        response = client.post(
            "/notes", json={"vaultId": vault["id"]}, headers=auth_header(alice["token"])
        )
        assert response.status_code == 400
        assert response.json()["error"] == "title and vaultId required"

    def test_other_users_note_forbidden(self, client, alice, bob):
        vault = create_vault(client, alice["token"])
        note = create_note(client, alice["token"], vault["id"], "Private")
        headers = auth_header(bob["token"])
        assert client.get(f"/notes/{note['id']}", headers=headers).status_code == 403
        assert client.put(f"/notes/{note['id']}", json={"title": "x"}, headers=headers).status_code == 403
        assert client.delete(f"/notes/{note['id']}", headers=headers).status_code == 403

    def test_links(self, client, alice):
        token = alice["token"]
        headers = auth_header(token)
        vault = create_vault(client, token)
        a = create_note(client, token, vault["id"], "A")
        b = create_note(client, token, vault["id"], "B")
        pair = {"fromNoteId": a["id"], "toNoteId": b["id"]}

        response = client.post("/links", json=pair, headers=headers)
        assert response.status_code == 201
        assert response.json()["fromNoteId"] == a["id"]

        duplicate = client.post("/links", json=pair, headers=headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "LINK_ALREADY_EXISTS"

        detail = client.get(f"/notes/{a['id']}", headers=headers).json()
        assert detail["outgoingLinks"][0]["toNote"]["title"] == "B"
        assert client.get(f"/notes/{b['id']}/links", headers=headers).json()[0]["toNoteId"] == b["id"]
        assert len(client.get("/links", headers=headers).json()) == 1

        response = client.request("DELETE", "/links", json=pair, headers=headers)
        assert response.status_code == 200
        response = client.request("DELETE", "/links", json=pair, headers=headers)
        assert response.status_code == 404

    def test_link_missing_endpoint(self, client, alice):
        token = alice["token"]
        vault = create_vault(client, token)
        a = create_note(client, token, vault["id"], "A")
        response = client.post(
            "/links", json={"fromNoteId": a["id"], "toNoteId": 999}, headers=auth_header(token)
        )
        assert response.status_code == 404

    def test_link_requires_both_ids(self, client, alice):
        response = client.post("/links", json={"fromNoteId": 1}, headers=auth_header(alice["token"]))
        assert response.status_code == 400


class TestErrorHandling:
    """Tests for error response shaping."""

    def test_details_exposed_when_configured(self, test_config, engine, mailer, monkeypatch):
        monkeypatch.setattr(test_config, "expose_error_details", True)
        with TestClient(create_application(test_config, engine=engine, mailer=mailer)) as client:
            response = client.post("/users/resend-code", json={})
        assert response.status_code == 400
        assert response.json()["details"] == {"field": "email"}

    def test_unexpected_error_is_generic_500(self, app, alice, monkeypatch):
        def boom(owner_id):
            raise RuntimeError("/secret/path exploded")

        monkeypatch.setattr(app.state.services.vaults, "list", boom)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/vaults", headers=auth_header(alice["token"]))
        assert response.status_code == 500
        assert response.json() == {"error": "internal server error", "code": "INTERNAL"}

    def test_mail_failure(self, test_config, engine):
        app = create_application(test_config, engine=engine, mailer=FailingMailer())
        with TestClient(app) as client:
            response = client.post(
                "/users/register",
                json={"username": "alice", "email": "alice@example.com", "password": "password123"},
            )
        assert response.status_code == 500
        assert response.json()["code"] == "MAIL_DELIVERY_FAILED"

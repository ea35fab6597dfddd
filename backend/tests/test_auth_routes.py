"""
Authentication and account management tests.

Verifies:
- Owner bootstrap only works on an empty system
- Only the owner registers employees
- Session tokens stop working after logout
"""

from datetime import timedelta

from conftest import PASSWORD, auth_headers, token_for
from exhibition.models import User
from exhibition.services import session_service


NEW_EMPLOYEE = {
    "username": "newbie",
    "email": "Newbie@Example.com",
    "password": "Sup3r$ecret",
    "full_name": "New Employee",
}


class TestCreateOwner:

    def test_bootstrap_owner(self, client, db_session):
        resp = client.post("/api/auth/create-owner", json={
            "username": "boss",
            "email": "boss@example.com",
            "password": PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role"] == "OWNER"

    def test_second_owner_refused(self, client, db_session, employee):
        resp = client.post("/api/auth/create-owner", json={
            "username": "boss",
            "email": "boss@example.com",
            "password": PASSWORD,
        })
        assert resp.status_code == 400
        assert db_session.query(User).filter_by(username="boss").first() is None

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/create-owner", json={"username": "boss"})
        assert resp.status_code == 400


class TestLogin:

    def test_login_and_me(self, client, db_session, employee):
        resp = client.post("/api/auth/login", json={"username": "emp1", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["role"] == "EMPLOYEE"

        me = client.get("/api/auth/me", headers=auth_headers(body["token"]))
        assert me.status_code == 200
        assert me.get_json()["user"]["username"] == "emp1"

    def test_wrong_password(self, client, db_session, employee):
        resp = client.post("/api/auth/login", json={"username": "emp1", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_inactive_user_cannot_login(self, client, db_session, employee):
        employee.is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"username": "emp1", "password": PASSWORD})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, db_session, employee):
        token = token_for(employee)
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_deactivated_user_token_stops_working(self, client, db_session, employee):
        token = token_for(employee)
        employee.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None
        assert client.get("/api/invoices", headers=auth_headers(token)).status_code == 401


class TestRegisterEmployee:

    def test_owner_registers_employee(self, client, db_session, owner_headers):
        resp = client.post("/api/auth/register", json=NEW_EMPLOYEE, headers=owner_headers)
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["role"] == "EMPLOYEE"
        assert user["email"] == "newbie@example.com"

    def test_duplicate_is_409(self, client, db_session, owner_headers, employee):
        resp = client.post(
            "/api/auth/register",
            json={**NEW_EMPLOYEE, "username": "emp1"},
            headers=owner_headers,
        )
        assert resp.status_code == 409

    def test_weak_password_is_400(self, client, db_session, owner_headers):
        resp = client.post(
            "/api/auth/register",
            json={**NEW_EMPLOYEE, "password": "short"},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_cannot_register_owner(self, client, db_session, owner_headers):
        resp = client.post(
            "/api/auth/register",
            json={**NEW_EMPLOYEE, "role": "OWNER"},
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_employee_cannot_register(self, client, db_session, employee_headers):
        resp = client.post("/api/auth/register", json=NEW_EMPLOYEE, headers=employee_headers)
        assert resp.status_code == 403


class TestChangePassword:

    NEW_PASSWORD = "N3w$ecret!"

    def test_change_password_revokes_other_sessions(self, client, db_session, employee):
        current = token_for(employee)
        other = token_for(employee)

        resp = client.post("/api/auth/change-password", headers=auth_headers(current), json={
            "current_password": PASSWORD,
            "new_password": self.NEW_PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.get_json()["sessions_revoked"] == 1

        assert client.get("/api/auth/me", headers=auth_headers(current)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(other)).status_code == 401

        old = client.post("/api/auth/login", json={"username": "emp1", "password": PASSWORD})
        assert old.status_code == 401
        new = client.post("/api/auth/login", json={"username": "emp1", "password": self.NEW_PASSWORD})
        assert new.status_code == 200

    def test_wrong_current_password_is_401(self, client, db_session, employee, employee_headers):
        before = db_session.get(User, employee.id).password_hash

        resp = client.post("/api/auth/change-password", headers=employee_headers, json={
            "current_password": "Wrong123!",
            "new_password": self.NEW_PASSWORD,
        })
        assert resp.status_code == 401
        assert db_session.get(User, employee.id, populate_existing=True).password_hash == before

    def test_weak_new_password_is_400(self, client, db_session, employee_headers):
        resp = client.post("/api/auth/change-password", headers=employee_headers, json={
            "current_password": PASSWORD,
            "new_password": "weak",
        })
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "validation"

    def test_same_password_is_400(self, client, db_session, owner_headers):
        resp = client.post("/api/auth/change-password", headers=owner_headers, json={
            "current_password": PASSWORD,
            "new_password": PASSWORD,
        })
        assert resp.status_code == 400

    def test_missing_fields(self, client, db_session, owner_headers):
        resp = client.post("/api/auth/change-password", headers=owner_headers, json={"new_password": 12345678})
        assert resp.status_code == 400

    def test_requires_auth(self, client, db_session):
        resp = client.post("/api/auth/change-password", json={
            "current_password": PASSWORD,
            "new_password": self.NEW_PASSWORD,
        })
        assert resp.status_code == 401


class TestDeviceToken:

    def test_update_and_clear(self, client, db_session, owner, owner_headers):
        resp = client.post("/api/auth/device-token", json={"device_token": "abc123"}, headers=owner_headers)
        assert resp.status_code == 200
        assert db_session.get(User, owner.id, populate_existing=True).device_token == "abc123"

        client.post("/api/auth/device-token", json={"device_token": ""}, headers=owner_headers)
        assert db_session.get(User, owner.id, populate_existing=True).device_token is None


class TestEmployeeOversight:

    def test_owner_lists_employees(self, client, db_session, owner_headers, employee, other_employee):
        resp = client.get("/api/users/employees", headers=owner_headers)
        assert resp.status_code == 200
        assert [u["username"] for u in resp.get_json()] == ["emp1", "emp2"]

    def test_get_employee(self, client, db_session, owner, owner_headers, employee):
        assert client.get(f"/api/users/employees/{employee.id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/users/employees/{owner.id}", headers=owner_headers).status_code == 404

    def test_employee_invoices(self, client, db_session, owner_headers, employee, employee_headers, product_a):
        client.post(
            "/api/invoices",
            json={"customer_name": "Jane", "items": [{"product_id": product_a.id, "quantity": 1}]},
            headers=employee_headers,
        )
        resp = client.get(
            f"/api/users/employees/{employee.id}/invoices?is_confirmed=false",
            headers=owner_headers,
        )
        assert resp.status_code == 200
        assert len(resp.get_json()) == 1

    def test_employee_denied(self, client, db_session, employee_headers):
        assert client.get("/api/users/employees", headers=employee_headers).status_code == 403


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["checks"]["database"]["status"] == "healthy"


def test_idle_session_is_revoked(db_session, employee):
    session, token = session_service.create_session(employee.id)
    session.last_used_at = session.last_used_at - timedelta(hours=3)
    db_session.commit()

    assert session_service.validate_session(token) is None
    db_session.refresh(session)
    assert session.is_revoked is True
    assert session.revoked_reason == "Idle timeout"

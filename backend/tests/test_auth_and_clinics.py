# Overview: Pytest coverage for sign-up, sessions, clinics, memberships and the CLI.

import pytest

from clinic.models import ClinicMembership, Permission, SecurityEvent, User
from clinic.permissions import ClinicRole, GlobalRole
from clinic.services import auth_service, session_service
from clinic.services.auth_service import PasswordValidationError

from conftest import TEST_PASSWORD, headers_for


# =============================================================================
# AUTH
# =============================================================================


class TestPasswordStrength:

    @pytest.mark.parametrize("password", ["Short1!", "nouppercase1!", "NOLOWERCASE1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_strong_password_accepted(self):
        auth_service.validate_password_strength(TEST_PASSWORD)


class TestRegisterAndLogin:

    def test_register_then_login(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "Ana Souza",
            "email": "Ana@Clinic.Test",
            "password": TEST_PASSWORD,
        })
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["email"] == "ana@clinic.test"
        assert user["role"] == GlobalRole.STAFF

        resp = client.post("/api/auth/login", json={"email": "ana@clinic.test", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["clinics"] == []
        assert body["session"]["user_id"] == user["id"]

    def test_duplicate_email_is_400(self, client, make_user):
        make_user(email="taken@clinic.test")
        resp = client.post("/api/auth/register", json={
            "name": "Someone",
            "email": "taken@clinic.test",
            "password": TEST_PASSWORD,
        })
        assert resp.status_code == 400

    def test_weak_password_is_400(self, client, db_session):
        resp = client.post("/api/auth/register", json={"name": "A", "email": "a@clinic.test", "password": "weak"})
        assert resp.status_code == 400

    def test_login_lists_clinics(self, client, db_session, clinic_a):
        email = db_session.get(User, clinic_a.owner_id).email
        resp = client.post("/api/auth/login", json={"email": email, "password": TEST_PASSWORD})
        clinics = resp.get_json()["clinics"]
        assert [(c["clinic_id"], c["role"]) for c in clinics] == [(clinic_a.id, ClinicRole.OWNER)]

    def test_failed_login_is_logged(self, client, db_session, make_user):
        make_user(email="ana@clinic.test")
        resp = client.post("/api/auth/login", json={"email": "ana@clinic.test", "password": "Wrong123!"})
        assert resp.status_code == 401

        event = db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").one()
        assert event.success is False
        assert event.action == "ana@clinic.test"

    def test_inactive_user_cannot_login(self, client, db_session, make_user):
        user_id = make_user(email="gone@clinic.test")
        db_session.get(User, user_id).is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"email": "gone@clinic.test", "password": TEST_PASSWORD})
        assert resp.status_code == 401


class TestSessions:

    def test_me(self, client, clinic_a):
        resp = client.get("/api/auth/me", headers=clinic_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["id"] == clinic_a.owner_id

    def test_logout_revokes_token(self, client, make_user):
        headers = headers_for(make_user())
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401
        assert client.post("/api/auth/logout", headers=headers).status_code == 401

    def test_revoke_all_sessions(self, client, make_user):
        user_id = make_user()
        first, second = headers_for(user_id), headers_for(user_id)
        assert session_service.revoke_all_user_sessions(user_id) == 2
        assert client.get("/api/auth/me", headers=first).status_code == 401
        assert client.get("/api/auth/me", headers=second).status_code == 401

    def test_identity_alias(self, app, client, monkeypatch, clinic_a, make_user):
        external = make_user(email="sso-user@clinic.test")
        monkeypatch.setitem(app.config, "IDENTITY_ALIASES", {"sso-user@clinic.test": clinic_a.owner_id})

        resp = client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=headers_for(external))

        assert resp.status_code == 200

    def test_alias_to_missing_user_is_ignored(self, app, client, monkeypatch, make_user):
        external = make_user(email="sso-user@clinic.test")
        monkeypatch.setitem(app.config, "IDENTITY_ALIASES", {str(external): 999999})

        resp = client.get("/api/auth/me", headers=headers_for(external))

        assert resp.get_json()["user"]["id"] == external


# =============================================================================
# CLINICS AND MEMBERS
# =============================================================================


class TestClinics:

    def test_creator_becomes_owner(self, client, db_session, make_user):
        user_id = make_user()
        resp = client.post("/api/clinics", json={"name": "Clinica Centro"}, headers=headers_for(user_id))
        assert resp.status_code == 201
        clinic_id = resp.get_json()["clinic"]["id"]

        membership = db_session.query(ClinicMembership).filter_by(clinic_id=clinic_id, user_id=user_id).one()
        assert membership.role == ClinicRole.OWNER

    def test_clinic_name_required(self, client, make_user):
        resp = client.post("/api/clinics", json={}, headers=headers_for(make_user()))
        assert resp.status_code == 400

    def test_list_only_own_clinics(self, client, clinic_a, clinic_b):
        resp = client.get("/api/clinics", headers=clinic_a.headers)
        assert [c["id"] for c in resp.get_json()["clinics"]] == [clinic_a.id]

    def test_get_clinic_returns_membership(self, client, clinic_a):
        resp = client.get(f"/api/clinics/{clinic_a.id}", headers=clinic_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["membership"]["role"] == ClinicRole.OWNER

    def test_update_clinic(self, client, clinic_a):
        resp = client.put(f"/api/clinics/{clinic_a.id}", json={"phone": "+55 11 5555-0000"}, headers=clinic_a.headers)
        assert resp.status_code == 200
        assert resp.get_json()["clinic"]["phone"] == "+55 11 5555-0000"


class TestMembers:

    def test_sole_owner_cannot_leave(self, client, clinic_a):
        resp = client.delete(
            f"/api/clinics/{clinic_a.id}/members/{clinic_a.owner_membership_id}",
            headers=clinic_a.headers,
        )
        assert resp.status_code == 400

    def test_last_owner_cannot_be_demoted(self, client, clinic_a):
        resp = client.put(
            f"/api/clinics/{clinic_a.id}/members/{clinic_a.owner_membership_id}",
            json={"role": "MANAGER"},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 400

    def test_manager_cannot_remove_last_owner(self, client, db_session, clinic_a, add_member):
        manager = add_member(clinic_a.id, ClinicRole.MANAGER)
        resp = client.delete(
            f"/api/clinics/{clinic_a.id}/members/{clinic_a.owner_membership_id}",
            headers=manager.headers,
        )
        assert resp.status_code == 400
        assert db_session.query(ClinicMembership).filter_by(clinic_id=clinic_a.id, role=ClinicRole.OWNER).count() == 1

    def test_owner_can_leave_when_another_owner_exists(self, client, db_session, clinic_a, add_member):
        add_member(clinic_a.id, ClinicRole.OWNER)
        resp = client.delete(
            f"/api/clinics/{clinic_a.id}/members/{clinic_a.owner_membership_id}",
            headers=clinic_a.headers,
        )
        assert resp.status_code == 200
        assert db_session.get(ClinicMembership, clinic_a.owner_membership_id) is None

    def test_removing_member_drops_grants(self, client, db_session, clinic_a, add_member):
        member = add_member(clinic_a.id, permissions=[("financial", "read")])
        resp = client.delete(f"/api/clinics/{clinic_a.id}/members/{member.membership_id}", headers=clinic_a.headers)
        assert resp.status_code == 200
        assert db_session.query(Permission).filter_by(membership_id=member.membership_id).count() == 0

    def test_change_role(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id)
        resp = client.put(
            f"/api/clinics/{clinic_a.id}/members/{member.membership_id}",
            json={"role": "FINANCIAL"},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["member"]["role"] == "FINANCIAL"

    def test_unknown_role_is_400(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id)
        resp = client.put(
            f"/api/clinics/{clinic_a.id}/members/{member.membership_id}",
            json={"role": "EMPEROR"},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 400


class TestMemberPermissionRoutes:

    def _url(self, clinic, membership_id, suffix=""):
        return f"/api/clinics/{clinic.id}/members/{membership_id}/permissions{suffix}"

    def test_grant_list_revoke(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id)

        resp = client.post(self._url(clinic_a, member.membership_id),
                           json={"module": "financial", "action": "read"}, headers=clinic_a.headers)
        assert resp.status_code == 201
        permission_id = resp.get_json()["permission"]["id"]
        assert client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=member.headers).status_code == 200

        listed = client.get(self._url(clinic_a, member.membership_id), headers=clinic_a.headers).get_json()
        assert [(p["module"], p["action"]) for p in listed["permissions"]] == [("financial", "read")]

        resp = client.delete(self._url(clinic_a, member.membership_id, f"/{permission_id}"), headers=clinic_a.headers)
        assert resp.status_code == 200
        assert client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=member.headers).status_code == 403

    def test_grant_is_idempotent(self, client, db_session, clinic_a, add_member):
        member = add_member(clinic_a.id)
        for _ in range(2):
            client.post(self._url(clinic_a, member.membership_id),
                        json={"module": "clients", "action": "read"}, headers=clinic_a.headers)
        assert db_session.query(Permission).filter_by(membership_id=member.membership_id).count() == 1

    def test_unknown_key_is_400(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id)
        resp = client.post(self._url(clinic_a, member.membership_id),
                           json={"module": "financial", "action": "fly"}, headers=clinic_a.headers)
        assert resp.status_code == 400

    def test_bulk_copy(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id, permissions=[("clients", "read")])
        resp = client.post(
            self._url(clinic_a, member.membership_id),
            json={"permissions": [{"module": "clients", "action": "read"}, {"module": "reports", "action": "read"}]},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 201
        assert [(p["module"], p["action"]) for p in resp.get_json()["created"]] == [("reports", "read")]

    def test_apply_role_defaults(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.RECEPTIONIST, permissions=[("financial", "read")])
        resp = client.post(self._url(clinic_a, member.membership_id, "/defaults"), headers=clinic_a.headers)
        assert resp.status_code == 200
        keys = {(p["module"], p["action"]) for p in resp.get_json()["permissions"]}
        assert ("financial", "read") not in keys
        assert ("appointments", "delete") in keys

    def test_catalogue(self, client, clinic_a):
        resp = client.get("/api/permissions/catalogue", headers=clinic_a.headers)
        assert resp.status_code == 200


# =============================================================================
# CLI
# =============================================================================


class TestCli:

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init", "--clinic", "Seed Clinic"])
        assert first.exit_code == 0, first.output
        assert "Created clinic: Seed Clinic" in first.output

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0, second.output
        assert "already belongs" in second.output

        admin = db_session.query(User).filter_by(email="admin@clinic.local").one()
        assert admin.role == GlobalRole.SUPER_ADMIN

    def test_perms_grant_and_revoke(self, app, db_session, clinic_a, add_member):
        member = add_member(clinic_a.id)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["perms", "grant", str(member.membership_id), "financial", "read"])
        assert result.exit_code == 0, result.output
        assert db_session.query(Permission).filter_by(membership_id=member.membership_id).count() == 1

        result = runner.invoke(args=["perms", "revoke", str(member.membership_id), "financial", "read"])
        assert "PASS Revoked" in result.output

        result = runner.invoke(args=["perms", "grant", str(member.membership_id), "financial", "fly"])
        assert result.exit_code != 0

    def test_clinics_create_unknown_owner(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["clinics", "create", "--name", "X", "--owner-email", "nobody@x.io"])
        assert result.exit_code != 0
        assert "No user with email" in result.output

"""
Authorization tests.

Verifies:
- The decision order of authorize(): unauthenticated, membership, role
  short-circuit, Permission lookup
- Unauthenticated requests return 401
- Members without the grant get 403 and a PERMISSION_DENIED event
- "My permissions" never rejects the caller
"""

import pytest

from clinic.models import SecurityEvent
from clinic.permissions import ClinicRole, GlobalRole, get_all_permission_keys
from clinic.services import permission_service
from clinic.services.session_service import Identity


def _identity(user_id, role=GlobalRole.STAFF):
    return Identity(user_id=user_id, global_role=role, email=f"{user_id}@clinic.test")


# =============================================================================
# DECISION FUNCTION
# =============================================================================


class TestAuthorizeDecision:

    def test_no_identity_is_unauthenticated(self, clinic_a):
        decision = permission_service.authorize(None, clinic_a.id, "financial", "read")
        assert not decision.allowed
        assert decision.reason == "unauthenticated"
        assert decision.status_code == 401

    def test_non_member_is_denied(self, clinic_a, make_user):
        outsider = make_user()
        decision = permission_service.authorize(_identity(outsider), clinic_a.id, "dashboard", "read")
        assert not decision.allowed
        assert decision.reason == "no clinic access"
        assert decision.status_code == 403

    def test_super_admin_without_membership_is_denied(self, clinic_a, make_user):
        admin = make_user(role=GlobalRole.SUPER_ADMIN)
        decision = permission_service.authorize(
            _identity(admin, GlobalRole.SUPER_ADMIN), clinic_a.id, "financial", "read"
        )
        assert not decision.allowed
        assert decision.reason == "no clinic access"

    @pytest.mark.parametrize("module,action", get_all_permission_keys())
    def test_super_admin_member_allowed_without_grants(self, clinic_a, add_member, module, action):
        admin = add_member(clinic_a.id, ClinicRole.STAFF, global_role=GlobalRole.SUPER_ADMIN)
        decision = permission_service.authorize(
            _identity(admin.user_id, GlobalRole.SUPER_ADMIN), clinic_a.id, module, action
        )
        assert decision.allowed

    @pytest.mark.parametrize("role", [ClinicRole.OWNER, ClinicRole.MANAGER])
    def test_management_roles_short_circuit(self, clinic_a, add_member, role):
        member = add_member(clinic_a.id, role)
        decision = permission_service.authorize(_identity(member.user_id), clinic_a.id, "financial", "delete")
        assert decision.allowed
        assert decision.membership.id == member.membership_id

    def test_staff_without_grant_is_denied(self, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF)
        decision = permission_service.authorize(_identity(member.user_id), clinic_a.id, "financial", "read")
        assert not decision.allowed
        assert decision.reason == "missing permission"
        assert decision.status_code == 403

    def test_staff_with_grant_is_allowed(self, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF, permissions=[("financial", "read")])
        identity = _identity(member.user_id)
        assert permission_service.authorize(identity, clinic_a.id, "financial", "read").allowed
        assert not permission_service.authorize(identity, clinic_a.id, "financial", "update").allowed

    def test_grant_in_one_clinic_does_not_leak(self, clinic_a, clinic_b, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF, permissions=[("financial", "read")])
        decision = permission_service.authorize(_identity(member.user_id), clinic_b.id, "financial", "read")
        assert not decision.allowed
        assert decision.reason == "no clinic access"


class TestIsClinicManager:

    def test_super_admin_without_membership_is_manager(self, clinic_a, make_user):
        admin = make_user(role=GlobalRole.SUPER_ADMIN)
        assert permission_service.is_clinic_manager(_identity(admin, GlobalRole.SUPER_ADMIN), clinic_a.id).allowed

    def test_owner_is_manager(self, clinic_a):
        assert permission_service.is_clinic_manager(_identity(clinic_a.owner_id), clinic_a.id).allowed

    def test_receptionist_is_not_manager(self, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.RECEPTIONIST)
        decision = permission_service.is_clinic_manager(_identity(member.user_id), clinic_a.id)
        assert not decision.allowed
        assert decision.status_code == 403


class TestRequireClinicPermission:

    def test_denial_raises_and_logs(self, db_session, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF)
        with pytest.raises(permission_service.PermissionDeniedError) as exc:
            permission_service.require_clinic_permission(
                _identity(member.user_id), clinic_a.id, "financial", "read", resource="test"
            )
        assert exc.value.status_code == 403

        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.clinic_id == clinic_a.id
        assert event.action == "financial:read"
        assert event.reason == "missing permission"


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/clinics"),
            ("POST", "/api/clinics"),
            ("GET", "/api/clinics/{cid}"),
            ("GET", "/api/clinics/{cid}/members"),
            ("GET", "/api/clinics/{cid}/invitations"),
            ("GET", "/api/clinics/{cid}/clients"),
            ("GET", "/api/clinics/{cid}/appointments"),
            ("GET", "/api/clinics/{cid}/financial/expenses"),
            ("POST", "/api/clinics/{cid}/financial/expenses"),
            ("GET", "/api/clinics/{cid}/financial/accounts"),
            ("GET", "/api/clinics/{cid}/financial/reports/cash-flow"),
            ("GET", "/api/clinics/{cid}/payments"),
            ("GET", "/api/clinics/{cid}/commissions"),
            ("GET", "/api/permissions/catalogue"),
        ],
    )
    def test_requires_auth(self, client, clinic_a, method, path):
        resp = getattr(client, method.lower())(path.format(cid=clinic_a.id))
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Authentication required"

    def test_garbage_token_is_401(self, client, clinic_a):
        resp = client.get(
            f"/api/clinics/{clinic_a.id}/financial/expenses",
            headers={"Authorization": "Bearer not-a-real-token"},
        )
        assert resp.status_code == 401


# =============================================================================
# MEMBER DENIED (403)
# =============================================================================


class TestMemberDenied:

    def test_staff_cannot_read_financials(self, client, db_session, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF)
        resp = client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=member.headers)
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["reason"] == "missing permission"
        assert body["required_permission"] == "financial:read"

        events = db_session.query(SecurityEvent).filter_by(
            event_type="PERMISSION_DENIED", user_id=member.user_id
        ).all()
        assert len(events) == 1

    def test_staff_default_grants_allow_clients(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF, permissions=[("clients", "read")])
        resp = client.get(f"/api/clinics/{clinic_a.id}/clients", headers=member.headers)
        assert resp.status_code == 200

    def test_receptionist_cannot_manage_members(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.RECEPTIONIST)
        resp = client.put(
            f"/api/clinics/{clinic_a.id}/members/{clinic_a.owner_membership_id}",
            json={"role": "STAFF"},
            headers=member.headers,
        )
        assert resp.status_code == 403

    def test_other_clinic_owner_is_denied(self, client, clinic_a, clinic_b):
        resp = client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=clinic_b.headers)
        assert resp.status_code == 403
        assert resp.get_json()["reason"] == "no clinic access"


# =============================================================================
# MY PERMISSIONS
# =============================================================================


class TestMyPermissions:

    def test_unauthenticated_gets_empty_list(self, client, clinic_a):
        resp = client.get(f"/api/clinics/{clinic_a.id}/permissions/me")
        assert resp.status_code == 200
        assert resp.get_json() == {"permissions": []}

    def test_non_member_gets_empty_list(self, client, clinic_a, clinic_b):
        resp = client.get(f"/api/clinics/{clinic_a.id}/permissions/me", headers=clinic_b.headers)
        assert resp.status_code == 200
        assert resp.get_json()["permissions"] == []

    def test_owner_gets_catalogue(self, client, clinic_a):
        resp = client.get(f"/api/clinics/{clinic_a.id}/permissions/me", headers=clinic_a.headers)
        assert len(resp.get_json()["permissions"]) == len(get_all_permission_keys())

    def test_staff_gets_own_grants(self, client, clinic_a, add_member):
        member = add_member(clinic_a.id, ClinicRole.STAFF, permissions=[("clients", "read"), ("reports", "read")])
        resp = client.get(f"/api/clinics/{clinic_a.id}/permissions/me", headers=member.headers)
        assert sorted((p["module"], p["action"]) for p in resp.get_json()["permissions"]) == [
            ("clients", "read"),
            ("reports", "read"),
        ]

# Overview: Pytest coverage for clinic isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-clinic access is denied for core resources.

These tests create two clinics with separate owners, then verify that:
1. An id belonging to clinic B is "not found" through clinic A's routes
2. Listings only return the clinic's own rows
3. References to another clinic's client or professional are rejected
"""

import pytest

from clinic.models import Account, Expense
from clinic.services import financial_service
from clinic.services.clinic_service import get_clinic_scoped
from clinic.validation import NotFoundError


@pytest.fixture
def expense_b(clinic_b):
    expense = financial_service.create_expense(clinic_b.id, clinic_b.owner_id, {
        "description": "B rent",
        "category": "rent",
        "amount_cents": 5000,
        "due_date": "2026-05-10",
    })
    return expense.id


class TestScopingHelper:

    def test_own_row_is_returned(self, clinic_b, expense_b):
        assert get_clinic_scoped(Expense, expense_b, clinic_b.id).id == expense_b

    def test_foreign_row_is_not_found(self, clinic_a, expense_b):
        with pytest.raises(NotFoundError):
            get_clinic_scoped(Expense, expense_b, clinic_a.id)


class TestCrossClinicRoutes:

    def test_foreign_expense_is_404(self, client, clinic_a, expense_b):
        resp = client.get(f"/api/clinics/{clinic_a.id}/financial/expenses/{expense_b}", headers=clinic_a.headers)
        assert resp.status_code == 404

    def test_cannot_pay_foreign_expense(self, client, db_session, clinic_a, expense_b):
        resp = client.post(
            f"/api/clinics/{clinic_a.id}/financial/expenses/{expense_b}/pay",
            json={"payment_method": "pix"},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 404
        assert db_session.get(Expense, expense_b).status == "PENDING"

    def test_listing_only_shows_own_rows(self, client, clinic_a, expense_b):
        financial_service.create_expense(clinic_a.id, clinic_a.owner_id, {
            "description": "A rent",
            "category": "rent",
            "amount_cents": 1000,
            "due_date": "2026-05-10",
        })
        resp = client.get(f"/api/clinics/{clinic_a.id}/financial/expenses", headers=clinic_a.headers)
        descriptions = [e["description"] for e in resp.get_json()["expenses"]]
        assert descriptions == ["A rent"]

    def test_transaction_on_foreign_account_is_404(self, client, db_session, clinic_a, clinic_b):
        account = financial_service.create_account(clinic_b.id, {"name": "B bank", "balance_cents": 100})
        account_id = account.id
        resp = client.post(
            f"/api/clinics/{clinic_a.id}/financial/transactions",
            json={
                "account_id": account_id,
                "type": "income",
                "amount_cents": 500,
                "transaction_date": "2026-05-10T10:00:00Z",
            },
            headers=clinic_a.headers,
        )
        assert resp.status_code == 404
        assert db_session.get(Account, account_id).balance_cents == 100

    def test_payment_for_foreign_client_is_404(self, client, clinic_a, clinic_b):
        resp = client.post(
            f"/api/clinics/{clinic_b.id}/clients",
            json={"name": "Client of B"},
            headers=clinic_b.headers,
        )
        foreign_client_id = resp.get_json()["client"]["id"]

        resp = client.post(
            f"/api/clinics/{clinic_a.id}/payments",
            json={"client_id": foreign_client_id, "amount_cents": 1000},
            headers=clinic_a.headers,
        )
        assert resp.status_code == 404

    def test_appointment_with_foreign_professional_is_404(self, client, clinic_a, clinic_b):
        own_client = client.post(
            f"/api/clinics/{clinic_a.id}/clients", json={"name": "Ana"}, headers=clinic_a.headers
        ).get_json()["client"]["id"]
        foreign_professional = client.post(
            f"/api/clinics/{clinic_b.id}/professionals", json={"name": "Dr. B"}, headers=clinic_b.headers
        ).get_json()["professional"]["id"]

        resp = client.post(
            f"/api/clinics/{clinic_a.id}/appointments",
            json={
                "client_id": own_client,
                "professional_id": foreign_professional,
                "start_time": "2026-05-10T10:00:00Z",
                "end_time": "2026-05-10T11:00:00Z",
            },
            headers=clinic_a.headers,
        )
        assert resp.status_code == 404

    def test_foreign_membership_permissions_are_404(self, client, clinic_a, clinic_b):
        resp = client.get(
            f"/api/clinics/{clinic_a.id}/members/{clinic_b.owner_membership_id}/permissions",
            headers=clinic_a.headers,
        )
        assert resp.status_code == 404

# Overview: Pytest coverage for health/version endpoints and retention jobs.

from datetime import timedelta

from clinic.models import Invitation, SecurityEvent
from clinic.services import invitation_service, maintenance_service
from clinic.time_utils import utcnow


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert set(body["checks"]) == {"database", "session_service"}


def test_version(client):
    body = client.get("/version").get_json()
    assert body["api_version"] == "1.0.0"
    assert "secret" not in str(body).lower()


def test_cors_only_for_allowed_origins(app, client):
    allowed = sorted(app.config["CORS_ALLOWED_ORIGINS"])[0]
    assert client.get("/version", headers={"Origin": allowed}).headers["Access-Control-Allow-Origin"] == allowed
    assert "Access-Control-Allow-Origin" not in client.get("/version", headers={"Origin": "https://evil.test"}).headers


class TestRetention:

    def _event(self, db_session, age_days):
        db_session.add(SecurityEvent(
            event_type="LOGIN_FAILED",
            success=False,
            occurred_at=utcnow() - timedelta(days=age_days),
        ))
        db_session.commit()

    def test_old_security_events_deleted(self, db_session):
        self._event(db_session, 120)
        self._event(db_session, 10)

        assert maintenance_service.cleanup_security_events(retention_days=90) == 1
        assert db_session.query(SecurityEvent).count() == 1

    def test_cli_cleanup(self, app, db_session):
        self._event(db_session, 5)
        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-security-events", "--retention-days", "1"])
        assert result.exit_code == 0, result.output
        assert "Deleted 1 security events" in result.output

    def test_expired_invitations_purged(self, db_session, clinic_a):
        stale = invitation_service.create_invitation(clinic_a.id, clinic_a.owner_id, {"email": "old@clinic.test"})
        invitation_service.create_invitation(clinic_a.id, clinic_a.owner_id, {"email": "new@clinic.test"})
        stale.expires_at = utcnow() - timedelta(days=1)
        db_session.commit()

        assert maintenance_service.purge_expired_invitations() == 1
        assert [i.email for i in db_session.query(Invitation).all()] == ["new@clinic.test"]

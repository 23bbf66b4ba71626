from datetime import datetime, timedelta

from leadcrm.models import User
from leadcrm.scheduler import run_cleanup


class TestSystemClients:
    def test_agent_reads_manager_tenant(self, client, agent, tenant, auth_headers):
        body = client.get("/api/system-clients/me", headers=auth_headers(agent)).json()
        assert body["client"]["id"] == tenant.id

    def test_admin_has_no_tenant(self, client, admin, auth_headers):
        assert client.get("/api/system-clients/me", headers=auth_headers(admin)).status_code == 404

    def test_only_admin_lists_tenants(self, client, admin, manager, tenant, auth_headers):
        assert client.get("/api/system-clients", headers=auth_headers(manager)).status_code == 403
        clients = client.get("/api/system-clients", headers=auth_headers(admin)).json()["clients"]
        assert [c["id"] for c in clients] == [tenant.id]

    def test_manager_updates_own_tenant_vocabulary(self, client, manager, tenant, auth_headers):
        res = client.put(
            f"/api/system-clients/{tenant.id}",
            json={"lead_statuses": ["new", "won"], "is_active": False},
            headers=auth_headers(manager),
        )

        assert res.status_code == 200
        assert res.json()["client"]["lead_statuses"] == ["new", "won"]
        # Activation stays with admins
        assert res.json()["client"]["is_active"] is True

    def test_manager_cannot_update_other_tenant(self, client, db, manager, auth_headers):
        from leadcrm.models import SystemClient

        other = SystemClient(name="Other")
        db.add(other)
        db.commit()
        res = client.put(f"/api/system-clients/{other.id}", json={"name": "Mine"}, headers=auth_headers(manager))
        assert res.status_code == 403


class TestScheduledCleanup:
    def test_run_cleanup_purges_expired_accounts(self, db, make_user):
        user = make_user("gone@example.com")
        user.deleted_at = datetime.utcnow() - timedelta(days=31)
        db.commit()

        assert run_cleanup() == {"users_deleted": 1, "clients_deleted": 0}
        db.expire_all()
        assert db.query(User).count() == 0

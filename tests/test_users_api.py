from datetime import datetime, timedelta

from leadcrm.models import SystemClient, User
from leadcrm.services.user_service import UserService

PASSWORD = "secret123"


class TestAuth:
    def test_login_returns_token_and_tenant_config(self, client, agent, tenant):
        res = client.post("/api/auth/login", json={"email": agent.email, "password": PASSWORD})

        assert res.status_code == 200
        body = res.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["id"] == agent.id
        # Agents get their manager's tenant
        assert body["client_config"]["id"] == tenant.id
        assert body["client_config"]["lead_statuses"]

    def test_admin_has_no_tenant(self, client, admin):
        res = client.post("/api/auth/login", json={"email": admin.email, "password": PASSWORD})
        assert res.json()["client_config"] is None

    def test_wrong_password(self, client, agent):
        res = client.post("/api/auth/login", json={"email": agent.email, "password": "nope"})
        assert res.status_code == 401

    def test_deleted_user_cannot_log_in(self, client, db, agent):
        agent.deleted_at = datetime.utcnow()
        db.commit()
        res = client.post("/api/auth/login", json={"email": agent.email, "password": PASSWORD})
        assert res.status_code == 401

    def test_me(self, client, manager, auth_headers):
        body = client.get("/api/auth/me", headers=auth_headers(manager)).json()
        assert body["user"]["email"] == manager.email

    def test_missing_and_bad_tokens(self, client):
        assert client.get("/api/auth/me").status_code == 401
        assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


class TestCreateUsers:
    def test_admin_creates_manager_with_tenant(self, client, db, admin, auth_headers):
        res = client.post(
            "/api/users",
            json={"email": "new.manager@example.com", "password": PASSWORD, "first_name": "Noa", "role": "manager"},
            headers=auth_headers(admin),
        )

        assert res.status_code == 201
        user = res.json()["user"]
        assert user["client_id"] is not None
        assert db.query(SystemClient).filter(SystemClient.id == user["client_id"]).count() == 1

    def test_manager_creates_agent_in_own_team(self, client, manager, auth_headers):
        res = client.post(
            "/api/users",
            json={"email": "new.agent@example.com", "password": PASSWORD, "first_name": "Avi", "manager_id": 999},
            headers=auth_headers(manager),
        )

        assert res.status_code == 201
        user = res.json()["user"]
        assert user["role"] == "agent"
        assert user["manager_id"] == manager.id
        assert user["client_id"] == manager.client_id

    def test_manager_cannot_create_manager(self, client, manager, auth_headers):
        res = client.post(
            "/api/users",
            json={"email": "x@example.com", "password": PASSWORD, "first_name": "X", "role": "manager"},
            headers=auth_headers(manager),
        )
        assert res.status_code == 403

    def test_agent_cannot_create_users(self, client, agent, auth_headers):
        res = client.post(
            "/api/users",
            json={"email": "x@example.com", "password": PASSWORD, "first_name": "X"},
            headers=auth_headers(agent),
        )
        assert res.status_code == 403

    def test_duplicate_email_and_short_password(self, client, admin, agent, auth_headers):
        headers = auth_headers(admin)
        dup = client.post("/api/users", json={"email": agent.email, "password": PASSWORD, "first_name": "X"}, headers=headers)
        short = client.post("/api/users", json={"email": "y@example.com", "password": "123", "first_name": "Y"}, headers=headers)
        assert dup.status_code == 400
        assert short.status_code == 400


class TestListAndDelete:
    def test_manager_lists_self_and_agents(self, client, make_user, manager, agent, other_agent, auth_headers):
        make_user("outsider@example.com", role="agent")
        emails = {u["email"] for u in client.get("/api/users", headers=auth_headers(manager)).json()["users"]}
        assert emails == {manager.email, agent.email, other_agent.email}

    def test_agent_lists_only_self(self, client, agent, auth_headers):
        users = client.get("/api/users", headers=auth_headers(agent)).json()["users"]
        assert [u["id"] for u in users] == [agent.id]

    def test_agent_cannot_view_colleague(self, client, agent, other_agent, auth_headers):
        assert client.get(f"/api/users/{other_agent.id}", headers=auth_headers(agent)).status_code == 403

    def test_self_delete_forbidden(self, client, admin, auth_headers):
        assert client.delete(f"/api/users/{admin.id}", headers=auth_headers(admin)).status_code == 400

    def test_manager_soft_deletes_agent(self, client, db, manager, agent, auth_headers):
        assert client.delete(f"/api/users/{agent.id}", headers=auth_headers(manager)).status_code == 200

        db.expire_all()
        deleted = db.query(User).filter(User.id == agent.id).first()
        assert deleted.deleted_at is not None
        assert deleted.is_active is False
        assert client.get("/api/auth/me", headers=auth_headers(agent)).status_code == 401

    def test_deleting_manager_retires_tenant(self, client, db, admin, manager, tenant, auth_headers):
        client.delete(f"/api/users/{manager.id}", headers=auth_headers(admin))
        db.expire_all()
        assert db.query(SystemClient).filter(SystemClient.id == tenant.id).first().deleted_at is not None

    def test_purge_respects_retention(self, db, make_user):
        old = make_user("old@example.com")
        recent = make_user("recent@example.com")
        old.deleted_at = datetime.utcnow() - timedelta(days=45)
        recent.deleted_at = datetime.utcnow() - timedelta(days=2)
        db.commit()

        service = UserService(db)
        assert service.pending_deletion_count() == 1
        assert service.purge_deleted() == {"users_deleted": 1, "clients_deleted": 0}

        db.expire_all()
        assert {u.email for u in db.query(User).all()} == {"recent@example.com"}

    def test_only_admin_lists_deleted(self, client, manager, auth_headers):
        assert client.get("/api/users/deleted", headers=auth_headers(manager)).status_code == 403

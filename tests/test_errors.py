from fastapi import FastAPI
from fastapi.testclient import TestClient

from leadcrm.core.config import settings
from leadcrm.core.errors import NotFoundError, register_exception_handlers


def failing_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    def boom():
        raise RuntimeError("database on fire")

    @app.get("/missing")
    def missing():
        raise NotFoundError("Lead not found")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:
    def test_unexpected_error_gets_an_id(self):
        res = failing_app().get("/boom")

        assert res.status_code == 500
        body = res.json()
        assert body["detail"] == "Internal server error"
        assert len(body["error_id"]) == 8
        assert "database on fire" in body["stack"]

    def test_stack_hidden_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        body = failing_app().get("/boom").json()
        assert "stack" not in body
        assert "error_id" in body

    def test_typed_errors_keep_their_status(self):
        res = failing_app().get("/missing")
        assert res.status_code == 404
        assert res.json() == {"detail": "Lead not found"}

    def test_request_validation_is_400(self, client):
        res = client.post("/api/auth/login", json={"email": "not-an-email"})

        assert res.status_code == 400
        assert res.json()["detail"] == "Validation failed"
        assert res.json()["errors"]

    def test_health(self, client):
        assert client.get("/api/health").json()["status"] == "ok"

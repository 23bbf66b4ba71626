from datetime import date, time

from leadcrm.models import UnifiedEvent
from leadcrm.services.callback_sync import CallbackSync

EVENT = {
    "title": "Demo meeting",
    "eventType": "meeting",
    "startTime": "2025-09-28T10:00:00.000Z",
    "endTime": "2025-09-28T11:00:00.000Z",
}


class TestEventsApi:
    def test_create_and_fetch(self, client, agent, auth_headers):
        headers = auth_headers(agent)
        created = client.post("/api/unified-events", json=EVENT, headers=headers)
        assert created.status_code == 201
        event = created.json()["event"]
        assert event["startTime"] == "2025-09-28T10:00:00.000Z"

        fetched = client.get(f"/api/unified-events/{event['id']}", headers=headers).json()["event"]
        assert fetched["title"] == "Demo meeting"

    def test_invalid_type(self, client, agent, auth_headers):
        res = client.post("/api/unified-events", json={**EVENT, "eventType": "party"}, headers=auth_headers(agent))
        assert res.status_code == 400

    def test_end_before_start(self, client, agent, auth_headers):
        body = {**EVENT, "endTime": "2025-09-28T09:00:00.000Z"}
        assert client.post("/api/unified-events", json=body, headers=auth_headers(agent)).status_code == 400

    def test_events_are_private(self, client, agent, other_agent, auth_headers):
        event_id = client.post("/api/unified-events", json=EVENT, headers=auth_headers(agent)).json()["event"]["id"]
        assert client.get(f"/api/unified-events/{event_id}", headers=auth_headers(other_agent)).status_code == 404
        assert client.get("/api/unified-events", headers=auth_headers(other_agent)).json()["events"] == []

    def test_filters(self, client, agent, auth_headers):
        headers = auth_headers(agent)
        client.post("/api/unified-events", json=EVENT, headers=headers)
        client.post(
            "/api/unified-events",
            json={**EVENT, "eventType": "task", "startTime": "2025-10-05T10:00:00Z", "endTime": "2025-10-05T10:30:00Z"},
            headers=headers,
        )

        by_type = client.get("/api/unified-events?type=task", headers=headers).json()["events"]
        assert [e["eventType"] for e in by_type] == ["task"]

        in_range = client.get(
            "/api/unified-events?start_date=2025-09-01T00:00:00Z&end_date=2025-09-30T23:59:59Z", headers=headers
        ).json()["events"]
        assert [e["title"] for e in in_range] == ["Demo meeting"]

    def test_update_and_delete(self, client, db, agent, auth_headers):
        headers = auth_headers(agent)
        event_id = client.post("/api/unified-events", json=EVENT, headers=headers).json()["event"]["id"]

        res = client.put(f"/api/unified-events/{event_id}", json={"title": "Renamed"}, headers=headers)
        assert res.json()["event"]["title"] == "Renamed"

        assert client.delete(f"/api/unified-events/{event_id}", headers=headers).status_code == 200
        assert db.query(UnifiedEvent).count() == 0

    def test_notifications_and_mark_notified(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent, callback_date=date(2025, 9, 28), callback_time=time(21, 3))
        reminder = CallbackSync(db).on_lead_create(lead, agent.id)
        client.post("/api/unified-events", json=EVENT, headers=auth_headers(agent))

        pending = client.get("/api/unified-events/notifications", headers=auth_headers(agent)).json()["events"]
        assert [e["id"] for e in pending] == [reminder.id]

        res = client.patch(f"/api/unified-events/{reminder.id}/notified", headers=auth_headers(agent))
        assert res.json()["event"]["notified"] is True
        assert client.get("/api/unified-events/notifications", headers=auth_headers(agent)).json()["events"] == []

    def test_second_reminder_for_same_lead_conflicts(self, client, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        body = {**EVENT, "eventType": "reminder", "leadId": lead.id}
        headers = auth_headers(agent)
        assert client.post("/api/unified-events", json=body, headers=headers).status_code == 201
        assert client.post("/api/unified-events", json=body, headers=headers).status_code == 400

    def test_non_reminder_events_may_share_a_lead(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        headers = auth_headers(agent)
        body = {**EVENT, "leadId": lead.id}

        assert client.post("/api/unified-events", json=body, headers=headers).status_code == 201
        assert client.post("/api/unified-events", json=body, headers=headers).status_code == 201
        assert client.post("/api/unified-events", json={**body, "eventType": "task"}, headers=headers).status_code == 201
        assert client.post("/api/unified-events", json={**body, "eventType": "reminder"}, headers=headers).status_code == 201
        assert db.query(UnifiedEvent).filter(UnifiedEvent.lead_id == lead.id).count() == 4

    def test_duplicate_reminder_message(self, client, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        body = {**EVENT, "eventType": "reminder", "leadId": lead.id}
        headers = auth_headers(agent)
        client.post("/api/unified-events", json=body, headers=headers)

        res = client.post("/api/unified-events", json=body, headers=headers)
        assert res.json()["detail"] == "This lead already has a reminder event"

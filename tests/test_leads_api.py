from leadcrm.models import Lead, UnifiedEvent


def reminder_rows(db, lead_id):
    db.expire_all()
    return db.query(UnifiedEvent).filter(UnifiedEvent.lead_id == lead_id, UnifiedEvent.event_type == "reminder").all()


class TestCreateLead:
    def test_create_without_callback_creates_no_event(self, client, db, agent, auth_headers):
        res = client.post("/api/leads", json={"name": "Dana", "phone": "0501234567"}, headers=auth_headers(agent))
        assert res.status_code == 201
        lead = res.json()["lead"]
        assert lead["status"] == "חדש"
        assert lead["source"] == "manual"
        assert lead["assigned_to"] == agent.id
        assert db.query(UnifiedEvent).count() == 0

    def test_create_with_callback_stores_utc_event(self, client, db, agent, auth_headers):
        res = client.post(
            "/api/leads",
            json={"name": "Dana", "phone": "0501234567", "callback_date": "2025-09-28", "callback_time": "21:03"},
            headers=auth_headers(agent),
        )
        assert res.status_code == 201
        lead = res.json()["lead"]
        assert lead["callback_date"] == "2025-09-28"
        assert lead["callback_time"] == "21:03"

        events = client.get("/api/unified-events", headers=auth_headers(agent)).json()["events"]
        assert len(events) == 1
        assert events[0]["startTime"] == "2025-09-28T18:03:00.000Z"
        assert events[0]["endTime"] == "2025-09-28T18:33:00.000Z"
        assert events[0]["leadId"] == lead["id"]

    def test_camel_case_callback_keys(self, client, db, agent, auth_headers):
        res = client.post(
            "/api/leads",
            json={"name": "Dana", "callbackDate": "2025-09-28", "callbackTime": "21:03"},
            headers=auth_headers(agent),
        )
        assert len(reminder_rows(db, res.json()["lead"]["id"])) == 1

    def test_invalid_callback_is_rejected(self, client, agent, auth_headers):
        res = client.post(
            "/api/leads",
            json={"name": "Dana", "callback_date": "28/09/2025", "callback_time": "21:03"},
            headers=auth_headers(agent),
        )
        assert res.status_code == 400

    def test_missing_name_is_a_validation_error(self, client, agent, auth_headers):
        res = client.post("/api/leads", json={"phone": "0501234567"}, headers=auth_headers(agent))
        assert res.status_code == 400

    def test_requires_token(self, client):
        assert client.post("/api/leads", json={"name": "Dana"}).status_code == 401

    def test_agent_cannot_assign_to_colleague(self, client, agent, other_agent, auth_headers):
        res = client.post("/api/leads", json={"name": "Dana", "assigned_to": other_agent.id}, headers=auth_headers(agent))
        assert res.status_code == 403


class TestUpdateLead:
    def test_repeated_identical_updates_keep_one_event(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        body = {"callback_date": "2025-09-28", "callback_time": "21:03"}

        assert client.put(f"/api/leads/{lead.id}", json=body, headers=auth_headers(agent)).status_code == 200
        assert client.put(f"/api/leads/{lead.id}", json=body, headers=auth_headers(agent)).status_code == 200

        assert len(reminder_rows(db, lead.id)) == 1

    def test_clear_then_set_again(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        headers = auth_headers(agent)
        client.put(f"/api/leads/{lead.id}", json={"callback_date": "2025-09-28", "callback_time": "21:03"}, headers=headers)
        assert len(reminder_rows(db, lead.id)) == 1

        res = client.put(f"/api/leads/{lead.id}", json={"callback_date": ""}, headers=headers)
        assert res.status_code == 200
        assert res.json()["lead"]["callback_date"] is None
        assert reminder_rows(db, lead.id) == []

        client.put(f"/api/leads/{lead.id}", json={"callback_date": "2025-10-01", "callback_time": "09:30"}, headers=headers)
        [event] = reminder_rows(db, lead.id)
        assert event.start_time.hour == 6
        assert event.start_time.minute == 30

    def test_time_only_update_keeps_stored_date(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        headers = auth_headers(agent)
        client.put(f"/api/leads/{lead.id}", json={"callback_date": "2025-09-28", "callback_time": "21:03"}, headers=headers)

        client.put(f"/api/leads/{lead.id}", json={"callback_time": "22:15"}, headers=headers)

        [event] = reminder_rows(db, lead.id)
        assert event.start_time.day == 28
        assert (event.start_time.hour, event.start_time.minute) == (19, 15)

    def test_update_without_callback_keys_leaves_event(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        headers = auth_headers(agent)
        client.put(f"/api/leads/{lead.id}", json={"callback_date": "2025-09-28", "callback_time": "21:03"}, headers=headers)
        event_id = reminder_rows(db, lead.id)[0].id

        res = client.put(f"/api/leads/{lead.id}", json={"notes": "spoke briefly"}, headers=headers)

        assert res.json()["lead"]["notes"] == "spoke briefly"
        assert [e.id for e in reminder_rows(db, lead.id)] == [event_id]

    def test_status_patch_does_not_touch_events(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        res = client.patch(f"/api/leads/{lead.id}/status", json={"status": "בטיפול"}, headers=auth_headers(agent))
        assert res.status_code == 200
        assert res.json()["lead"]["status"] == "בטיפול"
        assert db.query(UnifiedEvent).count() == 0

    def test_unknown_lead_is_404(self, client, agent, auth_headers):
        assert client.put("/api/leads/999", json={"name": "x"}, headers=auth_headers(agent)).status_code == 404


class TestLeadAccess:
    def test_agent_gets_403_for_colleagues_lead(self, client, agent, other_agent, make_lead, auth_headers):
        lead = make_lead(other_agent)
        res = client.get(f"/api/leads/{lead.id}", headers=auth_headers(agent))
        assert res.status_code == 403
        assert "lead" not in res.json()

    def test_agent_reads_own_lead(self, client, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        res = client.get(f"/api/leads/{lead.id}", headers=auth_headers(agent))
        assert res.status_code == 200
        assert res.json()["lead"]["id"] == lead.id

    def test_agent_reads_lead_they_created(self, client, agent, other_agent, make_lead, auth_headers):
        lead = make_lead(other_agent, created_by=agent.id)
        assert client.get(f"/api/leads/{lead.id}", headers=auth_headers(agent)).status_code == 200

    def test_manager_and_admin_read_any_lead(self, client, admin, manager, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        assert client.get(f"/api/leads/{lead.id}", headers=auth_headers(manager)).status_code == 200
        assert client.get(f"/api/leads/{lead.id}", headers=auth_headers(admin)).status_code == 200

    def test_missing_lead_is_404(self, client, agent, auth_headers):
        assert client.get("/api/leads/4242", headers=auth_headers(agent)).status_code == 404

    def test_agent_cannot_delete_colleagues_lead(self, client, agent, other_agent, make_lead, auth_headers):
        lead = make_lead(other_agent)
        assert client.delete(f"/api/leads/{lead.id}", headers=auth_headers(agent)).status_code == 403


class TestDeleteLead:
    def test_delete_removes_reminder(self, client, db, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        lead_id = lead.id
        headers = auth_headers(agent)
        client.put(f"/api/leads/{lead_id}", json={"callback_date": "2025-09-28", "callback_time": "21:03"}, headers=headers)
        assert db.query(UnifiedEvent).filter(UnifiedEvent.lead_id == lead_id).count() == 1

        res = client.delete(f"/api/leads/{lead_id}", headers=headers)

        assert res.status_code == 200
        db.expire_all()
        assert db.query(Lead).filter(Lead.id == lead_id).count() == 0
        assert db.query(UnifiedEvent).count() == 0


class TestListing:
    def test_agent_lists_only_own_leads(self, client, agent, other_agent, make_lead, auth_headers):
        make_lead(agent, name="Mine")
        make_lead(other_agent, name="Theirs")
        data = client.get("/api/leads", headers=auth_headers(agent)).json()
        assert [l["name"] for l in data["leads"]] == ["Mine"]

    def test_manager_defaults_to_own_leads(self, client, manager, agent, make_lead, auth_headers):
        make_lead(manager, name="Mine")
        make_lead(agent, name="Agent's")
        names = [l["name"] for l in client.get("/api/leads", headers=auth_headers(manager)).json()["leads"]]
        assert names == ["Mine"]

    def test_manager_filters_by_own_agent(self, client, manager, agent, make_user, make_lead, auth_headers):
        outsider = make_user("outsider@example.com", role="agent")
        make_lead(agent, name="A")
        make_lead(outsider, name="C")
        headers = auth_headers(manager)

        team = client.get(f"/api/leads?assigned_to={agent.id}", headers=headers).json()
        assert [l["name"] for l in team["leads"]] == ["A"]

        foreign = client.get(f"/api/leads?assigned_to={outsider.id}", headers=headers).json()
        assert foreign == {"leads": [], "total": 0}

    def test_search_covers_manager_team(self, client, manager, agent, make_user, make_lead, auth_headers):
        outsider = make_user("outsider@example.com", role="agent")
        make_lead(agent, name="Team Cohen")
        make_lead(outsider, name="Outside Cohen")
        names = {l["name"] for l in client.get("/api/leads/search/Cohen", headers=auth_headers(manager)).json()["leads"]}
        assert names == {"Team Cohen"}

    def test_agent_cannot_filter_by_colleague(self, client, agent, other_agent, make_lead, auth_headers):
        make_lead(other_agent, name="Theirs")
        res = client.get(f"/api/leads?assigned_to={other_agent.id}", headers=auth_headers(agent))
        assert res.status_code == 200
        assert res.json()["leads"] == []

    def test_search_and_status(self, client, agent, make_lead, auth_headers):
        make_lead(agent, name="Yossi Cohen", status="חדש")
        make_lead(agent, name="Rina Katz", status="בטיפול")
        headers = auth_headers(agent)

        found = client.get("/api/leads/search/Cohen", headers=headers).json()
        assert found["total"] == 1

        by_status = client.get("/api/leads/status/בטיפול", headers=headers).json()
        assert [l["name"] for l in by_status["leads"]] == ["Rina Katz"]

        stats = client.get("/api/leads/stats/count", headers=headers).json()["stats"]
        assert {s["status"]: s["count"] for s in stats} == {"חדש": 1, "בטיפול": 1}


class TestBulkAssign:
    def test_manager_assigns_to_own_agent(self, client, db, manager, agent, make_lead, auth_headers):
        leads = [make_lead(manager), make_lead(manager)]
        res = client.patch(
            "/api/leads/bulk-assign",
            json={"leadIds": [l.id for l in leads], "assignedTo": agent.id},
            headers=auth_headers(manager),
        )
        assert res.status_code == 200
        assert res.json()["updated"] == 2
        db.expire_all()
        assert {l.assigned_to for l in db.query(Lead).all()} == {agent.id}

    def test_manager_cannot_assign_outside_team(self, client, manager, make_user, make_lead, auth_headers):
        outsider = make_user("outsider@example.com", role="agent")
        lead = make_lead(manager)
        res = client.patch(
            "/api/leads/bulk-assign",
            json={"lead_ids": [lead.id], "assigned_to": outsider.id},
            headers=auth_headers(manager),
        )
        assert res.status_code == 403

    def test_agent_cannot_bulk_assign(self, client, agent, make_lead, auth_headers):
        lead = make_lead(agent)
        res = client.patch(
            "/api/leads/bulk-assign",
            json={"lead_ids": [lead.id], "assigned_to": agent.id},
            headers=auth_headers(agent),
        )
        assert res.status_code == 403

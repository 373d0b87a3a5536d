def create_brief(client, headers, **fields):
    payload = {"title": "Launch", **fields}
    resp = client.post("/api/briefs/", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def create_task(client, headers, brief_id, assignee_id, title="Design banner", **fields):
    payload = {
        "brief_id": brief_id,
        "title": title,
        "assignee_id": str(assignee_id),
        "duration": "2 Hours",
        "duration_minutes": 120,
        **fields,
    }
    resp = client.post("/api/tasks/", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_launch_brief_flow(client, make_user, inbox):
    manager = make_user("manager")
    employee = make_user("employee", name="E1")

    brief = create_brief(client, manager.headers)
    assert brief["status"] == "draft"
    assert brief["assigned_manager_id"] == str(manager.id)

    task = create_task(client, manager.headers, brief["id"], employee.id)
    assert task["status"] == "pending"
    assert client.get(f"/api/briefs/{brief['id']}", headers=manager.headers).json()["status"] == "draft"

    submitted = client.post(
        "/api/deliverables/",
        json={"task_id": task["id"], "message": "Banner v1", "link": "https://files.example.com/v1"},
        headers=employee.headers,
    )
    assert submitted.status_code == 200
    assert [n.type for n in inbox(manager.id)] == ["deliverable_submitted"]

    approved = client.post(
        f"/api/deliverables/{submitted.json()['id']}/approve",
        json={},
        headers=manager.headers,
    )
    assert approved.status_code == 200
    detail = client.get(f"/api/tasks/{task['id']}", headers=manager.headers).json()
    assert detail["task"]["status"] == "done"
    assert detail["task"]["completed_at"] is not None
    assert client.get(f"/api/briefs/{brief['id']}", headers=manager.headers).json()["status"] == "review"

    archived = client.post(f"/api/briefs/{brief['id']}/archive", headers=manager.headers)
    assert archived.status_code == 200
    assert archived.json()["status"] == "archived"
    assert archived.json()["archived_at"] is not None

    listed = client.get("/api/briefs/", headers=manager.headers).json()
    assert brief["id"] not in [b["id"] for b in listed]
    archive = client.get("/api/briefs/archived", headers=manager.headers).json()
    assert [b["id"] for b in archive] == [brief["id"]]
    assert archive[0]["archived_by_name"] == "Manager"


def test_global_priority_counts_up(client, make_user):
    admin = make_user("admin")
    first = create_brief(client, admin.headers, title="One")
    second = create_brief(client, admin.headers, title="Two")
    assert second["global_priority"] == first["global_priority"] + 1


def test_assigned_manager_is_notified(client, make_user, inbox):
    admin = make_user("admin")
    manager = make_user("manager")
    create_brief(client, admin.headers, assigned_manager_id=str(manager.id))
    notes = inbox(manager.id)
    assert [n.type for n in notes] == ["brief_assigned"]
    assert notes[0].triggered_by == admin.id


def test_employees_cannot_create_or_update_briefs(client, make_user):
    admin = make_user("admin")
    employee = make_user("employee")
    resp = client.post("/api/briefs/", json={"title": "Nope"}, headers=employee.headers)
    assert resp.status_code == 403

    brief = create_brief(client, admin.headers)
    resp = client.patch(f"/api/briefs/{brief['id']}", json={"title": "X"}, headers=employee.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Employees cannot update briefs"


def test_manager_updates_only_own_briefs(client, make_user):
    admin = make_user("admin")
    manager = make_user("manager")
    brief = create_brief(client, admin.headers, description="Original")
    resp = client.patch(f"/api/briefs/{brief['id']}", json={"title": "X"}, headers=manager.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Not assigned to this brief"

    client.put(
        f"/api/briefs/{brief['id']}/manager",
        json={"manager_id": str(manager.id)},
        headers=admin.headers,
    )
    resp = client.patch(f"/api/briefs/{brief['id']}", json={"title": "Renamed"}, headers=manager.headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["description"] == "Original"


def test_brief_visibility_by_role(client, make_user):
    admin = make_user("admin")
    manager = make_user("manager")
    employee = make_user("employee")
    mine = create_brief(client, manager.headers, title="Managed")
    other = create_brief(client, admin.headers, title="Unrelated")
    create_task(client, manager.headers, mine["id"], employee.id)

    assert len(client.get("/api/briefs/", headers=admin.headers).json()) == 2
    assert [b["title"] for b in client.get("/api/briefs/", headers=manager.headers).json()] == ["Managed"]
    assert [b["title"] for b in client.get("/api/briefs/", headers=employee.headers).json()] == ["Managed"]
    assert client.get(f"/api/briefs/{other['id']}", headers=employee.headers).status_code == 403


def test_brief_summary_progress(client, make_user):
    admin = make_user("admin")
    employee = make_user("employee")
    brief = create_brief(client, admin.headers)
    done = create_task(client, admin.headers, brief["id"], employee.id, title="A")
    create_task(client, admin.headers, brief["id"], employee.id, title="B")
    client.put(f"/api/tasks/{done['id']}/status", json={"status": "done"}, headers=admin.headers)

    summary = client.get("/api/briefs/", headers=admin.headers).json()[0]
    assert summary["task_count"] == 2
    assert summary["done_count"] == 1
    assert summary["progress"] == 50


def test_teams_on_brief_notify_leads(client, make_user, inbox):
    admin = make_user("admin")
    lead = make_user("manager")
    team = client.post(
        "/api/teams/", json={"name": "Video", "lead_id": str(lead.id)}, headers=admin.headers
    ).json()
    brief = create_brief(client, admin.headers)

    resp = client.put(
        f"/api/briefs/{brief['id']}/teams", json={"team_ids": [team["id"]]}, headers=admin.headers
    )
    assert resp.status_code == 200
    assert [t["name"] for t in resp.json()] == ["Video"]
    assert [n.type for n in inbox(lead.id)] == ["team_added"]

    graph = client.get(f"/api/briefs/{brief['id']}/graph", headers=admin.headers).json()
    assert graph["teams"][0]["team"]["name"] == "Video"

    client.delete(f"/api/briefs/{brief['id']}/teams/{team['id']}", headers=admin.headers)
    assert client.get(f"/api/briefs/{brief['id']}/teams", headers=admin.headers).json() == []


def test_restore_and_delete_brief(client, make_user):
    admin = make_user("admin")
    manager = make_user("manager")
    employee = make_user("employee")
    brief = create_brief(client, admin.headers)
    create_task(client, admin.headers, brief["id"], employee.id)
    client.post(f"/api/briefs/{brief['id']}/archive", headers=admin.headers)

    assert client.post(f"/api/briefs/{brief['id']}/restore", headers=manager.headers).status_code == 403
    restored = client.post(f"/api/briefs/{brief['id']}/restore", headers=admin.headers)
    assert restored.json()["status"] == "draft"
    assert restored.json()["archived_at"] is None

    assert client.delete(f"/api/briefs/{brief['id']}", headers=manager.headers).status_code == 403
    assert client.delete(f"/api/briefs/{brief['id']}", headers=admin.headers).status_code == 204
    assert client.get(f"/api/briefs/{brief['id']}", headers=admin.headers).status_code == 404
    assert client.get(f"/api/users/{employee.id}/workload", headers=admin.headers).json() == []


def test_patch_cannot_move_in_or_out_of_archive(client, make_user):
    admin = make_user("admin")
    manager = make_user("manager")
    brief = create_brief(client, admin.headers, assigned_manager_id=str(manager.id))
    url = f"/api/briefs/{brief['id']}"

    resp = client.patch(url, json={"status": "archived"}, headers=manager.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Use the archive or restore endpoint to change an archived brief's status"

    client.post(f"{url}/archive", headers=manager.headers)
    resp = client.patch(url, json={"status": "draft"}, headers=manager.headers)
    assert resp.status_code == 400
    brief = client.get(url, headers=admin.headers).json()
    assert brief["status"] == "archived"
    assert brief["archived_at"] is not None

    resp = client.patch(url, json={"status": "archived", "title": "Renamed"}, headers=manager.headers)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"


def test_activity_timeline(client, make_user):
    admin = make_user("admin")
    employee = make_user("employee")
    brief = create_brief(client, admin.headers)
    task = create_task(client, admin.headers, brief["id"], employee.id)
    client.put(f"/api/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=employee.headers)

    timeline = client.get(f"/api/activity/brief/{brief['id']}", headers=admin.headers).json()
    assert [e["action"] for e in timeline] == ["changed_status", "created_task", "created_brief"]
    assert timeline[0]["details"] == {"status": "in-progress"}
    assert timeline[0]["user_name"] == "Employee"

    limited = client.get(f"/api/activity/brief/{brief['id']}?limit=1", headers=admin.headers).json()
    assert len(limited) == 1

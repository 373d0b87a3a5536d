import uuid


def setup_brief(client, make_user):
    manager = make_user("manager")
    employee = make_user("employee")
    brief = client.post("/api/briefs/", json={"title": "Campaign"}, headers=manager.headers).json()
    return manager, employee, brief


def add_task(client, headers, brief_id, assignee_id, title="Task", **fields):
    payload = {
        "brief_id": brief_id,
        "title": title,
        "assignee_id": str(assignee_id),
        "duration": "1 Hour",
        "duration_minutes": 60,
        **fields,
    }
    resp = client.post("/api/tasks/", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_task_notifies_assignee(client, make_user, inbox):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(client, manager.headers, brief["id"], employee.id, title="Copy")
    assert task["assigned_by"] == str(manager.id)
    assert task["blocked_by"] == []
    notes = inbox(employee.id)
    assert [n.type for n in notes] == ["task_assigned"]
    assert notes[0].message == "You were assigned: Copy"


def test_employee_cannot_create_tasks(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    resp = client.post(
        "/api/tasks/",
        json={
            "brief_id": brief["id"],
            "title": "Sneaky",
            "assignee_id": str(employee.id),
            "duration": "1 Hour",
            "duration_minutes": 60,
        },
        headers=employee.headers,
    )
    assert resp.status_code == 403


def test_sort_order_steps_per_assignee(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    first = add_task(client, manager.headers, brief["id"], employee.id, title="A")
    second = add_task(client, manager.headers, brief["id"], employee.id, title="B")
    assert second["sort_order"] == first["sort_order"] + 1000


def test_employee_cannot_mark_done(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(client, manager.headers, brief["id"], employee.id)

    resp = client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=employee.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Employees cannot mark tasks as done. Submit a deliverable for review."

    resp = client.put(
        f"/api/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=employee.headers
    )
    assert resp.status_code == 200

    resp = client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=manager.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "done"


def test_unrelated_manager_cannot_change_status(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    outsider = make_user("manager")
    task = add_task(client, manager.headers, brief["id"], employee.id)
    resp = client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=outsider.headers)
    assert resp.status_code == 403


def test_status_change_notifies_assigner(client, make_user, inbox):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(client, manager.headers, brief["id"], employee.id, title="Storyboard")
    client.put(f"/api/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=employee.headers)
    notes = inbox(manager.id)
    assert [n.type for n in notes] == ["task_status_changed"]
    assert notes[0].message == "Storyboard → in-progress"


def test_brief_moves_to_review_only_when_all_tasks_done(client, make_user, inbox):
    admin = make_user("admin")
    manager, employee, brief = setup_brief(client, make_user)
    first = add_task(client, manager.headers, brief["id"], employee.id, title="A")
    second = add_task(client, manager.headers, brief["id"], employee.id, title="B")

    client.put(f"/api/tasks/{first['id']}/status", json={"status": "done"}, headers=admin.headers)
    assert client.get(f"/api/briefs/{brief['id']}", headers=admin.headers).json()["status"] == "draft"

    client.put(f"/api/tasks/{second['id']}/status", json={"status": "done"}, headers=admin.headers)
    assert client.get(f"/api/briefs/{brief['id']}", headers=admin.headers).json()["status"] == "review"
    assert "brief_completed" in [n.type for n in inbox(manager.id)]


def test_archived_brief_is_not_rolled_up(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(client, manager.headers, brief["id"], employee.id)
    client.post(f"/api/briefs/{brief['id']}/archive", headers=manager.headers)
    client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=manager.headers)
    assert client.get(f"/api/briefs/{brief['id']}", headers=manager.headers).json()["status"] == "archived"


def test_bulk_status_skips_forbidden_tasks(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    other_brief = client.post("/api/briefs/", json={"title": "Other"}, headers=make_user("admin").headers).json()
    mine = add_task(client, manager.headers, brief["id"], employee.id, title="Mine")
    admin = make_user("admin")
    foreign = add_task(client, admin.headers, other_brief["id"], employee.id, title="Foreign")

    resp = client.post(
        "/api/tasks/bulk-status",
        json={"task_ids": [mine["id"], foreign["id"], str(uuid.uuid4())], "status": "done"},
        headers=manager.headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"updated": [mine["id"]], "skipped": 2}
    assert client.get(f"/api/briefs/{brief['id']}", headers=manager.headers).json()["status"] == "review"


def test_reorder_own_queue(client, make_user, inbox):
    manager, employee, brief = setup_brief(client, make_user)
    a = add_task(client, manager.headers, brief["id"], employee.id, title="A")
    b = add_task(client, manager.headers, brief["id"], employee.id, title="B")

    resp = client.post(
        "/api/tasks/reorder",
        json={"user_id": str(employee.id), "task_ids": [b["id"], a["id"]]},
        headers=manager.headers,
    )
    assert resp.status_code == 204
    queue = client.get(f"/api/tasks/user/{employee.id}", headers=employee.headers).json()
    assert [t["title"] for t in queue] == ["B", "A"]
    assert "priority_changed" in [n.type for n in inbox(employee.id)]

    other = make_user("employee")
    resp = client.post(
        "/api/tasks/reorder",
        json={"user_id": str(other.id), "task_ids": [a["id"]]},
        headers=manager.headers,
    )
    assert resp.status_code == 400

    resp = client.post(
        "/api/tasks/reorder",
        json={"user_id": str(other.id), "task_ids": []},
        headers=employee.headers,
    )
    assert resp.status_code == 403


def test_partial_update_leaves_other_fields(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(
        client, manager.headers, brief["id"], employee.id,
        description="Keep me", deadline="2030-01-01T12:00:00Z",
    )
    resp = client.patch(f"/api/tasks/{task['id']}", json={"title": "Renamed"}, headers=manager.headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Renamed"
    assert data["description"] == "Keep me"
    assert data["deadline"] is not None

    resp = client.patch(f"/api/tasks/{task['id']}", json={"clear_deadline": True}, headers=manager.headers)
    assert resp.json()["deadline"] is None


def test_reassign_notifies_both_sides(client, make_user, inbox):
    manager, employee, brief = setup_brief(client, make_user)
    newcomer = make_user("employee")
    task = add_task(client, manager.headers, brief["id"], employee.id)

    resp = client.put(
        f"/api/tasks/{task['id']}/assignee",
        json={"assignee_id": str(newcomer.id)},
        headers=manager.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["assignee_id"] == str(newcomer.id)
    assert [n.type for n in inbox(employee.id)] == ["task_assigned", "task_status_changed"]
    assert [n.type for n in inbox(newcomer.id)] == ["task_assigned"]


def test_blockers_are_validated(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    a = add_task(client, manager.headers, brief["id"], employee.id, title="A")
    b = add_task(client, manager.headers, brief["id"], employee.id, title="B")

    resp = client.put(f"/api/tasks/{a['id']}/blockers", json={"blocked_by": [a["id"]]}, headers=manager.headers)
    assert resp.status_code == 400

    resp = client.put(
        f"/api/tasks/{a['id']}/blockers", json={"blocked_by": [str(uuid.uuid4())]}, headers=manager.headers
    )
    assert resp.status_code == 404

    resp = client.put(f"/api/tasks/{b['id']}/blockers", json={"blocked_by": [a["id"]]}, headers=manager.headers)
    assert resp.status_code == 200
    assert resp.json()["blocked_by"] == [a["id"]]

    resp = client.put(f"/api/tasks/{a['id']}/blockers", json={"blocked_by": [b["id"]]}, headers=manager.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Task dependencies would create a cycle"


def test_tasks_grouped_by_team(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    admin = make_user("admin")
    loner = make_user("employee")
    team = client.post(
        "/api/teams/", json={"name": "Social", "lead_id": str(manager.id)}, headers=admin.headers
    ).json()
    client.post(f"/api/teams/{team['id']}/members", json={"user_id": str(employee.id)}, headers=admin.headers)
    client.put(f"/api/briefs/{brief['id']}/teams", json={"team_ids": [team["id"]]}, headers=admin.headers)
    add_task(client, manager.headers, brief["id"], employee.id, title="Post")
    add_task(client, manager.headers, brief["id"], loner.id, title="Solo")

    data = client.get(f"/api/tasks/brief/{brief['id']}", headers=manager.headers).json()
    assert [t["title"] for t in data["by_team"]["Social"]] == ["Post"]
    assert [t["title"] for t in data["by_team"]["Unassigned"]] == ["Solo"]


def test_delete_task_cascades(client, make_user):
    manager, employee, brief = setup_brief(client, make_user)
    task = add_task(client, manager.headers, brief["id"], employee.id)
    client.post(
        "/api/deliverables/", json={"task_id": task["id"], "message": "draft"}, headers=employee.headers
    )
    client.post(
        "/api/comments/",
        json={"parent_type": "task", "parent_id": task["id"], "content": "looks good"},
        headers=manager.headers,
    )
    resp = client.delete(f"/api/tasks/{task['id']}", headers=manager.headers)
    assert resp.status_code == 204
    assert client.get(f"/api/tasks/{task['id']}", headers=manager.headers).status_code == 404
    assert client.get(f"/api/deliverables/task/{task['id']}", headers=manager.headers).json() == []
    comments = client.get(
        "/api/comments/", params={"parent_type": "task", "parent_id": task["id"]}, headers=manager.headers
    ).json()
    assert comments == []
    timeline = client.get(f"/api/activity/brief/{brief['id']}", headers=manager.headers).json()
    assert timeline[0]["action"] == "deleted_task"

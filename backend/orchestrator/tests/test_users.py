from orchestrator import models


def test_profile_update(client, make_user):
    user = make_user("employee", name="Old")
    resp = client.put(
        "/api/users/me",
        json={"name": "New Name", "designation": "Copywriter"},
        headers=user.headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "New Name"
    assert data["designation"] == "Copywriter"
    assert data["role"] == "employee"


def test_user_listing_is_staff_only(client, make_user):
    admin = make_user("admin")
    employee = make_user("employee")
    make_user("manager")

    assert client.get("/api/users/", headers=employee.headers).status_code == 403
    everyone = client.get("/api/users/", headers=admin.headers)
    assert everyone.status_code == 200
    assert len(everyone.json()) == 3

    employees = client.get("/api/users/employees", headers=admin.headers).json()
    assert [u["id"] for u in employees] == [str(employee.id)]
    managers = client.get("/api/users/managers", headers=admin.headers).json()
    assert len(managers) == 1


def test_last_admin_cannot_be_demoted(client, make_user):
    admin = make_user("admin")
    resp = client.put(
        f"/api/users/{admin.id}/role", json={"role": "employee"}, headers=admin.headers
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot demote the last admin"

    other = make_user("admin")
    resp = client.put(
        f"/api/users/{other.id}/role", json={"role": "manager"}, headers=admin.headers
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "manager"


def test_role_change_requires_admin(client, make_user):
    manager = make_user("manager")
    employee = make_user("employee")
    resp = client.put(
        f"/api/users/{employee.id}/role", json={"role": "manager"}, headers=manager.headers
    )
    assert resp.status_code == 403


def test_delete_user(client, make_user, inbox):
    admin = make_user("admin")
    other_admin = make_user("admin")
    lead = make_user("manager")

    resp = client.delete(f"/api/users/{admin.id}", headers=admin.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot delete yourself"

    team = client.post(
        "/api/teams/", json={"name": "Ops", "lead_id": str(lead.id)}, headers=admin.headers
    ).json()
    client.post(
        f"/api/teams/{team['id']}/members",
        json={"user_id": str(other_admin.id)},
        headers=admin.headers,
    )
    client.post(
        "/api/briefs/",
        json={"title": "Handover", "assigned_manager_id": str(other_admin.id)},
        headers=admin.headers,
    )
    assert len(inbox(other_admin.id)) == 1

    resp = client.delete(f"/api/users/{other_admin.id}", headers=admin.headers)
    assert resp.status_code == 204
    assert inbox(other_admin.id) == []
    assert client.get(f"/api/teams/{team['id']}/members", headers=admin.headers).json() == []
    assert client.get("/api/users/", headers=admin.headers).status_code == 200
    assert len(client.get("/api/users/", headers=admin.headers).json()) == 2


def test_delete_user_with_open_work(client, make_user, db):
    admin = make_user("admin", name="Ada")
    make_user("admin")
    employee = make_user("employee", name="Eli")
    brief = client.post("/api/briefs/", json={"title": "Relaunch"}, headers=admin.headers).json()
    task = client.post(
        "/api/tasks/",
        json={
            "brief_id": brief["id"],
            "title": "Copy",
            "assignee_id": str(employee.id),
            "duration": "1 Hour",
            "duration_minutes": 60,
        },
        headers=admin.headers,
    ).json()
    client.put(f"/api/tasks/{task['id']}/status", json={"status": "in-progress"}, headers=employee.headers)
    note = client.post(
        "/api/comments/",
        json={"parent_type": "task", "parent_id": task["id"], "content": "Drafting now"},
        headers=employee.headers,
    ).json()
    client.post(f"/api/comments/{note['id']}/reactions", json={"emoji": "👍"}, headers=admin.headers)
    client.post("/api/time/manual", json={"task_id": task["id"], "duration_minutes": 30}, headers=employee.headers)
    client.post(
        "/api/messages/", json={"recipient_id": str(admin.id), "content": "Out next week"}, headers=employee.headers
    )

    resp = client.delete(f"/api/users/{employee.id}", headers=admin.headers)
    assert resp.status_code == 204

    workload = client.get(f"/api/users/{admin.id}/workload", headers=admin.headers).json()
    assert [t["title"] for t in workload] == ["Copy"]
    assert client.get(f"/api/comments/brief/{brief['id']}", headers=admin.headers).json() == []
    assert db.query(models.CommentReaction).count() == 0
    assert db.query(models.TimeEntry).count() == 0
    assert db.query(models.DirectMessage).count() == 0

    timeline = client.get(f"/api/activity/brief/{brief['id']}", headers=admin.headers).json()
    assert timeline[0]["action"] == "reassigned_task"
    assert timeline[0]["user_name"] == "Ada"
    changed = [e for e in timeline if e["action"] == "changed_status"]
    assert changed[0]["user_name"] == "Unknown"
    assert changed[0]["user_id"] is None


def test_workload_lists_assigned_tasks(client, make_user):
    admin = make_user("admin")
    employee = make_user("employee")
    brief = client.post("/api/briefs/", json={"title": "Q3"}, headers=admin.headers).json()
    for title in ("First", "Second"):
        client.post(
            "/api/tasks/",
            json={
                "brief_id": brief["id"],
                "title": title,
                "assignee_id": str(employee.id),
                "duration": "1 Hour",
                "duration_minutes": 60,
            },
            headers=admin.headers,
        )
    workload = client.get(f"/api/users/{employee.id}/workload", headers=admin.headers).json()
    assert [t["title"] for t in workload] == ["First", "Second"]
    assert workload[0]["brief_title"] == "Q3"

def setup_task(client, make_user):
    manager = make_user("manager")
    employee = make_user("employee", name="Dana")
    brief = client.post("/api/briefs/", json={"title": "Spring"}, headers=manager.headers).json()
    task = client.post(
        "/api/tasks/",
        json={
            "brief_id": brief["id"],
            "title": "Hero image",
            "assignee_id": str(employee.id),
            "duration": "3 Hours",
            "duration_minutes": 180,
        },
        headers=manager.headers,
    ).json()
    return manager, employee, brief, task


def submit(client, employee, task_id, message="v1"):
    resp = client.post(
        "/api/deliverables/", json={"task_id": task_id, "message": message}, headers=employee.headers
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_only_assignee_submits(client, make_user):
    manager, employee, brief, task = setup_task(client, make_user)
    resp = client.post(
        "/api/deliverables/", json={"task_id": task["id"], "message": "x"}, headers=manager.headers
    )
    assert resp.status_code == 403


def test_submission_moves_task_to_review(client, make_user, inbox):
    manager, employee, brief, task = setup_task(client, make_user)
    deliverable = submit(client, employee, task["id"])
    assert deliverable["status"] == "pending"
    detail = client.get(f"/api/tasks/{task['id']}", headers=manager.headers).json()
    assert detail["task"]["status"] == "review"
    note = inbox(manager.id)[0]
    assert note.type == "deliverable_submitted"
    assert note.message == 'Dana submitted a deliverable for "Hero image"'


def test_reject_requires_note_and_reopens_task(client, make_user, inbox):
    manager, employee, brief, task = setup_task(client, make_user)
    deliverable = submit(client, employee, task["id"])

    resp = client.post(f"/api/deliverables/{deliverable['id']}/reject", json={"note": ""}, headers=manager.headers)
    assert resp.status_code == 422

    resp = client.post(
        f"/api/deliverables/{deliverable['id']}/reject",
        json={"note": "Brighter colours"},
        headers=manager.headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["review_note"] == "Brighter colours"
    detail = client.get(f"/api/tasks/{task['id']}", headers=manager.headers).json()
    assert detail["task"]["status"] == "in-progress"
    rejected = [n for n in inbox(employee.id) if n.type == "deliverable_rejected"]
    assert rejected[0].title == "Changes requested"


def test_employees_cannot_review(client, make_user):
    manager, employee, brief, task = setup_task(client, make_user)
    deliverable = submit(client, employee, task["id"])
    resp = client.post(f"/api/deliverables/{deliverable['id']}/approve", json={}, headers=employee.headers)
    assert resp.status_code == 403


def test_second_approval_keeps_deliverable_approved(client, make_user, inbox):
    manager, employee, brief, task = setup_task(client, make_user)
    deliverable = submit(client, employee, task["id"])
    for _ in range(2):
        resp = client.post(
            f"/api/deliverables/{deliverable['id']}/approve", json={"note": "great"}, headers=manager.headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
    approvals = [n for n in inbox(employee.id) if n.type == "deliverable_approved"]
    assert len(approvals) == 2


def test_listing_scoped_for_employees(client, make_user):
    manager, employee, brief, task = setup_task(client, make_user)
    submit(client, employee, task["id"])
    other = make_user("employee")

    rows = client.get("/api/deliverables/", headers=manager.headers).json()
    assert len(rows) == 1
    assert rows[0]["task_title"] == "Hero image"
    assert rows[0]["submitter_name"] == "Dana"
    assert client.get("/api/deliverables/", headers=employee.headers).json()[0]["brief_title"] == "Spring"
    assert client.get("/api/deliverables/", headers=other.headers).json() == []

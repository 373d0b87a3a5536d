def seed(client, make_user):
    admin = make_user("admin")
    manager = make_user("manager")
    employee = make_user("employee", name="Launch Lara")
    other = make_user("employee")
    mine = client.post(
        "/api/briefs/",
        json={"title": "Spring Launch", "assigned_manager_id": str(manager.id)},
        headers=admin.headers,
    ).json()
    theirs = client.post(
        "/api/briefs/", json={"title": "Autumn", "description": "launch teaser"}, headers=admin.headers
    ).json()
    for brief, assignee, title in ((mine, employee, "Launch video"), (theirs, other, "Launch copy")):
        client.post(
            "/api/tasks/",
            json={
                "brief_id": brief["id"],
                "title": title,
                "assignee_id": str(assignee.id),
                "duration": "1 Hour",
                "duration_minutes": 60,
            },
            headers=admin.headers,
        )
    client.post("/api/brands/", json={"name": "LaunchPad"}, headers=admin.headers)
    client.post("/api/teams/", json={"name": "Launch crew", "lead_id": str(manager.id)}, headers=admin.headers)
    return admin, manager, employee


def test_admin_sees_everything(client, make_user):
    admin, _, _ = seed(client, make_user)
    data = client.get("/api/search/", params={"q": "LAUNCH"}, headers=admin.headers).json()
    assert sorted(b["title"] for b in data["briefs"]) == ["Autumn", "Spring Launch"]
    assert sorted(t["title"] for t in data["tasks"]) == ["Launch copy", "Launch video"]
    assert [b["name"] for b in data["brands"]] == ["LaunchPad"]
    assert [t["name"] for t in data["teams"]] == ["Launch crew"]
    assert [u["name"] for u in data["users"]] == ["Launch Lara"]


def test_manager_sees_own_briefs(client, make_user):
    _, manager, _ = seed(client, make_user)
    data = client.get("/api/search/", params={"q": "launch"}, headers=manager.headers).json()
    assert [b["title"] for b in data["briefs"]] == ["Spring Launch"]
    assert len(data["tasks"]) == 2


def test_employee_scope(client, make_user):
    _, _, employee = seed(client, make_user)
    data = client.get("/api/search/", params={"q": "launch"}, headers=employee.headers).json()
    assert [b["title"] for b in data["briefs"]] == ["Spring Launch"]
    assert [t["title"] for t in data["tasks"]] == ["Launch video"]
    assert data["brands"] == data["teams"] == data["users"] == []


def test_blank_query_and_wildcards(client, make_user):
    admin, _, _ = seed(client, make_user)
    empty = client.get("/api/search/", params={"q": "   "}, headers=admin.headers).json()
    assert all(v == [] for v in empty.values())
    data = client.get("/api/search/", params={"q": "%"}, headers=admin.headers).json()
    assert data["briefs"] == [] and data["tasks"] == []

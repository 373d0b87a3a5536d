def make_team(client, admin, lead, name="Design"):
    resp = client.post("/api/teams/", json={"name": name, "lead_id": str(lead.id)}, headers=admin.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_create_and_list_teams(client, make_user):
    admin = make_user("admin")
    lead = make_user("manager", name="Lena")
    team = make_team(client, admin, lead)
    assert team["color"] == "#6366f1"

    teams = client.get("/api/teams/", headers=lead.headers).json()
    assert [(t["name"], t["lead_name"], t["member_count"]) for t in teams] == [("Design", "Lena", 0)]


def test_only_admins_manage_teams(client, make_user):
    make_user("admin")
    manager = make_user("manager")
    resp = client.post("/api/teams/", json={"name": "Ops", "lead_id": str(manager.id)}, headers=manager.headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Only admins can create teams"


def test_members(client, make_user):
    admin = make_user("admin")
    lead = make_user("manager")
    employee = make_user("employee", name="Eve")
    team = make_team(client, admin, lead)

    for _ in range(2):
        resp = client.post(
            f"/api/teams/{team['id']}/members", json={"user_id": str(employee.id)}, headers=lead.headers
        )
        assert resp.status_code == 204
    members = client.get(f"/api/teams/{team['id']}/members", headers=employee.headers).json()
    assert [m["name"] for m in members] == ["Eve"]
    mine = client.get(f"/api/teams/user/{employee.id}", headers=employee.headers).json()
    assert [t["name"] for t in mine] == ["Design"]

    resp = client.post(
        f"/api/teams/{team['id']}/members", json={"user_id": str(lead.id)}, headers=employee.headers
    )
    assert resp.status_code == 403

    client.delete(f"/api/teams/{team['id']}/members/{employee.id}", headers=admin.headers)
    assert client.get(f"/api/teams/{team['id']}/members", headers=admin.headers).json() == []


def test_delete_blocked_by_active_brief(client, make_user):
    admin = make_user("admin")
    lead = make_user("manager")
    team = make_team(client, admin, lead)
    brief = client.post("/api/briefs/", json={"title": "Rebrand"}, headers=admin.headers).json()
    client.put(f"/api/briefs/{brief['id']}/teams", json={"team_ids": [team["id"]]}, headers=admin.headers)

    resp = client.delete(f"/api/teams/{team['id']}", headers=admin.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == (
        "Remove team from active briefs before deleting. 1 active brief(s) assigned."
    )

    client.post(f"/api/briefs/{brief['id']}/archive", headers=admin.headers)
    assert client.delete(f"/api/teams/{team['id']}", headers=admin.headers).status_code == 204
    assert client.get("/api/teams/", headers=admin.headers).json() == []
    assert client.get(f"/api/briefs/{brief['id']}/teams", headers=admin.headers).json() == []

from datetime import datetime, timedelta, timezone

from orchestrator import tasks
from orchestrator.database import utcnow
from orchestrator.services import reminders

NOW = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)


def setup_brief(client, make_user, **brief_fields):
    manager = make_user("manager")
    employee = make_user("employee")
    brief = client.post(
        "/api/briefs/", json={"title": "Deadlines", **brief_fields}, headers=manager.headers
    ).json()
    return manager, employee, brief


def add_task(client, manager, brief, employee, deadline, title="Due"):
    resp = client.post(
        "/api/tasks/",
        json={
            "brief_id": brief["id"],
            "title": title,
            "assignee_id": str(employee.id),
            "duration": "1 Hour",
            "duration_minutes": 60,
            "deadline": deadline.isoformat(),
        },
        headers=manager.headers,
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def reminder_titles(inbox, user_id):
    return [n.title for n in inbox(user_id) if n.type == "deadline_reminder"]


def test_due_soon_reminder_window(client, make_user, db, inbox):
    manager, employee, brief = setup_brief(client, make_user)
    add_task(client, manager, brief, employee, NOW + timedelta(hours=20))
    add_task(client, manager, brief, employee, NOW + timedelta(days=3), title="Later")

    assert reminders.check_deadlines(db, now=NOW) == 1
    db.commit()
    assert reminders.check_deadlines(db, now=NOW + timedelta(hours=2)) == 0
    db.commit()
    assert reminders.check_deadlines(db, now=NOW + timedelta(hours=13)) == 1
    db.commit()
    assert reminder_titles(inbox, employee.id) == ["Task deadline approaching"] * 2
    assert reminder_titles(inbox, manager.id) == []


def test_overdue_task_and_brief_reminders(client, make_user, db, inbox):
    first_admin = make_user("admin")
    second_admin = make_user("admin")
    manager, employee, brief = setup_brief(
        client, make_user, deadline=(NOW - timedelta(hours=1)).isoformat()
    )
    add_task(client, manager, brief, employee, NOW - timedelta(hours=2), title="Late")
    finished = add_task(client, manager, brief, employee, NOW - timedelta(hours=2), title="Finished")
    client.put(f"/api/tasks/{finished['id']}/status", json={"status": "done"}, headers=manager.headers)

    assert reminders.check_deadlines(db, now=NOW) == 3
    db.commit()
    assert reminders.check_deadlines(db, now=NOW + timedelta(hours=1)) == 0
    db.commit()
    assert reminders.check_deadlines(db, now=NOW + timedelta(hours=25)) == 3
    db.commit()

    assert reminder_titles(inbox, manager.id) == ["Task overdue"] * 2
    for admin in (first_admin, second_admin):
        assert reminder_titles(inbox, admin.id) == ["Brief overdue"] * 2
    assert reminder_titles(inbox, employee.id) == []


def test_archived_brief_is_not_reminded(client, make_user, db):
    make_user("admin")
    manager, employee, brief = setup_brief(
        client, make_user, deadline=(NOW - timedelta(hours=1)).isoformat()
    )
    client.post(f"/api/briefs/{brief['id']}/archive", headers=manager.headers)
    assert reminders.check_deadlines(db, now=NOW) == 0


def test_celery_task_runs_the_sweep(client, make_user, inbox, published):
    manager, employee, brief = setup_brief(client, make_user)
    add_task(client, manager, brief, employee, utcnow() + timedelta(hours=1))

    assert tasks.check_deadlines.delay().get() == 1
    assert reminder_titles(inbox, employee.id) == ["Task deadline approaching"]
    assert published[-1][0] == str(employee.id)

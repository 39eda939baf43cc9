import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.models.enums import TaskStatus
from flux.models.status_log import TaskStatusLog
from flux.services.activity import DEFAULT_LIMIT, MAX_LIMIT, clamp_limit
from flux.services.mentions import extract_handles

def login(client, name: str) -> str:
    r = client.post(
        "/auth/sso/google/callback",
        json={"provider_id": f"google-{name}", "email": f"{name}@example.com", "username": name},
    )
    assert r.status_code == 200, r.text
    client.cookies.clear()
    return r.json()["access_token"]

def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def logs(db: Session) -> list[TaskStatusLog]:
    return list(db.scalars(select(TaskStatusLog).order_by(TaskStatusLog.changed_at)).all())

def test_only_real_transitions_are_logged(client, world, db_session: Session):
    task = world.task_id

    r = client.patch(f"/tasks/{task}", json={"status": "IN_PROGRESS"}, headers=auth(world.member))
    assert r.status_code == 200
    # same value again, then a field that is not status
    r = client.patch(f"/tasks/{task}", json={"status": "IN_PROGRESS"}, headers=auth(world.member))
    assert r.status_code == 200
    r = client.patch(f"/tasks/{task}", json={"title": "write better docs"}, headers=auth(world.leader))
    assert r.status_code == 200
    r = client.patch(f"/tasks/{task}", json={"status": "DONE"}, headers=auth(world.leader))
    assert r.status_code == 200

    rows = logs(db_session)
    assert [(r.old_status, r.new_status) for r in rows] == [
        (TaskStatus.todo, TaskStatus.in_progress),
        (TaskStatus.in_progress, TaskStatus.done),
    ]
    assert rows[0].changed_by == world.member_id
    assert rows[1].changed_by == world.leader_id
    assert all(r.team_id == uuid.UUID(world.team_id) for r in rows)

def test_unknown_update_fields_are_rejected(client, world):
    r = client.patch(f"/tasks/{world.task_id}", json={"status": "DONE", "team_id": world.team_id}, headers=auth(world.member))
    assert r.status_code == 422

def test_activity_feed_shape_order_and_filters(client, world):
    task = world.task_id
    client.patch(f"/tasks/{task}", json={"status": "IN_PROGRESS"}, headers=auth(world.member))
    client.patch(f"/tasks/{task}", json={"status": "BLOCKED"}, headers=auth(world.leader))
    client.patch(f"/tasks/{task}", json={"status": "DONE"}, headers=auth(world.member))

    url = f"/teams/{world.team_id}/activity"
    r = client.get(url, headers=auth(world.leader))
    assert r.status_code == 200
    feed = r.json()
    assert [e["new_status"] for e in feed] == ["DONE", "BLOCKED", "IN_PROGRESS"]

    first = feed[0]
    assert first["task_title"] == "write docs"
    assert first["link"] == f"/tasks/{task}"
    assert first["changed_by"]["handle"] == "member"

    r = client.get(url, params={"user_id": str(world.leader_id)}, headers=auth(world.leader))
    assert [e["new_status"] for e in r.json()] == ["BLOCKED"]

    r = client.get(url, params={"user_id": "ALL"}, headers=auth(world.leader))
    assert len(r.json()) == 3

    r = client.get(url, params={"limit": "1"}, headers=auth(world.leader))
    assert [e["new_status"] for e in r.json()] == ["DONE"]

    # junk limits fall back to the default instead of failing
    r = client.get(url, params={"limit": "lots"}, headers=auth(world.leader))
    assert r.status_code == 200
    assert len(r.json()) == 3

    r = client.get(url, params={"from": "2000-01-01T00:00:00Z"}, headers=auth(world.leader))
    assert len(r.json()) == 3
    r = client.get(url, params={"to": "2000-01-01T00:00:00Z"}, headers=auth(world.leader))
    assert r.json() == []

    r = client.get(url, params={"user_id": "not-a-uuid"}, headers=auth(world.leader))
    assert r.json() == {"error": "invalid_user_id"}

def test_activity_for_missing_task_uses_placeholder_title(client, world, db_session: Session):
    orphan = uuid.uuid4()
    db_session.add(
        TaskStatusLog(
            task_id=orphan,
            team_id=uuid.UUID(world.team_id),
            old_status=TaskStatus.todo,
            new_status=TaskStatus.done,
            changed_by=world.leader_id,
        )
    )
    db_session.commit()

    r = client.get(f"/teams/{world.team_id}/activity", headers=auth(world.admin))
    (entry,) = r.json()
    assert entry["task_title"] == "Untitled task"
    assert entry["task_id"] == str(orphan)

def test_clamp_limit():
    assert clamp_limit(None) == DEFAULT_LIMIT
    assert clamp_limit("abc") == DEFAULT_LIMIT
    assert clamp_limit("0") == DEFAULT_LIMIT
    assert clamp_limit("-3") == DEFAULT_LIMIT
    assert clamp_limit("10") == 10
    assert clamp_limit(str(MAX_LIMIT + 1000)) == MAX_LIMIT

def test_extract_handles():
    assert extract_handles("ping @alice and @bob, then @alice again") == ["alice", "bob"]
    assert extract_handles("mail me at x@ or @a") == []
    assert extract_handles("") == []

def test_note_mentions_resolve_known_handles(client, world):
    login(client, "alice")
    login(client, "bob")

    r = client.post(
        f"/tasks/{world.task_id}/notes",
        json={"content": "ping @alice and @bob, also @nope_handle_that_doesnt_exist"},
        headers=auth(world.member),
    )
    assert r.status_code == 200, r.text
    assert len(r.json()["mentions"]) == 2

    r = client.post(f"/tasks/{world.task_id}/notes", json={"content": "@alice @alice"}, headers=auth(world.member))
    assert len(r.json()["mentions"]) == 1

    # outsiders cannot comment
    r = client.post(f"/tasks/{world.task_id}/notes", json={"content": "hi"}, headers=auth(world.outsider))
    assert r.status_code == 403

def test_task_detail_includes_assignees_and_notes(client, world):
    client.post(f"/tasks/{world.task_id}/notes", json={"content": "first"}, headers=auth(world.leader))

    r = client.get(f"/tasks/{world.task_id}", headers=auth(world.member))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "TODO"
    assert body["priority"] == "MEDIUM"
    assert [a["handle"] for a in body["assignees"]] == ["member"]
    assert [n["content"] for n in body["notes"]] == ["first"]

    r = client.get(f"/teams/{world.team_id}/tasks", headers=auth(world.member))
    assert [t["id"] for t in r.json()] == [world.task_id]

def test_suffixed_long_handle_is_mentionable(client, world, db_session: Session):
    base = "a" * 30
    first, second = [
        client.post(
            "/auth/sso/google/callback",
            json={"provider_id": f"google-long-{i}", "email": f"long{i}@example.com", "username": base},
        ).json()["access_token"]
        for i in range(2)
    ]
    client.cookies.clear()

    first_me = client.get("/me", headers=auth(first)).json()
    second_me = client.get("/me", headers=auth(second)).json()
    assert first_me["handle"] == base
    assert len(second_me["handle"]) == 30
    assert second_me["handle"] == "a" * 29 + "1"

    r = client.post(
        f"/tasks/{world.task_id}/notes",
        json={"content": f"hi @{second_me['handle']}"},
        headers=auth(world.leader),
    )
    assert r.status_code == 200, r.text
    assert r.json()["mentions"] == [second_me["id"]]

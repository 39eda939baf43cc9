def auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def make_event(client, world, **overrides):
    body = {
        "title": "standup",
        "start_at": "2026-03-10T14:30:00Z",
        "end_at": "2026-03-10T15:00:00Z",
    }
    body.update(overrides)
    return client.post(f"/teams/{world.team_id}/calendar", json=body, headers=auth(world.leader))

def test_calendar_create_and_list(client, world):
    r = make_event(client, world)
    assert r.status_code == 200, r.text
    assert r.json()["type"] == "EVENT"

    r = client.get(f"/teams/{world.team_id}/calendar", headers=auth(world.member))
    assert r.status_code == 200
    assert [e["title"] for e in r.json()] == ["standup"]

    # members read but do not write
    r = client.post(
        f"/teams/{world.team_id}/calendar",
        json={"title": "x", "start_at": "2026-03-10T14:30:00Z", "end_at": "2026-03-10T15:00:00Z"},
        headers=auth(world.member),
    )
    assert r.status_code == 403

def test_calendar_validation(client, world):
    r = make_event(client, world, end_at="2026-03-10T13:00:00Z")
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_range"}

    # a task from another team cannot be linked
    r = client.post(f"/orgs/{world.org_id}/teams", json={"name": "other"}, headers=auth(world.admin))
    other_team = r.json()["id"]
    r = client.post(f"/teams/{other_team}/tasks", json={"title": "theirs"}, headers=auth(world.admin))
    r = make_event(client, world, related_task_id=r.json()["id"])
    assert r.status_code == 400
    assert r.json() == {"error": "task_not_in_team"}

def test_calendar_patch_by_type(client, world):
    event_id = make_event(client, world).json()["id"]
    url = f"/teams/{world.team_id}/calendar/{event_id}"

    r = client.patch(url, json={"type": "EVENT", "duration_minutes": 90}, headers=auth(world.leader))
    assert r.status_code == 200, r.text
    assert r.json()["start_at"].startswith("2026-03-10T14:30:00")
    assert r.json()["end_at"].startswith("2026-03-10T16:00:00")

    # task markers snap to the whole day
    r = client.patch(url, json={"type": "TASK"}, headers=auth(world.leader))
    assert r.status_code == 200
    assert r.json()["type"] == "TASK"
    assert r.json()["start_at"].startswith("2026-03-10T00:00:00")
    assert r.json()["end_at"].startswith("2026-03-10T23:59:59")

    r = client.delete(url, headers=auth(world.leader))
    assert r.status_code == 200
    assert client.delete(url, headers=auth(world.leader)).status_code == 404

def test_team_info_and_links(client, world):
    team = world.team_id

    r = client.patch(f"/teams/{team}/info", json={"info": "we ship"}, headers=auth(world.leader))
    assert r.status_code == 200
    r = client.patch(f"/teams/{team}/info", json={"info": "nope"}, headers=auth(world.member))
    assert r.status_code == 403

    r = client.post(f"/teams/{team}/links", json={"label": "wiki"}, headers=auth(world.leader))
    assert r.status_code == 400
    assert r.json() == {"error": "label_and_url_required"}

    first = client.post(f"/teams/{team}/links", json={"label": "wiki", "url": "https://wiki"}, headers=auth(world.leader))
    second = client.post(f"/teams/{team}/links", json={"label": "ci", "url": "https://ci"}, headers=auth(world.leader))
    assert first.json()["ordinal"] == 1
    assert second.json()["ordinal"] == 2

    r = client.patch(
        f"/teams/{team}/links/{first.json()['id']}",
        json={"ordinal": 3},
        headers=auth(world.leader),
    )
    assert r.status_code == 200

    r = client.get(f"/teams/{team}/info", headers=auth(world.member))
    body = r.json()
    assert body["info"] == "we ship"
    assert [link["label"] for link in body["links"]] == ["ci", "wiki"]

    r = client.delete(f"/teams/{team}/links/{second.json()['id']}", headers=auth(world.leader))
    assert r.status_code == 200
    r = client.get(f"/teams/{team}/info", headers=auth(world.member))
    assert [link["label"] for link in r.json()["links"]] == ["wiki"]

def test_rename_team_and_org(client, world):
    r = client.patch(f"/teams/{world.team_id}", json={"name": "platform"}, headers=auth(world.leader))
    assert r.status_code == 200
    assert r.json()["name"] == "platform"

    r = client.patch(f"/orgs/{world.org_id}", json={"name": ""}, headers=auth(world.admin))
    assert r.json() == {"error": "invalid_name"}

    r = client.get(f"/orgs/{world.org_id}", headers=auth(world.member))
    assert r.json()["member_count"] == 3

def test_calendar_patch_rejects_inverted_range(client, world):
    event_id = make_event(client, world).json()["id"]
    url = f"/teams/{world.team_id}/calendar/{event_id}"

    r = client.patch(url, json={"end_at": "2026-03-10T13:00:00Z"}, headers=auth(world.leader))
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_range"}

    r = client.patch(url, json={"title": "renamed", "start_at": "2026-03-10T16:00:00Z"}, headers=auth(world.leader))
    assert r.json() == {"error": "invalid_range"}

    # the rejected patches changed nothing
    (event,) = client.get(f"/teams/{world.team_id}/calendar", headers=auth(world.leader)).json()
    assert event["title"] == "standup"
    assert event["start_at"].startswith("2026-03-10T14:30:00")
    assert event["end_at"].startswith("2026-03-10T15:00:00")

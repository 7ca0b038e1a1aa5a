def test_create_project_defaults(client, auth_headers):
    response = client.post("/projects", json={"name": "  "}, headers=auth_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Untitled Project"
    assert body["progress"] == 0
    assert body["autoProgress"] is True
    assert body["priority"] == "medium"
    assert body["tags"] == []
    assert body["tasks"] == []


def test_bogus_priority_coerces_to_medium(client, auth_headers):
    response = client.post("/projects", json={"name": "P", "priority": "bogus"}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["priority"] == "medium"

    response = client.post("/projects", json={"name": "Q", "priority": "urgent"}, headers=auth_headers)
    assert response.json()["priority"] == "urgent"


def test_tags_round_trip_in_order(client, auth_headers):
    tags = ["zeta", "alpha", "beta"]
    response = client.post("/projects", json={"name": "Tagged", "tags": tags}, headers=auth_headers)
    project_id = response.json()["id"]

    response = client.get(f"/projects/{project_id}", headers=auth_headers)
    assert response.json()["tags"] == tags

    listed = client.get("/projects", headers=auth_headers).json()
    assert listed[0]["tags"] == tags


def test_list_projects_ordered_by_name(client, auth_headers):
    for name in ("Charlie", "Alpha", "Bravo"):
        client.post("/projects", json={"name": name}, headers=auth_headers)

    listed = client.get("/projects", headers=auth_headers).json()
    assert [p["name"] for p in listed] == ["Alpha", "Bravo", "Charlie"]
    assert all(p["tasks"] == [] for p in listed)


def test_deadline_accepts_datetime_string(client, auth_headers):
    response = client.post(
        "/projects",
        json={"name": "Dated", "deadline": "2026-03-01T12:00:00.000Z"},
        headers=auth_headers,
    )
    assert response.json()["deadline"] == "2026-03-01"

    project_id = response.json()["id"]
    response = client.put(f"/projects/{project_id}", json={"deadline": None}, headers=auth_headers)
    assert response.json()["deadline"] is None


def test_manual_progress_is_clamped_and_kept(client, auth_headers, project):
    project_id = project["id"]
    response = client.put(
        f"/projects/{project_id}",
        json={"autoProgress": False, "progress": 150},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["progress"] == 100

    response = client.put(f"/projects/{project_id}", json={"progress": 50.5}, headers=auth_headers)
    assert response.json()["progress"] == 51

    client.post(f"/projects/{project_id}/tasks", json={"name": "T"}, headers=auth_headers)
    response = client.get(f"/projects/{project_id}", headers=auth_headers)
    assert response.json()["progress"] == 51


def test_enabling_auto_progress_recomputes(client, auth_headers, project):
    project_id = project["id"]
    client.put(f"/projects/{project_id}", json={"autoProgress": False, "progress": 90}, headers=auth_headers)
    task = client.post(f"/projects/{project_id}/tasks", json={"name": "A"}, headers=auth_headers).json()
    client.post(f"/projects/{project_id}/tasks", json={"name": "B"}, headers=auth_headers)
    client.put(f"/projects/{project_id}/tasks/{task['id']}", json={"completed": True}, headers=auth_headers)

    response = client.put(f"/projects/{project_id}", json={"autoProgress": True}, headers=auth_headers)
    body = response.json()
    assert body["autoProgress"] is True
    assert body["progress"] == 50
    assert len(body["tasks"]) == 2


def test_missing_project(client, auth_headers):
    response = client.get("/projects/missing", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "PROJECT_NOT_FOUND"

    response = client.put("/projects/missing", json={"name": "x"}, headers=auth_headers)
    assert response.status_code == 404

    assert client.delete("/projects/missing", headers=auth_headers).status_code == 204


def test_delete_project_cascades_tasks(client, auth_headers, project):
    project_id = project["id"]
    client.post(f"/projects/{project_id}/tasks", json={"name": "A"}, headers=auth_headers)
    client.post(f"/projects/{project_id}/tasks", json={"name": "B"}, headers=auth_headers)

    assert client.delete(f"/projects/{project_id}", headers=auth_headers).status_code == 204
    assert client.get(f"/projects/{project_id}", headers=auth_headers).status_code == 404
    assert client.get(f"/projects/{project_id}/tasks", headers=auth_headers).json() == []


def test_invalid_body_maps_to_400(client, auth_headers, project):
    url = f"/projects/{project['id']}"
    for bad in (True, [1], "abc"):
        response = client.put(url, json={"progress": bad}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert "field_errors" in response.json()["details"]

    # 1e400 是合法JSON数字，解析后为无穷大
    response = client.put(
        url,
        content='{"progress": 1e400}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "VALIDATION_ERROR"


def test_null_does_not_overwrite_required_fields(client, auth_headers, project):
    url = f"/projects/{project['id']}"
    client.put(url, json={"autoProgress": False, "progress": 40, "priority": "high"}, headers=auth_headers)

    response = client.put(
        url,
        json={"name": None, "progress": None, "autoProgress": None, "priority": None, "tags": None},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Launch"
    assert body["progress"] == 40
    assert body["autoProgress"] is False
    assert body["priority"] == "high"
    assert body["tags"] == []

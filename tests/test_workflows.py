"""
Workflows API: templates, steps, tasks and task logs.
"""
from tests.conftest import API, auth_headers


async def _workflow_type(client, admin, name="Move-in"):
    response = await client.post(f"{API}/workflow-types", json={"name": name}, headers=auth_headers(admin))
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _workflow(client, estate, admin, **fields):
    type_id = await _workflow_type(client, admin)
    body = {
        "workflow_type_id": type_id,
        "name": "Move-in 12B",
        "building_id": estate.building_id,
        "steps": [{"name": "Inspect"}, {}],
    }
    body.update(fields)
    response = await client.post(f"{API}/workflows", json=body, headers=auth_headers(estate.manager))
    assert response.status_code == 201, response.text
    return response.json()


async def test_only_admins_create_types(client, make_user):
    user = await make_user()
    response = await client.post(f"{API}/workflow-types", json={"name": "Audit"}, headers=auth_headers(user))
    assert response.status_code == 403


async def test_workflow_steps_are_numbered(client, estate, make_user):
    admin = await make_user(is_admin=True)
    workflow = await _workflow(client, estate, admin)

    assert workflow["status"] == "PENDING"
    assert workflow["community_id"] == estate.community_id
    assert [s["step_order"] for s in workflow["steps"]] == [1, 2]
    assert [s["name"] for s in workflow["steps"]] == ["Inspect", "Step 2"]


async def test_template_steps_are_copied(client, estate, make_user):
    admin = await make_user(is_admin=True)
    type_id = await _workflow_type(client, admin, "Move-out")
    response = await client.post(
        f"{API}/workflow-templates",
        json={"workflow_type_id": type_id, "name": "Standard", "steps": [{"name": "Keys"}, {"name": "Deposit"}]},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201, response.text
    template_id = response.json()["id"]

    response = await client.post(
        f"{API}/workflows",
        json={"workflow_type_id": type_id, "template_id": template_id, "name": "Out", "building_id": estate.building_id},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text
    assert [s["name"] for s in response.json()["steps"]] == ["Keys", "Deposit"]


async def test_residents_cannot_create_building_workflows(client, estate, make_user):
    admin = await make_user(is_admin=True)
    type_id = await _workflow_type(client, admin)
    response = await client.post(
        f"{API}/workflows",
        json={"workflow_type_id": type_id, "name": "x", "building_id": estate.building_id},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_task_lifecycle_and_logs(client, estate, make_user):
    admin = await make_user(is_admin=True)
    worker = await make_user()
    stranger = await make_user()
    workflow = await _workflow(client, estate, admin)
    base = f"{API}/workflows/{workflow['id']}"
    step_id = workflow["steps"][0]["id"]
    manager = auth_headers(estate.manager)

    response = await client.post(
        f"{base}/steps/{step_id}/tasks",
        json={"name": "Check meters", "assigned_to": str(worker.id), "estimated_minutes": 15},
        headers=manager,
    )
    assert response.status_code == 201, response.text
    task_id = response.json()["id"]

    response = await client.post(f"{base}/tasks/{task_id}/complete", json={}, headers=auth_headers(worker))
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Task is not in progress"

    response = await client.patch(
        f"{base}/tasks/{task_id}", json={"status": "IN_PROGRESS"}, headers=auth_headers(worker),
    )
    assert response.status_code == 200, response.text
    assert response.json()["started_at"] is not None

    response = await client.post(f"{base}/tasks/{task_id}/complete", json={}, headers=auth_headers(stranger))
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "You are not assigned to this task"

    response = await client.post(
        f"{base}/tasks/{task_id}/complete",
        json={"actual_minutes": 20, "work_done": "Readings taken"},
        headers=auth_headers(worker),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["actual_minutes"] == 20

    response = await client.post(
        f"{base}/tasks/{task_id}/logs",
        json={"action": "note", "description": "Meter 2 cracked", "metadata": {"meter": 2}},
        headers=auth_headers(worker),
    )
    assert response.status_code == 201, response.text
    assert response.json()["action"] == "NOTE"
    assert response.json()["metadata"] == {"meter": 2}

    response = await client.get(f"{base}/tasks/{task_id}/logs", headers=manager)
    assert {entry["action"] for entry in response.json()} == {"START", "COMPLETE", "NOTE"}

    response = await client.get(f"{API}/notifications", headers=auth_headers(worker))
    assert any(item["type"] == "WORKFLOW_UPDATE" for item in response.json()["items"])


async def test_step_timing(client, estate, make_user):
    admin = await make_user(is_admin=True)
    workflow = await _workflow(client, estate, admin)
    base = f"{API}/workflows/{workflow['id']}"
    step_id = workflow["steps"][0]["id"]
    manager = auth_headers(estate.manager)

    response = await client.patch(f"{base}/steps/{step_id}", json={"status": "IN_PROGRESS"}, headers=manager)
    assert response.status_code == 200, response.text
    assert response.json()["started_at"] is not None

    response = await client.patch(f"{base}/steps/{step_id}", json={"status": "COMPLETED"}, headers=manager)
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["duration_minutes"] == 0


async def test_cancelled_workflow_rejects_changes(client, estate, make_user):
    admin = await make_user(is_admin=True)
    workflow = await _workflow(client, estate, admin)
    base = f"{API}/workflows/{workflow['id']}"
    manager = auth_headers(estate.manager)

    response = await client.delete(base, headers=manager)
    assert response.status_code == 204

    response = await client.get(base, headers=manager)
    assert response.json()["status"] == "CANCELLED"

    response = await client.patch(base, json={"name": "Renamed"}, headers=manager)
    assert response.status_code == 400

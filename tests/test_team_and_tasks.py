from tests.conftest import JOB_PAYLOAD, PASSWORD, login


def _recruiter(client, employer, permissions, email="recruiter@acme.co.za"):
    response = client.post("/api/employer/users", json={
        "email": email,
        "password": PASSWORD,
        "first_name": "Naledi",
        "last_name": "Khumalo",
        "role": "hr_recruitment",
        "permissions": permissions,
    }, headers=employer["headers"])
    assert response.status_code == 201, response.text
    member = response.json()
    member["headers"] = login(client, email)
    return member


def test_team_member_shares_company_scope(client, employer):
    member = _recruiter(client, employer, ["create_post", "view_applications"])
    assert member["permissions"] == ["create_post", "view_applications"]

    job = client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=member["headers"]).json()["job"]
    assert job["employer_id"] == employer["id"]
    assert job["created_by"] == member["id"]
    assert job["company_name"] == "Acme Holdings"

    # The owner sees the member's posting
    owner_jobs = client.get("/api/employer/jobs", headers=employer["headers"]).json()
    assert [j["id"] for j in owner_jobs] == [job["id"]]


def test_permission_gates(client, employer):
    member = _recruiter(client, employer, ["view_applications"])
    response = client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=member["headers"])
    assert response.status_code == 403
    assert client.get("/api/employer/users", headers=member["headers"]).status_code == 403


def test_cannot_grant_unheld_permission(client, employer):
    response = client.post("/api/employer/users", json={
        "email": "x@acme.co.za",
        "password": PASSWORD,
        "first_name": "X",
        "last_name": "Y",
        "permissions": ["approve_jobs"],
    }, headers=employer["headers"])
    assert response.status_code == 400


def test_update_permissions_and_toggle(client, employer):
    member = _recruiter(client, employer, ["view_applications"])
    response = client.put(
        f"/api/employer/users/{member['id']}/permissions",
        json={"permissions": ["create_post"]},
        headers=employer["headers"],
    )
    assert response.json()["permissions"] == ["create_post"]
    assert client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=member["headers"]).status_code == 201

    response = client.put(f"/api/employer/users/{member['id']}/toggle-status", headers=employer["headers"])
    assert response.json()["is_active"] is False
    assert client.get("/api/auth/me", headers=member["headers"]).status_code == 403

    team = client.get("/api/employer/users", headers=employer["headers"]).json()
    assert [m["id"] for m in team] == [member["id"]]


def test_owner_cannot_toggle_self(client, employer):
    response = client.put(f"/api/employer/users/{employer['id']}/toggle-status", headers=employer["headers"])
    assert response.status_code == 400


def test_task_lifecycle(client, employer, manager):
    member = _recruiter(client, employer, [])
    response = client.post("/api/management/tasks", json={
        "title": "Screen architecture CVs",
        "assigned_to_id": member["id"],
        "priority": "high",
        "checklist": ["Download CVs", "Shortlist five"],
    }, headers=manager["headers"])
    assert response.status_code == 201
    task = response.json()
    assert task["status"] == "pending"
    assert task["assigned_to_name"] == "Naledi Khumalo"
    assert [c["label"] for c in task["checklist"]] == ["Download CVs", "Shortlist five"]

    mine = client.get("/api/employer/tasks/my-tasks", headers=member["headers"]).json()
    assert [t["id"] for t in mine] == [task["id"]]

    def move(status, reason=None):
        return client.put(
            f"/api/employer/tasks/{task['id']}/status",
            json={"status": status, "reason": reason},
            headers=member["headers"],
        )

    # pending -> completed is not allowed
    assert move("completed").status_code == 400
    assert move("in_progress").json()["status"] == "in_progress"
    # same status is a no-op
    assert move("in_progress").status_code == 200
    # returning needs a reason
    assert move("returned").status_code == 400
    returned = move("returned", "Waiting on the job description").json()
    assert returned["return_reason"] == "Waiting on the job description"
    assert move("in_progress").status_code == 200
    done = move("completed").json()
    assert done["status"] == "completed"
    assert done["completed_at"] is not None
    # completed is terminal
    assert move("in_progress").status_code == 400
    assert move("pending").status_code == 400

    stats = client.get("/api/management/overview/stats", headers=manager["headers"]).json()
    assert stats["completed_this_week"] == 1
    assert stats["active_tasks"] == 0
    assert stats["team_members"] == 1


def test_checklist_and_notes(client, employer, manager):
    member = _recruiter(client, employer, [])
    task = client.post("/api/management/tasks", json={
        "title": "Update job board", "assigned_to_id": member["id"], "checklist": ["Check listings"],
    }, headers=manager["headers"]).json()

    response = client.put(f"/api/employer/tasks/{task['id']}/checklist", json={
        "checklist": [{"label": "Check listings", "done": True}, {"label": "Close expired", "done": False}],
    }, headers=member["headers"])
    assert response.json()["checklist"] == [
        {"label": "Check listings", "done": True},
        {"label": "Close expired", "done": False},
    ]

    response = client.put(f"/api/employer/tasks/{task['id']}/notes", json={"notes": "Halfway"}, headers=member["headers"])
    assert response.json()["notes"] == "Halfway"

    # Someone else's task
    assert client.put(
        f"/api/employer/tasks/{task['id']}/notes", json={"notes": "x"}, headers=employer["headers"]
    ).status_code == 404


def test_manager_task_admin(client, employer, manager, jobseeker):
    member = _recruiter(client, employer, [])

    response = client.post("/api/management/tasks", json={
        "title": "Wrong assignee", "assigned_to_id": jobseeker["id"],
    }, headers=manager["headers"])
    assert response.status_code == 400

    task = client.post("/api/management/tasks", json={
        "title": "Draft report", "assigned_to_id": member["id"],
    }, headers=manager["headers"]).json()

    updated = client.put(
        f"/api/management/tasks/{task['id']}", json={"priority": "urgent", "title": "Final report"},
        headers=manager["headers"]
    ).json()
    assert updated["priority"] == "urgent"
    assert updated["title"] == "Final report"

    listed = client.get("/api/management/tasks", params={"assigned_to_id": member["id"]}, headers=manager["headers"])
    assert [t["id"] for t in listed.json()] == [task["id"]]

    assert client.delete(f"/api/management/tasks/{task['id']}", headers=manager["headers"]).status_code == 200
    assert client.delete(f"/api/management/tasks/{task['id']}", headers=manager["headers"]).status_code == 404

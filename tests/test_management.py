from tests.conftest import JOB_PAYLOAD, PASSWORD, login
from tmv_platform.core import auth


def _pending_job(client, employer, title="Site Manager"):
    response = client.post("/api/employer/jobs", json={**JOB_PAYLOAD, "title": title}, headers=employer["headers"])
    return response.json()["job"]["id"]


def _add_recruiter(client, employer, email="recruiter@acme.co.za", permissions=None):
    response = client.post("/api/employer/users", json={
        "email": email,
        "password": PASSWORD,
        "first_name": "Naledi",
        "last_name": "Khumalo",
        "role": "hr_recruitment",
        "permissions": permissions if permissions is not None else ["view_applications"],
    }, headers=employer["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_manager_job_is_auto_approved(client, manager):
    response = client.post("/api/management/jobs/create", json=JOB_PAYLOAD, headers=manager["headers"])
    assert response.status_code == 201
    body = response.json()
    assert body["auto_approved"] is True
    assert body["job"]["approval_status"] == "approved"
    assert client.get("/api/jobs").json()["total"] == 1


def test_non_manager_rejected(client, employer):
    assert client.get("/api/management/jobs/pending-approval", headers=employer["headers"]).status_code == 403


def test_pending_queue_oldest_first(client, employer, manager):
    first = _pending_job(client, employer, "First Posting")
    second = _pending_job(client, employer, "Second Posting")
    queue = client.get("/api/management/jobs/pending-approval", headers=manager["headers"]).json()
    assert [j["id"] for j in queue] == [first, second]


def test_reject_job_and_history(client, employer, manager):
    job_id = _pending_job(client, employer)
    response = client.put(f"/api/management/jobs/{job_id}/reject", json={}, headers=manager["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["approval_status"] == "rejected"
    assert body["status"] == "closed"
    assert body["rejection_reason"] == "Rejected by manager"

    # Rejecting twice changes nothing
    again = client.put(
        f"/api/management/jobs/{job_id}/reject", json={"reason": "Other"}, headers=manager["headers"]
    ).json()
    assert again["rejection_reason"] == "Rejected by manager"

    history = client.get("/api/management/jobs/review-history", headers=manager["headers"]).json()
    assert [j["id"] for j in history] == [job_id]


def test_approve_unknown_job(client, manager):
    assert client.put("/api/management/jobs/999/approve", headers=manager["headers"]).status_code == 404


def test_job_tabs(client, employer, manager):
    _pending_job(client, employer)
    client.post("/api/management/jobs/create", json=JOB_PAYLOAD, headers=manager["headers"])

    tabs = {
        tab: client.get("/api/management/jobs/all", params={"tab": tab}, headers=manager["headers"]).json()
        for tab in ("active", "pending", "drafts", "team")
    }
    assert tabs["active"]["count"] == 1
    assert tabs["pending"]["count"] == 1
    assert tabs["drafts"]["count"] == 0
    # Created by the company owner (role employer)
    assert tabs["team"]["count"] == 1


def test_withdraw_and_restore(client, approved_job, manager):
    job_id = approved_job["id"]
    response = client.post(
        f"/api/management/jobs/{job_id}/withdraw", json={"reason": "Budget freeze"}, headers=manager["headers"]
    )
    assert response.status_code == 200
    draft_id = response.json()["id"]
    assert client.get("/api/jobs").json()["total"] == 0

    drafts = client.get("/api/management/jobs/all", params={"tab": "drafts"}, headers=manager["headers"]).json()
    assert drafts["count"] == 1
    draft = drafts["jobs"][0]
    assert draft["withdrawn_reason"] == "Budget freeze"
    assert draft["requirements"] == ["BArch degree", "AutoCAD"]

    # Already closed
    assert client.post(f"/api/management/jobs/{job_id}/withdraw", json={}, headers=manager["headers"]).status_code == 400

    response = client.post(f"/api/management/drafts/{draft_id}/restore", headers=manager["headers"])
    assert response.status_code == 201
    restored = response.json()["job"]
    assert restored["id"] != job_id
    assert restored["approval_status"] == "approved"
    assert restored["employer_id"] == approved_job["employer_id"]
    assert restored["requirements"] == ["BArch degree", "AutoCAD"]

    drafts = client.get("/api/management/jobs/all", params={"tab": "drafts"}, headers=manager["headers"]).json()
    assert drafts["count"] == 0
    assert client.post(f"/api/management/drafts/{draft_id}/restore", headers=manager["headers"]).status_code == 404


def test_manager_edit_keeps_approval(client, approved_job, manager):
    response = client.put(
        f"/api/management/jobs/{approved_job['id']}/edit", json={"title": "Lead Architect"}, headers=manager["headers"]
    )
    assert response.json()["title"] == "Lead Architect"
    assert response.json()["approval_status"] == "approved"


def test_messages_broadcast_and_read(client, employer, manager):
    recruiter = _add_recruiter(client, employer)
    _add_recruiter(client, employer, email="second@acme.co.za")

    response = client.post("/api/management/messages/send", json={
        "recipient_id": "all",
        "subject": "Weekly targets",
        "content": "Please review the pending CVs",
        "priority": "high",
    }, headers=manager["headers"])
    assert response.status_code == 201
    message_id = response.json()["id"]

    recruiter_headers = login(client, recruiter["email"])

    inbox = client.get("/api/employer/messages/unread", headers=recruiter_headers).json()
    assert [m["subject"] for m in inbox] == ["Weekly targets"]
    assert inbox[0]["sender_name"] == "Sipho Dlamini"

    assert client.put(f"/api/employer/messages/{message_id}/read", headers=recruiter_headers).status_code == 200
    assert client.get("/api/employer/messages/unread", headers=recruiter_headers).json() == []

    sent = client.get("/api/management/messages", headers=manager["headers"]).json()
    assert sent[0]["total_recipients"] == 2
    assert sent[0]["read_count"] == 1


def test_direct_message_needs_team_member(client, manager, jobseeker):
    response = client.post("/api/management/messages/send", json={
        "recipient_id": jobseeker["id"], "subject": "Hi", "content": "Hello",
    }, headers=manager["headers"])
    assert response.status_code == 400


def test_suspend_blocks_login(client, employer, manager):
    recruiter = _add_recruiter(client, employer)

    response = client.post(
        f"/api/management/team/{recruiter['id']}/suspend", json={"reason": "Audit"}, headers=manager["headers"]
    )
    assert response.status_code == 200

    response = client.post("/api/auth/login", json={"email": recruiter["email"], "password": PASSWORD})
    assert response.status_code == 403
    assert response.json()["detail"] == "Account suspended"

    team = client.get("/api/management/team/hr-users", headers=manager["headers"]).json()
    assert {m["id"]: m["team_status"] for m in team}[recruiter["id"]] == "suspended"

    client.post(f"/api/management/team/{recruiter['id']}/activate", json={}, headers=manager["headers"])
    response = client.post("/api/auth/login", json={"email": recruiter["email"], "password": PASSWORD})
    assert response.status_code == 200


def test_cannot_change_own_team_status(client, manager):
    response = client.post(f"/api/management/team/{manager['id']}/freeze", json={}, headers=manager["headers"])
    assert response.status_code == 400


def test_schedule_interview(client, approved_job, jobseeker, manager):
    application_id = client.post(
        f"/api/jobs/{approved_job['id']}/apply", json={}, headers=jobseeker["headers"]
    ).json()["id"]

    response = client.post("/api/management/interviews/schedule", json={
        "application_id": application_id,
        "interview_date": "2030-03-01T10:00:00",
        "location": "Head office",
    }, headers=manager["headers"])
    assert response.status_code == 201

    mine = client.get("/api/jobseeker/applications", headers=jobseeker["headers"]).json()
    assert mine[0]["status"] == "invited"
    assert mine[0]["interview_date"].startswith("2030-03-01T10:00")


def test_cannot_schedule_interview_after_offer(client, approved_job, jobseeker, employer, manager):
    application_id = client.post(
        f"/api/jobs/{approved_job['id']}/apply", json={}, headers=jobseeker["headers"]
    ).json()["id"]
    response = client.put(
        f"/api/employer/applications/{application_id}/status", json={"status": "offered"}, headers=employer["headers"]
    )
    assert response.json()["status"] == "offered"

    response = client.post("/api/management/interviews/schedule", json={
        "application_id": application_id,
        "interview_date": "2030-03-01T10:00:00",
    }, headers=manager["headers"])
    assert response.status_code == 400

    mine = client.get("/api/jobseeker/applications", headers=jobseeker["headers"]).json()
    assert mine[0]["status"] == "offered"


def test_management_actions_check_permissions(client, approved_job, manager, monkeypatch):
    monkeypatch.setattr(auth, "load_permissions", lambda db, user_id, role: ["pull_reports"])
    headers = manager["headers"]

    assert client.put(f"/api/management/jobs/{approved_job['id']}/approve", headers=headers).status_code == 403
    assert client.post(f"/api/management/jobs/{approved_job['id']}/withdraw", json={}, headers=headers).status_code == 403
    response = client.post("/api/management/tasks", json={"title": "Screen CVs", "assigned_to_id": manager["id"]},
                           headers=headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Missing permission: assign_tasks"
    assert client.get("/api/management/overview/stats", headers=headers).status_code == 403

    assert client.get("/api/management/reports/applications", headers=headers).status_code == 200
    response = client.get("/api/management/reports/applications", params={"format": "csv"}, headers=headers)
    assert response.status_code == 403


def test_overview_and_report(client, approved_job, jobseeker, manager, employer):
    client.post(f"/api/jobs/{approved_job['id']}/apply", json={}, headers=jobseeker["headers"])
    _pending_job(client, employer)

    stats = client.get("/api/management/overview/stats", headers=manager["headers"]).json()
    assert stats["pending_approvals"] == 1
    assert stats["active_tasks"] == 0

    report = client.get("/api/management/reports/applications", headers=manager["headers"]).json()
    assert len(report) == 1
    assert report[0]["applicant_name"] == "Thandi Mokoena"

    response = client.get(
        "/api/management/reports/applications", params={"format": "csv"}, headers=manager["headers"]
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("id,job_id,job_title")
    assert len(lines) == 2


def test_promote_requires_admin(client, employer, manager, admin):
    assert client.post(
        "/api/management/promote", json={"email": employer["email"]}, headers=manager["headers"]
    ).status_code == 403

    response = client.post("/api/management/promote", json={"email": employer["email"]}, headers=admin["headers"])
    assert response.status_code == 200
    me = client.get("/api/auth/me", headers=employer["headers"]).json()
    assert me["role"] == "management"


def test_promote_jobseeker_fails(client, admin, jobseeker):
    response = client.post("/api/management/promote", json={"email": jobseeker["email"]}, headers=admin["headers"])
    assert response.status_code == 400

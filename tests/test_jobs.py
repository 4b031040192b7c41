from tests.conftest import JOB_PAYLOAD


def test_employer_job_waits_for_approval(client, employer):
    response = client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=employer["headers"])
    assert response.status_code == 201
    body = response.json()
    assert body["auto_approved"] is False
    assert body["job"]["approval_status"] == "pending"
    assert body["job"]["requirements"] == ["BArch degree", "AutoCAD"]
    assert body["job"]["company_name"] == "Acme Holdings"

    # Not public until approved
    assert client.get("/api/jobs").json()["total"] == 0
    assert client.get(f"/api/jobs/{body['job']['id']}").status_code == 404


def test_salary_range_validated(client, employer):
    payload = {**JOB_PAYLOAD, "salary_min": 30000, "salary_max": 10000}
    response = client.post("/api/employer/jobs", json=payload, headers=employer["headers"])
    assert response.status_code == 422


def test_approval_publishes_job(client, approved_job):
    assert approved_job["approval_status"] == "approved"
    assert approved_job["status"] == "active"
    assert approved_job["reviewed_at"] is not None

    listing = client.get("/api/jobs").json()
    assert listing["total"] == 1
    assert listing["jobs"][0]["statistics"]["total_applicants"] == 0


def test_public_filters(client, approved_job):
    assert client.get("/api/jobs", params={"search": "architect"}).json()["total"] == 1
    assert client.get("/api/jobs", params={"search": "plumber"}).json()["total"] == 0
    assert client.get("/api/jobs", params={"location": "cape"}).json()["total"] == 1
    assert client.get("/api/jobs", params={"department": "Architecture"}).json()["total"] == 1
    assert client.get("/api/jobs", params={"department": "Finance & Accounts"}).json()["total"] == 0
    assert client.get("/api/jobs", params={"min_salary": 50000}).json()["total"] == 0


def test_job_detail_counts_views(client, approved_job):
    job_id = approved_job["id"]
    client.get(f"/api/jobs/{job_id}")
    response = client.get(f"/api/jobs/{job_id}")
    assert response.json()["view_count"] == 2


def test_departments_vocabulary(client):
    departments = client.get("/api/jobs/departments").json()
    assert "Information Technology (IT)" in departments
    assert len(departments) == 8


def test_apply_once(client, approved_job, jobseeker):
    job_id = approved_job["id"]
    response = client.post(f"/api/jobs/{job_id}/apply", json={"cover_letter": "Hello"}, headers=jobseeker["headers"])
    assert response.status_code == 201

    response = client.post(f"/api/jobs/{job_id}/apply", json={}, headers=jobseeker["headers"])
    assert response.status_code == 400

    job = client.get(f"/api/jobs/{job_id}").json()
    assert job["statistics"]["total_applicants"] == 1
    assert job["statistics"]["pending"] == 1


def test_only_jobseekers_apply(client, approved_job, employer):
    response = client.post(f"/api/jobs/{approved_job['id']}/apply", json={}, headers=employer["headers"])
    assert response.status_code == 403


def test_content_edit_resets_approval(client, approved_job, employer):
    job_id = approved_job["id"]
    response = client.put(
        f"/api/employer/jobs/{job_id}",
        json={"title": "Senior Architect", "requirements": ["Pr.Arch registration"]},
        headers=employer["headers"],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["approval_status"] == "pending"
    assert body["requirements"] == ["Pr.Arch registration"]
    assert client.get("/api/jobs").json()["total"] == 0


def test_status_only_edit_keeps_approval(client, approved_job, employer):
    response = client.put(
        f"/api/employer/jobs/{approved_job['id']}", json={"status": "closed"}, headers=employer["headers"]
    )
    assert response.json()["approval_status"] == "approved"
    assert response.json()["status"] == "closed"


def test_other_company_cannot_see_job(client, approved_job, register_employer):
    other = register_employer(email="boss@other.co.za", company_name="Other Ltd")
    assert client.get(f"/api/employer/jobs/{approved_job['id']}", headers=other["headers"]).status_code == 404
    assert client.delete(f"/api/employer/jobs/{approved_job['id']}", headers=other["headers"]).status_code == 404


def test_employer_stats(client, approved_job, employer, jobseeker):
    client.post(f"/api/jobs/{approved_job['id']}/apply", json={}, headers=jobseeker["headers"])
    client.post("/api/employer/jobs", json={**JOB_PAYLOAD, "title": "Draughtsman"}, headers=employer["headers"])

    stats = client.get("/api/employer/stats", headers=employer["headers"]).json()
    assert stats["total_jobs"] == 2
    assert stats["active_jobs"] == 1
    assert stats["pending_approval"] == 1
    assert stats["total_applications"] == 1
    assert stats["applications_by_status"]["pending"] == 1


def test_delete_job(client, approved_job, employer):
    response = client.delete(f"/api/employer/jobs/{approved_job['id']}", headers=employer["headers"])
    assert response.status_code == 200
    assert client.get("/api/employer/jobs", headers=employer["headers"]).json() == []

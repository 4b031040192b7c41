import io
import os

from sqlalchemy.exc import IntegrityError

from tests.conftest import JOB_PAYLOAD
from tmv_platform.services import document_service


def test_profile_update_syncs_account_name(client, jobseeker):
    response = client.put("/api/jobseeker/profile", json={
        "first_name": "Thandiwe",
        "current_location": "Durban",
        "years_of_experience": 4,
    }, headers=jobseeker["headers"])
    assert response.status_code == 200
    body = response.json()
    assert body["first_name"] == "Thandiwe"
    assert body["last_name"] == "Mokoena"
    assert body["current_location"] == "Durban"

    me = client.get("/api/auth/me", headers=jobseeker["headers"]).json()
    assert me["first_name"] == "Thandiwe"


def test_work_experience_replaced(client, jobseeker):
    history = [
        {"company_name": "BuildCo", "job_title": "Intern", "start_date": "2019-01-01", "end_date": "2019-12-31"},
        {"company_name": "DesignHub", "job_title": "Junior Designer", "start_date": "2020-02-01",
         "end_date": "2021-01-01", "current_job": True},
    ]
    response = client.put("/api/jobseeker/profile/work-experience", json=history, headers=jobseeker["headers"])
    assert response.status_code == 200
    items = response.json()
    assert [i["company_name"] for i in items] == ["DesignHub", "BuildCo"]
    # A current job has no end date
    assert items[0]["end_date"] is None

    response = client.put("/api/jobseeker/profile/work-experience", json=history[:1], headers=jobseeker["headers"])
    assert len(response.json()) == 1


def test_work_experience_dates_checked(client, jobseeker):
    response = client.put("/api/jobseeker/profile/work-experience", json=[
        {"company_name": "BuildCo", "job_title": "Intern", "start_date": "2020-01-01", "end_date": "2019-01-01"},
    ], headers=jobseeker["headers"])
    assert response.status_code == 400


def test_references(client, jobseeker):
    refs = [{"name": "Mr Naidoo", "contact": "082 555 0101", "relationship": "Manager"}]
    assert client.put("/api/jobseeker/profile/references", json=refs, headers=jobseeker["headers"]).status_code == 200
    profile = client.get("/api/jobseeker/profile", headers=jobseeker["headers"]).json()
    assert profile["references"] == refs


def test_skills_add_update_remove(client, jobseeker, register_jobseeker):
    client.post("/api/jobseeker/skills", json={"skill_name": "AutoCAD"}, headers=jobseeker["headers"])
    skills = client.post(
        "/api/jobseeker/skills", json={"skill_name": "autocad", "proficiency_level": "Expert"},
        headers=jobseeker["headers"]
    ).json()
    assert len(skills) == 1
    assert skills[0]["proficiency_level"] == "Expert"

    # Shared catalog entry
    other = register_jobseeker(email="other@example.com", id_no="8805055009081")
    other_skills = client.post("/api/jobseeker/skills", json={"skill_name": "AutoCAD"}, headers=other["headers"]).json()
    assert other_skills[0]["skill_id"] == skills[0]["skill_id"]

    skill_id = skills[0]["skill_id"]
    assert client.delete(f"/api/jobseeker/skills/{skill_id}", headers=jobseeker["headers"]).status_code == 200
    assert client.delete(f"/api/jobseeker/skills/{skill_id}", headers=jobseeker["headers"]).status_code == 404


def test_new_cv_replaces_old(client, jobseeker):
    def upload(name, content):
        return client.post(
            "/api/jobseeker/documents",
            data={"document_type": "cv"},
            files={"file": (name, io.BytesIO(content), "text/plain")},
            headers=jobseeker["headers"],
        )

    first = upload("cv_v1.txt", b"first version")
    assert first.status_code == 201
    second = upload("cv_v2.txt", b"second version")
    assert second.status_code == 201

    documents = client.get("/api/jobseeker/documents", headers=jobseeker["headers"]).json()
    assert [d["original_filename"] for d in documents] == ["cv_v2.txt"]


def test_upload_rejects_bad_files(client, jobseeker):
    response = client.post(
        "/api/jobseeker/documents",
        data={"document_type": "cv"},
        files={"file": ("cv.exe", io.BytesIO(b"MZ"), "application/octet-stream")},
        headers=jobseeker["headers"],
    )
    assert response.status_code == 400

    response = client.post(
        "/api/jobseeker/documents",
        data={"document_type": "id_copy"},
        files={"file": ("id.png", io.BytesIO(b""), "image/png")},
        headers=jobseeker["headers"],
    )
    assert response.status_code == 400


def test_delete_document_removes_file(client, jobseeker):
    doc = client.post(
        "/api/jobseeker/documents",
        data={"document_type": "qualification"},
        files={"file": ("degree.pdf", io.BytesIO(b"%PDF-1.4 not really"), "application/pdf")},
        headers=jobseeker["headers"],
    ).json()

    upload_root = os.environ["UPLOAD_DIR"]
    stored = [f for _, _, files in os.walk(os.path.join(upload_root, "jobseeker", str(jobseeker["id"]))) for f in files]
    assert len(stored) == 1

    assert client.delete(f"/api/jobseeker/documents/{doc['id']}", headers=jobseeker["headers"]).status_code == 200
    stored = [f for _, _, files in os.walk(os.path.join(upload_root, "jobseeker", str(jobseeker["id"]))) for f in files]
    assert stored == []


def test_wishlist(client, approved_job, jobseeker):
    job_id = approved_job["id"]
    assert client.post("/api/jobseeker/wishlist", json={"job_id": job_id}, headers=jobseeker["headers"]).status_code == 201
    # Saving twice is fine
    assert client.post("/api/jobseeker/wishlist", json={"job_id": job_id}, headers=jobseeker["headers"]).status_code == 201

    saved = client.get("/api/jobseeker/wishlist", headers=jobseeker["headers"]).json()
    assert [j["id"] for j in saved] == [job_id]

    client.delete(f"/api/jobseeker/wishlist/{job_id}", headers=jobseeker["headers"])
    assert client.get("/api/jobseeker/wishlist", headers=jobseeker["headers"]).json() == []

    assert client.post("/api/jobseeker/wishlist", json={"job_id": 999}, headers=jobseeker["headers"]).status_code == 404


def test_wishlist_only_holds_published_jobs(client, approved_job, employer, manager, jobseeker):
    pending = client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=employer["headers"]).json()["job"]
    response = client.post("/api/jobseeker/wishlist", json={"job_id": pending["id"]}, headers=jobseeker["headers"])
    assert response.status_code == 404

    client.post("/api/jobseeker/wishlist", json={"job_id": approved_job["id"]}, headers=jobseeker["headers"])
    client.post(f"/api/management/jobs/{approved_job['id']}/withdraw", json={}, headers=manager["headers"])
    assert client.get("/api/jobseeker/wishlist", headers=jobseeker["headers"]).json() == []


def test_failed_document_insert_leaves_no_file(client, jobseeker, monkeypatch):
    def insert_fails(*args, **kwargs):
        raise IntegrityError("INSERT INTO documents", {}, Exception("constraint failed"))

    monkeypatch.setattr(document_service, "insert_row", insert_fails)
    response = client.post(
        "/api/jobseeker/documents",
        data={"document_type": "cv"},
        files={"file": ("cv.txt", io.BytesIO(b"ten years of site supervision"), "text/plain")},
        headers=jobseeker["headers"],
    )
    assert response.status_code == 409

    stored = [f for _, _, files in os.walk(os.environ["UPLOAD_DIR"]) for f in files]
    assert stored == []

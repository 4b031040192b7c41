import io


def _apply(client, job_id, seeker):
    response = client.post(f"/api/jobs/{job_id}/apply", json={"cover_letter": "Keen"}, headers=seeker["headers"])
    assert response.status_code == 201
    return response.json()["id"]


def test_employer_sees_applications_with_profile(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)

    listing = client.get("/api/employer/applications", headers=employer["headers"]).json()
    assert [a["id"] for a in listing] == [application_id]
    assert listing[0]["applicant_name"] == "Thandi Mokoena"

    detail = client.get(f"/api/employer/applications/{application_id}", headers=employer["headers"]).json()
    assert detail["applicant"]["id_passport_no"] == "9001015009087"
    assert detail["cover_letter"] == "Keen"


def test_shortlist_then_reject_is_idempotent(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)

    shortlisted = client.post(f"/api/employer/applications/{application_id}/shortlist", headers=employer["headers"])
    assert shortlisted.json()["status"] == "shortlisted"

    first = client.post(
        f"/api/employer/applications/{application_id}/reject",
        json={"reason": "Position filled"},
        headers=employer["headers"],
    ).json()
    second = client.post(
        f"/api/employer/applications/{application_id}/reject",
        json={"reason": "Changed reason"},
        headers=employer["headers"],
    ).json()
    assert first["status"] == second["status"] == "rejected"
    assert second["rejection_reason"] == "Position filled"
    assert second["updated_at"] == first["updated_at"]

    job = client.get(f"/api/jobs/{approved_job['id']}").json()
    assert job["statistics"]["rejected"] == 1
    assert job["statistics"]["shortlisted"] == 0


def test_invite_sets_interview(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)
    response = client.post(f"/api/employer/applications/{application_id}/invite", json={
        "invitation_details": "Bring your portfolio",
        "interview_date": "2030-05-04T09:30:00",
    }, headers=employer["headers"])
    body = response.json()
    assert body["status"] == "invited"
    assert body["invitation_details"] == "Bring your portfolio"
    assert body["invited_at"] is not None


def test_status_update_with_notes(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)
    response = client.put(
        f"/api/employer/applications/{application_id}/status",
        json={"status": "reviewed", "notes": "Strong portfolio"},
        headers=employer["headers"],
    )
    assert response.json()["status"] == "reviewed"
    assert response.json()["notes"] == "Strong portfolio"

    response = client.put(
        f"/api/employer/applications/{application_id}/status",
        json={"status": "withdrawn"},
        headers=employer["headers"],
    )
    assert response.status_code == 400


def test_withdraw_application(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)
    response = client.post(f"/api/jobseeker/applications/{application_id}/withdraw", headers=jobseeker["headers"])
    assert response.status_code == 200

    mine = client.get("/api/jobseeker/applications", headers=jobseeker["headers"]).json()
    assert mine[0]["status"] == "withdrawn"

    response = client.post(f"/api/employer/applications/{application_id}/shortlist", headers=employer["headers"])
    assert response.status_code == 400


def test_cannot_withdraw_rejected(client, approved_job, jobseeker, employer):
    application_id = _apply(client, approved_job["id"], jobseeker)
    client.post(f"/api/employer/applications/{application_id}/reject", json={}, headers=employer["headers"])
    response = client.post(f"/api/jobseeker/applications/{application_id}/withdraw", headers=jobseeker["headers"])
    assert response.status_code == 400


def test_other_company_cannot_touch_application(client, approved_job, jobseeker, register_employer):
    application_id = _apply(client, approved_job["id"], jobseeker)
    other = register_employer(email="boss@other.co.za", company_name="Other Ltd")
    response = client.post(f"/api/employer/applications/{application_id}/shortlist", headers=other["headers"])
    assert response.status_code == 404


def test_candidate_search_by_skill_and_cv(client, approved_job, jobseeker, employer):
    _apply(client, approved_job["id"], jobseeker)
    client.post("/api/jobseeker/skills", json={"skill_name": "Revit", "proficiency_level": "Advanced"},
                headers=jobseeker["headers"])
    client.post(
        "/api/jobseeker/documents",
        data={"document_type": "cv"},
        files={"file": ("cv.txt", io.BytesIO(b"Experienced in sustainable housing design"), "text/plain")},
        headers=jobseeker["headers"],
    )

    by_skill = client.get("/api/employer/candidates", params={"skill": "revit"}, headers=employer["headers"]).json()
    assert [c["user_id"] for c in by_skill] == [jobseeker["id"]]
    assert by_skill[0]["skills"] == ["Revit"]

    by_cv = client.get("/api/employer/candidates", params={"q": "sustainable"}, headers=employer["headers"]).json()
    assert len(by_cv) == 1

    nothing = client.get("/api/employer/candidates", params={"q": "welding"}, headers=employer["headers"]).json()
    assert nothing == []

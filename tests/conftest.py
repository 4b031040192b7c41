"""
Shared fixtures: an in-memory SQLite database rebuilt for every test and
helpers that register and sign in users of each role.
"""

import os
import shutil
import tempfile

# Settings are read once at import time, so the environment comes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="tmv-uploads-")
os.environ["DEBUG"] = "true"
os.environ["YOCO_SECRET_KEY"] = "sk_test_123"
os.environ["YOCO_WEBHOOK_SECRET"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from tmv_platform.main import app
from tmv_platform.core.permissions import ADMIN
from tmv_platform.db.database import engine, get_db_session
from tmv_platform.db.schema import metadata
from tmv_platform.services.account_service import create_user, promote_to_management

PASSWORD = "Password123"


@pytest.fixture
def client():
    metadata.drop_all(engine)
    metadata.create_all(engine)
    shutil.rmtree(os.environ["UPLOAD_DIR"], ignore_errors=True)
    os.makedirs(os.environ["UPLOAD_DIR"])
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client, email: str, password: str = PASSWORD) -> dict:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _account(user_id: int, email: str, headers: dict) -> dict:
    return {"id": user_id, "email": email, "headers": headers}


@pytest.fixture
def register_jobseeker(client):
    def _register(email="seeker@example.com", id_no="9001015009087", first_name="Thandi", last_name="Mokoena"):
        response = client.post("/api/auth/register/jobseeker", json={
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
            "id_passport_no": id_no,
        })
        assert response.status_code == 201, response.text
        return _account(response.json()["id"], email, login(client, email))
    return _register


@pytest.fixture
def register_employer(client):
    def _register(email="owner@acme.co.za", company_name="Acme Holdings"):
        response = client.post("/api/auth/register/employer", json={
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "first_name": "Sipho",
            "last_name": "Dlamini",
            "company_name": company_name,
        })
        assert response.status_code == 201, response.text
        return _account(response.json()["id"], email, login(client, email))
    return _register


@pytest.fixture
def register_client(client):
    def _register(email="client@example.com"):
        response = client.post("/api/auth/register/client", json={
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "first_name": "Lerato",
            "last_name": "Nkosi",
        })
        assert response.status_code == 201, response.text
        return _account(response.json()["id"], email, login(client, email))
    return _register


@pytest.fixture
def jobseeker(register_jobseeker):
    return register_jobseeker()


@pytest.fixture
def employer(register_employer):
    return register_employer()


@pytest.fixture
def business_client(register_client):
    return register_client()


@pytest.fixture
def manager(client, register_employer):
    account = register_employer(email="manager@tmv.co.za", company_name="TMV Business Solutions")
    with get_db_session() as db:
        promote_to_management(db, account["email"])
    return _account(account["id"], account["email"], login(client, account["email"]))


@pytest.fixture
def admin(client):
    email = "admin@tmv.co.za"
    with get_db_session() as db:
        user_id = create_user(db, email, PASSWORD, "Ada", "Admin", None, ADMIN)
    return _account(user_id, email, login(client, email))


JOB_PAYLOAD = {
    "title": "Junior Architect",
    "job_type": "full-time",
    "department": "Architecture",
    "location": "Cape Town",
    "description": "Assist with residential designs",
    "requirements": ["BArch degree", "AutoCAD"],
    "salary_min": 18000,
    "salary_max": 25000,
}


@pytest.fixture
def approved_job(client, employer, manager):
    """A job posted by the employer and approved by management."""
    response = client.post("/api/employer/jobs", json=JOB_PAYLOAD, headers=employer["headers"])
    assert response.status_code == 201, response.text
    job_id = response.json()["job"]["id"]
    response = client.put(f"/api/management/jobs/{job_id}/approve", headers=manager["headers"])
    assert response.status_code == 200, response.text
    return response.json()

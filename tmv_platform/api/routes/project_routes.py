"""
Architecture Project Routes

GET /architecture/projects - My projects
POST /architecture/projects - Create project (with special features)
GET /architecture/projects/{project_id} - Project with features and documents
PUT /architecture/projects/{project_id} - Update project
DELETE /architecture/projects/{project_id} - Delete project
POST /architecture/projects/{project_id}/features - Append features
POST /architecture/projects/{project_id}/documents - Upload site photo / plan / approval
POST /architecture/projects/{project_id}/submit - Submit a draft project
"""

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from sqlalchemy import text
from sqlalchemy.orm import Session
from typing import List, Optional

from tmv_platform.db.database import get_db_session, fetch_all, fetch_all_in, insert_row, utcnow
from tmv_platform.core.auth import get_current_client
from tmv_platform.services.document_service import save_document, delete_documents_of, DOCUMENT_COLUMNS
from tmv_platform.utils.file_upload import remove_stored_file
from tmv_platform.schemas.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, FeaturesAdd, ProjectDocumentType,
    DocumentResponse, MessageResponse
)
from tmv_platform.utils.logger import get_logger

router = APIRouter(prefix="/architecture", tags=["Architecture Projects"])
logger = get_logger(__name__)

PROJECT_OWNER = "project"

# document_type -> key in the grouped documents object
DOCUMENT_GROUPS = {
    "site_photo": "site_photos",
    "existing_plan": "existing_plans",
    "approval": "approvals",
}

PROJECT_FIELDS = (
    "project_type", "project_name", "location", "size", "budget",
    "timeline", "floors", "rooms", "additional_notes",
)


def load_projects(db: Session, client_id: int, project_id: int = None) -> List[dict]:
    sql = "SELECT * FROM architecture_projects WHERE client_id = :cid"
    params = {"cid": client_id}
    if project_id is not None:
        sql += " AND id = :id"
        params["id"] = project_id
    rows = fetch_all(db, sql + " ORDER BY created_at DESC, id DESC", params)
    ids = [r["id"] for r in rows]

    features = {}
    for f in fetch_all_in(
        db, "SELECT project_id, feature_name FROM project_features WHERE project_id IN :ids ORDER BY id", ids
    ):
        features.setdefault(f["project_id"], []).append(f["feature_name"])

    documents = {}
    for d in fetch_all_in(
        db,
        f"SELECT {DOCUMENT_COLUMNS} FROM documents WHERE owner_type = :owner_type AND owner_id IN :ids ORDER BY uploaded_at, id",
        ids,
        {"owner_type": PROJECT_OWNER}
    ):
        group = documents.setdefault(d["owner_id"], {key: [] for key in DOCUMENT_GROUPS.values()})
        group[DOCUMENT_GROUPS[d["document_type"]]].append(d)

    for r in rows:
        r["special_features"] = features.get(r["id"], [])
        r["documents"] = documents.get(r["id"], {})
    return rows


def _own_project(db: Session, project_id: int, client: dict) -> dict:
    rows = load_projects(db, client["user_id"], project_id)
    if not rows:
        raise HTTPException(status_code=404, detail="Project not found")
    return rows[0]


def _add_features(db: Session, project_id: int, features: List[str]) -> None:
    for feature in features:
        if feature and feature.strip():
            db.execute(
                text("INSERT INTO project_features (project_id, feature_name) VALUES (:pid, :name)"),
                {"pid": project_id, "name": feature.strip()}
            )


@router.get("/projects", response_model=List[ProjectResponse])
async def list_projects(client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return load_projects(db, client["user_id"])


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(data: ProjectCreate, client: dict = Depends(get_current_client)):
    """Create the project and its special features in one transaction."""
    now = utcnow()
    with get_db_session() as db:
        project_id = insert_row(
            db,
            """
            INSERT INTO architecture_projects (client_id, project_type, project_name, location, size, budget,
                timeline, floors, rooms, additional_notes, status, payment_amount, payment_status,
                created_at, updated_at)
            VALUES (:client_id, :project_type, :project_name, :location, :size, :budget,
                :timeline, :floors, :rooms, :additional_notes, 'draft', :payment_amount, 'pending',
                :now, :now)
            """,
            {
                "client_id": client["user_id"],
                "payment_amount": data.payment_amount,
                "now": now,
                **{f: getattr(data, f) for f in PROJECT_FIELDS},
            }
        )
        _add_features(db, project_id, data.special_features)
        project = _own_project(db, project_id, client)

    logger.info(f"Architecture project {project_id} created by user {client['user_id']}")
    return project


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        return _own_project(db, project_id, client)


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(project_id: int, data: ProjectUpdate, client: dict = Depends(get_current_client)):
    changes = data.model_dump(exclude_unset=True)
    features: Optional[List[str]] = changes.pop("special_features", None)

    with get_db_session() as db:
        _own_project(db, project_id, client)
        if changes:
            changes["updated_at"] = utcnow()
            set_clause = ", ".join(f"{k} = :{k}" for k in changes)
            db.execute(
                text(f"UPDATE architecture_projects SET {set_clause} WHERE id = :id"),
                {**changes, "id": project_id}
            )
        if features is not None:
            db.execute(text("DELETE FROM project_features WHERE project_id = :id"), {"id": project_id})
            _add_features(db, project_id, features)
        return _own_project(db, project_id, client)


@router.delete("/projects/{project_id}", response_model=MessageResponse)
async def delete_project(project_id: int, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        _own_project(db, project_id, client)
        paths = delete_documents_of(db, PROJECT_OWNER, project_id)
        db.execute(text("DELETE FROM architecture_projects WHERE id = :id"), {"id": project_id})

    for path in paths:
        remove_stored_file(path)
    return MessageResponse(message="Project deleted")


@router.post("/projects/{project_id}/features", response_model=ProjectResponse)
async def add_features(project_id: int, data: FeaturesAdd, client: dict = Depends(get_current_client)):
    with get_db_session() as db:
        _own_project(db, project_id, client)
        _add_features(db, project_id, data.features)
        return _own_project(db, project_id, client)


@router.post("/projects/{project_id}/documents", response_model=DocumentResponse, status_code=201)
async def upload_project_document(
    project_id: int,
    document_type: ProjectDocumentType = Form(...),
    file: UploadFile = File(...),
    client: dict = Depends(get_current_client)
):
    with get_db_session() as db:
        _own_project(db, project_id, client)
        return await save_document(db, file, document_type.value, PROJECT_OWNER, project_id, client["user_id"])


@router.post("/projects/{project_id}/submit", response_model=ProjectResponse)
async def submit_project(project_id: int, client: dict = Depends(get_current_client)):
    """Move a draft project to submitted."""
    with get_db_session() as db:
        project = _own_project(db, project_id, client)
        if project["status"] != "draft":
            raise HTTPException(status_code=400, detail=f"Project is already {project['status']}")
        db.execute(
            text("UPDATE architecture_projects SET status = 'submitted', updated_at = :now WHERE id = :id"),
            {"now": utcnow(), "id": project_id}
        )
        project = _own_project(db, project_id, client)

    logger.info(f"Architecture project {project_id} submitted")
    return project

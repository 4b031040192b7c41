"""
Task Service

Tasks are assigned by management to employer-side team members. Status
moves are a small state machine:

    pending      -> in_progress | returned
    in_progress  -> completed | returned
    returned     -> in_progress
    completed    (terminal)

Setting the status a task already has is a no-op.
"""

from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from tmv_platform.db.database import fetch_all, fetch_all_in, utcnow

ALLOWED_TRANSITIONS = {
    "pending": {"in_progress", "returned"},
    "in_progress": {"completed", "returned"},
    "returned": {"in_progress"},
    "completed": set(),
}

TASK_SELECT = """
    SELECT t.*, u.first_name AS assignee_first_name, u.last_name AS assignee_last_name
    FROM tasks t
    JOIN users u ON u.id = t.assigned_to_id
"""


def check_transition(current: str, new: str) -> bool:
    """
    Validate a status move. Returns False for a same-status no-op.

    Raises:
        HTTPException 400 when the move is not allowed
    """
    if current == new:
        return False
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise HTTPException(status_code=400, detail=f"Cannot move task from '{current}' to '{new}'")
    return True


def load_tasks(db: Session, where: str = "", params: dict = None) -> List[dict]:
    sql = TASK_SELECT
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY t.created_at DESC, t.id DESC"
    rows = fetch_all(db, sql, params)

    checklist = {}
    for item in fetch_all_in(
        db,
        "SELECT task_id, label, done FROM task_checklist_items WHERE task_id IN :ids ORDER BY task_id, position",
        [r["id"] for r in rows]
    ):
        checklist.setdefault(item["task_id"], []).append({"label": item["label"], "done": bool(item["done"])})

    tasks = []
    for r in rows:
        task = dict(r)
        task["assigned_to_name"] = f"{r['assignee_first_name']} {r['assignee_last_name']}".strip()
        task["checklist"] = checklist.get(r["id"], [])
        tasks.append(task)
    return tasks


def load_task(db: Session, task_id: int) -> Optional[dict]:
    tasks = load_tasks(db, "t.id = :id", {"id": task_id})
    return tasks[0] if tasks else None


def replace_checklist(db: Session, task_id: int, items: List[dict]) -> None:
    db.execute(text("DELETE FROM task_checklist_items WHERE task_id = :id"), {"id": task_id})
    for position, item in enumerate(items):
        db.execute(
            text("""
                INSERT INTO task_checklist_items (task_id, position, label, done)
                VALUES (:task_id, :position, :label, :done)
            """),
            {"task_id": task_id, "position": position, "label": item["label"], "done": bool(item.get("done"))}
        )


def apply_status(db: Session, task: dict, new_status: str, reason: str = None) -> bool:
    """Move a task to new_status; returns False when nothing changed."""
    if not check_transition(task["status"], new_status):
        return False
    if new_status == "returned" and not reason:
        raise HTTPException(status_code=400, detail="A reason is required to return a task")

    now = utcnow()
    db.execute(
        text("""
            UPDATE tasks
            SET status = :status,
                return_reason = :return_reason,
                completed_at = :completed_at,
                updated_at = :now
            WHERE id = :id
        """),
        {
            "id": task["id"],
            "status": new_status,
            "return_reason": reason if new_status == "returned" else task.get("return_reason"),
            "completed_at": now if new_status == "completed" else None,
            "now": now,
        }
    )
    return True

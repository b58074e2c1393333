"""
Tasks blueprint, scoped to the caller's account like api.projects.

A task may name one of the caller's projects or none (project_id null).
Nothing here creates or assumes a default project.
"""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func, or_

from models.db_storage import DBStorage
from models.schemas.task import TaskCreateSchema, TaskOutSchema, TaskUpdateSchema
from models.task import Task
from utils.decorators import jwt_required
from utils.exceptions import NotFoundError
from .listing import page_meta, parse_bool_arg, parse_pagination, parse_sort
from .projects import owned_project

bp = Blueprint("tasks", __name__)

create_schema = TaskCreateSchema()
update_schema = TaskUpdateSchema()
out_schema = TaskOutSchema()
out_list_schema = TaskOutSchema(many=True)

SORT_COLUMNS = {
    "title": Task.title,
    "due_date": Task.due_date,
    "priority": Task.priority,
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
}


def _storage() -> DBStorage:
    return current_app.extensions["storage"]


def owned_task(session, task_id: str) -> Task:
    task = (
        session.query(Task)
        .filter(Task.id == task_id, Task.account_id == g.current_account_id)
        .first()
    )
    if task is None:
        raise NotFoundError("task not found")
    return task


@bp.post("/tasks")
@jwt_required()
def create_task():
    """
    Create a task
    ---
    tags: [Tasks]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title: { type: string, maxLength: 255 }
            description: { type: string }
            due_date: { type: string, format: date-time, example: "2025-08-01T15:04:05Z" }
            priority: { type: integer, enum: [1, 2, 3], default: 2, description: "1 low, 2 medium, 3 high" }
            project_id: { type: string, description: "one of your projects; omit for none" }
    responses:
      201: { description: Created }
      401: { description: Unauthorized }
      404: { description: project_id is not one of your projects }
      422: { description: Validation error }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    with _storage().session_scope() as session:
        if data["project_id"] is not None:
            owned_project(session, data["project_id"])
        task = Task(
            account_id=g.current_account_id,
            project_id=data["project_id"],
            title=data["title"],
            description=data.get("description"),
            due_date=data.get("due_date"),
            priority=data["priority"],
            completed=False,
        )
        session.add(task)
        session.flush()
        body = out_schema.dump(task)
    return jsonify({"data": body}), 201


@bp.get("/tasks")
@jwt_required()
def list_tasks():
    """
    List your tasks with pagination, sorting, filtering and search
    ---
    tags: [Tasks]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: sort
        type: string
        default: "-created_at"
        description: "Comma-separated; prefix with '-' for desc. Allowed: title, due_date, priority, created_at, updated_at"
      - in: query
        name: project_id
        type: string
      - in: query
        name: completed
        type: boolean
      - in: query
        name: q
        type: string
        description: "Case-insensitive substring search on title and description"
    responses:
      200: { description: OK }
      400: { description: Bad query parameter }
      401: { description: Unauthorized }
    """
    page, limit = parse_pagination()
    order_by = parse_sort(SORT_COLUMNS, default="-created_at")
    completed = parse_bool_arg("completed")
    project_id = request.args.get("project_id")
    q = request.args.get("q")

    with _storage().session_scope() as session:
        query = session.query(Task).filter(Task.account_id == g.current_account_id)
        if project_id:
            query = query.filter(Task.project_id == project_id)
        if completed is not None:
            query = query.filter(Task.completed == completed)
        if q:
            qnorm = f"%{q.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(Task.title).like(qnorm),
                    func.lower(Task.description).like(qnorm),
                )
            )

        total = query.count()
        rows = query.order_by(*order_by, Task.id).offset((page - 1) * limit).limit(limit).all()
        data = out_list_schema.dump(rows)

    return jsonify({"data": data, "meta": page_meta(page, limit, total)})


@bp.get("/tasks/<task_id>")
@jwt_required()
def get_task(task_id: str):
    """
    Get one of your tasks
    ---
    tags: [Tasks]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      404: { description: Not found }
    """
    with _storage().session_scope() as session:
        body = out_schema.dump(owned_task(session, task_id))
    return jsonify({"data": body})


@bp.patch("/tasks/<task_id>")
@jwt_required()
def update_task(task_id: str):
    """
    Update a task (partial)
    ---
    tags: [Tasks]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            title: { type: string, maxLength: 255 }
            description: { type: string }
            due_date: { type: string, format: date-time }
            priority: { type: integer, enum: [1, 2, 3] }
            completed: { type: boolean }
            project_id: { type: string, description: "null detaches the task from its project" }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      404: { description: Task (or target project) not found }
      422: { description: Validation error }
    """
    data = update_schema.load(request.get_json(silent=True) or {})
    with _storage().session_scope() as session:
        task = owned_task(session, task_id)
        if data.get("project_id") is not None:
            owned_project(session, data["project_id"])
        for field in ("title", "description", "due_date", "priority", "completed", "project_id"):
            if field in data:
                setattr(task, field, data[field])
        session.flush()
        body = out_schema.dump(task)
    return jsonify({"data": body})


@bp.delete("/tasks/<task_id>")
@jwt_required()
def delete_task(task_id: str):
    """
    Delete a task
    ---
    tags: [Tasks]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: task_id
        type: string
        required: true
    responses:
      204: { description: Deleted }
      401: { description: Unauthorized }
      404: { description: Not found }
    """
    with _storage().session_scope() as session:
        session.delete(owned_task(session, task_id))
    return ("", 204)

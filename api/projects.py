"""
Projects blueprint. Every query is scoped to the caller's account: another
account's project answers 404, exactly like one that does not exist.
"""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.project import Project
from models.schemas.project import ProjectCreateSchema, ProjectOutSchema, ProjectUpdateSchema
from models.task import Task
from utils.decorators import jwt_required
from utils.exceptions import ConflictError, NotFoundError
from .listing import page_meta, parse_pagination, parse_sort

bp = Blueprint("projects", __name__)

create_schema = ProjectCreateSchema()
update_schema = ProjectUpdateSchema()
out_schema = ProjectOutSchema()
out_list_schema = ProjectOutSchema(many=True)

SORT_COLUMNS = {
    "name": Project.name,
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
}

DUPLICATE_NAME = "project with this name already exists"


def _storage() -> DBStorage:
    return current_app.extensions["storage"]


def owned_project(session, project_id: str) -> Project:
    project = (
        session.query(Project)
        .filter(Project.id == project_id, Project.account_id == g.current_account_id)
        .first()
    )
    if project is None:
        raise NotFoundError("project not found")
    return project


def name_taken(session, name: str, exclude_id: str | None = None) -> bool:
    q = session.query(Project).filter(
        Project.account_id == g.current_account_id,
        func.lower(Project.name) == name.lower(),
    )
    if exclude_id:
        q = q.filter(Project.id != exclude_id)
    return session.query(q.exists()).scalar()


def open_task_counts(session, project_ids) -> dict:
    if not project_ids:
        return {}
    rows = (
        session.query(Task.project_id, func.count(Task.id))
        .filter(
            Task.account_id == g.current_account_id,
            Task.project_id.in_(project_ids),
            Task.completed == False,  # noqa: E712
        )
        .group_by(Task.project_id)
        .all()
    )
    return dict(rows)


def _dump(session, project: Project) -> dict:
    data = out_schema.dump(project)
    data["task_count"] = open_task_counts(session, [project.id]).get(project.id, 0)
    return data


@bp.post("/projects")
@jwt_required()
def create_project():
    """
    Create a project
    ---
    tags: [Projects]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name]
          properties:
            name: { type: string, maxLength: 100 }
            description: { type: string }
    responses:
      201: { description: Created }
      401: { description: Unauthorized }
      409: { description: Name already used by another of your projects }
      422: { description: Validation error }
    """
    data = create_schema.load(request.get_json(silent=True) or {})
    try:
        with _storage().session_scope() as session:
            if name_taken(session, data["name"]):
                raise ConflictError(DUPLICATE_NAME)
            project = Project(
                account_id=g.current_account_id,
                name=data["name"],
                description=data.get("description"),
            )
            session.add(project)
            session.flush()
            body = _dump(session, project)
    except IntegrityError as exc:
        # a concurrent create won the unique index
        raise ConflictError(DUPLICATE_NAME) from exc
    return jsonify({"data": body}), 201


@bp.get("/projects")
@jwt_required()
def list_projects():
    """
    List your projects, each with its count of open tasks
    ---
    tags: [Projects]
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
        description: "Comma-separated; prefix with '-' for desc. Allowed: name, created_at, updated_at"
      - in: query
        name: q
        type: string
        description: "Case-insensitive substring search on name"
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    page, limit = parse_pagination()
    order_by = parse_sort(SORT_COLUMNS, default="-created_at")
    q = request.args.get("q")

    with _storage().session_scope() as session:
        query = session.query(Project).filter(Project.account_id == g.current_account_id)
        if q:
            query = query.filter(func.lower(Project.name).like(f"%{q.strip().lower()}%"))

        total = query.count()
        rows = query.order_by(*order_by, Project.id).offset((page - 1) * limit).limit(limit).all()
        counts = open_task_counts(session, [p.id for p in rows])
        data = out_list_schema.dump(rows)
        for item in data:
            item["task_count"] = counts.get(item["id"], 0)

    return jsonify({"data": data, "meta": page_meta(page, limit, total)})


@bp.get("/projects/<project_id>")
@jwt_required()
def get_project(project_id: str):
    """
    Get one of your projects
    ---
    tags: [Projects]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: project_id
        type: string
        required: true
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      404: { description: Not found }
    """
    with _storage().session_scope() as session:
        body = _dump(session, owned_project(session, project_id))
    return jsonify({"data": body})


@bp.patch("/projects/<project_id>")
@jwt_required()
def update_project(project_id: str):
    """
    Rename or re-describe a project (partial)
    ---
    tags: [Projects]
    security:
      - Bearer: []
    consumes: [application/json]
    parameters:
      - in: path
        name: project_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string, maxLength: 100 }
            description: { type: string }
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      404: { description: Not found }
      409: { description: Name already used by another of your projects }
      422: { description: Validation error }
    """
    data = update_schema.load(request.get_json(silent=True) or {})
    try:
        with _storage().session_scope() as session:
            project = owned_project(session, project_id)
            if "name" in data:
                if name_taken(session, data["name"], exclude_id=project.id):
                    raise ConflictError(DUPLICATE_NAME)
                project.name = data["name"]
            if "description" in data:
                project.description = data["description"]
            session.flush()
            body = _dump(session, project)
    except IntegrityError as exc:
        raise ConflictError(DUPLICATE_NAME) from exc
    return jsonify({"data": body})


@bp.delete("/projects/<project_id>")
@jwt_required()
def delete_project(project_id: str):
    """
    Delete a project. Its tasks are kept and no longer belong to a project.
    ---
    tags: [Projects]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: project_id
        type: string
        required: true
    responses:
      204: { description: Deleted }
      401: { description: Unauthorized }
      404: { description: Not found }
    """
    with _storage().session_scope() as session:
        project = owned_project(session, project_id)
        (
            session.query(Task)
            .filter(Task.project_id == project.id, Task.account_id == g.current_account_id)
            .update({Task.project_id: None}, synchronize_session=False)
        )
        session.delete(project)
    return ("", 204)

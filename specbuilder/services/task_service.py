"""Project task checklist: add, edit, toggle, delete and reorder.

``order_index`` is kept dense (0..n-1) after every insert, delete and
reorder.  Reorder rewrites every index in the caller's transaction.
"""

from __future__ import annotations

import logging

from specbuilder.core.exceptions import NotFoundError, ValidationError
from specbuilder.models import db
from specbuilder.models.history import write_change
from specbuilder.models.project import Project
from specbuilder.models.task import Task

logger = logging.getLogger(__name__)


def _ordered(project_id: int) -> list[Task]:
    return (
        Task.query.filter_by(project_id=project_id)
        .order_by(Task.order_index.asc(), Task.id.asc())
        .all()
    )


def _reindex(tasks: list[Task]) -> None:
    for index, task in enumerate(tasks):
        if task.order_index != index:
            task.order_index = index
    db.session.flush()


def get_task(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if not task:
        raise NotFoundError("Task", task_id)
    return task


def list_tasks(project: Project) -> dict:
    tasks = _ordered(project.id)
    done = sum(1 for t in tasks if t.completed)
    return {
        "items": [t.to_dict() for t in tasks],
        "total": len(tasks),
        "completed": done,
        "progress": round(done * 100 / len(tasks)) if tasks else 0,
    }


def add_task(project: Project, description: str) -> Task:
    description = (description or "").strip()
    if not description:
        raise ValidationError("description is required", details={"description": "required"})
    current = (
        db.session.query(db.func.max(Task.order_index))
        .filter(Task.project_id == project.id)
        .scalar()
    )
    task = Task(
        project_id=project.id,
        description=description,
        order_index=0 if current is None else current + 1,
        completed=False,
    )
    db.session.add(task)
    db.session.flush()
    return task


def update_task(task_id: int, data: dict) -> Task:
    task = get_task(task_id)
    if "description" in data:
        description = str(data.get("description") or "").strip()
        if not description:
            raise ValidationError("description cannot be empty", details={"description": "required"})
        task.description = description
    if "completed" in data:
        if not isinstance(data["completed"], bool):
            raise ValidationError("completed must be a boolean", details={"completed": "bool"})
        task.completed = data["completed"]
    db.session.flush()
    return task


def delete_task(task_id: int, *, actor_id: str | None = None) -> None:
    task = get_task(task_id)
    project_id = task.project_id
    description = task.description
    db.session.delete(task)
    db.session.flush()
    _reindex(_ordered(project_id))
    write_change(
        project_id=project_id,
        change_type="delete",
        description=f"Deleted task: {description}",
        changed_by=actor_id,
        snapshot={"task_id": task_id, "description": description},
    )


def _is_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def reorder_tasks(
    project: Project,
    *,
    task_ids: list | None = None,
    task_id: int | None = None,
    to_index: int | None = None,
) -> list[Task]:
    """Reorder by full id list, or move one task to ``to_index``.

    A full list must name every task of the project exactly once.  A move
    to an out-of-range index clamps to the ends.
    """
    tasks = _ordered(project.id)
    by_id = {t.id: t for t in tasks}

    if task_ids is not None:
        if (
            not isinstance(task_ids, list)
            or not all(_is_id(tid) for tid in task_ids)
            or len(task_ids) != len(tasks)
            or set(task_ids) != set(by_id)
        ):
            raise ValidationError(
                "task_ids must list every task of the project exactly once",
                details={"expected": sorted(by_id)},
            )
        new_order = [by_id[tid] for tid in task_ids]
    else:
        if not _is_id(task_id) or task_id not in by_id:
            raise NotFoundError("Task", task_id)
        if not isinstance(to_index, int) or isinstance(to_index, bool):
            raise ValidationError("to_index must be an integer", details={"to_index": "int"})
        moving = by_id[task_id]
        new_order = [t for t in tasks if t.id != task_id]
        new_order.insert(max(0, min(to_index, len(new_order))), moving)

    _reindex(new_order)
    logger.info("Project %s: %d tasks reordered", project.id, len(new_order))
    return new_order

"""
BI Spec Builder
Tests: task checklist service.
"""

import pytest

from specbuilder.core.exceptions import NotFoundError, ValidationError
from specbuilder.models import db as _db
from specbuilder.models.history import ChangeHistory
from specbuilder.services import task_service


@pytest.fixture()
def tasks(project):
    created = [task_service.add_task(project, d) for d in ("Collect data", "Build model", "Review")]
    _db.session.commit()
    return created


def _order(project):
    return [t["description"] for t in task_service.list_tasks(project)["items"]]


def test_add_appends_dense_index(project, tasks):
    assert [t.order_index for t in tasks] == [0, 1, 2]


def test_add_requires_description(project):
    with pytest.raises(ValidationError):
        task_service.add_task(project, "   ")


def test_list_reports_progress(project, tasks):
    task_service.update_task(tasks[0].id, {"completed": True})
    summary = task_service.list_tasks(project)
    assert summary["total"] == 3
    assert summary["completed"] == 1
    assert summary["progress"] == 33


def test_update_task_validation(tasks):
    with pytest.raises(ValidationError):
        task_service.update_task(tasks[0].id, {"completed": "yes"})
    with pytest.raises(ValidationError):
        task_service.update_task(tasks[0].id, {"description": ""})
    with pytest.raises(NotFoundError):
        task_service.update_task(999, {"completed": True})


def test_delete_reindexes_and_records_history(project, tasks):
    task_service.delete_task(tasks[0].id, actor_id="u-1")
    _db.session.commit()
    summary = task_service.list_tasks(project)
    assert [(t["description"], t["order_index"]) for t in summary["items"]] == [
        ("Build model", 0), ("Review", 1),
    ]
    entry = ChangeHistory.query.filter_by(project_id=project.id).one()
    assert entry.change_type == "delete"
    assert entry.change_description == "Deleted task: Collect data"


class TestReorder:
    def test_full_list(self, project, tasks):
        ids = [tasks[2].id, tasks[0].id, tasks[1].id]
        task_service.reorder_tasks(project, task_ids=ids)
        _db.session.commit()
        items = task_service.list_tasks(project)["items"]
        assert [t["id"] for t in items] == ids
        assert [t["order_index"] for t in items] == [0, 1, 2]

    def test_move_one(self, project, tasks):
        task_service.reorder_tasks(project, task_id=tasks[0].id, to_index=2)
        assert _order(project) == ["Build model", "Review", "Collect data"]

    def test_move_clamps_out_of_range(self, project, tasks):
        task_service.reorder_tasks(project, task_id=tasks[2].id, to_index=-5)
        assert _order(project) == ["Review", "Collect data", "Build model"]
        task_service.reorder_tasks(project, task_id=tasks[2].id, to_index=99)
        assert _order(project) == ["Collect data", "Build model", "Review"]

    def test_incomplete_list_rejected(self, project, tasks):
        with pytest.raises(ValidationError):
            task_service.reorder_tasks(project, task_ids=[tasks[0].id, tasks[1].id])
        assert _order(project) == ["Collect data", "Build model", "Review"]

    def test_unknown_task(self, project, tasks):
        with pytest.raises(NotFoundError):
            task_service.reorder_tasks(project, task_id=999, to_index=0)

    @pytest.mark.parametrize("bad", [[{"id": 1}], [[1]], ["1"], [True]])
    def test_non_integer_ids_rejected(self, project, tasks, bad):
        with pytest.raises(ValidationError):
            task_service.reorder_tasks(project, task_ids=bad + [t.id for t in tasks[1:]])

    def test_unhashable_move_id(self, project, tasks):
        with pytest.raises(NotFoundError):
            task_service.reorder_tasks(project, task_id={"id": 1}, to_index=0)

"""
BI Spec Builder
Tests: Persistence Gateway.

Covers:
    - insert / get_one / list / update / delete per table
    - upsert of 1:1 requirement documents
    - replace_all for tabs and global filters
    - database failures surface as PersistenceError after rollback
"""

import pytest
from sqlalchemy.exc import OperationalError

from specbuilder.core.exceptions import PersistenceError
from specbuilder.models import db as _db
from specbuilder.models.requirements import DashboardTab, Filter, FunctionalRequirements
from specbuilder.services.persistence import TableGateway, gateway


def test_table_lookup_by_name():
    assert gateway.table("dashboard_tabs").model is DashboardTab
    assert gateway.projects.table_name == "projects"


def test_unknown_table_raises_key_error():
    with pytest.raises(KeyError):
        gateway.table("widgets")


def test_insert_get_one_and_list(project):
    tasks = gateway.table("tasks")
    tasks.insert(project_id=project.id, description="Second", order_index=1)
    tasks.insert(project_id=project.id, description="First", order_index=0)

    assert tasks.get_one(project_id=project.id, order_index=1).description == "Second"
    assert [t.description for t in tasks.list(order_by="order_index", project_id=project.id)] == [
        "First", "Second",
    ]
    assert [t.description for t in tasks.list(order_by="-order_index", project_id=project.id)] == [
        "Second", "First",
    ]


def test_update_returns_row_count(project):
    assert gateway.projects.update({"id": project.id}, {"audience": "Execs"}) == 1
    assert gateway.projects.update({"id": 9999}, {"audience": "Execs"}) == 0
    assert project.audience == "Execs"


def test_delete_requires_filters():
    with pytest.raises(ValueError):
        gateway.table("tasks").delete()


def test_upsert_inserts_then_updates(project):
    fr_table = gateway.table("functional_requirements")
    first = fr_table.upsert({"project_id": project.id}, {"metrics": ["Revenue"]})
    second = fr_table.upsert({"project_id": project.id}, {"data_sources": ["SQL"]})

    assert first.id == second.id
    assert FunctionalRequirements.query.filter_by(project_id=project.id).count() == 1
    assert second.metrics == ["Revenue"]
    assert second.data_sources == ["SQL"]


def test_replace_all_swaps_rows(project):
    tabs = gateway.table("dashboard_tabs")
    tabs.replace_all({"project_id": project.id}, [{"name": "A", "order_index": 0}])
    tabs.replace_all(
        {"project_id": project.id},
        [{"name": "B", "order_index": 0}, {"name": "C", "order_index": 1}],
    )
    _db.session.commit()

    names = [t.name for t in tabs.list(order_by="order_index", project_id=project.id)]
    assert names == ["B", "C"]


def test_replace_global_filters_keeps_tab_scoped(project):
    tab = gateway.table("dashboard_tabs").insert(project_id=project.id, name="Detail", order_index=0)
    gateway.table("filters").insert(project_id=project.id, tab_id=tab.id, name="Store")
    gateway.table("filters").insert(project_id=project.id, name="Old Global")

    gateway.table("filters").replace_all(
        {"project_id": project.id, "tab_id": None}, [{"name": "Region"}],
    )
    _db.session.commit()

    rows = Filter.query.filter_by(project_id=project.id).order_by(Filter.id).all()
    assert sorted(f.name for f in rows) == ["Region", "Store"]


def test_write_failure_raises_persistence_error(project, monkeypatch):
    def _boom():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(_db.session, "flush", _boom)
    with pytest.raises(PersistenceError) as exc_info:
        TableGateway(DashboardTab).insert(project_id=project.id, name="X", order_index=0)
    assert exc_info.value.operation == "insert"
    assert exc_info.value.table == "dashboard_tabs"

"""
BI Spec Builder
Tests: Change Interpreter.

Covers:
    - edit-command detection
    - keyword priority and the "<keyword> to <value>" pass
    - value extraction rules
    - exactly one field written per message
"""

import pytest

from specbuilder.core.exceptions import PersistenceError
from specbuilder.models import db as _db
from specbuilder.models.project import Project
from specbuilder.models.requirements import DashboardTab, DesignRequirements, FunctionalRequirements
from specbuilder.services import change_interpreter as ci
from specbuilder.services import requirements_service as reqs


@pytest.mark.parametrize("text, expected", [
    ("change name to Ops", True),
    ("Update fonts", True),
    ("set the size to large", True),
    ("Please add a PDF export", False),
    ("changes are welcome", False),
])
def test_is_edit_command(text, expected):
    assert ci.is_edit_command(text) is expected


class TestSelection:
    def test_keyword_before_to_wins_over_earlier_entry(self):
        # "name" appears first in the table but "metrics" sits before " to "
        entry = ci.select_edit("change metrics to name counts, totals", "functional")
        assert entry.field == "metrics"

    def test_plain_mention_falls_back_to_table_order(self):
        entry = ci.select_edit("update the audience and description", "functional")
        assert entry.field == "description"

    def test_data_sources_keyword_variants(self):
        assert ci.select_edit("change data source to SQL", "functional").field == "data_sources"
        assert ci.select_edit("change datasources to SQL", "functional").field == "data_sources"

    def test_design_keywords(self):
        assert ci.select_edit("update colours to Red", "design").field == "color_palette"
        assert ci.select_edit("change color palette to Red", "design").field == "color_palette"
        assert ci.select_edit("change size to 800x600", "design").field == "dashboard_size"
        assert ci.select_edit("change logo to top right", "design").field == "logo"

    def test_no_keyword(self):
        assert ci.select_edit("change the vibe to happy", "functional") is None


class TestExtraction:
    def test_keyword_to_value(self):
        assert ci.extract_value("change metrics to Revenue, Profit", r"metrics?") == "Revenue, Profit"

    def test_leading_verb_without_to(self):
        assert ci.extract_value("update audience Finance team", r"audience") == "Finance team"

    def test_after_last_keyword(self):
        assert ci.extract_value("please set the name Ops Board", r"name") == "Ops Board"


class TestInterpret:
    def test_change_metrics_updates_metrics_only(self, project):
        reqs.save_functional(project.id, {"data_sources": ["SQL"], "metrics": ["Old"]})
        reqs.replace_tabs(project.id, ["Overview"])
        _db.session.commit()

        result = ci.interpret(project.id, "functional", "change metrics to Revenue, Profit")
        _db.session.commit()

        assert result.matched
        assert result.field == "metrics"
        assert result.data == {"metrics": ["Revenue", "Profit"]}
        assert result.message == (
            "Updated the metrics to: Revenue, Profit. " + ci.FUNCTIONAL_DONE_HINT
        )

        fr = FunctionalRequirements.query.filter_by(project_id=project.id).one()
        assert fr.metrics == ["Revenue", "Profit"]
        assert fr.data_sources == ["SQL"]
        assert [t.name for t in DashboardTab.query.filter_by(project_id=project.id)] == ["Overview"]
        assert _db.session.get(Project, project.id).name == "Sales Dashboard"

    def test_change_name(self, project):
        result = ci.interpret(project.id, "functional", "change name to Ops Board", actor_id="u-9")
        assert result.message.startswith('Updated the name to "Ops Board".')
        p = _db.session.get(Project, project.id)
        assert p.name == "Ops Board"
        assert p.updated_by == "u-9"

    def test_change_tabs_replaces_all(self, project):
        reqs.replace_tabs(project.id, ["A", "B"])
        ci.interpret(project.id, "functional", "change tabs to Summary, Detail, Appendix")
        tabs = DashboardTab.query.filter_by(project_id=project.id).order_by(DashboardTab.order_index)
        assert [t.name for t in tabs] == ["Summary", "Detail", "Appendix"]

    def test_change_logo(self, project):
        result = ci.interpret(project.id, "design", "change logo to top right")
        assert result.message == 'Updated the logo to "top right". ' + ci.DESIGN_DONE_HINT
        dr = DesignRequirements.query.filter_by(project_id=project.id).one()
        assert dr.logo_location == "top right"

    def test_unknown_field_writes_nothing(self, project):
        result = ci.interpret(project.id, "design", "change the mood to calm")
        assert not result.matched
        assert result.message.startswith("I'm not sure what you want to change.")
        assert "- dashboard size" in result.message
        assert DesignRequirements.query.filter_by(project_id=project.id).count() == 0

    def test_empty_value_is_unknown(self, project):
        result = ci.interpret(project.id, "functional", "change metrics")
        assert not result.matched

    def test_failed_write_reports_unsaved(self, project, monkeypatch):
        def _fail(*args, **kwargs):
            raise PersistenceError("upsert", "design_requirements")

        monkeypatch.setattr(reqs, "save_design", _fail)
        result = ci.interpret(project.id, "design", "change fonts to Inter")
        assert result.saved is False
        assert result.data == {"fonts": ["Inter"]}
        assert result.message.startswith("Updated the fonts to: Inter.")

    def test_unknown_flow(self, project):
        with pytest.raises(ValueError):
            ci.interpret(project.id, "tasks", "change x to y")


def test_change_result_defaults():
    first = ci.ChangeResult(message="a")
    second = ci.ChangeResult(message="b")
    first.data["name"] = "Ops"
    assert second.data == {}
    assert first.field is None
    assert not first.matched

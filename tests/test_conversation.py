"""
BI Spec Builder
Tests: Conversation Engine (functional + design flows).

Covers:
    - resume-at-first-gap for both flows
    - one persisted write per answered step
    - blank input, "none" filters, yes/no flags, logo parsing
    - additional / complete tail: done, help, free text, edit commands
    - a failed write still advances the conversation (saved=False)
"""

import pytest

from specbuilder.core.exceptions import PersistenceError, ValidationError
from specbuilder.models import db as _db
from specbuilder.models.project import Project
from specbuilder.models.requirements import (
    AdditionalRequirement,
    DashboardTab,
    DesignRequirements,
    Filter,
    FunctionalRequirements,
)
from specbuilder.services import conversation
from specbuilder.services import requirements_service as reqs
from specbuilder.services.conversation import ConversationState


def _walk(project_id, flow, answers):
    result = conversation.start(project_id, flow)
    for answer in answers:
        result = conversation.submit(project_id, result.state, answer, actor_id="u-1")
    _db.session.commit()
    return result


# ═════════════════════════════════════════════════════════════════════════════
# FUNCTIONAL FLOW
# ═════════════════════════════════════════════════════════════════════════════


class TestFunctionalStart:
    def test_new_project_has_name_so_starts_at_description(self, project):
        result = conversation.start(project.id, "functional")
        assert result.state.step == "description"
        assert result.state.data == {"name": "Sales Dashboard"}
        assert '"Sales Dashboard"' in result.message

    def test_unnamed_project_starts_with_welcome(self):
        p = Project(name="", status="draft")
        _db.session.add(p)
        _db.session.commit()
        result = conversation.start(p.id, "functional")
        assert result.state.step == "name"
        assert result.message == conversation.WELCOME

    def test_missing_project_yields_empty_state(self):
        result = conversation.start(4242, "functional")
        assert result.state.step == "name"
        assert result.state.data == {}

    def test_resume_at_first_gap(self, project):
        project.description = "Tracks revenue"
        reqs.save_functional(project.id, {"data_sources": ["SQL"]})
        _db.session.commit()

        result = conversation.start(project.id, "functional")
        assert result.state.step == "audience"
        assert result.message == conversation.FUNCTIONAL_PROMPTS["audience"]

    def test_flag_answered_false_is_not_a_gap(self, project):
        project.description = "d"
        project.audience = "a"
        project.has_appendix_tab = False
        project.has_metric_logic_tab = False
        reqs.save_functional(project.id, {"data_sources": ["SQL"], "metrics": ["Revenue"]})
        reqs.replace_tabs(project.id, ["Overview"])
        reqs.replace_global_filters(project.id, ["Region"])
        _db.session.commit()

        result = conversation.start(project.id, "functional")
        assert result.state.step == "additional"
        assert result.message.startswith("Welcome back!")

    def test_filters_answered_none_resume_as_gap(self, project):
        project.description = "d"
        project.audience = "a"
        reqs.save_functional(project.id, {"data_sources": ["SQL"], "metrics": ["Revenue"]})
        reqs.replace_tabs(project.id, ["Overview"])
        reqs.replace_global_filters(project.id, [])
        _db.session.commit()

        assert conversation.start(project.id, "functional").state.step == "filters"

    def test_unknown_flow_rejected(self, project):
        with pytest.raises(ValidationError):
            conversation.start(project.id, "branding")


class TestFunctionalSteps:
    def test_full_walk_persists_every_step(self, project):
        result = _walk(project.id, "functional", [
            "Revenue by region",          # description
            "Regional managers",          # audience
            "SQL Server, Snowflake",      # data_sources
            "Revenue, Profit ,, Growth",  # metrics
            "Overview, Detail",           # tabs
            "Region, Date",               # filters
            "yes",                        # appendix
            "no thanks",                  # metric_logic
        ])
        assert result.state.step == "additional"
        assert result.message.startswith("Great! I've captured the core functional requirements.")

        p = _db.session.get(Project, project.id)
        assert p.description == "Revenue by region"
        assert p.audience == "Regional managers"
        assert p.has_appendix_tab is True
        assert p.has_metric_logic_tab is False
        assert p.updated_by == "u-1"

        fr = FunctionalRequirements.query.filter_by(project_id=project.id).one()
        assert fr.data_sources == ["SQL Server", "Snowflake"]
        assert fr.metrics == ["Revenue", "Profit", "Growth"]

        tabs = DashboardTab.query.filter_by(project_id=project.id).order_by(DashboardTab.order_index)
        assert [(t.name, t.order_index) for t in tabs] == [("Overview", 0), ("Detail", 1)]
        assert sorted(f.name for f in Filter.query.filter_by(project_id=project.id)) == [
            "Date", "Region",
        ]

    def test_blank_input_repeats_prompt(self, project):
        start = conversation.start(project.id, "functional")
        result = conversation.submit(project.id, start.state, "   ")
        assert result.state.step == "description"
        assert result.message == start.message
        assert result.state.data == start.state.data

    def test_name_step_acknowledges_name(self):
        p = Project(name="", status="draft")
        _db.session.add(p)
        _db.session.commit()
        state = conversation.start(p.id, "functional").state
        result = conversation.submit(p.id, state, "  Ops Board ")
        assert result.state.step == "description"
        assert result.message.startswith('Great! "Ops Board" is a clear name.')
        assert _db.session.get(Project, p.id).name == "Ops Board"

    def test_none_filters_store_empty_list(self, project):
        state = ConversationState("functional", "filters", {"name": "Sales Dashboard"})
        result = conversation.submit(project.id, state, "None")
        assert result.state.data["filters"] == []
        assert result.state.step == "appendix"
        assert Filter.query.filter_by(project_id=project.id).count() == 0

    def test_single_tab_name_is_not_a_count(self, project):
        state = ConversationState("functional", "tabs", {})
        result = conversation.submit(project.id, state, "3")
        assert result.state.data["tabs"] == ["3"]
        assert [t.name for t in DashboardTab.query.filter_by(project_id=project.id)] == ["3"]

    def test_tabs_answer_replaces_previous_tabs(self, project):
        reqs.replace_tabs(project.id, ["Old A", "Old B", "Old C"])
        state = ConversationState("functional", "tabs", {})
        conversation.submit(project.id, state, "New")
        assert [t.name for t in DashboardTab.query.filter_by(project_id=project.id)] == ["New"]

    def test_failed_write_still_advances(self, project, monkeypatch):
        def _fail(*args, **kwargs):
            raise PersistenceError("upsert", "functional_requirements")

        monkeypatch.setattr(reqs, "save_functional", _fail)
        state = ConversationState("functional", "metrics", {})
        result = conversation.submit(project.id, state, "Revenue")
        assert result.saved is False
        assert result.state.step == "tabs"
        assert result.state.data["metrics"] == ["Revenue"]


class TestFunctionalTail:
    def test_done_completes(self, project):
        state = ConversationState("functional", "additional", {"name": "Sales Dashboard"})
        result = conversation.submit(project.id, state, "DONE")
        assert result.state.step == "complete"
        assert result.message.startswith('Perfect! I\'ve compiled all the functional requirements for "Sales Dashboard"')

    def test_done_at_complete_stays_complete(self, project):
        state = ConversationState("functional", "complete", {"name": "Sales Dashboard"})
        assert conversation.submit(project.id, state, "done").state.step == "complete"

    @pytest.mark.parametrize("text", ["help", "?"])
    def test_help(self, project, text):
        state = ConversationState("functional", "additional", {})
        result = conversation.submit(project.id, state, text)
        assert result.state.step == "additional"
        assert result.message.startswith(conversation.FUNCTIONAL_HELP)
        assert result.message.endswith('Type "done" when finished.')

    def test_free_text_appends_additional_requirement(self, project):
        state = ConversationState("functional", "additional", {})
        result = conversation.submit(project.id, state, "Must load in under 3 seconds")
        result = conversation.submit(project.id, result.state, "PDF export button")
        _db.session.commit()

        assert result.state.step == "additional"
        assert result.state.data["additional"] == ["Must load in under 3 seconds", "PDF export button"]
        rows = AdditionalRequirement.query.filter_by(project_id=project.id).order_by(AdditionalRequirement.id)
        assert [(r.category, r.content) for r in rows] == [
            ("functional", "Must load in under 3 seconds"),
            ("functional", "PDF export button"),
        ]

    def test_edit_command_routes_to_change_interpreter(self, project):
        state = ConversationState("functional", "complete", {"metrics": ["Old"]})
        result = conversation.submit(project.id, state, "change metrics to Revenue, Profit")
        assert result.state.step == "complete"
        assert result.state.data["metrics"] == ["Revenue", "Profit"]
        assert result.message.startswith("Updated the metrics to: Revenue, Profit.")
        assert AdditionalRequirement.query.filter_by(project_id=project.id).count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# DESIGN FLOW
# ═════════════════════════════════════════════════════════════════════════════


class TestDesignFlow:
    def test_empty_design_starts_at_size(self, project):
        result = conversation.start(project.id, "design")
        assert result.state.step == "dashboard_size"
        assert result.message == conversation.DESIGN_PROMPTS["dashboard_size"]

    def test_resume_skips_filled_fields(self, project):
        reqs.save_design(project.id, {"dashboard_size": "1920x1080", "fonts": ["Roboto"]})
        _db.session.commit()
        assert conversation.start(project.id, "design").state.step == "color_palette"

    def test_logo_location_counts_as_answered(self, project):
        reqs.save_design(project.id, {
            "dashboard_size": "1920x1080", "color_palette": ["Navy"], "fonts": ["Roboto"],
            "logo_location": "none",
        })
        _db.session.commit()
        assert conversation.start(project.id, "design").state.step == "additional"

    def test_walk_to_complete(self, project):
        result = _walk(project.id, "design", [
            "1920x1080",
            "Navy, White",
            "Roboto, Arial",
            "top left",
            "High-contrast mode",
        ])
        assert result.state.step == "complete"
        assert result.message == conversation.DESIGN_PROMPTS["complete"]

        dr = DesignRequirements.query.filter_by(project_id=project.id).one()
        assert dr.dashboard_size == "1920x1080"
        assert dr.color_palette == ["Navy", "White"]
        assert dr.fonts == ["Roboto", "Arial"]
        assert dr.logo_location == "top left"
        assert dr.additional_requirements == "High-contrast mode"
        notes = AdditionalRequirement.query.filter_by(project_id=project.id, category="design").all()
        assert [n.content for n in notes] == ["High-contrast mode"]

    def test_logo_none_clears_url(self, project):
        reqs.save_design(project.id, {"logo_url": "https://cdn.example.com/logo.png"})
        state = ConversationState("design", "logo", {})
        result = conversation.submit(project.id, state, "No logo please")
        dr = DesignRequirements.query.filter_by(project_id=project.id).one()
        assert dr.logo_url == ""
        assert dr.logo_location == "none"
        assert result.state.data["logo_location"] == "none"

    def test_note_at_complete_appends_line(self, project):
        reqs.save_design(project.id, {"additional_requirements": "High contrast"})
        state = ConversationState("design", "complete", {"additional_requirements": "High contrast"})
        result = conversation.submit(project.id, state, "Dark mode toggle")
        assert result.state.step == "complete"
        assert result.message.startswith("I have noted your update.")
        dr = DesignRequirements.query.filter_by(project_id=project.id).one()
        assert dr.additional_requirements == "High contrast\nDark mode toggle"

    def test_design_edit_command(self, project):
        state = ConversationState("design", "complete", {})
        result = conversation.submit(project.id, state, "change dashboard size to 1366x768")
        assert result.state.data["dashboard_size"] == "1366x768"
        dr = DesignRequirements.query.filter_by(project_id=project.id).one()
        assert dr.dashboard_size == "1366x768"

    def test_design_help(self, project):
        state = ConversationState("design", "additional", {})
        result = conversation.submit(project.id, state, "help")
        assert result.message == conversation.DESIGN_HELP
        assert result.state.step == "additional"


class TestStateValidation:
    def test_from_dict_round_trip(self):
        state = ConversationState.from_dict("design", {"step": "fonts", "data": {"fonts": ["A"]}})
        assert state.to_dict() == {"flow": "design", "step": "fonts", "data": {"fonts": ["A"]}}

    def test_from_dict_rejects_unknown_step(self):
        with pytest.raises(ValidationError):
            ConversationState.from_dict("design", {"step": "tabs", "data": {}})

    def test_from_dict_rejects_non_object_data(self):
        with pytest.raises(ValidationError):
            ConversationState.from_dict("functional", {"step": "name", "data": ["x"]})

    @pytest.mark.parametrize("key", ["additional", "metrics", "tabs", "color_palette"])
    def test_from_dict_rejects_string_for_list_field(self, key):
        with pytest.raises(ValidationError) as exc:
            ConversationState.from_dict("functional", {"step": "additional", "data": {key: "abc"}})
        assert key in exc.value.details

    def test_from_dict_accepts_missing_list_fields(self):
        state = ConversationState.from_dict("functional", {"step": "additional", "data": {"name": "Ops"}})
        assert state.data == {"name": "Ops"}

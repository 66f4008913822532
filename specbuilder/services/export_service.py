"""
Markdown export of a full dashboard specification.

``build_snapshot`` reads everything one project owns; ``render_markdown``
is a pure function of that snapshot plus the generation time, so two
renders of the same snapshot differ only in the footer line.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from specbuilder.models.project import Project
from specbuilder.models.requirements import AdditionalRequirement, Filter

MARKDOWN_MIMETYPE = "text/markdown; charset=utf-8"
NOT_SPECIFIED = "Not specified"


@dataclass
class ProjectSnapshot:
    project: dict
    functional: dict | None = None
    tabs: list[dict] = field(default_factory=list)
    global_filters: list[dict] = field(default_factory=list)
    additional_reqs: list[dict] = field(default_factory=list)
    design: dict | None = None
    tasks: list[dict] = field(default_factory=list)


def build_snapshot(project: Project) -> ProjectSnapshot:
    fr = project.functional_requirements
    dr = project.design_requirements
    return ProjectSnapshot(
        project=project.to_dict(),
        functional=fr.to_dict() if fr else None,
        tabs=[t.to_dict() for t in project.tabs],
        global_filters=[
            f.to_dict() for f in project.filters.filter(Filter.tab_id.is_(None)).order_by(Filter.id)
        ],
        additional_reqs=[
            a.to_dict()
            for a in project.additional_requirements.filter_by(category="functional")
            .order_by(AdditionalRequirement.id)
        ],
        design=dr.to_dict() if dr else None,
        tasks=[t.to_dict() for t in project.tasks],
    )


def export_filename(project: dict) -> str:
    """``Sales Dashboard`` v2 → ``Sales_Dashboard_v2.md``."""
    stem = re.sub(r"\s+", "_", project["name"])
    return f"{stem}_v{project['version_number']}.md"


def _bullets(title: str, items: list[str]) -> list[str]:
    return [f"### {title}", ""] + [f"- {item}" for item in items] + [""]


def _functional_section(snap: ProjectSnapshot) -> list[str]:
    project = snap.project
    fr = snap.functional or {}
    out: list[str] = []

    if fr.get("data_sources"):
        out += _bullets("Data Sources", fr["data_sources"])
    if fr.get("metrics"):
        out += _bullets("Metrics", fr["metrics"])
    if snap.tabs:
        out += _bullets("Dashboard Tabs", [t["name"] for t in snap.tabs])
    if snap.functional is not None:
        carry = "carry over" if fr.get("filter_carryover") else "do not carry over"
        out += ["### Filter Behavior", "", f"Filter selections {carry} from tab to tab.", ""]
    if snap.global_filters:
        out += ["### Global Filters", ""]
        for flt in snap.global_filters:
            out.append(f"**{flt['name']}**")
            if flt.get("data_source"):
                out.append(f"- Source: {flt['data_source']}")
            out.append(f"- Multi-select: {'Yes' if flt.get('multi_select') else 'No'}")
            if flt.get("default_value"):
                out.append(f"- Default: {flt['default_value']}")
            out.append("")
    if snap.additional_reqs:
        out += _bullets("Additional Requirements", [r["content"] for r in snap.additional_reqs])
    if project.get("has_appendix_tab"):
        out += [
            "### Appendix Tab", "",
            "An appendix tab will be included with additional information about the dashboard.", "",
        ]
    if project.get("has_metric_logic_tab"):
        out += [
            "### Metric Logic Tab", "",
            "A metric logic tab will be included explaining calculation logic for each metric.", "",
        ]
    return out or ["No functional requirements captured yet.", ""]


def _design_section(snap: ProjectSnapshot) -> list[str]:
    dr = snap.design or {}
    out: list[str] = []

    if dr.get("dashboard_size"):
        out += ["### Dashboard Size", "", dr["dashboard_size"], ""]
    if dr.get("color_palette"):
        out += _bullets("Color Palette", dr["color_palette"])
    if dr.get("fonts"):
        out += _bullets("Fonts", dr["fonts"])
    if dr.get("logo_url") or dr.get("logo_location"):
        out += ["### Logo", ""]
        if dr.get("logo_url"):
            out.append(f"- URL: {dr['logo_url']}")
        if dr.get("logo_location"):
            out.append(f"- Location: {dr['logo_location']}")
        out.append("")
    if dr.get("additional_requirements"):
        out += ["### Additional Design Requirements", "", dr["additional_requirements"], ""]
    return out or ["No design requirements captured yet.", ""]


def _tasks_section(snap: ProjectSnapshot) -> list[str]:
    if not snap.tasks:
        return ["No tasks have been added yet.", ""]
    ordered = sorted(snap.tasks, key=lambda t: (t["order_index"], t["id"]))
    lines = [
        f"{n}. [{'x' if t.get('completed') else ' '}] {t['description']}"
        for n, t in enumerate(ordered, 1)
    ]
    return lines + [""]


def render_markdown(snapshot: ProjectSnapshot, generated_at: datetime) -> str:
    """Render the specification document."""
    project = snapshot.project
    updated = (project.get("updated_at") or "")[:10] or NOT_SPECIFIED

    lines = [
        f"# {project['name']}",
        "",
        f"**Version:** {project['version_number']}",
        f"**Status:** {project['status'].upper()}",
        f"**Last Updated:** {updated}",
        "",
        "## Overview",
        "",
        f"**Description:** {project.get('description') or NOT_SPECIFIED}",
        "",
        f"**Audience:** {project.get('audience') or NOT_SPECIFIED}",
        "",
        "---",
        "",
        "## Functional Requirements",
        "",
    ]
    lines += _functional_section(snapshot)
    lines += ["---", "", "## Design Requirements", ""]
    lines += _design_section(snapshot)
    lines += ["---", "", "## Tasks", ""]
    lines += _tasks_section(snapshot)
    lines += [
        "---",
        "",
        f"*Generated by BI Spec Builder on {generated_at.strftime('%Y-%m-%d %H:%M UTC')}*",
    ]
    return "\n".join(lines) + "\n"

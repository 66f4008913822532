"""
BI Spec Builder
Change Interpreter: turns "change X to Y" chat messages into one field write.

Each flow owns an ordered dispatch table of ``FieldEdit`` entries.  The
order is the priority used when a message mentions several fields:

    functional: name, description, audience, data sources, metrics, tabs, filters
    design:     dashboard size, color palette / colors, fonts, logo

Selection runs in two passes:
    1. the first entry whose keyword sits directly before " to "
    2. otherwise the first entry whose keyword appears anywhere

so "change metrics to Revenue, Profit" edits metrics even though the
value text could mention other keywords.  Exactly one field is written
per message.

Value extraction (first match wins):
    a. ``<keyword> to <value>``
    b. text after a leading "change " / "update ", keyword stripped from its start
    c. everything after the last keyword occurrence

The extracted text is parsed with the same rule the conversation step
uses for that field (``specbuilder.services.parsing``).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable

from specbuilder.core.exceptions import PersistenceError
from specbuilder.services import parsing
from specbuilder.services import requirements_service as reqs

logger = logging.getLogger(__name__)

FUNCTIONAL_DONE_HINT = 'What else would you like to change, or type "done" to finish.'
DESIGN_DONE_HINT = "What else would you like to change?"

EDIT_PREFIXES = ("change ", "update ")


@dataclass(frozen=True)
class FieldEdit:
    """One row of the dispatch table."""

    field: str
    label: str
    keyword: str
    parse: Callable[[str], Any]
    apply: Callable[[int, Any, str | None], dict]


@dataclass
class ChangeResult:
    message: str
    field: str | None = None
    data: dict = dc_field(default_factory=dict)
    saved: bool = True

    @property
    def matched(self) -> bool:
        return self.field is not None


# ── Appliers: persist the parsed value, return the conversation data patch ──


def _project_field(column: str):
    def _apply(project_id: int, value: str, actor_id: str | None) -> dict:
        reqs.save_project_fields(project_id, {column: value}, actor_id=actor_id)
        return {column: value}
    return _apply


def _functional_field(column: str):
    def _apply(project_id: int, value: list, actor_id: str | None) -> dict:
        reqs.save_functional(project_id, {column: value})
        return {column: value}
    return _apply


def _design_field(column: str):
    def _apply(project_id: int, value, actor_id: str | None) -> dict:
        reqs.save_design(project_id, {column: value})
        return {column: value}
    return _apply


def _apply_tabs(project_id: int, value: list, actor_id: str | None) -> dict:
    reqs.replace_tabs(project_id, value)
    return {"tabs": value}


def _apply_filters(project_id: int, value: list, actor_id: str | None) -> dict:
    reqs.replace_global_filters(project_id, value)
    return {"filters": value}


def _apply_logo(project_id: int, value: dict, actor_id: str | None) -> dict:
    reqs.save_design(project_id, value)
    return dict(value)


FUNCTIONAL_EDITS: tuple[FieldEdit, ...] = (
    FieldEdit("name", "name", r"name", parsing.parse_text, _project_field("name")),
    FieldEdit("description", "description", r"description", parsing.parse_text,
              _project_field("description")),
    FieldEdit("audience", "audience", r"audience", parsing.parse_text, _project_field("audience")),
    FieldEdit("data_sources", "data sources", r"data\s*sources?", parsing.parse_list,
              _functional_field("data_sources")),
    FieldEdit("metrics", "metrics", r"metrics?", parsing.parse_list, _functional_field("metrics")),
    FieldEdit("tabs", "tabs", r"tabs?", parsing.parse_tabs, _apply_tabs),
    FieldEdit("filters", "filters", r"filters?", parsing.parse_filters, _apply_filters),
)

DESIGN_EDITS: tuple[FieldEdit, ...] = (
    FieldEdit("dashboard_size", "dashboard size", r"(?:dashboard\s+)?size", parsing.parse_text,
              _design_field("dashboard_size")),
    FieldEdit("color_palette", "color palette", r"colou?r\s*palette|colou?rs?", parsing.parse_list,
              _design_field("color_palette")),
    FieldEdit("fonts", "fonts", r"fonts?", parsing.parse_list, _design_field("fonts")),
    FieldEdit("logo", "logo", r"logo", parsing.parse_logo, _apply_logo),
)

EDIT_TABLES = {"functional": FUNCTIONAL_EDITS, "design": DESIGN_EDITS}

_UNKNOWN_MESSAGES = {
    "functional": (
        "I'm not sure what you want to change. You can edit:\n\n"
        "- name\n- description\n- audience\n- data sources\n- metrics\n- tabs\n- filters\n\n"
        'Try: "change metrics to Revenue, Profit, Growth"'
    ),
    "design": (
        "I'm not sure what you want to change. You can edit:\n\n"
        "- dashboard size\n- color palette\n- fonts\n- logo\n\n"
        'Try: "change fonts to Roboto, Arial"'
    ),
}


def is_edit_command(text: str) -> bool:
    """Edit-command shape: leading change/update, or " to " anywhere.

    The " to " test also catches ordinary notes such as "link to the wiki";
    those are routed here and answered with the unknown-field message when
    no keyword matches.
    """
    lowered = (text or "").lower()
    return lowered.startswith(EDIT_PREFIXES) or " to " in lowered


def select_edit(text: str, flow: str) -> FieldEdit | None:
    entries = EDIT_TABLES[flow]
    for entry in entries:
        if re.search(rf"\b(?:{entry.keyword})\s+to\s+", text, re.IGNORECASE):
            return entry
    for entry in entries:
        if re.search(rf"\b(?:{entry.keyword})\b", text, re.IGNORECASE):
            return entry
    return None


def extract_value(text: str, keyword: str) -> str:
    match = re.search(rf"\b(?:{keyword})\s+to\s+(.+)", text, re.IGNORECASE | re.DOTALL)
    if match:
        return match.group(1).strip()

    match = re.match(r"\s*(?:change|update)\s+(.+)", text, re.IGNORECASE | re.DOTALL)
    if match:
        return re.sub(rf"^(?:{keyword})\s*", "", match.group(1).strip(), flags=re.IGNORECASE).strip()

    return re.sub(rf".*\b(?:{keyword})\s*", "", text, flags=re.IGNORECASE | re.DOTALL).strip()


def _describe(entry: FieldEdit, value) -> str:
    if isinstance(value, dict):  # logo patch
        value = value.get("logo_location") or value.get("logo_url") or "none"
        return f'Updated the {entry.label} to "{value}".'
    if isinstance(value, list):
        return f"Updated the {entry.label} to: {parsing.join_list(value) or 'none'}."
    return f'Updated the {entry.label} to "{value}".'


def interpret(
    project_id: int,
    flow: str,
    text: str,
    *,
    actor_id: str | None = None,
) -> ChangeResult:
    """Apply one edit command.

    Returns an unmatched ``ChangeResult`` (no write) when no keyword is
    found or the extracted value is empty.  A failed write is logged and
    reported through ``saved=False``; the confirmation is still returned.
    """
    if flow not in EDIT_TABLES:
        raise ValueError(f"Unknown flow: {flow}")

    entry = select_edit(text, flow)
    raw_value = extract_value(text, entry.keyword) if entry else ""
    if not entry or not raw_value:
        return ChangeResult(message=_UNKNOWN_MESSAGES[flow])

    value = entry.parse(raw_value)
    hint = FUNCTIONAL_DONE_HINT if flow == "functional" else DESIGN_DONE_HINT
    message = f"{_describe(entry, value)} {hint}"

    try:
        data = entry.apply(project_id, value, actor_id)
    except PersistenceError as exc:
        logger.warning("Change to %s on project %s not saved: %s", entry.field, project_id, exc)
        data = value if isinstance(value, dict) else {entry.field: value}
        return ChangeResult(message=message, field=entry.field, data=data, saved=False)

    logger.info("Project %s: %s updated via chat", project_id, entry.field)
    return ChangeResult(message=message, field=entry.field, data=data)

"""
BI Spec Builder
Conversation Engine: scripted question/answer flows that fill a project's
requirements one field at a time.

Two flows share the same machinery:

    functional: name → description → audience → data_sources → metrics →
                tabs → filters → appendix → metric_logic → additional → complete
    design:     dashboard_size → color_palette → fonts → logo → additional → complete

The engine is stateless between requests.  ``start`` rebuilds a
``ConversationState`` from the database and positions it on the first
unanswered step (resume-at-first-gap); ``submit`` takes the state echoed
back by the client plus one message and returns the next state.

Each answered data step is persisted immediately (one write per step).
A failed write does not block the conversation: the state still
advances and the result carries ``saved=False``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial

from specbuilder.core.exceptions import PersistenceError, ValidationError
from specbuilder.models import db
from specbuilder.models.project import Project
from specbuilder.models.requirements import AdditionalRequirement, Filter
from specbuilder.services import change_interpreter
from specbuilder.services import parsing
from specbuilder.services import requirements_service as reqs

logger = logging.getLogger(__name__)

FLOWS = ("functional", "design")

FUNCTIONAL_STEPS = (
    "name", "description", "audience", "data_sources", "metrics",
    "tabs", "filters", "appendix", "metric_logic", "additional", "complete",
)
DESIGN_STEPS = ("dashboard_size", "color_palette", "fonts", "logo", "additional", "complete")

STEPS = {"functional": FUNCTIONAL_STEPS, "design": DESIGN_STEPS}

# Steps whose state key differs from the step name.
_FUNCTIONAL_KEYS = {"appendix": "has_appendix", "metric_logic": "has_metric_logic"}
_TAIL_STEPS = ("additional", "complete")
_LIST_KEYS = ("additional", "data_sources", "metrics", "tabs", "filters", "color_palette", "fonts")


@dataclass
class ConversationState:
    flow: str
    step: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"flow": self.flow, "step": self.step, "data": dict(self.data)}

    @classmethod
    def from_dict(cls, flow: str, payload: dict) -> "ConversationState":
        """Validate a client-echoed state."""
        if not isinstance(payload, dict):
            raise ValidationError("state must be an object")
        step = payload.get("step")
        data = payload.get("data") or {}
        if step not in STEPS[flow]:
            raise ValidationError(
                f"Unknown {flow} step: {step!r}", details={"step": list(STEPS[flow])},
            )
        if not isinstance(data, dict):
            raise ValidationError("state.data must be an object")
        not_lists = [
            k for k in _LIST_KEYS if data.get(k) is not None and not isinstance(data[k], list)
        ]
        if not_lists:
            raise ValidationError(
                "state.data list fields must be arrays", details={k: "array" for k in not_lists},
            )
        return cls(flow=flow, step=step, data=dict(data))


@dataclass
class StepResult:
    message: str
    state: ConversationState
    saved: bool = True

    def to_dict(self) -> dict:
        return {"message": self.message, "state": self.state.to_dict(), "saved": self.saved}


# ═════════════════════════════════════════════════════════════════════════════
# Prompts
# ═════════════════════════════════════════════════════════════════════════════

WELCOME = (
    "Hello! I'm here to help you build comprehensive dashboard specifications. "
    "Let's start with the basics. What is the name of the dashboard you're creating?"
)

FUNCTIONAL_PROMPTS = {
    "audience": "Who will be the primary audience for this dashboard?",
    "data_sources": "What data sources will be needed? Please list them separated by commas.",
    "metrics": "What key metrics need to be displayed? List them separated by commas.",
    "tabs": "What tabs or pages should this dashboard have? List the tab names separated by commas.",
    "filters": 'What filters should be available? List them separated by commas, or type "none".',
    "appendix": "Will there be an appendix tab with additional information? (yes/no)",
    "metric_logic": "Will there be a Metric Logic tab explaining calculations? (yes/no)",
    "additional": (
        "Would you like to add any additional requirements or special considerations? "
        'Type "done" when finished, or describe what else you need.'
    ),
}

DESIGN_PROMPTS = {
    "dashboard_size": "What size should the dashboard be? (e.g., 1920x1080, 1366x768, responsive)",
    "color_palette": (
        "What color palette should be used? (e.g., blue and white, corporate colors, dark theme)"
    ),
    "fonts": "What fonts should be used? (e.g., Arial, Roboto, company brand fonts)",
    "logo": (
        "Should the dashboard include a logo? If yes, where should it be placed? "
        "(e.g., top left, center header, none)"
    ),
    "additional": (
        "Any additional design requirements? "
        "(e.g., specific styling, themes, accessibility requirements)"
    ),
    "complete": (
        "All design requirements have been captured. "
        "You can update any requirement by typing your changes."
    ),
}

FUNCTIONAL_HELP = (
    'To edit existing requirements, start your message with "change" or "update" '
    "followed by what you want to modify. Examples:\n\n"
    '- "change name to Sales Dashboard"\n'
    '- "update metrics to Revenue, Profit, Growth"\n'
    '- "change data sources to SQL, Snowflake"\n\n'
    "To add additional requirements, just type them normally."
)

DESIGN_HELP = (
    'To edit design requirements, start your message with "change" or "update" '
    "followed by what you want to modify. Examples:\n\n"
    '- "change dashboard size to 1366x768"\n'
    '- "update colors to Navy, White"\n'
    '- "change logo to top right"\n\n'
    "To add further design notes, just type them normally."
)


def _functional_welcome(step: str, data: dict) -> str:
    if step == "name":
        return WELCOME
    if step in _TAIL_STEPS:
        return (
            "Welcome back! I see you've already captured the core requirements for "
            f'"{data.get("name", "")}". You can type any additional requirements you\'d like '
            'to add, or type "done" if you\'re finished. You can also ask me to change '
            "specific information."
        )
    if step == "description":
        return (
            f'I see the dashboard is named "{data.get("name", "")}". '
            "Can you describe what this dashboard is intended to do?"
        )
    return FUNCTIONAL_PROMPTS[step]


def _functional_ack(answered: str, data: dict) -> str:
    """Prompt shown after ``answered`` has been captured."""
    if answered == "name":
        return (
            f'Great! "{data["name"]}" is a clear name. Now, can you describe what this '
            "dashboard is intended to do? What's the main purpose or goal?"
        )
    if answered == "description":
        return (
            "Perfect! Who will be the primary audience for this dashboard? "
            "(e.g., executives, managers, analysts, customers)"
        )
    if answered == "audience":
        return (
            f"Understood. The dashboard will be for {data['audience']}. "
            "What data sources will be needed? Please list them separated by commas."
        )
    if answered == "data_sources":
        return (
            "Got it. What key metrics need to be displayed on this dashboard? "
            "List them separated by commas."
        )
    if answered == "metrics":
        return (
            "Excellent. What tabs or pages should this dashboard have? "
            "List the tab names separated by commas."
        )
    if answered == "tabs":
        return (
            "What filters should be available across the dashboard? List the filter names "
            'separated by commas, or type "none" if no filters are needed.'
        )
    if answered == "filters":
        return FUNCTIONAL_PROMPTS["appendix"]
    if answered == "appendix":
        return FUNCTIONAL_PROMPTS["metric_logic"]
    return (
        "Great! I've captured the core functional requirements. " + FUNCTIONAL_PROMPTS["additional"]
    )


# ═════════════════════════════════════════════════════════════════════════════
# Loading + first gap
# ═════════════════════════════════════════════════════════════════════════════


def load_functional_data(project_id: int) -> dict:
    """Non-empty functional values of a project; ``{}`` when it does not exist."""
    project = db.session.get(Project, project_id)
    if not project:
        return {}
    data: dict = {}
    for key in ("name", "description", "audience"):
        if getattr(project, key):
            data[key] = getattr(project, key)
    fr = project.functional_requirements
    if fr:
        if fr.data_sources:
            data["data_sources"] = list(fr.data_sources)
        if fr.metrics:
            data["metrics"] = list(fr.metrics)
    tabs = [t.name for t in project.tabs]
    if tabs:
        data["tabs"] = tabs
    filters = [f.name for f in project.filters.filter(Filter.tab_id.is_(None)).order_by(Filter.id)]
    if filters:
        data["filters"] = filters
    if project.has_appendix_tab is not None:
        data["has_appendix"] = project.has_appendix_tab
    if project.has_metric_logic_tab is not None:
        data["has_metric_logic"] = project.has_metric_logic_tab
    additional = [
        a.content
        for a in project.additional_requirements.filter_by(category="functional")
        .order_by(AdditionalRequirement.id)
    ]
    if additional:
        data["additional"] = additional
    return data


def load_design_data(project_id: int) -> dict:
    project = db.session.get(Project, project_id)
    dr = project.design_requirements if project else None
    if not dr:
        return {}
    data: dict = {}
    for key in ("dashboard_size", "logo_url", "logo_location", "additional_requirements"):
        if getattr(dr, key):
            data[key] = getattr(dr, key)
    for key in ("color_palette", "fonts"):
        if getattr(dr, key):
            data[key] = list(getattr(dr, key))
    return data


def functional_first_gap(data: dict) -> str:
    """First unanswered functional step; yes/no steps count as answered once set."""
    for step in FUNCTIONAL_STEPS[:-2]:
        key = _FUNCTIONAL_KEYS.get(step, step)
        if key in ("has_appendix", "has_metric_logic"):
            if data.get(key) is None:
                return step
        elif not data.get(key):
            return step
    return "additional"


def design_first_gap(data: dict) -> str:
    if not data.get("dashboard_size"):
        return "dashboard_size"
    if not data.get("color_palette"):
        return "color_palette"
    if not data.get("fonts"):
        return "fonts"
    if not (data.get("logo_url") or data.get("logo_location")):
        return "logo"
    if not data.get("additional_requirements"):
        return "additional"
    return "complete"


def _prompt_for(state: ConversationState) -> str:
    if state.flow == "functional":
        return _functional_welcome(state.step, state.data)
    return DESIGN_PROMPTS[state.step]


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════


def start(project_id: int, flow: str) -> StepResult:
    """Initialise (or resume) a conversation from persisted values."""
    _check_flow(flow)
    if flow == "functional":
        data = load_functional_data(project_id)
        step = functional_first_gap(data)
    else:
        data = load_design_data(project_id)
        step = design_first_gap(data)
    state = ConversationState(flow=flow, step=step, data=data)
    return StepResult(message=_prompt_for(state), state=state)


def submit(
    project_id: int,
    state: ConversationState,
    raw_input: str,
    *,
    actor_id: str | None = None,
) -> StepResult:
    """Apply one user message to ``state`` and return the next state."""
    _check_flow(state.flow)
    text = (raw_input or "").strip()
    if not text:
        return StepResult(message=_prompt_for(state), state=state)

    data = dict(state.data)
    if state.flow == "functional":
        return _submit_functional(project_id, state.step, data, text, actor_id)
    return _submit_design(project_id, state.step, data, text, actor_id)


def _check_flow(flow: str) -> None:
    if flow not in FLOWS:
        raise ValidationError(f"Unknown conversation flow: {flow!r}", details={"flow": list(FLOWS)})


def _persist(write, project_id: int, step: str) -> bool:
    try:
        write()
    except PersistenceError as exc:
        logger.warning("Project %s: step %s not saved (%s)", project_id, step, exc)
        return False
    return True


def _is_help(text: str) -> bool:
    return text.lower() in ("help", "?")


def _edit(project_id, flow, step, data, text, actor_id) -> StepResult:
    change = change_interpreter.interpret(project_id, flow, text, actor_id=actor_id)
    data.update(change.data)
    state = ConversationState(flow=flow, step=step, data=data)
    return StepResult(message=change.message, state=state, saved=change.saved)


# ── Functional flow ──────────────────────────────────────────────────────


def _submit_functional(project_id, step, data, text, actor_id) -> StepResult:
    flow = "functional"

    if step in _TAIL_STEPS:
        if text.lower() == "done":
            return StepResult(
                message=(
                    f'Perfect! I\'ve compiled all the functional requirements for "{data.get("name", "")}". '
                    "You can now move to the Design Requirements tab to specify branding, or the "
                    "Tasks tab to add project tasks. The requirements have been saved automatically."
                ),
                state=ConversationState(flow, "complete", data),
            )
        if _is_help(text):
            message = FUNCTIONAL_HELP
            if step == "additional":
                message += ' Type "done" when finished.'
            return StepResult(message=message, state=ConversationState(flow, step, data))
        if change_interpreter.is_edit_command(text):
            return _edit(project_id, flow, step, data, text, actor_id)

        data["additional"] = list(data.get("additional") or []) + [text]
        saved = _persist(
            partial(reqs.add_additional_requirement, project_id, "functional", text),
            project_id, step,
        )
        if step == "additional":
            message = (
                'Added! Anything else? Type "done" when finished, or type "help" '
                "to see how to edit existing requirements."
            )
        else:
            message = 'Added! Type "help" to see how to edit existing requirements.'
        return StepResult(message=message, state=ConversationState(flow, step, data), saved=saved)

    if step in ("name", "description", "audience"):
        value = parsing.parse_text(text)
        data[step] = value
        write = partial(reqs.save_project_fields, project_id, {step: value}, actor_id=actor_id)
    elif step in ("data_sources", "metrics"):
        value = parsing.parse_list(text)
        data[step] = value
        write = partial(reqs.save_functional, project_id, {step: value})
    elif step == "tabs":
        value = parsing.parse_tabs(text)
        data["tabs"] = value
        write = partial(reqs.replace_tabs, project_id, value)
    elif step == "filters":
        value = parsing.parse_filters(text)
        data["filters"] = value
        write = partial(reqs.replace_global_filters, project_id, value)
    else:
        value = parsing.parse_yes(text)
        column = "has_appendix_tab" if step == "appendix" else "has_metric_logic_tab"
        data[_FUNCTIONAL_KEYS[step]] = value
        write = partial(reqs.save_project_fields, project_id, {column: value}, actor_id=actor_id)

    saved = _persist(write, project_id, step)
    next_step = FUNCTIONAL_STEPS[FUNCTIONAL_STEPS.index(step) + 1]
    return StepResult(
        message=_functional_ack(step, data),
        state=ConversationState(flow, next_step, data),
        saved=saved,
    )


# ── Design flow ──────────────────────────────────────────────────────────


def _submit_design(project_id, step, data, text, actor_id) -> StepResult:
    flow = "design"

    if step in _TAIL_STEPS:
        if _is_help(text):
            return StepResult(message=DESIGN_HELP, state=ConversationState(flow, step, data))
        if change_interpreter.is_edit_command(text):
            return _edit(project_id, flow, step, data, text, actor_id)

        if step == "additional":
            data["additional_requirements"] = text
        else:
            existing = data.get("additional_requirements") or ""
            data["additional_requirements"] = f"{existing}\n{text}" if existing else text
        stored = data["additional_requirements"]

        def write():
            reqs.save_design(project_id, {"additional_requirements": stored})
            reqs.add_additional_requirement(project_id, "design", text)

        saved = _persist(write, project_id, step)
        if step == "complete":
            return StepResult(
                message="I have noted your update. The design requirements have been updated.",
                state=ConversationState(flow, "complete", data),
                saved=saved,
            )
        next_step = design_first_gap(data)
        return StepResult(
            message=DESIGN_PROMPTS[next_step],
            state=ConversationState(flow, next_step, data),
            saved=saved,
        )

    if step == "dashboard_size":
        patch = {"dashboard_size": parsing.parse_text(text)}
    elif step == "color_palette":
        patch = {"color_palette": parsing.parse_list(text)}
    elif step == "fonts":
        patch = {"fonts": parsing.parse_list(text)}
    else:
        patch = parsing.parse_logo(text)
    data.update(patch)

    saved = _persist(partial(reqs.save_design, project_id, patch), project_id, step)
    next_step = design_first_gap(data)
    return StepResult(
        message=DESIGN_PROMPTS[next_step],
        state=ConversationState(flow, next_step, data),
        saved=saved,
    )

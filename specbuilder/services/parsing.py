"""
Input parsing rules shared by the conversation steps and the change
interpreter.

Every chat step maps raw user text to a stored value with one of these
functions; the change interpreter reuses the same function for the field
it edits so a value typed during an edit is stored exactly as it would
have been during the original step.
"""

from __future__ import annotations

NONE_SENTINEL = "none"


def parse_text(raw: str) -> str:
    """Trimmed free text (name, description, audience, dashboard size)."""
    return (raw or "").strip()


def parse_list(raw: str) -> list[str]:
    """Comma-separated list: trim tokens, drop empties, keep order and duplicates.

    >>> parse_list(" a , b ,,c")
    ['a', 'b', 'c']
    """
    return [token.strip() for token in (raw or "").split(",") if token.strip()]


def parse_filters(raw: str) -> list[str]:
    """Like ``parse_list`` but ``"none"`` (any case) means no filters."""
    if (raw or "").strip().lower() == NONE_SENTINEL:
        return []
    return parse_list(raw)


def parse_tabs(raw: str) -> list[str]:
    """Tab names.

    Without a comma the whole input is one tab name: "3" is a tab
    called "3", not three tabs.
    """
    text = (raw or "").strip()
    if "," in text:
        return parse_list(text)
    return [text] if text else []


def parse_yes(raw: str) -> bool:
    """True iff the answer contains "yes" anywhere (case-insensitive)."""
    return "yes" in (raw or "").lower()


def parse_logo(raw: str) -> dict:
    """Logo answer → design-requirement patch.

    Any "none"/"no" in the answer clears the logo; otherwise the answer is
    taken as the logo placement.
    """
    text = (raw or "").strip()
    lowered = text.lower()
    if "none" in lowered or "no" in lowered:
        return {"logo_url": "", "logo_location": "none"}
    return {"logo_location": text}


def join_list(values) -> str:
    return ", ".join(values or [])

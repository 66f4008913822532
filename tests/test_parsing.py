"""
BI Spec Builder
Tests: chat input parsing rules.
"""

import pytest

from specbuilder.services import parsing


def test_parse_text_trims():
    assert parsing.parse_text("  Sales Overview \n") == "Sales Overview"
    assert parsing.parse_text(None) == ""


def test_parse_list_trims_and_drops_empty_tokens():
    assert parsing.parse_list(" a , b ,,c") == ["a", "b", "c"]


def test_parse_list_keeps_order_and_duplicates():
    assert parsing.parse_list("Revenue, Profit, Revenue") == ["Revenue", "Profit", "Revenue"]


def test_parse_list_joined_back_is_stable():
    values = ["SQL Server", "Snowflake", "Excel"]
    assert parsing.parse_list(parsing.join_list(values)) == values


@pytest.mark.parametrize("raw", ["none", "NONE", "  None  "])
def test_parse_filters_none_sentinel(raw):
    assert parsing.parse_filters(raw) == []


def test_parse_filters_list():
    assert parsing.parse_filters("Region, Date") == ["Region", "Date"]


def test_parse_tabs_single_name_is_never_a_count():
    assert parsing.parse_tabs("3") == ["3"]
    assert parsing.parse_tabs("Executive Summary") == ["Executive Summary"]


def test_parse_tabs_comma_list():
    assert parsing.parse_tabs("Overview, Detail,") == ["Overview", "Detail"]
    assert parsing.parse_tabs("   ") == []


@pytest.mark.parametrize("raw, expected", [
    ("yes", True),
    ("Yes please", True),
    ("oh YES", True),
    ("no", False),
    ("maybe", False),
])
def test_parse_yes(raw, expected):
    assert parsing.parse_yes(raw) is expected


def test_parse_logo_placement():
    assert parsing.parse_logo(" top left ") == {"logo_location": "top left"}


@pytest.mark.parametrize("raw", ["none", "No logo", "no"])
def test_parse_logo_clears(raw):
    assert parsing.parse_logo(raw) == {"logo_url": "", "logo_location": "none"}


def test_parse_logo_substring_match_is_greedy():
    # "north" contains "no"
    assert parsing.parse_logo("north east corner")["logo_location"] == "none"

"""Tests for degraded-mode canned responses."""

from tender_agent.core.degraded import (
    DEGRADED_RESPONSE_TEMPLATES,
    DEGRADED_RESPONSES,
    format_response,
    get_degraded_response,
)


class TestGetDegradedResponse:
    """Tests for canned response lookup."""

    def test_known_key(self):
        assert get_degraded_response("task_created") == "Added to your list."

    def test_unknown_key_falls_back(self):
        assert get_degraded_response("no_such_key") == "Got it."

    def test_all_responses_are_non_empty(self):
        assert all(text.strip() for text in DEGRADED_RESPONSES.values())


class TestFormatResponse:
    """Tests for placeholder substitution."""

    def test_template_key(self):
        result = format_response("task_completed_with_name", task_name="Email grandma")
        assert result == "Nice work on 'Email grandma'!"

    def test_numeric_value(self):
        result = format_response("deferral_count", count="3rd")
        assert result == "This is the 3rd time you've deferred this one."

    def test_raw_template_with_repeated_placeholder(self):
        result = format_response("{name} and {name} again", name="Tender")
        assert result == "Tender and Tender again"

    def test_missing_value_left_in_place(self):
        assert format_response("next_suggestion") == DEGRADED_RESPONSE_TEMPLATES["next_suggestion"]

    def test_value_with_regex_characters(self):
        result = format_response("Hello {who}", who=r"\1 $0 (x)")
        assert result == r"Hello \1 $0 (x)"

    def test_integer_value(self):
        assert format_response("{n} tasks", n=4) == "4 tasks"

"""Unit tests for the model-output parsers."""

import pytest

from codescope.core.exceptions import MalformedResponseError
from codescope.core.models import GeneratedDocumentation, SecurityFinding
from codescope.providers.parsing import (
    clean_ai_text,
    extract_mermaid,
    parse_json_list,
    parse_json_payload,
    parse_structured_explanation,
)

pytestmark = pytest.mark.unit

EXPLANATION = """\
**Summary:** Adds two numbers and returns the result.

**Line-by-Line:**
- Line 1: Declares `add` with two parameters.
- Lines 2-3: Returns the sum.

**Time Complexity:** O(1) because it does one addition.
**Space Complexity:** O(1)

**Suggestions for Improvement:**
1. Add type hints.
- Add a docstring.
"""


class TestCleanAiText:
    def test_strips_fences_keeping_body(self):
        assert clean_ai_text("```python\nprint(1)\n```") == "print(1)"

    def test_strips_inline_markers(self):
        assert clean_ai_text("call [`foo`()] now") == "call  now"


class TestStructuredExplanation:
    def test_parses_all_sections(self):
        parsed = parse_structured_explanation(EXPLANATION)
        assert parsed.summary == "Adds two numbers and returns the result."
        assert [(i.lines, i.explanation) for i in parsed.line_by_line] == [
            ("1", "Declares `add` with two parameters."),
            ("2-3", "Returns the sum."),
        ]
        assert parsed.time_complexity == "O(1) because it does one addition."
        assert parsed.space_complexity == "O(1)"
        assert parsed.suggestions == ("Add type hints.", "Add a docstring.")
        assert not parsed.degraded

    def test_markdown_headings_are_recognized(self):
        parsed = parse_structured_explanation(
            "## Summary\nSorts a list.\n\n## Time Complexity\nO(n log n)\n"
        )
        assert parsed.summary == "Sorts a list."
        assert parsed.time_complexity == "O(n log n)"
        assert parsed.space_complexity == "N/A"

    def test_heading_word_inside_prose_is_not_a_section(self):
        parsed = parse_structured_explanation(
            "Summary: The summary is computed lazily.\n"
        )
        assert parsed.summary == "The summary is computed lazily."

    def test_missing_summary_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="Summary"):
            parse_structured_explanation("Time Complexity: O(n)")

    def test_fenced_response_is_unwrapped(self):
        parsed = parse_structured_explanation("```\nSummary: ok\n```")
        assert parsed.summary == "ok"


class TestJsonPayloads:
    def test_parse_json_payload_validates_model(self):
        doc = parse_json_payload(
            '```json\n{"format": "Markdown", "content": "# Title"}\n```',
            GeneratedDocumentation,
        )
        assert doc.content == "# Title"

    def test_parse_json_payload_schema_mismatch_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="GeneratedDocumentation"):
            parse_json_payload('{"format": "Markdown"}', GeneratedDocumentation)

    def test_invalid_json_is_malformed(self):
        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            parse_json_payload("{oops", GeneratedDocumentation)

    def test_parse_json_list_unwraps_single_list_object(self):
        findings = parse_json_list(
            '{"findings": [{"id": "S1", "description": "d", "severity": "Low"}]}',
            SecurityFinding,
        )
        assert len(findings) == 1
        assert findings[0].id == "S1"

    def test_parse_json_list_accepts_empty_array(self):
        assert parse_json_list("[]", SecurityFinding) == ()

    def test_parse_json_list_rejects_non_list(self):
        with pytest.raises(MalformedResponseError):
            parse_json_list('{"id": "S1"}', SecurityFinding)


def test_extract_mermaid():
    assert extract_mermaid("```mermaid\ngraph TD\n  A-->B\n```") == "graph TD\n  A-->B"


def test_extract_mermaid_empty_is_malformed():
    with pytest.raises(MalformedResponseError):
        extract_mermaid("``` ```")

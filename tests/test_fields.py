"""Tests for frontmatter value and tag normalization."""

from datetime import date
from types import SimpleNamespace

from prioritymatrix.engine.fields import extract_property_value, extract_tag_label


class TestExtractPropertyValue:
    def test_scalars_pass_through(self):
        assert extract_property_value("urgent_important") == "urgent_important"
        assert extract_property_value(3) == 3
        assert extract_property_value(["a", "b"]) == ["a", "b"]

    def test_falsy_values_returned_as_is(self):
        assert extract_property_value(None) is None
        assert extract_property_value("") == ""
        assert extract_property_value(0) == 0

    def test_wrapped_mapping_prefers_value(self):
        assert extract_property_value({"value": "urgent", "raw": "URGENT"}) == "urgent"

    def test_wrapped_mapping_falls_back_to_raw(self):
        assert extract_property_value({"value": "", "raw": "urgent"}) == "urgent"

    def test_wrapped_object(self):
        assert extract_property_value(SimpleNamespace(value="schedule")) == "schedule"

    def test_date_objects_unchanged(self):
        due = date(2024, 5, 1)
        assert extract_property_value(due) is due


class TestExtractTagLabel:
    def test_strips_single_leading_hash(self):
        assert extract_tag_label("#urgent") == "urgent"
        assert extract_tag_label("##double") == "#double"

    def test_plain_label_unchanged(self):
        assert extract_tag_label("delegate") == "delegate"

    def test_empty_inputs(self):
        assert extract_tag_label(None) == ""
        assert extract_tag_label("") == ""

    def test_wrapped_tag(self):
        assert extract_tag_label({"tag": "#schedule"}) == "schedule"
        assert extract_tag_label(SimpleNamespace(raw="#eliminate")) == "eliminate"

    def test_non_string_label_is_empty(self):
        assert extract_tag_label({"value": 42}) == ""

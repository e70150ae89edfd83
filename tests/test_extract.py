"""Tests for path extraction from poll responses."""

from webhookbridge.extract import extract_value


class TestExtractValue:
    """Tests for extract_value."""

    def test_nested_path_with_index(self):
        assert extract_value({"a": {"b": [{"c": 5}]}}, "a.b[0].c") == 5

    def test_missing_key(self):
        assert extract_value({}, "x.y") is None

    def test_none_root(self):
        assert extract_value(None, "a") is None

    def test_empty_path(self):
        assert extract_value({"a": 1}, "") is None
        assert extract_value({"a": 1}, None) is None

    def test_numeric_segment_indexes_list(self):
        assert extract_value({"a": [{"b": 1}, {"b": 2}]}, "a.1.b") == 2

    def test_index_out_of_range(self):
        assert extract_value({"a": [1, 2]}, "a[5]") is None

    def test_index_on_non_list(self):
        assert extract_value({"a": {"0": 1}}, "a[0]") is None

    def test_traversal_through_scalar(self):
        assert extract_value({"a": 5}, "a.b") is None

    def test_null_value(self):
        assert extract_value({"a": None}, "a") is None
        assert extract_value({"a": None}, "a.b") is None

    def test_falsy_values_are_returned(self):
        data = {"on": False, "count": 0, "name": ""}
        assert extract_value(data, "on") is False
        assert extract_value(data, "count") == 0
        assert extract_value(data, "name") == ""

    def test_top_level_list(self):
        assert extract_value([{"t": 20.5}], "0.t") == 20.5

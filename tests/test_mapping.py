"""
Unit tests for mapping tables and the field extractor.
"""

import pytest

from pmml_stream.errors import ConfigurationError, FieldNotFoundError
from pmml_stream.mapping import (
    MappingEntry,
    MappingTable,
    assign_path,
    flatten_payload,
    resolve_path,
)


class TestParseInputs:
    """Tests for the inputs mapping syntax."""

    def test_parses_entries_in_order(self):
        table = MappingTable.parse_inputs(
            "Sepal.Length = payload.sepalLength, Petal.Width=payload.petalWidth"
        )

        assert table.entries == (
            MappingEntry("sepalLength", "Sepal.Length"),
            MappingEntry("petalWidth", "Petal.Width"),
        )

    def test_whitespace_is_trimmed(self):
        table = MappingTable.parse_inputs("  a  =   payload.x.y  ")
        assert table.entries == (MappingEntry("x.y", "a"),)

    def test_bare_path_is_payload_relative(self):
        table = MappingTable.parse_inputs("a = x.y")
        assert table.entries[0].source_path == "x.y"
        assert table.entries[0].scope == "payload"

    def test_headers_scope(self):
        table = MappingTable.parse_inputs("a = headers.region")
        assert table.entries == (MappingEntry("region", "a", "headers"),)

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_configuration_is_identity(self, text):
        table = MappingTable.parse_inputs(text)
        assert table.is_identity
        assert len(table) == 0

    def test_source_path_may_repeat(self):
        table = MappingTable.parse_inputs("a = payload.x, b = payload.x")
        assert [e.source_path for e in table] == ["x", "x"]

    @pytest.mark.parametrize("text", [
        "Sepal.Length payload.sepalLength",
        "a = payload.x, b",
        " = payload.x",
        "a = ",
        "a = payload.x,,b = payload.y",
        "a = payload",
        "a = payload.b = c",
    ])
    def test_malformed_entries_raise(self, text):
        with pytest.raises(ConfigurationError):
            MappingTable.parse_inputs(text)

    def test_duplicate_target_raises(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            MappingTable.parse_inputs("a = payload.x, a = payload.y")


class TestParseOutputs:
    """Tests for the outputs mapping syntax."""

    def test_model_output_is_source(self):
        table = MappingTable.parse_outputs(" Predicted_Species=payload.predictedSpecies")
        assert table.entries == (MappingEntry("Predicted_Species", "predictedSpecies"),)

    def test_headers_target_not_allowed(self):
        with pytest.raises(ConfigurationError):
            MappingTable.parse_outputs("Predicted_Species = headers.species")

    def test_from_pairs(self):
        table = MappingTable.from_pairs([("Predicted_Species", "result.species")])
        assert table.entries == (MappingEntry("Predicted_Species", "result.species"),)

    def test_from_pairs_rejects_empty_side(self):
        with pytest.raises(ConfigurationError):
            MappingTable.from_pairs([("", "x")])


class TestResolvePath:
    """Tests for dotted path resolution."""

    def test_top_level(self):
        assert resolve_path({"sepalLength": 6.4}, "sepalLength") == 6.4

    def test_nested(self):
        payload = {"Sepal": {"Length": 6.4, "Width": 3.2}}
        assert resolve_path(payload, "Sepal.Width") == 3.2

    def test_literal_dotted_key(self):
        assert resolve_path({"Sepal.Length": 5.1}, "Sepal.Length") == 5.1

    def test_backtracks_past_dotted_key(self):
        payload = {"a.b": 5, "a": {"b": {"c": 1}}}
        assert resolve_path(payload, "a.b.c") == 1
        assert resolve_path(payload, "a.b") == 5

    def test_missing_segment(self):
        with pytest.raises(FieldNotFoundError) as exc_info:
            resolve_path({"Sepal": {"Length": 6.4}}, "Sepal.Width")
        assert exc_info.value.path == "Sepal.Width"

    def test_descends_into_scalar(self):
        with pytest.raises(FieldNotFoundError):
            resolve_path({"Sepal": 6.4}, "Sepal.Length")

    def test_ends_on_map(self):
        with pytest.raises(FieldNotFoundError):
            resolve_path({"Sepal": {"Length": 6.4}}, "Sepal")

    def test_falsy_values_resolve(self):
        assert resolve_path({"a": {"b": 0}}, "a.b") == 0
        assert resolve_path({"a": None}, "a") is None


class TestAssignAndFlatten:
    """Tests for writing outputs and identity-mode flattening."""

    def test_assign_creates_intermediate_maps(self):
        tree = {"id": 1}
        assign_path(tree, "result.species", "setosa")
        assert tree == {"id": 1, "result": {"species": "setosa"}}

    def test_assign_into_scalar_raises(self):
        with pytest.raises(FieldNotFoundError):
            assign_path({"result": "x"}, "result.species", "setosa")

    def test_flatten_nested(self):
        payload = {"Sepal": {"Length": 6.4}, "Petal": {"Width": 1.5}, "id": 7}
        assert flatten_payload(payload) == {"Sepal.Length": 6.4, "Petal.Width": 1.5, "id": 7}

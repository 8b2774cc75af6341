"""
Tests for PmmlProcessor: mapping, identity mode and end-to-end scenarios.
"""

import json

import pytest

from pmml_stream.codec import Message
from pmml_stream.errors import (
    ConfigurationError,
    DecodeError,
    FieldNotFoundError,
    ModelEvaluationError,
)
from pmml_stream.mapping import MappingTable
from pmml_stream.processor import PmmlProcessor

SIMPLE_INPUTS = (
    "Sepal.Length = payload.sepalLength,"
    "Sepal.Width = payload.sepalWidth,"
    "Petal.Length = payload.petalLength,"
    "Petal.Width = payload.petalWidth"
)
SIMPLE_OUTPUTS = " Predicted_Species=payload.predictedSpecies"


@pytest.fixture
def simple_processor(evaluator):
    return PmmlProcessor.from_config(
        evaluator, {"inputs": SIMPLE_INPUTS, "outputs": SIMPLE_OUTPUTS}
    )


@pytest.fixture
def identity_processor(evaluator):
    return PmmlProcessor(evaluator)


class TestScenarios:
    """Map and JSON payloads, with and without mapping."""

    def test_map_payload_with_mapping(self, simple_processor, evaluator, iris_payload):
        out = simple_processor.process(Message(iris_payload))

        assert out.payload["predictedSpecies"] == "versicolor"
        assert evaluator.requests == [{
            "Sepal.Length": "6.4",
            "Sepal.Width": "3.2",
            "Petal.Length": "4.5",
            "Petal.Width": "1.5",
        }]

    def test_nested_map_payload_identity_mode(self, identity_processor, nested_iris_payload):
        out = identity_processor.process(Message(nested_iris_payload))

        assert out.payload["Predicted_Species"] == "versicolor"

    def test_json_payload_with_content_type(self, simple_processor, iris_payload):
        message = Message(
            json.dumps(iris_payload).encode("utf-8"),
            {"contentType": "application/json"},
        )
        out = simple_processor.process(message)

        assert isinstance(out.payload, bytes)
        assert b'"predictedSpecies":"versicolor"' in out.payload

    def test_json_payload_without_content_type(self, simple_processor, iris_payload):
        with_header = simple_processor.process(Message(
            json.dumps(iris_payload), {"contentType": "application/json"}
        ))
        without_header = simple_processor.process(Message(json.dumps(iris_payload)))

        assert b'"predictedSpecies":"versicolor"' in without_header.payload
        assert json.loads(without_header.payload) == json.loads(with_header.payload)

    def test_original_content_type_header(self, simple_processor, iris_payload):
        message = Message(
            json.dumps(iris_payload),
            {"contentType": "application/x-java-object", "originalContentType": "application/json"},
        )
        out = simple_processor.process(message)
        assert json.loads(out.payload)["predictedSpecies"] == "versicolor"


class TestInputs:
    """Building model inputs."""

    def test_missing_source_path_is_not_defaulted(self, simple_processor, evaluator, iris_payload):
        del iris_payload["petalWidth"]

        with pytest.raises(FieldNotFoundError) as exc_info:
            simple_processor.process(Message(iris_payload))

        assert exc_info.value.path == "petalWidth"
        assert evaluator.requests == []

    def test_header_source(self, evaluator, iris_payload):
        processor = PmmlProcessor(
            evaluator,
            inputs=MappingTable.parse_inputs(
                SIMPLE_INPUTS.replace("payload.petalWidth", "headers.width")
            ),
        )
        del iris_payload["petalWidth"]

        processor.process(Message(iris_payload, {"width": "2.0"}))
        assert evaluator.requests[0]["Petal.Width"] == "2.0"

    def test_missing_header_source(self, evaluator, iris_payload):
        processor = PmmlProcessor(
            evaluator, inputs=MappingTable.parse_inputs("Petal.Width = headers.width")
        )
        with pytest.raises(FieldNotFoundError):
            processor.process(Message(iris_payload))

    def test_identity_mode_flattens_payload(self, identity_processor, evaluator, nested_iris_payload):
        identity_processor.process(Message(nested_iris_payload))

        assert evaluator.requests[0] == {
            "Sepal.Length": "6.4",
            "Sepal.Width": "3.2",
            "Petal.Length": "4.5",
            "Petal.Width": "1.5",
        }

    def test_identity_mode_missing_model_input(self, identity_processor, iris_payload):
        with pytest.raises(ModelEvaluationError):
            identity_processor.process(Message(iris_payload))


class TestOutputs:
    """Building the outbound payload."""

    def test_identity_mode_keeps_input_keys(self, identity_processor, nested_iris_payload):
        out = identity_processor.process(Message(nested_iris_payload))

        assert out.payload["Sepal"] == {"Length": "6.4", "Width": "3.2"}
        assert out.payload["Petal"] == {"Length": "4.5", "Width": "1.5"}

    def test_identity_mode_overwrites_collisions(self, identity_processor, nested_iris_payload):
        nested_iris_payload["Predicted_Species"] = "unknown"

        out = identity_processor.process(Message(nested_iris_payload))
        assert out.payload["Predicted_Species"] == "versicolor"

    def test_inbound_payload_not_mutated(self, simple_processor, iris_payload):
        before = dict(iris_payload)
        simple_processor.process(Message(iris_payload))
        assert iris_payload == before

    def test_nested_output_target(self, evaluator, iris_payload):
        processor = PmmlProcessor(
            evaluator,
            inputs=MappingTable.parse_inputs(SIMPLE_INPUTS),
            outputs=MappingTable.parse_outputs("Predicted_Species = payload.result.species"),
        )
        out = processor.process(Message(iris_payload))
        assert out.payload["result"] == {"species": "versicolor"}

    def test_unknown_model_output(self, evaluator, iris_payload):
        processor = PmmlProcessor(
            evaluator,
            inputs=MappingTable.parse_inputs(SIMPLE_INPUTS),
            outputs=MappingTable.parse_outputs("Probability_setosa = payload.p"),
        )
        with pytest.raises(FieldNotFoundError):
            processor.process(Message(iris_payload))


class TestFailures:
    """Errors abort the message."""

    def test_decode_error_propagates(self, simple_processor, evaluator):
        with pytest.raises(DecodeError):
            simple_processor.process(Message(b"{broken", {"contentType": "application/json"}))
        assert evaluator.requests == []

    def test_invalid_config_fails_at_build_time(self, evaluator):
        with pytest.raises(ConfigurationError, match="inputs"):
            PmmlProcessor.from_config(evaluator, {"inputs": "Sepal.Length payload.x", "outputs": ""})

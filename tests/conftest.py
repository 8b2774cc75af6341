"""
Shared fixtures for processor tests.

FakeIrisEvaluator stands in for the PMML library: it applies the same
decision tree as models/iris.pmml so scenarios can assert real species.
"""

import pytest

from pmml_stream.errors import ModelEvaluationError
from pmml_stream.metrics_store import MetricsStore

IRIS_INPUTS = ["Sepal.Length", "Sepal.Width", "Petal.Length", "Petal.Width"]


class FakeIrisEvaluator:
    """Evaluator double with the iris tree and call recording."""

    input_names = IRIS_INPUTS
    output_names = ["Predicted_Species"]

    def __init__(self):
        self.requests = []

    def evaluate(self, inputs):
        self.requests.append(dict(inputs))

        missing = [name for name in self.input_names if name not in inputs]
        if missing:
            raise ModelEvaluationError(f"Missing required model inputs: {missing}")

        try:
            petal_length = float(inputs["Petal.Length"])
            petal_width = float(inputs["Petal.Width"])
        except (TypeError, ValueError) as e:
            raise ModelEvaluationError(f"Invalid input: {e}") from e

        if petal_length < 2.45:
            species = "setosa"
        elif petal_width < 1.75:
            species = "versicolor"
        else:
            species = "virginica"
        return {"Predicted_Species": species}

    def get_metrics(self):
        return {"evaluations": len(self.requests)}


@pytest.fixture
def evaluator():
    return FakeIrisEvaluator()


@pytest.fixture
def metrics_store(tmp_path):
    return MetricsStore(backend="file", metrics_file=str(tmp_path / "metrics.json"))


@pytest.fixture
def iris_payload():
    return {
        "sepalLength": "6.4",
        "sepalWidth": "3.2",
        "petalLength": "4.5",
        "petalWidth": "1.5",
    }


@pytest.fixture
def nested_iris_payload():
    return {
        "Sepal": {"Length": "6.4", "Width": "3.2"},
        "Petal": {"Length": "4.5", "Width": "1.5"},
    }



"""
evaluator.py - PMML Evaluation Adapter

Loads a PMML model once with pypmml and scores each message
as named inputs -> named outputs.

Features:
    - Model loaded once at startup, shared read-only
    - Missing required inputs rejected before scoring
    - Library failures wrapped in ModelEvaluationError
    - Thread-safe calls (the Java gateway behind pypmml is shared)

Usage:
    from pmml_stream.evaluator import create_evaluator

    evaluator = create_evaluator("models/iris.pmml")
    result = evaluator.evaluate({"Sepal.Length": 6.4, ...})
"""

import os
import threading
import logging

from .config import PMML_CONFIG, resolve_model_location
from .errors import ConfigurationError, ModelEvaluationError

logger = logging.getLogger(__name__)


class PmmlEvaluator:
    """
    Wraps a loaded pypmml Model.

    Attributes:
        location: resolved model file path
        model: pypmml.Model instance
        evaluations: number of successful evaluate() calls
    """

    def __init__(self, location):
        """
        Load the PMML model.

        Args:
            location: file path or file: URI

        Raises:
            ConfigurationError: model file missing or unreadable
        """
        self.location = resolve_model_location(location)
        self.model = self._load_model(self.location)
        self._input_names = list(self.model.inputNames or [])
        self._output_names = list(self.model.outputNames or [])

        self.evaluations = 0
        self.failures = 0
        self.lock = threading.Lock()

        logger.info(
            f"Loaded PMML model from {self.location} "
            f"(inputs: {self.input_names}, outputs: {self.output_names})"
        )

    @staticmethod
    def _load_model(path):
        if not os.path.exists(path):
            raise ConfigurationError(f"PMML model not found: {path}")

        from pypmml import Model

        try:
            return Model.load(path)
        except Exception as e:
            raise ConfigurationError(f"Could not load PMML model {path}: {e}") from e

    @property
    def input_names(self):
        return list(self._input_names)

    @property
    def output_names(self):
        return list(self._output_names)

    def evaluate(self, inputs):
        """
        Score one request.

        Args:
            inputs: dict model input name -> scalar

        Returns:
            dict: model output name -> scalar

        Raises:
            ModelEvaluationError: a required input is missing or the
                library rejected the request
        """
        missing = [name for name in self._input_names if name not in inputs]
        if missing:
            with self.lock:
                self.failures += 1
            raise ModelEvaluationError(f"Missing required model inputs: {missing}")

        with self.lock:
            try:
                result = self.model.predict(dict(inputs))
            except Exception as e:
                self.failures += 1
                raise ModelEvaluationError(f"PMML evaluation failed: {e}") from e

            if not isinstance(result, dict):
                self.failures += 1
                raise ModelEvaluationError(
                    f"PMML evaluation returned {type(result).__name__}, expected a mapping"
                )

            self.evaluations += 1

        logger.debug(f"Evaluated {inputs} -> {result}")
        return result

    def get_metrics(self):
        """
        Evaluator counters.

        Returns:
            dict: evaluator metrics
        """
        with self.lock:
            return {
                "model_location": self.location,
                "evaluations": self.evaluations,
                "failures": self.failures,
                "model_type": "PMML (pypmml)"
            }

    def close(self):
        """Release the model."""
        if hasattr(self.model, 'close'):
            self.model.close()


def create_evaluator(location=None):
    """
    Create the evaluator.

    Args:
        location: model path (None = PMML_CONFIG)

    Returns:
        PmmlEvaluator instance
    """
    return PmmlEvaluator(location or PMML_CONFIG["model_location"])

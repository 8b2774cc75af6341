"""
errors.py - Processor Error Taxonomy

ConfigurationError is fatal at startup. The other errors are per message:
the message is dropped and the error is raised to the caller (stream runner).
"""


class PmmlProcessorError(Exception):
    """Base class for all processor errors."""


class ConfigurationError(PmmlProcessorError):
    """Invalid mapping syntax or processor settings."""


class FieldNotFoundError(PmmlProcessorError):
    """A configured source path did not resolve."""

    def __init__(self, path, reason=None):
        self.path = path
        message = f"Field not found: '{path}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DecodeError(PmmlProcessorError):
    """Payload could not be turned into a payload tree."""


class ModelEvaluationError(PmmlProcessorError):
    """The PMML evaluator rejected the inputs or failed."""

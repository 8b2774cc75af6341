"""
config.py - Processor Configuration

Central configuration for all processor components.
Contains Kafka, PMML model, mapping, metrics and Redis settings.

Every value can be overridden with an environment variable; they are
read once at import time.
"""

import os

from .errors import ConfigurationError
from .mapping import MappingTable

# Project root directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

DATA_DIR = os.path.join(PROJECT_ROOT, "data")
MODELS_DIR = os.path.join(PROJECT_ROOT, "models")

# =============================================================================
# PMML MODEL + FIELD MAPPING CONFIGURATION
# inputs:  ModelInputName = payload.path.to.field, ...
# outputs: ModelOutputName = payload.path.to.field, ...
# Empty string = identity mapping
# =============================================================================
PMML_CONFIG = {
    "model_location": os.getenv("PMML_MODEL_LOCATION", os.path.join(MODELS_DIR, "iris.pmml")),
    "inputs": os.getenv("PMML_INPUTS", ""),
    "outputs": os.getenv("PMML_OUTPUTS", ""),
}

# =============================================================================
# KAFKA CONFIGURATION
# =============================================================================
KAFKA_CONFIG = {
    "bootstrap_servers": os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
    "input_topic": os.getenv("KAFKA_INPUT_TOPIC", "pmml-input"),
    "output_topic": os.getenv("KAFKA_OUTPUT_TOPIC", "pmml-output"),
    "group_id": os.getenv("KAFKA_GROUP_ID", "pmml-processor"),
    "auto_offset_reset": "earliest"
}

# =============================================================================
# KAFKA PRODUCER CONFIGURATION (CSV replay for demos)
# =============================================================================
PRODUCER_CONFIG = {
    "events_per_second": 100,       # Simulation speed (events/sec)
    "csv_path": os.path.join(DATA_DIR, "iris.csv"),
    "content_type": "application/json"
}

# =============================================================================
# REDIS CONFIGURATION (Optional - for production)
# =============================================================================
REDIS_CONFIG = {
    "host": os.getenv("REDIS_HOST", "localhost"),
    "port": int(os.getenv("REDIS_PORT", "6379")),
    "db": int(os.getenv("REDIS_DB", "0"))
}

# =============================================================================
# METRICS STORE CONFIGURATION
# =============================================================================
METRICS_CONFIG = {
    "backend": os.getenv("METRICS_BACKEND", "file"),  # "file" or "redis"
    "file_path": os.getenv("METRICS_FILE", "/tmp/pmml_processor_metrics.json"),
    "recent_limit": 50,
    "log_interval": 100             # Log progress every N messages
}


def load_mapping_tables(config=None):
    """
    Parse the input and output mapping tables (once, at startup).

    Args:
        config: dict with "inputs" / "outputs" strings (None = PMML_CONFIG)

    Returns:
        tuple: (inputs MappingTable, outputs MappingTable)

    Raises:
        ConfigurationError: mapping syntax is invalid
    """
    config = config if config is not None else PMML_CONFIG

    try:
        inputs = MappingTable.parse_inputs(config.get("inputs"))
    except ConfigurationError as e:
        raise ConfigurationError(f"Invalid inputs mapping: {e}") from e

    try:
        outputs = MappingTable.parse_outputs(config.get("outputs"))
    except ConfigurationError as e:
        raise ConfigurationError(f"Invalid outputs mapping: {e}") from e

    return inputs, outputs


def resolve_model_location(location):
    """
    Turn a model location into a filesystem path.

    Supports plain paths and file: URIs.
    """
    if not location or not str(location).strip():
        raise ConfigurationError("PMML model location is not set")

    location = str(location).strip()
    if location.startswith("file://"):
        return location[len("file://"):]
    if location.startswith("file:"):
        return location[len("file:"):]
    if "://" in location:
        raise ConfigurationError(f"Unsupported model location scheme: {location}")
    return location

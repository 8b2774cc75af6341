"""
pmml_stream - PMML Field-Mapping Stream Processor

Evaluates a PMML model against incoming messages: payload fields are
mapped to model inputs, model outputs are mapped back into the payload.

Components:
    - config: Configuration settings
    - mapping: Mapping tables and dotted-path field extraction
    - codec: Payload decoding/encoding (native map or JSON text)
    - evaluator: pypmml evaluation adapter
    - processor: Per-message orchestration
    - stream_processor: Kafka consume -> process -> produce loop
    - kafka_producer: CSV -> Kafka event simulator
    - metrics_store: Processor counters

Usage:
    # Start processor
    python -m pmml_stream.stream_processor --model models/iris.pmml

    # Send demo events
    python -m pmml_stream.kafka_producer --input data/iris.csv
"""

from .config import (
    KAFKA_CONFIG,
    PMML_CONFIG,
    PRODUCER_CONFIG,
    METRICS_CONFIG,
    load_mapping_tables
)

from .errors import (
    PmmlProcessorError,
    ConfigurationError,
    FieldNotFoundError,
    DecodeError,
    ModelEvaluationError
)

from .mapping import (
    MappingEntry,
    MappingTable,
    resolve_path,
    flatten_payload
)

from .codec import (
    Message,
    PayloadRepresentation,
    decode,
    encode
)

from .evaluator import (
    PmmlEvaluator,
    create_evaluator
)

from .processor import PmmlProcessor

__all__ = [
    # Config
    'KAFKA_CONFIG',
    'PMML_CONFIG',
    'PRODUCER_CONFIG',
    'METRICS_CONFIG',
    'load_mapping_tables',
    # Errors
    'PmmlProcessorError',
    'ConfigurationError',
    'FieldNotFoundError',
    'DecodeError',
    'ModelEvaluationError',
    # Mapping
    'MappingEntry',
    'MappingTable',
    'resolve_path',
    'flatten_payload',
    # Codec
    'Message',
    'PayloadRepresentation',
    'decode',
    'encode',
    # Evaluator
    'PmmlEvaluator',
    'create_evaluator',
    # Processor
    'PmmlProcessor',
]

"""
stream_processor.py - Kafka Stream Processor

Reads records from the input topic, runs them through PmmlProcessor
and writes exactly one record per inbound record to the output topic.

Failed records are logged, counted in the metrics store and skipped;
retry and dead-letter handling belong to the Kafka deployment.

Usage:
    python -m pmml_stream.stream_processor
    python -m pmml_stream.stream_processor --model models/iris.pmml \\
        --inputs "Sepal.Length = payload.sepalLength, ..." \\
        --outputs "Predicted_Species = payload.predictedSpecies"

    # Without Kafka: replay a CSV through the processor
    python -m pmml_stream.stream_processor --mock --csv data/iris.csv
"""

import json
import signal
import sys
import time
import logging
from collections import namedtuple

from kafka import KafkaConsumer, KafkaProducer
from kafka.errors import KafkaError

from .codec import CONTENT_TYPE_HEADER, JSON_CONTENT_TYPE, Message
from .config import KAFKA_CONFIG, METRICS_CONFIG, PMML_CONFIG, PRODUCER_CONFIG
from .errors import ConfigurationError, PmmlProcessorError
from .evaluator import create_evaluator
from .kafka_producer import MockKafkaProducer, iter_events
from .metrics_store import MetricsStore
from .processor import PmmlProcessor

logger = logging.getLogger(__name__)


# Same shape as the kafka-python ConsumerRecord fields we use
MockRecord = namedtuple("MockRecord", ["topic", "key", "value", "headers"])


class MockKafkaConsumer:
    """
    Iterates over in-memory records instead of a Kafka topic.
    """

    def __init__(self, records):
        self.records = list(records)
        self.closed = False

    def __iter__(self):
        return iter(self.records)

    def close(self):
        self.closed = True


def record_to_message(record):
    """
    Kafka record -> Message.

    Header values are decoded to str; the value stays raw bytes.
    """
    headers = {}
    for name, value in record.headers or []:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8", errors="replace")
        headers[name] = value
    return Message(payload=record.value, headers=headers)


def message_to_record(message):
    """
    Message -> (value bytes, header list) for KafkaProducer.send.

    Native map payloads are serialized as JSON since Kafka only carries bytes.
    """
    headers = dict(message.headers)
    payload = message.payload
    if isinstance(payload, dict):
        payload = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers[CONTENT_TYPE_HEADER] = JSON_CONTENT_TYPE
    elif isinstance(payload, str):
        payload = payload.encode("utf-8")

    header_list = [(name, str(value).encode("utf-8")) for name, value in headers.items()]
    return payload, header_list


class StreamingProcessor:
    """
    Kafka consume -> process -> produce loop.

    Pipeline:
        1. Consume record from input topic
        2. PmmlProcessor.process (decode, map, evaluate, map, encode)
        3. Produce one record to output topic
        4. Update metrics store
    """

    def __init__(self, processor, consumer=None, producer=None,
                 metrics_store=None, output_topic=None):
        """
        Args:
            processor: PmmlProcessor
            consumer: iterable of records (None = connect to Kafka)
            producer: object with send()/flush() (None = connect to Kafka)
            metrics_store: MetricsStore (None = config backend)
            output_topic: topic name (None = config)
        """
        self.processor = processor
        self.consumer = consumer
        self.producer = producer
        self.metrics_store = metrics_store or MetricsStore()
        self.output_topic = output_topic or KAFKA_CONFIG["output_topic"]
        self.log_interval = METRICS_CONFIG["log_interval"]

        self.running = False
        self.start_time = None

        logger.info("StreamingProcessor initialized")

    def connect_kafka(self):
        """Create the Kafka consumer and producer if not injected."""
        if self.consumer is None:
            self.consumer = KafkaConsumer(
                KAFKA_CONFIG["input_topic"],
                bootstrap_servers=KAFKA_CONFIG["bootstrap_servers"],
                group_id=KAFKA_CONFIG["group_id"],
                auto_offset_reset=KAFKA_CONFIG["auto_offset_reset"],
                consumer_timeout_ms=1000
            )
            logger.info(f"Subscribed to {KAFKA_CONFIG['input_topic']} at {KAFKA_CONFIG['bootstrap_servers']}")

        if self.producer is None:
            self.producer = KafkaProducer(
                bootstrap_servers=KAFKA_CONFIG["bootstrap_servers"],
                acks='all',
                retries=3
            )

    def handle_record(self, record):
        """
        Process one record and emit its result.

        Returns:
            bool: True if a record was emitted
        """
        try:
            outbound = self.processor.process(record_to_message(record))
        except PmmlProcessorError as e:
            logger.warning(f"Dropping record from {record.topic}: {e}")
            self.metrics_store.record_failure(e)
            return False

        value, headers = message_to_record(outbound)
        self.producer.send(self.output_topic, value=value, key=record.key, headers=headers)

        self.metrics_store.record_success(
            outbound.payload if isinstance(outbound.payload, dict)
            else value.decode("utf-8", errors="replace")
        )
        return True

    def setup_signal_handlers(self):
        """Stop the loop on SIGTERM/SIGINT."""
        def _stop(signum, frame):
            logger.info(f"Received signal {signum}, stopping...")
            self.running = False

        signal.signal(signal.SIGTERM, _stop)
        signal.signal(signal.SIGINT, _stop)

    def run(self, forever=True):
        """
        Main loop.

        Args:
            forever: keep polling after the consumer is exhausted
                (False = single pass, used by mock mode)
        """
        self.connect_kafka()
        self.running = True
        self.start_time = time.time()

        logger.info("="*60)
        logger.info("PMML STREAM PROCESSOR STARTING")
        logger.info("="*60)
        logger.info(f"Output topic: {self.output_topic}")
        logger.info("="*60)

        try:
            while self.running:
                for record in self.consumer:
                    if not self.running:
                        break
                    self.handle_record(record)
                    self._log_progress()

                if not forever:
                    break
        except KafkaError as e:
            logger.error(f"Kafka error: {e}")
            raise
        finally:
            self.stop()

    def _log_progress(self):
        stats = self.metrics_store.snapshot()
        total = stats["processed"] + stats["failed"]
        if total % self.log_interval == 0:
            elapsed = time.time() - self.start_time
            rate = total / elapsed if elapsed > 0 else 0
            logger.info(
                f"Processed {stats['processed']} records "
                f"({rate:.1f} msg/s), failed: {stats['failed']}"
            )
            self.metrics_store.flush(extra={"evaluator": self._evaluator_metrics()})

    def _evaluator_metrics(self):
        evaluator = self.processor.evaluator
        return evaluator.get_metrics() if hasattr(evaluator, "get_metrics") else {}

    def stop(self):
        """Flush output and metrics, close the consumer."""
        self.running = False
        logger.info("Stopping stream processor...")

        if self.producer is not None:
            self.producer.flush()

        metrics = self.metrics_store.flush(extra={"evaluator": self._evaluator_metrics()})
        logger.info(f"Final stats: {metrics['processed']} processed, {metrics['failed']} failed")

        if self.consumer is not None and hasattr(self.consumer, "close"):
            self.consumer.close()

        logger.info("Stream processor stopped")


def build_mock_records(csv_path, limit=None, content_type=None):
    """CSV rows -> MockRecord list (JSON values)."""
    headers = []
    if content_type:
        headers.append((CONTENT_TYPE_HEADER, content_type.encode("utf-8")))

    return [
        MockRecord(KAFKA_CONFIG["input_topic"], None, json.dumps(event).encode("utf-8"), headers)
        for event in iter_events(csv_path, limit=limit)
    ]


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main(argv=None):
    """CLI entry point."""
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(
        description="PMML field-mapping stream processor"
    )
    parser.add_argument(
        "--model",
        default=PMML_CONFIG["model_location"],
        help="PMML model path or file: URI"
    )
    parser.add_argument(
        "--inputs",
        default=PMML_CONFIG["inputs"],
        help="Input mapping, e.g. 'Sepal.Length = payload.sepalLength'"
    )
    parser.add_argument(
        "--outputs",
        default=PMML_CONFIG["outputs"],
        help="Output mapping, e.g. 'Predicted_Species = payload.predictedSpecies'"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Replay a CSV through the processor (no Kafka required)"
    )
    parser.add_argument(
        "--csv",
        default=None,
        help="CSV path for mock mode"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of CSV rows in mock mode"
    )

    args = parser.parse_args(argv)

    try:
        evaluator = create_evaluator(args.model)
        processor = PmmlProcessor.from_config(
            evaluator, {"inputs": args.inputs, "outputs": args.outputs}
        )
    except ConfigurationError as e:
        logger.error(f"Startup failed: {e}")
        sys.exit(1)

    if args.mock:
        csv_path = args.csv or PRODUCER_CONFIG["csv_path"]
        records = build_mock_records(csv_path, args.limit, PRODUCER_CONFIG["content_type"])
        producer = MockKafkaProducer()
        runner = StreamingProcessor(processor, MockKafkaConsumer(records), producer)
        runner.run(forever=False)
        for sent in producer.sent[:10]:
            logger.info(f"Output: {sent['value'].decode('utf-8')}")
    else:
        runner = StreamingProcessor(processor)
        runner.setup_signal_handlers()
        runner.run()


if __name__ == "__main__":
    main()

"""
kafka_producer.py - CSV to Kafka Event Simulator

Reads a CSV file (e.g. the iris data set) and sends each row as a
JSON message to the processor's input topic.

Built for demos and tests.

Usage:
    python -m pmml_stream.kafka_producer
    python -m pmml_stream.kafka_producer --input data/iris.csv --limit 100
    python -m pmml_stream.kafka_producer --rate 10 --no-content-type
"""

import json
import time
import argparse
import logging

import pandas as pd
from kafka import KafkaProducer
from kafka.errors import KafkaError

from .codec import CONTENT_TYPE_HEADER
from .config import KAFKA_CONFIG, PRODUCER_CONFIG

logger = logging.getLogger(__name__)


class MockKafkaProducer:
    """
    Mock producer for running without Kafka.
    Keeps sent records in memory.
    """
    def __init__(self):
        self.sent = []
        logger.info("Using MockKafkaProducer (no Kafka connection)")

    def send(self, topic, value=None, key=None, headers=None):
        self.sent.append({
            "topic": topic,
            "key": key,
            "value": value,
            "headers": list(headers or [])
        })
        if len(self.sent) % 1000 == 0:
            logger.info(f"Mock sent {len(self.sent)} messages")
        return self

    def flush(self):
        logger.info(f"Mock flush: {len(self.sent)} total messages")

    def close(self):
        pass


def row_to_event(row):
    """
    DataFrame row -> JSON-ready dict.

    NaN becomes None and numpy scalars become plain Python values.

    Args:
        row: pandas Series

    Returns:
        dict: message payload
    """
    event = {}
    for column, value in row.items():
        if pd.isna(value):
            event[str(column)] = None
        elif hasattr(value, "item"):
            event[str(column)] = value.item()
        else:
            event[str(column)] = value
    return event


def iter_events(csv_path, limit=None, chunk_size=10000):
    """
    Yield payload dicts from a CSV, chunk by chunk.

    Args:
        csv_path: CSV file path
        limit: maximum number of events (None = all)
        chunk_size: rows per chunk
    """
    count = 0
    for chunk in pd.read_csv(csv_path, chunksize=chunk_size):
        for _, row in chunk.iterrows():
            if limit and count >= limit:
                return
            yield row_to_event(row)
            count += 1


class CsvEventProducer:
    """
    Sends CSV rows to Kafka as events.

    Features:
        - Chunk-based CSV reading (memory efficient)
        - Rate limiting (configurable events/second)
        - JSON serialization with an optional contentType header
    """

    def __init__(self, use_mock=False, content_type=None, producer=None):
        """
        Args:
            use_mock: use MockKafkaProducer instead of Kafka
            content_type: header value (None = PRODUCER_CONFIG, "" = no header)
            producer: pre-built producer
        """
        self.use_mock = use_mock
        self.content_type = PRODUCER_CONFIG["content_type"] if content_type is None else content_type

        if producer is not None:
            self.producer = producer
        elif self.use_mock:
            self.producer = MockKafkaProducer()
        else:
            self.producer = KafkaProducer(
                bootstrap_servers=KAFKA_CONFIG["bootstrap_servers"],
                acks='all',
                retries=3
            )
            logger.info(f"Connected to Kafka: {KAFKA_CONFIG['bootstrap_servers']}")

        self.topic = KAFKA_CONFIG["input_topic"]
        self.events_per_second = PRODUCER_CONFIG["events_per_second"]
        self.total_sent = 0

    def send_event(self, event):
        """Send one payload dict as JSON."""
        headers = []
        if self.content_type:
            headers.append((CONTENT_TYPE_HEADER, self.content_type.encode("utf-8")))

        self.producer.send(
            self.topic,
            value=json.dumps(event).encode("utf-8"),
            headers=headers
        )

    def produce_events(self, csv_path=None, limit=None, rate=None):
        """
        Send CSV rows to Kafka.

        Args:
            csv_path: CSV path (default: config)
            limit: maximum number of events (None = all)
            rate: events per second (None = config, 0 = no limit)

        Returns:
            int: number of events sent
        """
        csv_path = csv_path or PRODUCER_CONFIG["csv_path"]
        rate = self.events_per_second if rate is None else rate

        logger.info("="*60)
        logger.info("KAFKA PRODUCER STARTING")
        logger.info("="*60)
        logger.info(f"CSV Path: {csv_path}")
        logger.info(f"Topic: {self.topic}")
        logger.info(f"Rate: {rate} events/second")
        logger.info(f"Limit: {limit or 'No limit'}")
        logger.info(f"Content type: {self.content_type or 'none'}")
        logger.info("="*60)

        event_count = 0
        start_time = time.time()

        try:
            for event in iter_events(csv_path, limit=limit):
                self.send_event(event)
                event_count += 1

                # Rate limiting
                if rate > 0 and event_count % rate == 0:
                    elapsed = time.time() - start_time
                    expected = event_count / rate
                    if elapsed < expected:
                        time.sleep(expected - elapsed)

            self.producer.flush()

        except KeyboardInterrupt:
            logger.info("Producer interrupted by user")
        except KafkaError as e:
            logger.error(f"Producer error: {e}")
            raise
        finally:
            elapsed = time.time() - start_time
            logger.info(f"Total Events: {event_count:,} in {elapsed:.2f} seconds")

        self.total_sent = event_count
        return event_count

    def close(self):
        """Close the producer."""
        if hasattr(self.producer, 'close'):
            self.producer.close()


def main():
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parser = argparse.ArgumentParser(
        description="CSV to Kafka Producer for the PMML processor"
    )
    parser.add_argument(
        "--input", "-i",
        default=PRODUCER_CONFIG["csv_path"],
        help="CSV file path"
    )
    parser.add_argument(
        "--limit", "-l",
        type=int,
        default=None,
        help="Maximum number of events to send"
    )
    parser.add_argument(
        "--rate", "-r",
        type=int,
        default=PRODUCER_CONFIG["events_per_second"],
        help="Events per second (0 = no limit)"
    )
    parser.add_argument(
        "--no-content-type",
        action="store_true",
        help="Send without a contentType header (processor auto-detects JSON)"
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock producer (no Kafka required)"
    )

    args = parser.parse_args()

    producer = CsvEventProducer(
        use_mock=args.mock,
        content_type="" if args.no_content_type else None
    )

    try:
        producer.produce_events(
            csv_path=args.input,
            limit=args.limit,
            rate=args.rate
        )
    finally:
        producer.close()


if __name__ == "__main__":
    main()

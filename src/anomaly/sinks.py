"""
Anomaly sinks: where detectors send their reports.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import psycopg2
import structlog
from kafka import KafkaProducer
from kafka.errors import KafkaError

from src.core.database import PostgresConnection
from src.data.models import DatabaseConfig

from .models import AnomalyReport

logger = structlog.get_logger(__name__)


class AnomalySink(ABC):
    """Receives anomaly reports"""

    @abstractmethod
    def report(self, report: AnomalyReport) -> bool:
        """Deliver one report

        Returns:
            True if the report was delivered
        """

    def close(self) -> None:
        pass


class LoggingAnomalySink(AnomalySink):
    """Writes reports to the structured log"""

    def report(self, report: AnomalyReport) -> bool:
        logger.warning(
            "Anomaly detected",
            application=report.application,
            key=report.key,
            detector=report.detector,
            timestamp=report.timestamp,
            message=report.message,
        )
        return True


class DatabaseAnomalySink(PostgresConnection, AnomalySink):
    """Stores reports in the ``anomalies`` table"""

    INSERT = """
        INSERT INTO anomalies (
            timestamp, application, key, message, detector
        ) VALUES (
            %(timestamp)s, %(application)s, %(key)s, %(message)s, %(detector)s
        )
    """

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS anomalies (
            id SERIAL PRIMARY KEY,
            timestamp TIMESTAMPTZ NOT NULL,
            application VARCHAR(100) NOT NULL,
            key VARCHAR(255) NOT NULL,
            message TEXT NOT NULL,
            detector VARCHAR(50) NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_anomalies_application
        ON anomalies(application, timestamp DESC);
    """

    def __init__(self, config: DatabaseConfig):
        super().__init__(
            host=config.host,
            port=config.port,
            database=config.database,
            user=config.user,
            password=config.password,
        )

    def ensure_table_exists(self) -> None:
        """Create the anomalies table if it doesn't exist"""
        with self.get_cursor() as cursor:
            cursor.execute(self.CREATE_TABLE)
        logger.info("Anomalies table ready")

    def report(self, report: AnomalyReport) -> bool:
        row = report.to_dict()
        row["timestamp"] = datetime.fromtimestamp(report.timestamp / 1000, tz=timezone.utc)
        try:
            with self.get_cursor() as cursor:
                cursor.execute(self.INSERT, row)
            logger.debug("Anomaly inserted", application=report.application, key=report.key)
            return True
        except psycopg2.Error as e:
            logger.error(
                "Failed to insert anomaly",
                application=report.application,
                key=report.key,
                error=str(e),
            )
            return False


class KafkaAnomalySink(AnomalySink):
    """Publishes reports as JSON messages on a Kafka topic"""

    def __init__(self, bootstrap_servers: str, topic: str = "roots-anomalies"):
        self.topic = topic
        try:
            self.producer = KafkaProducer(
                bootstrap_servers=bootstrap_servers,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda k: k.encode("utf-8"),
            )
            logger.info(
                "Kafka producer initialized",
                bootstrap_servers=bootstrap_servers,
                topic=topic,
            )
        except KafkaError as e:
            logger.error("Failed to initialize Kafka producer", error=str(e))
            raise

    def report(self, report: AnomalyReport) -> bool:
        try:
            self.producer.send(self.topic, key=report.application, value=report.to_dict())
            return True
        except KafkaError as e:
            logger.error(
                "Failed to publish anomaly",
                application=report.application,
                key=report.key,
                error=str(e),
            )
            return False

    def close(self) -> None:
        self.producer.flush()
        self.producer.close()

"""
CLI for the application runtime anomaly monitor.

Usage:
    python -m src.anomaly.monitor [options]
"""

import argparse
import logging
import os
import sys

import structlog

from src.core.logger import setup_logging
from src.data import DatabaseConfig, DataSource, PostgresDataSource, RandomDataSource
from src.stats import StatisticsBackend, get_backend, list_backends

from .analysis import get_analysis, list_analyses
from .detector import Detector
from .models import DetectorConfig
from .scheduler import DetectorScheduler
from .sinks import AnomalySink, DatabaseAnomalySink, KafkaAnomalySink, LoggingAnomalySink

logger = structlog.get_logger(__name__)


def parse_arguments(argv: list[str] | None = None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="Application runtime anomaly monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Monitor an application against the random data source
        python -m src.anomaly.monitor --application shop --data-source random --seed 7

        # Production setup
        python -m src.anomaly.monitor \\
            --application shop \\
            --data-source postgres \\
            --backend rserve --rserve-host rserve \\
            --sink kafka --kafka-servers kafka:9092

        # Run 10 ticks then stop
        python -m src.anomaly.monitor --application shop --iterations 10
        """,
    )

    # Detector settings
    parser.add_argument(
        "--application",
        default=os.getenv("ROOTS_APPLICATION", "sample-app"),
        help="Application to monitor (default: sample-app)",
    )
    parser.add_argument(
        "--analysis",
        nargs="+",
        default=["correlation", "path"],
        choices=list_analyses(),
        help="Detector analyses to run (default: correlation path)",
    )
    parser.add_argument(
        "--period",
        type=int,
        default=60,
        help="Detector period in seconds (default: 60)",
    )
    parser.add_argument(
        "--history",
        type=int,
        default=3600,
        help="History horizon in seconds (default: 3600)",
    )
    parser.add_argument(
        "--guard",
        type=int,
        default=60,
        help="Ingestion lag tolerated before a period is processed, in seconds (default: 60)",
    )

    # Analysis parameters
    parser.add_argument(
        "--correlation-threshold",
        type=float,
        default=0.5,
        help="Correlation below which load and latency are considered decoupled (default: 0.5)",
    )
    parser.add_argument(
        "--dtw-increase-threshold",
        type=float,
        default=20.0,
        help="Warping distance increase in percent (default: 20.0)",
    )
    parser.add_argument(
        "--drift-threshold",
        type=float,
        default=3.0,
        help="Path ratio drift in standard deviations (default: 3.0)",
    )

    # Data source
    parser.add_argument(
        "--data-source",
        choices=["random", "postgres"],
        default=os.getenv("ROOTS_DATA_SOURCE", "random"),
        help="Where request data comes from (default: random)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed of the random data source",
    )

    # Statistics backend
    parser.add_argument(
        "--backend",
        choices=list_backends(),
        default=os.getenv("ROOTS_BACKEND", "native"),
        help="Statistics backend (default: native)",
    )
    parser.add_argument(
        "--rserve-host",
        default=os.getenv("RSERVE_HOST", "localhost"),
        help="Rserve host",
    )
    parser.add_argument(
        "--rserve-port",
        type=int,
        default=int(os.getenv("RSERVE_PORT", "6311")),
        help="Rserve port",
    )
    parser.add_argument(
        "--rserve-pool-size",
        type=int,
        default=4,
        help="Number of pooled Rserve sessions (default: 4)",
    )

    # Anomaly sink
    parser.add_argument(
        "--sink",
        choices=["log", "postgres", "kafka"],
        default="log",
        help="Where anomalies are reported (default: log)",
    )
    parser.add_argument(
        "--kafka-servers",
        default=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
        help="Kafka bootstrap servers (default: localhost:9092)",
    )
    parser.add_argument(
        "--topic",
        default=os.getenv("KAFKA_TOPIC", "roots-anomalies"),
        help="Kafka topic (default: roots-anomalies)",
    )

    # PostgreSQL settings
    parser.add_argument(
        "--postgres-host",
        default=os.getenv("POSTGRES_HOST", "localhost"),
        help="PostgreSQL host",
    )
    parser.add_argument(
        "--postgres-port",
        type=int,
        default=int(os.getenv("POSTGRES_PORT", "5432")),
        help="PostgreSQL port",
    )
    parser.add_argument(
        "--postgres-db",
        default=os.getenv("POSTGRES_DB", "roots_db"),
        help="PostgreSQL database",
    )
    parser.add_argument(
        "--postgres-user",
        default=os.getenv("POSTGRES_USER", "roots"),
        help="PostgreSQL user",
    )
    parser.add_argument(
        "--postgres-password",
        default=os.getenv("POSTGRES_PASSWORD", "roots_password"),
        help="PostgreSQL password",
    )

    # Runtime settings
    parser.add_argument(
        "--iterations",
        type=int,
        help="Run N scheduler ticks then stop (default: infinite)",
    )
    parser.add_argument(
        "--tick",
        type=float,
        default=1.0,
        help="Seconds between scheduler ticks (default: 1.0)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_configs(args) -> list[DetectorConfig]:
    """Build one detector configuration per requested analysis"""
    analysis_configs = {
        "correlation": {
            "correlation_threshold": args.correlation_threshold,
            "distance_increase_threshold": args.dtw_increase_threshold,
        },
        "path": {
            "drift_threshold": args.drift_threshold,
        },
    }
    return [
        DetectorConfig(
            application=args.application,
            analysis=name,
            period_seconds=args.period,
            history_length_seconds=args.history,
            period_guard_seconds=args.guard,
            analysis_config=analysis_configs.get(name, {}),
        )
        for name in args.analysis
    ]


def build_database_config(args) -> DatabaseConfig:
    return DatabaseConfig(
        host=args.postgres_host,
        port=args.postgres_port,
        database=args.postgres_db,
        user=args.postgres_user,
        password=args.postgres_password,
    )


def build_data_source(args) -> DataSource:
    if args.data_source == "postgres":
        return PostgresDataSource(build_database_config(args))
    return RandomDataSource(seed=args.seed)


def build_backend(args) -> StatisticsBackend:
    if args.backend == "rserve":
        return get_backend(
            "rserve",
            {
                "host": args.rserve_host,
                "port": args.rserve_port,
                "pool_size": args.rserve_pool_size,
            },
        )
    return get_backend(args.backend)


def build_sink(args) -> AnomalySink:
    if args.sink == "postgres":
        sink = DatabaseAnomalySink(build_database_config(args))
        sink.ensure_table_exists()
        return sink
    if args.sink == "kafka":
        return KafkaAnomalySink(args.kafka_servers, args.topic)
    return LoggingAnomalySink()


def build_detectors(
    configs: list[DetectorConfig],
    data_source: DataSource,
    backend: StatisticsBackend,
    sink: AnomalySink,
) -> list[Detector]:
    return [
        Detector(
            config,
            get_analysis(config.analysis, config.analysis_config, backend),
            data_source,
            sink,
        )
        for config in configs
    ]


def main(argv: list[str] | None = None):
    """Main entry point"""
    args = parse_arguments(argv)

    # Setup logging
    log_level = getattr(logging, args.log_level)
    setup_logging(level=log_level)

    logger.info("Starting anomaly monitor", application=args.application)

    data_source = backend = sink = None
    try:
        configs = build_configs(args)
        data_source = build_data_source(args)
        backend = build_backend(args)
        sink = build_sink(args)

        scheduler = DetectorScheduler(
            build_detectors(configs, data_source, backend, sink),
            tick_seconds=args.tick,
        )
        scheduler.run(iterations=args.iterations)

        logger.info("Monitor completed successfully")
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Monitor failed", error=str(e), exc_info=True)
        return 1

    finally:
        for resource in (sink, backend, data_source):
            if resource is not None:
                resource.close()


if __name__ == "__main__":
    sys.exit(main())

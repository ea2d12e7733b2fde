"""Main entry point for the Couchbase Prometheus exporter."""
import argparse
import json
import logging
import sys
import signal

from couchbase_exporter.client import ClusterClient
from couchbase_exporter.config import load_config
from couchbase_exporter.exporter import build_registry, create_collectors
from couchbase_exporter.labels import LabelManager
from couchbase_exporter.server import ExporterAPI


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with the traceback under "exc_info"."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    datefmt = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter(datefmt=datefmt))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt,
        ))

    logging.basicConfig(level=level, handlers=[handler])

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Couchbase Exporter - Export cluster service stats to Prometheus"
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to configuration YAML file (defaults are used when omitted)"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Couchbase Exporter")
    logger.info("=" * 60)
    logger.info(f"Configuration loaded from: {args.config or '<defaults>'}")
    logger.info(f"Cluster: {config.cluster.url}")

    client = ClusterClient(config.cluster)
    label_manager = LabelManager(client)

    try:
        collectors = create_collectors(config, client, label_manager)
        registry = build_registry(collectors)
    except Exception as e:
        logger.error(f"Failed to initialize collectors: {e}", exc_info=True)
        sys.exit(1)

    api = ExporterAPI(registry, collectors)

    # Setup signal handlers
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        f"Serving metrics on {config.server.bind_address}:{config.server.port}/metrics"
    )
    try:
        api.run(host=config.server.bind_address, port=config.server.port)
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Main entry point for the metrics conformance checker."""
import argparse
import json
import logging
import sys

from metricscheck.checker import ConformanceChecker, ConformanceError
from metricscheck.config import COMPONENT_KINDS, load_config
from metricscheck.control_api import ControlAPI
from metricscheck.self_metrics import SelfMetrics
from metricscheck.series import observed_from_labels


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        fmt = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr
    )

    # Reduce noise from some libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def load_observed(data_path: str):
    """Load a YAML or JSON dump of already-parsed samples."""
    import yaml

    with open(data_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping of metric name to label sets in {data_path}")
    return observed_from_labels(raw)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Metrics Conformance Checker - Validate metric labels against known schemas"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to schema configuration YAML file"
    )
    parser.add_argument(
        "--component",
        choices=COMPONENT_KINDS,
        help="Component whose schema the data is checked against"
    )
    parser.add_argument(
        "--data",
        "-d",
        help="Path to a YAML/JSON dump of parsed samples"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the control API instead of a one-shot check"
    )
    return parser


def main(argv=None) -> int:
    """Main function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.serve and not (args.component and args.data):
        parser.error("--component and --data are required unless --serve is given")

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)
    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Common metrics declared: {len(config.schemas.common)}")

    checker = ConformanceChecker(config.schemas, SelfMetrics())

    if args.serve:
        logger.info(f"Starting control API on port {config.global_.control_api_port}")
        ControlAPI(checker).run(host="0.0.0.0", port=config.global_.control_api_port)
        return 0

    try:
        response = load_observed(args.data)
    except Exception as e:
        logger.error(f"Failed to load data from {args.data}: {e}")
        return 1

    try:
        result = checker.check(args.component, response)
    except ConformanceError as e:
        report = e.result.to_dict() if e.result is not None else {"error": str(e)}
        print(json.dumps(report, indent=2))
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

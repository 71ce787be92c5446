"""CLI entry point for the lead harvester pipeline.

Usage:
    python -m leadharvest.main [--config path/to/config.yaml] [-v] [URL_FILE ...]
"""

import argparse
import asyncio
import logging
import sys

import yaml

from leadharvest.config import load_config
from leadharvest.orchestrator import run_pipeline


def main() -> None:
    """Parse arguments and run the pipeline."""
    parser = argparse.ArgumentParser(
        description="Lead Harvester: enrich and score developer-tool SaaS candidates",
    )
    parser.add_argument(
        "url_files",
        nargs="*",
        help="Newline-delimited URL files (default: inputs from config)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration YAML (default: $CONFIG_PATH or config/config.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    # Suppress noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)
    logging.getLogger("tldextract").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Lead Harvester starting")

    try:
        config = load_config(args.config)
        asyncio.run(run_pipeline(config, args.url_files or None))
    except FileNotFoundError as e:
        logger.error("Configuration file not found: %s", e)
        sys.exit(1)
    except yaml.YAMLError as e:
        logger.error("Invalid configuration file: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Pipeline interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error("Pipeline failed: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Entry point for the counselling watch pipeline.

Usage:
    python -m counselling_watch.main                    # use default config.yaml
    python -m counselling_watch.main --config my.yaml   # use custom config
    python -m counselling_watch.main --source gmch      # run a single source
    python -m counselling_watch.main --dry-run          # validate config without fetching
"""

from __future__ import annotations

import argparse
import logging
import sys

from counselling_watch.config import load_config
from counselling_watch.pipeline import SourcePipeline


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Counselling announcement watcher — detect new notices on "
        "admission/counselling sites, build per-round timelines and download "
        "the new documents."
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--source",
        type=str,
        default=None,
        help="Run only a specific source by id or name (e.g., 'gmch')",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory for ledgers, metadata and timelines (default: from config)",
    )
    parser.add_argument(
        "--downloads-dir",
        type=str,
        default=None,
        help="Override directory downloaded documents are saved to (default: from config)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and list sources without fetching anything",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug-level logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = load_config(args.config)
    log_level = "DEBUG" if args.verbose else config.log_level
    setup_logging(log_level)

    logger = logging.getLogger(__name__)
    logger.info("Loaded config with %d sources", len(config.sources))

    if args.source:
        wanted = args.source.lower()
        config.sources = [
            s for s in config.sources
            if s.id.lower() == wanted or s.name.lower() == wanted
        ]
        if not config.sources:
            logger.error("No source found matching '%s'", args.source)
            sys.exit(1)
        logger.info("Filtered to source: %s", args.source)

    if args.dry_run:
        logger.info("=== Dry Run ===")
        for src in config.enabled_sources:
            logger.info("  [%s] %s (type=%s, url=%s)", src.id, src.name, src.source_type, src.url)
        logger.info("Dry run complete — nothing fetched.")
        return

    pipeline = SourcePipeline(
        config,
        data_dir=args.data_dir,
        downloads_dir=args.downloads_dir,
    )
    results = pipeline.run()

    failed = [r for r in results if r.failed]
    new_total = sum(r.new_count for r in results)
    logger.info(
        "Done! %d sources processed, %d failed, %d new announcements",
        len(results),
        len(failed),
        new_total,
    )


if __name__ == "__main__":
    main()

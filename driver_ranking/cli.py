"""
Command-line entry point for the scheduled ranking update.

Usage:
    python -m driver_ranking                    # provider from AI_PROVIDER
    python -m driver_ranking --provider azure
    python -m driver_ranking --log-level DEBUG

Exit code 0 on success, 1 on any pipeline failure.
"""
import argparse
import logging

from driver_ranking.logging_config import configure_logging
from driver_ranking.pipeline.manager import run_ranking_update
from driver_ranking.services.llm_backends import BACKENDS

logger = logging.getLogger('driver_ranking.cli')


def build_parser():
    parser = argparse.ArgumentParser(description='Recompute and commit the driver ranking')
    parser.add_argument('--provider', choices=sorted(BACKENDS), default=None,
                        help='Oracle backend (default: AI_PROVIDER env var)')
    parser.add_argument('--log-level', default=None,
                        help='Log level (default: LOG_LEVEL env var)')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    outcome = run_ranking_update(provider=args.provider)
    if not outcome.success:
        logger.error("Script failed: %s", outcome.error)
        return 1
    logger.info("Script finished — %d drivers ranked", len(outcome.new_rankings))
    return 0

#!/usr/bin/env python3
"""
Run one thought review cycle from cron or a CI workflow.

Reads the master password from MASTER_PASSWORD, drains the queue once and
writes a job summary when GITHUB_STEP_SUMMARY is set. Exit codes follow
`thoughts review`: 0 done, 2 drained but a delivery failed, 1 failure.
"""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

from thought_reviewer.config.logging_config import LoggingConfig, setup_logging
from thought_reviewer.config.settings import load_settings
from thought_reviewer.database.operations import StorageError
from thought_reviewer.main import DEFAULT_CONFIG_PATH, build_drainer
from thought_reviewer.review.drainer import CycleReport, CycleStatus
from thought_reviewer.security.credentials import CredentialError


def write_summary(lines: list[str]) -> None:
    summary_file = os.getenv('GITHUB_STEP_SUMMARY')
    if not summary_file:
        return
    with open(summary_file, 'a', encoding='utf-8') as f:
        f.write("# Thought Review Summary\n\n")
        f.write("\n".join(lines) + "\n")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one thought review cycle")
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH, help='Encrypted configuration file')
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    args = parser.parse_args()

    log_file = Path("logs") / f"review_cycle_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    structured_logger = setup_logging(LoggingConfig(
        log_file=log_file,
        log_level=args.log_level,
        console_level=args.log_level,
        enqueue=False
    ))

    master_password = os.getenv('MASTER_PASSWORD')
    if not master_password:
        logger.error("MASTER_PASSWORD environment variable required")
        write_summary(["- **Status**: Failed", "- **Error**: MASTER_PASSWORD not set"])
        return 1

    try:
        settings = load_settings(args.config, master_password)
        report: CycleReport = build_drainer(settings, structured_logger).run_cycle()
    except (CredentialError, StorageError) as e:
        logger.error(f"Review cycle failed: {e}")
        write_summary(["- **Status**: Failed", f"- **Error**: {e}"])
        return 1

    write_summary([
        f"- **Status**: {report.status.value}",
        f"- **Cycle**: {report.cycle_id}",
        f"- **Thoughts claimed**: {len(report.batch)}",
        f"- **Analysis**: {report.analysis_outcome.status.value}",
        f"- **Digest**: {report.digest_outcome.status.value}",
    ])

    if report.status is CycleStatus.DELIVERY_FAILED:
        logger.error("Thoughts were claimed but a delivery failed")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())

# src/stellar_auth/scripts/prune_nonces.py
"""
Cron job to prune spent and expired challenge nonces.

Run this periodically when the in-process prune worker is disabled
(``NONCE_PRUNE_INTERVAL_SECONDS=0``), e.g. hourly from cron.
"""

from __future__ import annotations

import argparse
import logging

from stellar_auth.core.settings import settings
from stellar_auth.db.session import SessionLocal
from stellar_auth.services.pruning import prune_expired_nonces


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete challenge nonces past the retention window")
    parser.add_argument(
        "--retention-seconds",
        type=int,
        default=None,
        help=f"Override NONCE_RETENTION_SECONDS (default {settings.nonce_retention_seconds})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())

    db = SessionLocal()
    try:
        removed = prune_expired_nonces(db, retention_seconds=args.retention_seconds)
    finally:
        db.close()

    print(f"[prune_nonces] removed {removed} nonce rows")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

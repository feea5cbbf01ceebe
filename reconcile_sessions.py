"""
Session block reconciliation script
Usage: python reconcile_sessions.py [--customer ID | --studio ID] [--check]

Activates the oldest pending block of every customer that has pending blocks
but no active block. Safe to run repeatedly (e.g. from cron).
"""
import argparse
import logging
import sys

import config
from database import run_in_transaction
from services import maintenance_service

logging.basicConfig(level=config.LOG_LEVEL, format='%(message)s')
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Activate stuck pending session blocks")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--customer", type=int, help="only this customer")
    scope.add_argument("--studio", type=int, help="only customers of this studio")
    parser.add_argument("--check", action="store_true", help="report violations without changing anything")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.check:
        violations = run_in_transaction(maintenance_service.find_invariant_violations, args.studio)
        for entry in violations["multiple_active"]:
            logger.warning(
                "Customer %s has %s active blocks", entry["customer_id"], entry["active_blocks"]
            )
        logger.info("Customers with stuck pending blocks: %s", violations["stuck_pending"] or "none")
        return 1 if violations["multiple_active"] or violations["stuck_pending"] else 0

    if args.customer is not None:
        block_id = run_in_transaction(maintenance_service.reconcile_customer, args.customer)
        activated = [block_id] if block_id is not None else []
    else:
        activated = run_in_transaction(maintenance_service.reconcile_all, args.studio)

    logger.info("Reconciliation completed: %s block(s) activated", len(activated))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        logger.exception("Reconciliation failed")
        sys.exit(1)

#!/usr/bin/env python3
"""
Recompute the inventory metrics snapshot from the command line.

Usage:
    python scripts/compute_metrics.py                      # Deployment defaults
    python scripts/compute_metrics.py --lookback-weeks 8   # Override a parameter
    python scripts/compute_metrics.py --send-report        # Recompute and mail the report
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings
from models.inventory_metric import RecomputeParams
from services.metrics_service import get_inventory_metrics_service
from services.report_service import get_inventory_report_service
from exceptions import AppError


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute inventory metrics")
    parser.add_argument("--lookback-weeks", type=int, help="Weeks of order history")
    parser.add_argument("--lead-time-days", type=int, help="Supplier lead time in days")
    parser.add_argument("--safety-factor", type=float, help="Safety multiplier")
    parser.add_argument("--slow-percentile", type=float, help="Slow threshold percentile")
    parser.add_argument("--fast-percentile", type=float, help="Fast threshold percentile")
    parser.add_argument("--send-report", action="store_true", help="Also build and mail the weekly report")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    params = RecomputeParams.from_settings(
        settings,
        lookback_weeks=args.lookback_weeks,
        lead_time_days=args.lead_time_days,
        safety_factor=args.safety_factor,
        slow_percentile=args.slow_percentile,
        fast_percentile=args.fast_percentile,
    )

    try:
        if args.send_report:
            result = get_inventory_report_service().run_weekly_report(params)
            run = result.run
        else:
            result = None
            run = get_inventory_metrics_service().recompute(params)
    except AppError as e:
        print(f"✗ {e.code}: {e.message}", file=sys.stderr)
        return 1

    print("")
    print("=" * 60)
    print("INVENTORY METRICS RECOMPUTED")
    print("=" * 60)
    print(f"  Generation:      {run.id}")
    print(f"  Products:        {run.product_count}")
    print(f"  Flavors:         {run.flavor_count}")
    print(f"  Slow threshold:  {run.slow_threshold:.2f} / week")
    print(f"  Fast threshold:  {run.fast_threshold:.2f} / week")
    print(f"  Duration:        {run.duration_ms} ms")

    if result is not None:
        status = "sent" if result.delivered else f"FAILED ({result.delivery_error})"
        print(f"  Report rows:     {result.row_count}")
        print(f"  Email:           {status}")

    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Reports: AWS Billing (Cost Explorer cost by service).

  - report_billing
      get_cost_and_usage for [start, end) grouped by SERVICE; one record per
      service per time period. Cost Explorer is global, so records carry
      region GLOBAL.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from aws_reports import config
from aws_reports.common import _extract_params, _logger, _write_record, na
from inventory_toolset.config import BILLING_GRANULARITY, BILLING_METRIC, GLOBAL_REGION, NA


def _to_float(val: Any) -> Any:
    """Best-effort float conversion; "N/A" when missing or unparsable."""
    try:
        if val is None:
            return NA
        return float(val)
    except (TypeError, ValueError):
        return NA


def _results_by_time(ce, start: date, end: date, metric: str) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    token: Optional[str] = None
    while True:
        params: Dict[str, Any] = {
            "TimePeriod": {"Start": start.isoformat(), "End": end.isoformat()},
            "Metrics": [metric],
            "Granularity": BILLING_GRANULARITY,
            "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
        }
        if token:
            params["NextPageToken"] = token
        resp = ce.get_cost_and_usage(**params)
        results.extend(resp.get("ResultsByTime", []) or [])
        token = resp.get("NextPageToken")
        if not token:
            return results


def report_billing(
    *args,
    start: date,
    end: date,
    metric: str = BILLING_METRIC,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one Billing record per service and period."""
    log = _logger(logger)
    writer, ce = _extract_params(args, kwargs, required=("writer", "ce"))
    config.require_setup()
    if end <= start:
        raise ValueError(f"End date {end.isoformat()} must be after start date {start.isoformat()}")

    log.info("  [billing] Fetching cost and usage data by service...")
    periods = _results_by_time(ce, start, end, metric)
    written = 0
    for period in periods:
        span = period.get("TimePeriod") or {}
        for group in period.get("Groups", []) or []:
            amount = ((group.get("Metrics") or {}).get(metric)) or {}
            keys = group.get("Keys") or []
            _write_record(
                writer=writer,
                report_type="Billing",
                region=GLOBAL_REGION,
                fields=[
                    ("service", na(keys[0] if keys else None)),
                    ("totalCostUsd", _to_float(amount.get("Amount"))),
                    ("unit", na(amount.get("Unit"))),
                    ("periodStart", na(span.get("Start"))),
                    ("periodEnd", na(span.get("End"))),
                ],
            )
            written += 1

    if not written:
        log.info("  [billing] No usage data found for the specified period.")

"""CloudWatch metric averaging utilities.

This module wraps the CloudWatch `GetMetricStatistics` API for the reports:
- Builds the metric window from the `-b/-e` report dates (whole UTC days).
- Asks for the `Average` statistic over one fixed period.
- Returns the earliest datapoint's Average, or the "N/A" placeholder when the
  metric has no datapoints or the call fails. Metric lookups are the one place
  where the reports tolerate API errors instead of aborting the run.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

try:
    from botocore.exceptions import BotoCoreError, ClientError
except Exception as exc:  # pragma: no cover - import guard only
    raise RuntimeError("botocore is required for CloudWatch metrics") from exc

from inventory_toolset.config import METRIC_PERIOD, NA


Number = Union[float, str]


def metric_window(begin: date, end: date) -> Tuple[datetime, datetime]:
    """Return (start, end) covering `begin` 00:00:00 to `end` 23:59:59 UTC."""
    start_dt = datetime.combine(begin, time(0, 0, 0), tzinfo=timezone.utc)
    end_dt = datetime.combine(end, time(23, 59, 59), tzinfo=timezone.utc)
    if end_dt <= start_dt:
        raise ValueError(f"End date {end.isoformat()} is before start date {begin.isoformat()}")
    return start_dt, end_dt


def _dimensions(pairs: Iterable[Tuple[str, str]]) -> List[Mapping[str, str]]:
    return [{"Name": k, "Value": v} for k, v in pairs]


def _earliest_average(datapoints: List[Mapping[str, Any]]) -> Optional[float]:
    """Average of the first datapoint in timestamp order (None if empty)."""
    usable = [d for d in datapoints if d.get("Average") is not None]
    if not usable:
        return None
    usable.sort(key=lambda d: d.get("Timestamp") or datetime.min.replace(tzinfo=timezone.utc))
    return float(usable[0]["Average"])


def average_metric(
    cloudwatch,
    *,
    namespace: str,
    metric: str,
    dims: Iterable[Tuple[str, str]],
    start: datetime,
    end: datetime,
    period: int = METRIC_PERIOD,
    logger: Optional[logging.Logger] = None,
) -> Number:
    """Average of one metric over [start, end], or "N/A".

    Args:
        cloudwatch: Boto3 CloudWatch client for the resource's region.
        namespace: e.g. "AWS/EC2" or "CWAgent".
        metric: e.g. "CPUUtilization".
        dims: (name, value) dimension pairs.
        start: StartTime (UTC).
        end: EndTime (UTC).
        period: Aggregation period in seconds.
    """
    log = logger or logging.getLogger(__name__)
    try:
        resp = cloudwatch.get_metric_statistics(
            Namespace=namespace,
            MetricName=metric,
            Dimensions=_dimensions(dims),
            StartTime=start,
            EndTime=end,
            Period=int(period),
            Statistics=["Average"],
        )
    except (ClientError, BotoCoreError) as exc:
        log.warning("[cloudwatch] %s/%s unavailable: %s", namespace, metric, exc)
        return NA

    value = _earliest_average(resp.get("Datapoints", []) or [])
    return NA if value is None else value

"""Reports: AWS commitments (Savings Plans + Reserved Instances).

  - report_savings_plans
      Savings Plans are account-level; the API answers the same list from any
      region. Records are written once per output writer so a multi-region
      run does not duplicate them. Region = the plan's own region, or GLOBAL
      for plans that apply everywhere (Compute SPs).

  - report_reserved_instances
      EC2 Reserved Instances for the client's region.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    na,
)
from inventory_toolset.config import GLOBAL_REGION, NA


# ------------------------------- helpers ---------------------------------- #

def _writer_stream_id(writer: Any) -> str:
    """Best-effort stable identity for the underlying output file."""
    inner = getattr(writer, "inner", None)
    if inner is not None:
        return _writer_stream_id(inner)
    path = getattr(writer, "path", None)
    if path is not None:
        return str(path)
    return f"id:{id(writer)}"


def _list_savings_plans(savingsplans) -> List[Dict[str, Any]]:
    plans: List[Dict[str, Any]] = []
    token: Optional[str] = None
    while True:
        params: Dict[str, Any] = {}
        if token:
            params["nextToken"] = token
        resp = savingsplans.describe_savings_plans(**params)
        plans.extend(resp.get("savingsPlans", []) or [])
        token = resp.get("nextToken")
        if not token:
            return plans


_ALREADY_RAN: Set[Tuple[str, str]] = set()


def reset_run_guard() -> None:
    """Forget which outputs already received Savings Plans (new run / tests)."""
    _ALREADY_RAN.clear()


# ------------------------------- reports ---------------------------------- #

def report_savings_plans(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one Savings Plan record per plan (once per output)."""
    log = _logger(logger)
    writer, savingsplans = _extract_params(
        args, kwargs, required=("writer", "savingsplans")
    )
    config.require_setup()

    key = (_writer_stream_id(writer), "savings_plans")
    if key in _ALREADY_RAN:
        log.info("  [sp] Savings Plans already reported for this run.")
        return
    _ALREADY_RAN.add(key)

    log.info("  [sp] Fetching Savings Plans data...")
    plans = _list_savings_plans(savingsplans)
    if not plans:
        log.info("  [sp] No Savings Plans found.")
        return

    for sp in plans:
        _write_record(
            writer=writer,
            report_type="Savings Plan",
            region=sp.get("region") or GLOBAL_REGION,
            fields=[
                ("savingsPlansId", sp.get("savingsPlanId")),
                ("savingsPlansType", na(sp.get("savingsPlanType"))),
                ("instanceFamily", na(sp.get("ec2InstanceFamily"))),
                ("paymentOption", na(sp.get("paymentOption"))),
                ("commitment", na(sp.get("commitment"))),
                ("startDate", na(sp.get("start"))),
                ("endDate", na(sp.get("end"))),
                ("notes", NA),
            ],
        )


def report_reserved_instances(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one Reserved Instance record per reservation in the client's region."""
    log = _logger(logger)
    writer, ec2 = _extract_params(args, kwargs, required=("writer", "ec2"))
    config.require_setup()
    region = _client_region(ec2)

    log.info("  [ri] Fetching Reserved Instances data...")
    ris = ec2.describe_reserved_instances().get("ReservedInstances", []) or []
    if not ris:
        log.info("  [ri] No Reserved Instances found.")
        return

    for ri in ris:
        duration = ri.get("Duration")
        _write_record(
            writer=writer,
            report_type="Reserved Instance",
            region=region,
            fields=[
                ("id", ri.get("ReservedInstancesId")),
                ("instanceType", na(ri.get("InstanceType"))),
                ("scope", na(ri.get("Scope"))),
                ("availabilityZone", na(ri.get("AvailabilityZone"))),
                ("instanceCount", na(ri.get("InstanceCount"))),
                ("start", na(ri.get("Start"))),
                ("expires", na(ri.get("End"))),
                ("term", NA if duration is None else str(duration)),
                ("paymentOption", na(ri.get("PaymentOption"))),
                ("offeringClass", na(ri.get("OfferingClass"))),
                ("hourlyCharges", na(ri.get("UsagePrice"))),
                ("platform", na(ri.get("ProductDescription"))),
                ("state", na(ri.get("State"))),
            ],
        )

"""Reports: Amazon RDS DB instances.

Included reports:

  - report_rds_instances
      One record per DB instance with class specs, allocated storage and
      average CPU / memory utilization over the report window.

Design:
  - Memo map keyed by (DBInstanceClass, Engine), built once per region.
    Specs come from the matching EC2 instance type ("db.r6g.large" ->
    "r6g.large"). describe_orderable_db_instance_options is still consulted
    as a fallback (first page only), but its options usually omit
    Vcpu/Memory, so classes without an EC2 twin mostly end up "N/A".
  - Spec and Name tag lookups are tolerant ("N/A"); everything else fails fast.
  - Memory % = (1 - FreeableMemory / total bytes) * 100.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    na,
    tags_to_dict,
)
from core.cloudwatch import average_metric
from inventory_toolset.config import METRIC_PERIOD, NA

REPORT_TYPE = "RDS"
_BYTES_PER_GIB = 1073741824

Specs = Tuple[Any, Any]


# -------------------------------- helpers -------------------------------- #

def _list_db_instances(rds) -> List[Dict[str, Any]]:
    dbs: List[Dict[str, Any]] = []
    paginator = rds.get_paginator("describe_db_instances")
    for page in paginator.paginate():
        dbs.extend(page.get("DBInstances", []) or [])
    return dbs


def _orderable_specs(rds, engine: str, db_class: str, log: logging.Logger) -> Specs:
    # first page only; later pages repeat the class across versions/AZ options
    try:
        paginator = rds.get_paginator("describe_orderable_db_instance_options")
        page = next(iter(paginator.paginate(Engine=engine, DBInstanceClass=db_class)), {})
    except (ClientError, BotoCoreError) as exc:
        log.debug("[rds] orderable options for %s/%s unavailable: %s", engine, db_class, exc)
        return NA, NA
    for opt in page.get("OrderableDBInstanceOptions", []) or []:
        if opt.get("DBInstanceClass") != db_class:
            continue
        vcpu, mem = opt.get("Vcpu"), opt.get("Memory")
        if vcpu is not None or mem is not None:
            return na(vcpu), na(mem)
    return NA, NA


def _ec2_specs(ec2, db_class: str, log: logging.Logger) -> Specs:
    if ec2 is None or not db_class.startswith("db."):
        return NA, NA
    itype = db_class[len("db."):]
    try:
        resp = ec2.describe_instance_types(InstanceTypes=[itype])
    except (ClientError, BotoCoreError) as exc:
        log.debug("[rds] no EC2 specs for %s: %s", itype, exc)
        return NA, NA
    for it in resp.get("InstanceTypes", []) or []:
        if it.get("InstanceType") != itype:
            continue
        vcpu = (it.get("VCpuInfo") or {}).get("DefaultVCpus")
        mib = (it.get("MemoryInfo") or {}).get("SizeInMiB")
        return na(vcpu), (NA if mib is None else round(float(mib) / 1024.0, 2))
    return NA, NA


def db_class_specs(
    rds,
    pairs: Iterable[Tuple[str, str]],
    *,
    ec2=None,
    logger: Optional[logging.Logger] = None,
) -> Dict[Tuple[str, str], Specs]:
    """Memo map: (DBInstanceClass, Engine) -> (vCPUs, memory GiB)."""
    log = _logger(logger)
    specs: Dict[Tuple[str, str], Specs] = {}
    for db_class, engine in sorted(set(pairs)):
        vcpu, mem = _ec2_specs(ec2, db_class, log)
        if vcpu == NA and mem == NA:
            vcpu, mem = _orderable_specs(rds, engine, db_class, log)
        specs[(db_class, engine)] = (vcpu, mem)
    return specs


def _db_name(rds, db: Dict[str, Any], log: logging.Logger) -> str:
    tags = db.get("TagList")
    if tags is None:
        try:
            tags = rds.list_tags_for_resource(
                ResourceName=db.get("DBInstanceArn", "")
            ).get("TagList", [])
        except (ClientError, BotoCoreError) as exc:
            log.debug("[rds] list_tags_for_resource failed: %s", exc)
            tags = []
    return na(tags_to_dict(tags).get("Name"))


def memory_percent(mem_gib: Any, free_bytes: Any) -> Any:
    """Used memory % from total GiB and average free bytes ("N/A" if unknown)."""
    if mem_gib in (None, NA) or free_bytes in (None, NA):
        return NA
    total = float(mem_gib) * _BYTES_PER_GIB
    if total <= 0:
        return NA
    return round((1.0 - float(free_bytes) / total) * 100.0, 2)


# --------------------------------- report --------------------------------- #

def report_rds_instances(  # pylint: disable=too-many-locals
    *args,
    start: datetime,
    end: datetime,
    period: int = METRIC_PERIOD,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one RDS record per DB instance in the client's region."""
    log = _logger(logger)
    writer, rds, cloudwatch, ec2 = _extract_params(
        args, kwargs, required=("writer", "rds", "cloudwatch"), optional=("ec2",)
    )
    config.require_setup()
    region = _client_region(rds)

    log.info("  [rds] Fetching DB instance data...")
    dbs = _list_db_instances(rds)
    if not dbs:
        log.info("  [rds] No DB instances found.")
        return

    pairs = {(db.get("DBInstanceClass") or "", db.get("Engine") or "") for db in dbs}
    engines: Set[str] = {e for _, e in pairs}
    log.info("  [rds] Caching specs for engines: %s...", " ".join(sorted(engines)))
    specs = db_class_specs(rds, pairs, ec2=ec2, logger=log)

    log.info("  [rds] Processing and writing to JSON...")
    for db in dbs:
        dbid = db.get("DBInstanceIdentifier") or ""
        db_class = db.get("DBInstanceClass") or ""
        engine = db.get("Engine") or ""
        vcpu, mem_gib = specs.get((db_class, engine), (NA, NA))
        dims = [("DBInstanceIdentifier", dbid)]

        cpu = average_metric(
            cloudwatch, namespace="AWS/RDS", metric="CPUUtilization",
            dims=dims, start=start, end=end, period=period, logger=log,
        )
        free_mem = average_metric(
            cloudwatch, namespace="AWS/RDS", metric="FreeableMemory",
            dims=dims, start=start, end=end, period=period, logger=log,
        )

        _write_record(
            writer=writer,
            report_type=REPORT_TYPE,
            region=region,
            fields=[
                ("name", _db_name(rds, db, log)),
                ("instanceId", dbid),
                ("instanceState", na(db.get("DBInstanceStatus"))),
                ("type", REPORT_TYPE),
                ("engine", na(engine)),
                ("instanceType", na(db_class)),
                ("elasticIp", NA),
                ("launchTime", na(db.get("InstanceCreateTime"))),
                ("vCPUs", vcpu),
                ("memoryGib", mem_gib),
                ("diskGib", na(db.get("AllocatedStorage"))),
                ("avgCpuPercent", cpu),
                ("avgMemoryPercent", memory_percent(mem_gib, free_mem)),
            ],
        )
        log.debug("[rds] Wrote DB instance: %s (%s)", dbid, db_class)

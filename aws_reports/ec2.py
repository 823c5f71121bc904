"""Reports: Amazon EC2 instances.

Included reports:

  - report_ec2_instances
      One record per instance: identity, state, type specs (vCPU / memory),
      disk size, and average CPU / memory utilization over the report window.

Design:
  - Dependencies via aws_reports.config.setup(...).
  - Per-region memo map of instance type -> (vCPUs, memory GiB), fetched once
    with describe_instance_types before any instance is written.
  - Disk size is the root volume by default; sum_all_ebs=True sums every
    attached EBS volume.
  - CloudWatch via core.cloudwatch.average_metric ("N/A" when unavailable).
  - Any other API error propagates (the run fails fast).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    iter_chunks,
    na,
    name_tag,
)
from core.cloudwatch import average_metric
from inventory_toolset.config import METRIC_PERIOD, NA

REPORT_TYPE = "EC2"

# describe_instance_types accepts at most 100 names per call
_TYPES_PER_CALL = 100
_VOLUMES_PER_CALL = 200

Specs = Tuple[Any, Any]


# -------------------------------- helpers -------------------------------- #

def _list_instances(ec2) -> List[Dict[str, Any]]:
    insts: List[Dict[str, Any]] = []
    paginator = ec2.get_paginator("describe_instances")
    for page in paginator.paginate():
        for r in page.get("Reservations", []) or []:
            insts.extend(r.get("Instances", []) or [])
    return insts


def _mib_to_gib(mib: Any) -> Any:
    if mib is None:
        return NA
    return round(float(mib) / 1024.0, 2)


def instance_type_specs(ec2, types: Iterable[str]) -> Dict[str, Specs]:
    """Memo map: instance type -> (vCPUs, memory GiB)."""
    specs: Dict[str, Specs] = {}
    wanted = sorted({t for t in types if t})
    for chunk in iter_chunks(wanted, _TYPES_PER_CALL):
        resp = ec2.describe_instance_types(InstanceTypes=chunk)
        for it in resp.get("InstanceTypes", []) or []:
            name = it.get("InstanceType")
            if not name:
                continue
            vcpu = (it.get("VCpuInfo") or {}).get("DefaultVCpus")
            mem = (it.get("MemoryInfo") or {}).get("SizeInMiB")
            specs[name] = (na(vcpu), _mib_to_gib(mem))
    return specs


def _root_volume_id(inst: Dict[str, Any]) -> Optional[str]:
    root = inst.get("RootDeviceName")
    if not root:
        return None
    for bdm in inst.get("BlockDeviceMappings", []) or []:
        if bdm.get("DeviceName") == root:
            return (bdm.get("Ebs") or {}).get("VolumeId")
    return None


def _all_volume_ids(inst: Dict[str, Any]) -> List[str]:
    out: List[str] = []
    for bdm in inst.get("BlockDeviceMappings", []) or []:
        vid = (bdm.get("Ebs") or {}).get("VolumeId")
        if vid:
            out.append(vid)
    return out


def _volume_sizes(ec2, vol_ids: Iterable[str]) -> Dict[str, int]:
    sizes: Dict[str, int] = {}
    vids = sorted({v for v in vol_ids if v})
    for chunk_ids in iter_chunks(vids, _VOLUMES_PER_CALL):
        resp = ec2.describe_volumes(VolumeIds=chunk_ids)
        for v in resp.get("Volumes", []) or []:
            vid = v.get("VolumeId")
            if vid:
                sizes[vid] = int(v.get("Size") or 0)
    return sizes


def _disk_gib(inst: Dict[str, Any], sizes: Dict[str, int], sum_all_ebs: bool) -> int:
    if sum_all_ebs:
        return sum(sizes.get(v, 0) for v in _all_volume_ids(inst))
    root = _root_volume_id(inst)
    return sizes.get(root, 0) if root else 0


# --------------------------------- report --------------------------------- #

def report_ec2_instances(  # pylint: disable=too-many-locals
    *args,
    start: datetime,
    end: datetime,
    sum_all_ebs: bool = False,
    period: int = METRIC_PERIOD,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one EC2 record per instance in the client's region."""
    log = _logger(logger)
    writer, ec2, cloudwatch = _extract_params(
        args, kwargs, required=("writer", "ec2", "cloudwatch")
    )
    config.require_setup()
    region = _client_region(ec2)

    log.info("  [ec2] Fetching instance data...")
    insts = _list_instances(ec2)
    if not insts:
        log.info("  [ec2] No instances found.")
        return

    types = {i.get("InstanceType") for i in insts}
    log.info("  [ec2] Caching specs for %d instance types...", len(types))
    specs = instance_type_specs(ec2, types)

    wanted_vols: List[str] = []
    for inst in insts:
        if sum_all_ebs:
            wanted_vols.extend(_all_volume_ids(inst))
        else:
            root = _root_volume_id(inst)
            if root:
                wanted_vols.append(root)
    sizes = _volume_sizes(ec2, wanted_vols)

    log.info("  [ec2] Processing and writing to JSON...")
    for inst in insts:
        iid = inst.get("InstanceId") or ""
        itype = inst.get("InstanceType") or ""
        vcpu, mem_gib = specs.get(itype, (NA, NA))
        dims = [("InstanceId", iid)]

        cpu = average_metric(
            cloudwatch, namespace="AWS/EC2", metric="CPUUtilization",
            dims=dims, start=start, end=end, period=period, logger=log,
        )
        mem_pct = average_metric(
            cloudwatch, namespace="CWAgent", metric="mem_used_percent",
            dims=dims, start=start, end=end, period=period, logger=log,
        )

        _write_record(
            writer=writer,
            report_type=REPORT_TYPE,
            region=region,
            fields=[
                ("name", name_tag(inst.get("Tags"))),
                ("instanceId", iid),
                ("instanceState", na((inst.get("State") or {}).get("Name"))),
                ("type", REPORT_TYPE),
                ("instanceType", na(itype)),
                ("elasticIp", na(inst.get("PublicIpAddress"))),
                ("launchTime", na(inst.get("LaunchTime"))),
                ("vCPUs", vcpu),
                ("memoryGib", mem_gib),
                ("diskGib", _disk_gib(inst, sizes, sum_all_ebs)),
                ("avgCpuPercent", cpu),
                ("avgMemoryPercent", mem_pct),
            ],
        )
        log.debug("[ec2] Wrote instance: %s (%s)", iid, itype)

"""Reports: Amazon EBS volumes.

Included reports:

  - report_ebs_volumes
      Inventory of every volume: type, size, IOPS, throughput, source
      snapshot, AZ and state.

  - report_ebs_utilization
      Attachment status plus CloudWatch averages for the attached instance:
      CWAgent disk_used_percent, AWS/EC2 DiskReadBytes / DiskWriteBytes.
      Unattached volumes report "Not Attached" and "N/A" metrics without
      calling CloudWatch.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    na,
    name_tag,
)
from core.cloudwatch import average_metric
from inventory_toolset.config import METRIC_PERIOD, NA, NOT_ATTACHED


def _list_volumes(ec2) -> List[Dict[str, Any]]:
    vols: List[Dict[str, Any]] = []
    paginator = ec2.get_paginator("describe_volumes")
    for page in paginator.paginate():
        vols.extend(page.get("Volumes", []) or [])
    return vols


def attached_instance(vol: Dict[str, Any]) -> str:
    """Instance id of the first attachment, or "Not Attached"."""
    attachments = vol.get("Attachments") or []
    if not attachments:
        return NOT_ATTACHED
    return attachments[0].get("InstanceId") or NOT_ATTACHED


def report_ebs_volumes(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one EBS record per volume in the client's region."""
    log = _logger(logger)
    writer, ec2 = _extract_params(args, kwargs, required=("writer", "ec2"))
    config.require_setup()
    region = _client_region(ec2)

    vols = _list_volumes(ec2)
    if not vols:
        log.info("  [ebs] No volumes found.")
        return

    for vol in vols:
        _write_record(
            writer=writer,
            report_type="EBS",
            region=region,
            fields=[
                ("name", name_tag(vol.get("Tags"))),
                ("volumeId", vol.get("VolumeId")),
                ("type", na(vol.get("VolumeType"))),
                ("size", na(vol.get("Size"))),
                ("iops", na(vol.get("Iops"))),
                ("throughput", na(vol.get("Throughput"))),
                ("snapshotId", na(vol.get("SnapshotId"))),
                ("created", na(vol.get("CreateTime"))),
                ("availabilityZone", na(vol.get("AvailabilityZone"))),
                ("volumeState", na(vol.get("State"))),
            ],
        )


def report_ebs_utilization(
    *args,
    start: datetime,
    end: datetime,
    period: int = METRIC_PERIOD,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one EBS Utilization record per volume in the client's region."""
    log = _logger(logger)
    writer, ec2, cloudwatch = _extract_params(
        args, kwargs, required=("writer", "ec2", "cloudwatch")
    )
    config.require_setup()
    region = _client_region(ec2)

    vols = _list_volumes(ec2)
    if not vols:
        log.info("  [ebs] No volumes found.")
        return

    for vol in vols:
        instance_id = attached_instance(vol)
        used_pct: Any = NA
        read_bytes: Any = NA
        write_bytes: Any = NA
        if instance_id != NOT_ATTACHED:
            dims = [("InstanceId", instance_id)]
            used_pct = average_metric(
                cloudwatch, namespace="CWAgent", metric="disk_used_percent",
                dims=dims, start=start, end=end, period=period, logger=log,
            )
            read_bytes = average_metric(
                cloudwatch, namespace="AWS/EC2", metric="DiskReadBytes",
                dims=dims, start=start, end=end, period=period, logger=log,
            )
            write_bytes = average_metric(
                cloudwatch, namespace="AWS/EC2", metric="DiskWriteBytes",
                dims=dims, start=start, end=end, period=period, logger=log,
            )

        _write_record(
            writer=writer,
            report_type="EBS Utilization",
            region=region,
            fields=[
                ("volumeId", vol.get("VolumeId")),
                ("sizeGib", na(vol.get("Size"))),
                ("state", na(vol.get("State"))),
                ("attachedInstanceId", instance_id),
                ("diskUsedPercent", used_pct),
                ("avgReadBytes", read_bytes),
                ("avgWriteBytes", write_bytes),
                ("creationTime", na(vol.get("CreateTime"))),
            ],
        )

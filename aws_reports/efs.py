"""Reports: Amazon EFS file systems (size by storage class and status)."""

from __future__ import annotations

import logging
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


def _list_file_systems(efs) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    paginator = efs.get_paginator("describe_file_systems")
    for page in paginator.paginate():
        out.extend(page.get("FileSystems", []) or [])
    return out


def report_efs_filesystems(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one EFS record per file system in the client's region."""
    log = _logger(logger)
    writer, efs = _extract_params(args, kwargs, required=("writer", "efs"))
    config.require_setup()
    region = _client_region(efs)

    filesystems = _list_file_systems(efs)
    if not filesystems:
        log.info("  [efs] No file systems found.")
        return

    for fs in filesystems:
        size = fs.get("SizeInBytes") or {}
        _write_record(
            writer=writer,
            report_type="EFS",
            region=region,
            fields=[
                ("name", fs.get("Name") or name_tag(fs.get("Tags"))),
                ("fileSystemId", fs.get("FileSystemId")),
                ("encrypted", na(fs.get("Encrypted"))),
                ("totalSize", na(size.get("Value"))),
                ("sizeInEfsStandard", na(size.get("ValueInStandard"))),
                ("sizeInEfsIa", na(size.get("ValueInIA"))),
                ("sizeInArchive", na(size.get("ValueInArchive"))),
                ("fileSystemState", na(fs.get("LifeCycleState"))),
                ("creationTime", na(fs.get("CreationTime"))),
            ],
        )

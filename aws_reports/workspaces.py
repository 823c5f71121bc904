"""Reports: Amazon WorkSpaces.

  - report_workspaces
      Compute bundle, volumes, OS, running mode, protocols, state and the
      last time a user connected (describe_workspaces_connection_status;
      "N/A" when unknown or when the lookup fails).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    na,
)
from inventory_toolset.config import NA


def _list_workspaces(workspaces) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    paginator = workspaces.get_paginator("describe_workspaces")
    for page in paginator.paginate():
        out.extend(page.get("Workspaces", []) or [])
    return out


def format_last_active(ts: Any) -> str:
    """'YYYY-MM-DD HH:MM:SS UTC' for a datetime or epoch seconds, else "N/A"."""
    if ts is None or ts == "":
        return NA
    if isinstance(ts, (int, float)):
        ts = datetime.fromtimestamp(float(ts), tz=timezone.utc)
    if not isinstance(ts, datetime):
        return NA
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _last_active(workspaces, workspace_id: str, log: logging.Logger) -> str:
    try:
        resp = workspaces.describe_workspaces_connection_status(WorkspaceIds=[workspace_id])
    except (ClientError, BotoCoreError) as exc:
        log.warning("[workspaces] connection status for %s unavailable: %s", workspace_id, exc)
        return NA
    statuses = resp.get("WorkspacesConnectionStatus", []) or []
    if not statuses:
        return NA
    return format_last_active(statuses[0].get("LastKnownUserConnectionTimestamp"))


def report_workspaces(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one Workspaces record per WorkSpace in the client's region."""
    log = _logger(logger)
    writer, workspaces = _extract_params(args, kwargs, required=("writer", "workspaces"))
    config.require_setup()
    region = _client_region(workspaces)

    items = _list_workspaces(workspaces)
    if not items:
        log.info("  [workspaces] No WorkSpaces found.")
        return

    for ws in items:
        wid = ws.get("WorkspaceId") or NA
        props = ws.get("WorkspaceProperties") or {}
        _write_record(
            writer=writer,
            report_type="Workspaces",
            region=region,
            fields=[
                ("workspaceId", wid),
                ("username", na(ws.get("UserName"))),
                ("compute", na(props.get("ComputeTypeName"))),
                ("rootVolume", na(props.get("RootVolumeSizeGib"))),
                ("userVolume", na(props.get("UserVolumeSizeGib"))),
                ("os", na((ws.get("OperatingSystem") or {}).get("Type"))),
                ("runningMode", na(props.get("RunningMode"))),
                ("protocol", ", ".join(props.get("Protocols", []) or [])),
                ("status", na(ws.get("State"))),
                ("lastActive", _last_active(workspaces, wid, log) if wid != NA else NA),
            ],
        )

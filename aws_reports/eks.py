"""Reports: Amazon EKS clusters.

  - report_eks_clusters
      list_clusters, then describe_cluster per name: status, Kubernetes
      version and creation date.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from aws_reports import config
from aws_reports.common import (
    _client_region,
    _extract_params,
    _logger,
    _write_record,
    na,
)


def _list_clusters(eks) -> List[str]:
    names: List[str] = []
    p = eks.get_paginator("list_clusters")
    for page in p.paginate():
        names.extend(page.get("clusters", []) or [])
    return names


def report_eks_clusters(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one EKS record per cluster in the client's region."""
    log = _logger(logger)
    writer, eks = _extract_params(args, kwargs, required=("writer", "eks"))
    config.require_setup()
    region = _client_region(eks)

    names = _list_clusters(eks)
    if not names:
        log.info("  [eks] No clusters found.")
        return

    for cluster_name in names:
        cluster = eks.describe_cluster(name=cluster_name).get("cluster", {}) or {}
        _write_record(
            writer=writer,
            report_type="EKS",
            region=region,
            fields=[
                ("name", cluster.get("name") or cluster_name),
                ("status", na(cluster.get("status"))),
                ("kubernetesVersion", na(cluster.get("version"))),
                ("dateCreated", na(cluster.get("createdAt"))),
                ("provider", "AWS"),
            ],
        )
        log.debug("[eks] Wrote cluster: %s", cluster_name)

"""Reports: Elastic Load Balancing v2 (ALB / NLB / GWLB)."""

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
)

_PAGE_SIZE = 400


def _list_load_balancers(elbv2) -> List[Dict[str, Any]]:
    lbs: List[Dict[str, Any]] = []
    paginator = elbv2.get_paginator("describe_load_balancers")
    for page in paginator.paginate(PaginationConfig={"PageSize": _PAGE_SIZE}):
        lbs.extend(page.get("LoadBalancers", []) or [])
    return lbs


def report_load_balancers(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write one ELB record per load balancer in the client's region."""
    log = _logger(logger)
    writer, elbv2 = _extract_params(args, kwargs, required=("writer", "elbv2"))
    config.require_setup()
    region = _client_region(elbv2)

    lbs = _list_load_balancers(elbv2)
    if not lbs:
        log.info("  [elb] No load balancers found.")
        return

    for lb in lbs:
        _write_record(
            writer=writer,
            report_type="ELB",
            region=region,
            fields=[
                ("name", na(lb.get("LoadBalancerName"))),
                ("state", na((lb.get("State") or {}).get("Code"))),
                ("type", na(lb.get("Type"))),
                ("scheme", na(lb.get("Scheme"))),
                ("ipAddressType", na(lb.get("IpAddressType"))),
                ("vpcId", na(lb.get("VpcId"))),
                ("securityGroups", ", ".join(lb.get("SecurityGroups", []) or [])),
                ("dateCreated", na(lb.get("CreatedTime"))),
                ("dnsName", na(lb.get("DNSName"))),
            ],
        )

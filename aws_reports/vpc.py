"""Reports: VPC networking summary.

Writes one record per networking service with its count in the region:
VPCs, subnets, internet/NAT gateways, route tables, network ACLs, security
groups and Elastic IPs (total / used / idle, where "used" means associated).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from aws_reports import config
from aws_reports.common import _client_region, _extract_params, _logger, _write_record

# (service label, paginator name, result key)
_COUNTED: Tuple[Tuple[str, str, str], ...] = (
    ("VPC", "describe_vpcs", "Vpcs"),
    ("Subnet", "describe_subnets", "Subnets"),
    ("Internet Gateway", "describe_internet_gateways", "InternetGateways"),
    ("NAT Gateway", "describe_nat_gateways", "NatGateways"),
    ("Route Table", "describe_route_tables", "RouteTables"),
    ("Network ACL", "describe_network_acls", "NetworkAcls"),
    ("Security Group", "describe_security_groups", "SecurityGroups"),
)


def _count(ec2, paginator_name: str, key: str) -> int:
    total = 0
    for page in ec2.get_paginator(paginator_name).paginate():
        total += len(page.get(key, []) or [])
    return total


def elastic_ip_counts(ec2) -> Tuple[int, int, int]:
    """Return (total, used, idle) Elastic IP counts."""
    addrs = ec2.describe_addresses().get("Addresses", []) or []
    used = sum(1 for a in addrs if a.get("AssociationId"))
    return len(addrs), used, len(addrs) - used


def report_vpc_summary(
    *args,
    logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Write the VPC service counts for the client's region."""
    log = _logger(logger)
    writer, ec2 = _extract_params(args, kwargs, required=("writer", "ec2"))
    config.require_setup()
    region = _client_region(ec2)

    counts: List[Tuple[str, int]] = [
        (label, _count(ec2, name, key)) for label, name, key in _COUNTED
    ]
    total, used, idle = elastic_ip_counts(ec2)
    counts += [
        ("Elastic IP (Total)", total),
        ("Elastic IP (Used)", used),
        ("Elastic IP (Idle)", idle),
    ]

    for service, quantity in counts:
        _write_record(
            writer=writer,
            report_type="VPC",
            region=region,
            fields=[("service", service), ("quantity", quantity)],
        )
    log.debug("[vpc] Wrote %d service counts for %s", len(counts), region)

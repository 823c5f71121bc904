"""Tiny stand-ins for boto3 clients used by the report unit tests.

- StubPaginator returns canned pages and remembers its paginate() kwargs.
- StubClient answers any API method from a dict of canned responses (a value
  may be a callable taking the call kwargs), raises configured errors and
  records every call as (method, kwargs).
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import ClientError


def client_error(op: str = "Describe", code: str = "AccessDenied") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "denied"}}, op)


class StubPaginator:
    def __init__(self, pages: List[Dict[str, Any]]):
        self.pages = pages
        self.calls: List[Dict[str, Any]] = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        return iter(self.pages)


class StubClient:
    def __init__(
        self,
        region: str = "ap-southeast-1",
        *,
        pages: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        responses: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.meta = SimpleNamespace(region_name=region)
        self._pages = pages or {}
        self._responses = responses or {}
        self._errors = errors or {}
        self.paginators: Dict[str, StubPaginator] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def get_paginator(self, name: str) -> StubPaginator:
        if name in self._errors:
            raise self._errors[name]
        if name not in self.paginators:
            self.paginators[name] = StubPaginator(self._pages.get(name, [{}]))
        return self.paginators[name]

    def called(self, method: str) -> List[Dict[str, Any]]:
        return [kw for name, kw in self.calls if name == method]

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def _call(**kwargs):
            self.calls.append((name, kwargs))
            if name in self._errors:
                raise self._errors[name]
            resp = self._responses.get(name, {})
            return resp(**kwargs) if callable(resp) else resp

        return _call


def metric_responder(values: Dict[Tuple[str, str], Any]):
    """get_metric_statistics stub keyed by (MetricName, first dimension value).

    A value of None means "no datapoints"; an Exception instance is raised.
    """
    def _respond(**kwargs):
        dims = kwargs.get("Dimensions") or [{}]
        key = (kwargs.get("MetricName"), dims[0].get("Value"))
        value = values.get(key)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return {"Datapoints": []}
        if isinstance(value, list):
            return {"Datapoints": value}
        return {"Datapoints": [{"Average": value}]}
    return _respond


# reportType -> exact key order of its records
RECORD_KEYS: Dict[str, List[str]] = {
    "EC2": ["reportType", "name", "instanceId", "instanceState", "type", "instanceType",
            "elasticIp", "launchTime", "vCPUs", "memoryGib", "diskGib", "avgCpuPercent",
            "avgMemoryPercent", "region"],
    "RDS": ["reportType", "name", "instanceId", "instanceState", "type", "engine",
            "instanceType", "elasticIp", "launchTime", "vCPUs", "memoryGib", "diskGib",
            "avgCpuPercent", "avgMemoryPercent", "region"],
    "EBS": ["reportType", "name", "volumeId", "type", "size", "iops", "throughput",
            "snapshotId", "created", "availabilityZone", "volumeState", "region"],
    "EBS Utilization": ["reportType", "volumeId", "sizeGib", "state", "attachedInstanceId",
                        "diskUsedPercent", "avgReadBytes", "avgWriteBytes", "creationTime",
                        "region"],
    "EFS": ["reportType", "name", "fileSystemId", "encrypted", "totalSize",
            "sizeInEfsStandard", "sizeInEfsIa", "sizeInArchive", "fileSystemState",
            "creationTime", "region"],
    "EKS": ["reportType", "name", "status", "kubernetesVersion", "dateCreated", "provider",
            "region"],
    "ELB": ["reportType", "name", "state", "type", "scheme", "ipAddressType", "vpcId",
            "securityGroups", "dateCreated", "dnsName", "region"],
    "VPC": ["reportType", "service", "quantity", "region"],
    "Savings Plan": ["reportType", "savingsPlansId", "savingsPlansType", "instanceFamily",
                     "paymentOption", "commitment", "startDate", "endDate", "notes", "region"],
    "Reserved Instance": ["reportType", "id", "instanceType", "scope", "availabilityZone",
                          "instanceCount", "start", "expires", "term", "paymentOption",
                          "offeringClass", "hourlyCharges", "platform", "state", "region"],
    "Workspaces": ["reportType", "workspaceId", "username", "compute", "rootVolume",
                   "userVolume", "os", "runningMode", "protocol", "status", "lastActive",
                   "region"],
    "Billing": ["reportType", "service", "totalCostUsd", "unit", "periodStart", "periodEnd",
                "region"],
}


def assert_record_shape(record: Dict[str, Any]) -> None:
    """Exact key order for the record's type; no None values leak through."""
    expected = RECORD_KEYS[record["reportType"]]
    assert list(record.keys()) == expected, f"{record['reportType']} keys: {list(record)}"
    nones = [k for k, v in record.items() if v is None]
    assert not nones, f"None values for {nones}"

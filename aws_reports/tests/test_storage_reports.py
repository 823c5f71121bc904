"""EBS, EBS utilization and EFS reports against stub clients."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from aws_reports.ebs import attached_instance, report_ebs_utilization, report_ebs_volumes
from aws_reports.efs import report_efs_filesystems

from report_stubs import StubClient, assert_record_shape, metric_responder

_CREATED = datetime(2023, 6, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

_VOLUMES = [
    {
        "VolumeId": "vol-attached",
        "VolumeType": "gp3",
        "Size": 50,
        "Iops": 3000,
        "Throughput": 125,
        "SnapshotId": "snap-1",
        "CreateTime": _CREATED,
        "AvailabilityZone": "ap-southeast-1a",
        "State": "in-use",
        "Tags": [{"Key": "Name", "Value": "data"}],
        "Attachments": [{"InstanceId": "i-1", "State": "attached"}],
    },
    {
        "VolumeId": "vol-loose",
        "VolumeType": "standard",
        "Size": 8,
        "SnapshotId": "",
        "CreateTime": _CREATED,
        "AvailabilityZone": "ap-southeast-1b",
        "State": "available",
        "Attachments": [],
    },
]


def _ec2() -> StubClient:
    return StubClient(pages={"describe_volumes": [{"Volumes": _VOLUMES}]})


def test_ebs_inventory_defaults_missing_fields(captured_records):
    report_ebs_volumes(object(), ec2=_ec2())

    assert len(captured_records) == 2
    for rec in captured_records:
        assert_record_shape(rec)

    data, loose = captured_records
    assert data["name"] == "data"
    assert data["iops"] == 3000
    assert data["created"] == "2023-06-01T12:00:00+00:00"
    assert loose["name"] == "N/A"
    assert loose["iops"] == "N/A"
    assert loose["throughput"] == "N/A"
    assert loose["snapshotId"] == "N/A"


def test_ebs_utilization_skips_metrics_for_unattached(captured_records, window):
    start, end = window
    cw = StubClient(responses={"get_metric_statistics": metric_responder({
        ("disk_used_percent", "i-1"): 61.5,
        ("DiskReadBytes", "i-1"): 1024.0,
    })})
    report_ebs_utilization(object(), ec2=_ec2(), cloudwatch=cw, start=start, end=end)

    assert len(captured_records) == 2
    for rec in captured_records:
        assert_record_shape(rec)

    attached, loose = captured_records
    assert attached["attachedInstanceId"] == "i-1"
    assert attached["diskUsedPercent"] == 61.5
    assert attached["avgReadBytes"] == 1024.0
    assert attached["avgWriteBytes"] == "N/A"

    assert loose["attachedInstanceId"] == "Not Attached"
    assert (loose["diskUsedPercent"], loose["avgReadBytes"], loose["avgWriteBytes"]) == (
        "N/A", "N/A", "N/A",
    )
    # three metrics for the attached volume only
    assert len(cw.called("get_metric_statistics")) == 3


def test_ebs_empty_region(captured_records, caplog):
    caplog.set_level(logging.INFO)
    report_ebs_volumes(object(), ec2=StubClient(pages={"describe_volumes": [{"Volumes": []}]}))
    assert captured_records == []
    assert "[ebs] No volumes found." in caplog.text


def test_attached_instance():
    assert attached_instance({"Attachments": [{"InstanceId": "i-9"}]}) == "i-9"
    assert attached_instance({"Attachments": []}) == "Not Attached"
    assert attached_instance({}) == "Not Attached"


def test_efs_sizes_by_storage_class(captured_records):
    efs = StubClient(region="ap-southeast-3", pages={"describe_file_systems": [{
        "FileSystems": [
            {
                "FileSystemId": "fs-1",
                "Name": "shared",
                "Encrypted": True,
                "LifeCycleState": "available",
                "CreationTime": _CREATED,
                "SizeInBytes": {
                    "Value": 6144,
                    "ValueInStandard": 4096,
                    "ValueInIA": 2048,
                    "ValueInArchive": 0,
                },
            },
            {
                "FileSystemId": "fs-2",
                "Encrypted": False,
                "LifeCycleState": "creating",
                "Tags": [{"Key": "Name", "Value": "from-tag"}],
                "SizeInBytes": {"Value": 0},
            },
        ]
    }]})
    report_efs_filesystems(object(), efs=efs)

    assert len(captured_records) == 2
    for rec in captured_records:
        assert_record_shape(rec)
        assert rec["region"] == "ap-southeast-3"

    shared, tagged = captured_records
    assert shared["encrypted"] is True
    assert (shared["totalSize"], shared["sizeInEfsStandard"], shared["sizeInEfsIa"]) == (
        6144, 4096, 2048,
    )
    assert shared["sizeInArchive"] == 0
    assert tagged["name"] == "from-tag"
    assert tagged["encrypted"] is False
    assert tagged["sizeInEfsIa"] == "N/A"
    assert tagged["creationTime"] == "N/A"


def test_efs_empty_region(captured_records, caplog):
    caplog.set_level(logging.INFO)
    report_efs_filesystems(object(), efs=StubClient(pages={"describe_file_systems": [{}]}))
    assert captured_records == []
    assert "[efs] No file systems found." in caplog.text

"""Optional integration test suite using moto (in-memory AWS).

- Spins up moto's mock_aws context.
- Seeds a small VPC, instances, volumes, an Elastic IP, an EFS file system and
  an application load balancer.
- Runs the reports against real boto3 clients and checks record shapes.

Enable with: `pytest -m integration`
"""

from __future__ import annotations

from datetime import date
from typing import Dict

import boto3
import pytest
from moto import mock_aws

from aws_reports.ebs import report_ebs_utilization, report_ebs_volumes
from aws_reports.ec2 import report_ec2_instances
from aws_reports.efs import report_efs_filesystems
from aws_reports.elb import report_load_balancers
from aws_reports.vpc import report_vpc_summary
from core.cloudwatch import metric_window

from report_stubs import assert_record_shape

REGION = "us-east-1"


def _seed_fake_aws(region: str = REGION) -> Dict[str, str]:
    """Create the minimal resources the reports read. Extend as needed."""
    ec2 = boto3.client("ec2", region_name=region)
    vpc_id = ec2.create_vpc(CidrBlock="10.0.0.0/16")["Vpc"]["VpcId"]
    subnet_a = ec2.create_subnet(
        VpcId=vpc_id, CidrBlock="10.0.0.0/24", AvailabilityZone=f"{region}a"
    )["Subnet"]["SubnetId"]
    subnet_b = ec2.create_subnet(
        VpcId=vpc_id, CidrBlock="10.0.1.0/24", AvailabilityZone=f"{region}b"
    )["Subnet"]["SubnetId"]

    inst = ec2.run_instances(
        ImageId="ami-12345678",
        MinCount=1,
        MaxCount=1,
        SubnetId=subnet_a,
        InstanceType="t3.micro",
        TagSpecifications=[{
            "ResourceType": "instance",
            "Tags": [{"Key": "Name", "Value": "moto-web"}],
        }],
    )["Instances"][0]

    ec2.create_volume(AvailabilityZone=f"{region}a", Size=20, VolumeType="gp3")

    used = ec2.allocate_address(Domain="vpc")["AllocationId"]
    ec2.associate_address(AllocationId=used, InstanceId=inst["InstanceId"])
    ec2.allocate_address(Domain="vpc")

    efs = boto3.client("efs", region_name=region)
    efs.create_file_system(
        CreationToken="reports-ci", Tags=[{"Key": "Name", "Value": "shared"}]
    )

    elbv2 = boto3.client("elbv2", region_name=region)
    elbv2.create_load_balancer(Name="reports-alb", Subnets=[subnet_a, subnet_b])

    return {"vpc_id": vpc_id, "instance_id": inst["InstanceId"]}


@pytest.mark.integration
def test_reports_run_against_moto(aws_credentials, captured_records) -> None:  # noqa: ARG001
    start, end = metric_window(date(2024, 1, 1), date(2024, 1, 31))

    with mock_aws():
        seeded = _seed_fake_aws()
        ec2 = boto3.client("ec2", region_name=REGION)
        cloudwatch = boto3.client("cloudwatch", region_name=REGION)
        writer = object()

        report_ec2_instances(writer, ec2=ec2, cloudwatch=cloudwatch, start=start, end=end)
        report_ebs_volumes(writer, ec2=ec2)
        report_ebs_utilization(writer, ec2=ec2, cloudwatch=cloudwatch, start=start, end=end)
        report_vpc_summary(writer, ec2=ec2)
        report_efs_filesystems(writer, efs=boto3.client("efs", region_name=REGION))
        report_load_balancers(writer, elbv2=boto3.client("elbv2", region_name=REGION))

        vpc_count = len(ec2.describe_vpcs()["Vpcs"])

    for rec in captured_records:
        assert_record_shape(rec)
        assert rec["region"] == REGION

    by_type: Dict[str, list] = {}
    for rec in captured_records:
        by_type.setdefault(rec["reportType"], []).append(rec)

    (web,) = by_type["EC2"]
    assert web["instanceId"] == seeded["instance_id"]
    assert web["name"] == "moto-web"
    assert web["vCPUs"] == 2
    # no datapoints in an empty CloudWatch
    assert web["avgCpuPercent"] == "N/A"

    assert any(r["size"] == 20 for r in by_type["EBS"])
    loose = [r for r in by_type["EBS Utilization"] if r["sizeGib"] == 20]
    assert loose and loose[0]["attachedInstanceId"] == "Not Attached"

    counts = {r["service"]: r["quantity"] for r in by_type["VPC"]}
    assert counts["VPC"] == vpc_count
    assert counts["Elastic IP (Total)"] == 2
    assert counts["Elastic IP (Used)"] == 1
    assert counts["Elastic IP (Idle)"] == 1

    (fs,) = by_type["EFS"]
    assert fs["name"] == "shared"

    (alb,) = by_type["ELB"]
    assert alb["name"] == "reports-alb"
    assert alb["vpcId"] == seeded["vpc_id"]

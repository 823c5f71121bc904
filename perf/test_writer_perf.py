import io
from datetime import datetime, timezone

import pytest
from aws_inventory_report import write_record_to_json
from core.writer import JsonLinesWriter


class _BufferWriter(JsonLinesWriter):
    """JsonLinesWriter over an in-memory buffer."""
    def __init__(self):
        super().__init__("bench.json")
        self._fh = io.StringIO()


@pytest.mark.benchmark
def test_writer_perf(benchmark):
    writer = _BufferWriter()
    def run():
        write_record_to_json(
            writer,
            {
                "reportType": "EC2",
                "name": "bench",
                "instanceId": "i-123",
                "instanceState": "running",
                "type": "EC2",
                "instanceType": "m5.large",
                "elasticIp": None,
                "launchTime": datetime(2025, 1, 1, tzinfo=timezone.utc),
                "vCPUs": 2,
                "memoryGib": 8.0,
                "diskGib": 30,
                "avgCpuPercent": 12.34,
                "avgMemoryPercent": "N/A",
                "region": "ap-southeast-1",
            },
        )
    benchmark(run)

"""Shared fixtures for report tests.

- captured_records: routes aws_reports.config.WRITE_RECORD into a list.
- aws_credentials: fake credentials so boto3/moto never touch a real account.
- window: a fixed metric window.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

import pytest

from aws_reports import commitments
from aws_reports import config


@pytest.fixture(name="captured_records")
def fixture_captured_records(monkeypatch) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []

    def _write(writer, record):  # noqa: ARG001
        records.append(record)

    monkeypatch.setattr(config, "WRITE_RECORD", _write, raising=True)
    monkeypatch.setattr(config, "LOGGER", logging.getLogger("aws_reports.tests"), raising=True)
    return records


@pytest.fixture(name="aws_credentials")
def fixture_aws_credentials(monkeypatch) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture(name="window")
def fixture_window() -> Tuple[datetime, datetime]:
    return (
        datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc),
    )


@pytest.fixture(autouse=True)
def _reset_savings_plan_guard():
    commitments.reset_run_guard()
    yield
    commitments.reset_run_guard()

# inventory_toolset/config.py
from __future__ import annotations
import os
from typing import Iterable
from botocore.config import Config #type: ignore

# ---- Env helpers
def _env_str(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v is not None else default

def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except Exception:
        return default

def _env_list(key: str, default: Iterable[str]) -> list[str]:
    v = os.getenv(key)
    return [s.strip() for s in v.split(",") if s.strip()] if v else list(default)

# ---- SDK config
SDK_CONFIG = Config(
    retries={"max_attempts": 10, "mode": "standard"},
    connect_timeout=5, read_timeout=60,
    user_agent_extra="aws-inventory-reports/1.0",
)

# ------------------------------------------------------------
# CONSTANTS
# You can override any of these via env vars (documented inline).
# ------------------------------------------------------------

# Regions / outputs
REGIONS = _env_list("REPORTS_REGIONS", ["ap-southeast-1", "ap-southeast-3"])
OUTPUT_ROOT = _env_str("REPORTS_OUTPUT_ROOT", "output")
COMBINED_FILE = "all_reports.json"
LOG_FILE = _env_str("REPORTS_LOG_FILE", "")  # empty -> stderr only
LOG_LEVEL = _env_str("REPORTS_LOG_LEVEL", "INFO")

# --- CloudWatch averages ---
METRIC_PERIOD = _env_int("REPORTS_METRIC_PERIOD", 2592000)  # ~30 days

# --- Billing ---
BILLING_METRIC = _env_str("REPORTS_BILLING_METRIC", "BlendedCost")
BILLING_GRANULARITY = "MONTHLY"

# --- Placeholders ---
NA = "N/A"
NOT_ATTACHED = "Not Attached"
GLOBAL_REGION = "GLOBAL"

# Report name -> output file stem
REPORT_FILES = {
    "ec2": "aws_ec2_report",
    "rds": "aws_rds_report",
    "ebs": "ebs_report",
    "ebs-utilization": "ebs_utilization_report",
    "efs": "efs_report",
    "eks": "eks_report",
    "elb": "elb_report",
    "vpc": "vpc_report",
    "sp": "aws_sp_report",
    "ri": "aws_ri_report",
    "workspaces": "aws_workspaces_report",
    "billing": "aws_billing_report",
}

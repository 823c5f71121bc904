"""
AWS Inventory Reports
=====================

Read-only inventory of AWS resources, region by region. Every report calls the
service's describe/list APIs, remaps each resource into a flat JSON record
tagged with ``reportType`` and ``region`` and appends it to a dated file:

    output/<YYYY>/<MM>/<DD>/<report>.json

Reports
-------
1. **ec2** (`aws_ec2_report.json`, JSON array)
   - Instance identity and state, vCPU / memory from a per-region memo of
     instance type specs, root (or with ``-s`` all) EBS disk size.
   - Average CPU (AWS/EC2) and memory (CWAgent) utilization over ``-b``..``-e``.

2. **rds** (`aws_rds_report.json`)
   - DB instances with class specs memoized per (class, engine), allocated
     storage, average CPU and memory utilization (from FreeableMemory).

3. **ebs** (`ebs_report.json`) / **ebs-utilization** (`ebs_utilization_report.json`)
   - Volume inventory; attachment plus disk used %, read / write bytes.

4. **efs**, **eks**, **elb**, **vpc**
   - File systems by storage class, clusters, ELBv2 load balancers and a
     per-region count of VPC networking services.

5. **sp**, **ri**
   - Savings Plans (account-level, written once) and Reserved Instances.

6. **workspaces**
   - WorkSpaces with their last user connection time.

7. **billing** (`aws_billing_report.json`)
   - Cost Explorer BlendedCost per service for ``-b``..``-e`` (end exclusive).

Extra commands
--------------
- **all**: every report above, then ``combine``.
- **combine**: merge the day's reports into ``all_reports.json`` for the HTML
  viewer (see ``generate_report.py``).

Behaviour
---------
- Missing required arguments: usage on stderr and exit status 2.
- No AWS credentials: fatal error, exit status 1.
- Regions a service is not offered in: logged notice, zero records.
- Metric lookups that fail or have no datapoints report "N/A"; any other API
  failure aborts the run (exit status 1), leaving the partial file on disk.
- Each report/region step is profiled ([PROFILE] log lines, optional CSV).

Usage
-----
    python aws_inventory_report.py ec2 -b 2024-01-01 -e 2024-01-31 -r ap-southeast-1 -s
    python aws_inventory_report.py vpc
    python aws_inventory_report.py combine
"""

#region Imports SECTION

import argparse
import csv
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

import boto3 # type: ignore

from inventory_toolset.config import (
    SDK_CONFIG,
    REGIONS, OUTPUT_ROOT, COMBINED_FILE, LOG_FILE, LOG_LEVEL,
    METRIC_PERIOD, REPORT_FILES, GLOBAL_REGION,
)
from aws_reports import config as reports_config
from aws_reports import ebs as ebs_reports
from aws_reports import commitments as commitment_reports
from aws_reports.billing import report_billing
from aws_reports.ec2 import report_ec2_instances
from aws_reports.efs import report_efs_filesystems
from aws_reports.eks import report_eks_clusters
from aws_reports.elb import report_load_balancers
from aws_reports.rds import report_rds_instances
from aws_reports.vpc import report_vpc_summary
from aws_reports.workspaces import report_workspaces
from core.cloudwatch import metric_window
from core.writer import JsonArrayWriter, JsonLinesWriter, dated_dir, load_records, report_path
#endregion

LOGGER = logging.getLogger("aws_inventory_report")

# Cost Explorer only answers in us-east-1
_CE_REGION = "us-east-1"


#region LOGGING SECTION

def configure_logging(log_file: str = LOG_FILE, level: str = LOG_LEVEL) -> None:
    """Progress to stderr as '[HH:MM:SS] message'; optional full log file."""
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=lvl, format="[%(asctime)s] %(message)s",
                        datefmt="%H:%M:%S", stream=sys.stderr)
    root = logging.getLogger()
    root.setLevel(lvl)

    if log_file and not any(isinstance(h, logging.FileHandler) for h in root.handlers):
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        root.addHandler(fh)

    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)

#endregion


#region JSON Helpers

def _normalize_value(value: Any) -> Any:
    if value is None:
        return "N/A"
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()
    return value


def write_record_to_json(writer, record: Dict[str, Any]) -> None:
    """
    Unified record writer handed to aws_reports.config.setup(...).

    Keeps ``reportType`` first, renders None as "N/A" and datetimes as UTC ISO
    strings, then appends the record through ``writer.write``.
    """
    out: Dict[str, Any] = {"reportType": record.get("reportType", "N/A")}
    for key, value in record.items():
        if key == "reportType":
            continue
        out[key] = _normalize_value(value)
    writer.write(out)

#endregion


#region ENGINE SECTION

def init_clients(session, region: str, services: Sequence[str]) -> Dict[str, Any]:
    """Create the boto3 clients a report needs for one region."""
    clients: Dict[str, Any] = {}
    for service in services:
        target = _CE_REGION if service == "ce" else region
        clients[service] = session.client(service, region_name=target, config=SDK_CONFIG)
    return clients


def check_dependencies(session) -> None:
    """Fail fast when boto3 cannot resolve any AWS credentials."""
    LOGGER.info("Checking dependencies (boto3, AWS credentials)...")
    if session.get_credentials() is None:
        raise RuntimeError(
            "AWS credentials not found. Configure a profile or environment credentials first."
        )
    LOGGER.info("Dependencies met.")


def region_offered(session, service: str, region: str) -> bool:
    """True when botocore knows an endpoint for service in region.

    Global services (empty region list) are always offered.
    """
    available = session.get_available_regions(service)
    return not available or region in available


# ===== Profiling helpers =====

class CountingWriter:
    """
    Wraps a report writer to count how many records a given step wrote.
    Only counts records written during that step's execution.
    """
    def __init__(self, inner):
        self.inner = inner
        self.records = 0

    def write(self, record: Dict[str, Any]) -> None:
        self.inner.write(record)
        self.records += 1


class RunProfiler:
    """
    Collects per-step metrics (duration, records, ok/error) and can dump to CSV + logs.
    """
    def __init__(self, profile_file: Optional[str] = None):
        self.profile_file = profile_file
        self.records: list[dict[str, Any]] = []
        self.run_start = datetime.now(timezone.utc)

    def add(self, *, step: str, region: str, seconds: float, rows: int,
            ok: bool, error: Optional[str] = None,
            started_at: Optional[datetime] = None,
            ended_at: Optional[datetime] = None):
        self.records.append({
            "TimestampUTC": datetime.now(timezone.utc).isoformat(),
            "Step": step,
            "Region": region,
            "Seconds": round(seconds, 3),
            "RecordsWritten": rows,
            "OK": int(bool(ok)),
            "Error": (error or ""),
            "StartedAtUTC": (started_at or (datetime.now(timezone.utc) - timedelta(seconds=seconds))).isoformat(),
            "EndedAtUTC": (ended_at or datetime.now(timezone.utc)).isoformat(),
        })

    def dump_csv(self, path: Optional[str] = None):
        path = path or self.profile_file
        if not path:
            return
        header = ["TimestampUTC", "Step", "Region", "Seconds", "RecordsWritten", "OK",
                  "Error", "StartedAtUTC", "EndedAtUTC"]
        file_exists = os.path.exists(path)
        with open(path, "a", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            if not file_exists:
                w.writerow(header)
            for r in self.records:
                w.writerow([r[h] for h in header])

    def log_summary(self, top_n: int = 15):
        if not self.records:
            LOGGER.info("[PROFILE] No records.")
            return
        sorted_recs = sorted(self.records, key=lambda r: r["Seconds"], reverse=True)
        LOGGER.info("[PROFILE] Top %d slowest steps:", min(top_n, len(sorted_recs)))
        for rec in sorted_recs[:top_n]:
            LOGGER.info("  %-28s  %-16s  %6.2fs  records=%-6d  ok=%s  err=%s",
                        rec["Step"], rec["Region"], rec["Seconds"],
                        rec["RecordsWritten"], rec["OK"], rec["Error"])


def run_report(profiler: RunProfiler,
               step_name: str,
               region: str,
               fn: Callable[..., None],
               writer,
               **fn_kwargs) -> int:
    """
    Time one report function for one region. The writer is wrapped so we can
    count records written by this specific step.

    Usage:
        run_report(profiler, "ec2", region, report_ec2_instances, writer, ec2=..., ...)
    """
    counting_writer = CountingWriter(inner=writer)
    start_ts = datetime.now(timezone.utc)
    t0 = perf_counter()
    ok, err = True, None
    try:
        fn(counting_writer, **fn_kwargs)
    except Exception as e:
        ok, err = False, f"{type(e).__name__}: {e}"
        raise
    finally:
        dt = perf_counter() - t0
        profiler.add(step=step_name, region=region, seconds=dt, rows=counting_writer.records,
                     ok=ok, error=err, started_at=start_ts, ended_at=datetime.now(timezone.utc))
        LOGGER.debug("[PROFILE] %-28s  %-16s  %6.2fs  records=%d  ok=%s",
                     step_name, region, dt, counting_writer.records, ok)
    return counting_writer.records

#endregion


#region REPORTS SECTION

@dataclass(frozen=True)
class ReportSpec:
    """How to run one report: function, clients, window needs, writer type."""
    name: str
    fn: Callable[..., None]
    services: Tuple[str, ...]
    client_args: Tuple[str, ...]
    needs_window: bool = False
    regional: bool = True
    writer_cls: Type[JsonLinesWriter] = JsonLinesWriter
    extra: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def file_stem(self) -> str:
        return REPORT_FILES[self.name]


REPORTS: Dict[str, ReportSpec] = {
    "ec2": ReportSpec("ec2", report_ec2_instances, ("ec2", "cloudwatch"),
                      ("ec2", "cloudwatch"), needs_window=True,
                      writer_cls=JsonArrayWriter, extra=("sum_all_ebs",)),
    "rds": ReportSpec("rds", report_rds_instances, ("rds", "cloudwatch", "ec2"),
                      ("rds", "cloudwatch", "ec2"), needs_window=True),
    "ebs": ReportSpec("ebs", ebs_reports.report_ebs_volumes, ("ec2",), ("ec2",)),
    "ebs-utilization": ReportSpec("ebs-utilization", ebs_reports.report_ebs_utilization,
                                  ("ec2", "cloudwatch"), ("ec2", "cloudwatch"),
                                  needs_window=True),
    "efs": ReportSpec("efs", report_efs_filesystems, ("efs",), ("efs",)),
    "eks": ReportSpec("eks", report_eks_clusters, ("eks",), ("eks",)),
    "elb": ReportSpec("elb", report_load_balancers, ("elbv2",), ("elbv2",)),
    "vpc": ReportSpec("vpc", report_vpc_summary, ("ec2",), ("ec2",)),
    "sp": ReportSpec("sp", commitment_reports.report_savings_plans,
                     ("savingsplans",), ("savingsplans",)),
    "ri": ReportSpec("ri", commitment_reports.report_reserved_instances, ("ec2",), ("ec2",)),
    "workspaces": ReportSpec("workspaces", report_workspaces, ("workspaces",), ("workspaces",)),
    "billing": ReportSpec("billing", report_billing, ("ce",), ("ce",),
                          needs_window=True, regional=False),
}


def _report_kwargs(spec: ReportSpec, args: argparse.Namespace) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if spec.needs_window:
        if spec.regional:
            start, end = metric_window(args.begin, args.end)
            kwargs.update(start=start, end=end, period=args.period)
        else:
            kwargs.update(start=args.begin, end=args.end)
    if "sum_all_ebs" in spec.extra:
        kwargs["sum_all_ebs"] = bool(getattr(args, "sum_all_ebs", False))
    return kwargs


def run_named_report(
    spec: ReportSpec,
    args: argparse.Namespace,
    session,
    profiler: RunProfiler,
    today: Optional[date] = None,
) -> Path:
    """Run one report across the requested regions into its dated file."""
    out_path = report_path(spec.file_stem, root=args.output_root, today=today)
    knobs = _report_kwargs(spec, args)
    LOGGER.info("Preparing output file: %s", out_path)

    with spec.writer_cls(out_path) as writer:
        regions = args.regions if spec.regional else [GLOBAL_REGION]
        for region in regions:
            LOGGER.info("Processing Region: %s", region)
            if spec.regional and not region_offered(session, spec.services[0], region):
                LOGGER.info("  [%s] Service not offered in %s; skipping.", spec.name, region)
                continue
            clients = init_clients(session, region, spec.services)
            client_kwargs = {arg: clients[svc] for arg, svc in zip(spec.client_args, spec.services)}
            run_report(profiler, spec.name, region, spec.fn, writer,
                       logger=LOGGER, **client_kwargs, **knobs)
            LOGGER.info("Region %s Complete.", region)

    LOGGER.info("DONE. Results saved to: %s", out_path)
    return out_path


def combine_reports(out_dir: Path, combined_name: str = COMBINED_FILE) -> Path:
    """Merge every report in out_dir into one JSON array file."""
    target = out_dir / combined_name
    records: List[Dict[str, Any]] = []
    for path in sorted(out_dir.glob("*.json")):
        if path.name == combined_name:
            continue
        try:
            found = load_records(path)
        except json.JSONDecodeError as e:
            # aborted runs leave truncated files (e.g. an EC2 array without ']')
            LOGGER.warning("  [combine] Skipping unreadable report %s: %s", path.name, e)
            continue
        LOGGER.info("  [combine] %s: %d records", path.name, len(found))
        records.extend(found)
    out_dir.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    LOGGER.info("DONE. %d records combined into: %s", len(records), target)
    return target

#endregion


#region CLI SECTION

def _iso_date(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {raw!r}; expected YYYY-MM-DD") from exc


def _region_list(raw: str) -> List[str]:
    regions = [r.strip() for r in raw.split(",") if r.strip()]
    if not regions:
        raise argparse.ArgumentTypeError("at least one region is required")
    return regions


def _add_common(parser: argparse.ArgumentParser, *, regional: bool = True,
                window: bool = False, sum_ebs: bool = False) -> None:
    if regional:
        parser.add_argument(
            "-r", "--regions", type=_region_list, default=list(REGIONS),
            help=f"Comma-separated list of AWS regions (default: {','.join(REGIONS)})",
        )
    if window:
        parser.add_argument("-b", "--begin", type=_iso_date, required=True,
                            help="Start date (YYYY-MM-DD). REQUIRED.")
        parser.add_argument("-e", "--end", type=_iso_date, required=True,
                            help="End date (YYYY-MM-DD). REQUIRED.")
        parser.add_argument("--period", type=int, default=METRIC_PERIOD,
                            help=f"CloudWatch period in seconds (default: {METRIC_PERIOD})")
    if sum_ebs:
        parser.add_argument("-s", "--sum-all-ebs", action="store_true",
                            help="Sum all attached EBS volumes (default: root disk only).")
    parser.add_argument("--output-root", default=OUTPUT_ROOT,
                        help=f"Root of the dated output tree (default: {OUTPUT_ROOT})")
    parser.add_argument("--profile", default=None, help="AWS named profile to use.")
    parser.add_argument("--profile-file", default=None,
                        help="Append per-step timings to this CSV file.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aws_inventory_report",
        description="Generate read-only AWS inventory reports as dated JSON files.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    for name, spec in REPORTS.items():
        p = sub.add_parser(name, help=f"{name} report -> {spec.file_stem}.json")
        _add_common(p, regional=spec.regional, window=spec.needs_window,
                    sum_ebs="sum_all_ebs" in spec.extra)

    p_all = sub.add_parser("all", help="Run every report, then combine them.")
    _add_common(p_all, window=True, sum_ebs=True)

    p_combine = sub.add_parser("combine", help=f"Merge the day's reports into {COMBINED_FILE}.")
    p_combine.add_argument("--output-root", default=OUTPUT_ROOT)
    p_combine.add_argument("--date", type=_iso_date, default=None,
                           help="Day to combine (YYYY-MM-DD, default: today).")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    begin, end = getattr(args, "begin", None), getattr(args, "end", None)
    if begin is not None and end is not None:
        if end < begin:
            parser.error("-e/--end must not be before -b/--begin")
        # Cost Explorer treats End as exclusive
        if args.command in ("billing", "all") and end == begin:
            parser.error("-e/--end must be after -b/--begin for billing (end date is exclusive)")
    return args


def main(argv: Optional[Sequence[str]] = None, session=None) -> int:
    """
    Orchestrate the requested report(s) and profile every report/region step.
    """
    args = parse_args(argv)
    configure_logging()

    if args.command == "combine":
        try:
            combine_reports(dated_dir(args.output_root, args.date))
        except Exception as e:  # pylint: disable=broad-except
            LOGGER.error("[main] Fatal error: %s", e)
            return 1
        return 0

    # one date for the whole run, even across midnight
    today = date.today()
    profiler = RunProfiler(profile_file=args.profile_file)
    try:
        session = session or boto3.Session(profile_name=args.profile)
        check_dependencies(session)

        reports_config.setup(write_record=write_record_to_json, logger=LOGGER)
        commitment_reports.reset_run_guard()

        names = list(REPORTS) if args.command == "all" else [args.command]
        for name in names:
            run_named_report(REPORTS[name], args, session, profiler, today=today)
        if args.command == "all":
            combine_reports(dated_dir(args.output_root, today))
    except Exception as e:  # pylint: disable=broad-except
        LOGGER.error("[main] Fatal error: %s", e)
        return 1
    finally:
        profiler.dump_csv()
        profiler.log_summary(top_n=30)

    return 0

#endregion

if __name__ == "__main__":
    sys.exit(main())

"""Common helpers for report modules (shared across AWS services).

- _logger: consistent logger selection with config fallback.
- _to_utc_iso / na: UTC ISO8601 and "N/A" placeholder helpers for records.
- Tag helpers: tags_to_dict, name_tag.
- Batching helper: iter_chunks.
- Runtime helpers: _client_region, _extract_params.
- _write_record: builds the flat record (reportType first, region last) and
  hands it to config.WRITE_RECORD.

Import what you need:
    from aws_reports.common import (
        _logger, _to_utc_iso, na, name_tag, iter_chunks,
        _client_region, _extract_params, _write_record
    )
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aws_reports import config
from inventory_toolset.config import NA


def _logger(fallback: Optional[logging.Logger]) -> logging.Logger:
    """Return the given logger or a sensible default."""
    return fallback or config.LOGGER or logging.getLogger(__name__)


def _client_region(client) -> str:
    return getattr(getattr(client, "meta", None), "region_name", "") or ""


def _to_utc_iso(dt_obj: Optional[datetime]) -> Optional[str]:
    """Return datetime as UTC ISO8601 (no microseconds), or None if not a datetime."""
    if not isinstance(dt_obj, datetime):
        return None
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=timezone.utc)
    else:
        dt_obj = dt_obj.astimezone(timezone.utc)
    return dt_obj.replace(microsecond=0).isoformat()


def na(value: Any, placeholder: str = NA) -> Any:
    """Return value unchanged, the placeholder when it is None or an empty string.

    Datetimes are rendered as UTC ISO strings.
    """
    if value is None or value == "":
        return placeholder
    if isinstance(value, datetime):
        return _to_utc_iso(value)
    return value


def tags_to_dict(pairs: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Convert AWS [{'Key','Value'}] into a plain dict; empty on errors."""
    out: Dict[str, str] = {}
    for t in pairs or []:
        k, v = t.get("Key"), t.get("Value")
        if k:
            out[str(k)] = "" if v is None else str(v)
    return out


def name_tag(pairs: Optional[List[Dict[str, str]]]) -> str:
    """Value of the first 'Name' tag, or "N/A"."""
    return na(tags_to_dict(pairs).get("Name"))


def iter_chunks(items: List[Any], n: int):
    """Yield size-n chunks from items; never yields empty or zero-sized chunks."""
    size = max(1, n)
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _extract_params(
    args: Sequence[Any],
    kwargs: Mapping[str, Any],
    *,
    required: Sequence[str],
    optional: Sequence[str] = (),
) -> Tuple[Any, ...]:
    """
    Resolve positional/keyword arguments for reports in a DRY fashion.

    Example:
        writer, ec2 = _extract_params(args, kwargs, required=("writer", "ec2"))
        writer, ec2, cloudwatch = _extract_params(
            args, kwargs, required=("writer", "ec2"), optional=("cloudwatch",)
        )
    """
    ordered_names: Tuple[str, ...] = tuple(required) + tuple(optional)

    if len(args) > len(ordered_names):
        extras = args[len(ordered_names):]
        raise TypeError(
            f"Expected at most {len(ordered_names)} positional arguments "
            f"({', '.join(ordered_names)}), but got {len(args)}: {extras!r}"
        )

    unexpected = [k for k in kwargs if k not in ordered_names]
    if unexpected:
        raise TypeError(f"Got unexpected keyword argument(s): {', '.join(sorted(unexpected))}")

    values: Dict[str, Any] = {}
    for idx, name in enumerate(ordered_names):
        have_pos = idx < len(args)
        have_kw = name in kwargs

        if have_pos and have_kw:
            raise TypeError(f"Got multiple values for argument '{name}'")

        if have_kw:
            values[name] = kwargs[name]
        elif have_pos:
            values[name] = args[idx]
        else:
            values[name] = None

    missing = [name for name in required if values.get(name) is None]
    if missing:
        expected = " and ".join(f"'{name}'" for name in required)
        got = ", ".join(f"{name}={values.get(name)!r}" for name in ordered_names)
        raise TypeError(f"Expected {expected} (got {got})")

    return tuple(values[name] for name in ordered_names)


def _write_record(
    *,
    writer,
    report_type: str,
    region: str,
    fields: Iterable[Tuple[str, Any]],
) -> Dict[str, Any]:
    """Build one report record and write it through config.WRITE_RECORD."""
    record: Dict[str, Any] = {"reportType": report_type}
    for key, value in fields:
        record[key] = value
    record["region"] = region
    config.emit(writer, record)
    return record

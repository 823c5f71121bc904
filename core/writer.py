"""Report output files.

Reports are written incrementally, one record at a time, so a run that aborts
halfway leaves whatever was written so far on disk:

  * JsonLinesWriter  - one compact JSON object per line.
  * JsonArrayWriter  - '[' + comma separated records + ']' (EC2 report).

`load_records` reads any of those back, plus the concatenated pretty-printed
objects the shell tooling used to produce.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from inventory_toolset.config import OUTPUT_ROOT

PathLike = Union[str, Path]


def dated_dir(root: PathLike = OUTPUT_ROOT, today: Optional[date] = None) -> Path:
    """Return `<root>/<YYYY>/<MM>/<DD>` for today (local date)."""
    day = today or date.today()
    return Path(root) / f"{day:%Y}" / f"{day:%m}" / f"{day:%d}"


def report_path(name: str, root: PathLike = OUTPUT_ROOT, today: Optional[date] = None) -> Path:
    """Return `<root>/<YYYY>/<MM>/<DD>/<name>.json`, creating the directory."""
    out_dir = dated_dir(root, today)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir / f"{name}.json"


def _dumps(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, default=str)


class JsonLinesWriter:
    """Truncates `path` on open, then appends one JSON object per line."""

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._fh = None
        self.records = 0

    def __enter__(self) -> "JsonLinesWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = open(self.path, "w", encoding="utf-8")
        return self

    def write(self, record: Dict[str, Any]) -> None:
        if self._fh is None:
            raise RuntimeError(f"{self.path} is not open")
        self._fh.write(_dumps(record) + "\n")
        self._fh.flush()
        self.records += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class JsonArrayWriter(JsonLinesWriter):
    """Writes a JSON array incrementally; the closing bracket lands on clean exit only."""

    def __enter__(self) -> "JsonArrayWriter":
        super().__enter__()
        self._fh.write("[\n")  # type: ignore[union-attr]
        return self

    def write(self, record: Dict[str, Any]) -> None:
        if self._fh is None:
            raise RuntimeError(f"{self.path} is not open")
        if self.records:
            self._fh.write(",\n")
        self._fh.write(_dumps(record))
        self._fh.flush()
        self.records += 1

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._fh is not None and exc_type is None:
            self._fh.write("\n]\n")
        self.close()


def parse_records(text: str) -> List[Dict[str, Any]]:
    """Parse an array, NDJSON, or a stream of concatenated JSON objects."""
    decoder = json.JSONDecoder()
    out: List[Dict[str, Any]] = []
    idx, end = 0, len(text)
    while idx < end:
        while idx < end and text[idx] in " \t\r\n,":
            idx += 1
        if idx >= end:
            break
        value, idx = decoder.raw_decode(text, idx)
        if isinstance(value, list):
            out.extend(v for v in value if isinstance(v, dict))
        elif isinstance(value, dict):
            out.append(value)
    return out


def load_records(path: PathLike) -> List[Dict[str, Any]]:
    """Read every record from a report file."""
    return parse_records(Path(path).read_text(encoding="utf-8"))

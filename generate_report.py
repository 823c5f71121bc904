"""Inventory report viewer generator.

Reads a combined inventory report (usually ``all_reports.json`` written by
``aws_inventory_report.py combine``) and produces a single static HTML page:

- One button per ``reportType``; clicking it shows that report as a DataTable
  with copy / Excel / CSV / PDF export buttons (jQuery + DataTables from CDNs).
- The page loads its rows from the companion file ``all_reports.json`` next to
  the HTML. The same rows are embedded in the page and used when the browser
  refuses the local fetch (``file://`` pages).
- A Plotly bar chart of record counts per report type and region.

Usage:
    python generate_report.py output/2024/01/31/all_reports.json report.html
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
import argparse
import html
import json
import logging
import sys

import pandas as pd
import plotly.graph_objects as go

from core.writer import load_records
from inventory_toolset.config import COMBINED_FILE, NA

LOGGER = logging.getLogger("generate_report")


# ------------------------------
# Data & config containers
# ------------------------------

@dataclass
class ViewerConfig:
    """Simple configuration for the viewer build."""

    title: str = "AWS Inventory Report"
    output_html: Path = Path("report.html")
    data_file: str = COMBINED_FILE


# ------------------------------
# Data loading & preparation
# ------------------------------


def load_frame(json_path: Path) -> Tuple[List[Dict[str, Any]], pd.DataFrame]:
    """Load report records and a DataFrame view of them.

    Records keep their own key order (one shape per report type); the frame is
    only used for summaries, with missing cells filled with "N/A".
    """
    if not json_path.exists():
        raise FileNotFoundError(f"Report file not found: {json_path}")
    try:
        records = load_records(json_path)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Report file is not valid JSON: {json_path}") from exc

    frame = pd.DataFrame.from_records(records)
    for col in ("reportType", "region"):
        if col not in frame.columns:
            frame[col] = NA
    frame = frame.fillna(NA)
    return records, frame


def count_by_type(frame: pd.DataFrame) -> pd.DataFrame:
    """Record counts pivoted as rows=reportType, cols=region."""
    if frame.empty:
        return pd.DataFrame()
    return pd.pivot_table(
        frame.assign(_n=1),
        index="reportType",
        columns="region",
        values="_n",
        aggfunc="sum",
        fill_value=0,
    )


# ------------------------------
# Chart helpers
# ------------------------------


def build_counts_chart(frame: pd.DataFrame) -> go.Figure:
    """Stacked bar chart: records per report type, one trace per region."""
    counts = count_by_type(frame)
    fig = go.Figure()
    for region in counts.columns:
        fig.add_trace(
            go.Bar(
                name=str(region),
                x=counts.index.tolist(),
                y=counts[region].tolist(),
                hovertemplate="%{x}: %{y} records<extra>" + str(region) + "</extra>",
            )
        )
    fig.update_layout(
        barmode="stack",
        title="Records by Report Type",
        xaxis={"title": "Report Type", "tickangle": -30},
        yaxis={"title": "Records"},
        margin={"l": 60, "r": 40, "t": 50, "b": 70},
        legend={"orientation": "h"},
    )
    return fig


# ------------------------------
# HTML
# ------------------------------

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>__TITLE__</title>
    <link rel="stylesheet" type="text/css" href="https://cdn.datatables.net/2.3.3/css/dataTables.dataTables.css">
    <link rel="stylesheet" type="text/css" href="https://cdn.datatables.net/buttons/3.2.0/css/buttons.dataTables.min.css">
    <style>
        body { font-family: sans-serif; padding: 20px; }
        .container { max-width: 1200px; margin: auto; }
        .report-section { margin-bottom: 40px; }
        h1, h2 { text-align: center; color: #333; }
        table.dataTable thead th, table.dataTable thead td { padding: 10px; border-bottom: 1px solid #111; }
        table.dataTable.stripe tbody tr.odd, table.dataTable.display tbody tr.odd { background-color: #f9f9f9; }
        table.dataTable.hover tbody tr:hover { background-color: #f1f1f1; }
        #report-selector { text-align: center; margin-bottom: 20px; }
        #report-selector button {
            padding: 10px 20px;
            font-size: 16px;
            cursor: pointer;
            margin: 5px;
            border: 1px solid #ccc;
            border-radius: 5px;
            background-color: #f0f0f0;
        }
        #report-selector button.active {
            background-color: #007bff;
            color: white;
            border-color: #007bff;
        }
    </style>
</head>
<body>
    <div class="container">
        <h1>__TITLE__</h1>
        <div id="summary-chart">__CHART__</div>
        <div id="report-selector"></div>
        <div id="report-container"></div>
    </div>

    <script src="https://code.jquery.com/jquery-3.7.1.min.js"></script>
    <script src="https://cdn.datatables.net/2.3.3/js/dataTables.min.js"></script>
    <script src="https://cdn.datatables.net/buttons/3.2.0/js/dataTables.buttons.min.js"></script>
    <script src="https://cdnjs.cloudflare.com/ajax/libs/jszip/3.1.3/jszip.min.js"></script>
    <script src="https://cdn.datatables.net/buttons/3.2.0/js/buttons.html5.min.js"></script>

    <script id="embedded-reports" type="application/json">__EMBEDDED__</script>
    <script>
        $(document).ready(function() {
            var reportSelector = $('#report-selector');
            var reportContainer = $('#report-container');

            function columnTitle(key) {
                return key.replace(/([A-Z])/g, ' $1').replace(/^./, function(str) { return str.toUpperCase(); });
            }

            function render(data) {
                var reportTypes = {};
                data.forEach(function(item) {
                    var type = item.reportType;
                    if (!reportTypes[type]) {
                        reportTypes[type] = [];
                    }
                    reportTypes[type].push(item);
                });

                Object.keys(reportTypes).forEach(function(type) {
                    var button = $('<button></button>').text(type).attr('data-report', type);
                    reportSelector.append(button);
                });

                function showReport(reportType) {
                    var reportData = reportTypes[reportType];
                    var columns = Object.keys(reportData[0] || {}).map(function(key) {
                        return { title: columnTitle(key), data: key, defaultContent: 'N/A' };
                    });

                    reportContainer.empty();
                    var tableId = 'table-' + reportType.replace(/[^A-Za-z0-9_-]/g, '-');
                    var section = $('<div class="report-section"></div>');
                    section.append($('<h2></h2>').text(reportType + ' Report'));
                    section.append($('<table class="display"></table>').attr('id', tableId));
                    reportContainer.append(section);

                    $('#' + tableId).DataTable({
                        data: reportData,
                        columns: columns,
                        dom: 'Bfrtip',
                        buttons: ['copyHtml5', 'excelHtml5', 'csvHtml5', 'pdfHtml5'],
                        responsive: true
                    });
                }

                reportSelector.on('click', 'button', function() {
                    reportSelector.find('button').removeClass('active');
                    $(this).addClass('active');
                    showReport($(this).attr('data-report'));
                });

                var first = Object.keys(reportTypes)[0];
                if (first) {
                    showReport(first);
                    reportSelector.find('button').first().addClass('active');
                }
            }

            $.getJSON("__DATA_FILE__").done(render).fail(function(jqXHR, textStatus, errorThrown) {
                var embedded = JSON.parse(document.getElementById('embedded-reports').textContent || '[]');
                if (embedded.length) {
                    render(embedded);
                    return;
                }
                reportContainer.html('<div style="text-align:center; color:red;">Failed to load report data. Please ensure "__DATA_FILE__" exists.</div>');
                console.error("Error loading JSON: " + textStatus + ", " + errorThrown);
            });
        });
    </script>
</body>
</html>
"""


def _embed_json(records: List[Dict[str, Any]]) -> str:
    """JSON safe to place inside a <script> element."""
    return json.dumps(records, ensure_ascii=False, default=str).replace("</", "<\\/")


def compose_html(records: List[Dict[str, Any]], figure: go.Figure, cfg: ViewerConfig) -> str:
    """Fill the page template with title, chart, companion file name and data."""
    return (
        _PAGE.replace("__TITLE__", html.escape(cfg.title))
        .replace("__CHART__", figure.to_html(full_html=False, include_plotlyjs="cdn"))
        .replace("__DATA_FILE__", cfg.data_file)
        .replace("__EMBEDDED__", _embed_json(records))
    )


def write_companion(records: List[Dict[str, Any]], input_path: Path, cfg: ViewerConfig) -> Optional[Path]:
    """Write the page's data file next to the HTML unless the input already is it."""
    target = cfg.output_html.parent / cfg.data_file
    if target.exists() and target.resolve() == input_path.resolve():
        return None
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(records, indent=2, ensure_ascii=False, default=str) + "\n",
                      encoding="utf-8")
    return target


# ------------------------------
# Orchestration
# ------------------------------


def parse_args(argv: Optional[Iterable[str]] = None) -> Tuple[Path, ViewerConfig]:
    """Parse CLI args and return (input_json, ViewerConfig)."""
    parser = argparse.ArgumentParser(
        description="Generate a single HTML page to browse a combined inventory report.",
    )
    parser.add_argument("input_json", type=Path,
                        help=f"Combined report produced by 'combine' (usually {COMBINED_FILE}).")
    parser.add_argument("output_html", type=Path, help="HTML file to write.")
    parser.add_argument("--title", type=str, default="AWS Inventory Report",
                        help="Page title (default: AWS Inventory Report)")

    args = parser.parse_args(list(argv) if argv is not None else None)
    return args.input_json, ViewerConfig(title=args.title, output_html=args.output_html)


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entrypoint for CLI usage."""
    input_json, cfg = parse_args(argv)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(message)s",
                            datefmt="%H:%M:%S", stream=sys.stderr)

    LOGGER.info("Creating HTML report template...")
    try:
        records, frame = load_frame(input_json)
    except (FileNotFoundError, ValueError) as err:
        LOGGER.error("%s", err)
        return 1

    cfg.output_html.parent.mkdir(parents=True, exist_ok=True)
    page = compose_html(records, build_counts_chart(frame), cfg)
    cfg.output_html.write_text(page, encoding="utf-8")

    companion = write_companion(records, input_json, cfg)
    if companion is not None:
        LOGGER.info("Report data copied to %s", companion)
    LOGGER.info("HTML file created successfully at %s (%d records)", cfg.output_html, len(records))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

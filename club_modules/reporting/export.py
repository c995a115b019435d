"""
Report export rendering.

``render(result, fmt)`` turns any aggregation result into either a plain
dict (JSON) or sectioned CSV text.  CSV layout: the ``SUMMARY`` section
first (one ``field,value`` row per scalar, nested results flattened with
dotted keys), then one section per itemised list, each headed by its title
and a column row, separated by blank lines.  Quoting of delimiters, quotes
and newlines in free text is left to the ``csv`` writer.

Purely presentational.
"""

from __future__ import annotations

import csv
import dataclasses
import io
from typing import Any

from club_kernel.exceptions import ValidationError
from club_kernel.logging_config import get_logger
from club_modules.reporting.config import ReportingConfig
from club_modules.reporting.models import ExportFormat, ReportKind
from club_modules.reporting.statements import render_to_dict

logger = get_logger("modules.reporting.export")


def _is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _cell(value: Any) -> str:
    rendered = render_to_dict(value)
    return "" if rendered is None else str(rendered)


def _section_title(name: str, config: ReportingConfig) -> str:
    titles = {
        "registrations": config.registrations_section,
        "course_payments": config.course_payments_section,
        "expenses": config.expenses_section,
    }
    return titles.get(name, name.replace("_", " ").upper())


def _split(record: Any, prefix: str = "") -> tuple[list[tuple[str, Any]], list[tuple[str, tuple]]]:
    """Scalars (dotted keys) and itemised lists of a result record."""
    scalars: list[tuple[str, Any]] = []
    sections: list[tuple[str, tuple]] = []
    for f in dataclasses.fields(record):
        value = getattr(record, f.name)
        key = f"{prefix}{f.name}"
        if _is_record(value):
            inner_scalars, inner_sections = _split(value, f"{key}.")
            scalars.extend(inner_scalars)
            sections.extend(inner_sections)
        elif isinstance(value, (tuple, list)) and all(_is_record(v) for v in value):
            sections.append((f.name, tuple(value)))
        else:
            scalars.append((key, value))
    return scalars, sections


def _write_section(writer, title: str, rows: tuple) -> None:
    writer.writerow([title])
    if not rows:
        return
    columns = [f.name for f in dataclasses.fields(rows[0])]
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell(getattr(row, c)) for c in columns])


def render_csv(result: Any, config: ReportingConfig | None = None) -> str:
    config = config or ReportingConfig.with_defaults()
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    if isinstance(result, (tuple, list)):
        scalars, sections = [], [("items", tuple(result))]
    elif _is_record(result):
        scalars, sections = _split(result)
    else:
        raise ValidationError("result", f"cannot export {type(result).__name__} as csv")

    writer.writerow([config.summary_section])
    for key, value in scalars:
        writer.writerow([key, _cell(value)])
    for name, rows in sections:
        writer.writerow([])
        _write_section(writer, _section_title(name, config), rows)
    return buffer.getvalue()


def render(
    result: Any,
    fmt: str | ExportFormat,
    config: ReportingConfig | None = None,
) -> dict | list | str:
    """Render ``result`` as a JSON-ready structure or as CSV text."""
    export_format = ExportFormat.parse(fmt)
    if export_format is ExportFormat.CSV:
        output = render_csv(result, config)
    else:
        output = render_to_dict(result)
    logger.info(
        "report_rendered",
        extra={"format": export_format.value, "result_type": type(result).__name__},
    )
    return output


def export_filename(kind: str | ReportKind, year: int, fmt: str | ExportFormat) -> str:
    return f"club-report-{ReportKind(kind).value}-{year}.{ExportFormat.parse(fmt).value}"

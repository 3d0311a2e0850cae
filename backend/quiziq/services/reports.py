"""
Report formatter - TXT and PDF reports plus the leads CSV.

Rendering is pure: ``build_report`` gathers the numbers, the ``render_*``
functions only turn them into text or markup. PDF bytes come from an
external renderer service that accepts HTML.
"""
import csv
import html
import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from quiziq.core.config import settings
from quiziq.core.exceptions import InternalError
from quiziq.core.logging import get_logger
from quiziq.models.lead import Lead
from quiziq.models.tracker import Tracker
from quiziq.repositories.lead import LeadRepository
from quiziq.schemas.export import ExportRequest
from quiziq.services.stats import StatsService

logger = get_logger(__name__)

PDF_OPTIONS: dict[str, Any] = {
    "format": "A4",
    "landscape": True,
    "printBackground": True,
    "margin": {"top": "20mm", "right": "20mm", "bottom": "20mm", "left": "20mm"},
}

CSV_HEADER = ["Email", "Name", "Phone", "Timestamp", "Created At"]

TIMESERIES_HEADERS = ["Date", "Visits", "Starts", "Completes", "Leads"]
TOP_PAGES_HEADERS = ["Path", "Visits"]
DROPOFF_HEADERS = ["Date", "Starts", "Completes", "Drop-off"]
UTM_HEADERS = ["Source", "Medium", "Campaign", "Visits", "Starts", "Completes"]
LEADS_HEADERS = ["Email", "Name", "Phone", "Captured At"]


@dataclass
class Report:
    """Everything a rendered report shows. Absent sections stay None."""

    tracker_name: str
    tracker_id: str
    period: str
    group_by: str
    overview: Optional[dict[str, Any]] = None
    top_pages: Optional[list[dict[str, Any]]] = None
    dropoff: Optional[list[dict[str, Any]]] = None
    utm: Optional[list[dict[str, Any]]] = None
    leads: Optional[list[Lead]] = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------

def _date_format(locale: str) -> str:
    tag = locale.lower().replace("_", "-")
    if tag.startswith("pt"):
        return "%d/%m/%Y"
    if tag in ("en", "en-us"):
        return "%m/%d/%Y"
    return "%Y-%m-%d"


def format_date(ts: int, locale: str) -> str:
    """Calendar date (UTC) of an epoch-ms timestamp in the locale's order."""
    moment = datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
    return moment.strftime(_date_format(locale))


def period_label(from_ts: Optional[int], to_ts: Optional[int], locale: str) -> str:
    if from_ts is None or to_ts is None:
        return "All time"
    return f"{format_date(from_ts, locale)} - {format_date(to_ts, locale)}"


def iso_timestamp(ts: int) -> str:
    """Epoch-ms as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
    return _iso(moment)


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ----------------------------------------------------------------------
# Gathering
# ----------------------------------------------------------------------

async def build_report(session: AsyncSession, tracker: Tracker, request: ExportRequest) -> Report:
    """Run only the queries the requested sections need."""
    stats = StatsService(session)
    sections = set(request.sections)

    report = Report(
        tracker_name=tracker.name,
        tracker_id=tracker.tracker_id,
        period=period_label(request.from_ts, request.to_ts, request.locale),
        group_by=request.group_by,
    )

    if "overview" in sections:
        report.overview = await stats.overview(request)
    if "top-pages" in sections:
        report.top_pages = await stats.top_pages(request)
    if "dropoff" in sections:
        report.dropoff = await stats.dropoff(request, quiz_id=request.quiz_id)
    if "utm" in sections:
        report.utm = await stats.utm_stats(request)
    if "leads" in sections:
        report.leads = await LeadRepository(session).export(
            tracker.tracker_id,
            from_ts=request.from_ts,
            to_ts=request.to_ts,
        )

    return report


def _timeseries_rows(overview: dict[str, Any]) -> list[list[str]]:
    return [
        [point["date"], str(point["visits"]), str(point["starts"]),
         str(point["completes"]), str(point["leads"])]
        for point in overview.get("timeseries") or []
    ]


def _top_pages_rows(pages: list[dict[str, Any]]) -> list[list[str]]:
    return [[page["path"], str(page["visits"])] for page in pages]


def _dropoff_rows(points: list[dict[str, Any]]) -> list[list[str]]:
    return [
        [point["date"], str(point["starts"]), str(point["completes"]), str(point["dropoff"])]
        for point in points
    ]


def _utm_rows(groups: list[dict[str, Any]]) -> list[list[str]]:
    return [
        [
            group["utm_source"] or "-",
            group["utm_medium"] or "-",
            group["utm_campaign"] or "-",
            str(group["visits"]),
            str(group["starts"]),
            str(group["completes"]),
        ]
        for group in groups
    ]


def _lead_rows(leads: list[Lead]) -> list[list[str]]:
    return [
        [lead.email or "-", lead.name or "-", lead.phone or "-", iso_timestamp(lead.ts)]
        for lead in leads
    ]


def _overview_lines(overview: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        ("Visits", str(overview["visits"])),
        ("Starts", str(overview["starts"])),
        ("Completes", str(overview["completes"])),
        ("Completion Rate", f"{overview['completionRate']}%"),
        ("Leads", str(overview["leads"])),
        ("Lead Rate", f"{overview['leadRate']}%"),
    ]


# ----------------------------------------------------------------------
# Plain text
# ----------------------------------------------------------------------

BANNER_WIDTH = 63


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Bordered fixed-width table; each column is as wide as its longest cell."""
    widths = [len(header) for header in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(widths)]):
            widths[i] = max(widths[i], len(cell))

    separator = "+" + "+".join("-" * (width + 2) for width in widths) + "+\n"

    def line(cells: Sequence[str]) -> str:
        return "|" + "|".join(f" {cell.ljust(widths[i])} " for i, cell in enumerate(cells)) + "|\n"

    out = separator + line(headers) + separator
    for row in rows:
        out += line(row)
    return out + separator


def _section_title(title: str) -> str:
    inner = BANNER_WIDTH - 2
    return (
        "+" + "-" * inner + "+\n"
        + "| " + title.ljust(inner - 1) + "|\n"
        + "+" + "-" * inner + "+\n\n"
    )


def render_txt(report: Report) -> str:
    inner = BANNER_WIDTH - 2
    out = "=" * BANNER_WIDTH + "\n"
    out += "|" + "QUIZIQ REPORT".center(inner) + "|\n"
    out += "=" * BANNER_WIDTH + "\n\n"
    out += f"Tracker: {report.tracker_name}\n"
    out += f"Tracker ID: {report.tracker_id}\n"
    out += f"Period: {report.period}\n"
    out += f"Granularity: {report.group_by}\n\n"

    if report.overview is not None:
        out += _section_title("OVERVIEW")
        for label, value in _overview_lines(report.overview):
            out += f"{label + ':':<17}{value}\n"
        out += "\n"
        rows = _timeseries_rows(report.overview)
        if rows:
            out += "Time Series:\n"
            out += format_table(TIMESERIES_HEADERS, rows) + "\n"

    if report.top_pages is not None:
        out += _section_title("TOP PAGES")
        out += format_table(TOP_PAGES_HEADERS, _top_pages_rows(report.top_pages)) + "\n"

    if report.dropoff is not None:
        out += _section_title("DROP-OFF")
        out += format_table(DROPOFF_HEADERS, _dropoff_rows(report.dropoff)) + "\n"

    if report.utm is not None:
        out += _section_title("UTM STATS")
        out += format_table(UTM_HEADERS, _utm_rows(report.utm)) + "\n"

    if report.leads is not None:
        out += _section_title("LEADS")
        out += format_table(LEADS_HEADERS, _lead_rows(report.leads)) + "\n"

    return out


# ----------------------------------------------------------------------
# HTML / PDF
# ----------------------------------------------------------------------

_STYLE = """
    body { font-family: Arial, sans-serif; padding: 20px; }
    h1 { color: #333; }
    h2 { color: #666; margin-top: 30px; }
    table { width: 100%; border-collapse: collapse; margin: 20px 0; }
    th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
    th { background-color: #f2f2f2; }
    .kpi { display: flex; gap: 20px; margin: 20px 0; }
    .kpi-item { flex: 1; padding: 15px; background: #f9f9f9; border-radius: 8px; }
    .kpi-value { font-size: 24px; font-weight: bold; }
    .kpi-label { color: #666; font-size: 14px; }
"""


def _html_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    head = "".join(f"<th>{html.escape(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(cell)}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def render_html(report: Report) -> str:
    """Markup handed to the PDF renderer. Every value is escaped."""
    parts = [
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\">",
        f"<title>{html.escape(report.tracker_name)}</title>",
        f"<style>{_STYLE}</style></head><body>",
        f"<h1>{html.escape(report.tracker_name)}</h1>",
        f"<p><strong>Tracker ID:</strong> {html.escape(report.tracker_id)}</p>",
        f"<p><strong>Period:</strong> {html.escape(report.period)}</p>",
        f"<p><strong>Granularity:</strong> {html.escape(report.group_by)}</p>",
    ]

    if report.overview is not None:
        parts.append("<h2>Overview</h2><div class=\"kpi\">")
        for label, value in _overview_lines(report.overview):
            parts.append(
                "<div class=\"kpi-item\">"
                f"<div class=\"kpi-value\">{html.escape(value)}</div>"
                f"<div class=\"kpi-label\">{html.escape(label)}</div>"
                "</div>"
            )
        parts.append("</div><h3>Time Series</h3>")
        parts.append(_html_table(TIMESERIES_HEADERS, _timeseries_rows(report.overview)))

    if report.top_pages is not None:
        parts.append("<h2>Top Pages</h2>")
        parts.append(_html_table(TOP_PAGES_HEADERS, _top_pages_rows(report.top_pages)))

    if report.dropoff is not None:
        parts.append("<h2>Drop-off</h2>")
        parts.append(_html_table(DROPOFF_HEADERS, _dropoff_rows(report.dropoff)))

    if report.utm is not None:
        parts.append("<h2>UTM Stats</h2>")
        parts.append(_html_table(UTM_HEADERS, _utm_rows(report.utm)))

    if report.leads is not None:
        parts.append("<h2>Leads</h2>")
        parts.append(_html_table(LEADS_HEADERS, _lead_rows(report.leads)))

    parts.append("</body></html>")
    return "".join(parts)


class PdfRenderer:
    """
    Client for the HTML-to-PDF rendering service.

    The service receives ``{"html": ..., "options": ...}`` and answers with
    the PDF bytes. Failures are not retried.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url if url is not None else settings.pdf_renderer_url
        self.timeout = timeout if timeout is not None else settings.pdf_renderer_timeout
        self._transport = transport

    async def render(self, markup: str) -> bytes:
        if not self.url:
            raise InternalError("PDF rendering is not configured")

        payload = {"html": markup, "options": PDF_OPTIONS}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error("PDF renderer returned an error", status=e.response.status_code)
                raise InternalError("PDF rendering failed") from e
            except httpx.RequestError as e:
                logger.error("PDF renderer unreachable", error=str(e))
                raise InternalError("PDF rendering failed") from e

        return response.content


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------

def render_leads_csv(leads: Sequence[Lead]) -> str:
    """Plain header row, then one fully quoted row per lead. Lines end in ``\\n``."""
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for lead in leads:
        writer.writerow([
            lead.email or "",
            lead.name or "",
            lead.phone or "",
            iso_timestamp(lead.ts),
            _iso(lead.created_at) if lead.created_at else "",
        ])
    return buffer.getvalue()

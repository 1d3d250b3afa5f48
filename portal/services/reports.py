"""
Induction result reports.

``compute_stats`` aggregates an induction's assignments; the two renderers
turn the same data into a PDF (ReportLab platypus) or an XLSX workbook
(openpyxl). Both return bytes so routers can stream them directly.
"""
import html
import io
import logging
import re
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from portal.core.config import settings
from portal.core.timeutils import as_utc, utcnow
from portal.models.induction import Induction
from portal.models.user_induction import InductionStatus, UserInduction

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="000000", end_color="000000", fill_type="solid")
BODY_FONT = Font(name="Calibri", size=10)
THIN_BORDER = Border(
    left=Side(style="thin"), right=Side(style="thin"),
    top=Side(style="thin"), bottom=Side(style="thin")
)

ASSIGNMENT_COLUMNS = [
    "Name", "Email", "Status", "Assigned", "Available From", "Due Date", "Started", "Completed", "Reminders"
]


def export_filename(induction_name: str, extension: str) -> str:
    return f"{re.sub(r'[^a-z0-9]', '_', induction_name, flags=re.IGNORECASE).lower()}_results.{extension}"


def is_overdue(record: UserInduction, now: datetime) -> bool:
    if record.status == InductionStatus.overdue:
        return True
    due = as_utc(record.due_date)
    return record.status != InductionStatus.complete and due is not None and due < now


def compute_stats(records: List[UserInduction], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    by_status = Counter(record.status for record in records)

    durations = []
    timeline: Counter = Counter()
    for record in records:
        if record.status != InductionStatus.complete or record.completed_at is None:
            continue
        completed = as_utc(record.completed_at)
        timeline[completed.date().isoformat()] += 1
        if record.started_at is not None:
            durations.append((completed - as_utc(record.started_at)).total_seconds())

    return {
        "total": len(records),
        "completed": by_status[InductionStatus.complete],
        "inProgress": by_status[InductionStatus.in_progress],
        "assigned": by_status[InductionStatus.assigned],
        "overdue": sum(1 for record in records if is_overdue(record, now)),
        "averageCompletionTime": round(sum(durations) / len(durations) / 60) if durations else 0,
        "completionTimeline": [{"date": day, "count": timeline[day]} for day in sorted(timeline)],
    }


def _fmt(value: Optional[datetime]) -> str:
    value = as_utc(value)
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def _assignment_rows(records: List[UserInduction], now: datetime) -> List[List[Any]]:
    rows = []
    for record in records:
        user = record.user
        status = InductionStatus.overdue if is_overdue(record, now) else record.status
        rows.append([
            user.display_name if user else "",
            user.email if user else "",
            status.value.replace("_", " ").title(),
            _fmt(record.assigned_at),
            _fmt(record.available_from),
            _fmt(record.due_date),
            _fmt(record.started_at),
            _fmt(record.completed_at),
            record.reminder_count or 0,
        ])
    return rows


def _summary_rows(induction: Induction, stats: Dict[str, Any]) -> List[List[Any]]:
    return [
        ["Induction", induction.name],
        ["Department", induction.department or ""],
        ["Total assigned", stats["total"]],
        ["Completed", stats["completed"]],
        ["In progress", stats["inProgress"]],
        ["Not started", stats["assigned"]],
        ["Overdue", stats["overdue"]],
        ["Average completion time (minutes)", stats["averageCompletionTime"]],
    ]


def render_results_pdf(induction: Induction, records: List[UserInduction], now: Optional[datetime] = None) -> bytes:
    now = now or utcnow()
    stats = compute_stats(records, now)
    styles = getSampleStyleSheet()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        title=f"{induction.name} results",
    )

    story = [
        Paragraph(f"{html.escape(induction.name)}: Induction Results", styles["Title"]),
        Paragraph(f"{settings.app_name}, generated {now.strftime('%d %B %Y %H:%M')} UTC", styles["Normal"]),
        Spacer(1, 0.25 * inch),
    ]

    summary = Table(_summary_rows(induction, stats), hAlign="LEFT", colWidths=[3 * inch, 4 * inch])
    summary.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    story.extend([summary, Spacer(1, 0.3 * inch)])

    rows = _assignment_rows(records, now)
    if rows:
        table = Table([ASSIGNMENT_COLUMNS] + rows, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.black),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f4f4f4")]),
        ]))
        story.append(table)
    else:
        story.append(Paragraph("No staff have been assigned this induction yet.", styles["Italic"]))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.info(f"Rendered results PDF for induction {induction.id} ({len(pdf_bytes)} bytes)")
    return pdf_bytes


def _style_header(ws, max_col: int) -> None:
    for col in range(1, max_col + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(vertical="center", horizontal="center")
        cell.border = THIN_BORDER


def _style_body(ws) -> None:
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=ws.max_column):
        for cell in row:
            cell.font = BODY_FONT
            cell.border = THIN_BORDER


def auto_width(ws, max_width: int = 60) -> None:
    for col in range(1, ws.max_column + 1):
        max_len = 0
        for row in ws.iter_rows(min_row=1, max_row=min(ws.max_row, 50), min_col=col, max_col=col):
            for cell in row:
                if cell.value is not None:
                    max_len = max(max_len, min(len(str(cell.value)), max_width))
        ws.column_dimensions[get_column_letter(col)].width = max(max_len + 2, 12)


def render_results_xlsx(induction: Induction, records: List[UserInduction], now: Optional[datetime] = None) -> bytes:
    now = now or utcnow()
    stats = compute_stats(records, now)

    wb = openpyxl.Workbook()
    summary = wb.active
    summary.title = "Summary"
    summary.append(["Metric", "Value"])
    for row in _summary_rows(induction, stats):
        summary.append(row)
    _style_header(summary, 2)
    _style_body(summary)
    auto_width(summary)

    assignments = wb.create_sheet("Assignments")
    assignments.append(ASSIGNMENT_COLUMNS)
    for row in _assignment_rows(records, now):
        assignments.append(row)
    _style_header(assignments, len(ASSIGNMENT_COLUMNS))
    _style_body(assignments)
    assignments.freeze_panes = "A2"
    auto_width(assignments)

    buffer = io.BytesIO()
    wb.save(buffer)
    logger.info(f"Rendered results workbook for induction {induction.id} ({len(records)} rows)")
    return buffer.getvalue()

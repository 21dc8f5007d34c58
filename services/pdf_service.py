"""
PDF Service - Daily technician sheets rendered with ReportLab.

One block per call with the customer details and blank boxes for the
technician to fill in on site. If the styled layout fails to build, a
plain paragraph-only layout is tried before giving up.
"""

import logging
import os
from datetime import date, datetime
from typing import Dict, List, Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, KeepTogether, HRFlowable
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = 'Daily Service Sheet'
BRAND_COLOR = colors.HexColor('#556B2F')


class PDFGenerationError(Exception):
    """Raised when neither the styled nor the minimal layout could be built"""
    pass


def default_filename(day: date) -> str:
    return f"daily-service-sheet-{day.isoformat()}.pdf"


def format_long_date(day: date) -> str:
    """e.g. 'Monday, March 4, 2024'"""
    return f"{day:%A, %B} {day.day}, {day.year}"


def format_generated_time(moment: datetime) -> str:
    """e.g. 'Mar 4, 2024 9:05 AM'"""
    hour = moment.hour % 12 or 12
    return f"{moment:%b} {moment.day}, {moment.year} {hour}:{moment:%M %p}"


def format_scheduled_time(value: Optional[str]) -> str:
    if not value:
        return 'Not scheduled'
    moment = datetime.fromisoformat(value)
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment:%M %p}"


def call_count_label(count: int) -> str:
    return f"{count} service call{'' if count == 1 else 's'}"


def _text(value: Any) -> str:
    return escape(str(value)) if value not in (None, '') else ''


def _build_styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=BRAND_COLOR,
            alignment=TA_CENTER,
            spaceAfter=10,
        ),
        'date': ParagraphStyle(
            'SheetDate',
            parent=styles['Heading2'],
            fontSize=18,
            alignment=TA_CENTER,
            spaceAfter=6,
        ),
        'center': ParagraphStyle('Centered', parent=styles['Normal'], alignment=TA_CENTER),
        'call_heading': ParagraphStyle(
            'CallHeading',
            parent=styles['Heading3'],
            fontSize=14,
            textColor=colors.white,
        ),
        'footer': ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9,
                                 alignment=TA_CENTER, textColor=colors.grey),
        'normal': styles['Normal'],
        'heading': styles['Heading3'],
    }


def _header(story, styles, day: date, count: int, title: str):
    story.append(Paragraph(_text(title), styles['title']))
    story.append(Paragraph(format_long_date(day), styles['date']))
    story.append(Paragraph(call_count_label(count), styles['center']))
    story.append(Spacer(1, 0.15 * inch))
    story.append(HRFlowable(width='100%', thickness=2, color=colors.black))
    story.append(Spacer(1, 0.25 * inch))


def _footer(story, styles, generated_at: datetime):
    story.append(Spacer(1, 0.3 * inch))
    story.append(HRFlowable(width='100%', thickness=0.5, color=colors.lightgrey))
    story.append(Paragraph(f"Generated on {format_generated_time(generated_at)}", styles['footer']))


def _call_block(call: Dict[str, Any], index: int, styles) -> KeepTogether:
    """Table for one call: a colored heading row, detail rows, then blank fill-in boxes."""
    normal = styles['normal']

    def row(label, value):
        return [Paragraph(f"<b>{label}:</b>", normal), Paragraph(_text(value), normal)]

    rows = [
        [Paragraph(f"#{index} - {_text(call.get('customerName'))}", styles['call_heading']), ''],
        row('Phone', call.get('phone')),
        row('Address', call.get('address')),
    ]
    if call.get('landlordName'):
        rows.append(row('Landlord', call['landlordName']))
    rows.extend([
        row('Type', f"{call.get('callType')} | Status: {call.get('status')}"),
        row('Scheduled', format_scheduled_time(call.get('scheduledAt'))),
        row('Problem', call.get('problemDesc')),
    ])
    if call.get('modelNumber'):
        rows.append(row('Model', call['modelNumber']))

    details = Table(rows, colWidths=[1.2 * inch, 5.3 * inch])
    details.setStyle(TableStyle([
        ('SPAN', (0, 0), (-1, 0)),
        ('BACKGROUND', (0, 0), (-1, 0), BRAND_COLOR),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('BOX', (0, 0), (-1, -1), 1, colors.grey),
    ]))

    boxes = Table(
        [
            [Paragraph('<b>Work Performed:</b>', normal)],
            [''],
            [Paragraph('<b>Parts Used:</b>', normal)],
            [''],
            [Paragraph('<b>Start Time:</b> _____________ <b>End Time:</b> _____________', normal)],
        ],
        colWidths=[6.5 * inch],
        rowHeights=[None, 0.7 * inch, None, 0.55 * inch, None],
    )
    boxes.setStyle(TableStyle([
        ('BOX', (0, 1), (0, 1), 1, colors.HexColor('#999999')),
        ('BOX', (0, 3), (0, 3), 1, colors.HexColor('#999999')),
        ('TOPPADDING', (0, 0), (-1, -1), 4),
    ]))

    return KeepTogether([details, Spacer(1, 0.1 * inch), boxes, Spacer(1, 0.3 * inch)])


def build_styled_story(calls: List[Dict[str, Any]], day: date, title: str, generated_at: datetime) -> list:
    styles = _build_styles()
    story = []
    _header(story, styles, day, len(calls), title)

    if not calls:
        story.append(Spacer(1, 0.5 * inch))
        story.append(Paragraph('No service calls scheduled for this date.', styles['center']))
    for index, call in enumerate(calls, start=1):
        story.append(_call_block(call, index, styles))

    _footer(story, styles, generated_at)
    return story


def build_minimal_story(calls: List[Dict[str, Any]], day: date, title: str, generated_at: datetime) -> list:
    """Paragraphs only, no tables."""
    styles = getSampleStyleSheet()
    story = [
        Paragraph(_text(title), styles['Title']),
        Paragraph(format_long_date(day), styles['Heading2']),
        Paragraph(call_count_label(len(calls)), styles['Normal']),
        Spacer(1, 0.3 * inch),
    ]

    if not calls:
        story.append(Paragraph('No service calls for this date.', styles['Normal']))

    for index, call in enumerate(calls, start=1):
        story.append(Paragraph(f"#{index} - {_text(call.get('customerName'))}", styles['Heading3']))
        story.append(Paragraph(f"<b>Phone:</b> {_text(call.get('phone'))}", styles['Normal']))
        story.append(Paragraph(f"<b>Address:</b> {_text(call.get('address'))}", styles['Normal']))
        if call.get('landlordName'):
            story.append(Paragraph(f"<b>Landlord:</b> {_text(call['landlordName'])}", styles['Normal']))
        story.append(Paragraph(
            f"<b>Type:</b> {_text(call.get('callType'))} | <b>Status:</b> {_text(call.get('status'))}",
            styles['Normal']
        ))
        story.append(Paragraph(f"<b>Problem:</b> {_text(call.get('problemDesc'))}", styles['Normal']))
        story.append(Paragraph('<b>Work Performed:</b> ' + '_' * 60, styles['Normal']))
        story.append(Paragraph('<b>Parts Used:</b> ' + '_' * 64, styles['Normal']))
        story.append(Paragraph('<b>Start Time:</b> _____________ <b>End Time:</b> _____________', styles['Normal']))
        story.append(Spacer(1, 0.3 * inch))

    story.append(Paragraph(f"Generated on {format_generated_time(generated_at)}", styles['Normal']))
    return story


def render_daily_sheet(calls: List[Dict[str, Any]], day: date, target, title: str = DEFAULT_TITLE,
                       generated_at: Optional[datetime] = None):
    """
    Render the sheet into target (a path or a binary file object).

    Raises:
        PDFGenerationError: If both layouts fail
    """
    generated_at = generated_at or datetime.now()
    layouts = (('styled', build_styled_story), ('minimal', build_minimal_story))
    last_error = None

    for name, build_story in layouts:
        try:
            if hasattr(target, 'seek'):
                target.seek(0)
                target.truncate()
            doc = SimpleDocTemplate(
                target, pagesize=letter, title=title,
                leftMargin=inch, rightMargin=inch, topMargin=0.75 * inch, bottomMargin=0.75 * inch
            )
            doc.build(build_story(calls, day, title, generated_at))
            logger.info(f"Daily sheet for {day.isoformat()} rendered with {name} layout ({len(calls)} calls)")
            return target
        except Exception as e:
            last_error = e
            logger.warning(f"{name.capitalize()} PDF layout failed: {e}")

    raise PDFGenerationError(f"PDF generation failed with all layouts. Final error: {last_error}")


def export_daily_sheet(calls: List[Dict[str, Any]], day: date, output_folder: str,
                       file_path: Optional[str] = None, title: str = DEFAULT_TITLE) -> str:
    """Write the sheet to file_path (default: output folder + default file name). Returns the path."""
    file_path = file_path or os.path.join(output_folder, default_filename(day))
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    render_daily_sheet(calls, day, file_path, title=title)
    return file_path

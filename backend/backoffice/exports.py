"""
CSV and PDF rendering for back-office exports.

CSV files are UTF-8 with a byte order mark so spreadsheet tools pick up the
encoding. PDFs are built with reportlab's platypus tables and carry a
confidentiality footer with page numbers on every page.
"""

import csv
import io
from datetime import date
from typing import Iterable, List, Optional, Sequence
from xml.sax.saxutils import escape

from django.http import HttpResponse
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BOM = '\ufeff'
FOOTER_TEXT = 'Maestro L.A.B — Confidential'


def dated_filename(prefix: str, extension: str, on: Optional[date] = None) -> str:
    on = on or timezone.localdate()
    return f"{prefix}-{on.isoformat()}.{extension}"


def format_money(value) -> str:
    return f"{value or 0:.2f}"


def generate_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    """
    Render rows as CSV text. Fields are quoted only when they contain a
    comma, a quote or a line break.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerow(headers)
    for row in rows:
        writer.writerow(['' if value is None else value for value in row])
    return buffer.getvalue().rstrip('\n')


def csv_response(content: str, filename: str) -> HttpResponse:
    response = HttpResponse(BOM + content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


class NumberedCanvas(canvas.Canvas):
    """
    Canvas that defers page output so the footer can print "Page i of N".
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(total_pages)
            super().showPage()
        super().save()

    def draw_footer(self, total_pages: int):
        width, _ = self._pagesize
        self.saveState()
        self.setFont('Helvetica', 7)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2, 0.5 * inch, FOOTER_TEXT)
        self.drawCentredString(width / 2, 0.35 * inch, f"Page {self._pageNumber} of {total_pages}")
        self.restoreState()


class PdfReport:
    """
    Small builder around a platypus story.

    ``add_table`` takes a header row plus data rows; ``render`` returns the
    finished document as bytes.
    """

    def __init__(self, title: str, generated_by: Optional[str] = None):
        self.title = title
        self.styles = getSampleStyleSheet()
        today = timezone.localdate().isoformat()
        self.story = [
            self._paragraph(title, 'Title'),
            self._paragraph(f"Generated {today} by {generated_by or 'Unknown'}", 'Normal'),
            Spacer(1, 0.2 * inch),
        ]

    def add_heading(self, text: str):
        self.story.append(self._paragraph(text, 'Heading3'))

    def _paragraph(self, text: str, style: str) -> Paragraph:
        # Paragraph parses its text as markup
        return Paragraph(escape(str(text)), self.styles[style])

    def add_lines(self, lines: Iterable[str]):
        for line in lines:
            self.story.append(self._paragraph(line, 'Normal'))
        self.story.append(Spacer(1, 0.15 * inch))

    def add_table(self, headers: Sequence[str], rows: List[Sequence]):
        data = [list(headers)] + [['' if value is None else str(value) for value in row] for row in rows]
        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#292929')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 7),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        self.story.append(table)
        self.story.append(Spacer(1, 0.2 * inch))

    def render(self) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            title=self.title,
            leftMargin=0.5 * inch,
            rightMargin=0.5 * inch,
            topMargin=0.6 * inch,
            bottomMargin=0.8 * inch,
        )
        doc.build(self.story, canvasmaker=NumberedCanvas)
        return buffer.getvalue()


def pdf_response(content: bytes, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response

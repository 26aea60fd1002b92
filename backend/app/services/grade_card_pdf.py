"""
PDF rendering of a semester grade card
"""

from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.exceptions import DocumentGenerationError
from app.core.logging_config import logger


@dataclass
class GradeRow:
    subject_code: str
    subject_name: str
    credit: float
    internal_marks: Optional[float]
    external_marks: Optional[float]
    grade: Optional[str]
    grade_point: Optional[float]


@dataclass
class GradeCardDocument:
    card_no: str
    student_name: str
    enrollment_no: str
    college_name: str
    semester_number: int
    batch_name: str
    rows: List[GradeRow] = field(default_factory=list)
    total_credit: Optional[float] = None
    total_quality_point: Optional[float] = None
    gpa: Optional[float] = None
    cgpa: Optional[float] = None
    issued_on: datetime = field(default_factory=datetime.utcnow)

    @property
    def filename(self) -> str:
        return f"GradeCard_{self.enrollment_no}_Sem{self.semester_number}.pdf"


def _fmt(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class GradeCardPDFGenerator:
    """Builds the one-page grade card"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name='CardTitle',
            parent=self.styles['Title'],
            fontSize=18,
            textColor=HexColor('#1e3a8a'),
            alignment=TA_CENTER,
            spaceAfter=6,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='CardSubtitle',
            parent=self.styles['Normal'],
            fontSize=11,
            alignment=TA_CENTER,
            textColor=HexColor('#4a4a4a'),
            spaceAfter=4,
        ))

    def _details_table(self, card: GradeCardDocument) -> Table:
        data = [
            ["Name", card.student_name, "Enrollment No", card.enrollment_no],
            ["College", card.college_name, "Semester", str(card.semester_number)],
            ["Batch", card.batch_name, "Card No", card.card_no],
        ]
        table = Table(data, colWidths=[1.1 * inch, 2.4 * inch, 1.2 * inch, 1.8 * inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table

    def _grades_table(self, card: GradeCardDocument) -> Table:
        data = [["Code", "Subject", "Credit", "Internal", "External", "Grade", "Point"]]
        for row in card.rows:
            data.append([
                row.subject_code,
                row.subject_name,
                _fmt(row.credit),
                _fmt(row.internal_marks),
                _fmt(row.external_marks),
                row.grade or "-",
                _fmt(row.grade_point),
            ])
        table = Table(data, repeatRows=1, colWidths=[
            0.8 * inch, 2.6 * inch, 0.6 * inch, 0.7 * inch, 0.7 * inch, 0.6 * inch, 0.6 * inch
        ])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), HexColor('#1e3a8a')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ALIGN', (2, 1), (-1, -1), 'CENTER'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, HexColor('#f3f4f6')]),
        ]))
        return table

    def _summary_table(self, card: GradeCardDocument) -> Table:
        data = [
            ["Total Credit", "Total Quality Point", "GPA", "CGPA"],
            [_fmt(card.total_credit), _fmt(card.total_quality_point), _fmt(card.gpa), _fmt(card.cgpa)],
        ]
        table = Table(data, colWidths=[1.6 * inch] * 4)
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ]))
        return table

    def render(self, card: GradeCardDocument) -> bytes:
        buffer = BytesIO()
        try:
            doc = SimpleDocTemplate(
                buffer,
                pagesize=A4,
                title=card.filename,
                topMargin=0.7 * inch,
                bottomMargin=0.7 * inch,
            )
            story = [
                Paragraph("State Board of Technical Education", self.styles['CardTitle']),
                Paragraph("Semester Grade Card", self.styles['CardSubtitle']),
                Paragraph(
                    f"Card No: {card.card_no} &nbsp;&nbsp; Date: {card.issued_on.strftime('%d %B %Y')}",
                    self.styles['CardSubtitle'],
                ),
                Spacer(1, 0.25 * inch),
                self._details_table(card),
                Spacer(1, 0.25 * inch),
                self._grades_table(card),
                Spacer(1, 0.25 * inch),
                Paragraph("Grade Summary", self.styles['Heading3']),
                self._summary_table(card),
            ]
            doc.build(story)
        except (ValueError, KeyError, AttributeError) as e:
            logger.error(f"[GradeCardPDF] Failed to render {card.card_no}: {e}")
            raise DocumentGenerationError(f"Failed to render grade card {card.card_no}", doc_type="grade_card")

        logger.info(f"[GradeCardPDF] Rendered {card.filename}")
        return buffer.getvalue()


grade_card_pdf = GradeCardPDFGenerator()

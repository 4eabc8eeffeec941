import io
import logging
import os
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from devisfacture.pdf.config import PDFSettings
from devisfacture.pdf.content import TABLE_HEADER, DocumentContent
from devisfacture.pdf.exceptions import PDFGenerationException
from devisfacture.pdf.generator import AbstractPDFGenerator

logger = logging.getLogger(__name__)


class ReportLabPDFGenerator(AbstractPDFGenerator):
    """Rendu A4 avec ReportLab (platypus).

    Le tableau des lignes répète son en-tête sur chaque page et le pied de
    page légal est dessiné sur toutes les pages.
    """

    def __init__(self, settings: PDFSettings):
        self.settings = settings
        self.primary_color = colors.HexColor(settings.PRIMARY_COLOR_HEX)

    async def generate_document_pdf(self, content: DocumentContent) -> bytes:
        logger.info(f"[PDFGen] Génération PDF {content.title} {content.number}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=1.5 * cm,
            rightMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=2.5 * cm,
            title=f"{content.title} {content.number}",
        )
        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(name="DocTitle", parent=styles["Heading1"], textColor=self.primary_color)
        normal_style = styles["Normal"]
        small_style = ParagraphStyle(name="Small", parent=normal_style, fontSize=8, leading=10)
        notice_style = ParagraphStyle(name="Notice", parent=normal_style, textColor=colors.red, fontName="Helvetica-Bold")
        footer_style = ParagraphStyle(name="Footer", fontSize=7, leading=9, textColor=colors.gray, alignment=1)

        elements = []
        if self.settings.LOGO_PATH and os.path.exists(self.settings.LOGO_PATH):
            logo = Image(self.settings.LOGO_PATH, width=4 * cm, height=2 * cm)
            logo.hAlign = "LEFT"
            elements.append(logo)

        if content.trial_notice:
            elements.append(Paragraph(escape(content.trial_notice), notice_style))
            elements.append(Spacer(1, 0.3 * cm))

        elements.append(Paragraph(f"{content.title} N° {escape(content.number)}", title_style))
        for label, value in content.dates:
            elements.append(Paragraph(f"{escape(label)} : {escape(value)}", normal_style))
        elements.append(Spacer(1, 0.5 * cm))

        # Émetteur à gauche, client à droite
        parties = Table(
            [[
                Paragraph("<br/>".join(escape(l) for l in content.sender_lines), normal_style),
                Paragraph("<b>Client</b><br/>" + "<br/>".join(escape(l) for l in content.client_lines), normal_style),
            ]],
            colWidths=[doc.width / 2, doc.width / 2],
        )
        parties.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        elements.append(parties)
        elements.append(Spacer(1, 0.7 * cm))

        table_data = [[Paragraph(f"<b>{h}</b>", small_style) for h in TABLE_HEADER]]
        for designation, quantity, unit_price, rate, total in content.rows:
            table_data.append([Paragraph(escape(designation), normal_style), quantity, unit_price, rate, total])
        lines_table = Table(
            table_data,
            colWidths=[doc.width * 0.46, doc.width * 0.12, doc.width * 0.14, doc.width * 0.1, doc.width * 0.18],
            repeatRows=1,
        )
        lines_table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), self.primary_color),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.darkgrey),
            ("FONTSIZE", (0, 1), (-1, -1), 9),
        ]))
        elements.append(lines_table)
        elements.append(Spacer(1, 0.4 * cm))

        totals_table = Table(
            [[label, f"{value} €"] for label, value in content.totals],
            colWidths=[doc.width * 0.2, doc.width * 0.18],
            hAlign="RIGHT",
        )
        totals_table.setStyle(TableStyle([
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("LINEABOVE", (0, -1), (-1, -1), 0.5, colors.darkgrey),
        ]))
        elements.append(totals_table)
        elements.append(Spacer(1, 0.6 * cm))

        if content.vat_exemption_notice:
            elements.append(Paragraph(escape(content.vat_exemption_notice), normal_style))
        if content.notes:
            elements.append(Paragraph(escape(content.notes).replace("\n", "<br/>"), normal_style))
            elements.append(Spacer(1, 0.3 * cm))
        for mention in content.legal_mentions:
            elements.append(Paragraph(escape(mention), small_style))
        if content.bank_details:
            elements.append(Spacer(1, 0.2 * cm))
            elements.append(Paragraph("<b>Coordonnées bancaires</b>", small_style))
            for line in content.bank_details:
                elements.append(Paragraph(escape(line), small_style))

        def add_footer(canvas, doc):
            canvas.saveState()
            if content.footer:
                footer = Paragraph(escape(content.footer), footer_style)
                _, h = footer.wrap(doc.width, doc.bottomMargin)
                footer.drawOn(canvas, doc.leftMargin, doc.bottomMargin - h - 0.5 * cm)
            canvas.setFont("Helvetica", 7)
            canvas.drawRightString(doc.leftMargin + doc.width, 0.8 * cm, f"Page {doc.page}")
            canvas.restoreState()

        try:
            doc.build(elements, onFirstPage=add_footer, onLaterPages=add_footer)
        except Exception as e:
            logger.error(f"[PDFGen] Erreur ReportLab build() pour {content.number}: {e}", exc_info=True)
            raise PDFGenerationException(f"Erreur lors de la construction du PDF: {e}", original_exception=e)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        logger.info(f"[PDFGen] PDF {content.number} généré en mémoire ({len(pdf_bytes)} bytes).")
        return pdf_bytes

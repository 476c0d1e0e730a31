"""
PDF rendering for offers and invoices.

The layout is built as an ordered list of DocumentLine entries by pure
functions; `draw_document` only places those lines on a single A4 page with
the reportlab canvas. A description too long for the page is cut short so
the cost table and the footer always fit.
"""

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from handyai.core.config import settings
from handyai.models.customer import Customer
from handyai.models.invoice import Invoice
from handyai.models.offer import Offer

MARGIN = 60
FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
TEXT_SIZE = 11
PAGE_BODY_HEIGHT = A4[1] - 2 * MARGIN
TRUNCATION_MARK = "[…]"

_STYLES = {
    # style: (font, size, space after)
    "brand": (BOLD_FONT, 10, 24),
    "title": (BOLD_FONT, 22, 30),
    "meta": (FONT, 12, 18),
    "heading": (BOLD_FONT, 13, 20),
    "text": (FONT, TEXT_SIZE, 16),
    "amount": (FONT, TEXT_SIZE, 18),
    "total": (BOLD_FONT, 12, 24),
    "footer": (FONT, 10, 16),
}


@dataclass
class DocumentLine:
    text: str
    style: str = "text"
    # Right-aligned amount column
    amount: Optional[str] = None
    rule_before: bool = False
    space_before: int = 0
    # May be dropped when the page runs full
    truncatable: bool = False


def format_amount(value: Optional[float]) -> str:
    return f"{float(value or 0):.2f} €"


def format_document_date(value: datetime) -> str:
    return value.strftime("%d.%m.%Y")


def _wrap(text: str) -> List[str]:
    width = A4[0] - 2 * MARGIN
    lines: List[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(simpleSplit(paragraph, FONT, TEXT_SIZE, width) or [""])
    return lines


def _customer_block(customer: Customer) -> List[DocumentLine]:
    lines = [DocumentLine("KUNDE:", "heading", space_before=10), DocumentLine(customer.full_name)]
    if customer.address:
        lines.extend(DocumentLine(part) for part in customer.address.splitlines() if part.strip())
    if customer.email:
        lines.append(DocumentLine(f"E-Mail: {customer.email}"))
    if customer.phone:
        lines.append(DocumentLine(f"Telefon: {customer.phone}"))
    return lines


def _description_block(job_description: Optional[str], measurements: Optional[str]) -> List[DocumentLine]:
    lines = [DocumentLine("LEISTUNGSBESCHREIBUNG:", "heading", space_before=14)]
    lines.extend(DocumentLine(text, truncatable=True) for text in _wrap(job_description or "-"))
    if measurements:
        lines.append(DocumentLine(f"Maße/Fläche: {measurements}", space_before=6))
    return lines


def _cost_block(offer: Offer, total_label: str, total: float) -> List[DocumentLine]:
    return [
        DocumentLine("KOSTENAUFSTELLUNG:", "heading", space_before=14),
        DocumentLine("Materialkosten:", "amount", amount=format_amount(offer.materials_cost)),
        DocumentLine("Arbeitskosten:", "amount", amount=format_amount(offer.labor_cost)),
        DocumentLine(f"{total_label}:", "total", amount=format_amount(total), rule_before=True),
    ]


def layout_height(lines: List[DocumentLine]) -> int:
    """Vertical space the lines take from the first baseline to the last."""
    height = 0
    for line in lines:
        height += line.space_before + (4 if line.rule_before else 0) + _STYLES[line.style][2]
    return height - _STYLES[lines[-1].style][2] if lines else 0


def fit_to_page(lines: List[DocumentLine]) -> List[DocumentLine]:
    """Drop description lines from the end until the layout fits on one page."""
    lines = list(lines)
    truncated = False
    while layout_height(lines) > PAGE_BODY_HEIGHT:
        removable = [i for i, line in enumerate(lines) if line.truncatable]
        if len(removable) < 2:
            break
        del lines[removable[-1]]
        truncated = True
    if truncated:
        last = max(i for i, line in enumerate(lines) if line.truncatable)
        lines[last] = DocumentLine(TRUNCATION_MARK, truncatable=True)
    return lines


def offer_document_lines(offer: Offer) -> List[DocumentLine]:
    """Ordered layout of an offer PDF. `offer.customer` must be loaded."""
    lines = [
        DocumentLine(settings.COMPANY_NAME, "brand"),
        DocumentLine("ANGEBOT", "title"),
        DocumentLine(f"Angebotsnummer: {offer.offer_number}", "meta"),
        DocumentLine(f"Datum: {format_document_date(offer.created_at)}", "meta"),
    ]
    lines.extend(_customer_block(offer.customer))
    lines.extend(_description_block(offer.job_description, offer.measurements))
    lines.extend(_cost_block(offer, "Gesamtbetrag", offer.total_cost))
    lines.extend([
        DocumentLine("Alle Preise inkl. gesetzlicher Mehrwertsteuer.", "footer", space_before=20),
        DocumentLine(f"Dieses Angebot ist {settings.OFFER_VALIDITY_DAYS} Tage gültig.", "footer"),
        DocumentLine("Vielen Dank für Ihr Vertrauen!", "footer"),
    ])
    return fit_to_page(lines)


def invoice_document_lines(invoice: Invoice) -> List[DocumentLine]:
    """Ordered layout of an invoice PDF. `invoice.customer` and `invoice.offer` must be loaded."""
    offer = invoice.offer
    lines = [
        DocumentLine(settings.COMPANY_NAME, "brand"),
        DocumentLine("RECHNUNG", "title"),
        DocumentLine(f"Rechnungsnummer: {invoice.invoice_number}", "meta"),
        DocumentLine(f"Datum: {format_document_date(invoice.created_at)}", "meta"),
        DocumentLine(f"Angebotsnummer: {offer.offer_number}", "meta"),
    ]
    lines.extend(_customer_block(invoice.customer))
    lines.extend(_description_block(offer.job_description, offer.measurements))
    lines.extend(_cost_block(offer, "Rechnungsbetrag", invoice.total_amount))
    lines.extend([
        DocumentLine(
            f"Zahlbar binnen {settings.INVOICE_PAYMENT_DAYS} Tagen nach Rechnungsdatum.",
            "footer",
            space_before=20,
        ),
        DocumentLine("Vielen Dank für Ihr Vertrauen!", "footer"),
    ])
    return fit_to_page(lines)


def draw_document(lines: List[DocumentLine], title: str) -> bytes:
    """Draw the lines top to bottom on one A4 page and return the PDF bytes."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(title)
    width, height = A4
    y = height - MARGIN

    for line in lines:
        font, size, space_after = _STYLES.get(line.style, _STYLES["text"])
        y -= line.space_before
        if line.rule_before:
            c.line(MARGIN, y + size + 4, width - MARGIN, y + size + 4)
            y -= 4
        if y < MARGIN:
            # Only reachable when the fixed blocks alone overflow the page
            break
        c.setFont(font, size)
        c.drawString(MARGIN, y, line.text)
        if line.amount is not None:
            c.drawRightString(width - MARGIN, y, line.amount)
        y -= space_after

    c.showPage()
    c.save()
    buf.seek(0)
    return buf.read()


def render_offer_pdf(offer: Offer) -> bytes:
    return draw_document(offer_document_lines(offer), f"Angebot {offer.offer_number}")


def render_invoice_pdf(invoice: Invoice) -> bytes:
    return draw_document(invoice_document_lines(invoice), f"Rechnung {invoice.invoice_number}")

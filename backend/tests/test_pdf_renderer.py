"""
Tests for handyai/services/documents/pdf_renderer.py - offer and invoice layouts.
"""
from datetime import datetime, timezone

import handyai.db.base  # noqa: F401  registers every mapped model
from handyai.core.config import settings
from handyai.models.customer import Customer
from handyai.models.invoice import Invoice
from handyai.models.offer import Offer
from handyai.services.documents.pdf_renderer import (
    PAGE_BODY_HEIGHT,
    TRUNCATION_MARK,
    format_amount,
    invoice_document_lines,
    layout_height,
    offer_document_lines,
    render_invoice_pdf,
    render_offer_pdf,
)


def _customer(**overrides):
    values = dict(
        first_name="Max",
        last_name="Mustermann",
        email="max@example.de",
        phone="0171 1234567",
        address="Hauptstraße 1\n12345 Berlin",
    )
    values.update(overrides)
    return Customer(**values)


def _offer(customer=None, **overrides):
    values = dict(
        offer_number="ANG-2026-0007",
        job_description="Badezimmer komplett fliesen",
        measurements="12 m²",
        materials_cost=600.0,
        labor_cost=800.0,
        total_cost=1500.0,
        created_at=datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc),
    )
    values.update(overrides)
    offer = Offer(**values)
    offer.customer = customer or _customer()
    return offer


def _invoice():
    offer = _offer()
    invoice = Invoice(
        invoice_number="RE-2026-0003",
        total_amount=1500.0,
        created_at=datetime(2026, 4, 2, 8, 0, tzinfo=timezone.utc),
    )
    invoice.offer = offer
    invoice.customer = offer.customer
    return invoice


def _texts(lines):
    return [line.text for line in lines]


class TestOfferLayout:

    def test_section_order(self):
        """Should place header, customer, description, costs and footer in order."""
        texts = _texts(offer_document_lines(_offer()))

        expected_order = [
            settings.COMPANY_NAME,
            "ANGEBOT",
            "Angebotsnummer: ANG-2026-0007",
            "Datum: 14.03.2026",
            "KUNDE:",
            "Max Mustermann",
            "Hauptstraße 1",
            "12345 Berlin",
            "E-Mail: max@example.de",
            "Telefon: 0171 1234567",
            "LEISTUNGSBESCHREIBUNG:",
            "Badezimmer komplett fliesen",
            "Maße/Fläche: 12 m²",
            "KOSTENAUFSTELLUNG:",
            "Materialkosten:",
            "Arbeitskosten:",
            "Gesamtbetrag:",
            "Alle Preise inkl. gesetzlicher Mehrwertsteuer.",
            f"Dieses Angebot ist {settings.OFFER_VALIDITY_DAYS} Tage gültig.",
            "Vielen Dank für Ihr Vertrauen!",
        ]
        assert texts == expected_order

    def test_amounts(self):
        lines = {line.text: line for line in offer_document_lines(_offer())}

        assert lines["Materialkosten:"].amount == "600.00 €"
        assert lines["Arbeitskosten:"].amount == "800.00 €"
        assert lines["Gesamtbetrag:"].amount == "1500.00 €"
        assert lines["Gesamtbetrag:"].rule_before is True

    def test_optional_customer_fields_are_skipped(self):
        customer = _customer(email=None, phone=None, address=None)

        texts = _texts(offer_document_lines(_offer(customer=customer, measurements=None)))

        assert not any(t.startswith("E-Mail:") for t in texts)
        assert not any(t.startswith("Telefon:") for t in texts)
        assert not any(t.startswith("Maße/Fläche:") for t in texts)

    def test_long_description_is_wrapped(self):
        description = "Altbelag entfernen, Untergrund spachteln und neue Feinsteinzeugfliesen verlegen. " * 6

        texts = _texts(offer_document_lines(_offer(job_description=description)))

        start = texts.index("LEISTUNGSBESCHREIBUNG:") + 1
        end = texts.index("Maße/Fläche: 12 m²")
        assert end - start > 1

    def test_overlong_description_keeps_totals_and_footer(self):
        """Should cut the description short instead of pushing the totals off the page."""
        description = "\n".join(f"Position {i}: Fliesen verlegen" for i in range(200))

        lines = offer_document_lines(_offer(job_description=description))
        texts = _texts(lines)

        assert layout_height(lines) <= PAGE_BODY_HEIGHT
        assert "Position 0: Fliesen verlegen" in texts
        assert "Position 199: Fliesen verlegen" not in texts
        assert texts[texts.index("Maße/Fläche: 12 m²") - 1] == TRUNCATION_MARK
        assert "Gesamtbetrag:" in texts
        assert texts[-1] == "Vielen Dank für Ihr Vertrauen!"

    def test_short_description_is_not_truncated(self):
        assert TRUNCATION_MARK not in _texts(offer_document_lines(_offer()))

    def test_missing_description(self):
        texts = _texts(offer_document_lines(_offer(job_description=None)))

        assert texts[texts.index("LEISTUNGSBESCHREIBUNG:") + 1] == "-"


class TestInvoiceLayout:

    def test_header_and_footer(self):
        texts = _texts(invoice_document_lines(_invoice()))

        assert texts[:5] == [
            settings.COMPANY_NAME,
            "RECHNUNG",
            "Rechnungsnummer: RE-2026-0003",
            "Datum: 02.04.2026",
            "Angebotsnummer: ANG-2026-0007",
        ]
        assert texts[-2:] == [
            f"Zahlbar binnen {settings.INVOICE_PAYMENT_DAYS} Tagen nach Rechnungsdatum.",
            "Vielen Dank für Ihr Vertrauen!",
        ]
        assert "Rechnungsbetrag:" in texts

    def test_overlong_description_keeps_invoice_amount(self):
        invoice = _invoice()
        invoice.offer.job_description = "Sehr lange Beschreibung. " * 1500

        lines = invoice_document_lines(invoice)
        texts = _texts(lines)

        assert layout_height(lines) <= PAGE_BODY_HEIGHT
        assert TRUNCATION_MARK in texts
        assert "Rechnungsbetrag:" in texts
        assert texts[-1] == "Vielen Dank für Ihr Vertrauen!"


class TestPdfOutput:

    def test_offer_pdf_bytes(self):
        pdf = render_offer_pdf(_offer())

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 500

    def test_invoice_pdf_bytes(self):
        assert render_invoice_pdf(_invoice()).startswith(b"%PDF")

    def test_format_amount(self):
        assert format_amount(None) == "0.00 €"
        assert format_amount(99.5) == "99.50 €"

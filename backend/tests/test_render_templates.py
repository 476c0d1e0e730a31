"""
Tests for handyai/services/tools/templates.py - chat summaries built from tool envelopes.
"""
import pytest

from handyai.services.tools.crm_tools import (
    CREATE_CUSTOMER_DEF,
    CREATE_OFFER_DEF,
    GET_CUSTOMERS_DEF,
    GET_STATISTICS_DEF,
)
from handyai.services.tools.templates import (
    RenderTemplate,
    SummaryTemplate,
    TemplateField,
    format_date,
    format_datetime,
    format_euro,
    format_status,
    render_failure,
)


class TestFormatters:

    def test_format_euro(self):
        assert format_euro(1234.5) == "1234.50 €"
        assert format_euro(None) == "0.00 €"

    def test_format_date_from_iso_string(self):
        assert format_date("2026-03-01T10:15:00Z") == "01.03.2026"
        assert format_datetime("2026-03-01T10:15:00") == "01.03.2026 10:15"

    def test_format_date_keeps_unparseable_values(self):
        assert format_date("morgen") == "morgen"

    def test_format_status(self):
        assert format_status("ACCEPTED") == "Angenommen"
        assert format_status("PAID") == "Bezahlt"


class TestRenderTemplateBase:

    def test_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            RenderTemplate()

    def test_subclass_must_implement_render(self):
        class Incomplete(RenderTemplate):
            pass

        with pytest.raises(TypeError):
            Incomplete()


class TestSummaryTemplate:

    def test_customer_confirmation(self):
        """Should show the message as heading and skip empty fields."""
        envelope = {
            "success": True,
            "customer": {"firstName": "Max", "lastName": "Mustermann", "isProspect": True, "email": None},
            "message": 'Interessent "Max Mustermann" wurde erfolgreich erstellt.',
        }

        text = CREATE_CUSTOMER_DEF.render_template.render(envelope)

        assert text.startswith('✅ **Interessent "Max Mustermann" wurde erfolgreich erstellt.**')
        assert "- **Typ:** Interessent" in text
        assert "E-Mail" not in text

    def test_offer_title_and_customer_name(self):
        envelope = {
            "success": True,
            "offer": {
                "offerNumber": "ANG-2026-0001",
                "customer": {"firstName": "Max", "lastName": "Mustermann"},
                "totalCost": 1200,
                "status": "DRAFT",
            },
            "message": "Angebot ANG-2026-0001 für Max Mustermann wurde erstellt.",
        }

        text = CREATE_OFFER_DEF.render_template.render(envelope)

        assert text.splitlines()[0] == "✅ **Angebot ANG-2026-0001 erstellt**"
        assert "- **Kunde:** Max Mustermann" in text
        assert "- **Gesamtbetrag:** 1200.00 €" in text
        assert "- **Status:** Entwurf" in text

    def test_statistics(self):
        envelope = {
            "success": True,
            "statistics": {
                "customers": {"total": 3, "prospects": 1, "recent": 2},
                "offers": {"total": 4, "recent": 1},
                "invoices": {"total": 2},
                "revenue": {"total": 3500.0},
                "conversionRate": "75.00",
            },
            "message": "CRM-Statistiken erfolgreich geladen.",
        }

        text = GET_STATISTICS_DEF.render_template.render(envelope)

        assert text.startswith("📊 **CRM-Übersicht**")
        assert "- **Umsatz:** 3500.00 €" in text
        assert "- **Konversionsrate:** 75.00 %" in text

    def test_missing_title_key_falls_back_to_message(self):
        template = SummaryTemplate(entity_key="offer", title="Angebot {offerNumber}")

        text = template.render({"success": True, "offer": {}, "message": "Fertig."})

        assert text == "✅ **Fertig.**"

    def test_template_field_with_missing_nested_value(self):
        field = TemplateField("Kunde", "{customer[firstName]} {customer[lastName]}")

        assert field.value({}) == ""


class TestTableTemplate:

    def test_renders_markdown_table(self):
        envelope = {
            "success": True,
            "customers": [
                {
                    "firstName": "Max",
                    "lastName": "Mustermann",
                    "email": "max@example.de",
                    "phone": None,
                    "isProspect": False,
                    "_count": {"offers": 2},
                },
            ],
            "count": 1,
            "message": "1 Kunden/Interessenten geladen.",
        }

        lines = GET_CUSTOMERS_DEF.render_template.render(envelope).splitlines()

        assert lines[0] == "1 Kunden/Interessenten geladen."
        assert lines[2] == "| Vorname | Nachname | E-Mail | Telefon | Typ | Angebote |"
        assert lines[4] == "| Max | Mustermann | max@example.de |  | Kunde | 2 |"

    def test_empty_list(self):
        envelope = {"success": True, "customers": [], "count": 0, "message": "0 Kunden/Interessenten geladen."}

        text = GET_CUSTOMERS_DEF.render_template.render(envelope)

        assert text.endswith("Keine Kunden gefunden.")

    def test_escapes_pipes(self):
        envelope = {
            "success": True,
            "customers": [{"firstName": "A|B", "lastName": "C", "isProspect": True}],
            "message": "",
        }

        text = GET_CUSTOMERS_DEF.render_template.render(envelope)

        assert "A\\|B" in text


class TestFailureRendering:

    def test_failed_envelope_renders_error(self):
        envelope = {"success": False, "message": "Der angegebene Kunde konnte nicht gefunden werden."}

        assert CREATE_OFFER_DEF.render_template.render(envelope) == (
            "❌ Der angegebene Kunde konnte nicht gefunden werden."
        )

    def test_failure_without_message(self):
        assert render_failure({"success": False}) == "❌ Die Aktion konnte nicht ausgeführt werden."

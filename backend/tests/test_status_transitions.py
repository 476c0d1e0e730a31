"""
Tests for handyai/services/crm/status.py - offer and invoice lifecycle rules.
"""
import pytest

from handyai.models.invoice import InvoiceStatus
from handyai.models.offer import OfferStatus
from handyai.services.crm.errors import InvalidStatusTransitionError
from handyai.services.crm.status import check_invoice_transition, check_offer_transition


class TestOfferTransitions:
    """Allowed and forbidden offer status changes."""

    @pytest.mark.parametrize("current,requested", [
        ("DRAFT", OfferStatus.SENT),
        ("DRAFT", OfferStatus.ACCEPTED),
        ("DRAFT", OfferStatus.DECLINED),
        ("SENT", OfferStatus.ACCEPTED),
        ("SENT", OfferStatus.DECLINED),
    ])
    def test_allowed(self, current, requested):
        """Should accept forward transitions."""
        check_offer_transition(current, requested)

    @pytest.mark.parametrize("status", list(OfferStatus))
    def test_same_status_is_accepted(self, status):
        """Should treat setting the current status again as a no-op."""
        check_offer_transition(status.value, status)

    @pytest.mark.parametrize("current,requested", [
        ("ACCEPTED", OfferStatus.DECLINED),
        ("ACCEPTED", OfferStatus.DRAFT),
        ("DECLINED", OfferStatus.ACCEPTED),
        ("SENT", OfferStatus.DRAFT),
    ])
    def test_forbidden(self, current, requested):
        """Should raise for backward transitions and transitions out of terminal states."""
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            check_offer_transition(current, requested)

        assert exc_info.value.current == current
        assert exc_info.value.requested == requested.value

    def test_message_uses_german_labels(self):
        """Should name both states by their German label."""
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            check_offer_transition("DECLINED", OfferStatus.ACCEPTED)

        assert exc_info.value.user_message == (
            'Ein Angebot mit Status "Abgelehnt" kann nicht auf "Angenommen" gesetzt werden.'
        )


class TestInvoiceTransitions:
    """Allowed and forbidden invoice status changes."""

    @pytest.mark.parametrize("current,requested", [
        ("DRAFT", InvoiceStatus.SENT),
        ("DRAFT", InvoiceStatus.PAID),
        ("SENT", InvoiceStatus.PAID),
        ("PAID", InvoiceStatus.PAID),
    ])
    def test_allowed(self, current, requested):
        check_invoice_transition(current, requested)

    @pytest.mark.parametrize("current,requested", [
        ("PAID", InvoiceStatus.SENT),
        ("PAID", InvoiceStatus.DRAFT),
        ("SENT", InvoiceStatus.DRAFT),
    ])
    def test_forbidden(self, current, requested):
        with pytest.raises(InvalidStatusTransitionError):
            check_invoice_transition(current, requested)

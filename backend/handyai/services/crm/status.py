"""
Allowed lifecycle transitions for offers and invoices.

Setting the current status again is always accepted. Terminal states have no
outgoing transitions.
"""

from typing import Dict, FrozenSet

from handyai.models.invoice import InvoiceStatus
from handyai.models.offer import OfferStatus
from handyai.services.crm.errors import InvalidStatusTransitionError

OFFER_TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    # DRAFT may be accepted directly (verbal acceptance on site)
    OfferStatus.DRAFT: frozenset({OfferStatus.SENT, OfferStatus.ACCEPTED, OfferStatus.DECLINED}),
    OfferStatus.SENT: frozenset({OfferStatus.ACCEPTED, OfferStatus.DECLINED}),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.DECLINED: frozenset(),
}

INVOICE_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset(),
}

OFFER_STATUS_LABELS = {
    OfferStatus.DRAFT: "Entwurf",
    OfferStatus.SENT: "Versendet",
    OfferStatus.ACCEPTED: "Angenommen",
    OfferStatus.DECLINED: "Abgelehnt",
}

INVOICE_STATUS_LABELS = {
    InvoiceStatus.DRAFT: "Entwurf",
    InvoiceStatus.SENT: "Versendet",
    InvoiceStatus.PAID: "Bezahlt",
}


def check_offer_transition(current: str, requested: OfferStatus) -> None:
    current_status = OfferStatus(current)
    if requested == current_status or requested in OFFER_TRANSITIONS[current_status]:
        return
    raise InvalidStatusTransitionError(
        "offer",
        current_status.value,
        requested.value,
        f"Ein Angebot mit Status \"{OFFER_STATUS_LABELS[current_status]}\" kann nicht auf "
        f"\"{OFFER_STATUS_LABELS[requested]}\" gesetzt werden.",
    )


def check_invoice_transition(current: str, requested: InvoiceStatus) -> None:
    current_status = InvoiceStatus(current)
    if requested == current_status or requested in INVOICE_TRANSITIONS[current_status]:
        return
    raise InvalidStatusTransitionError(
        "invoice",
        current_status.value,
        requested.value,
        f"Eine Rechnung mit Status \"{INVOICE_STATUS_LABELS[current_status]}\" kann nicht auf "
        f"\"{INVOICE_STATUS_LABELS[requested]}\" gesetzt werden.",
    )

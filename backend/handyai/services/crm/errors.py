"""Domain errors raised by the CRM store and mapped to envelopes or HTTP responses at the boundary."""


class CRMError(Exception):
    """Base class for expected, business-level failures."""

    #: German, user-facing explanation
    user_message: str = "Die Aktion konnte nicht ausgeführt werden."

    def __init__(self, detail: str, user_message: str | None = None):
        super().__init__(detail)
        self.detail = detail
        if user_message is not None:
            self.user_message = user_message


class EntityNotFoundError(CRMError):
    def __init__(self, entity: str, entity_id: str, user_message: str):
        super().__init__(f"{entity} not found", user_message)
        self.entity = entity
        self.entity_id = entity_id


class OfferNotAcceptedError(CRMError):
    def __init__(self, status: str):
        super().__init__(
            "Only accepted offers can be converted to invoices",
            f"Nur angenommene Angebote können in Rechnungen umgewandelt werden (aktueller Status: {status}).",
        )
        self.status = status


class InvoiceAlreadyExistsError(CRMError):
    def __init__(self, invoice_number: str | None = None):
        suffix = f" ({invoice_number})" if invoice_number else ""
        super().__init__(
            "Invoice already exists for this offer",
            f"Für dieses Angebot existiert bereits eine Rechnung{suffix}.",
        )


class InvalidStatusTransitionError(CRMError):
    def __init__(self, entity: str, current: str, requested: str, user_message: str):
        super().__init__(f"Invalid {entity} status transition: {current} -> {requested}", user_message)
        self.current = current
        self.requested = requested

"""
CRM Store - data access for customers, offers, invoices and appointments

All reads and writes of the CRM entities go through this class. Every write
method runs in its own transaction and commits on success. Business rule
violations (CRMError) are detected before anything is written, so they are
re-raised without a rollback and records returned earlier stay loaded. Any
other error rolls the session back, which expires every record it holds.
Records with joined relations are always loaded eagerly, so callers can
serialize them outside the session.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from handyai.models.appointment import Appointment
from handyai.models.customer import Customer
from handyai.models.invoice import Invoice, InvoiceStatus
from handyai.models.offer import Offer, OfferStatus
from handyai.schemas.appointment import AppointmentCreate
from handyai.schemas.customer import CustomerCreate
from handyai.schemas.offer import OfferCreate
from handyai.services.crm.errors import (
    CRMError,
    EntityNotFoundError,
    InvoiceAlreadyExistsError,
    OfferNotAcceptedError,
)
from handyai.services.crm.numbering import INVOICE_PREFIX, OFFER_PREFIX, next_document_number
from handyai.services.crm.status import check_invoice_transition, check_offer_transition

logger = logging.getLogger("handyai.crm.store")

RECENT_WINDOW = timedelta(days=30)


@dataclass
class CustomerSummary:
    """A customer row plus the number of records it owns."""
    customer: Customer
    offers: int = 0
    invoices: int = 0
    appointments: int = 0


def _customer_not_found(customer_id: str) -> EntityNotFoundError:
    return EntityNotFoundError(
        "Customer", customer_id, "Der angegebene Kunde konnte nicht gefunden werden."
    )


def _offer_not_found(offer_id: str) -> EntityNotFoundError:
    return EntityNotFoundError(
        "Offer", offer_id, "Das angegebene Angebot konnte nicht gefunden werden."
    )


def _invoice_not_found(invoice_id: str) -> EntityNotFoundError:
    return EntityNotFoundError(
        "Invoice", invoice_id, "Die angegebene Rechnung konnte nicht gefunden werden."
    )


class CRMStore:
    """Data store adapter over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _transaction(self):
        try:
            yield
            await self.session.commit()
        except CRMError:
            # Nothing was written yet; a rollback would only expire loaded records
            raise
        except Exception:
            await self.session.rollback()
            raise

    # =========================================================================
    # Customers
    # =========================================================================

    async def create_customer(self, data: CustomerCreate) -> Customer:
        customer = Customer(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            is_prospect=data.is_prospect,
        )
        async with self._transaction():
            self.session.add(customer)
        logger.info(f"Created customer {customer.id} (prospect={customer.is_prospect})")
        return customer

    async def list_customers(self, search: Optional[str] = None) -> List[CustomerSummary]:
        """
        List customers, most recently updated first, with relation counts.

        `search` is a case-insensitive substring match on first name, last name and email.
        """
        offers_count = (
            select(func.count(Offer.id)).where(Offer.customer_id == Customer.id).scalar_subquery()
        )
        invoices_count = (
            select(func.count(Invoice.id)).where(Invoice.customer_id == Customer.id).scalar_subquery()
        )
        appointments_count = (
            select(func.count(Appointment.id)).where(Appointment.customer_id == Customer.id).scalar_subquery()
        )

        query = select(Customer, offers_count, invoices_count, appointments_count)
        if search and search.strip():
            term = search.strip()
            query = query.where(
                or_(
                    Customer.first_name.icontains(term, autoescape=True),
                    Customer.last_name.icontains(term, autoescape=True),
                    Customer.email.icontains(term, autoescape=True),
                )
            )
        query = query.order_by(Customer.updated_at.desc(), Customer.created_at.desc())

        result = await self.session.execute(query)
        return [
            CustomerSummary(customer=row[0], offers=row[1], invoices=row[2], appointments=row[3])
            for row in result.all()
        ]

    async def get_customer(self, customer_id: str, with_relations: bool = False) -> Customer:
        query = select(Customer).where(Customer.id == customer_id)
        if with_relations:
            query = query.options(
                selectinload(Customer.offers),
                selectinload(Customer.invoices),
                selectinload(Customer.appointments),
            ).execution_options(populate_existing=True)
        customer = (await self.session.execute(query)).scalar_one_or_none()
        if customer is None:
            raise _customer_not_found(customer_id)
        return customer

    async def update_customer(self, customer_id: str, changes: Dict[str, Any]) -> Customer:
        """Apply a partial update. Keys not present in `changes` are left untouched."""
        async with self._transaction():
            customer = await self.get_customer(customer_id)
            for field, value in changes.items():
                setattr(customer, field, value)
        logger.info(f"Updated customer {customer_id}: {sorted(changes)}")
        return customer

    async def delete_customer(self, customer_id: str) -> Customer:
        """Hard-delete a customer together with its invoices, appointments and offers."""
        async with self._transaction():
            customer = await self.get_customer(customer_id)
            await self.session.execute(delete(Invoice).where(Invoice.customer_id == customer_id))
            await self.session.execute(delete(Appointment).where(Appointment.customer_id == customer_id))
            await self.session.execute(delete(Offer).where(Offer.customer_id == customer_id))
            await self.session.delete(customer)
        logger.info(f"Deleted customer {customer_id}")
        return customer

    # =========================================================================
    # Offers
    # =========================================================================

    async def create_offer(self, data: OfferCreate) -> Offer:
        async with self._transaction():
            await self.get_customer(data.customer_id)
            offer_number = await next_document_number(self.session, OFFER_PREFIX)
            offer = Offer(
                customer_id=data.customer_id,
                offer_number=offer_number,
                job_description=data.job_description,
                measurements=data.measurements,
                materials_cost=data.materials_cost,
                labor_cost=data.labor_cost,
                total_cost=data.total_cost,
                status=OfferStatus.DRAFT.value,
            )
            self.session.add(offer)
        logger.info(f"Created offer {offer_number} for customer {data.customer_id}")
        return await self.get_offer(offer.id)

    async def list_offers(self, customer_id: Optional[str] = None) -> List[Offer]:
        query = select(Offer).options(selectinload(Offer.customer))
        if customer_id:
            query = query.where(Offer.customer_id == customer_id)
        query = query.order_by(Offer.created_at.desc())
        return list((await self.session.execute(query)).scalars().all())

    async def get_offer(self, offer_id: str) -> Offer:
        query = (
            select(Offer)
            .where(Offer.id == offer_id)
            .options(selectinload(Offer.customer), selectinload(Offer.invoice))
            .execution_options(populate_existing=True)
        )
        offer = (await self.session.execute(query)).scalar_one_or_none()
        if offer is None:
            raise _offer_not_found(offer_id)
        return offer

    async def update_offer(self, offer_id: str, changes: Dict[str, Any]) -> Offer:
        """Partial update; a status change must be an allowed transition."""
        async with self._transaction():
            offer = await self.get_offer(offer_id)
            status = changes.get("status")
            if status is not None:
                status = OfferStatus(status)
                check_offer_transition(offer.status, status)
                changes = {**changes, "status": status.value}
            for field, value in changes.items():
                setattr(offer, field, value)
        logger.info(f"Updated offer {offer.offer_number}: {sorted(changes)}")
        return offer

    # =========================================================================
    # Invoices
    # =========================================================================

    async def create_invoice(self, offer_id: str) -> Invoice:
        """
        Create the invoice for an accepted offer.

        The amount is copied from the offer's total. Fails without writing if the
        offer is not ACCEPTED or already has an invoice.
        """
        try:
            async with self._transaction():
                offer = await self.get_offer(offer_id)
                if offer.status != OfferStatus.ACCEPTED.value:
                    raise OfferNotAcceptedError(offer.status)
                if offer.invoice is not None:
                    raise InvoiceAlreadyExistsError(offer.invoice.invoice_number)

                invoice_number = await next_document_number(self.session, INVOICE_PREFIX)
                invoice = Invoice(
                    customer_id=offer.customer_id,
                    offer_id=offer.id,
                    invoice_number=invoice_number,
                    total_amount=offer.total_cost,
                    status=InvoiceStatus.DRAFT.value,
                )
                self.session.add(invoice)
        except IntegrityError as e:
            # A concurrent request created the invoice between our check and insert
            logger.warning(f"Invoice insert for offer {offer_id} hit a constraint: {e.orig}")
            raise InvoiceAlreadyExistsError() from e
        logger.info(f"Created invoice {invoice_number} from offer {offer.offer_number}")
        return await self.get_invoice(invoice.id)

    async def list_invoices(self, customer_id: Optional[str] = None) -> List[Invoice]:
        query = select(Invoice).options(selectinload(Invoice.customer), selectinload(Invoice.offer))
        if customer_id:
            query = query.where(Invoice.customer_id == customer_id)
        query = query.order_by(Invoice.created_at.desc())
        return list((await self.session.execute(query)).scalars().all())

    async def get_invoice(self, invoice_id: str) -> Invoice:
        query = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.customer), selectinload(Invoice.offer))
            .execution_options(populate_existing=True)
        )
        invoice = (await self.session.execute(query)).scalar_one_or_none()
        if invoice is None:
            raise _invoice_not_found(invoice_id)
        return invoice

    async def update_invoice_status(self, invoice_id: str, status: InvoiceStatus) -> Invoice:
        status = InvoiceStatus(status)
        async with self._transaction():
            invoice = await self.get_invoice(invoice_id)
            check_invoice_transition(invoice.status, status)
            invoice.status = status.value
        logger.info(f"Invoice {invoice.invoice_number} set to {status.value}")
        return invoice

    # =========================================================================
    # Appointments
    # =========================================================================

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        appointment = Appointment(
            customer_id=data.customer_id,
            date=data.date,
            notes=data.notes,
            photos=data.photos,
        )
        async with self._transaction():
            await self.get_customer(data.customer_id)
            self.session.add(appointment)
        logger.info(f"Created appointment {appointment.id} for customer {data.customer_id}")
        return appointment

    async def list_appointments(self, customer_id: Optional[str] = None) -> List[Appointment]:
        query = select(Appointment)
        if customer_id:
            query = query.where(Appointment.customer_id == customer_id)
        query = query.order_by(Appointment.date.asc())
        return list((await self.session.execute(query)).scalars().all())

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_statistics(self) -> Dict[str, Any]:
        since = datetime.now(timezone.utc) - RECENT_WINDOW

        async def scalar(query):
            return (await self.session.execute(query)).scalar_one()

        customers = await scalar(select(func.count(Customer.id)).where(Customer.is_prospect.is_(False)))
        prospects = await scalar(select(func.count(Customer.id)).where(Customer.is_prospect.is_(True)))
        recent_customers = await scalar(select(func.count(Customer.id)).where(Customer.created_at >= since))
        offers = await scalar(select(func.count(Offer.id)))
        recent_offers = await scalar(select(func.count(Offer.id)).where(Offer.created_at >= since))
        invoices = await scalar(select(func.count(Invoice.id)))
        revenue = await scalar(select(func.coalesce(func.sum(Invoice.total_amount), 0.0)))

        conversion_rate = (customers / (customers + prospects) * 100) if customers else 0.0

        return {
            "customers": {"total": customers, "prospects": prospects, "recent": recent_customers},
            "offers": {"total": offers, "recent": recent_offers},
            "invoices": {"total": invoices},
            "revenue": {"total": float(revenue)},
            "conversionRate": f"{conversion_rate:.2f}",
        }

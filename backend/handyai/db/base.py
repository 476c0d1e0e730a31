# Import all the models, so that Base has them before being
# imported by Alembic
from handyai.db.base_class import Base  # noqa

from handyai.models.customer import Customer  # noqa
from handyai.models.offer import Offer  # noqa
from handyai.models.invoice import Invoice  # noqa
from handyai.models.appointment import Appointment  # noqa
from handyai.models.counter import DocumentCounter  # noqa

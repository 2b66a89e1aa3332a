# studio_booking/db/base.py

"""
Imports all the ORM models so Alembic and `Database.create_all` can discover them.
Whenever you add a new model, import it here.
"""
from studio_booking.db.models.service import Service  # noqa: F401
from studio_booking.db.models.appointment import Appointment  # noqa: F401
from studio_booking.db.models.slot_ledger import SlotLedger  # noqa: F401
from studio_booking.db.session import Base  # noqa: F401

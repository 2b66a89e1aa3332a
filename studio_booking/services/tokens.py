# studio_booking/services/tokens.py
from __future__ import annotations

import secrets

from studio_booking.db.models.appointment import Appointment

TOKEN_BYTES = 16  # 128 bits


def generate_token() -> str:
    """Opaque URL-safe secret; carries no structure or ordering."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def assign_tokens(appt: Appointment) -> None:
    appt.confirmation_token = generate_token()
    appt.cancellation_token = generate_token()
    while appt.cancellation_token == appt.confirmation_token:
        appt.cancellation_token = generate_token()

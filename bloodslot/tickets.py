from __future__ import annotations

import random
import string

from bloodslot.domain import BLOOD_TYPES, DonationRequest, Ticket, ValidationError

TICKET_CODE_LENGTH = 9
_ALPHABET = string.digits + string.ascii_lowercase


def generate_ticket_code(rng: random.Random | None = None) -> str:
    # Non-cryptographic and not checked against existing records: two bookings
    # can share a code. Records are keyed by the store id, never by the code.
    source = rng or random
    return "".join(source.choice(_ALPHABET) for _ in range(TICKET_CODE_LENGTH)).upper()


def validate_donor(donor_name: str, blood_type: str) -> None:
    if not isinstance(donor_name, str) or not donor_name.strip():
        raise ValidationError("Donor name is required")
    if blood_type not in BLOOD_TYPES:
        raise ValidationError(f"Unknown blood type: {blood_type!r}")


def issue_ticket(
    donor_name: str,
    blood_type: str,
    time: str,
    request: DonationRequest,
    *,
    rng: random.Random | None = None,
) -> Ticket:
    validate_donor(donor_name, blood_type)
    if not time:
        raise ValidationError("Slot time is required")

    return Ticket(
        ticket_code=generate_ticket_code(rng),
        donor_name=donor_name.strip(),
        time=time,
        location=request.location,
        blood_type=blood_type,
        urgency_level=request.urgency_level,
    )

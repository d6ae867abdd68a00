from __future__ import annotations

import logging
from typing import Any, Mapping

from bloodslot.domain import (
    CLINIC_TIMEZONE_NAME,
    DonationRecord,
    DonationStatus,
    UrgencyLevel,
    ValidationError,
)
from bloodslot.store import DocumentStore, push_id_timestamp_ms

logger = logging.getLogger(__name__)


def record_from_document(doc: Mapping[str, Any]) -> DonationRecord:
    """Read a stored donation, tolerating the gaps older records have."""
    created_at = doc.get("createdAtEpochMs")
    if not isinstance(created_at, int):
        # Fall back to the timestamp encoded in the push id.
        created_at = push_id_timestamp_ms(str(doc.get("id", ""))) or 0

    raw_status = str(doc.get("status") or DonationStatus.PENDING.value)
    try:
        status = DonationStatus.parse(raw_status)
    except ValidationError:
        logger.warning("Donation %s has unknown status %r, showing it as pending", doc.get("id"), raw_status)
        status = DonationStatus.PENDING

    try:
        urgency = UrgencyLevel.parse(str(doc.get("urgencyLevel") or doc.get("urgency") or "normal"))
    except ValidationError:
        urgency = UrgencyLevel.NORMAL

    return DonationRecord(
        donor_name=str(doc.get("donorName") or ""),
        urgency_level=urgency,
        ticket_code=str(doc.get("ticketCode") or ""),
        blood_type=str(doc.get("bloodType") or ""),
        location=str(doc.get("location") or ""),
        date_created=str(doc.get("dateCreated") or doc.get("date") or ""),
        time=str(doc.get("time") or ""),
        owner_user_id=str(doc.get("ownerUserId") or doc.get("userId") or ""),
        created_at_epoch_ms=created_at,
        status=status,
        timezone=str(doc.get("timezone") or CLINIC_TIMEZONE_NAME),
    )


async def list_donations(store: DocumentStore, user_id: str, path: str = "donations") -> list[DonationRecord]:
    """The user's donations, newest first."""
    docs = await store.read_many(path)
    records = [record_from_document(doc) for doc in docs]
    mine = [r for r in records if r.owner_user_id == user_id]
    logger.info("Loaded %d of %d donations for user %s", len(mine), len(records), user_id)
    return sorted(mine, key=lambda r: r.created_at_epoch_ms, reverse=True)

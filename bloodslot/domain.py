from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

BLOOD_TYPES = frozenset({"A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"})

# Label stored on each donation record; scheduling math never looks it up.
CLINIC_TIMEZONE_NAME = "Asia/Riyadh"


class UrgencyLevel(str, Enum):
    VERY_URGENT = "very-urgent"
    URGENT = "urgent"
    NORMAL = "normal"

    @classmethod
    def parse(cls, raw: str) -> "UrgencyLevel":
        # Case documents written by the admin app use Arabic labels.
        value = _ARABIC_URGENCY.get(raw.strip(), raw.strip().lower())
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"Unknown urgency level: {raw!r}") from e


_ARABIC_URGENCY = {
    "عاجل جدًا": UrgencyLevel.VERY_URGENT.value,
    "عاجل": UrgencyLevel.URGENT.value,
    "عادي": UrgencyLevel.NORMAL.value,
}


class DonationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, raw: str) -> "DonationStatus":
        value = _STATUS_ALIASES.get(raw.strip(), raw.strip().lower())
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"Unknown donation status: {raw!r}") from e


# Labels written by the admin screens.
_STATUS_ALIASES = {
    "completed": DonationStatus.APPROVED.value,
    "مكتمل": DonationStatus.APPROVED.value,
    "مكتملة": DonationStatus.APPROVED.value,
    "مقبول": DonationStatus.APPROVED.value,
    "معلقة": DonationStatus.PENDING.value,
    "مرفوض": DonationStatus.REJECTED.value,
}


@dataclass(frozen=True, order=True)
class ClinicTime:
    """Wall-clock time at the clinic (UTC+3)."""

    hour: int
    minute: int

    def __str__(self) -> str:
        return f"{self.hour}:{self.minute:02d}"


@dataclass(frozen=True)
class DonationRequest:
    """A case published by an administrator; read-only to the booking core."""

    id: str
    urgency_level: UrgencyLevel
    blood_type: str
    location: str
    description: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "DonationRequest":
        try:
            raw_urgency = record.get("urgencyLevel", record.get("urgency"))
            return cls(
                id=str(record["id"]),
                urgency_level=UrgencyLevel.parse(str(raw_urgency)),
                blood_type=str(record["bloodType"]),
                location=str(record["location"]),
                description=str(record.get("description") or ""),
            )
        except KeyError as e:
            raise ValidationError(f"Donation request is missing field {e.args[0]!r}") from e


@dataclass(frozen=True)
class Ticket:
    ticket_code: str
    donor_name: str
    time: str
    location: str
    blood_type: str
    urgency_level: UrgencyLevel


@dataclass(frozen=True)
class DonationRecord:
    donor_name: str
    urgency_level: UrgencyLevel
    ticket_code: str
    blood_type: str
    location: str
    date_created: str
    time: str
    owner_user_id: str
    created_at_epoch_ms: int
    status: DonationStatus = DonationStatus.PENDING
    timezone: str = CLINIC_TIMEZONE_NAME

    def to_record(self) -> dict[str, Any]:
        return {
            "donorName": self.donor_name,
            "urgencyLevel": self.urgency_level.value,
            "ticketCode": self.ticket_code,
            "bloodType": self.blood_type,
            "location": self.location,
            "dateCreated": self.date_created,
            "time": self.time,
            "status": self.status.value,
            "timezone": self.timezone,
            "ownerUserId": self.owner_user_id,
            "createdAtEpochMs": self.created_at_epoch_ms,
        }


class ValidationError(RuntimeError):
    """Malformed input to slot or ticket generation."""


class SlotNotOfferedError(ValidationError):
    """The selected slot was not part of the slots offered for this attempt."""


class InvalidTransitionError(RuntimeError):
    pass


class BookingBlockedError(RuntimeError):
    """Booking cannot proceed right now. Not fatal: the caller may retry later."""


class BookingDisabledError(BookingBlockedError):
    pass


class ClosedError(BookingBlockedError):
    pass


class NoSlotsError(BookingBlockedError):
    """No slots remain today. A normal outcome, raised only on request."""


class StoreError(RuntimeError):
    pass


class PersistenceError(StoreError):
    """The store rejected the donation record; the minted ticket is not valid."""


class AuthRequiredError(RuntimeError):
    pass

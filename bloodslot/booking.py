from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from bloodslot.clinic_calendar import ClinicCalendar
from bloodslot.config import Settings
from bloodslot.domain import (
    AuthRequiredError,
    BookingDisabledError,
    ClinicTime,
    ClosedError,
    DonationRecord,
    DonationRequest,
    InvalidTransitionError,
    NoSlotsError,
    PersistenceError,
    SlotNotOfferedError,
    Ticket,
    UrgencyLevel,
    ValidationError,
)
from bloodslot.slots import generate_slots
from bloodslot.store import DocumentStore
from bloodslot.tickets import issue_ticket, validate_donor

logger = logging.getLogger(__name__)


class BookingState(str, Enum):
    IDLE = "idle"
    SELECTING_REQUEST = "selecting-request"
    CHECKING_AVAILABILITY = "checking-availability"
    BLOCKED = "blocked"
    PICKING_SLOT = "picking-slot"
    CONFIRMING = "confirming"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"


class BlockedReason(str, Enum):
    DISABLED = "disabled"
    CLOSED = "closed"
    NO_SLOTS = "no-slots"


_BLOCKED_ERRORS = {
    BlockedReason.DISABLED: BookingDisabledError,
    BlockedReason.CLOSED: ClosedError,
    BlockedReason.NO_SLOTS: NoSlotsError,
}


@dataclass(frozen=True)
class Availability:
    state: BookingState
    clinic_time: ClinicTime | None = None
    slots: tuple[str, ...] = ()
    reason: BlockedReason | None = None
    message: str = ""

    @property
    def blocked(self) -> bool:
        return self.state is BookingState.BLOCKED

    def raise_for_status(self) -> None:
        if self.reason is not None:
            raise _BLOCKED_ERRORS[self.reason](self.message)


@dataclass(frozen=True)
class BookingResult:
    state: BookingState
    ticket: Ticket
    record: DonationRecord
    record_id: str

    @property
    def confirmation(self) -> str:
        return (
            f"Donor: {self.ticket.donor_name}\n"
            f"Ticket: {self.ticket.ticket_code}\n"
            f"Time: {self.ticket.time}\n"
            f"Location: {self.ticket.location}"
        )


class BookingAttempt:
    """One donor booking one request. Moves strictly forward through BookingState."""

    def __init__(
        self,
        coordinator: "BookingCoordinator",
        *,
        donor_name: str,
        blood_type: str,
    ) -> None:
        validate_donor(donor_name, blood_type)
        self._coordinator = coordinator
        self.donor_name = donor_name.strip()
        self.blood_type = blood_type
        self.state = BookingState.IDLE
        self.request: DonationRequest | None = None
        self.availability: Availability | None = None
        self.result: BookingResult | None = None

    def _expect(self, *states: BookingState) -> None:
        if self.state not in states:
            expected = " or ".join(s.value for s in states)
            raise InvalidTransitionError(f"Booking is {self.state.value}, expected {expected}")

    def select_request(self, request: DonationRequest) -> Availability:
        self._expect(BookingState.IDLE)
        self.state = BookingState.SELECTING_REQUEST
        self.request = request

        self.state = BookingState.CHECKING_AVAILABILITY
        try:
            self.availability = self._coordinator.check_availability()
        except Exception:
            self.state = BookingState.FAILED
            raise
        self.state = self.availability.state
        return self.availability

    async def confirm(self, slot: str) -> BookingResult:
        self._expect(BookingState.PICKING_SLOT)
        if self.availability is None or self.request is None:
            raise InvalidTransitionError("Booking has no offered slots to confirm")

        if slot not in self.availability.slots:
            raise SlotNotOfferedError(f"Slot {slot!r} was not offered for this booking")

        self.state = BookingState.CONFIRMING
        coordinator = self._coordinator
        ticket = issue_ticket(self.donor_name, self.blood_type, slot, self.request, rng=coordinator.rng)

        self.state = BookingState.PERSISTING
        try:
            owner = coordinator.store.current_user_id()
            if not owner:
                raise AuthRequiredError("A signed-in user is required to save a donation")

            clinic_now = coordinator.calendar.clinic_now()
            record = DonationRecord(
                donor_name=ticket.donor_name,
                urgency_level=ticket.urgency_level,
                ticket_code=ticket.ticket_code,
                blood_type=ticket.blood_type,
                location=ticket.location,
                date_created=clinic_now.isoformat(),
                time=ticket.time,
                owner_user_id=owner,
                created_at_epoch_ms=int(clinic_now.timestamp() * 1000),
            )
            record_id = await coordinator.store.append_record(coordinator.settings.donations_path, record.to_record())
        except AuthRequiredError:
            self.state = BookingState.FAILED
            raise
        except Exception as e:
            self.state = BookingState.FAILED
            logger.error("Saving donation failed (%s: %s)", type(e).__name__, e)
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(f"Donation was not saved: {type(e).__name__}: {e}") from e

        self.state = BookingState.COMPLETED
        self.result = BookingResult(state=self.state, ticket=ticket, record=record, record_id=record_id)
        logger.info("Booked %s at %s (record %s)", ticket.ticket_code, ticket.time, record_id)
        return self.result


class BookingCoordinator:
    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        *,
        calendar: ClinicCalendar | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.calendar = calendar or ClinicCalendar(override_hours=settings.override_clinic_hours)
        self.rng = rng

    def _blocked(self, reason: BlockedReason, message: str, clinic_time: ClinicTime | None) -> Availability:
        logger.info("Booking blocked (%s): %s", reason.value, message)
        return Availability(state=BookingState.BLOCKED, clinic_time=clinic_time, reason=reason, message=message)

    def check_availability(self) -> Availability:
        """Decide whether booking may proceed right now and, if so, which slots to offer."""
        if not self.settings.booking_enabled:
            return self._blocked(BlockedReason.DISABLED, "Booking is temporarily disabled.", None)

        now = self.calendar.current_clinic_time()
        if not self.calendar.allows_booking(now.hour, now.minute):
            return self._blocked(
                BlockedReason.CLOSED,
                f"The clinic is closed. Current clinic time: {now}. "
                "Opening hours are 8:00 to 16:00 (UTC+3).",
                now,
            )

        slots = generate_slots(now.hour, now.minute)
        if not slots:
            return self._blocked(BlockedReason.NO_SLOTS, "No appointment slots are left today.", now)

        logger.info("Offering %d slots from %s (clinic time %s)", len(slots), slots[0], now)
        return Availability(state=BookingState.PICKING_SLOT, clinic_time=now, slots=slots)

    async def load_requests(self, urgency: UrgencyLevel) -> list[DonationRequest]:
        records = await self.store.read_many(self.settings.cases_path)
        requests: list[DonationRequest] = []
        for record in records:
            try:
                request = DonationRequest.from_record(record)
            except ValidationError as e:
                logger.warning("Skipping malformed case %s (%s)", record.get("id"), e)
                continue
            if request.urgency_level is urgency:
                requests.append(request)
        return requests

    def begin(self, *, donor_name: str, blood_type: str) -> BookingAttempt:
        """Start an attempt for this donor. Raises ValidationError on malformed donor details."""
        return BookingAttempt(self, donor_name=donor_name, blood_type=blood_type)

import argparse
import asyncio
import logging

from bloodslot.booking import BookingCoordinator
from bloodslot.config import Settings, load_settings
from bloodslot.domain import UrgencyLevel
from bloodslot.history import list_donations
from bloodslot.json_store import JsonFileStore
from bloodslot.realtime_db import RealtimeDatabaseStore
from bloodslot.store import DocumentStore, InMemoryStore

logger = logging.getLogger(__name__)

DEMO_CASES = (
    {
        "urgency": "عاجل جدًا",
        "bloodType": "O+",
        "location": "مستشفى الملك خالد، حفر الباطن",
        "description": "حالة طارئة تتطلب تبرعًا فوريًا.",
    },
    {
        "urgency": "عاجل",
        "bloodType": "A-",
        "location": "مستشفى حفر الباطن المركزي",
        "description": "حالة تحتاج إلى تبرع خلال الساعات القادمة.",
    },
    {
        "urgency": "عادي",
        "bloodType": "B+",
        "location": "مستشفى الولادة والأطفال، حفر الباطن",
        "description": "حالة يمكن التبرع لها في الأيام القادمة.",
    },
)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def build_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "firebase":
        if not settings.firebase_database_url:
            raise RuntimeError("Missing required environment variable: FIREBASE_DATABASE_URL")
        return RealtimeDatabaseStore(
            settings.firebase_database_url,
            auth_token=settings.firebase_auth_token,
            user_id=settings.donor_user_id,
            retry_attempts=settings.store_retry_attempts,
            timeout_seconds=settings.store_timeout_seconds,
        )
    if settings.store_backend == "memory":
        return InMemoryStore(user_id=settings.donor_user_id)
    return JsonFileStore(settings.store_file, user_id=settings.donor_user_id)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="bloodslot: blood donation appointment booking")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("slots", help="Show today's remaining slots")

    cases = sub.add_parser("cases", help="List donation cases for an urgency level")
    cases.add_argument("--urgency", required=True, choices=[u.value for u in UrgencyLevel])

    book = sub.add_parser("book", help="Book a slot for a donation case")
    book.add_argument("--urgency", required=True, choices=[u.value for u in UrgencyLevel])
    # Store ids usually start with "-", so pass them as --case-id=ID.
    book.add_argument("--case-id", required=True, help="Case id; use the --case-id=ID form")
    book.add_argument("--slot", help="Slot label; omit to list the offered slots")
    book.add_argument("--donor-name", required=True)
    book.add_argument("--blood-type", required=True)

    sub.add_parser("history", help="List the current user's donations")
    sub.add_parser("seed-demo", help="Add demo donation cases to the store")
    return parser


async def _run(args: argparse.Namespace, settings: Settings, store: DocumentStore) -> int:
    coordinator = BookingCoordinator(settings, store)

    if args.command == "slots":
        availability = coordinator.check_availability()
        print(availability.message or "\n".join(availability.slots))
        return 0

    if args.command == "cases":
        for request in await coordinator.load_requests(UrgencyLevel(args.urgency)):
            print(f"{request.id}\t{request.blood_type}\t{request.location}\t{request.description}")
        return 0

    if args.command == "book":
        requests = await coordinator.load_requests(UrgencyLevel(args.urgency))
        request = next((r for r in requests if r.id == args.case_id), None)
        if request is None:
            print(f"No {args.urgency} case with id {args.case_id}")
            return 1

        attempt = coordinator.begin(donor_name=args.donor_name, blood_type=args.blood_type)
        availability = attempt.select_request(request)
        if availability.blocked:
            print(availability.message)
            return 1
        if not args.slot:
            print("\n".join(availability.slots))
            return 0

        result = await attempt.confirm(args.slot)
        print(result.confirmation)
        return 0

    if args.command == "history":
        user_id = store.current_user_id()
        if not user_id:
            print("Set DONOR_USER_ID to list donations")
            return 1
        for record in await list_donations(store, user_id, settings.donations_path):
            print(f"{record.ticket_code}\t{record.time}\t{record.status.value}\t{record.location}")
        return 0

    if args.command == "seed-demo":
        for case in DEMO_CASES:
            case_id = await store.append_record(settings.cases_path, dict(case))
            logger.info("Seeded case %s", case_id)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main() -> int:
    args = _build_parser().parse_args()

    _setup_logging()
    settings = load_settings()
    store = build_store(settings)

    try:
        return asyncio.run(_run(args, settings, store))
    except Exception as e:
        logger.error("Command %s failed (%s: %s)", args.command, type(e).__name__, e)
        raise


if __name__ == "__main__":
    raise SystemExit(main())

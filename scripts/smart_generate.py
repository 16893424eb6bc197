from __future__ import annotations

import argparse
import asyncio
from datetime import date

from quizpost.client.batch_poller import (
    BatchGenerationClient,
    BatchPollingError,
    BatchProgress,
    poll_batch_until_complete,
)
from quizpost.core.config import get_settings
from quizpost.core.languages import SUPPORTED_LANGUAGES
from quizpost.core.statuses import Difficulty
from quizpost.scheduling.errors import InvalidTimeSlotError
from quizpost.scheduling.time_slots import (
    SLOT_DEFINITIONS,
    TimeSlotSetting,
    build_time_slot_distribution,
    default_time_slots,
    multiplier_label,
    validate_multiplier,
)


def _parse_slot(raw: str) -> TimeSlotSetting:
    slot_id, _, raw_multiplier = raw.partition("=")
    slot_id = slot_id.strip().lower()
    if slot_id not in SLOT_DEFINITIONS:
        raise argparse.ArgumentTypeError(f"unknown slot '{slot_id}', expected one of {', '.join(SLOT_DEFINITIONS)}")
    try:
        multiplier = validate_multiplier(float(raw_multiplier or 1))
    except (ValueError, InvalidTimeSlotError) as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return TimeSlotSetting(slot_id, multiplier)


def _parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Smart quiz generation wizard")
    parser.add_argument("--base-url", default=settings.public_base_url)
    parser.add_argument("--api-token", default=settings.api_token)
    parser.add_argument("--template", dest="templates", action="append", default=[], help="template id")
    parser.add_argument("--count", type=int, default=10)
    parser.add_argument("--theme")
    parser.add_argument("--difficulty", choices=[item.value for item in Difficulty], default="medium")
    parser.add_argument("--variety", type=int, default=50)
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, default="en")
    parser.add_argument("--start-date", type=date.fromisoformat, default=date.today())
    parser.add_argument("--slot", dest="slots", action="append", type=_parse_slot, default=[], help="slot=multiplier")
    parser.add_argument("--poll-interval", type=float, default=1.0)
    parser.add_argument("--timeout", type=float, default=600.0)
    parser.add_argument("--no-finalize", action="store_true")
    return parser.parse_args()


def _print_progress(progress: BatchProgress) -> None:
    print(  # noqa: T201
        f"smart_generate: batch={progress.batch_id} stage={progress.stage} "
        f"{progress.completed_count}/{progress.total_count} ({progress.percent}%)"
    )


async def _run(args: argparse.Namespace) -> int:
    slots = args.slots or default_time_slots()
    for slot in slots:
        print(f"smart_generate: slot={slot.slot_id} frequency={multiplier_label(slot.multiplier)}")  # noqa: T201
    distribution = build_time_slot_distribution(slots, args.start_date, args.count)

    async with BatchGenerationClient(base_url=args.base_url, api_token=args.api_token) as client:
        template_ids = args.templates
        if not template_ids:
            templates = await client.list_templates()
            template_ids = [template["id"] for template in templates]
        if not template_ids:
            print("smart_generate: no templates available")  # noqa: T201
            return 1

        started = await client.start_batch(
            {
                "template_ids": template_ids,
                "count": args.count,
                "theme": args.theme,
                "difficulty": args.difficulty,
                "variety": args.variety,
                "language": args.language,
                "time_slot_distribution": [
                    {"date": entry.date.isoformat(), "slot_id": entry.slot_id, "weight": entry.weight}
                    for entry in distribution
                ],
            }
        )
        batch_id = str(started["batch_id"])
        print(f"smart_generate: started batch={batch_id} total={started['total_count']}")  # noqa: T201

        try:
            progress = await poll_batch_until_complete(
                client,
                batch_id,
                on_progress=_print_progress,
                interval=args.poll_interval,
                timeout=args.timeout,
            )
        except BatchPollingError as exc:
            print(f"smart_generate: polling stopped: {exc}")  # noqa: T201
            return 1

        if progress.status == "CANCELLED":
            print(f"smart_generate: batch {batch_id} was cancelled")  # noqa: T201
            return 1
        if progress.error_message and not progress.is_complete:
            print(f"smart_generate: batch failed: {progress.error_message}")  # noqa: T201
            return 1
        if not args.no_finalize:
            finalized = await client.finalize(batch_id)
            print(f"smart_generate: finalized promoted={finalized['promoted_total']}")  # noqa: T201
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_run(_parse_args())))


if __name__ == "__main__":
    main()

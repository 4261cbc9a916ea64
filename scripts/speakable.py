"""Print today's WebUntis timetable changes as speakable German sentences.

Standalone CLI script. Logs in to WebUntis with the credentials from .env,
fetches the student's weekly timetable, logs out, and prints one sentence per
cancelled or substituted lesson today.

Run with: python scripts/speakable.py
Date:     python scripts/speakable.py --date 2024-03-18
Offline:  python scripts/speakable.py --payload data/week.json --person-id 4711
JSON:     python scripts/speakable.py --payload data/week.json --person-id 4711 --json

Environment: UNTIS_HOST, UNTIS_SCHOOL, UNTIS_USER, UNTIS_PASSWORD

Exit codes:
  0 = success (sentences or JSON on stdout, possibly empty)
  1 = error (message on stderr)
"""

import argparse
import json
import os
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.untis.config import get_config  # noqa: E402
from src.untis.errors import UntisError  # noqa: E402
from src.untis.extractor import extract  # noqa: E402
from src.untis.logging import get_logger, setup_logging  # noqa: E402
from src.untis.renderer import deviations, render  # noqa: E402
from src.untis.service import fetch_speakable  # noqa: E402

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Print today's WebUntis timetable changes as speakable text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date YYYY-MM-DD (default: today).",
    )
    parser.add_argument(
        "--payload",
        type=Path,
        default=None,
        help="Render a saved weekly timetable JSON file instead of logging in.",
    )
    parser.add_argument(
        "--person-id",
        type=int,
        default=None,
        help="WebUntis person id selecting the timetable in --payload.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="With --payload: print today's deviating periods as JSON instead of text.",
    )
    args = parser.parse_args(argv)
    if args.payload is not None and args.person_id is None:
        parser.error("--payload requires --person-id")
    if args.json and args.payload is None:
        parser.error("--json requires --payload")
    return args


def _render_payload(args: argparse.Namespace, today: date) -> str:
    payload = json.loads(args.payload.read_text(encoding="utf-8"))
    periods = extract(payload, args.person_id)
    if not args.json:
        return render(periods, today)
    listed = [
        period.model_dump(mode="json", by_alias=True) for period in deviations(periods, today)
    ]
    return json.dumps(listed, indent=2, ensure_ascii=False)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    today = args.date or date.today()

    try:
        if args.payload is not None:
            log.info("rendering_payload", path=str(args.payload), date=today.isoformat())
            output = _render_payload(args, today)
        else:
            if not config.untis_user or not config.untis_password:
                print("ERROR: UNTIS_USER and UNTIS_PASSWORD must be set", file=sys.stderr)
                return 1
            output = fetch_speakable(
                config.untis_user, config.untis_password, config=config, today=today
            )
    except (UntisError, OSError, json.JSONDecodeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

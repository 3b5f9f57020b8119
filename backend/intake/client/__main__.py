"""Command-line front end for the application form.

Usage:
  python -m intake.client submit --name Alice --grade 大一 --introduction "hi"
  python -m intake.client withdraw
  python -m intake.client status
  python -m intake.client reset
  python -m intake.client list [--date 2025-06-01]
"""

import argparse
import json
import sys
from pathlib import Path

from ..logging_config import configure_logging
from .api import DEFAULT_BASE_URL, ApplicationsClient, SubmissionFailed
from .form_state import FormSession
from .storage import JsonFileStorage

DEFAULT_STATE_FILE = Path.home() / ".intake_form_state.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="intake.client", description="Fill in and submit the application form.")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Intake server URL")
    parser.add_argument("--state-file", type=Path, default=DEFAULT_STATE_FILE, help="Local form state file")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    submit = sub.add_parser("submit", help="Submit the application")
    submit.add_argument("--name", default=None)
    submit.add_argument("--grade", default=None)
    submit.add_argument("--introduction", default=None)

    sub.add_parser("withdraw", help="Withdraw the submission (once)")
    sub.add_parser("status", help="Show local submission status")
    sub.add_parser("reset", help="Clear local submission state")

    listing = sub.add_parser("list", help="Print stored applications")
    listing.add_argument("--date", default=None, help="Only this day (YYYY-MM-DD)")
    return parser


def _print_session(session: FormSession) -> None:
    print(f"status: {session.status.value}")
    print(f"withdrawal used: {'yes' if session.has_withdrawn else 'no'}")
    if session.submitted_at:
        print(f"submitted at: {session.submitted_at}")
    for field, value in session.data.items():
        if value:
            print(f"{field}: {value}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    client = ApplicationsClient(args.base_url)

    if args.command == "list":
        try:
            records = client.fetch_day(args.date) if args.date else client.fetch_all()
        except SubmissionFailed as exc:
            print(exc.message, file=sys.stderr)
            return 1
        print(json.dumps(records, ensure_ascii=False, indent=2))
        return 0

    session = FormSession(JsonFileStorage(args.state_file), submitter=client.submit_form)
    if args.command == "status":
        _print_session(session)
        return 0

    try:
        if args.command == "submit":
            for field in ("name", "grade", "introduction"):
                value = getattr(args, field)
                if value is not None:
                    session.update_field(field, value)
            message = session.submit()
        elif args.command == "withdraw":
            message = session.withdraw()
        else:
            message = session.reset()
    except OSError as exc:
        print(f"Cannot write form state to {args.state_file}: {exc}", file=sys.stderr)
        return 1

    if message.content:
        print(message.content, file=sys.stderr if message.is_error else sys.stdout)
    return 1 if message.is_error else 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import logging
import sys

from .account import get_account_client
from .client import get_sms_client
from .config import get_settings
from .errors import ValidationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nexmo-sms")
    sub = parser.add_subparsers(dest="command", required=True)

    send = sub.add_parser("send", help="send a text message")
    send.add_argument("to")
    send.add_argument("sender", metavar="from")
    send.add_argument("text")
    encoding = send.add_mutually_exclusive_group()
    encoding.add_argument("--unicode", dest="unicode", action="store_true", default=None)
    encoding.add_argument("--no-unicode", dest="unicode", action="store_false")
    send.add_argument(
        "--numeric-sender",
        action="store_true",
        help="reject a non-numeric sender instead of reformatting it",
    )

    sub.add_parser("balance", help="show the account balance")

    pricing = sub.add_parser("pricing", help="outbound SMS pricing for a country")
    pricing.add_argument("country")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    try:
        if args.command == "send":
            with get_sms_client(settings) as client:
                body = client.send_text_message(
                    args.to,
                    args.sender,
                    args.text,
                    unicode=args.unicode,
                    force_numeric_sender=args.numeric_sender,
                )
        else:
            with get_account_client(settings) as account:
                if args.command == "balance":
                    body = account.get_balance()
                else:
                    body = account.get_sms_pricing(args.country)
    except (RuntimeError, ValidationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if body is None:
        print("error: request failed", file=sys.stderr)
        return 1

    print(body)
    return 0


if __name__ == "__main__":
    sys.exit(main())

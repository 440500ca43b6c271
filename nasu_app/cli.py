"""
Command-line entry point: run the API server and the admin batch jobs.
"""

import argparse
import sys
from typing import List, Optional
from loguru import logger

from .config import settings


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("nasu_app.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def recalculate_matches(args: argparse.Namespace) -> int:
    from .dependencies import get_matching_service

    written = get_matching_service().recalculate_all_matches()
    print(f"Recalculated {written} job matches")
    return 0


def payout_referrals(args: argparse.Namespace) -> int:
    from .dependencies import get_referral_service

    result = get_referral_service().run_referral_payouts()
    print(result.message)
    for failure in result.failed_payouts:
        print(f"  failed: {failure.partner_id} ({failure.reason})")
    return 0 if not result.failed_payouts else 1


def export_users(args: argparse.Namespace) -> int:
    from .dependencies import get_admin_service

    csv_text = get_admin_service().export_users_csv()
    with open(args.output, "w", encoding="utf-8", newline="") as fh:
        fh.write(csv_text)
    print(f"Wrote {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nasu-app", description="Minna no Nasu App backend")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=serve)

    recalc_parser = subparsers.add_parser("recalculate-matches", help="Rescore every user against every job")
    recalc_parser.set_defaults(func=recalculate_matches)

    payout_parser = subparsers.add_parser("payout-referrals", help="Pay pending referral rewards via Stripe")
    payout_parser.set_defaults(func=payout_referrals)

    export_parser = subparsers.add_parser("export-users", help="Export users as CSV")
    export_parser.add_argument("--output", default="users_export.csv", help="Output file")
    export_parser.set_defaults(func=export_users)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for command-line usage."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Inspect and drive a credential record stored in a JSON file.

Usage:
    python scripts/credential_tool.py creds.json init 'ab7a+5*LcVg' --input alice
    python scripts/credential_tool.py creds.json check-password 'ab7a+5*LcVg'
    python scripts/credential_tool.py creds.json reset --hours 2
    python scripts/credential_tool.py creds.json check-reset CODE
    python scripts/credential_tool.py creds.json setup-2fa alice example.com
    python scripts/credential_tool.py creds.json complete-2fa 123456
    python scripts/credential_tool.py creds.json code
    python scripts/credential_tool.py creds.json check-2fa 123456
    python scripts/credential_tool.py creds.json show

The file is rewritten only when the command changed the record.
"""

import argparse
import logging
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.auth import CredentialError, CredentialInfrastructureError, CredentialRecord

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level,
        format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def load_record(path: Path) -> CredentialRecord:
    if not path.exists():
        return CredentialRecord.from_json(None)
    return CredentialRecord.from_json(path.read_text(encoding="utf-8"))


def save_record(path: Path, record: CredentialRecord) -> None:
    path.write_text(record.to_json(), encoding="utf-8")
    record.mark_clean()
    logger.info(f"Saved credential record to {path}")


def run_command(args: argparse.Namespace, record: CredentialRecord) -> CredentialRecord:
    """Apply one command to the record, printing any output for the user."""
    if args.command == "init":
        record = CredentialRecord.create(args.password, *args.input)
        print("Credential record created")
    elif args.command == "set-password":
        record.set_password(args.password, *args.input)
        print("Password updated")
    elif args.command == "check-password":
        record.check_password(args.password)
        print("Password OK")
    elif args.command == "reset":
        print(record.reset_password(timedelta(hours=args.hours)))
    elif args.command == "check-reset":
        record.check_reset_code(args.code)
        print("Reset code OK")
    elif args.command == "setup-2fa":
        uri, recovery_keys = record.configure_two_factor(args.identity, args.issuer)
        print(uri)
        for key in recovery_keys:
            print(key)
    elif args.command == "complete-2fa":
        record.complete_two_factor(args.code)
        print("Two-factor authentication enabled")
    elif args.command == "code":
        print(record.current_code())
    elif args.command == "check-2fa":
        record.check_two_factor(args.code)
        print("Two-factor code OK")
    elif args.command == "show":
        print(f"two-factor: {record.two_factor_state.value}")
        print(f"reset pending: {record.reset_code is not None}")
        if record.two_factor:
            print(f"recovery keys left: {len(record.two_factor.recovery_keys)}")
    return record


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage a JSON credential record")
    parser.add_argument("file", type=Path, help="Path to the credential JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("init", "set-password"):
        p = sub.add_parser(name, help="Set the password")
        p.add_argument("password")
        p.add_argument("--input", action="append", default=[],
                       help="User-specific word the password must not rely on")

    sub.add_parser("check-password").add_argument("password")

    p = sub.add_parser("reset", help="Issue a password reset code")
    p.add_argument("--hours", type=float, default=24, help="Validity in hours")

    sub.add_parser("check-reset").add_argument("code")

    p = sub.add_parser("setup-2fa", help="Start two-factor setup")
    p.add_argument("identity")
    p.add_argument("issuer")

    sub.add_parser("complete-2fa").add_argument("code")
    sub.add_parser("code", help="Print the current one-time code")
    sub.add_parser("check-2fa").add_argument("code")
    sub.add_parser("show", help="Summarize the record")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        record = load_record(args.file)
    except CredentialInfrastructureError as e:
        logger.error(f"Can't load {args.file}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2

    exit_code = 0
    try:
        record = run_command(args, record)
    except CredentialInfrastructureError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 2
    except CredentialError as e:
        print(f"Rejected: {e}", file=sys.stderr)
        exit_code = 1

    # Rejections can still change the record (an expired reset code is cleared)
    if record.is_dirty:
        save_record(args.file, record)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

"""
Admin CLI for the scan gate.

Usage:
    python -m scangate.cli.admin_cli init-db
    python -m scangate.cli.admin_cli scan --uid <uid> --campaign <campaign_id>
    python -m scangate.cli.admin_cli logs [--uid ...] [--campaign ...] [--start ...] [--end ...]
    python -m scangate.cli.admin_cli stats
    python -m scangate.cli.admin_cli export-csv [--date YYYY-MM-DD] [--campaign ...] [--output path]
    python -m scangate.cli.admin_cli verify --scan-id <scan_id>

Global options: --config <yaml>, --env-file <dotenv>, --api-key <key>
(read commands require an admin key; SCANGATE_API_KEY is used when omitted).
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from scangate.config import load_settings
from scangate.core.errors import ScanGateError
from scangate.core.models import ScanFilters, ScanRequest
from scangate.observability.logger import get_logger
from scangate.service import ScanGate

logger = get_logger(__name__)

READ_COMMANDS = {"logs", "stats", "export-csv", "verify"}


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def init_db_command(gate: ScanGate, args) -> int:
    # Opening the gate already created the schema for the postgres backend
    if gate.settings.ledger_backend == "memory":
        print("Memory ledger selected; nothing to initialize.")
    else:
        print(f"Scan ledger schema ready on {gate.settings.db_host}/{gate.settings.db_name}")
    return 0


def scan_command(gate: ScanGate, args) -> int:
    result = gate.admit(ScanRequest(uid=args.uid, campaign_id=args.campaign))
    print_json(result.to_payload())
    return 0 if result.admitted else 2


def logs_command(gate: ScanGate, args) -> int:
    filters = ScanFilters(
        uid=args.uid,
        campaign_id=args.campaign,
        start=args.start,
        end=args.end,
        limit=args.limit,
        offset=args.offset,
    )
    page = gate.views.list_scans(filters)
    print_json(page.to_payload())
    return 0


def stats_command(gate: ScanGate, args) -> int:
    print_json(gate.views.stats().to_payload())
    return 0


def export_csv_command(gate: ScanGate, args) -> int:
    content = gate.views.export_csv(args.date, campaign_id=args.campaign)
    if args.output:
        output = Path(args.output)
        if output.is_dir():
            output = output / gate.views.csv_filename(args.date)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content + "\n", encoding="utf-8")
        print(f"Wrote {len(content.splitlines()) - 1} rows to {output}")
    else:
        print(content)
    return 0


def verify_command(gate: ScanGate, args) -> int:
    record = gate.views.verify_scan(args.scan_id)
    print_json({"status": "success", "message": "Checksum verified", "data": record.to_payload()})
    return 0


COMMANDS = {
    "init-db": init_db_command,
    "scan": scan_command,
    "logs": logs_command,
    "stats": stats_command,
    "export-csv": export_csv_command,
    "verify": verify_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scangate-admin",
        description="Scan gate administration",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--env-file", help="dotenv file with secrets")
    parser.add_argument("--api-key", help="Admin API key for read commands")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the scan ledger schema")

    scan = subparsers.add_parser("scan", help="Admit a scan")
    scan.add_argument("--uid", required=True)
    scan.add_argument("--campaign", required=True)

    logs = subparsers.add_parser("logs", help="List recent scans")
    logs.add_argument("--uid")
    logs.add_argument("--campaign")
    logs.add_argument("--start", help="Inclusive start (date or ISO timestamp)")
    logs.add_argument("--end", help="Inclusive end (date or ISO timestamp)")
    logs.add_argument("--limit", type=int, default=50)
    logs.add_argument("--offset", type=int, default=0)

    subparsers.add_parser("stats", help="Show scan statistics")

    export = subparsers.add_parser("export-csv", help="Export a day's scans as CSV")
    export.add_argument("--date", help="UTC day (YYYY-MM-DD), defaults to today")
    export.add_argument("--campaign")
    export.add_argument("--output", help="Output file or directory (stdout when omitted)")

    verify = subparsers.add_parser("verify", help="Re-validate a stored scan's checksum")
    verify.add_argument("--scan-id", required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(env_file=args.env_file, config_path=args.config)
        with ScanGate(settings, configure_logging=True) as gate:
            if args.command in READ_COMMANDS:
                gate.authorizer.require(args.api_key or os.getenv("SCANGATE_API_KEY"))
            return COMMANDS[args.command](gate, args)
    except ScanGateError as e:
        logger.error(f"Command {args.command} failed", extra={"code": e.code})
        print_json(e.to_payload())
        return 1
    except ValueError as e:
        # Malformed --start/--end/--date arguments
        print(f"Invalid argument: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

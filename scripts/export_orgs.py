"""Export devices, status and SIP accounts for a set of GDMS organizations.

The tool walks the same steps an operator would do by hand:

1. List every organization and save ``orgs.json``.
2. Ask for one or more organization names (comma-separated, case-insensitive
   substring match) unless ``--query`` is given.
3. Fetch devices, per-device account status and SIP accounts for the matches
   and save each stage as JSON in the output directory.

Example usages::

    # Interactive: preview organizations, then type names at the prompt.
    python -m scripts.export_orgs --output-dir ./exports

    # Non-interactive, e.g. from cron.
    python -m scripts.export_orgs --query "acme, globex" --output-dir ./exports
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from gdms_report.clients import GdmsApiClient, GdmsError
from gdms_report.core.config import AppSettings
from gdms_report.core.logging import configure_logging
from gdms_report.services import (
    ExportResult,
    OrganizationSelectionError,
    OrgExportWorkflow,
    StatusEnrichmentService,
)
from gdms_report.utils import json_codec

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_SELECTION_ERROR = 3
EXIT_GDMS_ERROR = 4
EXIT_RUNTIME_ERROR = 5

PREVIEW_COUNT = 5
PROMPT = "Enter org name(s), comma-separated (case-insensitive, substring match): "


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export GDMS devices, status and SIP accounts for selected organizations."
    )
    parser.add_argument(
        "--query",
        default=None,
        help="Comma-separated organization names. Prompts when omitted.",
    )
    parser.add_argument(
        "--output-dir",
        default=Path("."),
        type=Path,
        help="Directory for the exported JSON files (default: current directory).",
    )
    parser.add_argument(
        "--no-refresh-loop",
        action="store_true",
        help="Do not run the background token refresh during the export.",
    )
    return parser


def _print_summary(result: ExportResult) -> None:
    print("\nMatched organizations:")
    for org in result.selected:
        print(f" - {org.id}: {org.name}")
    meta = result.status_payload.meta
    print(
        f"\nDevices: {len(result.devices)} | status ok: {meta.success} | "
        f"status failed: {meta.failures} | SIP accounts: {len(result.sip_accounts)}"
    )
    for path in result.files.values():
        print(f"Saved {path}")


async def _export(
    settings: AppSettings,
    query: str | None,
    output_dir: Path,
    *,
    refresh_loop: bool,
    ask: Callable[[str], str],
) -> ExportResult:
    async with GdmsApiClient.from_settings(settings.gdms) as client:
        if refresh_loop and settings.gdms.refresh_loop_enabled:
            client.tokens.start_refresh_loop(
                settings.gdms.refresh_min_sleep_seconds,
                settings.gdms.refresh_max_sleep_seconds,
            )
        enrichment = StatusEnrichmentService(
            client,
            pool_size=settings.report.status_pool_size,
            batch_deadline_seconds=settings.report.status_batch_deadline_seconds,
        )
        workflow = OrgExportWorkflow(client, enrichment, output_dir, settings.report)

        print("Step 1: Fetching organizations...")
        organizations = await workflow.export_organizations()
        preview = [org.to_vendor_dict() for org in organizations[:PREVIEW_COUNT]]
        if preview:
            print(json_codec.pretty(preview))

        if query is None:
            query = ask(f"\n{PROMPT}")

        print("\nStep 2: Fetching devices, status and SIP accounts for selected orgs...")
        return await workflow.run_for(organizations, query)


def main(argv: list[str] | None = None, ask: Callable[[str], str] = input) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    configure_logging(settings.log_level)

    try:
        result = asyncio.run(
            _export(
                settings,
                args.query,
                args.output_dir,
                refresh_loop=not args.no_refresh_loop,
                ask=ask,
            )
        )
    except OrganizationSelectionError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_SELECTION_ERROR
    except GdmsError as exc:
        print(f"GDMS request failed: {exc}", file=sys.stderr)
        return EXIT_GDMS_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during export: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _print_summary(result)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())

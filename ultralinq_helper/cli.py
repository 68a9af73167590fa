"""
Operator command line.

    ultralinq-helper serve                 run the report-generation service
    ultralinq-helper scrape                draft a report for the open study
    ultralinq-helper longitudinal          trend report across the study list

`scrape` and `longitudinal` open a Chrome window. Log into UltraLinq in that
window by hand, open the study (or the patient's study list), then press
Enter in the terminal.
"""

from typing import List, Optional
import argparse
import asyncio
import logging
import sys

from .clients.report_client import ReportClient, get_client
from .config import Settings
from .errors import SandboxError, ScrapeFailure, ServiceError
from .logging_config import setup_logging
from .longitudinal import ConsoleDecisions, LongitudinalOrchestrator
from .report_store import save_report
from .sandbox.selenium_sandbox import SeleniumSandbox, make_driver
from .schemas import DateRange
from .scraping.study_list import StudyListExtractor
from .scraping.study_scraper import StudyScraper

logger = logging.getLogger(__name__)

SINGLE_REPORT_TITLE = "ULTRALINQ STUDY REPORT"


def _print_report(report: str, heading: str) -> None:
    print("\n" + "─" * 60)
    print(heading)
    print("─" * 60 + "\n")
    print(report)
    print("\n" + "─" * 60)


async def _open_sandbox(args) -> SeleniumSandbox:
    sandbox = SeleniumSandbox(make_driver(headless=False))
    if args.url:
        await sandbox.navigate(args.url)
    return sandbox


def _wait_for_operator(what: str) -> None:
    print("\nA browser window is open. Please:")
    print("  1. Log into UltraLinq")
    print(f"  2. Open {what}")
    input("  3. Press Enter here when the page has finished loading... ")


async def _check_service(client: ReportClient) -> bool:
    if await client.health():
        print("✅ Report service is running")
        return True
    print(f"❌ Report service is not reachable at {client.base_url}")
    print("   Start it first: ultralinq-helper serve")
    return False


async def _run_scrape(args, settings: Settings) -> int:
    client = get_client(settings.service_url, timeout_s=settings.service_timeout_s)
    if not await _check_service(client):
        return 1

    sandbox = await _open_sandbox(args)
    try:
        _wait_for_operator("the study you want reported")
        scraper = StudyScraper(sandbox, settings=settings)
        record = await scraper.scrape_current_page(include_images=not args.no_images)

        print(f"\n📋 {record.study_type.value} study, {record.patient_info.study_date}: "
              f"{len(record.measurements)} measurements, {len(record.images)} images")
        print("🧠 Requesting report...")
        report = await client.generate_report(record)
    except ScrapeFailure as e:
        print(f"❌ Could not scrape this page: {e.reason}")
        return 1
    except ServiceError as e:
        print(f"❌ Report generation failed: {e}")
        return 1
    except SandboxError as e:
        print(f"❌ Browser error: {e}")
        return 1
    finally:
        sandbox.close()

    _print_report(report, "STUDY REPORT")
    if args.save:
        study_date = record.patient_info.study_date
        path = save_report(
            settings.report_dir,
            patient_name=record.patient_info.name,
            study_type=record.study_type.value,
            report=report,
            studies_analyzed=1,
            date_range=DateRange(earliest=study_date, latest=study_date),
            title=SINGLE_REPORT_TITLE,
        )
        print(f"\n💾 Report saved to: {path}\n")
    return 0


async def _run_longitudinal(args, settings: Settings) -> int:
    client = get_client(settings.service_url, timeout_s=settings.service_timeout_s)
    if not await _check_service(client):
        return 1

    sandbox = await _open_sandbox(args)
    try:
        _wait_for_operator("the patient's study list")
        orchestrator = LongitudinalOrchestrator(
            sandbox=sandbox,
            scraper=StudyScraper(sandbox, settings=settings),
            extractor=StudyListExtractor(),
            client=client,
            decisions=ConsoleDecisions(),
            settings=settings,
        )
        outcome = await orchestrator.run()
    except SandboxError as e:
        print(f"❌ Browser error: {e}")
        return 1
    finally:
        sandbox.close()

    if not outcome.succeeded:
        print(f"\n❌ Longitudinal analysis aborted: {outcome.reason}")
        return 1

    result = outcome.history_report
    print("\n" + "═" * 60)
    print("✅ ANALYSIS COMPLETE")
    print("═" * 60)
    print(f"\n📊 Studies Analyzed: {result.studies_analyzed}")
    print(f"📅 Date Range: {result.date_range.earliest} to {result.date_range.latest}")
    _print_report(result.report, "LONGITUDINAL ANALYSIS REPORT")

    if not args.no_save:
        path = save_report(
            settings.report_dir,
            patient_name=outcome.history.patient_name,
            study_type=outcome.history.study_type.value,
            report=result.report,
            studies_analyzed=result.studies_analyzed,
            date_range=result.date_range,
        )
        print(f"\n💾 Report saved to: {path}\n")
    return 0


def _serve(args, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "ultralinq_helper.service.app:create_app",
        factory=True,
        host=args.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ultralinq-helper",
        description="Draft vascular ultrasound reports from UltraLinq studies",
    )
    parser.add_argument("--env-file", type=str, help="Path to a .env file")
    parser.add_argument("--verbose", action="store_true", help="Show debug output on the console")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the report-generation service")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    serve.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    scrape = commands.add_parser("scrape", help="Report on the study open in the browser")
    scrape.add_argument("--url", type=str, help="Open this URL before logging in")
    scrape.add_argument("--no-images", action="store_true", help="Skip clip images")
    scrape.add_argument("--save", action="store_true", help="Write an audit copy of the report")

    longitudinal = commands.add_parser("longitudinal", help="Trend report across a patient's studies")
    longitudinal.add_argument("--url", type=str, help="Open this URL before logging in")
    longitudinal.add_argument("--no-save", action="store_true", help="Do not write an audit copy")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the operator CLI."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env(args.env_file)
    setup_logging(settings.log_dir, console_level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "serve":
        return _serve(args, settings)
    if args.command == "scrape":
        return asyncio.run(_run_scrape(args, settings))
    return asyncio.run(_run_longitudinal(args, settings))


if __name__ == "__main__":
    sys.exit(main())

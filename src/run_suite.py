#!/usr/bin/env python3

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

import httpx
from pydantic import ValidationError

from reporting import (
    archive_run,
    build_webhook_payload,
    log_to_csv,
    summary_text,
    tally,
    write_html_report,
    write_junit_xml,
    write_results_json,
)
from runner import run_test_suite
from scenarios import select_scenarios
from suite_logging import configure_logging
from suite_settings import SuiteSettings
from webhook_signature import post_signed


def build_settings(args: argparse.Namespace) -> SuiteSettings:
    """Environment settings with command-line overrides applied on top."""
    overrides = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.platform_url:
        overrides["platform_url"] = args.platform_url
    if args.browser:
        overrides["browser"] = args.browser
    if args.device:
        overrides["device"] = args.device
    if args.headful:
        overrides["headless"] = False
    if args.retries is not None:
        overrides["retries"] = args.retries
    if args.webhook_url:
        overrides["webhook_url"] = args.webhook_url
    return SuiteSettings(**overrides)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AngelCard end-to-end browser suite")
    parser.add_argument("--base-url", help="Home site URL (BASE_URL)")
    parser.add_argument("--platform-url", help="Platform URL (PLATFORM_URL)")
    parser.add_argument("--browser", choices=["chromium", "firefox", "webkit"], help="Browser engine (BROWSER)")
    parser.add_argument("--device", help="Playwright device to emulate, e.g. 'Pixel 5' (DEVICE)")
    parser.add_argument("--headful", action="store_true", help="Run browser headful for debugging")
    parser.add_argument("--retries", type=int, help="Retries per failed test (RETRIES)")
    parser.add_argument("-k", "--grep", help="Only run scenarios whose name or suite contains this text")
    parser.add_argument("--list", action="store_true", help="List scenarios and exit")
    parser.add_argument("--webhook-url", help="Post a signed run summary here (WEBHOOK_URL)")
    parser.add_argument("--verbose", action="store_true", help="Debug-level console logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    scenarios = select_scenarios(args.grep)
    if args.list:
        for s in scenarios:
            print(f"{s.suite:10} {s.name}")
        return 0

    try:
        settings = build_settings(args)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2
    logger = configure_logging(settings, verbose=args.verbose)

    if not scenarios:
        logger.error("No scenarios match %r", args.grep)
        return 2

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(settings.report_dir) / f"run_{timestamp}"
    run_dir.mkdir(parents=True, exist_ok=True)

    results_json = asyncio.run(run_test_suite(scenarios, settings, run_dir, logger))

    results_path = run_dir / "results.json"
    write_results_json(results_json, results_path)
    logger.info("📊 Results written: %s", results_path)

    report_path = run_dir / "report.html"
    write_html_report(results_json, report_path)
    logger.info("📝 HTML report: %s", report_path)

    junit_path = run_dir / "junit.xml"
    write_junit_xml(results_json, junit_path)
    logger.info("🧾 JUnit report: %s", junit_path)

    archive_path = run_dir / "archive.zip"
    archive_run(archive_path, run_dir)
    logger.info("📦 Archive: %s", archive_path)

    artifacts = {"results": results_path, "report": report_path, "junit": junit_path, "archive": archive_path}
    summary = summary_text(results_json)
    log_to_csv(run_dir / "run_log.csv", timestamp, artifacts, summary)

    if settings.webhook_url:
        payload = build_webhook_payload(results_json, settings.build_id, timestamp)
        try:
            post_signed(settings.webhook_url, settings.webhook_secret, payload, logger=logger)
        except httpx.HTTPError as e:
            logger.error("Could not deliver run summary to %s: %s", settings.webhook_url, e)

    counts = tally(results_json)
    logger.info("✅ Done. Total: %d, Passed: %d, Failed: %d, Skipped: %d",
                counts["total"], counts["passed"], counts["failed"], counts["skipped"])
    return 1 if counts["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())

import asyncio
import json
import logging
import time
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from page_objects import element_inventory
from reporting import sanitize_for_filename
from scenarios import SETUPS, Scenario, ScenarioContext, ScenarioSkipped
from selectors_registry import SelectorRegistry
from suite_settings import SuiteSettings


def get_screenshot_path(screenshots_dir: Path, test_name: str, attempt: int, action_type: str,
                        context: str = "", extension: str = "png") -> Path:
    """Generate a descriptive screenshot path.

    Args:
        screenshots_dir: Directory the file goes into
        test_name: Name of the scenario
        attempt: Attempt number (0 = first run, 1 = first retry, ...)
        action_type: Type of screenshot (failure, final, ...)
        context: Additional context (e.g. the error message)
        extension: File extension (png or jpg)
    """
    test_slug = sanitize_for_filename(test_name)
    action_slug = sanitize_for_filename(action_type)
    context_slug = f"_{sanitize_for_filename(context)}" if context else ""
    filename = f"test_{test_slug}_attempt{attempt:02d}_{action_slug}{context_slug}.{extension}"
    return screenshots_dir / filename


async def _new_context(browser, pw, settings: SuiteSettings, run_dir: Path, record: bool):
    options = {}
    if settings.device:
        descriptor = pw.devices[settings.device]
        options.update({k: v for k, v in descriptor.items() if k != "default_browser_type"})
    else:
        options["viewport"] = settings.viewport
    if record:
        options["record_video_dir"] = str(run_dir / "videos")
    context = await browser.new_context(**options)
    context.set_default_timeout(settings.action_timeout)
    context.set_default_navigation_timeout(settings.navigation_timeout)
    if record:
        await context.tracing.start(screenshots=True, snapshots=True, sources=False)
    return context


async def _capture_failure(page, scenario: Scenario, attempt: int, error: str, screenshots_dir: Path,
                           settings: SuiteSettings, logger: logging.Logger) -> str:
    """Save a full-page screenshot and an element inventory; return the screenshot path."""
    current_url = ""
    try:
        current_url = page.url
    except PlaywrightError:
        pass
    logger.error("✖ Test failed: %s — %s (url=%s)", scenario.name, error, current_url)
    screenshots_dir.mkdir(parents=True, exist_ok=True)
    error_context = sanitize_for_filename(error.split("(")[0].strip()[:50]) if error else "error"

    screenshot = ""
    try:
        shot = get_screenshot_path(screenshots_dir, scenario.name, attempt, "failure", context=error_context)
        if settings.screenshot_delay_ms > 0:
            await page.wait_for_timeout(settings.screenshot_delay_ms)
        await page.screenshot(path=str(shot), full_page=True)
        screenshot = str(shot)
        logger.debug("📸 Failure screenshot saved: %s", shot.name)
    except PlaywrightError as e:
        logger.warning("⚠️ Could not save failure screenshot: %s", e)

    inventory = await element_inventory(page)
    if inventory:
        inv_path = get_screenshot_path(screenshots_dir, scenario.name, attempt, "inventory", extension="json")
        inv_path.write_text(json.dumps(inventory, indent=2), encoding="utf-8")
        logger.info("🔎 %d control(s) and %d link(s) on the page at failure, see %s",
                    len(inventory.get("controls", [])), len(inventory.get("links", [])), inv_path.name)
    return screenshot


async def run_scenario(scenario: Scenario, browser, pw, settings: SuiteSettings, run_dir: Path,
                       registry: SelectorRegistry, logger: logging.Logger) -> dict:
    """Run one scenario with retries; each attempt gets a fresh browser context."""
    screenshots_dir = run_dir / "screenshots"
    status, error, screenshot, trace = "failed", "", "", ""
    attempts = 0
    started = time.monotonic()

    for attempt in range(settings.retries + 1):
        attempts = attempt + 1
        retrying = attempt > 0
        if retrying:
            logger.info("↻ Retrying %s (attempt %d)", scenario.name, attempts)
        context = await _new_context(browser, pw, settings, run_dir, record=retrying)
        try:
            page = await context.new_page()
            ctx = ScenarioContext(page=page, settings=settings, logger=logger, registry=registry,
                                  screenshots_dir=screenshots_dir / sanitize_for_filename(scenario.name))

            async def body():
                await SETUPS[scenario.suite](ctx)
                await scenario.run(ctx)

            try:
                await asyncio.wait_for(body(), timeout=settings.test_timeout / 1000)
                status, error = "passed", ""
            except ScenarioSkipped as e:
                status, error = "skipped", str(e)
            except asyncio.TimeoutError:
                status, error = "failed", f"Test timeout of {settings.test_timeout}ms exceeded"
            except (AssertionError, LookupError, PlaywrightError) as e:
                status, error = "failed", str(e) or e.__class__.__name__
            except Exception as e:
                logger.exception("Unexpected error in %s", scenario.name)
                status, error = "failed", f"{e.__class__.__name__}: {e}"

            if status == "failed":
                screenshot = await _capture_failure(page, scenario, attempt, error, screenshots_dir, settings, logger)
        finally:
            if retrying:
                trace_path = run_dir / "traces" / f"{sanitize_for_filename(scenario.name)}.zip"
                trace_path.parent.mkdir(parents=True, exist_ok=True)
                try:
                    await context.tracing.stop(path=str(trace_path))
                    trace = str(trace_path)
                except PlaywrightError as e:
                    logger.warning("⚠️ Could not save trace: %s", e)
            await context.close()

        if status != "failed":
            break

    result = {
        "name": scenario.name,
        "suite": scenario.suite,
        "status": status,
        "error": error,
        "attempts": attempts,
        "duration": round(time.monotonic() - started, 3),
        "screenshot": screenshot,
        "trace": trace,
    }
    if status == "passed":
        logger.info("✓ Passed: %s", scenario.name)
    elif status == "skipped":
        logger.info("↷ Skipped: %s — %s", scenario.name, error)
    else:
        err_excerpt = error if len(error) < 300 else (error[:297] + "...")
        logger.error("✖ Failed: %s — %s", scenario.name, err_excerpt)
    return result


async def run_test_suite(scenarios: list[Scenario], settings: SuiteSettings, run_dir: Path,
                         logger: logging.Logger, registry: SelectorRegistry | None = None) -> dict:
    """Run scenarios one at a time in a single browser and return {"tests": [...]}."""
    (run_dir / "screenshots").mkdir(parents=True, exist_ok=True)
    if registry is None:
        registry = SelectorRegistry.from_file(settings.selector_overrides, logger)

    results = []
    async with async_playwright() as pw:
        browser_type = getattr(pw, settings.browser)
        browser = await browser_type.launch(headless=settings.headless)
        logger.info("🏃 Running %d scenario(s) on %s (headless=%s)", len(scenarios), settings.browser, settings.headless)
        try:
            for scenario in scenarios:
                results.append(await run_scenario(scenario, browser, pw, settings, run_dir, registry, logger))
        finally:
            await browser.close()
    return {"tests": results}

"""End-to-end scenarios for www.angelcard.us and platform.angelcard.us.

Each scenario is an async function taking a ScenarioContext. A suite set-up
(home or platform) runs first on the same page. Scenarios fail by raising
(AssertionError, AffordanceNotFound, Playwright errors) and opt out with
ScenarioSkipped when the site does not offer what they exercise.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from page_objects import AffordanceNotFound, HomePage, PlatformPage, PolicyLink
from selectors_registry import SelectorRegistry
from suite_settings import SuiteSettings

POLICY_TERMS = ("policy", "terms", "conditions", "offer", "privacy", "refund", "shipping")
KEY_TERMS = ("angel", "card", "credit", "platform")
MOBILE_VIEWPORT = {"width": 375, "height": 667}


class ScenarioSkipped(Exception):
    """The site does not currently expose what the scenario needs."""


@dataclass
class ScenarioContext:
    page: object
    settings: SuiteSettings
    logger: logging.Logger
    registry: SelectorRegistry
    screenshots_dir: Path

    def home(self) -> HomePage:
        return HomePage(self.page, self.settings.base_url, self.logger, self.registry,
                        self.settings.probe_timeout, self.screenshots_dir)

    def platform(self) -> PlatformPage:
        return PlatformPage(self.page, self.settings.platform_url, self.logger, self.registry,
                            self.settings.probe_timeout, self.screenshots_dir)


@dataclass(frozen=True)
class Scenario:
    name: str
    suite: str
    run: Callable[[ScenarioContext], Awaitable[None]]


# ---------------------------------------------------------------- set-ups

async def open_home(ctx: ScenarioContext):
    log = ctx.logger
    log.info("Starting home page navigation test")
    home = ctx.home()
    await home.navigate_to_home_page()
    log.info("Navigated to page with URL: %s", home.current_url)
    await home.accept_cookies()


async def open_platform(ctx: ScenarioContext):
    """Reach the platform page: directly, else through the home page."""
    log = ctx.logger
    log.info("Starting platform entry test")
    platform = ctx.platform()
    try:
        await platform.navigate_to_platform()
        await platform.accept_cookies()
        log.info("Successfully navigated directly to platform")
        return
    except Exception as e:
        log.warning("Direct platform navigation failed: %s. Trying via homepage...", e)

    home = ctx.home()
    await home.navigate_to_home_page()
    await home.accept_cookies()
    try:
        await home.click_enter_platform()
        log.info("Clicked enter platform button")
        return
    except AffordanceNotFound as e:
        log.warning("Could not click enter platform button: %s", e)

    outcome = await home.resolve("home.platform-entry-fallback")
    if outcome:
        log.info("Clicking potential platform entry control %s", outcome.candidate)
        await outcome.locator.click()
        await ctx.page.wait_for_timeout(2000)
        return

    log.info("No platform entry button found, trying direct navigation")
    await ctx.page.goto(ctx.settings.platform_url)


# ------------------------------------------------------- home navigation

async def home_smoke(ctx: ScenarioContext):
    log = ctx.logger
    home = ctx.home()
    if "angelcard.us" not in home.current_url:
        raise AssertionError(f"Unexpected site: {home.current_url}")
    await home.take_screenshot("homepage")

    title = await home.title()
    log.info("Page title: %s", title)
    if not title:
        raise AssertionError("Home page title is empty")

    body = await home.body_text()
    log.info("Page body length: %d characters", len(body))
    if not body:
        raise AssertionError("Home page body has no text")

    # informational only
    images = await ctx.page.locator("img").count()
    links = await ctx.page.locator("a").count()
    log.info("Found %d images and %d links", images, links)
    lowered = body.lower()
    for term in KEY_TERMS:
        log.info("Page %s term %r", "contains" if term in lowered else "does not contain", term)


async def home_public_offer(ctx: ScenarioContext):
    home = ctx.home()
    await home.click_policy_link(PolicyLink.PUBLIC_OFFER)
    ctx.logger.info("Navigated to: %s", home.current_url)
    await home.take_screenshot("public-offer-page")
    if "public-offer" not in home.current_url:
        raise AssertionError(f"URL '{home.current_url}' does not contain 'public-offer'")


async def home_terms(ctx: ScenarioContext):
    home = ctx.home()
    await home.click_policy_link(PolicyLink.TERMS)
    expected = "#public-offer-terms-and-conditions"
    if expected not in home.current_url:
        raise AssertionError(f"URL '{home.current_url}' does not contain '{expected}'")


async def home_logo(ctx: ScenarioContext):
    home = ctx.home()
    await home.click_policy_link(PolicyLink.PUBLIC_OFFER)
    if "public-offer" not in home.current_url:
        raise AssertionError(f"URL '{home.current_url}' does not contain 'public-offer'")
    url = await home.click_logo()
    await home.take_screenshot("after-logo-click")
    if "angelcard.us" not in url:
        raise AssertionError(f"Logo click left the site: {url}")


# -------------------------------------------------------- platform entry

async def platform_login_options(ctx: ScenarioContext):
    platform = ctx.platform()
    await platform.accept_cookies()
    await platform.take_screenshot("platform-login-options")
    options = await platform.enumerate_login_options()
    ctx.logger.info("Found %d login options: %s", len(options), ", ".join(o.name for o in options))
    if not options:
        raise AssertionError("No login options visible on platform page")


async def platform_email_login(ctx: ScenarioContext):
    platform = ctx.platform()
    await platform.accept_cookies()
    names = [o.name for o in await platform.enumerate_login_options()]
    if not any("email" in n.lower() for n in names):
        raise ScenarioSkipped("No email login option found")

    await platform.click_login_option("Email")
    await platform.take_screenshot("after-email-login")
    if not await platform.has_email_form_controls():
        raise AssertionError("No email/password/submit control after choosing email login")


async def platform_logo(ctx: ScenarioContext):
    platform = ctx.platform()
    await platform.accept_cookies()
    if not await platform.is_logo_visible():
        raise ScenarioSkipped("Platform logo not found")
    ctx.logger.info("URL before clicking logo: %s", platform.current_url)
    url = await platform.click_logo()
    if "angelcard" not in url:
        raise AssertionError(f"Logo click left the site: {url}")
    if not await platform.body_text():
        raise AssertionError("Page after logo click has no content")


async def platform_policy_pages(ctx: ScenarioContext):
    platform = ctx.platform()
    await platform.accept_cookies()
    links = await platform.visible_policy_links()
    if not links:
        raise ScenarioSkipped("No policy links found")

    kind = links[0]
    ctx.logger.info("Found policy link: %s", kind.label)
    await platform.click_policy_link(kind)
    await platform.take_screenshot(f"after-{kind.value}-click")

    url = platform.current_url.lower()
    body = (await platform.body_text()).lower()
    if not any(t in url for t in POLICY_TERMS) and not any(t in body for t in POLICY_TERMS):
        raise AssertionError(f"{url} does not look like a policy page")
    ctx.logger.info("Successfully verified policy page: %s", platform.current_url)


async def platform_responsive(ctx: ScenarioContext):
    platform = ctx.platform()
    await platform.accept_cookies()
    await platform.take_screenshot("responsive-default-viewport")
    await ctx.page.set_viewport_size(MOBILE_VIEWPORT)
    try:
        await ctx.page.wait_for_load_state("domcontentloaded")
        await platform.take_screenshot("responsive-mobile-viewport")
        if not await platform.body_text():
            raise AssertionError("Page has no content in mobile viewport")
        if await platform.has_viewport_meta():
            ctx.logger.info("Page has responsive viewport meta tag")
        else:
            ctx.logger.info("No viewport meta tag found")
        if await platform.enumerate_login_options():
            ctx.logger.info("Login options still visible in mobile viewport")
    finally:
        await ctx.page.set_viewport_size(ctx.settings.viewport)


async def home_debug_inventory(ctx: ScenarioContext):
    """Record what the home page offers as platform entry points."""
    home = ctx.home()
    await home.take_screenshot("homepage-debug")
    inventory = await home.element_inventory()
    if not inventory:
        raise ScenarioSkipped("Could not collect an element inventory")
    ctx.logger.debug("Button info: %s", json.dumps(inventory.get("controls", []), indent=2))
    ctx.logger.debug("Page structure: %s", json.dumps(inventory.get("structure", {})))
    if not await home.is_enter_platform_visible():
        ctx.logger.info("No platform entry button on %s", home.current_url)
        return
    await home.click_enter_platform()
    await home.take_screenshot("platform-page-debug")
    ctx.logger.info("Current URL: %s", home.current_url)
    links = (await home.element_inventory()).get("links", [])
    ctx.logger.debug("Links info: %s", json.dumps(links, indent=2))


SETUPS = {
    "home": open_home,
    "platform": open_platform,
}

SCENARIOS = [
    Scenario("home_smoke", "home", home_smoke),
    Scenario("home_public_offer", "home", home_public_offer),
    Scenario("home_terms", "home", home_terms),
    Scenario("home_logo", "home", home_logo),
    Scenario("home_debug_inventory", "home", home_debug_inventory),
    Scenario("platform_login_options", "platform", platform_login_options),
    Scenario("platform_email_login", "platform", platform_email_login),
    Scenario("platform_logo", "platform", platform_logo),
    Scenario("platform_policy_pages", "platform", platform_policy_pages),
    Scenario("platform_responsive", "platform", platform_responsive),
]


def select_scenarios(pattern: str | None = None) -> list[Scenario]:
    """Filter by substring of the scenario or suite name."""
    if not pattern:
        return list(SCENARIOS)
    pattern = pattern.lower()
    return [s for s in SCENARIOS if pattern in s.name.lower() or pattern in s.suite.lower()]

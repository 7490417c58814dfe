import asyncio
import enum
import logging
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from cookie_consent import ConsentOutcome, CookieConsentHandler
from reporting import sanitize_for_filename
from selector_resolver import DEFAULT_PROBE_TIMEOUT, resolve
from selectors_registry import LOGIN_OPTION_NAMES, SelectorRegistry

STRUCTURAL_SELECTORS = ("nav", "header")
BODY_VISIBLE_TIMEOUT = 5000
STRUCTURE_TIMEOUT = 3000


class AffordanceNotFound(LookupError):
    """A navigation affordance had no visible match on the current page."""

    def __init__(self, affordance: str, tried):
        self.affordance = affordance
        self.tried = tuple(tried)
        super().__init__(f"{affordance} not found (tried: {', '.join(self.tried) or 'nothing'})")


class PolicyLink(enum.Enum):
    PUBLIC_OFFER = "public-offer"
    TERMS = "terms"
    REFUND = "refund"
    SHIPPING = "shipping"

    @property
    def label(self) -> str:
        return {
            PolicyLink.PUBLIC_OFFER: "Public Offer",
            PolicyLink.TERMS: "Terms & Conditions",
            PolicyLink.REFUND: "Refund Policy",
            PolicyLink.SHIPPING: "Shipping Policy",
        }[self]


@dataclass(frozen=True)
class LoginOption:
    name: str
    locator: object


INVENTORY_LIMIT = 50
INVENTORY_SCRIPT = """(limit) => {
  const text = (el) => (el.innerText || el.value || '').trim().slice(0, 80);
  const controls = Array.from(document.querySelectorAll(
      'button, a.button, a[class*="btn"], [role="button"], input[type="submit"]'))
    .slice(0, limit)
    .map(el => ({text: text(el), tag: el.tagName.toLowerCase(), href: el.getAttribute('href'),
                 id: el.id || null, class: el.getAttribute('class')}));
  const links = Array.from(document.querySelectorAll('a[href]'))
    .slice(0, limit)
    .map(a => ({text: text(a), href: a.getAttribute('href')}));
  const testids = [...new Set(Array.from(document.querySelectorAll('[data-testid]'))
    .map(el => el.getAttribute('data-testid')))].slice(0, limit);
  const count = (sel) => document.querySelectorAll(sel).length;
  return {controls, links, testids,
          structure: {inputs: count('input'), buttons: count('button'), forms: count('form'), images: count('img')}};
}"""


async def element_inventory(page, limit: int = INVENTORY_LIMIT) -> dict:
    """Collect button-like controls, links, test ids and element counts.

    Used to work out why a lookup failed. A page that cannot be evaluated
    (closed, navigating) yields an empty inventory.
    """
    try:
        inventory = await page.evaluate(INVENTORY_SCRIPT, limit)
    except PlaywrightError:
        return {}
    return inventory if isinstance(inventory, dict) else {}


class BasePage:
    """Common behaviour for the AngelCard page objects.

    Affordances are looked up by registry key (``<prefix>.<name>``) and
    resolved against the live page on every call.
    """

    prefix = ""

    def __init__(self, page, base_url: str, logger: logging.Logger,
                 registry: SelectorRegistry | None = None,
                 probe_timeout_ms: int = DEFAULT_PROBE_TIMEOUT,
                 screenshots_dir: Path | None = None):
        self.page = page
        self.base_url = base_url.rstrip("/")
        self.log = logger
        self.registry = registry or SelectorRegistry()
        self.probe_timeout_ms = probe_timeout_ms
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else Path("data/screenshots")
        self.consent = CookieConsentHandler(logger, self.registry, probe_timeout_ms=probe_timeout_ms)

    @property
    def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def body_text(self) -> str:
        return (await self.page.text_content("body")) or ""

    async def goto(self, path: str = ""):
        await self.page.goto(f"{self.base_url}{path}")

    async def _quiet_wait(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_stable(self):
        """Wait for the load event, then briefly for the page chrome.

        The nav/header race is advisory: whichever appears first ends the
        wait, and the page is used anyway if neither does.
        """
        await self.page.wait_for_load_state("load")
        if not await self._quiet_wait("body", BODY_VISIBLE_TIMEOUT):
            self.log.warning("Could not wait for page to fully stabilize")
            return

        probes = [asyncio.ensure_future(self._quiet_wait(sel, STRUCTURE_TIMEOUT)) for sel in STRUCTURAL_SELECTORS]
        try:
            for fut in asyncio.as_completed(probes):
                if await fut:
                    return
            self.log.debug("Neither %s appeared; continuing", "/".join(STRUCTURAL_SELECTORS))
        finally:
            for probe in probes:
                probe.cancel()

    async def resolve(self, key: str):
        return await resolve(self.page, self.registry.get(key), self.probe_timeout_ms, logger=self.log)

    async def is_visible(self, key: str) -> bool:
        return bool(await self.resolve(key))

    async def require(self, key: str):
        """Return the resolved locator for key or raise AffordanceNotFound."""
        outcome = await self.resolve(key)
        if not outcome:
            raise AffordanceNotFound(key, outcome.tried)
        return outcome.locator

    async def click_affordance(self, key: str):
        locator = await self.require(key)
        self.log.info("Clicking %s", key)
        await locator.click()
        await self.wait_for_stable()

    async def click_logo(self) -> str:
        """Click the logo and return wherever the site lands."""
        await self.click_affordance(f"{self.prefix}.logo")
        self.log.info("URL after clicking logo: %s", self.current_url)
        return self.current_url

    async def is_logo_visible(self) -> bool:
        return await self.is_visible(f"{self.prefix}.logo")

    async def click_policy_link(self, kind: PolicyLink):
        await self.click_affordance(f"{self.prefix}.policy.{kind.value}")

    async def visible_policy_links(self) -> list[PolicyLink]:
        return [kind for kind in PolicyLink if await self.is_visible(f"{self.prefix}.policy.{kind.value}")]

    async def accept_cookies(self) -> ConsentOutcome:
        return await self.consent.handle(self.page)

    async def is_cookie_consent_visible(self) -> bool:
        return await self.consent.is_banner_visible(self.page)

    async def has_viewport_meta(self) -> bool:
        return bool(await self.page.evaluate("() => document.querySelector('meta[name=\"viewport\"]') !== null"))

    async def element_inventory(self, limit: int = INVENTORY_LIMIT) -> dict:
        inventory = await element_inventory(self.page, limit)
        self.log.info("Found %d potential buttons and %d links on %s",
                      len(inventory.get("controls", [])), len(inventory.get("links", [])), self.current_url)
        return inventory

    async def take_screenshot(self, name: str) -> Path:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        path = self.screenshots_dir / f"{sanitize_for_filename(name)}.png"
        await self.page.screenshot(path=str(path), full_page=True)
        self.log.debug("Screenshot saved: %s", path)
        return path


class HomePage(BasePage):
    prefix = "home"

    async def navigate_to_home_page(self):
        await self.goto("/")
        await self.wait_for_stable()

    navigate = navigate_to_home_page

    async def is_enter_platform_visible(self) -> bool:
        return await self.is_visible("home.enter-platform")

    async def click_enter_platform(self):
        await self.click_affordance("home.enter-platform")


class PlatformPage(BasePage):
    prefix = "platform"

    async def navigate_to_platform(self):
        await self.goto("/")
        await self.wait_for_stable()

    navigate = navigate_to_platform

    async def enumerate_login_options(self) -> list[LoginOption]:
        """Return the login options visible right now, in registry order."""
        options = []
        for name, key in LOGIN_OPTION_NAMES.items():
            outcome = await self.resolve(key)
            if outcome:
                options.append(LoginOption(name=name, locator=outcome.locator))
        return options

    async def click_login_option(self, name: str):
        key = LOGIN_OPTION_NAMES[name]
        outcome = await self.resolve(key)
        tried = list(getattr(outcome, "tried", ()))
        if not outcome and name == "Email":
            outcome = await self.resolve("login.email-alternatives")
            tried.extend(getattr(outcome, "tried", ()))
        if not outcome:
            self.log.error("Could not find %s login option", name)
            raise AffordanceNotFound(key, tried)
        self.log.info("Clicking %s login option", name)
        await outcome.locator.click()
        await self.wait_for_stable()

    async def has_email_form_controls(self) -> bool:
        return await self.is_visible("login.email-form-controls")

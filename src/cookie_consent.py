import enum
import logging

from playwright.async_api import Error as PlaywrightError

from selector_resolver import resolve
from selectors_registry import SelectorRegistry

BANNER_HINTS = ("cookie", "consent", "privacy")
BANNER_PROBE_TIMEOUT = 500


class ConsentOutcome(enum.Enum):
    NO_BANNER = "no_banner"
    ACCEPTED_ATTRIBUTE = "accepted_attribute"
    ACCEPTED_ROLE = "accepted_role"
    ACCEPTED_BANNER = "accepted_banner"
    UNRECOGNIZED = "unrecognized"
    PROBE_FAILED = "probe_failed"

    @property
    def accepted(self) -> bool:
        return self in (ConsentOutcome.ACCEPTED_ATTRIBUTE, ConsentOutcome.ACCEPTED_ROLE, ConsentOutcome.ACCEPTED_BANNER)


class CookieConsentHandler:
    """Dismiss a cookie banner if one is present.

    Strategies run in a fixed order (data attribute, accessible role, known
    banner containers) and stop at the first successful click. Nothing here
    ever fails the calling test: a missing or unrecognised banner is logged
    and handle() returns normally.
    """

    def __init__(self, logger: logging.Logger, registry: SelectorRegistry | None = None,
                 probe_timeout_ms: int = 1000, action_timeout_ms: int = 15000):
        self.log = logger
        self.registry = registry or SelectorRegistry()
        self.probe_timeout_ms = probe_timeout_ms
        self.action_timeout_ms = action_timeout_ms

    async def _banner_text_present(self, page) -> bool:
        text = (await page.text_content("body", timeout=self.action_timeout_ms)) or ""
        text = text.lower()
        return any(hint in text for hint in BANNER_HINTS)

    async def _click(self, locator, label: str) -> bool:
        try:
            await locator.click(timeout=self.action_timeout_ms)
            return True
        except PlaywrightError as e:
            self.log.warning("Failed to click %s: %s", label, e)
            return False

    async def handle(self, page) -> ConsentOutcome:
        self.log.info("Attempting to handle cookie consent if present")
        try:
            if not await self._banner_text_present(page):
                self.log.info("No cookie banner detected on page - skipping cookie handling")
                return ConsentOutcome.NO_BANNER
        except PlaywrightError as e:
            self.log.warning("Cookie banner probe failed: %s", e)
            return ConsentOutcome.PROBE_FAILED

        try:
            found = await resolve(page, self.registry.get("cookie.accept-attribute"), self.probe_timeout_ms, logger=self.log)
            if found:
                self.log.info("Found cookie accept button with data attribute")
                if await self._click(found.locator, "cookie accept button (data attribute)"):
                    return ConsentOutcome.ACCEPTED_ATTRIBUTE
        except PlaywrightError as e:
            self.log.warning("Attribute strategy failed: %s", e)

        try:
            found = await resolve(page, self.registry.get("cookie.accept-role"), self.probe_timeout_ms, logger=self.log)
            if found:
                self.log.info("Found cookie consent button by role")
                if await self._click(found.locator, "cookie consent button (role)"):
                    return ConsentOutcome.ACCEPTED_ROLE
        except PlaywrightError as e:
            self.log.warning("Role strategy failed: %s", e)

        accept = self.registry.get("cookie.banner-accept")
        for banner_candidate in self.registry.get("cookie.banner"):
            try:
                banner = await resolve(page, [banner_candidate], BANNER_PROBE_TIMEOUT, logger=self.log)
                if not banner:
                    continue
                self.log.info("Found cookie banner with selector: %s", banner_candidate)
                button = await resolve(banner.locator, accept, self.probe_timeout_ms, logger=self.log)
                if not button:
                    self.log.warning("Found banner %s but no accept button inside it", banner_candidate)
                    continue
                if await self._click(button.locator, f"accept button in {banner_candidate}"):
                    return ConsentOutcome.ACCEPTED_BANNER
            except PlaywrightError as e:
                self.log.warning("Banner strategy failed for %s: %s", banner_candidate, e)

        self.log.info("Completed cookie handling attempts - continuing with test")
        return ConsentOutcome.UNRECOGNIZED

    async def is_banner_visible(self, page) -> bool:
        try:
            if await resolve(page, self.registry.get("cookie.container"), BANNER_PROBE_TIMEOUT, logger=self.log):
                return True
            return bool(await resolve(page, self.registry.get("cookie.accept-any"), self.probe_timeout_ms, logger=self.log))
        except PlaywrightError as e:
            self.log.warning("Cookie banner visibility check failed: %s", e)
            return False

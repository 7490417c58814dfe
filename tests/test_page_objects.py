import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import FakeElement, FakePage
from page_objects import AffordanceNotFound, HomePage, PlatformPage, PolicyLink, element_inventory

EMAIL = "css=a:has-text('Continue with Email')"
GOOGLE = "css=button:has-text('Google')"
EMAIL_FORM = "css=form input[type='email']"


def platform_page(page, logger, tmp_path):
    return PlatformPage(page, "https://platform.angelcard.us/", logger, probe_timeout_ms=1000,
                        screenshots_dir=tmp_path / "shots")


def home_page(page, logger, tmp_path):
    return HomePage(page, "https://www.angelcard.us", logger, probe_timeout_ms=1000,
                    screenshots_dir=tmp_path / "shots")


async def test_navigate_loads_base_url_and_waits(page, logger, tmp_path):
    home = home_page(page, logger, tmp_path)

    await home.navigate_to_home_page()

    assert page.visited == ["https://www.angelcard.us/"]
    assert page.load_states == ["load"]
    assert await home.title()
    assert len(await home.body_text()) > 0


async def test_stability_wait_tolerates_missing_chrome(logger, tmp_path):
    page = FakePage(selectors=("body",))
    platform = platform_page(page, logger, tmp_path)

    await platform.navigate_to_platform()

    assert page.visited == ["https://platform.angelcard.us/"]


async def test_stability_wait_tolerates_missing_body(logger, tmp_path):
    page = FakePage(selectors=())
    await platform_page(page, logger, tmp_path).wait_for_stable()


async def test_email_only_platform_lists_exactly_email(logger, tmp_path):
    page = FakePage()
    page.add(EMAIL)
    platform = platform_page(page, logger, tmp_path)

    options = await platform.enumerate_login_options()

    assert [o.name for o in options] == ["Email"]


async def test_bare_email_input_lists_email_form(logger, tmp_path):
    page = FakePage()
    page.add(EMAIL_FORM)

    options = await platform_page(page, logger, tmp_path).enumerate_login_options()

    assert [o.name for o in options] == ["Email Form"]


async def test_login_options_are_stable_and_in_registry_order(logger, tmp_path):
    page = FakePage()
    page.add(GOOGLE)
    page.add("css=a:has-text('Apple')", FakeElement(visible=False))
    page.add(EMAIL)
    platform = platform_page(page, logger, tmp_path)

    first = [o.name for o in await platform.enumerate_login_options()]
    second = [o.name for o in await platform.enumerate_login_options()]

    assert first == second == ["Email", "Google"]
    assert page.clicked == []


async def test_click_login_option_uses_email_alternatives(logger, tmp_path):
    page = FakePage()
    signin = FakeElement()
    page.add("css=a:text-matches('sign.?in', 'i')", signin)
    platform = platform_page(page, logger, tmp_path)

    await platform.click_login_option("Email")

    assert signin.clicks == 1


async def test_click_missing_login_option_raises_with_candidates(logger, tmp_path):
    platform = platform_page(FakePage(), logger, tmp_path)

    with pytest.raises(AffordanceNotFound) as exc:
        await platform.click_login_option("Google")

    assert exc.value.affordance == "login.google"
    assert "css=a:has-text('Continue with Google')" in exc.value.tried


async def test_click_policy_link_navigates(page, logger, tmp_path):
    home = home_page(page, logger, tmp_path)
    page.add("css=a:has-text('Public offer and Privacy policy')",
             FakeElement(on_click=lambda: setattr(page, "url", "https://www.angelcard.us/public-offer")))

    await home.click_policy_link(PolicyLink.PUBLIC_OFFER)

    assert "public-offer" in home.current_url


async def test_absent_policy_link_raises_affordance_not_found(page, logger, tmp_path):
    home = home_page(page, logger, tmp_path)

    with pytest.raises(AffordanceNotFound) as exc:
        await home.click_policy_link(PolicyLink.REFUND)

    assert exc.value.affordance == "home.policy.refund"
    assert isinstance(exc.value, LookupError)


async def test_click_failure_on_resolved_element_propagates(page, logger, tmp_path):
    from playwright.async_api import Error as PlaywrightError

    page.add("css=img", FakeElement(fail_click=True))

    with pytest.raises(PlaywrightError):
        await home_page(page, logger, tmp_path).click_logo()


async def test_click_logo_returns_landing_url(logger, tmp_path):
    page = FakePage(url="https://platform.angelcard.us/public-offer")
    page.add("css=header img", FakeElement(on_click=lambda: setattr(page, "url", "https://platform.angelcard.us/")))
    platform = platform_page(page, logger, tmp_path)

    assert await platform.is_logo_visible()
    assert await platform.click_logo() == "https://platform.angelcard.us/"


async def test_visible_policy_links_in_enum_order(logger, tmp_path):
    page = FakePage()
    page.add("css=a[href*='shipping']")
    page.add("css=a:has-text('Terms')")

    links = await platform_page(page, logger, tmp_path).visible_policy_links()

    assert links == [PolicyLink.TERMS, PolicyLink.SHIPPING]


async def test_enter_platform_visibility(page, logger, tmp_path):
    home = home_page(page, logger, tmp_path)
    assert not await home.is_enter_platform_visible()
    page.add("role=link/enter/")
    assert await home.is_enter_platform_visible()


async def test_take_screenshot_writes_into_screenshot_dir(page, logger, tmp_path):
    path = await home_page(page, logger, tmp_path).take_screenshot("Public Offer page!")

    assert path == tmp_path / "shots" / "public_offer_page.png"
    assert page.screenshots == [str(path)]


class SlowNavPage(FakePage):
    """Has a header but its nav never shows up."""

    def __init__(self):
        super().__init__(selectors=("body", "header"))
        self.nav_cancelled = False

    async def wait_for_selector(self, selector, timeout=None, state="visible"):
        if selector == "nav":
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                self.nav_cancelled = True
                raise
        await super().wait_for_selector(selector, timeout, state)


async def test_stability_wait_ends_when_header_appears(logger, tmp_path, caplog):
    page = SlowNavPage()

    with caplog.at_level("DEBUG", logger="angelcard.tests"):
        await asyncio.wait_for(platform_page(page, logger, tmp_path).wait_for_stable(), timeout=1)
    await asyncio.sleep(0)

    assert page.nav_cancelled
    assert "Neither" not in caplog.text


async def test_element_inventory_returns_page_controls(logger, tmp_path):
    inventory = {"controls": [{"text": "Enter Platform", "tag": "a", "href": "https://platform.angelcard.us",
                               "id": None, "class": "btn"}],
                 "links": [{"text": "Public Offer", "href": "/public-offer"}],
                 "testids": [], "structure": {"inputs": 0, "buttons": 2, "forms": 0, "images": 3}}
    page = FakePage(evaluate_result=inventory)

    assert await home_page(page, logger, tmp_path).element_inventory() == inventory


async def test_element_inventory_is_empty_when_page_cannot_be_evaluated():
    class ClosedPage(FakePage):
        async def evaluate(self, expression, *args):
            raise PlaywrightError("Target page, context or browser has been closed")

    assert await element_inventory(ClosedPage()) == {}
    assert await element_inventory(FakePage(evaluate_result=None)) == {}

import re

import pytest

from fakes import FakeElement, FakePage
from selector_resolver import Candidate, Found, NotFound, candidates, resolve


def test_candidate_descriptions():
    assert str(Candidate("css", "a.logo")) == "css=a.logo"
    assert str(Candidate("text", "Accept")) == "text=Accept"
    assert str(Candidate("testid", "login-button")) == "testid=login-button"
    assert str(Candidate("role", role="button", name_regex="OK")) == "role=button/OK/"


def test_candidate_rejects_unknown_engine_and_missing_values():
    with pytest.raises(ValueError):
        Candidate("xpath", "//a")
    with pytest.raises(ValueError):
        Candidate("css")
    with pytest.raises(ValueError):
        Candidate("role", name_regex="OK")


def test_candidates_accepts_mixed_targets():
    out = candidates(
        "a.logo",
        {"engine": "role", "role": "link", "name_regex": "enter"},
        {"engine": "text", "text": "Accept"},
        Candidate("testid", "x"),
    )
    assert [str(c) for c in out] == ["css=a.logo", "role=link/enter/", "text=Accept", "testid=x"]


def test_role_candidate_builds_case_insensitive_pattern():
    seen = {}

    class Scope:
        def get_by_role(self, role, name=None):
            seen["role"], seen["name"] = role, name
            return "locator"

    Candidate("role", role="button", name_regex="accept").build(Scope())
    assert seen["role"] == "button"
    assert seen["name"].flags & re.I
    assert seen["name"].search("ACCEPT ALL")


async def test_first_visible_candidate_wins():
    page = FakePage()
    page.add("css=#hidden", FakeElement(visible=False))
    page.add("css=#second")
    page.add("css=#third")

    outcome = await resolve(page, candidates("#missing", "#hidden", "#second", "#third"), timeout_ms=1000)

    assert isinstance(outcome, Found)
    assert outcome.index == 2
    assert str(outcome.candidate) == "css=#second"


async def test_multiple_matches_probe_each_element():
    page = FakePage()
    page.add("css=a", FakeElement(visible=False), FakeElement(visible=False), FakeElement(visible=True))

    outcome = await resolve(page, candidates("a"))

    assert outcome
    assert outcome.locator.index == 2


async def test_multiple_matches_are_capped():
    page = FakePage()
    hidden = [FakeElement(visible=False) for _ in range(5)]
    page.add("css=a", *hidden, FakeElement(visible=True))

    outcome = await resolve(page, candidates("a"), max_matches=5)

    assert isinstance(outcome, NotFound)


async def test_exhausted_list_returns_not_found_without_raising():
    page = FakePage()
    page.add("css=.banner", FakeElement(visible=False))
    cands = candidates(".banner", "#nothing", {"engine": "role", "role": "button", "name_regex": "OK"})

    outcome = await resolve(page, cands, timeout_ms=1500)

    assert not outcome
    assert outcome.tried == ("css=.banner", "css=#nothing", "role=button/OK/")
    # every wait stayed inside the per-candidate budget
    assert page.waits
    assert all(timeout <= 1500 for _, _, timeout in page.waits)


async def test_empty_candidate_list_is_not_found():
    assert await resolve(FakePage(), []) == NotFound(tried=())


async def test_resolution_does_not_click():
    page = FakePage()
    el = FakeElement()
    page.add("css=button", el)

    await resolve(page, candidates("button"))

    assert el.clicks == 0
    assert page.clicked == []

"""Shared fixtures for the component tests; no browser or network is used."""

import logging

import pytest

from fakes import FakePage
from selectors_registry import SelectorRegistry
from suite_settings import SuiteSettings


@pytest.fixture
def logger() -> logging.Logger:
    log = logging.getLogger("angelcard.tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def settings(tmp_path, monkeypatch) -> SuiteSettings:
    monkeypatch.chdir(tmp_path)  # keep a developer's .env out of the tests
    return SuiteSettings(
        report_dir=tmp_path / "runs",
        log_dir=tmp_path / "logs",
        selector_overrides=tmp_path / "overrides.json",
        probe_timeout=1000,
        webhook_secret="test-secret",
    )


@pytest.fixture
def registry() -> SelectorRegistry:
    return SelectorRegistry()


@pytest.fixture
def page() -> FakePage:
    return FakePage(url="https://www.angelcard.us/", title="Credit Card Angelic Care - ANGEL CARD",
                    body_text="Angel Card keeps your credit card safe.")

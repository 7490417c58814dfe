import json
import logging
from pathlib import Path

from selector_resolver import Candidate, candidates

# Affordance name -> ordered candidates (most preferred first).
# Keys double as the override keys in data/selectors_overrides.json.
DEFAULT_SELECTORS = {
    # Home page
    "home.logo": [
        "img",
    ],
    "home.enter-platform": [
        "a:has-text('Enter Platform')",
        "button:has-text('Enter Platform')",
        {"engine": "role", "role": "link", "name_regex": r"enter"},
        {"engine": "role", "role": "button", "name_regex": r"enter"},
        "a:has-text('Enter'), button:has-text('Enter')",
    ],
    "home.platform-entry-fallback": [
        {"engine": "role", "role": "link", "name_regex": r"sign.?in|log.?in|register|enter|platform"},
        {"engine": "role", "role": "button", "name_regex": r"sign.?in|log.?in|register|enter|platform"},
        "a:text-matches('sign.?in|log.?in|register|enter|platform', 'i')",
        "button:text-matches('sign.?in|log.?in|register|enter|platform', 'i')",
    ],
    "home.policy.public-offer": [
        "a:has-text('Public offer and Privacy policy')",
    ],
    "home.policy.terms": [
        "a:has-text('Terms & Conditions')",
    ],
    "home.policy.refund": [
        "a:has-text('Refund Policy')",
    ],
    "home.policy.shipping": [
        "a:has-text('Shipping Policy')",
    ],
    # Platform page
    "platform.logo": [
        "img[alt='AngelCard Logo']",
        "img[alt*='Angel']",
        "img[alt*='logo' i]",
        "a.logo img",
        ".logo img",
        "header img",
    ],
    "platform.policy.public-offer": [
        "a:has-text('Public offer and Privacy policy')",
        "a:has-text('Public offer')",
        "a:has-text('Privacy policy')",
        "a[href*='public-offer']",
        "a[href*='privacy']",
    ],
    "platform.policy.terms": [
        "a:has-text('Terms & Conditions')",
        "a:has-text('Terms')",
        "a[href*='terms']",
    ],
    "platform.policy.refund": [
        "a:has-text('Refund Policy')",
        "a:has-text('Refund')",
        "a[href*='refund']",
    ],
    "platform.policy.shipping": [
        "a:has-text('Shipping Policy')",
        "a:has-text('Shipping')",
        "a[href*='shipping']",
    ],
    # Login options, evaluated in LOGIN_OPTION_NAMES order
    "login.email": [
        "a:has-text('Continue with Email')",
        "button:has-text('Email')",
        "a:has-text('Email')",
        "a:has-text('Sign in with Email')",
        "button:has-text('Sign in with Email')",
        "a[href*='email'], button[class*='email']",
    ],
    "login.google": [
        "a:has-text('Continue with Google')",
        "button:has-text('Google')",
        "a:has-text('Google')",
        "a:has-text('Sign in with Google')",
        "button:has-text('Sign in with Google')",
        "a[href*='google'], button[class*='google']",
    ],
    "login.apple": [
        "a:has-text('Continue with Apple')",
        "button:has-text('Apple')",
        "a:has-text('Apple')",
        "a:has-text('Sign in with Apple')",
        "button:has-text('Sign in with Apple')",
        "a[href*='apple'], button[class*='apple']",
    ],
    "login.facebook": [
        "a:text-matches('facebook', 'i'), button:text-matches('facebook', 'i')",
    ],
    "login.twitter": [
        "a:text-matches('twitter', 'i'), button:text-matches('twitter', 'i')",
    ],
    "login.github": [
        "a:text-matches('github', 'i'), button:text-matches('github', 'i')",
    ],
    "login.microsoft": [
        "a:text-matches('microsoft', 'i'), button:text-matches('microsoft', 'i')",
    ],
    "login.email-form": [
        "form input[type='email']",
    ],
    # Tried after login.email when clicking the email option
    "login.email-alternatives": [
        "form input[type='email']",
        "a:text-matches('sign.?in', 'i')",
        "a:text-matches('log.?in', 'i')",
        "button:text-matches('sign.?in', 'i')",
        "button:text-matches('log.?in', 'i')",
        "a:text-matches('register', 'i')",
        "button:text-matches('register', 'i')",
    ],
    # Form controls expected after choosing email login
    "login.email-form-controls": [
        "input[type='email']",
        "input[type='password']",
        "form button[type='submit']",
        "form input[type='submit']",
    ],
    # Cookie consent
    "cookie.accept-attribute": [
        "[data-cky-tag='accept-button']",
    ],
    "cookie.accept-role": [
        {"engine": "role", "role": "button", "name_regex": r"\b(Accept|Accept All|OK|Agree)\b"},
    ],
    "cookie.banner": [
        ".cookie-banner",
        ".cookie-consent",
        ".cookie-notice",
        ".gdpr-banner",
        ".cky-consent-container",
    ],
    "cookie.banner-accept": [
        "button:has-text('Accept'), button:has-text('OK'), button:has-text('Agree')",
    ],
    "cookie.container": [
        "[role='region'][aria-label='We value your privacy']",
        "[class*='cookie']",
        "[id*='cookie']",
        "[class*='consent']",
        "[id*='consent']",
    ],
    "cookie.accept-any": [
        "[data-cky-tag='accept-button'], button:has-text('Accept')",
    ],
}

# Display name -> registry key. Order is the enumeration order.
LOGIN_OPTION_NAMES = {
    "Email": "login.email",
    "Google": "login.google",
    "Apple": "login.apple",
    "Facebook": "login.facebook",
    "Twitter": "login.twitter",
    "GitHub": "login.github",
    "Microsoft": "login.microsoft",
    "Email Form": "login.email-form",
}


def load_overrides(path: Path, logger: logging.Logger | None = None) -> dict:
    """Read user overrides ({key: [target, ...]}); a missing file means none."""
    if not path or not Path(path).exists():
        return {}
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        if logger:
            logger.warning("Ignoring unreadable selector overrides %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        if logger:
            logger.warning("Ignoring selector overrides %s: expected a JSON object", path)
        return {}

    # Bad entries are dropped here so registry lookups never raise on user input.
    valid = {}
    for key, targets in data.items():
        if not isinstance(targets, list):
            if logger:
                logger.warning("Ignoring selector overrides for %s: expected a list", key)
            continue
        kept = []
        for target in targets:
            try:
                candidates(target)
            except (ValueError, TypeError) as e:
                if logger:
                    logger.warning("Ignoring selector override for %s %r: %s", key, target, e)
                continue
            kept.append(target)
        if kept:
            valid[key] = kept
    return valid


class SelectorRegistry:
    """Built-in candidate lists plus user overrides.

    Overrides are appended after the built-ins for the same key, so they act
    as extra fallbacks rather than replacements.
    """

    def __init__(self, overrides: dict | None = None, defaults: dict | None = None):
        self._defaults = DEFAULT_SELECTORS if defaults is None else defaults
        self._overrides = overrides or {}

    @classmethod
    def from_file(cls, path: Path, logger: logging.Logger | None = None) -> "SelectorRegistry":
        return cls(overrides=load_overrides(path, logger))

    def keys(self) -> list[str]:
        seen = list(self._defaults)
        seen.extend(k for k in self._overrides if k not in self._defaults)
        return seen

    def get(self, key: str) -> list[Candidate]:
        targets = list(self._defaults.get(key, [])) + list(self._overrides.get(key, []))
        if not targets:
            raise KeyError(f"No selectors registered for {key!r}")
        return candidates(*targets)

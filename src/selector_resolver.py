import asyncio
import logging
import re
from dataclasses import dataclass, field

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

ENGINES = ("testid", "css", "text", "role")
MAX_MATCHES = 5
DEFAULT_PROBE_TIMEOUT = 2000


@dataclass(frozen=True)
class Candidate:
    """One way of finding an affordance.

    engine is one of 'testid' | 'css' | 'text' | 'role'; the other fields are
    the engine's parameters. build() is lazy: nothing is queried until the
    returned locator is probed.
    """

    engine: str
    value: str = ""
    role: str = ""
    name_regex: str = ""

    def __post_init__(self):
        if self.engine not in ENGINES:
            raise ValueError(f"Unknown selector engine: {self.engine!r}")
        if self.engine == "role":
            if not self.role:
                raise ValueError("role candidates need a role")
            try:
                re.compile(self.name_regex)
            except re.error as e:
                raise ValueError(f"Invalid name_regex {self.name_regex!r}: {e}") from e
        if self.engine != "role" and not self.value:
            raise ValueError(f"{self.engine} candidates need a value")

    @classmethod
    def from_dict(cls, target: dict) -> "Candidate":
        engine = target.get("engine")
        if engine == "role":
            return cls(engine="role", role=target.get("role", ""), name_regex=target.get("name_regex", ".*"))
        if engine == "text":
            return cls(engine="text", value=target.get("text") or target.get("value", ""))
        return cls(engine=engine, value=target.get("value", ""))

    def build(self, scope):
        """scope may be a Page, a Frame or a Locator."""
        if self.engine == "testid":
            return scope.get_by_test_id(self.value)
        if self.engine == "css":
            return scope.locator(self.value)
        if self.engine == "text":
            return scope.get_by_text(self.value, exact=False)
        return scope.get_by_role(self.role, name=re.compile(self.name_regex, re.I))

    def __str__(self) -> str:
        if self.engine == "role":
            return f"role={self.role}/{self.name_regex}/"
        return f"{self.engine}={self.value}"


def candidates(*targets) -> list[Candidate]:
    """Accept Candidate instances, engine dicts, or bare CSS strings."""
    out = []
    for t in targets:
        if isinstance(t, Candidate):
            out.append(t)
        elif isinstance(t, dict):
            out.append(Candidate.from_dict(t))
        elif isinstance(t, str):
            out.append(Candidate(engine="css", value=t))
        else:
            raise TypeError(f"Unsupported selector target: {t!r}")
    return out


@dataclass(frozen=True)
class Found:
    locator: object
    index: int
    candidate: Candidate

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound:
    tried: tuple = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return False


async def _probe(scope, candidate: Candidate, timeout_ms: int, max_matches: int):
    """Return the visible matching element for one candidate, or None."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    loc = candidate.build(scope)
    try:
        await loc.first.wait_for(state="attached", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return None

    count = await loc.count()
    if count == 1:
        try:
            remaining = max(1, int((deadline - loop.time()) * 1000))
            await loc.first.wait_for(state="visible", timeout=remaining)
            return loc.first
        except PlaywrightTimeoutError:
            return None

    # several matches: a strict single-element probe would fail, so check each
    for i in range(min(count, max_matches)):
        element = loc.nth(i)
        if await element.is_visible():
            return element
    return None


async def resolve(
    scope,
    candidate_list: list[Candidate],
    timeout_ms: int = DEFAULT_PROBE_TIMEOUT,
    max_matches: int = MAX_MATCHES,
    logger: logging.Logger | None = None,
):
    """Return Found for the first visible candidate, else NotFound.

    Absence is never an exception. Only read-only checks (count, wait_for,
    is_visible) are issued; errors other than probe timeouts propagate.
    """
    for idx, cand in enumerate(candidate_list):
        element = await _probe(scope, cand, timeout_ms, max_matches)
        if element is not None:
            if logger:
                logger.debug("Resolved %s (candidate %d)", cand, idx)
            return Found(locator=element, index=idx, candidate=cand)
        if logger:
            logger.debug("No visible match for %s", cand)
    return NotFound(tried=tuple(str(c) for c in candidate_list))

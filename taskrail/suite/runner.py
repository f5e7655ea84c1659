from __future__ import annotations

import logging
from typing import Protocol

from playwright.async_api import Browser, Playwright, async_playwright

from .types import AssertionFailure, PageStats

logger = logging.getLogger(__name__)

# Installed before any page script runs. QUnit assigns window.QUnit when it
# loads; the setter hooks its log/done callbacks at that moment.
_QUNIT_HOOK = """
(() => {
  const failures = [];
  let qunit;
  Object.defineProperty(window, "QUnit", {
    configurable: true,
    get() { return qunit; },
    set(value) {
      qunit = value;
      value.log((details) => {
        if (details.result) return;
        failures.push({
          module: String(details.module || ""),
          test: String(details.name || ""),
          message: String(details.message || ""),
          actual: details.actual === undefined ? null : String(details.actual),
          expected: details.expected === undefined ? null : String(details.expected),
        });
      });
      value.done((details) => {
        window.__taskrail_qunit = {
          passed: details.passed,
          failed: details.failed,
          total: details.total,
          runtime: details.runtime,
          failures: failures,
        };
      });
    },
  });
})();
"""


class PageRunner(Protocol):
    async def __aenter__(self) -> PageRunner: ...

    async def __aexit__(self, *exc_info: object) -> None: ...

    async def run(self, url: str) -> PageStats: ...


class QUnitPageRunner:
    """Runs QUnit test pages in a headless browser.

    One browser is shared by the whole suite; every page gets its own browser
    context so targets never see each other's storage or globals.
    """

    def __init__(self, browser: str = "chromium", *, headless: bool = True):
        self.browser_name = browser
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> QUnitPageRunner:
        self._playwright = await async_playwright().start()
        try:
            launcher = getattr(self._playwright, self.browser_name)
            self._browser = await launcher.launch(headless=self.headless)
        except BaseException:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.debug("Launched %s", self.browser_name)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def run(self, url: str) -> PageStats:
        if self._browser is None:
            raise RuntimeError("QUnitPageRunner used outside of 'async with'")

        context = await self._browser.new_context()
        try:
            await context.add_init_script(_QUNIT_HOOK)
            page = await context.new_page()
            response = await page.goto(url)
            if response is not None and not response.ok:
                raise RuntimeError(f"{url} responded with HTTP {response.status}")
            # the caller bounds the wait with its own timeout
            await page.wait_for_function(
                "() => window.__taskrail_qunit !== undefined", timeout=0
            )
            raw = await page.evaluate("() => window.__taskrail_qunit")
        finally:
            await context.close()

        return PageStats(
            passed=int(raw["passed"]),
            failed=int(raw["failed"]),
            total=int(raw["total"]),
            runtime_ms=float(raw.get("runtime") or 0),
            failures=tuple(AssertionFailure(**f) for f in raw.get("failures", [])),
        )

# dealwatch/live.py
"""Live browser session: Playwright page as change source and highlight target."""
import asyncio
import itertools
from typing import Callable, Dict, Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError, TimeoutError as PWTimeout, async_playwright

from .analyzer import ListingListAnalyzer
from .config import AnalyzerConfig
from .extract import COLLECTION_SELECTOR, ITEM_SELECTOR, extract_visible
from .highlight import KEY_ATTRIBUTE, PageHighlightSink, fire_script
from .scheduler import AutoScroller
from .utils import logger, retry

BINDING_NAME = "__dealwatchBurst"

# stamps a key on every rendered item so highlights can find it again later
_STAMP_JS = """
([collection, item, attr]) => {
  const col = document.querySelector(collection);
  if (!col) return 0;
  let n = window.__dealwatchSeq || 0;
  col.querySelectorAll(item).forEach((el) => {
    if (!el.hasAttribute(attr)) el.setAttribute(attr, String(++n));
  });
  window.__dealwatchSeq = n;
  return n;
}
"""

_OBSERVE_JS = """
([selector, token, binding]) => {
  const target = document.querySelector(selector) || document.body;
  window.__dealwatchObservers = window.__dealwatchObservers || {};
  const observer = new MutationObserver((mutations) => {
    if (mutations.some((m) => m.addedNodes.length)) window[binding](token);
  });
  observer.observe(target, { childList: true, subtree: true });
  window.__dealwatchObservers[token] = observer;
}
"""

_DISCONNECT_JS = """
(token) => {
  const observers = window.__dealwatchObservers || {};
  if (observers[token]) { observers[token].disconnect(); delete observers[token]; }
}
"""

_SEARCH_VALUE_JS = """
() => {
  const input = document.querySelector('input[aria-label="Search Marketplace"]');
  return input ? String(input.value || '') : '';
}
"""


class PageChangeSource:
    """Forwards DOM mutation bursts from the page to subscribers.

    Debouncing is left to the subscriber; every burst is forwarded.
    """

    def __init__(self, page):
        self.page = page
        self._subscribers: Dict[str, Callable[[], None]] = {}
        self._tokens = itertools.count(1)
        self._bound = False

    async def start(self):
        if not self._bound:
            await self.page.expose_function(BINDING_NAME, self._on_burst)
            self._bound = True

    def _on_burst(self, token):
        callback = self._subscribers.get(str(token))
        if callback is not None:
            callback()

    def subscribe(self, container: str, on_burst: Callable[[], None]) -> Callable[[], None]:
        token = str(next(self._tokens))
        self._subscribers[token] = on_burst
        fire_script(self.page, _OBSERVE_JS, [container, token, BINDING_NAME])

        def unsubscribe():
            if self._subscribers.pop(token, None) is not None:
                fire_script(self.page, _DISCONNECT_JS, token)
        return unsubscribe


class LiveSession:
    """Wires a page, the change scheduler and the analyzer together."""

    def __init__(self, page, config: Optional[AnalyzerConfig] = None):
        self.page = page
        self.config = config or AnalyzerConfig()
        self.sink = PageHighlightSink(page, self.config.highlight_colors)
        self.source = PageChangeSource(page)
        self.analyzer = ListingListAnalyzer(self.config, sink=self.sink, extractor=self._extract,
                                            on_count=self._log_count)
        self.scroller = AutoScroller(page)
        self._scan_lock = asyncio.Lock()

    @staticmethod
    def _log_count(count):
        logger.info("Detected Listings: %d", count)

    @staticmethod
    def _extract(document):
        return extract_visible(document, handle=lambda node: node.get(KEY_ATTRIBUTE))

    async def snapshot(self) -> BeautifulSoup:
        await self.page.evaluate(_STAMP_JS, [COLLECTION_SELECTOR, ITEM_SELECTOR, KEY_ATTRIBUTE])
        html = await self.page.content()
        return BeautifulSoup(html, "html.parser")

    async def scan(self):
        async with self._scan_lock:
            document = await self.snapshot()
            return self.analyzer.scan(document)

    async def search_keyword(self) -> str:
        return (await self.page.evaluate(_SEARCH_VALUE_JS)).strip().lower()

    async def start(self, keyword: Optional[str] = None, auto_scroll: bool = False):
        keyword = keyword or await self.search_keyword()
        if not keyword:
            raise RuntimeError("No search keyword found. Please search for an item first.")
        self.analyzer.set_keyword(keyword)
        await self.source.start()
        await self.scan()
        self.analyzer.scheduler.on_scan = self.scan
        self.analyzer.scheduler.connect(self.source, COLLECTION_SELECTOR)
        if auto_scroll:
            self.scroller.start()

    def stop(self):
        self.scroller.stop()
        self.analyzer.scheduler.disconnect()


@retry((PWTimeout, PlaywrightError), tries=3, delay=2, backoff=2)
async def open_page(page, url):
    await page.goto(url, timeout=60000)
    await page.wait_for_load_state("domcontentloaded")


async def watch(url: str, keyword: Optional[str] = None, duration: float = 60.0,
                headless: bool = True, auto_scroll: bool = False,
                config: Optional[AnalyzerConfig] = None, cookies=None):
    """Watch a results page for `duration` seconds; returns the aggregated records."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        context = await browser.new_context()
        if cookies:
            await context.add_cookies(cookies)
        page = await context.new_page()
        session = LiveSession(page, config)
        try:
            await open_page(page, url)
            await session.start(keyword, auto_scroll=auto_scroll)
            await asyncio.sleep(duration)
            return session.analyzer.store.records(), session.analyzer.results, session.analyzer.keyword
        finally:
            session.stop()
            await context.close()
            await browser.close()

# dealwatch/highlight.py
"""Highlight sinks: apply a colour token and tooltip to a listing element.

Both sinks no-op when the element is no longer part of its document.
"""
import asyncio
from typing import Optional, Protocol

from bs4 import BeautifulSoup, Tag

from .config import HighlightColors
from .utils import logger

GOOD_DEAL = "good_deal"
OVERPRICED = "overpriced"
POTENTIAL_SCAM = "potential_scam"


class HighlightSink(Protocol):
    def apply(self, element, color_token: str, tooltip: str) -> None: ...

    def reset(self, element) -> None: ...


def border_for(color: str) -> str:
    return color.replace("0.2", "0.8")


class SoupHighlightSink:
    """Writes style/title attributes onto BeautifulSoup tags."""

    def __init__(self, colors: Optional[HighlightColors] = None):
        self.colors = colors or HighlightColors()

    @staticmethod
    def is_live(element) -> bool:
        return isinstance(element, Tag) and any(isinstance(p, BeautifulSoup) for p in element.parents)

    def apply(self, element, color_token, tooltip):
        if not self.is_live(element):
            return
        color = getattr(self.colors, color_token)
        element["style"] = f"background-color: {color}; border: 2px solid {border_for(color)}"
        element["title"] = tooltip

    def reset(self, element):
        if not self.is_live(element):
            return
        for attr in ("style", "title"):
            if attr in element.attrs:
                del element[attr]


KEY_ATTRIBUTE = "data-dealwatch-key"


def _log_script_failure(task):
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Page script failed: %s", task.exception())


def fire_script(page, script, arg):
    """Run a page script without waiting for it; failures are logged, not raised."""
    task = asyncio.ensure_future(page.evaluate(script, arg))
    task.add_done_callback(_log_script_failure)
    return task


_APPLY_JS = """
([key, color, border, tooltip]) => {
  const el = document.querySelector(`[data-dealwatch-key="${key}"]`);
  if (!el || !el.isConnected) return false;
  el.style.backgroundColor = color;
  el.style.border = '2px solid ' + border;
  el.title = tooltip;
  return true;
}
"""

_RESET_JS = """
(key) => {
  const el = document.querySelector(`[data-dealwatch-key="${key}"]`);
  if (!el || !el.isConnected) return false;
  el.style.backgroundColor = '';
  el.style.border = '';
  el.title = '';
  return true;
}
"""


class PageHighlightSink:
    """Fire-and-forget highlighting on a live Playwright page.

    Elements are addressed by the key the page script stamped on them; the
    script itself checks the element is still connected.
    """

    def __init__(self, page, colors: Optional[HighlightColors] = None):
        self.page = page
        self.colors = colors or HighlightColors()

    def _fire(self, script, arg):
        return fire_script(self.page, script, arg)

    def apply(self, element, color_token, tooltip):
        if not element:
            return None
        color = getattr(self.colors, color_token)
        return self._fire(_APPLY_JS, [element, color, border_for(color), tooltip])

    def reset(self, element):
        if not element:
            return None
        return self._fire(_RESET_JS, element)

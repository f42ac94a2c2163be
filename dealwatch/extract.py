# dealwatch/extract.py
"""BeautifulSoup readers for marketplace markup.

`extract_visible` reads the rendered search results into ListingRecord
candidates; `extract_single` reads a listing detail view into a
SingleListingAttributes snapshot. Both skip what they cannot read rather than
guess.
"""
import re
from typing import Callable, List, Optional, Union

from bs4 import BeautifulSoup, Tag

from .records import ListingRecord, SingleListingAttributes
from .utils import logger

COLLECTION_SELECTOR = '[aria-label="Collection of Marketplace items"]'
ITEM_SELECTOR = '[data-virtualized="false"]'
TEXT_SELECTOR = '[dir="auto"]'
ITEM_LINK_SELECTOR = 'a[href*="/item/"]'
VIEWER_SELECTOR = '[aria-label="Marketplace Listing Viewer"]'
MAIN_SELECTOR = '[role="main"]'
INLINE_SELECTOR = '[style="display: inline;"], [style="display:inline"]'

UNAVAILABLE = "unavailable"

PROPERTY_MIN_ELEMENTS = 15
VEHICLE_MIN_ELEMENTS = 8
GENERAL_MIN_ELEMENTS = 3

_ITEM_ID = re.compile(r"/item/([^/?&]+)")
_JOIN_YEAR = re.compile(r"joined \w+ in (\d{4})")
_LISTED = re.compile(r"listed (.+? ago)")


def parse_price(text: str) -> float:
    cleaned = re.sub(r"[^0-9.]", "", text or "")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _get_id(url):
    m = _ITEM_ID.search(url or "")
    return m.group(1) if m else None


def _texts(node: Tag) -> List[str]:
    return [t.get_text(" ", strip=True).lower() for t in node.select(TEXT_SELECTOR)]


def parse_item(node: Tag, handle: Optional[Callable[[Tag], object]] = None) -> Optional[ListingRecord]:
    """One rendered result -> ListingRecord, or None when no price/title is found."""
    contents = [c for c in _texts(node) if c]
    idx = 0
    while idx < len(contents) and (contents[idx] == "just listed" or parse_price(contents[idx]) == 0):
        idx += 1
    if idx >= len(contents):
        return None
    price = parse_price(contents[idx])
    idx += 1
    # discounted listings also show the crossed-out original price
    if idx < len(contents) and parse_price(contents[idx]) > 0 and not re.search(r"[a-z]", contents[idx]):
        idx += 1
    if idx >= len(contents):
        return None
    title = contents[idx]
    secondary = " · ".join(contents[idx + 1:])
    link = node.select_one(ITEM_LINK_SELECTOR)
    return ListingRecord(
        price=price,
        title=title,
        secondary_text=secondary,
        external_id=_get_id(link.get("href")) if link else None,
        element=handle(node) if handle else node,
    )


def extract_visible(document: Union[BeautifulSoup, Tag],
                    handle: Optional[Callable[[Tag], object]] = None) -> Optional[List[ListingRecord]]:
    col = document.select_one(COLLECTION_SELECTOR)
    if col is None:
        return None
    records = []
    for node in col.select(ITEM_SELECTOR):
        record = parse_item(node, handle)
        if record is None:
            logger.debug("Skipping unparseable listing node")
            continue
        records.append(record)
    return records


def _attribute_elements(root: Tag) -> Optional[List[Tag]]:
    """Children of the first block under the inline container with 3+ element children."""
    inline = root.select_one(INLINE_SELECTOR) or root
    queue = [inline]
    while queue:
        node = queue.pop(0)
        children = [c for c in node.children if isinstance(c, Tag)]
        if len(children) >= GENERAL_MIN_ELEMENTS:
            return children
        queue.extend(children)
    return None


def _listing_type(elems: List[Tag], texts: List[str]) -> Optional[str]:
    if len(elems) >= PROPERTY_MIN_ELEMENTS:
        return "property sale" if "home sales" in texts else "property rental"
    if len(elems) >= VEHICLE_MIN_ELEMENTS:
        return "vehicle"
    if len(elems) >= GENERAL_MIN_ELEMENTS:
        return "general"
    return None


def _seller_info(texts: List[str]):
    join_year, highly_rated = None, False
    for text in texts:
        if "highly rated" in text:
            highly_rated = True
        m = _JOIN_YEAR.search(text)
        if m:
            join_year = int(m.group(1))
    return join_year, highly_rated


def _listed_date(root: Tag, texts: List[str]) -> str:
    abbr = root.select_one("abbr[aria-label]")
    if abbr is not None:
        return abbr["aria-label"].lower()
    for text in texts:
        m = _LISTED.search(text)
        if m:
            return m.group(1)
    return ""


def _labelled(texts: List[str], label: str) -> Optional[str]:
    for i, text in enumerate(texts[:-1]):
        if text == label:
            return texts[i + 1]
    return None


def extract_single(document: Union[BeautifulSoup, Tag]) -> Union[SingleListingAttributes, str]:
    root = document.select_one(VIEWER_SELECTOR) or document.select_one(MAIN_SELECTOR)
    if root is None:
        return UNAVAILABLE
    elems = _attribute_elements(root)
    texts = [t for t in _texts(root) if t]
    listing_type = _listing_type(elems or [], texts)
    if listing_type is None:
        logger.info("Unexpected listing structure (%d attribute elements)", len(elems or []))
        return UNAVAILABLE

    distance = None
    for text in texts:
        if "driven " in text:
            distance = text.split("driven ", 1)[1]
            break

    join_year, highly_rated = _seller_info(texts)
    known = {t for t in texts if "driven " in t or "joined " in t or "highly rated" in t}
    description_candidates = [t for t in texts if t not in known]
    description = max(description_candidates, key=len) if description_candidates else ""

    return SingleListingAttributes(
        listing_type=listing_type,
        date=_listed_date(root, texts),
        description=description,
        condition=_labelled(texts, "condition") if listing_type == "general" else None,
        distance_driven=distance,
        seller_join_year=join_year,
        seller_highly_rated=highly_rated,
    )

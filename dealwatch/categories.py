# dealwatch/categories.py
"""Keyword-vote classification of a listing title into a pricing category."""
import re

from .records import Category, normalize_text

VEHICLE_KEYWORDS = {
    "car", "truck", "suv", "sedan", "coupe", "hatchback", "van", "minivan", "pickup",
    "motorcycle", "toyota", "honda", "ford", "chevrolet", "chevy", "nissan", "bmw",
    "audi", "mercedes", "volkswagen", "vw", "hyundai", "kia", "subaru", "mazda",
    "jeep", "dodge", "ram", "tesla", "lexus", "civic", "corolla", "camry", "accord",
    "f-150", "mileage", "awd", "4x4",
}

ELECTRONICS_KEYWORDS = {
    "iphone", "ipad", "macbook", "laptop", "phone", "samsung", "galaxy", "pixel",
    "playstation", "ps4", "ps5", "xbox", "nintendo", "switch", "console", "tv",
    "monitor", "gpu", "rtx", "camera", "airpods", "headphones", "tablet", "pc",
    "computer", "apple watch", "steam deck", "gb", "tb",
}

PROPERTY_KEYWORDS = {
    "apartment", "condo", "house", "home", "bedroom", "bed", "bath", "bathroom",
    "studio", "rent", "rental", "lease", "sublet", "townhouse", "duplex", "room",
    "sqft", "sq ft", "basement", "furnished",
}

_KEYWORD_SETS = (
    (Category.VEHICLE, VEHICLE_KEYWORDS),
    (Category.ELECTRONICS, ELECTRONICS_KEYWORDS),
    (Category.PROPERTY, PROPERTY_KEYWORDS),
)


def _pattern(keywords):
    alternatives = sorted((re.escape(k) for k in keywords), key=len, reverse=True)
    return re.compile(r"(?<![\w-])(?:%s)(?![\w-])" % "|".join(alternatives))


_PATTERNS = [(category, _pattern(keywords)) for category, keywords in _KEYWORD_SETS]


def keyword_votes(title):
    text = normalize_text(title)
    return {category: len(pattern.findall(text)) for category, pattern in _PATTERNS}


def classify(title: str) -> Category:
    """Category with the strictly highest keyword count, `general` on any tie."""
    votes = sorted(keyword_votes(title).items(), key=lambda kv: kv[1], reverse=True)
    (best, best_count), (_, runner_up) = votes[0], votes[1]
    if best_count == 0 or best_count == runner_up:
        return Category.GENERAL
    return best

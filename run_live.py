import os
import json
import asyncio
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

from dealwatch.config import load_config  # noqa: E402
from dealwatch.live import watch  # noqa: E402
from dealwatch.utils import logger  # noqa: E402


def load_cookies(path):
    """Read a Playwright cookie export, if one is configured."""
    if not path or not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as e:
        logger.error("Failed loading cookies: %s", e)
        return None


def save_snapshot(records, keyword, results):
    """Persist the aggregate; only done when DEALWATCH_PERSIST=1."""
    from dealwatch.db import Base, SessionLocal, engine
    from dealwatch.services import persist_listings

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        return persist_listings(db, records, keyword, results)
    finally:
        db.close()


if __name__ == "__main__":
    url = os.getenv("TARGET_URL")
    if not url:
        raise SystemExit("TARGET_URL not set")

    records, results, keyword = asyncio.run(watch(
        url,
        keyword=os.getenv("SEARCH_KEYWORD") or None,
        duration=float(os.getenv("WATCH_SECONDS", "60")),
        headless=os.getenv("HEADLESS", "1") == "1",
        auto_scroll=os.getenv("AUTO_SCROLL", "0") == "1",
        config=load_config(),
        cookies=load_cookies(os.getenv("PLAYWRIGHT_COOKIES_FILE")),
    ))

    print(f"Detected {len(records)} listings for {keyword!r}")
    for record in records:
        analysis = results.get(record.id)
        label = f"{analysis.tier.value} ({analysis.savings_percent:+.0f}%)" if analysis else "unscored"
        print(f"  {record.price:>10.2f}  {label:<28} {record.title}")

    if os.getenv("DEALWATCH_PERSIST", "0") == "1":
        count = save_snapshot(records, keyword, results)
        print(f"Saved {count} listings to the snapshot database")

# tests/test_risk.py
from dataclasses import replace
from unittest.mock import MagicMock
import pytest
from dealwatch.records import Conclusion, SingleListingAttributes
from dealwatch.risk import (
    FLAG_HIGH_MILEAGE, FLAG_NEW_ACCOUNT, FLAG_PRESSURE, FLAG_STALE, FLAG_UNRATED,
    SingleListingRiskProfile, listed_too_long,
)

YEAR = 2024
SCAMMY = "Urgent sale, pay via cash app only"

def attrs(**overrides):
    base = dict(listing_type="general", date="2 days ago", description="Great chair",
                seller_join_year=2010, seller_highly_rated=True)
    base.update(overrides)
    return SingleListingAttributes(**base)

def test_new_unrated_seller_with_payment_red_flags_is_high_risk():
    profile = SingleListingRiskProfile(current_year=YEAR)
    report = profile.ingest_attributes(attrs(description=SCAMMY, seller_join_year=YEAR,
                                             seller_highly_rated=False))
    assert report.score > 0.4
    assert report.score == pytest.approx(0.15 + 0.3 + 0.1 + 0.1)
    assert report.conclusion == Conclusion.HIGH_RISK
    assert report.conclusion.value == "high risk"
    assert FLAG_UNRATED in report.red_flags
    assert FLAG_NEW_ACCOUNT in report.red_flags
    assert report.concerning_keywords == ["urgent", "cash app"]

def test_revealed_negotiable_description_damps_score():
    profile = SingleListingRiskProfile(current_year=YEAR)
    before = profile.ingest_attributes(attrs(description=SCAMMY, seller_join_year=YEAR,
                                             seller_highly_rated=False)).score
    assert profile.on_description_revealed(SCAMMY + ". Price is negotiable.")
    assert profile.score == pytest.approx(before * 0.75)
    assert profile.attributes.description.endswith("negotiable.")

def test_shorter_description_is_ignored():
    profile = SingleListingRiskProfile(current_year=YEAR)
    profile.ingest_attributes(attrs(description=SCAMMY))
    report = profile.report
    assert not profile.on_description_revealed("short")
    assert profile.report is report

def test_reveal_before_any_attributes_is_a_no_op():
    assert not SingleListingRiskProfile().on_description_revealed("anything")

def test_recompute_is_reproducible_from_attributes():
    a = SingleListingRiskProfile(current_year=YEAR)
    b = SingleListingRiskProfile(current_year=YEAR)
    a.ingest_attributes(attrs(description="short"))
    a.on_description_revealed("short, obo, paypal accepted")
    b.ingest_attributes(replace(a.attributes))
    assert a.report == b.report

def test_conclusion_buckets():
    profile = SingleListingRiskProfile(current_year=YEAR)
    assert profile.ingest_attributes(attrs()).conclusion == Conclusion.LIKELY_SAFE
    # unrated (0.15) + joined last year (0.075)
    caution = profile.ingest_attributes(attrs(seller_highly_rated=False, seller_join_year=YEAR - 1))
    assert caution.score == pytest.approx(0.225)
    assert caution.conclusion == Conclusion.CAUTION

def test_best_offer_adds_pressure_flag():
    report = SingleListingRiskProfile(current_year=YEAR).ingest_attributes(
        attrs(description="asking 200 obo"))
    assert report.score == pytest.approx(0.05)
    assert FLAG_PRESSURE in report.red_flags

def test_high_mileage_is_flag_only():
    profile = SingleListingRiskProfile(current_year=YEAR)
    low = profile.ingest_attributes(attrs(listing_type="vehicle", distance_driven="90,000 km"))
    high = profile.ingest_attributes(attrs(listing_type="vehicle", distance_driven="150,000 miles"))
    assert FLAG_HIGH_MILEAGE not in low.red_flags
    assert FLAG_HIGH_MILEAGE in high.red_flags
    assert high.score == low.score

def test_stale_listing_is_flag_only():
    report = SingleListingRiskProfile(current_year=YEAR).ingest_attributes(attrs(date="over a year ago"))
    assert FLAG_STALE in report.red_flags
    assert report.score == 0

@pytest.mark.parametrize("text,expected", [
    ("3 weeks ago", True),
    ("2 weeks ago", False),
    ("over a year ago", True),
    ("listed about a month ago", True),
    ("5 days ago", False),
    ("", False),
])
def test_listed_too_long(text, expected):
    assert listed_too_long(text) is expected

def test_dispose_disconnects_description_source():
    unsubscribe = MagicMock()
    subscribe = MagicMock(return_value=unsubscribe)
    profile = SingleListingRiskProfile(current_year=YEAR)
    profile.ingest_attributes(attrs())
    profile.watch_description(subscribe)
    callback = subscribe.call_args.args[0]
    assert callback("Great chair, barely used") is True
    profile.dispose()
    unsubscribe.assert_called_once()
    assert profile.report is None

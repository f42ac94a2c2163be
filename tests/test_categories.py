# tests/test_categories.py
import pytest
from dealwatch.categories import classify, keyword_votes
from dealwatch.records import Category

@pytest.mark.parametrize("title,expected", [
    ("2015 Honda Civic LX", Category.VEHICLE),
    ("iPhone 13 Pro 128GB", Category.ELECTRONICS),
    ("2 bedroom apartment for rent", Category.PROPERTY),
    ("wooden dining chair", Category.GENERAL),
])
def test_classify(title, expected):
    assert classify(title) == expected

def test_tie_resolves_to_general():
    # one vehicle hit ("car") and one electronics hit ("iphone")
    assert classify("iphone car mount") == Category.GENERAL

def test_no_hits_is_general():
    assert keyword_votes("garden gnome") == {
        Category.VEHICLE: 0, Category.ELECTRONICS: 0, Category.PROPERTY: 0}
    assert classify("garden gnome") == Category.GENERAL

def test_whole_words_only():
    # "carpet" must not count as "car"
    assert classify("red carpet") == Category.GENERAL

def test_deterministic():
    title = "ps5 console with two controllers"
    assert len({classify(title) for _ in range(10)}) == 1

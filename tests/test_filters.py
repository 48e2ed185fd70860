import time
from datetime import UTC, datetime, timedelta

import pytest

from shopfront.templating.filters import (
    attr,
    date,
    field_errors,
    money,
    pluralize,
    qs,
    stars,
    timeago,
    truncate_words,
)


class TestMoney:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1299, "$1,299.00"),
            ("19.9", "$19.90"),
            (None, "$0.00"),
            (-5, "-$5.00"),
            ("abc", ""),
        ],
    )
    def test_formats(self, value, expected: str) -> None:
        assert money(value) == expected

    def test_symbol(self) -> None:
        assert money(3, "€") == "€3.00"


class TestDates:
    def test_stored_timestamp(self) -> None:
        assert date("2026-03-04 10:20:30") == "Mar 04, 2026"
        assert date("2026-03-04") == "Mar 04, 2026"
        assert date("2026-03-04 10:20:30", "%Y/%m/%d %H:%M") == "2026/03/04 10:20"

    def test_unparseable_passes_through(self) -> None:
        assert date("next week") == "next week"
        assert date(None) == ""

    def test_datetime_and_epoch(self) -> None:
        assert date(datetime(2025, 12, 25)) == "Dec 25, 2025"
        assert date(0) == "Jan 01, 1970"

    def test_timeago(self) -> None:
        now = time.time()
        assert timeago(now) == "just now"
        assert timeago(now - 60) == "1 minute ago"
        assert timeago(now - 7200) == "2 hours ago"
        assert timeago(now - 3 * 86400) == "3 days ago"
        assert timeago("") == ""

    def test_timeago_reads_stored_text_as_utc(self) -> None:
        stamp = (datetime.now(UTC) - timedelta(minutes=5)).strftime("%Y-%m-%d %H:%M:%S")
        assert timeago(stamp) in {"4 minutes ago", "5 minutes ago"}


class TestText:
    def test_pluralize(self) -> None:
        assert pluralize(1, "review") == "1 review"
        assert pluralize(2, "review") == "2 reviews"
        assert pluralize(0, "category", "categories") == "0 categories"

    def test_truncate_words(self) -> None:
        assert truncate_words("a b c d", 2) == "a b..."
        assert truncate_words("a  b", 5) == "a b"
        assert truncate_words(None) == ""

    def test_stars(self) -> None:
        assert stars(4) == "★★★★☆"
        assert stars("3.6") == "★★★★☆"
        assert stars(9) == "★★★★★"
        assert stars("n/a") == "☆☆☆☆☆"


class TestURLsAndForms:
    def test_qs(self) -> None:
        expected = "/products?page=2&search=block%20plane"
        assert qs("/products", page=2, search="block plane") == expected
        assert qs("/products", page=0, search="") == "/products"
        assert qs("/products?sort=price", page=3) == "/products?sort=price&page=3"

    def test_field_errors(self) -> None:
        errors = {"email": ["Email is required"]}
        assert field_errors(errors, "email") == ["Email is required"]
        assert field_errors(errors, "password") == []
        assert field_errors(None, "email") == []

    def test_attr(self) -> None:
        assert attr(False, "checked") == ""
        assert str(attr("a\"b", "value")) == ' value="a&quot;b"'

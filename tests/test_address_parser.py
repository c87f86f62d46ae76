"""Tests for free-text address parsing."""

import pytest

from dissonant.core.exceptions import AddressParseError
from dissonant.services.address_parser import parse_address


class TestParseAddress:
    """Tests for parse_address()."""

    def test_newline_format(self) -> None:
        """Name, street and "City, ST ZIP" lines are split into fields."""
        address = parse_address("Jane Doe\n123 Vinyl Ave\nAustin, TX 78701")

        assert address.name == "Jane Doe"
        assert address.street1 == "123 Vinyl Ave"
        assert address.city == "Austin"
        assert address.state == "TX"
        assert address.zip == "78701"
        assert address.country == "US"

    def test_blank_lines_ignored(self) -> None:
        """Empty lines between parts are skipped."""
        address = parse_address("\nJane Doe\n\n123 Vinyl Ave\nAustin, TX 78701-1234\n")

        assert address.street1 == "123 Vinyl Ave"
        assert address.zip == "78701-1234"

    def test_comma_format(self) -> None:
        """A single comma-separated line is accepted."""
        address = parse_address("Jane Doe, 123 Vinyl Ave, Austin, TX 78701")

        assert address.name == "Jane Doe"
        assert address.city == "Austin"
        assert address.state == "TX"

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "   ",
            "Jane Doe\n123 Vinyl Ave",
            "Jane Doe\n123 Vinyl Ave\nAustin TX 78701",
            "Jane Doe\n123 Vinyl Ave\nAustin, TX",
            "Jane Doe, 123 Vinyl Ave, Austin",
        ],
    )
    def test_missing_parts(self, value: str) -> None:
        """Incomplete addresses raise AddressParseError."""
        with pytest.raises(AddressParseError):
            parse_address(value)

    def test_non_string(self) -> None:
        """Non-string input is rejected."""
        with pytest.raises(AddressParseError):
            parse_address(None)  # type: ignore[arg-type]

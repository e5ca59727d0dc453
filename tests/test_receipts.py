"""
Tests for receipt number generation.
"""

import pytest

from donation_portal.utils.receipts import (
    generate_receipt_number,
    is_receipt_number,
    to_base36,
)


class TestBase36:
    @pytest.mark.parametrize(
        "number,expected", [(0, "0"), (35, "Z"), (36, "10"), (1295, "ZZ")]
    )
    def test_encoding(self, number, expected):
        assert to_base36(number) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestReceiptNumbers:
    """Test receipt number format."""

    def test_format(self):
        receipt = generate_receipt_number(1700000000000)

        prefix, stamp, suffix = receipt.split("-")
        assert prefix == "RCP"
        assert int(stamp, 36) == 1700000000000
        assert len(suffix) == 4
        assert is_receipt_number(receipt)

    def test_current_time_used_by_default(self):
        assert is_receipt_number(generate_receipt_number())

    def test_sortable_by_time(self):
        earlier = generate_receipt_number(1700000000000).split("-")[1]
        later = generate_receipt_number(1700000000001).split("-")[1]
        assert earlier < later

    @pytest.mark.parametrize(
        "value", ["RCP-abc-1234", "RCP-LQ2K3J-AB1", "REC-LQ2K3J-AB12", ""]
    )
    def test_invalid_numbers(self, value):
        assert not is_receipt_number(value)

"""
Input Validation Tests

Run: python -m pytest tests/test_validation.py -v
"""

from decimal import Decimal

import pytest

from moveflow.infrastructure.errors import ValidationError
from moveflow.security.validation import (
    DepositRequest,
    WithdrawRequest,
    parse_amount,
    parse_shares,
    validate_movement_address,
)


class TestAddress:

    def test_normalizes_case(self):
        assert validate_movement_address("  0xABcd  ") == "0xabcd"

    def test_full_length(self):
        address = "0x" + "f" * 64
        assert validate_movement_address(address) == address

    @pytest.mark.parametrize("address", ["", "abcd", "0x", "0x" + "a" * 65, "0xzz", None])
    def test_rejects(self, address):
        with pytest.raises(ValidationError):
            validate_movement_address(address)


class TestAmount:

    @pytest.mark.parametrize("text,expected", [
        ("10", Decimal(10)),
        ("1.23456789", Decimal("1.23456789")),
        (" 1,000.5 ", Decimal("1000.5")),
        (2, Decimal(2)),
    ])
    def test_valid(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "0", "-5", "NaN", "Infinity", "1e"])
    def test_invalid(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_amount(text)
        assert exc.value.message == "Please enter a valid amount"

    def test_long_input_accepted_when_above_one_octa(self):
        assert parse_amount("0.99999999999999999999999999999") == Decimal("0.99999999999999999999999999999")

    @pytest.mark.parametrize("text", ["0.000000001", "1e-9", "0.000000009"])
    def test_below_one_octa(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_amount(text)
        assert "smallest unit" in exc.value.message

    def test_one_octa_accepted(self):
        assert parse_amount("0.00000001") == Decimal("0.00000001")

    @pytest.mark.parametrize("text", ["1e20", "184467440737.09551616", "1e999999"])
    def test_above_u64_octas(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_amount(text)
        assert exc.value.message == "Amount is too large"

    def test_u64_max_octas_accepted(self):
        assert parse_amount("184467440737.09551615") == Decimal("184467440737.09551615")


class TestShares:

    def test_valid(self):
        assert parse_shares("1,500") == 1500

    def test_leading_zeros(self):
        assert parse_shares("007") == 7

    def test_u64_max_accepted(self):
        assert parse_shares(str(2 ** 64 - 1)) == 2 ** 64 - 1

    @pytest.mark.parametrize("text", [str(2 ** 64), "9" * 5000])
    def test_above_u64(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_shares(text)
        assert exc.value.message == "Share amount is too large"

    @pytest.mark.parametrize("text", ["\u00b2", "\u0661\u0662", "\uff11"])
    def test_non_ascii_digits(self, text):
        with pytest.raises(ValidationError) as exc:
            parse_shares(text)
        assert exc.value.message == "Please enter a whole, positive number of shares"

    @pytest.mark.parametrize("text", ["0", "-1", "1.5", "ten", ""])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            parse_shares(text)


class TestRequestModels:

    def test_deposit_accepts_number(self):
        assert DepositRequest(amount=2.5).parsed_amount() == Decimal("2.5")

    def test_withdraw_accepts_int(self):
        assert WithdrawRequest(shares=10).parsed_shares() == 10

    def test_deposit_rejects_bad_amount_on_parse(self):
        request = DepositRequest(amount="abc")
        with pytest.raises(ValidationError):
            request.parsed_amount()

"""Tests for display formatting helpers."""

import pytest

from blockpool_client.core.formatting import format_address, format_amount, format_sei, format_usei


def test_format_address():
    assert format_address("sei1qyqszqgpqyqszqgpqyqszqgpqyqszqgp52euf0") == "sei1qy...52euf0"
    assert format_address("0x1234", keep=4) == "0x1234"
    assert format_address("") == "Unknown"
    assert format_address(None) == "Unknown"


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        ("2500000", "2.50M"),
        (1500, "1.50K"),
        ("12.346", "12.35"),
        ("0.5", "0.5000"),
        ("0.001", "0.001000"),
        ("not a number", "0"),
        ("NaN", "0"),
    ],
)
def test_format_amount(amount, expected):
    assert format_amount(amount) == expected


def test_format_sei():
    assert format_sei("1500") == "1.50K SEI"


def test_format_usei():
    assert format_usei("1500000") == "1.500000 SEI"
    assert format_usei(250) == "0.000250 SEI"
    assert format_usei("42", "uatom") == "42 uatom"
    assert format_usei("oops") == "oops usei"

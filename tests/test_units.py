import pytest

from dive.units import format_bytes, format_comma, parse_bytes


@pytest.mark.parametrize("size", range(10))
def test_format_small_sizes_are_plain_bytes(size):
    assert format_bytes(size) == f"{size} B"


def test_format_bytes_pinned_values():
    assert format_bytes(1000) == "1.0 kB"
    assert format_bytes(50_000) == "50 kB"


def test_format_bytes_negative_raises():
    with pytest.raises(ValueError):
        format_bytes(-1)


@pytest.mark.parametrize("size", [1000, 50_000, 2_000_000, 7_000_000_000])
def test_format_then_parse_round_trip(size):
    assert parse_bytes(format_bytes(size)) == size


def test_parse_bytes_pinned_value():
    assert parse_bytes("50kB") == 50_000


def test_parse_plain_bytes():
    assert parse_bytes("1B") == 1
    assert parse_bytes("42") == 42


def test_parse_is_case_and_space_insensitive():
    assert parse_bytes("20MB") == parse_bytes("20mb") == parse_bytes("20 MB")


def test_parse_binary_units_scale_linearly():
    assert parse_bytes("2KiB") == 2 * parse_bytes("1KiB")
    assert parse_bytes("1KiB") > parse_bytes("1kB")
    assert parse_bytes("1MiB") == parse_bytes("1KiB") * parse_bytes("1KiB")


def test_parse_ignores_commas():
    assert parse_bytes("1,000 B") == parse_bytes("1000 B")


def test_parse_fraction():
    assert parse_bytes("1.5kB") * 2 == parse_bytes("3kB")


@pytest.mark.parametrize("text", ["not_a_size", "", "5 zb", "kB", "1.2.3 kB"])
def test_parse_invalid_raises(text):
    with pytest.raises(ValueError):
        parse_bytes(text)


def test_parse_too_large_raises():
    with pytest.raises(ValueError):
        parse_bytes("100000EB")


def test_format_comma_preserves_digits():
    assert format_comma(1234567).replace(",", "") == "1234567"
    assert format_comma(999) == "999"


def test_format_comma_groups_of_three():
    groups = format_comma(9876543210).split(",")
    assert all(len(group) == 3 for group in groups[1:])
    assert 1 <= len(groups[0]) <= 3


def test_format_comma_negative():
    text = format_comma(-1234)
    assert text.startswith("-")
    assert text[1:].replace(",", "") == "1234"
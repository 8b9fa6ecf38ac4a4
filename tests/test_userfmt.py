import pytest

from xvfs.userfmt import sprintf


@pytest.mark.parametrize("value", [0, 7, -5, 123456, -2147483647])
def test_decimal_matches_python(value):
    assert sprintf("%d", value) == str(value)


@pytest.mark.parametrize(
    "value, expected", [(255, "FF"), (0, "0"), (-1, "FFFFFFFF")]
)
def test_hex_is_upper_case_unsigned(value, expected):
    assert sprintf("%x", value) == expected
    assert sprintf("%p", value) == expected


def test_hex_round_trips():
    for value in (1, 4096, 0xDEAD, 0x7FFFFFFF):
        assert int(sprintf("%x", value), 16) == value


def test_decimal_wraps_to_32_bits():
    assert sprintf("%d", 2**32 + 9) == sprintf("%d", 9)


def test_string_and_null_string():
    assert sprintf("[%s]", "hi") == "[hi]"
    assert sprintf("%s", None) == "(null)"
    assert sprintf("%s", b"raw") == "raw"


def test_char_conversion():
    assert sprintf("%c", ord("Z")) == "Z"
    assert sprintf("%c%c", "o", "k") == "ok"


def test_percent_and_unknown_conversion():
    assert sprintf("100%%") == "100%"
    assert sprintf("%q") == "%q"


def test_trailing_percent_is_dropped():
    assert sprintf("abc%") == "abc"


def test_mixed_conversions():
    assert sprintf("%s=%d\n", "x", 3) == "x=3\n"


def test_missing_argument():
    with pytest.raises(TypeError):
        sprintf("%d and %d", 1)
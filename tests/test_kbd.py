import pytest

from xvfs.kbd import CAPSLOCK, KEY_UP, SHIFT, Keyboard

HI = [0x23, 0x17]


def test_plain_letters():
    assert Keyboard().decode(HI) == b"hi"


def test_shift_uppercases():
    plain = Keyboard().decode(HI)
    shifted = Keyboard().decode([0x2A, *HI, 0xAA])
    assert shifted == plain.upper()


def test_shift_release_restores_lower_case():
    result = Keyboard().decode([0x2A, 0x1E, 0xAA, 0x1E])
    assert len(result) == 2
    assert result[:1].isupper()
    assert result[:1].lower() == result[1:]


def test_capslock_toggles_case():
    plain = Keyboard().decode(HI)
    kb = Keyboard()
    assert kb.decode([0x3A, 0xBA, *HI]) == plain.upper()
    assert kb.shift & CAPSLOCK
    # Shift with caps lock gives lower case again.
    assert kb.decode([0x2A, *HI, 0xAA]) == plain
    # A second press turns caps lock off.
    assert kb.decode([0x3A, 0xBA, *HI]) == plain
    assert not kb.shift & CAPSLOCK


def test_control_letter():
    assert Keyboard().decode([0x1D, 0x19, 0x9D]) == b"\x10"


def test_e0_escape_gives_arrow_key():
    assert Keyboard().decode([0xE0, 0x48]) == bytes([KEY_UP])


def test_modifier_press_and_release_yield_nothing():
    kb = Keyboard()
    assert kb.getc(0x2A) == 0
    assert kb.shift & SHIFT
    assert kb.getc(0xAA) == 0
    assert kb.shift == 0


def test_escaped_release_clears_escape():
    kb = Keyboard()
    assert kb.getc(0xE0) == 0
    assert kb.getc(0xC8) == 0
    assert kb.shift == 0
    assert kb.getc(0x1E) == Keyboard().getc(0x1E)


def test_keypad_enter():
    assert Keyboard().decode([0xE0, 0x1C]) == b"\n"


def test_unknown_code_yields_nothing():
    assert Keyboard().decode([0x3B]) == b""


@pytest.mark.parametrize("code", [-1, 256])
def test_out_of_range_scan_code(code):
    with pytest.raises(ValueError):
        Keyboard().getc(code)
import pytest

from faux86.keymap import modifier_to_xt, usb_to_xt


def test_letter_a():
    assert usb_to_xt(0x04) == 0x1E


def test_escape():
    assert usb_to_xt(0x29) == 0x01


def test_left_ctrl_modifier():
    assert modifier_to_xt(0) == 0x1D


@pytest.mark.parametrize("bit", range(8))
def test_modifier_bits_match_modifier_usages(bit):
    assert modifier_to_xt(bit) == usb_to_xt(0xE0 + bit)


def test_unknown_modifier_bit_has_no_code():
    assert modifier_to_xt(8) == 0


def test_digits_are_consecutive():
    first = usb_to_xt(0x1E)
    assert [usb_to_xt(0x1E + i) for i in range(10)] == [first + i for i in range(10)]


@pytest.mark.parametrize("usage", [0x00, 0x01, 0x32, 0x48, 0x66, 0xFF])
def test_unmapped_usages(usage):
    assert usb_to_xt(usage) == 0


def test_all_codes_fit_sixteen_bits():
    codes = [usb_to_xt(u) for u in range(256)]
    assert all(0 <= c <= 0xFFFF for c in codes)
    extended = [c for c in codes if c > 0xFF]
    assert extended and all(c >> 8 == 0xE0 for c in extended)


def test_letters_are_distinct():
    letters = [usb_to_xt(u) for u in range(0x04, 0x1E)]
    assert len(set(letters)) == len(letters)
    assert 0 not in letters


@pytest.mark.parametrize("usage", [-1, 256])
def test_usage_out_of_range(usage):
    with pytest.raises(ValueError):
        usb_to_xt(usage)


@pytest.mark.parametrize("bit", [-1, 9])
def test_modifier_out_of_range(bit):
    with pytest.raises(ValueError):
        modifier_to_xt(bit)
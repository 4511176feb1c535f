import pytest

from faux86.registers import (
    AH, AL, AX, BH, BL, BP, BX, BYTE_REG_ORDER, CH, CL, CX, DH, DI, DL, DX,
    SI, SP, Registers,
)


def test_new_registers_are_zero():
    regs = Registers()
    assert [regs.get16(i) for i in range(8)] == [0] * 8


@pytest.mark.parametrize(
    "word, low, high", [(AX, AL, AH), (CX, CL, CH), (DX, DL, DH), (BX, BL, BH)]
)
def test_word_splits_into_bytes(word, low, high):
    regs = Registers()
    regs.set16(word, 0xA1B2)
    assert regs.get8(low) == 0xB2
    assert regs.get8(high) == 0xA1


def test_bytes_combine_into_word():
    regs = Registers()
    regs.set8(AL, 0x34)
    regs.set8(AH, 0x12)
    assert regs.get16(AX) == 0x1234


def test_values_are_truncated():
    regs = Registers()
    regs.set16(BX, 0x12345)
    assert regs.get16(BX) == 0x12345 & 0xFFFF
    regs.set8(CL, 0x1FF)
    assert regs.get8(CL) == 0x1FF & 0xFF
    regs.set16(SI, -1)
    assert regs.get16(SI) == 0xFFFF


def test_pointer_registers_do_not_alias_bytes():
    regs = Registers()
    for index in (SP, BP, SI, DI):
        regs.set16(index, 0xFFFF)
    assert [regs.get8(i) for i in range(8)] == [0] * 8
    assert [regs.get16(i) for i in (SP, BP, SI, DI)] == [0xFFFF] * 4


def test_byte_register_order_follows_encoding():
    regs = Registers()
    regs.set16(CX, 0xABCD)
    assert regs.get8(BYTE_REG_ORDER[1]) == 0xCD
    assert regs.get8(BYTE_REG_ORDER[5]) == 0xAB
    assert sorted(BYTE_REG_ORDER) == list(range(8))


def test_word_registers_are_independent():
    regs = Registers()
    for i in range(8):
        regs.set16(i, i * 0x1111)
    assert [regs.get16(i) for i in range(8)] == [i * 0x1111 for i in range(8)]


@pytest.mark.parametrize("index", [-1, 8])
def test_index_out_of_range(index):
    regs = Registers()
    with pytest.raises(IndexError):
        regs.get8(index)
    with pytest.raises(IndexError):
        regs.set16(index, 0)
    with pytest.raises(IndexError):
        regs.get16(index)
    with pytest.raises(IndexError):
        regs.set8(index, 0)
"""General-purpose register file of the 8086 family."""

from enum import IntEnum

# Byte register indices into the register file.
AL, AH, CL, CH, DL, DH, BL, BH = range(8)
# Word register indices.
AX, CX, DX, BX, SP, BP, SI, DI = range(8)
# Segment register indices.
ES, CS, SS, DS = range(4)

# Byte register selected by a 3-bit register field of an instruction.
BYTE_REG_ORDER = (AL, CL, DL, BL, AH, CH, DH, BH)


class CpuType(IntEnum):
    """Processor model being emulated."""

    I8086 = 0
    V20 = 1
    I286 = 2
    I386 = 3


class Registers:
    """Eight 16-bit registers whose first four also read as eight bytes."""

    __slots__ = ("_data",)

    def __init__(self):
        self._data = bytearray(16)

    def get8(self, index):
        if not 0 <= index < 8:
            raise IndexError(f"byte register index out of range: {index}")
        return self._data[index]

    def set8(self, index, value):
        if not 0 <= index < 8:
            raise IndexError(f"byte register index out of range: {index}")
        self._data[index] = value & 0xFF

    def get16(self, index):
        if not 0 <= index < 8:
            raise IndexError(f"word register index out of range: {index}")
        offset = index * 2
        return int.from_bytes(self._data[offset:offset + 2], "little")

    def set16(self, index, value):
        if not 0 <= index < 8:
            raise IndexError(f"word register index out of range: {index}")
        offset = index * 2
        self._data[offset:offset + 2] = (value & 0xFFFF).to_bytes(2, "little")

    def __repr__(self):
        names = ("ax", "cx", "dx", "bx", "sp", "bp", "si", "di")
        body = " ".join(f"{n}={self.get16(i):04X}" for i, n in enumerate(names))
        return f"Registers({body})"
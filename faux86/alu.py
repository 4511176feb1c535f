"""Flag register and arithmetic/logic helpers of the 8086 family."""

from dataclasses import dataclass

_FLAG_BITS = (
    ("cf", 0),
    ("pf", 2),
    ("af", 4),
    ("zf", 6),
    ("sf", 7),
    ("tf", 8),
    ("ifl", 9),
    ("df", 10),
    ("of", 11),
)

# Bit 1 of the flags word always reads as set.
_ALWAYS_SET = 0x0002


class DivideError(ArithmeticError):
    """Raised when a division traps: zero divisor or a quotient that does not fit."""


def parity(value):
    """Return 1 when the low byte of ``value`` has an even number of set bits."""
    return 0 if bin(value & 0xFF).count("1") & 1 else 1


@dataclass
class Flags:
    """The status and control flags, each held as 0 or 1."""

    cf: int = 0
    pf: int = 0
    af: int = 0
    zf: int = 0
    sf: int = 0
    tf: int = 0
    ifl: int = 0
    df: int = 0
    of: int = 0

    def to_word(self):
        """Pack the flags into a 16-bit flags word."""
        word = _ALWAYS_SET
        for name, bit in _FLAG_BITS:
            word |= (getattr(self, name) & 1) << bit
        return word

    def load_word(self, word):
        """Unpack a 16-bit flags word into the individual flags."""
        for name, bit in _FLAG_BITS:
            setattr(self, name, (word >> bit) & 1)

    def set_szp8(self, value):
        value &= 0xFF
        self.zf = int(value == 0)
        self.sf = int(bool(value & 0x80))
        self.pf = parity(value)

    def set_szp16(self, value):
        value &= 0xFFFF
        self.zf = int(value == 0)
        self.sf = int(bool(value & 0x8000))
        self.pf = parity(value)

    def set_logic8(self, value):
        """Flags after a bitwise operation on a byte: carry and overflow cleared."""
        self.set_szp8(value)
        self.cf = 0
        self.of = 0

    def set_logic16(self, value):
        """Flags after a bitwise operation on a word: carry and overflow cleared."""
        self.set_szp16(value)
        self.cf = 0
        self.of = 0

    def add8(self, v1, v2, carry=0):
        """Add two bytes plus carry, set the flags and return the byte result."""
        v1 &= 0xFF
        v2 &= 0xFF
        dst = (v1 + v2 + (carry & 0xFF)) & 0xFFFF
        self.set_szp8(dst)
        self.of = int(((dst ^ v1) & (dst ^ v2) & 0x80) == 0x80)
        self.cf = int(bool(dst & 0xFF00))
        self.af = int(((v1 ^ v2 ^ dst) & 0x10) == 0x10)
        return dst & 0xFF

    def add16(self, v1, v2, carry=0):
        """Add two words plus carry, set the flags and return the word result."""
        v1 &= 0xFFFF
        v2 &= 0xFFFF
        dst = (v1 + v2 + (carry & 0xFFFF)) & 0xFFFFFFFF
        self.set_szp16(dst)
        self.of = int(((dst ^ v1) & (dst ^ v2) & 0x8000) == 0x8000)
        self.cf = int(bool(dst & 0xFFFF0000))
        self.af = int(((v1 ^ v2 ^ dst) & 0x10) == 0x10)
        return dst & 0xFFFF

    def sub8(self, v1, v2, borrow=0):
        """Subtract a byte and borrow from a byte, set the flags and return the result."""
        v1 &= 0xFF
        v2 = (v2 + borrow) & 0xFF
        dst = (v1 - v2) & 0xFFFF
        self.set_szp8(dst)
        self.cf = int(bool(dst & 0xFF00))
        self.of = int(bool((dst ^ v1) & (v1 ^ v2) & 0x80))
        self.af = int(bool((v1 ^ v2 ^ dst) & 0x10))
        return dst & 0xFF

    def sub16(self, v1, v2, borrow=0):
        """Subtract a word and borrow from a word, set the flags and return the result."""
        v1 &= 0xFFFF
        v2 = (v2 + borrow) & 0xFFFF
        dst = (v1 - v2) & 0xFFFFFFFF
        self.set_szp16(dst)
        self.cf = int(bool(dst & 0xFFFF0000))
        self.of = int(bool((dst ^ v1) & (v1 ^ v2) & 0x8000))
        self.af = int(bool((v1 ^ v2 ^ dst) & 0x10))
        return dst & 0xFFFF


def _shift_rotate(flags, op, value, count, limit_count, bits):
    top = bits - 1
    msb_mask = 1 << top
    mask = (1 << bits) - 1
    wide = 0xFFFF if bits == 8 else 0xFFFFFFFF
    count &= 0xFF
    if limit_count:
        count &= 0x1F
    s = value & mask

    if op == 0:  # ROL
        for _ in range(count):
            flags.cf = int(bool(s & msb_mask))
            s = ((s << 1) | flags.cf) & wide
        if bits == 8:
            flags.of = int(count == 1 and bool(s & 0x80) and bool(flags.cf))
        elif count == 1:
            flags.of = flags.cf ^ ((s >> top) & 1)
    elif op == 1:  # ROR
        for _ in range(count):
            flags.cf = s & 1
            s = (s >> 1) | (flags.cf << top)
        if count == 1:
            flags.of = ((s >> top) ^ (s >> (top - 1))) & 1
    elif op == 2:  # RCL
        for _ in range(count):
            old_cf = flags.cf
            flags.cf = int(bool(s & msb_mask))
            s = ((s << 1) | old_cf) & wide
        if count == 1:
            flags.of = flags.cf ^ ((s >> top) & 1)
    elif op == 3:  # RCR
        for _ in range(count):
            old_cf = flags.cf
            flags.cf = s & 1
            s = (s >> 1) | (old_cf << top)
        if count == 1:
            flags.of = ((s >> top) ^ (s >> (top - 1))) & 1
    elif op in (4, 6):  # SHL / SAL
        for _ in range(count):
            flags.cf = int(bool(s & msb_mask))
            s = (s << 1) & mask
        flags.of = 0 if count == 1 and flags.cf == (s >> top) else 1
        _set_szp(flags, s, bits)
    elif op == 5:  # SHR
        flags.of = int(count == 1 and bool(s & msb_mask))
        for _ in range(count):
            flags.cf = s & 1
            s >>= 1
        _set_szp(flags, s, bits)
    elif op == 7:  # SAR
        for _ in range(count):
            msb = s & msb_mask
            flags.cf = s & 1
            s = (s >> 1) | msb
        flags.of = 0
        _set_szp(flags, s, bits)
    else:
        raise ValueError(f"shift/rotate operation out of range: {op}")

    return s & mask


def _set_szp(flags, value, bits):
    if bits == 8:
        flags.set_szp8(value)
    else:
        flags.set_szp16(value)


def shift_rotate8(flags, op, value, count, limit_count=True):
    """Apply group-2 operation ``op`` (0..7) to a byte ``count`` times; return the result.

    With ``limit_count`` the count is reduced modulo 32, as on processors after the 8086.
    """
    return _shift_rotate(flags, op, value, count, limit_count, 8)


def shift_rotate16(flags, op, value, count, limit_count=True):
    """Apply group-2 operation ``op`` (0..7) to a word ``count`` times; return the result."""
    return _shift_rotate(flags, op, value, count, limit_count, 16)


def divide8(dividend, divisor):
    """Unsigned 16-by-8 division; return (quotient, remainder)."""
    dividend &= 0xFFFF
    divisor &= 0xFF
    if divisor == 0:
        raise DivideError("division by zero")
    quotient, remainder = divmod(dividend, divisor)
    if quotient > 0xFF:
        raise DivideError("quotient does not fit in a byte")
    return quotient, remainder


def idivide8(dividend, divisor):
    """Signed 16-by-8 division; return (quotient, remainder) as bytes.

    The divisor byte is taken without sign extension and the remainder takes the
    sign of the quotient.
    """
    s1 = dividend & 0xFFFF
    s2 = divisor & 0xFF
    if s2 == 0:
        raise DivideError("division by zero")
    negative = bool((s1 ^ s2) & 0x8000)
    if s1 >= 0x8000:
        s1 = (-s1) & 0xFFFF
    quotient, remainder = divmod(s1, s2)
    if quotient & 0xFF00:
        raise DivideError("quotient does not fit in a byte")
    if negative:
        quotient = (-quotient) & 0xFF
        remainder = (-remainder) & 0xFF
    return quotient, remainder & 0xFF


def divide16(dividend, divisor):
    """Unsigned 32-by-16 division; return (quotient, remainder)."""
    dividend &= 0xFFFFFFFF
    divisor &= 0xFFFF
    if divisor == 0:
        raise DivideError("division by zero")
    quotient, remainder = divmod(dividend, divisor)
    if quotient > 0xFFFF:
        raise DivideError("quotient does not fit in a word")
    return quotient, remainder


def idivide16(dividend, divisor):
    """Signed 32-by-16 division; return (quotient, remainder) as words.

    The remainder takes the sign of the quotient.
    """
    s1 = dividend & 0xFFFFFFFF
    s2 = divisor & 0xFFFF
    if s2 == 0:
        raise DivideError("division by zero")
    if s2 & 0x8000:
        s2 |= 0xFFFF0000
    negative = bool((s1 ^ s2) & 0x80000000)
    if s1 >= 0x80000000:
        s1 = (-s1) & 0xFFFFFFFF
    if s2 >= 0x80000000:
        s2 = (-s2) & 0xFFFFFFFF
    quotient, remainder = divmod(s1, s2)
    if quotient & 0xFFFF0000:
        raise DivideError("quotient does not fit in a word")
    if negative:
        quotient = (-quotient) & 0xFFFF
        remainder = (-remainder) & 0xFFFF
    return quotient, remainder & 0xFFFF
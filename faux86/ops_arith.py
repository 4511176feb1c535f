"""Handlers for the arithmetic, logic, shift, multiply/divide and BCD instructions."""

from .alu import (
    DivideError,
    divide8,
    divide16,
    idivide8,
    idivide16,
    shift_rotate8,
    shift_rotate16,
)
from .registers import AH, AL, AX, BYTE_REG_ORDER, CL, DX, CpuType

# Group-1 / ALU operation numbers, in instruction-encoding order.
_ADD, _OR, _ADC, _SBB, _AND, _SUB, _XOR, _CMP = range(8)


def _sign_extend8(value):
    value &= 0xFF
    return value | 0xFF00 if value & 0x80 else value


def _signed8(value):
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def _signed16(value):
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _get8(cpu, field):
    return cpu.regs.get8(BYTE_REG_ORDER[field])


def _set8(cpu, field, value):
    cpu.regs.set8(BYTE_REG_ORDER[field], value)


def _logic8(flags, value):
    value &= 0xFF
    flags.set_logic8(value)
    return value


def _logic16(flags, value):
    value &= 0xFFFF
    flags.set_logic16(value)
    return value


_OPS8 = (
    lambda f, a, b: f.add8(a, b),
    lambda f, a, b: _logic8(f, a | b),
    lambda f, a, b: f.add8(a, b, f.cf),
    lambda f, a, b: f.sub8(a, b, f.cf),
    lambda f, a, b: _logic8(f, a & b),
    lambda f, a, b: f.sub8(a, b),
    lambda f, a, b: _logic8(f, a ^ b),
    lambda f, a, b: f.sub8(a, b),
)

_OPS16 = (
    lambda f, a, b: f.add16(a, b),
    lambda f, a, b: _logic16(f, a | b),
    lambda f, a, b: f.add16(a, b, f.cf),
    lambda f, a, b: f.sub16(a, b, f.cf),
    lambda f, a, b: _logic16(f, a & b),
    lambda f, a, b: f.sub16(a, b),
    lambda f, a, b: _logic16(f, a ^ b),
    lambda f, a, b: f.sub16(a, b),
)


def _alu_family(op):
    """The six encodings of one ALU operation, keyed by opcode."""
    op8 = _OPS8[op]
    op16 = _OPS16[op]
    writes = op != _CMP

    def eb_gb(cpu):
        cpu.decode_modrm()
        result = op8(cpu.flags, cpu.read_rm8(cpu.rm), _get8(cpu, cpu.reg))
        if writes:
            cpu.write_rm8(cpu.rm, result)

    def ev_gv(cpu):
        cpu.decode_modrm()
        result = op16(cpu.flags, cpu.read_rm16(cpu.rm), cpu.regs.get16(cpu.reg))
        if writes:
            cpu.write_rm16(cpu.rm, result)

    def gb_eb(cpu):
        cpu.decode_modrm()
        result = op8(cpu.flags, _get8(cpu, cpu.reg), cpu.read_rm8(cpu.rm))
        if writes:
            _set8(cpu, cpu.reg, result)

    def gv_ev(cpu):
        cpu.decode_modrm()
        a = cpu.regs.get16(cpu.reg)
        b = cpu.read_rm16(cpu.rm)
        result = op16(cpu.flags, a, b)
        if op == _OR and a == 0xF802 and b == 0xF802:
            # Makes Wolfenstein 3D take the machine for a 286.
            cpu.flags.sf = 0
        if writes:
            cpu.regs.set16(cpu.reg, result)

    def al_ib(cpu):
        result = op8(cpu.flags, cpu.regs.get8(AL), cpu.fetch8())
        if writes:
            cpu.regs.set8(AL, result)

    def ax_iv(cpu):
        result = op16(cpu.flags, cpu.regs.get16(AX), cpu.fetch16())
        if writes:
            cpu.regs.set16(AX, result)

    base = op * 8
    forms = (eb_gb, ev_gv, gb_eb, gv_ev, al_ib, ax_iv)
    return {base + offset: handler for offset, handler in enumerate(forms)}


def _inc_dec(index, decrement):
    def handler(cpu):
        flags = cpu.flags
        carry = flags.cf
        value = cpu.regs.get16(index)
        result = flags.sub16(value, 1) if decrement else flags.add16(value, 1)
        flags.cf = carry
        cpu.regs.set16(index, result)

    return handler


def _grp1_8(cpu):
    cpu.decode_modrm()
    a = cpu.read_rm8(cpu.rm)
    b = cpu.fetch8()
    result = _OPS8[cpu.reg](cpu.flags, a, b)
    if cpu.reg != _CMP:
        cpu.write_rm8(cpu.rm, result)


def _grp1_16(byte_immediate):
    def handler(cpu):
        cpu.decode_modrm()
        a = cpu.read_rm16(cpu.rm)
        b = _sign_extend8(cpu.fetch8()) if byte_immediate else cpu.fetch16()
        result = _OPS16[cpu.reg](cpu.flags, a, b)
        if cpu.reg != _CMP:
            cpu.write_rm16(cpu.rm, result)

    return handler


def _test_gb_eb(cpu):
    cpu.decode_modrm()
    cpu.flags.set_logic8(_get8(cpu, cpu.reg) & cpu.read_rm8(cpu.rm))


def _test_gv_ev(cpu):
    cpu.decode_modrm()
    cpu.flags.set_logic16(cpu.regs.get16(cpu.reg) & cpu.read_rm16(cpu.rm))


def _test_al_ib(cpu):
    cpu.flags.set_logic8(cpu.regs.get8(AL) & cpu.fetch8())


def _test_ax_iv(cpu):
    cpu.flags.set_logic16(cpu.regs.get16(AX) & cpu.fetch16())


def _daa(cpu):
    regs, flags = cpu.regs, cpu.flags
    al = regs.get8(AL)
    if (al & 0xF) > 9 or flags.af == 1:
        wide = al + 6
        al = wide & 0xFF
        flags.cf = int(bool(wide & 0xFF00))
        flags.af = 1
    if al > 0x9F or flags.cf == 1:
        al = (al + 0x60) & 0xFF
        flags.cf = 1
    regs.set8(AL, al)
    flags.set_szp8(al)


def _das(cpu):
    regs, flags = cpu.regs, cpu.flags
    al = regs.get8(AL)
    if (al & 0xF) > 9 or flags.af == 1:
        wide = (al - 6) & 0xFFFF
        al = wide & 0xFF
        flags.cf = int(bool(wide & 0xFF00))
        flags.af = 1
    else:
        flags.af = 0
    if (al & 0xF0) > 0x90 or flags.cf == 1:
        al = (al - 0x60) & 0xFF
        flags.cf = 1
    else:
        flags.cf = 0
    regs.set8(AL, al)
    flags.set_szp8(al)


def _ascii_adjust(step):
    def handler(cpu):
        regs, flags = cpu.regs, cpu.flags
        al = regs.get8(AL)
        if (al & 0xF) > 9 or flags.af == 1:
            al = (al + 6 * step) & 0xFF
            regs.set8(AH, regs.get8(AH) + step)
            flags.af = flags.cf = 1
        else:
            flags.af = flags.cf = 0
        regs.set8(AL, al & 0xF)

    return handler


def _imul_immediate(byte_immediate):
    def handler(cpu):
        cpu.decode_modrm()
        a = cpu.read_rm16(cpu.rm)
        b = _sign_extend8(cpu.fetch8()) if byte_immediate else cpu.fetch16()
        product = (_signed16(a) * _signed16(b)) & 0xFFFFFFFF
        cpu.regs.set16(cpu.reg, product)
        overflow = int(bool(product & 0xFFFF0000))
        cpu.flags.cf = overflow
        cpu.flags.of = overflow

    return handler


def _limit_shift(cpu):
    return cpu.cpu_type != CpuType.I8086


def _grp2_8(count_of):
    def handler(cpu):
        cpu.decode_modrm()
        value = cpu.read_rm8(cpu.rm)
        count = count_of(cpu)
        result = shift_rotate8(cpu.flags, cpu.reg, value, count, _limit_shift(cpu))
        cpu.write_rm8(cpu.rm, result)

    return handler


def _grp2_16(count_of):
    def handler(cpu):
        cpu.decode_modrm()
        value = cpu.read_rm16(cpu.rm)
        count = count_of(cpu)
        result = shift_rotate16(cpu.flags, cpu.reg, value, count, _limit_shift(cpu))
        cpu.write_rm16(cpu.rm, result)

    return handler


def _count_immediate(cpu):
    return cpu.fetch8()


def _count_one(cpu):
    return 1


def _count_cl(cpu):
    return cpu.regs.get8(CL)


def _set_mul_flags(cpu, high_nonzero):
    flags = cpu.flags
    flags.cf = flags.of = int(high_nonzero)
    if cpu.cpu_type == CpuType.I8086:
        flags.zf = 0


def _grp3_8(cpu):
    cpu.decode_modrm()
    regs, flags = cpu.regs, cpu.flags
    value = cpu.read_rm8(cpu.rm)
    op = cpu.reg
    if op in (0, 1):
        flags.set_logic8(value & cpu.fetch8())
    elif op == 2:
        cpu.write_rm8(cpu.rm, ~value & 0xFF)
    elif op == 3:
        result = (-value) & 0xFF
        flags.sub8(0, value)
        flags.cf = int(result != 0)
        cpu.write_rm8(cpu.rm, result)
    elif op == 4:
        product = value * regs.get8(AL)
        regs.set16(AX, product)
        flags.set_szp8(product)
        _set_mul_flags(cpu, regs.get8(AH) != 0)
    elif op == 5:
        product = _signed8(regs.get8(AL)) * _signed8(value)
        regs.set16(AX, product & 0xFFFF)
        _set_mul_flags(cpu, regs.get8(AH) != 0)
    else:
        divide = divide8 if op == 6 else idivide8
        try:
            quotient, remainder = divide(regs.get16(AX), value)
        except DivideError:
            cpu.interrupt(0)
            return
        regs.set8(AH, remainder)
        regs.set8(AL, quotient)


def _grp3_16(cpu):
    cpu.decode_modrm()
    regs, flags = cpu.regs, cpu.flags
    value = cpu.read_rm16(cpu.rm)
    op = cpu.reg
    if op in (0, 1):
        flags.set_logic16(value & cpu.fetch16())
    elif op == 2:
        cpu.write_rm16(cpu.rm, ~value & 0xFFFF)
    elif op == 3:
        result = (-value) & 0xFFFF
        flags.sub16(0, value)
        flags.cf = int(result != 0)
        cpu.write_rm16(cpu.rm, result)
    elif op == 4:
        product = value * regs.get16(AX)
        regs.set16(AX, product & 0xFFFF)
        regs.set16(DX, product >> 16)
        flags.set_szp16(product)
        _set_mul_flags(cpu, regs.get16(DX) != 0)
    elif op == 5:
        product = (_signed16(regs.get16(AX)) * _signed16(value)) & 0xFFFFFFFF
        regs.set16(AX, product & 0xFFFF)
        regs.set16(DX, product >> 16)
        _set_mul_flags(cpu, regs.get16(DX) != 0)
    else:
        divide = divide16 if op == 6 else idivide16
        dividend = (regs.get16(DX) << 16) + regs.get16(AX)
        try:
            quotient, remainder = divide(dividend, value)
        except DivideError:
            cpu.interrupt(0)
            return
        regs.set16(AX, quotient)
        regs.set16(DX, remainder)


def _grp4(cpu):
    cpu.decode_modrm()
    flags = cpu.flags
    value = cpu.read_rm8(cpu.rm)
    carry = flags.cf
    result = flags.add8(value, 1) if cpu.reg == 0 else flags.sub8(value, 1)
    flags.cf = carry
    cpu.write_rm8(cpu.rm, result)


def _cbw(cpu):
    cpu.regs.set8(AH, 0xFF if cpu.regs.get8(AL) & 0x80 else 0)


def _cwd(cpu):
    cpu.regs.set16(DX, 0xFFFF if cpu.regs.get8(AH) & 0x80 else 0)


def _aam(cpu):
    base = cpu.fetch8()
    if not base:
        cpu.interrupt(0)
        return
    regs = cpu.regs
    al = regs.get8(AL)
    regs.set8(AH, al // base)
    regs.set8(AL, al % base)
    cpu.flags.set_szp16(regs.get16(AX))


def _aad(cpu):
    base = cpu.fetch8()
    regs = cpu.regs
    regs.set8(AL, regs.get8(AH) * base + regs.get8(AL))
    regs.set8(AH, 0)
    cpu.flags.set_szp16(regs.get8(AL))
    cpu.flags.sf = 0


def _cmc(cpu):
    cpu.flags.cf = 0 if cpu.flags.cf else 1


def _clc(cpu):
    cpu.flags.cf = 0


def _stc(cpu):
    cpu.flags.cf = 1


def arith_handlers():
    """Return a new mapping of opcode to handler for the arithmetic instructions."""
    handlers = {}
    for op in range(8):
        handlers.update(_alu_family(op))
    for index in range(8):
        handlers[0x40 + index] = _inc_dec(index, decrement=False)
        handlers[0x48 + index] = _inc_dec(index, decrement=True)
    handlers.update({
        0x27: _daa,
        0x2F: _das,
        0x37: _ascii_adjust(1),
        0x3F: _ascii_adjust(-1),
        0x69: _imul_immediate(byte_immediate=False),
        0x6B: _imul_immediate(byte_immediate=True),
        0x80: _grp1_8,
        0x81: _grp1_16(byte_immediate=False),
        0x82: _grp1_8,
        0x83: _grp1_16(byte_immediate=True),
        0x84: _test_gb_eb,
        0x85: _test_gv_ev,
        0x98: _cbw,
        0x99: _cwd,
        0xA8: _test_al_ib,
        0xA9: _test_ax_iv,
        0xC0: _grp2_8(_count_immediate),
        0xC1: _grp2_16(_count_immediate),
        0xD0: _grp2_8(_count_one),
        0xD1: _grp2_16(_count_one),
        0xD2: _grp2_8(_count_cl),
        0xD3: _grp2_16(_count_cl),
        0xD4: _aam,
        0xD5: _aad,
        0xF5: _cmc,
        0xF6: _grp3_8,
        0xF7: _grp3_16,
        0xF8: _clc,
        0xF9: _stc,
        0xFE: _grp4,
    })
    return handlers
"""Handlers for data movement, stack, string, port, jump, call and interrupt instructions.

Port access goes through an object offering ``in_byte(port)``, ``in_word(port)``,
``out_byte(port, value)`` and ``out_word(port, value)``.
"""

from .core import CPU
from .ops_arith import arith_handlers
from .registers import (
    AH,
    AL,
    AX,
    BP,
    BX,
    BYTE_REG_ORDER,
    CS,
    CX,
    DI,
    DS,
    DX,
    ES,
    SI,
    SP,
    SS,
    CpuType,
)

# The high flag bits that PUSHF always reports set.
_PUSHF_HIGH_BITS = 0xF800


def _sign_extend8(value):
    value &= 0xFF
    return value | 0xFF00 if value & 0x80 else value


def _signed16(value):
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _read_linear16(cpu, address):
    memory = cpu.memory
    return memory.read_byte(address) | (memory.read_byte(address + 1) << 8)


def _get8(cpu, field):
    return cpu.regs.get8(BYTE_REG_ORDER[field])


def _set8(cpu, field, value):
    cpu.regs.set8(BYTE_REG_ORDER[field], value)


# stack --------------------------------------------------------------------

def _push_seg(seg):
    def handler(cpu):
        cpu.push(cpu.segregs[seg])

    return handler


def _pop_seg(seg):
    def handler(cpu):
        cpu.segregs[seg] = cpu.pop()

    return handler


def _pop_cs(cpu):
    # Only the 8086/8088 executes POP CS; later processors trap on it.
    if cpu.cpu_type == CpuType.I8086:
        cpu.segregs[CS] = cpu.pop()
    else:
        cpu.illegal_opcode(cpu.opcode)


def _push_reg(index):
    def handler(cpu):
        cpu.push(cpu.regs.get16(index))

    return handler


def _push_sp(cpu):
    sp = cpu.regs.get16(SP)
    if cpu.cpu_type in (CpuType.I286, CpuType.I386):
        cpu.push(sp)
    else:
        cpu.push((sp - 2) & 0xFFFF)


def _pop_reg(index):
    def handler(cpu):
        cpu.regs.set16(index, cpu.pop())

    return handler


def _pusha(cpu):
    regs = cpu.regs
    old_sp = regs.get16(SP)
    for index in (AX, CX, DX, BX):
        cpu.push(regs.get16(index))
    cpu.push(old_sp)
    for index in (BP, SI, DI):
        cpu.push(regs.get16(index))


def _popa(cpu):
    regs = cpu.regs
    for index in (DI, SI, BP):
        regs.set16(index, cpu.pop())
    cpu.pop()  # saved SP is discarded
    for index in (BX, DX, CX, AX):
        regs.set16(index, cpu.pop())


def _bound(cpu):
    cpu.decode_modrm()
    address = cpu.effective_address(cpu.rm)
    value = _signed16(cpu.regs.get16(cpu.reg))
    lower = _signed16(cpu.read_mem16(address >> 4, address & 15))
    if value < lower:
        cpu.interrupt(5)
        return
    address += 2
    upper = _signed16(cpu.read_mem16(address >> 4, address & 15))
    if value > upper:
        cpu.interrupt(5)


def _push_iv(cpu):
    cpu.push(cpu.fetch16())


def _push_ib(cpu):
    cpu.push(cpu.fetch8())


def _pushf(cpu):
    cpu.push(cpu.flags.to_word() | _PUSHF_HIGH_BITS)


def _popf(cpu):
    cpu.flags.load_word(cpu.pop())


def _sahf(cpu):
    cpu.flags.load_word((cpu.flags.to_word() & 0xFF00) | cpu.regs.get8(AH))


def _lahf(cpu):
    cpu.regs.set8(AH, cpu.flags.to_word() & 0xFF)


def _enter(cpu):
    regs = cpu.regs
    stack_size = cpu.fetch16()
    nesting = cpu.fetch8()
    cpu.push(regs.get16(BP))
    frame = regs.get16(SP)
    if nesting:
        for _ in range(1, nesting):
            regs.set16(BP, regs.get16(BP) - 2)
            cpu.push(regs.get16(BP))
        cpu.push(regs.get16(SP))
    regs.set16(BP, frame)
    regs.set16(SP, frame - stack_size)


def _leave(cpu):
    cpu.regs.set16(SP, cpu.regs.get16(BP))
    cpu.regs.set16(BP, cpu.pop())


# string instructions ------------------------------------------------------

def _advance(cpu, index, size):
    delta = -size if cpu.flags.df else size
    cpu.regs.set16(index, cpu.regs.get16(index) + delta)


def _read(cpu, size, segment, offset):
    if size == 1:
        return cpu.read_mem8(segment, offset)
    return cpu.read_mem16(segment, offset)


def _write(cpu, size, segment, offset, value):
    if size == 1:
        cpu.write_mem8(segment, offset, value)
    else:
        cpu.write_mem16(segment, offset, value)


def _accumulator(cpu, size):
    return cpu.regs.get8(AL) if size == 1 else cpu.regs.get16(AX)


def _set_accumulator(cpu, size, value):
    if size == 1:
        cpu.regs.set8(AL, value)
    else:
        cpu.regs.set16(AX, value)


def _string(body, compares=False):
    """Wrap one string-instruction iteration with its REP prefix handling."""

    def handler(cpu):
        regs = cpu.regs
        rep = cpu.rep_type
        if rep and regs.get16(CX) == 0:
            return
        body(cpu)
        if rep:
            regs.set16(CX, regs.get16(CX) - 1)
        if compares:
            if rep == 1 and not cpu.flags.zf:
                return
            if rep == 2 and cpu.flags.zf == 1:
                return
        cpu.total_exec += 1
        cpu.loop_count += 1
        if rep:
            cpu.ip = cpu.first_ip

    return handler


def _ins(size):
    def body(cpu):
        port = cpu.regs.get16(DX)
        value = cpu.ports.in_byte(port) if size == 1 else cpu.ports.in_word(port)
        _write(cpu, size, cpu.use_seg, cpu.regs.get16(SI), value)
        _advance(cpu, SI, size)
        _advance(cpu, DI, size)

    return _string(body)


def _outs(size):
    def body(cpu):
        port = cpu.regs.get16(DX)
        value = _read(cpu, size, cpu.use_seg, cpu.regs.get16(SI))
        if size == 1:
            cpu.ports.out_byte(port, value)
        else:
            cpu.ports.out_word(port, value)
        _advance(cpu, SI, size)
        _advance(cpu, DI, size)

    return _string(body)


def _movs(size):
    def body(cpu):
        value = _read(cpu, size, cpu.use_seg, cpu.regs.get16(SI))
        _write(cpu, size, cpu.segregs[ES], cpu.regs.get16(DI), value)
        _advance(cpu, SI, size)
        _advance(cpu, DI, size)

    return _string(body)


def _cmps(size):
    def body(cpu):
        a = _read(cpu, size, cpu.use_seg, cpu.regs.get16(SI))
        b = _read(cpu, size, cpu.segregs[ES], cpu.regs.get16(DI))
        _advance(cpu, SI, size)
        _advance(cpu, DI, size)
        if size == 1:
            cpu.flags.sub8(a, b)
        else:
            cpu.flags.sub16(a, b)

    return _string(body, compares=True)


def _stos(size):
    def body(cpu):
        _write(cpu, size, cpu.segregs[ES], cpu.regs.get16(DI), _accumulator(cpu, size))
        _advance(cpu, DI, size)

    return _string(body)


def _lods(size):
    def body(cpu):
        _set_accumulator(cpu, size, _read(cpu, size, cpu.use_seg, cpu.regs.get16(SI)))
        _advance(cpu, SI, size)

    return _string(body)


def _scas(size):
    def body(cpu):
        a = _accumulator(cpu, size)
        b = _read(cpu, size, cpu.segregs[ES], cpu.regs.get16(DI))
        if size == 1:
            cpu.flags.sub8(a, b)
        else:
            cpu.flags.sub16(a, b)
        _advance(cpu, DI, size)

    return _string(body, compares=True)


# jumps --------------------------------------------------------------------

_CONDITIONS = (
    lambda f: f.of,
    lambda f: not f.of,
    lambda f: f.cf,
    lambda f: not f.cf,
    lambda f: f.zf,
    lambda f: not f.zf,
    lambda f: f.cf or f.zf,
    lambda f: not f.cf and not f.zf,
    lambda f: f.sf,
    lambda f: not f.sf,
    lambda f: f.pf,
    lambda f: not f.pf,
    lambda f: f.sf != f.of,
    lambda f: f.sf == f.of,
    lambda f: f.sf != f.of or f.zf,
    lambda f: not f.zf and f.sf == f.of,
)


def _jcc(condition):
    def handler(cpu):
        disp = _sign_extend8(cpu.fetch8())
        if condition(cpu.flags):
            cpu.ip = (cpu.ip + disp) & 0xFFFF

    return handler


def _loop(condition):
    def handler(cpu):
        disp = _sign_extend8(cpu.fetch8())
        count = (cpu.regs.get16(CX) - 1) & 0xFFFF
        cpu.regs.set16(CX, count)
        if count and condition(cpu.flags):
            cpu.ip = (cpu.ip + disp) & 0xFFFF

    return handler


def _jcxz(cpu):
    disp = _sign_extend8(cpu.fetch8())
    if not cpu.regs.get16(CX):
        cpu.ip = (cpu.ip + disp) & 0xFFFF


def _call_near(cpu):
    offset = cpu.fetch16()
    cpu.push(cpu.ip)
    cpu.ip = (cpu.ip + offset) & 0xFFFF


def _jmp_near(cpu):
    offset = cpu.fetch16()
    cpu.ip = (cpu.ip + offset) & 0xFFFF


def _jmp_short(cpu):
    disp = _sign_extend8(cpu.fetch8())
    cpu.ip = (cpu.ip + disp) & 0xFFFF


def _jmp_far(cpu):
    offset = cpu.fetch16()
    segment = cpu.fetch16()
    cpu.ip = offset
    cpu.segregs[CS] = segment


def _call_far(cpu):
    offset = cpu.fetch16()
    segment = cpu.fetch16()
    cpu.push(cpu.segregs[CS])
    cpu.push(cpu.ip)
    cpu.ip = offset
    cpu.segregs[CS] = segment


def _ret_imm(cpu):
    release = cpu.read_mem16(cpu.segregs[CS], cpu.ip)
    cpu.ip = cpu.pop()
    cpu.regs.set16(SP, cpu.regs.get16(SP) + release)


def _ret(cpu):
    cpu.ip = cpu.pop()


def _retf_imm(cpu):
    release = cpu.read_mem16(cpu.segregs[CS], cpu.ip)
    cpu.ip = cpu.pop()
    cpu.segregs[CS] = cpu.pop()
    cpu.regs.set16(SP, cpu.regs.get16(SP) + release)


def _retf(cpu):
    cpu.ip = cpu.pop()
    cpu.segregs[CS] = cpu.pop()


def _int3(cpu):
    cpu.interrupt(3)


def _int_ib(cpu):
    cpu.interrupt(cpu.fetch8())


def _into(cpu):
    if cpu.flags.of:
        cpu.interrupt(4)


def _iret(cpu):
    cpu.ip = cpu.pop()
    cpu.segregs[CS] = cpu.pop()
    cpu.flags.load_word(cpu.pop())


# data movement ------------------------------------------------------------

def _xchg_gb_eb(cpu):
    cpu.decode_modrm()
    saved = _get8(cpu, cpu.reg)
    _set8(cpu, cpu.reg, cpu.read_rm8(cpu.rm))
    cpu.write_rm8(cpu.rm, saved)


def _xchg_gv_ev(cpu):
    cpu.decode_modrm()
    saved = cpu.regs.get16(cpu.reg)
    cpu.regs.set16(cpu.reg, cpu.read_rm16(cpu.rm))
    cpu.write_rm16(cpu.rm, saved)


def _mov_eb_gb(cpu):
    cpu.decode_modrm()
    cpu.write_rm8(cpu.rm, _get8(cpu, cpu.reg))


def _mov_ev_gv(cpu):
    cpu.decode_modrm()
    cpu.write_rm16(cpu.rm, cpu.regs.get16(cpu.reg))


def _mov_gb_eb(cpu):
    cpu.decode_modrm()
    _set8(cpu, cpu.reg, cpu.read_rm8(cpu.rm))


def _mov_gv_ev(cpu):
    cpu.decode_modrm()
    cpu.regs.set16(cpu.reg, cpu.read_rm16(cpu.rm))


def _mov_ew_sw(cpu):
    cpu.decode_modrm()
    cpu.write_rm16(cpu.rm, cpu.segregs[cpu.reg & 3])


def _lea(cpu):
    cpu.decode_modrm()
    address = cpu.effective_address(cpu.rm)
    cpu.regs.set16(cpu.reg, address - (cpu.use_seg << 4))


def _mov_sw_ew(cpu):
    cpu.decode_modrm()
    cpu.segregs[cpu.reg & 3] = cpu.read_rm16(cpu.rm)


def _pop_ev(cpu):
    cpu.decode_modrm()
    value = cpu.pop()
    cpu.write_rm16(cpu.rm, value)


def _nop(cpu):
    pass


def _xchg_ax(index):
    def handler(cpu):
        regs = cpu.regs
        other = regs.get16(index)
        regs.set16(index, regs.get16(AX))
        regs.set16(AX, other)

    return handler


def _mov_al_ob(cpu):
    offset = cpu.fetch16()
    cpu.regs.set8(AL, cpu.read_mem8(cpu.use_seg, offset))


def _mov_ax_ov(cpu):
    offset = cpu.fetch16()
    cpu.regs.set16(AX, cpu.read_mem16(cpu.use_seg, offset))


def _mov_ob_al(cpu):
    offset = cpu.fetch16()
    cpu.write_mem8(cpu.use_seg, offset, cpu.regs.get8(AL))


def _mov_ov_ax(cpu):
    offset = cpu.fetch16()
    cpu.write_mem16(cpu.use_seg, offset, cpu.regs.get16(AX))


def _mov_reg8_ib(index):
    def handler(cpu):
        cpu.regs.set8(index, cpu.fetch8())

    return handler


def _mov_reg16_iv(index):
    def handler(cpu):
        cpu.regs.set16(index, cpu.fetch16())

    return handler


def _load_far_pointer(seg):
    def handler(cpu):
        cpu.decode_modrm()
        address = cpu.effective_address(cpu.rm)
        cpu.regs.set16(cpu.reg, _read_linear16(cpu, address))
        cpu.segregs[seg] = _read_linear16(cpu, address + 2)

    return handler


def _mov_eb_ib(cpu):
    cpu.decode_modrm()
    cpu.write_rm8(cpu.rm, cpu.fetch8())


def _mov_ev_iv(cpu):
    cpu.decode_modrm()
    cpu.write_rm16(cpu.rm, cpu.fetch16())


def _xlat(cpu):
    regs = cpu.regs
    address = cpu.use_seg * 16 + regs.get16(BX) + regs.get8(AL)
    regs.set8(AL, cpu.memory.read_byte(address))


def _salc(cpu):
    # SALC on the 8086 family; the V20 decodes this opcode as XLAT.
    if cpu.cpu_type != CpuType.V20:
        cpu.regs.set8(AL, 0xFF if cpu.flags.cf else 0x00)
    else:
        _xlat(cpu)


def _escape(cpu):
    cpu.decode_modrm()


# ports --------------------------------------------------------------------

def _in_al_ib(cpu):
    cpu.regs.set8(AL, cpu.ports.in_byte(cpu.fetch8()))


def _in_ax_ib(cpu):
    cpu.regs.set16(AX, cpu.ports.in_word(cpu.fetch8()))


def _out_ib_al(cpu):
    cpu.ports.out_byte(cpu.fetch8(), cpu.regs.get8(AL))


def _out_ib_ax(cpu):
    cpu.ports.out_word(cpu.fetch8(), cpu.regs.get16(AX))


def _in_al_dx(cpu):
    cpu.regs.set8(AL, cpu.ports.in_byte(cpu.regs.get16(DX)))


def _in_ax_dx(cpu):
    cpu.regs.set16(AX, cpu.ports.in_word(cpu.regs.get16(DX)))


def _out_dx_al(cpu):
    cpu.ports.out_byte(cpu.regs.get16(DX), cpu.regs.get8(AL))


def _out_dx_ax(cpu):
    cpu.ports.out_word(cpu.regs.get16(DX), cpu.regs.get16(AX))


# processor control --------------------------------------------------------

def _hlt(cpu):
    cpu.halted = True


def _set_flag(name, value):
    def handler(cpu):
        setattr(cpu.flags, name, value)

    return handler


def _grp5(cpu):
    cpu.decode_modrm()
    flags = cpu.flags
    value = cpu.read_rm16(cpu.rm)
    op = cpu.reg
    if op in (0, 1):
        carry = flags.cf
        result = flags.add16(value, 1) if op == 0 else flags.sub16(value, 1)
        flags.cf = carry
        cpu.write_rm16(cpu.rm, result)
    elif op == 2:
        cpu.push(cpu.ip)
        cpu.ip = value
    elif op == 3:
        cpu.push(cpu.segregs[CS])
        cpu.push(cpu.ip)
        address = cpu.effective_address(cpu.rm)
        cpu.ip = _read_linear16(cpu, address)
        cpu.segregs[CS] = _read_linear16(cpu, address + 2)
    elif op == 4:
        cpu.ip = value
    elif op == 5:
        address = cpu.effective_address(cpu.rm)
        cpu.ip = _read_linear16(cpu, address)
        cpu.segregs[CS] = _read_linear16(cpu, address + 2)
    elif op == 6:
        cpu.push(value)


def control_handlers():
    """Return a new mapping of opcode to handler for the non-arithmetic instructions."""
    handlers = {
        0x06: _push_seg(ES),
        0x07: _pop_seg(ES),
        0x0E: _push_seg(CS),
        0x0F: _pop_cs,
        0x16: _push_seg(SS),
        0x17: _pop_seg(SS),
        0x1E: _push_seg(DS),
        0x1F: _pop_seg(DS),
    }
    for index in range(8):
        handlers[0x50 + index] = _push_reg(index)
        handlers[0x58 + index] = _pop_reg(index)
        handlers[0xB0 + index] = _mov_reg8_ib(BYTE_REG_ORDER[index])
        handlers[0xB8 + index] = _mov_reg16_iv(index)
    handlers[0x54] = _push_sp
    for index, condition in enumerate(_CONDITIONS):
        handlers[0x70 + index] = _jcc(condition)
    for index in range(1, 8):
        handlers[0x90 + index] = _xchg_ax(index)
    for opcode in range(0xD8, 0xE0):
        handlers[opcode] = _escape
    handlers.update({
        0x60: _pusha,
        0x61: _popa,
        0x62: _bound,
        0x68: _push_iv,
        0x6A: _push_ib,
        0x6C: _ins(1),
        0x6D: _ins(2),
        0x6E: _outs(1),
        0x6F: _outs(2),
        0x86: _xchg_gb_eb,
        0x87: _xchg_gv_ev,
        0x88: _mov_eb_gb,
        0x89: _mov_ev_gv,
        0x8A: _mov_gb_eb,
        0x8B: _mov_gv_ev,
        0x8C: _mov_ew_sw,
        0x8D: _lea,
        0x8E: _mov_sw_ew,
        0x8F: _pop_ev,
        0x90: _nop,
        0x9A: _call_far,
        0x9B: _nop,
        0x9C: _pushf,
        0x9D: _popf,
        0x9E: _sahf,
        0x9F: _lahf,
        0xA0: _mov_al_ob,
        0xA1: _mov_ax_ov,
        0xA2: _mov_ob_al,
        0xA3: _mov_ov_ax,
        0xA4: _movs(1),
        0xA5: _movs(2),
        0xA6: _cmps(1),
        0xA7: _cmps(2),
        0xAA: _stos(1),
        0xAB: _stos(2),
        0xAC: _lods(1),
        0xAD: _lods(2),
        0xAE: _scas(1),
        0xAF: _scas(2),
        0xC2: _ret_imm,
        0xC3: _ret,
        0xC4: _load_far_pointer(ES),
        0xC5: _load_far_pointer(DS),
        0xC6: _mov_eb_ib,
        0xC7: _mov_ev_iv,
        0xC8: _enter,
        0xC9: _leave,
        0xCA: _retf_imm,
        0xCB: _retf,
        0xCC: _int3,
        0xCD: _int_ib,
        0xCE: _into,
        0xCF: _iret,
        0xD6: _salc,
        0xD7: _xlat,
        0xE0: _loop(lambda f: not f.zf),
        0xE1: _loop(lambda f: f.zf == 1),
        0xE2: _loop(lambda f: True),
        0xE3: _jcxz,
        0xE4: _in_al_ib,
        0xE5: _in_ax_ib,
        0xE6: _out_ib_al,
        0xE7: _out_ib_ax,
        0xE8: _call_near,
        0xE9: _jmp_near,
        0xEA: _jmp_far,
        0xEB: _jmp_short,
        0xEC: _in_al_dx,
        0xED: _in_ax_dx,
        0xEE: _out_dx_al,
        0xEF: _out_dx_ax,
        0xF0: _nop,
        0xF4: _hlt,
        0xFA: _set_flag("ifl", 0),
        0xFB: _set_flag("ifl", 1),
        0xFC: _set_flag("df", 0),
        0xFD: _set_flag("df", 1),
        0xFF: _grp5,
    })
    return handlers


def create_cpu(memory, ports=None, pic=None, cpu_type=CpuType.V20):
    """Build a CPU with the complete instruction set."""
    handlers = arith_handlers()
    handlers.update(control_handlers())
    return CPU(memory, ports, pic, cpu_type, handlers)
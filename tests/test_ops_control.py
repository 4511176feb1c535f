import pytest

from faux86.core import FlatMemory
from faux86.ops_control import control_handlers, create_cpu
from faux86.registers import (
    AH,
    AL,
    AX,
    BP,
    BX,
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

START = 0x100
STACK = 0x2000
TIMING = 0xFFFF


class FakePorts:
    def __init__(self):
        self.inputs = {}
        self.written = []

    def in_byte(self, port):
        return self.inputs.get(port, 0xFF) & 0xFF

    def in_word(self, port):
        return self.inputs.get(port, 0xFFFF) & 0xFFFF

    def out_byte(self, port, value):
        self.written.append(("b", port, value))

    def out_word(self, port, value):
        self.written.append(("w", port, value))


def make_cpu(code, cpu_type=CpuType.V20, ports=None):
    memory = FlatMemory()
    cpu = create_cpu(memory, ports, None, cpu_type)
    for seg in (CS, DS, ES, SS):
        cpu.segregs[seg] = 0
    cpu.ip = START
    cpu.regs.set16(SP, STACK)
    for offset, byte in enumerate(code):
        memory.write_byte(START + offset, byte)
    return cpu


def set_vector(cpu, number, segment, offset):
    cpu.write_mem16(0, number * 4, offset)
    cpu.write_mem16(0, number * 4 + 2, segment)


def test_control_handlers_cover_jumps_and_strings():
    handlers = control_handlers()
    for opcode in (0x70, 0x7F, 0xA4, 0xAF, 0xE8, 0xFF, 0xCF):
        assert opcode in handlers
    assert 0x00 not in handlers


def test_mov_push_pop_round_trip():
    cpu = make_cpu([0xB8, 0x34, 0x12, 0x50, 0x5B, 0xF4])
    cpu.execute(3, TIMING)
    assert cpu.regs.get16(BX) == 0x1234
    assert cpu.regs.get16(SP) == STACK


def test_mov_byte_immediate_to_high_register():
    cpu = make_cpu([0xB4, 0x7E, 0xF4])
    cpu.execute(1, TIMING)
    assert cpu.regs.get8(AH) == 0x7E
    assert cpu.regs.get8(AL) == 0


def test_xchg_cx_ax():
    cpu = make_cpu([0x91, 0xF4])
    cpu.regs.set16(AX, 0x1111)
    cpu.regs.set16(CX, 0x2222)
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(AX) == 0x2222
    assert cpu.regs.get16(CX) == 0x1111


def test_mov_register_to_register_and_segment():
    # MOV AX,BX ; MOV DS,AX ; MOV AX,ES
    cpu = make_cpu([0x89, 0xD8, 0x8E, 0xD8, 0x8C, 0xC0, 0xF4])
    cpu.regs.set16(BX, 0x4321)
    cpu.segregs[ES] = 0x0777
    cpu.execute(3, TIMING)
    assert cpu.segregs[DS] == 0x4321
    assert cpu.regs.get16(AX) == 0x0777


@pytest.mark.parametrize("zf, taken", [(1, True), (0, False)])
def test_jz(zf, taken):
    cpu = make_cpu([0x74, 0x05, 0xF4])
    cpu.flags.zf = zf
    cpu.execute(1, TIMING)
    assert cpu.ip == (START + 2 + 5 if taken else START + 2)


def test_loop_counts_down_to_zero():
    cpu = make_cpu([0xE2, 0xFE, 0xF4])
    cpu.regs.set16(CX, 3)
    cpu.execute(3, TIMING)
    assert cpu.regs.get16(CX) == 0
    assert cpu.ip == START + 2


def test_rep_movsb_copies_bytes():
    cpu = make_cpu([0xF3, 0xA4, 0xF4])
    data = b"xyz"
    for offset, byte in enumerate(data):
        cpu.memory.write_byte(0x500 + offset, byte)
    cpu.regs.set16(SI, 0x500)
    cpu.regs.set16(DI, 0x600)
    cpu.regs.set16(CX, len(data))
    cpu.execute(20, TIMING)
    copied = bytes(cpu.memory.read_byte(0x600 + i) for i in range(len(data)))
    assert copied == data
    assert cpu.regs.get16(CX) == 0
    assert cpu.halted


def test_rep_stosw_fills_words():
    cpu = make_cpu([0xF3, 0xAB, 0xF4])
    cpu.regs.set16(AX, 0xAA55)
    cpu.regs.set16(DI, 0x600)
    cpu.regs.set16(CX, 4)
    cpu.execute(20, TIMING)
    assert [cpu.read_mem16(0, 0x600 + 2 * i) for i in range(4)] == [0xAA55] * 4
    assert cpu.regs.get16(DI) == 0x600 + 2 * 4


def test_repe_cmpsb_stops_at_mismatch():
    cpu = make_cpu([0xF3, 0xA6, 0xF4])
    for offset, (a, b) in enumerate(zip(b"abcX", b"abcY")):
        cpu.memory.write_byte(0x500 + offset, a)
        cpu.memory.write_byte(0x600 + offset, b)
    cpu.regs.set16(SI, 0x500)
    cpu.regs.set16(DI, 0x600)
    cpu.regs.set16(CX, 10)
    cpu.execute(20, TIMING)
    assert cpu.flags.zf == 0
    assert cpu.regs.get16(CX) == 10 - 4


def test_std_makes_lodsb_walk_backwards():
    cpu = make_cpu([0xFD, 0xAC, 0xF4])
    cpu.memory.write_byte(0x500, 0x42)
    cpu.regs.set16(SI, 0x500)
    cpu.execute(2, TIMING)
    assert cpu.regs.get8(AL) == 0x42
    assert cpu.regs.get16(SI) == 0x4FF
    assert cpu.flags.df == 1


def test_call_and_ret_round_trip():
    cpu = make_cpu([0xE8, 0x02, 0x00, 0xF4, 0x90, 0xC3])
    cpu.execute(1, TIMING)
    assert cpu.ip == START + 5
    cpu.execute(1, TIMING)
    assert cpu.ip == START + 3
    assert cpu.regs.get16(SP) == STACK


def test_indirect_call_through_register():
    cpu = make_cpu([0xFF, 0xD3, 0xF4])
    cpu.memory.write_byte(0x200, 0xC3)
    cpu.regs.set16(BX, 0x200)
    cpu.execute(1, TIMING)
    assert cpu.ip == 0x200
    cpu.execute(1, TIMING)
    assert cpu.ip == START + 2


def test_int_and_iret_restore_state():
    cpu = make_cpu([0xCD, 0x21, 0xF4])
    cpu.memory.write_byte(0x200, 0xCF)
    set_vector(cpu, 0x21, 0, 0x200)
    cpu.flags.ifl = 1
    cpu.execute(1, TIMING)
    assert cpu.ip == 0x200
    assert cpu.flags.ifl == 0
    cpu.execute(1, TIMING)
    assert cpu.ip == START + 2
    assert cpu.flags.ifl == 1
    assert cpu.regs.get16(SP) == STACK


def test_hlt_stops_execution():
    cpu = make_cpu([0xF4, 0x40])
    cpu.execute(5, TIMING)
    assert cpu.halted
    assert cpu.ip == START + 1
    assert cpu.regs.get16(AX) == 0


def test_pushf_sets_high_bits_and_popf_restores():
    cpu = make_cpu([0x9C, 0xF8, 0x9D, 0xF4])
    cpu.flags.cf = 1
    cpu.flags.zf = 1
    cpu.execute(1, TIMING)
    pushed = cpu.read_mem16(0, cpu.regs.get16(SP))
    assert pushed & 0xF800 == 0xF800
    cpu.execute(2, TIMING)
    assert cpu.flags.cf == 1
    assert cpu.flags.zf == 1


def test_lahf_sahf_round_trip():
    cpu = make_cpu([0x9F, 0xF8, 0x9E, 0xF4])
    cpu.flags.cf = 1
    cpu.execute(1, TIMING)
    assert cpu.regs.get8(AH) & 1 == 1
    cpu.execute(2, TIMING)
    assert cpu.flags.cf == 1


def test_pop_cs_on_8086():
    cpu = make_cpu([0x0F, 0xF4], cpu_type=CpuType.I8086)
    cpu.push(0x1234)
    cpu.execute(1, TIMING)
    assert cpu.segregs[CS] == 0x1234


def test_pop_cs_traps_on_v20():
    cpu = make_cpu([0x0F, 0xF4], cpu_type=CpuType.V20)
    set_vector(cpu, 6, 0, 0x300)
    cpu.execute(1, TIMING)
    assert cpu.ip == 0x300


def test_pusha_is_ignored_on_8086():
    cpu = make_cpu([0x60, 0xF4], cpu_type=CpuType.I8086)
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(SP) == STACK
    assert cpu.ip == START + 1


def test_pusha_popa_round_trip():
    cpu = make_cpu([0x60, 0x31, 0xC0, 0x61, 0xF4])
    cpu.regs.set16(AX, 0x1111)
    cpu.regs.set16(BP, 0x2222)
    cpu.regs.set16(DI, 0x3333)
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(SP) == STACK - 16
    cpu.execute(2, TIMING)
    assert cpu.regs.get16(AX) == 0x1111
    assert cpu.regs.get16(BP) == 0x2222
    assert cpu.regs.get16(DI) == 0x3333
    assert cpu.regs.get16(SP) == STACK


@pytest.mark.parametrize("cpu_type, after_push", [(CpuType.I8086, True), (CpuType.I286, False)])
def test_push_sp_value_depends_on_model(cpu_type, after_push):
    cpu = make_cpu([0x54, 0xF4], cpu_type=cpu_type)
    cpu.execute(1, TIMING)
    pushed = cpu.read_mem16(0, cpu.regs.get16(SP))
    assert pushed == (cpu.regs.get16(SP) if after_push else STACK)


def test_lea_gives_offset():
    cpu = make_cpu([0x8D, 0x47, 0x05, 0xF4])
    cpu.regs.set16(BX, 0x100)
    cpu.segregs[DS] = 0x50
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(AX) == 0x100 + 5


def test_les_loads_far_pointer():
    cpu = make_cpu([0xC4, 0x1E, 0x00, 0x05, 0xF4])
    cpu.write_mem16(0, 0x500, 0x1234)
    cpu.write_mem16(0, 0x502, 0x5678)
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(BX) == 0x1234
    assert cpu.segregs[ES] == 0x5678


def test_mov_moffs_round_trip():
    cpu = make_cpu([0xA3, 0x00, 0x05, 0x31, 0xC0, 0xA1, 0x00, 0x05, 0xF4])
    cpu.regs.set16(AX, 0xBEEF)
    cpu.execute(1, TIMING)
    assert cpu.read_mem16(0, 0x500) == 0xBEEF
    cpu.execute(2, TIMING)
    assert cpu.regs.get16(AX) == 0xBEEF


def test_xlat_reads_table():
    cpu = make_cpu([0xD7, 0xF4])
    for offset, byte in enumerate((10, 20, 30)):
        cpu.memory.write_byte(0x500 + offset, byte)
    cpu.regs.set16(BX, 0x500)
    cpu.regs.set8(AL, 2)
    cpu.execute(1, TIMING)
    assert cpu.regs.get8(AL) == 30


def test_d6_is_salc_on_8086_and_xlat_on_v20():
    salc = make_cpu([0xD6, 0xF4], cpu_type=CpuType.I8086)
    salc.flags.cf = 1
    salc.execute(1, TIMING)
    assert salc.regs.get8(AL) == 0xFF

    xlat = make_cpu([0xD6, 0xF4], cpu_type=CpuType.V20)
    xlat.memory.write_byte(0x500, 0x33)
    xlat.regs.set16(BX, 0x500)
    xlat.execute(1, TIMING)
    assert xlat.regs.get8(AL) == 0x33


def test_enter_leave_round_trip():
    cpu = make_cpu([0xC8, 0x10, 0x00, 0x00, 0xC9, 0xF4])
    cpu.regs.set16(BP, 0x1234)
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(SP) == cpu.regs.get16(BP) - 0x10
    cpu.execute(1, TIMING)
    assert cpu.regs.get16(BP) == 0x1234
    assert cpu.regs.get16(SP) == STACK


@pytest.mark.parametrize("value, trapped", [(30, True), (15, False)])
def test_bound(value, trapped):
    cpu = make_cpu([0x62, 0x06, 0x00, 0x05, 0xF4])
    cpu.write_mem16(0, 0x500, 10)
    cpu.write_mem16(0, 0x502, 20)
    set_vector(cpu, 5, 0, 0x400)
    cpu.regs.set16(AX, value)
    cpu.execute(1, TIMING)
    assert cpu.ip == (0x400 if trapped else START + 4)


def test_port_input_and_output():
    ports = FakePorts()
    ports.inputs[0x60] = 0x1C
    cpu = make_cpu([0xE4, 0x60, 0xB0, 0x41, 0xE6, 0x80, 0xEF, 0xF4], ports=ports)
    cpu.regs.set16(DX, 0x3F8)
    cpu.execute(1, TIMING)
    assert cpu.regs.get8(AL) == 0x1C
    cpu.execute(2, TIMING)
    cpu.regs.set16(AX, 0xABCD)
    cpu.execute(1, TIMING)
    assert ports.written == [("b", 0x80, 0x41), ("w", 0x3F8, 0xABCD)]


def test_flag_control_instructions():
    cpu = make_cpu([0xFB, 0xFD, 0xFA, 0xFC, 0xF4])
    cpu.execute(2, TIMING)
    assert (cpu.flags.ifl, cpu.flags.df) == (1, 1)
    cpu.execute(2, TIMING)
    assert (cpu.flags.ifl, cpu.flags.df) == (0, 0)


def test_create_cpu_includes_arithmetic():
    cpu = make_cpu([0x04, 0x05, 0xF4])
    cpu.regs.set8(AL, 3)
    cpu.execute(1, TIMING)
    assert cpu.regs.get8(AL) == 3 + 5
    assert cpu.cpu_type == CpuType.V20


def test_far_jump_sets_segment_and_offset():
    cpu = make_cpu([0xEA, 0x34, 0x12, 0x00, 0x20])
    cpu.execute(1, TIMING)
    assert cpu.segregs[CS] == 0x2000
    assert cpu.ip == 0x1234
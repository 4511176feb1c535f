"""Processor core: memory access, addressing, stack, interrupts and the fetch loop."""

import logging

from .alu import Flags
from .registers import (
    AH,
    AL,
    AX,
    BH,
    BL,
    BP,
    BX,
    BYTE_REG_ORDER,
    CH,
    CL,
    CS,
    DI,
    DS,
    ES,
    SI,
    SP,
    SS,
    CpuType,
    Registers,
)

log = logging.getLogger(__name__)

MEMORY_SIZE = 0x100000

_SEGMENT_PREFIXES = {0x2E: CS, 0x3E: DS, 0x26: ES, 0x36: SS}
_REP_PREFIXES = {0xF3: 1, 0xF2: 2}

# Registers summed for each r/m value of a memory operand.
_EA_BASES = ((BX, SI), (BX, DI), (BP, SI), (BP, DI), (SI,), (DI,), (BP,), (BX,))

# BIOS entry point; reaching it means the machine has been rebooted.
_BIOS_ENTRY = (0xF000, 0xE066)


def _sign_extend8(value):
    value &= 0xFF
    return value | 0xFF00 if value & 0x80 else value


class FlatMemory:
    """Byte-addressed memory; addresses wrap around its size."""

    def __init__(self, size=MEMORY_SIZE):
        if size <= 0:
            raise ValueError(f"memory size must be positive: {size}")
        self._data = bytearray(size)

    def __len__(self):
        return len(self._data)

    def read_byte(self, address):
        return self._data[address % len(self._data)]

    def write_byte(self, address, value):
        self._data[address % len(self._data)] = value & 0xFF


class CPU:
    """Instruction fetch, decoding helpers and interrupt entry of an 8086-family CPU.

    Opcode behaviour comes from ``handlers``, a mapping of opcode to a callable
    taking the CPU. Opcodes without a handler are illegal.
    """

    def __init__(self, memory, ports=None, pic=None, cpu_type=CpuType.V20,
                 handlers=None, on_timing=None):
        self.memory = memory
        self.ports = ports
        self.pic = pic
        self.cpu_type = CpuType(cpu_type)
        self.handlers = dict(handlers or {})
        self.interrupt_hooks = {}
        self._on_timing = on_timing

        self.regs = Registers()
        self.flags = Flags()
        self.segregs = [0, 0, 0, 0]
        self.ip = 0

        self.halted = False
        self.running = True
        self.total_exec = 0
        self.loop_count = 0
        self.trap_pending = False
        self.did_interrupt = False
        self.did_bootstrap = False
        self.screen_updated = False
        self.last_int10_ax = 0

        self.opcode = 0
        self.rep_type = 0
        self.seg_override = False
        self.use_seg = 0
        self.first_ip = 0
        self.save_cs = 0
        self.save_ip = 0

        self.mode = 0
        self.reg = 0
        self.rm = 0
        self.disp16 = 0
        self.ea = 0

    # memory access ------------------------------------------------------

    def read_mem8(self, segment, offset):
        return self.memory.read_byte((segment << 4) + offset)

    def read_mem16(self, segment, offset):
        address = (segment << 4) + offset
        return self.memory.read_byte(address) | (self.memory.read_byte(address + 1) << 8)

    def write_mem8(self, segment, offset, value):
        self.memory.write_byte((segment << 4) + offset, value & 0xFF)

    def write_mem16(self, segment, offset, value):
        address = (segment << 4) + offset
        self.memory.write_byte(address, value & 0xFF)
        self.memory.write_byte(address + 1, (value >> 8) & 0xFF)

    def fetch8(self):
        """Read the byte at CS:IP and step past it."""
        value = self.read_mem8(self.segregs[CS], self.ip)
        self.ip = (self.ip + 1) & 0xFFFF
        return value

    def fetch16(self):
        """Read the word at CS:IP and step past it."""
        value = self.read_mem16(self.segregs[CS], self.ip)
        self.ip = (self.ip + 2) & 0xFFFF
        return value

    # stack --------------------------------------------------------------

    def push(self, value):
        sp = (self.regs.get16(SP) - 2) & 0xFFFF
        self.regs.set16(SP, sp)
        self.write_mem16(self.segregs[SS], sp, value)

    def pop(self):
        sp = self.regs.get16(SP)
        value = self.read_mem16(self.segregs[SS], sp)
        self.regs.set16(SP, (sp + 2) & 0xFFFF)
        return value

    # operand decoding ---------------------------------------------------

    def decode_modrm(self):
        """Fetch a ModR/M byte and its displacement; return (mode, reg, rm)."""
        addrbyte = self.fetch8()
        self.mode = addrbyte >> 6
        self.reg = (addrbyte >> 3) & 7
        self.rm = addrbyte & 7
        self.disp16 = 0
        stack_based = False
        if self.mode == 0:
            if self.rm == 6:
                self.disp16 = self.fetch16()
            stack_based = self.rm in (2, 3)
        elif self.mode == 1:
            self.disp16 = _sign_extend8(self.fetch8())
            stack_based = self.rm in (2, 3, 6)
        elif self.mode == 2:
            self.disp16 = self.fetch16()
            stack_based = self.rm in (2, 3, 6)
        if stack_based and not self.seg_override:
            self.use_seg = self.segregs[SS]
        return self.mode, self.reg, self.rm

    def effective_address(self, rm):
        """Compute the linear address of the memory operand selected by ``rm``."""
        if self.mode == 0:
            if rm == 6:
                offset = self.disp16
            else:
                offset = sum(self.regs.get16(r) for r in _EA_BASES[rm])
        elif self.mode in (1, 2):
            offset = sum(self.regs.get16(r) for r in _EA_BASES[rm]) + self.disp16
        else:
            offset = 0
        self.ea = (offset & 0xFFFF) + (self.use_seg << 4)
        return self.ea

    def read_rm8(self, rm):
        if self.mode < 3:
            return self.memory.read_byte(self.effective_address(rm))
        return self.regs.get8(BYTE_REG_ORDER[rm])

    def read_rm16(self, rm):
        if self.mode < 3:
            address = self.effective_address(rm)
            return self.memory.read_byte(address) | (self.memory.read_byte(address + 1) << 8)
        return self.regs.get16(rm)

    def write_rm8(self, rm, value):
        if self.mode < 3:
            self.memory.write_byte(self.effective_address(rm), value & 0xFF)
        else:
            self.regs.set8(BYTE_REG_ORDER[rm], value)

    def write_rm16(self, rm, value):
        if self.mode < 3:
            address = self.effective_address(rm)
            self.memory.write_byte(address, value & 0xFF)
            self.memory.write_byte(address + 1, (value >> 8) & 0xFF)
        else:
            self.regs.set16(rm, value)

    # control ------------------------------------------------------------

    def reset(self):
        """Put the CPU at the reset vector FFFF:0000."""
        self.segregs[CS] = 0xFFFF
        self.ip = 0
        self.halted = False

    def interrupt(self, number):
        """Raise software or hardware interrupt ``number``."""
        number &= 0xFF
        self.did_interrupt = True
        if number == 0x19:
            self.did_bootstrap = True

        hook = self.interrupt_hooks.get(number)
        if hook is not None and hook(self):
            return
        if number == 0x10 and self._video_bios():
            return

        self.push(self.flags.to_word())
        self.push(self.segregs[CS])
        self.push(self.ip)
        self.segregs[CS] = self.read_mem16(0, number * 4 + 2)
        self.ip = self.read_mem16(0, number * 4)
        self.flags.ifl = 0
        self.flags.tf = 0

    def _video_bios(self):
        """Answer the video BIOS calls handled without the ROM; True if answered."""
        self.screen_updated = True
        regs = self.regs
        ah = regs.get8(AH)
        if ah == 0x12 and regs.get8(BL) == 0x10:
            regs.set8(BH, 0)
            regs.set8(BL, 3)
            regs.set8(CH, 0x08)
            regs.set8(CL, 0x0B)
            return True
        # Display-combination query, skipped right after AX=0100h (DOS EDIT/QBASIC).
        if ah == 0x1A and self.last_int10_ax != 0x0100:
            regs.set8(AL, 0x1A)
            regs.set8(BL, 0x08)
            return True
        self.last_int10_ax = regs.get16(AX)
        if ah == 0x1B:
            regs.set8(AL, 0x1B)
            self.segregs[ES] = 0xC800
            regs.set16(DI, 0)
            self.write_mem16(0, 0xC8000, 0x0000)
            self.write_mem16(0, 0xC8002, 0xC900)
            self.memory.write_byte(0xC9000, 0x00)
            self.memory.write_byte(0xC9001, 0x00)
            self.memory.write_byte(0xC9002, 0x01)
            return True
        return False

    def illegal_opcode(self, opcode):
        """Handle an undefined opcode: a no-op on the 8086, interrupt 6 on later CPUs."""
        if self.cpu_type != CpuType.I8086:
            log.debug("illegal opcode %02X at %04X:%04X", opcode, self.save_cs, self.save_ip)
            self.interrupt(6)

    def execute(self, loops, timing_interval):
        """Run up to ``loops`` instruction slots; string repeats use extra slots."""
        self.loop_count = 0
        while self.loop_count < loops:
            self._step(timing_interval)
            if not self.running:
                return
            self.loop_count += 1

    def _step(self, timing_interval):
        if (self.total_exec & timing_interval) == 0 and self._on_timing is not None:
            self._on_timing()

        if self.trap_pending:
            self.interrupt(1)
        self.trap_pending = bool(self.flags.tf)

        if (not self.trap_pending and self.flags.ifl and self.pic is not None
                and self.pic.irq_pending()):
            self.halted = False
            self.interrupt(self.pic.next_interrupt())

        if self.halted:
            return

        self.rep_type = 0
        self.seg_override = False
        self.use_seg = self.segregs[DS]
        self.first_ip = self.ip

        if (self.segregs[CS], self.ip) == _BIOS_ENTRY:
            self.did_bootstrap = False

        while True:
            self.segregs[CS] &= 0xFFFF
            self.ip &= 0xFFFF
            self.save_cs = self.segregs[CS]
            self.save_ip = self.ip
            opcode = self.fetch8()
            if opcode in _SEGMENT_PREFIXES:
                self.use_seg = self.segregs[_SEGMENT_PREFIXES[opcode]]
                self.seg_override = True
            elif opcode in _REP_PREFIXES:
                self.rep_type = _REP_PREFIXES[opcode]
            else:
                break

        self.opcode = opcode
        self.total_exec += 1

        if self.cpu_type == CpuType.I8086 and 0x60 <= opcode <= 0x6F:
            self.illegal_opcode(opcode)
            return

        handler = self.handlers.get(opcode)
        if handler is None:
            self.illegal_opcode(opcode)
        else:
            handler(self)
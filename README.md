# faux86

A self-contained 8086-family processor core in pure Python, together with
the host-side pieces that sit around it in a PC emulator: USB-to-XT keyboard
scancode mapping, keyboard and mouse report translation, a wrapping host
tick counter, and the 8-bit audio sample buffer that sound sources mix into.

It has no dependencies outside the standard library.

## Installing

    pip install .

For the test suite:

    pip install .[test]
    pytest

## Modules

### `faux86.keymap`

- `usb_to_xt(usage)` returns the XT scancode for a USB HID usage code
  (0–255), or 0 when the key has no XT equivalent. Extended keys come back
  with the `0xE0` prefix in the high byte, e.g. `0xE048` for arrow up.
- `modifier_to_xt(bit)` returns the XT scancode for a bit position (0–8) of
  the USB modifier byte.

Both raise `ValueError` for arguments out of range.

### `faux86.audio`

- `Audio(sample_rate, latency)` holds unsigned 8-bit mono samples. The
  working size is `(sample_rate // 1000) * latency` samples, and the buffer
  starts out full of silence (128).
  - `is_buffer_filled()` tells whether it wants more samples.
  - `push_sample(sample)` stores one signed sample (offset by 128) and
    returns whether it was stored.
  - `fill_audio_buffer(length)` removes and returns the oldest `length`
    samples as `bytes`.
  - `pending` is the number of samples currently queued.
- `mix_sample(adlib=None, disney=None, blaster=None, speaker=None)` mixes
  the enabled sources into one 16-bit sample: the Adlib output is shifted
  right by 8, the PC speaker by 1; `None` leaves a source out.
- `pwm_chunk(audio, chunk_size)` drains `chunk_size // 2` samples and returns
  a stereo list with each sample shifted left by 4.
- `pcm16_chunk(audio, chunk_size)` drains `chunk_size // 2` samples and
  returns a stereo list of signed 16-bit values, `(sample - 128) * 256`.

### `faux86.registers`

- `Registers` — eight 16-bit registers (`get16`/`set16`) whose first four
  also read as eight bytes (`get8`/`set8`). Index constants `AX`…`DI`,
  `AL`…`BH` and segment indices `ES`, `CS`, `SS`, `DS` are defined here.
- `CpuType` — `I8086`, `V20`, `I286`, `I386`.

### `faux86.host`

- `HostInput(sink, screen_width, screen_height)` turns host reports into
  `InputEvent`s and passes each to the callable `sink`.
  - `key_status_raw(modifiers, raw_keys)` takes a boot-protocol keyboard
    report (modifier byte plus six key slots). Modifier changes produce
    press/release events; every previously held key is released and every
    key in the new report is pressed again.
  - `mouse_event(event, buttons, x, y, wheel)` takes an absolute mouse
    report (`MouseEvent.MOVE`, `DOWN`, `UP` or `WHEEL`). Moves become
    relative motion clamped to ±127; wheel reports are ignored.
  - `queue_event(event)` hands an event straight to the sink.
- `InputEvent` carries `event_type` (`EventType`), `scancode`, `button`
  (`MouseButton`), `dx` and `dy`.
- `HostTimer(clock)` wraps a callable returning a 32-bit counter;
  `ticks()` returns total elapsed ticks across wrap-around and
  `host_freq()` returns 1 000 000.

### `faux86.alu`

- `Flags` — the nine flags, with `to_word()`/`load_word(word)`, the
  sign/zero/parity setters, and `add8`/`add16`/`sub8`/`sub16` returning the
  result and setting the flags.
- `parity(value)`, `shift_rotate8`/`shift_rotate16` for the group-2
  operations (ROL, ROR, RCL, RCR, SHL, SHR, SAR), and
  `divide8`/`idivide8`/`divide16`/`idivide16` returning
  `(quotient, remainder)`.
- `DivideError` is raised where the processor would take interrupt 0.

### `faux86.core`

- `FlatMemory(size)` — byte memory whose addresses wrap at `size`
  (1 MiB by default).
- `CPU(memory, ports, pic, cpu_type, handlers, on_timing)` — fetch loop,
  prefixes, ModR/M decoding, stack and interrupt entry. Opcodes come from
  `handlers` (opcode → callable taking the CPU); missing ones are illegal:
  ignored on the 8086, interrupt 6 otherwise. `execute(loops,
  timing_interval)` runs instructions and calls `on_timing()` whenever the
  executed-instruction count ANDed with `timing_interval` is zero.
  `interrupt_hooks` maps an interrupt number to a callable that may handle
  it (returning true) before the vector is taken. A few video BIOS calls
  (`INT 10h` with AH=12h/BL=10h, 1Ah, 1Bh) are answered directly.

### `faux86.ops_arith` and `faux86.ops_control`

- `arith_handlers()` and `control_handlers()` return the opcode tables.
- `create_cpu(memory, ports=None, pic=None, cpu_type=CpuType.V20)` builds a
  `CPU` with the full instruction set.

`ports` must offer `in_byte(port)`, `in_word(port)`, `out_byte(port, value)`
and `out_word(port, value)`; `pic` must offer `irq_pending()` and
`next_interrupt()`. Either may be `None` if the program never uses them.

## Example

    from faux86.core import FlatMemory
    from faux86.ops_control import create_cpu
    from faux86.registers import AX, CS, CpuType

    memory = FlatMemory()
    program = bytes([0xB8, 0x05, 0x00,   # MOV AX, 5
                     0x05, 0x03, 0x00,   # ADD AX, 3
                     0xF4])              # HLT
    for offset, byte in enumerate(program):
        memory.write_byte(0x1000 + offset, byte)

    cpu = create_cpu(memory, cpu_type=CpuType.V20)
    cpu.segregs[CS] = 0x0100
    cpu.ip = 0
    cpu.execute(3, 31)
    assert cpu.regs.get16(AX) == 8

## What it does not do

The package is a processor core and its host-side helpers only. It has no
video adapter, display or frame buffer, no disk or floppy controller, no
BIOS, no programmable timer or interrupt controller, no I/O port devices,
and no Adlib, Sound Blaster or speaker synthesis; `mix_sample` only combines
samples that some other code produces. There is no command to run and no
way to boot a disk image: a caller supplies memory contents, port and
interrupt-controller objects, and drives `CPU.execute` itself.
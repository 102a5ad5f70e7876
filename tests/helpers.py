"""Builders for the small PRG and cart images the tests feed in."""

from typing import List, Sequence, Tuple


def le16(v: int) -> bytes:
    return bytes([v & 0xFF, v >> 8])


def basic_line(addr: int, line_number: int, contents: bytes) -> Tuple[bytes, int]:
    """Returns the bytes of one tokenized line at addr and the address of the next line."""
    next_addr = addr + 4 + len(contents) + 1
    return le16(next_addr) + le16(line_number) + bytes(contents) + b"\x00", next_addr


def basic_prg(load: int, lines: Sequence[Tuple[int, bytes]], trailer: bytes = b"") -> bytes:
    out = [le16(load)]
    addr = load
    for number, contents in lines:
        chunk, addr = basic_line(addr, number, contents)
        out.append(chunk)
    out.append(b"\x00\x00")
    out.append(trailer)
    return b"".join(out)


# LDX #0 / LDA #$41 / STA $0400,X / INX / BNE -8 / JSR $FFD2 / RTS
STUB_CODE = bytes([
    0xA2, 0x00,
    0xA9, 0x41,
    0x9D, 0x00, 0x04,
    0xE8,
    0xD0, 0xF8,
    0x20, 0xD2, 0xFF,
    0x60,
])


def stub_prg(load: int, code: bytes = STUB_CODE) -> bytes:
    # 10 SYS nnnn, the machine code right after the end marker
    sys_line_length = 4 + 5 + 1
    code_addr = load + sys_line_length + 2
    return basic_prg(load, [(10, b"\x9e" + str(code_addr).encode("ascii"))], trailer=code)


def cart_bin() -> bytes:
    # load address, reset and nmi vectors, CBM80, then LDA #0 / STA $D020 / JMP $8009
    return bytes([
        0x00, 0x80,
        0x09, 0x80,
        0x09, 0x80,
        0xC3, 0xC2, 0xCD, 0x38, 0x30,
        0xA9, 0x00,
        0x8D, 0x20, 0xD0,
        0x4C, 0x09, 0x80,
    ])


FOR_NEXT_LINES: List[Tuple[int, bytes]] = [
    (10, b"\x81 I\xb21 \xa4 10"),  # FOR I=1 TO 10
    (20, b"\x99 I"),  # PRINT I
    (30, b"\x82 I"),  # NEXT I
]

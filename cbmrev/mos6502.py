"""
6502 instruction set model.

Static description of every opcode the analysis understands: mnemonic,
addressing mode, operand width, cycle timing and the semantic tags the tracer
uses to decide control flow and memory access.

The documented instruction set is complete. The undocumented "jam" opcodes are
included because reaching one ends a trace; the other undocumented opcodes are
left out and decode as illegal bytes.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Dict, List, Optional, Tuple

from .blob import LITTLE_ENDIAN, Endian


ENDIANNESS: Endian = LITTLE_ENDIAN


# --- semantic tags ---

class OpSemantics(enum.Flag):
    NONE = 0
    IS_UNCONDITIONAL_JUMP = enum.auto()
    IS_CONDITIONAL_JUMP = enum.auto()
    IS_RETURNABLE_JUMP = enum.auto()
    IS_BREAK = enum.auto()
    IS_JAM = enum.auto()
    IS_ILLEGAL = enum.auto()
    IS_RETURN = enum.auto()
    IS_MEMORY_WRITE = enum.auto()
    IS_MEMORY_READ = enum.auto()


# op categories
ARITH = "arith"
BR = "br"
ST = "st"  # stack
LG = "lg"
FL = "fl"
SR = "sr"
INT = "int"
MEM = "mem"
TR = "tr"
SUB = "sub"
MS = "ms"


@dataclasses.dataclass(frozen=True)
class Op:
    mnemonic: str
    description: str
    cat: str
    semantics: OpSemantics = OpSemantics.NONE

    def has(self, s: OpSemantics) -> bool:
        return bool(self.semantics & s)

    def any(self, *ss: OpSemantics) -> bool:
        return any(self.has(s) for s in ss)


# --- addressing modes ---

@dataclasses.dataclass(frozen=True)
class Mode:
    code: str
    num_bytes: int  # operand bytes, excluding the opcode
    desc: str


ACC = Mode("acc", 0, "accumulator")
ABS = Mode("abs", 2, "absolute")
ABS_X = Mode("abs_x", 2, "absolute, X-indexed")
ABS_Y = Mode("abs_y", 2, "absolute, Y-indexed")
IMM = Mode("imm", 1, "immediate")
IMPL = Mode("impl", 0, "implied")
IND = Mode("ind", 2, "indirect")
X_IND = Mode("x_ind", 1, "X-indexed, indirect")
IND_Y = Mode("ind_y", 1, "indirect, Y-indexed")
REL = Mode("rel", 1, "relative")
ZPG = Mode("zpg", 1, "zeropage")
ZPG_X = Mode("zpg_x", 1, "zeropage, X-indexed")
ZPG_Y = Mode("zpg_y", 1, "zeropage, Y-indexed")

MODES: Tuple[Mode, ...] = (ACC, ABS, ABS_X, ABS_Y, IMM, IMPL, IND, X_IND, IND_Y, REL, ZPG, ZPG_X, ZPG_Y)

# operand address known without running anything
STATICALLY_RESOLVABLE_MODES = frozenset([ABS, ZPG, REL])


# --- cycle timing ---

FIXED = "fixed"
XPAGE = "xpage"  # +1 when an indexed access crosses a page
BRANCH = "branch"  # +1 when taken, +2 when taken across a page

MIN_CYCLES = 2
MAX_CYCLES = 7


@dataclasses.dataclass(frozen=True)
class Cycles:
    base: int
    kind: str = FIXED

    def __post_init__(self) -> None:
        if not MIN_CYCLES <= self.base <= MAX_CYCLES:
            raise ValueError(f"cycle count {self.base} outside {MIN_CYCLES}-{MAX_CYCLES}")

    @property
    def worst_case(self) -> int:
        if self.kind == XPAGE:
            return self.base + 1
        if self.kind == BRANCH:
            return self.base + 2
        return self.base


def fixed(n: int) -> Cycles:
    return Cycles(n, FIXED)


def xpage(n: int) -> Cycles:
    return Cycles(n, XPAGE)


def branch(n: int) -> Cycles:
    return Cycles(n, BRANCH)


# --- ops ---

_R = OpSemantics.IS_MEMORY_READ
_W = OpSemantics.IS_MEMORY_WRITE
_RW = _R | _W

ADC = Op("ADC", "add with carry", ARITH, _R)
AND = Op("AND", "and (with accumulator)", LG, _R)
ASL = Op("ASL", "arithmetic shift left", ARITH, _RW)
BCC = Op("BCC", "branch on carry clear", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BCS = Op("BCS", "branch on carry set", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BEQ = Op("BEQ", "branch on equal (zero set)", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BIT = Op("BIT", "bit test", LG, _R)
BMI = Op("BMI", "branch on minus (negative set)", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BNE = Op("BNE", "branch on not equal (zero clear)", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BPL = Op("BPL", "branch on plus (negative clear)", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BRK = Op("BRK", "break / interrupt", FL, OpSemantics.IS_BREAK)
BVC = Op("BVC", "branch on overflow clear", BR, OpSemantics.IS_CONDITIONAL_JUMP)
BVS = Op("BVS", "branch on overflow set", BR, OpSemantics.IS_CONDITIONAL_JUMP)
CLC = Op("CLC", "clear carry", ARITH)
CLD = Op("CLD", "clear decimal", SR)
CLI = Op("CLI", "clear interrupt disable", INT)
CLV = Op("CLV", "clear overflow", SR)
CMP = Op("CMP", "compare (with accumulator)", LG, _R)
CPX = Op("CPX", "compare with X", LG, _R)
CPY = Op("CPY", "compare with Y", LG, _R)
DEC = Op("DEC", "decrement", ARITH, _RW)
DEX = Op("DEX", "decrement X", ARITH)
DEY = Op("DEY", "decrement Y", ARITH)
EOR = Op("EOR", "exclusive or (with accumulator)", LG, _R)
INC = Op("INC", "increment", ARITH, _RW)
INX = Op("INX", "increment X", ARITH)
INY = Op("INY", "increment Y", ARITH)
JMP = Op("JMP", "jump", BR, OpSemantics.IS_UNCONDITIONAL_JUMP)
JSR = Op("JSR", "jump subroutine", SUB, OpSemantics.IS_RETURNABLE_JUMP)
LDA = Op("LDA", "load accumulator", MEM, _R)
LDX = Op("LDX", "load X", MEM, _R)
LDY = Op("LDY", "load Y", MEM, _R)
LSR = Op("LSR", "logical shift right", ARITH, _RW)
NOP = Op("NOP", "no operation", MS)
ORA = Op("ORA", "or with accumulator", LG, _R)
PHA = Op("PHA", "push accumulator", ST)
PHP = Op("PHP", "push processor status (SR)", ST)
PLA = Op("PLA", "pull accumulator", ST)
PLP = Op("PLP", "pull processor status (SR)", ST)
ROL = Op("ROL", "rotate left", ARITH, _RW)
ROR = Op("ROR", "rotate right", ARITH, _RW)
RTI = Op("RTI", "return from interrupt", INT, OpSemantics.IS_RETURN)
RTS = Op("RTS", "return from subroutine", SUB, OpSemantics.IS_RETURN)
SBC = Op("SBC", "subtract with carry", ARITH, _R)
SEC = Op("SEC", "set carry", SR)
SED = Op("SED", "set decimal", SR)
SEI = Op("SEI", "set interrupt disable", INT)
STA = Op("STA", "store accumulator", MEM, _W)
STX = Op("STX", "store X", MEM, _W)
STY = Op("STY", "store Y", MEM, _W)
TAX = Op("TAX", "transfer accumulator to X", TR)
TAY = Op("TAY", "transfer accumulator to Y", TR)
TSX = Op("TSX", "transfer stack pointer to X", TR)
TXA = Op("TXA", "transfer X to accumulator", TR)
TXS = Op("TXS", "transfer X to stack pointer", TR)
TYA = Op("TYA", "transfer Y to accumulator", TR)

# undocumented, halts the cpu
JAM = Op("JAM", "freeze the cpu", MS, OpSemantics.IS_JAM | OpSemantics.IS_ILLEGAL)


# --- instructions ---

@dataclasses.dataclass(frozen=True)
class Instruction:
    opcode: int
    op: Op
    mode: Mode
    cycles: Optional[Cycles]  # None when the instruction never completes

    @property
    def num_bytes(self) -> int:
        return 1 + self.mode.num_bytes


class InstructionSet:
    """Opcode lookup table. Opcodes absent from the table are illegal."""

    def __init__(self, name: str, endian: Endian) -> None:
        self.name = name
        self.endian = endian
        self._by_opcode: Dict[int, Instruction] = {}

    def add(self, opcode: int, op: Op, mode: Mode, cycles: Optional[Cycles]) -> None:
        if opcode in self._by_opcode:
            raise ValueError(f"opcode ${opcode:02X} defined twice")
        self._by_opcode[opcode] = Instruction(opcode=opcode, op=op, mode=mode, cycles=cycles)

    def instruction(self, opcode: int) -> Optional[Instruction]:
        return self._by_opcode.get(opcode & 0xFF)

    def op(self, opcode: int) -> Optional[Op]:
        inst = self.instruction(opcode)
        return inst.op if inst is not None else None

    def num_bytes(self, opcode: int) -> Optional[int]:
        inst = self.instruction(opcode)
        return inst.num_bytes if inst is not None else None

    def is_illegal(self, opcode: int) -> bool:
        """True for opcodes that a linear listing should not decode as instructions."""
        inst = self.instruction(opcode)
        return inst is None or inst.op.has(OpSemantics.IS_ILLEGAL)

    def __len__(self) -> int:
        return len(self._by_opcode)

    def __iter__(self):
        return iter(sorted(self._by_opcode.values(), key=lambda i: i.opcode))


ISA = InstructionSet("MOS 6502", ENDIANNESS)


def _init_opcodes(iset: InstructionSet) -> None:
    add = iset.add
    # ADC
    add(0x69, ADC, IMM, fixed(2)); add(0x65, ADC, ZPG, fixed(3)); add(0x75, ADC, ZPG_X, fixed(4)); add(0x6D, ADC, ABS, fixed(4))
    add(0x7D, ADC, ABS_X, xpage(4)); add(0x79, ADC, ABS_Y, xpage(4)); add(0x61, ADC, X_IND, fixed(6)); add(0x71, ADC, IND_Y, xpage(5))
    # AND
    add(0x29, AND, IMM, fixed(2)); add(0x25, AND, ZPG, fixed(3)); add(0x35, AND, ZPG_X, fixed(4)); add(0x2D, AND, ABS, fixed(4))
    add(0x3D, AND, ABS_X, xpage(4)); add(0x39, AND, ABS_Y, xpage(4)); add(0x21, AND, X_IND, fixed(6)); add(0x31, AND, IND_Y, xpage(5))
    # ASL
    add(0x0A, ASL, ACC, fixed(2)); add(0x06, ASL, ZPG, fixed(5)); add(0x16, ASL, ZPG_X, fixed(6)); add(0x0E, ASL, ABS, fixed(6)); add(0x1E, ASL, ABS_X, fixed(7))
    # Branches
    add(0x90, BCC, REL, branch(2)); add(0xB0, BCS, REL, branch(2)); add(0xF0, BEQ, REL, branch(2)); add(0x30, BMI, REL, branch(2))
    add(0xD0, BNE, REL, branch(2)); add(0x10, BPL, REL, branch(2)); add(0x50, BVC, REL, branch(2)); add(0x70, BVS, REL, branch(2))
    # BIT
    add(0x24, BIT, ZPG, fixed(3)); add(0x2C, BIT, ABS, fixed(4))
    # BRK/RTI/RTS
    add(0x00, BRK, IMPL, fixed(7)); add(0x40, RTI, IMPL, fixed(6)); add(0x60, RTS, IMPL, fixed(6))
    # Flags
    add(0x18, CLC, IMPL, fixed(2)); add(0xD8, CLD, IMPL, fixed(2)); add(0x58, CLI, IMPL, fixed(2)); add(0xB8, CLV, IMPL, fixed(2))
    add(0x38, SEC, IMPL, fixed(2)); add(0xF8, SED, IMPL, fixed(2)); add(0x78, SEI, IMPL, fixed(2))
    # CMP/CPX/CPY
    add(0xC9, CMP, IMM, fixed(2)); add(0xC5, CMP, ZPG, fixed(3)); add(0xD5, CMP, ZPG_X, fixed(4)); add(0xCD, CMP, ABS, fixed(4))
    add(0xDD, CMP, ABS_X, xpage(4)); add(0xD9, CMP, ABS_Y, xpage(4)); add(0xC1, CMP, X_IND, fixed(6)); add(0xD1, CMP, IND_Y, xpage(5))
    add(0xE0, CPX, IMM, fixed(2)); add(0xE4, CPX, ZPG, fixed(3)); add(0xEC, CPX, ABS, fixed(4))
    add(0xC0, CPY, IMM, fixed(2)); add(0xC4, CPY, ZPG, fixed(3)); add(0xCC, CPY, ABS, fixed(4))
    # DEC/INC
    add(0xC6, DEC, ZPG, fixed(5)); add(0xD6, DEC, ZPG_X, fixed(6)); add(0xCE, DEC, ABS, fixed(6)); add(0xDE, DEC, ABS_X, fixed(7))
    add(0xE6, INC, ZPG, fixed(5)); add(0xF6, INC, ZPG_X, fixed(6)); add(0xEE, INC, ABS, fixed(6)); add(0xFE, INC, ABS_X, fixed(7))
    # DEX/DEY/INX/INY
    add(0xCA, DEX, IMPL, fixed(2)); add(0x88, DEY, IMPL, fixed(2)); add(0xE8, INX, IMPL, fixed(2)); add(0xC8, INY, IMPL, fixed(2))
    # EOR
    add(0x49, EOR, IMM, fixed(2)); add(0x45, EOR, ZPG, fixed(3)); add(0x55, EOR, ZPG_X, fixed(4)); add(0x4D, EOR, ABS, fixed(4))
    add(0x5D, EOR, ABS_X, xpage(4)); add(0x59, EOR, ABS_Y, xpage(4)); add(0x41, EOR, X_IND, fixed(6)); add(0x51, EOR, IND_Y, xpage(5))
    # JMP/JSR
    add(0x4C, JMP, ABS, fixed(3)); add(0x6C, JMP, IND, fixed(5)); add(0x20, JSR, ABS, fixed(6))
    # LDA/LDX/LDY
    add(0xA9, LDA, IMM, fixed(2)); add(0xA5, LDA, ZPG, fixed(3)); add(0xB5, LDA, ZPG_X, fixed(4)); add(0xAD, LDA, ABS, fixed(4))
    add(0xBD, LDA, ABS_X, xpage(4)); add(0xB9, LDA, ABS_Y, xpage(4)); add(0xA1, LDA, X_IND, fixed(6)); add(0xB1, LDA, IND_Y, xpage(5))
    add(0xA2, LDX, IMM, fixed(2)); add(0xA6, LDX, ZPG, fixed(3)); add(0xB6, LDX, ZPG_Y, fixed(4)); add(0xAE, LDX, ABS, fixed(4)); add(0xBE, LDX, ABS_Y, xpage(4))
    add(0xA0, LDY, IMM, fixed(2)); add(0xA4, LDY, ZPG, fixed(3)); add(0xB4, LDY, ZPG_X, fixed(4)); add(0xAC, LDY, ABS, fixed(4)); add(0xBC, LDY, ABS_X, xpage(4))
    # LSR
    add(0x4A, LSR, ACC, fixed(2)); add(0x46, LSR, ZPG, fixed(5)); add(0x56, LSR, ZPG_X, fixed(6)); add(0x4E, LSR, ABS, fixed(6)); add(0x5E, LSR, ABS_X, fixed(7))
    # NOP
    add(0xEA, NOP, IMPL, fixed(2))
    # ORA
    add(0x09, ORA, IMM, fixed(2)); add(0x05, ORA, ZPG, fixed(3)); add(0x15, ORA, ZPG_X, fixed(4)); add(0x0D, ORA, ABS, fixed(4))
    add(0x1D, ORA, ABS_X, xpage(4)); add(0x19, ORA, ABS_Y, xpage(4)); add(0x01, ORA, X_IND, fixed(6)); add(0x11, ORA, IND_Y, xpage(5))
    # Stack
    add(0x48, PHA, IMPL, fixed(3)); add(0x08, PHP, IMPL, fixed(3)); add(0x68, PLA, IMPL, fixed(4)); add(0x28, PLP, IMPL, fixed(4))
    # ROL/ROR
    add(0x2A, ROL, ACC, fixed(2)); add(0x26, ROL, ZPG, fixed(5)); add(0x36, ROL, ZPG_X, fixed(6)); add(0x2E, ROL, ABS, fixed(6)); add(0x3E, ROL, ABS_X, fixed(7))
    add(0x6A, ROR, ACC, fixed(2)); add(0x66, ROR, ZPG, fixed(5)); add(0x76, ROR, ZPG_X, fixed(6)); add(0x6E, ROR, ABS, fixed(6)); add(0x7E, ROR, ABS_X, fixed(7))
    # SBC
    add(0xE9, SBC, IMM, fixed(2)); add(0xE5, SBC, ZPG, fixed(3)); add(0xF5, SBC, ZPG_X, fixed(4)); add(0xED, SBC, ABS, fixed(4))
    add(0xFD, SBC, ABS_X, xpage(4)); add(0xF9, SBC, ABS_Y, xpage(4)); add(0xE1, SBC, X_IND, fixed(6)); add(0xF1, SBC, IND_Y, xpage(5))
    # STA/STX/STY
    add(0x85, STA, ZPG, fixed(3)); add(0x95, STA, ZPG_X, fixed(4)); add(0x8D, STA, ABS, fixed(4)); add(0x9D, STA, ABS_X, fixed(5))
    add(0x99, STA, ABS_Y, fixed(5)); add(0x81, STA, X_IND, fixed(6)); add(0x91, STA, IND_Y, fixed(6))
    add(0x86, STX, ZPG, fixed(3)); add(0x96, STX, ZPG_Y, fixed(4)); add(0x8E, STX, ABS, fixed(4))
    add(0x84, STY, ZPG, fixed(3)); add(0x94, STY, ZPG_X, fixed(4)); add(0x8C, STY, ABS, fixed(4))
    # Transfers
    add(0xAA, TAX, IMPL, fixed(2)); add(0xA8, TAY, IMPL, fixed(2)); add(0xBA, TSX, IMPL, fixed(2)); add(0x8A, TXA, IMPL, fixed(2))
    add(0x9A, TXS, IMPL, fixed(2)); add(0x98, TYA, IMPL, fixed(2))
    # Jams
    for opcode in (0x02, 0x12, 0x22, 0x32, 0x42, 0x52, 0x62, 0x72, 0x92, 0xB2, 0xD2, 0xF2):
        add(opcode, JAM, IMPL, None)


_init_opcodes(ISA)


# --- decoded instructions ---

@dataclasses.dataclass(frozen=True)
class FullInstruction:
    """An instruction descriptor together with the operand bytes it was decoded with."""

    instruction: Instruction
    operand: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if len(self.operand) != self.instruction.mode.num_bytes:
            raise ValueError(
                f"{self.instruction.op.mnemonic} {self.instruction.mode.code} takes "
                f"{self.instruction.mode.num_bytes} operand bytes, got {len(self.operand)}"
            )

    @property
    def length(self) -> int:
        return self.instruction.num_bytes

    def bytes(self) -> List[int]:
        return [self.instruction.opcode, *self.operand]

    def byte_string(self) -> str:
        return " ".join(f"{b:02x}" for b in self.bytes())

    def operand_value(self) -> int:
        if len(self.operand) == 2:
            return ENDIANNESS.two_bytes_to_word(self.operand)
        if len(self.operand) == 1:
            return self.operand[0]
        raise ValueError(f"{self.instruction.op.mnemonic} has no operand")

    def statically_resolvable_operand(self) -> bool:
        return self.instruction.mode in STATICALLY_RESOLVABLE_MODES

    def resolve_operand_address(self, next_pc: int) -> int:
        """Target address of the operand; relative operands count from the following instruction."""
        if self.instruction.mode is REL:
            off = self.operand[0]
            if off >= 0x80:
                off -= 0x100
            return (next_pc + off) & 0xFFFF
        return self.operand_value()

import pytest

from cbmrev.blob import FileBlob
from cbmrev.declarations import ByteDeclaration, InstructionLine, TextDeclaration, WordDefinition
from cbmrev.disasm import Disassembler, disassemble1
from cbmrev.machines import C64_CART_META, C64_MEMORY, C64_SYM
from cbmrev.meta import BasicStubMeta, EntryPoint, VectorMeta
from cbmrev.mos6502 import ISA

from helpers import cart_bin, stub_prg


def _raw(code: bytes, base: int = 0x1000) -> Disassembler:
    fb = FileBlob("raw.bin", bytes([base & 0xFF, base >> 8]) + code)
    return Disassembler(ISA, fb, VectorMeta(0, (), 2))


def test_disassemble1_stops_at_end_of_memory() -> None:
    assert disassemble1(ISA, [0xA9, 0x01], 0).operand == (0x01,)
    assert disassemble1(ISA, [0xAD, 0x00], 0) is None
    assert disassemble1(ISA, [0x03], 0) is None


def test_linear_listing() -> None:
    d = _raw(bytes([0xA9, 0x00, 0x8D, 0x20, 0xD0, 0x60]))
    lines = list(d.lines())
    assert [a for a, _ in lines] == [0x1000, 0x1002, 0x1005]
    assert all(isinstance(line, InstructionLine) for _, line in lines)
    assert lines[1][1].instruction.instruction.op.mnemonic == "STA"
    assert not d.has_next()
    with pytest.raises(IndexError):
        d.next_instruction_line()


def test_illegal_runs_become_byte_declarations() -> None:
    d = _raw(bytes([0x02, 0x12, 0xEA]))
    first = d.next_instruction_line()
    assert isinstance(first, ByteDeclaration)
    assert first.length == 2
    assert first.lc.comments == ["illegal opcodes"]
    assert isinstance(d.next_instruction_line(), InstructionLine)
    assert d.stats == {"illegal opcode runs": 1}


def test_truncated_instruction() -> None:
    d = _raw(bytes([0xEA, 0x4C, 0x00]))
    d.next_instruction_line()
    line = d.next_instruction_line()
    assert isinstance(line, ByteDeclaration)
    assert line.lc.comments == ["instruction won't fit"]


def test_stub_edicts_decode_header_words() -> None:
    fb = FileBlob("stub.prg", stub_prg(0x0801))
    meta = BasicStubMeta(C64_MEMORY, C64_SYM, 2061, "SYS 2061")
    d = Disassembler(ISA, fb, meta)
    link = d.next_instruction_line()
    number = d.next_instruction_line()
    assert isinstance(link, WordDefinition)
    assert link.value == 0x080B
    assert link.lc.comments == ["Next line pointer"]
    assert isinstance(number, WordDefinition)
    assert number.decimal
    assert number.value == 10
    assert d.stats["edicts applied"] == 2


def test_cart_vectors_and_signature() -> None:
    fb = FileBlob("cart.bin", cart_bin())
    d = Disassembler(ISA, fb, C64_CART_META)
    lines = list(d.lines())
    addr, reset = lines[0]
    assert addr == 0x8000
    assert isinstance(reset, WordDefinition) and reset.lc.labels == ["resetVector"]
    sig = [line for _, line in lines if isinstance(line, TextDeclaration)][0]
    assert sig.text == "CBM80"
    assert sig.lc.labels == ["cartSig"]
    code = [(a, line) for a, line in lines if isinstance(line, InstructionLine)]
    assert code[0][0] == 0x8009
    assert code[0][1].lc.labels == ["reset", "nmi"]


def test_known_instruction_start_splits_operand() -> None:
    # a traced instruction at $1001 means the byte at $1000 is data
    d = _raw(bytes([0xAD, 0xEA, 0x60]))
    nop = disassemble1(ISA, [0xEA], 0)
    d.add_execution_points([(0x1001, nop)])
    first = d.next_instruction_line()
    assert isinstance(first, ByteDeclaration)
    assert first.lc.comments == ["inferred by instruction at $1001 (+1)"]
    assert d.stats["inferred declarations"] == 1


def test_jump_targets_are_limited_to_binary() -> None:
    d = _raw(bytes([0xD0, 0x00, 0x4C, 0xD2, 0xFF]))
    bne = disassemble1(ISA, [0xD0, 0x00], 0)
    jmp = disassemble1(ISA, [0x4C, 0xD2, 0xFF], 0)
    assert d.jump_targets([(0x1000, bne), (0x1002, jmp)]) == [0x1002]


def test_content_start_out_of_range() -> None:
    with pytest.raises(ValueError):
        Disassembler(ISA, FileBlob("tiny", b"\x00\x10"), VectorMeta(0, (), 2))


class CountingMeta(VectorMeta):

    def __init__(self, entry: int) -> None:
        super().__init__(0, (), 2)
        self.entry = entry
        self.entry_point_calls = 0

    def execution_entry_points(self, fb):
        self.entry_point_calls += 1
        return [EntryPoint(self.entry, "start")]


def test_entry_point_splits_operand_and_is_looked_up_once() -> None:
    meta = CountingMeta(0x1001)
    fb = FileBlob("raw.bin", bytes([0x00, 0x10, 0xAD, 0xEA, 0x60, 0xAD, 0x00, 0x10, 0x60]))
    lines = list(Disassembler(ISA, fb, meta).lines())
    assert isinstance(lines[0][1], ByteDeclaration)
    assert lines[0][1].lc.comments == ["inferred by instruction at $1001 (+1)"]
    assert meta.entry_point_calls == 1

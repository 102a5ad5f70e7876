"""
Linear 6502 disassembler.

Walks a blob from the content start offset to the end, producing one line per
instruction or literal declaration. Edicts from the format metadata take
precedence over opcode decoding, and bytes that cannot be instructions are
declared as data with a comment saying why.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple

from .blob import FileBlob
from .declarations import ByteDeclaration, InstructionLine, LabelsComments, Line
from .edicts import Edict
from .meta import DisassemblyMeta
from .mos6502 import FullInstruction, InstructionSet, OpSemantics


log = logging.getLogger(__name__)

InstRec = Tuple[int, FullInstruction]


def disassemble1(iset: InstructionSet, mem: Sequence[int], offset: int) -> Optional[FullInstruction]:
    """
    Decodes the single instruction at offset in mem.

    Returns None if offset is out of range, the opcode is unknown, or the
    instruction runs past the end of mem.
    """
    if offset < 0 or offset >= len(mem):
        return None
    instruction = iset.instruction(mem[offset])
    if instruction is None:
        return None
    if offset + instruction.num_bytes > len(mem):
        return None
    operand = tuple(mem[offset + 1:offset + instruction.num_bytes])
    return FullInstruction(instruction, operand)


class Disassembler:

    def __init__(self, iset: InstructionSet, fb: FileBlob, meta: DisassemblyMeta) -> None:
        index = meta.content_start_offset
        if index < 0 or index >= len(fb):
            raise ValueError(f"index {index} out of range for {fb.name} of size {len(fb)}")
        self.iset = iset
        self.fb = fb
        self.meta = meta
        self.content_start_index = index
        self.current_index = index
        self.segment_base_address = meta.base_address(fb)
        self._predef = meta.resolve_symbols(fb)
        self._entry_addresses: FrozenSet[int] = frozenset(ep.address for ep in meta.execution_entry_points(fb))
        self._instruction_starts: Set[int] = set()
        self._stats: Dict[str, int] = {}

    @property
    def current_address(self) -> int:
        return self.segment_base_address + self.current_index - self.content_start_index

    def has_next(self) -> bool:
        return self.current_index < len(self.fb)

    def lines(self) -> Iterator[Tuple[int, Line]]:
        """Yields (address, line) for every remaining line of the listing."""
        while self.has_next():
            addr = self.current_address
            yield addr, self.next_instruction_line()

    def next_instruction_line(self) -> Line:
        if not self.has_next():
            raise IndexError(f"cannot read past end of {self.fb.name}")
        lc = self._predef_labels_comments(self.current_address)

        edict = self.meta.get_edict(self.current_index)
        if edict is not None:
            return self._edict_or_bust(edict, lc)

        opcode = self.fb.read8(self.current_index)
        if self.iset.is_illegal(opcode):
            # slurp up consecutive illegal opcodes
            n = 1
            while n < self._bytes_left() and self.iset.is_illegal(self.fb.read8(self.current_index + n)):
                n += 1
            lc.add_comments("illegal opcode" if n == 1 else "illegal opcodes")
            self.add_stat("illegal opcode runs")
            return ByteDeclaration(self._eat_bytes(n), lc)

        inst_len = self.iset.num_bytes(opcode) or 1
        if self._bytes_left() < inst_len:
            lc.add_comments("instruction won't fit")
            return ByteDeclaration(self._eat_bytes(1), lc)

        return self._edict_aware_instruction(inst_len, lc)

    def disassemble1(self, mem: Sequence[int], offset: int) -> Optional[FullInstruction]:
        return disassemble1(self.iset, mem, offset)

    def is_in_binary(self, addr: int) -> bool:
        return self.meta.is_in_binary(addr, self.fb)

    def address_in_range(self, addr: int) -> bool:
        return self.is_in_binary(addr)

    def add_execution_points(self, recs: Sequence[InstRec]) -> None:
        self._instruction_starts.update(a for a, _ in recs)

    def jump_targets(self, executed: Sequence[InstRec]) -> List[int]:
        """Statically resolvable jump and branch targets plus predefined symbols, limited to the binary."""
        targets: List[int] = []
        for addr, inst in executed:
            op = inst.instruction.op
            if not op.any(OpSemantics.IS_UNCONDITIONAL_JUMP, OpSemantics.IS_CONDITIONAL_JUMP):
                continue
            if inst.statically_resolvable_operand():
                targets.append(inst.resolve_operand_address(addr + inst.length))
        targets.extend(a for a, _ in self._predef)
        return [t for t in targets if self.address_in_range(t)]

    def content_bytes(self) -> bytes:
        return self.fb.data[self.content_start_index:]

    def add_stat(self, name: str, n: int = 1) -> None:
        self._stats[name] = self._stats.get(name, 0) + n

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # --- internals ---

    def _bytes_left(self) -> int:
        return len(self.fb) - self.current_index

    def _eat_bytes(self, count: int) -> bytes:
        out = self.fb.data[self.current_index:self.current_index + count]
        if len(out) != count:
            raise IndexError(f"no byte at index {self.current_index + len(out)} in {self.fb.name}")
        self.current_index += count
        return out

    def _predef_labels_comments(self, addr: int) -> LabelsComments:
        lc = LabelsComments()
        for a, found in self._predef:
            if a == addr:
                lc = lc.merge(found)
        return lc

    def _edict_or_bust(self, edict: Edict, lc: LabelsComments) -> Line:
        if edict.length > self._bytes_left():
            log.debug("%s at index %d won't fit in %s", edict.describe(), self.current_index, self.fb.name)
            lc.add_comments("edict won't fit")
            return ByteDeclaration(self._eat_bytes(self._bytes_left()), lc)
        line = edict.create(self.fb)
        self.current_index += edict.length
        self.add_stat("edicts applied")
        if len(lc):
            line.lc.labels[:0] = lc.labels
            line.lc.comments[:0] = lc.comments
        return line

    def _edict_ahead(self, n: int) -> bool:
        return self.meta.get_edict(self.current_index + n) is not None

    def _instruction_ahead(self, n: int) -> bool:
        address = self.current_address + n
        return address in self._entry_addresses or address in self._instruction_starts

    def _edict_aware_instruction(self, inst_len: int, lc: LabelsComments) -> Line:
        # operand bytes that are claimed by an edict or a known instruction start are data
        for n in range(1, inst_len):
            if self._edict_ahead(n):
                lc.add_comments(f"inferred via edict@+{n}")
                self.add_stat("inferred declarations")
                return ByteDeclaration(self._eat_bytes(n), lc)
            if self._instruction_ahead(n):
                lc.add_comments(f"inferred by instruction at ${self.current_address + n:04X} (+{n})")
                self.add_stat("inferred declarations")
                return ByteDeclaration(self._eat_bytes(n), lc)

        inst = disassemble1(self.iset, self.fb.data, self.current_index)
        if inst is None:
            raise ValueError(f"not enough bytes to disassemble instruction at index {self.current_index}")
        self.current_index += inst.length
        return InstructionLine.of(inst, lc)

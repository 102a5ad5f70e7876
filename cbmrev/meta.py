"""
Format metadata: the per-format policy that tells the disassembler and
tracer where a binary loads, where execution starts, which header bytes are
literal data, and which addresses belong to the binary.

All metadata objects are immutable and safe to share between analyses.
"""

from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Sequence, Tuple

from .blob import FileBlob
from .declarations import LabelsComments, mk_comments
from .edicts import Edict, WordDefinitionEdict
from .symbols import EMPTY_SYMBOLS, SymbolTable


@dataclasses.dataclass(frozen=True)
class MemoryConfiguration:
    """Memory layout of one machine configuration, e.g. an expanded VIC-20."""

    name: str
    basic_program_start: int
    short_name: str = ""


@dataclasses.dataclass(frozen=True)
class EntryPoint:
    address: int
    name: str
    description: str = ""


class DisassemblyMeta:

    def base_address(self, fb: FileBlob) -> int:
        raise NotImplementedError

    @property
    def content_start_offset(self) -> int:
        raise NotImplementedError

    def execution_entry_points(self, fb: FileBlob) -> List[EntryPoint]:
        raise NotImplementedError

    def get_edict(self, offset: int) -> Optional[Edict]:
        raise NotImplementedError

    def resolve_symbols(self, fb: FileBlob) -> List[Tuple[int, LabelsComments]]:
        """Addresses with predefined labels or comments, e.g. cart vectors."""
        raise NotImplementedError

    @property
    def symbol_table(self) -> SymbolTable:
        raise NotImplementedError

    def is_in_binary(self, addr: int, fb: FileBlob) -> bool:
        raise NotImplementedError


class VectorMeta(DisassemblyMeta):
    """
    Metadata for binaries that carry their load address and entry vectors at
    fixed offsets, such as cartridge dumps.

    jump_vector_offsets lists (offset, name) pairs; the 16 bit word at each
    offset is an entry point. vector_labels lists (offset, labels) pairs that
    label the address each vector points to.
    """

    def __init__(
        self,
        base_address_offset: int = 0,
        jump_vector_offsets: Sequence[Tuple[int, str]] = (),
        content_start_offset: Optional[int] = None,
        edicts: Sequence[Edict] = (),
        vector_labels: Sequence[Tuple[int, LabelsComments]] = (),
        symbol_table: SymbolTable = EMPTY_SYMBOLS,
    ) -> None:
        self._base_address_offset = base_address_offset
        self._jump_vector_offsets = tuple(jump_vector_offsets)
        self._content_start_offset = base_address_offset if content_start_offset is None else content_start_offset
        self._edicts: Dict[int, Edict] = {e.offset: e for e in edicts}
        self._vector_labels = tuple(vector_labels)
        self._symbol_table = symbol_table

    def base_address(self, fb: FileBlob) -> int:
        return fb.read16(self._base_address_offset)

    @property
    def content_start_offset(self) -> int:
        return self._content_start_offset

    def execution_entry_points(self, fb: FileBlob) -> List[EntryPoint]:
        return [EntryPoint(fb.read_vector(off), name) for off, name in self._jump_vector_offsets]

    def get_edict(self, offset: int) -> Optional[Edict]:
        return self._edicts.get(offset)

    def resolve_symbols(self, fb: FileBlob) -> List[Tuple[int, LabelsComments]]:
        return [(fb.read_vector(off), lc) for off, lc in self._vector_labels]

    @property
    def symbol_table(self) -> SymbolTable:
        return self._symbol_table

    def is_in_binary(self, addr: int, fb: FileBlob) -> bool:
        # content_start_offset is the file offset loaded at the base address
        base = self.base_address(fb)
        return base <= addr < base + len(fb) - self._content_start_offset


NULL_META = VectorMeta(0, [(0, "NULL")], 0)


# --- BASIC stub ---

PRG_CONTENT_OFFSET = 2


class BasicStubMeta(DisassemblyMeta):
    """Metadata for a PRG whose BASIC stub SYS-calls into machine code at entry_point."""

    def __init__(self, memory_config: MemoryConfiguration, symbol_table: SymbolTable,
                 entry_point: int, entry_point_desc: str) -> None:
        self.memory_config = memory_config
        self._symbol_table = symbol_table
        self.entry_point = entry_point
        self.entry_point_desc = entry_point_desc
        self._edicts: Dict[int, Edict] = {
            2: WordDefinitionEdict(2, mk_comments("Next line pointer")),
            4: WordDefinitionEdict(4, mk_comments("BASIC line number"), decimal=True),
        }

    def base_address(self, fb: FileBlob) -> int:
        return fb.read16(0)

    @property
    def content_start_offset(self) -> int:
        return PRG_CONTENT_OFFSET

    def execution_entry_points(self, fb: FileBlob) -> List[EntryPoint]:
        return [EntryPoint(self.entry_point, self.entry_point_desc)]

    def get_edict(self, offset: int) -> Optional[Edict]:
        return self._edicts.get(offset)

    def resolve_symbols(self, fb: FileBlob) -> List[Tuple[int, LabelsComments]]:
        return [(self.entry_point, LabelsComments.of("entry", f"called from {self.entry_point_desc}"))]

    @property
    def symbol_table(self) -> SymbolTable:
        return self._symbol_table

    def is_in_binary(self, addr: int, fb: FileBlob) -> bool:
        start = self.memory_config.basic_program_start
        return start <= addr < start + len(fb) - PRG_CONTENT_OFFSET

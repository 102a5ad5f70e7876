"""
Edicts: offset-keyed overrides that force a literal decoding.

Formats use them to carve out header fields (BASIC line links and numbers,
cartridge vectors and signatures) so they are not mis-decoded as opcodes.
"""

from __future__ import annotations

from .blob import FileBlob
from .declarations import LabelsComments, Line, TextDeclaration, WordDefinition
from .petscii import to_listing


class Edict:
    offset: int
    length: int

    def create(self, fb: FileBlob) -> Line:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


class WordDefinitionEdict(Edict):
    length = 2

    def __init__(self, offset: int, lc: LabelsComments, decimal: bool = False) -> None:
        self.offset = offset
        self.lc = lc
        self.decimal = decimal

    def create(self, fb: FileBlob) -> WordDefinition:
        data = bytes([fb.read8(self.offset), fb.read8(self.offset + 1)])
        return WordDefinition(data=data, lc=self.lc.copy(), value=fb.read16(self.offset), decimal=self.decimal)

    def describe(self) -> str:
        return f"word definition at offset {self.offset}"


class TextDefinitionEdict(Edict):

    def __init__(self, offset: int, length: int, lc: LabelsComments) -> None:
        if length < 1:
            raise ValueError(f"text definition needs at least one byte, got {length}")
        self.offset = offset
        self.length = length
        self.lc = lc

    def create(self, fb: FileBlob) -> TextDeclaration:
        data = bytes(fb.read8(self.offset + i) for i in range(self.length))
        return TextDeclaration(data=data, lc=self.lc.copy(), text=to_listing(data))

    def describe(self) -> str:
        return f"{self.length} byte text definition at offset {self.offset}"


class CartSigEdict(TextDefinitionEdict):

    def __init__(self, offset: int, length: int, desc: str) -> None:
        super().__init__(offset, length, LabelsComments.of("cartSig", desc))

    def describe(self) -> str:
        return "cart signature"

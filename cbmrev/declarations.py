"""
Lines produced by a linear disassembly.

Each line covers a run of bytes and is either a decoded instruction or a
literal declaration (bytes, a word, or text). Lines carry labels and comments
but no formatting; turning them into assembly source is left to the renderer.
"""

from __future__ import annotations

import dataclasses
from typing import List, Optional

from .mos6502 import FullInstruction


@dataclasses.dataclass
class LabelsComments:
    labels: List[str] = dataclasses.field(default_factory=list)
    comments: List[str] = dataclasses.field(default_factory=list)

    @classmethod
    def of(cls, label: Optional[str] = None, comment: Optional[str] = None) -> "LabelsComments":
        return cls(labels=[label] if label else [], comments=[comment] if comment else [])

    def add_comments(self, *comments: str) -> None:
        self.comments.extend(comments)

    def merge(self, other: "LabelsComments") -> "LabelsComments":
        return LabelsComments(labels=self.labels + other.labels, comments=self.comments + other.comments)

    def copy(self) -> "LabelsComments":
        return LabelsComments(labels=list(self.labels), comments=list(self.comments))

    def __len__(self) -> int:
        return len(self.labels) + len(self.comments)


def mk_labels(*labels: str) -> LabelsComments:
    return LabelsComments(labels=list(labels))


def mk_comments(*comments: str) -> LabelsComments:
    return LabelsComments(comments=list(comments))


@dataclasses.dataclass(frozen=True)
class Line:
    data: bytes
    lc: LabelsComments

    @property
    def length(self) -> int:
        return len(self.data)

    def bytes(self) -> List[int]:
        return list(self.data)


@dataclasses.dataclass(frozen=True)
class ByteDeclaration(Line):
    pass


@dataclasses.dataclass(frozen=True)
class WordDefinition(Line):
    value: int = 0
    decimal: bool = False


@dataclasses.dataclass(frozen=True)
class TextDeclaration(Line):
    text: str = ""


@dataclasses.dataclass(frozen=True)
class InstructionLine(Line):
    instruction: Optional[FullInstruction] = None

    @classmethod
    def of(cls, inst: FullInstruction, lc: LabelsComments) -> "InstructionLine":
        return cls(data=bytes(inst.bytes()), lc=lc, instruction=inst)

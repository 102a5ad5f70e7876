"""
Byte blobs: the named, immutable byte sequences every analysis runs over.

A blob is created once per analysis request and never changes. Loading from
disk is a convenience for the command line; the analysis code only ever sees
the bytes.
"""

from __future__ import annotations

import dataclasses
import os
from typing import List, Sequence


# --- byte order ---

class Endian:
    name = "?"

    def word_to_two_bytes(self, word: int) -> List[int]:
        raise NotImplementedError

    def two_bytes_to_word(self, pair: Sequence[int]) -> int:
        raise NotImplementedError


class LittleEndian(Endian):
    name = "little"

    def word_to_two_bytes(self, word: int) -> List[int]:
        return [word & 0xFF, (word >> 8) & 0xFF]

    def two_bytes_to_word(self, pair: Sequence[int]) -> int:
        return (pair[0] & 0xFF) | ((pair[1] & 0xFF) << 8)


class BigEndian(Endian):
    name = "big"

    def word_to_two_bytes(self, word: int) -> List[int]:
        return [(word >> 8) & 0xFF, word & 0xFF]

    def two_bytes_to_word(self, pair: Sequence[int]) -> int:
        return ((pair[0] & 0xFF) << 8) | (pair[1] & 0xFF)


LITTLE_ENDIAN = LittleEndian()
BIG_ENDIAN = BigEndian()


# --- blob ---

@dataclasses.dataclass(frozen=True)
class FileBlob:
    name: str
    data: bytes
    endian: Endian = LITTLE_ENDIAN

    def __post_init__(self) -> None:
        # accept lists and bytearrays but always hold immutable bytes
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_path(cls, path: str, endian: Endian = LITTLE_ENDIAN) -> "FileBlob":
        with open(path, "rb") as f:
            buf = f.read()
        return cls(name=os.path.basename(path), data=buf, endian=endian)

    def __len__(self) -> int:
        return len(self.data)

    def read8(self, offset: int) -> int:
        if offset < 0 or offset >= len(self.data):
            raise IndexError(f"offset {offset} outside {self.name} ({len(self.data)} bytes)")
        return self.data[offset]

    def read16(self, offset: int) -> int:
        return self.endian.two_bytes_to_word([self.read8(offset), self.read8(offset + 1)])

    def read_vector(self, offset: int) -> int:
        """Reads a 16 bit pointer stored at offset, e.g. a cart reset vector."""
        return self.read16(offset)

    def submatch(self, seq: Sequence[int], offset: int) -> bool:
        """True if seq occurs in the blob starting at offset. An empty seq never matches."""
        if not seq or offset < 0 or offset + len(seq) > len(self.data):
            return False
        return self.data[offset:offset + len(seq)] == bytes(seq)

    def has_ext(self, ext: str) -> bool:
        return self.name.lower().endswith("." + ext.lower())


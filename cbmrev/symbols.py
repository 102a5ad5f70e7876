"""Address to label mappings for KERNAL routines and well known registers."""

from __future__ import annotations

import dataclasses
from typing import Dict, FrozenSet, Iterator, Optional


SUB = "sub"  # subroutine
REG = "reg"  # register or fixed memory location


@dataclasses.dataclass(frozen=True)
class SymDef:
    s_type: str
    name: str
    value: int
    description: str
    blurb: str = ""


class SymbolTable:

    def __init__(self, name: str) -> None:
        self.name = name
        self._by_value: Dict[int, SymDef] = {}
        self._by_name: Dict[str, SymDef] = {}

    def _add(self, s_type: str, value: int, name: str, description: str, blurb: str) -> SymDef:
        if name in self._by_name:
            raise ValueError(f"symbol {name} already defined in {self.name}")
        if value in self._by_value:
            raise ValueError(f"${value:04X} already defined as {self._by_value[value].name} in {self.name}")
        sym = SymDef(s_type=s_type, name=name, value=value, description=description, blurb=blurb)
        self._by_value[value] = sym
        self._by_name[name] = sym
        return sym

    def sub(self, value: int, name: str, description: str, blurb: str = "") -> SymDef:
        return self._add(SUB, value, name, description, blurb)

    def reg(self, value: int, name: str, description: str, blurb: str = "") -> SymDef:
        return self._add(REG, value, name, description, blurb)

    def by_value(self, value: int) -> Optional[SymDef]:
        return self._by_value.get(value)

    def by_name(self, name: str) -> Optional[SymDef]:
        return self._by_name.get(name)

    def subroutine_addresses(self) -> FrozenSet[int]:
        return frozenset(v for v, s in self._by_value.items() if s.s_type == SUB)

    def __iter__(self) -> Iterator[SymDef]:
        return iter(sorted(self._by_value.values(), key=lambda s: s.value))

    def __len__(self) -> int:
        return len(self._by_value)


EMPTY_SYMBOLS = SymbolTable("empty")

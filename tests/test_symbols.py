import pytest

from cbmrev.machines import C64_SYM, VIC20_SYM
from cbmrev.symbols import REG, SUB, SymbolTable


def test_lookups() -> None:
    chrout = C64_SYM.by_value(0xFFD2)
    assert chrout is not None and chrout.name == "chrout"
    assert chrout.s_type == SUB
    assert C64_SYM.by_name("BORDER").value == 0xD020
    assert C64_SYM.by_name("BORDER").s_type == REG
    assert C64_SYM.by_name("nope") is None
    assert VIC20_SYM.by_value(0xFFD2).name == "ichrout"


def test_subroutine_addresses_exclude_registers() -> None:
    subs = C64_SYM.subroutine_addresses()
    assert 0xFFD2 in subs
    assert 0xD020 not in subs


def test_duplicates_are_rejected() -> None:
    table = SymbolTable("t")
    table.sub(0x1000, "start", "entry")
    with pytest.raises(ValueError):
        table.sub(0x1001, "start", "again")
    with pytest.raises(ValueError):
        table.reg(0x1000, "other", "same address")
    assert len(table) == 1


def test_iteration_is_ordered_by_address() -> None:
    table = SymbolTable("t")
    table.reg(0xD020, "border", "border")
    table.sub(0x1000, "start", "entry")
    assert [s.value for s in table] == [0x1000, 0xD020]

import json
from pathlib import Path

import pytest

from cbmrev.cli import fmt_operand, main
from cbmrev.machines import C64_SYM
from cbmrev.mos6502 import ISA, FullInstruction

from helpers import basic_prg, cart_bin, stub_prg


def _write(tmp_path: Path, name: str, data: bytes) -> str:
    path = tmp_path / name
    path.write_bytes(data)
    return str(path)


def test_fmt_operand() -> None:
    def fi(*bs):
        return FullInstruction(ISA.instruction(bs[0]), tuple(bs[1:]))

    assert fmt_operand(fi(0xEA), 0x1000) == ""
    assert fmt_operand(fi(0x0A), 0x1000) == "A"
    assert fmt_operand(fi(0xA9, 0x41), 0x1000) == "#$41"
    assert fmt_operand(fi(0x9D, 0x00, 0x04), 0x1000) == "$0400,X"
    assert fmt_operand(fi(0x6C, 0x14, 0x03), 0x1000) == "($0314)"
    assert fmt_operand(fi(0xB1, 0xFB), 0x1000) == "($FB),Y"
    assert fmt_operand(fi(0xD0, 0xFE), 0x1000) == "$1000"
    assert fmt_operand(fi(0x20, 0xD2, 0xFF), 0x1000) == "$FFD2"
    assert fmt_operand(fi(0x20, 0xD2, 0xFF), 0x1000, C64_SYM) == "chrout"


def test_sniff(tmp_path, capsys) -> None:
    path = _write(tmp_path, "stub.prg", stub_prg(0x0801))
    assert main(["sniff", path, "--top", "3"]) == 0
    out = capsys.readouterr().out
    assert "best: C64 Machine Code with BASIC stub (192)" in out


def test_sniff_cart(tmp_path, capsys) -> None:
    path = _write(tmp_path, "cart.bin", cart_bin())
    assert main(["sniff", path, "--no-colors"]) == 0
    assert "best: C64 cart image (3)" in capsys.readouterr().out


def test_basic_listing(tmp_path, capsys) -> None:
    path = _write(tmp_path, "hello.prg", basic_prg(0x0801, [(10, b'\x99 "HI"'), (20, b"\x80")]))
    assert main(["basic", path]) == 0
    assert capsys.readouterr().out.splitlines() == ['10 PRINT "hi"', "20 END"]


def test_basic_listing_failure(tmp_path) -> None:
    path = _write(tmp_path, "tiny.prg", b"\x01\x08\x00")
    with pytest.raises(SystemExit) as e:
        main(["basic", path])
    assert "Failed to parse BASIC PRG" in str(e.value)


def test_disasm(tmp_path, capsys) -> None:
    path = _write(tmp_path, "stub.prg", stub_prg(0x0801))
    assert main(["disasm", path]) == 0
    out = capsys.readouterr().out
    assert "; stub.prg as C64 Machine Code with BASIC stub" in out
    assert "entry:" in out
    assert "L080F:" in out
    assert "JSR chrout" in out
    assert "; edicts applied: 2" in out


def test_trace(tmp_path, capsys) -> None:
    path = _write(tmp_path, "cart.bin", cart_bin())
    assert main(["trace", path, "--format", "C64 cart image", "--trace-steps", "50"]) == 0
    out = capsys.readouterr().out
    assert "completed" in out
    assert "BORDER" in out


def test_unknown_format(tmp_path) -> None:
    path = _write(tmp_path, "cart.bin", cart_bin())
    with pytest.raises(SystemExit) as e:
        main(["trace", path, "--format", "amiga hunk"])
    assert "Unknown format: amiga hunk" in str(e.value)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(SystemExit) as e:
        main(["sniff", str(tmp_path / "nope.prg")])
    assert "cannot read" in str(e.value)


def test_bad_config(tmp_path) -> None:
    path = _write(tmp_path, "cart.bin", cart_bin())
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"weights": {"nope": 1}}), "utf-8")
    with pytest.raises(SystemExit) as e:
        main(["sniff", path, "--config", str(config)])
    assert "unknown weights: nope" in str(e.value)

import dataclasses

import pytest

from cbmrev.blob import FileBlob
from cbmrev.machines import ALL_MEMORY_CONFIGS, C64_CART_META, C64_MEMORY, C64_SYM, CBM80, VIC20_UNEXPANDED
from cbmrev.meta import NULL_META, BasicStubMeta
from cbmrev.registry import default_registry
from cbmrev.sniffers import (
    DEFAULT_WEIGHTS,
    MIN_STUB_SIZE,
    BasicSniffer,
    CartSniffer,
    CrtSniffer,
    SignatureSniffer,
    StubProfile,
    StubSniffer,
    evaluate_basic,
    guess_memory_config,
)

from helpers import STUB_CODE, basic_prg, cart_bin, stub_prg

C64_STUB = StubProfile("C64", C64_MEMORY, C64_SYM, ALL_MEMORY_CONFIGS)


def test_signature_sniffer() -> None:
    s = SignatureSniffer("C64 prg", "prg", ["prg"], ext="prg", prefix=(0x01, 0x08))
    assert s.sniff(FileBlob("a.prg", b"\x01\x08\x00")).score == pytest.approx(3.0)
    assert s.sniff(FileBlob("a.bin", b"\x01\x08\x00")).score == pytest.approx(1.8)
    assert s.sniff(FileBlob("a.bin", b"\x01\x10\x00")).score == pytest.approx(0.45)


def test_signature_without_prefix_never_matches() -> None:
    s = SignatureSniffer("any", "any", [])
    assert s.sniff(FileBlob("a.prg", b"\x01\x08")).score == pytest.approx(0.45)


def test_cart_sniffer_carries_meta() -> None:
    s = CartSniffer("C64 cart", "cart", ["cart"], CBM80, 6, C64_CART_META)
    result = s.sniff(FileBlob("cart.bin", cart_bin()))
    assert result.score == pytest.approx(3.0)
    assert result.meta is C64_CART_META
    assert s.sniff(FileBlob("x.bin", bytes(20))).score == pytest.approx(0.3)


def _crt(size: int, version=(1, 0), hw_type=(0, 0)) -> bytes:
    header = bytearray(size)
    header[0:16] = b"C64 CARTRIDGE   "
    header[0x14:0x16] = bytes(version)
    header[0x16:0x18] = bytes(hw_type)
    return bytes(header)


def test_crt_sniffer() -> None:
    s = CrtSniffer(C64_CART_META)
    assert s.sniff(FileBlob("x.crt", _crt(8194))).score == pytest.approx(90.0)
    assert s.sniff(FileBlob("x.crt", _crt(8194, version=(2, 0)))).score == pytest.approx(9.0)
    assert s.sniff(FileBlob("x.crt", _crt(8194, hw_type=(0, 5)))).score == pytest.approx(0.9)


def test_short_crt() -> None:
    result = CrtSniffer(C64_CART_META).sniff(FileBlob("x.crt", _crt(64)))
    assert result.score == pytest.approx(0.3)
    assert "binary too short for C64 CRT format" in result.stench.messages


def test_one_line_print_scores_well(print_blob) -> None:
    stench = evaluate_basic(print_blob, C64_MEMORY)
    assert stench.score == pytest.approx(1.8 * 2.5 * 2.5)
    assert stench.score >= 1
    assert stench.messages == []


def test_decreasing_line_numbers_score_lower() -> None:
    up = FileBlob("up.prg", basic_prg(0x0801, [(10, b"\x80"), (20, b"\x80")]))
    down = FileBlob("down.prg", basic_prg(0x0801, [(20, b"\x80"), (10, b"\x80")]))
    assert evaluate_basic(down, C64_MEMORY).score < evaluate_basic(up, C64_MEMORY).score
    assert evaluate_basic(down, C64_MEMORY).score == pytest.approx(1.8 * 6.25 * 0.25)


def test_wrong_load_address(print_blob) -> None:
    stench = evaluate_basic(print_blob, VIC20_UNEXPANDED)
    assert stench.score == pytest.approx(0.2 * 6.25)
    assert "doesn't match $1001" in stench.messages[0]


def test_unbalanced_for_next() -> None:
    fb = FileBlob("for.prg", basic_prg(0x0801, [(10, b"\x81 I\xb21 \xa4 10")]))
    assert evaluate_basic(fb, C64_MEMORY).score == pytest.approx(1.8 * 6.25 / 4)
    fb = FileBlob("next.prg", basic_prg(0x0801, [(10, b"\x82 I")]))
    # more nexts than fors, then unbalanced at the end
    assert evaluate_basic(fb, C64_MEMORY).score == pytest.approx(1.8 * 0.1 * 6.25 / 4)


def test_decode_failure_scores_low() -> None:
    stench = evaluate_basic(FileBlob("x.prg", b"\x01\x08\x00"), C64_MEMORY)
    assert stench.score == pytest.approx(DEFAULT_WEIGHTS.basic_decode_failed)
    assert stench.messages[-1].startswith("basic decoder exploded")


def test_no_complete_lines_is_noted() -> None:
    # the only line runs off the end of the file
    stench = evaluate_basic(FileBlob("cut.prg", b"\x01\x08\x0b\x08\x0a\x00\x99\x20\x22\x48\x49"), C64_MEMORY)
    assert stench.score == pytest.approx(1.8)
    assert stench.messages == ["no complete basic lines in cut.prg"]


def test_stub_trailer_gives_up_on_basic(stub_blob) -> None:
    result = BasicSniffer(C64_MEMORY).sniff(stub_blob)
    assert result.score == pytest.approx(11.25 * 0.001)
    assert result.meta is NULL_META


def test_guess_memory_config() -> None:
    assert guess_memory_config(FileBlob("x", b"\x01\x08"), ALL_MEMORY_CONFIGS) is C64_MEMORY
    assert guess_memory_config(FileBlob("x", b"\x01\x10"), ALL_MEMORY_CONFIGS) is VIC20_UNEXPANDED
    assert guess_memory_config(FileBlob("x", b"\x00\x80"), ALL_MEMORY_CONFIGS) is None
    assert guess_memory_config(FileBlob("x", b"\x01"), ALL_MEMORY_CONFIGS) is None


def test_stub_sniffer(stub_blob) -> None:
    result = StubSniffer(C64_STUB).sniff(stub_blob)
    assert result.score == pytest.approx(3 * 2 * 4 * 4 * 2)
    assert isinstance(result.meta, BasicStubMeta)
    assert result.meta.entry_point == 2061
    assert "more than 5 steps traced" in result.stench.messages


def test_stub_outscores_basic(stub_blob) -> None:
    stub = StubSniffer(C64_STUB).sniff(stub_blob).score
    basic = BasicSniffer(C64_MEMORY).sniff(stub_blob).score
    assert stub > basic


STUB_SNIFFERS = [f.sniffer for f in default_registry() if isinstance(f.sniffer, StubSniffer)]


@pytest.mark.parametrize("size", range(MIN_STUB_SIZE))
def test_small_stub_scores_below_one(size: int) -> None:
    fb = FileBlob("tiny.prg", stub_prg(0x0801)[:size])
    result = StubSniffer(C64_STUB).sniff(fb)
    assert result.score < 1
    assert result.meta is NULL_META
    if size >= 2:
        assert result.stench.messages == ["binary too small to be machine code with basic stub"]


@pytest.mark.parametrize("sniffer", STUB_SNIFFERS, ids=lambda s: s.desc)
def test_stub_with_foreign_load_address_scores_below_one(sniffer: StubSniffer) -> None:
    own = sniffer.profile.memory_config.basic_program_start
    loads = {mc.basic_program_start for mc in ALL_MEMORY_CONFIGS} - {own}
    for load in sorted(loads | {0xC000}):
        result = sniffer.sniff(FileBlob("other.prg", stub_prg(load)))
        assert result.score < 1, f"${load:04x}"
        assert result.meta is NULL_META


def test_stub_for_other_machine() -> None:
    result = StubSniffer(C64_STUB).sniff(FileBlob("vic.prg", stub_prg(0x1001)))
    assert result.score == pytest.approx(0.1)
    assert result.meta is NULL_META


def test_stub_without_sys(basic_blob) -> None:
    result = StubSniffer(C64_STUB).sniff(basic_blob)
    assert result.score == pytest.approx(3 * 2 * 0.5)
    assert result.stench.messages == ["Could not find the sys token"]


def test_stub_without_sys_argument() -> None:
    fb = FileBlob("x.prg", basic_prg(0x0801, [(10, b"\x9e  :")], trailer=STUB_CODE))
    result = StubSniffer(C64_STUB).sniff(fb)
    assert result.score == pytest.approx(3 * 2 * 4 * 0.4)


def test_short_trace() -> None:
    # SYS into a lone RTS
    fb = FileBlob("x.prg", stub_prg(0x0801, code=b"\x60" + bytes(10)))
    result = StubSniffer(C64_STUB).sniff(fb)
    assert result.score == pytest.approx(3 * 2 * 4 * 4 * 0.5)
    assert "5 or fewer steps traced" in result.stench.messages


def test_custom_weights(stub_blob) -> None:
    weights = dataclasses.replace(DEFAULT_WEIGHTS, stub_config_match=1.0, stub_traced=1.0)
    assert StubSniffer(C64_STUB, weights).sniff(stub_blob).score == pytest.approx(2 * 4 * 4)

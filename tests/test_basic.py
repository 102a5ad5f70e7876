import pytest

from cbmrev.basic import count_for_next, decode_basic, detokenize_basic_line, read_digits
from cbmrev.blob import FileBlob
from cbmrev.errors import BasicDecodeError

from helpers import FOR_NEXT_LINES, basic_prg, stub_prg


def test_detokenize() -> None:
    assert detokenize_basic_line(b'\x99 "HI"') == 'PRINT "hi"'
    assert detokenize_basic_line(b"\x81 I\xb21 \xa4 10") == "FOR i=1 TO 10"
    assert detokenize_basic_line(b"\x99I") == "PRINTi"
    assert detokenize_basic_line(b"\x8f PRINT \x99") == "REM print {lgrn}"
    assert detokenize_basic_line(b"\xfe") == "{TOK:FE}"


def test_detokenize_shifted_and_control_characters_in_quotes() -> None:
    # PRINT "{clr}Hello" with a shifted H, then PRINT "£" and a graphics character
    assert detokenize_basic_line(b'\x99"\x93\xc8ELLO"') == 'PRINT "{clr}Hello"'
    assert detokenize_basic_line(b'\x99"\x5c\xa6"') == 'PRINT "£{CBM-+}"'
    # inside quotes token bytes are characters
    assert detokenize_basic_line(b'\x99"\x99\x81"') == 'PRINT "{lgrn}{orng}"'


def test_decode_program() -> None:
    lines = decode_basic(FileBlob("loop.prg", basic_prg(0x0801, FOR_NEXT_LINES)))
    assert [line.number for line in lines] == [10, 20, 30]
    assert [line.text for line in lines] == ["FOR i=1 TO 10", "PRINT i", "NEXT i"]
    assert lines[0].address == 0x0801
    assert lines[0].next_address == lines[1].address
    assert lines[0].byte_size == 15


def test_trailing_bytes_become_a_note() -> None:
    lines = decode_basic(FileBlob("stub.prg", stub_prg(0x0801)))
    assert len(lines) == 2
    assert lines[0].text == "SYS2061"
    note = lines[1]
    assert note.is_note
    assert note.address == 0x080D
    assert note.byte_size == 14
    assert note.text == "14 trailing bytes: $a2, $00, $a9, $41, $9d, $00, $04, $e8, $d0, $f8, $20, $d2, $ff, $60"


def test_long_trailer_is_counted() -> None:
    lines = decode_basic(FileBlob("x.prg", basic_prg(0x0801, [(10, b"\x80")], trailer=bytes(20))))
    assert lines[-1].text == "20 trailing bytes: 20"


def test_too_small() -> None:
    with pytest.raises(BasicDecodeError):
        decode_basic(FileBlob("x.prg", b"\x01\x08\x00\x00"))


def test_zero_link_at_line_start() -> None:
    with pytest.raises(BasicDecodeError):
        decode_basic(FileBlob("x.prg", b"\x01\x08\x00\x00\x0a\x00\x99\x00\x00\x00"))


def test_unterminated_line_is_dropped() -> None:
    lines = decode_basic(FileBlob("x.prg", b"\x01\x08\x0b\x08\x0a\x00\x99\x20\x22\x48\x49"))
    assert lines == []


def test_count_for_next_ignores_quotes_and_rem() -> None:
    lines = decode_basic(FileBlob("x.prg", basic_prg(0x0801, [
        (10, b"\x81I\xb21\xa42:\x82I"),
        (20, b'\x99"\x81":\x8f\x82'),
    ])))
    assert count_for_next(lines[0]) == (1, 1)
    assert count_for_next(lines[1]) == (0, 0)


def test_read_digits() -> None:
    fb = FileBlob("x", b"\x9e2061\x00")
    assert read_digits(fb, 1) == "2061"
    assert read_digits(fb, 0) == ""
    assert read_digits(fb, 6) == ""

from cbmrev.machines import A0CBM, CBM80
from cbmrev.petscii import C64_LISTING, listing_char, to_listing


def test_every_byte_has_a_listing_form() -> None:
    assert len(C64_LISTING) == 256
    assert all(C64_LISTING)


def test_letters() -> None:
    assert to_listing(b"HELLO") == "hello"
    assert to_listing(bytes([0xC8, 0xC5, 0xCC, 0xCC, 0xCF])) == "HELLO"


def test_cart_signatures() -> None:
    assert to_listing(bytes(CBM80)) == "CBM80"
    assert to_listing(bytes(A0CBM)) == "a0CBM"


def test_control_and_graphics_characters() -> None:
    assert listing_char(0x20) == " "
    assert listing_char(0x0D) == "{\\n}"
    assert listing_char(0x93) == "{clr}"
    assert listing_char(0x01) == "{CTRL-A}"
    assert listing_char(0xA1) == "{CBM-K}"
    assert listing_char(0xA8) == "{shft pound}"
    assert listing_char(0x60) == "{$60}"
    assert listing_char(0xFF) == "~"

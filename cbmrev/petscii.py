"""
PETSCII to listing text, the way VICE's petcat shows it in lower case mode.

Unshifted letters (0x41-0x5A) list as lower case, shifted letters (0xC1-0xDA)
as upper case. Control codes and graphics characters have no single printable
form, so they list as a {name} in braces.
"""

from __future__ import annotations

from typing import Dict, List


_NAMED: Dict[int, str] = {
    0x00: "{null}",
    0x03: "{stop}",
    0x05: "{wht}",
    0x08: "{dish}",
    0x09: "{ensh}",
    0x0A: "{$0a}",
    0x0C: "{\\f}",
    0x0D: "{\\n}",
    0x0E: "{swlc}",
    0x11: "{down}",
    0x12: "{rvon}",
    0x13: "{home}",
    0x14: "{del}",
    0x1C: "{red}",
    0x1D: "{right}",
    0x1E: "{green}",
    0x1F: "{blue}",
    0x5C: "£",
    0x5F: "{back arrow}",
    0x81: "{orng}",
    0x85: "{f1}",
    0x86: "{f3}",
    0x87: "{f5}",
    0x88: "{f7}",
    0x89: "{f2}",
    0x8A: "{f4}",
    0x8B: "{f6}",
    0x8C: "{f8}",
    0x8D: "{stret}",
    0x8E: "{swuc}",
    0x90: "{blk}",
    0x91: "{up}",
    0x92: "{rvof}",
    0x93: "{clr}",
    0x94: "{inst}",
    0x95: "{brn}",
    0x96: "{lred}",
    0x97: "{gry1}",
    0x98: "{gry2}",
    0x99: "{lgrn}",
    0x9A: "{lblu}",
    0x9B: "{gry3}",
    0x9C: "{pur}",
    0x9D: "{left}",
    0x9E: "{yel}",
    0x9F: "{cyn}",
    0xA8: "{shft pound}",
    0xA9: "{ctrl pound}",
    0xBA: "{SHIFT-@}",
    0xC0: "{SHIFT-*}",
    0xDB: "{SHIFT-+}",
    0xDC: "{CBM--}",
    0xDD: "{SHIFT--}",
    0xDF: "{CBM-*}",
    0xFF: "~",
}

# keys typed with the commodore key held, 0xA1-0xBF
_CBM_KEYS = "KIT@G+M..NQDZSPAERWHJLYUO.FCXVB"


def _build() -> List[str]:
    table = []
    for b in range(256):
        if b in _NAMED:
            ch = _NAMED[b]
        elif 0x01 <= b <= 0x1A:
            ch = f"{{CTRL-{chr(b + 0x40)}}}"
        elif 0x41 <= b <= 0x5A:
            ch = chr(b + 0x20)
        elif 0x20 <= b <= 0x5E:
            ch = chr(b)
        elif 0xA1 <= b <= 0xBF and _CBM_KEYS[b - 0xA1] != ".":
            ch = f"{{CBM-{_CBM_KEYS[b - 0xA1]}}}"
        elif 0xC1 <= b <= 0xDA:
            ch = chr(b - 0x80)
        else:
            ch = f"{{${b:02x}}}"
        table.append(ch)
    return table


C64_LISTING: List[str] = _build()


def listing_char(b: int) -> str:
    return C64_LISTING[b]


def to_listing(data: bytes) -> str:
    return "".join(C64_LISTING[b] for b in data)

"""
Format registry and best-format selection.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence, Tuple

from .blob import FileBlob
from .errors import CbmRevError
from .machines import (
    A0CBM,
    ALL_MEMORY_CONFIGS,
    C64_CART_MAGIC_OFFSET,
    C64_CART_META,
    C64_MEMORY,
    C64_SYM,
    CBM80,
    VIC20_CART_META,
    VIC20_CART_SIG_OFFSET,
    VIC20_MEMORY_CONFIGS,
    VIC20_SYM,
)
from .meta import MemoryConfiguration
from .sniffers import (
    DEFAULT_STUB_TRACE_STEPS,
    DEFAULT_WEIGHTS,
    BasicSniffer,
    CartSniffer,
    CrtSniffer,
    SignatureSniffer,
    Sniffer,
    SniffResult,
    SniffWeights,
    Stench,
    StubProfile,
    StubSniffer,
)


log = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Format:
    name: str
    desc: str
    tags: Tuple[str, ...]
    sniffer: Sniffer


@dataclasses.dataclass(frozen=True)
class Ranked:
    format: Format
    result: SniffResult

    @property
    def score(self) -> float:
        return self.result.score


def _fmt(sniffer: Sniffer) -> Format:
    return Format(sniffer.name, sniffer.desc, tuple(sniffer.tags), sniffer)


def _prg_signature(machine: str, mc: MemoryConfiguration, weights: SniffWeights) -> SignatureSniffer:
    start = mc.basic_program_start
    label = mc.short_name or mc.name
    return SignatureSniffer(
        f"{machine} prg ({label})",
        f"{machine} program file loading at ${start:04x} ({label})",
        ["prg", machine.lower()],
        ext="prg",
        prefix=(start & 0xFF, start >> 8),
        weights=weights,
    )


def default_registry(weights: SniffWeights = DEFAULT_WEIGHTS,
                     stub_trace_steps: int = DEFAULT_STUB_TRACE_STEPS) -> List[Format]:
    """Every format known for the C64 and the VIC-20, in ranking tie-break order."""
    formats: List[Format] = []

    # C64
    formats.append(_fmt(BasicSniffer(C64_MEMORY, name="C64 BASIC prg", tags=["c64"], weights=weights)))
    c64_stub = StubProfile("C64", C64_MEMORY, C64_SYM, ALL_MEMORY_CONFIGS)
    formats.append(_fmt(StubSniffer(c64_stub, weights, stub_trace_steps)))
    formats.append(_fmt(CartSniffer("C64 cart image", "C64 cartridge ROM dump", ["cart", "c64"],
                                    CBM80, C64_CART_MAGIC_OFFSET, C64_CART_META, weights)))
    formats.append(_fmt(CrtSniffer(C64_CART_META, weights)))
    formats.append(_fmt(_prg_signature("C64", C64_MEMORY, weights)))

    # VIC-20
    for mc in VIC20_MEMORY_CONFIGS:
        formats.append(_fmt(BasicSniffer(mc, name=f"VIC-20 BASIC prg ({mc.short_name})", tags=["vic20"],
                                         weights=weights)))
    for mc in VIC20_MEMORY_CONFIGS:
        profile = StubProfile("VIC-20", mc, VIC20_SYM, ALL_MEMORY_CONFIGS)
        sniffer = StubSniffer(profile, weights, stub_trace_steps)
        sniffer.name = f"{sniffer.name} ({mc.short_name})"
        formats.append(_fmt(sniffer))
    formats.append(_fmt(CartSniffer("VIC-20 cart image", "VIC-20 cartridge ROM dump", ["cart", "vic20"],
                                    A0CBM, VIC20_CART_SIG_OFFSET, VIC20_CART_META, weights)))
    for mc in VIC20_MEMORY_CONFIGS:
        formats.append(_fmt(_prg_signature("VIC-20", mc, weights)))
    return formats


def find_format(registry: Sequence[Format], name: str) -> Optional[Format]:
    """Looks a format up by exact name, then by case-insensitive name."""
    for f in registry:
        if f.name == name:
            return f
    lowered = name.lower()
    for f in registry:
        if f.name.lower() == lowered:
            return f
    return None


def select_best(fb: FileBlob, registry: Sequence[Format],
                weights: SniffWeights = DEFAULT_WEIGHTS) -> List[Ranked]:
    """
    Runs every sniffer on fb and returns the results, highest score first.

    Equal scores keep registry order. A sniffer failing on malformed input
    scores 0 and does not stop the others.
    """
    ranked: List[Ranked] = []
    for f in registry:
        try:
            result = f.sniffer.sniff(fb)
        except (CbmRevError, ValueError, IndexError) as e:
            log.debug("sniffer %s failed on %s: %s", f.name, fb.name, e)
            result = SniffResult(Stench(0.0, [f"sniffer failed: {e}"]))
        ranked.append(Ranked(f, result))

    ranked.sort(key=lambda r: r.score, reverse=True)

    if len(ranked) >= 2:
        best, second = ranked[0], ranked[1]
        if best.score > 0 and best.score <= second.score * weights.close_call_ratio:
            mesg = (f"close call between {best.format.name} ({best.score:.4g}) "
                    f"and {second.format.name} ({second.score:.4g})")
            stench = Stench(best.score, best.result.stench.messages + [mesg])
            ranked[0] = Ranked(best.format, SniffResult(stench, best.result.meta))
    for r in ranked[:3]:
        log.debug("%s: %s scored %s", fb.name, r.format.name, r.score)
    return ranked

"""
Format sniffers.

A sniffer looks at a blob and returns a Stench: a score built by multiplying
independent factors, with a message for each notable finding. Confirming
signals multiply by more than one and compound; a disconfirming signal
multiplies by less than one and can push the whole score towards zero. The
score is not a probability, only a ranking value.

All factors come from SniffWeights so they can be recalibrated without code
changes.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence, Tuple

from .basic import TOKEN_SPACE, TOKEN_SYS, count_for_next, decode_basic, read_digits
from .blob import FileBlob
from .disasm import Disassembler
from .errors import BasicDecodeError, CbmRevError
from .meta import NULL_META, BasicStubMeta, DisassemblyMeta, MemoryConfiguration
from .mos6502 import ISA
from .symbols import SymbolTable
from .tracer import trace


log = logging.getLogger(__name__)

# according to https://www.c64-wiki.com/wiki/BASIC
MAX_BASIC_LINE_BYTES = 255
# smaller than this and a BASIC program is considered a stub at most
TINY_BASIC_SIZE = 20
MIN_STUB_SIZE = 20
SYS_OFFSET = 6
MIN_CRT_SIZE = 8194
CRT_VERSION_OFFSET = 0x14
CRT_VERSION1 = (0x01, 0x00)
CRT_HARDWARE_TYPE_OFFSET = 0x16
DEFAULT_STUB_TRACE_STEPS = 100


@dataclasses.dataclass(frozen=True)
class SniffWeights:
    """Multiplicative factors used by the sniffers."""

    signature_prefix_match: float = 2.0
    signature_prefix_miss: float = 0.5
    signature_ext_match: float = 1.5
    signature_ext_miss: float = 0.9

    cart_magic_match: float = 3.0
    cart_magic_miss: float = 0.3

    crt_too_short: float = 0.1
    crt_version_match: float = 3.0
    crt_version_miss: float = 0.3
    crt_normal_cart: float = 10.0
    crt_other_cart: float = 0.1

    basic_load_match: float = 1.8
    basic_load_miss: float = 0.2
    basic_line_too_long: float = 0.01
    basic_next_without_for: float = 0.1
    basic_line_number_decrease: float = 0.1
    basic_line_number_increase: float = 2.5
    basic_link_decrease: float = 0.1
    basic_link_increase: float = 2.5
    basic_trailing_give_up: float = 0.001
    basic_unbalanced_for_next: float = 4.0  # divisor per unmatched FOR/NEXT
    basic_decode_failed: float = 0.01

    stub_config_miss: float = 0.1
    stub_config_match: float = 3.0
    stub_too_small: float = 0.1
    stub_size_ok: float = 2.0
    stub_no_sys: float = 0.5
    stub_sys: float = 4.0
    stub_no_sys_argument: float = 0.4
    stub_sys_argument: float = 4.0
    stub_traced: float = 2.0
    stub_short_trace: float = 0.5
    stub_trace_failed: float = 0.4
    stub_min_trace_steps: int = 5

    close_call_ratio: float = 1.1


DEFAULT_WEIGHTS = SniffWeights()


@dataclasses.dataclass
class Stench:
    score: float
    messages: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class SniffResult:
    """The outcome of one sniff: the score and the metadata it implies for disassembly."""

    stench: Stench
    meta: DisassemblyMeta = NULL_META

    @property
    def score(self) -> float:
        return self.stench.score


class Sniffer:
    name = "?"
    desc = ""
    tags: Tuple[str, ...] = ()

    def sniff(self, fb: FileBlob) -> SniffResult:
        raise NotImplementedError


# --- signatures ---

class SignatureSniffer(Sniffer):
    """Scores a byte prefix at offset 0 and a filename extension."""

    def __init__(self, name: str, desc: str, tags: Sequence[str], ext: Optional[str] = None,
                 prefix: Sequence[int] = (), meta: DisassemblyMeta = NULL_META,
                 weights: SniffWeights = DEFAULT_WEIGHTS) -> None:
        self.name = name
        self.desc = desc
        self.tags = tuple(tags)
        self.exts = (ext,) if ext else ()
        self.prefix = tuple(prefix)
        self.meta = meta
        self.weights = weights

    def extension_match(self, fb: FileBlob) -> bool:
        return any(fb.has_ext(e) for e in self.exts)

    def data_match(self, fb: FileBlob) -> bool:
        return fb.submatch(self.prefix, 0)

    def sniff(self, fb: FileBlob) -> SniffResult:
        w = self.weights
        score = w.signature_prefix_match if self.data_match(fb) else w.signature_prefix_miss
        score *= w.signature_ext_match if self.extension_match(fb) else w.signature_ext_miss
        return SniffResult(Stench(score), self.meta)


class CartSniffer(Sniffer):
    """Scores a magic byte sequence at a fixed offset."""

    def __init__(self, name: str, desc: str, tags: Sequence[str], magic: Sequence[int], offset: int,
                 meta: DisassemblyMeta, weights: SniffWeights = DEFAULT_WEIGHTS) -> None:
        self.name = name
        self.desc = desc
        self.tags = tuple(tags)
        self.magic = tuple(magic)
        self.offset = offset
        self.meta = meta
        self.weights = weights

    def sniff(self, fb: FileBlob) -> SniffResult:
        w = self.weights
        score = w.cart_magic_match if fb.submatch(self.magic, self.offset) else w.cart_magic_miss
        return SniffResult(Stench(score), self.meta)


class CrtSniffer(CartSniffer):
    """CCS64 .crt cartridge container, see https://codebase64.org/doku.php?id=base:crt_file_format"""

    SIGNATURE = tuple(b"C64 CARTRIDGE   ")

    def __init__(self, meta: DisassemblyMeta, weights: SniffWeights = DEFAULT_WEIGHTS) -> None:
        super().__init__("C64 crt file", "CCS64 format cartridge file from C64 cartridge", ["cart", "c64"],
                         self.SIGNATURE, 0, meta, weights)

    def sniff(self, fb: FileBlob) -> SniffResult:
        w = self.weights
        result = super().sniff(fb)
        score = result.score
        if len(fb) < MIN_CRT_SIZE:
            return SniffResult(Stench(score * w.crt_too_short, ["binary too short for C64 CRT format"]), self.meta)
        score *= w.crt_version_match if fb.submatch(CRT_VERSION1, CRT_VERSION_OFFSET) else w.crt_version_miss
        # hardware type 0 is a normal cartridge, the only kind supported
        score *= w.crt_normal_cart if fb.submatch((0, 0), CRT_HARDWARE_TYPE_OFFSET) else w.crt_other_cart
        return SniffResult(Stench(score, result.stench.messages), self.meta)


# --- BASIC ---

def evaluate_basic(fb: FileBlob, memory_config: MemoryConfiguration,
                   weights: SniffWeights = DEFAULT_WEIGHTS) -> Stench:
    """
    Scores how much fb looks like a BASIC program loaded at the configured
    BASIC start: line numbers and line links should increase, lines should
    be of sane length, FOR and NEXT should balance and little should trail
    the program.
    """
    w = weights
    messages: List[str] = []
    expected = memory_config.basic_program_start
    if len(fb) >= 2 and fb.read16(0) == expected:
        score = w.basic_load_match
    else:
        score = w.basic_load_miss
        found = f"${fb.read16(0):04x}" if len(fb) >= 2 else "(none)"
        messages.append(f"{fb.name} load address {found} doesn't match ${expected:04x} ({memory_config.short_name})")

    # running count of FORs minus NEXTs, should never go negative and should end at zero
    for_sub_next = 0
    try:
        lines = decode_basic(fb)
    except BasicDecodeError as e:
        score = w.basic_decode_failed
        messages.append(f"basic decoder exploded: {e} (score {score})")
        return Stench(score, messages)

    if not lines:
        messages.append(f"no complete basic lines in {fb.name}")

    last_num = -1
    last_link = -1
    byte_count = 0
    for line in lines:
        if line.is_note:
            # maybe machine code follows, this is a pure basic sniffer
            remaining = len(fb) - byte_count
            if byte_count < TINY_BASIC_SIZE and remaining > byte_count:
                score *= w.basic_trailing_give_up
                messages.append("Large amount of non basic trailing data, giving up on basic")
            else:
                # the more remaining bytes, the less like basic this looks
                score *= 1 / remaining
            continue

        if line.byte_size > MAX_BASIC_LINE_BYTES:
            score *= w.basic_line_too_long
            messages.append(f"line too long in {fb.name}: {line.byte_size} bytes (score {score})")
        fors, nexts = count_for_next(line)
        for_sub_next += fors - nexts
        if for_sub_next < 0:
            score *= w.basic_next_without_for
            messages.append(f"more nexts than fors in {fb.name}: {for_sub_next} (score {score})")

        if last_num != -1 and last_num >= line.number:
            score *= w.basic_line_number_decrease
            messages.append(f"decrease in basic line numbers for {fb.name} (score {score})")
        else:
            score *= w.basic_line_number_increase
        if line.next_address <= line.address or line.next_address <= last_link:
            score *= w.basic_link_decrease
            messages.append(f"lower next line address for {fb.name} at ${line.address:04x} (score {score})")
        else:
            score *= w.basic_link_increase
        last_num = line.number
        last_link = line.next_address
        byte_count += line.byte_size

    if for_sub_next != 0:
        score *= 1 / (abs(for_sub_next) * w.basic_unbalanced_for_next)
        messages.append(f"fors and nexts don't balance: {for_sub_next} (score {score})")
    return Stench(score, messages)


class BasicSniffer(Sniffer):

    def __init__(self, memory_config: MemoryConfiguration, name: str = "BASIC prg", desc: Optional[str] = None,
                 tags: Sequence[str] = (), weights: SniffWeights = DEFAULT_WEIGHTS) -> None:
        self.memory_config = memory_config
        self.name = name
        self.desc = desc or f"CBM BASIC ({memory_config.short_name or memory_config.name})"
        self.tags = tuple(sorted({"basic", "cbm", *tags}))
        self.weights = weights

    def sniff(self, fb: FileBlob) -> SniffResult:
        stench = evaluate_basic(fb, self.memory_config, self.weights)
        log.debug("%s sniff for %s: %s", self.desc, fb.name, stench.score)
        return SniffResult(stench, NULL_META)


# --- BASIC stub plus machine code ---

@dataclasses.dataclass(frozen=True)
class StubProfile:
    """What a machine's BASIC SYS stub looks like."""

    machine: str
    memory_config: MemoryConfiguration
    symbol_table: SymbolTable
    # configurations a load address may indicate
    known_configs: Tuple[MemoryConfiguration, ...]
    sys_offset: int = SYS_OFFSET
    sys_token: int = TOKEN_SYS


def guess_memory_config(fb: FileBlob, known: Sequence[MemoryConfiguration]) -> Optional[MemoryConfiguration]:
    if len(fb) < 2:
        return None
    load_address = fb.read16(0)
    for mc in known:
        if mc.basic_program_start == load_address:
            return mc
    return None


class StubSniffer(Sniffer):
    """
    Machine code behind a one line BASIC program that SYS-calls it.

    Static checks on the stub are confirmed by tracing from the SYS address.
    """

    def __init__(self, profile: StubProfile, weights: SniffWeights = DEFAULT_WEIGHTS,
                 trace_steps: int = DEFAULT_STUB_TRACE_STEPS) -> None:
        self.profile = profile
        mc = profile.memory_config
        self.name = f"{profile.machine} Machine Code with BASIC stub"
        self.desc = f"{profile.machine} ({mc.short_name or mc.name}) 6502 Machine Code with BASIC stub"
        self.tags = tuple(sorted({"basic", "machine-code", profile.machine.lower(), *(
            [mc.short_name] if mc.short_name else [])}))
        self.weights = weights
        self.trace_steps = trace_steps

    def sniff(self, fb: FileBlob) -> SniffResult:
        w = self.weights
        p = self.profile
        score = 1.0
        messages: List[str] = []
        meta: DisassemblyMeta = NULL_META

        guessed = guess_memory_config(fb, p.known_configs)
        if guessed is None or guessed.basic_program_start != p.memory_config.basic_program_start:
            # the load address rules this memory configuration out
            score *= w.stub_config_miss
            return SniffResult(Stench(score, messages), meta)
        score *= w.stub_config_match

        if len(fb) < MIN_STUB_SIZE:
            messages.append("binary too small to be machine code with basic stub")
            score *= w.stub_too_small
            return SniffResult(Stench(score, messages), meta)
        score *= w.stub_size_ok

        if fb.read8(p.sys_offset) != p.sys_token:
            messages.append("Could not find the sys token")
            score *= w.stub_no_sys
            return SniffResult(Stench(score, messages), meta)
        score *= w.stub_sys

        i = p.sys_offset + 1
        while i < len(fb) and fb.read8(i) == TOKEN_SPACE:
            i += 1
        digits = read_digits(fb, i)
        if not digits:
            score *= w.stub_no_sys_argument
            messages.append("couldn't find sys command argument")
            return SniffResult(Stench(score, messages), meta)
        score *= w.stub_sys_argument

        start_address = int(digits, 10)
        stub_meta = BasicStubMeta(p.memory_config, p.symbol_table, start_address, f"BASIC stub SYS {start_address}")
        try:
            result = trace(Disassembler(ISA, fb, stub_meta), fb, stub_meta, self.trace_steps)
        except (CbmRevError, ValueError, IndexError) as e:
            log.debug("%s trace of %s failed: %s", self.name, fb.name, e)
            score *= w.stub_trace_failed
            messages.append("died trying to disassemble during sniff")
            return SniffResult(Stench(score, messages), meta)

        meta = stub_meta
        if result.steps > w.stub_min_trace_steps:
            messages.append(f"more than {w.stub_min_trace_steps} steps traced")
            score *= w.stub_traced
        else:
            messages.append(f"{w.stub_min_trace_steps} or fewer steps traced")
            score *= w.stub_short_trace
        log.debug("%s sniff for %s: %s", self.name, fb.name, score)
        return SniffResult(Stench(score, messages), meta)

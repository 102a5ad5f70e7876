"""
cbmrev - Commodore 8-bit binary sniffer, 6502 disassembler and tracer

Examples:
  cbmrev sniff programs/game.prg
  cbmrev basic programs/loader.prg
  cbmrev disasm programs/game.prg --format "C64 Machine Code with BASIC stub"
  cbmrev trace cart.bin --trace-steps 50000
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import List, Optional, Set, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .basic import decode_basic
from .blob import FileBlob
from .config import Settings, load_settings
from .declarations import InstructionLine, Line, TextDeclaration, WordDefinition
from .disasm import Disassembler
from .errors import BasicDecodeError, CbmRevError
from .logs import configure_logging
from .mos6502 import ISA, FullInstruction
from .registry import Format, default_registry, find_format, select_best
from .sniffers import SniffResult
from .symbols import SymbolTable
from .tracer import trace


log = logging.getLogger(__name__)


# --- rendering ---

def fmt_operand(inst: FullInstruction, addr: int, symbols: Optional[SymbolTable] = None) -> str:
    mode = inst.instruction.mode.code
    if mode == "impl":
        return ""
    if mode == "acc":
        return "A"
    v = inst.operand_value()
    if mode == "imm":
        return f"#${v:02X}"
    if mode == "rel":
        v = inst.resolve_operand_address(addr + inst.length)
    if symbols is not None and mode in ("abs", "rel", "zpg"):
        sym = symbols.by_value(v)
        if sym is not None:
            return sym.name
    if mode == "zpg":
        return f"${v:02X}"
    if mode == "zpg_x":
        return f"${v:02X},X"
    if mode == "zpg_y":
        return f"${v:02X},Y"
    if mode in ("abs", "rel"):
        return f"${v:04X}"
    if mode == "abs_x":
        return f"${v:04X},X"
    if mode == "abs_y":
        return f"${v:04X},Y"
    if mode == "ind":
        return f"(${v:04X})"
    if mode == "x_ind":
        return f"(${v:02X},X)"
    if mode == "ind_y":
        return f"(${v:02X}),Y"
    return ""


def _fmt_bytes(bs: List[int]) -> str:
    return " ".join(f"{b:02X}" for b in bs)


def fmt_line(addr: int, line: Line, symbols: Optional[SymbolTable] = None, traced: bool = False) -> str:
    """One listing line: address, raw bytes, source text and comments."""
    if isinstance(line, InstructionLine) and line.instruction is not None:
        inst = line.instruction
        operand = fmt_operand(inst, addr, symbols)
        src = f"{inst.instruction.op.mnemonic} {operand}".rstrip()
    elif isinstance(line, WordDefinition):
        src = f".word {line.value}" if line.decimal else f".word ${line.value:04X}"
    elif isinstance(line, TextDeclaration):
        src = f'.text "{line.text}"'
    else:
        src = ".byte " + ", ".join(f"${b:02X}" for b in line.bytes())

    raw = _fmt_bytes(line.bytes())
    if len(raw) > 8:
        raw = raw[:6] + ".."
    mark = "*" if traced else " "
    out = f"{addr:04X} {mark} {raw:<8}  {src}"
    if line.lc.comments:
        out = f"{out:<40} ; {'; '.join(line.lc.comments)}"
    return out


# --- commands ---

def _read(path: str) -> FileBlob:
    try:
        return FileBlob.from_path(path)
    except OSError as e:
        raise SystemExit(f"cannot read {path}: {e}")


def _choose(fb: FileBlob, settings: Settings, name: Optional[str]) -> Tuple[Format, SniffResult]:
    registry = default_registry(settings.weights, settings.stub_trace_steps)
    if name:
        f = find_format(registry, name)
        if f is None:
            raise SystemExit(f"Unknown format: {name}")
        return f, f.sniffer.sniff(fb)
    best = select_best(fb, registry, settings.weights)[0]
    return best.format, best.result


def cmd_sniff(console: Console, fb: FileBlob, settings: Settings, top: int) -> int:
    ranked = select_best(fb, default_registry(settings.weights, settings.stub_trace_steps), settings.weights)
    best = ranked[0]
    console.print(Text(f"best: {best.format.name} ({best.score:.4g})"))

    table = Table(title=f"{fb.name} ({len(fb)} bytes)")
    table.add_column("#", justify="right")
    table.add_column("Format")
    table.add_column("Score", justify="right")
    table.add_column("Notes")
    for i, r in enumerate(ranked[:top], start=1):
        table.add_row(str(i), Text(r.format.name), f"{r.score:.4g}", Text("\n".join(r.result.stench.messages)))
    console.print(table)
    return 0


def cmd_basic(console: Console, fb: FileBlob) -> int:
    try:
        lines = decode_basic(fb)
    except BasicDecodeError as e:
        raise SystemExit(f"Failed to parse BASIC PRG: {e}")
    for line in lines:
        if line.is_note:
            console.print(Text(f"; {line.text}"))
        else:
            console.print(Text(f"{line.number} {line.text}".rstrip()))
    return 0


def cmd_disasm(console: Console, fb: FileBlob, settings: Settings, name: Optional[str]) -> int:
    f, result = _choose(fb, settings, name)
    meta = result.meta
    console.print(Text(f"; {fb.name} as {f.name}"))

    tracer_disasm = Disassembler(ISA, fb, meta)
    tr = trace(tracer_disasm, fb, meta, settings.trace_steps)
    executed: Set[int] = set(tr.code_addresses)

    disasm = Disassembler(ISA, fb, meta)
    disasm.add_execution_points(tr.executed_instructions)
    labelled = set(disasm.jump_targets(tr.executed_instructions))
    for addr, line in disasm.lines():
        for label in line.lc.labels:
            console.print(Text(f"{label}:"))
        if addr in labelled and not line.lc.labels:
            console.print(Text(f"L{addr:04X}:"))
        console.print(Text(fmt_line(addr, line, meta.symbol_table, addr in executed)))
    for k, v in sorted(disasm.stats.items()):
        console.print(Text(f"; {k}: {v}"))
    return 0


def cmd_trace(console: Console, fb: FileBlob, settings: Settings, name: Optional[str]) -> int:
    f, result = _choose(fb, settings, name)
    meta = result.meta
    tr = trace(Disassembler(ISA, fb, meta), fb, meta, settings.trace_steps)

    def in_binary(addrs: List[int]) -> List[int]:
        return [a for a in addrs if meta.is_in_binary(a, fb)]

    table = Table(title=f"trace of {fb.name} as {f.name}", show_header=False)
    table.add_column("stat")
    table.add_column("value")
    table.add_row("steps", str(tr.steps))
    table.add_row("end state", tr.end_state)
    table.add_row("instructions", str(len(tr.code_addresses)))
    table.add_row("trace time", f"{tr.trace_time * 1000:.2f} ms")
    table.add_row("reads in binary", str(len(in_binary(tr.read_addresses))))
    table.add_row("writes in binary", str(len(in_binary(tr.written_addresses))))
    table.add_row("symbols used", Text(", ".join(s.name for s in tr.symbols_used) or "-"))
    table.add_row("errors", str(len(tr.errors)))
    console.print(table)
    for _addr, mesg in tr.errors:
        console.print(Text(mesg))
    return 0


# --- entry point ---

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="JSON settings file with weights and trace budgets")
    common.add_argument("--debug", action="store_true", help="Log debug output")
    common.add_argument("--no-colors", action="store_true", help="Disable ANSI color output")
    common.add_argument("--trace-steps", type=int, default=None, help="Maximum trace steps (overrides settings)")

    ap = argparse.ArgumentParser(prog="cbmrev", description="Commodore 8-bit binary sniffer, 6502 disassembler and tracer")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("sniff", parents=[common], help="Rank the formats a binary could be")
    p.add_argument("input_file", help="Path to the binary")
    p.add_argument("--top", type=int, default=10, help="How many formats to show")

    p = sub.add_parser("basic", parents=[common], help="List a BASIC program")
    p.add_argument("input_file", help="Path to .prg file")

    for cmd, hlp in (("disasm", "Disassemble using the best or named format"),
                     ("trace", "Trace execution and show statistics")):
        p = sub.add_parser(cmd, parents=[common], help=hlp)
        p.add_argument("input_file", help="Path to the binary")
        p.add_argument("--format", default=None, help="Format name as shown by sniff")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.no_colors)
    console = Console(no_color=args.no_colors, highlight=False, soft_wrap=True)

    try:
        settings = load_settings(args.config)
    except OSError as e:
        raise SystemExit(f"cannot read settings {args.config}: {e}")
    except CbmRevError as e:
        raise SystemExit(str(e))
    if args.trace_steps is not None:
        if args.trace_steps < 1:
            raise SystemExit("--trace-steps must be positive")
        settings = Settings(settings.weights, args.trace_steps, settings.stub_trace_steps)

    fb = _read(args.input_file)
    log.debug("read %s: %d bytes", fb.name, len(fb))
    try:
        if args.command == "sniff":
            return cmd_sniff(console, fb, settings, args.top)
        if args.command == "basic":
            return cmd_basic(console, fb)
        if args.command == "disasm":
            return cmd_disasm(console, fb, settings, args.format)
        if args.command == "trace":
            return cmd_trace(console, fb, settings, args.format)
    except CbmRevError as e:
        raise SystemExit(f"{args.command} failed: {e}")
    except (ValueError, IndexError) as e:
        raise SystemExit(f"{args.command} failed on {fb.name}: {e}")
    raise SystemExit(f"Unknown command: {args.command}")


def run() -> None:
    # Avoid noisy BrokenPipeError when piping to `head`, etc.
    try:
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
    except (AttributeError, ValueError):
        pass
    raise SystemExit(main(sys.argv[1:]))

"""
Speculative control-flow tracer.

No registers or flags are simulated. A trace follows every path it can prove
exists: each conditional branch or subroutine call forks a new thread, and
every thread records the instructions it steps into one shared execution
record. A thread stops when it reaches an instruction any thread has already
executed, so a trace always terminates.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import FrozenSet, Iterator, List, Optional, Sequence, Set, Tuple

from .blob import FileBlob
from .disasm import Disassembler, InstRec
from .errors import TraceSetupError
from .meta import DisassemblyMeta, EntryPoint
from .mos6502 import IND, ST, FullInstruction, OpSemantics
from .symbols import SymDef


log = logging.getLogger(__name__)

MEMORY_SIZE = 0x10000
DEFAULT_TRACE_STEPS = 10000

COMPLETED = "completed"
DID_NOT_TERMINATE = "did not terminate"


def enum_inst_addr(rec: InstRec) -> List[int]:
    """Every address occupied by the bytes of a recorded instruction."""
    base, inst = rec
    return [base + i for i in range(inst.length)]


class ExecutionRecord:
    """Append-only log of (address, instruction) shared by all threads of one trace."""

    def __init__(self) -> None:
        self._recs: List[InstRec] = []
        self._starts: Set[int] = set()
        self._covered: Set[int] = set()

    def append(self, pc: int, inst: FullInstruction) -> None:
        rec = (pc, inst)
        self._recs.append(rec)
        self._starts.add(pc)
        self._covered.update(enum_inst_addr(rec))

    def executed(self, addr: int) -> bool:
        return addr in self._starts

    def covers(self, addr: int) -> bool:
        """True if addr is any byte of an executed instruction."""
        return addr in self._covered

    def __iter__(self) -> Iterator[InstRec]:
        return iter(self._recs)

    def __len__(self) -> int:
        return len(self._recs)

    def as_list(self) -> List[InstRec]:
        return list(self._recs)


class Thread:
    """One speculative path through the code."""

    def __init__(self, creator: str, disasm: Disassembler, pc: int, memory: bytearray,
                 record: ExecutionRecord, ignore: FrozenSet[int] = frozenset()) -> None:
        if len(memory) < 1:
            raise TraceSetupError(f"memory length too small: {len(memory)}")
        self.descriptor = f"{creator}/@{pc:04x}"
        self.disasm = disasm
        self.memory = memory
        self.record = record
        self.ignore = frozenset(ignore)
        self.pc = pc
        self.running = True
        self.termination_reason = ""
        self.errors: List[Tuple[int, str]] = []
        self.written: List[int] = []
        self.read: List[int] = []

    def step(self) -> Optional["Thread"]:
        """Executes one instruction. Returns a newly spawned thread, if any."""
        if not self.running:
            raise RuntimeError(f"cannot step stopped thread {self.descriptor}")
        return self._execute()

    def _render_pc(self) -> str:
        return f"0x{self.pc:x} ({self.pc})"

    def _terminate(self, reason: str) -> None:
        self.termination_reason = f"{reason} @ {self._render_pc()}"
        self.running = False
        log.debug("thread %s terminated: %s", self.descriptor, self.termination_reason)

    def _execute(self) -> Optional["Thread"]:
        inst = self.disasm.disassemble1(self.memory, self.pc)
        if inst is None:
            self._terminate("cannot disassemble instruction")
            return None

        if self.record.executed(self.pc):
            self._terminate("instruction already executed")
            return None
        if self.record.covers(self.pc):
            # only opcode starts are deduplicated; landing mid-instruction is reported
            reason = "facing operand byte of instruction already executed"
            self.errors.append((self.pc, f"Thread {self.descriptor} {reason} at {self._render_pc()}"))
            self._terminate(reason)
            return None

        spawned: Optional[Thread] = None
        next_pc = self.pc + inst.length
        op = inst.instruction.op
        if op.has(OpSemantics.IS_BREAK):
            self._terminate("reached a break instruction")
        elif op.has(OpSemantics.IS_JAM):
            self._terminate("reached a jam")
        elif op.has(OpSemantics.IS_RETURN):
            self._terminate("reached a return")
        elif op.any(OpSemantics.IS_CONDITIONAL_JUMP, OpSemantics.IS_RETURNABLE_JUMP):
            # the spawned thread takes the jump, this one falls through
            target = inst.resolve_operand_address(next_pc)
            if not self.record.executed(target):
                spawned = Thread(self.descriptor, self.disasm, target, self.memory, self.record, self.ignore)
        elif op.has(OpSemantics.IS_UNCONDITIONAL_JUMP):
            if inst.instruction.mode is IND:
                mesg = (f"Thread {self.descriptor} unsupported indirect mode {op.mnemonic} instruction "
                        f"at {self._render_pc()} [{inst.byte_string()}]")
                self.errors.append((self.pc, mesg))
                self._terminate("reached unsupported indirect jump")
            else:
                target = inst.operand_value()
                if target not in self.ignore:
                    next_pc = target

        # stack access addresses cannot be derived statically
        if inst.statically_resolvable_operand() and op.cat != ST:
            if op.has(OpSemantics.IS_MEMORY_READ):
                self.read.append(inst.operand_value())
            if op.has(OpSemantics.IS_MEMORY_WRITE):
                self.written.append(inst.operand_value())

        self.record.append(self.pc, inst)
        self.pc = next_pc
        return spawned


class Tracer:

    def __init__(self, disasm: Disassembler, entry_points: Sequence[EntryPoint], memory: bytearray,
                 ignore: FrozenSet[int] = frozenset()) -> None:
        for ep in entry_points:
            pc = ep.address
            if not isinstance(pc, int):
                raise TraceSetupError(f"pc must be an integer, got {pc!r}")
            if pc < 0 or pc >= len(memory):
                raise TraceSetupError(
                    f"initial pc 0x{pc:04x} not inside memory of size {len(memory)}, binary size: "
                    f"{len(disasm.fb)}, segment base 0x{disasm.segment_base_address:04x}"
                )
        self.disasm = disasm
        self.memory = memory
        self.record = ExecutionRecord()
        self.step_count = 0
        self._load(disasm.content_bytes(), disasm.segment_base_address)
        self.threads: List[Thread] = [
            Thread(ep.name, disasm, ep.address, memory, self.record, ignore) for ep in entry_points
        ]

    def _load(self, content: bytes, base: int) -> None:
        if base < 0 or base >= len(self.memory):
            raise TraceSetupError(f"load address 0x{base:04x} outside memory of size {len(self.memory)}")
        chunk = content[:len(self.memory) - base]
        self.memory[base:base + len(chunk)] = chunk

    def running(self) -> bool:
        return self.count_active_threads() > 0

    def count_active_threads(self) -> int:
        return sum(1 for t in self.threads if t.running)

    def _step_thread(self, thread: Thread) -> None:
        spawned = thread.step()
        self.step_count += 1
        if spawned is not None:
            self.threads.append(spawned)

    def step(self) -> None:
        """Steps the first running thread."""
        for t in self.threads:
            if t.running:
                self._step_thread(t)
                return
        log.warning("found no running threads")

    def step_all(self) -> None:
        """Steps every thread that is running; threads spawned meanwhile wait for the next round."""
        for t in [t for t in self.threads if t.running]:
            self._step_thread(t)

    def trace(self, max_steps: int) -> int:
        """Steps threads breadth-first until none run or max_steps is used up. Returns steps taken."""
        start = self.step_count
        while self.running() and self.step_count - start < max_steps:
            for t in [t for t in self.threads if t.running]:
                if self.step_count - start >= max_steps:
                    break
                self._step_thread(t)
        return self.step_count - start

    def executed_instructions(self) -> List[InstRec]:
        return self.record.as_list()

    def executed_addresses(self) -> List[int]:
        return [a for a, _ in self.record]

    def executed_instruction_bytes(self) -> List[int]:
        return [a for rec in self.record for a in enum_inst_addr(rec)]

    def get_written(self) -> List[int]:
        return _unique(a for t in self.threads for a in t.written)

    def get_read(self) -> List[int]:
        return _unique(a for t in self.threads for a in t.read)

    def errors(self) -> List[Tuple[int, str]]:
        return [e for t in self.threads for e in t.errors]


def _unique(addrs) -> List[int]:
    seen: Set[int] = set()
    out: List[int] = []
    for a in addrs:
        if a not in seen:
            seen.add(a)
            out.append(a)
    return out


@dataclasses.dataclass(frozen=True)
class TraceResult:
    code_addresses: List[int]
    steps: int
    end_state: str
    executed_instructions: List[InstRec]
    written_addresses: List[int]
    read_addresses: List[int]
    symbols_used: List[SymDef]
    trace_time: float  # seconds
    errors: List[Tuple[int, str]]


def trace(disasm: Disassembler, fb: FileBlob, meta: DisassemblyMeta,
          max_steps: int = DEFAULT_TRACE_STEPS) -> TraceResult:
    """Traces from every entry point of meta over a zero filled 64k memory image."""
    # zeroes decode as BRK so stray paths stop quickly
    memory = bytearray(MEMORY_SIZE)
    symbol_table = meta.symbol_table
    tracer = Tracer(disasm, meta.execution_entry_points(fb), memory, symbol_table.subroutine_addresses())

    t0 = time.perf_counter()
    steps = tracer.trace(max_steps)
    trace_time = time.perf_counter() - t0

    executed = tracer.executed_instructions()
    disasm.add_execution_points(executed)

    used: List[SymDef] = []
    for addr, inst in executed:
        if inst.length > 1 and inst.statically_resolvable_operand():
            sym = symbol_table.by_value(inst.resolve_operand_address(addr + inst.length))
            if sym is not None and sym not in used:
                used.append(sym)

    errors = tracer.errors()
    for addr, mesg in errors:
        log.debug("trace of %s at 0x%04x: %s", fb.name, addr, mesg)

    return TraceResult(
        code_addresses=sorted(set(tracer.executed_addresses())),
        steps=steps,
        end_state=DID_NOT_TERMINATE if tracer.running() else COMPLETED,
        executed_instructions=executed,
        written_addresses=tracer.get_written(),
        read_addresses=tracer.get_read(),
        symbols_used=used,
        trace_time=trace_time,
        errors=errors,
    )

"""
Machine definitions: memory configurations, KERNAL symbol tables and
cartridge layouts for the C64 and the VIC-20.
"""

from __future__ import annotations

from typing import Tuple

from .declarations import LabelsComments, mk_labels
from .edicts import CartSigEdict, WordDefinitionEdict
from .meta import MemoryConfiguration, VectorMeta
from .symbols import SymbolTable


# --- C64 ---

C64_MEMORY = MemoryConfiguration("C64 standard 64k", 0x0801)

C64_SYM = SymbolTable("c64")
C64_SYM.sub(0xFFA5, "acptr", "Input byte from serial port")
C64_SYM.sub(0xFFC6, "chkin", "Open channel for input")
C64_SYM.sub(0xFFC9, "chkout", "Open channel for output")
C64_SYM.sub(0xFFCF, "chrin", "Input character from channel")
C64_SYM.sub(0xFFD2, "chrout", "Output character to channel")
C64_SYM.sub(0xFFA8, "ciout", "Transmit a byte over the serial bus")
C64_SYM.sub(0xFF81, "cint", "Initialize screen editor")
C64_SYM.sub(0xFFE7, "clall", "Close all channels and files")
C64_SYM.sub(0xFFC3, "close", "Close a specified logical file")
C64_SYM.sub(0xFFCC, "clrchn", "Close input and output channels")
C64_SYM.sub(0xFFE4, "getin", "Get character from keyboard buffer")
C64_SYM.sub(0xFFF3, "iobase", "Return base address of I/O devices")
C64_SYM.sub(0xFF84, "ioinit", "Initialize input/output")
C64_SYM.sub(0xFFB1, "listen", "Command devices on serial bus to LISTEN")
C64_SYM.sub(0xFFD5, "load", "Load RAM from a device")
C64_SYM.sub(0xFF9C, "membot", "Read/set bottom of memory")
C64_SYM.sub(0xFF99, "memtop", "Read/set top of memory")
C64_SYM.sub(0xFFC0, "open", "Open a logical file")
C64_SYM.sub(0xFFF0, "plot", "Read/set X,Y cursor position")
C64_SYM.sub(0xFF87, "ramtas", "Initialize RAM, reset tape buffer")
C64_SYM.sub(0xFFDE, "rdtim", "Read realtime clock")
C64_SYM.sub(0xFFB7, "readst", "Read I/O status word")
C64_SYM.sub(0xFF8A, "restor", "Restore I/O default vectors")
C64_SYM.sub(0xFFD8, "save", "Save RAM to device")
C64_SYM.sub(0xFF9F, "scnkey", "Scan keyboard")
C64_SYM.sub(0xFFED, "screen", "Return X,Y organization of screen")
C64_SYM.sub(0xFF93, "second", "Send secondary address after LISTEN")
C64_SYM.sub(0xFFBA, "setlfs", "Set logical, first, and second address")
C64_SYM.sub(0xFF90, "setmsg", "Control Kernal messages")
C64_SYM.sub(0xFFBD, "setnam", "Set filename")
C64_SYM.sub(0xFFDB, "settim", "Set realtime clock")
C64_SYM.sub(0xFFA2, "settmo", "Set time-out on serial bus")
C64_SYM.sub(0xFFE1, "stop", "Check for STOP key")
C64_SYM.sub(0xFFB4, "talk", "Command serial bus device to TALK")
C64_SYM.sub(0xFF96, "tksa", "Send secondary address after TALK")
C64_SYM.sub(0xFFEA, "udtim", "Increment realtime clock")
C64_SYM.sub(0xFFAE, "unlsn", "Command serial bus to UNLISTEN")
C64_SYM.sub(0xFFAB, "untlk", "Command serial bus to UNTALK")
C64_SYM.sub(0xFF8D, "vector", "Read/set vectored I/O")

C64_SYM.reg(0x0400, "SCREEN", "Screen RAM")
C64_SYM.reg(0x07F8, "SPR_PTR0", "Sprite pointer 0")
C64_SYM.reg(0x07F9, "SPR_PTR1", "Sprite pointer 1")
C64_SYM.reg(0xD000, "VIC", "VIC register block")
C64_SYM.reg(0xD011, "VIC_CTRL1", "VIC control register 1")
C64_SYM.reg(0xD015, "SPRITEN", "VIC sprite enable")
C64_SYM.reg(0xD016, "VIC_CTRL2", "VIC control register 2")
C64_SYM.reg(0xD020, "BORDER", "VIC border color")
C64_SYM.reg(0xD021, "BACKGROUND", "VIC background color")
C64_SYM.reg(0xD027, "SPRITEC0", "VIC sprite 0 color")
C64_SYM.reg(0xD028, "SPRITEC1", "VIC sprite 1 color")
C64_SYM.reg(0xD400, "SID", "SID register block")
C64_SYM.reg(0xD800, "COLORRAM", "Color RAM")
C64_SYM.reg(0xDC00, "CIA1", "CIA1 (keyboard/joystick)")

# raw dumps keep the load address in front, so the vectors follow it
C64_CART_BASE_ADDRESS_OFFSET = 0
C64_COLD_VECTOR_OFFSET = 2
C64_WARM_VECTOR_OFFSET = 4
C64_CART_MAGIC_OFFSET = 6

# CBM80 in petscii
CBM80 = (0xC3, 0xC2, 0xCD, 0x38, 0x30)

C64_CART_META = VectorMeta(
    base_address_offset=C64_CART_BASE_ADDRESS_OFFSET,
    jump_vector_offsets=[(C64_COLD_VECTOR_OFFSET, "reset"), (C64_WARM_VECTOR_OFFSET, "nmi")],
    content_start_offset=2,
    edicts=[
        CartSigEdict(C64_CART_MAGIC_OFFSET, len(CBM80), "specified by C64 cart format"),
        WordDefinitionEdict(C64_COLD_VECTOR_OFFSET, mk_labels("resetVector")),
        WordDefinitionEdict(C64_WARM_VECTOR_OFFSET, mk_labels("nmiVector")),
    ],
    vector_labels=[
        (C64_COLD_VECTOR_OFFSET, LabelsComments.of("reset", "cold reset vector")),
        (C64_WARM_VECTOR_OFFSET, LabelsComments.of("nmi", "warm reset vector")),
    ],
    symbol_table=C64_SYM,
)


# --- VIC-20 ---

VIC20_UNEXPANDED = MemoryConfiguration("Unexpanded", 0x1001, "unexpanded")
VIC20_EXP03K = MemoryConfiguration("3k expansion", 0x0401, "3k")
VIC20_EXP08K = MemoryConfiguration("8k expansion", 0x1201, "8k")
VIC20_EXP16K = MemoryConfiguration("16k expansion", 0x1201, "16k")
VIC20_EXP24K = MemoryConfiguration("24k expansion", 0x1201, "24k")
VIC20_EXP32K = MemoryConfiguration("32k expansion", 0x1201, "32k")
# BASIC starts where it does with 3k
VIC20_EXP35K = MemoryConfiguration("35k expansion", 0x0401, "35k")

VIC20_MEMORY_CONFIGS: Tuple[MemoryConfiguration, ...] = (
    VIC20_UNEXPANDED,
    VIC20_EXP03K,
    VIC20_EXP08K,
    VIC20_EXP16K,
    VIC20_EXP24K,
    VIC20_EXP32K,
    VIC20_EXP35K,
)

# every configuration a BASIC load address can point at
ALL_MEMORY_CONFIGS: Tuple[MemoryConfiguration, ...] = VIC20_MEMORY_CONFIGS + (C64_MEMORY,)

VIC20_SYM = SymbolTable("VIC-20")

# the KERNAL jump table; underscore versions are the routines the table jumps to
VIC20_SYM.sub(0xFF8A, "restor", "set KERNAL vectors to defaults", "contains jmp $fd52")
VIC20_SYM.sub(0xFF8D, "vector", "Change Vectors For User", "contains jmp $fd57")
VIC20_SYM.sub(0xFD57, "_vector", "internal Change Vectors For User")
VIC20_SYM.sub(0xFF90, "setmsg", "Control OS Messages", "contains jmp $fe66")
VIC20_SYM.sub(0xFE66, "_setmsg", "internal Control OS Messages")
VIC20_SYM.sub(0xFF93, "secnd", "Send SA After Listen", "contains jmp $eec0")
VIC20_SYM.sub(0xEEC0, "_secnd", "internal Send SA After Listen")
VIC20_SYM.sub(0xFF96, "tksa", "Send SA After Talk", "contains jmp $eece")
VIC20_SYM.sub(0xEECE, "_tksa", "internal Send SA After Talk")
VIC20_SYM.sub(0xFF99, "memtop", "Set/Read System RAM Top", "contains jmp $fe73")
VIC20_SYM.sub(0xFE73, "_memtop", "internal Set/Read System RAM Top")
VIC20_SYM.sub(0xFF9C, "membot", "Set/Read System RAM Bottom", "contains jmp $fe82")
VIC20_SYM.sub(0xFE82, "_membot", "internal Set/Read System RAM Bottom")
VIC20_SYM.sub(0xFF9F, "scnkey", "Scan Keyboard", "contains jmp $eb1e")
VIC20_SYM.sub(0xEB1E, "_scnkey", "internal Scan Keyboard")
VIC20_SYM.sub(0xFFA2, "settmo", "Set Timeout In IEEE", "contains jmp $fe6f")
VIC20_SYM.sub(0xFE6F, "_settmo", "internal Set Timeout In IEEE")
VIC20_SYM.sub(0xFFA5, "acptr", "Handshake Serial Byte In", "contains jmp $ef19")
VIC20_SYM.sub(0xEF19, "_acptr", "internal Handshake Serial Byte In")
VIC20_SYM.sub(0xFFA8, "ciout", "Handshake Serial Byte Out", "contains jmp $eee4")
VIC20_SYM.sub(0xEEE4, "_ciout", "internal Handshake Serial Byte Out")
VIC20_SYM.sub(0xFFAB, "untalk", "Command Serial Bus UNTALK", "contains jmp $eef6")
VIC20_SYM.sub(0xEEF6, "_untalk", "internal Command Serial Bus UNTALK")
VIC20_SYM.sub(0xFFAE, "unlsn", "Command Serial Bus UNLISTEN", "contains jmp $ef04")
VIC20_SYM.sub(0xEF04, "_unlsn", "internal Command Serial Bus UNLISTEN")
VIC20_SYM.sub(0xFFB1, "listn", "Command Serial Bus LISTEN", "contains jmp $ee17")
VIC20_SYM.sub(0xEE17, "_listn", "internal Command Serial Bus LISTEN")
VIC20_SYM.sub(0xFFB4, "talk", "Command Serial Bus TALK", "contains jmp $ee14")
VIC20_SYM.sub(0xEE14, "_talk", "internal Command Serial Bus TALK")
VIC20_SYM.sub(0xFFB7, "readss", "Read I/O Status Word", "contains jmp $fe57")
VIC20_SYM.sub(0xFE57, "_readss", "internal Read I/O Status Word")
VIC20_SYM.sub(0xFFBA, "setlfs", "Set Logical File Parameters", "contains jmp $fe50")
VIC20_SYM.sub(0xFE50, "_setlfs", "internal Set Logical File Parameters")
VIC20_SYM.sub(0xFFBD, "setnam", "Set Filename", "contains jmp $fe49")
VIC20_SYM.sub(0xFE49, "_setnam", "internal Set Filename")
VIC20_SYM.sub(0xFFC0, "iopen", "Open Vector [F40A]", "contains jmp ($031a)")
VIC20_SYM.sub(0xFFC3, "iclose", "Close Vector [F34A]", "contains jmp ($031c)")
VIC20_SYM.sub(0xFFC6, "ichkin", "Set Input [F2C7]", "contains jmp ($031e)")
VIC20_SYM.sub(0xFFC9, "ichkout", "Set Output [F309]", "contains jmp ($0320)")
VIC20_SYM.sub(0xFFCC, "iclrch", "Restore I/O Vector [F353]", "contains jmp ($0322)")
VIC20_SYM.sub(0xFFCF, "ichrin", "Input Vector, chrin [F20E]", "contains jmp ($0324)")
VIC20_SYM.sub(0xFFD2, "ichrout", "Output Vector, chrout [F27A]", "contains jmp ($0326)")
VIC20_SYM.sub(0xFFD5, "load", "Load RAM From Device", "contains jmp $f542")
VIC20_SYM.sub(0xF542, "_load", "internal Load RAM From Device")
VIC20_SYM.sub(0xFFD8, "save", "Save RAM To Device", "contains jmp $f675")
VIC20_SYM.sub(0xF675, "_save", "internal Save RAM To Device")
VIC20_SYM.sub(0xFFDB, "settim", "Set Real-Time Clock", "contains jmp $f767")
VIC20_SYM.sub(0xF767, "_settim", "internal Set Real-Time Clock")
VIC20_SYM.sub(0xFFDE, "rdtim", "Read Real-Time Clock", "contains jmp $f760")
VIC20_SYM.sub(0xF760, "_rdtim", "internal Read Real-Time Clock")
VIC20_SYM.sub(0xFFE1, "istop", "Test-Stop Vector [F770]", "contains jmp ($0328)")
VIC20_SYM.sub(0xFFE4, "igetin", "Get From Keyboard [F1F5]", "contains jmp ($032a)")
VIC20_SYM.sub(0xFFE7, "iclall", "Close All Channels And Files [F3EF]", "contains jmp ($032c)")
VIC20_SYM.sub(0xFFEA, "udtim", "Increment Real-Time Clock", "contains jmp $f734")
VIC20_SYM.sub(0xF734, "_udtim", "internal Increment Real-Time Clock")
VIC20_SYM.sub(0xFFED, "screen", "Return Screen Organization", "contains jmp $e505")
VIC20_SYM.sub(0xE505, "_screen", "internal Return Screen Organization")
VIC20_SYM.sub(0xFFF0, "plot", "Read / Set Cursor X/Y Position", "contains jmp $e50a")
VIC20_SYM.sub(0xE50A, "_plot", "internal Read / Set Cursor X/Y Position")
VIC20_SYM.sub(0xFFF3, "iobase", "Return I/O Base Address", "contains jmp $e500")
VIC20_SYM.sub(0xE500, "_iobase", "internal Return I/O Base Address")

VIC20_SYM.sub(0xFD52, "restor_vector", "restore kernal vectors (direct vector)")
VIC20_SYM.sub(0xFDF9, "ioinit_vector", "i/o initialisation (direct vector)")
VIC20_SYM.sub(0xE518, "screeninit_vector", "screen initialisation (direct vector)")
VIC20_SYM.sub(0xFD8D, "ram_init", "initialise and test RAM")
VIC20_SYM.sub(0xE45B, "basic_vector_init", "initialise basic vector table")
VIC20_SYM.sub(0xE3A4, "basic_ram_init", "initialise basic ram locations")

VIC20_SYM.reg(0x0281, "MSMSTR", "Pointer to start of user RAM")
VIC20_SYM.reg(0x0286, "color_mode", "character foreground colour and multi-colour mode")
VIC20_SYM.reg(0x0287, "cursor_color", "colour at current cursor position")
VIC20_SYM.reg(0x0288, "screen_map_page", "MSB of screen map address")
VIC20_SYM.reg(0x0289, "XMAX", "Maximum number of characters in the keyboard buffer")
VIC20_SYM.reg(0x028A, "RPTFLG", "Keyboard repeater flags")
VIC20_SYM.reg(0x028D, "SHFLAG", "Current SHIFT/CTRL/C= keys pattern")
VIC20_SYM.reg(0x0300, "IERROR", "Vector to routine to print BASIC error message")
VIC20_SYM.reg(0x0302, "IMAIN", "Vector to the BASIC main routine")
VIC20_SYM.reg(0x030C, "SAREG", "Save 6502 A register before BASIC SYS statement")
VIC20_SYM.reg(0x030D, "SXREG", "Save 6502 X register before BASIC SYS statement")
VIC20_SYM.reg(0x030E, "SYREG", "Save 6502 Y register before BASIC SYS statement")
VIC20_SYM.reg(0x030F, "SPREG", "Save 6502 P register before BASIC SYS statement", "Bit flag map: NV_BDIZC")
VIC20_SYM.reg(0x0314, "CINV", "IRQ interrupt vector", "Default is 60095 ($EABF)")
VIC20_SYM.reg(0x0316, "break_interrupt_vector", "break interrupt vector")
VIC20_SYM.reg(0x0318, "nmi_vector", "non-maskable interrupt jump location")
VIC20_SYM.reg(0x033C, "TPHDRID", "Tape header identifier, start of tape buffer")

VIC20_CART_BASE_ADDRESS_OFFSET = 0
VIC20_COLD_VECTOR_OFFSET = 2
VIC20_WARM_VECTOR_OFFSET = 4
VIC20_CART_SIG_OFFSET = 6

# A0CBM in petscii; the cart is mapped at $a000 when this sits at $a004
A0CBM = (0x41, 0x30, 0xC3, 0xC2, 0xCD)

VIC20_CART_META = VectorMeta(
    base_address_offset=VIC20_CART_BASE_ADDRESS_OFFSET,
    jump_vector_offsets=[(VIC20_COLD_VECTOR_OFFSET, "reset"), (VIC20_WARM_VECTOR_OFFSET, "nmi")],
    content_start_offset=2,
    edicts=[
        CartSigEdict(VIC20_CART_SIG_OFFSET, len(A0CBM), "specified by VIC-20 cart format"),
        WordDefinitionEdict(VIC20_COLD_VECTOR_OFFSET, mk_labels("resetVector")),
        WordDefinitionEdict(VIC20_WARM_VECTOR_OFFSET, mk_labels("nmiVector")),
    ],
    vector_labels=[
        (VIC20_COLD_VECTOR_OFFSET, LabelsComments.of("reset", "main entry point")),
        (VIC20_WARM_VECTOR_OFFSET, LabelsComments.of("nmi", "jump target on restore key")),
    ],
    symbol_table=VIC20_SYM,
)


"""
cbmrev - recover structure from Commodore 8-bit program images.

Sniffs which format a binary most likely is, disassembles it as 6502 code
and traces its control flow speculatively from the format's entry points.
"""

from .blob import FileBlob
from .errors import BasicDecodeError, CbmRevError, ConfigError, TraceSetupError
from .registry import Format, Ranked, default_registry, select_best
from .sniffers import SniffResult, SniffWeights, Stench

__version__ = "0.1.0"

__all__ = [
    "BasicDecodeError",
    "CbmRevError",
    "ConfigError",
    "FileBlob",
    "Format",
    "Ranked",
    "SniffResult",
    "SniffWeights",
    "Stench",
    "TraceSetupError",
    "default_registry",
    "select_best",
]

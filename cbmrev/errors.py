"""Exceptions raised by cbmrev."""

from __future__ import annotations


class CbmRevError(Exception):
    """Base class for errors raised by this package."""


class BasicDecodeError(CbmRevError, ValueError):
    """Bytes could not be decoded as a tokenized BASIC program."""


class TraceSetupError(CbmRevError, ValueError):
    """A trace could not be started (bad entry point, empty memory)."""


class ConfigError(CbmRevError):
    """A settings or weights file is malformed."""

import pytest

from cbmrev.blob import FileBlob

from helpers import FOR_NEXT_LINES, basic_prg, cart_bin, stub_prg


@pytest.fixture
def stub_blob() -> FileBlob:
    return FileBlob("stub.prg", stub_prg(0x0801))


@pytest.fixture
def basic_blob() -> FileBlob:
    return FileBlob("loop.prg", basic_prg(0x0801, FOR_NEXT_LINES))


@pytest.fixture
def cart_blob() -> FileBlob:
    return FileBlob("cart.bin", cart_bin())


@pytest.fixture
def print_blob() -> FileBlob:
    return FileBlob("hello.prg", basic_prg(0x0801, [(10, b'\x99 "HI"')]))

"""
Pytest fixtures for tvm_bridge tests: sample cells, accounts and messages.
"""

import pytest

from tvm_bridge.address import StdAddress
from tvm_bridge.cells import CellBuilder
from tvm_bridge.tlb import pack_shard_account


def make_address(workchain: int, fill: int) -> StdAddress:
    return StdAddress(workchain, bytes([fill]) * 32)


def build_int_message(dest: StdAddress, src: StdAddress = None, value: int = 10**9):
    """int_msg_info$0 header followed by an empty init and inline body"""
    b = CellBuilder()
    b.store_bit_string("0")          # int_msg_info$0
    b.store_bit(1)                   # ihr_disabled
    b.store_bit(1)                   # bounce
    b.store_bit(0)                   # bounced
    b.store_address(src)
    b.store_address(dest)
    b.store_coins(value)
    b.store_bit(0)                   # no extra currencies
    b.store_coins(0)                 # ihr_fee
    b.store_coins(0)                 # fwd_fee
    b.store_uint(1000, 64)           # created_lt
    b.store_uint(1700000000, 32)     # created_at
    b.store_bit(0)                   # init: nothing
    b.store_bit(0)                   # body inline
    return b.end_cell()


def build_ext_in_message(dest: StdAddress):
    b = CellBuilder()
    b.store_bit_string("10")         # ext_in_msg_info$10
    b.store_address_none()           # src
    b.store_address(dest)
    b.store_coins(0)                 # import_fee
    b.store_bit(0)
    b.store_bit(0)
    return b.end_cell()


def build_ext_out_message(src: StdAddress):
    b = CellBuilder()
    b.store_bit_string("11")         # ext_out_msg_info$11
    b.store_address(src)
    b.store_address_none()           # dest
    b.store_uint(1000, 64)
    b.store_uint(1700000000, 32)
    b.store_bit(0)
    b.store_bit(0)
    return b.end_cell()


def build_account_none():
    return CellBuilder().store_bit_string("0").end_cell()


def build_account(addr: StdAddress):
    """account$1 with a placeholder storage part"""
    state = CellBuilder().store_uint(0xDEAD, 16).end_cell()
    return (CellBuilder()
            .store_bit_string("1")
            .store_address(addr)
            .store_uint(0xBEEF, 16)
            .store_ref(state)
            .end_cell())


def build_shard_account(account_cell, lt: int = 42):
    return pack_shard_account(account_cell, b"\x07" * 32, lt)


@pytest.fixture
def message_dest():
    return make_address(0, 0xAA)


@pytest.fixture
def account_addr():
    return make_address(-1, 0x55)


@pytest.fixture
def leaf_cell():
    return CellBuilder().store_uint(0x1234, 16).end_cell()


@pytest.fixture
def dag_cell(leaf_cell):
    """Root referencing the same leaf twice, through two different paths"""
    middle = CellBuilder().store_uint(7, 3).store_ref(leaf_cell).end_cell()
    return (CellBuilder()
            .store_uint(0xAB, 8)
            .store_ref(leaf_cell)
            .store_ref(middle)
            .end_cell())

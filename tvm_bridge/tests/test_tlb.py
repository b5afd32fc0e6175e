"""
Test suite for tagged record parsing

Tests:
- Exact-width tag dispatch
- Message info headers
- Accounts and shard accounts
- Unknown tags and truncated records
"""

import pytest

from tvm_bridge.cells import CellBuilder, cell_from_bits
from tvm_bridge.errors import SchemaMismatch, UnsupportedRecordShape
from tvm_bridge.tlb import (
    ACCOUNT, COMMON_MSG_INFO, MSG_ADDRESS_EXT, MSG_ADDRESS_INT, TagTable,
    AccountNone, AccountRecord, AddrExtern, AddrNone, AddrStd, AddrVar,
    ExtInMsgInfo, ExtOutMsgInfo, IntMsgInfo,
    load_address_slice, pack_shard_account,
    unpack_account, unpack_common_msg_info, unpack_shard_account,
)

from .conftest import (
    build_account, build_account_none, build_ext_in_message, build_ext_out_message,
    build_int_message, build_shard_account, make_address,
)


class TestTagTable:
    """Test constructor tag dispatch"""

    def test_tag_widths(self):
        assert COMMON_MSG_INFO.tag_of(cell_from_bits("0111").begin_parse()) == "0"
        assert COMMON_MSG_INFO.tag_of(cell_from_bits("10").begin_parse()) == "10"
        assert COMMON_MSG_INFO.tag_of(cell_from_bits("11").begin_parse()) == "11"

    def test_tag_of_does_not_consume(self):
        cs = cell_from_bits("10").begin_parse()
        ACCOUNT.tag_of(cs)
        assert cs.bits_left == 2

    def test_unknown_tag(self):
        table = TagTable("Test", [("10", lambda cs: "ten")])
        with pytest.raises(UnsupportedRecordShape) as exc_info:
            table.unpack(cell_from_bits("01").begin_parse())
        assert "Test" in str(exc_info.value)

    def test_empty_slice_has_no_tag(self):
        with pytest.raises(UnsupportedRecordShape):
            COMMON_MSG_INFO.unpack(cell_from_bits("").begin_parse())

    def test_short_slice_for_two_bit_tag(self):
        with pytest.raises(UnsupportedRecordShape):
            MSG_ADDRESS_INT.unpack(cell_from_bits("1").begin_parse())

    def test_decoder_receives_slice_after_tag(self):
        table = TagTable("Test", [("1", lambda cs: cs.load_uint(3))])
        assert table.unpack(cell_from_bits("1101").begin_parse()) == 0b101

    def test_underflow_becomes_schema_mismatch(self):
        table = TagTable("Test", [("1", lambda cs: cs.load_uint(8))])
        with pytest.raises(SchemaMismatch) as exc_info:
            table.unpack(cell_from_bits("1101").begin_parse())
        assert "E_SCHEMA_MISMATCH" in str(exc_info.value)


class TestAddresses:
    """Test address record decoding"""

    def test_addr_std(self):
        addr = make_address(-1, 0x11)
        cs = CellBuilder().store_address(addr).end_cell().begin_parse()
        record = MSG_ADDRESS_INT.unpack(cs)
        assert record == AddrStd(None, -1, b"\x11" * 32)
        assert cs.is_empty()

    def test_addr_var(self):
        cs = (CellBuilder().store_bit_string("11").store_bit(0)
              .store_uint(16, 9).store_int(7, 32).store_uint(0xCAFE, 16)
              .end_cell().begin_parse())
        assert MSG_ADDRESS_INT.unpack(cs) == AddrVar(None, 16, 7, b"\xca\xfe")

    def test_addr_none(self):
        cs = CellBuilder().store_address_none().end_cell().begin_parse()
        assert MSG_ADDRESS_EXT.unpack(cs) == AddrNone()

    def test_addr_extern(self):
        cs = (CellBuilder().store_bit_string("01").store_uint(8, 9).store_uint(0x42, 8)
              .end_cell().begin_parse())
        assert MSG_ADDRESS_EXT.unpack(cs) == AddrExtern(8, b"\x42")

    def test_anycast_depth_out_of_range(self):
        cs = (CellBuilder().store_bit_string("10").store_bit(1).store_uint(31, 5)
              .store_uint(0, 31).store_int(0, 8).store_uint(0, 256)
              .end_cell().begin_parse())
        with pytest.raises(SchemaMismatch):
            MSG_ADDRESS_INT.unpack(cs)

    def test_load_address_slice(self):
        addr = make_address(0, 0x22)
        cs = CellBuilder().store_address(addr).store_uint(0x5, 4).end_cell().begin_parse()
        addr_cs = load_address_slice(cs)
        assert addr_cs.bits_left == 267
        assert cs.load_uint(4) == 0x5

    def test_internal_address_table_rejects_none(self):
        cs = CellBuilder().store_address_none().end_cell().begin_parse()
        with pytest.raises(UnsupportedRecordShape):
            load_address_slice(cs, MSG_ADDRESS_INT)


class TestMessages:
    """Test CommonMsgInfo decoding"""

    def test_int_msg_info(self, message_dest):
        src = make_address(0, 0x01)
        info = unpack_common_msg_info(build_int_message(message_dest, src, value=12345))
        assert isinstance(info, IntMsgInfo)
        assert info.bounce and info.ihr_disabled and not info.bounced
        assert info.value.grams == 12345
        assert info.value.other is None
        assert info.created_lt == 1000
        assert info.created_at == 1700000000

    def test_int_msg_info_without_source(self, message_dest):
        info = unpack_common_msg_info(build_int_message(message_dest))
        assert isinstance(info, IntMsgInfo)
        assert info.src.bits_left == 2

    def test_ext_in_msg_info(self, message_dest):
        info = unpack_common_msg_info(build_ext_in_message(message_dest))
        assert isinstance(info, ExtInMsgInfo)
        assert info.import_fee == 0
        assert MSG_ADDRESS_INT.unpack(info.dest.copy()).address == message_dest.account_id

    def test_ext_out_msg_info(self, account_addr):
        info = unpack_common_msg_info(build_ext_out_message(account_addr))
        assert isinstance(info, ExtOutMsgInfo)
        assert info.created_lt == 1000

    def test_truncated_message(self):
        cell = (CellBuilder().store_bit_string("10").store_address_none()
                .store_bit_string("100").store_uint(0, 4).end_cell())
        with pytest.raises(SchemaMismatch):
            unpack_common_msg_info(cell)


class TestAccounts:
    """Test Account and ShardAccount decoding"""

    def test_account_none(self):
        assert isinstance(unpack_account(build_account_none()), AccountNone)

    def test_account(self, account_addr):
        account = unpack_account(build_account(account_addr))
        assert isinstance(account, AccountRecord)
        assert account.addr.bits_left == 267
        assert account.state.bit_length == 16
        assert len(account.state.refs) == 1

    def test_truncated_account(self):
        cell = CellBuilder().store_bit_string("110").end_cell()
        with pytest.raises(SchemaMismatch):
            unpack_account(cell)

    def test_shard_account(self, account_addr):
        account_cell = build_account(account_addr)
        shard = unpack_shard_account(build_shard_account(account_cell, lt=99))
        assert shard.account == account_cell
        assert shard.last_trans_hash == b"\x07" * 32
        assert shard.last_trans_lt == 99

    def test_shard_account_missing_ref(self):
        with pytest.raises(SchemaMismatch):
            unpack_shard_account(cell_from_bits("0"))

    def test_pack_rejects_short_hash(self):
        with pytest.raises(ValueError):
            pack_shard_account(build_account_none(), b"\x00" * 31, 0)

"""
Test suite for cells, builders and slices

Tests:
- Cell limits and hashing
- Builder stores and slice loads
- Cursor underflow and sub-slices
- Remaining content as a new cell
"""

import pytest

from tvm_bridge.cells import Cell, CellBuilder, CellSlice, cell_from_bits
from tvm_bridge.errors import CellOverflow, CursorUnderflow

EMPTY_CELL_HASH = "96a296d224f285c67bee93c30f8a309157f0daa35dc5b87e410b78630a09cfc7"


class TestCell:
    """Test cell construction, hashing and equality"""

    def test_empty_cell_hash(self):
        assert Cell().hash.hex() == EMPTY_CELL_HASH

    def test_empty_cell_depth(self):
        assert Cell().depth == 0

    def test_depth_follows_children(self, leaf_cell):
        parent = CellBuilder().store_ref(leaf_cell).end_cell()
        grandparent = CellBuilder().store_ref(parent).store_ref(leaf_cell).end_cell()
        assert parent.depth == 1
        assert grandparent.depth == 2

    def test_equality_by_contents(self):
        a = CellBuilder().store_uint(5, 8).end_cell()
        b = CellBuilder().store_uint(5, 8).end_cell()
        assert a == b
        assert hash(a) == hash(b)
        assert a is not b

    def test_different_bit_length_differs(self):
        a = cell_from_bits("1")
        b = cell_from_bits("10")
        assert a != b

    def test_trailing_bits_are_ignored(self):
        a = Cell(b"\xff", 3)
        b = Cell(b"\xe0", 3)
        assert a == b
        assert a.data == b"\xe0"

    def test_descriptors(self, leaf_cell):
        cell = CellBuilder().store_uint(1, 3).store_ref(leaf_cell).end_cell()
        assert cell.descriptors() == bytes([1, 1])
        assert leaf_cell.descriptors() == bytes([0, 4])

    def test_augmented_data_completion_tag(self):
        cell = cell_from_bits("101")
        assert cell.augmented_data() == bytes([0b10110000])

    def test_too_many_bits(self):
        with pytest.raises(CellOverflow):
            Cell(bytes(128), 1024)

    def test_too_many_refs(self):
        with pytest.raises(CellOverflow):
            Cell(b"", 0, [Cell()] * 5)

    def test_cells_are_immutable(self, leaf_cell):
        with pytest.raises(AttributeError):
            leaf_cell.refs = ()

    def test_repr(self):
        assert repr(cell_from_bits("101")) == "Cell(x{B_}, refs=0)"
        assert repr(CellBuilder().store_uint(0xAB, 8).end_cell()) == "Cell(x{AB}, refs=0)"

    def test_shared_child(self, dag_cell, leaf_cell):
        middle = dag_cell.refs[1]
        assert dag_cell.refs[0] is middle.refs[0]
        assert middle.refs[0] == leaf_cell


class TestBuilder:
    """Test builder stores"""

    def test_store_uint(self):
        cell = CellBuilder().store_uint(0b1011, 4).end_cell()
        assert cell.to_bit_string() == "1011"

    def test_store_negative_int(self):
        cell = CellBuilder().store_int(-1, 8).end_cell()
        assert cell.data == b"\xff"
        assert cell.begin_parse().load_int(8) == -1

    def test_uint_out_of_range(self):
        with pytest.raises(ValueError):
            CellBuilder().store_uint(256, 8)
        with pytest.raises(ValueError):
            CellBuilder().store_uint(-1, 8)

    def test_int_out_of_range(self):
        with pytest.raises(ValueError):
            CellBuilder().store_int(128, 8)

    def test_bit_overflow(self):
        builder = CellBuilder().store_uint(0, 1000)
        with pytest.raises(CellOverflow):
            builder.store_uint(0, 24)

    def test_ref_overflow(self):
        builder = CellBuilder()
        for _ in range(4):
            builder.store_ref(Cell())
        with pytest.raises(CellOverflow):
            builder.store_ref(Cell())

    def test_store_bits_partial(self):
        cell = CellBuilder().store_bits(b"\xf0", 4).end_cell()
        assert cell.to_bit_string() == "1111"

    def test_store_coins(self):
        cs = CellBuilder().store_coins(10**9).end_cell().begin_parse()
        assert cs.load_coins() == 10**9
        assert cs.bits_left == 0

    def test_store_zero_coins(self):
        cell = CellBuilder().store_coins(0).end_cell()
        assert cell.to_bit_string() == "0000"

    def test_store_bit_string_rejects_garbage(self):
        with pytest.raises(ValueError):
            CellBuilder().store_bit_string("012")


class TestSlice:
    """Test cursor reads"""

    def test_sequential_reads(self):
        cell = CellBuilder().store_uint(3, 2).store_uint(0x55, 8).store_bit(1).end_cell()
        cs = cell.begin_parse()
        assert cs.load_uint(2) == 3
        assert cs.load_uint(8) == 0x55
        assert cs.load_bit() is True
        assert cs.is_empty()

    def test_preload_does_not_advance(self):
        cs = CellBuilder().store_uint(9, 4).end_cell().begin_parse()
        assert cs.preload_uint(4) == 9
        assert cs.bits_left == 4

    def test_underflow_bits(self):
        cs = CellBuilder().store_uint(1, 4).end_cell().begin_parse()
        with pytest.raises(CursorUnderflow):
            cs.load_uint(5)
        assert cs.bits_left == 4

    def test_underflow_refs(self):
        cs = Cell().begin_parse()
        with pytest.raises(CursorUnderflow):
            cs.load_ref()

    def test_load_bits(self):
        cs = CellBuilder().store_bits(b"\xde\xad").end_cell().begin_parse()
        cs.skip_bits(4)
        assert cs.load_bits(8) == b"\xea"

    def test_read_record_tag(self):
        cs = cell_from_bits("10110").begin_parse()
        assert cs.read_record_tag(2) == 0b10
        assert cs.bits_left == 5

    def test_match_tag_exact_width(self):
        cs = cell_from_bits("10").begin_parse()
        assert cs.match_tag("10")
        assert cs.match_tag("1")
        assert not cs.match_tag("0")
        assert not cs.match_tag("100")

    def test_split(self, leaf_cell):
        cell = CellBuilder().store_uint(0xF, 4).store_uint(0, 4).store_ref(leaf_cell).end_cell()
        cs = cell.begin_parse()
        head = cs.split(4, 1)
        assert head.bits_left == 4
        assert head.refs_left == 1
        assert cs.bits_left == 4
        assert cs.refs_left == 0
        with pytest.raises(CursorUnderflow):
            head.load_uint(5)

    def test_remaining_as_cell(self, leaf_cell):
        cell = CellBuilder().store_uint(0xAA, 8).store_uint(0x5, 4).store_ref(leaf_cell).end_cell()
        cs = cell.begin_parse()
        cs.load_uint(8)
        rest = cs.remaining_as_cell()
        assert rest == CellBuilder().store_uint(0x5, 4).store_ref(leaf_cell).end_cell()
        assert cell.bit_length == 12

    def test_remaining_skips_consumed_refs(self, leaf_cell):
        other = cell_from_bits("1")
        cs = CellBuilder().store_ref(leaf_cell).store_ref(other).end_cell().begin_parse()
        cs.load_ref()
        assert cs.remaining_as_cell().refs == (other,)

    def test_slice_equality_by_remainder(self):
        a = cell_from_bits("1101").begin_parse()
        a.skip_bits(2)
        b = cell_from_bits("01").begin_parse()
        assert a == b

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            CellSlice(Cell(), bit_pos=1)

"""
Cells, cell builders and cell slices.

A cell is an immutable node holding up to 1023 data bits and up to four
references to other cells. Cells form a DAG: the same child may be referenced
by many parents (and by many stack values), which in Python is plain
reference sharing. A cell's identity is its representation hash.

    builder = CellBuilder()
    builder.store_uint(0x12, 8).store_ref(child)
    cell = builder.end_cell()

    cs = cell.begin_parse()
    tag = cs.load_uint(8)
    child = cs.load_ref()

Reference: akifoq pyTonUtils cells, TVM whitepaper section 3.1
"""

import hashlib
from typing import Iterable, List, Optional, Sequence, Tuple

from .constants import MAX_CELL_BITS, MAX_CELL_REFS, MAX_CELL_DEPTH
from .errors import CellOverflow, CursorUnderflow


def _bit_string(value: int, length: int) -> str:
    """Render an integer as a fixed-width string of 0/1 characters"""
    if length == 0:
        return ""
    return format(value, f"0{length}b")


def _hex_with_completion_tag(value: int, length: int) -> str:
    """
    Fift-style hex dump: the bit string is padded with a completion tag
    (a 1 bit followed by zeros) up to a nibble boundary, marked with '_'.
    """
    if length % 4 == 0:
        return format(value, f"0{length // 4}X") if length else ""
    pad = 4 - length % 4
    padded = (value << pad) | (1 << (pad - 1))
    return format(padded, f"0{(length + pad) // 4}X") + "_"


class Cell:
    """
    Immutable cell: data bits, child references and a cached hash/depth.

    Args:
        data: Data bytes, left-aligned; bits past bit_length are ignored
        bit_length: Number of data bits (defaults to len(data) * 8)
        refs: Child cells (at most 4)
        special: Exotic cell marker, carried through serialization
    """

    __slots__ = ("_data", "_bit_length", "_refs", "_special", "_depth", "_hash")

    def __init__(self, data: bytes = b"", bit_length: Optional[int] = None,
                 refs: Sequence["Cell"] = (), special: bool = False):
        if bit_length is None:
            bit_length = len(data) * 8
        if bit_length > MAX_CELL_BITS:
            raise CellOverflow(f"Cell data has {bit_length} bits, limit is {MAX_CELL_BITS}")
        if len(refs) > MAX_CELL_REFS:
            raise CellOverflow(f"Cell has {len(refs)} references, limit is {MAX_CELL_REFS}")
        byte_length = (bit_length + 7) // 8
        if len(data) < byte_length:
            raise ValueError(f"{bit_length} bits need {byte_length} bytes, got {len(data)}")

        # Keep unused trailing bits zero so equal contents have equal bytes
        data = bytes(data[:byte_length])
        if bit_length % 8:
            mask = (0xFF << (8 - bit_length % 8)) & 0xFF
            data = data[:-1] + bytes([data[-1] & mask])

        self._data = data
        self._bit_length = bit_length
        self._refs: Tuple[Cell, ...] = tuple(refs)
        self._special = bool(special)
        self._depth = 1 + max(ref.depth for ref in self._refs) if self._refs else 0
        if self._depth > MAX_CELL_DEPTH:
            raise CellOverflow(f"Cell depth {self._depth} exceeds {MAX_CELL_DEPTH}")
        self._hash = hashlib.sha256(self.representation()).digest()

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def bit_length(self) -> int:
        return self._bit_length

    @property
    def refs(self) -> Tuple["Cell", ...]:
        return self._refs

    @property
    def special(self) -> bool:
        return self._special

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def hash(self) -> bytes:
        """32-byte representation hash"""
        return self._hash

    def descriptors(self) -> bytes:
        """The two descriptor bytes d1, d2 (level is always 0)"""
        d1 = len(self._refs) + 8 * self._special
        d2 = self._bit_length // 8 + (self._bit_length + 7) // 8
        return bytes([d1, d2])

    def augmented_data(self) -> bytes:
        """Data bytes with the completion tag applied to a partial last byte"""
        rem = self._bit_length % 8
        if rem == 0:
            return self._data
        last = self._data[-1] | (1 << (7 - rem))
        return self._data[:-1] + bytes([last])

    def representation(self) -> bytes:
        """Standard cell representation that the hash is computed over"""
        parts = [self.descriptors(), self.augmented_data()]
        parts.extend(ref.depth.to_bytes(2, "big") for ref in self._refs)
        parts.extend(ref.hash for ref in self._refs)
        return b"".join(parts)

    def begin_parse(self) -> "CellSlice":
        """Open a slice at position zero"""
        return CellSlice(self)

    def to_bit_string(self) -> str:
        return _bit_string(int.from_bytes(self._data, "big") >> (len(self._data) * 8 - self._bit_length),
                           self._bit_length)

    def __eq__(self, other) -> bool:
        if isinstance(other, Cell):
            return self._hash == other._hash
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._hash)

    def __repr__(self) -> str:
        value = int.from_bytes(self._data, "big") >> (len(self._data) * 8 - self._bit_length)
        return f"Cell(x{{{_hex_with_completion_tag(value, self._bit_length)}}}, refs={len(self._refs)})"


class CellBuilder:
    """Accumulates bits and references and produces a Cell"""

    def __init__(self):
        self._value = 0
        self._length = 0
        self._refs: List[Cell] = []

    @property
    def bits_left(self) -> int:
        return MAX_CELL_BITS - self._length

    @property
    def refs_left(self) -> int:
        return MAX_CELL_REFS - len(self._refs)

    def _append(self, value: int, length: int) -> "CellBuilder":
        if self._length + length > MAX_CELL_BITS:
            raise CellOverflow(f"Cannot store {length} bits, only {self.bits_left} left")
        self._value = (self._value << length) | value
        self._length += length
        return self

    def store_uint(self, value: int, length: int) -> "CellBuilder":
        if value < 0 or value >= (1 << length):
            raise ValueError(f"{value} does not fit into uint{length}")
        return self._append(value, length)

    def store_int(self, value: int, length: int) -> "CellBuilder":
        if length == 0:
            if value != 0:
                raise ValueError(f"{value} does not fit into int0")
            return self
        bound = 1 << (length - 1)
        if value < -bound or value >= bound:
            raise ValueError(f"{value} does not fit into int{length}")
        return self._append(value & ((1 << length) - 1), length)

    def store_bit(self, bit) -> "CellBuilder":
        return self._append(1 if bit else 0, 1)

    def store_bits(self, data: bytes, length: Optional[int] = None) -> "CellBuilder":
        """Store the first `length` bits of data (all of it by default)"""
        if length is None:
            length = len(data) * 8
        if len(data) * 8 < length:
            raise ValueError(f"{length} bits need {(length + 7) // 8} bytes, got {len(data)}")
        value = int.from_bytes(data, "big") >> (len(data) * 8 - length)
        return self._append(value, length)

    def store_bit_string(self, bits: str) -> "CellBuilder":
        """Store a literal such as '0110'"""
        if bits.strip("01"):
            raise ValueError(f"Not a bit string: {bits!r}")
        return self._append(int(bits, 2) if bits else 0, len(bits))

    def store_var_uint(self, value: int, limit: int) -> "CellBuilder":
        """VarUInteger limit: a byte-length prefix followed by the value"""
        if value < 0:
            raise ValueError(f"VarUInteger cannot hold negative value {value}")
        byte_len = (value.bit_length() + 7) // 8
        if byte_len >= limit:
            raise ValueError(f"{value} does not fit into VarUInteger {limit}")
        self.store_uint(byte_len, (limit - 1).bit_length())
        return self.store_uint(value, byte_len * 8)

    def store_coins(self, amount: int) -> "CellBuilder":
        return self.store_var_uint(amount, 16)

    def store_ref(self, cell: Cell) -> "CellBuilder":
        if len(self._refs) >= MAX_CELL_REFS:
            raise CellOverflow(f"Cannot store more than {MAX_CELL_REFS} references")
        self._refs.append(cell)
        return self

    def store_maybe_ref(self, cell: Optional[Cell]) -> "CellBuilder":
        if cell is None:
            return self.store_bit(0)
        return self.store_bit(1).store_ref(cell)

    def store_slice(self, cs: "CellSlice") -> "CellBuilder":
        """Append the unconsumed bits and references of a slice"""
        length = cs.bits_left
        refs = cs.remaining_refs()
        if len(self._refs) + len(refs) > MAX_CELL_REFS:
            raise CellOverflow(f"Cannot store {len(refs)} references, only {self.refs_left} left")
        self._append(cs.preload_uint(length), length)
        self._refs.extend(refs)
        return self

    def store_address_none(self) -> "CellBuilder":
        return self.store_uint(0, 2)

    def store_address(self, address) -> "CellBuilder":
        """Store addr_std$10 anycast:nothing workchain_id:int8 address:bits256"""
        if address is None:
            return self.store_address_none()
        self.store_uint(0b100, 3)
        self.store_int(address.workchain, 8)
        return self.store_bits(address.account_id, 256)

    def end_cell(self, special: bool = False) -> Cell:
        byte_length = (self._length + 7) // 8
        pad = byte_length * 8 - self._length
        data = (self._value << pad).to_bytes(byte_length, "big")
        return Cell(data, self._length, self._refs, special)


class CellSlice:
    """
    Read cursor over a cell.

    Tracks a bit position and a reference position; every load advances
    them, every preload leaves them untouched. Reading past the end raises
    CursorUnderflow. A slice may be bounded to a sub-range of its cell
    (see split()), in which case reads stop at that bound.
    """

    def __init__(self, cell: Cell, bit_pos: int = 0, ref_pos: int = 0,
                 bit_end: Optional[int] = None, ref_end: Optional[int] = None):
        self.cell = cell
        self.bit_pos = bit_pos
        self.ref_pos = ref_pos
        self.bit_end = cell.bit_length if bit_end is None else bit_end
        self.ref_end = len(cell.refs) if ref_end is None else ref_end
        if not (0 <= bit_pos <= self.bit_end <= cell.bit_length):
            raise ValueError(f"Invalid bit range {bit_pos}..{self.bit_end} for a {cell.bit_length}-bit cell")
        if not (0 <= ref_pos <= self.ref_end <= len(cell.refs)):
            raise ValueError(f"Invalid ref range {ref_pos}..{self.ref_end} for a cell with {len(cell.refs)} refs")
        self._value = int.from_bytes(cell.data, "big")
        self._width = len(cell.data) * 8

    @property
    def bits_left(self) -> int:
        return self.bit_end - self.bit_pos

    @property
    def refs_left(self) -> int:
        return self.ref_end - self.ref_pos

    def is_empty(self) -> bool:
        return self.bits_left == 0 and self.refs_left == 0

    def copy(self) -> "CellSlice":
        return CellSlice(self.cell, self.bit_pos, self.ref_pos, self.bit_end, self.ref_end)

    def _check_bits(self, length: int):
        if length < 0:
            raise ValueError(f"Negative bit count {length}")
        if length > self.bits_left:
            raise CursorUnderflow(f"Need {length} bits, only {self.bits_left} left")

    def _check_refs(self, count: int):
        if count > self.refs_left:
            raise CursorUnderflow(f"Need {count} references, only {self.refs_left} left")

    # ------------------------------------------------------------------
    # Bits
    # ------------------------------------------------------------------

    def preload_uint(self, length: int) -> int:
        self._check_bits(length)
        if length == 0:
            return 0
        shift = self._width - self.bit_pos - length
        return (self._value >> shift) & ((1 << length) - 1)

    def load_uint(self, length: int) -> int:
        value = self.preload_uint(length)
        self.bit_pos += length
        return value

    def preload_int(self, length: int) -> int:
        value = self.preload_uint(length)
        if length and value >= 1 << (length - 1):
            value -= 1 << length
        return value

    def load_int(self, length: int) -> int:
        value = self.preload_int(length)
        self.bit_pos += length
        return value

    def load_bit(self) -> bool:
        return bool(self.load_uint(1))

    load_bool = load_bit

    def preload_bits(self, length: int) -> bytes:
        """Next `length` bits as left-aligned bytes"""
        value = self.preload_uint(length)
        byte_length = (length + 7) // 8
        return (value << (byte_length * 8 - length)).to_bytes(byte_length, "big")

    def load_bits(self, length: int) -> bytes:
        data = self.preload_bits(length)
        self.bit_pos += length
        return data

    def skip_bits(self, length: int) -> "CellSlice":
        self._check_bits(length)
        self.bit_pos += length
        return self

    def load_var_uint(self, limit: int) -> int:
        byte_len = self.load_uint((limit - 1).bit_length())
        return self.load_uint(byte_len * 8)

    def load_coins(self) -> int:
        return self.load_var_uint(16)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def read_record_tag(self, width: int) -> int:
        """Peek the leading `width` bits used to select a record layout"""
        return self.preload_uint(width)

    def match_tag(self, tag: str) -> bool:
        """True when the next len(tag) bits equal the bit string `tag` exactly"""
        width = len(tag)
        if width > self.bits_left:
            return False
        return self.preload_uint(width) == (int(tag, 2) if tag else 0)

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def preload_ref(self, index: int = 0) -> Cell:
        self._check_refs(index + 1)
        return self.cell.refs[self.ref_pos + index]

    def load_ref(self) -> Cell:
        ref = self.preload_ref()
        self.ref_pos += 1
        return ref

    def load_maybe_ref(self) -> Optional[Cell]:
        return self.load_ref() if self.load_bit() else None

    def skip_refs(self, count: int) -> "CellSlice":
        self._check_refs(count)
        self.ref_pos += count
        return self

    def remaining_refs(self) -> Tuple[Cell, ...]:
        return self.cell.refs[self.ref_pos:self.ref_end]

    # ------------------------------------------------------------------
    # Sub-slices
    # ------------------------------------------------------------------

    def split(self, bits: int, refs: int = 0) -> "CellSlice":
        """Cut off the next `bits` bits and `refs` references as a new slice"""
        self._check_bits(bits)
        self._check_refs(refs)
        head = CellSlice(self.cell, self.bit_pos, self.ref_pos,
                         self.bit_pos + bits, self.ref_pos + refs)
        self.bit_pos += bits
        self.ref_pos += refs
        return head

    def remaining_as_cell(self) -> Cell:
        """Copy the unconsumed bits and references into a new cell"""
        return CellBuilder().store_slice(self).end_cell()

    def to_bit_string(self) -> str:
        return _bit_string(self.preload_uint(self.bits_left), self.bits_left)

    def __eq__(self, other) -> bool:
        if isinstance(other, CellSlice):
            return self.remaining_as_cell() == other.remaining_as_cell()
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        value = self.preload_uint(self.bits_left)
        return (f"CellSlice(x{{{_hex_with_completion_tag(value, self.bits_left)}}}, "
                f"refs={self.refs_left})")


def cell_from_bits(bits: str, refs: Iterable[Cell] = ()) -> Cell:
    """Build a cell from a bit-string literal and optional references"""
    builder = CellBuilder().store_bit_string(bits)
    for ref in refs:
        builder.store_ref(ref)
    return builder.end_cell()

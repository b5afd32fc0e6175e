"""
Bag of Cells (BOC) serialization

Canonical binary form of a cell DAG: every distinct cell is written once and
referenced by index, parents before children, with an optional CRC32C
trailer.

Wire layout (generic magic b5ee9c72, all integers big-endian):
    magic           4 bytes
    flags           1 byte   has_idx:1 has_crc32c:1 has_cache_bits:1 flags:2 size:3
    off_bytes       1 byte
    cells           size bytes
    roots           size bytes
    absent          size bytes
    tot_cells_size  off_bytes bytes
    root_list       roots * size bytes
    index           cells * off_bytes bytes        (if has_idx)
    cell_data       tot_cells_size bytes
    crc32c          4 bytes, little-endian         (if has_crc32c)

Each cell in cell_data is: d1 d2 data[ceil(d2 / 2)] ref_index[refs * size].

Reference: TON block.tlb serialized_boc, gpt-oss sera CRC32C helpers
"""

import base64
import binascii
import struct
from typing import Dict, List, Sequence, Tuple, Union

from .cells import Cell
from .constants import (
    BOC_MAGIC, BOC_MAGIC_INDEXED, BOC_MAGIC_INDEXED_CRC, MAX_CELL_REFS,
)
from .errors import (
    Base64Error, CellOverflow, ChecksumMismatch, MalformedBoc, UnexpectedRootCount,
)

# ============================================================================
# CRC32C (Castagnoli)
# ============================================================================

_CRC32C_INIT = 0xFFFFFFFF


def _make_crc32c_table() -> Tuple[int, ...]:
    table = []
    for i in range(256):
        crc = i
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0x82F63B78
            else:
                crc >>= 1
        table.append(crc & 0xFFFFFFFF)
    return tuple(table)


_CRC32C_TABLE = _make_crc32c_table()


def _crc32c_update(crc: int, data: bytes) -> int:
    for byte in data:
        crc = _CRC32C_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc & 0xFFFFFFFF


def crc32c(data: bytes) -> int:
    crc = _crc32c_update(_CRC32C_INIT, data)
    return (~crc) & 0xFFFFFFFF


# ============================================================================
# Deserialization
# ============================================================================

class _Reader:
    """Bounds-checked cursor over the raw BOC bytes"""

    def __init__(self, data: bytes, end: int):
        self.data = data
        self.pos = 0
        self.end = end

    def read(self, n: int) -> bytes:
        if self.pos + n > self.end:
            raise MalformedBoc(f"Unexpected end of data at offset {self.pos} (need {n} bytes)")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read_uint(self, n: int) -> int:
        return int.from_bytes(self.read(n), "big")


def deserialize_boc_roots(data: bytes) -> List[Cell]:
    """
    Parse a BOC and return all of its root cells.

    Raises:
        MalformedBoc: On any structural problem
        ChecksumMismatch: If a CRC32C trailer is present and does not match
    """
    data = bytes(data)
    if len(data) < 6:
        raise MalformedBoc(f"BOC too short: {len(data)} bytes")

    magic = struct.unpack(">I", data[:4])[0]
    if magic == BOC_MAGIC:
        flags = data[4]
        has_idx = bool(flags & 0x80)
        has_crc = bool(flags & 0x40)
        has_cache_bits = bool(flags & 0x20)
        if flags & 0x18:
            raise MalformedBoc(f"Reserved BOC flags set: 0x{flags:02x}")
        size = flags & 0x07
        if has_cache_bits and not has_idx:
            raise MalformedBoc("Cache bits require an index")
    elif magic in (BOC_MAGIC_INDEXED, BOC_MAGIC_INDEXED_CRC):
        has_idx = True
        has_crc = magic == BOC_MAGIC_INDEXED_CRC
        size = data[4]
    else:
        raise MalformedBoc(f"Invalid BOC magic: 0x{magic:08x}")

    end = len(data)
    if has_crc:
        if len(data) < 10:
            raise MalformedBoc("BOC too short for a CRC32C trailer")
        end -= 4
        expected = struct.unpack("<I", data[end:])[0]
        actual = crc32c(data[:end])
        if expected != actual:
            raise ChecksumMismatch(f"CRC32C mismatch: stored 0x{expected:08x}, computed 0x{actual:08x}")

    if not 1 <= size <= 4:
        raise MalformedBoc(f"Invalid reference size {size}")

    reader = _Reader(data, end)
    reader.pos = 5
    off_bytes = reader.read_uint(1)
    if not 1 <= off_bytes <= 8:
        raise MalformedBoc(f"Invalid offset size {off_bytes}")

    cell_count = reader.read_uint(size)
    root_count = reader.read_uint(size)
    absent_count = reader.read_uint(size)
    tot_cells_size = reader.read_uint(off_bytes)

    if root_count < 1:
        raise MalformedBoc("BOC has no roots")
    if root_count > cell_count:
        raise MalformedBoc(f"BOC declares {root_count} roots but only {cell_count} cells")
    if absent_count != 0:
        raise MalformedBoc("Absent cells are not supported")
    if cell_count * 2 > tot_cells_size:
        raise MalformedBoc(f"Cell data size {tot_cells_size} too small for {cell_count} cells")

    if magic == BOC_MAGIC:
        root_indices = [reader.read_uint(size) for _ in range(root_count)]
    else:
        if root_count != 1:
            raise MalformedBoc(f"Legacy BOC must have one root, got {root_count}")
        root_indices = [0]
    for index in root_indices:
        if index >= cell_count:
            raise MalformedBoc(f"Root index {index} out of range")

    if has_idx:
        reader.read(cell_count * off_bytes)

    if reader.pos + tot_cells_size != end:
        raise MalformedBoc(
            f"BOC size mismatch: {end - reader.pos} bytes of cell data, header declares {tot_cells_size}")

    raw_cells = [_read_raw_cell(reader, i, cell_count, size) for i in range(cell_count)]
    if reader.pos != end:
        raise MalformedBoc(f"{end - reader.pos} trailing bytes after cell data")

    # References always point forward, so children are built first
    cells: List[Cell] = [None] * cell_count
    for i in range(cell_count - 1, -1, -1):
        payload, bit_length, ref_indices, special, stored = raw_cells[i]
        try:
            cell = Cell(payload, bit_length, [cells[j] for j in ref_indices], special)
        except CellOverflow as e:
            raise MalformedBoc(f"Cell {i}: {e.message}") from e
        if stored is not None and stored != (cell.hash, cell.depth):
            raise MalformedBoc(f"Stored hash of cell {i} does not match its contents")
        cells[i] = cell

    return [cells[i] for i in root_indices]


def _read_raw_cell(reader: _Reader, index: int, cell_count: int, size: int):
    d1, d2 = reader.read(2)
    ref_count = d1 & 7
    special = bool(d1 & 8)
    with_hashes = bool(d1 & 16)
    level_mask = d1 >> 5
    if ref_count > MAX_CELL_REFS:
        raise MalformedBoc(f"Cell {index} has {ref_count} references")
    if level_mask:
        raise MalformedBoc(f"Cell {index} has non-zero level mask {level_mask}")

    stored = None
    if with_hashes:
        stored_hash = reader.read(32)
        stored_depth = reader.read_uint(2)
        stored = (stored_hash, stored_depth)

    data_len = (d2 + 1) // 2
    payload = reader.read(data_len)
    if d2 & 1:
        last = payload[-1]
        if last == 0:
            raise MalformedBoc(f"Cell {index} is missing its completion tag")
        trailing = (last & -last).bit_length()
        bit_length = data_len * 8 - trailing
        payload = payload[:-1] + bytes([last & (0xFF << trailing) & 0xFF])
    else:
        bit_length = data_len * 8

    ref_indices = []
    for _ in range(ref_count):
        ref = reader.read_uint(size)
        if ref <= index or ref >= cell_count:
            raise MalformedBoc(f"Cell {index} has invalid reference {ref}")
        ref_indices.append(ref)

    return payload, bit_length, ref_indices, special, stored


def deserialize_boc(data: bytes) -> Cell:
    """
    Parse a BOC that must contain exactly one root.

    Raises:
        MalformedBoc, ChecksumMismatch: See deserialize_boc_roots()
        UnexpectedRootCount: If the BOC has more than one root
    """
    roots = deserialize_boc_roots(data)
    if len(roots) != 1:
        raise UnexpectedRootCount(f"Expected a single root, got {len(roots)}")
    return roots[0]


# ============================================================================
# Serialization
# ============================================================================

def _topological_order(roots: Sequence[Cell]) -> List[Cell]:
    """
    Distinct cells, parents before children, via reverse post-order DFS.
    Iterative so that deep chains do not hit the recursion limit.
    """
    seen = set()
    post_order: List[Cell] = []
    for root in reversed(roots):
        if root.hash in seen:
            continue
        seen.add(root.hash)
        stack = [(root, 0)]
        while stack:
            cell, next_ref = stack[-1]
            if next_ref < len(cell.refs):
                stack[-1] = (cell, next_ref + 1)
                # Visit the last reference first so that the first one lands earliest
                child = cell.refs[len(cell.refs) - 1 - next_ref]
                if child.hash not in seen:
                    seen.add(child.hash)
                    stack.append((child, 0))
            else:
                stack.pop()
                post_order.append(cell)
    post_order.reverse()
    return post_order


def _byte_width(value: int) -> int:
    return max(1, (value.bit_length() + 7) // 8)


def serialize_boc_roots(roots: Sequence[Cell], with_crc32c: bool = True,
                        with_index: bool = False) -> bytes:
    """Serialize one or more roots into a single deduplicated BOC"""
    if not roots:
        raise ValueError("At least one root cell is required")

    order = _topological_order(roots)
    index: Dict[bytes, int] = {cell.hash: i for i, cell in enumerate(order)}
    size = _byte_width(len(order))

    cell_blobs = []
    for cell in order:
        blob = cell.descriptors() + cell.augmented_data()
        blob += b"".join(index[ref.hash].to_bytes(size, "big") for ref in cell.refs)
        cell_blobs.append(blob)
    tot_cells_size = sum(len(blob) for blob in cell_blobs)
    off_bytes = _byte_width(tot_cells_size)

    out = bytearray()
    out.extend(struct.pack(">I", BOC_MAGIC))
    out.append((0x80 if with_index else 0) | (0x40 if with_crc32c else 0) | size)
    out.append(off_bytes)
    out.extend(len(order).to_bytes(size, "big"))
    out.extend(len(roots).to_bytes(size, "big"))
    out.extend((0).to_bytes(size, "big"))
    out.extend(tot_cells_size.to_bytes(off_bytes, "big"))
    for root in roots:
        out.extend(index[root.hash].to_bytes(size, "big"))

    if with_index:
        offset = 0
        for blob in cell_blobs:
            offset += len(blob)
            out.extend(offset.to_bytes(off_bytes, "big"))

    for blob in cell_blobs:
        out.extend(blob)

    if with_crc32c:
        out.extend(struct.pack("<I", crc32c(bytes(out))))

    return bytes(out)


def serialize_boc(cell: Cell, with_crc32c: bool = True, with_index: bool = False) -> bytes:
    """
    Serialize a single root cell.

    Deterministic: equal cell graphs always produce identical bytes.
    """
    return serialize_boc_roots([cell], with_crc32c=with_crc32c, with_index=with_index)


# ============================================================================
# Base64 helpers
# ============================================================================

def decode_base64(text: Union[str, bytes]) -> bytes:
    """Strict standard base64 decoding"""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64Error(f"Invalid base64: {e}") from e


def boc_from_base64(text: Union[str, bytes]) -> Cell:
    """Decode base64 text and deserialize a single-root BOC"""
    return deserialize_boc(decode_base64(text))


def boc_to_base64(cell: Cell, with_crc32c: bool = True) -> str:
    return base64.b64encode(serialize_boc(cell, with_crc32c=with_crc32c)).decode("ascii")

"""
TVM Bridge - wire formats for a smart-contract execution service

This package sits between JSON/base64 clients and a TVM execution engine:

**Cell Model:**
- Cells: immutable bit/reference nodes with representation hashes
- Builders and slices: construction and cursor-based reading
- BOC: canonical bag-of-cells serialization with CRC32C

**Records:**
- TL-B tag dispatch for message headers, accounts and addresses
- Destination address resolution for transaction emulation

**Stack:**
- Stack value model (null, int, cell, slice, tuple)
- JSON stack codec

**Boundary:**
- Response envelopes and the transaction / get-method emulator wrappers

Version: 1.0.0
"""

__version__ = '1.0.0'

# ============================================================================
# Cells and BOC
# ============================================================================

from .cells import Cell, CellBuilder, CellSlice, cell_from_bits

from .boc import (
    serialize_boc, serialize_boc_roots, deserialize_boc, deserialize_boc_roots,
    boc_from_base64, boc_to_base64, decode_base64, crc32c,
)

# ============================================================================
# Records and addresses
# ============================================================================

from .tlb import (
    TagTable, COMMON_MSG_INFO, ACCOUNT, MSG_ADDRESS, MSG_ADDRESS_INT, MSG_ADDRESS_EXT,
    IntMsgInfo, ExtInMsgInfo, ExtOutMsgInfo, CurrencyCollection,
    AccountNone, AccountRecord, ShardAccount,
    AddrNone, AddrExtern, AddrStd, AddrVar, Anycast,
    unpack_common_msg_info, unpack_account, unpack_shard_account, pack_shard_account,
    load_address_slice,
)

from .address import StdAddress, extract_std_address

from .resolver import resolve_destination

# ============================================================================
# Stack
# ============================================================================

from .stack import StackValue, Stack, stack_type_of, parse_tvm_int, make_tuple

from .stack_json import (
    StackJSONEncoder, StackJSONDecoder,
    encode_stack_entry, decode_stack_entry, encode_stack, decode_stack,
    stack_to_json, stack_from_json, load_stack_json,
)

# ============================================================================
# Boundary
# ============================================================================

from .responses import (
    success_response, error_response, external_not_accepted_response, get_method_response,
)

from .emulator import (
    TransactionEmulator, TvmEmulator, TransactionEngine, TvmEngine,
    EmulationSuccess, EmulationExternalNotAccepted, GetMethodResult,
    method_id, parse_rand_seed,
)

# ============================================================================
# Errors
# ============================================================================

from .errors import (
    BridgeError, DecodeError,
    Base64Error, MalformedBoc, ChecksumMismatch, UnexpectedRootCount,
    CursorUnderflow, SchemaMismatch, CellOverflow,
    UnsupportedRecordShape, UnsupportedMessageShape,
    NonStandardAddress, InvalidAddress, IntegerParseError,
    UnsupportedType, UnsupportedStackEntry, DepthExceeded,
    InvalidSeed, InvalidJSON, EngineError,
)

# ============================================================================
# Exports
# ============================================================================

__all__ = [
    # Version
    '__version__',

    # Cells and BOC
    'Cell', 'CellBuilder', 'CellSlice', 'cell_from_bits',
    'serialize_boc', 'serialize_boc_roots', 'deserialize_boc', 'deserialize_boc_roots',
    'boc_from_base64', 'boc_to_base64', 'decode_base64', 'crc32c',

    # Records
    'TagTable', 'COMMON_MSG_INFO', 'ACCOUNT', 'MSG_ADDRESS', 'MSG_ADDRESS_INT', 'MSG_ADDRESS_EXT',
    'IntMsgInfo', 'ExtInMsgInfo', 'ExtOutMsgInfo', 'CurrencyCollection',
    'AccountNone', 'AccountRecord', 'ShardAccount',
    'AddrNone', 'AddrExtern', 'AddrStd', 'AddrVar', 'Anycast',
    'unpack_common_msg_info', 'unpack_account', 'unpack_shard_account', 'pack_shard_account',
    'load_address_slice',

    # Addresses
    'StdAddress', 'extract_std_address', 'resolve_destination',

    # Stack
    'StackValue', 'Stack', 'stack_type_of', 'parse_tvm_int', 'make_tuple',
    'StackJSONEncoder', 'StackJSONDecoder',
    'encode_stack_entry', 'decode_stack_entry', 'encode_stack', 'decode_stack',
    'stack_to_json', 'stack_from_json', 'load_stack_json',

    # Boundary
    'success_response', 'error_response', 'external_not_accepted_response', 'get_method_response',
    'TransactionEmulator', 'TvmEmulator', 'TransactionEngine', 'TvmEngine',
    'EmulationSuccess', 'EmulationExternalNotAccepted', 'GetMethodResult',
    'method_id', 'parse_rand_seed',

    # Errors
    'BridgeError', 'DecodeError',
    'Base64Error', 'MalformedBoc', 'ChecksumMismatch', 'UnexpectedRootCount',
    'CursorUnderflow', 'SchemaMismatch', 'CellOverflow',
    'UnsupportedRecordShape', 'UnsupportedMessageShape',
    'NonStandardAddress', 'InvalidAddress', 'IntegerParseError',
    'UnsupportedType', 'UnsupportedStackEntry', 'DepthExceeded',
    'InvalidSeed', 'InvalidJSON', 'EngineError',
]

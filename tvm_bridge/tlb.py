"""
Tagged record parser (TL-B schema dispatch)

Ledger records start with a short constructor tag. A TagTable maps each tag
of a closed set of constructors to the decoder for that layout; the tag is
matched at its exact width, so a one-bit tag "0" and a two-bit tag "10"
can never be confused. Unknown tags raise UnsupportedRecordShape; a record
whose fields cannot be read raises SchemaMismatch.

Schemas covered:

    int_msg_info$0 ihr_disabled:Bool bounce:Bool bounced:Bool
        src:MsgAddressInt dest:MsgAddressInt value:CurrencyCollection
        ihr_fee:Grams fwd_fee:Grams created_lt:uint64 created_at:uint32
    ext_in_msg_info$10 src:MsgAddressExt dest:MsgAddressInt import_fee:Grams
    ext_out_msg_info$11 src:MsgAddressInt dest:MsgAddressExt
        created_lt:uint64 created_at:uint32

    account_none$0
    account$1 addr:MsgAddressInt storage_stat:StorageInfo storage:AccountStorage

    account_descr$_ account:^Account last_trans_hash:bits256 last_trans_lt:uint64

    addr_none$00  addr_extern$01 len:(## 9) external_address:(bits len)
    addr_std$10 anycast:(Maybe Anycast) workchain_id:int8 address:bits256
    addr_var$11 anycast:(Maybe Anycast) addr_len:(## 9) workchain_id:int32
        address:(bits addr_len)
    anycast_info$_ depth:(#<= 30) rewrite_pfx:(bits depth)

Reference: TON crypto/block/block.tlb
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .cells import Cell, CellBuilder, CellSlice
from .errors import CursorUnderflow, SchemaMismatch, UnsupportedRecordShape


Decoder = Callable[[CellSlice], Any]


class TagTable:
    """
    Closed set of constructors for one TL-B type.

    Args:
        name: Type name used in error messages
        entries: (tag bit string, decoder) pairs; the decoder receives the
            slice positioned right after the tag
    """

    def __init__(self, name: str, entries: Sequence[Tuple[str, Decoder]]):
        self.name = name
        self.entries: List[Tuple[str, Decoder]] = list(entries)

    def tag_of(self, cs: CellSlice) -> str:
        """Return the tag the slice starts with, without consuming it"""
        for tag, _ in self.entries:
            if cs.match_tag(tag):
                return tag
        preview = cs.copy().to_bit_string()[:8]
        raise UnsupportedRecordShape(f"No {self.name} constructor matches prefix b{{{preview}}}")

    def unpack(self, cs: CellSlice) -> Any:
        tag = self.tag_of(cs)
        decoder = dict(self.entries)[tag]
        cs.skip_bits(len(tag))
        try:
            return decoder(cs)
        except CursorUnderflow as e:
            raise SchemaMismatch(f"Can't unpack {self.name} (tag ${tag}): {e.message}") from e


# ============================================================================
# Addresses
# ============================================================================

@dataclass(frozen=True)
class Anycast:
    depth: int
    rewrite_pfx: int


@dataclass(frozen=True)
class AddrNone:
    pass


@dataclass(frozen=True)
class AddrExtern:
    length: int
    external_address: bytes


@dataclass(frozen=True)
class AddrStd:
    anycast: Optional[Anycast]
    workchain_id: int
    address: bytes


@dataclass(frozen=True)
class AddrVar:
    anycast: Optional[Anycast]
    addr_len: int
    workchain_id: int
    address: bytes


MsgAddressRecord = Union[AddrNone, AddrExtern, AddrStd, AddrVar]


def _unpack_anycast(cs: CellSlice) -> Optional[Anycast]:
    if not cs.load_bit():
        return None
    depth = cs.load_uint(5)
    if not 1 <= depth <= 30:
        raise SchemaMismatch(f"Anycast depth {depth} out of range 1..30")
    return Anycast(depth, cs.load_uint(depth))


def _unpack_addr_none(cs: CellSlice) -> AddrNone:
    return AddrNone()


def _unpack_addr_extern(cs: CellSlice) -> AddrExtern:
    length = cs.load_uint(9)
    return AddrExtern(length, cs.load_bits(length))


def _unpack_addr_std(cs: CellSlice) -> AddrStd:
    anycast = _unpack_anycast(cs)
    workchain_id = cs.load_int(8)
    return AddrStd(anycast, workchain_id, cs.load_bits(256))


def _unpack_addr_var(cs: CellSlice) -> AddrVar:
    anycast = _unpack_anycast(cs)
    addr_len = cs.load_uint(9)
    workchain_id = cs.load_int(32)
    return AddrVar(anycast, addr_len, workchain_id, cs.load_bits(addr_len))


MSG_ADDRESS_INT = TagTable("MsgAddressInt", [
    ("10", _unpack_addr_std),
    ("11", _unpack_addr_var),
])

MSG_ADDRESS_EXT = TagTable("MsgAddressExt", [
    ("00", _unpack_addr_none),
    ("01", _unpack_addr_extern),
])

MSG_ADDRESS = TagTable("MsgAddress", MSG_ADDRESS_INT.entries + MSG_ADDRESS_EXT.entries)


def load_address_slice(cs: CellSlice, table: TagTable = MSG_ADDRESS_INT) -> CellSlice:
    """
    Cut the next address off the slice and return it as its own sub-slice,
    so the caller can decode it later (see address.extract_std_address).
    """
    probe = cs.copy()
    table.unpack(probe)
    return cs.split(probe.bit_pos - cs.bit_pos)


# ============================================================================
# Messages
# ============================================================================

@dataclass(frozen=True)
class CurrencyCollection:
    grams: int
    other: Optional[Cell] = None


@dataclass
class IntMsgInfo:
    ihr_disabled: bool
    bounce: bool
    bounced: bool
    src: CellSlice
    dest: CellSlice
    value: CurrencyCollection
    ihr_fee: int
    fwd_fee: int
    created_lt: int
    created_at: int


@dataclass
class ExtInMsgInfo:
    src: CellSlice
    dest: CellSlice
    import_fee: int


@dataclass
class ExtOutMsgInfo:
    src: CellSlice
    dest: CellSlice
    created_lt: int
    created_at: int


CommonMsgInfo = Union[IntMsgInfo, ExtInMsgInfo, ExtOutMsgInfo]


def load_currency_collection(cs: CellSlice) -> CurrencyCollection:
    grams = cs.load_coins()
    return CurrencyCollection(grams, cs.load_maybe_ref())


def _unpack_int_msg_info(cs: CellSlice) -> IntMsgInfo:
    ihr_disabled = cs.load_bit()
    bounce = cs.load_bit()
    bounced = cs.load_bit()
    # Outbound messages built off-chain carry addr_none as the source
    src = load_address_slice(cs, MSG_ADDRESS)
    dest = load_address_slice(cs, MSG_ADDRESS_INT)
    value = load_currency_collection(cs)
    ihr_fee = cs.load_coins()
    fwd_fee = cs.load_coins()
    created_lt = cs.load_uint(64)
    created_at = cs.load_uint(32)
    return IntMsgInfo(ihr_disabled, bounce, bounced, src, dest, value,
                      ihr_fee, fwd_fee, created_lt, created_at)


def _unpack_ext_in_msg_info(cs: CellSlice) -> ExtInMsgInfo:
    src = load_address_slice(cs, MSG_ADDRESS_EXT)
    dest = load_address_slice(cs, MSG_ADDRESS_INT)
    return ExtInMsgInfo(src, dest, cs.load_coins())


def _unpack_ext_out_msg_info(cs: CellSlice) -> ExtOutMsgInfo:
    src = load_address_slice(cs, MSG_ADDRESS_INT)
    dest = load_address_slice(cs, MSG_ADDRESS_EXT)
    return ExtOutMsgInfo(src, dest, cs.load_uint(64), cs.load_uint(32))


COMMON_MSG_INFO = TagTable("CommonMsgInfo", [
    ("0", _unpack_int_msg_info),
    ("10", _unpack_ext_in_msg_info),
    ("11", _unpack_ext_out_msg_info),
])


def unpack_common_msg_info(message: Union[Cell, CellSlice]) -> CommonMsgInfo:
    """Decode the info header at the start of a Message cell"""
    cs = message.begin_parse() if isinstance(message, Cell) else message
    return COMMON_MSG_INFO.unpack(cs)


# ============================================================================
# Accounts
# ============================================================================

@dataclass(frozen=True)
class AccountNone:
    pass


@dataclass
class AccountRecord:
    """
    An existing account.

    Only the address is decoded; storage_stat and storage are kept
    together as `state`, a cell holding the rest of the record.
    """
    addr: CellSlice
    state: Cell


Account = Union[AccountNone, AccountRecord]


def _unpack_account_none(cs: CellSlice) -> AccountNone:
    return AccountNone()


def _unpack_account(cs: CellSlice) -> AccountRecord:
    addr = load_address_slice(cs, MSG_ADDRESS_INT)
    state = cs.remaining_as_cell()
    cs.skip_bits(cs.bits_left).skip_refs(cs.refs_left)
    return AccountRecord(addr, state)


ACCOUNT = TagTable("Account", [
    ("0", _unpack_account_none),
    ("1", _unpack_account),
])


def unpack_account(account: Union[Cell, CellSlice]) -> Account:
    cs = account.begin_parse() if isinstance(account, Cell) else account
    return ACCOUNT.unpack(cs)


@dataclass
class ShardAccount:
    account: Cell
    last_trans_hash: bytes
    last_trans_lt: int


def unpack_shard_account(shard_account: Union[Cell, CellSlice]) -> ShardAccount:
    cs = shard_account.begin_parse() if isinstance(shard_account, Cell) else shard_account
    try:
        account = cs.load_ref()
        last_trans_hash = cs.load_bits(256)
        last_trans_lt = cs.load_uint(64)
    except CursorUnderflow as e:
        raise SchemaMismatch(f"Can't unpack ShardAccount: {e.message}") from e
    return ShardAccount(account, last_trans_hash, last_trans_lt)


def pack_shard_account(account: Cell, last_trans_hash: bytes, last_trans_lt: int) -> Cell:
    if len(last_trans_hash) != 32:
        raise ValueError(f"last_trans_hash must be 32 bytes, got {len(last_trans_hash)}")
    return (CellBuilder()
            .store_ref(account)
            .store_bits(last_trans_hash)
            .store_uint(last_trans_lt, 64)
            .end_cell())

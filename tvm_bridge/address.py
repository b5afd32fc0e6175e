"""
Standard account addresses.

A standard address is a (workchain, 256-bit account id) pair. It is read
from an address slice (addr_std$10) or parsed from one of the two text
forms accepted by the emulator boundary:

    raw            "0:83dfd552e63729b472fcbcc8c45ebcc6691702558b68ec7527e1ba403a0f31a8"
    user-friendly  "EQCD39VS5jcptHL8vMjEXrzGaRcCVYto7HUn4bpAOg8xqB2N" (base64 or base64url)
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Union

from .cells import Cell, CellSlice
from .constants import ADDR_TAG_BOUNCEABLE, ADDR_TAG_NON_BOUNCEABLE, ADDR_TAG_TESTNET
from .errors import InvalidAddress, NonStandardAddress, UnsupportedRecordShape
from .tlb import MSG_ADDRESS, AddrStd


@dataclass(frozen=True)
class StdAddress:
    """Workchain id plus 32-byte account id"""
    workchain: int
    account_id: bytes
    bounceable: bool = field(default=True, compare=False)
    testnet: bool = field(default=False, compare=False)

    def __post_init__(self):
        if not -128 <= self.workchain <= 127:
            raise InvalidAddress(f"Workchain {self.workchain} does not fit into int8")
        if len(self.account_id) != 32:
            raise InvalidAddress(f"Account id must be 32 bytes, got {len(self.account_id)}")

    @classmethod
    def parse(cls, text: str) -> "StdAddress":
        """Parse either the raw or the user-friendly form"""
        text = text.strip()
        if ":" in text:
            return cls._parse_raw(text)
        if len(text) == 48:
            return cls._parse_friendly(text)
        raise InvalidAddress(f"Unrecognized address format: {text!r}")

    @classmethod
    def _parse_raw(cls, text: str) -> "StdAddress":
        wc_part, _, hex_part = text.partition(":")
        try:
            workchain = int(wc_part)
            account_id = bytes.fromhex(hex_part)
        except ValueError as e:
            raise InvalidAddress(f"Invalid raw address {text!r}: {e}") from e
        if len(hex_part) != 64:
            raise InvalidAddress(f"Raw address needs 64 hex digits, got {len(hex_part)}")
        return cls(workchain, account_id)

    @classmethod
    def _parse_friendly(cls, text: str) -> "StdAddress":
        alphabet = text.replace("-", "+").replace("_", "/")
        try:
            raw = base64.b64decode(alphabet, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidAddress(f"Invalid base64 address {text!r}: {e}") from e
        if len(raw) != 36:
            raise InvalidAddress(f"User-friendly address must decode to 36 bytes, got {len(raw)}")
        if binascii.crc_hqx(raw[:34], 0) != int.from_bytes(raw[34:], "big"):
            raise InvalidAddress(f"Address checksum mismatch: {text!r}")

        tag = raw[0]
        testnet = bool(tag & ADDR_TAG_TESTNET)
        tag &= ~ADDR_TAG_TESTNET
        if tag not in (ADDR_TAG_BOUNCEABLE, ADDR_TAG_NON_BOUNCEABLE):
            raise InvalidAddress(f"Unknown address tag 0x{raw[0]:02x}")
        workchain = int.from_bytes(raw[1:2], "big", signed=True)
        return cls(workchain, raw[2:34], tag == ADDR_TAG_BOUNCEABLE, testnet)

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.account_id.hex()}"

    def to_friendly(self, bounceable: bool = None, testnet: bool = None, url_safe: bool = True) -> str:
        bounceable = self.bounceable if bounceable is None else bounceable
        testnet = self.testnet if testnet is None else testnet
        tag = ADDR_TAG_BOUNCEABLE if bounceable else ADDR_TAG_NON_BOUNCEABLE
        if testnet:
            tag |= ADDR_TAG_TESTNET
        raw = bytes([tag]) + self.workchain.to_bytes(1, "big", signed=True) + self.account_id
        raw += binascii.crc_hqx(raw, 0).to_bytes(2, "big")
        encode = base64.urlsafe_b64encode if url_safe else base64.b64encode
        return encode(raw).decode("ascii")

    def __str__(self) -> str:
        return self.to_raw()


def _rewrite_anycast(address: bytes, depth: int, prefix: int) -> bytes:
    value = int.from_bytes(address, "big")
    shift = 256 - depth
    value = (value & ((1 << shift) - 1)) | (prefix << shift)
    return value.to_bytes(32, "big")


def extract_std_address(addr: Union[Cell, CellSlice]) -> StdAddress:
    """
    Decode an address slice as a standard address.

    Anycast prefixes are rewritten into the account id. Any other address
    kind (addr_var, addr_none, addr_extern) raises NonStandardAddress.
    """
    cs = addr.begin_parse() if isinstance(addr, Cell) else addr.copy()
    try:
        record = MSG_ADDRESS.unpack(cs)
    except UnsupportedRecordShape as e:
        raise NonStandardAddress(f"Not an address: {e.message}") from e
    if not isinstance(record, AddrStd):
        raise NonStandardAddress(f"Expected addr_std, got {type(record).__name__}")

    account_id = record.address
    if record.anycast is not None:
        account_id = _rewrite_anycast(account_id, record.anycast.depth, record.anycast.rewrite_pfx)
    return StdAddress(record.workchain_id, account_id)

"""
Emulator boundary

Wraps an external execution engine behind the string-in / JSON-out surface
used by clients: base64 BOCs and JSON stacks go in, JSON envelopes come out.
The engine itself (transaction state transitions, the TVM interpreter,
configuration unpacking) is supplied by the caller through the
TransactionEngine / TvmEngine protocols; this module only decodes inputs,
resolves the target account and re-serializes the results.

Usage:
    emulator = TransactionEmulator.create(make_engine, config_boc)
    emulator.set_unixtime(1700000000)
    response = emulator.emulate_transaction(shard_account_boc, message_boc)

    tvm = TvmEmulator.create(make_tvm, code_boc, data_boc)
    response = tvm.run_get_method("seqno", "[]")
"""

import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union

from .address import StdAddress
from .boc import boc_to_base64, decode_base64, deserialize_boc
from .cells import Cell
from .errors import Base64Error, BridgeError, DecodeError, InvalidSeed
from .resolver import resolve_destination
from .responses import (
    error_response, external_not_accepted_response, get_method_response, success_response,
)
from .stack import Stack
from .stack_json import StackJSONEncoder, decode_stack, load_stack_json
from .tlb import pack_shard_account

logger = logging.getLogger(__name__)


# ============================================================================
# Engine results
# ============================================================================

@dataclass
class EmulationSuccess:
    """A transaction was produced"""
    transaction: Cell
    account_state: Cell
    last_trans_hash: bytes
    last_trans_lt: int
    vm_log: str


@dataclass
class EmulationExternalNotAccepted:
    """The contract did not accept an inbound external message"""
    vm_log: str
    vm_exit_code: int


EmulationResult = Union[EmulationSuccess, EmulationExternalNotAccepted]


@dataclass
class GetMethodResult:
    stack: Stack
    gas_used: int
    vm_exit_code: int
    vm_log: str
    missing_library: Optional[bytes] = None


# ============================================================================
# Engine protocols
# ============================================================================

class TransactionEngine(Protocol):
    """Applies a message to an account; raises EngineError on failure"""

    def set_unixtime(self, unixtime: int) -> None: ...

    def set_lt(self, lt: int) -> None: ...

    def set_rand_seed(self, rand_seed: bytes) -> None: ...

    def set_ignore_chksig(self, ignore_chksig: bool) -> None: ...

    def set_config(self, config: Cell) -> None: ...

    def set_libs(self, libs: Cell) -> None: ...

    def emulate_transaction(self, address: StdAddress, shard_account: Cell,
                            message: Cell) -> EmulationResult: ...


class TvmEngine(Protocol):
    """Runs get-methods against fixed code and data"""

    def set_libraries(self, libs: Cell) -> None: ...

    def set_c7(self, address: StdAddress, unixtime: int, balance: int,
               rand_seed: bytes, config: Cell) -> None: ...

    def set_gas_limit(self, gas_limit: int) -> None: ...

    def run_get_method(self, method_id: int, stack: Stack) -> GetMethodResult: ...


# ============================================================================
# Helpers
# ============================================================================

def parse_rand_seed(rand_seed_hex: str) -> bytes:
    """64 hex characters -> 32-byte seed"""
    if len(rand_seed_hex) != 64:
        raise InvalidSeed("Rand seed expected as 64 characters hex string")
    try:
        return bytes.fromhex(rand_seed_hex)
    except ValueError as e:
        raise InvalidSeed("Can't decode hex rand seed") from e


def method_id(name: str) -> int:
    """Get-method id for a method name: crc16(name) | 0x10000"""
    return (binascii.crc_hqx(name.encode("utf-8"), 0) & 0xFFFF) | 0x10000


def _load_boc(boc_b64: str, what: str) -> Cell:
    """Decode a base64 BOC, prefixing errors with what was being decoded"""
    try:
        data = decode_base64(boc_b64)
    except Base64Error as e:
        raise e.with_context(f"Can't decode base64 {what} boc") from e
    try:
        return deserialize_boc(data)
    except DecodeError as e:
        raise e.with_context(f"Can't deserialize {what} boc") from e


# ============================================================================
# Transaction emulator
# ============================================================================

class TransactionEmulator:
    """Emulates transactions through an external TransactionEngine"""

    def __init__(self, engine: TransactionEngine):
        self.engine = engine

    @classmethod
    def create(cls, engine_factory: Callable[[Cell, int], TransactionEngine],
               config_boc: str, vm_log_verbosity: int = 0) -> Optional["TransactionEmulator"]:
        """
        Decode the network config and build an engine from it.

        Returns None (and logs the reason) if the config can't be decoded.
        """
        try:
            config = _load_boc(config_boc, "config params")
        except DecodeError as e:
            logger.error("%s", e.message)
            return None
        return cls(engine_factory(config, vm_log_verbosity))

    def emulate_transaction(self, shard_account_boc: str, message_boc: str) -> str:
        """
        Emulate one transaction.

        Returns:
            JSON envelope: success (transaction + new shard account BOCs),
            external-not-accepted, or error
        """
        try:
            message = _load_boc(message_boc, "message")
            shard_account = _load_boc(shard_account_boc, "shard account")
            address = resolve_destination(message, shard_account)
        except DecodeError as e:
            logger.debug("Rejected emulation input: %s", e)
            return error_response(e.message)

        logger.debug("Emulating transaction on %s", address)
        try:
            result = self.engine.emulate_transaction(address, shard_account, message)
        except BridgeError as e:
            return error_response(f"Emulate transaction failed: {e.message}")

        if isinstance(result, EmulationExternalNotAccepted):
            return external_not_accepted_response(result.vm_log, result.vm_exit_code)

        new_shard_account = pack_shard_account(
            result.account_state, result.last_trans_hash, result.last_trans_lt)
        return success_response(
            boc_to_base64(result.transaction),
            boc_to_base64(new_shard_account),
            result.vm_log,
        )

    def set_unixtime(self, unixtime: int) -> bool:
        self.engine.set_unixtime(unixtime)
        return True

    def set_lt(self, lt: int) -> bool:
        self.engine.set_lt(lt)
        return True

    def set_rand_seed(self, rand_seed_hex: str) -> bool:
        try:
            seed = parse_rand_seed(rand_seed_hex)
        except InvalidSeed as e:
            logger.error("%s", e.message)
            return False
        self.engine.set_rand_seed(seed)
        return True

    def set_ignore_chksig(self, ignore_chksig: bool) -> bool:
        self.engine.set_ignore_chksig(ignore_chksig)
        return True

    def set_config(self, config_boc: str) -> bool:
        try:
            config = _load_boc(config_boc, "config params")
        except DecodeError as e:
            logger.error("%s", e.message)
            return False
        self.engine.set_config(config)
        return True

    def set_libs(self, shardchain_libs_boc: Optional[str]) -> bool:
        """Set shardchain libraries; None leaves the current set untouched"""
        if shardchain_libs_boc is None:
            return True
        try:
            libs = _load_boc(shardchain_libs_boc, "shardchain libraries")
        except DecodeError as e:
            logger.error("%s", e.message)
            return False
        self.engine.set_libs(libs)
        return True


# ============================================================================
# TVM emulator
# ============================================================================

class TvmEmulator:
    """Runs get-methods through an external TvmEngine"""

    def __init__(self, engine: TvmEngine, encoder: Optional[StackJSONEncoder] = None):
        self.engine = engine
        self.encoder = encoder or StackJSONEncoder()

    @classmethod
    def create(cls, engine_factory: Callable[[Cell, Cell, int], TvmEngine],
               code_boc: str, data_boc: str, vm_log_verbosity: int = 0) -> Optional["TvmEmulator"]:
        """Decode code and data and build an engine; None (logged) on bad input"""
        try:
            code = _load_boc(code_boc, "code")
            data = _load_boc(data_boc, "data")
        except DecodeError as e:
            logger.error("%s", e.message)
            return None
        return cls(engine_factory(code, data, vm_log_verbosity))

    def set_libraries(self, libs_boc: str) -> bool:
        try:
            libs = _load_boc(libs_boc, "libraries")
        except DecodeError as e:
            logger.error("%s", e.message)
            return False
        self.engine.set_libraries(libs)
        return True

    def set_c7(self, address: str, unixtime: int, balance: int,
               rand_seed_hex: str, config_boc: str) -> bool:
        """Set the c7 context: own address, time, balance, seed and config"""
        try:
            std_address = StdAddress.parse(address)
            config = _load_boc(config_boc, "config params")
            seed = parse_rand_seed(rand_seed_hex)
        except DecodeError as e:
            logger.error("%s", e.message)
            return False
        self.engine.set_c7(std_address, unixtime, balance, seed, config)
        return True

    def set_gas_limit(self, gas_limit: int) -> bool:
        self.engine.set_gas_limit(gas_limit)
        return True

    def run_get_method(self, method: Union[int, str], stack_json: str) -> str:
        """
        Run a get-method.

        Args:
            method: Numeric method id or method name
            stack_json: JSON array of stack entries

        Returns:
            JSON envelope with the result stack, or an error envelope
        """
        try:
            entries = load_stack_json(stack_json)
        except DecodeError as e:
            return error_response(e.message)
        try:
            stack = decode_stack(entries)
        except DecodeError as e:
            return error_response(f"Error parsing stack: {e.message}")

        mid = method_id(method) if isinstance(method, str) else method
        logger.debug("Running get-method %d with %d stack entries", mid, len(stack))
        try:
            result = self.engine.run_get_method(mid, stack)
            encoded = self.encoder.encode_stack(result.stack)
        except BridgeError as e:
            return error_response(e.message)

        return get_method_response(
            encoded, result.gas_used, result.vm_exit_code, result.vm_log, result.missing_library)

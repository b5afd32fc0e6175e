"""
Destination address resolution for transaction emulation.

The account a message is applied to is taken from the previous shard
account state when that account exists, and only falls back to the
message's destination when the account is uninitialized. An existing
account therefore always resolves to its own recorded address, whatever
the message claims.
"""

from .address import StdAddress, extract_std_address
from .cells import Cell
from .errors import UnsupportedMessageShape
from .tlb import (
    AccountNone, ExtInMsgInfo, IntMsgInfo,
    unpack_account, unpack_common_msg_info, unpack_shard_account,
)


def resolve_destination(message: Cell, shard_account: Cell) -> StdAddress:
    """
    Resolve the account address a message should be emulated against.

    Args:
        message: Message cell (CommonMsgInfo header first)
        shard_account: ShardAccount cell from the previous state

    Returns:
        StdAddress of the target account

    Raises:
        SchemaMismatch: If the shard account, account or message can't be unpacked
        UnsupportedRecordShape: If a constructor tag is not recognized
        UnsupportedMessageShape: For an uninitialized account and an
            outbound external message
        NonStandardAddress: If the address is not addr_std
    """
    account = unpack_account(unpack_shard_account(shard_account).account)

    if isinstance(account, AccountNone):
        info = unpack_common_msg_info(message)
        if not isinstance(info, (ExtInMsgInfo, IntMsgInfo)):
            raise UnsupportedMessageShape("Only ext in and int message are supported")
        addr_slice = info.dest
    else:
        addr_slice = account.addr

    return extract_std_address(addr_slice)

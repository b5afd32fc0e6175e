"""
JSON response envelopes returned by the emulator boundary.

    success:       {"success": true, ...payload}
    error:         {"success": false, "error": "<message>"}
    not accepted:  {"success": false, "error": "...", "vm_log": "...", "vm_exit_code": N}
"""

import json
from typing import Any, Dict, List, Optional

EXTERNAL_NOT_ACCEPTED = "External message not accepted by smart contract"


def _dump(obj: Dict[str, Any]) -> str:
    return json.dumps(obj)


def success_response(transaction: str, shard_account: str, vm_log: str) -> str:
    """Envelope for a completed transaction (both payloads are base64 BOCs)"""
    return _dump({
        "success": True,
        "transaction": transaction,
        "shard_account": shard_account,
        "vm_log": vm_log,
    })


def error_response(error: str) -> str:
    return _dump({"success": False, "error": error})


def external_not_accepted_response(vm_log: str, vm_exit_code: int) -> str:
    """Envelope for an inbound external message the contract did not accept"""
    return _dump({
        "success": False,
        "error": EXTERNAL_NOT_ACCEPTED,
        "vm_log": vm_log,
        "vm_exit_code": vm_exit_code,
    })


def get_method_response(stack: List[Dict[str, Any]], gas_used: int, vm_exit_code: int,
                        vm_log: str, missing_library: Optional[bytes] = None) -> str:
    """
    Envelope for a get-method run.

    Args:
        stack: Result stack, already encoded as JSON entries
        gas_used: Gas consumed (sent as a decimal string)
        vm_exit_code: TVM exit code
        vm_log: Execution log
        missing_library: 32-byte hash of a library the VM could not load
    """
    return _dump({
        "success": True,
        "stack": stack,
        "gas_used": str(gas_used),
        "vm_exit_code": vm_exit_code,
        "vm_log": vm_log,
        "missing_library": missing_library.hex().upper() if missing_library is not None else None,
    })

"""
Error codes and exception types for the TVM bridge.

Every failure raised by the codecs carries a stable error code so that the
emulator boundary can turn it into a structured error envelope. The rendered
message is "[CODE] message", matching the runtime error convention.
"""

# ============================================================================
# Error Codes
# ============================================================================

E_BASE64 = "E_BASE64"
E_MALFORMED_BOC = "E_MALFORMED_BOC"
E_CHECKSUM_MISMATCH = "E_CHECKSUM_MISMATCH"
E_UNEXPECTED_ROOT_COUNT = "E_UNEXPECTED_ROOT_COUNT"
E_CELL_OVERFLOW = "E_CELL_OVERFLOW"
E_CURSOR_UNDERFLOW = "E_CURSOR_UNDERFLOW"
E_SCHEMA_MISMATCH = "E_SCHEMA_MISMATCH"
E_UNSUPPORTED_RECORD_SHAPE = "E_UNSUPPORTED_RECORD_SHAPE"
E_UNSUPPORTED_MESSAGE_SHAPE = "E_UNSUPPORTED_MESSAGE_SHAPE"
E_NON_STANDARD_ADDRESS = "E_NON_STANDARD_ADDRESS"
E_INVALID_ADDRESS = "E_INVALID_ADDRESS"
E_INTEGER_PARSE = "E_INTEGER_PARSE"
E_UNSUPPORTED_TYPE = "E_UNSUPPORTED_TYPE"
E_UNSUPPORTED_STACK_ENTRY = "E_UNSUPPORTED_STACK_ENTRY"
E_DEPTH_EXCEEDED = "E_DEPTH_EXCEEDED"
E_INVALID_SEED = "E_INVALID_SEED"
E_INVALID_JSON = "E_INVALID_JSON"
E_ENGINE = "E_ENGINE"


class BridgeError(Exception):
    """Base exception for all bridge errors"""
    code = "E_BRIDGE"

    def __init__(self, message: str, code: str = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code}] {message}")

    def with_context(self, context: str) -> "BridgeError":
        """
        Return an error of the same class whose message is prefixed with
        the location that failed (e.g. a JSON path or record field).
        """
        return type(self)(f"{context}: {self.message}", self.code)


class DecodeError(BridgeError):
    """Input could not be decoded"""
    code = "E_DECODE"


class Base64Error(DecodeError):
    code = E_BASE64


class MalformedBoc(DecodeError):
    code = E_MALFORMED_BOC


class ChecksumMismatch(DecodeError):
    code = E_CHECKSUM_MISMATCH


class UnexpectedRootCount(DecodeError):
    code = E_UNEXPECTED_ROOT_COUNT


class CursorUnderflow(DecodeError):
    code = E_CURSOR_UNDERFLOW


class SchemaMismatch(DecodeError):
    code = E_SCHEMA_MISMATCH


class UnsupportedRecordShape(DecodeError):
    code = E_UNSUPPORTED_RECORD_SHAPE


class UnsupportedMessageShape(DecodeError):
    code = E_UNSUPPORTED_MESSAGE_SHAPE


class NonStandardAddress(DecodeError):
    code = E_NON_STANDARD_ADDRESS


class InvalidAddress(DecodeError):
    code = E_INVALID_ADDRESS


class IntegerParseError(DecodeError):
    code = E_INTEGER_PARSE


class UnsupportedType(DecodeError):
    code = E_UNSUPPORTED_TYPE


class DepthExceeded(DecodeError):
    code = E_DEPTH_EXCEEDED


class InvalidSeed(DecodeError):
    code = E_INVALID_SEED


class InvalidJSON(DecodeError):
    code = E_INVALID_JSON


class CellOverflow(BridgeError):
    """Builder exceeded the bit or reference limit of a cell"""
    code = E_CELL_OVERFLOW


class UnsupportedStackEntry(BridgeError):
    """Stack value has no JSON representation"""
    code = E_UNSUPPORTED_STACK_ENTRY


class EngineError(BridgeError):
    """Raised by execution engines when emulation itself fails"""
    code = E_ENGINE

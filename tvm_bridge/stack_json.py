"""
Stack JSON codec

Converts between stack values and the JSON wire form used by get-method
calls. Every entry is a tagged object:

    {"type": "null",       "value": null}
    {"type": "number",     "value": "-42"}                  decimal string
    {"type": "cell",       "value": "te6cckEBAQEAAgAAAEysuc0="}  base64 BOC with CRC32C
    {"type": "cell_slice", "value": "<base64 BOC>"}        remaining slice content
    {"type": "tuple",      "value": [<entry>, ...]}

A stack is a JSON array of entries, first argument first.

Decoding is strict: any failure inside a nested tuple aborts the whole
decode and names the failing element's path (e.g. stack[1].value[0]).
"""

import json
from typing import Any, Callable, Dict, List

from .boc import boc_to_base64, decode_base64, deserialize_boc
from .cells import Cell, CellSlice
from .constants import (
    MAX_STACK_DEPTH,
    TYPE_CELL, TYPE_NULL, TYPE_NUMBER, TYPE_SLICE, TYPE_TUPLE, TYPE_UNSUPPORTED,
)
from .errors import (
    DecodeError, DepthExceeded, InvalidJSON, SchemaMismatch,
    UnsupportedStackEntry, UnsupportedType,
)
from .stack import Stack, StackValue, parse_tvm_int, stack_type_of

# Type alias for JSON-compatible values
JSONValue = Any


class StackJSONDecoder:
    """Decodes JSON stack entries into stack values"""

    def __init__(self, max_depth: int = MAX_STACK_DEPTH):
        """
        Args:
            max_depth: Maximum tuple nesting accepted before DepthExceeded
        """
        self.max_depth = max_depth
        self._decoders: Dict[str, Callable[[JSONValue, str, int], StackValue]] = {
            TYPE_CELL: self._decode_cell,
            TYPE_SLICE: self._decode_slice,
            TYPE_NUMBER: self._decode_number,
            TYPE_TUPLE: self._decode_tuple,
        }

    def decode(self, entry: JSONValue) -> StackValue:
        """
        Decode a single tagged entry.

        Raises:
            DecodeError: Any subclass, describing the first failing element
        """
        return self._decode(entry, "entry", 0)

    def decode_stack(self, entries: JSONValue) -> Stack:
        """Decode a JSON array of entries, preserving order"""
        if not isinstance(entries, list):
            raise SchemaMismatch("Stack of type array expected")
        return [self._decode(entry, f"stack[{i}]", 0) for i, entry in enumerate(entries)]

    def _decode(self, entry: JSONValue, path: str, depth: int) -> StackValue:
        if depth > self.max_depth:
            raise DepthExceeded(f"{path}: tuple nesting exceeds {self.max_depth}")
        if not isinstance(entry, dict):
            raise SchemaMismatch(f"{path}: Stack entry of object type expected")

        entry_type = entry.get("type")
        if not isinstance(entry_type, str):
            raise SchemaMismatch(f"{path}: Field 'type' of string type expected")
        if entry_type == TYPE_NULL:
            return None

        decoder = self._decoders.get(entry_type)
        if decoder is None:
            raise UnsupportedType(f"{path}: Unsupported type: {entry_type}")
        if "value" not in entry:
            raise SchemaMismatch(f"{path}: Field 'value' is required for type {entry_type}")
        return decoder(entry["value"], path, depth)

    def _load_cell(self, value: JSONValue, path: str) -> Cell:
        if not isinstance(value, str):
            raise SchemaMismatch(f"{path}: Field 'value' of string type expected")
        try:
            return deserialize_boc(decode_base64(value))
        except DecodeError as e:
            raise e.with_context(path) from e

    def _decode_cell(self, value: JSONValue, path: str, depth: int) -> Cell:
        return self._load_cell(value, path)

    def _decode_slice(self, value: JSONValue, path: str, depth: int) -> CellSlice:
        return self._load_cell(value, path).begin_parse()

    def _decode_number(self, value: JSONValue, path: str, depth: int) -> int:
        if not isinstance(value, str):
            raise SchemaMismatch(f"{path}: Field 'value' of string type expected")
        try:
            return parse_tvm_int(value)
        except DecodeError as e:
            raise e.with_context(path) from e

    def _decode_tuple(self, value: JSONValue, path: str, depth: int) -> tuple:
        if not isinstance(value, list):
            raise SchemaMismatch(f"{path}: Field 'value' of array type expected")
        return tuple(
            self._decode(element, f"{path}.value[{i}]", depth + 1)
            for i, element in enumerate(value)
        )


class StackJSONEncoder:
    """Encodes stack values into JSON stack entries"""

    def __init__(self, lenient: bool = False, max_depth: int = MAX_STACK_DEPTH):
        """
        Args:
            lenient: Emit {"type": "UNSUPPORTED STACK ENTRY TYPE", "value": null}
                for values with no JSON form instead of raising
            max_depth: Maximum tuple nesting
        """
        self.lenient = lenient
        self.max_depth = max_depth

    def encode(self, value: StackValue) -> Dict[str, JSONValue]:
        """
        Encode a stack value as a tagged JSON object.

        Raises:
            UnsupportedStackEntry: For values with no JSON form (unless lenient)
        """
        return self._encode(value, 0)

    def encode_stack(self, stack: Stack) -> List[Dict[str, JSONValue]]:
        return [self._encode(value, 0) for value in stack]

    def _encode(self, value: StackValue, depth: int) -> Dict[str, JSONValue]:
        if depth > self.max_depth:
            raise DepthExceeded(f"Tuple nesting exceeds {self.max_depth}")

        entry_type = stack_type_of(value)
        if entry_type == TYPE_NULL:
            return {"type": TYPE_NULL, "value": None}
        if entry_type == TYPE_NUMBER:
            return {"type": TYPE_NUMBER, "value": str(int(value))}
        if entry_type == TYPE_CELL:
            return {"type": TYPE_CELL, "value": boc_to_base64(value)}
        if entry_type == TYPE_SLICE:
            # Only the unconsumed part of the slice goes on the wire
            return {"type": TYPE_SLICE, "value": boc_to_base64(value.remaining_as_cell())}
        if entry_type == TYPE_TUPLE:
            return {"type": TYPE_TUPLE, "value": [self._encode(v, depth + 1) for v in value]}

        if self.lenient:
            return {"type": TYPE_UNSUPPORTED, "value": None}
        raise UnsupportedStackEntry(f"Cannot encode stack entry of type {type(value).__name__}")


# Convenience functions

def decode_stack_entry(entry: JSONValue, max_depth: int = MAX_STACK_DEPTH) -> StackValue:
    """
    Decode one JSON stack entry

    Example:
        >>> decode_stack_entry({"type": "number", "value": "5"})
        5
        >>> decode_stack_entry({"type": "tuple", "value": []})
        ()
    """
    return StackJSONDecoder(max_depth).decode(entry)


def encode_stack_entry(value: StackValue, lenient: bool = False) -> Dict[str, JSONValue]:
    """
    Encode one stack value

    Example:
        >>> encode_stack_entry(-7)
        {'type': 'number', 'value': '-7'}
        >>> encode_stack_entry(None)
        {'type': 'null', 'value': None}
    """
    return StackJSONEncoder(lenient).encode(value)


def decode_stack(entries: JSONValue, max_depth: int = MAX_STACK_DEPTH) -> Stack:
    return StackJSONDecoder(max_depth).decode_stack(entries)


def encode_stack(stack: Stack, lenient: bool = False) -> List[Dict[str, JSONValue]]:
    return StackJSONEncoder(lenient).encode_stack(stack)


def load_stack_json(text: str) -> List[JSONValue]:
    """
    Parse JSON text and check that it holds an array of entries.

    The entries themselves are not decoded.

    Raises:
        InvalidJSON: If the text is not JSON
        DepthExceeded: If the text nests deeper than the JSON parser can follow
        SchemaMismatch: If the top-level value is not an array
    """
    try:
        entries = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidJSON(f"Couldn't decode stack json: {e}") from e
    except RecursionError as e:
        raise DepthExceeded("Couldn't decode stack json: nesting too deep") from e
    if not isinstance(entries, list):
        raise SchemaMismatch("Stack of type array expected")
    return entries


def stack_from_json(text: str, max_depth: int = MAX_STACK_DEPTH) -> Stack:
    """Parse JSON text holding a stack array"""
    return decode_stack(load_stack_json(text), max_depth)


def stack_to_json(stack: Stack, lenient: bool = False) -> str:
    return json.dumps(encode_stack(stack, lenient))

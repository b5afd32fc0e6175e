"""
Stack value model.

Values passed to and returned from contract methods are plain Python
objects:

    None        null
    int         257-bit signed TVM integer
    Cell        cell reference
    CellSlice   slice (a cell plus a read position)
    tuple       ordered tuple of stack values

All of them are immutable (a CellSlice is never advanced once it is on a
stack), so the same Cell or tuple can sit on several stacks at once.
A stack is a list of values, first argument first.
"""

from typing import Any, Iterable, List, Optional, Tuple, Union

from .cells import Cell, CellSlice
from .constants import (
    TVM_INT_MAX, TVM_INT_MIN,
    TYPE_CELL, TYPE_NULL, TYPE_NUMBER, TYPE_SLICE, TYPE_TUPLE,
)
from .errors import IntegerParseError

StackValue = Union[None, int, Cell, CellSlice, Tuple[Any, ...]]
Stack = List[StackValue]


def fits_tvm_int(value: int) -> bool:
    return TVM_INT_MIN <= value <= TVM_INT_MAX


def stack_type_of(value: Any) -> Optional[str]:
    """
    JSON type tag for a stack value, or None if the object is not one.

    bool is rejected even though it subclasses int.
    """
    if value is None:
        return TYPE_NULL
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return TYPE_NUMBER if fits_tvm_int(value) else None
    if isinstance(value, Cell):
        return TYPE_CELL
    if isinstance(value, CellSlice):
        return TYPE_SLICE
    if isinstance(value, tuple):
        return TYPE_TUPLE
    return None


def parse_tvm_int(text: str) -> int:
    """
    Parse a decimal string (optional leading '-') into a TVM integer.

    Raises:
        IntegerParseError: On non-decimal text or a value outside 257 bits
    """
    if not isinstance(text, str):
        raise IntegerParseError(f"Expected a decimal string, got {type(text).__name__}")
    digits = text[1:] if text.startswith("-") else text
    if not digits or not digits.isascii() or not digits.isdigit():
        raise IntegerParseError(f"Error parsing string to int256: {text!r}")
    value = int(text)
    if not fits_tvm_int(value):
        raise IntegerParseError(f"Integer out of 257-bit range: {text}")
    return value


def make_tuple(values: Iterable[StackValue]) -> Tuple[StackValue, ...]:
    """Build a tuple value, checking that every element is a stack value"""
    result = tuple(values)
    for i, value in enumerate(result):
        if stack_type_of(value) is None:
            raise TypeError(f"Tuple element {i} is not a stack value: {type(value).__name__}")
    return result

"""
Shared types and enums for jitshape.

This module contains types that are used across multiple modules to avoid circular imports.
"""

from enum import Enum
from typing import NewType, Tuple


# Index of a value in its graph's value table.
ValueId = NewType('ValueId', int)

Shape = Tuple[int, ...]


class ErrorKind(Enum):
    """Tags carried by recoverable shape inference errors."""
    ARITY_MISMATCH = "arity_mismatch"
    UNSUPPORTED_OPERATOR = "unsupported_operator"
    UNSUPPORTED_INPUT_KIND = "unsupported_input_kind"
    RANK_MISMATCH = "rank_mismatch"
    SHAPE_MISMATCH = "shape_mismatch"
    DIM_OUT_OF_RANGE = "dim_out_of_range"
    UNORDERED_GRAPH = "unordered_graph"
    INVALID_ATTRIBUTE = "invalid_attribute"
    ENGINE_STATE = "engine_state"
    UNKNOWN = "unknown"


class ValueType(Enum):
    """Declared type of a graph value."""
    TENSOR = "tensor"
    FLOAT = "float"
    INT = "int"
    BOOL = "bool"
    NONE = "none"
    INT_LIST = "int_list"
    OTHER = "other"


class OpKind(Enum):
    """Closed set of operator categories with a shape rule."""
    CONSTANT = "constant"
    UNARY = "unary"
    BINARY = "binary"
    MM = "mm"
    BMM = "bmm"
    ADDMM = "addmm"
    CONCAT = "concat"
    CHUNK = "chunk"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_symbol(cls, symbol: str) -> 'OpKind':
        """Map an operator tag such as 'aten::add' to its category."""
        return _SYMBOL_TO_KIND.get(symbol, cls.UNSUPPORTED)


_SYMBOL_TO_KIND = {
    'prim::Constant': OpKind.CONSTANT,

    # Activations
    'aten::tanh': OpKind.UNARY,
    'aten::relu': OpKind.UNARY,
    'aten::sigmoid': OpKind.UNARY,

    # Broadcasting arithmetic
    'aten::sub': OpKind.BINARY,
    'aten::pow': OpKind.BINARY,
    'aten::mul': OpKind.BINARY,
    'aten::add': OpKind.BINARY,

    # Linear algebra
    'aten::mm': OpKind.MM,
    'aten::bmm': OpKind.BMM,
    'aten::addmm': OpKind.ADDMM,

    # Fused graph ops
    'prim::FusedConcat': OpKind.CONCAT,
    'prim::ConstantChunk': OpKind.CHUNK,
}


def supported_symbols() -> Tuple[str, ...]:
    """Operator tags the engine has a rule for."""
    return tuple(_SYMBOL_TO_KIND)


class UnknownConstantPolicy(Enum):
    """What to do with a prim::Constant whose type has no rule."""
    ERROR = "error"
    EMPTY = "empty"

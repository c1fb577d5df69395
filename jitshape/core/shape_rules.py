"""
Per-operator shape rules.

Each rule is a pure function of its inputs' ValueMeta (and, where noted, node
attributes). Rules return a shape, a scalar payload (constants), or a list of
shapes (chunk). They never touch the metadata store.

The semantics follow PyTorch's eager behavior for the corresponding ATen ops.
"""

import logging
from typing import Any, List, Sequence

import numpy as np
import torch

from .exceptions import (
    ArityMismatchError,
    DimOutOfRangeError,
    InvalidAttributeError,
    RankMismatchError,
    ShapeMismatchError,
    UnsupportedInputKindError,
)
from .graph import Node
from .metadata import ValueMeta
from .types import Shape, UnknownConstantPolicy, ValueType

logger = logging.getLogger(__name__)


def _check_arity(metas: Sequence[ValueMeta], op: str, expected: int) -> None:
    if len(metas) != expected:
        raise ArityMismatchError(
            f"Expected {expected} input shape(s) for {op}, got {len(metas)}",
            context={'op': op, 'expected': expected, 'actual': len(metas)}
        )


def _normalize_dim(dim: int, rank: int, op: str) -> int:
    if dim < 0:
        dim += rank
    if not 0 <= dim < rank:
        raise DimOutOfRangeError(
            f"Dim value is out of range for {op}: {dim} not in [0, {rank})",
            context={'op': op, 'dim': dim, 'rank': rank}
        )
    return dim


# ============================================================================
# prim::Constant
# ============================================================================

def prim_constant(node: Node, output_type: ValueType,
                  policy: UnknownConstantPolicy = UnknownConstantPolicy.ERROR) -> Shape:
    """
    Shape or value of a constant, depending on its declared output type.

        int = prim::Constant[value=0]()        -> (0,)
        float = prim::Constant[value=0.5]()    -> (1,)  float never affects shape
        bool = prim::Constant[value=1]()       -> (1,)
        None = prim::Constant()                -> ()
        Tensor = prim::Constant[value=<T>]()   -> T's sizes
    """
    if output_type is ValueType.FLOAT:
        return (1,)
    if output_type is ValueType.INT:
        return (int(node.attr('value')),)
    if output_type is ValueType.BOOL:
        return (int(bool(node.attr('value'))),)
    if output_type is ValueType.NONE:
        return ()
    if output_type is ValueType.TENSOR:
        return _constant_tensor_shape(node)

    if policy is UnknownConstantPolicy.EMPTY:
        logger.warning(f"prim::Constant of type {output_type.value} has no shape rule; using []")
        return ()
    raise UnsupportedInputKindError(
        f"prim::Constant of type {output_type.value} is not supported",
        context={'type': output_type.value}
    )


def _constant_tensor_shape(node: Node) -> Shape:
    value: Any = node.attr('value')
    if isinstance(value, torch.Tensor):
        return tuple(value.size())
    if isinstance(value, np.ndarray):
        return tuple(int(s) for s in value.shape)
    raise InvalidAttributeError(
        f"Tensor constant holds {type(value).__name__}, expected a tensor",
        context={'value_type': type(value).__name__}
    )


# ============================================================================
# Elementwise
# ============================================================================

def unary(metas: Sequence[ValueMeta]) -> Shape:
    """aten::tanh / aten::relu / aten::sigmoid: shape unchanged."""
    _check_arity(metas, 'unary op', 1)
    return metas[0].shape


def binary_op(metas: Sequence[ValueMeta]) -> Shape:
    """
    aten::add(Tensor self, Tensor or Scalar other, Scalar alpha=1) -> Tensor
    aten::sub / aten::mul / aten::pow follow the same shape rule.
    metas: 0: self, 1: other, [2: alpha]
    """
    if len(metas) not in (2, 3):
        raise ArityMismatchError(
            f"Expected two or three input shapes for binary op, got {len(metas)}",
            context={'op': 'binary op', 'actual': len(metas)}
        )

    t0 = metas[0].shape
    t1 = metas[1].shape
    d0 = len(t0)
    d1 = len(t1)

    # Second operand is a scalar
    if d1 == 1:
        return t0

    dim = max(d0, d1)
    shape = [0] * dim
    for i in range(dim):
        j = -1 - i
        if i >= d0:
            shape[dim + j] = t1[d1 + j]
        elif i >= d1:
            shape[dim + j] = t0[d0 + j]
        elif t0[d0 + j] == 1:
            shape[dim + j] = t1[d1 + j]
        elif t1[d1 + j] == 1:
            shape[dim + j] = t0[d0 + j]
        else:
            if t1[d1 + j] != t0[d0 + j]:
                raise ShapeMismatchError(
                    f"The size of tensor a ({t0[d0 + j]}) must match the size of "
                    f"tensor b ({t1[d1 + j]}) at non-singleton dimension {dim + j}",
                    dim_a=t0[d0 + j], dim_b=t1[d1 + j],
                    context={'dim': dim + j}
                )
            shape[dim + j] = t1[d1 + j]
    return tuple(shape)


# ============================================================================
# Matrix products
# ============================================================================

def mm(metas: Sequence[ValueMeta]) -> Shape:
    """
    aten::mm(Tensor self, Tensor mat2) -> Tensor
    metas: 0: self, 1: mat2
    """
    _check_arity(metas, 'aten::mm', 2)
    t0 = metas[0].shape
    t1 = metas[1].shape

    if len(t0) != 2 or len(t1) != 2:
        raise RankMismatchError(
            f"Expected 2-dimensional tensors for aten::mm, got ranks {len(t0)} and {len(t1)}",
            context={'rank_a': len(t0), 'rank_b': len(t1)}
        )
    if t0[1] != t1[0]:
        raise ShapeMismatchError(
            f"The size of tensor a ({t0[1]}) at dimension 1 must match the "
            f"size of tensor b ({t1[0]}) at dimension 0",
            dim_a=t0[1], dim_b=t1[0]
        )
    return (t0[0], t1[1])


def bmm(metas: Sequence[ValueMeta]) -> Shape:
    """
    aten::bmm(Tensor self, Tensor mat2) -> Tensor
    metas: 0: self, 1: mat2
    """
    _check_arity(metas, 'aten::bmm', 2)
    t0 = metas[0].shape
    t1 = metas[1].shape

    if len(t0) != 3 or len(t1) != 3:
        raise RankMismatchError(
            f"Expected 3-dimensional tensors for aten::bmm, got ranks {len(t0)} and {len(t1)}",
            context={'rank_a': len(t0), 'rank_b': len(t1)}
        )
    if t0[0] != t1[0]:
        raise ShapeMismatchError(
            f"Expected tensors to have same size at dimension 0, got {t0[0]} and {t1[0]}",
            dim_a=t0[0], dim_b=t1[0]
        )
    if t0[2] != t1[1]:
        raise ShapeMismatchError(
            f"The size of tensor a ({t0[2]}) at dimension 2 must match the "
            f"size of tensor b ({t1[1]}) at dimension 1",
            dim_a=t0[2], dim_b=t1[1]
        )
    return (t0[0], t0[1], t1[2])


def addmm(metas: Sequence[ValueMeta]) -> Shape:
    """
    aten::addmm(Tensor self, Tensor mat1, Tensor mat2, *, Scalar beta=1,
                Scalar alpha=1) -> Tensor
    metas: 0: self, 1: mat1, 2: mat2
    """
    if len(metas) < 3:
        raise ArityMismatchError(
            f"Expected at least three input shapes for aten::addmm, got {len(metas)}",
            context={'op': 'aten::addmm', 'actual': len(metas)}
        )

    bias, mat1, mat2 = metas[0], metas[1], metas[2]
    # Scalar-shaped mat2: mat1 already carries the product shape
    if mat2.rank == 1:
        product = mat1
    else:
        product = ValueMeta.tensor(mm([mat1, mat2]))
    return binary_op([bias, product])


# ============================================================================
# Chunk / concat
# ============================================================================

def constant_chunk(metas: Sequence[ValueMeta], chunks: int, dim: int) -> List[Shape]:
    """
    prim::ConstantChunk[int chunks, int dim](Tensor self) -> Tensors
    metas: 0: self

    The last chunk may be smaller than the others.
    """
    _check_arity(metas, 'prim::ConstantChunk', 1)
    if chunks < 1:
        raise InvalidAttributeError(
            f"prim::ConstantChunk needs chunks >= 1, got {chunks}",
            context={'chunks': chunks}
        )

    shape = metas[0].shape
    dim = _normalize_dim(dim, len(shape), 'prim::ConstantChunk')

    size = shape[dim]
    c = (size + chunks - 1) // chunks
    r = size - c * (chunks - 1)
    if r < 0:
        raise InvalidAttributeError(
            f"prim::ConstantChunk cannot split size {size} into {chunks} chunks",
            context={'size': size, 'chunks': chunks}
        )

    out_shapes = []
    for i in range(chunks):
        piece = list(shape)
        piece[dim] = r if i == chunks - 1 else c
        out_shapes.append(tuple(piece))
    return out_shapes


def fused_concat(metas: Sequence[ValueMeta], dim: int) -> Shape:
    """
    prim::FusedConcat[int dim](Tensor self, Tensor mat1, Tensor mat2, ...) -> Tensor
    metas: 0: self, 1: mat1, 2: mat2, ...
    """
    if len(metas) < 1:
        raise ArityMismatchError(
            "Expected at least 1 input for prim::FusedConcat, got 0",
            context={'op': 'prim::FusedConcat', 'actual': 0}
        )
    if len(metas) == 1:
        return metas[0].shape

    shape = list(metas[0].shape)
    in_dims = len(shape)
    dim = _normalize_dim(dim, in_dims, 'prim::FusedConcat')

    for i, meta in enumerate(metas[1:], start=1):
        other = meta.shape
        if len(other) != in_dims:
            raise RankMismatchError(
                f"All inputs must have the same number of dimensions: "
                f"input 0 has {in_dims}, input {i} has {len(other)}",
                context={'input': i, 'rank_a': in_dims, 'rank_b': len(other)}
            )
        for j in range(in_dims):
            if j == dim:
                shape[dim] += other[dim]
            elif shape[j] != other[j]:
                raise ShapeMismatchError(
                    f"Sizes of tensors must match except in dimension {dim}: "
                    f"expected {shape[j]} but got {other[j]} at dimension {j} of input {i}",
                    dim_a=shape[j], dim_b=other[j],
                    context={'input': i, 'dim': j}
                )
    return tuple(shape)

"""
Tests for the node dispatcher.
"""

import pytest
import torch

from jitshape.core.dispatcher import NodeDispatcher
from jitshape.core.exceptions import (
    ArityMismatchError,
    MissingAttributeError,
    MissingValueError,
    UnsupportedInputKindError,
    UnsupportedOperatorError,
)
from jitshape.core.graph import Graph
from jitshape.core.metadata import ValueMeta, ValueMetaStore
from jitshape.core.types import OpKind, UnknownConstantPolicy, ValueType


def _setup(*input_shapes):
    g = Graph()
    store = ValueMetaStore(name_of=g.debug_name)
    ids = []
    for i, shape in enumerate(input_shapes):
        vid = g.add_input(f"in{i}")
        store.put(vid, ValueMeta.tensor(shape))
        ids.append(vid)
    return g, store, ids


def test_op_kind_lookup():
    assert OpKind.from_symbol('aten::relu') is OpKind.UNARY
    assert OpKind.from_symbol('aten::pow') is OpKind.BINARY
    assert OpKind.from_symbol('prim::ConstantChunk') is OpKind.CHUNK
    assert OpKind.from_symbol('aten::conv2d') is OpKind.UNSUPPORTED


def test_dispatch_tensor_op_writes_output():
    g, store, (a, b) = _setup((2, 3), (3, 4))
    out = g.add_node('aten::mm', [a, b])

    NodeDispatcher(g, store).dispatch(g.nodes[-1])

    assert store.get(out) == ValueMeta(shape=(2, 4))


def test_dispatch_int_constant_stores_value():
    g, store, _ = _setup()
    c = g.add_constant(2, ValueType.INT)

    NodeDispatcher(g, store).dispatch(g.nodes[-1])

    assert store.get(c) == ValueMeta(shape=(1,), scalar_values=(2,))


def test_dispatch_none_and_float_constants():
    g, store, _ = _setup()
    none = g.add_constant(None, ValueType.NONE)
    half = g.add_constant(0.5, ValueType.FLOAT)

    dispatcher = NodeDispatcher(g, store)
    for node in g.nodes:
        dispatcher.dispatch(node)

    assert store.get(none) == ValueMeta(shape=(1,), scalar_values=())
    assert store.get(half) == ValueMeta(shape=(1,), scalar_values=(1,))


def test_dispatch_tensor_constant_stores_shape():
    g, store, _ = _setup()
    c = g.add_constant(torch.ones(4, 2), ValueType.TENSOR)

    NodeDispatcher(g, store).dispatch(g.nodes[-1])

    assert store.get(c) == ValueMeta(shape=(4, 2))


def test_dispatch_unknown_constant_type_follows_policy():
    g, store, _ = _setup()
    c = g.add_constant("floor", ValueType.OTHER)

    with pytest.raises(UnsupportedInputKindError):
        NodeDispatcher(g, store).dispatch(g.nodes[-1])

    NodeDispatcher(g, store, UnknownConstantPolicy.EMPTY).dispatch(g.nodes[-1])
    assert store.get(c) == ValueMeta(shape=(1,), scalar_values=())


def test_dispatch_chunk_writes_every_output():
    g, store, (x,) = _setup((10, 8))
    outs = g.add_node('prim::ConstantChunk', [x], num_outputs=3,
                      attributes={'chunks': 3, 'dim': 0})

    NodeDispatcher(g, store).dispatch(g.nodes[-1])

    assert [store.get(v).shape for v in outs] == [(4, 8), (4, 8), (2, 8)]


def test_dispatch_chunk_output_count_must_match():
    g, store, (x,) = _setup((10, 8))
    g.add_node('prim::ConstantChunk', [x], num_outputs=2,
               attributes={'chunks': 3, 'dim': 0})

    with pytest.raises(ArityMismatchError):
        NodeDispatcher(g, store).dispatch(g.nodes[-1])


def test_dispatch_concat_needs_dim():
    g, store, (a, b) = _setup((2, 3), (2, 4))
    g.add_node('prim::FusedConcat', [a, b])

    with pytest.raises(MissingAttributeError):
        NodeDispatcher(g, store).dispatch(g.nodes[-1])


def test_dispatch_unsupported_operator():
    g, store, (x,) = _setup((1, 3, 8, 8))
    g.add_node('aten::conv2d', [x])

    with pytest.raises(UnsupportedOperatorError) as exc_info:
        NodeDispatcher(g, store).dispatch(g.nodes[-1])
    assert exc_info.value.op_kind == 'aten::conv2d'
    assert 'aten::mm' in exc_info.value.context['supported']


def test_dispatch_missing_input_is_fatal():
    g, store, _ = _setup()
    orphan = g.add_value('orphan')
    g.add_node('aten::relu', [orphan])

    with pytest.raises(MissingValueError):
        NodeDispatcher(g, store).dispatch(g.nodes[-1])

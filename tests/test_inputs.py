"""
Tests for input materialization.
"""

import numpy as np
import pytest
import torch

from jitshape.core.exceptions import ArityMismatchError, UnsupportedInputKindError
from jitshape.core.inputs import materialize_input, materialize_inputs
from jitshape.core.metadata import ValueMeta, ValueMetaStore
from jitshape.core.types import ValueId


def test_tensor_input_keeps_sizes_only():
    meta = materialize_input(torch.randn(2, 3, 4))
    assert meta == ValueMeta(shape=(2, 3, 4), scalar_values=None)


def test_zero_dim_tensor():
    assert materialize_input(torch.tensor(3.0)).shape == ()


def test_numpy_array_is_a_tensor():
    assert materialize_input(np.zeros((5, 2))).shape == (5, 2)


def test_int_and_bool_inputs():
    assert materialize_input(7) == ValueMeta(shape=(1,), scalar_values=(7,))
    assert materialize_input(True) == ValueMeta(shape=(1,), scalar_values=(1,))
    assert materialize_input(np.int64(4)).scalar_values == (4,)


def test_int_list_input():
    meta = materialize_input([3, 1, 4, 1])
    assert meta.shape == (4, 1)
    assert meta.scalar_values == (3, 1, 4, 1)


def test_torch_size_is_an_int_list():
    assert materialize_input(torch.Size([2, 5])).scalar_values == (2, 5)


@pytest.mark.parametrize("obj", [1.5, "x", None, [1, 2.0], [True, False], {"a": 1}])
def test_unsupported_inputs(obj):
    with pytest.raises(UnsupportedInputKindError):
        materialize_input(obj)


def test_materialize_inputs_populates_store():
    store = ValueMetaStore()
    metas = materialize_inputs([ValueId(0), ValueId(1)], [torch.randn(1, 3), 2], store)

    assert [m.shape for m in metas] == [(1, 3), (1,)]
    assert store.get(ValueId(1)).scalar_values == (2,)


def test_materialize_inputs_arity():
    with pytest.raises(ArityMismatchError):
        materialize_inputs([ValueId(0)], [], ValueMetaStore())


def test_materialize_inputs_reports_position():
    with pytest.raises(UnsupportedInputKindError) as exc_info:
        materialize_inputs([ValueId(0), ValueId(1)], [torch.randn(2), "bad"], ValueMetaStore())
    assert exc_info.value.context['position'] == 1

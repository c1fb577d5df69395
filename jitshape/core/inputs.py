"""
Input materialization: concrete graph inputs -> initial ValueMeta entries.

If the input is a tensor, only its sizes are kept.
If the input is a bool or int, the value is kept and the shape is (1,).
If the input is an int list, the list is kept and the shape is (len, 1).
Anything else is rejected.
"""

import logging
from typing import Any, List, Sequence

import numpy as np
import torch

from .exceptions import ArityMismatchError, UnsupportedInputKindError
from .metadata import ValueMeta, ValueMetaStore
from .types import ValueId

logger = logging.getLogger(__name__)


def _is_int_scalar(obj: Any) -> bool:
    return isinstance(obj, (bool, int, np.bool_, np.integer))


def materialize_input(obj: Any) -> ValueMeta:
    """Build the ValueMeta for one concrete input."""
    if isinstance(obj, torch.Tensor):
        return ValueMeta.tensor(obj.size())
    if isinstance(obj, np.ndarray):
        return ValueMeta.tensor(obj.shape)
    if _is_int_scalar(obj):
        return ValueMeta.scalar([int(obj)])
    if isinstance(obj, (list, tuple)) and all(
        _is_int_scalar(v) and not isinstance(v, (bool, np.bool_)) for v in obj
    ):
        return ValueMeta.int_list([int(v) for v in obj])
    raise UnsupportedInputKindError(
        f"Input type {type(obj).__name__} isn't supported",
        context={'input_type': type(obj).__name__}
    )


def materialize_inputs(input_ids: Sequence[ValueId], inputs: Sequence[Any],
                       store: ValueMetaStore) -> List[ValueMeta]:
    """
    Populate ``store`` with one entry per graph input.

    Args:
        input_ids: Graph input handles, in order
        inputs: Concrete instances, same order and length
        store: Store to write into

    Returns:
        The ValueMeta written for each input, in order
    """
    if len(input_ids) != len(inputs):
        raise ArityMismatchError(
            f"Number of inputs mismatch between graph ({len(input_ids)}) "
            f"and actual inputs ({len(inputs)})",
            context={'expected': len(input_ids), 'actual': len(inputs)}
        )

    metas = []
    for position, (vid, obj) in enumerate(zip(input_ids, inputs)):
        try:
            meta = materialize_input(obj)
        except UnsupportedInputKindError as e:
            e.context.setdefault('position', position)
            raise
        store.put(vid, meta)
        metas.append(meta)
        logger.debug(f"Input {position}: shape={list(meta.shape)}")
    return metas

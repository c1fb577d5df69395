"""
Value metadata and the per-pass metadata store.

Every graph value gets one ValueMeta: its shape and, for bool/int/int-list
values, the integer payload. Non-tensor values are kept shape-uniform:
scalars are stored with shape (1,), int lists of length N with shape (N, 1).
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Sequence, Callable

from .exceptions import DuplicateValueError, MissingValueError
from .types import Shape, ValueId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValueMeta:
    """Inferred metadata of one graph value."""
    shape: Shape = ()
    scalar_values: Optional[tuple] = None

    @classmethod
    def tensor(cls, shape: Sequence[int]) -> 'ValueMeta':
        return cls(shape=tuple(int(s) for s in shape))

    @classmethod
    def scalar(cls, payload: Sequence[int]) -> 'ValueMeta':
        """Scalar-like value: shape (1,), payload as given (may be empty for None)."""
        return cls(shape=(1,), scalar_values=tuple(int(v) for v in payload))

    @classmethod
    def int_list(cls, values: Sequence[int]) -> 'ValueMeta':
        return cls(shape=(len(values), 1), scalar_values=tuple(int(v) for v in values))

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def has_scalar_values(self) -> bool:
        return self.scalar_values is not None


class ValueMetaStore:
    """
    Mapping from ValueId to ValueMeta for a single inference pass.

    Single static assignment: each value is written once. Reading a value that
    was never written, or writing one twice, means the graph broke the
    engine's preconditions and raises an InternalInvariantError.
    """

    def __init__(self, name_of: Optional[Callable[[ValueId], str]] = None):
        self._metas: Dict[ValueId, ValueMeta] = {}
        self._name_of = name_of or str

    def __contains__(self, vid: ValueId) -> bool:
        return vid in self._metas

    def __len__(self) -> int:
        return len(self._metas)

    def __iter__(self) -> Iterator[ValueId]:
        return iter(self._metas)

    def get(self, vid: ValueId) -> ValueMeta:
        try:
            return self._metas[vid]
        except KeyError:
            raise MissingValueError(
                f"No metadata for value %{self._name_of(vid)}; "
                f"graph is not topologically ordered",
                context={'value': self._name_of(vid)}
            ) from None

    def put(self, vid: ValueId, meta: ValueMeta) -> None:
        if vid in self._metas:
            raise DuplicateValueError(
                f"Value %{self._name_of(vid)} already has metadata",
                context={'value': self._name_of(vid)}
            )
        self._metas[vid] = meta

    def shape_map(self) -> Dict[ValueId, Shape]:
        """Value handle -> inferred shape."""
        return {vid: meta.shape for vid, meta in self._metas.items()}

    def format(self) -> str:
        """Human-readable dump, one value per line."""
        lines = []
        for vid, meta in self._metas.items():
            dims = " ".join(str(d) for d in meta.shape)
            line = f"{self._name_of(vid)}:[ {dims} ]"
            if meta.has_scalar_values:
                line += f" values={list(meta.scalar_values)}"
            lines.append(line)
        return "\n".join(lines)

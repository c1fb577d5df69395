"""
Shape inference engine for control-flow-free graphs.

Given a graph and one concrete instance per graph input, the engine walks the
nodes in order and records the shape (and, for bool/int/int-list values, the
value) of everything the graph produces, without running any computation.

One engine performs one pass. Inferring shapes for another set of inputs
needs a fresh engine.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import EngineConfig, get_config
from .dispatcher import NodeDispatcher
from .exceptions import (
    ArityMismatchError,
    EngineStateError,
    Result,
    ShapeInferenceError,
)
from .graph import Graph
from .inputs import materialize_inputs
from .metadata import ValueMeta, ValueMetaStore
from .types import Shape, ValueId

logger = logging.getLogger(__name__)


class ShapeInferenceEngine:
    """
    Static shape propagation over a Graph.

    Usage:
        engine = ShapeInferenceEngine(graph, [torch.randn(2, 3), 4])
        result = engine.run()
        if result.is_ok:
            shapes = result.unwrap()   # one shape per graph output
        else:
            print(result.error_kind, result.error)
    """

    def __init__(self, graph: Graph, inputs: Sequence[Any],
                 config: Optional[EngineConfig] = None):
        self.graph = graph
        self.inputs = list(inputs)
        self.config = config or get_config().engine
        self._store = ValueMetaStore(name_of=graph.debug_name)
        self._output_shapes: List[Shape] = []
        self._ran = False

    def run(self) -> Result[List[Shape]]:
        """
        Run the pass.

        Returns:
            Result holding the output shapes, or the first recoverable error.
            Invariant violations (InternalInvariantError) are raised, not
            returned.
        """
        if self._ran:
            return Result.err(EngineStateError(
                "Engine already ran; create a new engine for another pass"))
        self._ran = True

        try:
            self._run()
        except ShapeInferenceError as e:
            logger.info(f"Shape inference failed: {e}")
            self._output_shapes = []
            return Result.err(e)
        return Result.ok(list(self._output_shapes))

    def _run(self) -> None:
        if len(self.inputs) != len(self.graph.inputs):
            raise ArityMismatchError(
                f"Number of inputs mismatch between graph ({len(self.graph.inputs)}) "
                f"and actual inputs ({len(self.inputs)})",
                context={'expected': len(self.graph.inputs), 'actual': len(self.inputs)}
            )

        if self.config.verify_topological_order:
            self.graph.verify_topological_order()

        logger.info(
            f"Shape inference over {len(self.graph.nodes)} nodes, "
            f"{len(self.graph.inputs)} inputs"
        )
        materialize_inputs(self.graph.inputs, self.inputs, self._store)

        dispatcher = NodeDispatcher(
            self.graph, self._store, self.config.unknown_constant_policy)
        for position, node in enumerate(self.graph.nodes):
            try:
                dispatcher.dispatch(node)
            except ShapeInferenceError as e:
                e.context.setdefault('node_index', position)
                e.context.setdefault('node', node.kind)
                raise

        self._generate_graph_output_shape()
        logger.info(f"Shape inference done: outputs {[list(s) for s in self._output_shapes]}")

        if self.config.log_shape_map:
            self.print_shape_map()

    def _generate_graph_output_shape(self) -> None:
        self._output_shapes = [self._store.get(vid).shape for vid in self.graph.outputs]

    def get_graph_output_shape(self) -> List[Shape]:
        """Output shapes of the last successful run, one per graph output."""
        return list(self._output_shapes)

    def get_shape_map(self) -> Dict[ValueId, Shape]:
        """Every value recorded so far -> its shape."""
        return self._store.shape_map()

    def get_value_meta(self, vid: ValueId) -> ValueMeta:
        return self._store.get(vid)

    def format_shape_map(self) -> str:
        return self._store.format()

    def print_shape_map(self) -> None:
        logger.info("Shape map:\n" + self.format_shape_map())


def infer_shapes(graph: Graph, inputs: Sequence[Any],
                 config: Optional[EngineConfig] = None) -> List[Shape]:
    """
    Infer output shapes (convenience function).

    Raises the first ShapeInferenceError instead of returning a Result.

    Usage:
        shapes = infer_shapes(graph, [torch.randn(10, 20), torch.randn(20, 30)])
    """
    return ShapeInferenceEngine(graph, inputs, config).run().unwrap()


__all__ = [
    'ShapeInferenceEngine',
    'infer_shapes',
]

"""
Node dispatcher: one graph node -> shape rule -> store.

Operator selection goes through the closed OpKind enumeration. Anything that
maps to OpKind.UNSUPPORTED fails with UnsupportedOperatorError.
"""

import logging
from typing import List

from . import shape_rules
from .exceptions import ArityMismatchError, UnsupportedOperatorError
from .graph import Graph, Node
from .metadata import ValueMeta, ValueMetaStore
from .types import OpKind, Shape, UnknownConstantPolicy, ValueType, supported_symbols

logger = logging.getLogger(__name__)


class NodeDispatcher:
    """Runs the shape rule of a node and records its outputs."""

    def __init__(self, graph: Graph, store: ValueMetaStore,
                 unknown_constant_policy: UnknownConstantPolicy = UnknownConstantPolicy.ERROR):
        self.graph = graph
        self.store = store
        self.unknown_constant_policy = unknown_constant_policy

    def get_node_input_metas(self, node: Node) -> List[ValueMeta]:
        """Input metadata in order. A missing entry is an invariant violation."""
        return [self.store.get(vid) for vid in node.inputs]

    def dispatch(self, node: Node) -> None:
        kind = OpKind.from_symbol(node.kind)
        input_metas = self.get_node_input_metas(node)

        if kind is OpKind.CONSTANT:
            self._write_constant(node)
            return

        if kind is OpKind.UNARY:
            output_shapes = [shape_rules.unary(input_metas)]
        elif kind is OpKind.BINARY:
            output_shapes = [shape_rules.binary_op(input_metas)]
        elif kind is OpKind.MM:
            output_shapes = [shape_rules.mm(input_metas)]
        elif kind is OpKind.BMM:
            output_shapes = [shape_rules.bmm(input_metas)]
        elif kind is OpKind.ADDMM:
            output_shapes = [shape_rules.addmm(input_metas)]
        elif kind is OpKind.CONCAT:
            output_shapes = [shape_rules.fused_concat(input_metas, node.int_attr('dim'))]
        elif kind is OpKind.CHUNK:
            output_shapes = shape_rules.constant_chunk(
                input_metas, node.int_attr('chunks'), node.int_attr('dim'))
        else:
            raise UnsupportedOperatorError(
                node.kind, context={'supported': supported_symbols()})

        self._write_outputs(node, output_shapes)

    def _write_constant(self, node: Node) -> None:
        if len(node.outputs) != 1:
            raise ArityMismatchError(
                f"prim::Constant must have exactly one output, got {len(node.outputs)}",
                context={'op': node.kind, 'outputs': len(node.outputs)}
            )
        out = node.outputs[0]
        output_type = self.graph.value(out).type
        shape_or_value = shape_rules.prim_constant(
            node, output_type, self.unknown_constant_policy)

        if output_type is ValueType.TENSOR:
            meta = ValueMeta.tensor(shape_or_value)
        else:
            meta = ValueMeta.scalar(shape_or_value)
        self.store.put(out, meta)
        logger.debug(
            f"%{self.graph.debug_name(out)} = prim::Constant -> "
            f"shape={list(meta.shape)} values={meta.scalar_values}"
        )

    def _write_outputs(self, node: Node, output_shapes: List[Shape]) -> None:
        if len(output_shapes) != len(node.outputs):
            raise ArityMismatchError(
                f"{node.kind} produced {len(output_shapes)} shape(s) "
                f"for {len(node.outputs)} output(s)",
                context={'op': node.kind, 'shapes': len(output_shapes),
                         'outputs': len(node.outputs)}
            )
        for vid, shape in zip(node.outputs, output_shapes):
            self.store.put(vid, ValueMeta.tensor(shape))
            logger.debug(f"%{self.graph.debug_name(vid)} = {node.kind} -> {list(shape)}")

"""TorchScript adapter - converts a ``torch._C.Graph`` into a jitshape Graph.

Only the top-level node list is translated. Nodes with sub-blocks (prim::If,
prim::Loop) are carried over as ordinary nodes; the engine reports them as
unsupported operators.

Usage:
    @torch.jit.script
    def f(x, y):
        return torch.relu(x + y)

    graph = from_scripted(f)
    shapes = infer_shapes(graph, [torch.randn(2, 3), torch.randn(2, 3)])
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import torch

from ..core.exceptions import UnsupportedInputKindError
from ..core.graph import Graph
from ..core.types import ValueId, ValueType

logger = logging.getLogger(__name__)


def value_type_of(jit_type: Any) -> ValueType:
    """Map a TorchScript type to a ValueType."""
    if jit_type.isSubtypeOf(torch._C.TensorType.get()):
        return ValueType.TENSOR
    if jit_type.isSubtypeOf(torch._C.BoolType.get()):
        return ValueType.BOOL
    if jit_type.isSubtypeOf(torch._C.IntType.get()):
        return ValueType.INT
    if jit_type.isSubtypeOf(torch._C.FloatType.get()):
        return ValueType.FLOAT
    if jit_type.isSubtypeOf(torch._C.NoneType.get()):
        return ValueType.NONE
    if jit_type.isSubtypeOf(torch._C.ListType.ofInts()):
        return ValueType.INT_LIST
    return ValueType.OTHER


_ATTRIBUTE_GETTERS: Dict[str, Callable[[Any, str], Any]] = {
    'i': lambda node, name: node.i(name),
    'f': lambda node, name: node.f(name),
    's': lambda node, name: node.s(name),
    't': lambda node, name: node.t(name),
}


def _read_attributes(node: Any) -> Dict[str, Any]:
    attributes = {}
    for name in node.attributeNames():
        getter = _ATTRIBUTE_GETTERS.get(node.kindOf(name))
        if getter is None:
            logger.debug(f"Skipping attribute {name} ({node.kindOf(name)}) of {node.kind()}")
            continue
        attributes[name] = getter(node, name)
    return attributes


def _is_module_self(value: Any) -> bool:
    return isinstance(value.type(), torch._C.ClassType)


def from_torchscript_graph(jit_graph: Any) -> Graph:
    """
    Translate a TorchScript graph into a jitshape Graph.

    A leading module ``self`` input is dropped when nothing in the graph uses
    it (e.g. after ``torch.jit.freeze``).

    Raises:
        UnsupportedInputKindError: if a module ``self`` input is still used.
    """
    graph = Graph()
    ids: Dict[int, ValueId] = {}

    def lookup(value: Any) -> ValueId:
        return ids[value.unique()]

    for value in jit_graph.inputs():
        if _is_module_self(value):
            if value.uses():
                raise UnsupportedInputKindError(
                    "Graph reads attributes from its module input; freeze the module first",
                    context={'input': value.debugName()}
                )
            continue
        ids[value.unique()] = graph.add_input(value.debugName(), value_type_of(value.type()))

    for jit_node in jit_graph.nodes():
        outputs = list(jit_node.outputs())
        result = graph.add_node(
            jit_node.kind(),
            inputs=[lookup(v) for v in jit_node.inputs()],
            num_outputs=len(outputs),
            output_types=[value_type_of(v.type()) for v in outputs],
            output_names=[v.debugName() for v in outputs],
            attributes=_read_attributes(jit_node),
        )
        handles = result if isinstance(result, tuple) else (result,)
        for value, vid in zip(outputs, handles):
            ids[value.unique()] = vid

    for value in jit_graph.outputs():
        graph.mark_output(lookup(value))

    logger.debug(f"Translated TorchScript graph: {len(graph.nodes)} nodes")
    return graph


def from_scripted(obj: Any, freeze: Optional[bool] = None) -> Graph:
    """
    Build a jitshape Graph from a scripted function or module.

    Args:
        obj: Result of ``torch.jit.script`` (function or module)
        freeze: Freeze modules so parameters become constants. Defaults to
            True for modules.
    """
    if isinstance(obj, torch.jit.ScriptModule):
        if freeze is None or freeze:
            obj = torch.jit.freeze(obj.eval())
        return from_torchscript_graph(obj.graph)
    return from_torchscript_graph(obj.graph)

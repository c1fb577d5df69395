from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .exceptions import InvalidAttributeError, MissingAttributeError, UnorderedGraphError
from .types import ValueId, ValueType


@dataclass(frozen=True)
class Value:
	"""One value in the graph's value table."""
	id: ValueId
	name: str
	type: ValueType = ValueType.TENSOR


@dataclass
class Node:
	"""Operator application.

	``kind`` is the operator tag (e.g. ``'aten::add'``), ``inputs`` and
	``outputs`` are ordered value handles, ``attributes`` holds static
	attributes such as ``dim``, ``chunks`` or a constant's ``value``.
	"""
	kind: str
	inputs: Tuple[ValueId, ...]
	outputs: Tuple[ValueId, ...]
	attributes: Dict[str, Any] = field(default_factory=dict)

	def has_attribute(self, name: str) -> bool:
		return name in self.attributes

	def attr(self, name: str) -> Any:
		"""Get attribute, raising MissingAttributeError if absent."""
		if not self.has_attribute(name):
			raise MissingAttributeError(
				f"{self.kind} requires attribute '{name}'",
				context={'kind': self.kind, 'attribute': name}
			)
		return self.attributes[name]

	def int_attr(self, name: str) -> int:
		"""Get an integer attribute (bools are rejected)."""
		value = self.attr(name)
		if isinstance(value, bool) or not isinstance(value, int):
			raise InvalidAttributeError(
				f"{self.kind} attribute '{name}' must be an int, got {type(value).__name__}",
				context={'kind': self.kind, 'attribute': name}
			)
		return value


@dataclass
class Graph:
	"""Control-flow-free computation graph.

	Values live in a table indexed by ValueId. Nodes are kept in the order they
	were added, which the engine treats as execution order.

	Usage:
		g = Graph()
		x = g.add_input('x')
		two = g.add_constant(2, ValueType.INT)
		y = g.add_node('aten::add', [x, two])
		g.mark_output(y)
	"""
	values: List[Value] = field(default_factory=list)
	nodes: List[Node] = field(default_factory=list)
	inputs: List[ValueId] = field(default_factory=list)
	outputs: List[ValueId] = field(default_factory=list)

	def add_value(self, name: Optional[str] = None,
				  value_type: ValueType = ValueType.TENSOR) -> ValueId:
		"""Append a value to the table and return its handle."""
		vid = ValueId(len(self.values))
		self.values.append(Value(id=vid, name=name or str(vid), type=value_type))
		return vid

	def value(self, vid: ValueId) -> Value:
		return self.values[vid]

	def debug_name(self, vid: ValueId) -> str:
		return self.values[vid].name

	def add_input(self, name: Optional[str] = None,
				  value_type: ValueType = ValueType.TENSOR) -> ValueId:
		vid = self.add_value(name, value_type)
		self.inputs.append(vid)
		return vid

	def add_node(self, kind: str, inputs: Iterable[ValueId] = (),
				 num_outputs: int = 1,
				 output_types: Optional[List[ValueType]] = None,
				 output_names: Optional[List[str]] = None,
				 attributes: Optional[Dict[str, Any]] = None) -> Any:
		"""Append a node, creating its output values.

		Returns:
			The single output handle when ``num_outputs == 1``, otherwise a
			tuple of output handles.
		"""
		output_types = output_types or [ValueType.TENSOR] * num_outputs
		output_names = output_names or [None] * num_outputs
		if len(output_types) != num_outputs or len(output_names) != num_outputs:
			raise ValueError("output_types/output_names must match num_outputs")

		outputs = tuple(
			self.add_value(name, vtype)
			for name, vtype in zip(output_names, output_types)
		)
		self.nodes.append(Node(
			kind=kind,
			inputs=tuple(inputs),
			outputs=outputs,
			attributes=dict(attributes or {}),
		))
		if num_outputs == 1:
			return outputs[0]
		return outputs

	def add_constant(self, value: Any, value_type: ValueType,
					 name: Optional[str] = None) -> ValueId:
		"""Append a prim::Constant node. ``value`` is ignored for NONE."""
		attributes = {} if value_type is ValueType.NONE else {'value': value}
		return self.add_node(
			'prim::Constant',
			output_types=[value_type],
			output_names=[name],
			attributes=attributes,
		)

	def mark_output(self, vid: ValueId) -> None:
		self.outputs.append(vid)

	def verify_topological_order(self) -> None:
		"""Check every node input is a graph input or an earlier node's output.

		Raises:
			UnorderedGraphError: naming the first offending node and value.
		"""
		defined: Set[ValueId] = set(self.inputs)
		for position, node in enumerate(self.nodes):
			for vid in node.inputs:
				if vid not in defined:
					raise UnorderedGraphError(
						f"Node {position} ({node.kind}) consumes "
						f"%{self.debug_name(vid)} before it is produced",
						context={'node_index': position, 'value': self.debug_name(vid)}
					)
			defined.update(node.outputs)
		for vid in self.outputs:
			if vid not in defined:
				raise UnorderedGraphError(
					f"Graph output %{self.debug_name(vid)} is never produced",
					context={'value': self.debug_name(vid)}
				)

	def __str__(self) -> str:
		lines = [
			"graph(" + ", ".join(f"%{self.debug_name(v)}" for v in self.inputs) + "):"
		]
		for node in self.nodes:
			outs = ", ".join(f"%{self.debug_name(v)}" for v in node.outputs)
			ins = ", ".join(f"%{self.debug_name(v)}" for v in node.inputs)
			attrs = ""
			if node.attributes:
				attrs = "[" + ", ".join(f"{k}={v!r}" for k, v in node.attributes.items()) + "]"
			lines.append(f"  {outs} = {node.kind}{attrs}({ins})")
		lines.append(
			"  return (" + ", ".join(f"%{self.debug_name(v)}" for v in self.outputs) + ")"
		)
		return "\n".join(lines)

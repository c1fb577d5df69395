"""
jitshape: static shape inference for TorchScript-style graphs.

Infers the shape of every intermediate value of a control-flow-free graph
from the graph structure and the concrete inputs bound to it, without
executing anything.

    import torch, jitshape

    @torch.jit.script
    def f(x, w, b):
        return torch.relu(torch.addmm(b, x, w))

    graph = jitshape.from_scripted(f)
    jitshape.infer_shapes(graph, [torch.randn(4, 8), torch.randn(8, 16), torch.randn(16)])
    # [(4, 16)]
"""

from .config import (
    EngineConfig,
    JitShapeConfig,
    LoggingConfig,
    configure_logging,
    get_config,
    load_config,
    set_config,
)
from .core.engine import ShapeInferenceEngine, infer_shapes
from .core.exceptions import (
    ArityMismatchError,
    ConfigurationError,
    DimOutOfRangeError,
    DuplicateValueError,
    EngineStateError,
    InternalInvariantError,
    InvalidAttributeError,
    JitShapeException,
    MissingAttributeError,
    MissingValueError,
    RankMismatchError,
    Result,
    ShapeInferenceError,
    ShapeMismatchError,
    UnorderedGraphError,
    UnsupportedInputKindError,
    UnsupportedOperatorError,
)
from .core.graph import Graph, Node, Value
from .core.metadata import ValueMeta, ValueMetaStore
from .core.types import ErrorKind, OpKind, ValueId, ValueType
from .frontend.torchscript import from_scripted, from_torchscript_graph

__version__ = "0.1.0"

__all__ = [
    'ShapeInferenceEngine',
    'infer_shapes',
    'Graph',
    'Node',
    'Value',
    'ValueId',
    'ValueMeta',
    'ValueMetaStore',
    'ValueType',
    'OpKind',
    'ErrorKind',
    'Result',
    'JitShapeException',
    'ShapeInferenceError',
    'InternalInvariantError',
    'ArityMismatchError',
    'UnsupportedOperatorError',
    'UnsupportedInputKindError',
    'RankMismatchError',
    'ShapeMismatchError',
    'DimOutOfRangeError',
    'UnorderedGraphError',
    'MissingAttributeError',
    'InvalidAttributeError',
    'EngineStateError',
    'MissingValueError',
    'DuplicateValueError',
    'ConfigurationError',
    'EngineConfig',
    'LoggingConfig',
    'JitShapeConfig',
    'configure_logging',
    'get_config',
    'set_config',
    'load_config',
    'from_scripted',
    'from_torchscript_graph',
    '__version__',
]

"""Graph frontends: translate external graph IRs into jitshape graphs."""

from .torchscript import from_scripted, from_torchscript_graph

__all__ = ['from_scripted', 'from_torchscript_graph']

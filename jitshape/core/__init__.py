"""Core shape inference modules for jitshape."""

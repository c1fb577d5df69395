"""
jitshape exception hierarchy.

All jitshape exceptions inherit from JitShapeException for easy catching.

Two tiers:
- ShapeInferenceError and subclasses are recoverable. The engine returns them
  inside a Result and the caller decides what to do.
- InternalInvariantError and subclasses mean a caller precondition was broken
  (e.g. a graph that is not topologically ordered). They are never wrapped in
  a Result and propagate straight out of the pass.
"""
from typing import TypeVar, Generic, Optional, Callable
from dataclasses import dataclass

from .types import ErrorKind


class JitShapeException(Exception):
    """Base exception for all jitshape errors."""

    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self):
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} (context: {ctx_str})"
        return base


# Recoverable inference errors
class ShapeInferenceError(JitShapeException):
    """Base for recoverable shape inference errors."""
    kind: ErrorKind = ErrorKind.UNKNOWN


class ArityMismatchError(ShapeInferenceError):
    """Wrong number of inputs, at graph level or inside an operator rule."""
    kind = ErrorKind.ARITY_MISMATCH


class UnsupportedOperatorError(ShapeInferenceError):
    """Operator kind has no shape rule."""
    kind = ErrorKind.UNSUPPORTED_OPERATOR

    def __init__(self, op_kind: str, context: dict = None):
        context = dict(context or {})
        context.setdefault('kind', op_kind)
        super().__init__(f"Node's operator {op_kind} is not supported", context)
        self.op_kind = op_kind


class UnsupportedInputKindError(ShapeInferenceError):
    """Graph input (or constant) is not tensor, bool, int or int list."""
    kind = ErrorKind.UNSUPPORTED_INPUT_KIND


class RankMismatchError(ShapeInferenceError):
    """Operand ranks are incompatible."""
    kind = ErrorKind.RANK_MISMATCH


class ShapeMismatchError(ShapeInferenceError):
    """Dimension sizes are incompatible."""
    kind = ErrorKind.SHAPE_MISMATCH

    def __init__(self, message: str, dim_a: int, dim_b: int, context: dict = None):
        context = dict(context or {})
        context.setdefault('dim_a', dim_a)
        context.setdefault('dim_b', dim_b)
        super().__init__(message, context)
        self.dim_a = dim_a
        self.dim_b = dim_b


class DimOutOfRangeError(ShapeInferenceError):
    """Normalized axis index falls outside the operand's rank."""
    kind = ErrorKind.DIM_OUT_OF_RANGE


class UnorderedGraphError(ShapeInferenceError):
    """A node consumes a value that no earlier node or graph input produces."""
    kind = ErrorKind.UNORDERED_GRAPH


class MissingAttributeError(ShapeInferenceError):
    """Node lacks an attribute its operator kind requires."""
    kind = ErrorKind.INVALID_ATTRIBUTE


class InvalidAttributeError(ShapeInferenceError):
    """Node attribute has a value the operator cannot use."""
    kind = ErrorKind.INVALID_ATTRIBUTE


class EngineStateError(ShapeInferenceError):
    """Engine used outside its single-pass lifecycle."""
    kind = ErrorKind.ENGINE_STATE


# Fatal invariant violations
class InternalInvariantError(JitShapeException):
    """Base for broken preconditions. Not meant to be caught by normal control flow."""
    pass


class MissingValueError(InternalInvariantError):
    """Value read from the store before anything produced it."""
    pass


class DuplicateValueError(InternalInvariantError):
    """Value written to the store a second time."""
    pass


# Configuration exceptions
class ConfigurationError(JitShapeException):
    """Invalid configuration."""
    pass


# ============================================================================
# Result Type for Operations That May Fail
# ============================================================================

T = TypeVar('T')
U = TypeVar('U')


@dataclass
class Result(Generic[T]):
    """
    Result type for operations that may fail.

    Inspired by Rust's Result<T, E> pattern. Forces explicit error handling.

    Usage:
        result = engine.run()
        if result.is_ok:
            shapes = result.unwrap()
        else:
            handle_error(result.error)
    """

    _value: Optional[T] = None
    _error: Optional[Exception] = None

    @staticmethod
    def ok(value: T) -> 'Result[T]':
        """Create successful result."""
        return Result(_value=value, _error=None)

    @staticmethod
    def err(error: Exception) -> 'Result[T]':
        """Create error result."""
        return Result(_value=None, _error=error)

    @property
    def is_ok(self) -> bool:
        """Check if result is successful."""
        return self._error is None

    @property
    def is_err(self) -> bool:
        """Check if result is error."""
        return self._error is not None

    def unwrap(self) -> T:
        """
        Get value, raising exception if error.

        Use when you're certain the result is Ok.
        """
        if self.is_err:
            raise self._error
        return self._value

    def unwrap_or(self, default: T) -> T:
        """Get value or return default if error."""
        if self.is_err:
            return default
        return self._value

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        """Get value or compute from error."""
        if self.is_err:
            return f(self._error)
        return self._value

    @property
    def error(self) -> Optional[Exception]:
        """Get error if present."""
        return self._error

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """Tag of the error, if it is a shape inference error."""
        if isinstance(self._error, ShapeInferenceError):
            return self._error.kind
        return None

    def map(self, f: Callable[[T], U]) -> 'Result[U]':
        """Transform value if Ok."""
        if self.is_ok:
            try:
                return Result.ok(f(self._value))
            except Exception as e:
                return Result.err(e)
        return Result.err(self._error)

    def and_then(self, f: Callable[[T], 'Result[U]']) -> 'Result[U]':
        """Chain Result-returning operations."""
        if self.is_ok:
            try:
                return f(self._value)
            except Exception as e:
                return Result.err(e)
        return Result.err(self._error)


def try_result(f: Callable[..., T]) -> Callable[..., Result[T]]:
    """
    Decorator to wrap function in Result.

    Only recoverable ShapeInferenceError is captured; invariant violations
    and unrelated exceptions propagate.

    Usage:
        @try_result
        def infer(meta):
            return shape_rules.mm(meta)

        result = infer(metas)  # Returns Result[Shape]
    """
    def wrapper(*args, **kwargs) -> Result[T]:
        try:
            value = f(*args, **kwargs)
            return Result.ok(value)
        except ShapeInferenceError as e:
            return Result.err(e)
    wrapper.__name__ = getattr(f, '__name__', 'wrapper')
    wrapper.__doc__ = getattr(f, '__doc__', None)
    return wrapper

from ._environment import IExecutionEnvironment, assert_graph
from ._errors import (
    DuplicateSlotError,
    GraphModeError,
    MissingFeedError,
    SessionClosedError,
    ShapeMismatchError,
    UninitializedVariableError,
)
from ._optimizers import NAME_KEY, IOptimizer

__all__ = [
    "IExecutionEnvironment",
    "assert_graph",
    "DuplicateSlotError",
    "GraphModeError",
    "MissingFeedError",
    "SessionClosedError",
    "ShapeMismatchError",
    "UninitializedVariableError",
    "NAME_KEY",
    "IOptimizer",
]

"""
Graph operand primitives for KeyGraph.

This module defines `Operand`, the base class of every node recorded in a
`Graph`, together with the leaf node types (`Constant`, `Placeholder`,
`Variable`) and the structural nodes used to wire graphs together
(`Assign`, `Cast`, `Fill`, `Identity`, `NoOp`).

Execution model
---------------
- Operands are lazy: building them only records a node in the owning graph.
- A `Session` evaluates operands with a `RunContext` that carries the fed
  placeholder values and a per-run cache.
- Every node except `Variable` is evaluated at most once per run; control
  inputs are evaluated, in order, before the node itself.
- Variable reads are never cached so that reads observe assignments made
  earlier in the same run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import numpy as np

from ...domain._errors import (
    MissingFeedError,
    ShapeMismatchError,
    UninitializedVariableError,
)

if TYPE_CHECKING:
    from ._graph import Graph

Shape = Optional[tuple]


def as_array(value: Any, dtype: Any = None) -> np.ndarray:
    """
    Convert a Python/NumPy value to an ndarray.

    Python floats (and lists of floats) default to float32, matching the
    default dtype of variables. Explicit ndarrays keep their dtype unless
    `dtype` is given.
    """
    if dtype is not None:
        return np.array(value, dtype=np.dtype(dtype))
    arr = np.array(value)
    if not isinstance(value, np.ndarray) and arr.dtype.kind == "f":
        arr = arr.astype(np.float32)
    return arr


def check_shape(name: str, expected: Shape, arr: np.ndarray) -> None:
    if expected is None:
        return
    if tuple(arr.shape) != tuple(expected):
        raise ShapeMismatchError(name, tuple(expected), tuple(arr.shape))


@dataclass
class RunContext:
    """
    Per-run evaluation state.

    Attributes
    ----------
    feed : dict[Operand, np.ndarray]
        Values fed for placeholders (and optionally any other operand).
    cache : dict[int, Any]
        Outputs of operands already evaluated during this run, keyed by `id`.
    """

    feed: Dict["Operand", np.ndarray] = field(default_factory=dict)
    cache: Dict[int, Any] = field(default_factory=dict)


class Operand:
    """
    Base class of all graph nodes.

    Parameters
    ----------
    graph : Graph
        Owning graph. The node registers itself on construction.
    inputs : Sequence[Operand]
        Data inputs of the node.
    shape : tuple[int, ...] or None
        Static output shape, or None when unknown.
    dtype : numpy dtype-like or None
        Output dtype, or None for operations without an output.
    name : str, optional
        Requested node name. Made unique within the graph.
    control_inputs : Sequence[Operand], optional
        Operands that must run before this node.
    """

    _cacheable = True
    type_name = "Operand"

    def __init__(
        self,
        graph: "Graph",
        inputs: Sequence["Operand"] = (),
        *,
        shape: Shape = None,
        dtype: Any = None,
        name: Optional[str] = None,
        control_inputs: Sequence["Operand"] = (),
    ) -> None:
        for op in inputs:
            if op.graph is not graph:
                raise ValueError(
                    f"Operand '{op.name}' belongs to a different graph than '{name or self.type_name}'."
                )
        self.graph = graph
        self.inputs: tuple = tuple(inputs)
        self.shape: Shape = None if shape is None else tuple(int(d) for d in shape)
        self.dtype = None if dtype is None else np.dtype(dtype)
        self.control_inputs: list = list(control_inputs)
        self.name = graph._register(self, name or self.type_name)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def evaluate(self, ctx: RunContext) -> Any:
        """
        Evaluate this node within a run, honoring the per-run cache.
        """
        if self in ctx.feed:
            return ctx.feed[self]
        key = id(self)
        if self._cacheable and key in ctx.cache:
            return ctx.cache[key]
        for dep in self.control_inputs:
            dep.evaluate(ctx)
        out = self._compute(ctx)
        if self._cacheable:
            ctx.cache[key] = out
        return out

    def _compute(self, ctx: RunContext) -> Any:
        raise NotImplementedError

    def _gradients(self, grad: "Operand") -> Sequence[Optional["Operand"]]:
        """
        Return symbolic gradients w.r.t. each input, given the output gradient.
        """
        raise LookupError(f"No gradient defined for operation type '{self.type_name}'.")

    # ------------------------------------------------------------------
    # Operator overloads
    # ------------------------------------------------------------------
    def _promote(self, other: Any) -> "Operand":
        if isinstance(other, Operand):
            return other
        return Constant(self.graph, as_array(other, self.dtype))

    def __add__(self, other: Any) -> "Operand":
        from ._math import Add

        return Add(self, self._promote(other))

    def __radd__(self, other: Any) -> "Operand":
        from ._math import Add

        return Add(self._promote(other), self)

    def __sub__(self, other: Any) -> "Operand":
        from ._math import Sub

        return Sub(self, self._promote(other))

    def __rsub__(self, other: Any) -> "Operand":
        from ._math import Sub

        return Sub(self._promote(other), self)

    def __mul__(self, other: Any) -> "Operand":
        from ._math import Mul

        return Mul(self, self._promote(other))

    def __rmul__(self, other: Any) -> "Operand":
        from ._math import Mul

        return Mul(self._promote(other), self)

    def __neg__(self) -> "Operand":
        from ._math import Neg

        return Neg(self)

    def __matmul__(self, other: Any) -> "Operand":
        from ._math import MatMul

        return MatMul(self, self._promote(other))

    # Operands are graph nodes: identity-based hashing keeps them usable as
    # feed-dict keys.
    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, shape={self.shape}, dtype={self.dtype})"


class Constant(Operand):
    """
    Node producing a fixed value.
    """

    type_name = "Const"

    def __init__(
        self, graph: "Graph", value: Any, dtype: Any = None, name: Optional[str] = None
    ) -> None:
        arr = as_array(value, dtype)
        super().__init__(graph, shape=arr.shape, dtype=arr.dtype, name=name)
        self._value = arr

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return self._value


class Placeholder(Operand):
    """
    Node whose value must be supplied through the session feed dict.
    """

    type_name = "Placeholder"

    def __init__(
        self,
        graph: "Graph",
        shape: Shape = None,
        dtype: Any = np.float32,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(graph, shape=shape, dtype=dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        # Fed placeholders are returned by `evaluate` before reaching here.
        raise MissingFeedError(self.name)


class Variable(Operand):
    """
    Mutable graph state.

    A variable holds a NumPy buffer that persists across session runs. The
    buffer is created by the first `Assign` and updated in place by training
    operations.

    Parameters
    ----------
    graph : Graph
        Owning graph.
    shape : tuple[int, ...]
        Static shape of the variable.
    dtype : numpy dtype-like, optional
        Element type. Defaults to float32.
    name : str, optional
        Requested variable name.
    trainable : bool, optional
        Whether `Optimizer.compute_gradients` should consider this variable.
    """

    _cacheable = False
    type_name = "Variable"

    def __init__(
        self,
        graph: "Graph",
        shape: Sequence[int],
        dtype: Any = np.float32,
        name: Optional[str] = None,
        trainable: bool = True,
    ) -> None:
        super().__init__(graph, shape=tuple(shape), dtype=dtype, name=name)
        self.trainable = bool(trainable)
        self._value: Optional[np.ndarray] = None

    @property
    def initialized(self) -> bool:
        return self._value is not None

    def buffer(self) -> np.ndarray:
        """
        Return the live storage of the variable (no copy).

        Raises
        ------
        UninitializedVariableError
            If the variable has never been assigned.
        """
        if self._value is None:
            raise UninitializedVariableError(self.name)
        return self._value

    def assign(self, value: Any, name: Optional[str] = None) -> "Assign":
        """
        Build an operation that stores `value` into this variable.
        """
        return Assign(self, self._promote(value), name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return self.buffer()

    def _store(self, arr: np.ndarray) -> np.ndarray:
        arr = np.asarray(arr)
        check_shape(self.name, self.shape, arr)
        self._value = np.array(arr, dtype=self.dtype, copy=True)
        return self._value


class Assign(Operand):
    """
    Write the value of an operand into a variable.
    """

    type_name = "Assign"

    def __init__(self, variable: Variable, value: Operand, name: Optional[str] = None) -> None:
        super().__init__(
            variable.graph,
            (value,),
            shape=variable.shape,
            dtype=variable.dtype,
            name=name,
        )
        self.variable = variable

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return self.variable._store(self.inputs[0].evaluate(ctx))


class Cast(Operand):
    type_name = "Cast"

    def __init__(self, x: Operand, dtype: Any, name: Optional[str] = None) -> None:
        super().__init__(x.graph, (x,), shape=x.shape, dtype=dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.asarray(self.inputs[0].evaluate(ctx)).astype(self.dtype)

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        return [Cast(grad, self.inputs[0].dtype)]


class Fill(Operand):
    """
    Node producing an array of `shape` filled with a scalar value.
    """

    type_name = "Fill"

    def __init__(
        self,
        graph: "Graph",
        shape: Sequence[int],
        value: Any,
        dtype: Any = np.float32,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(graph, shape=tuple(shape), dtype=dtype, name=name)
        self._fill_value = value

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.full(self.shape, self._fill_value, dtype=self.dtype)


class Identity(Operand):
    type_name = "Identity"

    def __init__(self, x: Operand, name: Optional[str] = None) -> None:
        super().__init__(x.graph, (x,), shape=x.shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.array(self.inputs[0].evaluate(ctx), copy=True)

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        return [grad]


class NoOp(Operand):
    """
    Operation without output that groups control dependencies.

    Running a `NoOp` runs each of its control inputs, in order.
    """

    type_name = "NoOp"

    def __init__(
        self,
        graph: "Graph",
        control_inputs: Sequence[Operand] = (),
        name: Optional[str] = None,
    ) -> None:
        super().__init__(graph, name=name, control_inputs=control_inputs)

    def _compute(self, ctx: RunContext) -> None:
        return None

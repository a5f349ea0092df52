"""
Computation graph container.

A `Graph` owns every operand built against it, allocates unique node names,
tracks variables and their initializers, and differentiates losses built from
the math nodes in `_math`.

Design notes
------------
- `Graph` is the only graph-mode execution environment (`is_graph` is True).
  Optimizers refuse any other environment.
- Initializers are plain operations (usually `Assign`) registered with
  `add_initializer`; `init()` groups all of them in one `NoOp`. Optimizer
  slots register their initializers here too, so `init()` must be built after
  the optimizer's update operation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ._math import Add, OnesLike, ReduceSum
from ._operand import (
    Cast,
    Constant,
    Fill,
    Identity,
    NoOp,
    Operand,
    Placeholder,
    Variable,
)

logger = logging.getLogger(__name__)


class Graph:
    """
    Graph-mode execution environment.

    Examples
    --------
    >>> g = Graph()
    >>> w = g.variable((2,), name="w", initial_value=[1.0, 2.0])
    >>> loss = w * w
    >>> (grad_w,) = g.add_gradients(loss, [w])
    """

    def __init__(self) -> None:
        self._operations: List[Operand] = []
        self._by_name: Dict[str, Operand] = {}
        self._name_counts: Dict[str, int] = {}
        self._initializers: List[Operand] = []

    @property
    def is_graph(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Naming / registration
    # ------------------------------------------------------------------
    def unique_name(self, base: str) -> str:
        """
        Return `base` if unused, otherwise `base_<n>` with the next free index.
        """
        if base not in self._by_name:
            self._name_counts.setdefault(base, 0)
            return base
        n = self._name_counts.get(base, 0)
        while True:
            n += 1
            candidate = f"{base}_{n}"
            if candidate not in self._by_name:
                self._name_counts[base] = n
                return candidate

    def _register(self, op: Operand, name: str) -> str:
        unique = self.unique_name(name)
        self._operations.append(op)
        self._by_name[unique] = op
        return unique

    def get(self, name: str) -> Operand:
        """
        Return the operand registered under `name`.

        Raises
        ------
        KeyError
            If no operand has that name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"No operation named '{name}' in graph.") from None

    @property
    def operations(self) -> List[Operand]:
        return list(self._operations)

    # ------------------------------------------------------------------
    # Node factories
    # ------------------------------------------------------------------
    def constant(self, value: Any, dtype: Any = None, name: Optional[str] = None) -> Constant:
        return Constant(self, value, dtype=dtype, name=name)

    def placeholder(
        self, shape: Optional[Sequence[int]] = None, dtype: Any = np.float32, name: Optional[str] = None
    ) -> Placeholder:
        return Placeholder(self, shape=shape, dtype=dtype, name=name)

    def variable(
        self,
        shape: Sequence[int],
        dtype: Any = np.float32,
        name: Optional[str] = None,
        initial_value: Any = None,
        trainable: bool = True,
    ) -> Variable:
        """
        Create a variable.

        Parameters
        ----------
        shape : Sequence[int]
            Static shape.
        dtype : numpy dtype-like, optional
            Element type. Defaults to float32.
        name : str, optional
            Requested name; made unique within the graph.
        initial_value : array-like or Operand, optional
            If given, an initializer assigning it is registered with the graph.
        trainable : bool, optional
            Whether the variable is returned by `trainable_variables()`.
        """
        var = Variable(self, shape, dtype=dtype, name=name, trainable=trainable)
        if initial_value is not None:
            self.add_initializer(var.assign(initial_value, name=f"{var.name}/Assign"))
        return var

    def fill(
        self, shape: Sequence[int], value: Any, dtype: Any = np.float32, name: Optional[str] = None
    ) -> Fill:
        return Fill(self, shape, value, dtype=dtype, name=name)

    def cast(self, x: Operand, dtype: Any, name: Optional[str] = None) -> Operand:
        if x.dtype == np.dtype(dtype):
            return x
        return Cast(x, dtype, name=name)

    def identity(self, x: Operand, name: Optional[str] = None) -> Identity:
        return Identity(x, name=name)

    def no_op(self, control_inputs: Sequence[Operand] = (), name: Optional[str] = None) -> NoOp:
        return NoOp(self, control_inputs, name=name)

    # ------------------------------------------------------------------
    # Variables and initialization
    # ------------------------------------------------------------------
    def add_initializer(self, op: Operand) -> None:
        """
        Register an operation to be run by `init()`.
        """
        if op.graph is not self:
            raise ValueError(f"Initializer '{op.name}' belongs to a different graph.")
        self._initializers.append(op)

    @property
    def initializers(self) -> List[Operand]:
        return list(self._initializers)

    def init(self, name: str = "init") -> NoOp:
        """
        Return an operation running every registered initializer.
        """
        return NoOp(self, self._initializers, name=name)

    def variables(self) -> List[Variable]:
        return [op for op in self._operations if isinstance(op, Variable)]

    def trainable_variables(self) -> List[Variable]:
        return [v for v in self.variables() if v.trainable]

    # ------------------------------------------------------------------
    # Gradients
    # ------------------------------------------------------------------
    def add_gradients(
        self, loss: Operand, variables: Sequence[Operand]
    ) -> List[Optional[Operand]]:
        """
        Build symbolic gradients of `loss` w.r.t. each of `variables`.

        Parameters
        ----------
        loss : Operand
            Loss to differentiate. Non-scalar losses are summed first.
        variables : Sequence[Operand]
            Operands to differentiate with respect to.

        Returns
        -------
        list[Optional[Operand]]
            One gradient operand per entry of `variables`, or None where the
            loss does not depend on that variable.

        Raises
        ------
        LookupError
            If the loss depends on a variable through an operation without a
            gradient rule.
        """
        if loss.graph is not self:
            raise ValueError(f"Loss '{loss.name}' belongs to a different graph.")
        if loss.shape != ():
            loss = ReduceSum(loss)

        targets = {id(v) for v in variables}
        order = self._topological_order(loss)
        reaches = self._nodes_reaching(order, targets)

        grads: Dict[int, Operand] = {id(loss): OnesLike(loss)}
        for node in reversed(order):
            g = grads.get(id(node))
            if g is None or not node.inputs or isinstance(node, Variable):
                continue
            if not any(id(x) in reaches for x in node.inputs):
                continue
            for x, gx in zip(node.inputs, node._gradients(g)):
                if gx is None or id(x) not in reaches:
                    continue
                prev = grads.get(id(x))
                grads[id(x)] = gx if prev is None else Add(prev, gx)

        logger.debug(
            "Built gradients of '%s' for %d variable(s)", loss.name, len(variables)
        )
        return [grads.get(id(v)) for v in variables]

    @staticmethod
    def _topological_order(root: Operand) -> List[Operand]:
        order: List[Operand] = []
        seen = set()
        stack = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in seen:
                continue
            seen.add(id(node))
            stack.append((node, True))
            for x in node.inputs:
                if id(x) not in seen:
                    stack.append((x, False))
        return order

    @staticmethod
    def _nodes_reaching(order: List[Operand], targets: set) -> set:
        # `order` lists inputs before consumers.
        reaches = set()
        for node in order:
            if id(node) in targets or any(id(x) in reaches for x in node.inputs):
                reaches.add(id(node))
        return reaches

    def __repr__(self) -> str:
        return f"Graph(operations={len(self._operations)}, variables={len(self.variables())})"

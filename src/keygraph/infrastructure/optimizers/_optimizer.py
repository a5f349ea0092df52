"""
Base class for graph-mode optimizers.

An optimizer does not touch variable values itself. Given (gradient, variable)
pairs it records update operations into the graph and returns a single
operation that a `Session` runs once per training step.

Design notes
------------
- Optimizers can only be built against a graph environment; anything else
  is rejected at construction time with `GraphModeError`.
- Per-variable optimizer state ("slots", e.g. momentum accumulators) lives in
  graph variables named ``"<variable>-<slot>"``. Slots are created the first
  time gradients are applied to a variable and their initializers are
  registered with the graph, so `graph.init()` initializes them.
- A float learning rate is fed through a scalar placeholder. Changing it with
  the `learning_rate` setter only updates `feed_map`; the graph is unchanged.
  A learning-rate operand is used as-is and needs no feeding.
- Subclasses implement `apply_dense` and, where they keep state,
  `create_slots`. `prepare` and `finish` are optional hooks around the
  per-variable updates.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union
from typing_extensions import Self

import numpy as np

from ...domain._environment import assert_graph
from ...domain._errors import DuplicateSlotError
from ...domain._optimizers import NAME_KEY
from ..graph._graph import Graph
from ..graph._operand import Operand, Placeholder, Variable

logger = logging.getLogger(__name__)

LearningRate = Union[float, Operand]


@dataclass(frozen=True)
class GradAndVar:
    """
    A gradient paired with the variable it updates.

    Attributes
    ----------
    gradient : Operand or None
        Gradient of the loss w.r.t. `variable`. None means "no gradient";
        such pairs are skipped by `Optimizer.apply_gradients`.
    variable : Variable
        Variable to update.
    """

    gradient: Optional[Operand]
    variable: Variable


class Optimizer:
    """
    Abstract graph-mode optimizer.

    Parameters
    ----------
    graph : Graph
        Graph the update operations are added to. Must be a graph
        environment.
    name : str, optional
        Optimizer name, used to name its operations. Defaults to
        `DEFAULT_NAME` of the concrete class.
    learning_rate : float or Operand, optional
        Learning rate. A float must be > 0 and is fed through a placeholder;
        an operand is used directly.

    Raises
    ------
    GraphModeError
        If `graph` is not a graph environment.
    ValueError
        If a float learning rate is not positive.
    """

    DEFAULT_NAME = "Optimizer"
    LEARNING_RATE = "learning_rate"
    LEARNING_RATE_DEFAULT = 0.001

    def __init__(
        self,
        graph: Graph,
        name: Optional[str] = None,
        learning_rate: LearningRate = None,
    ) -> None:
        self.graph: Graph = assert_graph(graph)
        self._name = name or self.DEFAULT_NAME
        # slot name -> variable name -> slot variable
        self._slots: Dict[str, Dict[str, Variable]] = {}

        if learning_rate is None:
            learning_rate = self.LEARNING_RATE_DEFAULT

        self._learning_rate: Optional[float] = None
        self._learning_rate_placeholder: Optional[Placeholder] = None
        self._feed_map: Dict[Operand, np.ndarray] = {}

        if isinstance(learning_rate, Operand):
            if learning_rate.graph is not self.graph:
                raise ValueError("learning_rate operand belongs to a different graph")
            self._learning_rate_operand: Operand = learning_rate
        else:
            self._learning_rate_placeholder = self.graph.placeholder(
                shape=(), dtype=np.float32, name=f"{self._name}/{self.LEARNING_RATE}"
            )
            self._learning_rate_operand = self._learning_rate_placeholder
            self.learning_rate = learning_rate

    # ------------------------------------------------------------------
    # Identity / hyperparameters
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._name

    @property
    def optimizer_name(self) -> str:
        """
        Return the algorithm name (e.g., "Adam"), independent of `name`.
        """
        return self.DEFAULT_NAME

    @property
    def learning_rate(self) -> Optional[float]:
        """
        Return the float learning rate, or None if it is an operand.
        """
        return self._learning_rate

    @learning_rate.setter
    def learning_rate(self, value: float) -> None:
        if self._learning_rate_placeholder is None:
            raise TypeError(
                f"{self._name} was built with a learning-rate operand; "
                f"its learning rate cannot be set to a float"
            )
        value = float(value)
        if value <= 0.0:
            raise ValueError(f"learning_rate must be > 0, got {value}")
        self._learning_rate = value
        self._feed_map = {
            self._learning_rate_placeholder: np.asarray(value, dtype=np.float32)
        }

    def set_learning_rate(self, value: float) -> None:
        self.learning_rate = value

    @property
    def learning_rate_operand(self) -> Operand:
        """
        Return the operand update operations read the learning rate from.
        """
        return self._learning_rate_operand

    @property
    def feed_map(self) -> Dict[Operand, np.ndarray]:
        """
        Return the values to feed when running this optimizer's operations.
        """
        return dict(self._feed_map)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def create_slot(
        self, variable: Variable, slot_name: str, initializer: Operand
    ) -> Variable:
        """
        Create the slot `slot_name` for `variable`.

        The slot has the variable's shape and dtype and is initialized by
        `initializer` when `graph.init()` runs.

        Raises
        ------
        DuplicateSlotError
            If the slot already exists for this variable.
        """
        per_var = self._slots.setdefault(slot_name, {})
        if variable.name in per_var:
            raise DuplicateSlotError(variable.name, slot_name)

        slot = self.graph.variable(
            variable.shape,
            dtype=variable.dtype,
            name=f"{variable.name}-{slot_name}",
            trainable=False,
        )
        self.graph.add_initializer(slot.assign(initializer, name=f"{slot.name}/Assign"))
        per_var[variable.name] = slot
        logger.debug("%s: created slot '%s' for '%s'", self._name, slot_name, variable.name)
        return slot

    def get_slot(self, variable: Variable, slot_name: str) -> Optional[Variable]:
        """
        Return the slot `slot_name` of `variable`, or None if it does not exist.
        """
        return self._slots.get(slot_name, {}).get(variable.name)

    def get_slot_names(self) -> List[str]:
        return list(self._slots)

    def _has_slots(self, variable: Variable) -> bool:
        return any(variable.name in per_var for per_var in self._slots.values())

    def create_slots(self, variables: Sequence[Variable]) -> None:
        """
        Create the slots of newly seen variables. No-op by default.
        """

    # ------------------------------------------------------------------
    # Gradients
    # ------------------------------------------------------------------
    def compute_gradients(self, loss: Operand) -> List[GradAndVar]:
        """
        Compute gradients of `loss` w.r.t. the graph's trainable variables.

        Variables the loss does not depend on are skipped with a
        `RuntimeWarning`.
        """
        variables = self.graph.trainable_variables()
        gradients = self.graph.add_gradients(loss, variables)

        pairs: List[GradAndVar] = []
        for grad, var in zip(gradients, variables):
            if grad is None:
                warnings.warn(
                    f"No gradient for variable '{var.name}' w.r.t. loss '{loss.name}'",
                    RuntimeWarning,
                    stacklevel=2,
                )
                continue
            pairs.append(GradAndVar(grad, var))
        return pairs

    def minimize(self, loss: Operand, name: Optional[str] = None) -> Operand:
        """
        Build an operation that minimizes `loss`.

        Equivalent to ``apply_gradients(compute_gradients(loss), name)``.
        """
        return self.apply_gradients(self.compute_gradients(loss), name)

    def apply_gradients(
        self, grads_and_vars: Iterable[GradAndVar], name: Optional[str] = None
    ) -> Operand:
        """
        Build the update operation for (gradient, variable) pairs.

        Parameters
        ----------
        grads_and_vars : Iterable[GradAndVar]
            Pairs to apply. Pairs whose gradient is None are skipped. Plain
            ``(gradient, variable)`` tuples are accepted.
        name : str, optional
            Name of the returned operation. Defaults to the optimizer name.

        Returns
        -------
        Operand
            A `NoOp` that evaluates every gradient, then runs the
            per-variable updates.

        Raises
        ------
        ValueError
            If no pair carries a gradient.
        """
        pairs = []
        for item in grads_and_vars:
            gv = item if isinstance(item, GradAndVar) else GradAndVar(*item)
            if gv.gradient is not None:
                pairs.append(gv)
        if not pairs:
            raise ValueError("No gradients provided for any variable.")

        new_vars = [gv.variable for gv in pairs if not self._has_slots(gv.variable)]
        self.create_slots(new_vars)

        op_name = name or self._name

        # Every gradient is evaluated before the first update so that all
        # updates of a step read pre-step variable values.
        gradients = [
            self.graph.identity(gv.gradient, name=f"{op_name}/{gv.variable.name}/gradient")
            for gv in pairs
        ]
        updates: List[Operand] = [
            self.graph.no_op(gradients, name=f"{op_name}/gradients")
        ]
        prepared = self.prepare(op_name)
        if prepared is not None:
            updates.append(prepared)
        for gradient, gv in zip(gradients, pairs):
            updates.append(self.apply_dense(gradient, gv.variable))

        logger.debug("%s: built %d update(s) for '%s'", self._name, len(pairs), op_name)
        return self.finish(updates, op_name)

    def prepare(self, name: str) -> Optional[Operand]:
        """
        Hook run before the per-variable updates are built.

        Returns an optional operation that runs before the updates.
        """
        return None

    def apply_dense(self, gradient: Operand, variable: Variable) -> Operand:
        """
        Build the update operation for one variable.
        """
        raise NotImplementedError

    def finish(self, update_operations: List[Operand], name: str) -> Operand:
        """
        Group the update operations into a single run target.
        """
        return self.graph.no_op(update_operations, name=name)

    def _cast(self, x: Operand, like: Operand) -> Operand:
        return self.graph.cast(x, like.dtype)

    def _scalar(self, value: float) -> Operand:
        return self.graph.constant(value, dtype=np.float32)

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def get_config(self) -> Dict[str, Any]:
        """
        Return the optimizer name and hyperparameters.

        Learning-rate operands are not serializable and are reported as None;
        such a config cannot be passed to `from_config`.
        """
        return {NAME_KEY: self._name, self.LEARNING_RATE: self._learning_rate}

    @classmethod
    def from_config(cls, graph: Graph, config: Dict[str, Any]) -> Self:
        """
        Rebuild an optimizer in `graph` from `get_config` output.

        Raises
        ------
        ValueError
            If the config was taken from an optimizer built with a
            learning-rate operand.
        """
        if cls.LEARNING_RATE in config and config[cls.LEARNING_RATE] is None:
            raise ValueError(
                f"Cannot rebuild {cls.__name__} from a config without a float "
                f"learning rate (it was built with a learning-rate operand)."
            )
        return cls(graph, **config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        self._feed_map = {}

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        params = {k: v for k, v in self.get_config().items() if k != NAME_KEY}
        inner = ", ".join(f"{k}={v}" for k, v in params.items())
        return f"{type(self).__name__}({inner})"

"""
Adam optimizer implementation.

Adam is a stochastic gradient descent method based on adaptive estimation of
first-order and second-order moments. According to Kingma et al., 2014, the
method is "computationally efficient, has little memory requirement,
invariant to diagonal rescaling of gradients, and is well suited for problems
that are large in terms of data/parameters".

Design notes
------------
- Per-variable state lives in the ``"m"`` and ``"v"`` slots.
- The bias-correction terms ``beta_1**t`` and ``beta_2**t`` are kept in two
  scalar graph variables (``beta1_power``, ``beta2_power``) shared by every
  variable the optimizer updates. They start at ``beta_1`` and ``beta_2`` and
  are multiplied by the betas after all variable updates of a step have run.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ...domain._environment import assert_graph
from ..graph._graph import Graph
from ..graph._operand import Operand, Variable
from ..graph._training_ops import ApplyAdam
from ._optimizer import LearningRate, Optimizer
from ._registry import register_optimizer

FIRST_MOMENT = "m"
SECOND_MOMENT = "v"


@register_optimizer()
class Adam(Optimizer):
    """
    Adam optimizer.

    Update rule
    -----------
    Let ``g`` be the gradient at step ``t`` (starting at 1):

        lr_t = lr * sqrt(1 - beta_2^t) / (1 - beta_1^t)
        m    = beta_1 * m + (1 - beta_1) * g
        v    = beta_2 * v + (1 - beta_2) * g * g
        w    = w - lr_t * m / (sqrt(v) + epsilon)

    Parameters
    ----------
    graph : Graph
        Graph the update operations are added to.
    name : str, optional
        Optimizer name. Defaults to "Adam".
    learning_rate : float or Operand, optional
        Learning rate. Defaults to 0.001.
    beta_1 : float, optional
        Exponential decay rate for the first moment estimates, in [0, 1).
        Defaults to 0.9.
    beta_2 : float, optional
        Exponential decay rate for the second moment estimates, in [0, 1).
        Defaults to 0.999.
    epsilon : float, optional
        Small constant for numerical stability. This is "epsilon hat" in the
        Kingma and Ba paper (the formula just before Section 2.1), not the
        epsilon of Algorithm 1. Must be > 0. Defaults to 1e-8.
    """

    DEFAULT_NAME = "Adam"
    LEARNING_RATE_DEFAULT = 0.001
    BETA_ONE_DEFAULT = 0.9
    BETA_TWO_DEFAULT = 0.999
    EPSILON_DEFAULT = 1e-8

    def __init__(
        self,
        graph: Graph,
        name: Optional[str] = None,
        learning_rate: LearningRate = LEARNING_RATE_DEFAULT,
        beta_1: float = BETA_ONE_DEFAULT,
        beta_2: float = BETA_TWO_DEFAULT,
        epsilon: float = EPSILON_DEFAULT,
    ) -> None:
        beta_1, beta_2, epsilon = float(beta_1), float(beta_2), float(epsilon)
        if not (0.0 <= beta_1 < 1.0) or not (0.0 <= beta_2 < 1.0):
            raise ValueError(f"betas must be in [0,1), got {(beta_1, beta_2)}")
        if epsilon <= 0.0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        super().__init__(graph, name, learning_rate)
        self.beta_1 = beta_1
        self.beta_2 = beta_2
        self.epsilon = epsilon

        self.beta1_power: Optional[Variable] = None
        self.beta2_power: Optional[Variable] = None
        self._beta_1_const: Optional[Operand] = None
        self._beta_2_const: Optional[Operand] = None
        self._epsilon_const: Optional[Operand] = None

    def create_slots(self, variables: Sequence[Variable]) -> None:
        for v in variables:
            self.create_slot(v, FIRST_MOMENT, self.graph.fill(v.shape, 0.0, dtype=v.dtype))
            self.create_slot(v, SECOND_MOMENT, self.graph.fill(v.shape, 0.0, dtype=v.dtype))

        if self.beta1_power is None:
            self.beta1_power = self.graph.variable(
                (), dtype=np.float32, name=f"{self.name}/beta1_power",
                initial_value=self.beta_1, trainable=False,
            )
            self.beta2_power = self.graph.variable(
                (), dtype=np.float32, name=f"{self.name}/beta2_power",
                initial_value=self.beta_2, trainable=False,
            )

    def prepare(self, name: str) -> Optional[Operand]:
        self._beta_1_const = self._scalar(self.beta_1)
        self._beta_2_const = self._scalar(self.beta_2)
        self._epsilon_const = self._scalar(self.epsilon)
        return None

    def apply_dense(self, gradient: Operand, variable: Variable) -> Operand:
        return ApplyAdam(
            variable,
            self.get_slot(variable, FIRST_MOMENT),
            self.get_slot(variable, SECOND_MOMENT),
            self._cast(self.beta1_power, gradient),
            self._cast(self.beta2_power, gradient),
            self._cast(self.learning_rate_operand, gradient),
            self._cast(self._beta_1_const, gradient),
            self._cast(self._beta_2_const, gradient),
            self._cast(self._epsilon_const, gradient),
            gradient,
            name=f"{self.name}/{variable.name}/ApplyAdam",
        )

    def finish(self, update_operations: List[Operand], name: str) -> Operand:
        """
        Append the beta power updates after the variable updates.
        """
        update_operations.append(self.beta1_power.assign(self.beta1_power * self._beta_1_const))
        update_operations.append(self.beta2_power.assign(self.beta2_power * self._beta_2_const))
        return super().finish(update_operations, name)

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config.update(
            {"beta_1": self.beta_1, "beta_2": self.beta_2, "epsilon": self.epsilon}
        )
        return config


def adam_minimize(
    env: Any,
    loss: Operand,
    learning_rate: float = Adam.LEARNING_RATE_DEFAULT,
    beta_1: float = Adam.BETA_ONE_DEFAULT,
    beta_2: float = Adam.BETA_TWO_DEFAULT,
    epsilon: float = Adam.EPSILON_DEFAULT,
    shared_name: Optional[str] = None,
) -> Operand:
    """
    Build an Adam optimizer in `env` and return the operation minimizing `loss`.

    The learning rate is fed through a placeholder, so the returned
    operation must be run with the optimizer's feed map. Use `Adam` directly
    to keep access to it; this helper attaches the optimizer to the returned
    operation as ``op.optimizer``.

    Raises
    ------
    GraphModeError
        If `env` is not a graph environment.
    """
    graph = assert_graph(env)
    adam = Adam(graph, learning_rate=learning_rate, beta_1=beta_1, beta_2=beta_2, epsilon=epsilon)
    op = adam.minimize(loss, shared_name)
    op.optimizer = adam
    return op

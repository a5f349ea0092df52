"""
AdaGrad optimizer.

See Duchi et al., 2011, "Adaptive Subgradient Methods for Online Learning and
Stochastic Optimization".
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..graph._graph import Graph
from ..graph._operand import Operand, Variable
from ..graph._training_ops import ApplyAdagrad
from ._optimizer import LearningRate, Optimizer
from ._registry import register_optimizer

ACCUMULATOR = "accumulator"


@register_optimizer()
class AdaGrad(Optimizer):
    """
    Optimizer implementing the AdaGrad algorithm.

    AdaGrad scales each coordinate's step by the inverse square root of the
    sum of its squared gradients, so frequently updated coordinates take
    smaller steps.

    Update rule
    -----------
    For each variable ``w`` with gradient ``g`` and accumulator ``a``:

        a <- a + g * g
        w <- w - lr * g / (sqrt(a) + epsilon)

    Parameters
    ----------
    graph : Graph
        Graph the update operations are added to.
    name : str, optional
        Optimizer name. Defaults to "Adagrad".
    learning_rate : float or Operand, optional
        Learning rate. Defaults to 0.001.
    initial_accumulator_value : float, optional
        Starting value of the accumulators. Must be >= 0. Defaults to 0.01.
    epsilon : float, optional
        Added to the denominator for numerical stability. Must be > 0.
        Defaults to 1e-7.
    """

    DEFAULT_NAME = "Adagrad"
    LEARNING_RATE_DEFAULT = 0.001
    INITIAL_ACCUMULATOR_DEFAULT = 0.01
    EPSILON_DEFAULT = 1e-7

    def __init__(
        self,
        graph: Graph,
        name: Optional[str] = None,
        learning_rate: LearningRate = LEARNING_RATE_DEFAULT,
        initial_accumulator_value: float = INITIAL_ACCUMULATOR_DEFAULT,
        epsilon: float = EPSILON_DEFAULT,
    ) -> None:
        initial_accumulator_value = float(initial_accumulator_value)
        epsilon = float(epsilon)
        if initial_accumulator_value < 0.0:
            raise ValueError(
                f"initial_accumulator_value must be >= 0, got {initial_accumulator_value}"
            )
        if epsilon <= 0.0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        super().__init__(graph, name, learning_rate)
        self.initial_accumulator_value = initial_accumulator_value
        self.epsilon = epsilon

    def create_slots(self, variables: Sequence[Variable]) -> None:
        for v in variables:
            initializer = self.graph.fill(v.shape, self.initial_accumulator_value, dtype=v.dtype)
            self.create_slot(v, ACCUMULATOR, initializer)

    def apply_dense(self, gradient: Operand, variable: Variable) -> Operand:
        return ApplyAdagrad(
            variable,
            self.get_slot(variable, ACCUMULATOR),
            self._cast(self.learning_rate_operand, gradient),
            self._cast(self._scalar(self.epsilon), gradient),
            gradient,
            name=f"{self.name}/{variable.name}/ApplyAdagrad",
        )

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config.update(
            {
                "initial_accumulator_value": self.initial_accumulator_value,
                "epsilon": self.epsilon,
            }
        )
        return config

"""
Plain gradient descent optimizer.
"""

from __future__ import annotations

from typing import Optional

from ..graph._graph import Graph
from ..graph._operand import Operand, Variable
from ..graph._training_ops import ApplyGradientDescent
from ._optimizer import LearningRate, Optimizer
from ._registry import register_optimizer


@register_optimizer()
class GradientDescent(Optimizer):
    """
    Basic stochastic gradient descent.

    Update rule
    -----------
    For each variable ``w`` with gradient ``g``:

        w <- w - learning_rate * g

    Parameters
    ----------
    graph : Graph
        Graph the update operations are added to.
    name : str, optional
        Optimizer name. Defaults to "GradientDescent".
    learning_rate : float or Operand, optional
        Learning rate. Defaults to 0.01.
    """

    DEFAULT_NAME = "GradientDescent"
    LEARNING_RATE_DEFAULT = 0.01

    def __init__(
        self,
        graph: Graph,
        name: Optional[str] = None,
        learning_rate: LearningRate = LEARNING_RATE_DEFAULT,
    ) -> None:
        super().__init__(graph, name, learning_rate)

    def apply_dense(self, gradient: Operand, variable: Variable) -> Operand:
        return ApplyGradientDescent(
            variable,
            self._cast(self.learning_rate_operand, gradient),
            gradient,
            name=f"{self.name}/{variable.name}/ApplyGradientDescent",
        )

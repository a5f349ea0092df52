"""
Gradient descent with momentum, classical or Nesterov.

See Sutskever et al., 2013, "On the importance of initialization and
momentum in deep learning" for Nesterov momentum.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..graph._graph import Graph
from ..graph._operand import Operand, Variable
from ..graph._training_ops import ApplyMomentum
from ._optimizer import LearningRate, Optimizer
from ._registry import register_optimizer

MOMENTUM = "momentum"


@register_optimizer()
class Momentum(Optimizer):
    """
    Gradient descent with a momentum accumulator.

    Update rule
    -----------
    For each variable ``w`` with gradient ``g`` and accumulator ``a``:

        a <- momentum * a + g
        w <- w - lr * a                       (classical)
        w <- w - lr * g - lr * momentum * a   (Nesterov)

    Parameters
    ----------
    graph : Graph
        Graph the update operations are added to.
    name : str, optional
        Optimizer name. Defaults to "Momentum".
    learning_rate : float or Operand, optional
        Learning rate. Defaults to 0.01.
    momentum : float, optional
        Accumulator decay. Must be >= 0. Defaults to 0.0 (plain gradient
        descent).
    use_nesterov : bool, optional
        Use Nesterov momentum. Defaults to False.

    Slots
    -----
    ``"momentum"``: accumulator, initialized to zeros.
    """

    DEFAULT_NAME = "Momentum"
    LEARNING_RATE_DEFAULT = 0.01
    MOMENTUM_DEFAULT = 0.0

    def __init__(
        self,
        graph: Graph,
        name: Optional[str] = None,
        learning_rate: LearningRate = LEARNING_RATE_DEFAULT,
        momentum: float = MOMENTUM_DEFAULT,
        use_nesterov: bool = False,
    ) -> None:
        momentum = float(momentum)
        if momentum < 0.0:
            raise ValueError(f"momentum must be >= 0, got {momentum}")
        super().__init__(graph, name, learning_rate)
        self.momentum = momentum
        self.use_nesterov = bool(use_nesterov)

    def create_slots(self, variables: Sequence[Variable]) -> None:
        for v in variables:
            self.create_slot(v, MOMENTUM, self.graph.fill(v.shape, 0.0, dtype=v.dtype))

    def apply_dense(self, gradient: Operand, variable: Variable) -> Operand:
        return ApplyMomentum(
            variable,
            self.get_slot(variable, MOMENTUM),
            self._cast(self.learning_rate_operand, gradient),
            gradient,
            self._cast(self._scalar(self.momentum), gradient),
            use_nesterov=self.use_nesterov,
            name=f"{self.name}/{variable.name}/ApplyMomentum",
        )

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config.update({"momentum": self.momentum, "use_nesterov": self.use_nesterov})
        return config

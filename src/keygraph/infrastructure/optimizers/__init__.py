from ._optimizer import GradAndVar, Optimizer
from ._gradient_descent import GradientDescent
from ._momentum import MOMENTUM, Momentum
from ._adagrad import ACCUMULATOR, AdaGrad
from ._adam import FIRST_MOMENT, SECOND_MOMENT, Adam, adam_minimize
from ._registry import optimizer_from_config, optimizer_to_config, register_optimizer

__all__ = [
    "GradAndVar",
    "Optimizer",
    "GradientDescent",
    "Momentum",
    "MOMENTUM",
    "AdaGrad",
    "ACCUMULATOR",
    "Adam",
    "FIRST_MOMENT",
    "SECOND_MOMENT",
    "adam_minimize",
    "register_optimizer",
    "optimizer_to_config",
    "optimizer_from_config",
]

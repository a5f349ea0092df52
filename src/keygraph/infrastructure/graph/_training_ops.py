"""
In-place training kernels and the graph nodes that run them.

The kernels implement the closed-form update rules of the supported
optimizers on NumPy buffers. Each `Apply*` node evaluates its inputs, casts
them to the variable dtype and calls its kernel on the live variable and slot
buffers.

Update rules
------------
- gradient descent: ``var -= lr * g``
- momentum: ``accum = accum * momentum + g``; then ``var -= lr * accum``
  (classical) or ``var -= lr * g + lr * momentum * accum`` (Nesterov)
- adagrad: ``accum += g * g``; ``var -= lr * g / (sqrt(accum) + epsilon)``
- adam: ``lr_t = lr * sqrt(1 - beta2_power) / (1 - beta1_power)``;
  ``m += (g - m) * (1 - beta1)``; ``v += (g * g - v) * (1 - beta2)``;
  ``var -= lr_t * m / (sqrt(v) + epsilon)``
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import numpy as np

from ._operand import Operand, RunContext, Variable, check_shape


def apply_gradient_descent(var: np.ndarray, lr: float, grad: np.ndarray) -> None:
    var -= lr * grad


def apply_momentum(
    var: np.ndarray,
    accum: np.ndarray,
    lr: float,
    grad: np.ndarray,
    momentum: float,
    use_nesterov: bool = False,
) -> None:
    accum *= momentum
    accum += grad
    if use_nesterov:
        var -= lr * grad + lr * momentum * accum
    else:
        var -= lr * accum


def apply_adagrad(
    var: np.ndarray,
    accum: np.ndarray,
    lr: float,
    grad: np.ndarray,
    epsilon: float = 0.0,
) -> None:
    accum += grad * grad
    var -= lr * grad / (np.sqrt(accum) + epsilon)


def apply_adam(
    var: np.ndarray,
    m: np.ndarray,
    v: np.ndarray,
    beta1_power: float,
    beta2_power: float,
    lr: float,
    beta1: float,
    beta2: float,
    epsilon: float,
    grad: np.ndarray,
) -> None:
    """
    Adam update with the bias correction folded into the step size.

    `beta1_power` and `beta2_power` are ``beta1**t`` and ``beta2**t`` for the
    current step ``t`` (starting at 1).
    """
    lr_t = lr * np.sqrt(1.0 - beta2_power) / (1.0 - beta1_power)
    m += (grad - m) * (1.0 - beta1)
    v += (grad * grad - v) * (1.0 - beta2)
    var -= lr_t * m / (np.sqrt(v) + epsilon)


class _ApplyOp(Operand):
    """
    Base node for in-place training updates.

    Parameters
    ----------
    variables : Sequence[Variable]
        The variable being trained followed by its slot variables. Their live
        buffers are passed to the kernel first, in order.
    inputs : Sequence[Operand]
        Hyperparameter and gradient operands. Scalars are passed to the kernel
        as Python floats, the gradient (last input) as an array.
    """

    kernel: Callable[..., None]

    def __init__(
        self,
        variables: Sequence[Variable],
        inputs: Sequence[Operand],
        name: Optional[str] = None,
        **attrs,
    ) -> None:
        var = variables[0]
        super().__init__(
            var.graph,
            tuple(variables) + tuple(inputs),
            shape=var.shape,
            dtype=var.dtype,
            name=name,
        )
        self.variables = tuple(variables)
        self.attrs = attrs

    def _compute(self, ctx: RunContext) -> np.ndarray:
        buffers = [v.buffer() for v in self.variables]
        values = [
            np.asarray(op.evaluate(ctx), dtype=self.dtype)
            for op in self.inputs[len(self.variables):]
        ]
        *scalars, grad = values
        check_shape(self.variables[0].name, self.variables[0].shape, grad)
        type(self).kernel(*buffers, *(float(s) for s in scalars), grad, **self.attrs)
        return buffers[0]


class ApplyGradientDescent(_ApplyOp):
    type_name = "ApplyGradientDescent"

    def __init__(self, var: Variable, alpha: Operand, delta: Operand, name=None) -> None:
        super().__init__((var,), (alpha, delta), name=name)

    @staticmethod
    def kernel(var, lr, grad):
        apply_gradient_descent(var, lr, grad)


class ApplyMomentum(_ApplyOp):
    type_name = "ApplyMomentum"

    def __init__(
        self,
        var: Variable,
        accum: Variable,
        lr: Operand,
        grad: Operand,
        momentum: Operand,
        use_nesterov: bool = False,
        name=None,
    ) -> None:
        super().__init__(
            (var, accum), (lr, momentum, grad), name=name, use_nesterov=bool(use_nesterov)
        )

    @staticmethod
    def kernel(var, accum, lr, momentum, grad, use_nesterov=False):
        apply_momentum(var, accum, lr, grad, momentum, use_nesterov)


class ApplyAdagrad(_ApplyOp):
    type_name = "ApplyAdagrad"

    def __init__(
        self,
        var: Variable,
        accum: Variable,
        lr: Operand,
        epsilon: Operand,
        grad: Operand,
        name=None,
    ) -> None:
        super().__init__((var, accum), (lr, epsilon, grad), name=name)

    @staticmethod
    def kernel(var, accum, lr, epsilon, grad):
        apply_adagrad(var, accum, lr, grad, epsilon)


class ApplyAdam(_ApplyOp):
    type_name = "ApplyAdam"

    def __init__(
        self,
        var: Variable,
        m: Variable,
        v: Variable,
        beta1_power: Operand,
        beta2_power: Operand,
        lr: Operand,
        beta1: Operand,
        beta2: Operand,
        epsilon: Operand,
        grad: Operand,
        name=None,
    ) -> None:
        super().__init__(
            (var, m, v),
            (beta1_power, beta2_power, lr, beta1, beta2, epsilon, grad),
            name=name,
        )

    @staticmethod
    def kernel(var, m, v, beta1_power, beta2_power, lr, beta1, beta2, epsilon, grad):
        apply_adam(var, m, v, beta1_power, beta2_power, lr, beta1, beta2, epsilon, grad)

"""
Differentiable math nodes.

These nodes are the operations `Graph.add_gradients` knows how to
differentiate. Each node computes its forward value with NumPy and builds its
backward rule as new graph nodes (symbolic gradients), so gradients are
themselves operands that a session can evaluate.

Broadcasting follows NumPy rules. Gradients flowing into a broadcast input
are reduced back to the input's shape with `SumToShape`.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from ._operand import Operand, RunContext, Shape


def _broadcast_shape(a: Shape, b: Shape) -> Shape:
    if a is None or b is None:
        return None
    return tuple(np.broadcast_shapes(a, b))


def _sum_to_shape_reduce_axes(
    src_shape: Tuple[int, ...], target_shape: Tuple[int, ...]
) -> Tuple[Tuple[int, ...], int]:
    """
    Compute the reduction axes and rank padding for `SumToShape`.

    Returns
    -------
    reduce_axes:
        Axes of the source to sum over with ``keepdims=True``.
    pad:
        Number of leading axes to drop afterwards.

    Raises
    ------
    ValueError
        If `target_shape` could not have been broadcast to `src_shape`.
    """
    src = tuple(int(d) for d in src_shape)
    tgt = tuple(int(d) for d in target_shape)

    if len(tgt) > len(src):
        raise ValueError(f"target_shape rank {len(tgt)} > src rank {len(src)}")

    pad = len(src) - len(tgt)
    padded_tgt = (1,) * pad + tgt

    for i, (sd, td) in enumerate(zip(src, padded_tgt)):
        if td not in (1, sd):
            raise ValueError(
                f"Cannot sum_to_shape from {src_shape} to {target_shape}: "
                f"dim mismatch at axis {i}: src={sd}, target={td}"
            )

    reduce_axes = tuple(
        i for i, (sd, td) in enumerate(zip(src, padded_tgt)) if td == 1 and sd != 1
    )
    return reduce_axes, pad


class SumToShape(Operand):
    """
    Inverse of broadcasting: sum-reduce an operand down to `target_shape`.

    Used by the backward rules of broadcasting binary operations. When the
    target shape is not known statically, `like` is evaluated and its runtime
    shape is used instead.
    """

    type_name = "SumToShape"

    def __init__(
        self,
        x: Operand,
        target_shape: Shape,
        like: Optional[Operand] = None,
        name: Optional[str] = None,
    ) -> None:
        if target_shape is None and like is None:
            raise ValueError("SumToShape needs a static target_shape or a `like` operand")
        inputs = (x,) if target_shape is not None else (x, like)
        super().__init__(x.graph, inputs, shape=target_shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        x = np.asarray(self.inputs[0].evaluate(ctx))
        target = self.shape
        if target is None:
            target = tuple(np.shape(self.inputs[1].evaluate(ctx)))
        if tuple(x.shape) == target:
            return x
        reduce_axes, pad = _sum_to_shape_reduce_axes(x.shape, target)
        if reduce_axes:
            x = np.sum(x, axis=reduce_axes, keepdims=True)
        for _ in range(pad):
            x = np.squeeze(x, axis=0)
        return x.reshape(target)


def _unbroadcast(grad: Operand, like: Operand) -> Operand:
    if like.shape is None:
        return SumToShape(grad, None, like=like)
    if grad.shape == like.shape:
        return grad
    return SumToShape(grad, like.shape)


class _Binary(Operand):
    def __init__(self, a: Operand, b: Operand, name: Optional[str] = None) -> None:
        dtype = None
        if a.dtype is not None and b.dtype is not None:
            dtype = np.result_type(a.dtype, b.dtype)
        super().__init__(
            a.graph,
            (a, b),
            shape=_broadcast_shape(a.shape, b.shape),
            dtype=dtype,
            name=name,
        )


class Add(_Binary):
    type_name = "Add"

    def _compute(self, ctx: RunContext) -> np.ndarray:
        a, b = self.inputs
        return np.add(a.evaluate(ctx), b.evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        a, b = self.inputs
        return [_unbroadcast(grad, a), _unbroadcast(grad, b)]


class Sub(_Binary):
    type_name = "Sub"

    def _compute(self, ctx: RunContext) -> np.ndarray:
        a, b = self.inputs
        return np.subtract(a.evaluate(ctx), b.evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        a, b = self.inputs
        return [_unbroadcast(grad, a), _unbroadcast(Neg(grad), b)]


class Mul(_Binary):
    type_name = "Mul"

    def _compute(self, ctx: RunContext) -> np.ndarray:
        a, b = self.inputs
        return np.multiply(a.evaluate(ctx), b.evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        a, b = self.inputs
        return [_unbroadcast(Mul(grad, b), a), _unbroadcast(Mul(grad, a), b)]


class Neg(Operand):
    type_name = "Neg"

    def __init__(self, x: Operand, name: Optional[str] = None) -> None:
        super().__init__(x.graph, (x,), shape=x.shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.negative(self.inputs[0].evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        return [Neg(grad)]


class Square(Operand):
    type_name = "Square"

    def __init__(self, x: Operand, name: Optional[str] = None) -> None:
        super().__init__(x.graph, (x,), shape=x.shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.square(self.inputs[0].evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        x = self.inputs[0]
        # d(x^2)/dx = 2x
        return [Mul(grad, Mul(x, x._promote(2.0)))]


class Transpose(Operand):
    """
    Reverse the axes of a 2D operand.
    """

    type_name = "Transpose"

    def __init__(self, x: Operand, name: Optional[str] = None) -> None:
        shape = None if x.shape is None else tuple(reversed(x.shape))
        super().__init__(x.graph, (x,), shape=shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.transpose(self.inputs[0].evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        return [Transpose(grad)]


class MatMul(_Binary):
    """
    Matrix product of two 2D operands.
    """

    type_name = "MatMul"

    def __init__(self, a: Operand, b: Operand, name: Optional[str] = None) -> None:
        if a.shape is not None and b.shape is not None:
            if len(a.shape) != 2 or len(b.shape) != 2 or a.shape[1] != b.shape[0]:
                raise ValueError(
                    f"MatMul expects 2D operands with matching inner dims, "
                    f"got {a.shape} @ {b.shape}"
                )
        Operand.__init__(
            self,
            a.graph,
            (a, b),
            shape=None if a.shape is None or b.shape is None else (a.shape[0], b.shape[1]),
            dtype=np.result_type(a.dtype, b.dtype),
            name=name,
        )

    def _compute(self, ctx: RunContext) -> np.ndarray:
        a, b = self.inputs
        return np.matmul(a.evaluate(ctx), b.evaluate(ctx))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        a, b = self.inputs
        return [MatMul(grad, Transpose(b)), MatMul(Transpose(a), grad)]


class BroadcastTo(Operand):
    """
    Broadcast an operand to `shape`, re-inserting axes removed by a reduction.

    When `shape` is not known statically, the operand is broadcast to the
    runtime shape of `like`.
    """

    type_name = "BroadcastTo"

    def __init__(
        self,
        x: Operand,
        shape: Shape,
        reduced_axes: Optional[Tuple[int, ...]] = None,
        like: Optional[Operand] = None,
        name: Optional[str] = None,
    ) -> None:
        if shape is None and like is None:
            raise ValueError("BroadcastTo needs a static shape or a `like` operand")
        inputs = (x,) if shape is not None else (x, like)
        super().__init__(x.graph, inputs, shape=shape, dtype=x.dtype, name=name)
        self._reduced_axes = reduced_axes

    def _compute(self, ctx: RunContext) -> np.ndarray:
        x = np.asarray(self.inputs[0].evaluate(ctx))
        shape = self.shape
        if shape is None:
            shape = tuple(np.shape(self.inputs[1].evaluate(ctx)))
        if self._reduced_axes:
            x = np.expand_dims(x, axis=self._reduced_axes)
        return np.broadcast_to(x, shape).copy()


class ReduceSum(Operand):
    """
    Sum over `axis` (all axes when None).
    """

    type_name = "Sum"

    def __init__(
        self,
        x: Operand,
        axis: Optional[Tuple[int, ...]] = None,
        name: Optional[str] = None,
    ) -> None:
        if isinstance(axis, int):
            axis = (axis,)
        shape: Shape = None
        if x.shape is not None:
            rank = len(x.shape)
            if axis is None:
                axis = tuple(range(rank))
            axis = tuple(sorted(a % rank for a in axis))
            shape = tuple(d for i, d in enumerate(x.shape) if i not in axis)
        super().__init__(x.graph, (x,), shape=shape, dtype=x.dtype, name=name)
        self.axis = axis

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.asarray(np.sum(self.inputs[0].evaluate(ctx), axis=self.axis))

    def _gradients(self, grad: Operand) -> Sequence[Optional[Operand]]:
        x = self.inputs[0]
        if x.shape is None:
            return [BroadcastTo(grad, None, self.axis, like=x)]
        return [BroadcastTo(grad, x.shape, self.axis)]


class OnesLike(Operand):
    type_name = "OnesLike"

    def __init__(self, x: Operand, name: Optional[str] = None) -> None:
        super().__init__(x.graph, (x,), shape=x.shape, dtype=x.dtype, name=name)

    def _compute(self, ctx: RunContext) -> np.ndarray:
        return np.ones_like(self.inputs[0].evaluate(ctx))

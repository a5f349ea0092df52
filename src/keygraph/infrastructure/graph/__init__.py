from ._eager import EagerEnvironment
from ._graph import Graph
from ._math import (
    Add,
    BroadcastTo,
    MatMul,
    Mul,
    Neg,
    OnesLike,
    ReduceSum,
    Square,
    Sub,
    SumToShape,
    Transpose,
)
from ._operand import (
    Assign,
    Cast,
    Constant,
    Fill,
    Identity,
    NoOp,
    Operand,
    Placeholder,
    RunContext,
    Variable,
)
from ._session import Session
from ._training_ops import (
    ApplyAdagrad,
    ApplyAdam,
    ApplyGradientDescent,
    ApplyMomentum,
)

__all__ = [
    "EagerEnvironment",
    "Graph",
    "Session",
    "Operand",
    "RunContext",
    "Constant",
    "Placeholder",
    "Variable",
    "Assign",
    "Cast",
    "Fill",
    "Identity",
    "NoOp",
    "Add",
    "Sub",
    "Mul",
    "Neg",
    "Square",
    "Transpose",
    "MatMul",
    "ReduceSum",
    "BroadcastTo",
    "SumToShape",
    "OnesLike",
    "ApplyGradientDescent",
    "ApplyMomentum",
    "ApplyAdagrad",
    "ApplyAdam",
]

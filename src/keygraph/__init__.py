"""
KeyGraph: graph-mode gradient-descent optimizers on a small NumPy graph host.
"""

from .domain import GraphModeError, IOptimizer, assert_graph
from .infrastructure.graph import EagerEnvironment, Graph, Session
from .infrastructure.optimizers import (
    AdaGrad,
    Adam,
    GradAndVar,
    GradientDescent,
    Momentum,
    Optimizer,
)

__all__ = [
    "GraphModeError",
    "IOptimizer",
    "assert_graph",
    "EagerEnvironment",
    "Graph",
    "Session",
    "AdaGrad",
    "Adam",
    "GradAndVar",
    "GradientDescent",
    "Momentum",
    "Optimizer",
]

"""
Domain-level optimizer contracts for KeyGraph.

This module defines the `IOptimizer` protocol, which specifies the minimal
interface required for graph-mode optimizer implementations (e.g., Adam,
Momentum).

Notes
-----
- Domain contracts are backend-agnostic and must not depend on NumPy or
  infrastructure implementations.
- Optimizers do not update variables directly. They add update operations to
  a graph; a session executes those operations later.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Protocol, runtime_checkable

NAME_KEY = "name"
"""Config key holding the optimizer name."""


@runtime_checkable
class IOptimizer(Protocol):
    """
    Optimizer interface contract.

    Required members
    ----------------
    - `apply_gradients()` builds the update operation for (gradient, variable)
      pairs.
    - `minimize()` computes gradients of a loss and applies them.
    - `get_slot()` returns per-variable optimizer state.
    - `get_config()` returns the hyperparameters used to build the optimizer.
    - `feed_map` holds placeholder values that must be fed when the update
      operation runs.
    """

    @property
    def name(self) -> str: ...

    @property
    def learning_rate(self) -> Optional[float]: ...

    @learning_rate.setter
    def learning_rate(self, value: float) -> None: ...

    @property
    def feed_map(self) -> Dict[Any, Any]: ...

    def apply_gradients(
        self, grads_and_vars: Iterable[Any], name: Optional[str] = None
    ) -> Any:
        """
        Build a single operation applying every gradient to its variable.

        Pairs whose gradient is None are skipped.
        """
        ...

    def minimize(self, loss: Any, name: Optional[str] = None) -> Any:
        """
        Build an operation that minimizes `loss` over the trainable variables.
        """
        ...

    def get_slot(self, variable: Any, slot_name: str) -> Optional[Any]:
        """
        Return the slot named `slot_name` for `variable`, or None.
        """
        ...

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable description of the optimizer.
        """
        ...

"""
Session: executes operations recorded in a `Graph`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union
from typing_extensions import Self

import numpy as np

from ...domain._errors import SessionClosedError
from ._graph import Graph
from ._operand import Operand, RunContext, check_shape

FeedDict = Optional[Mapping[Operand, Any]]


class Session:
    """
    Runs graph operations and evaluates operands.

    Each call to `run` is one execution step: every operation reachable from
    the targets is evaluated at most once and fed placeholder values are
    visible to all of them.

    Parameters
    ----------
    graph : Graph
        Graph whose operations this session executes.

    Notes
    -----
    Variable state lives in the graph's variables, not in the session. Closing
    a session only prevents further runs.
    """

    def __init__(self, graph: Graph) -> None:
        self.graph = graph
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _prepare_feed(self, feed_dict: FeedDict) -> dict:
        feed = {}
        for op, value in (feed_dict or {}).items():
            if not isinstance(op, Operand):
                raise TypeError(f"Feed keys must be Operands, got {type(op).__name__}")
            if op.graph is not self.graph:
                raise ValueError(f"Fed operand '{op.name}' belongs to a different graph.")
            arr = np.asarray(value, dtype=op.dtype)
            check_shape(op.name, op.shape, arr)
            feed[op] = arr
        return feed

    def run(
        self,
        targets: Union[Operand, Sequence[Operand]],
        feed_dict: FeedDict = None,
    ) -> Any:
        """
        Execute one step.

        Parameters
        ----------
        targets : Operand or Sequence[Operand]
            Operation(s) to run, in order.
        feed_dict : Mapping[Operand, array-like], optional
            Values for placeholders. Values are cast to the placeholder dtype
            and checked against its static shape.

        Returns
        -------
        Any
            The output of `targets` (a list when `targets` is a sequence).
            Operations without output (e.g., `NoOp`) yield None.

        Raises
        ------
        SessionClosedError
            If the session has been closed.
        """
        if self._closed:
            raise SessionClosedError()
        ctx = RunContext(feed=self._prepare_feed(feed_dict))
        if isinstance(targets, Operand):
            return targets.evaluate(ctx)
        return [t.evaluate(ctx) for t in targets]

    def evaluate(self, operand: Operand, feed_dict: FeedDict = None) -> np.ndarray:
        """
        Return a copy of the value of `operand` as a NumPy array.
        """
        return np.array(self.run(operand, feed_dict), copy=True)

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

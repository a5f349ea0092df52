"""
Execution environment contracts for KeyGraph.

An execution environment is either a graph (operations are recorded and run
later by a session) or eager (operations run immediately). Optimizers only
support graph environments; `assert_graph` enforces that precondition.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from ._errors import GraphModeError


@runtime_checkable
class IExecutionEnvironment(Protocol):
    """
    Minimal execution environment contract.

    Implementations report whether they record operations into a graph.
    """

    @property
    def is_graph(self) -> bool:
        """
        Return True if operations are recorded into a graph.
        """
        ...


EnvT = TypeVar("EnvT", bound=IExecutionEnvironment)


def assert_graph(env: EnvT) -> EnvT:
    """
    Return `env` if it is a graph environment.

    Parameters
    ----------
    env : IExecutionEnvironment
        Environment to check.

    Returns
    -------
    IExecutionEnvironment
        The same environment, unchanged.

    Raises
    ------
    GraphModeError
        If `env` is None or does not represent graph mode.
    """
    if env is None or not getattr(env, "is_graph", False):
        raise GraphModeError()
    return env

"""
Eager execution environment marker.

KeyGraph executes everything through graphs; `EagerEnvironment` exists so
that components which require graph mode can be checked against a non-graph
environment.
"""


class EagerEnvironment:
    """
    Non-graph execution environment.
    """

    @property
    def is_graph(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EagerEnvironment()"

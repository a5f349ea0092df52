"""
Graph- and execution-related exceptions for KeyGraph.

This module defines the errors raised when graph construction or execution
preconditions are violated. They allow the library to fail fast and clearly
when an optimizer is used outside graph mode, when a variable is read before
it has been initialized, or when a session is fed inconsistent values.
"""


class GraphModeError(ValueError):
    """
    Raised when a graph-only component is used in a non-graph environment.

    Optimizers build update operations into a computation graph and therefore
    cannot be constructed against an eager execution environment.
    """

    def __init__(
        self, message: str = "Invalid environment, Optimizers can only be used in Graph Mode"
    ) -> None:
        super().__init__(message)


class UninitializedVariableError(RuntimeError):
    """
    Raised when a variable is read before any value has been assigned to it.

    Attributes
    ----------
    name : str
        Name of the uninitialized variable.
    """

    def __init__(self, name: str) -> None:
        """
        Initialize the UninitializedVariableError.

        Parameters
        ----------
        name : str
            Name of the variable that was read before initialization.
        """
        super().__init__(
            f"Variable '{name}' is not initialized. Run its initializer "
            f"(or graph.init()) before reading it."
        )
        self.name = name


class MissingFeedError(KeyError):
    """
    Raised when a placeholder is evaluated without a fed value.

    Attributes
    ----------
    name : str
        Name of the placeholder that was not fed.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Placeholder '{name}' must be fed a value.")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class ShapeMismatchError(ValueError):
    """
    Raised when a value is assigned or fed with an incompatible shape.

    Attributes
    ----------
    name : str
        Name of the receiving graph node.
    expected : tuple[int, ...]
        Shape declared by the receiving node.
    actual : tuple[int, ...]
        Shape of the offending value.
    """

    def __init__(self, name: str, expected: tuple, actual: tuple) -> None:
        super().__init__(
            f"Shape mismatch for '{name}': expected {expected}, got {actual}."
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class SessionClosedError(RuntimeError):
    """
    Raised when a closed session is asked to run operations.
    """

    def __init__(self) -> None:
        super().__init__("Attempted to use a closed Session.")


class DuplicateSlotError(ValueError):
    """
    Raised when an optimizer slot is created twice for the same variable.

    Attributes
    ----------
    variable : str
        Name of the variable owning the slot.
    slot : str
        Slot name (e.g., "momentum", "m").
    """

    def __init__(self, variable: str, slot: str) -> None:
        super().__init__(f"Slot '{slot}' already exists for variable '{variable}'.")
        self.variable = variable
        self.slot = slot

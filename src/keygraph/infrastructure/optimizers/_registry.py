from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type

if TYPE_CHECKING:
    from ..graph._graph import Graph

_OPTIMIZER_REGISTRY: dict[str, Type[Any]] = {}


def register_optimizer(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register an Optimizer class for config deserialization.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _OPTIMIZER_REGISTRY[key] = cls
        return cls

    return deco


def optimizer_to_config(opt: Any) -> dict[str, Any]:
    """
    Convert an optimizer into a JSON-serializable configuration node.

    Node format
    -----------
    {
      "type": "Adam",
      "config": {"name": "Adam", "learning_rate": 0.001, ...}
    }

    Raises
    ------
    ValueError
        If the optimizer was built with a learning-rate operand, which has no
        JSON representation.
    """
    config = dict(opt.get_config())
    if config.get("learning_rate", 0.0) is None:
        raise ValueError(
            f"{opt.__class__.__name__} '{config.get('name')}' uses a learning-rate "
            f"operand and cannot be serialized."
        )
    return {"type": opt.__class__.__name__, "config": config}


def optimizer_from_config(graph: "Graph", node: Dict[str, Any]) -> Any:
    """
    Rebuild an optimizer in `graph` from a configuration node.
    """
    type_name = str(node["type"])
    if type_name not in _OPTIMIZER_REGISTRY:
        raise ValueError(
            f"Unknown optimizer type '{type_name}'. "
            f"Register it via @register_optimizer."
        )

    cls = _OPTIMIZER_REGISTRY[type_name]
    cfg = node.get("config", {}) or {}
    return cls.from_config(graph, cfg)

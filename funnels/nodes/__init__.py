from funnels.nodes.base import NodeHandler, StepContext
from funnels.nodes.factory import create_handler, execute_node

__all__ = [
    "NodeHandler",
    "StepContext",
    "create_handler",
    "execute_node",
]

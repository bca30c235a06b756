# funnels/nodes/factory.py
from __future__ import annotations

from funnels.models import BaseNode, ConditionNode, DelayNode, EmailNode, StepResult, WhatsAppNode
from funnels.nodes.base import NodeHandler, StepContext
from funnels.nodes.condition import ConditionNodeHandler
from funnels.nodes.delay import DelayNodeHandler
from funnels.nodes.email import EmailNodeHandler
from funnels.nodes.whatsapp import WhatsAppNodeHandler


def create_handler(node: BaseNode) -> NodeHandler:
    """
    Create the handler for a validated node.

    Raises:
        ValueError: If the node kind has no handler
    """
    if isinstance(node, EmailNode):
        return EmailNodeHandler(node)
    elif isinstance(node, WhatsAppNode):
        return WhatsAppNodeHandler(node)
    elif isinstance(node, DelayNode):
        return DelayNodeHandler(node)
    elif isinstance(node, ConditionNode):
        return ConditionNodeHandler(node)
    else:
        raise ValueError(f"Node type {getattr(node, 'type', type(node).__name__)} not yet implemented")


def execute_node(node: BaseNode, ctx: StepContext) -> StepResult:
    """Interpret a single node for the execution in ctx."""
    return create_handler(node).execute(ctx)

# funnels/nodes/condition.py
from __future__ import annotations

from funnels.models import ConditionData, ConditionNode, Lead, StepResult
from funnels.nodes.base import NodeHandler, StepContext


def evaluate_condition(data: ConditionData, lead: Lead) -> bool:
    """Only the "tags" target is supported; anything else is false."""
    if data.condition_target != "tags":
        return False

    has_value = data.condition_value in lead.tags
    if data.condition_operator == "contains":
        return has_value
    return not has_value


class ConditionNodeHandler(NodeHandler):
    """Branches to true_node_id or false_node_id."""

    node: ConditionNode

    def execute(self, ctx: StepContext) -> StepResult:
        if evaluate_condition(self.node.data, ctx.lead):
            return StepResult.advanced(self.node.true_node_id)
        return StepResult.advanced(self.node.false_node_id)

# funnels/nodes/delay.py
from __future__ import annotations

from datetime import timedelta

from funnels import conf
from funnels.models import DelayNode, StepResult
from funnels.nodes.base import NodeHandler, StepContext


class DelayNodeHandler(NodeHandler):
    """Parks the execution for data.hours hours, then resumes at next_node_id."""

    node: DelayNode

    def execute(self, ctx: StepContext) -> StepResult:
        if not self.node.next_node_id:
            # Nothing to resume at once the wait is over
            return StepResult.advanced(None)

        hours = self.node.data.hours or conf.DEFAULT_DELAY_HOURS
        return StepResult.suspended(self.node.next_node_id, ctx.now + timedelta(hours=hours))

# funnels/nodes/email.py
from __future__ import annotations

import logging

from funnels.models import EmailNode, StepResult
from funnels.nodes.base import NodeHandler, StepContext
from funnels.templates import substitute

logger = logging.getLogger(__name__)


class EmailNodeHandler(NodeHandler):
    """Sends one templated email to the lead."""

    node: EmailNode

    def execute(self, ctx: StepContext) -> StepResult:
        data = self.node.data
        if not data.subject or not data.content:
            logger.debug("Email node %s has no subject/content, passing through", self.node.id)
            return StepResult.advanced(self.node.next_node_id)

        subject = substitute(data.subject, ctx.execution.context, ctx.lead)
        body = substitute(data.content, ctx.execution.context, ctx.lead)

        try:
            ctx.email_sender.send(ctx.lead.email, subject, body)
        except Exception as e:
            logger.error("Email node %s failed for %s: %s", self.node.id, ctx.lead.email, e)
            return StepResult.failed(f"Email to {ctx.lead.email} failed: {e}")

        return StepResult.advanced(self.node.next_node_id, sent=True)

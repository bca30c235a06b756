# funnels/nodes/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, tzinfo
from typing import Callable, NamedTuple, Optional

from funnels.models import BaseNode, FunnelExecution, Lead, StepResult, WhatsAppTemplate
from funnels.senders.base import EmailSender, WhatsAppSender

TemplateLookup = Callable[[str], Optional[WhatsAppTemplate]]


class StepContext(NamedTuple):
    """Everything a node needs to run once for one execution."""

    execution: FunnelExecution
    lead: Lead
    now: datetime
    email_sender: EmailSender
    whatsapp_sender: WhatsAppSender
    get_template: TemplateLookup
    send_window_tz: tzinfo
    send_window_tolerance_s: int = 60
    send_window_grace_s: int = 90


class NodeHandler(ABC):
    """
    Base class for node handlers.

    A handler performs the side effect of exactly one node and reports where
    the execution goes next. Handlers never write workflow state; the
    scheduler persists whatever the returned StepResult asks for.
    """

    def __init__(self, node: BaseNode):
        self.node = node

    @abstractmethod
    def execute(self, ctx: StepContext) -> StepResult:
        """
        Run the node.

        Returns:
            StepResult: advanced (continue at next_node_id), suspended (park
            until resume_at) or failed (leave the execution untouched)
        """
        pass

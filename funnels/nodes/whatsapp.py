# funnels/nodes/whatsapp.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple

from funnels.models import StepResult, WhatsAppNode
from funnels.nodes.base import NodeHandler, StepContext
from funnels.senders.base import FORCE_FALLBACK
from funnels.templates import substitute

logger = logging.getLogger(__name__)


def parse_send_time(send_time: str) -> Tuple[int, int]:
    hours, minutes = send_time.split(":")
    return int(hours), int(minutes)


def next_send_window(send_time: str, now: datetime, tz: tzinfo) -> datetime:
    """Today's HH:MM in tz, or tomorrow's if it has already passed. Returned in UTC."""
    hours, minutes = parse_send_time(send_time)
    local_now = now.astimezone(tz)
    target = local_now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    if target < local_now:
        target += timedelta(days=1)
    return target.astimezone(timezone.utc)


def parked_send_window(send_time: str, scheduled_at: datetime, tz: tzinfo, tolerance_s: int) -> Optional[datetime]:
    """
    The HH:MM occurrence scheduled_at sits on, within tolerance, in UTC.

    An execution parked for a window has next_run_at set to that window, so
    once it becomes due the comparison is made against the window it was
    parked for rather than against the next one.
    """
    hours, minutes = parse_send_time(send_time)
    local = scheduled_at.astimezone(tz)
    anchor = local.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    for offset in (-1, 0, 1):
        candidate = (anchor + timedelta(days=offset)).astimezone(timezone.utc)
        if abs((candidate - scheduled_at).total_seconds()) <= tolerance_s:
            return candidate
    return None


def send_window_reached(send_time: str, scheduled_at: datetime, tz: tzinfo, tolerance_s: int) -> bool:
    return parked_send_window(send_time, scheduled_at, tz, tolerance_s) is not None


def send_window_open(
    send_time: str,
    scheduled_at: datetime,
    now: datetime,
    tz: tzinfo,
    tolerance_s: int,
    grace_s: int,
) -> bool:
    """
    True when the execution was parked for a window and now is still inside it.

    A pass that arrives later than grace_s after the parked occurrence (worker
    down, long poll gap) must not send off-window.
    """
    window = parked_send_window(send_time, scheduled_at, tz, tolerance_s)
    if window is None:
        return False
    return now <= window + timedelta(seconds=grace_s)


class WhatsAppNodeHandler(NodeHandler):
    """Sends a WhatsApp message, optionally only inside a daily HH:MM window."""

    node: WhatsAppNode

    def _resolve_text(self, ctx: StepContext) -> Optional[str]:
        data = self.node.data
        if data.wa_template_id:
            template = ctx.get_template(data.wa_template_id)
            if template is None:
                logger.warning("WhatsApp template %s not found (node %s)", data.wa_template_id, self.node.id)
                return None
            content = template.content
        elif data.content:
            content = data.content
        else:
            return None
        return substitute(content, ctx.execution.context, ctx.lead)

    def execute(self, ctx: StepContext) -> StepResult:
        data = self.node.data

        if data.send_time and not send_window_open(
            data.send_time,
            ctx.execution.next_run_at,
            ctx.now,
            ctx.send_window_tz,
            ctx.send_window_tolerance_s,
            ctx.send_window_grace_s,
        ):
            target = next_send_window(data.send_time, ctx.now, ctx.send_window_tz)
            logger.debug("WhatsApp node %s waits for window %s → %s", self.node.id, data.send_time, target)
            return StepResult.suspended(self.node.id, target)

        if not ctx.lead.phone:
            logger.debug("Lead %s has no phone, skipping WhatsApp node %s", ctx.lead.id, self.node.id)
            return StepResult.advanced(self.node.next_node_id)

        text = self._resolve_text(ctx)
        if text is None:
            return StepResult.advanced(self.node.next_node_id)

        try:
            ctx.whatsapp_sender.send_hybrid(ctx.lead.phone, FORCE_FALLBACK, [], text)
        except Exception as e:
            logger.error("WhatsApp node %s failed for %s: %s", self.node.id, ctx.lead.phone, e)
            return StepResult.failed(f"WhatsApp to {ctx.lead.phone} failed: {e}")

        return StepResult.advanced(self.node.next_node_id, sent=True)

# funnels/engine.py
import logging
import threading
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from funnels import conf
from funnels.db.leads import LeadDirectory
from funnels.db.store import FunnelStore
from funnels.db.whatsapp_templates import WhatsAppTemplateStore
from funnels.models import (
    BaseNode,
    ExecutionStatus,
    Funnel,
    FunnelExecution,
    Lead,
    PassReport,
    StepOutcome,
    StepResult,
    utcnow,
)
from funnels.nodes import StepContext, execute_node
from funnels.senders import EmailSender, WhatsAppSender, create_email_sender, create_whatsapp_sender

logger = logging.getLogger(__name__)

LEAD_SUBSCRIBED = "lead_subscribed"
NEW_POST_PUBLISHED = "new_post_published"
TAG_ADDED_PREFIX = "tag_added:"


def tag_added_trigger(tag: str) -> str:
    return f"{TAG_ADDED_PREFIX}{tag}"


def send_window_zone(name: str) -> tzinfo:
    """Resolve the send window zone; "UTC" works without a tz database."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


# Structured logging adapter that includes execution_id and lead
class ExecutionLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = self.extra or {}
        execution_id = str(extra.get("execution_id", "unknown"))[:8]
        lead_id = str(extra.get("lead_id", "unknown"))[:8]
        formatted_msg = f"[execution_id={execution_id}] [lead={lead_id}] {msg}"
        return formatted_msg, kwargs


class DriveOutcome(str, Enum):
    """How a single execution left a processing pass."""

    COMPLETED = "completed"
    SUSPENDED = "suspended"
    FAILED = "failed"


def _history_entry(node_id: str, node: Optional[BaseNode], outcome: str, at: datetime, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "node_id": node_id,
        "node_type": getattr(node, "type", None),
        "outcome": outcome,
        "at": at.isoformat(),
    }
    entry.update(extra)
    return entry


class FunnelEngine:
    """
    Creates funnel executions from trigger events and advances them.

    The engine owns no timer: something external (the API worker thread, a
    cron job, a test) calls process_executions() periodically. Each due
    execution is driven node by node until it is suspended by a DELAY or a
    WhatsApp send window, fails, or reaches a terminal node.
    """

    def __init__(
        self,
        store: Optional[FunnelStore] = None,
        leads: Optional[LeadDirectory] = None,
        templates: Optional[WhatsAppTemplateStore] = None,
        email_sender: Optional[EmailSender] = None,
        whatsapp_sender: Optional[WhatsAppSender] = None,
        clock: Callable[[], datetime] = utcnow,
        send_window_timezone: Optional[str] = None,
        dedupe_active_executions: Optional[bool] = None,
        max_nodes_per_pass: Optional[int] = None,
    ):
        self.store = store or FunnelStore()
        self.leads = leads or LeadDirectory()
        self.templates = templates or WhatsAppTemplateStore()
        self.email_sender = email_sender or create_email_sender()
        self.whatsapp_sender = whatsapp_sender or create_whatsapp_sender()
        self.clock = clock
        self.send_window_tz = send_window_zone(send_window_timezone or conf.SEND_WINDOW_TIMEZONE)
        self.dedupe_active_executions = (
            conf.DEDUPE_ACTIVE_EXECUTIONS if dedupe_active_executions is None else dedupe_active_executions
        )
        self.max_nodes_per_pass = max_nodes_per_pass or conf.MAX_NODES_PER_PASS
        # Serializes passes within this process (worker thread vs API calls)
        self._pass_lock = threading.RLock()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    def trigger_funnel(
        self,
        trigger: str,
        lead: Lead,
        context: Optional[Dict[str, str]] = None,
        process: bool = True,
    ) -> List[FunnelExecution]:
        """
        Start every active funnel listening on trigger for this lead.

        Args:
            trigger: Event name, e.g. "lead_subscribed" or "tag_added:vip"
            lead: Lead the executions run against
            context: Placeholder values captured for the executions' lifetime
            process: Run a processing pass right after creating executions

        Returns:
            The executions created
        """
        funnels = [f for f in self.store.list_funnels() if f.is_active and f.trigger == trigger]
        if not funnels:
            logger.debug("No active funnel for trigger %s", trigger)
            return []

        active_funnel_ids: set[str] = set()
        if self.dedupe_active_executions:
            active_funnel_ids = {
                e.funnel_id for e in self.store.list_executions(status=ExecutionStatus.WAITING, lead_id=lead.id)
            }

        now = self.clock()
        created: List[FunnelExecution] = []
        for funnel in funnels:
            if not funnel.nodes or not funnel.start_node_id:
                logger.warning("Funnel %s has no start node, skipping", funnel.id)
                continue
            if funnel.id in active_funnel_ids:
                logger.info("Lead %s already runs funnel %s, skipping", lead.id, funnel.id)
                continue

            execution = FunnelExecution(
                funnel_id=funnel.id,
                lead_id=lead.id,
                current_node_id=funnel.start_node_id,
                status=ExecutionStatus.WAITING,
                next_run_at=now,
                context=dict(context or {}),
            )
            self.store.create_execution(execution)
            created.append(execution)
            logger.info(
                "Execution %s created for funnel %s (trigger: %s, lead: %s)",
                execution.id,
                funnel.name,
                trigger,
                lead.id,
            )

        if created and process:
            self.process_executions()
        return created

    def trigger_global_funnel(self, trigger: str, context: Optional[Dict[str, str]] = None) -> List[FunnelExecution]:
        """Trigger for every active lead, e.g. when a new post is published."""
        created: List[FunnelExecution] = []
        for lead in self.leads.list_leads(status="active"):
            created.extend(self.trigger_funnel(trigger, lead, context, process=False))

        logger.info("Broadcast %s → %d executions", trigger, len(created))
        if created:
            self.process_executions()
        return created

    def tag_lead(self, lead_id: str, tag: str) -> bool:
        """
        Add a tag to a lead and fire "tag_added:<tag>" when it is new.

        Returns:
            True when the tag was added
        """
        added = self.leads.add_tag(lead_id, tag)
        if added:
            lead = self.leads.get_lead(lead_id)
            if lead:
                self.trigger_funnel(tag_added_trigger(tag), lead)
        return added

    def subscribe_lead(self, email: str, source: str, name: str | None = None, phone: str | None = None) -> Lead:
        """Upsert a lead by email and fire "lead_subscribed"."""
        lead = self.leads.subscribe(email, source, name=name, phone=phone)
        try:
            self.trigger_funnel(LEAD_SUBSCRIBED, lead)
        except Exception as e:
            # The subscription itself is stored; funnel start is best effort
            logger.error("Failed to trigger %s for %s: %s", LEAD_SUBSCRIBED, lead.email, e, exc_info=True)
        return lead

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    def process_executions(self, now: Optional[datetime] = None) -> PassReport:
        """Advance every waiting execution whose next_run_at has passed."""
        with self._pass_lock:
            now = now or self.clock()
            waiting = self.store.list_executions(status=ExecutionStatus.WAITING)
            due = [e for e in waiting if not e.is_completed and e.next_run_at <= now]

            report = PassReport(due=len(due))
            if not due:
                return report

            funnels = {f.id: f for f in self.store.list_funnels()}
            leads = {lead.id: lead for lead in self.leads.get_all_leads()}

            for execution in due:
                try:
                    outcome = self.process_execution(
                        execution,
                        funnels.get(execution.funnel_id),
                        leads.get(execution.lead_id),
                        now,
                    )
                except Exception as e:
                    logger.error("Execution %s aborted: %s", execution.id, e, exc_info=True)
                    outcome = DriveOutcome.FAILED

                if outcome == DriveOutcome.COMPLETED:
                    report.completed += 1
                elif outcome == DriveOutcome.SUSPENDED:
                    report.suspended += 1
                else:
                    report.failed += 1

            logger.info(
                "Processed %d due executions (completed=%d, suspended=%d, failed=%d)",
                report.due,
                report.completed,
                report.suspended,
                report.failed,
            )
            return report

    def process_execution(
        self,
        execution: FunnelExecution,
        funnel: Optional[Funnel],
        lead: Optional[Lead],
        now: datetime,
    ) -> DriveOutcome:
        """
        Drive one execution until it suspends, fails or completes.

        Nothing is written on failure, so the failed node is attempted again
        on a later pass.
        """
        log = ExecutionLoggerAdapter(logger, {"execution_id": execution.id, "lead_id": execution.lead_id})
        history = list(execution.history)

        if funnel is None or lead is None:
            log.warning(
                "Funnel %s or lead missing, completing execution",
                execution.funnel_id,
            )
            history.append(_history_entry(execution.current_node_id or "", None, "orphaned", now))
            self._complete(execution.id, history)
            return DriveOutcome.COMPLETED

        node_id = execution.current_node_id
        visited = 0
        while node_id:
            node = funnel.get_node(node_id)
            if node is None:
                log.error("Node %s not found in funnel %s, completing execution", node_id, funnel.id)
                history.append(_history_entry(node_id, None, "unreachable", now))
                self._complete(execution.id, history)
                return DriveOutcome.COMPLETED

            if visited >= self.max_nodes_per_pass:
                log.error("Visited %d nodes without suspending, funnel %s loops; completing", visited, funnel.id)
                history.append(_history_entry(node_id, node, "loop_detected", now))
                self._complete(execution.id, history)
                return DriveOutcome.COMPLETED
            visited += 1

            result = execute_node(node, self._step_context(execution, lead, now))
            if result.outcome == StepOutcome.FAILED:
                log.warning("Node %s failed, retrying on a later pass: %s", node.id, result.error)
                return DriveOutcome.FAILED

            if result.outcome == StepOutcome.SUSPENDED:
                history.append(self._result_entry(node, result, now))
                self.store.update_execution(
                    execution.id,
                    {
                        "current_node_id": result.resume_node_id,
                        "next_run_at": result.resume_at,
                        "history": history,
                    },
                )
                log.info("Suspended until %s, resuming at node %s", result.resume_at, result.resume_node_id)
                return DriveOutcome.SUSPENDED

            history.append(self._result_entry(node, result, now))
            node_id = result.next_node_id

        self._complete(execution.id, history)
        log.info("Completed funnel %s", funnel.name)
        return DriveOutcome.COMPLETED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _step_context(self, execution: FunnelExecution, lead: Lead, now: datetime) -> StepContext:
        return StepContext(
            execution=execution,
            lead=lead,
            now=now,
            email_sender=self.email_sender,
            whatsapp_sender=self.whatsapp_sender,
            get_template=self.templates.get_template,
            send_window_tz=self.send_window_tz,
            send_window_tolerance_s=conf.SEND_WINDOW_TOLERANCE_S,
            send_window_grace_s=conf.SEND_WINDOW_GRACE_S,
        )

    @staticmethod
    def _result_entry(node: BaseNode, result: StepResult, now: datetime) -> Dict[str, Any]:
        if result.outcome == StepOutcome.SUSPENDED:
            return _history_entry(node.id, node, result.outcome.value, now, resume_at=result.resume_at.isoformat())
        return _history_entry(node.id, node, result.outcome.value, now, sent=result.sent)

    def _complete(self, execution_id: str, history: List[Dict[str, Any]]) -> None:
        self.store.update_execution(
            execution_id,
            {
                "status": ExecutionStatus.COMPLETED,
                "current_node_id": None,
                "history": history,
            },
        )


# Process-wide engine used by the API server and its worker
_engine: FunnelEngine | None = None
_engine_lock = threading.Lock()


def get_funnel_engine() -> FunnelEngine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = FunnelEngine()
        return _engine

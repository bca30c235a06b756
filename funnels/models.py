# funnels/models.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SEND_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class NodeType(str, Enum):
    """Supported funnel node kinds."""

    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"
    DELAY = "DELAY"
    CONDITION = "CONDITION"


class ExecutionStatus(str, Enum):
    WAITING = "waiting"
    COMPLETED = "completed"


# ----------------------------------------------------------------------
# Node payloads
# ----------------------------------------------------------------------
class Position(BaseModel):
    """Canvas coordinates, used by the editor only."""

    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    """Base payload; unknown editor fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    custom_title: Optional[str] = Field(None, description="Label shown in the editor")


class EmailData(NodeData):
    subject: Optional[str] = Field(None, description="Subject template")
    content: Optional[str] = Field(None, description="HTML/text body template")


class WhatsAppData(NodeData):
    wa_template_id: Optional[str] = Field(None, description="Id of a stored WhatsApp template")
    wa_template_title: Optional[str] = Field(None, description="Template title shown in the editor")
    content: Optional[str] = Field(None, description="Inline message template, used without wa_template_id")
    send_time: Optional[str] = Field(None, description="Local send window, HH:MM")

    @field_validator("send_time")
    @classmethod
    def validate_send_time(cls, v: Optional[str]) -> Optional[str]:
        """Validate send_time is HH:MM (24h)."""
        if v is None or v == "":
            return None
        if not SEND_TIME_PATTERN.match(v):
            raise ValueError(f"send_time must be HH:MM, got: {v}")
        return v


class DelayData(NodeData):
    hours: int = Field(0, ge=0, description="Hours to wait; 0 means the default delay")


class ConditionData(NodeData):
    condition_target: str = Field("tags", description="Lead attribute to test")
    condition_operator: Literal["contains", "not_contains"] = "contains"
    condition_value: str = ""

    @model_validator(mode="before")
    @classmethod
    def default_blank_fields(cls, data: Any) -> Any:
        """Editor payloads send "" or null for untouched fields; use the defaults."""
        if isinstance(data, dict):
            defaults = {"condition_target": "tags", "condition_operator": "contains", "condition_value": ""}
            data = dict(data)
            for key, default in defaults.items():
                if key in data and data[key] in (None, ""):
                    data[key] = default
        return data


# ----------------------------------------------------------------------
# Nodes
# ----------------------------------------------------------------------
class BaseNode(BaseModel):
    """Fields shared by every node kind."""

    id: str = Field(..., min_length=1)
    position: Position = Field(default_factory=Position)

    def successor_ids(self) -> List[str]:
        return []


class EmailNode(BaseNode):
    type: Literal["EMAIL"] = "EMAIL"
    data: EmailData = Field(default_factory=EmailData)
    next_node_id: Optional[str] = None

    def successor_ids(self) -> List[str]:
        return [self.next_node_id] if self.next_node_id else []


class WhatsAppNode(BaseNode):
    type: Literal["WHATSAPP"] = "WHATSAPP"
    data: WhatsAppData = Field(default_factory=WhatsAppData)
    next_node_id: Optional[str] = None

    def successor_ids(self) -> List[str]:
        return [self.next_node_id] if self.next_node_id else []


class DelayNode(BaseNode):
    type: Literal["DELAY"] = "DELAY"
    data: DelayData = Field(default_factory=DelayData)
    next_node_id: Optional[str] = None

    def successor_ids(self) -> List[str]:
        return [self.next_node_id] if self.next_node_id else []


class ConditionNode(BaseNode):
    type: Literal["CONDITION"] = "CONDITION"
    data: ConditionData = Field(default_factory=ConditionData)
    true_node_id: Optional[str] = None
    false_node_id: Optional[str] = None

    def successor_ids(self) -> List[str]:
        return [i for i in (self.true_node_id, self.false_node_id) if i]


Node = Annotated[
    Union[EmailNode, WhatsAppNode, DelayNode, ConditionNode],
    Field(discriminator="type"),
]


class Funnel(BaseModel):
    """A workflow template: a graph of nodes entered at start_node_id."""

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1)
    trigger: str = Field(..., min_length=1, description="Event name, e.g. 'lead_subscribed'")
    is_active: bool = True
    nodes: List[Node] = Field(default_factory=list)
    start_node_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_graph(self) -> "Funnel":
        """Every reference must point at a node of this funnel."""
        ids = [node.id for node in self.nodes]
        known = set(ids)
        if len(known) != len(ids):
            raise ValueError("Node ids must be unique within a funnel")
        if self.start_node_id is not None and self.start_node_id not in known:
            raise ValueError(f"start_node_id references unknown node: {self.start_node_id}")
        for node in self.nodes:
            for ref in node.successor_ids():
                if ref not in known:
                    raise ValueError(f"Node {node.id} references unknown node: {ref}")
        return self

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


# ----------------------------------------------------------------------
# Leads, templates and executions
# ----------------------------------------------------------------------
class Lead(BaseModel):
    """A contact that funnels run against."""

    id: str = Field(default_factory=_new_id)
    email: str = Field(..., min_length=1)
    name: str = ""
    phone: str = ""
    status: str = "active"
    tags: List[str] = Field(default_factory=list)
    pipeline_stage: str = "new"
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        normalized = v.strip().lower()
        if not normalized:
            raise ValueError("email must not be empty")
        return normalized


class WhatsAppTemplate(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str = ""
    content: str = Field(..., description="Message body with {{placeholders}}")
    type: str = "text"


class FunnelExecution(BaseModel):
    """One running instance of a funnel for one lead."""

    id: str = Field(default_factory=_new_id)
    funnel_id: str
    lead_id: str
    current_node_id: Optional[str] = None
    status: ExecutionStatus = ExecutionStatus.WAITING
    next_run_at: datetime = Field(default_factory=utcnow)
    history: List[Dict[str, Any]] = Field(default_factory=list)
    context: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("next_run_at")
    @classmethod
    def normalize_next_run_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_completed(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED


# ----------------------------------------------------------------------
# Interpreter results
# ----------------------------------------------------------------------
class StepOutcome(str, Enum):
    ADVANCED = "advanced"
    SUSPENDED = "suspended"
    FAILED = "failed"


class StepResult(BaseModel):
    """Outcome of interpreting a single node."""

    outcome: StepOutcome
    next_node_id: Optional[str] = Field(None, description="Node to continue at (advanced)")
    resume_node_id: Optional[str] = Field(None, description="Node to resume at (suspended)")
    resume_at: Optional[datetime] = Field(None, description="Earliest resume time (suspended)")
    sent: bool = Field(False, description="Whether a message was dispatched")
    error: Optional[str] = None
    retryable: bool = True

    @classmethod
    def advanced(cls, next_node_id: Optional[str], sent: bool = False) -> "StepResult":
        return cls(outcome=StepOutcome.ADVANCED, next_node_id=next_node_id, sent=sent)

    @classmethod
    def suspended(cls, resume_node_id: str, resume_at: datetime) -> "StepResult":
        return cls(outcome=StepOutcome.SUSPENDED, resume_node_id=resume_node_id, resume_at=resume_at)

    @classmethod
    def failed(cls, error: str, retryable: bool = True) -> "StepResult":
        return cls(outcome=StepOutcome.FAILED, error=error, retryable=retryable)


class PassReport(BaseModel):
    """Counters for one processing pass."""

    due: int = 0
    completed: int = 0
    suspended: int = 0
    failed: int = 0

# funnels/db/models.py

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FunnelRecord(Base):
    """Funnel definition (workflow graph)."""

    __tablename__ = "funnels"

    id = Column(String, primary_key=True)  # UUID
    name = Column(String, nullable=False)
    trigger = Column(String, nullable=False, index=True)  # "lead_subscribed", "tag_added:vip", ...
    is_active = Column(Boolean, default=True, nullable=False)
    nodes = Column(JSON, nullable=False)  # List of serialized nodes
    start_node_id = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class ExecutionRecord(Base):
    """One running funnel instance for one lead."""

    __tablename__ = "funnel_executions"

    id = Column(String, primary_key=True)  # UUID
    funnel_id = Column(String, nullable=False, index=True)
    lead_id = Column(String, nullable=False, index=True)
    current_node_id = Column(String, nullable=True)
    status = Column(String, nullable=False, index=True)  # "waiting", "completed"
    # Always store UTC datetimes
    next_run_at = Column(DateTime(timezone=True), nullable=False, index=True)
    history = Column(JSON, nullable=False, default=list)
    context = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class LeadRecord(Base):
    __tablename__ = "leads"

    id = Column(String, primary_key=True)  # UUID
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="active", index=True)
    tags = Column(JSON, nullable=False, default=list)
    pipeline_stage = Column(String, nullable=False, default="new")
    source = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class WhatsAppTemplateRecord(Base):
    """Internal WhatsApp message template referenced by WHATSAPP nodes."""

    __tablename__ = "whatsapp_templates"

    id = Column(String, primary_key=True)  # UUID
    title = Column(String, nullable=False, default="")
    content = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="text")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

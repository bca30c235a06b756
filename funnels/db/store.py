# funnels/db/store.py
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from funnels.db.engine import get_session
from funnels.db.models import ExecutionRecord, FunnelRecord
from funnels.models import ExecutionStatus, Funnel, FunnelExecution, ensure_utc

logger = logging.getLogger(__name__)

# Fields the engine may patch on an execution; context is fixed at trigger time
EXECUTION_PATCH_FIELDS = {"current_node_id", "status", "next_run_at", "history"}


def _funnel_from_record(row: FunnelRecord) -> Funnel:
    return Funnel.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "trigger": row.trigger,
            "is_active": row.is_active,
            "nodes": row.nodes or [],
            "start_node_id": row.start_node_id,
        }
    )


def _execution_from_record(row: ExecutionRecord) -> FunnelExecution:
    return FunnelExecution(
        id=row.id,
        funnel_id=row.funnel_id,
        lead_id=row.lead_id,
        current_node_id=row.current_node_id,
        status=ExecutionStatus(row.status),
        next_run_at=ensure_utc(row.next_run_at),
        history=list(row.history or []),
        context=dict(row.context or {}),
        created_at=row.created_at,
    )


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value)
    return value


class FunnelStore:
    """
    Persistence for funnel definitions and their executions.

    Every call opens its own session and touches a single record; there are
    no multi-record transactions.
    """

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Funnels
    # ------------------------------------------------------------------
    def list_funnels(self) -> List[Funnel]:
        session = self._session_factory()
        try:
            rows = session.query(FunnelRecord).order_by(FunnelRecord.created_at.asc()).all()
            return [_funnel_from_record(row) for row in rows]
        finally:
            session.close()

    def get_funnel(self, funnel_id: str) -> Optional[Funnel]:
        session = self._session_factory()
        try:
            row = session.get(FunnelRecord, funnel_id)
            return _funnel_from_record(row) if row else None
        finally:
            session.close()

    def save_funnel(self, funnel: Funnel) -> Funnel:
        """Insert the funnel, or replace it when the id already exists."""
        session = self._session_factory()
        try:
            row = session.get(FunnelRecord, funnel.id)
            created = row is None
            if row is None:
                row = FunnelRecord(id=funnel.id)
                session.add(row)

            row.name = funnel.name
            row.trigger = funnel.trigger
            row.is_active = funnel.is_active
            row.nodes = [node.model_dump(mode="json") for node in funnel.nodes]
            row.start_node_id = funnel.start_node_id

            session.commit()
            logger.info("Funnel %s → %s (%s)", "created" if created else "updated", funnel.id, funnel.name)
            return funnel
        finally:
            session.close()

    def delete_funnel(self, funnel_id: str) -> bool:
        session = self._session_factory()
        try:
            row = session.get(FunnelRecord, funnel_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            logger.info("Funnel deleted → %s", funnel_id)
            return True
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Executions
    # ------------------------------------------------------------------
    def list_executions(
        self,
        status: ExecutionStatus | None = None,
        funnel_id: str | None = None,
        lead_id: str | None = None,
    ) -> List[FunnelExecution]:
        session = self._session_factory()
        try:
            query = session.query(ExecutionRecord)
            if status:
                query = query.filter(ExecutionRecord.status == ExecutionStatus(status).value)
            if funnel_id:
                query = query.filter(ExecutionRecord.funnel_id == funnel_id)
            if lead_id:
                query = query.filter(ExecutionRecord.lead_id == lead_id)
            rows = query.order_by(ExecutionRecord.created_at.asc()).all()
            return [_execution_from_record(row) for row in rows]
        finally:
            session.close()

    def get_execution(self, execution_id: str) -> Optional[FunnelExecution]:
        session = self._session_factory()
        try:
            row = session.get(ExecutionRecord, execution_id)
            return _execution_from_record(row) if row else None
        finally:
            session.close()

    def create_execution(self, execution: FunnelExecution) -> FunnelExecution:
        session = self._session_factory()
        try:
            row = ExecutionRecord(
                id=execution.id,
                funnel_id=execution.funnel_id,
                lead_id=execution.lead_id,
                current_node_id=execution.current_node_id,
                status=execution.status.value,
                next_run_at=ensure_utc(execution.next_run_at),
                history=list(execution.history),
                context=dict(execution.context),
            )
            session.add(row)
            session.commit()
            logger.debug("Execution created → %s (funnel %s, lead %s)", execution.id, execution.funnel_id, execution.lead_id)
            return execution
        finally:
            session.close()

    def update_execution(self, execution_id: str, fields: Dict[str, Any]) -> bool:
        """
        Patch the supplied fields of an execution.

        Returns:
            False if the execution does not exist

        Raises:
            ValueError: If fields contains keys that cannot be patched
        """
        unknown = set(fields) - EXECUTION_PATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot update execution fields: {sorted(unknown)}")

        session = self._session_factory()
        try:
            row = session.get(ExecutionRecord, execution_id)
            if not row:
                return False
            for key, value in fields.items():
                setattr(row, key, _column_value(value))
            session.commit()
            return True
        finally:
            session.close()

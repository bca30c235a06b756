# funnels/db/leads.py
import logging
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from funnels.db.engine import get_session
from funnels.db.models import LeadRecord
from funnels.models import Lead

logger = logging.getLogger(__name__)

LEAD_UPDATE_FIELDS = {"name", "phone", "status", "tags", "pipeline_stage", "source"}


def _lead_from_record(row: LeadRecord) -> Lead:
    return Lead(
        id=row.id,
        email=row.email,
        name=row.name or "",
        phone=row.phone or "",
        status=row.status,
        tags=list(row.tags or []),
        pipeline_stage=row.pipeline_stage,
        source=row.source,
        created_at=row.created_at,
    )


class LeadDirectory:
    """
    Read and mutate lead records.

    The directory never calls back into the funnel engine: callers that
    mutate tags are responsible for emitting the matching trigger.
    """

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def get_all_leads(self) -> List[Lead]:
        return self.list_leads()

    def list_leads(self, status: str | None = None) -> List[Lead]:
        session = self._session_factory()
        try:
            query = session.query(LeadRecord)
            if status:
                query = query.filter(LeadRecord.status == status)
            return [_lead_from_record(row) for row in query.order_by(LeadRecord.created_at.asc()).all()]
        finally:
            session.close()

    def get_lead(self, lead_id: str) -> Optional[Lead]:
        session = self._session_factory()
        try:
            row = session.get(LeadRecord, lead_id)
            return _lead_from_record(row) if row else None
        finally:
            session.close()

    def get_lead_by_email(self, email: str) -> Optional[Lead]:
        session = self._session_factory()
        try:
            row = session.query(LeadRecord).filter(LeadRecord.email == email.strip().lower()).first()
            return _lead_from_record(row) if row else None
        finally:
            session.close()

    def subscribe(self, email: str, source: str, name: str | None = None, phone: str | None = None) -> Lead:
        """
        Create a lead, or refresh name/phone of the lead owning this email.

        Returns:
            The stored lead
        """
        candidate = Lead(email=email, name=name or "", phone=phone or "", source=source)

        session = self._session_factory()
        try:
            row = session.query(LeadRecord).filter(LeadRecord.email == candidate.email).first()
            if row is None:
                row = LeadRecord(
                    id=str(uuid4()),
                    email=candidate.email,
                    name=candidate.name,
                    phone=candidate.phone,
                    status="active",
                    tags=[],
                    pipeline_stage="new",
                    source=source,
                )
                session.add(row)
                logger.info("Lead subscribed → %s (source: %s)", candidate.email, source)
            else:
                if name:
                    row.name = name
                if phone:
                    row.phone = phone
                logger.info("Lead re-subscribed → %s", candidate.email)

            session.commit()
            return _lead_from_record(row)
        finally:
            session.close()

    def update_lead(self, lead_id: str, fields: Dict[str, Any]) -> Optional[Lead]:
        """
        Patch the supplied fields of a lead.

        Raises:
            ValueError: If fields contains keys that cannot be updated
        """
        unknown = set(fields) - LEAD_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update lead fields: {sorted(unknown)}")

        session = self._session_factory()
        try:
            row = session.get(LeadRecord, lead_id)
            if not row:
                return None
            for key, value in fields.items():
                setattr(row, key, list(value) if key == "tags" else value)
            session.commit()
            return _lead_from_record(row)
        finally:
            session.close()

    def update_stage(self, lead_id: str, stage: str) -> bool:
        return self.update_lead(lead_id, {"pipeline_stage": stage}) is not None

    def add_tag(self, lead_id: str, tag: str) -> bool:
        """
        Append tag to the lead if absent.

        Returns:
            True only when the tag was newly added
        """
        session = self._session_factory()
        try:
            row = session.get(LeadRecord, lead_id)
            if not row:
                logger.warning("Cannot tag missing lead %s", lead_id)
                return False

            tags = list(row.tags or [])
            if tag in tags:
                return False

            row.tags = tags + [tag]
            session.commit()
            logger.info("Tag %r added → lead %s", tag, lead_id)
            return True
        finally:
            session.close()

    def delete_lead(self, lead_id: str) -> bool:
        session = self._session_factory()
        try:
            row = session.get(LeadRecord, lead_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            logger.info("Lead deleted → %s", lead_id)
            return True
        finally:
            session.close()

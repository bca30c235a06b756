# funnels/db/whatsapp_templates.py
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from funnels.db.engine import get_session
from funnels.db.models import WhatsAppTemplateRecord
from funnels.models import WhatsAppTemplate

logger = logging.getLogger(__name__)


def _template_from_record(row: WhatsAppTemplateRecord) -> WhatsAppTemplate:
    return WhatsAppTemplate(id=row.id, title=row.title, content=row.content, type=row.type)


class WhatsAppTemplateStore:
    """Internal WhatsApp message templates referenced by WHATSAPP nodes."""

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def save_template(self, template: WhatsAppTemplate) -> WhatsAppTemplate:
        session = self._session_factory()
        try:
            row = session.get(WhatsAppTemplateRecord, template.id)
            if row is None:
                row = WhatsAppTemplateRecord(id=template.id)
                session.add(row)
            row.title = template.title
            row.content = template.content
            row.type = template.type
            session.commit()
            logger.info("WhatsApp template saved → %s (%s)", template.id, template.title)
            return template
        finally:
            session.close()

    def get_template(self, template_id: str) -> Optional[WhatsAppTemplate]:
        session = self._session_factory()
        try:
            row = session.get(WhatsAppTemplateRecord, template_id)
            return _template_from_record(row) if row else None
        finally:
            session.close()

    def list_templates(self) -> List[WhatsAppTemplate]:
        session = self._session_factory()
        try:
            rows = session.query(WhatsAppTemplateRecord).order_by(WhatsAppTemplateRecord.created_at.asc()).all()
            return [_template_from_record(row) for row in rows]
        finally:
            session.close()

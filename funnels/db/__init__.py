from funnels.db.engine import create_db_engine, get_engine, get_session
from funnels.db.leads import LeadDirectory
from funnels.db.store import FunnelStore
from funnels.db.whatsapp_templates import WhatsAppTemplateStore

__all__ = [
    "FunnelStore",
    "LeadDirectory",
    "WhatsAppTemplateStore",
    "create_db_engine",
    "get_engine",
    "get_session",
]

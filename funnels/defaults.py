# funnels/defaults.py
import logging
from uuid import uuid4

from funnels.db.store import FunnelStore
from funnels.db.whatsapp_templates import WhatsAppTemplateStore
from funnels.engine import NEW_POST_PUBLISHED
from funnels.models import (
    DelayData,
    DelayNode,
    EmailData,
    EmailNode,
    Funnel,
    Position,
    WhatsAppData,
    WhatsAppNode,
    WhatsAppTemplate,
)

logger = logging.getLogger(__name__)

POST_UPDATE_WHATSAPP_TEXT = (
    '🚀 *Novidade no Blog!*\n\nAcabei de publicar o artigo: "{{post_title}}"\n\nConfira agora mesmo: {{post_url}}'
)
POST_UPDATE_EMAIL_SUBJECT = "🔥 Novo conteúdo: {{post_title}}"
POST_UPDATE_EMAIL_CONTENT = 'Olá {{name}}, tem post novo no blog: <a href="{{post_url}}">{{post_title}}</a>'


def create_default_post_update_funnel(store: FunnelStore, templates: WhatsAppTemplateStore) -> Funnel:
    """
    Create the stock "new post" distribution funnel.

    WhatsApp alert → wait 24h → email, started by the new_post_published
    broadcast with post_title / post_url in the context.
    """
    template = templates.save_template(
        WhatsAppTemplate(
            id=str(uuid4()),
            title="Notificação: Novo Post",
            content=POST_UPDATE_WHATSAPP_TEXT,
            type="text",
        )
    )

    whatsapp_node_id = str(uuid4())
    delay_node_id = str(uuid4())
    email_node_id = str(uuid4())

    funnel = Funnel(
        name="Automação: Distribuição de Novos Posts",
        trigger=NEW_POST_PUBLISHED,
        is_active=True,
        nodes=[
            WhatsAppNode(
                id=whatsapp_node_id,
                position=Position(x=100, y=150),
                data=WhatsAppData(
                    wa_template_id=template.id,
                    wa_template_title="WA: Alerta Post",
                    custom_title="Zap: Novo Post",
                ),
                next_node_id=delay_node_id,
            ),
            DelayNode(
                id=delay_node_id,
                position=Position(x=350, y=150),
                data=DelayData(hours=24, custom_title="Aguardar 24h"),
                next_node_id=email_node_id,
            ),
            EmailNode(
                id=email_node_id,
                position=Position(x=600, y=150),
                data=EmailData(
                    subject=POST_UPDATE_EMAIL_SUBJECT,
                    content=POST_UPDATE_EMAIL_CONTENT,
                    custom_title="Email: Novo Post",
                ),
                next_node_id=None,
            ),
        ],
        start_node_id=whatsapp_node_id,
    )

    store.save_funnel(funnel)
    logger.info("Default post-update funnel created → %s", funnel.id)
    return funnel

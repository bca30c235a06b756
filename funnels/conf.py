# funnels/conf.py
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# ----------------------------------------------------------------------
# Paths (all under assets/)
# ----------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent.parent
ASSETS_DIR = ROOT_DIR / "assets"

ASSETS_DIR.mkdir(exist_ok=True)

DATABASE_URL = os.getenv("FUNNELS_DATABASE_URL", f"sqlite:///{ASSETS_DIR / 'funnels.db'}")

# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------
POLL_INTERVAL_S = int(os.getenv("FUNNELS_POLL_INTERVAL_S", "30"))

# Wall-clock zone used to interpret WhatsApp "HH:MM" send windows
SEND_WINDOW_TIMEZONE = os.getenv("FUNNELS_TIMEZONE", "UTC")
SEND_WINDOW_TOLERANCE_S = 60
# How late a pass may arrive after a parked window and still send
SEND_WINDOW_GRACE_S = SEND_WINDOW_TOLERANCE_S + POLL_INTERVAL_S

DEFAULT_DELAY_HOURS = 24
DEFAULT_LEAD_NAME = os.getenv("FUNNELS_DEFAULT_LEAD_NAME", "Leitor")

# Upper bound on nodes visited by one execution in a single pass
MAX_NODES_PER_PASS = int(os.getenv("FUNNELS_MAX_NODES_PER_PASS", "100"))

# One waiting execution per (lead, funnel) when enabled
DEDUPE_ACTIVE_EXECUTIONS = _env_bool("FUNNELS_DEDUPE_ACTIVE_EXECUTIONS")

# ----------------------------------------------------------------------
# Senders
# ----------------------------------------------------------------------
EMAIL_BACKEND = os.getenv("FUNNELS_EMAIL_BACKEND", "log")  # "log" | "smtp"
WHATSAPP_BACKEND = os.getenv("FUNNELS_WHATSAPP_BACKEND", "log")  # "log" | "cloud"

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", default=True)
SMTP_FROM = os.getenv("SMTP_FROM", "no-reply@localhost")

WA_API_VERSION = os.getenv("WA_API_VERSION", "v21.0")
WA_PHONE_NUMBER_ID = os.getenv("WA_PHONE_NUMBER_ID", "")
WA_ACCESS_TOKEN = os.getenv("WA_ACCESS_TOKEN", "")
WA_LANGUAGE_CODE = os.getenv("WA_LANGUAGE_CODE", "pt_BR")
WA_TIMEOUT_S = float(os.getenv("WA_TIMEOUT_S", "15"))


# ----------------------------------------------------------------------
# Debug output when run directly
# ----------------------------------------------------------------------
if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
    )

    logger.info("Funnel engine – configuration")
    logger.info("Database        : %s", DATABASE_URL)
    logger.info("Poll interval   : %ss", POLL_INTERVAL_S)
    logger.info("Send window TZ  : %s", SEND_WINDOW_TIMEZONE)
    logger.info("Email backend   : %s", EMAIL_BACKEND)
    logger.info("WhatsApp backend: %s", WHATSAPP_BACKEND)
    logger.info("Dedupe active   : %s", DEDUPE_ACTIVE_EXECUTIONS)

# funnels/templates.py
from __future__ import annotations

from typing import Mapping, Optional

from funnels import conf
from funnels.models import Lead

# Placeholders always filled from the lead itself
LEAD_FIELDS = ("name", "email")


def placeholder(key: str) -> str:
    return "{{" + key + "}}"


def substitute(template: str, context: Optional[Mapping[str, str]], lead: Lead) -> str:
    """
    Fill {{placeholders}} in a message template.

    Execution context keys are applied first, then {{name}} and {{email}}
    from the lead. Lead fields win over context entries with the same key.
    Unknown placeholders are left untouched.
    """
    result = template
    for key, value in (context or {}).items():
        if key in LEAD_FIELDS:
            continue
        result = result.replace(placeholder(key), str(value))

    result = result.replace(placeholder("name"), lead.name or conf.DEFAULT_LEAD_NAME)
    return result.replace(placeholder("email"), lead.email)

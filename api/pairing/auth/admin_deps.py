from __future__ import annotations

from typing import Any

from fastapi import Header

from pairing import config
from pairing.deps import validate_admin_token


def require_admin(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")) -> dict[str, Any]:
    validate_admin_token(x_admin_token, str(getattr(config, "ADMIN_TOKEN", "") or ""))
    return {"auth_mode": "token", "role": "admin"}

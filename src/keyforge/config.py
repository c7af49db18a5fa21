"""Runtime settings.

Loaded from the environment (and an optional ``.env`` file). Only the
orchestration layer and the CLI read these; codec functions take explicit
parameters.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_SSH_COMMENT = "user@hostname"


class Settings(BaseModel):
    ssh_comment: str = DEFAULT_SSH_COMMENT
    log_level: str = "INFO"
    rsa_public_exponent: int = 65537
    extractable: bool = True


def load_settings() -> Settings:
    return Settings(
        ssh_comment=os.getenv("KEYFORGE_SSH_COMMENT", DEFAULT_SSH_COMMENT),
        log_level=os.getenv("KEYFORGE_LOG_LEVEL", "INFO").upper(),
        rsa_public_exponent=int(os.getenv("KEYFORGE_RSA_PUBLIC_EXPONENT", "65537")),
        extractable=os.getenv("KEYFORGE_EXTRACTABLE", "true").lower() == "true",
    )

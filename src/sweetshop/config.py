"""Settings (env) and logging setup."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sweetshop.core.config import Config
from sweetshop.ddd.payloads import build_payload

ENV_PREFIX = "SWEETSHOP_"
DEFAULT_JWT_SECRET = "mySecretKey12345678901234567890123456789012345678901234567890"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


@dataclass
class Settings:
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24
    password_hash_iterations: int = 260_000
    seed_sample_data: bool = True
    enforce_status_transitions: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    docs_title: str = "Sweet Shop API"

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides: object) -> Settings:
        """SWEETSHOP_JWT_SECRET=... -> jwt_secret; values are converted to the field types."""
        raw = Config.load_from_env(prefix)
        raw.update(overrides)
        if isinstance(raw.get("cors_origins"), str):
            raw["cors_origins"] = [o.strip() for o in raw["cors_origins"].split(",") if o.strip()]
        known = {f for f in cls.__dataclass_fields__}
        return build_payload(cls, {k: v for k, v in raw.items() if k in known})


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())

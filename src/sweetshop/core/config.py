"""Single config object: created at startup, available via DI."""
import os
from typing import Any


class Config:
    """
    Environment loader for settings objects.
    Settings classes build themselves from Config.load_from_env(prefix) and are passed
    to Application(config=...); then available via container.resolve(SettingsType).
    """

    @classmethod
    def load_from_env(cls, prefix: str = "APP_", **defaults: Any) -> dict[str, Any]:
        """Load from os.environ with prefix and defaults. Keys are lower-cased without the prefix."""
        result = dict(defaults)
        for key, value in os.environ.items():
            if key.startswith(prefix):
                name = key[len(prefix):].lower()
                result[name] = value
        return result

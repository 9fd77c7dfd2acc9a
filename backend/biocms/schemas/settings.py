from pydantic import Field, field_validator
from typing import Any, Dict

from biocms.schemas.common import CamelModel


class SettingsUpdate(CamelModel):
    """Dotted keys mapped to new values, e.g. {"site.site_name": "Bios"}"""
    settings: Dict[str, Any] = Field(..., min_length=1)

    @field_validator("settings")
    @classmethod
    def keys_are_dotted(cls, value):
        for key in value:
            if "." not in key or key.startswith(".") or key.endswith("."):
                raise ValueError(f"Setting key '{key}' must be '<category>.<name>'")
        return value

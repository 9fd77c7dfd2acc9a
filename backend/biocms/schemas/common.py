from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request body accepting camelCase keys (snake_case also works)"""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, str_strip_whitespace=True)

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by model attribute"""
        return self.model_dump(exclude_unset=True)


def as_string_list(value: Any) -> List[str]:
    """Accept a single string or a list; drop empty entries"""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        value = value.replace(tzinfo=None) - value.utcoffset()
    return value

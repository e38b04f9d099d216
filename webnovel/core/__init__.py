# 核心模块
from webnovel.core.config import settings
from webnovel.core.errors import (
    ContentError,
    ParseError,
    TransportError,
    UnsupportedSourceError,
    WebnovelError,
)

__all__ = [
    "settings",
    "WebnovelError",
    "TransportError",
    "ParseError",
    "ContentError",
    "UnsupportedSourceError",
]

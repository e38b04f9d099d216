"""
多站点网络小说章节获取

    from webnovel import resolve

    backend = resolve("https://www.royalroad.com/fiction/21220/mother-of-learning")
    chapters = backend.get_chapters()
"""
from webnovel.backends import BACKENDS, Backend
from webnovel.core.dispatcher import Dispatcher, resolve
from webnovel.core.errors import (
    ContentError,
    ParseError,
    TransportError,
    UnsupportedSourceError,
    WebnovelError,
)
from webnovel.models.chapter import Chapter, ChapterListElem, diff_chapter_lists

__version__ = "0.9.2"

__all__ = [
    "Backend",
    "BACKENDS",
    "Chapter",
    "ChapterListElem",
    "Dispatcher",
    "diff_chapter_lists",
    "resolve",
    "WebnovelError",
    "TransportError",
    "ParseError",
    "ContentError",
    "UnsupportedSourceError",
]

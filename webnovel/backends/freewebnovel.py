import logging
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag

from webnovel.backends.base import Backend, TocEntry, compare_keys
from webnovel.core.errors import ParseError
from webnovel.models.chapter import Chapter, Ordering
from webnovel.utils.html import select_attr, select_one, select_text

logger = logging.getLogger(__name__)

# LibRead 与 FreeWebNovel 使用同一套页面结构
TITLE_SELECTOR = "h1.tit"
AUTHORS_SELECTOR = "a.a1"
COVER_SELECTOR = "div.pic img"
CHAPTER_LIST_SELECTOR = "div.m-newest2 ul#idData li a.con"
CHAPTER_TITLE_SELECTOR = "div.top span.chapter"
CHAPTER_CONTENT_SELECTOR = "div.txt div#article"

CHAPTER_NUMBER_RE = re.compile(r"chapter-(\d+)")


def fiction_title(page: BeautifulSoup, url: str, site: str) -> str:
    return select_text(page, TITLE_SELECTOR, url=url, site=site)


def fiction_authors(page: BeautifulSoup) -> List[str]:
    """作者链接指向 /author/ 或 /authors/"""
    authors = []
    for node in page.select(AUTHORS_SELECTOR):
        href = node.get("href", "")
        if href.startswith("/author/") or href.startswith("/authors/"):
            authors.append(node.get_text(strip=True))
    return authors


def chapter_entries(
    page: BeautifulSoup, url: str, site: str, absolute_url: Callable[[str], str]
) -> List[TocEntry]:
    links = page.select(CHAPTER_LIST_SELECTOR)
    if not links:
        raise ParseError("找不到章节目录", url=url, site=site, stage="toc")
    entries = []
    for index, link in enumerate(links, start=1):
        href = link.get("href")
        if not href:
            raise ParseError(f"第 {index} 个目录项缺少链接", url=url, site=site, stage="toc")
        title = link.get("title") or link.get_text(strip=True)
        entries.append(TocEntry(index, title.strip(), absolute_url(href)))
    return entries


def _chapter_number(chapter: Chapter) -> int:
    match = CHAPTER_NUMBER_RE.search(chapter.url)
    return int(match.group(1)) if match else 0


def compare_by_chapter_number(a: Chapter, b: Chapter) -> int:
    """按序号排序，序号相同时按URL中的章节编号"""
    return compare_keys(
        (a.index, _chapter_number(a), a.url), (b.index, _chapter_number(b), b.url)
    )


class FreeWebNovel(Backend):
    """FreeWebNovel 后端"""

    name = "freewebnovel"
    url_patterns = [
        re.compile(r"https?://(?:www\.)?freewebnovel\.com/(?P<slug>[\w-]+)\.html")
    ]

    def title(self) -> str:
        return fiction_title(self.fiction_page, self.url, self.name)

    def immutable_identifier(self) -> str:
        return self.match(self.url).group("slug")

    def cover_url(self) -> str:
        src = select_attr(self.fiction_page, COVER_SELECTOR, "src", url=self.url, site=self.name)
        return self.absolute_url(src)

    def get_authors(self) -> List[str]:
        return fiction_authors(self.fiction_page)

    def _list_toc(self) -> List[TocEntry]:
        return chapter_entries(self.fiction_page, self.url, self.name, self.absolute_url)

    def _chapter_title(self, page: BeautifulSoup, url: str) -> Optional[str]:
        return select_text(page, CHAPTER_TITLE_SELECTOR, url=url, site=self.name)

    def _chapter_content_node(self, page: BeautifulSoup, url: str) -> Tag:
        return select_one(page, CHAPTER_CONTENT_SELECTOR, url=url, site=self.name)

    @classmethod
    def get_ordering_function(cls) -> Ordering:
        return compare_by_chapter_number

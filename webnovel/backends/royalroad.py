import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from webnovel.backends.base import Backend, TocEntry, compare_keys, parse_timestamp
from webnovel.core.errors import ParseError
from webnovel.models.chapter import Chapter, Ordering
from webnovel.utils.html import select_attr, select_one, select_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.royalroad.com"

FICTION_TITLE_SELECTOR = "div.fic-header div.fic-title h1"
FICTION_AUTHORS_SELECTOR = "div.fic-header div.fic-title h4 span a"
COVER_SELECTOR = "div.fic-header img.thumbnail"
CHAPTER_ROW_SELECTOR = "table#chapters tbody tr.chapter-row"
CHAPTER_LINK_SELECTOR = "td:first-child a"
CHAPTER_TIME_SELECTOR = "td:last-child time"
CHAPTER_PAGE_TITLE_SELECTOR = "div.fic-header h1"
CHAPTER_PAGE_CONTENT_SELECTOR = "div.chapter-inner.chapter-content"

CHAPTER_ID_RE = re.compile(r"/chapter/(\d+)")


def _chapter_id(chapter: Chapter) -> int:
    match = CHAPTER_ID_RE.search(chapter.url)
    return int(match.group(1)) if match else 0


def compare_royalroad(a: Chapter, b: Chapter) -> int:
    """按序号排序，序号相同（来源删除章节导致）时按章节ID，ID随发布时间递增"""
    return compare_keys(
        (a.index, _chapter_id(a), a.url), (b.index, _chapter_id(b), b.url)
    )


class RoyalRoad(Backend):
    """RoyalRoad 后端

    RoyalRoad 会在正文中随机插入反盗版声明，抓取时按站点语料删除。
    """

    name = "royalroad"
    url_patterns = [
        re.compile(
            r"https?://(?:www\.)?royalroad\.com/fiction/(?P<fiction_id>\d+)(?:/(?P<slug>[\w-]+))?"
        )
    ]

    @classmethod
    def fiction_url(cls, match) -> str:
        url = f"{BASE_URL}/fiction/{match.group('fiction_id')}"
        if match.group("slug") and match.group("slug") != "chapter":
            url += f"/{match.group('slug')}"
        return url

    def title(self) -> str:
        return select_text(self.fiction_page, FICTION_TITLE_SELECTOR, url=self.url, site=self.name)

    def immutable_identifier(self) -> str:
        # 小说ID在改名后保持不变
        return self.match(self.url).group("fiction_id")

    def cover_url(self) -> str:
        src = select_attr(self.fiction_page, COVER_SELECTOR, "src", url=self.url, site=self.name)
        return self.absolute_url(src)

    def get_authors(self) -> List[str]:
        return [
            node.get_text(strip=True)
            for node in self.fiction_page.select(FICTION_AUTHORS_SELECTOR)
            if node.get_text(strip=True)
        ]

    def _list_toc(self) -> List[TocEntry]:
        rows = self.fiction_page.select(CHAPTER_ROW_SELECTOR)
        if not rows:
            raise ParseError("找不到章节目录", url=self.url, site=self.name, stage="toc")

        entries = []
        for index, row in enumerate(rows, start=1):
            link = select_one(row, CHAPTER_LINK_SELECTOR, url=self.url, site=self.name)
            href = link.get("href")
            if not href:
                raise ParseError(f"第 {index} 行目录缺少链接", url=self.url, site=self.name, stage="toc")
            published_at = None
            time_node = row.select_one(CHAPTER_TIME_SELECTOR)
            if time_node is not None and time_node.get("datetime"):
                try:
                    published_at = parse_timestamp(time_node["datetime"])
                except ValueError:
                    logger.warning(f"无法解析发布时间: {time_node['datetime']}")
            entries.append(
                TocEntry(index, link.get_text(strip=True), self.absolute_url(href), published_at)
            )
        return entries

    def _chapter_title(self, page: BeautifulSoup, url: str) -> Optional[str]:
        return select_text(page, CHAPTER_PAGE_TITLE_SELECTOR, url=url, site=self.name)

    def _chapter_content_node(self, page: BeautifulSoup, url: str) -> Tag:
        return select_one(page, CHAPTER_PAGE_CONTENT_SELECTOR, url=url, site=self.name)

    @classmethod
    def get_ordering_function(cls) -> Ordering:
        return compare_royalroad

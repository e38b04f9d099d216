import logging
import re
from datetime import datetime
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from webnovel.backends.base import Backend, TocEntry, compare_keys, parse_timestamp
from webnovel.core.errors import ParseError
from webnovel.models.chapter import Chapter, Ordering
from webnovel.utils.html import select_attr, select_one, select_text

logger = logging.getLogger(__name__)

BASE_URL = "https://www.lightnovelworld.com"

TITLE_SELECTOR = "h1.novel-title"
AUTHOR_SELECTOR = "div.author a span"
COVER_SELECTOR = 'head meta[property="og:image"]'
PAGINATION_SELECTOR = "section#chpagedlist ul.pagination li"
CHAPTER_LIST_SELECTOR = "section#chpagedlist ul.chapter-list li"
CHAPTER_NO_SELECTOR = "a span.chapter-no"
CHAPTER_CONTENT_SELECTOR = "div#chapter-container"
CHAPTER_TITLE_SELECTOR = "article#chapter-article span.chapter-title"
CHAPTER_PUBLISHED_AT_SELECTOR = "article#chapter-article meta[itemprop='datePublished']"

CHAPTER_URL_RE = re.compile(r"/chapter-(\d+)/?$")
TITLE_NUMBER_RE = re.compile(r"^\s*(?:chapter\s*)?(\d+)", re.IGNORECASE)


def _title_number(chapter: Chapter) -> int:
    match = TITLE_NUMBER_RE.match(chapter.title or "")
    return int(match.group(1)) if match else 0


def compare_by_title_number(a: Chapter, b: Chapter) -> int:
    """站点序号不可靠时，用标题中的章节号作为次级排序依据"""
    return compare_keys(
        (a.index, _title_number(a), a.url), (b.index, _title_number(b), b.url)
    )


class LightNovelWorld(Backend):
    """LightNovelWorld 后端

    目录分页显示；正文中的广告段落带有class属性，提取时跳过。
    """

    name = "lightnovelworld"
    url_patterns = [
        re.compile(r"https?://(?:www\.)?lightnovelworld\.com/novel/(?P<slug>[a-z0-9\-]+)")
    ]
    skip_classed_paragraphs = True

    @classmethod
    def fiction_url(cls, match) -> str:
        return f"{BASE_URL}/novel/{match.group('slug')}"

    def title(self) -> str:
        return select_text(self.fiction_page, TITLE_SELECTOR, url=self.url, site=self.name)

    def immutable_identifier(self) -> str:
        # slug 末尾带有站点的数字ID
        return self.match(self.url).group("slug")

    def cover_url(self) -> str:
        return select_attr(self.fiction_page, COVER_SELECTOR, "content", url=self.url, site=self.name)

    def get_authors(self) -> List[str]:
        # 只有一位作者
        return [select_text(self.fiction_page, AUTHOR_SELECTOR, url=self.url, site=self.name)]

    def _list_toc(self) -> List[TocEntry]:
        list_url = f"{self.url}/chapters"
        page = self.fetch_page(list_url, stage="toc")
        # 最后一个分页按钮是"下一页"
        page_count = max(1, len(page.select(PAGINATION_SELECTOR)) - 1)

        entries = self._parse_chapter_list(page, list_url)
        for page_number in range(2, page_count + 1):
            page_url = f"{list_url}?page={page_number}"
            logger.debug(f"获取目录第 {page_number}/{page_count} 页")
            entries.extend(self._parse_chapter_list(self.fetch_page(page_url, stage="toc"), page_url))
        if not entries:
            raise ParseError("找不到章节目录", url=list_url, site=self.name, stage="toc")
        return entries

    def _parse_chapter_list(self, page: BeautifulSoup, url: str) -> List[TocEntry]:
        entries = []
        for item in page.select(CHAPTER_LIST_SELECTOR):
            number = select_text(item, CHAPTER_NO_SELECTOR, url=url, site=self.name)
            link = select_one(item, "a", url=url, site=self.name)
            try:
                index = int(number)
            except ValueError as e:
                raise ParseError(
                    f"无效的章节号: {number!r}", url=url, site=self.name, stage="toc"
                ) from e
            title = link.get("title") or link.get_text(strip=True)
            href = link.get("href") or f"/novel/{self.immutable_identifier()}/chapter-{index}"
            entries.append(TocEntry(index, title.strip(), self.absolute_url(href)))
        return entries

    def _index_from_url(self, url: str) -> Optional[int]:
        match = CHAPTER_URL_RE.search(url)
        return int(match.group(1)) if match else None

    def chapter_url(self, index: int) -> str:
        return f"{self.url}/chapter-{index}"

    def get_chapter_by_index(self, index: int) -> Chapter:
        # 章节地址可以直接由序号构造，不需要读取目录
        return self.get_chapter(self.chapter_url(index), index=index)

    def _chapter_title(self, page: BeautifulSoup, url: str) -> Optional[str]:
        return select_text(page, CHAPTER_TITLE_SELECTOR, url=url, site=self.name)

    def _chapter_content_node(self, page: BeautifulSoup, url: str) -> Tag:
        return select_one(page, CHAPTER_CONTENT_SELECTOR, url=url, site=self.name)

    def _chapter_published_at(self, page: BeautifulSoup, url: str) -> Optional[datetime]:
        node = page.select_one(CHAPTER_PUBLISHED_AT_SELECTOR)
        if node is None or not node.get("content"):
            return None
        try:
            return parse_timestamp(node["content"])
        except ValueError as e:
            raise ParseError(
                f"无效的发布时间: {node['content']!r}", url=url, site=self.name, stage="chapter"
            ) from e

    @classmethod
    def get_ordering_function(cls) -> Ordering:
        return compare_by_title_number

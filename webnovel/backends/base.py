"""
后端抽象

每个站点实现一个后端。各后端只在选择器和文本后处理规则上不同，对外接口完全一致：
抓取章节、列出目录、提供排序函数以及小说元数据。
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Pattern, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from webnovel.core.errors import (
    ContentError,
    ParseError,
    TransportError,
    UnknownChapterError,
    UnsupportedSourceError,
)
from webnovel.models.chapter import (
    Chapter,
    ChapterListElem,
    Ordering,
    compare_by_index,
    sort_chapters,
)
from webnovel.utils.corpus import DecoyCorpus, get_corpus
from webnovel.utils.html import PARAGRAPH_TAGS, paragraph_texts, parse_html
from webnovel.utils.http_client import HttpClient, get_default_client

logger = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"\.(\d+)")


class TocEntry(NamedTuple):
    """目录项，包含章节地址"""

    index: int
    title: str
    url: str
    published_at: Optional[datetime] = None


def parse_timestamp(value: str) -> datetime:
    """解析站点给出的ISO 8601时间，无时区时按UTC处理"""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # 部分站点给出7位小数秒
    value = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compare_keys(left: tuple, right: tuple) -> int:
    return (left > right) - (left < right)


class Backend(ABC):
    """站点后端基类"""

    # 站点名称，同时是语料目录名
    name: str = ""
    # 可处理的小说URL
    url_patterns: Sequence[Pattern] = ()
    # 视为段落边界的元素
    paragraph_tags: Tuple[str, ...] = PARAGRAPH_TAGS
    # 是否跳过带class的段落
    skip_classed_paragraphs: bool = False

    def __init__(
        self,
        url: str,
        client: Optional[HttpClient] = None,
        corpus: Optional[DecoyCorpus] = None,
    ):
        """初始化后端

        Args:
            url: 小说页面URL
            client: 共享的HTTP客户端，默认使用进程级客户端
            corpus: 诱饵句子语料，默认加载该站点的语料文件
        """
        match = self.match(url)
        if match is None:
            raise UnsupportedSourceError(url)
        self.url = self.fiction_url(match)
        self.client = client or get_default_client()
        self.corpus = corpus if corpus is not None else get_corpus(self.name)
        self._fiction_page: Optional[BeautifulSoup] = None
        self._toc: Optional[List[TocEntry]] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.url!r})"

    @classmethod
    def match(cls, url: str):
        """返回第一个匹配的URL模式结果"""
        url = url.strip()
        for pattern in cls.url_patterns:
            match = pattern.match(url)
            if match:
                return match
        return None

    @classmethod
    def matches(cls, url: str) -> bool:
        return cls.match(url) is not None

    @classmethod
    def fiction_url(cls, match) -> str:
        """由URL匹配结果得到规范的小说URL"""
        return match.group(0).rstrip("/")

    def fetch_page(self, url: str, stage: str = "fetch") -> BeautifulSoup:
        """抓取并解析页面"""
        try:
            data = self.client.fetch(url)
        except TransportError as e:
            e.site = e.site or self.name
            e.stage = stage
            raise
        return parse_html(data, url=url, site=self.name)

    @property
    def fiction_page(self) -> BeautifulSoup:
        """小说主页，首次访问时抓取"""
        if self._fiction_page is None:
            logger.debug(f"获取小说主页: {self.url}")
            self._fiction_page = self.fetch_page(self.url, stage="fiction")
        return self._fiction_page

    def refresh(self) -> None:
        """丢弃已缓存的主页和目录"""
        self._fiction_page = None
        self._toc = None

    # 小说元数据

    @abstractmethod
    def title(self) -> str:
        """小说标题"""

    @abstractmethod
    def immutable_identifier(self) -> str:
        """不随标题变化的小说标识，可作为本地缓存的主键"""

    @abstractmethod
    def cover_url(self) -> str:
        """封面图片地址"""

    def cover_image(self) -> bytes:
        """封面图片内容"""
        return self.client.fetch(self.cover_url())

    def get_authors(self) -> List[str]:
        return []

    # 目录

    @abstractmethod
    def _list_toc(self) -> List[TocEntry]:
        """从站点读取目录，按站点列出的顺序"""

    def table_of_contents(self) -> List[TocEntry]:
        if self._toc is None:
            self._toc = self._list_toc()
            logger.info(f"[{self.name}] 获取到 {len(self._toc)} 个章节: {self.url}")
        return list(self._toc)

    def get_chapter_list(self) -> List[ChapterListElem]:
        """轻量目录 (序号, 标题)，无需抓取章节正文"""
        return [ChapterListElem(entry.index, entry.title) for entry in self.table_of_contents()]

    def get_chapter_count(self) -> int:
        return len(self.table_of_contents())

    # 章节

    def _index_from_url(self, url: str) -> Optional[int]:
        """站点在URL中编码了章节序号时可覆盖"""
        return None

    def _locate(self, url: str) -> Tuple[int, Optional[TocEntry]]:
        index = self._index_from_url(url)
        if index is not None:
            return index, None
        wanted = url.rstrip("/")
        for entry in self.table_of_contents():
            if entry.url.rstrip("/") == wanted:
                return entry.index, entry
        raise UnknownChapterError("目录中找不到该章节", url=url, site=self.name, stage="toc")

    def get_chapter(self, url: str, index: Optional[int] = None) -> Chapter:
        """抓取并解析单个章节

        Args:
            url: 章节URL
            index: 章节序号，不提供时从目录（或URL）中确定

        Returns:
            清洗后的章节

        Raises:
            TransportError: 抓取失败
            ParseError: 页面缺少预期的结构
            ContentError: 清洗后正文为空
        """
        entry = None
        if index is None:
            index, entry = self._locate(url)
        return self._build_chapter(url, index, entry)

    def get_chapter_by_index(self, index: int) -> Chapter:
        for entry in self.table_of_contents():
            if entry.index == index:
                return self._build_chapter(entry.url, entry.index, entry)
        raise UnknownChapterError(f"目录中没有第 {index} 章", url=self.url, site=self.name, stage="toc")

    def get_chapters(self) -> List[Chapter]:
        """按目录顺序抓取全部章节，任一章节失败则整体失败"""
        chapters = []
        for entry in self.table_of_contents():
            try:
                chapters.append(self._build_chapter(entry.url, entry.index, entry))
            except (TransportError, ParseError, ContentError) as e:
                logger.error(f"[{self.name}] 第 {entry.index} 章获取失败，终止: {e}")
                raise
        return chapters

    def raw_paragraphs(self, url: str) -> List[str]:
        """章节页面未经清洗的段落文本"""
        page = self.fetch_page(url, stage="chapter")
        return self._chapter_paragraphs(page, url)

    def _build_chapter(self, url: str, index: int, entry: Optional[TocEntry]) -> Chapter:
        logger.debug(f"[{self.name}] 获取章节 {index}: {url}")
        page = self.fetch_page(url, stage="chapter")
        title = self._chapter_title(page, url)
        paragraphs = self._chapter_paragraphs(page, url)
        published_at = self._chapter_published_at(page, url)
        if published_at is None and entry is not None:
            published_at = entry.published_at

        content = self.corpus.sanitizer.sanitize("\n".join(paragraphs))
        if not content.strip():
            raise ContentError("清洗后章节内容为空", url=url, site=self.name, stage="sanitize")

        return Chapter(
            index=index,
            title=title,
            content=content,
            url=url,
            parent_url=self.url,
            published_at=published_at,
            metadata=self._chapter_metadata(page, url),
        )

    @abstractmethod
    def _chapter_title(self, page: BeautifulSoup, url: str) -> Optional[str]:
        """章节标题"""

    @abstractmethod
    def _chapter_content_node(self, page: BeautifulSoup, url: str) -> Tag:
        """章节正文所在节点，缺失时抛出ParseError"""

    def _chapter_paragraphs(self, page: BeautifulSoup, url: str) -> List[str]:
        node = self._chapter_content_node(page, url)
        return paragraph_texts(node, self.paragraph_tags, self.skip_classed_paragraphs)

    def _chapter_published_at(self, page: BeautifulSoup, url: str) -> Optional[datetime]:
        return None

    def _chapter_metadata(self, page: BeautifulSoup, url: str) -> dict:
        return {}

    def absolute_url(self, href: str) -> str:
        return urljoin(self.url + "/", href)

    # 排序

    @classmethod
    def get_ordering_function(cls) -> Ordering:
        """章节比较函数，默认按序号"""
        return compare_by_index

    def sort_chapters(self, chapters: Sequence[Chapter]) -> List[Chapter]:
        return sort_chapters(chapters, self.get_ordering_function())

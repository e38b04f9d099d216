import html
import logging
from datetime import datetime
from functools import cmp_to_key
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field, field_validator

from webnovel.core.errors import ChapterFormatError

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
TITLE_TAG = '<h1 class="mainTitle">'
CONTENT_TAG = '<div class="content">'

# 比较函数：a < b 返回负数，相等返回0，a > b 返回正数
Ordering = Callable[["Chapter", "Chapter"], int]


class ChapterListElem(NamedTuple):
    """目录中的一项：(序号, 标题)，无需抓取章节正文"""

    index: int
    title: str


class Chapter(BaseModel):
    """章节内容模型

    content 为清洗后的纯文本，每行一个段落。
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    title: Optional[str] = None
    content: str = ""
    url: str
    parent_url: str
    published_at: Optional[datetime] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("url", "parent_url")
    @classmethod
    def _single_line_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("URL不能为空")
        if "\n" in value:
            raise ValueError("URL不能包含换行")
        return value

    @field_validator("metadata")
    @classmethod
    def _single_line_metadata(cls, value: Dict[str, str]) -> Dict[str, str]:
        cleaned = {}
        for key, item in value.items():
            key, item = key.strip(), item.strip()
            if not key or ":" in key or "\n" in key or "\n" in item:
                raise ValueError(f"无效的元数据项: {key!r}")
            cleaned[key] = item
        return cleaned

    @property
    def paragraphs(self) -> List[str]:
        """正文段落"""
        if not self.content:
            return []
        return self.content.split("\n")

    def list_elem(self) -> ChapterListElem:
        """对应的目录项"""
        return ChapterListElem(self.index, self.title or "")

    def to_text(self) -> str:
        """序列化为归档文本：HTML注释头 + 标题 + 段落"""
        lines = [
            "<!--",
            f"index: {self.index}",
            f"chapter_url: {self.url}",
            f"fiction_url: {self.parent_url}",
            "published_at: "
            + (self.published_at.isoformat() if self.published_at else NOT_FOUND),
            "metadata:",
        ]
        for key, value in sorted(self.metadata.items()):
            lines.append(f"  {key}: {value}")
        lines.append("-->")
        if self.title is not None:
            lines.append(f"{TITLE_TAG}{html.escape(self.title)}</h1>")
        lines.append(CONTENT_TAG)
        for paragraph in self.paragraphs:
            lines.append(f"<p>{html.escape(paragraph)}</p>")
        lines.append("</div>")
        return "\n".join(lines)

    @classmethod
    def from_text(cls, text: str) -> "Chapter":
        """从归档文本解析章节

        Raises:
            ChapterFormatError: 文本格式不正确
        """
        lines = text.strip().split("\n")
        if not lines or lines[0].strip() != "<!--":
            raise ChapterFormatError("缺少章节头部")

        header: Dict[str, str] = {}
        metadata: Dict[str, str] = {}
        in_metadata = False
        end = None
        for position, line in enumerate(lines[1:], start=1):
            if line.startswith("-->"):
                end = position
                break
            if line.startswith("metadata:"):
                in_metadata = True
                continue
            if in_metadata and not line.startswith("  "):
                in_metadata = False
            key, sep, value = line.strip().partition(":")
            if not sep:
                logger.debug(f"忽略无法识别的头部行: {line!r}")
                continue
            if in_metadata:
                metadata[key.strip()] = value.strip()
            else:
                header[key.strip()] = value.strip()
        if end is None:
            raise ChapterFormatError("章节头部未结束")

        try:
            index = int(header["index"])
        except (KeyError, ValueError) as e:
            raise ChapterFormatError(f"无效的章节序号: {header.get('index')!r}") from e
        for key in ("chapter_url", "fiction_url"):
            if not header.get(key):
                raise ChapterFormatError(f"缺少字段: {key}")

        published_at = None
        raw_date = header.get("published_at", NOT_FOUND)
        if raw_date != NOT_FOUND:
            try:
                published_at = datetime.fromisoformat(raw_date)
            except ValueError as e:
                raise ChapterFormatError(f"无效的发布时间: {raw_date!r}") from e

        soup = BeautifulSoup("\n".join(lines[end + 1:]), "html.parser")
        title_node = soup.select_one("h1.mainTitle")
        content_node = soup.select_one("div.content")
        if content_node is None:
            raise ChapterFormatError("缺少正文节点")
        paragraphs = [p.get_text() for p in content_node.find_all("p", recursive=False)]

        return cls(
            index=index,
            title=title_node.get_text() if title_node is not None else None,
            content="\n".join(paragraphs),
            url=header["chapter_url"],
            parent_url=header["fiction_url"],
            published_at=published_at,
            metadata=metadata,
        )

    def __str__(self) -> str:
        return self.to_text()


class ChapterListDiff(BaseModel):
    """本地缓存目录与最新目录的比较结果"""

    removed: List[ChapterListElem] = Field(default_factory=list)
    added: List[ChapterListElem] = Field(default_factory=list)
    retitled: List[Tuple[ChapterListElem, ChapterListElem]] = Field(default_factory=list)
    # 同一标题出现在不同序号：可能是重新编号，也可能是删除后新增，需要抓取正文才能判断
    needs_fetch: List[Tuple[ChapterListElem, ChapterListElem]] = Field(default_factory=list)

    @property
    def removed_indexes(self) -> List[int]:
        return [elem.index for elem in self.removed]

    @property
    def has_changes(self) -> bool:
        return bool(self.removed or self.added or self.retitled)


def diff_chapter_lists(
    cached: Iterable[ChapterListElem], fresh: Iterable[ChapterListElem]
) -> ChapterListDiff:
    """比较本地目录与来源站点的最新目录，检测删除、新增和改名

    Args:
        cached: 本地已下载章节的目录项
        fresh: 刚从站点获取的目录项

    Returns:
        比较结果
    """
    cached = [ChapterListElem(*elem) for elem in cached]
    fresh = [ChapterListElem(*elem) for elem in fresh]
    cached_titles = {elem.index: elem.title for elem in cached}
    fresh_titles = {elem.index: elem.title for elem in fresh}

    diff = ChapterListDiff()
    for elem in cached:
        if elem.index not in fresh_titles:
            diff.removed.append(elem)
        elif fresh_titles[elem.index] != elem.title:
            diff.retitled.append((elem, ChapterListElem(elem.index, fresh_titles[elem.index])))
    for elem in fresh:
        if elem.index not in cached_titles:
            diff.added.append(elem)

    changed = diff.removed + [old for old, _ in diff.retitled]
    fresh_by_title: Dict[str, List[ChapterListElem]] = {}
    for elem in fresh:
        fresh_by_title.setdefault(elem.title, []).append(elem)
    for elem in changed:
        for candidate in fresh_by_title.get(elem.title, []):
            if candidate.index != elem.index:
                diff.needs_fetch.append((elem, candidate))

    if diff.has_changes:
        logger.info(
            f"目录变化: 删除 {len(diff.removed)}, 新增 {len(diff.added)}, "
            f"改名 {len(diff.retitled)}, 待确认 {len(diff.needs_fetch)}"
        )
    return diff


def compare_by_index(a: Chapter, b: Chapter) -> int:
    """默认排序：按序号，序号相同时按章节URL区分"""
    left, right = (a.index, a.url), (b.index, b.url)
    return (left > right) - (left < right)


def sort_chapters(chapters: Iterable[Chapter], ordering: Ordering = compare_by_index) -> List[Chapter]:
    """按后端提供的比较函数排序"""
    return sorted(chapters, key=cmp_to_key(ordering))


def merge_chapters(
    cached: Iterable[Chapter],
    fresh: Iterable[Chapter],
    ordering: Ordering = compare_by_index,
) -> List[Chapter]:
    """合并本地缓存与新获取的章节

    比较结果相等的章节视为同一章，保留新获取的版本；结果有序且无重复。
    """
    # 排序稳定，新章节排在前面即可在去重时胜出
    combined = sort_chapters(list(fresh) + list(cached), ordering)
    merged: List[Chapter] = []
    for chapter in combined:
        if merged and ordering(merged[-1], chapter) == 0:
            continue
        merged.append(chapter)
    return merged

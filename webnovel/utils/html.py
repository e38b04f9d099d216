"""
HTML解析与选择器查询工具

必需节点缺失时统一抛出ParseError，并在错误中写明选择器，方便定位站点改版。
"""
import logging
from typing import Iterable, List, Optional, Union

from bs4 import BeautifulSoup, Comment, Tag, UnicodeDammit

from webnovel.core.errors import ParseError

logger = logging.getLogger(__name__)

# 默认视为段落边界的元素
PARAGRAPH_TAGS = ("p",)


def parse_html(
    data: Union[bytes, str], url: Optional[str] = None, site: Optional[str] = None
) -> BeautifulSoup:
    """解析HTML文档

    Args:
        data: 页面内容
        url: 页面URL，用于错误信息
        site: 站点名称，用于错误信息

    Returns:
        可查询的文档树
    """
    if not data or not data.strip():
        raise ParseError("页面内容为空", url=url, site=site, stage="parse")
    if isinstance(data, bytes):
        data = decode_content(data, url=url)
    return BeautifulSoup(data, "html.parser")


def decode_content(data: bytes, url: Optional[str] = None) -> str:
    """解码页面内容

    先按UTF-8解码；失败时把夹杂的Windows-1252字符（如弯引号）转换为UTF-8后重试，
    仍然失败则忽略无法解码的字节。

    Args:
        data: 字节内容
        url: 页面URL，用于日志

    Returns:
        解码后的字符串
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass
    try:
        return UnicodeDammit.detwingle(data).decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"页面编码无法识别，忽略无效字节: {url}")
        return data.decode("utf-8", errors="ignore")


def select_one(
    tree: Union[BeautifulSoup, Tag],
    selector: str,
    url: Optional[str] = None,
    site: Optional[str] = None,
) -> Tag:
    """查询必需的节点，找不到时抛出ParseError"""
    node = tree.select_one(selector)
    if node is None:
        raise ParseError(
            f"找不到节点: {selector}", url=url, site=site, stage="select"
        )
    return node


def select_text(
    tree: Union[BeautifulSoup, Tag],
    selector: str,
    url: Optional[str] = None,
    site: Optional[str] = None,
) -> str:
    """查询必需节点的文本"""
    return select_one(tree, selector, url=url, site=site).get_text(strip=True)


def select_attr(
    tree: Union[BeautifulSoup, Tag],
    selector: str,
    attr: str,
    url: Optional[str] = None,
    site: Optional[str] = None,
) -> str:
    """查询必需节点的属性值"""
    node = select_one(tree, selector, url=url, site=site)
    value = node.get(attr)
    if not value:
        raise ParseError(
            f"节点 {selector} 缺少属性 {attr}", url=url, site=site, stage="select"
        )
    if isinstance(value, list):
        value = " ".join(value)
    return value.strip()


def paragraph_texts(
    node: Tag,
    paragraph_tags: Iterable[str] = PARAGRAPH_TAGS,
    skip_classed: bool = False,
) -> List[str]:
    """提取内容节点中各段落的文本

    Args:
        node: 章节内容节点
        paragraph_tags: 视为段落的元素
        skip_classed: 跳过带class属性的段落（部分站点的广告段落）

    Returns:
        段落文本列表，不含空段落
    """
    tags = list(paragraph_tags)
    paragraphs = []
    for element in node.find_all(tags):
        if skip_classed and element.get("class"):
            logger.debug(f"跳过带class的段落: {element.get('class')}")
            continue
        text = " ".join(_own_text(element, tags).split())
        if text:
            paragraphs.append(text)
    return paragraphs


def _own_text(element: Tag, tags: List[str]) -> str:
    # 未闭合的<p>会被解析成嵌套段落，嵌套段落的文本由它自己输出
    parts = []
    for text in element.find_all(string=True):
        if isinstance(text, Comment):
            continue
        parent = text.parent
        while parent is not element and parent.name not in tags:
            parent = parent.parent
        if parent is element:
            parts.append(text)
    return " ".join(parts)

"""
反盗版文本清洗

部分站点会在正文中随机插入声明"本文被盗"的诱饵句子。这里按已知语料逐句删除：
字面匹配（只容忍空白差异），不做模糊匹配，以免误删正常内容。
"""
import logging
import re
from typing import Iterable, List, Optional, Pattern

logger = logging.getLogger(__name__)


def normalize_whitespace(text: str) -> str:
    """合并连续空白并去除首尾空白"""
    return " ".join(text.split())


def _compile(sentence: str) -> Pattern:
    # 句内任意空白都可以匹配
    return re.compile(r"\s+".join(re.escape(token) for token in sentence.split()))


class TextSanitizer:
    """根据诱饵句子语料清洗正文"""

    def __init__(self, sentences: Iterable[str]):
        """初始化清洗器

        Args:
            sentences: 已知诱饵句子
        """
        unique = {normalize_whitespace(s) for s in sentences}
        unique.discard("")
        # 较长的句子先匹配，包含关系时整句删除
        self.sentences: List[str] = sorted(unique, key=lambda s: (-len(s), s))
        self._patterns = [_compile(s) for s in self.sentences]

    def sanitize(self, raw_text: str) -> str:
        """删除正文中所有已知诱饵句子

        按行（段落）处理，删除后为空的段落直接丢弃；没有命中的段落原样保留。

        Args:
            raw_text: 提取出的正文，每行一个段落

        Returns:
            清洗后的正文
        """
        if not self._patterns or not raw_text:
            return raw_text

        cleaned: List[str] = []
        removed = 0
        for paragraph in raw_text.split("\n"):
            result = self._strip_paragraph(paragraph)
            if result is None:
                cleaned.append(paragraph)
                continue
            removed += 1
            if result:
                cleaned.append(result)

        if not removed:
            return raw_text
        logger.debug(f"清洗了 {removed} 个含诱饵句子的段落")
        return "\n".join(cleaned)

    def _strip_paragraph(self, paragraph: str) -> Optional[str]:
        """删除段落中的诱饵句子，未命中时返回None"""
        result = paragraph
        matched = False
        while True:
            previous = result
            for pattern in self._patterns:
                result = pattern.sub(" ", result)
            if result == previous:
                break
            # 删除后可能拼接出新的命中，直到不再变化
            matched = True
        if not matched:
            return None
        return normalize_whitespace(result)

    def contains_decoy(self, text: str) -> bool:
        """正文中是否仍有已知诱饵句子"""
        return any(pattern.search(text) for pattern in self._patterns)


def sanitize(raw_text: str, corpus: Iterable[str]) -> str:
    """按给定站点的语料清洗正文，不修改语料本身"""
    return TextSanitizer(corpus).sanitize(raw_text)

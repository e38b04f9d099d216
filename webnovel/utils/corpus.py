"""
诱饵句子语料的读写

每个站点一个UTF-8文本文件，一行一句。正常使用时只读；只有语料构建工具会追加内容。
"""
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from webnovel.core.config import settings
from webnovel.utils.sanitizer import TextSanitizer, normalize_whitespace

logger = logging.getLogger(__name__)


def corpus_file(site: str, root: Optional[Union[str, Path]] = None) -> Path:
    """站点语料文件路径"""
    return Path(root or settings.CORPUS_PATH) / site / settings.CORPUS_FILE_NAME


class DecoyCorpus:
    """某个站点的已知诱饵句子集合（只追加）"""

    def __init__(
        self,
        site: str,
        sentences: Iterable[str] = (),
        path: Optional[Union[str, Path]] = None,
    ):
        self.site = site
        self.path = Path(path) if path else corpus_file(site)
        self._sentences: List[str] = []
        self._known = set()
        self._sanitizer: Optional[TextSanitizer] = None
        self.merge(sentences)

    @classmethod
    def load(cls, site: str, root: Optional[Union[str, Path]] = None) -> "DecoyCorpus":
        """从文件加载语料，文件不存在时返回空语料

        Args:
            site: 站点名称
            root: 语料根目录，默认使用配置中的 CORPUS_PATH

        Returns:
            语料实例
        """
        path = corpus_file(site, root)
        corpus = cls(site, path=path)
        if not path.exists():
            logger.debug(f"站点 {site} 没有语料文件: {path}")
            return corpus

        with open(path, "r", encoding="utf-8") as f:
            # 空行忽略，其余行一律视为句子，兼容以后新增的内容
            lines = [line.rstrip("\r\n") for line in f if line.strip()]
        corpus._append(lines)
        logger.debug(f"加载站点 {site} 的语料: {len(corpus)} 句")
        return corpus

    @property
    def sentences(self) -> List[str]:
        return list(self._sentences)

    @property
    def sanitizer(self) -> TextSanitizer:
        """基于当前语料的清洗器"""
        if self._sanitizer is None:
            self._sanitizer = TextSanitizer(self._sentences)
        return self._sanitizer

    def _append(self, sentences: Iterable[str]) -> List[str]:
        added = []
        for sentence in sentences:
            key = normalize_whitespace(sentence)
            if not key or key in self._known:
                continue
            self._known.add(key)
            self._sentences.append(sentence)
            added.append(sentence)
        if added:
            self._sanitizer = None
        return added

    def merge(self, fragments: Iterable[str]) -> List[str]:
        """合并新发现的句子，重复项自动去除

        Returns:
            真正新增的句子
        """
        return self._append(normalize_whitespace(f) for f in fragments)

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """写回语料文件"""
        path = Path(path) if path else self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for sentence in self._sentences:
                f.write(f"{sentence}\n")
        logger.info(f"已保存站点 {self.site} 的语料 ({len(self)} 句): {path}")
        return path

    def __contains__(self, sentence: str) -> bool:
        return normalize_whitespace(sentence) in self._known

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sentences))

    def __len__(self) -> int:
        return len(self._sentences)


@lru_cache(maxsize=None)
def get_corpus(site: str, root: Optional[str] = None) -> DecoyCorpus:
    """进程内共享的只读语料"""
    return DecoyCorpus.load(site, root)

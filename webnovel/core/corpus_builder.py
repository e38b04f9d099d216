"""
反盗版语料构建

同一章节多次抓取时，正文相同，只有随机插入的诱饵句子不同。重复抓取同一章节，
两两比较样本，把多次出现在差异中的文本块加入站点语料。

这是离线维护工具，不在正常抓取流程中调用。
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

from webnovel.backends.base import Backend
from webnovel.core.config import settings
from webnovel.core.errors import ContentError, ParseError, TransportError
from webnovel.utils.corpus import DecoyCorpus
from webnovel.utils.sanitizer import normalize_whitespace

logger = logging.getLogger(__name__)


@dataclass
class SampleFailure:
    """一次失败的抓取"""

    sample: int
    error: str
    retryable: bool = False


@dataclass
class CorpusBuildReport:
    """一次语料构建的结果"""

    site: str
    chapter_url: str
    samples_requested: int
    samples_collected: int = 0
    failures: List[SampleFailure] = field(default_factory=list)
    candidates: Dict[str, int] = field(default_factory=dict)
    accepted: List[str] = field(default_factory=list)
    new_sentences: List[str] = field(default_factory=list)


class CorpusBuilder:
    """通过重复抓取的差异分析发现诱饵句子"""

    def __init__(
        self,
        backend: Backend,
        corpus: Optional[DecoyCorpus] = None,
        samples: Optional[int] = None,
        min_occurrences: Optional[int] = None,
        min_fragment_words: Optional[int] = None,
        edit_similarity: Optional[float] = None,
    ):
        """初始化语料构建器

        Args:
            backend: 站点后端
            corpus: 要更新的语料，默认从文件重新加载该站点语料
            samples: 抓取次数
            min_occurrences: 片段至少出现在几次两两比较中才会被接受
            min_fragment_words: 候选片段的最少词数
            edit_similarity: 两段相似度不低于此值时视为正常修订而不是插入
        """
        self.backend = backend
        self.corpus = corpus if corpus is not None else DecoyCorpus.load(backend.name)
        self.samples = settings.CORPUS_SAMPLE_COUNT if samples is None else samples
        self.min_occurrences = (
            settings.CORPUS_MIN_OCCURRENCES if min_occurrences is None else min_occurrences
        )
        self.min_fragment_words = (
            settings.CORPUS_MIN_FRAGMENT_WORDS if min_fragment_words is None else min_fragment_words
        )
        self.edit_similarity = (
            settings.CORPUS_EDIT_SIMILARITY if edit_similarity is None else edit_similarity
        )

    def collect_samples(self, chapter_url: str) -> Tuple[List[List[str]], List[SampleFailure]]:
        """重复抓取同一章节，按当前语料清洗

        失败的抓取只记录，不中断整个流程。

        Returns:
            (各样本的段落列表, 失败记录)
        """
        samples: List[List[str]] = []
        failures: List[SampleFailure] = []
        for i in range(self.samples):
            logger.info(f"第 {i + 1}/{self.samples} 次抓取: {chapter_url}")
            try:
                paragraphs = self.backend.raw_paragraphs(chapter_url)
                content = self.corpus.sanitizer.sanitize("\n".join(paragraphs))
                if not content.strip():
                    raise ContentError(
                        "清洗后章节内容为空", url=chapter_url, site=self.backend.name, stage="sample"
                    )
            except (TransportError, ParseError, ContentError) as e:
                logger.warning(f"第 {i + 1} 次抓取失败，跳过: {e}")
                retryable = isinstance(e, TransportError) and e.retryable
                failures.append(SampleFailure(i, str(e), retryable))
                continue
            samples.append(content.split("\n"))
        return samples, failures

    def find_candidates(self, samples: Sequence[Sequence[str]]) -> Dict[str, int]:
        """两两比较样本，统计每个差异片段出现在多少次比较中"""
        normalized = []
        for sample in samples:
            paragraphs = [normalize_whitespace(p) for p in sample]
            normalized.append([p for p in paragraphs if p])

        counts: Counter = Counter()
        for left, right in combinations(normalized, 2):
            counts.update(set(self._compare(left, right)))
        return dict(counts)

    def _compare(self, left: List[str], right: List[str]) -> List[str]:
        fragments = []
        matcher = SequenceMatcher(None, left, right, autojunk=False)
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                continue
            fragments.extend(self._unmatched(left[i1:i2], right[j1:j2]))
            fragments.extend(self._unmatched(right[j1:j2], left[i1:i2]))
        return fragments

    def _unmatched(self, paragraphs: List[str], others: List[str]) -> List[str]:
        """找出只存在于一侧的文本

        与另一侧某段足够相似的段落视为同一段的修订，只取其中整句插入的部分；
        其余段落整体作为候选。
        """
        fragments = []
        for paragraph in paragraphs:
            partner, ratio = None, 0.0
            for other in others:
                score = self._similarity(paragraph, other)
                if score > ratio:
                    partner, ratio = other, score
            if partner is None or ratio < self.edit_similarity:
                if len(paragraph.split()) >= self.min_fragment_words:
                    fragments.append(paragraph)
                continue
            fragments.extend(self._inserted_words(paragraph, partner))
        return fragments

    @staticmethod
    def _similarity(paragraph: str, other: str) -> float:
        """较短一段的词有多少按顺序出现在另一段中"""
        words, other_words = paragraph.split(), other.split()
        shorter = min(len(words), len(other_words))
        if not shorter:
            return 0.0
        matcher = SequenceMatcher(None, words, other_words, autojunk=False)
        matched = sum(block.size for block in matcher.get_matching_blocks())
        return matched / shorter

    def _inserted_words(self, paragraph: str, partner: str) -> List[str]:
        # 词级比较：只接受纯插入的连续词，替换（错别字等）不算
        words, partner_words = paragraph.split(), partner.split()
        matcher = SequenceMatcher(None, words, partner_words, autojunk=False)
        fragments = []
        for tag, i1, i2, _, _ in matcher.get_opcodes():
            if tag == "delete" and i2 - i1 >= self.min_fragment_words:
                fragments.append(" ".join(words[i1:i2]))
        return fragments

    def build(self, chapter_url: str, save: bool = True) -> CorpusBuildReport:
        """抓取样本、分析差异并更新语料

        Args:
            chapter_url: 用于采样的章节URL
            save: 有新句子时是否写回语料文件

        Returns:
            构建报告
        """
        report = CorpusBuildReport(
            site=self.backend.name, chapter_url=chapter_url, samples_requested=self.samples
        )
        samples, report.failures = self.collect_samples(chapter_url)
        report.samples_collected = len(samples)
        if len(samples) < 2:
            logger.warning(f"有效样本不足 ({len(samples)})，无法比较")
            return report

        report.candidates = self.find_candidates(samples)
        report.accepted = sorted(
            (fragment for fragment, count in report.candidates.items() if count >= self.min_occurrences),
            key=lambda fragment: (-report.candidates[fragment], fragment),
        )
        for fragment, count in report.candidates.items():
            if count < self.min_occurrences:
                logger.debug(f"只出现 {count} 次，忽略: {fragment}")

        report.new_sentences = self.corpus.merge(report.accepted)
        for sentence in report.new_sentences:
            logger.info(f"发现新的诱饵句子: {sentence}")
        if report.new_sentences and save:
            self.corpus.save()
        logger.info(
            f"[{report.site}] 样本 {report.samples_collected}/{report.samples_requested}, "
            f"候选 {len(report.candidates)}, 新增 {len(report.new_sentences)}"
        )
        return report

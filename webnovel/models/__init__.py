from webnovel.models.chapter import (
    Chapter,
    ChapterListDiff,
    ChapterListElem,
    diff_chapter_lists,
    merge_chapters,
    sort_chapters,
)

__all__ = [
    "Chapter",
    "ChapterListElem",
    "ChapterListDiff",
    "diff_chapter_lists",
    "merge_chapters",
    "sort_chapters",
]

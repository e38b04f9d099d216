import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from webnovel.backends import freewebnovel
from webnovel.backends.base import Backend, TocEntry
from webnovel.models.chapter import Ordering
from webnovel.utils.html import select_attr, select_one, select_text


class LibRead(Backend):
    """LibRead 后端，页面结构与 FreeWebNovel 相同，只是域名不同"""

    name = "libread"
    url_patterns = [
        re.compile(r"https?://(?:www\.)?libread\.com/libread/(?P<slug>[\w-]+)")
    ]

    def title(self) -> str:
        return freewebnovel.fiction_title(self.fiction_page, self.url, self.name)

    def immutable_identifier(self) -> str:
        return self.match(self.url).group("slug")

    def cover_url(self) -> str:
        src = select_attr(
            self.fiction_page, freewebnovel.COVER_SELECTOR, "src", url=self.url, site=self.name
        )
        return self.absolute_url(src)

    def get_authors(self) -> List[str]:
        return freewebnovel.fiction_authors(self.fiction_page)

    def _list_toc(self) -> List[TocEntry]:
        return freewebnovel.chapter_entries(
            self.fiction_page, self.url, self.name, self.absolute_url
        )

    def _chapter_title(self, page: BeautifulSoup, url: str) -> Optional[str]:
        return select_text(page, freewebnovel.CHAPTER_TITLE_SELECTOR, url=url, site=self.name)

    def _chapter_content_node(self, page: BeautifulSoup, url: str) -> Tag:
        return select_one(page, freewebnovel.CHAPTER_CONTENT_SELECTOR, url=url, site=self.name)

    @classmethod
    def get_ordering_function(cls) -> Ordering:
        return freewebnovel.compare_by_chapter_number

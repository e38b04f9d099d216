from datetime import datetime, timezone

import pytest

from conftest import (
    DECOY,
    FWN_FICTION_URL,
    LIBREAD_FICTION_URL,
    LNW_FICTION_URL,
    RR_FICTION_URL,
)
from webnovel.backends.base import parse_timestamp
from webnovel.backends.freewebnovel import FreeWebNovel
from webnovel.backends.libread import LibRead
from webnovel.backends.lightnovelworld import LightNovelWorld
from webnovel.backends.royalroad import RoyalRoad
from webnovel.core.errors import (
    ContentError,
    ParseError,
    TransportError,
    UnknownChapterError,
    UnsupportedSourceError,
)
from webnovel.models.chapter import Chapter, ChapterListElem

RR_CHAPTERS = [
    ("/fiction/21220/mother-of-learning/chapter/301778/1-good-morning-brother", "1. Good Morning Brother", "2016-05-21T01:37:53.0000000Z"),
    ("/fiction/21220/mother-of-learning/chapter/301780/2-life-is-a-dream", "2. Life is a Dream", "2016-05-21T01:42:10Z"),
    ("/fiction/21220/mother-of-learning/chapter/301781/3-lifes-little-problems", "3. Life's Little Problems", "2016-05-21T01:48:00Z"),
]
RR_CHAPTER_1 = "https://www.royalroad.com" + RR_CHAPTERS[0][0]
RR_CHAPTER_2 = "https://www.royalroad.com" + RR_CHAPTERS[1][0]
RR_CHAPTER_3 = "https://www.royalroad.com" + RR_CHAPTERS[2][0]


@pytest.fixture
def royalroad(fake_client, pages, decoy_corpus):
    fake_client.add(RR_FICTION_URL, pages.royalroad_fiction(RR_CHAPTERS))
    return RoyalRoad(RR_FICTION_URL, client=fake_client, corpus=decoy_corpus)


class TestRoyalRoad:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.royalroad.com/fiction/21220/mother-of-learning",
            "https://royalroad.com/fiction/21220/mother-of-learning/",
            "http://www.royalroad.com/fiction/21220",
            "https://www.royalroad.com/fiction/21220/mother-of-learning/chapter/301778/1-good-morning-brother",
        ],
    )
    def test_matches(self, url):
        assert RoyalRoad.matches(url)

    def test_canonical_url(self, fake_client, decoy_corpus):
        backend = RoyalRoad(
            "https://royalroad.com/fiction/21220/chapter/301778", client=fake_client, corpus=decoy_corpus
        )
        assert backend.url == "https://www.royalroad.com/fiction/21220"

    def test_rejects_other_sites(self, fake_client, decoy_corpus):
        with pytest.raises(UnsupportedSourceError):
            RoyalRoad(FWN_FICTION_URL, client=fake_client, corpus=decoy_corpus)

    def test_metadata(self, royalroad, fake_client):
        assert royalroad.title() == "Mother of Learning"
        assert royalroad.immutable_identifier() == "21220"
        assert royalroad.get_authors() == ["nobody103"]
        assert royalroad.cover_url() == "https://www.royalroad.com/covers/21220.jpg"
        # the fiction page is fetched once and cached
        assert fake_client.requests == [RR_FICTION_URL]

    def test_cover_image(self, royalroad, fake_client):
        fake_client.add("https://www.royalroad.com/covers/21220.jpg", b"\x89PNG")
        assert royalroad.cover_image() == b"\x89PNG"

    def test_chapter_list(self, royalroad):
        assert royalroad.get_chapter_list() == [
            ChapterListElem(1, "1. Good Morning Brother"),
            ChapterListElem(2, "2. Life is a Dream"),
            ChapterListElem(3, "3. Life's Little Problems"),
        ]
        assert royalroad.get_chapter_count() == 3

    def test_table_of_contents(self, royalroad):
        toc = royalroad.table_of_contents()
        assert toc[0].url == RR_CHAPTER_1
        assert toc[0].published_at == datetime(2016, 5, 21, 1, 37, 53, tzinfo=timezone.utc)

    def test_get_chapter_removes_decoys(self, royalroad, fake_client, pages):
        fake_client.add(
            RR_CHAPTER_2,
            pages.royalroad_chapter(
                "2. Life is a Dream",
                [
                    "Zorian stared at the ceiling.",
                    f"He was awake. {DECOY} Kirielle was not.",
                    DECOY,
                    "Breakfast was waiting.",
                ],
            ),
        )

        chapter = royalroad.get_chapter(RR_CHAPTER_2)

        assert chapter == Chapter(
            index=2,
            title="2. Life is a Dream",
            content="Zorian stared at the ceiling.\nHe was awake. Kirielle was not.\nBreakfast was waiting.",
            url=RR_CHAPTER_2,
            parent_url=RR_FICTION_URL,
            published_at=datetime(2016, 5, 21, 1, 42, 10, tzinfo=timezone.utc),
        )
        assert DECOY not in chapter.content

    def test_get_chapter_with_explicit_index_skips_toc(self, royalroad, fake_client, pages):
        fake_client.add(RR_CHAPTER_1, pages.royalroad_chapter("1. Good Morning Brother", ["Text."]))
        chapter = royalroad.get_chapter(RR_CHAPTER_1, index=1)
        assert chapter.index == 1
        assert chapter.published_at is None
        assert fake_client.requests == [RR_CHAPTER_1]

    def test_get_chapter_by_index(self, royalroad, fake_client, pages):
        fake_client.add(RR_CHAPTER_3, pages.royalroad_chapter("3. Life's Little Problems", ["Text."]))
        assert royalroad.get_chapter_by_index(3).url == RR_CHAPTER_3
        with pytest.raises(UnknownChapterError):
            royalroad.get_chapter_by_index(4)

    def test_unknown_chapter(self, royalroad):
        with pytest.raises(UnknownChapterError) as exc_info:
            royalroad.get_chapter(RR_FICTION_URL + "/chapter/999999/gone")
        assert exc_info.value.site == "royalroad"

    def test_missing_content_container_is_a_parse_error(self, royalroad, fake_client):
        fake_client.add(RR_CHAPTER_1, "<html><body><div class='fic-header'><h1>t</h1></div></body></html>")
        with pytest.raises(ParseError) as exc_info:
            royalroad.get_chapter(RR_CHAPTER_1)
        assert "div.chapter-inner.chapter-content" in str(exc_info.value)
        assert exc_info.value.url == RR_CHAPTER_1

    def test_page_with_windows_1252_quotes_is_still_parsed(self, royalroad, fake_client, pages):
        page = pages.royalroad_chapter("1. Good Morning Brother", ["QUOTE_OPENhiQUOTE_CLOSE, he said."])
        page = page.encode("utf-8").replace(b"QUOTE_OPEN", b"\x93").replace(b"QUOTE_CLOSE", b"\x94")
        fake_client.add(RR_CHAPTER_1, page)

        chapter = royalroad.get_chapter(RR_CHAPTER_1)

        assert chapter.content == "“hi”, he said."

    def test_unclosed_paragraphs_are_not_duplicated(self, royalroad, fake_client, pages):
        fake_client.add(RR_CHAPTER_1, pages.royalroad_chapter("1. Good Morning Brother", ["One<p>Two<p>Three"]))
        assert royalroad.get_chapter(RR_CHAPTER_1).paragraphs == ["One", "Two", "Three"]

    def test_chapter_made_only_of_decoys_is_a_content_error(self, royalroad, fake_client, pages):
        fake_client.add(RR_CHAPTER_1, pages.royalroad_chapter("1. Good Morning Brother", [DECOY]))
        with pytest.raises(ContentError):
            royalroad.get_chapter(RR_CHAPTER_1)

    def test_transport_error_carries_site_and_stage(self, royalroad):
        with pytest.raises(TransportError) as exc_info:
            royalroad.get_chapter(RR_CHAPTER_1)
        assert exc_info.value.site == "royalroad"
        assert exc_info.value.stage == "chapter"
        assert exc_info.value.status_code == 404
        assert not exc_info.value.retryable

    def test_get_chapters_fails_as_a_whole(self, royalroad, fake_client, pages, caplog):
        fake_client.add(RR_CHAPTER_1, pages.royalroad_chapter("1. Good Morning Brother", ["One."]))
        fake_client.add(RR_CHAPTER_2, TransportError("HTTP 503", status_code=503, url=RR_CHAPTER_2))
        fake_client.add(RR_CHAPTER_3, pages.royalroad_chapter("3. Life's Little Problems", ["Three."]))

        with pytest.raises(TransportError):
            royalroad.get_chapters()

        assert RR_CHAPTER_3 not in fake_client.requests
        assert "第 2 章获取失败" in caplog.text

    def test_get_chapters(self, royalroad, fake_client, pages):
        for href, name, _ in RR_CHAPTERS:
            fake_client.add("https://www.royalroad.com" + href, pages.royalroad_chapter(name, [name]))
        chapters = royalroad.get_chapters()
        assert [c.index for c in chapters] == [1, 2, 3]
        assert chapters[2].content == "3. Life's Little Problems"

    def test_empty_table_of_contents_is_a_parse_error(self, fake_client, pages, decoy_corpus):
        fake_client.add(RR_FICTION_URL, pages.royalroad_fiction([]))
        backend = RoyalRoad(RR_FICTION_URL, client=fake_client, corpus=decoy_corpus)
        with pytest.raises(ParseError):
            backend.get_chapter_list()

    def test_refresh_refetches_fiction_page(self, royalroad, fake_client, pages):
        assert royalroad.get_chapter_count() == 3
        fake_client.add(RR_FICTION_URL, pages.royalroad_fiction(RR_CHAPTERS[:2]))
        assert royalroad.get_chapter_count() == 3
        royalroad.refresh()
        assert royalroad.get_chapter_count() == 2

    def test_ordering_breaks_index_ties_by_chapter_id(self):
        older = Chapter(index=2, url=RR_CHAPTER_2, parent_url=RR_FICTION_URL)
        newer = Chapter(index=2, url=RR_CHAPTER_3, parent_url=RR_FICTION_URL)
        first = Chapter(index=1, url=RR_CHAPTER_1, parent_url=RR_FICTION_URL)
        compare = RoyalRoad.get_ordering_function()
        assert compare(older, newer) < 0
        assert compare(newer, older) > 0
        assert compare(first, older) < 0
        assert compare(first, first) == 0

    def test_uses_shipped_corpus_by_default(self, fake_client):
        backend = RoyalRoad(RR_FICTION_URL, client=fake_client)
        assert len(backend.corpus) > 0


FWN_CHAPTERS = [
    ("/the-guide-to-conquering-earthlings/chapter-1", "Chapter 1 - Prologue"),
    ("/the-guide-to-conquering-earthlings/chapter-2", "Chapter 2 - Arrival"),
]


class TestFreeWebNovelAndLibRead:
    @pytest.fixture(params=[(FreeWebNovel, FWN_FICTION_URL), (LibRead, LIBREAD_FICTION_URL)])
    def backend(self, request, fake_client, pages, empty_corpus):
        backend_cls, url = request.param
        fake_client.add(url, pages.freewebnovel_fiction("the-guide-to-conquering-earthlings", FWN_CHAPTERS))
        return backend_cls(url, client=fake_client, corpus=empty_corpus)

    def test_metadata(self, backend):
        assert backend.title() == "The Guide to Conquering Earthlings"
        assert backend.immutable_identifier() == "the-guide-to-conquering-earthlings"
        # genre links share the author link class
        assert backend.get_authors() == ["Ye Fei Ran", "叶斐然"]
        assert backend.cover_url().endswith("/files/article/image/the-guide-to-conquering-earthlings.jpg")

    def test_chapter_list(self, backend):
        assert backend.get_chapter_list() == [
            ChapterListElem(1, "Chapter 1 - Prologue"),
            ChapterListElem(2, "Chapter 2 - Arrival"),
        ]

    def test_get_chapter(self, backend, fake_client, pages):
        url = backend.table_of_contents()[1].url
        fake_client.add(url, pages.freewebnovel_chapter("Chapter 2 - Arrival", ["The ship landed.", "  ", "Nobody noticed."]))

        chapter = backend.get_chapter(url)

        assert chapter.index == 2
        assert chapter.title == "Chapter 2 - Arrival"
        assert chapter.paragraphs == ["The ship landed.", "Nobody noticed."]
        assert chapter.parent_url == backend.url

    def test_ordering_uses_chapter_number_for_ties(self, backend):
        a = Chapter(index=1, url=backend.url + "/chapter-2", parent_url=backend.url)
        b = Chapter(index=1, url=backend.url + "/chapter-10", parent_url=backend.url)
        compare = backend.get_ordering_function()
        assert compare(a, b) < 0
        assert compare(b, a) > 0


LNW_SLUG = "the-perfect-run-24071713"
LNW_CHAPTERS_URL = LNW_FICTION_URL + "/chapters"


@pytest.fixture
def lightnovelworld(fake_client, pages, empty_corpus):
    fake_client.add(LNW_FICTION_URL, pages.lightnovelworld_fiction())
    return LightNovelWorld(LNW_FICTION_URL, client=fake_client, corpus=empty_corpus)


class TestLightNovelWorld:
    def test_metadata(self, lightnovelworld):
        assert lightnovelworld.title() == "The Perfect Run"
        assert lightnovelworld.get_authors() == ["Void Herald"]
        assert lightnovelworld.immutable_identifier() == LNW_SLUG
        assert lightnovelworld.cover_url().endswith("01261-the-perfect-run.jpg")

    def test_paginated_chapter_list(self, lightnovelworld, fake_client, pages):
        fake_client.add(
            LNW_CHAPTERS_URL,
            pages.lightnovelworld_chapter_list(LNW_SLUG, [(1, "Chapter 1: Quicksave"), (2, "Chapter 2: Rust")], page_count=2),
        )
        fake_client.add(
            LNW_CHAPTERS_URL + "?page=2",
            pages.lightnovelworld_chapter_list(LNW_SLUG, [(3, "Chapter 3: Ghosts")], page_count=2),
        )

        assert lightnovelworld.get_chapter_list() == [
            ChapterListElem(1, "Chapter 1: Quicksave"),
            ChapterListElem(2, "Chapter 2: Rust"),
            ChapterListElem(3, "Chapter 3: Ghosts"),
        ]
        assert lightnovelworld.table_of_contents()[2].url == LNW_FICTION_URL + "/chapter-3"

    def test_get_chapter_by_index_builds_url(self, lightnovelworld, fake_client, pages):
        url = LNW_FICTION_URL + "/chapter-7"
        fake_client.add(
            url,
            pages.lightnovelworld_chapter(
                "Chapter 7: Meltdown",
                [
                    "<p>Ryan pressed the button.</p>",
                    '<p class="x8f2a">Visit lightnovelworld for the latest chapters.</p>',
                    "<p>Nothing happened.</p>",
                ],
            ),
        )

        chapter = lightnovelworld.get_chapter_by_index(7)

        assert chapter.index == 7
        assert chapter.title == "Chapter 7: Meltdown"
        assert chapter.content == "Ryan pressed the button.\nNothing happened."
        assert chapter.published_at == datetime(2021, 10, 17, 8, 9, 31, tzinfo=timezone.utc)
        # neither the fiction page nor the chapter list is needed
        assert fake_client.requests == [url]

    def test_index_is_read_from_url(self, lightnovelworld, fake_client, pages):
        url = LNW_FICTION_URL + "/chapter-12/"
        fake_client.add(url, pages.lightnovelworld_chapter("Chapter 12", ["<p>Text.</p>"]))
        assert lightnovelworld.get_chapter(url).index == 12

    def test_invalid_publication_date(self, lightnovelworld, fake_client, pages):
        url = LNW_FICTION_URL + "/chapter-1"
        fake_client.add(url, pages.lightnovelworld_chapter("Chapter 1", ["<p>Text.</p>"], published="soon"))
        with pytest.raises(ParseError):
            lightnovelworld.get_chapter(url)

    def test_ordering_uses_title_number_for_ties(self):
        a = Chapter(index=5, title="Chapter 9: Nine", url=LNW_FICTION_URL + "/chapter-5", parent_url=LNW_FICTION_URL)
        b = Chapter(index=5, title="Chapter 10: Ten", url=LNW_FICTION_URL + "/chapter-5-b", parent_url=LNW_FICTION_URL)
        compare = LightNovelWorld.get_ordering_function()
        assert compare(a, b) < 0
        assert compare(b, a) > 0


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2016-05-21T01:37:53Z", datetime(2016, 5, 21, 1, 37, 53, tzinfo=timezone.utc)),
        ("2016-05-21T01:37:53.1234567+00:00", datetime(2016, 5, 21, 1, 37, 53, 123456, tzinfo=timezone.utc)),
        ("2021-10-17T08:09:31", datetime(2021, 10, 17, 8, 9, 31, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected

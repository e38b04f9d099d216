import logging

import pytest

from webnovel.core.errors import TransportError
from webnovel.utils.corpus import DecoyCorpus, get_corpus

RR_FICTION_URL = "https://www.royalroad.com/fiction/21220/mother-of-learning"
FWN_FICTION_URL = "https://freewebnovel.com/the-guide-to-conquering-earthlings.html"
LIBREAD_FICTION_URL = "https://libread.com/libread/the-guide-to-conquering-earthlings"
LNW_FICTION_URL = "https://www.lightnovelworld.com/novel/the-perfect-run-24071713"

DECOY = "If you spot this narrative on Amazon, know that it has been stolen. Report the violation."


class FakeHttpClient:
    """Serves canned pages by URL; a list of bodies is served in turn, the last one repeating."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requests = []

    def add(self, url, *bodies):
        self.pages[url] = list(bodies)

    def fetch(self, url):
        self.requests.append(url)
        bodies = self.pages.get(url)
        if bodies is None:
            raise TransportError("HTTP 404", status_code=404, url=url, stage="fetch")
        if not isinstance(bodies, list):
            bodies = [bodies]
        body = bodies.pop(0) if len(bodies) > 1 else bodies[0]
        self.pages[url] = bodies
        if isinstance(body, Exception):
            raise body
        return body.encode("utf-8") if isinstance(body, str) else body


class Pages:
    """HTML builders mimicking each site's layout."""

    @staticmethod
    def royalroad_fiction(chapters, title="Mother of Learning"):
        rows = "".join(
            f'<tr class="chapter-row"><td><a href="{href}">{name}</a></td>'
            f'<td><time datetime="{when}">some time ago</time></td></tr>'
            for href, name, when in chapters
        )
        return f"""<html><head><title>{title}</title></head><body>
<div class="row fic-header">
  <div class="cover-art-container"><img class="thumbnail" src="/covers/21220.jpg"></div>
  <div class="fic-title"><div class="col">
    <h1 class="font-white">{title}</h1>
    <h4><span>by </span><span><a href="/profile/1">nobody103</a></span></h4>
  </div></div>
</div>
<table id="chapters"><thead><tr><th>Name</th><th>Release</th></tr></thead>
<tbody>{rows}</tbody></table>
</body></html>"""

    @staticmethod
    def royalroad_chapter(title, paragraphs):
        body = "".join(f"<p>{p}</p>" for p in paragraphs)
        return f"""<html><body>
<div class="row fic-header"><div class="col"><h1 class="font-white">{title}</h1></div></div>
<div class="page-content"><div class="chapter-inner chapter-content">{body}</div></div>
</body></html>"""

    @staticmethod
    def freewebnovel_fiction(slug, chapters, title="The Guide to Conquering Earthlings"):
        items = "".join(
            f'<li><a class="con" href="{href}" title="{name}">{name}</a></li>' for href, name in chapters
        )
        return f"""<html><body>
<div class="m-book1"><div class="pic"><img src="/files/article/image/{slug}.jpg"></div>
<h1 class="tit">{title}</h1>
<a class="a1" href="/author/Ye Fei Ran">Ye Fei Ran</a>
<a class="a1" href="/genre/Romance">Romance</a>
<a class="a1" href="/authors/叶斐然">叶斐然</a></div>
<div class="m-newest2"><ul id="idData">{items}</ul></div>
</body></html>"""

    @staticmethod
    def freewebnovel_chapter(title, paragraphs):
        body = "".join(f"<p>{p}</p>" for p in paragraphs)
        return f"""<html><body>
<div class="top"><span class="chapter">{title}</span></div>
<div class="txt"><div id="article">{body}</div></div>
</body></html>"""

    @staticmethod
    def lightnovelworld_fiction(title="The Perfect Run"):
        return f"""<html><head>
<meta property="og:image" content="https://static.lightnovelworld.com/bookcover/300x400/01261-the-perfect-run.jpg">
</head><body>
<h1 class="novel-title">
{title}
</h1>
<div class="author"><a href="/author/void-herald"><span>Void Herald</span></a></div>
</body></html>"""

    @staticmethod
    def lightnovelworld_chapter_list(slug, chapters, page_count=1):
        items = "".join(
            f'<li><a href="/novel/{slug}/chapter-{number}" title="{name}">'
            f'<span class="chapter-no">{number}</span><strong class="chapter-title">{name}</strong></a></li>'
            for number, name in chapters
        )
        pagination = "".join(f'<li><a href="?page={i}">{i}</a></li>' for i in range(1, page_count + 1))
        if page_count > 1:
            pagination += '<li class="PagedList-skipToNext"><a href="?page=2">&gt;</a></li>'
        return f"""<html><body><article id="chapter-list-page">
<section id="chpagedlist" class="container">
<ul class="pagination">{pagination}</ul>
<ul class="chapter-list">{items}</ul>
</section></article></body></html>"""

    @staticmethod
    def lightnovelworld_chapter(title, paragraphs, published="2021-10-17T08:09:31"):
        body = "".join(paragraphs)
        return f"""<html><body><article id="chapter-article">
<section class="page-in content-wrap"><div class="titles">
<meta itemprop="datePublished" content="{published}">
<h1><span class="chapter-title">{title}</span></h1></div>
<div id="chapter-container" class="chapter-content">{body}</div>
</section></article></body></html>"""


@pytest.fixture
def fake_client():
    return FakeHttpClient()


@pytest.fixture
def pages():
    return Pages


@pytest.fixture
def decoy_corpus(tmp_path):
    """A royalroad corpus holding a single decoy, backed by a temporary file."""
    return DecoyCorpus("royalroad", [DECOY], path=tmp_path / "royalroad" / "decoys.txt")


@pytest.fixture
def empty_corpus(tmp_path):
    return DecoyCorpus("test", path=tmp_path / "test" / "decoys.txt")


@pytest.fixture(autouse=True)
def _reset_shared_state(caplog):
    caplog.set_level(logging.DEBUG, logger="webnovel")
    yield
    get_corpus.cache_clear()

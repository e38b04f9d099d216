# 站点后端
from webnovel.backends.base import Backend, TocEntry
from webnovel.backends.freewebnovel import FreeWebNovel
from webnovel.backends.libread import LibRead
from webnovel.backends.lightnovelworld import LightNovelWorld
from webnovel.backends.royalroad import RoyalRoad

# 匹配顺序固定，URL模式重叠时排在前面的后端优先
BACKENDS = (RoyalRoad, FreeWebNovel, LibRead, LightNovelWorld)

__all__ = [
    "Backend",
    "TocEntry",
    "RoyalRoad",
    "FreeWebNovel",
    "LibRead",
    "LightNovelWorld",
    "BACKENDS",
]

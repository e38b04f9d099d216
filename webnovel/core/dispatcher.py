import logging
from typing import Iterable, List, Optional, Type

from webnovel.backends import BACKENDS, Backend
from webnovel.core.errors import UnsupportedSourceError
from webnovel.utils.corpus import DecoyCorpus
from webnovel.utils.http_client import HttpClient

logger = logging.getLogger(__name__)


class Dispatcher:
    """根据小说URL选择后端

    按注册顺序逐个匹配，第一个匹配的后端胜出。
    """

    def __init__(self, backends: Iterable[Type[Backend]] = ()):
        self._backends: List[Type[Backend]] = []
        for backend_cls in backends:
            self.register(backend_cls)

    def register(self, backend_cls: Type[Backend]) -> Type[Backend]:
        """注册后端，追加到匹配顺序末尾；可用作类装饰器"""
        if backend_cls in self._backends:
            logger.debug(f"后端已注册: {backend_cls.name}")
            return backend_cls
        if not backend_cls.name or not backend_cls.url_patterns:
            raise ValueError(f"后端 {backend_cls.__name__} 缺少 name 或 url_patterns")
        self._backends.append(backend_cls)
        return backend_cls

    @property
    def backends(self) -> List[Type[Backend]]:
        return list(self._backends)

    def supported_sites(self) -> List[str]:
        return [backend_cls.name for backend_cls in self._backends]

    def find_backend(self, url: str) -> Type[Backend]:
        """找到能处理该URL的后端类

        Raises:
            UnsupportedSourceError: 没有匹配的后端
        """
        for backend_cls in self._backends:
            if backend_cls.matches(url):
                logger.debug(f"URL {url} 匹配后端 {backend_cls.name}")
                return backend_cls
        logger.warning(f"没有后端能处理该URL: {url}")
        raise UnsupportedSourceError(url)

    def resolve(
        self,
        url: str,
        client: Optional[HttpClient] = None,
        corpus: Optional[DecoyCorpus] = None,
    ) -> Backend:
        """构造与URL匹配的后端实例"""
        backend_cls = self.find_backend(url)
        backend = backend_cls(url, client=client, corpus=corpus)
        logger.info(f"使用后端 {backend_cls.name}: {backend.url}")
        return backend


# 默认调度器，内置后端按固定顺序注册
dispatcher = Dispatcher(BACKENDS)


def resolve(
    url: str,
    client: Optional[HttpClient] = None,
    corpus: Optional[DecoyCorpus] = None,
) -> Backend:
    """使用默认调度器构造后端"""
    return dispatcher.resolve(url, client=client, corpus=corpus)

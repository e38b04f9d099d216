"""
HTTP客户端，提供统一的请求处理

一个进程共享一个客户端（连接池复用），重试与退避由传输层的适配器负责。
"""

import logging
import threading
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from webnovel.core.config import settings
from webnovel.core.errors import TransportError

logger = logging.getLogger(__name__)


class HttpClient:
    """HTTP客户端工具类，提供重试、超时等功能"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or self._create_session()
        self.timeout = (settings.CONNECT_TIMEOUT, settings.DEFAULT_TIMEOUT)

    def _create_session(self) -> requests.Session:
        """创建带有重试机制的requests session"""
        session = requests.Session()

        # 配置重试策略
        retry_strategy = Retry(
            total=settings.REQUEST_RETRY_TIMES,
            status_forcelist=settings.RETRY_STATUS_CODES,
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            backoff_factor=settings.REQUEST_RETRY_DELAY,
            raise_on_status=False,
        )

        # 配置适配器
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        # 设置默认headers
        session.headers.update(settings.DEFAULT_HEADERS)
        session.headers["User-Agent"] = settings.USER_AGENT

        return session

    def get(self, url: str, **kwargs) -> requests.Response:
        """同步GET请求，失败时抛出TransportError"""
        timeout = kwargs.pop("timeout", self.timeout)
        try:
            response = self.session.get(url, timeout=timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"请求超时: {url}, 错误: {str(e)}")
            raise TransportError("请求超时", url=url, stage="fetch") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"请求失败: {url}, 错误: {str(e)}")
            raise TransportError(f"请求失败: {e}", url=url, stage="fetch") from e

        if not response.ok:
            logger.error(f"请求返回错误状态: {url}, 状态码: {response.status_code}")
            raise TransportError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
                stage="fetch",
            )
        return response

    def fetch(self, url: str) -> bytes:
        """获取页面原始内容"""
        logger.debug(f"获取页面: {url}")
        return self.get(url).content

    def fetch_text(self, url: str) -> str:
        """获取页面文本内容"""
        response = self.get(url)
        if response.encoding is None:
            response.encoding = "utf-8"
        return response.text

    def close(self):
        """关闭session"""
        if self.session:
            self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


_default_client: Optional[HttpClient] = None
_default_client_lock = threading.Lock()


def get_default_client() -> HttpClient:
    """获取进程内共享的HTTP客户端，首次调用时创建"""
    global _default_client
    with _default_client_lock:
        if _default_client is None:
            _default_client = HttpClient()
        return _default_client

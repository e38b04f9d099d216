"""
错误类型

所有异常都携带出错的URL、站点和阶段，调用方据此区分：
可重试的网络问题（TransportError）、需要更新后端代码的页面结构变化（ParseError）、
内容为空（ContentError）以及输入错误（UnsupportedSourceError）。
"""
from typing import Optional

RETRYABLE_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


class WebnovelError(Exception):
    """所有错误的基类"""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        site: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.url = url
        self.site = site
        self.stage = stage

    def __str__(self) -> str:
        context = []
        if self.site:
            context.append(f"site={self.site}")
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.url:
            context.append(f"url={self.url}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class TransportError(WebnovelError):
    """无法访问来源站点（网络、超时、非2xx响应）"""

    def __init__(self, message: str, status_code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """连接失败、超时和服务端错误可以由调用方重试"""
        if self.status_code is None:
            return True
        return self.status_code in RETRYABLE_STATUS_CODES


class ParseError(WebnovelError):
    """页面缺少预期的结构，通常说明站点改版"""


class UnknownChapterError(ParseError):
    """目录中找不到指定的章节"""


class ContentError(WebnovelError):
    """页面结构正常，但清洗后的内容为空或无效"""


class UnsupportedSourceError(WebnovelError):
    """没有后端能处理给定的URL"""

    def __init__(self, url: str):
        super().__init__("没有找到能处理该URL的后端", url=url, stage="dispatch")


class ChapterFormatError(ValueError):
    """序列化的章节文本无法解析"""

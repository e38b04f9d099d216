import logging
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings

# 包根目录
PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # 项目信息
    PROJECT_NAME: str = "webnovel"
    PROJECT_DESCRIPTION: str = "多站点网络小说章节获取与反盗版文本清洗"
    VERSION: str = "0.9.2"
    DEBUG: bool = False

    # HTTP设置
    USER_AGENT: str = f"webnovel/{VERSION}"
    DEFAULT_TIMEOUT: float = 30.0  # 读取超时（秒）
    CONNECT_TIMEOUT: float = 10.0  # 连接超时（秒）
    REQUEST_RETRY_TIMES: int = 3  # 传输层重试次数
    REQUEST_RETRY_DELAY: float = 1.0  # 退避因子（秒）
    RETRY_STATUS_CODES: List[int] = [429, 500, 502, 503, 504]
    DEFAULT_HEADERS: dict = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
    }

    # 反盗版语料设置
    CORPUS_PATH: str = str(PACKAGE_DIR / "resources")
    CORPUS_FILE_NAME: str = "known_anti_theft_sentences.txt"

    # 语料构建设置
    CORPUS_SAMPLE_COUNT: int = 20  # 同一章节重复抓取次数
    CORPUS_MIN_OCCURRENCES: int = 2  # 片段至少出现在几次两两比较中
    CORPUS_MIN_FRAGMENT_WORDS: int = 3  # 段内插入片段的最少词数
    CORPUS_EDIT_SIMILARITY: float = 0.6  # 高于此相似度的两段视为正常修订

    class Config:
        env_file = ".env"
        case_sensitive = True


# 创建设置实例
settings = Settings()

# 如果是调试模式，设置更详细的日志级别
if settings.DEBUG:
    logging.getLogger("webnovel").setLevel(logging.DEBUG)

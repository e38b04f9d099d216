import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """配置日志输出，供调用方（脚本、维护工具）在启动时使用

    库本身在导入时不配置日志。

    Args:
        level: 日志级别
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

# tile_spider/downloader/probe.py

from enum import Enum
from pathlib import Path

from loguru import logger

from ..errors import FilesystemError


class CacheDecision(Enum):
    SKIP = "skip"
    FETCH = "fetch"
    REPLACE = "replace"


def probe(path: Path) -> CacheDecision:
    """
    检查本地瓦片文件，决定是否需要下载

    - 文件不存在 -> FETCH
    - 文件大小为 0 -> REPLACE（先删除再下载）
    - 文件大小 > 0 -> SKIP
    - stat 出错（权限、竞争等） -> FETCH，宁可重新下载也不漏掉瓦片
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return CacheDecision.FETCH
    except OSError as e:
        logger.warning(f"检查瓦片文件失败，将重新下载: {path} - {e}")
        return CacheDecision.FETCH

    if size == 0:
        return CacheDecision.REPLACE
    return CacheDecision.SKIP


def discard_corrupt(path: Path):
    """
    删除大小为 0 的损坏瓦片

    Raises:
        FilesystemError: 删除失败
    """
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise FilesystemError(f"删除空文件失败 {path}: {e}") from e
    logger.info(f"已删除空文件: {path}")

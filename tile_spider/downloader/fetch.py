# tile_spider/downloader/fetch.py

import os
import threading
from pathlib import Path
from typing import Dict

import requests
from loguru import logger

from ..errors import BadStatus, FilesystemError, TransportError
from ..models import TileCoord
from ..providers import TileProvider
from .utils import ensure_directory

# 部分瓦片源会拒绝没有浏览器请求头的请求
DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36',
    'Accept': 'image/webp,image/apng,image/*,*/*;q=0.8',
    'Accept-Encoding': 'gzip, deflate',
    'Accept-Language': 'zh-CN,zh;q=0.9,en;q=0.8',
    'Connection': 'keep-alive',
}

DEFAULT_TIMEOUT = 30


def write_atomic(path: Path, data: bytes):
    """
    原子写入：先写同目录下的临时文件，再重命名为目标文件

    并发的检查方不会看到写了一半的瓦片。临时文件以 0o666 创建，
    最终权限由进程 umask 决定，与直接 open() 写入一致

    Raises:
        FilesystemError: 写入或重命名失败
    """
    ensure_directory(path.parent)
    temp_name = path.parent / f".{path.name}.{os.getpid()}.{threading.get_ident()}.part"
    created = False
    try:
        fd = os.open(temp_name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666)
        created = True
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(temp_name, path)
    except OSError as e:
        if created and os.path.exists(temp_name):
            try:
                os.unlink(temp_name)
            except OSError as cleanup_error:
                logger.error(f"清理临时文件失败: {cleanup_error}")
        raise FilesystemError(f"文件写入错误 {path}: {e}") from e


class TileFetcher:
    """
    单个瓦片的下载客户端：一次 GET，不在内部重试
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, headers: Dict[str, str] = None):
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS if headers is None else headers)
        # requests.Session 不保证线程安全，每个下载线程单独持有一个
        self._local = threading.local()

    def _create_request_session(self) -> requests.Session:
        """
        创建并配置请求会话
        """
        session = requests.Session()
        session.headers.update(self.headers)
        session.max_redirects = 3

        # 只使用连接池，不启用 urllib3 的重试，重试由下载器负责
        adapter = requests.adapters.HTTPAdapter(pool_connections=16, pool_maxsize=16, max_retries=0)
        session.mount('http://', adapter)
        session.mount('https://', adapter)

        logger.debug("创建新的请求会话")
        return session

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._create_request_session()
            self._local.session = session
        return session

    def close(self):
        session = getattr(self._local, "session", None)
        if session is not None:
            session.close()
            self._local.session = None

    def resolve_url(self, coord: TileCoord, provider: TileProvider) -> str:
        return provider.get_tile_url(coord.x, coord.y, coord.z)

    def fetch(self, coord: TileCoord, provider: TileProvider) -> bytes:
        """
        下载单个瓦片

        Args:
            coord: 瓦片坐标
            provider: 瓦片源

        Returns:
            bytes: 瓦片内容

        Raises:
            BadStatus: 响应状态码不是 200
            TransportError: 连接错误、超时或响应体为空
        """
        url = self.resolve_url(coord, provider)
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"超时错误 {url} - {e}") from e
        except requests.exceptions.ConnectionError as e:
            # 连接出错后重建会话
            self.close()
            raise TransportError(f"连接错误 {url} - {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"请求错误 {url} - {e}") from e

        if response.status_code != 200:
            raise BadStatus(response.status_code, url)

        data = response.content
        if not data:
            raise TransportError(f"下载数据为空: {url}")
        return data

    def download(self, coord: TileCoord, provider: TileProvider, path: Path) -> int:
        """
        下载瓦片并原子写入目标路径

        Returns:
            int: 写入的字节数
        """
        data = self.fetch(coord, provider)
        write_atomic(path, data)
        return len(data)

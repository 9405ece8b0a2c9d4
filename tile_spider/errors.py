# tile_spider/errors.py


class TileSpiderError(Exception):
    """
    所有 tile_spider 异常的基类
    """


class ConfigurationError(TileSpiderError, ValueError):
    """
    配置错误：未知瓦片源、缺少后缀、非法瓦片范围等

    在任何网络请求之前抛出，直接终止本次任务
    """


class TileError(TileSpiderError):
    """
    单个瓦片处理过程中的错误，由下载器捕获并记录，不会抛给调用方
    """

    retryable = False


class TransportError(TileError):
    """
    网络层错误（DNS、连接重置、超时、空响应）
    """

    retryable = True


class BadStatus(TileError):
    """
    非 200 的 HTTP 响应
    """

    retryable = True

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code}: {url}")
        self.status_code = status_code
        self.url = url


class FilesystemError(TileError):
    """
    文件系统错误（创建目录、删除、写入失败）
    """


class CorruptCache(TileError):
    """
    已存在但大小为 0 的瓦片文件，只在内部处理：删除后重新下载
    """

    def __init__(self, path):
        super().__init__(f"瓦片文件为空，删除后重新下载: {path}")
        self.path = path

# tile_spider/downloader/utils.py

from pathlib import Path
from typing import Union

from ..errors import ConfigurationError, FilesystemError


def normalize_suffix(suffix: str) -> str:
    """
    规范化瓦片文件后缀：去掉开头的点并转为小写

    Raises:
        ConfigurationError: 后缀为空
    """
    if suffix is None or not str(suffix).strip().lstrip("."):
        raise ConfigurationError("必须指定瓦片文件后缀（如 png、jpg）")
    return str(suffix).strip().lstrip(".").lower()


def ensure_directory(directory: Path):
    """
    确保目录存在，不存在则创建

    其他线程刚好创建了同一目录时视为成功

    Args:
        directory: 目录路径

    Raises:
        FilesystemError: 目录创建失败
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"创建目录失败 {directory}: {e}") from e


def tile_path(
    root: Union[str, Path],
    name: str,
    z: int,
    x: int,
    y: int,
    suffix: str,
    create: bool = True,
) -> Path:
    """
    获取瓦片保存路径：root/name/z/x/y.suffix

    Args:
        root: 根目录，通常为 tiles
        name: 输出名称（mosaic）
        z: 缩放级别
        x: 瓦片x坐标
        y: 瓦片y坐标
        suffix: 文件后缀
        create: 是否同时创建父目录

    Returns:
        Path: 瓦片保存路径
    """
    path = Path(root) / name / str(z) / str(x) / f"{y}.{suffix}"
    if create:
        ensure_directory(path.parent)
    return path


# tile_spider/downloader/batch.py

from ..errors import ConfigurationError
from ..models import DownloadResult, GeoBox, TileBox
from ..tile_math import TileMath
from .base import TileDownloader


def resolve_geo_box(geo_box: GeoBox, zoom: int) -> TileBox:
    """
    经纬度范围 -> 瓦片范围，并拒绝颠倒的范围

    Raises:
        ConfigurationError: 范围颠倒（包括跨越180°经线的情况）
    """
    tile_box = TileMath.geo_box_to_tile_box(geo_box, zoom)
    if tile_box.left > tile_box.right:
        # 跨越 180° 经线的范围暂不支持
        raise ConfigurationError(
            f"经度范围颠倒 west={geo_box.west} > east={geo_box.east}，不支持跨越180°经线的范围"
        )
    if tile_box.top > tile_box.bottom:
        raise ConfigurationError(f"纬度范围颠倒: north={geo_box.north} < south={geo_box.south}")
    return tile_box


class BatchDownloader:
    """
    批量下载工具：提供高级接口
    """

    @staticmethod
    def process_geo_box(
        north: float,
        west: float,
        south: float,
        east: float,
        zoom: int,
        output_name: str = "mosaic",
        map_type: str = "default",
        suffix: str = None,
        **options
    ) -> DownloadResult:
        """
        按经纬度范围下载瓦片

        Args:
            north: 西北角纬度
            west: 西北角经度
            south: 东南角纬度
            east: 东南角经度
            zoom: 缩放级别
            output_name: 输出名称
            map_type: 瓦片源名称
            suffix: 瓦片文件后缀
            **options: 传给 TileDownloader 的其他参数（output_dir、max_threads 等）

        Returns:
            DownloadResult: 下载统计信息

        Raises:
            ConfigurationError: 配置非法，此时不会发出任何请求
        """
        tile_box = resolve_geo_box(GeoBox(north, west, south, east), zoom)
        return BatchDownloader.process_tile_box(
            tile_box.left,
            tile_box.right,
            tile_box.top,
            tile_box.bottom,
            zoom,
            output_name=output_name,
            map_type=map_type,
            suffix=suffix,
            **options
        )

    @staticmethod
    def process_tile_box(
        left: int,
        right: int,
        top: int,
        bottom: int,
        zoom: int,
        output_name: str = "mosaic",
        map_type: str = "default",
        suffix: str = None,
        **options
    ) -> DownloadResult:
        """
        按瓦片索引范围下载瓦片，四条边都包含在内

        Args:
            left: 左边界x
            right: 右边界x
            top: 上边界y
            bottom: 下边界y
            zoom: 缩放级别
            output_name: 输出名称
            map_type: 瓦片源名称
            suffix: 瓦片文件后缀
            **options: 传给 TileDownloader 的其他参数

        Returns:
            DownloadResult: 下载统计信息
        """
        tile_box = TileMath.validate_tile_box(TileBox(left, right, top, bottom, zoom))
        dl = TileDownloader(
            provider_name=map_type or "default",
            output_name=output_name or "mosaic",
            suffix=suffix,
            **options
        )
        dl.add_tile_box(tile_box)
        return dl.run()


process_geo_box = BatchDownloader.process_geo_box
process_tile_box = BatchDownloader.process_tile_box

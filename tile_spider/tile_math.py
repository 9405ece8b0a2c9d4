# tile_spider/tile_math.py
import math
from typing import Iterator, Tuple

from .errors import ConfigurationError
from .models import GeoBox, TileBox, TileCoord

MAX_LATITUDE = 85.05112878


class TileMath:
    """
    瓦片坐标计算工具类（Web Mercator / XYZ）
    """

    @staticmethod
    def check_zoom(zoom: int) -> int:
        if isinstance(zoom, bool) or not isinstance(zoom, int) or zoom < 0:
            raise ConfigurationError(f"非法缩放级别: {zoom!r}")
        return zoom

    @staticmethod
    def _clamp(value: float, n: int) -> int:
        # 超出 [0, n-1] 的值贴到边缘瓦片，而不是报错
        if math.isnan(value):
            return 0
        return int(math.floor(min(max(value, 0.0), n - 1)))

    @staticmethod
    def latlon_to_tile(lat: float, lon: float, zoom: int) -> Tuple[int, int]:
        """
        经纬度 -> 瓦片坐标 (x, y)

        超出 Web Mercator 有效范围（如纬度超过 ±85.0511）的输入不会报错，
        而是被夹到最近的边缘瓦片。极区附近需要精确结果的调用方应自行校验。

        Args:
            lat: 纬度
            lon: 经度
            zoom: 缩放级别

        Returns:
            Tuple[int, int]: 瓦片坐标 (x, y)，满足 0 <= x, y < 2^zoom
        """
        TileMath.check_zoom(zoom)
        n = 2 ** zoom

        x_tile = (lon + 180.0) / 360.0 * n

        # 限制纬度避免溢出，极区的点落到边缘瓦片
        lat = max(min(lat, MAX_LATITUDE), -MAX_LATITUDE)
        lat_rad = math.radians(lat)
        y_tile = (
            1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi
        ) / 2.0 * n

        return TileMath._clamp(x_tile, n), TileMath._clamp(y_tile, n)

    @staticmethod
    def geo_box_to_tile_box(geo_box: GeoBox, zoom: int) -> TileBox:
        """
        经纬度范围 -> 瓦片范围

        西北角 (north, west) 对应左上瓦片，东南角 (south, east) 对应右下瓦片，
        两个角分别计算，不检查结果是否为空范围
        """
        left, top = TileMath.latlon_to_tile(geo_box.north, geo_box.west, zoom)
        right, bottom = TileMath.latlon_to_tile(geo_box.south, geo_box.east, zoom)
        return TileBox(left=left, right=right, top=top, bottom=bottom, zoom=zoom)

    @staticmethod
    def validate_tile_box(tile_box: TileBox) -> TileBox:
        """
        校验瓦片范围：索引在 [0, 2^zoom) 内，且 left <= right、top <= bottom

        Raises:
            ConfigurationError: 瓦片范围非法
        """
        zoom = TileMath.check_zoom(tile_box.zoom)
        n = 2 ** zoom
        for name in ("left", "right", "top", "bottom"):
            value = getattr(tile_box, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"瓦片索引 {name} 必须是整数: {value!r}")
            if not 0 <= value < n:
                raise ConfigurationError(f"瓦片索引 {name}={value} 超出缩放级别 {zoom} 的范围 [0, {n - 1}]")
        if tile_box.left > tile_box.right:
            raise ConfigurationError(f"瓦片范围左右颠倒: left={tile_box.left} > right={tile_box.right}")
        if tile_box.top > tile_box.bottom:
            raise ConfigurationError(f"瓦片范围上下颠倒: top={tile_box.top} > bottom={tile_box.bottom}")
        return tile_box

    @staticmethod
    def tile_count(tile_box: TileBox) -> int:
        if tile_box.left > tile_box.right or tile_box.top > tile_box.bottom:
            return 0
        return (tile_box.right - tile_box.left + 1) * (tile_box.bottom - tile_box.top + 1)

    @staticmethod
    def iter_tiles(tile_box: TileBox) -> Iterator[TileCoord]:
        """
        按列遍历范围内的所有瓦片，四条边都包含在内
        """
        for x in range(tile_box.left, tile_box.right + 1):
            for y in range(tile_box.top, tile_box.bottom + 1):
                yield TileCoord(x, y, tile_box.zoom)

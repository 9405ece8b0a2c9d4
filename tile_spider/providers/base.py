# tile_spider/providers/base.py

import random
from typing import List, Mapping

from ..errors import ConfigurationError


def format_template(template: str, substitutions: Mapping[str, object]) -> str:
    """
    用给定的值替换模板中的 {key} 占位符

    模板中没有出现在 substitutions 里的占位符保持原样

    Args:
        template: 带占位符的字符串，如 https://{s}.example.com/{z}/{x}/{y}.png
        substitutions: 占位符名称 -> 值

    Returns:
        str: 替换后的字符串
    """
    result = template
    for key, value in substitutions.items():
        result = result.replace("{" + key + "}", str(value))
    return result


class TileProvider:
    """
    瓦片源：名称 + URL 模板 + 子域名（分片）列表
    """

    def __init__(
        self,
        name: str,
        url_template: str,
        subdomains: List[str] = None,
        min_zoom: int = 0,
        max_zoom: int = 23,
        attribution: str = "",
    ):
        """
        初始化瓦片提供商

        Args:
            name: 提供商名称
            url_template: URL模板，支持 {x} {y} {z} {s} 占位符
            subdomains: 子域名列表，{s} 从中均匀随机选取
            min_zoom: 最小缩放级别
            max_zoom: 最大缩放级别
            attribution: 版权信息
        """
        if not name:
            raise ConfigurationError("瓦片源名称不能为空")
        if not url_template:
            raise ConfigurationError(f"瓦片源 {name} 缺少URL模板")
        self.name = name
        self.url_template = url_template
        self.subdomains = [str(s) for s in (subdomains or [])]
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.attribution = attribution

        if "{s}" in url_template and not self.subdomains:
            raise ConfigurationError(f"瓦片源 {name} 的URL模板包含 {{s}}，但没有配置子域名")

    def choose_subdomain(self) -> str:
        if not self.subdomains:
            return ""
        return random.choice(self.subdomains)

    def get_tile_url(self, x: int, y: int, zoom: int) -> str:
        """
        获取瓦片URL

        Args:
            x: 瓦片x坐标
            y: 瓦片y坐标
            zoom: 缩放级别

        Returns:
            str: 瓦片URL
        """
        return format_template(
            self.url_template,
            {"x": x, "y": y, "z": zoom, "s": self.choose_subdomain()},
        )

    def supports_zoom(self, zoom: int) -> bool:
        return self.min_zoom <= zoom <= self.max_zoom

    def __repr__(self):
        return f"TileProvider(name={self.name!r}, url_template={self.url_template!r})"

# tile_spider/providers/manager.py

import json
from pathlib import Path
from typing import Dict, List, Union

from loguru import logger

from ..errors import ConfigurationError
from .base import TileProvider


class ProviderManager:
    """
    简单的 provider 注册 / 获取
    """

    _providers: Dict[str, TileProvider] = {}

    @classmethod
    def register_provider(cls, provider: TileProvider):
        """
        注册瓦片提供商，同名的会被覆盖

        Args:
            provider: 瓦片提供商实例
        """
        cls._providers[provider.name.lower()] = provider

    @classmethod
    def get_provider(cls, name: str) -> TileProvider:
        """
        获取瓦片提供商

        Args:
            name: 提供商名称

        Returns:
            TileProvider: 瓦片提供商实例

        Raises:
            ConfigurationError: 未知的瓦片提供商
        """
        p = cls._providers.get((name or "").lower())
        if not p:
            raise ConfigurationError(f"未知瓦片源: {name}")
        return p

    @classmethod
    def list_providers(cls) -> List[str]:
        return list(cls._providers.keys())

    @classmethod
    def create_custom_provider(
        cls,
        name: str,
        url_template: str,
        subdomains: list = None,
        min_zoom: int = 0,
        max_zoom: int = 23,
    ) -> TileProvider:
        """
        创建、注册并返回一个自定义瓦片提供商
        """
        provider = TileProvider(
            name=name,
            url_template=url_template,
            subdomains=subdomains or [],
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            attribution="Custom Provider",
        )
        cls.register_provider(provider)
        return provider

    @classmethod
    def load_providers(cls, config_file: Union[str, Path]) -> List[str]:
        """
        从JSON文件加载瓦片源配置

        文件格式为 名称 -> URL模板，或 名称 -> {"url": ..., "subdomains": [...],
        "min_zoom": ..., "max_zoom": ...}

        Args:
            config_file: JSON配置文件路径

        Returns:
            List[str]: 加载的瓦片源名称

        Raises:
            ConfigurationError: 文件不存在、不是合法JSON或内容格式错误
        """
        config_file = Path(config_file)
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"读取瓦片源配置失败 {config_file}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(f"瓦片源配置必须是JSON对象: {config_file}")

        loaded = []
        for name, entry in config.items():
            if isinstance(entry, str):
                entry = {"url": entry}
            if not isinstance(entry, dict) or "url" not in entry:
                raise ConfigurationError(f"瓦片源 {name} 配置缺少 url 字段")
            cls.create_custom_provider(
                name=name,
                url_template=entry["url"],
                subdomains=entry.get("subdomains"),
                min_zoom=entry.get("min_zoom", 0),
                max_zoom=entry.get("max_zoom", 23),
            )
            loaded.append(name.lower())

        logger.info(f"从 {config_file} 加载了 {len(loaded)} 个瓦片源: {', '.join(loaded)}")
        return loaded


# 注册默认 provider
ProviderManager.register_provider(TileProvider(
    name="default",
    url_template="https://webrd0{s}.is.autonavi.com/appmaptile?lang=zh_cn&size=1&scale=1&style=8&x={x}&y={y}&z={z}",
    subdomains=["1", "2", "3", "4"],
    min_zoom=1,
    max_zoom=18,
    attribution="© AutoNavi",
))
ProviderManager.register_provider(TileProvider(
    name="satellite",
    url_template="https://webst0{s}.is.autonavi.com/appmaptile?style=6&x={x}&y={y}&z={z}",
    subdomains=["1", "2", "3", "4"],
    min_zoom=1,
    max_zoom=18,
    attribution="© AutoNavi",
))
ProviderManager.register_provider(TileProvider(
    name="osm",
    url_template="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
    subdomains=["a", "b", "c"],
    min_zoom=0,
    max_zoom=19,
    attribution="© OpenStreetMap contributors",
))

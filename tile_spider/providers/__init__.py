# tile_spider/providers/__init__.py

from .base import TileProvider, format_template
from .manager import ProviderManager

__all__ = [
    'TileProvider',
    'ProviderManager',
    'format_template',
]

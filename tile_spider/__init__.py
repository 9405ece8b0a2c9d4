# tile_spider/__init__.py

from .downloader import BatchDownloader, TileDownloader, TileFetcher, process_geo_box, process_tile_box
from .errors import (
    BadStatus,
    ConfigurationError,
    CorruptCache,
    FilesystemError,
    TileError,
    TileSpiderError,
    TransportError,
)
from .models import DownloadResult, GeoBox, TileBox, TileCoord, TileState
from .providers import ProviderManager, TileProvider, format_template
from .tile_math import TileMath

__version__ = "0.3.0"

__all__ = [
    'BatchDownloader',
    'TileDownloader',
    'TileFetcher',
    'process_geo_box',
    'process_tile_box',
    'ProviderManager',
    'TileProvider',
    'format_template',
    'TileMath',
    'GeoBox',
    'TileBox',
    'TileCoord',
    'TileState',
    'DownloadResult',
    'TileSpiderError',
    'ConfigurationError',
    'TileError',
    'TransportError',
    'BadStatus',
    'FilesystemError',
    'CorruptCache',
]

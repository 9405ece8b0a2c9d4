# tile_spider/downloader/__init__.py

from .base import TileDownloader
from .batch import BatchDownloader, process_geo_box, process_tile_box
from .fetch import DEFAULT_HEADERS, TileFetcher, write_atomic
from .probe import CacheDecision, probe
from .utils import tile_path

__all__ = [
    'TileDownloader',
    'BatchDownloader',
    'TileFetcher',
    'CacheDecision',
    'DEFAULT_HEADERS',
    'probe',
    'process_geo_box',
    'process_tile_box',
    'tile_path',
    'write_atomic',
]

# tile_spider/models.py

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from .errors import TileError


class GeoBox(NamedTuple):
    """
    经纬度范围（度）
    """
    north: float
    west: float
    south: float
    east: float


class TileBox(NamedTuple):
    """
    瓦片索引范围，四条边均为闭区间
    """
    left: int
    right: int
    top: int
    bottom: int
    zoom: int


class TileCoord(NamedTuple):
    x: int
    y: int
    z: int

    def __str__(self):
        return f"{self.z}/{self.x}/{self.y}"


class TileState(Enum):
    """
    单个瓦片任务的状态
    """
    PENDING = "pending"
    PROBING = "probing"
    SKIPPED = "skipped"
    FETCHING = "fetching"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class DownloadJob:
    """
    一个瓦片的下载任务，只在下载器运行期间存在
    """
    coord: TileCoord
    path: Path
    state: TileState = TileState.PENDING
    attempts: int = 0
    error: Optional[TileError] = None
    bytes_written: int = 0


@dataclass
class TileFailure:
    coord: TileCoord
    error: TileError

    @property
    def reason(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class DownloadResult:
    """
    一次下载任务的汇总结果
    """
    total: int = 0
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: int = 0
    total_bytes: int = 0
    failures: List[TileFailure] = field(default_factory=list)
    cancelled_tiles: List[TileCoord] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.downloaded - self.skipped - self.failed - self.cancelled)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.cancelled == 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "downloaded": self.downloaded,
            "failed": self.failed,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "total": self.total,
            "remaining": self.remaining,
        }

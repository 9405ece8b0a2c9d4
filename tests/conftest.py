"""公共 fixture：不访问网络的模拟下载客户端"""

import threading
import time
from collections import defaultdict

import pytest

from tile_spider.downloader import TileFetcher
from tile_spider.providers import ProviderManager

TILE_BODY = b"0123456789"


class StubFetcher(TileFetcher):
    """
    每个瓦片都返回固定内容；failures 为 坐标 -> 异常列表，
    成功之前按顺序抛出这些异常
    """

    def __init__(self, body=TILE_BODY, failures=None, on_fetch=None):
        super().__init__()
        self.body = body
        self.failures = {coord: list(errors) for coord, errors in (failures or {}).items()}
        self.on_fetch = on_fetch
        self.calls = []
        self.lock = threading.Lock()

    def fetch(self, coord, provider):
        with self.lock:
            self.calls.append((coord, time.monotonic()))
            pending = self.failures.get(coord)
            error = pending.pop(0) if pending else None
        if self.on_fetch:
            self.on_fetch(coord)
        if error is not None:
            raise error
        return self.body

    def calls_for(self, coord):
        return [t for c, t in self.calls if c == coord]


class InFlightFetcher(StubFetcher):
    """
    记录每个目标路径同时进行中的下载数量
    """

    def __init__(self, hold=0.01):
        super().__init__()
        self.hold = hold
        self.in_flight = defaultdict(int)
        self.max_in_flight = defaultdict(int)
        self.max_total = 0

    def download(self, coord, provider, path):
        with self.lock:
            self.in_flight[path] += 1
            self.max_in_flight[path] = max(self.max_in_flight[path], self.in_flight[path])
            self.max_total = max(self.max_total, sum(self.in_flight.values()))
        try:
            time.sleep(self.hold)
            return super().download(coord, provider, path)
        finally:
            with self.lock:
                self.in_flight[path] -= 1


@pytest.fixture(autouse=True)
def restore_providers():
    saved = dict(ProviderManager._providers)
    yield
    ProviderManager._providers.clear()
    ProviderManager._providers.update(saved)


@pytest.fixture
def tiles_dir(tmp_path):
    return tmp_path / "tiles"


@pytest.fixture
def stub_fetcher():
    return StubFetcher()

# tile_spider/downloader/base.py

import threading
import time
from pathlib import Path
from queue import Queue
from typing import Callable, Dict, List, Optional, Set

from loguru import logger

from ..errors import ConfigurationError, CorruptCache, FilesystemError, TileError
from ..models import DownloadJob, DownloadResult, TileBox, TileCoord, TileFailure, TileState
from ..providers import ProviderManager, TileProvider
from ..tile_math import TileMath
from .fetch import DEFAULT_TIMEOUT, TileFetcher
from .probe import CacheDecision, discard_corrupt, probe
from .utils import ensure_directory, normalize_suffix, tile_path

DEFAULT_THREADS = 4
DEFAULT_RETRIES = 3
DEFAULT_DELAY = 0.5
DEFAULT_BACKOFF_BASE = 0.5
DEFAULT_BACKOFF_MAX = 8.0


class _Lane:
    """
    下载线程自己的节流状态
    """

    def __init__(self, name: str):
        self.name = name
        self.last_request_start: Optional[float] = None
        self.processed = 0
        self.failed = 0


class TileDownloader:
    """
    核心下载器：负责接收 (x, y, z) 任务，多线程下载、重试、节流并汇总结果
    """

    def __init__(
        self,
        provider_name: str = "default",
        output_name: str = "mosaic",
        suffix: str = None,
        output_dir: str = "tiles",
        max_threads: int = DEFAULT_THREADS,
        retries: int = DEFAULT_RETRIES,
        delay: float = DEFAULT_DELAY,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_max: float = DEFAULT_BACKOFF_MAX,
        timeout: float = DEFAULT_TIMEOUT,
        fetcher: TileFetcher = None,
        cancel_event: threading.Event = None,
        progress_callback: Callable = None,
    ):
        """
        初始化下载器

        Args:
            provider_name: 瓦片提供商名称
            output_name: 输出名称，瓦片保存在 output_dir/output_name 下
            suffix: 瓦片文件后缀，必填
            output_dir: 根目录
            max_threads: 下载线程数
            retries: 首次请求失败后最多重试的次数，每个瓦片最多请求 retries + 1 次
            delay: 同一线程两次请求开始之间的最小间隔（秒）
            backoff_base: 第一次重试前的等待时间（秒），之后每次翻倍
            backoff_max: 重试等待时间上限（秒）
            timeout: 单次请求超时时间（秒）
            fetcher: 下载客户端，默认创建 TileFetcher
            cancel_event: 外部取消信号
            progress_callback: 进度回调函数 (processed, total, total_bytes)

        Raises:
            ConfigurationError: 配置非法
        """
        self.provider: TileProvider = ProviderManager.get_provider(provider_name)
        self.suffix = normalize_suffix(suffix)
        if not output_name:
            raise ConfigurationError("输出名称不能为空")
        self.output_name = output_name
        self.output_dir = Path(output_dir)

        if isinstance(max_threads, bool) or not isinstance(max_threads, int) or max_threads < 1:
            raise ConfigurationError(f"线程数必须是正整数: {max_threads!r}")
        if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
            raise ConfigurationError(f"重试次数必须是非负整数: {retries!r}")
        for name, value in (("delay", delay), ("backoff_base", backoff_base), ("backoff_max", backoff_max)):
            if value < 0:
                raise ConfigurationError(f"{name} 不能为负数: {value!r}")
        if timeout <= 0:
            raise ConfigurationError(f"超时时间必须大于0: {timeout!r}")

        self.max_threads = max_threads
        self.retries = retries
        self.delay = delay
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.timeout = timeout
        self.fetcher = fetcher if fetcher is not None else TileFetcher(timeout=timeout)
        self.progress_callback = progress_callback

        self.task_queue: Queue = Queue()
        self.stop_event = cancel_event or threading.Event()
        self.lock = threading.Lock()

        self.jobs: Dict[TileCoord, DownloadJob] = {}
        self.finished: Set[TileCoord] = set()
        self.worker_threads: List[threading.Thread] = []
        self.downloaded_count = 0
        self.failed_count = 0
        self.skipped_count = 0
        self.cancelled_count = 0
        self.total_bytes = 0

        logger.info(
            f"初始化下载器: provider={self.provider.name}, threads={max_threads}, "
            f"output={self.output_dir / self.output_name}, suffix={self.suffix}"
        )

    @property
    def total_tasks(self) -> int:
        return len(self.jobs)

    def add_task(self, x: int, y: int, zoom: int) -> bool:
        """
        添加单个瓦片任务，同一坐标只会入队一次

        Returns:
            bool: 是否新加入了任务

        Raises:
            ConfigurationError: 坐标超出该缩放级别的范围
        """
        if self.worker_threads:
            raise RuntimeError("下载已开始，不能再添加任务")
        TileMath.validate_tile_box(TileBox(x, x, y, y, zoom))
        coord = TileCoord(x, y, zoom)
        if coord in self.jobs:
            return False
        path = tile_path(self.output_dir, self.output_name, zoom, x, y, self.suffix, create=False)
        job = DownloadJob(coord=coord, path=path)
        self.jobs[coord] = job
        self.task_queue.put(job)
        return True

    def add_tile_box(self, tile_box: TileBox) -> int:
        """
        添加矩形范围内的所有瓦片任务

        Raises:
            ConfigurationError: 瓦片范围非法
        """
        TileMath.validate_tile_box(tile_box)
        if not self.provider.supports_zoom(tile_box.zoom):
            logger.warning(
                f"zoom {tile_box.zoom} 超出 {self.provider.name} 的范围 "
                f"[{self.provider.min_zoom}, {self.provider.max_zoom}]，瓦片源可能返回错误"
            )
        added = 0
        for coord in TileMath.iter_tiles(tile_box):
            if self.add_task(coord.x, coord.y, coord.z):
                added += 1
        logger.info(f"缩放级别 {tile_box.zoom}: 已添加 {added} 个瓦片任务")
        return added

    def start(self):
        """
        启动下载线程
        """
        if self.worker_threads:
            return
        actual_threads = max(1, min(self.max_threads, self.total_tasks))
        logger.info(f"开始下载，线程数={actual_threads}，瓦片数={self.total_tasks}，provider={self.provider.name}")

        # 每个线程一个结束标记
        for _ in range(actual_threads):
            self.task_queue.put(None)

        for i in range(actual_threads):
            t = threading.Thread(target=self._worker, name=f"Downloader-{i+1}", daemon=True)
            self.worker_threads.append(t)
            t.start()

    def wait(self) -> DownloadResult:
        """
        等待所有下载线程结束并返回汇总结果
        """
        if not self.worker_threads:
            self.start()
        # 带超时地 join，主线程才能响应 Ctrl-C
        for t in self.worker_threads:
            while t.is_alive():
                t.join(timeout=0.2)

        result = self.get_result()
        logger.info(
            f"所有下载已处理: 下载={result.downloaded}, 跳过={result.skipped}, "
            f"失败={result.failed}, 取消={result.cancelled}, 总计={result.total}"
        )
        return result

    def run(self) -> DownloadResult:
        self.start()
        return self.wait()

    def cancel(self):
        """
        取消下载：正在进行的请求允许完成，不再开始新的瓦片
        """
        logger.info("取消下载任务")
        self.stop_event.set()

    def get_job(self, coord: TileCoord) -> Optional[DownloadJob]:
        return self.jobs.get(coord)

    def get_statistics(self) -> Dict[str, int]:
        """
        获取下载统计信息
        """
        return self.get_result().to_dict()

    def get_result(self) -> DownloadResult:
        with self.lock:
            result = DownloadResult(
                total=self.total_tasks,
                downloaded=self.downloaded_count,
                skipped=self.skipped_count,
                failed=self.failed_count,
                cancelled=self.cancelled_count,
                total_bytes=self.total_bytes,
            )
            for coord in sorted(self.jobs):
                job = self.jobs[coord]
                if job.state is TileState.FAILED:
                    result.failures.append(TileFailure(coord=coord, error=job.error))
                elif job.state is TileState.CANCELLED:
                    result.cancelled_tiles.append(coord)
        return result

    def _finish(self, job: DownloadJob, state: TileState):
        with self.lock:
            # 每个瓦片只计数一次
            if job.coord in self.finished:
                return
            self.finished.add(job.coord)
            job.state = state
            if state is TileState.DONE:
                self.downloaded_count += 1
                self.total_bytes += job.bytes_written
            elif state is TileState.SKIPPED:
                self.skipped_count += 1
            elif state is TileState.FAILED:
                self.failed_count += 1
            elif state is TileState.CANCELLED:
                self.cancelled_count += 1
            processed = self.downloaded_count + self.skipped_count + self.failed_count + self.cancelled_count
            total_bytes = self.total_bytes
        if self.progress_callback:
            try:
                self.progress_callback(processed, self.total_tasks, total_bytes)
            except Exception as e:
                logger.exception(f"进度回调出错: {e}")

    def _worker(self):
        """
        工作线程：从队列取任务，依次执行 检查 -> 下载 -> 重试
        """
        lane = _Lane(threading.current_thread().name)
        logger.debug(f"{lane.name} 启动")
        thread_start_time = time.monotonic()

        while True:
            job = self.task_queue.get()
            try:
                if job is None:
                    break
                if self.stop_event.is_set():
                    self._finish(job, TileState.CANCELLED)
                    continue
                try:
                    self._process_job(job, lane)
                except Exception as e:
                    logger.exception(f"{lane.name} - 任务处理错误: {job.coord} - {e}")
                    job.error = e if isinstance(e, TileError) else TileError(str(e))
                    self._finish(job, TileState.FAILED)
                lane.processed += 1
                if job.state is TileState.FAILED:
                    lane.failed += 1
            finally:
                self.task_queue.task_done()

        self.fetcher.close()
        thread_duration = time.monotonic() - thread_start_time
        logger.debug(f"{lane.name} 结束 - 运行时间: {thread_duration:.2f} 秒, 处理任务: {lane.processed}, 失败任务: {lane.failed}")

    def _process_job(self, job: DownloadJob, lane: _Lane):
        job.state = TileState.PROBING
        decision = probe(job.path)

        if decision is CacheDecision.SKIP:
            logger.debug(f"{lane.name} - [跳过] 已存在: {job.path}")
            self._finish(job, TileState.SKIPPED)
            return

        try:
            if decision is CacheDecision.REPLACE:
                logger.warning(f"{lane.name} - {CorruptCache(job.path)}")
                discard_corrupt(job.path)
            ensure_directory(job.path.parent)
        except FilesystemError as e:
            logger.error(f"{lane.name} - {e}")
            job.error = e
            self._finish(job, TileState.FAILED)
            return

        self._fetch_with_retry(job, lane)

    def _fetch_with_retry(self, job: DownloadJob, lane: _Lane):
        for attempt in range(1, self.retries + 2):
            if attempt > 1:
                backoff = self._backoff_delay(attempt - 1)
                logger.debug(f"{lane.name} - {backoff:.2f} 秒后重试: {job.coord}")
                if self.stop_event.wait(backoff):
                    logger.info(f"{lane.name} - 收到停止信号，停止重试: {job.coord}")
                    self._finish(job, TileState.CANCELLED)
                    return

            if not self._wait_for_pacing(lane):
                self._finish(job, TileState.CANCELLED)
                return

            job.state = TileState.FETCHING
            job.attempts = attempt
            lane.last_request_start = time.monotonic()
            logger.debug(f"{lane.name} - 下载: {job.coord} (尝试 {attempt}/{self.retries + 1})")

            try:
                job.bytes_written = self.fetcher.download(job.coord, self.provider, job.path)
            except FilesystemError as e:
                # 写入失败不重试
                logger.error(f"{lane.name} - {e}")
                job.error = e
                self._finish(job, TileState.FAILED)
                return
            except TileError as e:
                job.error = e
                job.state = TileState.FAILED
                logger.warning(f"{lane.name} - 下载失败 {job.coord} (尝试 {attempt}/{self.retries + 1}): {e}")
                if not e.retryable:
                    break
                continue

            job.error = None
            logger.info(f"{lane.name} - 下载成功: {job.path} ({job.bytes_written} 字节)")
            self._finish(job, TileState.DONE)
            return

        logger.error(f"{lane.name} - 下载失败: {job.coord} - {job.error}")
        self._finish(job, TileState.FAILED)

    def _backoff_delay(self, retry: int) -> float:
        """
        第 retry 次重试前的等待时间：base * 2^(retry-1)，不超过上限
        """
        return min(self.backoff_base * (2 ** (retry - 1)), self.backoff_max)

    def _wait_for_pacing(self, lane: _Lane) -> bool:
        """
        保证同一线程两次请求开始之间至少间隔 delay 秒

        Returns:
            bool: False 表示等待期间收到了停止信号
        """
        remaining = 0.0
        if lane.last_request_start is not None:
            remaining = self.delay - (time.monotonic() - lane.last_request_start)
        return not self.stop_event.wait(max(0.0, remaining))

# tile_spider/cli.py
import argparse
import sys

from loguru import logger
from rich.console import Console
from rich.table import Table

from .downloader import TileDownloader
from .downloader.base import DEFAULT_DELAY, DEFAULT_RETRIES, DEFAULT_THREADS
from .downloader.batch import resolve_geo_box
from .downloader.fetch import DEFAULT_TIMEOUT
from .errors import ConfigurationError
from .models import DownloadResult, GeoBox, TileBox
from .providers import ProviderManager

console = Console()

EXIT_OK = 0
EXIT_FAILED_TILES = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False, log_file: str = None):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")
    if log_file:
        logger.add(log_file, level="DEBUG", encoding="utf-8")


def cmd_list_providers(args) -> int:
    table = Table(title="可用瓦片源")
    table.add_column("name", style="cyan")
    table.add_column("zoom_range")
    table.add_column("subdomains")
    table.add_column("url_template")
    for name in ProviderManager.list_providers():
        p = ProviderManager.get_provider(name)
        table.add_row(name, f"{p.min_zoom}-{p.max_zoom}", ",".join(p.subdomains), p.url_template)
    console.print(table)
    return EXIT_OK


def cmd_latlng(args) -> int:
    console.print("[bold blue]按经纬度范围下载瓦片[/bold blue]")
    tile_box = resolve_geo_box(GeoBox(args.north, args.west, args.south, args.east), args.zoom)
    return _download(args, tile_box)


def cmd_tilenum(args) -> int:
    console.print("[bold blue]按瓦片编号范围下载瓦片[/bold blue]")
    tile_box = TileBox(args.left, args.right, args.top, args.bottom, args.zoom)
    return _download(args, tile_box)


def _download(args, tile_box: TileBox) -> int:
    dl = TileDownloader(
        provider_name=args.map_type,
        output_name=args.output,
        suffix=args.suffix,
        output_dir=args.output_dir,
        max_threads=args.threads,
        retries=args.retries,
        delay=args.delay,
        timeout=args.timeout,
    )
    dl.add_tile_box(tile_box)
    dl.start()
    try:
        result = dl.wait()
    except KeyboardInterrupt:
        console.print("[yellow]收到中断信号，等待正在进行的下载结束...[/yellow]")
        dl.cancel()
        result = dl.wait()
        print_stats(result)
        return EXIT_INTERRUPTED

    print_stats(result)
    return EXIT_OK if result.failed == 0 else EXIT_FAILED_TILES


def print_stats(result: DownloadResult):
    table = Table(title="统计")
    stats = result.to_dict()
    for k in ["downloaded", "skipped", "failed", "cancelled", "total"]:
        table.add_row(k, str(stats.get(k, 0)))
    console.print(table)

    if result.failures:
        failed = Table(title="失败瓦片")
        failed.add_column("z/x/y", style="red")
        failed.add_column("reason")
        for failure in result.failures:
            failed.add_row(str(failure.coord), failure.reason)
        console.print(failed)


def _add_download_options(p: argparse.ArgumentParser):
    p.add_argument("--zoom", "-z", type=int, required=True)
    p.add_argument("--suffix", required=True, help="瓦片文件后缀 (png / jpg ...)")
    p.add_argument("--output", default="mosaic", help="输出名称")
    p.add_argument("--map-type", default="default", help="瓦片源 (default / satellite / osm ...)")
    p.add_argument("--output-dir", default="tiles")
    p.add_argument("--threads", type=int, default=DEFAULT_THREADS)
    p.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="失败后最多重试次数（每个瓦片最多请求 retries + 1 次）")
    p.add_argument("--delay", type=float, default=DEFAULT_DELAY, help="同一线程两次请求间隔（秒）")
    p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="单次请求超时（秒）")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tile-spider", description="地图瓦片下载器，按 {z}/{x}/{y} 保存用于拼接")
    parser.add_argument("--providers", help="瓦片源配置JSON文件")
    parser.add_argument("--verbose", "-v", action="store_true", help="输出调试日志")
    parser.add_argument("--log-file", help="日志文件")
    subparsers = parser.add_subparsers(dest="cmd")

    subparsers.add_parser("list", help="列出支持的瓦片源")

    p_latlng = subparsers.add_parser("latlng", help="按经纬度范围下载瓦片")
    p_latlng.add_argument("--north", type=float, required=True)
    p_latlng.add_argument("--west", type=float, required=True)
    p_latlng.add_argument("--south", type=float, required=True)
    p_latlng.add_argument("--east", type=float, required=True)
    _add_download_options(p_latlng)

    p_tilenum = subparsers.add_parser("tilenum", help="按瓦片编号范围下载瓦片")
    p_tilenum.add_argument("--left", type=int, required=True)
    p_tilenum.add_argument("--right", type=int, required=True)
    p_tilenum.add_argument("--top", type=int, required=True)
    p_tilenum.add_argument("--bottom", type=int, required=True)
    _add_download_options(p_tilenum)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    commands = {
        "list": cmd_list_providers,
        "latlng": cmd_latlng,
        "tilenum": cmd_tilenum,
    }
    if args.cmd not in commands:
        parser.print_help()
        return EXIT_CONFIG_ERROR

    try:
        if args.providers:
            ProviderManager.load_providers(args.providers)
        return commands[args.cmd](args)
    except ConfigurationError as e:
        console.print(f"[bold red]配置错误:[/bold red] {e}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())

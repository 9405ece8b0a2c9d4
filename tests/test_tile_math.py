import math

import pytest

from tile_spider.errors import ConfigurationError
from tile_spider.models import GeoBox, TileBox, TileCoord
from tile_spider.tile_math import TileMath


@pytest.mark.parametrize("zoom", [0, 1, 2, 5, 10, 18])
def test_tiles_stay_inside_grid(zoom):
    n = 2 ** zoom
    for lat in (-90, -85.0511, -60, -1.5, 0, 12.3, 45, 85.0511, 89.9, 90):
        for lon in (-180, -179.99, -90, 0, 45.5, 179.99, 180):
            x, y = TileMath.latlon_to_tile(lat, lon, zoom)
            assert 0 <= x < n
            assert 0 <= y < n


@pytest.mark.parametrize("zoom", [0, 1, 3, 8, 16])
def test_western_edge_is_column_zero(zoom):
    x, _ = TileMath.latlon_to_tile(0, -180, zoom)
    assert x == 0


@pytest.mark.parametrize("zoom", [1, 4, 12])
def test_north_east_corner_clamps_to_edge_tile(zoom):
    n = 2 ** zoom
    assert TileMath.latlon_to_tile(85.0511, 180, zoom) == (n - 1, 0)
    assert TileMath.latlon_to_tile(-85.0511, -180, zoom) == (0, n - 1)


@pytest.mark.parametrize("lat, lon", [
    (90, 0), (-90, 0), (100, 0), (-100, 0),
    (0, 540), (0, -540), (math.inf, math.inf), (-math.inf, -math.inf),
])
def test_out_of_range_input_clamps_instead_of_failing(lat, lon):
    x, y = TileMath.latlon_to_tile(lat, lon, 3)
    assert isinstance(x, int) and isinstance(y, int)
    assert 0 <= x < 8
    assert 0 <= y < 8


def test_poles_land_on_top_and_bottom_rows():
    assert TileMath.latlon_to_tile(90, 0, 4)[1] == 0
    assert TileMath.latlon_to_tile(-90, 0, 4)[1] == 15


def test_known_tiles():
    assert TileMath.latlon_to_tile(0, 0, 0) == (0, 0)
    assert TileMath.latlon_to_tile(0, 0, 1) == (1, 1)
    assert TileMath.latlon_to_tile(45, -90, 1) == (0, 0)
    assert TileMath.latlon_to_tile(-45, 90, 1) == (1, 1)


def test_negative_zoom_is_rejected():
    with pytest.raises(ConfigurationError):
        TileMath.latlon_to_tile(0, 0, -1)


def test_geo_box_maps_corners_independently():
    box = TileMath.geo_box_to_tile_box(GeoBox(north=45, west=-90, south=-45, east=90), 2)
    assert box == TileBox(left=1, right=3, top=1, bottom=2, zoom=2)


def test_geo_box_does_not_reorder_inverted_input():
    box = TileMath.geo_box_to_tile_box(GeoBox(north=-45, west=90, south=45, east=-90), 2)
    assert box.left > box.right
    assert box.top > box.bottom


def test_iter_tiles_is_inclusive_on_both_ends():
    box = TileBox(left=2, right=3, top=5, bottom=7, zoom=4)
    tiles = list(TileMath.iter_tiles(box))
    assert len(tiles) == TileMath.tile_count(box) == 6
    assert tiles[0] == TileCoord(2, 5, 4)
    assert tiles[-1] == TileCoord(3, 7, 4)
    assert len(set(tiles)) == len(tiles)


def test_tile_count_of_inverted_box_is_zero():
    assert TileMath.tile_count(TileBox(3, 2, 0, 0, 2)) == 0


@pytest.mark.parametrize("box", [
    TileBox(1, 0, 0, 0, 2),
    TileBox(0, 0, 1, 0, 2),
    TileBox(0, 4, 0, 0, 2),
    TileBox(-1, 0, 0, 0, 2),
    TileBox(0, 0, 0, 0, -1),
    TileBox(0.5, 1, 0, 0, 2),
])
def test_validate_tile_box_rejects_malformed_boxes(box):
    with pytest.raises(ConfigurationError):
        TileMath.validate_tile_box(box)


def test_validate_tile_box_accepts_full_grid():
    box = TileBox(0, 3, 0, 3, 2)
    assert TileMath.validate_tile_box(box) is box

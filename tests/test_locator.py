import pytest

from ft8codec.locator import grid_to_latlon, is_grid, latlon_to_grid


def test_grid_centres():
    assert grid_to_latlon("FN20") == pytest.approx((40.5, -75.0))
    assert grid_to_latlon("JO22") == pytest.approx((52.5, 5.0))
    assert grid_to_latlon("AA00") == pytest.approx((-89.5, -179.0))
    assert grid_to_latlon("RR99") == pytest.approx((89.5, 179.0))


def test_six_character_locator():
    lat, lon = grid_to_latlon("FN20xr")
    assert lat == pytest.approx(40.0 + 17 / 24.0 + 0.5 / 24.0)
    assert lon == pytest.approx(-76.0 + 23 * 2 / 24.0 + 1 / 24.0)


def test_latlon_roundtrip():
    for grid in ["FN20", "JO22", "AA00", "RR99", "IO91"]:
        lat, lon = grid_to_latlon(grid)
        assert latlon_to_grid(lat, lon) == grid
    assert latlon_to_grid(*grid_to_latlon("FN20xr"), precision=6) == "FN20xr"
    # Poles and the antimeridian fall in the last square
    assert latlon_to_grid(90.0, 180.0) == "RR99"


def test_invalid_locators():
    assert is_grid("fn20")
    assert not is_grid("SS00")
    assert not is_grid("FN2")
    with pytest.raises(ValueError):
        grid_to_latlon("ZZ99")
    with pytest.raises(ValueError):
        latlon_to_grid(91.0, 0.0)
    with pytest.raises(ValueError):
        latlon_to_grid(0.0, 0.0, precision=8)

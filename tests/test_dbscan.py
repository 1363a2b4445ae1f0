import random
from math import cos, radians

import pytest

from lovestory.clustering.dbscan import NOISE, dbscan, region_query
from lovestory.clustering.engine import DBSCAN_EPS_M, DBSCAN_MIN_POINTS
from lovestory.core.geo import GeoPoint

BASE = GeoPoint(lat=37.5665, lon=126.9780)
M_PER_DEG_LAT = 111_194.9266


def offset(origin: GeoPoint, north_m: float = 0.0, east_m: float = 0.0) -> GeoPoint:
    return GeoPoint(
        lat=origin.lat + north_m / M_PER_DEG_LAT,
        lon=origin.lon + east_m / (M_PER_DEG_LAT * cos(radians(origin.lat))),
    )


def blob(origin: GeoPoint, count: int) -> list[GeoPoint]:
    # 1 m grid, 4 columns wide: every pair stays well within eps.
    return [offset(origin, north_m=i // 4, east_m=i % 4) for i in range(count)]


def memberships(points, result):
    return {frozenset((points[i].lat, points[i].lon) for i in members) for members in result.clusters}


def test_twelve_tight_points_form_one_cluster():
    points = blob(BASE, 12)
    result = dbscan(points, DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    assert len(result.clusters) == 1
    assert len(result.clusters[0]) == 12
    assert result.noise == []


def test_isolated_points_are_all_noise():
    points = [offset(BASE, north_m=25 * i) for i in range(5)]
    result = dbscan(points, DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    assert result.clusters == []
    assert result.noise == [0, 1, 2, 3, 4]
    assert result.labels == [NOISE] * 5


def test_nine_points_are_below_min_points():
    result = dbscan(blob(BASE, 9), DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    assert result.clusters == []
    assert len(result.noise) == 9


def test_empty_input():
    result = dbscan([], DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    assert result.clusters == [] and result.noise == []


def test_region_query_includes_point_itself_in_input_order():
    points = [offset(BASE, north_m=20), BASE, offset(BASE, north_m=5)]
    assert region_query(points, 1, 15.0) == [1, 2]


def test_provisional_noise_is_absorbed_as_border_point():
    # Core: four points packed south of BASE. Border: 13.5 m north, reaching only two of them.
    border = offset(BASE, north_m=13.5)
    core = [offset(BASE, north_m=-m) for m in range(4)]
    points = [border, *core]

    result = dbscan(points, 15.0, 4)

    assert len(result.clusters) == 1
    # The border point was marked noise first, then absorbed; it is the first member inserted.
    assert result.clusters[0] == [0, 1, 2, 3, 4]
    assert result.noise == []
    assert result.labels == [0, 0, 0, 0, 0]


def test_border_point_is_not_stolen_by_a_later_cluster():
    # Two dense groups 28 m apart; the middle point only reaches the nearest member of each.
    left = [offset(BASE, east_m=-2 * m) for m in range(4)]
    right = [offset(BASE, east_m=28 + 2 * m) for m in range(4)]
    middle = offset(BASE, east_m=14)
    points = [*left, middle, *right]

    result = dbscan(points, 15.0, 4)

    assert len(result.clusters) == 2
    assert 4 in result.clusters[0]
    assert 4 not in result.clusters[1]


def test_chained_core_points_expand_into_one_cluster():
    # A 60 m line of points every 2 m: each interior point is core, so the chain is one place.
    points = [offset(BASE, north_m=2 * i) for i in range(31)]
    result = dbscan(points, DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    assert len(result.clusters) == 1
    assert sorted(result.clusters[0]) == list(range(31))


def test_cluster_memberships_are_invariant_to_input_permutation():
    cafe = blob(BASE, 12)
    park = blob(offset(BASE, north_m=500, east_m=300), 15)
    strays = [offset(BASE, north_m=-200), offset(BASE, east_m=-250), offset(BASE, north_m=900)]
    points = [*cafe, *park, *strays]

    expected = memberships(points, dbscan(points, DBSCAN_EPS_M, DBSCAN_MIN_POINTS))
    assert len(expected) == 2

    rng = random.Random(20240503)
    for _ in range(5):
        shuffled = list(points)
        rng.shuffle(shuffled)
        result = dbscan(shuffled, DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
        assert memberships(shuffled, result) == expected
        assert len(result.noise) == 3


@pytest.mark.parametrize("eps_m, min_points", [(-1.0, 10), (15.0, 0)])
def test_rejects_invalid_parameters(eps_m, min_points):
    with pytest.raises(ValueError):
        dbscan([BASE], eps_m, min_points)

"""
Density-based clustering (DBSCAN) over haversine distance.

Each point carries one status, updated in place:
- `UNVISITED`
- `NOISE` (provisional: a later expansion may still absorb it as a border point)
- a cluster id (`>= 0`)

Keeping a single status per point, instead of separate visited/noise sets, means a point
can never be both noise and a member.

Region queries scan all points (O(n^2) overall). A day of checkpoints for one couple is
small enough that no spatial index is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from lovestory.core.geo import GeoPoint, haversine_m

UNVISITED = -2
NOISE = -1


@dataclass(frozen=True)
class DbscanResult:
    """Clusters as lists of input indices (creation order; members in insertion order)."""

    clusters: list[list[int]] = field(default_factory=list)
    noise: list[int] = field(default_factory=list)
    labels: list[int] = field(default_factory=list)


def region_query(
    points: Sequence[GeoPoint],
    index: int,
    eps_m: float,
    distance: Callable[[GeoPoint, GeoPoint], float] = haversine_m,
) -> list[int]:
    """Indices of all points within `eps_m` of `points[index]`, itself included, in input order."""
    origin = points[index]
    return [j for j, other in enumerate(points) if distance(origin, other) <= eps_m]


def dbscan(
    points: Sequence[GeoPoint],
    eps_m: float,
    min_points: int,
    *,
    distance: Callable[[GeoPoint, GeoPoint], float] = haversine_m,
) -> DbscanResult:
    """Partition `points` into density-based clusters.

    Traversal follows input order, so callers that need reproducible representatives must
    pass a stably ordered sequence.
    """
    if eps_m < 0:
        raise ValueError("eps_m must be >= 0")
    if min_points < 1:
        raise ValueError("min_points must be >= 1")

    labels = [UNVISITED] * len(points)
    clusters: list[list[int]] = []

    for p in range(len(points)):
        if labels[p] != UNVISITED:
            continue

        neighbors = region_query(points, p, eps_m, distance)
        if len(neighbors) < min_points:
            labels[p] = NOISE
            continue

        cluster_id = len(clusters)
        members: list[int] = []
        clusters.append(members)

        frontier = list(neighbors)
        queued = set(frontier)
        i = 0
        while i < len(frontier):
            q = frontier[i]
            i += 1

            # `p` already had its region computed above.
            if labels[q] == UNVISITED and q != p:
                q_neighbors = region_query(points, q, eps_m, distance)
                if len(q_neighbors) >= min_points:
                    for r in q_neighbors:
                        if labels[r] == UNVISITED and r not in queued:
                            queued.add(r)
                            frontier.append(r)

            # Unvisited or provisional noise: joins this cluster. Members of earlier clusters stay put.
            if labels[q] < 0:
                labels[q] = cluster_id
                members.append(q)

    noise = [i for i, label in enumerate(labels) if label == NOISE]
    return DbscanResult(clusters=clusters, noise=noise, labels=labels)

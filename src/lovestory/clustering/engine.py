from __future__ import annotations

import logging
from datetime import date

from lovestory.clustering.dbscan import dbscan
from lovestory.core.geo import GeoPoint
from lovestory.core.time import local_day, month_bounds
from lovestory.domain.models import Cluster, ClusterDayResult, GeoPoint as PointModel
from lovestory.storage.base import CheckpointLedger, for_day, sort_key

logger = logging.getLogger(__name__)

DBSCAN_EPS_M = 15.0
DBSCAN_MIN_POINTS = 10


def cluster_day(
    ledger: CheckpointLedger, couple_id: str, day: date, timezone: str
) -> ClusterDayResult:
    """Group one calendar day of a couple's checkpoints into visited places."""
    checkpoints = sorted(for_day(ledger, couple_id, day, timezone), key=sort_key)
    points = [GeoPoint(lat=c.latitude, lon=c.longitude) for c in checkpoints]

    result = dbscan(points, DBSCAN_EPS_M, DBSCAN_MIN_POINTS)
    clusters = [
        Cluster(
            representative_point=PointModel(lat=points[members[0]].lat, lon=points[members[0]].lon),
            member_count=len(members),
        )
        for members in result.clusters
    ]

    logger.info(
        "Clustered couple=%s day=%s checkpoints=%d clusters=%d noise=%d",
        couple_id,
        day.isoformat(),
        len(points),
        len(clusters),
        len(result.noise),
    )
    return ClusterDayResult(
        couple_id=couple_id,
        day=day,
        timezone=timezone,
        clusters=clusters,
        noise_count=len(result.noise),
        checkpoint_count=len(points),
    )


def dates_with_checkpoints(
    ledger: CheckpointLedger, couple_id: str, year: int, month: int, timezone: str
) -> list[int]:
    """Distinct days of the month (in `timezone`) on which the couple has checkpoints."""
    start, end = month_bounds(year, month, timezone)
    days = {local_day(c.captured_at, timezone).day for c in ledger.between(couple_id, start, end)}
    return sorted(days)

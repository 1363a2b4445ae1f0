"""
LoveStory CLI entrypoint.

Quick local operations against the configured storage backend (use
`LOVESTORY_STORAGE_BACKEND=jsonl` to keep state between invocations), plus `serve` to run
the HTTP API. All logic is delegated to `lovestory.service.GeoService`.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from lovestory.config.settings import get_settings
from lovestory.core.errors import LoveStoryError
from lovestory.core.logging import configure_logging
from lovestory.core.time import parse_datetime
from lovestory.service import GeoService, build_service


def _emit(payload: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(payload)


def _cmd_record(args: argparse.Namespace, service: GeoService) -> int:
    captured_at = parse_datetime(args.at, service.timezone) if args.at else None
    sample = service.record_location(args.user_id, args.lat, args.lon, captured_at)
    if args.json:
        _emit(sample.model_dump(mode="json"), True)
        return 0
    print(f"{sample.owner_user_id} @ ({sample.latitude}, {sample.longitude}) {sample.captured_at.isoformat()}")
    return 0


def _cmd_nearby(args: argparse.Namespace, service: GeoService) -> int:
    result = service.check_nearby(args.couple_id)
    if args.json:
        _emit(result.model_dump(mode="json"), True)
        return 0
    if result.status == "data_unavailable":
        print("location data not available yet for one or both members")
        return 0
    print(f"nearby={result.is_nearby} distance={result.distance_m:.1f}m checkpoint={result.checkpoint}")
    return 0


def _cmd_clusters(args: argparse.Namespace, service: GeoService) -> int:
    result = service.cluster_day(args.couple_id, args.date)
    if args.json:
        _emit(result.model_dump(mode="json"), True)
        return 0
    print(f"{result.day.isoformat()} ({result.timezone}): {result.checkpoint_count} checkpoints")
    for i, cluster in enumerate(result.clusters, start=1):
        p = cluster.representative_point
        print(f"{i:>2}. ({p.lat:.6f}, {p.lon:.6f})  count={cluster.member_count}")
    print(f"noise={result.noise_count}")
    return 0


def _cmd_dates(args: argparse.Namespace, service: GeoService) -> int:
    days = service.dates_with_checkpoints(args.couple_id, args.year_month)
    _emit(days if args.json else " ".join(str(d) for d in days), args.json)
    return 0


def _cmd_pair(args: argparse.Namespace, service: GeoService) -> int:
    couple = service.register_couple(args.couple_id, args.user_a, args.user_b)
    print(f"paired {couple.user_a} + {couple.user_b} as {couple.couple_id}")
    return 0


def _cmd_unpair(args: argparse.Namespace, service: GeoService) -> int:
    purged = service.delete_couple(args.couple_id)
    print(f"deleted {args.couple_id}: {purged['checkpoints']} checkpoints, {purged['samples']} samples")
    return 0


def _cmd_serve(args: argparse.Namespace, _: GeoService) -> int:
    import uvicorn

    uvicorn.run("lovestory.api.app:app", host=args.host, port=int(args.port), reload=bool(args.reload))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the LoveStory CLI."""
    parser = argparse.ArgumentParser(prog="lovestory")
    parser.add_argument("--log-level", default=None, help="Override app.log_level for this run")
    sub = parser.add_subparsers(dest="command", required=True)

    rec = sub.add_parser("record", help="Store one GPS fix for a user.")
    rec.add_argument("user_id")
    rec.add_argument("--lat", required=True, type=float)
    rec.add_argument("--lon", required=True, type=float)
    rec.add_argument("--at", default=None, help="ISO datetime; defaults to now in the reference timezone")
    rec.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    rec.set_defaults(func=_cmd_record)

    near = sub.add_parser("nearby", help="Check whether a couple is within 100 m right now.")
    near.add_argument("couple_id")
    near.add_argument("--json", action="store_true")
    near.set_defaults(func=_cmd_nearby)

    clu = sub.add_parser("clusters", help="Cluster one day of a couple's checkpoints into places.")
    clu.add_argument("couple_id")
    clu.add_argument("--date", required=True, help="YYYY-MM-DD in the reference timezone")
    clu.add_argument("--json", action="store_true")
    clu.set_defaults(func=_cmd_clusters)

    dates = sub.add_parser("dates", help="Days of a month on which the couple met.")
    dates.add_argument("couple_id")
    dates.add_argument("year_month", help="YYYY-MM")
    dates.add_argument("--json", action="store_true")
    dates.set_defaults(func=_cmd_dates)

    pair = sub.add_parser("pair", help="Register a couple (development stand-in for pairing).")
    pair.add_argument("couple_id")
    pair.add_argument("user_a")
    pair.add_argument("user_b")
    pair.set_defaults(func=_cmd_pair)

    unpair = sub.add_parser("unpair", help="Delete a couple and purge its location history.")
    unpair.add_argument("couple_id")
    unpair.set_defaults(func=_cmd_unpair)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None, *, service: GeoService | None = None) -> int:
    """CLI entrypoint callable used by `python -m lovestory.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    try:
        return int(func(args, service or build_service(get_settings())))
    except LoveStoryError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())

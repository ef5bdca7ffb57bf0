"""Run the dashboard pipeline once and print the view model as JSON."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from .config import DashboardConfig
from .entities import SectionResult, ViewMode
from .health import HealthRegistry
from .services.dashboard import DashboardPipeline


logger = logging.getLogger(__name__)


def _serialize(value: Any) -> Any:
    if isinstance(value, SectionResult):
        payload = {"ok": value.ok, "view": _serialize(value.view)}
        if value.error is not None:
            notice = value.notice
            payload["error"] = {
                "kind": value.error.kind.value,
                "message": value.error.message,
                "notice": {"level": notice.level, "text": notice.text},
            }
        return payload
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: _serialize(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="station-dashboard", description=__doc__)
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ViewMode],
        default=ViewMode.REALTIME.value,
        help="Telemetry view to render",
    )
    parser.add_argument(
        "--section",
        choices=["all", "weather", "tide"],
        default="all",
        help="Only render one section",
    )
    parser.add_argument("--health", action="store_true", help="Include provider/cache health counters")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    try:
        config = DashboardConfig.from_env()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    health = HealthRegistry()
    pipeline = DashboardPipeline(config, health=health)
    sections = ("weather", "tide") if args.section == "all" else (args.section,)
    dashboard = pipeline.build(args.mode, sections=sections)

    payload = {"mode": dashboard.mode.value}
    if dashboard.weather is not None:
        payload["weather"] = _serialize(dashboard.weather)
    if dashboard.tide is not None:
        payload["tide"] = _serialize(dashboard.tide)
    if args.health:
        payload["health"] = health.snapshot()

    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
    return 0


__all__ = ["main", "build_parser"]

"""Replay a recorded GPS fix log through the capture service.

The log is a JSON array of fix objects (``latitude``, ``longitude`` and
optionally ``accuracy``, ``timestamp`` and ``speed``). The first usable fix
starts a capture; later fixes extend it and every closed loop is finalized
before the next fix is read, so one log may yield several territories.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..models import GeoPoint, GpsFix, ReplaySummary, Territory
from ..services import CaptureConfiguration, CaptureFailure, CaptureObserver, CaptureService
from ..utils import json_dumps_sorted
from .territory_map import create_territory_map

PathLike = Union[str, Path]

REJECTED_INVALID = "Invalid fix"

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_NO_TERRITORY = 2


class _DeferredTask:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class DeferredScheduler:
    """Scheduler that queues callbacks until :meth:`run_pending` is called.

    Replays run faster than wall-clock time, so auto-finalize delays are
    collapsed into explicit checkpoints between fixes.
    """

    def __init__(self) -> None:
        self._tasks: List[_DeferredTask] = []

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> _DeferredTask:
        task = _DeferredTask(callback)
        self._tasks.append(task)
        return task

    def run_pending(self) -> int:
        """Run every queued, uncancelled callback; return how many ran."""

        tasks, self._tasks = self._tasks, []
        ran = 0
        for task in tasks:
            if task.cancelled:
                continue
            task.callback()
            ran += 1
        return ran


class _ReplayRecorder(CaptureObserver):
    def __init__(self) -> None:
        self.failures: List[CaptureFailure] = []

    def on_capture_failure(self, failure: CaptureFailure) -> None:
        self.failures.append(failure)


def load_fixes(path: PathLike) -> List[Mapping[str, Any]]:
    """Read a JSON fix log.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a JSON array of objects.
    """

    with Path(path).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise ValueError("Fix log must be a JSON array")
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"Fix #{index} is not a JSON object")
    return payload


def replay_fixes(
    fixes: Iterable[Mapping[str, Any]],
    config: Optional[CaptureConfiguration] = None,
    *,
    condition: bool = False,
) -> Tuple[ReplaySummary, CaptureService, List[Tuple[GeoPoint, ...]]]:
    """Feed ``fixes`` through a fresh service and summarise what happened.

    When ``condition`` is set, fixes go through the update gate and outlier
    detector (:meth:`CaptureService.submit_fix`) before reaching the trail.

    Returns:
        The :class:`ReplaySummary`, the service (for inspecting any capture
        left open at the end of the log) and the trails of rejected captures.
    """

    scheduler = DeferredScheduler()
    service = CaptureService(config, scheduler=scheduler)
    recorder = _ReplayRecorder()
    service.subscribe(recorder)
    summary = ReplaySummary()

    def reject(reason: str) -> None:
        summary.rejections[reason] = summary.rejections.get(reason, 0) + 1

    for payload in fixes:
        summary.fixes_read += 1
        fix = GpsFix.from_mapping(payload)
        if fix is None:
            reject(REJECTED_INVALID)
            continue
        if not service.is_capturing:
            if service.start_capture(fix):
                summary.fixes_added += 1
            else:
                reject(REJECTED_INVALID)
            continue
        result = service.submit_fix(fix) if condition else service.add_point(fix)
        if result.added:
            summary.fixes_added += 1
        else:
            reject(result.reason)
        scheduler.run_pending()

    summary.territories = list(service.get_captured_territories())
    summary.failures = [failure.reason for failure in recorder.failures]
    failed_paths = [failure.path for failure in recorder.failures]
    return summary, service, failed_paths


def summary_to_dict(summary: ReplaySummary) -> Dict[str, Any]:
    """Return a JSON-friendly mapping of a replay summary."""

    territories: List[Territory] = summary.territories
    return {
        "fixes_read": summary.fixes_read,
        "fixes_added": summary.fixes_added,
        "rejections": dict(summary.rejections),
        "failures": list(summary.failures),
        "territories": [territory.to_dict() for territory in territories],
    }


def _build_parser() -> argparse.ArgumentParser:
    """Return the CLI argument parser for the replay tool."""

    parser = argparse.ArgumentParser(
        description=(
            "Replay a recorded GPS fix log through the territory capture"
            " pipeline and report the captured territories."
        )
    )
    parser.add_argument("fixes", type=Path, help="JSON array of recorded fixes")
    parser.add_argument(
        "--condition",
        action="store_true",
        help="Run fixes through the update gate and outlier detector first",
    )
    parser.add_argument(
        "--map",
        dest="map_path",
        type=Path,
        help="Optional output HTML path for an interactive map",
    )
    parser.add_argument(
        "--summary",
        dest="summary_path",
        type=Path,
        help="Optional output JSON path for the replay summary",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m territory_capture.tools.replay_fixes``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )

    try:
        fixes = load_fixes(args.fixes)
    except (FileNotFoundError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError subclass.
        logging.error("Failed to load fix log '%s': %s", args.fixes, exc)
        return EXIT_INPUT_ERROR

    summary, service, failed_paths = replay_fixes(fixes, condition=args.condition)
    logging.info(
        "Replayed %d fixes: %d added, %d territories, %d failed captures",
        summary.fixes_read,
        summary.fixes_added,
        len(summary.territories),
        len(summary.failures),
    )
    for reason, count in sorted(summary.rejections.items()):
        logging.info("Rejected %d fix(es): %s", count, reason)

    if args.summary_path is not None:
        args.summary_path.parent.mkdir(parents=True, exist_ok=True)
        args.summary_path.write_text(
            json_dumps_sorted(summary_to_dict(summary), indent=2), encoding="utf-8"
        )
        logging.info("Summary written to %s", args.summary_path)

    if args.map_path is not None:
        active = service.get_active_path()
        try:
            create_territory_map(
                summary.territories,
                failed_paths=failed_paths,
                active_path=active or None,
                output_html_path=args.map_path,
            )
        except ValueError as exc:
            logging.error("Failed to build map: %s", exc)
            return EXIT_INPUT_ERROR
        logging.info("Territory map written to %s", args.map_path)

    return EXIT_OK if summary.territories else EXIT_NO_TERRITORY


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

"""Tests for the replay CLI and the territory map renderer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import folium
import pytest

from territory_capture.tools.replay_fixes import (
    EXIT_INPUT_ERROR,
    EXIT_NO_TERRITORY,
    EXIT_OK,
    REJECTED_INVALID,
    DeferredScheduler,
    main,
    replay_fixes,
    summary_to_dict,
)
from territory_capture.tools.territory_map import (
    _ACTIVE_COLOR,
    _FAILED_COLOR,
    _TERRITORY_COLOR,
    create_territory_map,
)

from conftest import FIGURE_EIGHT, SQUARE_42M, make_trail, ring


def _payloads(trail) -> List[Dict[str, Any]]:
    return [
        {
            "latitude": fix.latitude,
            "longitude": fix.longitude,
            "accuracy": fix.accuracy,
            "timestamp": fix.timestamp,
            "speed": fix.speed,
        }
        for fix in trail
    ]


def _write(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_deferred_scheduler_runs_uncancelled_tasks() -> None:
    calls: List[str] = []
    scheduler = DeferredScheduler()
    scheduler.schedule(1.0, lambda: calls.append("a"))
    cancelled = scheduler.schedule(1.0, lambda: calls.append("b"))
    cancelled.cancel()
    assert scheduler.run_pending() == 1
    assert calls == ["a"]
    assert scheduler.run_pending() == 0


def test_replay_captures_square() -> None:
    fixes = _payloads(make_trail(SQUARE_42M))
    summary, service, failed_paths = replay_fixes(fixes)

    assert summary.fixes_read == len(fixes)
    assert summary.fixes_added == len(fixes)
    assert summary.rejections == {}
    assert len(summary.territories) == 1
    assert summary.failures == []
    assert failed_paths == []
    assert not service.is_capturing


def test_replay_counts_rejections() -> None:
    fixes = _payloads(make_trail(SQUARE_42M))
    fixes.insert(3, {"latitude": "north", "longitude": 10})
    fixes.insert(5, dict(fixes[4]))
    summary, _, _ = replay_fixes(fixes)

    assert summary.fixes_read == len(SQUARE_42M) + 2
    assert summary.rejections == {REJECTED_INVALID: 1, "Point too close": 1}
    assert len(summary.territories) == 1


def test_replay_records_failed_capture() -> None:
    fixes = _payloads(make_trail(FIGURE_EIGHT, speed=5.0, interval_ms=3_000))
    summary, _, failed_paths = replay_fixes(fixes)
    assert summary.territories == []
    assert summary.failures == ["self-intersecting"]
    assert len(failed_paths) == 1


def test_replay_with_conditioning_rejects_spike() -> None:
    trail = _payloads(make_trail(SQUARE_42M))
    spike = dict(trail[2])
    spike["latitude"] += 0.01
    spike["timestamp"] += 1_000
    trail.insert(3, spike)
    summary, _, _ = replay_fixes(trail, condition=True)
    assert summary.rejections == {"Outlier": 1}
    assert len(summary.territories) == 1


def test_summary_to_dict_is_json_friendly() -> None:
    summary, _, _ = replay_fixes(_payloads(make_trail(SQUARE_42M)))
    payload = summary_to_dict(summary)
    encoded = json.dumps(payload)
    assert "encoded_polygon" in encoded
    assert payload["fixes_read"] == len(SQUARE_42M)


def test_cli_writes_map_and_summary(tmp_path: Path) -> None:
    log = _write(tmp_path / "fixes.json", _payloads(make_trail(SQUARE_42M)))
    map_path = tmp_path / "maps" / "replay.html"
    summary_path = tmp_path / "out" / "summary.json"

    exit_code = main([str(log), "--map", str(map_path), "--summary", str(summary_path)])

    assert exit_code == EXIT_OK
    assert map_path.exists()
    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert len(summary["territories"]) == 1
    assert summary["territories"][0]["area_sq_m"] > 1_000


def test_cli_reports_no_territory(tmp_path: Path) -> None:
    log = _write(tmp_path / "fixes.json", _payloads(make_trail(SQUARE_42M[:6])))
    assert main([str(log)]) == EXIT_NO_TERRITORY


def test_cli_map_includes_open_trail(tmp_path: Path) -> None:
    log = _write(tmp_path / "fixes.json", _payloads(make_trail(SQUARE_42M[:6])))
    map_path = tmp_path / "open.html"
    assert main([str(log), "--map", str(map_path)]) == EXIT_NO_TERRITORY
    assert map_path.exists()


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"latitude": 1.0}), json.dumps([1, 2, 3])],
)
def test_cli_rejects_malformed_logs(tmp_path: Path, content: str) -> None:
    log = tmp_path / "fixes.json"
    log.write_text(content, encoding="utf-8")
    assert main([str(log)]) == EXIT_INPUT_ERROR


def test_cli_rejects_missing_log(tmp_path: Path) -> None:
    assert main([str(tmp_path / "missing.json")]) == EXIT_INPUT_ERROR


def test_cli_rejects_empty_map(tmp_path: Path) -> None:
    log = _write(tmp_path / "fixes.json", [])
    assert main([str(log), "--map", str(tmp_path / "empty.html")]) == EXIT_INPUT_ERROR


def test_territory_map_draws_layers(tmp_path: Path) -> None:
    summary, _, _ = replay_fixes(_payloads(make_trail(SQUARE_42M)))
    failed = ring([(100, 0), (140, 40), (140, 0), (100, 40)])
    active = ring([(0, 100), (20, 100), (20, 120)])
    output_path = tmp_path / "territories.html"

    folium_map = create_territory_map(
        summary.territories,
        failed_paths=[failed],
        active_path=active,
        output_html_path=output_path,
    )

    assert isinstance(folium_map, folium.Map)
    assert output_path.exists()
    children = list(folium_map._children.values())
    polygon_colors = {
        child.options.get("color")
        for child in children
        if isinstance(child, folium.vector_layers.Polygon)
    }
    polyline_colors = {
        child.options.get("color")
        for child in children
        if isinstance(child, folium.vector_layers.PolyLine)
    }
    assert polygon_colors == {_TERRITORY_COLOR}
    assert {_FAILED_COLOR, _ACTIVE_COLOR} <= polyline_colors
    assert any(isinstance(child, folium.vector_layers.CircleMarker) for child in children)


def test_territory_map_requires_content() -> None:
    with pytest.raises(ValueError):
        create_territory_map([])

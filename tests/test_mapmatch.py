from __future__ import annotations

import io
import json
import urllib.error
import urllib.request

import pytest

from cotraj.errors import MapMatchError, NoMatchError
from cotraj.mapmatch import (
    MatchStatus,
    OsrmConfig,
    OsrmMapMatcher,
    extract_positions,
    match_trajectory,
    osrm_match_raw,
)
from cotraj.models import Measurement, Position, Trajectory
from cotraj.trajectory import map_match


def _traj(traj_id: int = 1) -> Trajectory:
    return Trajectory(
        id=traj_id,
        measurements=(
            Measurement(1000, Position(latitude=59.33, longitude=18.06)),
            Measurement(1060, Position(latitude=59.34, longitude=18.07)),
        ),
    )


class _FixedMatcher:
    def __init__(self, path: list[Position]) -> None:
        self.path = path
        self.calls: list[list[tuple[float, float, int]]] = []

    def match(self, fixes):
        self.calls.append(list(fixes))
        return self.path


class _RaisingMatcher:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def match(self, fixes):
        raise self.exc


def test_matched_path_gets_synthetic_times() -> None:
    path = [Position(59.330, 18.060), Position(59.335, 18.065), Position(59.340, 18.070)]
    matcher = _FixedMatcher(path)
    result = match_trajectory(_traj(), matcher)
    assert result.status is MatchStatus.MATCHED
    assert result.trajectory == Trajectory(id=1, measurements=tuple(Measurement(i, p) for i, p in enumerate(path)))
    assert matcher.calls == [[(59.33, 18.06, 1000), (59.34, 18.07, 1060)]]


def test_no_match_degrades_to_empty_trajectory() -> None:
    result = match_trajectory(_traj(7), _RaisingMatcher(NoMatchError("nothing")))
    assert result.status is MatchStatus.NO_MATCH
    assert result.trajectory == Trajectory(id=7, measurements=())
    assert result.reason == "nothing"


def test_crash_degrades_to_empty_trajectory() -> None:
    result = match_trajectory(_traj(7), _RaisingMatcher(RuntimeError("boom")))
    assert result.status is MatchStatus.FAILED
    assert result.trajectory == Trajectory(id=7, measurements=())
    assert result.reason == "RuntimeError: boom"
    assert map_match(_traj(7), _RaisingMatcher(RuntimeError("boom"))) == Trajectory(id=7, measurements=())


def test_empty_trajectory_is_not_sent_to_the_matcher() -> None:
    matcher = _FixedMatcher([Position(0.0, 0.0)])
    result = match_trajectory(Trajectory(id=3), matcher)
    assert result.status is MatchStatus.NO_MATCH
    assert matcher.calls == []


def test_empty_path_counts_as_no_match() -> None:
    assert match_trajectory(_traj(), _FixedMatcher([])).status is MatchStatus.NO_MATCH


def test_extract_positions_reads_geojson_lon_lat() -> None:
    raw = {
        "code": "Ok",
        "matchings": [
            {"geometry": {"type": "LineString", "coordinates": [[18.06, 59.33], [18.07, 59.34]]}},
            {"geometry": {"type": "LineString", "coordinates": [[18.08, 59.35]]}},
        ],
    }
    assert extract_positions(raw) == [Position(59.33, 18.06), Position(59.34, 18.07), Position(59.35, 18.08)]


def test_extract_positions_errors() -> None:
    with pytest.raises(NoMatchError):
        extract_positions({"code": "NoMatch"})
    with pytest.raises(NoMatchError):
        extract_positions({"code": "Ok", "matchings": []})
    with pytest.raises(MapMatchError, match="malformed"):
        extract_positions({"code": "Ok", "matchings": [{"geometry": {}}]})
    with pytest.raises(MapMatchError, match="malformed"):
        extract_positions({"code": "Ok", "matchings": [{"geometry": {"coordinates": [[500.0, 10.0]]}}]})


class _FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


def test_osrm_client_builds_request_and_parses_response(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}
    body = {"code": "Ok", "matchings": [{"geometry": {"coordinates": [[18.06, 59.33]]}}]}

    def fake_urlopen(req: urllib.request.Request, timeout: float) -> _FakeResponse:
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        seen["ua"] = req.get_header("User-agent")
        return _FakeResponse(json.dumps(body).encode("utf-8"))

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    cfg = OsrmConfig(base_url="http://osrm.local/match/v1/", profile="foot", timeout_seconds=3.0, user_agent="t")
    positions = OsrmMapMatcher(cfg).match([(59.33, 18.06, 1000), (59.34, 18.07, 1060)])

    assert positions == [Position(59.33, 18.06)]
    url = str(seen["url"])
    assert url.startswith("http://osrm.local/match/v1/foot/18.060000,59.330000;18.070000,59.340000?")
    assert "timestamps=1000%3B1060" in url
    assert "geometries=geojson" in url
    assert seen["timeout"] == 3.0
    assert seen["ua"] == "t"


def test_osrm_client_maps_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_match(req: urllib.request.Request, timeout: float) -> _FakeResponse:
        body = io.BytesIO(json.dumps({"code": "NoMatch"}).encode("utf-8"))
        raise urllib.error.HTTPError(req.full_url, 400, "Bad Request", None, body)

    monkeypatch.setattr(urllib.request, "urlopen", no_match)
    with pytest.raises(NoMatchError, match="NoMatch"):
        osrm_match_raw([(0.0, 0.0, 0)], OsrmConfig())

    def unreachable(req: urllib.request.Request, timeout: float) -> _FakeResponse:
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", unreachable)
    with pytest.raises(MapMatchError, match="request failed"):
        osrm_match_raw([(0.0, 0.0, 0)], OsrmConfig())

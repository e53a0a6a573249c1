"""Map matching: snapping a trajectory's fixes onto a road network.

The road network lives in an external service. This module defines the narrow
contract cotraj needs from it (``MapMatcher``), a client for an OSRM-compatible
``/match`` endpoint using only the Python standard library, and the policy that
turns any matcher failure into an empty trajectory.

Important:
    - Public routing services are rate-limited and cap the number of fixes per
      request. For bulk work point ``OsrmConfig.base_url`` at your own instance.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, Sequence

from cotraj.errors import MapMatchError, NoMatchError
from cotraj.geo import validate_coordinates
from cotraj.models import Measurement, Position, Trajectory

logger = logging.getLogger(__name__)

# (latitude, longitude, time)
Fix = tuple[float, float, int]


class MapMatcher(Protocol):
    """Anything that can snap an ordered list of fixes onto a road network.

    Implementations return the matched path and raise on failure; they do not
    need to be thread-safe unless used with a thread-based execution context.
    """

    def match(self, fixes: Sequence[Fix]) -> list[Position]:
        ...


@dataclass(frozen=True, slots=True)
class OsrmConfig:
    """Configuration for an OSRM ``match`` service."""

    base_url: str = "https://router.project-osrm.org/match/v1"
    profile: str = "driving"
    timeout_seconds: float = 20.0
    radius_m: float | None = None
    user_agent: str = "cotraj/0.1.0 (map-match; please set your own UA)"


def osrm_match_raw(fixes: Sequence[Fix], cfg: OsrmConfig) -> dict[str, Any]:
    """Call the OSRM match API and return the raw JSON dict.

    This is a pure function (no cache, no throttling state), so it is safe to
    call from worker threads or processes.

    Raises:
        NoMatchError: If the service answered but could not match the fixes.
        MapMatchError: On transport or decoding errors.
    """

    coords = ";".join(f"{lon:.6f},{lat:.6f}" for lat, lon, _ in fixes)
    params = {
        "geometries": "geojson",
        "overview": "full",
        "timestamps": ";".join(str(int(t)) for _, _, t in fixes),
    }
    if cfg.radius_m is not None:
        params["radiuses"] = ";".join(f"{cfg.radius_m:g}" for _ in fixes)
    url = f"{cfg.base_url.rstrip('/')}/{cfg.profile}/{coords}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(
        url,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "application/json",
        },
        method="GET",
    )
    try:
        with urllib.request.urlopen(req, timeout=cfg.timeout_seconds) as resp:  # noqa: S310
            body = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        # OSRM reports NoMatch/NoSegment with a 400 and a JSON body.
        body = exc.read().decode("utf-8", errors="replace")
        code = _error_code(body)
        if code in ("NoMatch", "NoSegment"):
            raise NoMatchError(f"OSRM could not match {len(fixes)} fixes: {code}") from exc
        raise MapMatchError(f"OSRM request failed with HTTP {exc.code}: {code or body[:200]}") from exc
    except (urllib.error.URLError, OSError) as exc:
        raise MapMatchError(f"OSRM request failed: {exc}") from exc

    try:
        raw: dict[str, Any] = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MapMatchError("OSRM returned a non-JSON response") from exc
    return raw


def _error_code(body: str) -> str | None:
    try:
        code = json.loads(body).get("code")
    except (json.JSONDecodeError, AttributeError):
        return None
    return code if isinstance(code, str) else None


def extract_positions(raw: dict[str, Any]) -> list[Position]:
    """Extract the matched path from an OSRM match response.

    All matchings are concatenated in order. GeoJSON coordinates are ``[lon, lat]``.

    Raises:
        NoMatchError: If the response reports no matching.
        MapMatchError: If the geometry is malformed.
    """

    if raw.get("code") != "Ok":
        raise NoMatchError(f"OSRM answered {raw.get('code')!r}")
    matchings = raw.get("matchings") or []
    if not matchings:
        raise NoMatchError("OSRM answered Ok without matchings")

    path: list[Position] = []
    try:
        for matching in matchings:
            for lon, lat, *_ in matching["geometry"]["coordinates"]:
                validate_coordinates(float(lat), float(lon))
                path.append(Position(latitude=float(lat), longitude=float(lon)))
    except (KeyError, TypeError, ValueError) as exc:
        raise MapMatchError("OSRM returned a malformed geometry") from exc
    return path


class OsrmMapMatcher:
    """Map matcher backed by an OSRM ``match`` service."""

    def __init__(self, config: OsrmConfig | None = None) -> None:
        self._cfg = config or OsrmConfig()

    def match(self, fixes: Sequence[Fix]) -> list[Position]:
        return extract_positions(osrm_match_raw(fixes, self._cfg))


class MatchStatus(Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MapMatchResult:
    """Outcome of matching one trajectory.

    ``trajectory`` is always usable: on NO_MATCH or FAILED it has the original
    id and no measurements. ``reason`` carries the matcher's message, if any.
    """

    trajectory: Trajectory
    status: MatchStatus
    reason: str | None = None


def match_trajectory(trajectory: Trajectory, matcher: MapMatcher) -> MapMatchResult:
    """Map match one trajectory without ever raising.

    Sampling times cannot be recovered from a matched path, so the matched
    measurements get the synthetic times ``0, 1, 2, ...``.

    Args:
        trajectory: Time-sorted trajectory.
        matcher: The external map matcher.

    Returns:
        MapMatchResult with the matched trajectory, or an empty one on failure.
    """

    empty = Trajectory(id=trajectory.id, measurements=())
    if not trajectory.measurements:
        return MapMatchResult(trajectory=empty, status=MatchStatus.NO_MATCH, reason="no measurements")

    fixes = [(m.position.latitude, m.position.longitude, m.time) for m in trajectory.measurements]
    try:
        path = matcher.match(fixes)
    except NoMatchError as exc:
        logger.debug("No map match for trajectory %s: %s", trajectory.id, exc)
        return MapMatchResult(trajectory=empty, status=MatchStatus.NO_MATCH, reason=str(exc))
    except Exception as exc:  # any matcher failure degrades this one trajectory only
        logger.warning("Map matching failed for trajectory %s: %s", trajectory.id, exc)
        return MapMatchResult(trajectory=empty, status=MatchStatus.FAILED, reason=f"{type(exc).__name__}: {exc}")

    if not path:
        return MapMatchResult(trajectory=empty, status=MatchStatus.NO_MATCH, reason="empty path")
    matched = tuple(Measurement(time=i, position=p) for i, p in enumerate(path))
    return MapMatchResult(trajectory=Trajectory(id=trajectory.id, measurements=matched), status=MatchStatus.MATCHED)

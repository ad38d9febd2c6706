"""Time correlation of photos against GPS tracks.

Tracks are merged into one ascending sequence of trackpoints. A timestamp
is located by binary search and its position is linearly interpolated
between the two bracketing points, unless it lies outside the track or
inside a gap wider than the configured maximum.
"""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from photo_organizer.core.models import CorrelatedPosition, TrackPoint


def _epoch(ts: datetime) -> float:
    if ts.tzinfo is None:
        raise ValueError(f"naive timestamp not allowed in correlation: {ts!r}")
    return ts.astimezone(timezone.utc).timestamp()


class TrackCorrelator:
    """Answers "where was the camera at time T" from loaded trackpoints."""

    def __init__(self, points: Iterable[TrackPoint], max_gap: timedelta) -> None:
        """Create a correlator.

        Args:
            points: Trackpoints in any order. Sorting is stable, so points with
                equal timestamps keep their input order.
            max_gap: Widest interval between two trackpoints that may be
                interpolated across.
        """
        self._points: list[TrackPoint] = sorted(points, key=lambda p: _epoch(p.timestamp))
        self._times: list[float] = [_epoch(p.timestamp) for p in self._points]
        self._max_gap = max_gap

    @classmethod
    def from_tracks(
        cls, tracks: Iterable[Iterable[TrackPoint]], max_gap: timedelta
    ) -> TrackCorrelator:
        """Merge several tracks into one correlator, ties broken by input order."""
        merged: list[TrackPoint] = []
        for track in tracks:
            merged.extend(track)
        return cls(merged, max_gap)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def max_gap(self) -> timedelta:
        return self._max_gap

    @property
    def span(self) -> tuple[datetime, datetime] | None:
        """First and last trackpoint timestamps, or None for an empty track."""
        if not self._points:
            return None
        return self._points[0].timestamp, self._points[-1].timestamp

    def correlate(self, timestamp: datetime) -> CorrelatedPosition | None:
        """Return the interpolated position at `timestamp`, or None if not covered."""
        if not self._times:
            return None
        t = _epoch(timestamp)
        if t < self._times[0] or t > self._times[-1]:
            return None

        i = bisect_left(self._times, t)
        # bisect_left lands on the first point with an equal timestamp
        if self._times[i] == t:
            p = self._points[i]
            return CorrelatedPosition(p.latitude, p.longitude, timedelta(0))

        before, after = self._points[i - 1], self._points[i]
        t0, t1 = self._times[i - 1], self._times[i]
        gap = timedelta(seconds=t1 - t0)
        if gap > self._max_gap:
            return None

        frac = (t - t0) / (t1 - t0)
        lat = before.latitude + (after.latitude - before.latitude) * frac
        lon = before.longitude + (after.longitude - before.longitude) * frac
        return CorrelatedPosition(lat, lon, gap)

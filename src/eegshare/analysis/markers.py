"""
Marker board: several placed markers, one of them selected.

The selected marker is the session's active point. Placing or selecting a marker
triggers an analysis; moving only re-triggers when the moved marker is selected;
renaming never does (a selected marker's new label is passed on to the session
and its latest report). Removing the selected marker clears the session.
"""

from __future__ import annotations

from eegshare.analysis.session import AnalysisSession
from eegshare.domain.models import AnalysisPoint, GeoPoint


class MarkerBoard:
    def __init__(self, session: AnalysisSession, *, default_radius_m: float, default_label: str = "WKA"):
        self._session = session
        self._default_radius_m = float(default_radius_m)
        self._default_label = default_label
        self._markers: list[AnalysisPoint] = []
        self._active: int | None = None

    @property
    def markers(self) -> list[AnalysisPoint]:
        return list(self._markers)

    @property
    def active_index(self) -> int | None:
        return self._active

    def display_label(self, index: int) -> str:
        return self._markers[index].label or self._default_label

    def add(self, center: GeoPoint, radius_m: float | None = None, label: str = "") -> int:
        """Place a marker, select it and analyze it; returns its index."""
        radius = self._default_radius_m if radius_m is None else float(radius_m)
        self._session.set_active_point(center, radius, label)
        self._markers.append(AnalysisPoint(center=center, radius_m=radius, label=label))
        self._active = len(self._markers) - 1
        return self._active

    def select(self, index: int) -> None:
        marker = self._markers[index]
        self._session.set_active_point(marker.center, marker.radius_m, marker.label)
        self._active = index

    def rename(self, index: int, label: str) -> None:
        self._markers[index] = self._markers[index].model_copy(update={"label": label})
        if index == self._active:
            self._session.relabel_point(label)

    def move(self, index: int, center: GeoPoint) -> None:
        marker = self._markers[index]
        if index == self._active:
            self._session.move_point(center)
        self._markers[index] = marker.model_copy(update={"center": center})

    def remove(self, index: int) -> None:
        del self._markers[index]
        if self._active is None:
            return
        if index == self._active:
            self._active = None
            self._session.clear_active_point()
        elif self._active > index:
            self._active -= 1

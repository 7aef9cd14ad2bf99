"""
Analysis session: the active point and its latest result set.

State machine:
- `idle`: no active point, no results.
- `analyzing`: one active point; every creation/move/resize is a trigger that
  recomputes the whole result set.

Triggers are numbered. In background mode each trigger runs on its own daemon
thread; a worker whose number is no longer current stops at the next candidate
(cooperative cancel) or, if it already finished, has its result discarded. Only
the current trigger's result is ever applied (last write wins).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Literal, Sequence

from eegshare.analysis.apportion import AnalysisCancelled, run_analysis
from eegshare.config.settings import AnalysisSettings, get_settings
from eegshare.domain.models import AnalysisPoint, AnalysisReport, BoundaryFeature, GeoPoint, IntersectionResult
from eegshare.geometry.buffer import validate_buffer

logger = logging.getLogger(__name__)

SessionState = Literal["idle", "analyzing"]


class NoActivePoint(RuntimeError):
    """Move/resize was requested while the session is idle."""


class AnalysisSession:
    def __init__(
        self,
        features: Sequence[BoundaryFeature],
        *,
        settings: AnalysisSettings | None = None,
        background: bool | None = None,
        on_results: Callable[[AnalysisReport | None], None] | None = None,
    ):
        self._features = tuple(features)
        self._settings = settings or get_settings().analysis
        self._background = self._settings.background if background is None else bool(background)
        self._on_results = on_results

        self._lock = threading.Lock()
        self._seq = 0
        self._point: AnalysisPoint | None = None
        self._report: AnalysisReport | None = None
        self._worker: threading.Thread | None = None

    @property
    def state(self) -> SessionState:
        return "idle" if self._point is None else "analyzing"

    @property
    def active_point(self) -> AnalysisPoint | None:
        return self._point

    @property
    def report(self) -> AnalysisReport | None:
        """Latest applied report (may lag behind the active point while a worker runs)."""
        return self._report

    @property
    def features(self) -> tuple[BoundaryFeature, ...]:
        return self._features

    def get_results(self) -> list[IntersectionResult]:
        with self._lock:
            report = self._report
        return list(report.results) if report is not None else []

    def set_active_point(self, center: GeoPoint, radius_m: float, label: str = "") -> None:
        self._trigger(AnalysisPoint(center=center, radius_m=radius_m, label=label))

    def move_point(self, new_center: GeoPoint) -> None:
        point = self._require_point()
        self._trigger(point.model_copy(update={"center": new_center}))

    def resize_point(self, new_radius_m: float) -> None:
        point = self._require_point()
        self._trigger(point.model_copy(update={"radius_m": new_radius_m}))

    def relabel_point(self, label: str) -> None:
        """Rename the active point; results are kept, not recomputed."""
        self._require_point()
        with self._lock:
            self._point = self._point.model_copy(update={"label": label})
            if self._report is not None:
                self._report = self._report.model_copy(update={"point": self._point})

    def clear_active_point(self) -> None:
        with self._lock:
            self._seq += 1
            self._point = None
            self._report = None
        logger.debug("Active point cleared (trigger %d).", self._seq)
        self._notify(None)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the most recent worker finished; True if nothing is left running."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def _require_point(self) -> AnalysisPoint:
        point = self._point
        if point is None:
            raise NoActivePoint("no active point; call set_active_point first")
        return point

    def _trigger(self, point: AnalysisPoint) -> None:
        # Invalid radius aborts before anything changes: prior point and results stay.
        validate_buffer(point.radius_m, self._settings.steps)
        with self._lock:
            self._seq += 1
            seq = self._seq
            self._point = point

        if not self._background:
            self._run(seq, point)
            return

        worker = threading.Thread(
            target=self._run_in_background,
            args=(seq, point),
            name=f"eegshare-analysis-{seq}",
            daemon=True,
        )
        self._worker = worker
        worker.start()

    def _run_in_background(self, seq: int, point: AnalysisPoint) -> None:
        try:
            self._run(seq, point)
        except Exception:
            logger.exception("Analysis trigger %d failed.", seq)

    def _run(self, seq: int, point: AnalysisPoint) -> None:
        try:
            report = run_analysis(
                point,
                self._features,
                self._settings,
                is_cancelled=lambda: self._seq != seq,
            )
        except AnalysisCancelled:
            logger.debug("Trigger %d superseded before it finished.", seq)
            return

        with self._lock:
            if seq != self._seq:
                logger.debug("Discarding result of superseded trigger %d.", seq)
                return
            # Carries a relabel that happened while this trigger was running.
            report = report.model_copy(update={"point": self._point})
            self._report = report
        self._notify(report)

    def _notify(self, report: AnalysisReport | None) -> None:
        if self._on_results is not None:
            self._on_results(report)

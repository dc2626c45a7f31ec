"""Bounded, cached batch retrieval of timetables from the data provider."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Iterable, Optional, Sequence

from ..config import settings
from ..errors import DataUnavailableError
from ..models.domain import HistoricVisit, ScheduledVisit, Service, Stop, solid_only
from .provider import TransitDataProvider

logger = logging.getLogger(__name__)

_SERVICE = "service"
_STOP = "stop"


class TimetableRetrieval:
    """Fetches historic timetables for many dates with a small worker pool.

    Solid-only results are cached per (kind, id, date). Dates without data are
    remembered as empty so the provider is asked only once.
    """

    def __init__(self, provider: TransitDataProvider, max_workers: Optional[int] = None) -> None:
        self.provider = provider
        self.max_workers = max_workers if max_workers is not None else settings.max_fetch_workers
        self._cache: dict[tuple[str, str, date], tuple[HistoricVisit, ...]] = {}
        self._lock = threading.Lock()
        self.on_fetched: Optional[Callable[[Service, Sequence[HistoricVisit]], None]] = None

    def service_history(self, service: Service, dates: Sequence[date]) -> list[list[HistoricVisit]]:
        """Solid visits of a service, one list per date that has data."""
        return self._batch(
            _SERVICE,
            service.service_id,
            dates,
            lambda day: self._fetch_service(service, day),
        )

    def stop_history(self, stop: Stop, dates: Sequence[date]) -> list[list[HistoricVisit]]:
        """Solid visits at a stop, one list per date that has data."""
        return self._batch(
            _STOP,
            stop.stop_id,
            dates,
            lambda day: self._fetch_stop(stop, day),
        )

    def prefetch_services(self, services: Iterable[Service], dates: Sequence[date]) -> None:
        for service in services:
            self.service_history(service, dates)

    def prefetch_stops(self, stops: Iterable[Stop], dates: Sequence[date]) -> None:
        for stop in stops:
            self.stop_history(stop, dates)

    def first_scheduled_timetable(self, service: Service, dates: Sequence[date]) -> Optional[list[ScheduledVisit]]:
        """Return the schedule from the first date that has one."""
        for day in dates:
            try:
                visits = self.provider.get_scheduled_timetable(service, day)
            except DataUnavailableError as exc:
                logger.debug(f"No schedule for {service} on {day}: {exc}")
                continue
            if visits:
                return list(visits)
        logger.warning(f"No scheduled timetable found for service {service} on any of {len(dates)} dates")
        return None

    def _batch(
        self,
        kind: str,
        key: str,
        dates: Sequence[date],
        fetch: Callable[[date], tuple[HistoricVisit, ...]],
    ) -> list[list[HistoricVisit]]:
        with self._lock:
            missing = [day for day in dates if (kind, key, day) not in self._cache]

        if missing:
            if len(missing) == 1:
                fetched = [fetch(missing[0])]
            else:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    fetched = list(executor.map(fetch, missing))
            with self._lock:
                for day, visits in zip(missing, fetched):
                    self._cache.setdefault((kind, key, day), visits)

        with self._lock:
            results = [self._cache[(kind, key, day)] for day in dates]
        return [list(visits) for visits in results if visits]

    def _fetch_service(self, service: Service, day: date) -> tuple[HistoricVisit, ...]:
        try:
            history = self.provider.get_service_history(service, day)
        except DataUnavailableError as exc:
            logger.warning(f"Skipping history for service {service} on {day}: {exc}")
            return ()
        if self.on_fetched is not None:
            self.on_fetched(service, history)
        return tuple(solid_only(history))

    def _fetch_stop(self, stop: Stop, day: date) -> tuple[HistoricVisit, ...]:
        try:
            history = self.provider.get_stop_history(stop, day)
        except DataUnavailableError as exc:
            logger.warning(f"Skipping history for stop {stop} on {day}: {exc}")
            return ()
        return tuple(solid_only(history))

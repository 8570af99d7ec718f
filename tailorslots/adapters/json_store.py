"""
JSON file repository for appointments and travel locations.

Stands in for the remote document database: it reads and writes the same
camelCase documents and hands domain records to the in-memory store.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from pydantic import ValidationError

from ..domain.models import Appointment
from ..domain.travel import TravelWindow
from .documents import AppointmentDocument, TravelLocationDocument

logger = logging.getLogger(__name__)


class JsonScheduleRepository:
    """
    Load and save ``{"appointments": [...], "travelLocations": [...]}``.

    Malformed documents are skipped with a warning so a single bad entry
    does not hide the rest of the calendar. They are kept as read and
    written back unchanged by the next ``save``.
    """

    def __init__(self, path: Path, timezone: str = "UTC"):
        self.path = Path(path)
        self.timezone = timezone
        self.unreadable_appointments: List[dict] = []
        self.unreadable_travel: List[dict] = []

    def _load_raw(self) -> dict:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object at the root level.")
        return data

    def load(self) -> Tuple[List[Appointment], List[TravelWindow]]:
        """
        Read the data file once.

        Returns:
            Tuple of (appointments, travel windows), in file order
        """
        data = self._load_raw()
        appointments: List[Appointment] = []
        windows: List[TravelWindow] = []
        self.unreadable_appointments = []
        self.unreadable_travel = []

        for raw in data.get("appointments", []):
            try:
                appointments.append(
                    AppointmentDocument.model_validate(raw).to_domain(self.timezone)
                )
            except (ValidationError, ValueError, TypeError) as exc:
                logger.warning("Skipping invalid appointment document %r: %s", raw, exc)
                self.unreadable_appointments.append(raw)

        for raw in data.get("travelLocations", []):
            try:
                windows.append(
                    TravelLocationDocument.model_validate(raw).to_domain(self.timezone)
                )
            except (ValidationError, ValueError, TypeError) as exc:
                logger.warning("Skipping invalid travel document %r: %s", raw, exc)
                self.unreadable_travel.append(raw)

        return appointments, windows

    def save(
        self,
        appointments: Iterable[Appointment],
        travel_windows: Iterable[TravelWindow]
    ) -> None:
        """Write the full data set, replacing the file. Unreadable documents are preserved."""
        data = {
            "appointments": [
                AppointmentDocument.from_domain(a).model_dump(mode="json", by_alias=True, exclude_none=True)
                for a in appointments
            ] + self.unreadable_appointments,
            "travelLocations": [
                TravelLocationDocument.from_domain(w).model_dump(mode="json", by_alias=True, exclude_none=True)
                for w in travel_windows
            ] + self.unreadable_travel,
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        logger.info("Saved %d appointment(s) to %s", len(data["appointments"]), self.path)

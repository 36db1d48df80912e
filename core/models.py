from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Tuple

import pandas as pd

from utils.config import STATION_SLOTS, DATE_STORAGE_FORMAT


@dataclass(frozen=True)
class StationSpec:
    """One production step of a part: station name + standard time (seconds)."""
    name: str
    standard_time_seconds: str = ""


Stations = Tuple[Optional[StationSpec], ...]


def normalize_stations(pairs) -> Stations:
    """
    Build the fixed 9-slot station tuple from (name, time) pairs.

    An empty name terminates enumeration: every slot after it is None,
    and nothing past slot 9 is ever read.
    """
    slots = []
    for name, seconds in list(pairs)[:STATION_SLOTS]:
        name = _cell_text(name)
        if not name:
            break
        slots.append(StationSpec(name=name, standard_time_seconds=_cell_text(seconds)))
    return tuple(slots) + (None,) * (STATION_SLOTS - len(slots))


def stations_from_cells(cells) -> Stations:
    """Pair up a flat [name1, time1, name2, time2, ...] cell run."""
    cells = list(cells)
    pairs = []
    for i in range(0, len(cells), 2):
        name = cells[i]
        seconds = cells[i + 1] if i + 1 < len(cells) else ""
        pairs.append((name, seconds))
    return normalize_stations(pairs)


def stations_to_cells(stations: Stations) -> list:
    cells = []
    for slot in stations:
        if slot is None:
            cells += ["", ""]
        else:
            cells += [slot.name, slot.standard_time_seconds]
    return cells


@dataclass(frozen=True)
class CatalogEntry:
    """
    Product catalog row (read-only, owned by the catalog sheet).

    Sheet layout: [partNo, name, customerPartNo, material, st1, t1, ..., st9, t9, model]
    """
    part_no: str
    name: str = ""
    customer_part_no: str = ""
    material: str = ""
    stations: Stations = field(default_factory=lambda: (None,) * STATION_SLOTS)
    model: str = ""

    def __post_init__(self):
        if not self.part_no or not str(self.part_no).strip():
            raise ValueError("CatalogEntry Error: 'part_no' must not be empty.")
        if len(self.stations) != STATION_SLOTS:
            raise ValueError(f"CatalogEntry Error: expected {STATION_SLOTS} station slots, got {len(self.stations)}.")

    @classmethod
    def from_row(cls, row):
        row = list(row)
        if len(row) < 5:
            # partNo + name/customer/material + model at minimum
            row = row + [""] * (5 - len(row))
        return cls(
            part_no=_cell_text(row[0]),
            name=_cell_text(row[1]),
            customer_part_no=_cell_text(row[2]),
            material=_cell_text(row[3]),
            stations=stations_from_cells(row[4:-1]),
            model=_cell_text(row[-1]),
        )

    def defined_stations(self):
        return [s for s in self.stations if s is not None]

    def to_dict(self):
        """Payload shape used by the product lookup operation."""
        return {
            "partNo": self.part_no,
            "name": self.name,
            "customerPartNo": self.customer_part_no,
            "material": self.material,
            "stations": [{"name": s.name, "time": s.standard_time_seconds} for s in self.defined_stations()],
            "model": self.model,
        }


@dataclass(frozen=True)
class MORecord:
    """
    Issued Manufacturing Order. Created once by the ledger writer, never mutated.

    Catalog fields are snapshot copies taken at creation time.
    """
    mo_id: str
    created_at: date
    part_no: str
    order_no: str
    quantity: int
    name: str = ""
    customer_part_no: str = ""
    material: str = ""
    stations: Stations = field(default_factory=lambda: (None,) * STATION_SLOTS)
    model: str = ""

    @classmethod
    def from_catalog(cls, mo_id, created_at, order_no, quantity, entry: CatalogEntry):
        return cls(
            mo_id=mo_id,
            created_at=created_at,
            part_no=entry.part_no,
            order_no=order_no,
            quantity=quantity,
            name=entry.name,
            customer_part_no=entry.customer_part_no,
            material=entry.material,
            stations=tuple(entry.stations),
            model=entry.model,
        )

    def to_row(self):
        return [
            self.mo_id,
            self.created_at.strftime(DATE_STORAGE_FORMAT),
            self.part_no,
            self.order_no,
            self.name,
            self.customer_part_no,
            self.material,
            self.quantity,
            *stations_to_cells(self.stations),
            self.model,
        ]

    @classmethod
    def from_row(cls, row):
        """Rebuild a record from a ledger row (all cells may come back as strings)."""
        row = list(row)
        width = 8 + STATION_SLOTS * 2 + 1
        if len(row) < width:
            row = row + [""] * (width - len(row))
        return cls(
            mo_id=_cell_text(row[0]),
            created_at=parse_date(row[1]),
            part_no=_cell_text(row[2]),
            order_no=_cell_text(row[3]),
            name=_cell_text(row[4]),
            customer_part_no=_cell_text(row[5]),
            material=_cell_text(row[6]),
            quantity=_cell_quantity(row[7]),
            stations=stations_from_cells(row[8:8 + STATION_SLOTS * 2]),
            model=_cell_text(row[-1]),
        )


@dataclass(frozen=True)
class BatchItem:
    """One requested MO in a batch. Transient, never persisted."""
    part_no: str
    order_no: str
    quantity: object

    @classmethod
    def from_dict(cls, data):
        return cls(
            part_no=_cell_text(data.get("partNo", "")),
            order_no=_cell_text(data.get("orderNo", "")),
            quantity=data.get("quantity"),
        )


# --- HELPERS ---
def parse_quantity(value) -> int:
    """Quantity must be a positive integer (accepts '12', 12, 12.0)."""
    if isinstance(value, bool):
        raise ValueError(f"invalid quantity {value!r}")
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"invalid quantity {value!r}")
    if number != int(number) or number <= 0:
        raise ValueError(f"invalid quantity {value!r}")
    return int(number)


def parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or str(value).strip() == "":
        return None
    parsed = pd.to_datetime(str(value).strip(), errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _cell_quantity(value):
    try:
        return parse_quantity(value)
    except ValueError:
        return _cell_text(value)

"""
Hierarchy Manager — Partition product records per aggregation level.

Two passes, in order:
  1. Role scope: restrict records to what the caller may see
     (own facility / own zone / own region / everything).
  2. Level type: narrow the scoped set to each requested level
     (one facility or "all", one zone, one region, or the whole nation).

Zone and region membership is a deterministic lookup in the
FacilityDirectory (facility → zone → region), exported from the external
facility registry. Facilities missing from the directory belong to no zone
or region and therefore only show up at facility and national level.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from analytics.roles import SCOPE_RANK, get_role_scope
from core.config import get_settings
from inventory.records import ProductRecord

logger = structlog.get_logger()

LevelType = Literal["facility", "zonal", "regional", "national"]

ALL_FACILITIES = "all"


@dataclass(frozen=True)
class AggregationLevel:
    id: str
    name: str
    type: LevelType
    parent_id: str | None = None


@dataclass(frozen=True)
class FacilityLocation:
    facility_id: str
    zone_id: str
    region_id: str


@dataclass(frozen=True)
class CallerScope:
    """Organizational ids attached to the caller by the auth layer."""

    facility_id: str | None = None
    zone_id: str | None = None
    region_id: str | None = None

    def cache_key(self, role: str) -> str:
        return f"{role}:{self.facility_id or '-'}:{self.zone_id or '-'}:{self.region_id or '-'}"


class FacilityDirectoryEntry(BaseModel):
    """One row of the facility registry export."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    facility_id: str = Field(min_length=1, validation_alias=AliasChoices("facility_id", "facilityId", "id"))
    zone_id: str = Field(min_length=1, validation_alias=AliasChoices("zone_id", "zoneId"))
    region_id: str = Field(min_length=1, validation_alias=AliasChoices("region_id", "regionId"))


class FacilityDirectory:
    """Facility → zone → region lookup table."""

    def __init__(self, locations: Iterable[FacilityLocation] = ()):
        self._locations: dict[str, FacilityLocation] = {}
        for location in locations:
            self._locations[location.facility_id] = location

    @classmethod
    def from_entries(cls, entries: Iterable[Mapping[str, Any]]) -> FacilityDirectory:
        """Build from facility registry rows (snake_case or camelCase ids)."""
        try:
            rows = [FacilityDirectoryEntry.model_validate(entry) for entry in entries]
        except ValidationError as exc:
            raise ValueError(f"Invalid facility directory entry: {exc}") from exc
        return cls(FacilityLocation(row.facility_id, row.zone_id, row.region_id) for row in rows)

    @classmethod
    def from_json_file(cls, path: str | Path) -> FacilityDirectory:
        with open(path, encoding="utf-8") as fh:
            payload = json.load(fh)
        entries = payload.get("facilities", []) if isinstance(payload, dict) else payload
        directory = cls.from_entries(entries)
        logger.info("hierarchy.directory_loaded", path=str(path), facilities=len(directory))
        return directory

    @classmethod
    def from_settings(cls) -> FacilityDirectory:
        path = get_settings().facility_directory_path
        if not path:
            return cls()
        return cls.from_json_file(path)

    def __len__(self) -> int:
        return len(self._locations)

    def zone_of(self, facility_id: str) -> str | None:
        location = self._locations.get(facility_id)
        return location.zone_id if location else None

    def region_of(self, facility_id: str) -> str | None:
        location = self._locations.get(facility_id)
        return location.region_id if location else None

    def facilities_in_zone(self, zone_id: str) -> list[str]:
        return sorted(fid for fid, loc in self._locations.items() if loc.zone_id == zone_id)

    def facilities_in_region(self, region_id: str) -> list[str]:
        return sorted(fid for fid, loc in self._locations.items() if loc.region_id == region_id)


class HierarchyManager:
    """Role-aware grouping of product records by aggregation level."""

    def __init__(self, directory: FacilityDirectory | None = None):
        self.directory = directory or FacilityDirectory()

    def group_by_level(
        self,
        records: Sequence[ProductRecord],
        levels: Sequence[AggregationLevel],
        caller_role: str,
        caller_scope: CallerScope | None = None,
    ) -> dict[str, list[ProductRecord]]:
        """
        Map each level id to the caller-visible records belonging to it.

        ``caller_role`` may be a pharmaceutical role or an auth-provider role
        ("admin", "manager", ...); the latter is mapped before scoping.

        Raises:
            ValueError if two levels share an id.
        """
        _ensure_unique_level_ids(levels)
        scoped = self.filter_by_role(records, caller_role, caller_scope or CallerScope())
        grouped = {level.id: self.filter_by_level(scoped, level) for level in levels}

        logger.debug(
            "hierarchy.grouped",
            caller_role=caller_role,
            scoped_records=len(scoped),
            level_sizes={level_id: len(items) for level_id, items in grouped.items()},
        )
        return grouped

    def filter_by_role(
        self,
        records: Sequence[ProductRecord],
        caller_role: str,
        caller_scope: CallerScope,
    ) -> list[ProductRecord]:
        scope = get_role_scope(caller_role)
        if scope == "national":
            return list(records)
        if scope == "regional":
            return [r for r in records if self._in_region(r, caller_scope.region_id)]
        if scope == "zonal":
            return [r for r in records if self._in_zone(r, caller_scope.zone_id)]
        if caller_scope.facility_id is None:
            return []
        return [r for r in records if r.facility_id == caller_scope.facility_id]

    def filter_by_level(self, records: Sequence[ProductRecord], level: AggregationLevel) -> list[ProductRecord]:
        if level.type == "facility":
            if level.id == ALL_FACILITIES:
                return list(records)
            return [r for r in records if r.facility_id == level.id]
        if level.type == "zonal":
            return [r for r in records if self._in_zone(r, level.id)]
        if level.type == "regional":
            return [r for r in records if self._in_region(r, level.id)]
        if level.type == "national":
            return list(records)
        return []

    @staticmethod
    def can_access_level(role: str, level_type: str) -> bool:
        return can_access_level(role, level_type)

    def _in_zone(self, record: ProductRecord, zone_id: str | None) -> bool:
        return zone_id is not None and self.directory.zone_of(record.facility_id) == zone_id

    def _in_region(self, record: ProductRecord, region_id: str | None) -> bool:
        return region_id is not None and self.directory.region_of(record.facility_id) == region_id


def can_access_level(role: str, level_type: str) -> bool:
    """True if the role's scope sits at or above ``level_type``."""
    required = SCOPE_RANK.get(level_type)
    if required is None:
        return False
    return SCOPE_RANK[get_role_scope(role)] >= required


def _ensure_unique_level_ids(levels: Sequence[AggregationLevel]) -> None:
    seen: set[str] = set()
    for level in levels:
        if level.id in seen:
            raise ValueError(f"Duplicate aggregation level id '{level.id}'")
        seen.add(level.id)

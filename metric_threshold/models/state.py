"""Persisted rule state shared with the host between runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class MissingGroupsRecord:
    key: str
    bucket_key: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "bucketKey": self.bucket_key}

    @classmethod
    def from_value(cls, raw: object) -> "MissingGroupsRecord | None":
        # Older states stored bare group keys
        if isinstance(raw, str):
            return cls(key=raw, bucket_key=raw)
        if isinstance(raw, dict) and isinstance(raw.get("key"), str):
            bucket_key = raw.get("bucketKey")
            return cls(
                key=raw["key"],
                bucket_key=str(bucket_key) if bucket_key is not None else raw["key"],
            )
        return None


@dataclass(frozen=True)
class PersistedState:
    last_run_timestamp: int | None = None
    missing_groups: tuple[MissingGroupsRecord, ...] = field(default_factory=tuple)
    group_by: str | tuple[str, ...] | None = None
    filter_query: str | None = None

    def to_dict(self) -> dict[str, Any]:
        group_by: str | list[str] | None
        if isinstance(self.group_by, tuple):
            group_by = list(self.group_by)
        else:
            group_by = self.group_by
        return {
            "lastRunTimestamp": self.last_run_timestamp,
            "missingGroups": [record.to_dict() for record in self.missing_groups],
            "groupBy": group_by,
            "filterQuery": self.filter_query,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PersistedState":
        if not data:
            return cls()
        records = []
        for raw in data.get("missingGroups") or []:
            record = MissingGroupsRecord.from_value(raw)
            if record is not None:
                records.append(record)
        group_by = data.get("groupBy")
        if isinstance(group_by, list):
            group_by = tuple(str(g) for g in group_by)
        timestamp = data.get("lastRunTimestamp")
        return cls(
            last_run_timestamp=int(timestamp) if timestamp is not None else None,
            missing_groups=tuple(records),
            group_by=group_by,
            filter_query=data.get("filterQuery"),
        )

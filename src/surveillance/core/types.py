"""
Core data types for the signal triage pipeline.

Uses dataclasses and str-valued enums so rows map directly onto the
primary store's columns.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from .utils import parse_timestamp, utc_now


class SignalStatus(str, Enum):
    """Lifecycle status of a signal."""
    NEW = "new"
    TRIAGED = "triaged"
    VALIDATED = "validated"
    DISMISSED = "dismissed"


class Priority(str, Enum):
    """Severity ranking; P1 is the most urgent and sorts first."""
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class DiseaseCategory(str, Enum):
    """Broad disease grouping used for classification."""
    VHF = "vhf"
    RESPIRATORY = "respiratory"
    ENTERIC = "enteric"
    VECTOR_BORNE = "vector_borne"
    ZOONOTIC = "zoonotic"
    VACCINE_PREVENTABLE = "vaccine_preventable"
    ENVIRONMENTAL = "environmental"
    UNKNOWN = "unknown"


class SourceTier(str, Enum):
    """Credibility tier of the originating source (tier_1 most trusted)."""
    TIER_1 = "tier_1"
    TIER_2 = "tier_2"
    TIER_3 = "tier_3"


_ENUM_FIELDS = {
    "status": SignalStatus,
    "priority": Priority,
    "disease_category": DiseaseCategory,
    "source_tier": SourceTier,
}

TIMESTAMP_FIELDS = (
    "source_timestamp",
    "triaged_at",
    "validated_at",
    "created_at",
    "updated_at",
)


@dataclass
class Signal:
    """
    One candidate disease-outbreak report.

    Attributes are grouped as in the primary store: identity, classification,
    content, location, provenance, epidemiological counters, lifecycle and
    timestamps. ``created_at`` is set at ingestion and never changes.
    """
    original_text: str
    location_country: str
    source_name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Classification
    disease_name: Optional[str] = None
    disease_category: Optional[DiseaseCategory] = None
    priority: Priority = Priority.P3
    confidence_score: float = 0.0

    # Content (translation fields are produced upstream and only consumed here)
    translated_text: Optional[str] = None
    original_language: Optional[str] = None
    original_script: Optional[str] = None
    translation_confidence: Optional[float] = None
    lingua_fidelity_score: Optional[float] = None

    # Location
    location_country_iso: Optional[str] = None
    location_admin1: Optional[str] = None
    location_admin2: Optional[str] = None
    location_locality: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None

    # Provenance
    source_type: Optional[str] = None
    source_tier: SourceTier = SourceTier.TIER_3
    source_url: Optional[str] = None
    source_timestamp: Optional[datetime] = None
    signal_type: str = "news"

    # Epidemiological counters
    reported_cases: Optional[int] = None
    reported_deaths: Optional[int] = None
    affected_population: Optional[str] = None
    cross_border_risk: Optional[bool] = None

    # Lifecycle
    status: SignalStatus = SignalStatus.NEW
    analyst_notes: Optional[str] = None
    triaged_by: Optional[str] = None
    triaged_at: Optional[datetime] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None

    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (enum values, datetime objects kept)."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            result[f.name] = value
        return result

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Signal":
        """Create from a database row or JSON payload, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known}

        for name, enum_cls in _ENUM_FIELDS.items():
            if data.get(name) is not None:
                data[name] = enum_cls(data[name])
            elif name in data and name in ("status", "priority", "source_tier"):
                del data[name]

        for name in TIMESTAMP_FIELDS:
            if name in data:
                data[name] = parse_timestamp(data[name])
        if data.get("created_at") is None:
            data.pop("created_at", None)
        if data.get("updated_at") is None:
            data.pop("updated_at", None)

        if data.get("cross_border_risk") is not None:
            data["cross_border_risk"] = bool(data["cross_border_risk"])
        if data.get("id") is not None:
            data["id"] = str(data["id"])

        return cls(**data)


# Columns written to the primary store, in table order.
SIGNAL_COLUMNS: List[str] = [f.name for f in fields(Signal)]

# Projection of a signal persisted in the archive store (audit user ids,
# script and translation scores stay in the primary store only).
ARCHIVE_COLUMNS: List[str] = [
    "id",
    "original_text",
    "translated_text",
    "disease_name",
    "disease_category",
    "location_country",
    "location_country_iso",
    "location_admin1",
    "location_admin2",
    "location_locality",
    "location_lat",
    "location_lng",
    "priority",
    "status",
    "source_name",
    "source_tier",
    "source_type",
    "source_url",
    "source_timestamp",
    "signal_type",
    "confidence_score",
    "reported_cases",
    "reported_deaths",
    "affected_population",
    "cross_border_risk",
    "analyst_notes",
    "original_language",
    "created_at",
    "updated_at",
    "validated_at",
    "triaged_at",
]

# Columns refreshed when an already-archived signal is synced again.
ARCHIVE_MUTABLE_COLUMNS: List[str] = ["status", "analyst_notes", "validated_at"]


@dataclass
class Reviewer:
    """
    Identity supplied by the authentication layer, used only to stamp audit fields.
    """
    user_id: str
    role: str = "analyst"

    @property
    def can_write(self) -> bool:
        return self.role in ("admin", "analyst")

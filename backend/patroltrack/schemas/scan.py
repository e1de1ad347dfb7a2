"""
Schémas Pydantic pour les scans de points de contrôle.
Endpoint principal : POST /api/v1/scans
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from patroltrack.services.geo import is_valid_coordinate


class ScanSubmit(BaseModel):
    """
    Tentative de pointage envoyée par l'appareil de l'agent.

    `code` = code court saisi à la main ou contenu du QR code lu par la caméra.
    La distance et la validité ne sont jamais acceptées du client (extra="forbid").
    """
    model_config = ConfigDict(extra="forbid")

    code: str
    latitude: float
    longitude: float
    note: Optional[str] = None

    @field_validator("code")
    @classmethod
    def code_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le code ne peut pas être vide.")
        return v.strip()

    @model_validator(mode="after")
    def valid_position(self):
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError("Coordonnées invalides (latitude [-90, 90], longitude [-180, 180]).")
        return self


class ScanCheckpointInfo(BaseModel):
    id: uuid.UUID
    name: str
    type: str


class ScanResult(BaseModel):
    """Verdict renvoyé à l'agent après un scan (enregistré même hors rayon)."""
    scan_id: uuid.UUID
    checkpoint: ScanCheckpointInfo
    distance_meters: float
    required_radius: int
    is_valid: bool
    message: str
    scanned_at: datetime


class ScanRecord(BaseModel):
    """Ligne de l'historique des scans (dashboard administrateur)."""
    id: uuid.UUID
    reporter_id: uuid.UUID
    reporter_name: Optional[str] = None
    checkpoint_id: uuid.UUID
    checkpoint_name: str
    checkpoint_type: str
    latitude: float
    longitude: float
    distance_meters: float
    is_valid: bool
    note: Optional[str]
    scanned_at: datetime


class ScanFilters(BaseModel):
    """Filtres de l'historique, tous optionnels."""
    reporter_id: Optional[uuid.UUID] = None
    checkpoint_id: Optional[uuid.UUID] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    is_valid: Optional[bool] = None
    limit: int = 100


class ScanTotals(BaseModel):
    total_scans: int
    active_reporters: int
    scanned_checkpoints: int
    avg_distance: Optional[float]
    valid_scans: int
    invalid_scans: int


class ReporterScanStats(BaseModel):
    reporter_id: uuid.UUID
    full_name: str
    role: str
    scan_count: int
    last_scan: Optional[datetime]


class ScanStatsResponse(BaseModel):
    stats: ScanTotals
    reporter_stats: List[ReporterScanStats]

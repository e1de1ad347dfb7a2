"""
Schémas Pydantic pour les rondes : sessions, positions GPS, carte temps réel.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from patroltrack.services.geo import is_valid_coordinate


class PositionReport(BaseModel):
    """Position envoyée périodiquement par l'appareil de l'agent."""
    latitude: float
    longitude: float
    accuracy: float = Field(ge=0)                # mètres
    speed: Optional[float] = Field(default=None, ge=0)  # m/s

    @model_validator(mode="after")
    def valid_position(self):
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError("Coordonnées invalides (latitude [-90, 90], longitude [-180, 180]).")
        return self


class PatrolSessionResponse(BaseModel):
    id: uuid.UUID
    reporter_id: uuid.UUID
    started_at: datetime
    ended_at: Optional[datetime] = None
    is_active: bool

    model_config = {"from_attributes": True}


class TrackResponse(BaseModel):
    """Position enregistrée + drapeau d'appartenance au territoire (alerte côté agent)."""
    id: uuid.UUID
    session_id: uuid.UUID
    latitude: float
    longitude: float
    accuracy: Optional[float]
    speed: Optional[float]
    recorded_at: datetime
    inside: bool


class ActivePatrol(BaseModel):
    """Agent en ronde avec sa dernière position connue (None si aucun fix GPS)."""
    reporter_id: uuid.UUID
    full_name: str
    role: str
    session_id: uuid.UUID
    session_started_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    recorded_at: Optional[datetime] = None
    inside: bool = True


class ActivePatrolsResponse(BaseModel):
    active_patrols: List[ActivePatrol]
    territory_configured: bool
    outside_count: int  # agents hors territoire (masqués si include_outside=False)

"""
Schémas Pydantic pour les points de contrôle.
Création et modification réservées aux administrateurs.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from patroltrack.config import settings
from patroltrack.services.geo import is_valid_coordinate

VALID_CHECKPOINT_TYPES = {"KPP", "PATROL"}


def _check_radius(v: Optional[int]) -> Optional[int]:
    if v is not None and not (settings.CHECKPOINT_RADIUS_MIN <= v <= settings.CHECKPOINT_RADIUS_MAX):
        raise ValueError(
            f"Le rayon doit être compris entre {settings.CHECKPOINT_RADIUS_MIN} "
            f"et {settings.CHECKPOINT_RADIUS_MAX} mètres."
        )
    return v


def _check_type(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().upper()
    if v not in VALID_CHECKPOINT_TYPES:
        raise ValueError(f"Type de point invalide. Valeurs acceptées : {VALID_CHECKPOINT_TYPES}")
    return v


class CheckpointCreate(BaseModel):
    """Données nécessaires pour créer un point de contrôle."""
    name: str
    description: Optional[str] = None
    latitude: float
    longitude: float
    radius_meters: int = settings.CHECKPOINT_RADIUS_DEFAULT
    checkpoint_type: str  # KPP, PATROL

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom du point de contrôle ne peut pas être vide.")
        return v.strip()

    @field_validator("radius_meters")
    @classmethod
    def radius_in_bounds(cls, v: int) -> int:
        return _check_radius(v)

    @field_validator("checkpoint_type")
    @classmethod
    def valid_type(cls, v: str) -> str:
        return _check_type(v)

    @model_validator(mode="after")
    def valid_position(self):
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError("Coordonnées invalides (latitude [-90, 90], longitude [-180, 180]).")
        return self


class CheckpointUpdate(BaseModel):
    """Modification partielle : seuls les champs fournis sont appliqués."""
    name: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: Optional[int] = None
    checkpoint_type: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "latitude", "longitude", "radius_meters", "checkpoint_type", "is_active")
    @classmethod
    def not_null(cls, v):
        # Omettre le champ pour le laisser inchangé ; null n'est accepté que pour description
        if v is None:
            raise ValueError("Ce champ ne peut pas être null.")
        return v

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le nom du point de contrôle ne peut pas être vide.")
        return v.strip() if v is not None else v

    @field_validator("radius_meters")
    @classmethod
    def radius_in_bounds(cls, v: Optional[int]) -> Optional[int]:
        return _check_radius(v)

    @field_validator("checkpoint_type")
    @classmethod
    def valid_type(cls, v: Optional[str]) -> Optional[str]:
        return _check_type(v)

    @model_validator(mode="after")
    def valid_position(self):
        # La position se modifie en bloc : latitude et longitude ensemble
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude et longitude doivent être fournies ensemble.")
        if self.latitude is not None and not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError("Coordonnées invalides (latitude [-90, 90], longitude [-180, 180]).")
        return self


class CheckpointResponse(BaseModel):
    """Réponse renvoyée après création ou lecture d'un point de contrôle."""
    id: uuid.UUID
    name: str
    description: Optional[str]
    latitude: float
    longitude: float
    radius_meters: int
    checkpoint_type: str
    short_code: str
    qr_code_data: str
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

"""
Modèle SQLAlchemy pour les scans de points de contrôle.

Journal d'audit append-only : une ligne par tentative, jamais modifiée ni supprimée.
distance_meters et is_valid sont toujours calculés côté serveur.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Text, func
from sqlalchemy.dialects.postgresql import UUID

from patroltrack.database import Base


class Scan(Base):
    """Tentative de pointage d'un agent sur un point de contrôle."""
    __tablename__ = "scans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reporter_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    checkpoint_id = Column(
        UUID(as_uuid=True), ForeignKey("checkpoints.id", ondelete="CASCADE"), nullable=False, index=True
    )

    latitude = Column(Float, nullable=False)    # Position déclarée par l'appareil
    longitude = Column(Float, nullable=False)
    distance_meters = Column(Float, nullable=False)
    is_valid = Column(Boolean, nullable=False)  # distance_meters <= rayon du point
    note = Column(Text, nullable=True)

    scanned_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)

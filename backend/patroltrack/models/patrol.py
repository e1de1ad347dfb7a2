"""
Modèles SQLAlchemy pour les sessions de ronde et les positions GPS.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID

from patroltrack.database import Base


class PatrolSession(Base):
    """Session de ronde : au plus une session active par agent."""
    __tablename__ = "patrol_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reporter_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    started_at = Column(DateTime, server_default=func.now())
    ended_at = Column(DateTime, nullable=True)    # NULL = session en cours
    is_active = Column(Boolean, nullable=False, default=True)


class GpsTrack(Base):
    """Position rapportée périodiquement par l'appareil d'un agent."""
    __tablename__ = "gps_tracks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reporter_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(UUID(as_uuid=True), ForeignKey("patrol_sessions.id", ondelete="CASCADE"), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)   # mètres
    speed = Column(Float, nullable=True)      # m/s
    recorded_at = Column(DateTime, server_default=func.now(), index=True)

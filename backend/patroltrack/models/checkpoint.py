"""
Modèle SQLAlchemy pour les points de contrôle (checkpoints).
Chaque point possède deux identifiants scannables : le code court numérique
saisi à la main et le contenu du QR code imprimé.
"""

import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from patroltrack.database import Base


class Checkpoint(Base):
    """Point physique où l'agent doit pointer (KPP fixe ou point de ronde)."""
    __tablename__ = "checkpoints"
    __table_args__ = (
        CheckConstraint("radius_meters > 0", name="ck_checkpoints_radius_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius_meters = Column(Integer, nullable=False, default=50)

    short_code = Column(String(10), unique=True, nullable=False, index=True)
    qr_code_data = Column(String(64), unique=True, nullable=False, index=True)
    checkpoint_type = Column(String(20), nullable=False)  # KPP, PATROL
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

"""
Modèle SQLAlchemy pour les réglages globaux clé/valeur (JSONB).
Contient notamment le polygone du territoire gardé (clé territory_polygon).
"""

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB

from patroltrack.database import Base


class GlobalSetting(Base):
    __tablename__ = "global_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSONB, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

"""
Service métier pour les points de contrôle.
Création (génération du QR et du code court), lecture, modification, suppression.
"""

import logging
import secrets
import string
import time
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from patroltrack.config import settings
from patroltrack.models.checkpoint import Checkpoint
from patroltrack.schemas.checkpoint import CheckpointCreate, CheckpointResponse, CheckpointUpdate
from patroltrack.services import territory_service
from patroltrack.services.territory import is_inside

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_qr_payload() -> str:
    """Contenu du QR code imprimé : CP-<epoch ms>-<9 caractères base36>."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"CP-{int(time.time() * 1000)}-{suffix}"


def generate_short_code(db: Session) -> str:
    """
    Tire un code numérique à SHORT_CODE_LENGTH chiffres (sans zéro en tête)
    et vérifie qu'il n'est pas déjà utilisé.

    Lève ValueError si aucun code libre n'est trouvé après SHORT_CODE_MAX_ATTEMPTS essais.
    """
    low = 10 ** (settings.SHORT_CODE_LENGTH - 1)
    high = 10 ** settings.SHORT_CODE_LENGTH
    for _ in range(settings.SHORT_CODE_MAX_ATTEMPTS):
        code = str(low + secrets.randbelow(high - low))
        existing = db.execute(
            select(Checkpoint.id).where(Checkpoint.short_code == code)
        ).scalar()
        if existing is None:
            return code
    raise ValueError("Impossible de générer un code court unique : espace de codes saturé.")


def create_checkpoint(db: Session, data: CheckpointCreate) -> CheckpointResponse:
    """Crée un point de contrôle actif avec un code court et un QR uniques."""
    checkpoint = Checkpoint(
        name=data.name,
        description=data.description or "",
        latitude=data.latitude,
        longitude=data.longitude,
        radius_meters=data.radius_meters,
        checkpoint_type=data.checkpoint_type,
        short_code=generate_short_code(db),
        qr_code_data=generate_qr_payload(),
        is_active=True,
    )
    db.add(checkpoint)
    db.commit()
    db.refresh(checkpoint)

    logger.info(
        "Point de contrôle créé : %s (%s) — code %s, rayon %d m",
        checkpoint.name, checkpoint.id, checkpoint.short_code, checkpoint.radius_meters,
    )
    _warn_if_outside_territory(db, checkpoint)
    return CheckpointResponse.model_validate(checkpoint)


def get_checkpoints(db: Session, active_only: bool = False) -> list[CheckpointResponse]:
    """Retourne les points de contrôle, du plus récent au plus ancien."""
    query = select(Checkpoint).order_by(Checkpoint.created_at.desc())
    if active_only:
        query = query.where(Checkpoint.is_active.is_(True))
    checkpoints = db.execute(query).scalars().all()
    return [CheckpointResponse.model_validate(cp) for cp in checkpoints]


def get_checkpoint(db: Session, checkpoint_id: uuid.UUID) -> Optional[CheckpointResponse]:
    """Retourne un point de contrôle par son ID, ou None s'il n'existe pas."""
    checkpoint = db.get(Checkpoint, checkpoint_id)
    if checkpoint is None:
        return None
    return CheckpointResponse.model_validate(checkpoint)


def update_checkpoint(
    db: Session,
    checkpoint_id: uuid.UUID,
    data: CheckpointUpdate,
) -> Optional[CheckpointResponse]:
    """
    Met à jour les champs fournis (position, rayon, activation...).
    Retourne None si le point est introuvable.
    """
    checkpoint = db.get(Checkpoint, checkpoint_id)
    if checkpoint is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(checkpoint, field, value)

    db.commit()
    db.refresh(checkpoint)

    logger.info("Point de contrôle modifié : %s — champs %s", checkpoint_id, sorted(update_data))
    if "latitude" in update_data:
        _warn_if_outside_territory(db, checkpoint)
    return CheckpointResponse.model_validate(checkpoint)


def delete_checkpoint(db: Session, checkpoint_id: uuid.UUID) -> bool:
    """
    Supprime définitivement un point de contrôle (ses scans suivent par CASCADE).
    Retourne True si supprimé, False si non trouvé.
    """
    checkpoint = db.get(Checkpoint, checkpoint_id)
    if checkpoint is None:
        return False

    db.delete(checkpoint)
    db.commit()
    logger.info("Point de contrôle supprimé : %s", checkpoint_id)
    return True


def _warn_if_outside_territory(db: Session, checkpoint: Checkpoint) -> None:
    """Journalise un avertissement si le point est hors du territoire configuré (n'empêche rien)."""
    polygon = territory_service.get_territory(db)
    if not is_inside((checkpoint.latitude, checkpoint.longitude), polygon):
        logger.warning(
            "Point de contrôle %s (%s) situé hors du territoire gardé.",
            checkpoint.name, checkpoint.id,
        )

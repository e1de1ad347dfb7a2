"""
Router pour les points de contrôle (administration).
CRUD complet : création, lecture, modification, suppression.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from patroltrack.database import get_db
from patroltrack.schemas.checkpoint import CheckpointCreate, CheckpointResponse, CheckpointUpdate
from patroltrack.services import checkpoint_service

router = APIRouter(prefix="/api/v1/checkpoints", tags=["Points de contrôle"])


@router.post("", response_model=CheckpointResponse, status_code=201, summary="Créer un point de contrôle")
def create_checkpoint(data: CheckpointCreate, db: Session = Depends(get_db)):
    """
    Crée un point de contrôle actif.
    Le code court numérique et le contenu du QR code sont générés par le serveur.
    Retourne 400 si aucun code court libre n'a pu être généré.
    """
    try:
        return checkpoint_service.create_checkpoint(db, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[CheckpointResponse], summary="Lister les points de contrôle")
def list_checkpoints(
    active_only: bool = Query(False, description="Ne renvoyer que les points actifs"),
    db: Session = Depends(get_db),
):
    """Retourne les points de contrôle, du plus récent au plus ancien."""
    return checkpoint_service.get_checkpoints(db, active_only=active_only)


@router.get("/{checkpoint_id}", response_model=CheckpointResponse, summary="Détail d'un point de contrôle")
def get_checkpoint(checkpoint_id: uuid.UUID, db: Session = Depends(get_db)):
    checkpoint = checkpoint_service.get_checkpoint(db, checkpoint_id)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail="Point de contrôle introuvable.")
    return checkpoint


@router.put("/{checkpoint_id}", response_model=CheckpointResponse, summary="Modifier un point de contrôle")
def update_checkpoint(checkpoint_id: uuid.UUID, data: CheckpointUpdate, db: Session = Depends(get_db)):
    """
    Met à jour position, rayon, nom, type ou activation.
    Seuls les champs fournis sont modifiés. Un point désactivé n'accepte plus aucun scan.
    """
    checkpoint = checkpoint_service.update_checkpoint(db, checkpoint_id, data)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail="Point de contrôle introuvable.")
    return checkpoint


@router.delete("/{checkpoint_id}", status_code=204, summary="Supprimer un point de contrôle")
def delete_checkpoint(checkpoint_id: uuid.UUID, db: Session = Depends(get_db)):
    """Suppression définitive (les scans associés sont supprimés en cascade)."""
    if not checkpoint_service.delete_checkpoint(db, checkpoint_id):
        raise HTTPException(status_code=404, detail="Point de contrôle introuvable.")

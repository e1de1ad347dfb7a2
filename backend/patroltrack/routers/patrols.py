"""
Router pour les rondes : sessions, envoi des positions GPS, carte temps réel.
"""

import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from patroltrack.database import get_db
from patroltrack.schemas.patrol import (
    ActivePatrolsResponse,
    PatrolSessionResponse,
    PositionReport,
    TrackResponse,
)
from patroltrack.services import patrol_service

router = APIRouter(prefix="/api/v1/patrols", tags=["Rondes"])


@router.post("/session/start", response_model=PatrolSessionResponse, status_code=201,
             summary="Démarrer une ronde")
def start_session(x_reporter_id: uuid.UUID = Header(...), db: Session = Depends(get_db)):
    """Ouvre une session de ronde. Retourne 409 si une session est déjà active."""
    try:
        return patrol_service.start_session(db, x_reporter_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/session/end", response_model=PatrolSessionResponse, summary="Terminer la ronde")
def end_session(x_reporter_id: uuid.UUID = Header(...), db: Session = Depends(get_db)):
    """Clôture la session active. Retourne 404 si aucune session n'est active."""
    try:
        return patrol_service.end_session(db, x_reporter_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/track", response_model=TrackResponse, status_code=201, summary="Envoyer une position GPS")
def track_position(
    data: PositionReport,
    x_reporter_id: uuid.UUID = Header(...),
    db: Session = Depends(get_db),
):
    """
    Enregistre la position courante de l'agent.
    Le champ `inside` permet à l'app d'afficher l'alerte de sortie de territoire.
    Retourne 400 sans session active.
    """
    try:
        return patrol_service.record_position(db, x_reporter_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/active", response_model=ActivePatrolsResponse, summary="Agents en ronde (temps réel)")
def active_patrols(
    include_outside: bool = Query(False, description="Inclure les agents hors territoire"),
    db: Session = Depends(get_db),
):
    """
    Dernière position de chaque agent en ronde, annotée inside/outside.
    Par défaut, seuls les agents dans le territoire (ou sans position) sont renvoyés.
    """
    return patrol_service.get_active_patrols(db, include_outside=include_outside)

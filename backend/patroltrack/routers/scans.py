"""
Router pour les scans de points de contrôle.
Soumission d'un scan par l'agent, historique et statistiques pour le dashboard.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from patroltrack.config import settings
from patroltrack.database import get_db
from patroltrack.schemas.scan import ScanFilters, ScanRecord, ScanResult, ScanStatsResponse, ScanSubmit
from patroltrack.services import scan_service

router = APIRouter(prefix="/api/v1/scans", tags=["Scans"])


@router.post("", response_model=ScanResult, status_code=201, summary="Scanner un point de contrôle")
def submit_scan(
    data: ScanSubmit,
    x_reporter_id: uuid.UUID = Header(..., description="Agent authentifié (injecté par la passerelle)"),
    db: Session = Depends(get_db),
):
    """
    Pointage d'un agent : code court ou contenu QR + position GPS de l'appareil.

    - Le serveur calcule la distance au point et la validité (rayon inclus)
    - Un scan hors rayon est enregistré avec is_valid=false et un message « trop loin »
    - Retourne 404 si le code ne désigne aucun point actif (sans préciser pourquoi)
    """
    try:
        return scan_service.submit_scan(db, x_reporter_id, data)
    except scan_service.CheckpointNotResolved as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=List[ScanRecord], summary="Historique des scans")
def list_scans(
    reporter_id: Optional[uuid.UUID] = None,
    checkpoint_id: Optional[uuid.UUID] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    is_valid: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=settings.SCAN_HISTORY_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    """Retourne les scans filtrés, du plus récent au plus ancien."""
    filters = ScanFilters(
        reporter_id=reporter_id,
        checkpoint_id=checkpoint_id,
        date_from=date_from,
        date_to=date_to,
        is_valid=is_valid,
        limit=limit,
    )
    return scan_service.get_scans(db, filters)


@router.get("/stats", response_model=ScanStatsResponse, summary="Statistiques des scans")
def scan_stats(
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """Totaux (valides / hors rayon, distance moyenne) et activité par agent."""
    return scan_service.get_scan_stats(db, date_from, date_to)

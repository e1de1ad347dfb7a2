"""
Router pour le territoire gardé (polygone unique).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from patroltrack.database import get_db
from patroltrack.schemas.territory import TerritoryPolygon, TerritoryResponse
from patroltrack.services import territory_service

router = APIRouter(prefix="/api/v1/territory", tags=["Territoire"])


@router.get("", response_model=TerritoryResponse, summary="Lire le territoire")
def get_territory(db: Session = Depends(get_db)):
    """Retourne le polygone courant ({"polygon": []} si aucun territoire n'est configuré)."""
    return {"polygon": territory_service.get_territory(db)}


@router.put("", response_model=TerritoryResponse, summary="Enregistrer le territoire")
def save_territory(data: TerritoryPolygon, db: Session = Depends(get_db)):
    """
    Remplace entièrement le polygone (ordre des sommets conservé).
    Une liste vide supprime le territoire. 1 ou 2 sommets → 422.
    """
    return {"polygon": territory_service.save_territory(db, data.polygon)}

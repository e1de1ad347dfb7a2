"""
Schémas Pydantic pour le territoire gardé.
Format d'échange : {"polygon": [[lat, lng], ...]} — sommets ordonnés, polygone ouvert.
"""

from typing import Any, List

from pydantic import BaseModel, field_validator

from patroltrack.services.geo import is_valid_coordinate


class TerritoryPolygon(BaseModel):
    """
    Polygone du territoire.

    - Liste vide : aucun territoire (tout le monde est considéré dedans).
    - 1 ou 2 sommets : refusé, ne décrit aucune zone.
    - Chaque sommet : paire [lat, lng] de nombres finis dans les plages valides.
    """
    polygon: List[List[float]]

    @field_validator("polygon")
    @classmethod
    def valid_vertices(cls, v: List[List[float]]) -> List[List[float]]:
        for index, vertex in enumerate(v):
            if len(vertex) != 2:
                raise ValueError(f"Sommet {index} : une paire [latitude, longitude] est attendue.")
            if not is_valid_coordinate(vertex[0], vertex[1]):
                raise ValueError(f"Sommet {index} : coordonnées invalides.")
        if 0 < len(v) < 3:
            raise ValueError("Un territoire doit comporter au moins 3 sommets (ou aucun pour le désactiver).")
        return v


class TerritoryResponse(BaseModel):
    """Polygone tel que stocké (pas de revalidation en sortie, sommets hérités compris)."""
    polygon: List[Any]

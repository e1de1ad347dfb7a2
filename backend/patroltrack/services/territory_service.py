"""
Persistance du territoire gardé (réglage global unique).

Le polygone est stocké dans global_settings sous la clé territory_polygon
et remplacé en bloc à chaque sauvegarde. Les lecteurs le récupèrent une fois
par lot d'évaluations puis le passent au moteur (services.territory).
"""

import json
import logging
from typing import List

from sqlalchemy.orm import Session

from patroltrack.models.setting import GlobalSetting

logger = logging.getLogger(__name__)

TERRITORY_KEY = "territory_polygon"


def get_territory(db: Session) -> List[List[float]]:
    """
    Retourne le polygone courant ([[lat, lng], ...]), liste vide si non configuré.
    Une valeur stockée en chaîne JSON (anciennes lignes) est décodée ;
    toute valeur illisible ou qui n'est pas une liste donne [].
    """
    setting = db.get(GlobalSetting, TERRITORY_KEY)
    if setting is None:
        return []

    polygon = setting.value
    if isinstance(polygon, str):
        try:
            polygon = json.loads(polygon)
        except ValueError:
            logger.error("Polygone du territoire illisible en base, ignoré.")
            return []

    if not isinstance(polygon, list):
        return []
    return polygon


def save_territory(db: Session, polygon: List[List[float]]) -> List[List[float]]:
    """
    Remplace le polygone du territoire (ordre des sommets conservé).
    Une liste vide désactive le territoire.
    """
    vertices = [[float(lat), float(lng)] for lat, lng in polygon]

    setting = db.get(GlobalSetting, TERRITORY_KEY)
    if setting is None:
        setting = GlobalSetting(key=TERRITORY_KEY, value=vertices)
        db.add(setting)
    else:
        setting.value = vertices
    db.commit()

    if vertices:
        logger.info("Territoire enregistré : %d sommets.", len(vertices))
    else:
        logger.info("Territoire supprimé : plus aucune restriction de zone.")
    return vertices

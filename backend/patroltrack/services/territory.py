"""
Moteur d'appartenance au territoire gardé (point dans polygone).

Règle pair-impair (ray casting). Convention de rôles des coordonnées :
la latitude joue le rôle de x et la longitude celui de y, aussi bien pour
le point testé que pour les sommets stockés ([lat, lng]). Ne jamais inverser
un seul des deux côtés.

Le polygone est passé explicitement par l'appelant (lu une fois par lot
d'évaluations) : ce module ne touche ni à la base ni à un état global.
"""

import math
from typing import Dict, List, Optional, Sequence

from patroltrack.schemas.patrol import ActivePatrol

MIN_POLYGON_VERTICES = 3

INSIDE = "INSIDE"
OUTSIDE = "OUTSIDE"
EXITED = "EXITED"
RETURNED = "RETURNED"


def _coord(vertex, index: int) -> float:
    """Coordonnée d'un sommet en float, NaN si absente ou non numérique."""
    try:
        return float(vertex[index])
    except (TypeError, ValueError, IndexError, KeyError):
        return math.nan


def is_inside(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    """
    Indique si le point (lat, lng) est dans le polygone.

    - Moins de 3 sommets : aucun territoire configuré → toujours True (fail-open).
    - Une arête dont un sommet n'est pas un nombre fini est ignorée.
    - Un point exactement sur une arête donne un résultat stable (déterministe)
      mais sans garantie géométrique ; idem pour les polygones auto-sécants.
    """
    if polygon is None or len(polygon) < MIN_POLYGON_VERTICES:
        return True

    x, y = float(point[0]), float(point[1])
    n = len(polygon)
    inside = False

    for i in range(n):
        j = (i - 1 + n) % n
        xi, yi = _coord(polygon[i], 0), _coord(polygon[i], 1)
        xj, yj = _coord(polygon[j], 0), _coord(polygon[j], 1)

        if not all(math.isfinite(v) for v in (xi, yi, xj, yj)):
            continue

        crosses = (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi
        if crosses:
            inside = not inside

    return inside


def annotate_territory(
    patrols: List[ActivePatrol],
    polygon: Sequence[Sequence[float]],
) -> List[ActivePatrol]:
    """
    Renvoie une copie de la liste avec le champ `inside` renseigné pour chaque agent.
    Un agent sans position connue (pas encore de fix GPS) est considéré dedans.
    """
    annotated = []
    for patrol in patrols:
        if patrol.latitude is None or patrol.longitude is None:
            inside = True
        else:
            inside = is_inside((patrol.latitude, patrol.longitude), polygon)
        annotated.append(patrol.model_copy(update={"inside": inside}))
    return annotated


def filter_by_territory(
    patrols: List[ActivePatrol],
    polygon: Sequence[Sequence[float]],
) -> List[ActivePatrol]:
    """Ne garde que les agents dans le territoire (ordre conservé, jamais d'exclusion sans position)."""
    return [p for p in annotate_territory(patrols, polygon) if p.inside]


class TerritoryWatch:
    """
    Machine à états INSIDE/OUTSIDE par agent.

    `confirmations` = nombre d'échantillons consécutifs du nouveau côté avant
    de valider une transition. 1 = bascule dès le premier franchissement.
    """

    def __init__(self, confirmations: int = 1):
        if confirmations < 1:
            raise ValueError("confirmations doit être >= 1.")
        self.confirmations = confirmations
        self._states: Dict[str, str] = {}
        self._pending: Dict[str, int] = {}

    def state(self, reporter_id) -> str:
        """État courant ; un agent jamais observé est INSIDE."""
        return self._states.get(str(reporter_id), INSIDE)

    def observe(self, reporter_id, inside: bool) -> Optional[str]:
        """
        Enregistre un échantillon et renvoie EXITED / RETURNED si l'état bascule,
        None sinon.
        """
        key = str(reporter_id)
        current = self._states.get(key, INSIDE)
        observed = INSIDE if inside else OUTSIDE

        if observed == current:
            self._pending.pop(key, None)
            return None

        count = self._pending.get(key, 0) + 1
        if count < self.confirmations:
            self._pending[key] = count
            return None

        self._pending.pop(key, None)
        self._states[key] = observed
        return EXITED if observed == OUTSIDE else RETURNED

    def forget(self, reporter_id) -> None:
        """Oublie l'état d'un agent (fin de session)."""
        key = str(reporter_id)
        self._states.pop(key, None)
        self._pending.pop(key, None)

    def tracked(self) -> List[str]:
        """Agents ayant un état ou un franchissement en attente de confirmation."""
        return list(set(self._states) | set(self._pending))

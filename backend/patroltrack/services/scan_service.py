"""
Validation des scans de points de contrôle (géorepérage).

Chaîne de traitement d'un scan :
1. Résolution du code saisi/lu vers un point actif (code court puis contenu QR)
2. Distance haversine entre la position déclarée et le point
3. Verdict : valide si distance <= rayon (borne incluse)
4. Enregistrement systématique, y compris hors rayon (journal d'audit append-only)

Politique hors rayon : le scan est enregistré avec is_valid=False et l'agent
reçoit un message « trop loin » avec la distance mesurée. Aucun scan résolu
n'est refusé sans trace.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy import and_, distinct, func, select
from sqlalchemy.orm import Session

from patroltrack.config import settings
from patroltrack.models.checkpoint import Checkpoint
from patroltrack.models.scan import Scan
from patroltrack.models.user import User
from patroltrack.schemas.scan import (
    ReporterScanStats,
    ScanCheckpointInfo,
    ScanFilters,
    ScanRecord,
    ScanResult,
    ScanStatsResponse,
    ScanSubmit,
    ScanTotals,
)
from patroltrack.services.geo import GeoPoint, distance_m

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "not_found"
REASON_INACTIVE = "inactive"


class CheckpointNotResolved(ValueError):
    """
    Le code ne correspond à aucun point actif.
    `reason` (not_found / inactive) sert uniquement aux logs : la réponse HTTP
    est identique dans les deux cas.
    """

    def __init__(self, code: str, reason: str):
        self.code = code
        self.reason = reason
        super().__init__("Code de point de contrôle introuvable ou inactif.")


@dataclass(frozen=True)
class ShortCodeKey:
    """Code numérique court saisi à la main (ex. 4821)."""
    value: str


@dataclass(frozen=True)
class QrPayloadKey:
    """Contenu brut du QR code imprimé (ex. CP-1718000000000-k3j9x0a2b)."""
    value: str


LookupKey = Union[ShortCodeKey, QrPayloadKey]

_LOOKUP_COLUMNS = {
    ShortCodeKey: Checkpoint.short_code,
    QrPayloadKey: Checkpoint.qr_code_data,
}


@dataclass(frozen=True)
class ScanVerdict:
    checkpoint: Checkpoint
    distance_meters: float
    is_valid: bool


def lookup_keys(code: str) -> List[LookupKey]:
    """
    Stratégies de résolution, dans l'ordre d'essai :
    code court (uniquement si le code est numérique), puis contenu QR.
    """
    code = code.strip()
    keys: List[LookupKey] = []
    if code.isdigit():
        keys.append(ShortCodeKey(code))
    keys.append(QrPayloadKey(code))
    return keys


def resolve_checkpoint(db: Session, code: str) -> Checkpoint:
    """
    Retourne le premier point ACTIF correspondant au code.
    Lève CheckpointNotResolved sinon, en journalisant la cause réelle.
    """
    found_inactive = False
    for key in lookup_keys(code):
        column = _LOOKUP_COLUMNS[type(key)]
        checkpoint = db.execute(
            select(Checkpoint).where(column == key.value)
        ).scalar()
        if checkpoint is None:
            continue
        if checkpoint.is_active:
            return checkpoint
        found_inactive = True

    reason = REASON_INACTIVE if found_inactive else REASON_NOT_FOUND
    logger.warning("Code %r non résolu (%s).", code, reason)
    raise CheckpointNotResolved(code, reason)


def evaluate_scan(checkpoint: Checkpoint, position: GeoPoint) -> ScanVerdict:
    """Calcule la distance au point et le verdict (rayon inclus)."""
    distance = distance_m(position, GeoPoint(checkpoint.latitude, checkpoint.longitude))
    return ScanVerdict(
        checkpoint=checkpoint,
        distance_meters=distance,
        is_valid=distance <= checkpoint.radius_meters,
    )


def validate_scan(db: Session, code: str, position: GeoPoint) -> ScanVerdict:
    """Résout le code puis évalue la position. Ne persiste rien."""
    checkpoint = resolve_checkpoint(db, code)
    return evaluate_scan(checkpoint, position)


def submit_scan(db: Session, reporter_id: uuid.UUID, data: ScanSubmit) -> ScanResult:
    """
    Valide et enregistre un scan dans une seule transaction.

    Le scan est persisté même hors rayon (is_valid=False).
    Lève CheckpointNotResolved si le code ne désigne aucun point actif.
    """
    verdict = validate_scan(db, data.code, GeoPoint(data.latitude, data.longitude))
    checkpoint = verdict.checkpoint

    scan = Scan(
        id=uuid.uuid4(),
        reporter_id=reporter_id,
        checkpoint_id=checkpoint.id,
        latitude=data.latitude,
        longitude=data.longitude,
        distance_meters=verdict.distance_meters,
        is_valid=verdict.is_valid,
        note=data.note,
        scanned_at=datetime.now(timezone.utc),
    )
    db.add(scan)
    db.commit()

    if verdict.is_valid:
        message = f"Pointage enregistré : {checkpoint.name}."
        logger.info(
            "Scan valide — agent %s, point %s, %.1f m",
            reporter_id, checkpoint.id, verdict.distance_meters,
        )
    else:
        message = (
            f"Vous êtes trop loin du point de contrôle : {verdict.distance_meters:.0f} m "
            f"(rayon autorisé : {checkpoint.radius_meters} m)."
        )
        logger.warning(
            "Scan hors rayon — agent %s, point %s, %.1f m > %d m",
            reporter_id, checkpoint.id, verdict.distance_meters, checkpoint.radius_meters,
        )

    return ScanResult(
        scan_id=scan.id,
        checkpoint=ScanCheckpointInfo(
            id=checkpoint.id,
            name=checkpoint.name,
            type=checkpoint.checkpoint_type,
        ),
        distance_meters=verdict.distance_meters,
        required_radius=checkpoint.radius_meters,
        is_valid=verdict.is_valid,
        message=message,
        scanned_at=scan.scanned_at,
    )


def get_scans(db: Session, filters: ScanFilters) -> List[ScanRecord]:
    """Historique des scans filtré, du plus récent au plus ancien."""
    query = (
        select(Scan, Checkpoint, User.full_name)
        .join(Checkpoint, Checkpoint.id == Scan.checkpoint_id)
        .outerjoin(User, User.id == Scan.reporter_id)
    )
    if filters.reporter_id is not None:
        query = query.where(Scan.reporter_id == filters.reporter_id)
    if filters.checkpoint_id is not None:
        query = query.where(Scan.checkpoint_id == filters.checkpoint_id)
    if filters.date_from is not None:
        query = query.where(Scan.scanned_at >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(Scan.scanned_at <= filters.date_to)
    if filters.is_valid is not None:
        query = query.where(Scan.is_valid.is_(filters.is_valid))

    limit = max(1, min(filters.limit, settings.SCAN_HISTORY_MAX_LIMIT))
    rows = db.execute(query.order_by(Scan.scanned_at.desc()).limit(limit)).all()

    return [
        ScanRecord(
            id=scan.id,
            reporter_id=scan.reporter_id,
            reporter_name=reporter_name,
            checkpoint_id=checkpoint.id,
            checkpoint_name=checkpoint.name,
            checkpoint_type=checkpoint.checkpoint_type,
            latitude=scan.latitude,
            longitude=scan.longitude,
            distance_meters=scan.distance_meters,
            is_valid=scan.is_valid,
            note=scan.note,
            scanned_at=scan.scanned_at,
        )
        for scan, checkpoint, reporter_name in rows
    ]


def get_scan_stats(
    db: Session,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> ScanStatsResponse:
    """
    Statistiques globales (totaux, valides / hors rayon, distance moyenne)
    et nombre de scans par agent KPP / PATROL sur la période.
    """
    period = []
    if date_from is not None:
        period.append(Scan.scanned_at >= date_from)
    if date_to is not None:
        period.append(Scan.scanned_at <= date_to)

    total, reporters, checkpoints, avg_distance, valid, invalid = db.execute(
        select(
            func.count(Scan.id),
            func.count(distinct(Scan.reporter_id)),
            func.count(distinct(Scan.checkpoint_id)),
            func.avg(Scan.distance_meters),
            func.count(Scan.id).filter(Scan.is_valid.is_(True)),
            func.count(Scan.id).filter(Scan.is_valid.is_(False)),
        ).where(*period)
    ).one()

    scan_count = func.count(Scan.id)
    rows = db.execute(
        select(User.id, User.full_name, User.role, scan_count, func.max(Scan.scanned_at))
        .outerjoin(Scan, and_(Scan.reporter_id == User.id, *period))
        .where(User.role.in_(["KPP", "PATROL"]))
        .group_by(User.id, User.full_name, User.role)
        .order_by(scan_count.desc())
    ).all()

    return ScanStatsResponse(
        stats=ScanTotals(
            total_scans=total or 0,
            active_reporters=reporters or 0,
            scanned_checkpoints=checkpoints or 0,
            avg_distance=float(avg_distance) if avg_distance is not None else None,
            valid_scans=valid or 0,
            invalid_scans=invalid or 0,
        ),
        reporter_stats=[
            ReporterScanStats(
                reporter_id=user_id,
                full_name=full_name,
                role=role,
                scan_count=count or 0,
                last_scan=last_scan,
            )
            for user_id, full_name, role, count, last_scan in rows
        ],
    )

"""
Service métier pour les rondes : sessions, positions GPS et carte temps réel.

Chaque position reçue est évaluée contre le territoire courant pour que
l'appareil de l'agent puisse afficher l'alerte de sortie de zone.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from patroltrack.models.patrol import GpsTrack, PatrolSession
from patroltrack.models.user import User
from patroltrack.schemas.patrol import (
    ActivePatrol,
    ActivePatrolsResponse,
    PatrolSessionResponse,
    PositionReport,
    TrackResponse,
)
from patroltrack.services import territory_service
from patroltrack.services.territory import MIN_POLYGON_VERTICES, annotate_territory, is_inside

logger = logging.getLogger(__name__)


def _get_active_session(db: Session, reporter_id: uuid.UUID) -> Optional[PatrolSession]:
    return db.execute(
        select(PatrolSession).where(
            PatrolSession.reporter_id == reporter_id,
            PatrolSession.is_active.is_(True),
        )
    ).scalar()


def start_session(db: Session, reporter_id: uuid.UUID) -> PatrolSessionResponse:
    """
    Ouvre une session de ronde pour l'agent.
    Lève ValueError si une session est déjà active.
    """
    existing = _get_active_session(db, reporter_id)
    if existing is not None:
        raise ValueError(f"Une session de ronde est déjà active ({existing.id}).")

    session = PatrolSession(
        id=uuid.uuid4(),
        reporter_id=reporter_id,
        started_at=datetime.now(timezone.utc),
        is_active=True,
    )
    db.add(session)
    db.commit()

    logger.info("Session de ronde démarrée — agent %s (%s)", reporter_id, session.id)
    return PatrolSessionResponse.model_validate(session)


def end_session(db: Session, reporter_id: uuid.UUID) -> PatrolSessionResponse:
    """
    Clôture la session active de l'agent.
    Lève ValueError si aucune session active n'existe.
    """
    session = _get_active_session(db, reporter_id)
    if session is None:
        raise ValueError("Session de ronde active introuvable.")

    session.is_active = False
    session.ended_at = datetime.now(timezone.utc)
    db.commit()

    logger.info("Session de ronde terminée — agent %s (%s)", reporter_id, session.id)
    return PatrolSessionResponse.model_validate(session)


def record_position(db: Session, reporter_id: uuid.UUID, data: PositionReport) -> TrackResponse:
    """
    Enregistre une position GPS et indique si elle est dans le territoire.
    Lève ValueError si l'agent n'a pas de session active.
    """
    session = _get_active_session(db, reporter_id)
    if session is None:
        raise ValueError("Aucune session de ronde active pour cet agent.")

    track = GpsTrack(
        id=uuid.uuid4(),
        reporter_id=reporter_id,
        session_id=session.id,
        latitude=data.latitude,
        longitude=data.longitude,
        accuracy=data.accuracy,
        speed=data.speed,
        recorded_at=datetime.now(timezone.utc),
    )
    db.add(track)
    db.commit()

    polygon = territory_service.get_territory(db)
    inside = is_inside((data.latitude, data.longitude), polygon)
    if not inside:
        logger.warning(
            "Agent %s hors territoire (%.6f, %.6f)", reporter_id, data.latitude, data.longitude
        )

    return TrackResponse(
        id=track.id,
        session_id=session.id,
        latitude=track.latitude,
        longitude=track.longitude,
        accuracy=track.accuracy,
        speed=track.speed,
        recorded_at=track.recorded_at,
        inside=inside,
    )


def get_active_patrols(db: Session, include_outside: bool = False) -> ActivePatrolsResponse:
    """
    Agents en ronde avec leur dernière position, annotés inside/outside.

    Par défaut les agents hors territoire sont masqués (carte du dashboard) ;
    include_outside=True renvoie tout le monde. Un agent sans position est
    toujours affiché. Le polygone est lu une seule fois pour tout le lot.
    """
    latest = (
        select(
            GpsTrack.session_id,
            func.max(GpsTrack.recorded_at).label("recorded_at"),
        )
        .group_by(GpsTrack.session_id)
        .subquery()
    )
    rows = db.execute(
        select(PatrolSession, User, GpsTrack)
        .join(User, User.id == PatrolSession.reporter_id)
        .outerjoin(latest, latest.c.session_id == PatrolSession.id)
        .outerjoin(
            GpsTrack,
            and_(
                GpsTrack.session_id == PatrolSession.id,
                GpsTrack.recorded_at == latest.c.recorded_at,
            ),
        )
        .where(PatrolSession.is_active.is_(True))
        .order_by(User.full_name)
    ).all()

    patrols = []
    seen_sessions = set()
    for session, user, track in rows:
        # Deux positions au même horodatage : on garde la première
        if session.id in seen_sessions:
            continue
        seen_sessions.add(session.id)
        patrols.append(
            ActivePatrol(
                reporter_id=user.id,
                full_name=user.full_name,
                role=user.role,
                session_id=session.id,
                session_started_at=session.started_at,
                latitude=track.latitude if track else None,
                longitude=track.longitude if track else None,
                accuracy=track.accuracy if track else None,
                speed=track.speed if track else None,
                recorded_at=track.recorded_at if track else None,
            )
        )

    polygon = territory_service.get_territory(db)
    annotated = annotate_territory(patrols, polygon)
    outside_count = sum(1 for p in annotated if not p.inside)

    return ActivePatrolsResponse(
        active_patrols=annotated if include_outside else [p for p in annotated if p.inside],
        territory_configured=len(polygon) >= MIN_POLYGON_VERTICES,
        outside_count=outside_count,
    )

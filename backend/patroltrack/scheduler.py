"""
Planificateur APScheduler pour la surveillance du territoire.

Le job s'exécute toutes les TERRITORY_SWEEP_SECONDS secondes : il charge les
agents en ronde avec leur dernière position (polygone lu une fois par passage)
et journalise chaque sortie / retour dans le territoire.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from patroltrack.config import settings
from patroltrack.database import SessionLocal
from patroltrack.services.territory import EXITED, RETURNED, TerritoryWatch

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()

territory_watch = TerritoryWatch(confirmations=settings.TERRITORY_BREACH_CONFIRMATIONS)


def _sweep_territory() -> None:
    """
    Tâche planifiée : compare la dernière position de chaque agent au territoire
    et met à jour la machine à états. Import local pour éviter les imports circulaires.
    """
    from patroltrack.services.patrol_service import get_active_patrols

    db = SessionLocal()
    try:
        result = get_active_patrols(db, include_outside=True)
        active_ids = set()
        for patrol in result.active_patrols:
            active_ids.add(str(patrol.reporter_id))
            transition = territory_watch.observe(patrol.reporter_id, patrol.inside)
            if transition == EXITED:
                logger.warning(
                    "Sortie de territoire — %s (%s) en (%.6f, %.6f)",
                    patrol.full_name, patrol.reporter_id, patrol.latitude, patrol.longitude,
                )
            elif transition == RETURNED:
                logger.info("Retour dans le territoire — %s (%s)", patrol.full_name, patrol.reporter_id)

        # Sessions terminées : on oublie l'état des agents qui ne sont plus en ronde
        for reporter_id in territory_watch.tracked():
            if reporter_id not in active_ids:
                territory_watch.forget(reporter_id)
    except Exception as exc:
        logger.error("Erreur lors de la surveillance du territoire : %s", exc, exc_info=True)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler désactivé (SCHEDULER_ENABLED=false).")
        return
    scheduler.add_job(
        _sweep_territory,
        trigger="interval",
        seconds=settings.TERRITORY_SWEEP_SECONDS,
        id="territory_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré — surveillance du territoire toutes les %d s.",
        settings.TERRITORY_SWEEP_SECONDS,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")

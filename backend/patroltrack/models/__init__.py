# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from patroltrack.models.user import User  # noqa: F401  — doit précéder scan et patrol
from patroltrack.models.checkpoint import Checkpoint  # noqa: F401
from patroltrack.models.scan import Scan  # noqa: F401
from patroltrack.models.patrol import GpsTrack, PatrolSession  # noqa: F401
from patroltrack.models.setting import GlobalSetting  # noqa: F401

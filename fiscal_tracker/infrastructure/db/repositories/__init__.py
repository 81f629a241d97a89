from .collaborator_repository import CollaboratorRepository
from .dossier_repository import DossierRepository
from .obligation_repository import ObligationRepository
from .tva_history_repository import TVAHistoryRepository

__all__ = [
    "CollaboratorRepository",
    "DossierRepository",
    "ObligationRepository",
    "TVAHistoryRepository",
]

from app.models.user import User
from app.models.client import Client, Site, SiegeContact
from app.models.contrat import Contrat, TypeContrat, StatutContrat, Frequence
from app.models.intervention import Intervention, TypeIntervention, StatutIntervention
from app.models.employe import Employe, Poste, employe_postes
from app.models.audit import AuditLog

__all__ = [
    "User",
    "Client", "Site", "SiegeContact",
    "Contrat", "TypeContrat", "StatutContrat", "Frequence",
    "Intervention", "TypeIntervention", "StatutIntervention",
    "Employe", "Poste", "employe_postes",
    "AuditLog",
]

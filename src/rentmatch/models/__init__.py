"""
Modelos de datos del sistema.

- UserPreferences: lo que busca el usuario
- Property: snapshot inmutable de una propiedad del catálogo
- MatchScore: compatibilidad persistida por par usuario-propiedad
"""

from rentmatch.models.user import UserPreferences
from rentmatch.models.property import Property
from rentmatch.models.match_score import MatchScore

__all__ = [
    "UserPreferences",
    "Property",
    "MatchScore",
]

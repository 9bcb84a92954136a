"""
Módulo de base de datos.

Provee acceso a Supabase: store de match scores y lectura de
propiedades y preferencias.
"""

from rentmatch.database.supabase_client import get_supabase_client, SupabaseClient
from rentmatch.database.repositories import (
    MatchScoreRepository,
    PropertyRepository,
    PreferencesRepository,
)

__all__ = [
    "get_supabase_client",
    "SupabaseClient",
    "MatchScoreRepository",
    "PropertyRepository",
    "PreferencesRepository",
]

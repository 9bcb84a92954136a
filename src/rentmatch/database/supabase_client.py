"""
Cliente de Supabase.

Singleton para conexión a la base de datos.
"""

from functools import lru_cache

import structlog
from supabase import Client, ClientOptions, create_client

from rentmatch.config import load_settings
from rentmatch.exceptions import PersistenceError

logger = structlog.get_logger()


class SupabaseClient:
    """Wrapper del cliente de Supabase con métodos de utilidad."""

    def __init__(self, client: Client):
        self._client = client

    @property
    def client(self) -> Client:
        """Acceso directo al cliente de Supabase."""
        return self._client

    def table(self, name: str):
        """Acceso a una tabla específica."""
        return self._client.table(name)


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """
    Obtiene el cliente de Supabase (singleton cacheado).

    Returns:
        SupabaseClient configurado

    Raises:
        PersistenceError: Si las credenciales faltan o son inválidas
    """
    settings = load_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise PersistenceError(
            "SUPABASE_URL y SUPABASE_KEY son requeridos. "
            "Configura las variables de entorno.",
            operation="connect",
        )

    # Usar service key si está disponible: el recompute escribe para cualquier usuario
    key = settings.supabase_service_key or settings.supabase_key

    try:
        client = create_client(
            settings.supabase_url,
            key,
            options=ClientOptions(
                postgrest_client_timeout=settings.request_timeout_seconds,
            ),
        )
    except Exception as e:
        # supabase-py valida URL y key al crear el cliente
        raise PersistenceError(
            f"Configuración de Supabase inválida: {e}",
            operation="connect",
            original_error=e,
        ) from e

    logger.info("Cliente de Supabase inicializado", url=settings.supabase_url)

    return SupabaseClient(client)

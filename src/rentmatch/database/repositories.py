"""
Repositorios para operaciones en Supabase.

Cada repositorio maneja una tabla/entidad específica. El cliente de
Supabase es sincrónico: cada query corre en un thread con timeout
acotado, de modo que llamadas para distintos pares no se bloquean entre sí.
"""

import asyncio
from typing import Callable, Optional, TypeVar

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from rentmatch.config import load_settings
from rentmatch.database.supabase_client import get_supabase_client, SupabaseClient
from rentmatch.exceptions import PersistenceError
from rentmatch.models import MatchScore, Property, UserPreferences

logger = structlog.get_logger()

# Fallas que vale la pena reintentar
TRANSIENT_ERRORS = (asyncio.TimeoutError, TimeoutError, httpx.TransportError)

# Código de Postgres para sintaxis de UUID inválida
INVALID_TEXT_REPRESENTATION = "22P02"

T = TypeVar("T")


class BaseRepository:
    """Clase base para repositorios."""

    TABLE: str = ""

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
    ):
        # Settings y cliente se resuelven tarde: una configuración inválida
        # aparece como PersistenceError en la primera operación, no al construir.
        self._client = client
        self._timeout = timeout
        self._retry_attempts = retry_attempts

    @property
    def client(self) -> SupabaseClient:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    @property
    def timeout(self) -> float:
        if self._timeout is None:
            self._timeout = load_settings().request_timeout_seconds
        return self._timeout

    @property
    def retry_attempts(self) -> int:
        if self._retry_attempts is None:
            self._retry_attempts = load_settings().store_retry_attempts
        return self._retry_attempts

    async def _execute(self, operation: str, query) -> list[dict]:
        """
        Ejecuta una query de postgrest con timeout y reintentos.

        El timeout deja de esperar pero no puede frenar el thread: una
        escritura que expiró todavía puede llegar a la base, incluso
        después del reintento. Con upsert por par gana la última escritura,
        así que el registro nunca queda a medias.

        Args:
            operation: Nombre de la operación para logs y errores
            query: Builder de postgrest listo para .execute()

        Returns:
            Filas devueltas por Supabase (lista vacía si no hay)

        Raises:
            PersistenceError: Si se agotan los reintentos, expira el timeout
                o Supabase responde con error
        """
        timeout = self.timeout
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await asyncio.wait_for(
                        asyncio.to_thread(query.execute),
                        timeout=timeout,
                    )
        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.error(
                "Timeout en Supabase",
                table=self.TABLE,
                operation=operation,
                timeout=timeout,
            )
            raise PersistenceError(
                f"Timeout de {timeout}s en {operation}",
                operation=operation,
                original_error=e,
            ) from e
        except (APIError, httpx.HTTPError) as e:
            logger.error(
                "Error en Supabase",
                table=self.TABLE,
                operation=operation,
                error=str(e),
            )
            raise PersistenceError(
                f"Error de Supabase en {operation}: {e}",
                operation=operation,
                original_error=e,
            ) from e

        if response is None:
            return []
        return response.data or []

    def _parse(self, operation: str, parser: Callable[[dict], T], row: dict) -> T:
        """Valida una fila; una fila con forma inesperada es PersistenceError."""
        try:
            return parser(row)
        except ValidationError as e:
            logger.error(
                "Fila inválida en Supabase",
                table=self.TABLE,
                operation=operation,
                error=str(e),
            )
            raise PersistenceError(
                f"Fila inválida en {self.TABLE} ({operation}): {e.error_count()} error(es)",
                operation=operation,
                original_error=e,
            ) from e


class MatchScoreRepository(BaseRepository):
    """Store de match scores: un registro por par (user_id, property_id)."""

    TABLE = "match_scores"

    async def upsert(
        self,
        user_id: str,
        property_id: str,
        factors: dict[str, int],
        score: int,
    ) -> MatchScore:
        """
        Escribe o sobrescribe el registro del par.

        Score y desglose viajan en una sola sentencia: o se guardan ambos
        o ninguno.

        Returns:
            El MatchScore tal como quedó guardado
        """
        match = MatchScore(
            user_id=user_id,
            property_id=property_id,
            score=score,
            factors=factors,
        )
        rows = await self._execute(
            "upsert",
            self.client.table(self.TABLE).upsert(
                match.to_db_dict(), on_conflict="user_id,property_id"
            ),
        )
        logger.debug(
            "Match score guardado",
            user_id=user_id,
            property_id=property_id,
            score=score,
        )
        return self._parse("upsert", MatchScore.from_db_row, rows[0]) if rows else match

    async def get_for_user(
        self,
        user_id: str,
        limit: Optional[int] = None,
        with_property: bool = True,
    ) -> list[MatchScore]:
        """
        Obtiene los scores de un usuario, ordenados por score descendente.

        Con with_property cada registro trae el join a 'properties'.
        Un usuario sin scores devuelve lista vacía. Una fila que no valida
        (por ejemplo factors con valores no enteros) se descarta con un
        warning para no tirar abajo el ranking completo.
        """
        columns = "*, properties(*)" if with_property else "*"
        query = (
            self.client.table(self.TABLE)
            .select(columns)
            .eq("user_id", user_id)
            .order("score", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)

        rows = await self._execute("get_for_user", query)

        matches = []
        for row in rows:
            try:
                matches.append(MatchScore.from_db_row(row))
            except ValidationError as e:
                logger.warning(
                    "Match score inválido descartado",
                    user_id=user_id,
                    property_id=row.get("property_id"),
                    error=str(e),
                )
        return matches

    async def get(self, user_id: str, property_id: str) -> Optional[MatchScore]:
        """Obtiene el score de un par o None si todavía no se calculó."""
        rows = await self._execute(
            "get",
            self.client.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("property_id", property_id)
            .limit(1),
        )
        return self._parse("get", MatchScore.from_db_row, rows[0]) if rows else None


class PropertyRepository(BaseRepository):
    """Acceso de solo lectura al catálogo de propiedades."""

    TABLE = "properties"

    async def get_by_id(self, property_id: str) -> Optional[Property]:
        """Obtiene una propiedad por su UUID, o None si no existe."""
        try:
            rows = await self._execute(
                "get_property",
                self.client.table(self.TABLE)
                .select("*")
                .eq("id", property_id)
                .limit(1),
            )
        except PersistenceError as e:
            # Un id mal formado es "no encontrado", no una falla del store
            original = e.original_error
            if isinstance(original, APIError) and original.code == INVALID_TEXT_REPRESENTATION:
                return None
            raise
        return self._parse("get_property", Property.model_validate, rows[0]) if rows else None

    async def list_candidate_ids(self, page_size: int = 500) -> list[str]:
        """
        IDs de todas las propiedades disponibles, más recientes primero.

        Pagina con range() de a page_size filas hasta agotar el catálogo.
        """
        ids: dict[str, None] = {}
        start = 0
        while True:
            rows = await self._execute(
                "list_candidates",
                self.client.table(self.TABLE)
                .select("id")
                .eq("status", "available")
                .order("created_at", desc=True)
                .order("id")
                .range(start, start + page_size - 1),
            )
            # Una propiedad nueva entre páginas corre el resto: se deduplica
            ids.update((row["id"], None) for row in rows)
            if len(rows) < page_size:
                break
            start += page_size

        logger.debug("Candidatas listadas", count=len(ids), pages=start // page_size + 1)
        return list(ids)


class PreferencesRepository(BaseRepository):
    """Acceso de solo lectura a las preferencias de búsqueda."""

    TABLE = "user_preferences"

    async def get_for_user(self, user_id: str) -> Optional[UserPreferences]:
        """Obtiene las preferencias guardadas de un usuario, o None."""
        rows = await self._execute(
            "get_preferences",
            self.client.table(self.TABLE)
            .select("*")
            .eq("user_id", user_id)
            .limit(1),
        )
        return (
            self._parse("get_preferences", UserPreferences.model_validate, rows[0])
            if rows
            else None
        )

"""
Servicio de match scores.

Orquesta el cálculo, la persistencia y la lectura de scores:
- compute_one: calcula y guarda el score de un par usuario-propiedad
- recompute_all: recalcula todas las propiedades candidatas de un usuario
- refresh / rank: leen los scores guardados y arman el ranking
- lookup: lectura instantánea desde memoria, nunca calcula

Las operaciones públicas devuelven resultados explícitos; los errores
del dominio no se propagan como excepciones hacia la UI.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

import structlog

from rentmatch.config import Settings, load_settings
from rentmatch.database import (
    MatchScoreRepository,
    PreferencesRepository,
    PropertyRepository,
)
from rentmatch.exceptions import (
    MatchScoreError,
    NotAuthenticated,
    PartialFailure,
    PropertyNotFound,
)
from rentmatch.matching.aggregator import aggregate
from rentmatch.matching.factors import compute_breakdown
from rentmatch.models import MatchScore, Property, UserPreferences

logger = structlog.get_logger()


@dataclass
class ComputeResult:
    """Resultado de calcular el score de una propiedad."""

    success: bool
    match: Optional[MatchScore] = None
    error: Optional[MatchScoreError] = None


@dataclass
class RecomputeResult:
    """Resultado de recalcular todas las candidatas de un usuario."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: dict[str, str] = field(default_factory=dict)
    error: Optional[MatchScoreError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def cancelled(self) -> bool:
        return self.skipped > 0


@dataclass
class ScoresResult:
    """Scores leídos del store (refresh o ranking)."""

    success: bool
    matches: list[MatchScore] = field(default_factory=list)
    error: Optional[MatchScoreError] = None


class MatchScoreService:
    """
    Punto de entrada del matching para el resto de la aplicación.

    Mantiene en memoria los últimos scores cargados por usuario para que
    lookup responda sin tocar la base. Solo se retienen los
    score_cache_users usuarios usados más recientemente.
    """

    def __init__(
        self,
        store: Optional[MatchScoreRepository] = None,
        properties: Optional[PropertyRepository] = None,
        preferences: Optional[PreferencesRepository] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings
        self.store = store or MatchScoreRepository()
        self.properties = properties or PropertyRepository()
        self.preferences = preferences or PreferencesRepository()
        self._scores: OrderedDict[str, dict[str, MatchScore]] = OrderedDict()

    @property
    def settings(self) -> Settings:
        # Sin settings explícitos se cargan en la primera operación, así una
        # configuración inválida vuelve como PersistenceError en el resultado
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    def score_property(
        self, preferences: UserPreferences, prop: Property
    ) -> tuple[dict[str, int], int]:
        """Calcula desglose y total sin persistir."""
        breakdown = compute_breakdown(
            preferences,
            prop,
            budget_tolerance_ratio=self.settings.budget_tolerance_ratio,
            bedroom_penalty_per_room=self.settings.bedroom_penalty_per_room,
            location_mismatch_score=self.settings.location_mismatch_score,
        )
        return breakdown, aggregate(breakdown, self.settings.match_weights)

    async def compute_one(self, user_id: Optional[str], property_id: str) -> ComputeResult:
        """
        Calcula y guarda el score de una propiedad para el usuario.

        Es el único camino de escritura de scores.
        """
        try:
            match = await self._compute(self._require_user(user_id), property_id)
        except MatchScoreError as e:
            logger.warning(
                "No se pudo calcular el match score",
                user_id=user_id,
                property_id=property_id,
                error=e.message,
            )
            return ComputeResult(success=False, error=e)
        return ComputeResult(success=True, match=match)

    async def recompute_all(
        self,
        user_id: Optional[str],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RecomputeResult:
        """
        Recalcula el score de todas las propiedades candidatas.

        Una propiedad que falla no frena al resto: el error queda en
        result.errors y result.error es un PartialFailure. Si cancel_event
        se activa, las propiedades que no empezaron se cuentan como skipped.

        Args:
            user_id: UUID del usuario
            cancel_event: Señal opcional para terminar antes

        Returns:
            RecomputeResult con contadores y errores por propiedad
        """
        result = RecomputeResult()

        try:
            user_id = self._require_user(user_id)
            preferences = await self._load_preferences(user_id)
            candidate_ids = await self.properties.list_candidate_ids(
                self.settings.candidate_page_size
            )
        except MatchScoreError as e:
            logger.error("No se pudo iniciar el recompute", user_id=user_id, error=e.message)
            result.error = e
            return result

        semaphore = asyncio.Semaphore(self.settings.recompute_concurrency)

        async def _run(property_id: str):
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    result.skipped += 1
                    return
                try:
                    await self._compute(user_id, property_id, preferences)
                except Exception as e:
                    message = getattr(e, "message", None) or str(e)
                    logger.warning(
                        "Falló el recompute de una propiedad",
                        user_id=user_id,
                        property_id=property_id,
                        error=message,
                    )
                    result.failed += 1
                    result.errors[property_id] = message
                else:
                    result.succeeded += 1

        await asyncio.gather(*(_run(pid) for pid in candidate_ids))

        if result.errors:
            result.error = PartialFailure(result.errors)

        logger.info(
            "Recompute completado",
            user_id=user_id,
            candidates=len(candidate_ids),
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
        )
        return result

    async def refresh(self, user_id: Optional[str]) -> ScoresResult:
        """Recarga desde el store los scores del usuario (ordenados por score)."""
        try:
            matches = await self._refresh(self._require_user(user_id))
        except MatchScoreError as e:
            logger.warning("No se pudieron cargar los scores", user_id=user_id, error=e.message)
            return ScoresResult(success=False, error=e)
        return ScoresResult(success=True, matches=matches)

    async def rank(self, user_id: Optional[str], limit: int = 10) -> ScoresResult:
        """
        Top de matches del usuario.

        Descarta scores cuya propiedad ya no se resuelve, ordena por score
        descendente (empates: el actualizado más recientemente primero) y
        devuelve como máximo limit elementos.
        """
        try:
            matches = await self._refresh(self._require_user(user_id))
        except MatchScoreError as e:
            logger.warning("No se pudo armar el ranking", user_id=user_id, error=e.message)
            return ScoresResult(success=False, error=e)

        if limit <= 0:
            return ScoresResult(success=True)

        resolved = [m for m in matches if m.property_snapshot is not None]
        resolved.sort(key=lambda m: (m.score, m.sort_timestamp), reverse=True)
        return ScoresResult(success=True, matches=resolved[:limit])

    def lookup(self, user_id: Optional[str], property_id: str) -> int:
        """
        Score ya cargado para la propiedad, o 0 si no hay.

        Solo lee memoria: no consulta el store ni dispara cálculos.
        """
        if not user_id:
            return 0
        match = self._scores.get(user_id, {}).get(property_id)
        return match.score if match else 0

    def _require_user(self, user_id: Optional[str]) -> str:
        if not user_id or not str(user_id).strip():
            raise NotAuthenticated()
        return user_id

    async def _load_preferences(self, user_id: str) -> UserPreferences:
        preferences = await self.preferences.get_for_user(user_id)
        if preferences is None:
            logger.info("Usuario sin preferencias guardadas, usando defaults", user_id=user_id)
            return UserPreferences()
        return preferences

    async def _compute(
        self,
        user_id: str,
        property_id: str,
        preferences: Optional[UserPreferences] = None,
    ) -> MatchScore:
        if preferences is None:
            preferences = await self._load_preferences(user_id)

        prop = await self.properties.get_by_id(property_id)
        if prop is None:
            raise PropertyNotFound(property_id)

        breakdown, total = self.score_property(preferences, prop)
        match = await self.store.upsert(user_id, property_id, breakdown, total)
        match = match.model_copy(update={"property_snapshot": prop})

        self._user_scores(user_id)[property_id] = match

        logger.info(
            "Match score calculado",
            user_id=user_id,
            property_id=property_id,
            score=total,
            factors=breakdown,
        )
        return match

    async def _refresh(self, user_id: str) -> list[MatchScore]:
        matches = await self.store.get_for_user(user_id)
        self._user_scores(user_id, reset=True).update((m.property_id, m) for m in matches)
        return matches

    def _user_scores(self, user_id: str, reset: bool = False) -> dict[str, MatchScore]:
        """Scores en memoria del usuario; desaloja al usado hace más tiempo."""
        if reset or user_id not in self._scores:
            self._scores[user_id] = {}
        self._scores.move_to_end(user_id)
        while len(self._scores) > self.settings.score_cache_users:
            evicted, _ = self._scores.popitem(last=False)
            logger.debug("Scores desalojados de memoria", user_id=evicted)
        return self._scores[user_id]

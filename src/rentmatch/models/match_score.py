"""
MatchScore: compatibilidad calculada entre un usuario y una propiedad.

Hay un único registro por par (user_id, property_id). Cada recálculo lo
sobrescribe completo: score total y desglose viajan siempre juntos.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rentmatch.models.property import Property

logger = structlog.get_logger()


class MatchScore(BaseModel):
    """Score persistido en la tabla 'match_scores'."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = Field(None, description="UUID generado por Supabase")
    user_id: str = Field(..., description="FK al usuario")
    property_id: str = Field(..., description="FK a la propiedad")

    score: int = Field(..., ge=0, le=100, description="Score total ponderado")
    factors: dict[str, int] = Field(
        default_factory=dict, description="Desglose factor -> sub-score (0-100)"
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Join opcional con la propiedad (select "*, properties(*)")
    property_snapshot: Optional[Property] = Field(None, exclude=True)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.property_id)

    @property
    def sort_timestamp(self) -> datetime:
        """Timestamp para desempatar rankings (más reciente primero)."""
        stamp = self.updated_at or self.created_at
        if stamp is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        if stamp.tzinfo is None:
            return stamp.replace(tzinfo=timezone.utc)
        return stamp

    def to_db_dict(self) -> dict:
        """
        Convierte a diccionario para upsert en Supabase.

        created_at no se envía: en conflicto se conserva el original.
        """
        return {
            "user_id": self.user_id,
            "property_id": self.property_id,
            "score": self.score,
            "factors": dict(self.factors),
            "updated_at": (self.updated_at or datetime.now(timezone.utc)).isoformat(),
        }

    @classmethod
    def from_db_row(cls, row: dict) -> "MatchScore":
        """
        Construye el modelo desde una fila de Supabase.

        Si la fila trae el join 'properties' pero la propiedad ya no
        existe o vino incompleta, property_snapshot queda en None.
        """
        data = {k: v for k, v in row.items() if k != "properties"}
        joined = row.get("properties")

        prop = None
        if isinstance(joined, dict):
            try:
                prop = Property.model_validate(joined)
            except ValidationError as e:
                logger.warning(
                    "Propiedad joineada inválida",
                    property_id=row.get("property_id"),
                    error=str(e),
                )

        factors = data.get("factors") or {}
        # Filas viejas guardaban también el total dentro del desglose
        data["factors"] = {k: v for k, v in factors.items() if k != "total_score"}

        match = cls.model_validate(data)
        if prop is not None:
            match = match.model_copy(update={"property_snapshot": prop})
        return match

"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rentmatch.exceptions import PersistenceError

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> rentmatch/ -> src/ -> project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


# Pesos por defecto de cada factor (deben sumar 1.0)
DEFAULT_MATCH_WEIGHTS = {
    "budget": 0.30,
    "bedroom": 0.20,
    "amenity": 0.20,
    "location": 0.15,
    "feature": 0.15,
}

# Penalizaciones
DEFAULT_BUDGET_TOLERANCE_RATIO = 0.5
DEFAULT_BEDROOM_PENALTY = 25
DEFAULT_LOCATION_MISMATCH_SCORE = 40

EARTH_RADIUS_MILES = 3959.0


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase
    supabase_url: str = Field(..., description="URL del proyecto Supabase")
    supabase_key: str = Field(..., description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )

    # Store
    request_timeout_seconds: float = Field(
        30.0, gt=0, description="Timeout máximo por llamada al store (segundos)"
    )
    store_retry_attempts: int = Field(
        3, ge=1, description="Intentos por llamada al store ante fallas transitorias"
    )

    # Matching
    recompute_concurrency: int = Field(
        5, ge=1, description="Cálculos concurrentes durante un recompute completo"
    )
    candidate_page_size: int = Field(
        500, ge=1, description="Propiedades candidatas pedidas por página durante un recompute"
    )
    score_cache_users: int = Field(
        100, ge=1, description="Usuarios con scores en memoria para lookup (LRU)"
    )

    # Pesos de factores
    weight_budget: float = Field(DEFAULT_MATCH_WEIGHTS["budget"], ge=0.0, le=1.0)
    weight_bedroom: float = Field(DEFAULT_MATCH_WEIGHTS["bedroom"], ge=0.0, le=1.0)
    weight_amenity: float = Field(DEFAULT_MATCH_WEIGHTS["amenity"], ge=0.0, le=1.0)
    weight_location: float = Field(DEFAULT_MATCH_WEIGHTS["location"], ge=0.0, le=1.0)
    weight_feature: float = Field(DEFAULT_MATCH_WEIGHTS["feature"], ge=0.0, le=1.0)

    # Penalizaciones
    budget_tolerance_ratio: float = Field(
        DEFAULT_BUDGET_TOLERANCE_RATIO,
        gt=0.0,
        description="Fracción del límite de presupuesto a partir de la cual el score llega a 0",
    )
    bedroom_penalty_per_room: int = Field(
        DEFAULT_BEDROOM_PENALTY, ge=0, le=100,
        description="Puntos restados por cada dormitorio de diferencia",
    )
    location_mismatch_score: int = Field(
        DEFAULT_LOCATION_MISMATCH_SCORE, ge=0, le=100,
        description="Score fijo cuando la ubicación no coincide",
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")

    @model_validator(mode="after")
    def _check_weights(self) -> "Settings":
        total = sum(self.match_weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Los pesos de matching deben sumar 1.0 (suman {total:.3f})")
        return self

    @property
    def match_weights(self) -> dict[str, float]:
        """Pesos por factor en el formato que espera el agregador."""
        return {
            "budget": self.weight_budget,
            "bedroom": self.weight_bedroom,
            "amenity": self.weight_amenity,
            "location": self.weight_location,
            "feature": self.weight_feature,
        }


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


def load_settings() -> Settings:
    """
    Igual que get_settings, pero una configuración inválida o incompleta
    (por ejemplo SUPABASE_URL sin definir) se informa como PersistenceError.
    """
    try:
        return get_settings()
    except ValidationError as e:
        raise PersistenceError(
            f"Configuración inválida: {e.error_count()} error(es) en variables de entorno",
            operation="connect",
            original_error=e,
        ) from e

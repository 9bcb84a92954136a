"""
Preferencias del usuario

Define lo que el usuario busca en un alquiler. El subsistema de matching
solo las lee; se modifican desde el perfil del usuario.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserPreferences(BaseModel):
    """
    Preferencias de búsqueda de un usuario.

    Los defaults replican los de la tabla 'user_preferences', así un
    usuario sin fila guardada puntúa contra los mismos valores.
    """

    model_config = ConfigDict(from_attributes=True)

    # Presupuesto
    budget_min: Optional[int] = Field(1000, ge=0, description="Precio mínimo mensual")
    budget_max: Optional[int] = Field(5000, ge=0, description="Precio máximo mensual")

    # Dormitorios aceptables
    preferred_bedrooms: list[int] = Field(
        default_factory=lambda: [1, 2], description="Cantidades de dormitorios aceptables"
    )

    # Amenities deseados
    preferred_amenities: list[str] = Field(
        default_factory=list, description="Ej: ['gym', 'pool', 'laundry']"
    )

    # Ubicación
    preferred_locations: list[str] = Field(
        default_factory=list, description="Ciudades o barrios aceptables"
    )
    location_name: Optional[str] = Field(None, description="Ciudad o barrio elegido en el perfil")
    location_lat: Optional[float] = Field(None, description="Latitud del punto de referencia")
    location_lng: Optional[float] = Field(None, description="Longitud del punto de referencia")
    search_radius: float = Field(
        10, ge=0, description="Radio de búsqueda en millas (0: sin radio)"
    )

    # Características deseadas
    pet_friendly: bool = Field(default=False)
    furnished_preferred: bool = Field(default=False)
    parking_required: bool = Field(default=False)

    @field_validator(
        "preferred_bedrooms",
        "preferred_amenities",
        "preferred_locations",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, value):
        # Supabase devuelve NULL para arrays sin cargar
        return [] if value is None else value

    @field_validator("pet_friendly", "furnished_preferred", "parking_required", mode="before")
    @classmethod
    def _none_as_false(cls, value):
        return False if value is None else value

    @field_validator("search_radius", mode="before")
    @classmethod
    def _default_radius(cls, value):
        return 10 if value is None else value

    @property
    def location_names(self) -> list[str]:
        """Ubicaciones aceptables: preferred_locations más location_name."""
        names = [loc for loc in self.preferred_locations if loc.strip()]
        if self.location_name and self.location_name.strip():
            names.append(self.location_name)
        return names

    @property
    def has_reference_point(self) -> bool:
        return self.location_lat is not None and self.location_lng is not None

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para upsert en Supabase."""
        return self.model_dump()

"""
Snapshot de una propiedad del catálogo.

El catálogo es dueño de los datos; el matching consume una copia inmutable.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Property(BaseModel):
    """
    Propiedad en alquiler tal como la lee el motor de matching.

    Se mapea a la tabla 'properties' en Supabase. Las columnas que el
    matching no usa (imágenes, landlord, etc.) se ignoran.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., description="UUID generado por Supabase")
    title: str = Field("", description="Título del aviso")

    # Precio y tamaño
    price: int = Field(..., ge=0, description="Precio mensual")
    bedrooms: int = Field(1, ge=0, description="Cantidad de dormitorios")
    bathrooms: float = Field(1, ge=0, description="Cantidad de baños")

    # Ubicación
    address: str = Field("", description="Dirección")
    city: str = Field("", description="Ciudad")
    state: str = Field("", description="Estado/Provincia")
    zip_code: str = Field("", description="Código postal")
    neighborhood: Optional[str] = Field(None, description="Barrio")
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Amenities y features
    amenities: tuple[str, ...] = Field(default_factory=tuple)
    pet_friendly: bool = False
    furnished: bool = False
    parking_included: bool = False

    status: str = Field("available", description="available, pending, rented o draft")

    @field_validator("amenities", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return () if value is None else value

    @field_validator("pet_friendly", "furnished", "parking_included", mode="before")
    @classmethod
    def _none_as_false(cls, value):
        return False if value is None else value

    @field_validator("title", "address", "city", "state", "zip_code", mode="before")
    @classmethod
    def _none_as_blank(cls, value):
        return "" if value is None else value

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

"""
Excepciones del subsistema de matching.
"""

from typing import Optional


class MatchScoreError(Exception):
    """Base de todos los errores de match scores."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotAuthenticated(MatchScoreError):
    """No hay contexto de usuario para operar."""

    def __init__(self, message: str = "Usuario no autenticado"):
        super().__init__(message)


class PropertyNotFound(MatchScoreError):
    """La propiedad no existe o ya no está visible."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Propiedad no encontrada: {property_id}")


class PersistenceError(MatchScoreError):
    """El store no respondió, expiró o está mal configurado."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        original_error: Optional[Exception] = None,
    ):
        self.operation = operation
        self.original_error = original_error
        super().__init__(message)


class PartialFailure(MatchScoreError):
    """Algunos items de un recompute fallaron. No es fatal."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(f"{len(self.errors)} propiedades fallaron al recalcular")

"""Exception hierarchy shared by the services and the REST layer."""
from __future__ import annotations


class EcoleError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Erreur interne"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict[str, str]:
        return {"error": self.message}


class ValidationError(EcoleError):
    status_code = 400
    default_message = "Données invalides"


class NotFoundError(EcoleError):
    status_code = 404
    default_message = "Ressource introuvable"


class InvariantViolation(EcoleError):
    """A business rule refused the operation."""

    status_code = 400
    default_message = "Règle métier non respectée"


class InvalidTransition(EcoleError):
    status_code = 409
    default_message = "Transition de statut interdite"


class ConflictError(EcoleError):
    status_code = 409
    default_message = "Cette ressource existe déjà"


class ClasseUpdateError(EcoleError):
    """Generic failure of a cascading class update, internals stay in the logs."""

    status_code = 400
    default_message = "Échec de la mise à jour de la classe"


class CascadeTimeout(Exception):
    """Raised inside the cascade when the configured deadline is exceeded."""

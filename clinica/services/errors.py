"""Domain errors raised by the clinic management services.

Every error carries a pt-BR message that is safe to show to clinic staff.
Routes translate them into HTTP responses.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures surfaced to the caller layer."""

    message = "Não foi possível concluir a operação."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.message
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    """One or more submitted fields were rejected."""

    message = "Dados do médico inválidos."

    def __init__(self, errors: dict[str, list[str]], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class Unauthenticated(ServiceError):
    message = "Usuário não autenticado"


class NoClinicAssociation(ServiceError):
    message = "Usuário não associado a uma clínica"


class NotFound(ServiceError):
    message = "Médico não encontrado"


class Forbidden(ServiceError):
    # Same wording as NotFound so other clinics' doctors cannot be probed.
    message = "Médico não encontrado"


class PersistenceError(ServiceError):
    message = "Não foi possível salvar as alterações. Tente novamente."


class ClinicAlreadyAssigned(ServiceError):
    message = "Usuário já está associado a uma clínica"

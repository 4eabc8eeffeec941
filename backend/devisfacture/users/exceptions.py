"""Exceptions spécifiques au module User."""
from devisfacture.core.exceptions import ConflictError


class DuplicateUserEmailException(ConflictError):
    def __init__(self, email: str):
        super().__init__(f"Un compte existe déjà pour l'email {email}.")
        self.email = email

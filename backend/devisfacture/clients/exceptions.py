"""Exceptions spécifiques au module Client."""
from devisfacture.core.exceptions import ConflictError, NotFoundError


class ClientNotFoundException(NotFoundError):
    def __init__(self, client_id: int):
        super().__init__(f"Client avec ID {client_id} non trouvé.")
        self.client_id = client_id


class ClientInUseException(ConflictError):
    def __init__(self, client_id: int):
        super().__init__("Ce client est référencé par des devis ou des factures et ne peut pas être supprimé.")
        self.client_id = client_id

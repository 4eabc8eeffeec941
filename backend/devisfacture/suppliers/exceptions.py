from devisfacture.core.exceptions import ConflictError, NotFoundError


class SupplierNotFoundException(NotFoundError):
    def __init__(self, supplier_id: int):
        super().__init__(f"Fournisseur avec ID {supplier_id} non trouvé.")
        self.supplier_id = supplier_id


class SupplierInUseException(ConflictError):
    def __init__(self, supplier_id: int):
        super().__init__("Ce fournisseur est référencé par des produits ou des mouvements de stock et ne peut pas être supprimé.")
        self.supplier_id = supplier_id

"""Exceptions spécifiques au module Product."""
from devisfacture.core.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError


class ProductNotFoundException(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"Produit avec ID {product_id} non trouvé.")
        self.product_id = product_id


class StandardProductReadOnlyException(InvalidStateError):
    def __init__(self, product_id: int):
        super().__init__("Les produits du catalogue standard ne peuvent pas être modifiés.")
        self.product_id = product_id


class DuplicateProductReferenceException(ConflictError):
    def __init__(self, reference: str):
        super().__init__(f"Référence déjà utilisée : {reference}.")
        self.reference = reference


class ProductImportException(ValidationError):
    """Fichier d'import illisible ou mal structuré (aucune ligne n'est importée)."""

from fastapi import status

from devisfacture.core.exceptions import DomainException, NotFoundError, ValidationError


class InvalidPDFRequestException(ValidationError):
    def __init__(self, message: str = "Paramètres invalides."):
        super().__init__(message)


class OriginNotAllowedException(DomainException):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, origin: str):
        super().__init__("Origine non autorisée.")
        self.origin = origin


class DocumentNotFoundException(NotFoundError):
    def __init__(self, doc_type: str, doc_id: int):
        super().__init__("Document introuvable.")
        self.doc_type = doc_type
        self.doc_id = doc_id


class PDFGenerationException(DomainException):
    """Erreur ReportLab pendant la construction du document."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.original_exception = original_exception

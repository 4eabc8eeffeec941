import abc

from devisfacture.pdf.content import DocumentContent


class AbstractPDFGenerator(abc.ABC):
    """Interface abstraite d'un moteur de rendu PDF."""

    @abc.abstractmethod
    async def generate_document_pdf(self, content: DocumentContent) -> bytes:
        """Rend un devis ou une facture et retourne les octets du PDF."""
        raise NotImplementedError

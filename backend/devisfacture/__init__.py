"""Backend devis / factures pour artisans."""

__version__ = "1.0.0"

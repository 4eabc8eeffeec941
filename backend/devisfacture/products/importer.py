"""
Lecture des fichiers CSV d'import du catalogue produits.

Format attendu : séparateur `;`, première ligne d'en-têtes (insensible à la casse,
BOM toléré), colonnes obligatoires `designation`, `reference`, `prix_ht`, `tva`
et `unite`. Les colonnes `marge`, `fournisseur`, `stock`, `statut` et `categorie`
sont facultatives ; absentes, elles ne modifient pas les produits existants.

Chaque ligne est contrôlée séparément : une ligne invalide est signalée avec ses
erreurs sans bloquer les autres. Les valeurs retenues sont ensuite validées par
les schémas `ProductCreate` / `ProductUpdate`.
"""
import csv
import io
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError as SchemaValidationError

from devisfacture.pricing.calculations import is_allowed_tax_rate
from devisfacture.products.exceptions import ProductImportException
from devisfacture.products.models import ProductCreate, ProductUpdate, normalize_reference

CSV_DELIMITER = ";"
CSV_COLUMNS = ["designation", "reference", "prix_ht", "tva", "unite", "marge", "fournisseur", "stock", "statut", "categorie"]
REQUIRED_COLUMNS = ["designation", "reference", "prix_ht", "tva", "unite"]
CSV_HEADER = CSV_DELIMITER.join(CSV_COLUMNS) + "\n"
CSV_TEMPLATE = CSV_HEADER + "Exemple produit;REF-001;49.90;20;unite;10;Fournisseur A;5;actif;Divers\n"


@dataclass
class ParsedProductRow:
    line_number: int
    reference: Optional[str]
    values: Dict[str, Any] = field(default_factory=dict)
    supplier_name: Optional[str] = None
    stock: Optional[Decimal] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ParsedProductFile:
    columns: Set[str]
    rows: List[ParsedProductRow]

    def has_column(self, column: str) -> bool:
        return column in self.columns


def parse_number(raw: str) -> Optional[Decimal]:
    """Nombre au format français ou anglais (`1 234,50` ou `1234.50`), None si illisible."""
    cleaned = "".join(raw.split()).replace(",", ".")
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def decode_csv(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ProductImportException("Le fichier doit être encodé en UTF-8.")


def _schema_errors(exc: SchemaValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return messages


def _parse_row(line_number: int, record: Dict[str, str], columns: Set[str]) -> ParsedProductRow:
    def value_of(column: str) -> str:
        return (record.get(column) or "").strip()

    row = ParsedProductRow(line_number=line_number, reference=normalize_reference(value_of("reference")))

    designation = value_of("designation")
    if not designation:
        row.errors.append("designation: obligatoire")
    if row.reference is None:
        row.errors.append("reference: obligatoire")

    price = parse_number(value_of("prix_ht"))
    if price is None or price < 0:
        row.errors.append("prix_ht: invalide")

    tax_rate = parse_number(value_of("tva"))
    if tax_rate is None or not is_allowed_tax_rate(tax_rate):
        row.errors.append("tva: invalide (0, 5.5, 10, 20)")

    unit = value_of("unite")
    if not unit:
        row.errors.append("unite: obligatoire")

    row.values = {
        "designation": designation,
        "reference": row.reference,
        "unit": unit,
        "default_price_ht": price,
        "default_tax_rate": tax_rate,
    }

    if "marge" in columns:
        # Marge illisible : on garde la valeur par défaut
        margin = parse_number(value_of("marge"))
        if margin is not None:
            row.values["default_margin"] = margin

    if "stock" in columns:
        row.stock = parse_number(value_of("stock"))
        if row.stock is None or row.stock < 0:
            row.errors.append("stock: invalide")

    if "statut" in columns:
        status = value_of("statut").lower()
        if status in ("", "actif"):
            row.values["active"] = True
        elif status == "inactif":
            row.values["active"] = False
        else:
            row.errors.append("statut: invalide (actif | inactif)")

    if "categorie" in columns:
        row.values["category"] = value_of("categorie") or None

    if "fournisseur" in columns:
        row.supplier_name = value_of("fournisseur") or None

    if row.is_valid:
        # Contrôles restants (longueurs, bornes) portés par le schéma de création
        try:
            ProductCreate.model_validate(row.values)
        except SchemaValidationError as e:
            row.errors.extend(_schema_errors(e))
    return row


def parse_product_csv(text: str) -> ParsedProductFile:
    """Analyse le contenu d'un fichier CSV produits.

    Lève `ProductImportException` si le fichier lui-même est inexploitable
    (vide, sans ligne de données, colonnes obligatoires absentes).
    """
    if not text.strip():
        raise ProductImportException("Le fichier CSV est vide.")

    reader = csv.reader(io.StringIO(text), delimiter=CSV_DELIMITER)
    lines = [(reader.line_num, cells) for cells in reader if any(cell.strip() for cell in cells)]
    if len(lines) < 2:
        raise ProductImportException("Le fichier doit contenir au moins une ligne de données.")

    headers = [header.strip().lstrip("\ufeff").lower() for header in lines[0][1]]
    columns = set(headers)
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        raise ProductImportException(f"Colonnes obligatoires manquantes: {', '.join(missing)}")

    rows = []
    for line_number, cells in lines[1:]:
        record = dict(zip(headers, cells))
        rows.append(_parse_row(line_number, record, columns))
    return ParsedProductFile(columns=columns, rows=rows)


def build_create(row: ParsedProductRow, supplier_id: Optional[int]) -> ProductCreate:
    """Produit créé par import : stock suivi, minimum d'alerte à 1."""
    return ProductCreate.model_validate({
        **row.values,
        "default_supplier_id": supplier_id,
        "stock_tracked": True,
        "minimum_stock": Decimal("1"),
        "initial_stock": row.stock or Decimal("0"),
    })


def build_update(row: ParsedProductRow, parsed: ParsedProductFile, supplier_id: Optional[int]) -> ProductUpdate:
    """Mise à jour limitée aux colonnes présentes dans le fichier."""
    changes = dict(row.values)
    if parsed.has_column("fournisseur"):
        changes["default_supplier_id"] = supplier_id
    if parsed.has_column("stock"):
        changes["stock_tracked"] = True
    return ProductUpdate.model_validate(changes)

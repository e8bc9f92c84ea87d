"""
Mapeo declarativo clave canonica -> field Airtable para la tabla de listings.

Este es el punto recomendado para tener "control total" sobre:
- qué fields de Airtable se sincronizan y con qué tipo
- restricciones (min/max, largo, patrón, valores permitidos)
- dirección de sync (los calculados viajan solo local -> Airtable)

Los sinónimos de nombres de fields son datos de configuración de ejemplo:
se pueden reemplazar/extender con un JSON (FIELD_SYNONYMS_FILE).

Este módulo no realiza I/O salvo la carga opcional de ese JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from app.shared.constants.sync_constants import FieldType, SyncDirection

from .types import FieldConstraints, FieldMapping


_STATUS_VALUES = ("active", "pending", "sold", "withdrawn", "expired")
_PROPERTY_TYPES = ("Single Family", "Condo", "Townhouse", "Multi-Family", "Land", "Commercial")


LISTING_FIELD_MAPPINGS: list[FieldMapping] = [
    # Identidad y contenido
    FieldMapping("title", "Property Name", FieldType.STRING, required=True,
                 constraints=FieldConstraints(max_length=200),
                 description="Property title/name (required)", remote_type="singleLineText"),
    FieldMapping("description", "Property Description", FieldType.TEXT,
                 constraints=FieldConstraints(max_length=5000),
                 description="Full property description", remote_type="multilineText"),
    FieldMapping("short_description", "Short Description", FieldType.TEXT,
                 constraints=FieldConstraints(max_length=500), remote_type="multilineText"),
    FieldMapping("mls_number", "MLS Number", FieldType.STRING, remote_type="singleLineText"),
    FieldMapping("status", "Listing Status", FieldType.ENUM,
                 constraints=FieldConstraints(allowed_values=_STATUS_VALUES),
                 description="Listing status", remote_type="singleSelect"),
    FieldMapping("property_type", "Property Type", FieldType.ENUM,
                 constraints=FieldConstraints(allowed_values=_PROPERTY_TYPES),
                 remote_type="singleSelect"),
    FieldMapping("listing_date", "Listing Date", FieldType.DATE, remote_type="date"),

    # Dirección
    FieldMapping("address", "Street Address", FieldType.STRING,
                 description="Full street address", remote_type="singleLineText"),
    FieldMapping("city", "City", FieldType.STRING, description="City name", remote_type="singleLineText"),
    FieldMapping("state", "State", FieldType.STRING, constraints=FieldConstraints(max_length=2),
                 description="State abbreviation (2 characters)", remote_type="singleLineText"),
    FieldMapping("zip_code", "ZIP Code", FieldType.STRING,
                 constraints=FieldConstraints(pattern=r"^\d{5}(-\d{4})?$"),
                 description="ZIP code (format: 12345 or 12345-6789)", remote_type="singleLineText"),
    FieldMapping("latitude", "Latitude", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=-90, max=90), remote_type="number"),
    FieldMapping("longitude", "Longitude", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=-180, max=180), remote_type="number"),
    FieldMapping("school_district", "School District", FieldType.STRING, remote_type="singleLineText"),

    # Precio y finanzas
    FieldMapping("price", "List Price", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0, max=50_000_000),
                 description="Property listing price", remote_type="currency"),
    FieldMapping("property_tax_rate", "Property Tax Rate", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0, max=10), remote_type="percent"),
    FieldMapping("estimated_annual_taxes", "Annual Property Taxes", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0), remote_type="currency"),
    FieldMapping("estimated_monthly_insurance", "Monthly Insurance", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0), remote_type="currency"),
    FieldMapping("hoa_monthly", "HOA Monthly", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0), remote_type="currency"),
    FieldMapping("estimated_down_payment", "Down Payment Percentage", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0, max=100), remote_type="percent"),
    FieldMapping("estimated_interest_rate", "Interest Rate", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0, max=20), remote_type="percent"),

    # Detalles de la propiedad
    FieldMapping("bedrooms", "Bedrooms", FieldType.INTEGER,
                 constraints=FieldConstraints(min=0, max=20),
                 description="Number of bedrooms", remote_type="number"),
    FieldMapping("bathrooms", "Bathrooms", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0, max=20),
                 description="Number of bathrooms", remote_type="number"),
    FieldMapping("square_footage", "Square Footage", FieldType.INTEGER,
                 constraints=FieldConstraints(min=0, max=50_000), remote_type="number"),
    FieldMapping("lot_size_sqft", "Lot Size Sqft", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0), remote_type="number"),
    FieldMapping("lot_size_acres", "Lot Size Acres", FieldType.DECIMAL,
                 constraints=FieldConstraints(min=0), remote_type="number"),
    FieldMapping("year_built", "Year Built", FieldType.INTEGER,
                 constraints=FieldConstraints(min=1800, max=2030), remote_type="number"),
    FieldMapping("stories", "Stories", FieldType.INTEGER,
                 constraints=FieldConstraints(min=1, max=10), remote_type="number"),
    FieldMapping("garage_spaces", "Garage Spaces", FieldType.INTEGER,
                 constraints=FieldConstraints(min=0, max=10), remote_type="number"),

    # Características
    FieldMapping("garage", "Has Garage", FieldType.BOOLEAN, remote_type="checkbox"),
    FieldMapping("pool", "Has Pool", FieldType.BOOLEAN, remote_type="checkbox"),
    FieldMapping("fireplace", "Has Fireplace", FieldType.BOOLEAN, remote_type="checkbox"),
    FieldMapping("basement", "Has Basement", FieldType.BOOLEAN, remote_type="checkbox"),

    # Media
    FieldMapping("main_photo", "Main Photo", FieldType.ATTACHMENT, remote_type="multipleAttachments"),
    FieldMapping("photo_gallery", "Photo Gallery", FieldType.ATTACHMENT_LIST, remote_type="multipleAttachments"),
    FieldMapping("floor_plans", "Floor Plans", FieldType.ATTACHMENT_LIST, remote_type="multipleAttachments"),
    FieldMapping("virtual_tour_url", "Virtual Tour URL", FieldType.URL, remote_type="url"),

    # Calculados en la base local (solo local -> Airtable)
    FieldMapping("price_per_sqft", "Price Per SqFt", FieldType.DECIMAL,
                 direction=SyncDirection.PUSH_ONLY,
                 description="price / square_footage", remote_type="currency"),
    FieldMapping("days_on_market", "Days on Market", FieldType.INTEGER,
                 direction=SyncDirection.PUSH_ONLY,
                 description="today - listing_date", remote_type="number"),
]


DEFAULT_FIELD_SYNONYMS: dict[str, list[str]] = {
    "Property Name": ["Title", "Name", "Property Title", "Listing Title", "Property"],
    "Street Address": ["Address", "Street", "Property Address", "Full Address"],
    "List Price": ["Price", "Listing Price", "Property Price", "Cost", "Amount"],
    "Bedrooms": ["Beds", "Bedroom", "Bed", "BR", "Bed Count"],
    "Bathrooms": ["Baths", "Bathroom", "Bath", "BA", "Bath Count"],
    "Square Footage": ["Sqft", "Sq Ft", "Square Feet", "Size", "Area", "Living Area"],
    "Property Type": ["Type", "Property Category", "Category", "Building Type"],
    "Listing Status": ["Status", "Property Status", "Availability"],
    "Property Description": ["Description", "Details", "Notes", "Comments", "Summary"],
    "Year Built": ["Built", "Year", "Construction Year", "Built Year"],
    "Lot Size Sqft": ["Lot Size", "Lot", "Land Size", "Plot Size"],
}


def build_field_mapping_table(mappings: Iterable[FieldMapping]) -> list[FieldMapping]:
    """
    De-duplica por clave canonica (gana la primera definicion).

    Las tablas de mapeo editadas a mano suelen repetir entradas; replicarlas
    solo duplicaria trabajo en cada registro.
    """
    table: dict[str, FieldMapping] = {}
    for mapping in mappings:
        if mapping.key in table:
            logger.warning(f"Mapeo duplicado para '{mapping.key}' ignorado ({mapping.airtable_field})")
            continue
        table[mapping.key] = mapping
    return list(table.values())


def load_field_synonyms(path: Optional[str] = None) -> dict[str, list[str]]:
    """
    Retorna la tabla de sinonimos.

    Si path apunta a un JSON {"Nombre esperado": ["sinonimo", ...]}, sus
    entradas reemplazan a las de codigo para esas claves.
    """
    synonyms = {name: list(values) for name, values in DEFAULT_FIELD_SYNONYMS.items()}
    if not path:
        return synonyms

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"El archivo de sinonimos {path} debe contener un objeto JSON")
    for name, values in data.items():
        synonyms[str(name)] = [str(v) for v in (values or [])]
    logger.info(f"Sinonimos de campos cargados desde {path} ({len(data)} entradas)")
    return synonyms


def get_listing_field_mappings() -> list[FieldMapping]:
    """Tabla de mapeo por defecto, ya de-duplicada."""
    return build_field_mapping_table(LISTING_FIELD_MAPPINGS)


def mapping_by_key(mappings: Iterable[FieldMapping]) -> dict[str, FieldMapping]:
    return {m.key: m for m in mappings}


def build_table_template(mappings: Iterable[FieldMapping], table_name: str = "Listings") -> dict[str, Any]:
    """
    Describe la estructura de tabla Airtable esperada por el sync.

    Es solo descriptivo: Airtable no permite crear la tabla desde aquí, el
    operador la configura a mano siguiendo estas instrucciones.
    """
    mappings = list(mappings)
    fields: list[dict[str, Any]] = []
    for m in mappings:
        entry: dict[str, Any] = {
            "name": m.airtable_field,
            "type": m.remote_type or _default_remote_type(m.field_type),
            "canonical_key": m.key,
            "description": m.description or m.key.replace("_", " ").capitalize(),
            "required": m.required,
            "direction": m.direction.value,
        }
        options = _template_options(m)
        if options:
            entry["options"] = options
        fields.append(entry)

    required = [m.airtable_field for m in mappings if m.required]
    return {
        "table_name": table_name,
        "description": "Real estate listings table compatible with the listing sync service",
        "fields": fields,
        "instructions": [
            "Create a new base or open an existing base in Airtable",
            f"Add a new table or rename an existing table to: {table_name}",
            "Configure the fields according to the field list",
            "Copy your Base ID from the URL (starts with app...)",
            "Generate a personal access token with data.records and schema.bases scopes",
            "Set AIRTABLE_BASE_ID, AIRTABLE_TABLE_NAME and AIRTABLE_TOKEN for the sync service",
        ],
        "compatibility_notes": [
            f"Required fields: {', '.join(required) or 'none'}",
            "Field names are matched flexibly (case, separators and common synonyms)",
            "Single select options should match the allowed values listed in options.choices",
            "Calculated fields (push_only) are written by the sync service; do not edit them in Airtable",
        ],
    }


def _default_remote_type(field_type: FieldType) -> str:
    match field_type:
        case FieldType.INTEGER | FieldType.DECIMAL:
            return "number"
        case FieldType.STRING:
            return "singleLineText"
        case FieldType.TEXT:
            return "multilineText"
        case FieldType.BOOLEAN:
            return "checkbox"
        case FieldType.DATE:
            return "date"
        case FieldType.URL:
            return "url"
        case FieldType.ENUM:
            return "singleSelect"
        case FieldType.ATTACHMENT | FieldType.ATTACHMENT_LIST:
            return "multipleAttachments"


def _template_options(m: FieldMapping) -> dict[str, Any]:
    c = m.constraints
    options: dict[str, Any] = {}
    if m.field_type == FieldType.INTEGER:
        options["precision"] = 0
    elif m.field_type == FieldType.DECIMAL and m.remote_type != "currency":
        options["precision"] = 2
    if m.remote_type == "currency":
        options.update({"precision": 0, "symbol": "$"})
    if c.allowed_values:
        options["choices"] = list(c.allowed_values)
    if c.min is not None:
        options["min"] = c.min
    if c.max is not None:
        options["max"] = c.max
    if c.max_length is not None:
        options["max_length"] = c.max_length
    if c.pattern:
        options["pattern"] = c.pattern
    return options

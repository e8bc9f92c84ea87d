"""
Coerción y validación de valores Airtable -> valores canonicos tipados.

Regla general: un valor inválido nunca aborta el registro. Se reemplaza por
el default del tipo y se devuelve el motivo para que el caller lo registre
como SyncIssue(FIELD_VALIDATION).

Los adjuntos no se resuelven aquí (requieren I/O): ver media_importer.py.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from dateutil import parser as date_parser

from app.shared.constants.sync_constants import FieldType

from .types import FieldMapping


TRUTHY_STRINGS = frozenset({"true", "1", "yes", "on", "checked"})

_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")
_NUMERIC_RE = re.compile(r"[^0-9.\-]")


class InvalidFieldValue(ValueError):
    """Un valor no se pudo coercionar al tipo del mapeo."""


@dataclass(frozen=True)
class SanitizedValue:
    value: Any
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def default_for(field_type: FieldType) -> Any:
    """Valor por defecto de cada tipo (lo que queda tras un error de validación)."""
    match field_type:
        case FieldType.INTEGER:
            return 0
        case FieldType.DECIMAL:
            return 0.0
        case FieldType.BOOLEAN:
            return False
        case FieldType.ATTACHMENT:
            return None
        case FieldType.ATTACHMENT_LIST:
            return []
        case FieldType.STRING | FieldType.TEXT | FieldType.DATE | FieldType.URL | FieldType.ENUM:
            return ""


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


# ---------------------------------------------------------------------------
# Saneo de texto
# ---------------------------------------------------------------------------


def sanitize_text(value: str, multiline: bool = False) -> str:
    """
    Limpia texto libre antes de guardarlo: quita tags HTML y caracteres de
    control. En una sola línea colapsa todo el whitespace.
    """
    text = _TAG_RE.sub("", value)
    text = _CONTROL_RE.sub("", text)
    if multiline:
        lines = [_WHITESPACE_RE.sub(" ", line).strip() for line in text.replace("\r\n", "\n").split("\n")]
        return "\n".join(lines).strip()
    return _WHITESPACE_RE.sub(" ", text).strip()


def _flatten(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        parts = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("name") or item.get("filename") or item.get("url") or ""
            if not is_empty(item):
                parts.append(str(item))
        return ", ".join(parts)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# Coerción por tipo (una función por variante)
# ---------------------------------------------------------------------------


def _parse_number(raw: Any) -> float:
    if isinstance(raw, bool):
        return 1.0 if raw else 0.0
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            raise InvalidFieldValue(f"número no finito: {raw}")
        return float(raw)
    if isinstance(raw, (list, tuple)):
        if not raw:
            raise InvalidFieldValue("lista vacía")
        return _parse_number(raw[0])

    text = str(raw).strip()
    negative = text.startswith("-")
    cleaned = _NUMERIC_RE.sub("", text).replace("-", "")
    if "." in cleaned:
        head, _, tail = cleaned.partition(".")
        cleaned = f"{head}.{tail.replace('.', '')}"
    if not cleaned or cleaned == ".":
        raise InvalidFieldValue(f"'{raw}' no es numérico")
    number = float(cleaned)
    if not math.isfinite(number):
        raise InvalidFieldValue(f"'{raw}' excede el rango numérico")
    return -number if negative else number


def coerce_integer(raw: Any) -> int:
    return int(round(_parse_number(raw)))


def coerce_decimal(raw: Any) -> float:
    return _parse_number(raw)


def coerce_string(raw: Any) -> str:
    return sanitize_text(_flatten(raw))


def coerce_text(raw: Any) -> str:
    return sanitize_text(_flatten(raw), multiline=True)


def coerce_boolean(raw: Any) -> bool:
    # Checkbox Airtable: ausente/vacío = False; listas siguen la misma semantica
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    if isinstance(raw, (list, tuple)):
        return len(raw) > 0
    return str(raw).strip().lower() in TRUTHY_STRINGS


def coerce_date(raw: Any) -> str:
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    text = _flatten(raw).strip()
    try:
        return date_parser.parse(text).date().isoformat()
    except (ValueError, OverflowError) as e:
        raise InvalidFieldValue(f"fecha inválida '{text}'") from e


def coerce_url(raw: Any) -> str:
    if isinstance(raw, (list, tuple)):
        if not raw:
            return ""
        raw = raw[0]
        if isinstance(raw, dict):
            raw = raw.get("url", "")
    text = str(raw).strip()
    if not text:
        return ""
    if "://" not in text:
        text = f"https://{text}"
    parts = urlsplit(text)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidFieldValue(f"URL inválida '{text}'")
    return urlunsplit(
        (
            parts.scheme.lower(),
            parts.netloc,
            quote(parts.path, safe="/%:@!$&'()*+,;=-._~"),
            quote(parts.query, safe="=&%+/:@!$'()*,;-._~"),
            quote(parts.fragment, safe="%/:@!$&'()*+,;=-._~"),
        )
    )


def coerce_enum(raw: Any, allowed: tuple[str, ...]) -> tuple[str, bool]:
    """
    Retorna (valor, matched). Sin match cae al primer valor permitido.
    """
    text = coerce_string(raw)
    if not allowed:
        return text, True
    if text in allowed:
        return text, True
    lowered = text.lower()
    for candidate in allowed:
        if candidate.lower() == lowered:
            return candidate, True
    if lowered:
        for candidate in allowed:
            c = candidate.lower()
            if c in lowered or lowered in c:
                return candidate, True
    return allowed[0], False


# ---------------------------------------------------------------------------
# API pública
# ---------------------------------------------------------------------------


def sanitize_value(raw: Any, mapping: FieldMapping) -> SanitizedValue:
    """
    Coerciona `raw` al tipo de `mapping` y aplica sus restricciones.

    Nunca lanza: ante cualquier fallo retorna el default del tipo junto con
    el motivo. Los tipos adjunto deben resolverse antes vía MediaImporter.
    """
    field_type = mapping.field_type
    if is_empty(raw):
        return SanitizedValue(default_for(field_type))

    try:
        match field_type:
            case FieldType.INTEGER:
                value = coerce_integer(raw)
            case FieldType.DECIMAL:
                value = coerce_decimal(raw)
            case FieldType.STRING:
                value = coerce_string(raw)
            case FieldType.TEXT:
                value = coerce_text(raw)
            case FieldType.BOOLEAN:
                value = coerce_boolean(raw)
            case FieldType.DATE:
                value = coerce_date(raw)
            case FieldType.URL:
                value = coerce_url(raw)
            case FieldType.ENUM:
                value, matched = coerce_enum(raw, mapping.constraints.allowed_values)
                if not matched:
                    return SanitizedValue(
                        value,
                        f"'{_flatten(raw)}' no es un valor permitido; se usa '{value}'",
                    )
            case FieldType.ATTACHMENT | FieldType.ATTACHMENT_LIST:
                raise InvalidFieldValue("los adjuntos se importan con MediaImporter")
    except InvalidFieldValue as e:
        return SanitizedValue(default_for(field_type), str(e))

    violation = check_constraints(value, mapping)
    if violation:
        return SanitizedValue(default_for(field_type), violation)
    return SanitizedValue(value)


def check_constraints(value: Any, mapping: FieldMapping) -> Optional[str]:
    """Retorna el motivo de la primera restricción violada, o None."""
    c = mapping.constraints
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if c.min is not None and value < c.min:
            return f"{value} es menor que el mínimo {c.min}"
        if c.max is not None and value > c.max:
            return f"{value} es mayor que el máximo {c.max}"
    if isinstance(value, str) and value:
        if c.max_length is not None and len(value) > c.max_length:
            return f"largo {len(value)} supera el máximo {c.max_length}"
        if c.pattern and not re.match(c.pattern, value):
            return f"'{value}' no cumple el patrón {c.pattern}"
        if mapping.field_type == FieldType.ENUM and c.allowed_values and value not in c.allowed_values:
            return f"'{value}' no es un valor permitido"
    return None


def format_for_remote(value: Any, mapping: FieldMapping) -> Any:
    """
    Convierte un valor local al formato que espera Airtable.

    Versión conservadora del saneo: valores inválidos o vacíos retornan None
    y el caller omite el field del payload. Los adjuntos los arma el writer.
    """
    if is_empty(value) or mapping.is_attachment:
        return None

    sanitized = sanitize_value(value, mapping)
    if not sanitized.ok:
        return None
    result = sanitized.value

    match mapping.field_type:
        case FieldType.INTEGER | FieldType.DECIMAL:
            return result
        case FieldType.BOOLEAN:
            return bool(result)
        case FieldType.STRING | FieldType.TEXT | FieldType.DATE | FieldType.URL | FieldType.ENUM:
            return result or None
        case FieldType.ATTACHMENT | FieldType.ATTACHMENT_LIST:
            return None

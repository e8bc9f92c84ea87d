"""
Resolución flexible de nombres de fields de Airtable.

Los esquemas de Airtable los editan personas: renombran columnas, cambian
mayúsculas o usan sinónimos. Aquí se busca, para cada clave canonica, el
nombre que realmente aparece en un registro.

Funciones puras (sin I/O).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from .types import FieldMapping


_SEPARATORS_RE = re.compile(r"[\s_\-]+")


def _normalize(name: str) -> str:
    return _SEPARATORS_RE.sub("", name).lower()


def get_field_variations(field_name: str, synonyms: Mapping[str, Sequence[str]]) -> list[str]:
    """Sinonimos declarados + variantes de mayúsculas y separadores (sin duplicados)."""
    candidates: list[str] = list(synonyms.get(field_name, ()))
    candidates += [
        field_name.lower(),
        field_name.upper(),
        field_name.lower().title(),
        field_name.replace(" ", "_"),
        field_name.replace(" ", "-"),
        field_name.replace("_", " "),
        field_name.replace("-", " "),
    ]
    variations: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variations:
            variations.append(candidate)
    return variations


def resolve_field_name(
    expected: str,
    available: Sequence[str],
    synonyms: Optional[Mapping[str, Sequence[str]]] = None,
) -> Optional[str]:
    """
    Retorna el nombre presente que mejor corresponde a `expected`, o None.

    Prioridad:
    1) match exacto
    2) match case-insensitive
    3) sinonimos (case-insensitive)
    4) sinonimos/variantes con separadores normalizados (espacio/_/-)
    5) contencion de substring en cualquier dirección (sin separadores, lower)
    """
    if not expected or not available:
        return None
    return _close_match(expected, available, synonyms or {}) or _substring_match(expected, available)


def _close_match(expected: str, available: Sequence[str], synonyms: Mapping[str, Sequence[str]]) -> Optional[str]:
    if expected in available:
        return expected

    expected_lower = expected.lower()
    for name in available:
        if name.lower() == expected_lower:
            return name

    variations = get_field_variations(expected, synonyms)
    for variation in variations:
        variation_lower = variation.lower()
        for name in available:
            if name.lower() == variation_lower:
                return name

    normalized_variations = {_normalize(v) for v in variations}
    normalized_variations.discard("")
    for name in available:
        if _normalize(name) in normalized_variations:
            return name
    return None


def _substring_match(expected: str, available: Sequence[str]) -> Optional[str]:
    target = _normalize(expected)
    for name in available:
        candidate = _normalize(name)
        if not candidate:
            continue
        if target in candidate or candidate in target:
            return name

    return None


def resolve_field_names(
    mappings: Iterable[FieldMapping],
    available: Sequence[str],
    synonyms: Optional[Mapping[str, Sequence[str]]] = None,
) -> dict[str, str]:
    """
    clave canonica -> nombre presente, con cada nombre asignado a una sola clave.

    Primero se asignan los matches exactos y por sinonimo; la contencion de
    substring solo reparte los nombres que quedaron libres. Dentro de cada
    nivel gana el primer mapeo declarado.
    """
    mappings = list(mappings)
    synonyms = synonyms or {}
    names: dict[str, str] = {}

    for by_substring in (False, True):
        for mapping in mappings:
            if mapping.key in names or not mapping.airtable_field:
                continue
            free = [n for n in available if n not in names.values()]
            if not free:
                return names
            if by_substring:
                name = _substring_match(mapping.airtable_field, free)
            else:
                name = _close_match(mapping.airtable_field, free, synonyms)
            if name is not None:
                names[mapping.key] = name
    return names


@dataclass
class FieldResolutionReport:
    """
    Resultado de resolver todo el mapeo contra un registro.

    - resolved: clave canonica -> nombre presente en Airtable
    - unresolved: claves sin match
    - missing_required: subconjunto de unresolved marcado como requerido
    """

    resolved: dict[str, str] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_required

    def to_dict(self) -> dict:
        return {
            "resolved": dict(self.resolved),
            "unresolved": list(self.unresolved),
            "missing_required": list(self.missing_required),
        }


def resolve_mapping(
    mappings: Iterable[FieldMapping],
    available: Sequence[str],
    synonyms: Optional[Mapping[str, Sequence[str]]] = None,
) -> FieldResolutionReport:
    """Resuelve cada mapeo de pull contra los nombres de un registro."""
    report = FieldResolutionReport()
    pulled = [m for m in mappings if m.pulls]
    resolved = resolve_field_names(pulled, available, synonyms)
    for mapping in pulled:
        name = resolved.get(mapping.key)
        if name is None:
            report.unresolved.append(mapping.key)
            if mapping.required:
                report.missing_required.append(mapping.key)
        else:
            report.resolved[mapping.key] = name
    return report

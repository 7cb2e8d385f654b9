# market_radar/utils/country_codes.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import re

import pycountry


@dataclass(frozen=True)
class EntityConfig:
    """Static identifying record for one tracked country."""

    display_name: str
    primary_code: str      # World Bank country code (ISO2)
    secondary_code: str    # Eurostat geo code


# Eurostat deviates from ISO 3166 for two members.
_EUROSTAT_GEO_OVERRIDES: Dict[str, str] = {
    "GR": "EL",
    "GB": "UK",
}

# Countries the dashboard knows about, keyed by normalised name.
# name -> ISO2; the Eurostat geo is derived via to_eurostat_geo().
_BUILTIN: Dict[str, Dict[str, str]] = {
    "austria":         {"name": "Austria", "iso_alpha_2": "AT"},
    "belgium":         {"name": "Belgium", "iso_alpha_2": "BE"},
    "bulgaria":        {"name": "Bulgaria", "iso_alpha_2": "BG"},
    "croatia":         {"name": "Croatia", "iso_alpha_2": "HR"},
    "cyprus":          {"name": "Cyprus", "iso_alpha_2": "CY"},
    "czechia":         {"name": "Czechia", "iso_alpha_2": "CZ"},
    "czech republic":  {"name": "Czechia", "iso_alpha_2": "CZ"},
    "denmark":         {"name": "Denmark", "iso_alpha_2": "DK"},
    "estonia":         {"name": "Estonia", "iso_alpha_2": "EE"},
    "finland":         {"name": "Finland", "iso_alpha_2": "FI"},
    "france":          {"name": "France", "iso_alpha_2": "FR"},
    "germany":         {"name": "Germany", "iso_alpha_2": "DE"},
    "greece":          {"name": "Greece", "iso_alpha_2": "GR"},
    "hungary":         {"name": "Hungary", "iso_alpha_2": "HU"},
    "ireland":         {"name": "Ireland", "iso_alpha_2": "IE"},
    "italy":           {"name": "Italy", "iso_alpha_2": "IT"},
    "latvia":          {"name": "Latvia", "iso_alpha_2": "LV"},
    "lithuania":       {"name": "Lithuania", "iso_alpha_2": "LT"},
    "luxembourg":      {"name": "Luxembourg", "iso_alpha_2": "LU"},
    "malta":           {"name": "Malta", "iso_alpha_2": "MT"},
    "netherlands":     {"name": "Netherlands", "iso_alpha_2": "NL"},
    "poland":          {"name": "Poland", "iso_alpha_2": "PL"},
    "portugal":        {"name": "Portugal", "iso_alpha_2": "PT"},
    "romania":         {"name": "Romania", "iso_alpha_2": "RO"},
    "slovakia":        {"name": "Slovakia", "iso_alpha_2": "SK"},
    "slovenia":        {"name": "Slovenia", "iso_alpha_2": "SI"},
    "spain":           {"name": "Spain", "iso_alpha_2": "ES"},
    "sweden":          {"name": "Sweden", "iso_alpha_2": "SE"},
    "united kingdom":  {"name": "United Kingdom", "iso_alpha_2": "GB"},
    "uk":              {"name": "United Kingdom", "iso_alpha_2": "GB"},
    "norway":          {"name": "Norway", "iso_alpha_2": "NO"},
    "switzerland":     {"name": "Switzerland", "iso_alpha_2": "CH"},
}

DEFAULT_COUNTRY_CODES: Sequence[str] = ("DE", "FR", "IT", "ES", "NL")


def _norm(text: str) -> str:
    t = re.sub(r"[\u200b\s]+", " ", (text or "")).strip().lower()
    t = t.replace(".", "").replace("’", "'")
    return t


def to_eurostat_geo(iso2: str) -> str:
    iso2 = (iso2 or "").strip().upper()
    return _EUROSTAT_GEO_OVERRIDES.get(iso2, iso2)


def _entity(name: str, iso2: str) -> EntityConfig:
    return EntityConfig(display_name=name, primary_code=iso2, secondary_code=to_eurostat_geo(iso2))


def get_entity(country: str) -> Optional[EntityConfig]:
    """
    Resolve a country name or ISO2/ISO3 code to an EntityConfig.
    Returns None when the input cannot be resolved.
    """
    if not country or not country.strip():
        return None

    key = _norm(country)

    # 1) builtin quick map (names)
    row = _BUILTIN.get(key)
    if row:
        return _entity(row["name"], row["iso_alpha_2"])

    # 2) builtin by ISO2 code, including Eurostat's own spellings
    code = country.strip().upper()
    reverse_geo = {v: k for k, v in _EUROSTAT_GEO_OVERRIDES.items()}
    code = reverse_geo.get(code, code)
    for row in _BUILTIN.values():
        if row["iso_alpha_2"] == code:
            return _entity(row["name"], code)

    # 3) pycountry lookup (names, ISO3, common aliases)
    try:
        m = pycountry.countries.lookup(country)
    except LookupError:
        return None
    iso2 = getattr(m, "alpha_2", None)
    if not iso2:
        return None
    name = getattr(m, "common_name", None) or getattr(m, "name", country)
    return _entity(name, iso2)


def default_entities() -> List[EntityConfig]:
    out: List[EntityConfig] = []
    for code in DEFAULT_COUNTRY_CODES:
        ent = get_entity(code)
        if ent is not None:
            out.append(ent)
    return out


def resolve_entities(codes: Optional[Sequence[str]]) -> List[EntityConfig]:
    """Resolve a list of names/codes; unknown entries are skipped, order preserved."""
    if not codes:
        return default_entities()
    out: List[EntityConfig] = []
    seen = set()
    for raw in codes:
        ent = get_entity(raw)
        if ent is None or ent.primary_code in seen:
            continue
        seen.add(ent.primary_code)
        out.append(ent)
    return out


def known_entities() -> List[EntityConfig]:
    by_code: Dict[str, EntityConfig] = {}
    for row in _BUILTIN.values():
        by_code.setdefault(row["iso_alpha_2"], _entity(row["name"], row["iso_alpha_2"]))
    return sorted(by_code.values(), key=lambda e: e.display_name)

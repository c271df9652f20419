"""Catalog of medical specialties offered in the doctor form."""

from __future__ import annotations

from typing import Final

MEDICAL_SPECIALTIES: Final[list[tuple[str, str]]] = [
    ("alergologia", "Alergologia"),
    ("anestesiologia", "Anestesiologia"),
    ("angiologia", "Angiologia"),
    ("cardiologia", "Cardiologia"),
    ("cirurgia_geral", "Cirurgia Geral"),
    ("cirurgia_plastica", "Cirurgia Plástica"),
    ("clinica_medica", "Clínica Médica"),
    ("dermatologia", "Dermatologia"),
    ("endocrinologia", "Endocrinologia"),
    ("gastroenterologia", "Gastroenterologia"),
    ("geriatria", "Geriatria"),
    ("ginecologia_obstetricia", "Ginecologia e Obstetrícia"),
    ("hematologia", "Hematologia"),
    ("infectologia", "Infectologia"),
    ("mastologia", "Mastologia"),
    ("medicina_esportiva", "Medicina Esportiva"),
    ("medicina_familia", "Medicina de Família"),
    ("nefrologia", "Nefrologia"),
    ("neurologia", "Neurologia"),
    ("nutrologia", "Nutrologia"),
    ("oftalmologia", "Oftalmologia"),
    ("oncologia", "Oncologia"),
    ("ortopedia", "Ortopedia e Traumatologia"),
    ("otorrinolaringologia", "Otorrinolaringologia"),
    ("pediatria", "Pediatria"),
    ("pneumologia", "Pneumologia"),
    ("psiquiatria", "Psiquiatria"),
    ("radiologia", "Radiologia"),
    ("reumatologia", "Reumatologia"),
    ("urologia", "Urologia"),
]

_LABELS: Final[dict[str, str]] = dict(MEDICAL_SPECIALTIES)


def is_known_specialty(code: str) -> bool:
    return code in _LABELS


def specialty_label(code: str) -> str:
    """Return the display label for a specialty, or the code when unknown."""

    return _LABELS.get(code, code)


def specialty_options() -> list[dict[str, str]]:
    return [{"value": value, "label": label} for value, label in MEDICAL_SPECIALTIES]

"""
🔧 NORMALIZADOR DE TEXTO
========================

Las zonas se comparan como texto entre clientes y repartos, así que se
guardan normalizadas:
- Accent folding (elimina acentos)
- Espacios colapsados
- Mayúsculas

    "  zona  Norte " → "ZONA NORTE"
    "Centro-Sur"     → "CENTRO-SUR"
    "Periferia Este" == "periferia  este" (tras normalizar)
"""

import unicodedata
import re


def _fold_accents(s: str) -> str:
    """
    Elimina acentos usando Unicode normalization.
    'Añelo Oeste' → 'anelo oeste'
    """
    return ''.join(
        c for c in unicodedata.normalize('NFD', s.lower())
        if unicodedata.category(c) != 'Mn'
    )


def normalize_zone(zona: str) -> str:
    """
    Normaliza el nombre de una zona de reparto.

    Args:
        zona: Zona tal como la escribió el usuario

    Returns:
        Zona normalizada (sin acentos, espacios simples, mayúsculas)
    """
    folded = _fold_accents(zona or "")
    return re.sub(r"\s+", " ", folded).strip().upper()

"""
Normalização de rótulos livres (naturezas, grupos, CRBMs) para comparação:
"AÇÕES PREVENTIVAS" e "Ações  preventivas" viram a mesma chave.
"""
import re
import unicodedata
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")


def _fold(text: Optional[str]) -> str:
    """Remove acentos (NFD sem marcas combinantes) e colapsa espaços."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def normalize(text: Optional[str]) -> str:
    """Chave de comparação: sem acento, espaços colapsados, minúsculas. None -> ""."""
    return _fold(_fold(text).lower())


def normalize_display(text: Optional[str]) -> str:
    """Mesma chave em maiúsculas (rótulos exibidos, ex.: categorias de óbitos)."""
    return _fold(_fold(text).upper())


def sort_key(text: Optional[str]):
    """Ordenação alfabética pt-BR: ignora acento/caixa, desempata pelo texto original."""
    return (normalize(text), text or "")


def slug_token(text: Optional[str]) -> Optional[str]:
    """Token ASCII maiúsculo para nomes gerados (ex.: prefixo de viatura)."""
    folded = _fold(text)
    if not folded:
        return None
    token = re.sub(r"[^a-zA-Z0-9-]", "-", folded)
    token = re.sub(r"-+", "-", token).strip("-").upper()
    return token or None

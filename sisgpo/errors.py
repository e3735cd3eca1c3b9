"""Erros de domínio das escalas e do espelho."""
from typing import Any, Dict, Optional


class SisgpoError(Exception):
    """Base dos erros de domínio; main.py traduz para HTTP."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ConflictError(SisgpoError):
    """
    Violação de unicidade/sobreposição. Mesmo formato quer a checagem da aplicação
    tenha pego, quer a constraint do banco (corrida perdida).
    """

    status_code = 409

    def __init__(self, kind: str, message: str, conflicting_entity_id: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.conflicting_entity_id = conflicting_entity_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "kind": self.kind,
            "conflicting_entity_id": self.conflicting_entity_id,
        }


class NotFoundError(SisgpoError):
    status_code = 404

    def __init__(self, entity_type: str, id: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity_type} {id} não encontrado(a).")
        self.entity_type = entity_type
        self.id = id

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "entity_type": self.entity_type, "id": self.id}


class ValidationError(SisgpoError):
    status_code = 422

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "field": self.field}


class TaxonomyError(Exception):
    """Layout fixo do espelho malformado (erro de configuração, não de dados)."""

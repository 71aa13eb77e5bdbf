"""
Exceptions raised by the portal's domain layer.
"""


class CatalogueValidationError(ValueError):
    """Rejected form input; nothing was changed."""


class RecordNotFoundError(LookupError):
    """Unknown article, order or carton id."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} '{record_id}' not found")

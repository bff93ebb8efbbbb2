from __future__ import annotations


class InvalidQueryError(ValueError):
    """Raised when a query descriptor cannot be evaluated as given."""


class RecordStoreError(RuntimeError):
    """Raised when the record store cannot be read from or written to."""


class UnknownPresetError(KeyError):
    def __init__(self, preset_id: str) -> None:
        super().__init__(preset_id)
        self.preset_id = preset_id

    def __str__(self) -> str:
        return f"Unknown preset '{self.preset_id}'"

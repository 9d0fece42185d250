"""
src/errors.py
─────────────
Exception taxonomy.

All errors are raised before any state change, so a caller that catches one
still holds the snapshot it started with.
"""


class LifecycleError(Exception):
    """Base class for rejected fleet operations."""


class PartNotFoundError(LifecycleError):
    def __init__(self, part_id: str):
        super().__init__(f"Installed part '{part_id}' not found")
        self.part_id = part_id


class MachineNotFoundError(LifecycleError):
    def __init__(self, machine_id: str):
        super().__init__(f"Machine '{machine_id}' not found")
        self.machine_id = machine_id


class DefinitionNotFoundError(LifecycleError):
    def __init__(self, definition_id: str):
        super().__init__(f"Part definition '{definition_id}' not found")
        self.definition_id = definition_id


class DefinitionInUseError(LifecycleError):
    def __init__(self, definition_id: str, part_ids: list[str]):
        super().__init__(
            f"Part definition '{definition_id}' is used by {len(part_ids)} installed "
            f"part(s); remove or replace them first"
        )
        self.definition_id = definition_id
        self.part_ids = part_ids


class DuplicateSerialError(LifecycleError):
    def __init__(self, serial: str, existing_part_id: str):
        super().__init__(f"Serial number '{serial}' is already installed (part '{existing_part_id}')")
        self.serial = serial
        self.existing_part_id = existing_part_id


class InvalidUpdateError(LifecycleError):
    """Rejected field override on an existing entity."""


class ImportFormatError(ValueError):
    """CSV batch text that cannot be imported at all (empty, header only)."""


class BackupFormatError(ValueError):
    """Backup JSON with the wrong shape or invalid entities."""

"""Exceptions raised by the IEP minute tracker."""


class IEPError(Exception):
    """Base class for tracker errors."""


class SessionValidationError(IEPError):
    """A log submission was rejected; ``errors`` holds every reason."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class StudentValidationError(IEPError):
    pass


class BackupFormatError(IEPError):
    pass


class StoreError(IEPError):
    pass


class SyncError(IEPError):
    pass

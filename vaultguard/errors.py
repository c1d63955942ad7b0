class VaultGuardError(Exception):
    pass


class ValidationError(VaultGuardError, ValueError):
    """User input rejected before any network call."""


class StaleSnapshotError(ValidationError):
    def __init__(self, stream_id, epoch, current_epoch, stream_count, message=None):
        self.stream_id = stream_id
        self.epoch = epoch
        self.current_epoch = current_epoch
        self.stream_count = stream_count
        if message is None and epoch is not None and epoch != current_epoch:
            message = (f"Stream {stream_id} was selected from snapshot epoch {epoch}, "
                       f"current epoch is {current_epoch}; refresh and select again")
        elif message is None:
            message = (f"Stream {stream_id} is not present in the current snapshot "
                       f"({stream_count} streams)")
        super().__init__(message)


class EncryptionUnavailableError(VaultGuardError):
    def __init__(self, mode, message=None):
        self.mode = mode
        if message is None and mode:
            message = f"Unknown encryption mode {mode!r}; use 'placeholder' or 'remote'"
        elif message is None:
            message = ("No encryption backend configured. Set VAULTGUARD_ENCRYPTION_MODE "
                       "to 'remote' (with VAULTGUARD_ENCRYPTION_URL) or explicitly to "
                       "'placeholder' for unencrypted demo payloads")
        super().__init__(message)


class EncryptionError(VaultGuardError):
    pass


class ReadShapeError(VaultGuardError):
    def __init__(self, operation, detail):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Malformed {operation} result: {detail}")


class StaleBatchError(VaultGuardError):
    def __init__(self, section, expected, observed):
        self.section = section
        self.expected = expected
        self.observed = observed
        super().__init__(f"{section} count changed from {expected} to {observed} during batch read")


class VaultWriteError(VaultGuardError, RuntimeError):
    def __init__(self, action, message, tx_hash=None):
        self.action = action
        self.tx_hash = tx_hash
        super().__init__(f"{action} failed: {message}")

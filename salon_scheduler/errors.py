# salon_scheduler/errors.py


class StorageError(Exception):
    """Raised by a ledger backing when the persistence layer fails.

    Wraps the underlying driver/ORM exception (available as ``__cause__``).
    Scheduling code does not interpret or retry it.
    """

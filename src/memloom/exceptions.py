"""
Memory store exception classes.

Custom exceptions keep error handling explicit at the call site.
"""


class MemloomError(Exception):
    """Base exception for the memory store."""

    pass


class ValidationError(MemloomError):
    """Raised when an operation is called without the arguments it requires."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class MemoryNotFoundError(MemloomError):
    """Memory record not found in the vector store."""

    def __init__(self, memory_id: str):
        self.memory_id = memory_id
        super().__init__(f"Memory with ID {memory_id} not found")


class StorageError(MemloomError):
    """Storage backend error."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)

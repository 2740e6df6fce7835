"""
Typed exception hierarchy for the inventory audit kernel.

Every error has a typed class (catch by type, not by message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
(not just a message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- IngestionError
    |   +-- StructuralImportError
    |   +-- SourceReadError
    |
    +-- LookupFailedError
    |   +-- LocationNotFoundError
    |   +-- ReferenceNotFoundError
    |   +-- WorkerNotFoundError
    |
    +-- RoundError
    |   +-- InvalidRoundError
    |   +-- RoundNotOpenError
    |   +-- ReferenceClosedError
    |   +-- WorkerNotEligibleError
    |   +-- InvalidQuantityError
    |   +-- InvalidWorkerError
    |
    +-- IdentityError
    |   +-- UnknownRoleError
    |   +-- StaleIdentityDiscard
    |
    +-- FetchError
    |
    +-- ImmutabilityViolationError

===============================================================================
HANDLING PATTERNS
===============================================================================

Row-level import problems are NOT exceptions. Parsers collect them as
``RowValidationError`` / ``RowValidationWarning`` values and return them in
the parse result. ``StructuralImportError`` is only raised by the import
service when a caller asks for a strict import.

``FetchError`` is raised by read sources and caught per unit of work by the
stats aggregator (one round degrades to zeros, siblings are unaffected).

``StaleIdentityDiscard`` never reaches a user: the cache guard raises it at
commit time and swallows it at the fetch boundary after logging.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Ingestion


class IngestionError(InventoryKernelError):
    """Base exception for spreadsheet ingestion errors."""

    code: str = "INGESTION_ERROR"


class StructuralImportError(IngestionError):
    """A required column is missing; the whole batch is rejected."""

    code: str = "STRUCTURAL_IMPORT_ERROR"

    def __init__(self, variant: str, messages: list[str]):
        self.variant = variant
        self.messages = messages
        super().__init__(
            f"{variant} import rejected: {'; '.join(messages)}"
        )


class SourceReadError(IngestionError):
    """The source file could not be read as a spreadsheet."""

    code: str = "SOURCE_READ_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot read {source}: {reason}")


# Lookups


class LookupFailedError(InventoryKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class LocationNotFoundError(LookupFailedError):
    """Location with given ID was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"Location not found: {location_id}")


class ReferenceNotFoundError(LookupFailedError):
    """Reference (referencia) was not found."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, referencia: str):
        self.referencia = referencia
        super().__init__(f"Reference not found: {referencia}")


class WorkerNotFoundError(LookupFailedError):
    """Worker with given ID was not found."""

    code: str = "WORKER_NOT_FOUND"

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Worker not found: {worker_id}")


# Rounds


class RoundError(InventoryKernelError):
    """Base exception for round lifecycle errors."""

    code: str = "ROUND_ERROR"


class InvalidRoundError(RoundError):
    """Round number outside the allowed range for the operation."""

    code: str = "INVALID_ROUND"

    def __init__(self, round_number: int, allowed: tuple[int, ...]):
        self.round_number = round_number
        self.allowed = allowed
        super().__init__(
            f"Round {round_number} is not valid here; allowed: {list(allowed)}"
        )


class RoundNotOpenError(RoundError):
    """The reference is not currently counting in the requested round."""

    code: str = "ROUND_NOT_OPEN"

    def __init__(self, referencia: str, round_number: int, audit_round: int):
        self.referencia = referencia
        self.round_number = round_number
        self.audit_round = audit_round
        super().__init__(
            f"Round {round_number} is not open for {referencia} "
            f"(reference is at round {audit_round})"
        )


class ReferenceClosedError(RoundError):
    """The reference has been audited; no further counts are accepted."""

    code: str = "REFERENCE_CLOSED"

    def __init__(self, referencia: str):
        self.referencia = referencia
        super().__init__(f"Reference {referencia} is already audited")


class WorkerNotEligibleError(RoundError):
    """Worker is inactive or on the wrong shift for the round."""

    code: str = "WORKER_NOT_ELIGIBLE"

    def __init__(self, worker_id: str, round_number: int, reason: str):
        self.worker_id = worker_id
        self.round_number = round_number
        self.reason = reason
        super().__init__(
            f"Worker {worker_id} cannot count round {round_number}: {reason}"
        )


class InvalidQuantityError(RoundError):
    """Counted quantity is negative, not a number, or does not fit the column."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, reason: str = "not a non-negative number"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid counted quantity: {quantity!r} ({reason})")


class InvalidWorkerError(RoundError):
    """Worker data rejected: empty name or a shift outside 1, 2, 3."""

    code: str = "INVALID_WORKER"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid worker {field}: {value!r}")


# Identity


class IdentityError(InventoryKernelError):
    """Base exception for identity/session errors."""

    code: str = "IDENTITY_ERROR"


class UnknownRoleError(IdentityError):
    """Raw role string is not part of the closed role set."""

    code: str = "UNKNOWN_ROLE"

    def __init__(self, raw_role: str):
        self.raw_role = raw_role
        super().__init__(f"Unknown role: {raw_role!r}")


class StaleIdentityDiscard(IdentityError):
    """A fetch resolved after its identity generation was superseded."""

    code: str = "STALE_IDENTITY_DISCARD"

    def __init__(self, key: object, captured_generation: int, current_generation: int):
        self.key = key
        self.captured_generation = captured_generation
        self.current_generation = current_generation
        super().__init__(
            f"Discarded result for {key!r}: generation {captured_generation} "
            f"superseded by {current_generation}"
        )


# External sources


class FetchError(InventoryKernelError):
    """An external read source failed for one unit of work."""

    code: str = "FETCH_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Fetch from {source} failed: {reason}")


# Immutability


class ImmutabilityViolationError(InventoryKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

"""
Typed Exception Hierarchy for the Batch Process Engine.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from BatchProcessError:

    BatchProcessError (base)
    |
    +-- ValidationError
    |   +-- PayloadTypeError
    |   +-- InvalidBufferSizeError
    |
    +-- ProcessingError
    |
    +-- ProcessFailure
    |
    +-- RollbackFailure
    |
    +-- UnitOfWorkError
        +-- CompositeIdentifierError
        +-- IdentifierNotAssignedError
        +-- UnmappedEntityError
        +-- ProducerNotBoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | PAYLOAD_TYPE_ERROR          | Step got a payload of the wrong shape
                | INVALID_BUFFER_SIZE         | Buffer size < 1
----------------|-----------------------------|-----------------------------------------
Processing      | PROCESSING_ERROR            | Raised by a step or hook (user code)
                | PROCESS_FAILURE             | Loop aborted, no rollback hook set
                | ROLLBACK_FAILURE            | Rollback hook itself raised (fatal)
----------------|-----------------------------|-----------------------------------------
Unit of work    | COMPOSITE_IDENTIFIER        | Single-value identity needed, key is composite
                | IDENTIFIER_NOT_ASSIGNED     | ASSIGNED kind flushed without a key
                | UNMAPPED_ENTITY             | Object is not an ORM-mapped instance
                | PRODUCER_NOT_BOUND          | Producer used before bind()

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        process.execute()
    except ProcessFailure as e:
        log.error("batch aborted", extra={"position": e.position})
        # e.__cause__ is the original error raised by the step or hook
    except RollbackFailure as e:
        alert(e.original, e.rollback_error)  # never retried

Domain exceptions inherit from Exception (not ValueError, TypeError, etc.)
so they are catchable as a group without mixing in programming errors.
"""


class BatchProcessError(Exception):
    """
    Base exception for all batch process errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BATCH_PROCESS_ERROR"


# Validation exceptions


class ValidationError(BatchProcessError):
    """Base exception for invalid input or configuration."""

    code: str = "VALIDATION_ERROR"


class PayloadTypeError(ValidationError):
    """A step received a payload it cannot handle."""

    code: str = "PAYLOAD_TYPE_ERROR"

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f'Expected data of type "{expected}", got "{received}".'
        )


class InvalidBufferSizeError(ValidationError):
    """Buffer size must be a positive integer."""

    code: str = "INVALID_BUFFER_SIZE"

    def __init__(self, buffer_size: object):
        self.buffer_size = buffer_size
        super().__init__(
            f"Buffer size must be a positive integer, got {buffer_size!r}"
        )


# Processing exceptions


class ProcessingError(BatchProcessError):
    """
    Raised by a step or hook to abort the current run.

    Any exception escaping a step aborts the loop; this class exists so
    user code can signal an intentional abort with a typed error.
    """

    code: str = "PROCESSING_ERROR"


class ProcessFailure(BatchProcessError):
    """
    A run was aborted and no rollback hook was configured.

    ``position`` is the number of iterations completed before the failure,
    which is also the position of the iteration that failed.  The
    triggering error is available as ``cause`` and ``__cause__``.
    """

    code: str = "PROCESS_FAILURE"

    def __init__(self, position: int, cause: BaseException):
        self.position = position
        self.cause = cause
        super().__init__(f"Batch process failed at iteration #{position}.")


class RollbackFailure(BatchProcessError):
    """
    The rollback hook raised while handling a failure.

    Always fatal.  Carries both the error that triggered the rollback and
    the error raised by the rollback hook.
    """

    code: str = "ROLLBACK_FAILURE"

    def __init__(self, original: BaseException, rollback_error: BaseException):
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(
            "Failed to rollback due to process failure: "
            f"{type(original).__name__}: {original} "
            f"(rollback raised {type(rollback_error).__name__}: {rollback_error})"
        )


# Unit of work exceptions


class UnitOfWorkError(BatchProcessError):
    """Base exception for persistence collaborator errors."""

    code: str = "UNIT_OF_WORK_ERROR"


class CompositeIdentifierError(UnitOfWorkError):
    """An operation needs a single-column identity but the key is composite."""

    code: str = "COMPOSITE_IDENTIFIER"

    def __init__(self, entity_kind: str, operation: str):
        self.entity_kind = entity_kind
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {entity_kind}: composite identifiers are not supported"
        )


class IdentifierNotAssignedError(UnitOfWorkError):
    """An entity kind uses ASSIGNED identifiers but was flushed without one."""

    code: str = "IDENTIFIER_NOT_ASSIGNED"

    def __init__(self, entity_kind: str):
        self.entity_kind = entity_kind
        super().__init__(
            f"Entity of type {entity_kind} is missing an assigned identifier"
        )


class UnmappedEntityError(UnitOfWorkError):
    """Object is not an instance of an ORM-mapped class."""

    code: str = "UNMAPPED_ENTITY"

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Type {type_name} is not a mapped entity")


class ProducerNotBoundError(UnitOfWorkError):
    """A producer that needs a unit of work was used before bind()."""

    code: str = "PRODUCER_NOT_BOUND"

    def __init__(self, producer: str):
        self.producer = producer
        super().__init__(
            f"{producer} is not bound to a unit of work; call bind() first"
        )

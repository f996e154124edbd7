"""
Typed Exception Hierarchy for the Portal Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The presentation layer must react to a failed command without parsing
message strings. Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, stable across releases)
  3. Structured DATA attributes (email, ids, statuses)

Example - WRONG way to handle errors:
    try:
        engine.register_user(...)
    except Exception as e:
        if "already" in str(e):  # FRAGILE - message might change
            show_duplicate_banner()

Example - RIGHT way:
    try:
        engine.register_user(...)
    except DuplicateEmailError as e:
        show_duplicate_banner(e.email)

Services raise these exceptions. The ``Portal`` facade converts them into
``CommandResult`` failures, so callers of the facade never see a raise.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PortalKernelError (base)
    |
    +-- IdentityError
    |   +-- DuplicateEmailError
    |   +-- UserNotFoundError
    |   +-- InvalidCredentialsError
    |   +-- RoleNotPermittedError
    |
    +-- RecordNotFoundError
    |   +-- ClientRecordNotFoundError
    |   +-- DocumentNotFoundError
    |   +-- ObligationNotFoundError
    |
    +-- InvalidTransitionError
    |
    +-- InvalidAmountError
    |
    +-- InvalidInputError
    |
    +-- InvariantViolationError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                 | When Raised
---------------------|---------------------------------------------------------
DUPLICATE_EMAIL      | Email already used by an account, or by a client record
                     | in the same accountant's collection
USER_NOT_FOUND       | No account for the given email or id
INVALID_CREDENTIALS  | Password fails the minimal policy
ROLE_NOT_PERMITTED   | Account role cannot perform the operation
NOT_FOUND            | Document, obligation or client record id unknown
INVALID_TRANSITION   | Status change not permitted from the current state
INVALID_AMOUNT       | Negative or non-numeric monetary amount
INVALID_INPUT        | Unknown document type, status or role, or malformed date
INVARIANT_VIOLATION  | Post-command invariant check failed (strict mode)
PERSISTENCE_ERROR    | Stored collection cannot be decoded or written
"""


class PortalKernelError(Exception):
    """
    Base exception for all portal kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PORTAL_KERNEL_ERROR"


# Identity-related exceptions


class IdentityError(PortalKernelError):
    """Base exception for account identity errors."""

    code: str = "IDENTITY_ERROR"


class DuplicateEmailError(IdentityError):
    """Email is already taken within the relevant uniqueness scope."""

    code: str = "DUPLICATE_EMAIL"

    def __init__(self, email: str, scope: str = "accounts"):
        self.email = email
        self.scope = scope
        super().__init__(f"Email already in use ({scope}): {email}")


class UserNotFoundError(IdentityError):
    """No account matches the given email or id."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, lookup: str):
        self.lookup = lookup
        super().__init__(f"User not found: {lookup}")


class InvalidCredentialsError(IdentityError):
    """Password does not satisfy the login policy."""

    code: str = "INVALID_CREDENTIALS"

    def __init__(self, email: str, reason: str):
        self.email = email
        self.reason = reason
        super().__init__(f"Invalid credentials for {email}: {reason}")


class RoleNotPermittedError(IdentityError):
    """The account's role may not perform this operation."""

    code: str = "ROLE_NOT_PERMITTED"

    def __init__(self, user_id: str, role: str, operation: str):
        self.user_id = user_id
        self.role = role
        self.operation = operation
        super().__init__(
            f"User {user_id} with role {role} may not {operation}"
        )


# Record lookup exceptions


class RecordNotFoundError(PortalKernelError):
    """Base exception for unknown record ids."""

    code: str = "NOT_FOUND"
    entity_type: str = "record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.entity_type} not found: {record_id}")


class ClientRecordNotFoundError(RecordNotFoundError):
    """Client record id is not in the accountant's collection."""

    entity_type = "ClientRecord"

    def __init__(self, record_id: str, accountant_id: str | None = None):
        self.accountant_id = accountant_id
        super().__init__(record_id)


class DocumentNotFoundError(RecordNotFoundError):
    """Document id is unknown."""

    entity_type = "Document"


class ObligationNotFoundError(RecordNotFoundError):
    """Tax obligation id is unknown."""

    entity_type = "TaxObligation"


# State machine exceptions


class InvalidTransitionError(PortalKernelError):
    """
    Status change is not permitted from the current state.

    The record is left unchanged when this is raised.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        from_status: str,
        to_status: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition {entity_type} {entity_id} "
            f"from {from_status} to {to_status}"
        )


class InvalidAmountError(PortalKernelError):
    """Monetary amount is negative or not a number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Invalid amount: {amount}")


class InvalidInputError(PortalKernelError):
    """A command argument is not one of the accepted values."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvariantViolationError(PortalKernelError):
    """
    A command left the store violating one or more invariants.

    Raised only when strict invariant checking is enabled; the enclosing
    transaction is rolled back.
    """

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, command: str, violations: list[str]):
        self.command = command
        self.violations = violations
        super().__init__(
            f"Command {command} violated {len(violations)} invariant(s): "
            + "; ".join(violations)
        )


class PersistenceError(PortalKernelError):
    """A persisted collection could not be decoded or written."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, collection: str, reason: str, operation: str = "load"):
        self.collection = collection
        self.reason = reason
        self.operation = operation
        super().__init__(f"Cannot {operation} collection {collection}: {reason}")

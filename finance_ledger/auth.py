"""
Identity resolution.

The identity collaborator hands us an Identity value; these helpers
turn it into an internal User or fail with a typed error.
"""

from finance_ledger.errors import UnauthorizedError, UserNotFoundError
from finance_ledger.models.ledger import Identity, User
from finance_ledger.services.storage import LedgerStorageInterface


def require_authenticated(identity: Identity) -> str:
    """
    Return the external user id of an authenticated caller.

    Does no I/O, so it can run before the admission gate.

    Raises:
        UnauthorizedError: If the caller is not authenticated
    """
    if identity is None or not identity.is_authenticated or not identity.external_user_id:
        raise UnauthorizedError()
    return identity.external_user_id


async def resolve_user(
    storage: LedgerStorageInterface,
    identity: Identity,
) -> User:
    """
    Map an authenticated identity to its internal user.

    Raises:
        UnauthorizedError: If the caller is not authenticated
        UserNotFoundError: If no user has this external id
    """
    external_id = require_authenticated(identity)
    user = await storage.get_user_by_external_id(external_id)
    if user is None:
        raise UserNotFoundError()
    return user

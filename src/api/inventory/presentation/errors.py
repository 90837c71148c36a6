"""Maps inventory and database errors onto HTTP responses."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, status

from infrastructure.database.exceptions import (
    ConflictRetryError,
    DatabaseConnectionError,
    InvalidTenantError,
)
from inventory.domain.exceptions import (
    DuplicateProductError,
    NotFoundError,
    ValidationError,
)


@contextmanager
def http_errors() -> Iterator[None]:
    """Translate typed errors raised in the block to ``HTTPException``.

    Write conflicts only reach this point once the workflow's own retries
    are exhausted.
    """
    try:
        yield
    except (InvalidTenantError, ValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateProductError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ConflictRetryError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Concurrent update conflict, please retry",
        )
    except DatabaseConnectionError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tenant database unavailable",
        )

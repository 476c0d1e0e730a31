"""Translation of CRM domain errors into HTTP errors for the REST routes."""

from fastapi import HTTPException, status

from handyai.services.crm.errors import CRMError, EntityNotFoundError


def http_error(error: CRMError) -> HTTPException:
    """404 for missing records, 400 for business-rule violations."""
    if isinstance(error, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.detail)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.detail)

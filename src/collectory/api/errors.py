"""Mapping of module pipeline errors to HTTP errors."""
from fastapi import HTTPException, status

from collectory.modules.errors import (
    ModuleAlreadyExistsError,
    ModuleBootstrapError,
    ModuleError,
    ModuleInUseError,
    UnknownModuleError,
)


def to_http_error(error: ModuleError) -> HTTPException:
    """
    Translate a module error to an HTTPException.

    Unknown module -> 404, duplicate or in-use module -> 409, bootstrap
    failure -> 500, any other rejection of the input -> 400.
    """
    if isinstance(error, UnknownModuleError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (ModuleAlreadyExistsError, ModuleInUseError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, ModuleBootstrapError):
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))

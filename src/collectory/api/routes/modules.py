"""Module routes: public read access and administrator import/delete."""
from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from collectory.api.dependencies import get_import_service, get_session
from collectory.api.errors import to_http_error
from collectory.modules import (
    ModuleDetails,
    ModuleError,
    ModuleImportService,
    ModuleQueryService,
    ModuleRawSource,
    ModuleSummary,
    ScanResult,
)
from collectory.observability import get_logger, with_log_context

logger = get_logger(__name__)
router = APIRouter(prefix="/api/modules")
admin_router = APIRouter(prefix="/api/admin/modules")


@router.get("", response_model=list[ModuleSummary])
def list_modules(session: Session = Depends(get_session)) -> list[ModuleSummary]:
    """List all stored modules, sorted by key."""
    return ModuleQueryService(session).list_all()


@router.get("/{module_key}", response_model=ModuleDetails)
def get_module(module_key: str, session: Session = Depends(get_session)) -> ModuleDetails:
    """
    Get one module with its compiled contract.

    Raises:
        HTTPException: 404 if the module key is unknown
    """
    try:
        return ModuleQueryService(session).get_details(module_key)
    except ModuleError as e:
        raise to_http_error(e) from e


@router.get("/{module_key}/source", response_model=ModuleRawSource)
def get_module_source(module_key: str, session: Session = Depends(get_session)) -> ModuleRawSource:
    """Get the raw document a module was loaded from."""
    try:
        return ModuleQueryService(session).get_raw_source(module_key)
    except ModuleError as e:
        raise to_http_error(e) from e


@admin_router.post("/import", response_model=ModuleSummary, status_code=status.HTTP_201_CREATED)
def import_module(
    body: bytes = Body(default=b"", media_type="application/xml"),
    filename: str | None = Query(default=None, description="Original file name"),
    service: ModuleImportService = Depends(get_import_service),
) -> ModuleSummary:
    """
    Import a module document sent as the request body.

    Returns:
        Summary of the imported module

    Raises:
        HTTPException: 409 if the key exists, 400 if the document is invalid
    """
    try:
        return service.import_document(body, filename)
    except ModuleError as e:
        logger.info(
            f"Module import rejected: {type(e).__name__}",
            extra=with_log_context(source_name=filename),
        )
        raise to_http_error(e) from e


@admin_router.post("/scan", response_model=ScanResult)
def scan_modules(service: ModuleImportService = Depends(get_import_service)) -> ScanResult:
    """Import every document in the import directory and report per file."""
    return service.scan_import_dir()


@admin_router.delete("/{module_key}", status_code=status.HTTP_204_NO_CONTENT)
def delete_module(
    module_key: str,
    service: ModuleImportService = Depends(get_import_service),
) -> Response:
    """
    Delete an imported module.

    Raises:
        HTTPException: 404 unknown, 400 bundled module, 409 module in use
    """
    try:
        service.delete_imported_module(module_key)
    except ModuleError as e:
        raise to_http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


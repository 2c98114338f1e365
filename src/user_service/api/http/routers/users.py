"""User administration endpoints."""

import io

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile
from loguru import logger

from src.user_service.api.http.deps import get_user_management_service, require_admin
from src.user_service.core.security import Principal
from src.user_service.core.services import UserManagementService
from src.user_service.core.services.user.csv_upload import BatchReport
from src.user_service.core.services.user.errors import (
    BadRequestError,
    ConflictError,
    MemberDirectoryError,
    MemberNotFoundError,
    UserNotFoundError,
    UserServiceError,
    UserValidationError,
)
from src.user_service.entities.core.user import User, UserRecord
from src.user_service.runtime.context import get_config

router = APIRouter(prefix="/users", tags=["users"])

_STATUS_BY_ERROR = {
    UserValidationError: 400,
    MemberNotFoundError: 400,
    BadRequestError: 400,
    UserNotFoundError: 404,
    ConflictError: 409,
    MemberDirectoryError: 503,
}


def _to_http(error: UserServiceError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(error), 500)
    if isinstance(error, UserValidationError):
        detail = {"message": "Invalid user", "errors": error.result.errors()}
    else:
        detail = str(error)
    return HTTPException(status_code=status_code, detail=detail)


@router.post("", response_model=User, status_code=201)
def create_user(
    candidate: UserRecord,
    principal: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> User:
    """Create a new user after validation and the member check."""
    try:
        return service.create_user(candidate, principal.login)
    except UserServiceError as e:
        raise _to_http(e) from e


@router.put("", response_model=User)
def update_user(
    candidate: UserRecord,
    principal: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> User:
    """Update an existing user identified by the body's id."""
    try:
        return service.update_user(candidate, principal.login)
    except UserServiceError as e:
        raise _to_http(e) from e


@router.get("", response_model=list[User])
def list_users(
    response: Response,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=20, ge=1, le=1000),
    _: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> list[User]:
    users, total = service.list_users(page=page, size=size)
    response.headers["X-Total-Count"] = str(total)
    return users


@router.get("/authorities", response_model=list[str])
def list_authorities(
    _: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> list[str]:
    return service.list_authorities()


@router.get("/salesforce/{salesforce_id}", response_model=list[User])
def list_users_by_salesforce_id(
    salesforce_id: str,
    _: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> list[User]:
    return service.list_users_by_salesforce_id(salesforce_id)


@router.get("/{login_or_id}", response_model=User)
def get_user(
    login_or_id: str,
    _: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> User:
    """Get a user by login, falling back to id."""
    user = service.get_user(login_or_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/upload", response_model=BatchReport)
def upload_users(
    file: UploadFile = File(...),
    principal: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> BatchReport:
    """Create or update users from a CSV file; rejected rows are reported."""
    encoding = get_config().upload.encoding
    try:
        text = file.file.read().decode(encoding)
    except UnicodeDecodeError as e:
        raise HTTPException(
            status_code=400, detail=f"File is not valid {encoding} text"
        ) from e

    logger.info("Upload of {} by {}", file.filename, principal.login)
    return service.upload_users(io.StringIO(text, newline=""), principal.login)


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> dict[str, str]:
    try:
        service.delete_user(user_id, principal.login)
    except UserServiceError as e:
        raise _to_http(e) from e
    return {"message": "User deleted successfully"}


@router.delete("/{user_id}/{authority}", status_code=202)
def remove_authority(
    user_id: str,
    authority: str,
    _: Principal = Depends(require_admin),
    service: UserManagementService = Depends(get_user_management_service),
) -> dict[str, str]:
    try:
        service.remove_authority(user_id, authority)
    except UserServiceError as e:
        raise _to_http(e) from e
    return {"message": f"Authority {authority} removed"}

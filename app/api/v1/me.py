"""Current-user endpoints: profile, password change and profile image."""

import logging
import mimetypes
from collections.abc import Iterator
from functools import lru_cache
from pathlib import PurePath
from typing import Annotated, BinaryIO

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from app.api.v1.auth import (
    AuthenticatedSession,
    get_current_session,
    get_identity_service,
    get_session_contexts_dependency,
    get_user_store,
)
from app.core.config import get_settings
from app.schemas.auth import ChangePasswordRequest, UserResponse
from app.services.credential_store import UserStore
from app.services.errors import InternalError, NotFoundError
from app.services.identity import IdentityService
from app.services.session_context import SessionContext, sign_out_all
from app.storage import StorageError, StorageProvider, get_storage_provider

logger = logging.getLogger(__name__)
router = APIRouter()

ALLOWED_IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})
PROFILE_IMAGE_FOLDER = "profiles"


@lru_cache
def get_storage() -> StorageProvider:
    """Dependency: the configured storage provider (built once per process)."""
    return get_storage_provider(get_settings())


@router.get("", response_model=UserResponse)
def get_me(
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> UserResponse:
    """Return the authenticated user's profile."""
    user = identity.get_profile(session.claims)
    return UserResponse.model_validate(user)


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    body: ChangePasswordRequest,
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
    contexts: Annotated[list[SessionContext], Depends(get_session_contexts_dependency)],
) -> Response:
    """
    Change the password. Every access token issued before the change stops working,
    including the one used for this request; log in again afterwards.
    """
    identity.change_password(session.claims, body.current_password, body.new_password)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    sign_out_all(response, contexts)
    return response


def _image_extension(file: UploadFile) -> str:
    suffix = PurePath(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))} images are accepted.",
        )
    return suffix


def _iter_chunks(stream: BinaryIO, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
    try:
        while chunk := stream.read(chunk_size):
            yield chunk
    finally:
        stream.close()


def _upload_size(file: UploadFile) -> int:
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    return size


@router.put("/image", status_code=status.HTTP_204_NO_CONTENT)
def upload_image(
    file: UploadFile,
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    store: Annotated[UserStore, Depends(get_user_store)],
    storage: Annotated[StorageProvider, Depends(get_storage)],
) -> Response:
    """Upload or replace the profile image (multipart field "file")."""
    extension = _image_extension(file)
    max_bytes = get_settings().PROFILE_IMAGE_MAX_BYTES
    if _upload_size(file) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Profile image exceeds {max_bytes} bytes.",
        )

    user = session.user
    path = f"{PROFILE_IMAGE_FOLDER}/{user.id}{extension}"
    previous = user.profile_image_path
    try:
        storage.upload(file.file, path, overwrite=True)
        if previous and previous != path:
            storage.delete(previous)
    except (OSError, ValueError, StorageError) as e:
        logger.exception("Profile image upload failed: %s", e)
        raise InternalError() from e
    store.set_profile_image(user, path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/image")
def get_image(
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    storage: Annotated[StorageProvider, Depends(get_storage)],
) -> StreamingResponse:
    """Stream the profile image; 404 when none has been uploaded."""
    path = session.user.profile_image_path
    if not path:
        raise NotFoundError("Profile image not found")
    try:
        stream = storage.read(path)
    except (OSError, ValueError, StorageError) as e:
        logger.exception("Profile image read failed: %s", e)
        raise InternalError() from e
    if stream is None:
        raise NotFoundError("Profile image not found")
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return StreamingResponse(_iter_chunks(stream), media_type=media_type)


@router.delete("/image", status_code=status.HTTP_204_NO_CONTENT)
def delete_image(
    session: Annotated[AuthenticatedSession, Depends(get_current_session)],
    store: Annotated[UserStore, Depends(get_user_store)],
    storage: Annotated[StorageProvider, Depends(get_storage)],
) -> Response:
    """Remove the profile image (no-op when there is none)."""
    user = session.user
    if user.profile_image_path:
        try:
            storage.delete(user.profile_image_path)
        except (OSError, ValueError, StorageError) as e:
            logger.exception("Profile image delete failed: %s", e)
            raise InternalError() from e
        store.set_profile_image(user, None)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

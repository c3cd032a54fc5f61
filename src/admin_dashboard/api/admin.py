"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import (
    APIRouter,
    Depends,
    Form,
    Header,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)

from admin_dashboard.api.request_models import (
    DeleteUserRequest,
    DepartmentReferenceRequest,
    ProfessorReferenceRequest,
)
from admin_dashboard.services.images import ImageFile

if TYPE_CHECKING:
    from admin_dashboard.containers import AppContainer
    from admin_dashboard.domain.models import ImageOwner
    from admin_dashboard.services.images import ImageBindingService

router = APIRouter(prefix="/api", tags=["admin"])

_IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/departments/image", dependencies=[Depends(require_admin)])
async def upload_department_image(
    request: Request,
    file: UploadFile,
    department_reference: Annotated[str, Form(alias="departmentReference")],
) -> dict[str, object]:
    """Upload a department image and bind it to the department."""
    container: AppContainer = request.app.state.container
    return await _upload(container.department_image_service, department_reference, file)


@router.post("/departments/image/delete", dependencies=[Depends(require_admin)])
async def delete_department_image(
    payload: DepartmentReferenceRequest, request: Request
) -> dict[str, object]:
    """Clear a department's image binding and delete the stored image."""
    container: AppContainer = request.app.state.container
    department = await container.department_image_service.remove_image(
        payload.department_reference
    )
    return {
        "success": True,
        "department": _serialize_owner(department),
        "message": "Image deleted successfully",
    }


@router.get("/departments/{reference}", dependencies=[Depends(require_admin)])
async def department_detail(reference: str, request: Request) -> dict[str, object]:
    """Resolve a department by id or name."""
    container: AppContainer = request.app.state.container
    department = container.department_resolver.resolve(reference)
    return {"success": True, "department": _serialize_owner(department)}


@router.post("/professors/image", dependencies=[Depends(require_admin)])
async def upload_professor_image(
    request: Request,
    file: UploadFile,
    professor_reference: Annotated[str, Form(alias="professorReference")],
) -> dict[str, object]:
    """Upload a professor profile picture and bind it to the professor."""
    container: AppContainer = request.app.state.container
    return await _upload(container.professor_image_service, professor_reference, file)


@router.post("/professors/image/delete", dependencies=[Depends(require_admin)])
async def delete_professor_image(
    payload: ProfessorReferenceRequest, request: Request
) -> dict[str, object]:
    """Clear a professor's image binding and delete the stored image."""
    container: AppContainer = request.app.state.container
    professor = await container.professor_image_service.remove_image(
        payload.professor_reference
    )
    return {
        "success": True,
        "professor": _serialize_owner(professor),
        "message": "Image deleted successfully",
    }


@router.get("/professors/{reference}", dependencies=[Depends(require_admin)])
async def professor_detail(reference: str, request: Request) -> dict[str, object]:
    """Resolve a professor by id or name."""
    container: AppContainer = request.app.state.container
    professor = container.professor_resolver.resolve(reference)
    return {"success": True, "professor": _serialize_owner(professor)}


@router.get("/images/{locator:path}")
async def image_proxy(locator: str, request: Request) -> Response:
    """Serve a stored image so browsers can display it directly."""
    container: AppContainer = request.app.state.container
    content = await container.image_fetcher.fetch(locator)
    return Response(
        content=content.data,
        media_type=content.content_type,
        headers={"Cache-Control": _IMAGE_CACHE_CONTROL},
    )


@router.api_route(
    "/users/auth", methods=["POST", "DELETE"], dependencies=[Depends(require_admin)]
)
async def delete_user_auth(
    payload: DeleteUserRequest, request: Request
) -> dict[str, object]:
    """Delete a user account from the identity provider."""
    container: AppContainer = request.app.state.container
    await container.user_admin_service.delete_user(payload.email)
    return {
        "success": True,
        "message": f"User {payload.email} successfully deleted",
    }


async def _upload(
    service: ImageBindingService, reference: str, file: UploadFile
) -> dict[str, object]:
    content_type = file.content_type or ""
    # Reject oversized files before reading them into memory.
    if file.size is not None:
        service.check_file(content_type, file.size)
    image = ImageFile(
        name=file.filename or "",
        content_type=content_type,
        data=await file.read(),
    )
    remote = await service.upload_image(reference, image)
    return {
        "success": True,
        "remoteReference": remote.locator,
        "message": "Image uploaded successfully",
    }


def _serialize_owner(owner: ImageOwner) -> dict[str, object]:
    return {
        "id": str(owner.id),
        "name": owner.name,
        "imageReference": owner.image_reference.locator
        if owner.image_reference
        else None,
        "version": owner.version,
    }

"""
Generic Controller Binding

Controller wraps a Repository for one entity and answers with the uniform
envelope; crud_router mounts it on an APIRouter.
"""

from typing import Any, Callable, Dict, Iterable, Sequence, Tuple

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse

from ..core.errors import BadRequest, Conflict, NotFound
from ..core.query_options import pagination, resolve_query_options
from ..core.responses import json_response
from ..services.repository import Repository

PASSWORD_KEYS = ("password", "password_confirm", "passwordConfirm")


def reject_password_fields(body: Dict[str, Any]) -> None:
    """Generic and profile updates never touch passwords."""
    if any(key in body for key in PASSWORD_KEYS):
        raise BadRequest("This route is not for password updates. Please use /update_password.")


class Controller:
    def __init__(self, repository: Repository, model_name: str = "Document", populate: Sequence[str] = ()):
        self.repository = repository
        self.model_name = model_name
        self.populate = tuple(populate)

    def get_all(self, query_params: Iterable[Tuple[str, str]]) -> JSONResponse:
        options = resolve_query_options(query_params)
        docs = self.repository.get_all(
            filter=options.filter,
            sort=options.sort,
            fields=options.fields,
            page=options.page,
            page_limit=options.page_limit,
            populate=self.populate,
        )
        total = self.repository.count(options.filter)
        return json_response(status.HTTP_200_OK, True, f"{self.model_name}s retrieved successfully", {
            "count": len(docs),
            "data": docs,
            "pagination": pagination(options.page, options.page_limit, total),
        })

    def get_one_by_id(self, id: str) -> JSONResponse:
        doc = self.repository.get_one_by_id(id, populate=self.populate)
        if doc is None:
            raise NotFound(f"No {self.model_name} found with that ID")
        return json_response(status.HTTP_200_OK, True, f"{self.model_name} retrieved successfully", {"data": doc})

    def create_one(self, data: Dict[str, Any]) -> JSONResponse:
        doc = self.repository.create_one(data)
        if doc is None:
            # Kept as 404 to match the established API contract
            raise NotFound(f"No {self.model_name} found with that ID")
        return json_response(status.HTTP_201_CREATED, True, f"{self.model_name} created successfully", {"data": doc})

    def update_one_by_id(self, id: str, data: Dict[str, Any]) -> JSONResponse:
        # Existence check and update are separate round-trips; a delete in
        # between surfaces as 409 rather than 404
        if not self.repository.is_exist(id):
            raise NotFound(f"No {self.model_name} found with that ID")
        doc = self.repository.update_one_by_id(id, data)
        if doc is None:
            raise Conflict(f"{self.model_name} with ID {id} could not be updated. Please try again.")
        return json_response(status.HTTP_200_OK, True, f"{self.model_name} updated successfully", {"data": doc})

    def delete_one_by_id(self, id: str) -> JSONResponse:
        if not self.repository.is_exist(id):
            raise NotFound(f"No {self.model_name} found with that ID")
        result = self.repository.delete_one_by_id(id)
        if result is not None:
            raise Conflict(f"{self.model_name} with ID {id} could not be deleted. Please try again.")
        return json_response(status.HTTP_200_OK, True, f"{self.model_name} deleted successfully", {"data": None})


def crud_router(
    get_repository: Callable[..., Repository],
    model_name: str,
    *,
    prefix: str,
    tags: Sequence[str] = (),
    dependencies: Sequence[Any] = (),
    populate: Sequence[str] = (),
) -> APIRouter:
    """
    Build list/get/create/update/delete routes for one entity.

    Args:
        get_repository: FastAPI dependency returning the entity's Repository
        model_name: Entity name used in response messages
        dependencies: Route dependencies applied to every endpoint (e.g. protect)
        populate: Relations embedded on list and get
    """
    router = APIRouter(prefix=prefix, tags=list(tags) or [model_name], dependencies=list(dependencies))

    def controller(repository: Repository = Depends(get_repository)) -> Controller:
        return Controller(repository, model_name, populate)

    @router.get("")
    def list_documents(request: Request, ctrl: Controller = Depends(controller)):
        return ctrl.get_all(request.query_params.multi_items())

    @router.get("/{id}")
    def get_document(id: str, ctrl: Controller = Depends(controller)):
        return ctrl.get_one_by_id(id)

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_document(body: Dict[str, Any] = Body(...), ctrl: Controller = Depends(controller)):
        return ctrl.create_one(body)

    @router.patch("/{id}")
    def update_document(id: str, body: Dict[str, Any] = Body(...), ctrl: Controller = Depends(controller)):
        reject_password_fields(body)
        return ctrl.update_one_by_id(id, body)

    @router.delete("/{id}")
    def delete_document(id: str, ctrl: Controller = Depends(controller)):
        return ctrl.delete_one_by_id(id)

    return router

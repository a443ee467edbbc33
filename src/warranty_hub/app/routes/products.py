"""Provider catalog routes: products and their documents."""

from fastapi import APIRouter, Depends, status

from warranty_hub.app.dependencies import get_current_actor, get_repositories, require_roles
from warranty_hub.domain.enums import ActorRole
from warranty_hub.domain.errors import NotFoundError
from warranty_hub.domain.schemas import (
    Actor,
    Product,
    ProductCreate,
    ProductDocument,
    ProductDocumentCreate,
    ProductUpdate,
)
from warranty_hub.infra.repositories import Repositories

router = APIRouter(prefix="/api/products", tags=["products"])

providers = require_roles(ActorRole.PROVIDER)


@router.get("", response_model=list[Product])
async def list_products(
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    """Providers see their own catalog, admins everything, dealers published products."""
    if actor.role == ActorRole.PROVIDER:
        return await repos.products.list(provider_id=actor.user_id)
    if actor.role == ActorRole.ADMIN:
        return await repos.products.list()
    return await repos.products.list_published()


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.products.create(data, actor)


@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    product = await repos.products.require(product_id)
    visible = (
        product.published
        or actor.role == ActorRole.ADMIN
        or product.provider_id == actor.user_id
    )
    if not visible:
        raise NotFoundError("Product", product_id)
    return product


@router.patch("/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    return await repos.products.update(product_id, data.model_dump(exclude_unset=True), actor)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await repos.products.remove(product_id, actor)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.get("/{product_id}/documents", response_model=list[ProductDocument])
async def list_documents(
    product_id: str,
    actor: Actor = Depends(get_current_actor),
    repos: Repositories = Depends(get_repositories),
):
    await get_product(product_id, actor, repos)
    return await repos.documents.list(product_id=product_id)


@router.post(
    "/{product_id}/documents",
    response_model=ProductDocument,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    product_id: str,
    data: ProductDocumentCreate,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    """Record metadata for a document already uploaded to object storage."""
    product = await repos.products.require(product_id)
    if product.provider_id != actor.user_id:
        raise NotFoundError("Product", product_id)
    return await repos.documents.create(data.model_copy(update={"product_id": product_id}), actor)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    actor: Actor = Depends(providers),
    repos: Repositories = Depends(get_repositories),
):
    await repos.documents.remove(document_id, actor)

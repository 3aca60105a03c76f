from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lotledger.core.api_docs import error_responses
from lotledger.core.deps import get_db
from lotledger.core.security_current import Actor, get_current_actor, require_admin
from lotledger.models.category import Category
from lotledger.schemas.category import CategoryCreateIn, CategoryOut, CategoryUpdateIn
from lotledger.services.category_service import create_category, list_categories, update_category
from lotledger.services.movement_store import commit_ledger

router = APIRouter(prefix="/tenants/{tenant_id}/categories", tags=["categories"])


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        code=category.code,
        name=category.name,
        field_schema=category.field_schema,
        is_active=category.is_active,
        created_at=category.created_at,
    )


@router.post(
    "",
    response_model=CategoryOut,
    summary="Create a goods category",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def create_category_endpoint(
    tenant_id: str,
    payload: CategoryCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    category = create_category(
        db,
        actor=actor,
        tenant_id=tenant_id,
        code=payload.code,
        name=payload.name,
        field_schema=payload.field_schema.model_dump() if payload.field_schema else None,
    )
    commit_ledger(db, operation="category.create")
    db.refresh(category)
    return _category_out(category)


@router.get(
    "",
    response_model=list[CategoryOut],
    summary="List categories",
    responses=error_responses(401, 422, 500),
)
def list_categories_endpoint(
    tenant_id: str,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return [
        _category_out(category)
        for category in list_categories(db, tenant_id=tenant_id, include_inactive=include_inactive)
    ]


@router.patch(
    "/{category_id}",
    response_model=CategoryOut,
    summary="Update a category",
    description="Categories referenced by movements only accept `is_active` changes.",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_category_endpoint(
    tenant_id: str,
    category_id: str,
    payload: CategoryUpdateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    changes = payload.model_dump(exclude_unset=True)
    category = update_category(db, actor=actor, tenant_id=tenant_id, category_id=category_id, changes=changes)
    commit_ledger(db, operation="category.update")
    db.refresh(category)
    return _category_out(category)

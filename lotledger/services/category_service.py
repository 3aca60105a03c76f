import uuid
from typing import Any

from sqlalchemy import exists, or_, select
from sqlalchemy.orm import Session

from lotledger.core.errors import Forbidden, NotFound, ValidationError
from lotledger.core.security_current import Actor
from lotledger.models.category import Category
from lotledger.models.inventory import InboundMovement, OutboundMovement
from lotledger.models.tenant import Tenant
from lotledger.services.movement_store import get_category

FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
}


def validate_field_schema(field_schema: dict[str, Any] | None) -> dict[str, Any] | None:
    if field_schema is None:
        return None
    fields = field_schema.get("fields")
    if not isinstance(fields, list):
        raise ValidationError("field_schema.fields must be a list")
    seen: set[str] = set()
    for spec in fields:
        if not isinstance(spec, dict) or not str(spec.get("name") or "").strip():
            raise ValidationError("Every field_schema entry needs a name")
        name = str(spec["name"]).strip()
        if name in seen:
            raise ValidationError(f"Duplicate field '{name}' in field_schema")
        seen.add(name)
        field_type = spec.get("type", "string")
        if field_type not in FIELD_TYPES:
            raise ValidationError(f"Unsupported field type '{field_type}' for '{name}'")
    return field_schema


def validate_extra_fields(category: Category, extra_fields: dict[str, Any] | None) -> dict[str, Any] | None:
    schema = category.field_schema
    if not schema:
        return extra_fields or None

    values = dict(extra_fields or {})
    declared = {str(spec["name"]).strip(): spec for spec in schema.get("fields", [])}

    unknown = sorted(set(values) - set(declared))
    if unknown:
        raise ValidationError(f"Unknown field(s) for category {category.code}: {', '.join(unknown)}")

    for name, spec in declared.items():
        value = values.get(name)
        if value is None:
            if spec.get("required"):
                raise ValidationError(f"Field '{name}' is required for category {category.code}")
            continue
        expected = FIELD_TYPES[spec.get("type", "string")]
        # bool is an int subclass; keep booleans out of numeric fields.
        if isinstance(value, bool) and bool not in expected:
            raise ValidationError(f"Field '{name}' must be {spec.get('type', 'string')}")
        if not isinstance(value, expected):
            raise ValidationError(f"Field '{name}' must be {spec.get('type', 'string')}")
    return values or None


def _ensure_code_available(db: Session, *, tenant_id: str, code: str, exclude_id: str | None = None) -> None:
    stmt = select(Category.id).where(Category.tenant_id == tenant_id, Category.code == code)
    if exclude_id:
        stmt = stmt.where(Category.id != exclude_id)
    if db.execute(stmt).first():
        raise ValidationError(f"Category code {code} already exists")


def category_is_referenced(db: Session, category_id: str) -> bool:
    return bool(
        db.execute(
            select(
                or_(
                    exists().where(InboundMovement.category_id == category_id),
                    exists().where(OutboundMovement.category_id == category_id),
                )
            )
        ).scalar()
    )


def create_category(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    code: str,
    name: str,
    field_schema: dict[str, Any] | None = None,
) -> Category:
    if not actor.is_admin:
        raise Forbidden("Only administrators can create categories")
    if db.get(Tenant, tenant_id) is None:
        raise NotFound("Tenant not found")

    code = code.strip().upper()
    if not code or not name.strip():
        raise ValidationError("Category code and name are required")
    _ensure_code_available(db, tenant_id=tenant_id, code=code)

    category = Category(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        code=code,
        name=name.strip(),
        field_schema=validate_field_schema(field_schema),
        is_active=True,
    )
    db.add(category)
    return category


def update_category(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    category_id: str,
    changes: dict[str, Any],
) -> Category:
    if not actor.is_admin:
        raise Forbidden("Only administrators can update categories")
    category = get_category(db, tenant_id=tenant_id, category_id=category_id)

    identity_changes = {key: value for key, value in changes.items() if key != "is_active"}
    if identity_changes and category_is_referenced(db, category.id):
        raise ValidationError("Category is referenced by movements; only is_active can change")

    if "code" in identity_changes:
        code = str(identity_changes["code"]).strip().upper()
        if not code:
            raise ValidationError("Category code is required")
        _ensure_code_available(db, tenant_id=tenant_id, code=code, exclude_id=category.id)
        category.code = code
    if "name" in identity_changes:
        name = str(identity_changes["name"]).strip()
        if not name:
            raise ValidationError("Category name is required")
        category.name = name
    if "field_schema" in identity_changes:
        category.field_schema = validate_field_schema(identity_changes["field_schema"])
    if "is_active" in changes:
        category.is_active = bool(changes["is_active"])
    return category


def list_categories(db: Session, *, tenant_id: str, include_inactive: bool = False) -> list[Category]:
    stmt = select(Category).where(Category.tenant_id == tenant_id)
    if not include_inactive:
        stmt = stmt.where(Category.is_active.is_(True))
    return list(db.execute(stmt.order_by(Category.code.asc())).scalars().all())

"""Properties API routes — landlords manage their own listings, admins see all."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, require_landlord
from app.auth.gate import Identity
from app.exceptions import NotFound
from app.models.property import Property
from app.schemas.property import (
    PropertyCreate,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
)

router = APIRouter(prefix="/api/v1/properties", tags=["properties"])


async def _get_owned_property(
    property_id: uuid.UUID,
    identity: Identity,
    db: AsyncSession,
) -> Property:
    """Fetch a property the caller owns (admins may access any).

    Raises ``NotFound`` when the property does not exist or belongs to
    another landlord.
    """
    result = await db.execute(select(Property).where(Property.id == property_id))
    prop = result.scalar_one_or_none()

    if prop is None or (not identity.is_admin and prop.owner_id != identity.id):
        raise NotFound("Property not found")
    return prop


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new property",
)
async def create_property(
    body: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_landlord),
) -> PropertyResponse:
    """Create a property owned by the authenticated landlord."""
    prop = Property(
        owner_id=identity.id,
        **body.model_dump(),
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)
    return PropertyResponse.model_validate(prop)


@router.get(
    "",
    response_model=PropertyListResponse,
    summary="List properties owned by the current landlord",
)
async def list_properties(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_landlord),
) -> PropertyListResponse:
    """Return paginated properties; admins see every property."""
    filters = [] if identity.is_admin else [Property.owner_id == identity.id]

    count_query = select(func.count()).select_from(Property).where(*filters)
    total_result = await db.execute(count_query)
    total = total_result.scalar_one()

    items_query = select(Property).where(*filters).order_by(Property.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(items_query)
    items = list(result.scalars().all())

    return PropertyListResponse(
        items=[PropertyResponse.model_validate(p) for p in items],
        total=total,
    )


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get a property by ID",
)
async def get_property(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_landlord),
) -> PropertyResponse:
    """Retrieve a single property. Returns 404 if not found or not owned."""
    prop = await _get_owned_property(property_id, identity, db)
    return PropertyResponse.model_validate(prop)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update a property",
)
async def update_property(
    property_id: uuid.UUID,
    body: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_landlord),
) -> PropertyResponse:
    """Partially update a property. Only explicitly set, non-null fields are changed."""
    prop = await _get_owned_property(property_id, identity, db)

    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(prop, field, value)

    await db.commit()
    await db.refresh(prop)

    return PropertyResponse.model_validate(prop)

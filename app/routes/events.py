# app/routes/events.py

from datetime import date, datetime
import logging
from typing import Dict, List, Literal, Optional, Tuple, Union

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth_token import get_current_user
from app.database import get_db
from app.models.category import Category, event_categories
from app.models.event import Event
from app.models.photo import Photo
from app.models.registration import Registration
from app.models.user import User
from app.schemas import EventParams, EventRead, MessageResponse, UserRead

logger = logging.getLogger("events")

UPDATE_FAILED_MESSAGE = "The event could not be updated"
DELETED_MESSAGE = "Event successfully deleted"

# Columns that are NOT NULL in the store; an explicit null from the client leaves them untouched.
_NON_NULL_FLAGS = frozenset({"includes_food", "includes_drinks", "active"})

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

async def find_event(db: AsyncSession, event_id: int, owner: Optional[User] = None) -> Event:
    """Load one event (optionally only among ``owner``'s events) or answer 404."""
    stmt = (
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    if owner is not None:
        stmt = stmt.where(Event.user_id == owner.id)
    event = (await db.execute(stmt)).scalar_one_or_none()
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


async def resolve_categories(db: AsyncSession, category_ids: List[int]) -> Tuple[List[Category], List[int]]:
    """Return the categories found and the requested ids that do not exist."""
    if not category_ids:
        return [], []
    rows = (await db.execute(select(Category).where(Category.id.in_(category_ids)))).scalars().all()
    found = {category.id for category in rows}
    missing = [category_id for category_id in category_ids if category_id not in found]
    return list(rows), missing


async def apply_params(db: AsyncSession, event: Event, params: EventParams) -> Dict[str, List[str]]:
    """Copy the submitted allow-listed fields onto ``event`` and validate the result."""
    data = params.model_dump(exclude_unset=True)
    category_ids = data.pop("category_ids", None)

    for field, value in data.items():
        if value is None and field in _NON_NULL_FLAGS:
            continue
        setattr(event, field, value)

    errors = event.validation_errors()

    if category_ids is not None:
        categories, missing = await resolve_categories(db, category_ids)
        if missing:
            errors.setdefault("category_ids", []).append(
                "contains unknown ids: " + ", ".join(str(m) for m in missing)
            )
        else:
            event.categories = categories

    return errors

# -------------------------------------------------------------------
# Router
# -------------------------------------------------------------------

router = APIRouter(prefix="/events", tags=["Events"])

# List events --------------------------------------------------------

@router.get("", response_model=List[EventRead])
async def list_events(
    published: bool = False,
    on: Optional[Union[date, datetime]] = None,
    starts_on: Optional[Union[date, datetime]] = None,
    order: Optional[Literal["price", "name"]] = None,
    db: AsyncSession = Depends(get_db),
) -> List[EventRead]:
    # No filters means every event, inactive ones included.
    stmt = select(Event)
    if published:
        stmt = Event.published(stmt)
    if on is not None:
        stmt = Event.on_date(on, stmt)
    if starts_on is not None:
        stmt = Event.starts_on(starts_on, stmt)

    if order == "price":
        stmt = Event.order_by_price(stmt)
    elif order == "name":
        stmt = Event.by_name(stmt)
    else:
        stmt = stmt.order_by(Event.id)

    events = (await db.execute(stmt)).scalars().all()
    return [EventRead.model_validate(event) for event in events]

# Show event ---------------------------------------------------------

@router.get("/{event_id}", response_model=EventRead)
async def show_event(event_id: int, db: AsyncSession = Depends(get_db)) -> EventRead:
    event = await find_event(db, event_id)
    return EventRead.model_validate(event)


@router.get("/{event_id}/guests", response_model=List[UserRead])
async def list_guests(event_id: int, db: AsyncSession = Depends(get_db)) -> List[UserRead]:
    await find_event(db, event_id)
    rows = await db.execute(
        select(User)
        .join(Registration, Registration.user_id == User.id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.id)
    )
    return [UserRead.model_validate(user) for user in rows.scalars().all()]

# Create event -------------------------------------------------------

@router.post("", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    params: EventParams = Body(..., embed=True, alias="event"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # The owner always comes from the token, never from the body.
    event = Event(user_id=user.id)
    errors = await apply_params(db, event, params)
    if errors:
        logger.info("Event rejected for user %s: %s", user.id, sorted(errors))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"errors": errors},
        )

    db.add(event)
    await db.commit()
    logger.info("Event %s created by user %s", event.id, user.id)

    created = await find_event(db, event.id)
    return EventRead.model_validate(created)

# Update event -------------------------------------------------------

@router.patch("/{event_id}", response_model=EventRead)
@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    params: EventParams = Body(..., embed=True, alias="event"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    # Someone else's event is indistinguishable from a missing one.
    event = await find_event(db, event_id, owner=user)

    errors = await apply_params(db, event, params)
    if errors:
        await db.rollback()
        logger.info("Update of event %s rejected: %s", event_id, sorted(errors))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"message": UPDATE_FAILED_MESSAGE, "errors": errors},
        )

    await db.commit()
    logger.info("Event %s updated by user %s", event_id, user.id)

    updated = await find_event(db, event_id)
    return EventRead.model_validate(updated)

# Delete event (hard delete + dependents) ----------------------------

@router.delete("/{event_id}", response_model=MessageResponse)
async def destroy_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MessageResponse:
    await find_event(db, event_id)

    # Dependents first; guests and categories themselves stay.
    await db.execute(delete(Registration).where(Registration.event_id == event_id))
    await db.execute(delete(Photo).where(Photo.event_id == event_id))
    await db.execute(delete(event_categories).where(event_categories.c.event_id == event_id))
    await db.execute(delete(Event).where(Event.id == event_id))
    await db.commit()

    logger.info("Event %s deleted by user %s", event_id, user.id)
    return MessageResponse(message=DELETED_MESSAGE)

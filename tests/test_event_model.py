from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from app.models.category import Category
from app.models.event import Event
from app.models.photo import Photo
from app.models.registration import Registration
from app.models.user import User

pytestmark = pytest.mark.anyio


async def _ids(db, stmt):
    return [event.id for event in (await db.execute(stmt)).scalars().all()]


# ------------------------------------------------------------
# Validations
# ------------------------------------------------------------

def test_invalid_without_a_name():
    event = Event(name="")
    assert "name" in event.validation_errors()


def test_whitespace_name_counts_as_blank():
    event = Event(name="   ", description="Something", user_id=1)
    assert event.validation_errors() == {"name": ["can't be blank"]}


def test_invalid_without_a_description():
    event = Event(description="")
    assert "description" in event.validation_errors()


def test_invalid_with_a_description_longer_than_500_characters():
    event = Event(name="Talk", description="a" * 501, user_id=1)
    assert event.validation_errors() == {
        "description": ["is too long (maximum is 500 characters)"]
    }


def test_description_of_exactly_500_characters_is_valid():
    event = Event(name="Talk", description="a" * 500, user_id=1)
    assert event.validation_errors() == {}
    assert event.is_valid()


def test_invalid_without_an_owner():
    event = Event(name="Talk", description="About things")
    assert event.validation_errors() == {"user": ["must exist"]}


def test_owner_given_as_object_is_enough():
    event = Event(name="Talk", description="About things", user=User(email="a@b.c"))
    assert event.is_valid()


# ------------------------------------------------------------
# Bargain
# ------------------------------------------------------------

@pytest.mark.parametrize(
    "price, expected",
    [(20, True), (29.99, True), (30, False), (200, False), (None, False)],
)
def test_is_bargain_when_price_below_30(price, expected):
    assert Event(price=price).is_bargain is expected


# ------------------------------------------------------------
# Associations
# ------------------------------------------------------------

def test_belongs_to_a_user():
    user = User(email="host@user.com")
    event = Event(name="Weekly football match", user=user)
    assert event.user is user
    assert event in user.events


async def test_has_categories(db, make_event):
    categories = [Category(name="Bright"), Category(name="Clean lines"), Category(name="A Man's Touch")]
    db.add_all(categories)
    await db.commit()

    event = await make_event(categories=categories)

    loaded = (
        await db.execute(
            select(Event).where(Event.id == event.id).execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert {c.name for c in loaded.categories} == {"Bright", "Clean lines", "A Man's Touch"}
    assert sorted(loaded.category_ids) == sorted(c.id for c in categories)


async def test_has_guests_through_registrations(db, make_event, guest):
    event = await make_event()
    db.add(Registration(event_id=event.id, user_id=guest.id))
    await db.commit()

    loaded = (
        await db.execute(
            select(Event).options(selectinload(Event.guests)).where(Event.id == event.id)
        )
    ).scalar_one()
    assert [u.email for u in loaded.guests] == ["guest@user.com"]


async def test_store_cascades_dependents_when_event_row_is_deleted(db, make_event, guest):
    event = await make_event()
    db.add_all([
        Registration(event_id=event.id, user_id=guest.id),
        Photo(event_id=event.id, image_url="https://img.example.com/1.jpg"),
    ])
    await db.commit()

    await db.execute(delete(Event).where(Event.id == event.id))
    await db.commit()

    assert (await db.execute(select(Registration))).scalars().all() == []
    assert (await db.execute(select(Photo))).scalars().all() == []
    assert (await db.get(User, guest.id)) is not None


# ------------------------------------------------------------
# Scopes
# ------------------------------------------------------------

async def test_order_by_price_sorts_ascending(db, make_event):
    event3 = await make_event(price=300)
    event1 = await make_event(price=100)
    event2 = await make_event(price=200)

    assert await _ids(db, Event.order_by_price()) == [event1.id, event2.id, event3.id]


async def test_by_name_sorts_alphabetically(db, make_event):
    b_event = await make_event(name="Bs")
    c_event = await make_event(name="Cmon")
    a_event = await make_event(name="Aha")

    assert await _ids(db, Event.by_name()) == [a_event.id, b_event.id, c_event.id]


async def test_published_returns_only_active_events(db, make_event):
    published = [await make_event(active=True) for _ in range(3)]
    unpublished = [await make_event(active=False) for _ in range(2)]

    ids = set(await _ids(db, Event.published()))
    assert ids == {e.id for e in published}
    assert ids.isdisjoint(e.id for e in unpublished)


@pytest.fixture
async def date_events(make_event):
    long_event = await make_event(starts_at=datetime(2017, 6, 1), ends_at=datetime(2017, 6, 4))
    short_event = await make_event(starts_at=datetime(2017, 6, 2), ends_at=datetime(2017, 6, 2))
    return long_event, short_event


@pytest.mark.parametrize(
    "day, long_included, short_included",
    [
        (date(2017, 6, 1), True, False),
        (date(2017, 6, 2), True, True),
        (date(2017, 6, 3), True, False),
        (date(2017, 6, 4), True, False),
        (date(2017, 6, 5), False, False),
        (date(2016, 6, 3), False, False),
    ],
)
async def test_on_date_returns_events_planned_on_that_date(db, date_events, day, long_included, short_included):
    long_event, short_event = date_events
    ids = await _ids(db, Event.on_date(day))

    assert (long_event.id in ids) is long_included
    assert (short_event.id in ids) is short_included


async def test_starts_on_returns_events_starting_that_day(db, date_events):
    long_event, short_event = date_events
    ids = await _ids(db, Event.starts_on(date(2017, 6, 1)))

    assert long_event.id in ids
    assert short_event.id not in ids


async def test_starts_on_with_a_timestamp_uses_its_own_day(db, date_events):
    long_event, short_event = date_events
    ids = await _ids(db, Event.starts_on(datetime(2017, 6, 2, 11, 45, 59)))

    assert ids == [short_event.id]


async def test_starts_on_includes_late_evening_start(db, make_event):
    late = await make_event(starts_at=datetime(2017, 6, 2, 23, 59, 59), ends_at=datetime(2017, 6, 3, 2, 0))
    assert await _ids(db, Event.starts_on(date(2017, 6, 2))) == [late.id]
    assert await _ids(db, Event.starts_on(date(2017, 6, 3))) == []


async def test_scopes_compose_with_published(db, make_event):
    visible = await make_event(active=True, starts_at=datetime(2017, 6, 1), ends_at=datetime(2017, 6, 4), price=50)
    await make_event(active=False, starts_at=datetime(2017, 6, 1), ends_at=datetime(2017, 6, 4))
    cheap = await make_event(active=True, starts_at=datetime(2017, 6, 2), ends_at=datetime(2017, 6, 2), price=5)

    stmt = Event.order_by_price(Event.on_date(date(2017, 6, 2), Event.published()))
    assert await _ids(db, stmt) == [cheap.id, visible.id]

    # A scope is a plain statement and can be executed again.
    assert await _ids(db, stmt) == [cheap.id, visible.id]


def test_name_longer_than_255_characters_is_invalid():
    event = Event(name="n" * 256, description="Fine", user_id=1)
    assert event.validation_errors() == {"name": ["is too long (maximum is 255 characters)"]}
    assert Event(name="n" * 255, description="Fine", user_id=1).is_valid()


async def test_scopes_convert_aware_arguments_to_utc(db, make_event):
    late = await make_event(starts_at=datetime(2017, 6, 3, 4, 30), ends_at=datetime(2017, 6, 3, 6, 0))
    new_york = timezone(timedelta(hours=-5))

    assert await _ids(db, Event.starts_on(datetime(2017, 6, 2, 23, 30, tzinfo=new_york))) == [late.id]
    assert await _ids(db, Event.on_date(datetime(2017, 6, 3, 0, 0, tzinfo=new_york))) == [late.id]

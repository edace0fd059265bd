"""Notes service: owner-scoped CRUD plus title/date search over own and public notes.

Owner-scoped reads and writes always filter on (note id, owner id) together,
so a note belonging to someone else is indistinguishable from a missing one.
"""
import datetime
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from notes_manager.api.errors import (
    EmptySearchTerm, InvalidDate, InvalidRange, MissingDateRange, NoteNotFound,
)
from notes_manager.api.schemas import NoteCreate, NoteDto, NoteUpdate
from notes_manager.db.models import Note, User, utcnow

logger = logging.getLogger(__name__)


def to_dto(note: Note, include_owner: bool = False) -> NoteDto:
    return NoteDto(
        id=note.id,
        title=note.title,
        description=note.description,
        created_at=note.created_at,
        user_email=note.owner.email if include_owner else None,
    )


def _as_naive_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is not None:
        try:
            value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
        except OverflowError as exc:
            raise InvalidDate() from exc
    return value


def _date_filters(from_date: Optional[datetime.datetime], to_date: Optional[datetime.datetime]) -> list:
    """Build created_at predicates; `to_date` covers its whole calendar day."""
    if from_date is not None:
        from_date = _as_naive_utc(from_date)
    if to_date is not None:
        to_date = _as_naive_utc(to_date)
    if from_date is not None and to_date is not None and from_date > to_date:
        raise InvalidRange()

    filters = []
    if from_date is not None:
        filters.append(Note.created_at >= from_date)
    # the last representable day has no following midnight to stop at
    if to_date is not None and to_date.date() < datetime.date.max:
        end = datetime.datetime.combine(to_date.date(), datetime.time.min) + datetime.timedelta(days=1)
        filters.append(Note.created_at < end)
    return filters


def _title_filter(term: str):
    return Note.title.icontains(term, autoescape=True)


def _require_term(term: Optional[str]) -> str:
    if term is None or not term.strip():
        raise EmptySearchTerm()
    return term


def _require_range(from_date, to_date) -> None:
    if from_date is None and to_date is None:
        raise MissingDateRange()


def _owned(db: Session, owner_id: int, filters: list) -> List[NoteDto]:
    stmt = (
        select(Note)
        .where(Note.user_id == owner_id, *filters)
        .order_by(Note.created_at.desc(), Note.id.desc())
    )
    notes = db.execute(stmt).scalars().all()
    return [to_dto(n) for n in notes]


def _public(db: Session, filters: list) -> List[NoteDto]:
    stmt = (
        select(Note)
        .options(joinedload(Note.owner))
        .where(Note.is_public.is_(True), *filters)
        .order_by(Note.created_at.desc(), Note.id.desc())
    )
    notes = db.execute(stmt).scalars().all()
    logger.info("Found %d public notes", len(notes))
    return [to_dto(n, include_owner=True) for n in notes]


def _get_owned_note(db: Session, owner_id: int, note_id: int) -> Note:
    note = db.execute(
        select(Note).where(Note.id == note_id, Note.user_id == owner_id)
    ).scalar_one_or_none()
    if note is None:
        logger.warning("Note %s not found for user %s", note_id, owner_id)
        raise NoteNotFound()
    return note


# ==== Owner-scoped CRUD ====

# PUBLIC_INTERFACE
def list_notes(db: Session, owner_id: int) -> List[NoteDto]:
    """All notes of the owner, newest first."""
    notes = _owned(db, owner_id, [])
    logger.info("Found %d notes for user %s", len(notes), owner_id)
    return notes


# PUBLIC_INTERFACE
def get_note(db: Session, owner_id: int, note_id: int) -> NoteDto:
    """Get a single note owned by user, raises NoteNotFound if missing or not theirs."""
    return to_dto(_get_owned_note(db, owner_id, note_id))


# PUBLIC_INTERFACE
def create_note(db: Session, owner: User, data: NoteCreate) -> NoteDto:
    """Create a note for the authenticated user; the result carries the owner's email."""
    note = Note(
        title=data.title,
        description=data.description,
        created_at=utcnow(),
        user_id=owner.id,
        is_public=data.is_public,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    logger.info("Note %s created for user %s", note.id, owner.id)
    return to_dto(note, include_owner=True)


# PUBLIC_INTERFACE
def update_note(db: Session, owner_id: int, note_id: int, data: NoteUpdate) -> NoteDto:
    """Replace title and description. Owner, timestamp and visibility stay as they are."""
    note = _get_owned_note(db, owner_id, note_id)
    note.title = data.title
    note.description = data.description
    db.commit()
    db.refresh(note)
    logger.info("Note %s updated for user %s", note_id, owner_id)
    return to_dto(note)


# PUBLIC_INTERFACE
def delete_note(db: Session, owner_id: int, note_id: int) -> None:
    """Permanently remove a note."""
    note = _get_owned_note(db, owner_id, note_id)
    db.delete(note)
    db.commit()
    logger.info("Note %s deleted for user %s", note_id, owner_id)


# ==== Search ====

# PUBLIC_INTERFACE
def search_own_by_title(db: Session, owner_id: int, title_search: Optional[str]) -> List[NoteDto]:
    """Case-insensitive title substring search within the owner's notes."""
    term = _require_term(title_search)
    return _owned(db, owner_id, [_title_filter(term)])


# PUBLIC_INTERFACE
def search_own_by_date(
    db: Session,
    owner_id: int,
    from_date: Optional[datetime.datetime] = None,
    to_date: Optional[datetime.datetime] = None,
) -> List[NoteDto]:
    """Owner's notes created in [from_date, end of to_date's day); one bound is required."""
    _require_range(from_date, to_date)
    return _owned(db, owner_id, _date_filters(from_date, to_date))


# PUBLIC_INTERFACE
def search_public(
    db: Session,
    title_search: Optional[str] = None,
    from_date: Optional[datetime.datetime] = None,
    to_date: Optional[datetime.datetime] = None,
) -> List[NoteDto]:
    """Public notes of every owner matching all supplied predicates; none are required."""
    filters = _date_filters(from_date, to_date)
    if title_search is not None and title_search.strip():
        filters.append(_title_filter(title_search))
    return _public(db, filters)


# PUBLIC_INTERFACE
def search_public_by_title(db: Session, title_search: Optional[str]) -> List[NoteDto]:
    term = _require_term(title_search)
    return _public(db, [_title_filter(term)])


# PUBLIC_INTERFACE
def search_public_by_date(
    db: Session,
    from_date: Optional[datetime.datetime] = None,
    to_date: Optional[datetime.datetime] = None,
) -> List[NoteDto]:
    _require_range(from_date, to_date)
    return _public(db, _date_filters(from_date, to_date))

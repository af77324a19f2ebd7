"""
Library service layer
Book notes with annotations, want/reading lists and per-book statistics
"""

from typing import Any, Dict, List, Optional, Sequence, Type, Union
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging

from manifesto.core.database import Database
from manifesto.core.exceptions import NotFoundException, ValidationException
from manifesto.models import BookNote, NoteAnnotation, BookWant, BookReading
from manifesto.models.base import utcnow
from .schemas import AnnotationIn, NoteCreate, NoteUpdate

logger = logging.getLogger(__name__)

BookList = Union[Type[BookWant], Type[BookReading]]


class LibraryService:
    """
    Reading library for one request.
    `db` serves sequential work; `database` hands out extra sessions for
    lookups that run concurrently.
    """

    def __init__(self, db: AsyncSession, database: Database):
        self.db = db
        self.database = database

    async def _fetch_all(self, statement) -> List[Any]:
        async with self.database.session() as session:
            result = await session.execute(statement)
            return list(result.all())

    async def _fetch_scalars(self, statement) -> List[Any]:
        async with self.database.session() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def _annotations_by_note(self, note_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {note_id: [] for note_id in note_ids}
        if not note_ids:
            return grouped
        result = await self.db.execute(
            select(NoteAnnotation)
            .where(NoteAnnotation.note_id.in_(note_ids))
            .order_by(NoteAnnotation.note_id, NoteAnnotation.display_order)
        )
        for annotation in result.scalars().all():
            grouped[annotation.note_id].append(annotation.to_dict())
        return grouped

    async def _with_annotations(self, notes: Sequence[BookNote]) -> List[Dict[str, Any]]:
        annotations = await self._annotations_by_note([note.id for note in notes])
        return [{**note.to_dict(), "annotations": annotations[note.id]} for note in notes]

    # Overview

    async def get_library(self, user_id: str) -> Dict[str, Any]:
        """Want list, reading list and notes for the user, fetched concurrently"""
        wants, readings, notes = await asyncio.gather(
            self._fetch_all(
                select(BookWant.book_id, BookWant.created_at)
                .where(BookWant.user_id == user_id)
                .order_by(BookWant.created_at.desc())
            ),
            self._fetch_all(
                select(BookReading.book_id, BookReading.created_at)
                .where(BookReading.user_id == user_id)
                .order_by(BookReading.created_at.desc())
            ),
            self._fetch_scalars(
                select(BookNote)
                .where(BookNote.user_id == user_id)
                .order_by(BookNote.created_at.desc())
            ),
        )

        user_notes = await self._with_annotations(notes)
        notes_by_book: Dict[str, List[Dict[str, Any]]] = {}
        for note in user_notes:
            notes_by_book.setdefault(note["book_id"], []).append(note)

        return {
            "wantBooks": [{"book_id": row.book_id, "created_at": row.created_at.isoformat()} for row in wants],
            "readingBooks": [{"book_id": row.book_id, "created_at": row.created_at.isoformat()} for row in readings],
            "userNotes": user_notes,
            "notesByBook": notes_by_book,
        }

    # Notes

    async def get_note(self, user_id: str, note_id: str) -> BookNote:
        result = await self.db.execute(
            select(BookNote).where(BookNote.id == note_id, BookNote.user_id == user_id)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundException("Note not found")
        return note

    async def get_note_detail(self, user_id: str, note_id: str) -> Dict[str, Any]:
        note = await self.get_note(user_id, note_id)
        return (await self._with_annotations([note]))[0]

    def _add_annotations(self, note_id: str, annotations: List[AnnotationIn]) -> None:
        for position, annotation in enumerate(annotations):
            self.db.add(NoteAnnotation(
                note_id=note_id,
                content=annotation.content,
                annotation_type=annotation.annotation_type,
                display_order=position,
            ))

    async def create_note(self, user_id: str, data: NoteCreate) -> Dict[str, Any]:
        note = BookNote(
            user_id=user_id,
            book_id=data.book_id,
            content=data.content,
            page_start=data.page_start,
            page_end=data.page_end,
        )
        self.db.add(note)
        await self.db.flush()
        self._add_annotations(note.id, data.annotations)
        await self.db.commit()
        logger.info(f"Note {note.id} created on book {data.book_id} by user {user_id}")
        return (await self._with_annotations([note]))[0]

    async def update_note(self, user_id: str, note_id: str, data: NoteUpdate) -> Dict[str, Any]:
        note = await self.get_note(user_id, note_id)
        changes = data.model_dump(exclude_unset=True, exclude={"annotations"})

        page_start = changes.get("page_start", note.page_start)
        page_end = changes.get("page_end", note.page_end)
        if page_start is None:
            changes.pop("page_start", None)
        elif page_end is not None and page_end < page_start:
            raise ValidationException("page_end must not be before page_start")

        for field, value in changes.items():
            if field == "content" and value is None:
                continue
            setattr(note, field, value)
        note.updated_at = utcnow()

        if data.annotations is not None:
            await self.db.execute(delete(NoteAnnotation).where(NoteAnnotation.note_id == note.id))
            self._add_annotations(note.id, data.annotations)

        await self.db.commit()
        return {"success": True, "noteId": note.id}

    async def delete_note(self, user_id: str, note_id: str) -> Dict[str, Any]:
        note = await self.get_note(user_id, note_id)
        await self.db.execute(delete(NoteAnnotation).where(NoteAnnotation.note_id == note.id))
        await self.db.delete(note)
        await self.db.commit()
        return {"success": True, "noteId": note_id}

    async def notes_for_book(self, book_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Notes on a book with annotations; all users' ordered by page, or one user's newest first"""
        statement = select(BookNote).where(BookNote.book_id == book_id)
        if user_id is None:
            statement = statement.order_by(BookNote.page_start, BookNote.created_at)
        else:
            statement = statement.where(BookNote.user_id == user_id).order_by(BookNote.created_at.desc())
        result = await self.db.execute(statement)
        return await self._with_annotations(result.scalars().all())

    async def notes_for_books(self, book_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {book_id: [] for book_id in book_ids}
        if not book_ids:
            return grouped
        result = await self.db.execute(
            select(BookNote)
            .where(BookNote.book_id.in_(book_ids))
            .order_by(BookNote.page_start, BookNote.created_at)
        )
        for note in result.scalars().all():
            grouped[note.book_id].append(note.to_dict())
        return grouped

    # Want / reading lists

    async def _find_entry(self, model: BookList, user_id: str, book_id: str):
        result = await self.db.execute(
            select(model).where(model.user_id == user_id, model.book_id == book_id)
        )
        return result.scalar_one_or_none()

    async def add_to_list(self, model: BookList, user_id: str, book_id: str) -> Dict[str, Any]:
        label = "want list" if model is BookWant else "reading list"
        if await self._find_entry(model, user_id, book_id):
            return {"success": True, "message": f"Already in {label}"}
        self.db.add(model(user_id=user_id, book_id=book_id))
        await self.db.commit()
        return {"success": True}

    async def remove_from_list(self, model: BookList, user_id: str, book_id: str) -> Dict[str, Any]:
        await self.db.execute(delete(model).where(model.user_id == user_id, model.book_id == book_id))
        await self.db.commit()
        return {"success": True}

    async def toggle(self, model: BookList, user_id: str, book_id: str) -> Dict[str, Any]:
        """Flip membership of one list; joining it leaves the other"""
        other = BookReading if model is BookWant else BookWant
        await self.db.execute(delete(other).where(other.user_id == user_id, other.book_id == book_id))

        entry = await self._find_entry(model, user_id, book_id)
        if entry is not None:
            await self.db.delete(entry)
            active = False
        else:
            self.db.add(model(user_id=user_id, book_id=book_id))
            active = True
        await self.db.commit()

        key = "wanted" if model is BookWant else "reading"
        return {"success": True, key: active}

    # Statistics

    async def _count_by_book(self, model, book_ids: List[str]) -> Dict[str, int]:
        rows = await self._fetch_all(
            select(model.book_id, func.count())
            .where(model.book_id.in_(book_ids))
            .group_by(model.book_id)
        )
        return {row[0]: row[1] for row in rows}

    async def _user_books(self, model: BookList, user_id: str, book_ids: List[str]) -> set:
        rows = await self._fetch_scalars(
            select(model.book_id).where(model.user_id == user_id, model.book_id.in_(book_ids))
        )
        return set(rows)

    async def book_counts(self, book_ids: List[str]) -> Dict[str, Dict[str, int]]:
        if not book_ids:
            return {}
        wants, readings, notes = await asyncio.gather(
            self._count_by_book(BookWant, book_ids),
            self._count_by_book(BookReading, book_ids),
            self._count_by_book(BookNote, book_ids),
        )
        return {
            book_id: {
                "want": wants.get(book_id, 0),
                "read": readings.get(book_id, 0),
                "note": notes.get(book_id, 0),
            }
            for book_id in book_ids
        }

    async def user_status(self, user_id: str, book_ids: List[str]) -> Dict[str, Dict[str, bool]]:
        if not book_ids:
            return {}
        wanted, reading = await asyncio.gather(
            self._user_books(BookWant, user_id, book_ids),
            self._user_books(BookReading, user_id, book_ids),
        )
        return {
            book_id: {"wanted": book_id in wanted, "reading": book_id in reading}
            for book_id in book_ids
        }

    async def book_stats(self, book_ids: List[str], user_id: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Counts for every book plus the caller's own list membership"""
        if not book_ids:
            return {}
        if user_id:
            counts, status = await asyncio.gather(
                self.book_counts(book_ids),
                self.user_status(user_id, book_ids),
            )
        else:
            counts, status = await self.book_counts(book_ids), {}

        return {
            book_id: {
                "wantCount": counts[book_id]["want"],
                "readCount": counts[book_id]["read"],
                "noteCount": counts[book_id]["note"],
                "userWants": status.get(book_id, {}).get("wanted", False),
                "userReadings": status.get(book_id, {}).get("reading", False),
            }
            for book_id in book_ids
        }

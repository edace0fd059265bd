import datetime
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, Path, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from notes_manager.api import auth_service, notes_service
from notes_manager.api.config import Settings, configure_logging, get_settings
from notes_manager.api.errors import register_exception_handlers
from notes_manager.api.schemas import (
    LoginRequest, MessageResponse, NoteCreate, NoteDto, NoteUpdate,
    RegisterRequest, SessionResponse, UpdateProfileRequest, UserInfo,
)
from notes_manager.api.security import get_current_user, get_current_user_id
from notes_manager.db.db import get_db, init_db
from notes_manager.db.models import User

logger = logging.getLogger(__name__)

app_settings = get_settings()

# ids beyond a signed 64-bit integer cannot name a stored note
NOTE_ID_MAX = 2 ** 63 - 1


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(app_settings.log_level)
    init_db()
    logger.info("Notes Manager API started")
    yield


openapi_tags = [
    {"name": "auth", "description": "Registration, login and profile"},
    {"name": "notes", "description": "Create, update, view, and delete your notes"},
    {"name": "public", "description": "Anonymous search over public notes"},
]

app = FastAPI(
    title="Notes Manager API",
    description="Personal notes with JWT authentication and public note search.",
    version="1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/", tags=["health"])
def health_check():
    """Health check root."""
    return {"message": "Healthy"}

# --- Authentication Endpoints ---

# PUBLIC_INTERFACE
@app.post("/api/auth/register", response_model=SessionResponse, tags=["auth"], summary="Register a new user")
def register(data: RegisterRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Register a new user and return a session. Email must be unique."""
    return auth_service.register(db, data, settings)


# PUBLIC_INTERFACE
@app.post("/api/auth/login", response_model=SessionResponse, tags=["auth"], summary="Obtain JWT token")
def login(data: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Authenticate with email and password."""
    return auth_service.login(db, data, settings)


# PUBLIC_INTERFACE
@app.get("/api/auth/user-info", response_model=UserInfo, tags=["auth"], summary="Get current user info")
def user_info(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return auth_service.get_profile(db, user_id)


# PUBLIC_INTERFACE
@app.put("/api/auth/update-profile", response_model=MessageResponse, tags=["auth"], summary="Update profile")
def update_profile(
    data: UpdateProfileRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Edit first name, last name and description."""
    auth_service.update_profile(db, user_id, data)
    return {"message": "Profile updated successfully"}

# --- Public Notes Endpoints ---
# Declared before /api/notes/{note_id} so the literal paths win.

# PUBLIC_INTERFACE
@app.get("/api/notes/public", response_model=List[NoteDto], tags=["public"], summary="List public notes")
def list_public_notes(
    title_search: Optional[str] = Query(None, alias="titleSearch"),
    from_date: Optional[datetime.datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime.datetime] = Query(None, alias="toDate"),
    db: Session = Depends(get_db),
):
    """Public notes filtered by any combination of title and date range."""
    return notes_service.search_public(db, title_search, from_date, to_date)


# PUBLIC_INTERFACE
@app.get("/api/notes/public/search-by-title", response_model=List[NoteDto], tags=["public"])
def search_public_by_title(
    title_search: Optional[str] = Query(None, alias="titleSearch"),
    db: Session = Depends(get_db),
):
    return notes_service.search_public_by_title(db, title_search)


# PUBLIC_INTERFACE
@app.get("/api/notes/public/search-by-date", response_model=List[NoteDto], tags=["public"])
def search_public_by_date(
    from_date: Optional[datetime.datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime.datetime] = Query(None, alias="toDate"),
    db: Session = Depends(get_db),
):
    return notes_service.search_public_by_date(db, from_date, to_date)

# --- Notes Endpoints ---

# PUBLIC_INTERFACE
@app.get("/api/notes/search-by-title", response_model=List[NoteDto], response_model_exclude_none=True,
         tags=["notes"], summary="Search my notes by title")
def search_own_by_title(
    title_search: Optional[str] = Query(None, alias="titleSearch"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes_service.search_own_by_title(db, current_user.id, title_search)


# PUBLIC_INTERFACE
@app.get("/api/notes/search-by-date", response_model=List[NoteDto], response_model_exclude_none=True,
         tags=["notes"], summary="Search my notes by creation date")
def search_own_by_date(
    from_date: Optional[datetime.datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime.datetime] = Query(None, alias="toDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notes_service.search_own_by_date(db, current_user.id, from_date, to_date)


# PUBLIC_INTERFACE
@app.get("/api/notes", response_model=List[NoteDto], response_model_exclude_none=True,
         tags=["notes"], summary="List my notes")
def list_notes(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """List the caller's notes, newest first."""
    return notes_service.list_notes(db, current_user.id)


# PUBLIC_INTERFACE
@app.post("/api/notes", response_model=NoteDto, tags=["notes"], summary="Create a new note")
def create_note(data: NoteCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Create note belonging to authenticated user."""
    return notes_service.create_note(db, current_user, data)


# PUBLIC_INTERFACE
@app.get("/api/notes/{note_id}", response_model=NoteDto, response_model_exclude_none=True,
         tags=["notes"], summary="Get specific note")
def get_note(
    note_id: int = Path(..., ge=1, le=NOTE_ID_MAX),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a single note by ID (must be owned by the current user)."""
    return notes_service.get_note(db, current_user.id, note_id)


# PUBLIC_INTERFACE
@app.put("/api/notes/{note_id}", response_model=NoteDto, response_model_exclude_none=True,
         tags=["notes"], summary="Update a note")
def update_note(
    data: NoteUpdate,
    note_id: int = Path(..., ge=1, le=NOTE_ID_MAX),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Edit an existing note (must belong to user)."""
    return notes_service.update_note(db, current_user.id, note_id, data)


# PUBLIC_INTERFACE
@app.delete("/api/notes/{note_id}", response_model=MessageResponse, tags=["notes"], summary="Delete a note")
def delete_note(
    note_id: int = Path(..., ge=1, le=NOTE_ID_MAX),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete one of your notes."""
    notes_service.delete_note(db, current_user.id, note_id)
    return {"message": "Note deleted successfully"}

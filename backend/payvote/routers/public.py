from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from payvote.core.settings import Settings
from payvote.db import get_db
from payvote.deps import app_settings
from payvote.models import SettingsResponse, TallyResponse
from payvote.services import ledger

router = APIRouter(tags=["public"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Backend up - try /api/health, /api/settings, /api/tally"


# ---- Health endpoints (used by tests, curl and the hosting platform) ----
@router.get("/health")
@router.get("/api/health")
def health():
    return {"ok": True}


@router.get("/api/settings", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db), settings: Settings = Depends(app_settings)):
    return ledger.read_settings(db, settings)


@router.get("/api/tally", response_model=TallyResponse)
def get_tally(db: Session = Depends(get_db)):
    return {"tally": ledger.read_tally(db)}

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from payvote.db import get_db
from payvote.models import AdminSettingsPayload
from payvote.security import require_admin
from payvote.services import ledger

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/settings", dependencies=[Depends(require_admin)])
def update_settings(payload: AdminSettingsPayload, db: Session = Depends(get_db)):
    ledger.update_settings(db, question=payload.question, glow=payload.glow)
    return {"ok": True}

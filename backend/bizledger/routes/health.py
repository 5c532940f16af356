from fastapi import APIRouter, Depends

from bizledger.core.database import Database
from bizledger.core.deps import get_database


router = APIRouter()


@router.get("/health")
def health_check(db: Database = Depends(get_database)):
    db.query("SELECT 1").single()
    return {"status": "ok", "database": "ok"}

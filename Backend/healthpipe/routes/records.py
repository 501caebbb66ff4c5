from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from healthpipe.dependencies import get_db
from healthpipe.db.crud import records as records_crud
from healthpipe.db.schemas import DeleteResult, StoreStats
from healthpipe.errors import UnparseableTimestamp

router = APIRouter(prefix="/records", tags=["Records"])

@router.get("")
def get_records_by_date_range(start: str, end: str, db: Session = Depends(get_db)):
    try:
        return records_crud.get_records_by_date_range(db, start=start, end=end)
    except UnparseableTimestamp as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/stats", response_model=StoreStats)
def get_stats(db: Session = Depends(get_db)):
    return records_crud.get_stats(db)


@router.get("/source/{source}")
def get_records_by_source(source: str, db: Session = Depends(get_db)):
    return records_crud.get_records_by_source(db, source=source)


@router.delete("/source/{source}", response_model=DeleteResult)
def delete_source(source: str, db: Session = Depends(get_db)):
    result = records_crud.delete_by_source(db, source=source)
    if not result.deleted_records:
        raise HTTPException(status_code=404, detail=f"No records for source {source}")
    return result

"""FastAPI backend for the expense ledger."""
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, UploadFile, File, Query

from expense_ledger.api.ledger_service import LedgerService
from expense_ledger.ingestion.archive_loader import DecodeError
from expense_ledger.intelligence.analytics import TransactionFilter


# Global service instance (for production use)
_service: Optional[LedgerService] = None


def get_service() -> LedgerService:
    """Dependency to get the ledger service."""
    global _service
    if _service is None:
        _service = LedgerService()
        _service.__enter__()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    yield
    # Cleanup on shutdown
    global _service
    if _service is not None:
        _service.__exit__(None, None, None)
        _service = None


app = FastAPI(
    title="Expense Ledger API",
    description="Budget reconciliation and spending analytics for finance app exports",
    version="1.0.0",
    lifespan=lifespan
)


# === API Endpoints ===

@app.post("/api/upload")
async def upload_archive(
    file: UploadFile = File(...),
    service: LedgerService = Depends(get_service)
):
    """Replace the ledger with the contents of an uploaded export ZIP."""
    content = await file.read()
    try:
        result = service.import_bytes(content, filename=file.filename)
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result


@app.get("/api/summary")
def get_summary(service: LedgerService = Depends(get_service)):
    """Get headline totals for the loaded ledger."""
    return service.get_summary()


@app.get("/api/transactions")
def get_transactions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    type: Optional[str] = Query(None, description="INCOME, EXPENSE or ALL"),
    category: Optional[str] = None,
    payment_method: Optional[str] = None,
    search: Optional[str] = Query(None, description="Search in description and notes"),
    start_date: Optional[int] = Query(None, description="Epoch milliseconds, inclusive"),
    end_date: Optional[int] = Query(None, description="Epoch milliseconds, inclusive"),
    sort_by: str = Query("date", pattern="^(date|amount|description)$"),
    sort_dir: str = Query("desc", pattern="^(asc|desc)$"),
    service: LedgerService = Depends(get_service)
):
    """Get paginated list of active transactions with optional filtering."""
    filters = TransactionFilter(
        type=type,
        category_id=category,
        payment_method=payment_method,
        search_term=search,
        start_date=start_date,
        end_date=end_date,
    )
    return service.get_transactions(
        filters,
        sort_by=sort_by,
        sort_dir=sort_dir,
        limit=limit,
        offset=offset
    )


@app.get("/api/budgets")
def get_budgets(service: LedgerService = Depends(get_service)):
    """Get budgets with spend and status reconciled against transactions."""
    return service.get_budgets()


@app.get("/api/payment-reminders")
def get_payment_reminders(service: LedgerService = Depends(get_service)):
    """Get payment reminders."""
    return service.get_payment_reminders()


@app.get("/api/analytics")
def get_analytics(service: LedgerService = Depends(get_service)):
    """Get the full analytics snapshot."""
    analytics = service.get_analytics()
    if analytics is None:
        raise HTTPException(status_code=404, detail="No data loaded")
    return analytics


@app.post("/api/analytics/refresh")
def refresh_analytics(service: LedgerService = Depends(get_service)):
    """Recompute the analytics snapshot from the current ledger."""
    analytics = service.ledger.refresh_analytics()
    if analytics is None:
        raise HTTPException(status_code=404, detail="No data loaded")
    return analytics


@app.get("/api/recurring")
def get_recurring(service: LedgerService = Depends(get_service)):
    """Get detected recurring expenses."""
    return service.get_recurring()


@app.get("/api/imports")
def get_imports(
    limit: int = Query(20, ge=1, le=100),
    service: LedgerService = Depends(get_service)
):
    """Get recent archive imports."""
    return service.get_imports(limit)


@app.post("/api/admin/reset")
def reset_all_data(service: LedgerService = Depends(get_service)):
    """Reset all data - clear the ledger, its persisted copy and the import history.

    This is a destructive operation and cannot be undone.
    """
    counts = service.reset()
    return {
        "success": True,
        "message": "All data has been reset",
        "deleted": counts
    }

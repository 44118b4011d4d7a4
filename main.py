import logging
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from auth import SESSION_COOKIE, get_current_viewer
from categories import category_choices
from config import get_settings
from csrf import CSRF_FIELD, generate_csrf_token, validate_csrf_token
from database import SessionLocal, create_schema
from gateway import GatewayError, TransactionNotFound
from models import TransactionType
from periods import MONTH_LABELS, MonthPeriod, resolve_period, year_choices
from schemas import PeriodSummaryOut, TransactionIn, TransactionOut
from services import MetricsService, PartialSeriesFailure, TransactionService
from visibility import Viewer

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Duo Rico")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    if get_settings().create_schema:
        create_schema()


def get_viewer(request: Request, db: Session = Depends(get_db)) -> Viewer:
    token = request.cookies.get(SESSION_COOKIE)
    authorization = request.headers.get("Authorization", "")
    if not token and authorization.startswith("Bearer "):
        token = authorization[len("Bearer ") :]
    viewer = get_current_viewer(db, token)
    if viewer is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return viewer


def period_from_request(request: Request) -> MonthPeriod:
    try:
        return resolve_period(
            request.query_params.get("month"), request.query_params.get("year")
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def type_from_request(request: Request) -> Optional[TransactionType]:
    type_param = request.query_params.get("type")
    if not type_param:
        return None
    try:
        return TransactionType(type_param)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Unknown transaction type") from exc


def transaction_payload_from_form(form) -> TransactionIn:
    return TransactionIn(
        type=form["type"],
        description=form["description"],
        amount=form["amount"],
        category=form["category"],
        month=form["month"],
        year=form["year"],
        is_recurring=form.get("is_recurring") in ("on", "true", "1"),
        installments=form.get("installments") or None,
    )


async def checked_form(request: Request, viewer: Viewer):
    form = await request.form()
    if not validate_csrf_token(form.get(CSRF_FIELD), viewer.id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return form


def gateway_failure(exc: GatewayError) -> HTTPException:
    logger.warning(f"request_failed: error={type(exc).__name__} detail={exc}")
    if isinstance(exc, TransactionNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PartialSeriesFailure):
        return HTTPException(
            status_code=502,
            detail={
                "message": str(exc),
                "failed_installments": exc.failed_installments,
                "saved": len(exc.saved),
            },
        )
    return HTTPException(status_code=502, detail=str(exc))


def serialize(records) -> list[dict]:
    return [TransactionOut.from_record(r).model_dump(mode="json") for r in records]


@app.get("/api/session")
def api_session(viewer: Viewer = Depends(get_viewer)):
    return {
        "viewer": {"id": viewer.id, "couple_id": viewer.couple_id},
        "csrf_token": generate_csrf_token(viewer.id),
    }


@app.get("/api/catalog")
def api_catalog():
    return {
        "categories": {
            txn_type.value: [
                {"value": code, "label": label}
                for code, label in category_choices(txn_type)
            ]
            for txn_type in TransactionType
        },
        "months": [
            {"value": number, "label": label} for number, label in MONTH_LABELS.items()
        ],
        "years": year_choices(),
    }


@app.get("/api/transactions")
def api_transactions(
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    txn_type = type_from_request(request)
    try:
        items = TransactionService(db, viewer).list(period, txn_type)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    totals = {
        kind.value: str(
            sum((item.amount for item in items if item.type == kind), Decimal("0"))
        )
        for kind in TransactionType
    }
    return {
        "period": period.as_dict(),
        "items": serialize(items),
        "totals": totals,
        "total": totals[txn_type.value] if txn_type else None,
    }


@app.get("/api/transactions/{transaction_id}")
def api_transaction(
    transaction_id: str,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    try:
        record = TransactionService(db, viewer).get(transaction_id)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return TransactionOut.from_record(record).model_dump(mode="json")


@app.post("/api/transactions")
async def create_transaction(
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, viewer)
    try:
        data = transaction_payload_from_form(form)
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        created = TransactionService(db, viewer).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return JSONResponse(status_code=201, content={"items": serialize(created)})


@app.post("/api/transactions/{transaction_id}/edit")
async def edit_transaction(
    transaction_id: str,
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, viewer)
    try:
        data = transaction_payload_from_form(form)
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        updated = TransactionService(db, viewer).update(transaction_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return {"items": serialize(updated)}


@app.post("/api/transactions/{transaction_id}/delete")
async def delete_transaction(
    transaction_id: str,
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    await checked_form(request, viewer)
    try:
        TransactionService(db, viewer).delete(transaction_id)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return Response(status_code=204)


@app.post("/api/transactions/{transaction_id}/delete-future")
async def delete_future_transactions(
    transaction_id: str,
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    await checked_form(request, viewer)
    try:
        deleted = TransactionService(db, viewer).delete_future(transaction_id)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return {"deleted": deleted}


@app.get("/api/dashboard")
def api_dashboard(
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    try:
        summary = MetricsService(db, viewer).summary(period)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return PeriodSummaryOut.from_summary(summary).model_dump(mode="json")


@app.get("/api/category-breakdown")
def api_category_breakdown(
    request: Request,
    viewer: Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    period = period_from_request(request)
    txn_type = type_from_request(request) or TransactionType.expense
    try:
        items = MetricsService(db, viewer).category_breakdown(period, txn_type)
    except GatewayError as exc:
        raise gateway_failure(exc) from exc
    return {
        "period": period.as_dict(),
        "type": txn_type.value,
        "items": [{**item, "amount": str(item["amount"])} for item in items],
    }


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()

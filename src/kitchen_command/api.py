"""FastAPI router configuration for the record store."""
from __future__ import annotations

import json
import logging
from typing import Union

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud, schemas
from .config import Settings, get_settings
from .database import get_session
from .reports import NO_DATA_MESSAGE, SalesReportGenerator

logger = logging.getLogger(__name__)

router = APIRouter()


def provide_settings() -> Settings:
    """Dependency returning the active :class:`Settings` instance."""

    return get_settings()


def provide_report_generator(
    settings: Settings = Depends(provide_settings),
) -> SalesReportGenerator:
    return SalesReportGenerator.from_settings(settings)


@router.get("/health", response_model=schemas.HealthStatus, tags=["system"])
async def health_check(settings: Settings = Depends(provide_settings)) -> schemas.HealthStatus:
    return schemas.HealthStatus(environment=settings.environment)


@router.get("/products", response_model=schemas.ProductList, tags=["products"])
async def list_products(session: AsyncSession = Depends(get_session)) -> schemas.ProductList:
    products = await crud.list_products(session)
    return schemas.ProductList(
        products=[schemas.ProductOut.model_validate(product) for product in products]
    )


@router.post(
    "/products",
    response_model=schemas.ProductEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["products"],
)
async def create_product(
    payload: schemas.ProductCreate, session: AsyncSession = Depends(get_session)
) -> schemas.ProductEnvelope:
    try:
        product = await crud.create_product(session, payload)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Product could not be stored"
        ) from exc
    return schemas.ProductEnvelope(product=schemas.ProductOut.model_validate(product))


@router.patch("/products", response_model=schemas.ProductEnvelope, tags=["products"])
async def update_product(
    payload: schemas.ProductUpdate,
    product_id: str | None = Query(default=None, alias="id"),
    session: AsyncSession = Depends(get_session),
) -> schemas.ProductEnvelope:
    if not product_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing id")
    try:
        product = await crud.get_product(session, product_id)
    except NoResultFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    product = await crud.update_product(session, product, payload)
    await session.commit()
    await session.refresh(product)
    return schemas.ProductEnvelope(product=schemas.ProductOut.model_validate(product))


@router.delete("/products", response_model=schemas.DeleteResult, tags=["products"])
async def delete_product(
    product_id: str | None = Query(default=None, alias="id"),
    session: AsyncSession = Depends(get_session),
) -> schemas.DeleteResult:
    if not product_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing id")
    deleted = await crud.delete_product(session, product_id)
    await session.commit()
    return schemas.DeleteResult(deleted=deleted)


@router.get("/sales", response_model=schemas.SaleList, tags=["sales"])
async def list_sales(session: AsyncSession = Depends(get_session)) -> schemas.SaleList:
    sales = await crud.list_sales(session)
    return schemas.SaleList(sales=[schemas.SaleOut.model_validate(sale) for sale in sales])


@router.post(
    "/sales",
    response_model=list[schemas.SaleOut],
    status_code=status.HTTP_201_CREATED,
    tags=["sales"],
)
async def create_sales(
    payload: Union[list[schemas.SaleCreate], schemas.SaleCreate],
    session: AsyncSession = Depends(get_session),
) -> list[schemas.SaleOut]:
    payloads = payload if isinstance(payload, list) else [payload]
    try:
        sales = await crud.create_sales(session, payloads)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Sale could not be stored"
        ) from exc
    return [schemas.SaleOut.model_validate(sale) for sale in sales]


@router.delete("/sales", response_model=schemas.DeleteResult, tags=["sales"])
async def delete_sales(
    sale_id: str | None = Query(default=None, alias="id"),
    product_id: str | None = Query(default=None, alias="productId"),
    session: AsyncSession = Depends(get_session),
) -> schemas.DeleteResult:
    if not sale_id and not product_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing id or productId"
        )
    deleted = await crud.delete_sales(session, sale_id=sale_id or None, product_id=product_id or None)
    await session.commit()
    return schemas.DeleteResult(deleted=deleted)


@router.post("/reports/sales", response_model=schemas.ReportResponse, tags=["reports"])
async def generate_sales_report(
    payload: schemas.ReportRequest,
    generator: SalesReportGenerator = Depends(provide_report_generator),
) -> schemas.ReportResponse:
    try:
        records = json.loads(payload.sales_data)
    except ValueError:
        records = None
    if isinstance(records, list) and not records:
        return schemas.ReportResponse(report_summary=NO_DATA_MESSAGE)
    summary = await generator.generate(payload.start_date, payload.end_date, payload.sales_data)
    return schemas.ReportResponse(report_summary=summary)


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": messages})


async def _server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Server error"}
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name)
    app.dependency_overrides[provide_settings] = lambda: settings
    app.add_exception_handler(HTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _server_error_handler)
    app.include_router(router)
    return app


app = create_app()


__all__ = ["app", "create_app"]

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.exceptions import (
    AlreadyReturned,
    InsufficientStock,
    InvalidOwnership,
    InvalidQuantity,
    InvalidRecipe,
    InvalidTransfer,
    InventoryError,
    NoRecipe,
    NotFound,
    ReturnConflict,
)
from db.database import create_db_and_tables
from routers.bars import router as bars_router
from routers.cocktails import router as cocktails_router
from routers.consignment import router as consignment_router
from routers.dashboard import router as dashboard_router
from routers.drinks import router as drinks_router
from routers.events import router as events_router
from routers.recipes import router as recipes_router
from routers.sales import router as sales_router
from routers.stock import router as stock_router
from routers.suppliers import router as suppliers_router
from services.notifications import SaleBroadcaster, build_sale_notifier

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFound: 404,
    NoRecipe: 422,
    InsufficientStock: 409,
    InvalidOwnership: 400,
    AlreadyReturned: 409,
    InvalidRecipe: 400,
    InvalidTransfer: 400,
    InvalidQuantity: 400,
    ReturnConflict: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await create_db_and_tables()
    app.state.sale_broadcaster = SaleBroadcaster(maxsize=settings.sale_queue_maxsize)
    app.state.sale_notifier = build_sale_notifier(settings, app.state.sale_broadcaster)
    yield
    await app.state.sale_notifier.aclose()


app = FastAPI(
    title="Bar Stock API",
    description="Event bar inventory: recipe-driven depletion for POS sales and consignment returns",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    if status_code >= 409:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Catalog
app.include_router(drinks_router, prefix="/drinks", tags=["drinks"])
app.include_router(cocktails_router, prefix="/cocktails", tags=["cocktails"])
app.include_router(suppliers_router, prefix="/suppliers", tags=["suppliers"])

# Events and bars
app.include_router(events_router, prefix="/events", tags=["events"])
app.include_router(bars_router, prefix="/bars", tags=["bars"])
app.include_router(recipes_router, tags=["recipes"])

# Stock, sales and returns
app.include_router(stock_router, prefix="/bars", tags=["stock"])
app.include_router(sales_router, prefix="/bars", tags=["sales"])
app.include_router(consignment_router, tags=["consignment"])

# Live dashboards
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)

import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import settings
from app.db.session import create_db_and_tables

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Storefront for the EduSpher learning platform"
)

@app.get("/")
def read_root():
    return {"message": "Welcome to the EduSpher storefront. Visit /docs for Swagger UI."}

from app.routers import cart, payment, locale

app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(payment.router, prefix="/api/payment", tags=["payment"])
app.include_router(payment.pages_router, prefix="/payment", tags=["payment"])
app.include_router(locale.router, prefix="/api/locale", tags=["locale"])

# Add CORS
from fastapi.middleware.cors import CORSMiddleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

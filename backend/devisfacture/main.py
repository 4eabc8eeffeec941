"""
Module principal de l'application FastAPI devisfacture.

Configure le logging, le CORS, les gestionnaires d'erreurs (corps `{"error": ...}`)
et monte les routeurs de chaque module sous le préfixe `/api/v1`.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devisfacture import __version__
from devisfacture.accounting.router import accounting_router
from devisfacture.auth.router import auth_router
from devisfacture.billing.router import billing_router
from devisfacture.clients.router import router as client_router
from devisfacture.config import settings
from devisfacture.core.exceptions import DomainException
from devisfacture.core.schemas import ErrorResponse
from devisfacture.dashboard.router import router as dashboard_router
from devisfacture.database import create_tables
from devisfacture.invoices.router import invoice_router
from devisfacture.payments.router import payment_router
from devisfacture.pdf.router import pdf_router
from devisfacture.products.router import product_router
from devisfacture.profiles.router import router as profile_router
from devisfacture.quotes.router import quote_router
from devisfacture.stock_movements.router import router as stock_movement_router
from devisfacture.subscriptions.router import router as subscription_router
from devisfacture.suppliers.router import router as supplier_router

# Configurer le logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Tables vérifiées, application prête.")
    yield


app = FastAPI(
    title="Devis & Factures API",
    description="API de gestion des devis, factures, paiements et stocks pour artisans.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Content-Disposition"],
)

# ======================================================
# Gestionnaires d'erreurs
# ======================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=str(exc.detail)).model_dump(), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Paramètres invalides.")
    logger.info(f"Requête invalide sur {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=f"{location}: {message}" if location else message).model_dump(),
    )


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    # Filet de sécurité pour les exceptions non traduites par un routeur
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.message).model_dump())

# ======================================================
# Inclure les routeurs
# ======================================================
prefix = settings.API_V1_PREFIX

app.include_router(auth_router, prefix=f"{prefix}/auth")
app.include_router(profile_router, prefix=f"{prefix}/profiles")
app.include_router(subscription_router, prefix=f"{prefix}/subscriptions")
app.include_router(billing_router, prefix=f"{prefix}/billing")
app.include_router(dashboard_router, prefix=f"{prefix}/dashboard")

app.include_router(client_router, prefix=f"{prefix}/clients")
app.include_router(supplier_router, prefix=f"{prefix}/suppliers")
app.include_router(product_router, prefix=f"{prefix}/products")

app.include_router(quote_router, prefix=f"{prefix}/quotes")
app.include_router(invoice_router, prefix=f"{prefix}/invoices")
app.include_router(payment_router, prefix=f"{prefix}/invoices")
app.include_router(pdf_router, prefix=f"{prefix}/pdf")

# Modules premium
app.include_router(stock_movement_router, prefix=f"{prefix}/stock-movements")
app.include_router(accounting_router, prefix=f"{prefix}/accounting")


@app.get("/health", tags=["Santé"])
async def health_check():
    return {"status": "ok", "version": __version__}

"""
Gestionnaires d’exceptions.
- HTTPException: body JSON FastAPI standard {"detail": ...}.
- CheckoutError: body {"detail", "code"}, statut HTTP choisi d'après le code de l'erreur.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.checkout.errors import CheckoutError

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "validation_error": 400,
    "payment_declined": 402,
    "invalid_state": 409,
    "gateway_error": 502,
    "gateway_not_configured": 503,
    "persistence_error": 503,
}

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_json(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(CheckoutError)
    async def checkout_error_json(request: Request, exc: CheckoutError):
        status_code = STATUS_BY_CODE.get(exc.code, 500)
        if status_code >= 500:
            logger.warning("checkout error path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code})

from fastapi import APIRouter, Request

from app.services.locale import format_price, resolve_locale

router = APIRouter()

@router.get("")
def read_locale(request: Request):
    """Language, text direction and currency for this request"""
    context = resolve_locale(request.cookies, request.headers)
    return {
        "language": context.language,
        "direction": context.direction,
        "currency": context.currency,
    }

@router.get("/price")
def read_price(amount: float, request: Request):
    """Format an amount in the request's currency"""
    context = resolve_locale(request.cookies, request.headers)
    return {"amount": amount, "formatted": format_price(amount, context.currency)}

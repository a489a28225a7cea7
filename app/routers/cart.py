import uuid
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.cart import CartItem, CartItemCreate, CartKey, ItemType
from app.routers.auth import get_current_session, get_current_session_optional, get_server_cart_client
from app.services.cart import LocalCartStore, item_from_record
from app.services.events import CartChanged
from app.services.reconciler import CartReconciler, sync_to_server
from app.services.server_cart import ServerCartClient, ServerCartError
from app.services.session import SessionPayload, is_authenticated
from app.services.storage import SqlStorage

router = APIRouter()

VISITOR_COOKIE_MAX_AGE = 60 * 60 * 24 * 365  # 1 year

def serialize_items(items: List[CartItem]) -> List[dict]:
    return [item.model_dump(mode="json") for item in items]

def serialize_keys(keys: List[CartKey]) -> List[dict]:
    return [{"item_type": item_type.value, "item_id": item_id} for item_type, item_id in keys]

def cart_payload(store: LocalCartStore) -> dict:
    items = store.get_cart()
    return {
        "items": serialize_items(items),
        "count": len(items),
        "total": sum(item.price for item in items),
        "synced": store.is_synced(),
    }

def get_visitor_id(request: Request, response: Response) -> str:
    """Anonymous browser identity that scopes the local cart"""
    visitor_id = request.cookies.get(settings.VISITOR_COOKIE)
    if not visitor_id:
        visitor_id = uuid.uuid4().hex
        response.set_cookie(
            settings.VISITOR_COOKIE,
            visitor_id,
            max_age=VISITOR_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
        )
    return visitor_id

def get_local_store(
    response: Response,
    db: Session = Depends(get_db),
    visitor_id: str = Depends(get_visitor_id),
):
    store = LocalCartStore(SqlStorage(db, visitor_id))

    # Keeps the header badge cookie in step with every mutation
    def update_count_cookie(event: CartChanged):
        response.set_cookie(settings.CART_COUNT_COOKIE, str(event.item_count), samesite="lax")

    unsubscribe = store.events.subscribe(update_count_cookie)
    try:
        yield store
    finally:
        unsubscribe()

def get_reconciler(
    store: LocalCartStore = Depends(get_local_store),
    client: ServerCartClient = Depends(get_server_cart_client),
) -> CartReconciler:
    was_authenticated = store.storage.get(settings.CART_AUTH_KEY) == "true"
    return CartReconciler(store, client, was_authenticated=was_authenticated)

def apply_auth_state(reconciler: CartReconciler, session: Optional[SessionPayload]) -> None:
    """Run the login merge on a logged-out -> logged-in transition and remember the new state"""
    authenticated = is_authenticated(session)
    previously_authenticated = reconciler.was_authenticated
    reconciler.on_auth_state(authenticated)
    if authenticated != previously_authenticated:
        reconciler.store.storage.set(settings.CART_AUTH_KEY, "true" if authenticated else "false")

def push_if_authorized(store: LocalCartStore, client: ServerCartClient) -> None:
    # Runs inline, the db session closes with the response
    # Best effort: the local cart stays authoritative when this fails
    if client.is_authorized:
        sync_to_server(store, client)

@router.get("")
def get_server_cart(client: ServerCartClient = Depends(get_server_cart_client)):
    """Get the account's cart from the backend"""
    try:
        items = client.fetch_cart()
    except ServerCartError as e:
        return JSONResponse(status_code=500, content={"error": str(e), "items": []})
    return {"items": serialize_items(items)}

@router.post("/sync")
def sync_server_cart(
    body: dict = Body(...),
    session: SessionPayload = Depends(get_current_session),
    client: ServerCartClient = Depends(get_server_cart_client),
):
    """Push a full item list to the backend cart"""
    items = body.get("items")
    if not isinstance(items, list):
        raise HTTPException(status_code=400, detail="Invalid items format")
    try:
        cart = [item_from_record(record) for record in items]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid cart item: {e}")

    try:
        result = client.push_cart(cart)
    except ServerCartError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not result.authorized:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return {
        "success": True,
        "message": result.message,
        "removedItems": serialize_keys(result.removed_items),
    }

@router.get("/local")
def get_local_cart(
    reconciler: CartReconciler = Depends(get_reconciler),
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
):
    """Get the visitor's cart, merging with the server cart right after login"""
    apply_auth_state(reconciler, session)
    return cart_payload(reconciler.store)

@router.post("/local")
def add_to_local_cart(
    item: CartItemCreate,
    reconciler: CartReconciler = Depends(get_reconciler),
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
):
    """Add a course or product to the visitor's cart"""
    apply_auth_state(reconciler, session)
    store = reconciler.store
    if not store.add_item(item):
        raise HTTPException(status_code=409, detail="Already in cart")
    push_if_authorized(store, reconciler.client)
    return cart_payload(store)

@router.delete("/local/{item_type}/{item_id}")
def remove_from_local_cart(
    item_type: ItemType,
    item_id: int,
    reconciler: CartReconciler = Depends(get_reconciler),
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
):
    """Remove an item from the visitor's cart"""
    apply_auth_state(reconciler, session)
    store = reconciler.store
    store.remove_item(item_id, item_type)
    push_if_authorized(store, reconciler.client)
    return cart_payload(store)

@router.delete("/local")
def clear_local_cart(
    reconciler: CartReconciler = Depends(get_reconciler),
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
):
    """Clear the visitor's cart"""
    apply_auth_state(reconciler, session)
    store = reconciler.store
    store.clear()
    push_if_authorized(store, reconciler.client)
    return cart_payload(store)

@router.post("/merge")
def merge_cart(
    session: SessionPayload = Depends(get_current_session),
    reconciler: CartReconciler = Depends(get_reconciler),
):
    """Merge the visitor's cart with the account's server cart"""
    final = reconciler.reconcile()
    reconciler.store.storage.set(settings.CART_AUTH_KEY, "true")
    payload = cart_payload(reconciler.store)
    payload["merged"] = final is not None
    payload["removedItems"] = serialize_keys(reconciler.last_removed if final is not None else [])
    return payload

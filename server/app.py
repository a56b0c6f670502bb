from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from telegram import Update
from telegram.ext import Application

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"
MAX_PAGE_SIZE = 50


class PropertyOut(BaseModel):
    id: str
    name: str
    location: str
    price: float
    tokens: int
    property_type: str
    description: Optional[str] = None
    images: List[str] = []
    submitted_at: Optional[str] = None
    status: str


def _public_property(prop: Dict[str, Any]) -> Dict[str, Any]:
    return PropertyOut(
        id=str(prop["id"]),
        name=prop["name"],
        location=prop["location"],
        price=prop["price"],
        tokens=prop.get("tokens") or 0,
        property_type=prop["property_type"],
        description=prop.get("description"),
        images=list(prop.get("images") or []),
        submitted_at=str(prop["submitted_at"]) if prop.get("submitted_at") else None,
        status=prop.get("status") or "pending",
    ).model_dump()


def create_app(
    store: Any,
    *,
    telegram_app: Optional[Application] = None,
    webhook_secret: Optional[str] = None,
    webhook_url: Optional[str] = None,
) -> FastAPI:
    """HTTP surface: listings for the web frontend and the Telegram webhook."""

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if telegram_app is None:
            yield
            return
        await telegram_app.initialize()
        if webhook_url:
            await telegram_app.bot.set_webhook(
                url=webhook_url, secret_token=webhook_secret, allowed_updates=Update.ALL_TYPES
            )
            logger.info("telegram_webhook_registered")
        try:
            yield
        finally:
            await telegram_app.shutdown()

    app = FastAPI(title="Ile Properties", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health():
        return {"ok": store.ping(), "store": getattr(store, "backend", "unknown")}

    @app.get("/api/properties/available")
    def available_properties(
        location: Optional[str] = None,
        property_type: Optional[str] = None,
        min_price: Optional[float] = Query(default=None, ge=0),
        max_price: Optional[float] = Query(default=None, ge=0),
        sort: Literal["newest", "oldest", "priceAsc", "priceDesc"] = "newest",
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    ):
        props = store.search_approved_properties(
            location=location,
            property_type=property_type,
            min_price=min_price,
            max_price=max_price,
            sort=sort,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return {"success": True, "page": page, "properties": [_public_property(p) for p in props]}

    @app.get("/api/properties")
    def owner_properties(telegram_chat_id: Optional[str] = None):
        if not telegram_chat_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Telegram Chat ID is required")
        props = store.list_properties_by_owner(telegram_chat_id)
        return {"success": True, "properties": [_public_property(p) for p in props]}

    @app.post("/telegram/webhook")
    async def telegram_webhook(request: Request):
        if telegram_app is None:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Bot is not configured.")
        if webhook_secret:
            supplied = request.headers.get(SECRET_HEADER) or ""
            if not hmac.compare_digest(supplied.encode("utf-8"), webhook_secret.encode("utf-8")):
                logger.warning("telegram_webhook_rejected")
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        update = Update.de_json(await request.json(), telegram_app.bot)
        await telegram_app.process_update(update)
        return {"ok": True}

    return app

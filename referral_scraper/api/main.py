"""FastAPI application serving stored referrals."""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from referral_scraper.config import Config, config
from referral_scraper.errors import DuplicateConflict, ValidationFailure
from referral_scraper.jobs.expiry import ExpirySweeper
from referral_scraper.models import ReferralCreate, ReferralRecord, ReferralUpdate, utcnow
from referral_scraper.store.referrals import ReferralStore

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "This code already exists for this brand"


def create_app(
    cfg: Config,
    store: Optional[ReferralStore] = None,
    sweeper: Optional[ExpirySweeper] = None,
) -> FastAPI:
    """Build the API around a referral store, running the expiry sweeper in the background."""
    store = store or ReferralStore(cfg.REFERRALS_DB)
    sweeper = sweeper or ExpirySweeper(store, interval=cfg.SWEEP_INTERVAL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.initialize()
        task = asyncio.create_task(sweeper.run_forever())
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="Referral Scraper API", version="0.1.0", lifespan=lifespan)
    app.state.store = store
    app.state.sweeper = sweeper

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "timestamp": utcnow().isoformat(),
            "referrals": await store.count(),
        }

    @app.get("/api/referrals", response_model=list[ReferralRecord])
    async def list_referrals(
        search: Optional[str] = None,
        brand: Optional[str] = None,
        tag: Optional[str] = None,
    ):
        """Valid, unexpired referrals, newest post first."""
        return await store.list_referrals(search=search, brand=brand, tag=tag, only_active=True)

    @app.post("/api/referrals", response_model=ReferralRecord, status_code=201)
    async def create_referral(body: ReferralCreate):
        if await store.find_duplicate(body.brand, body.code, body.link):
            raise HTTPException(status_code=400, detail=DUPLICATE_MESSAGE)

        now = utcnow()
        try:
            return await store.insert(
                brand=body.brand,
                code=body.code,
                link=body.link,
                tags=body.tags,
                post_date=body.post_date or now,
                expiration_date=body.expiration_date,
                is_valid=True,
                last_validated=now,
            )
        except DuplicateConflict:
            raise HTTPException(status_code=400, detail=DUPLICATE_MESSAGE)
        except ValidationFailure as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/api/referrals/{referral_id}", response_model=ReferralRecord)
    async def get_referral(referral_id: int):
        referral = await store.get(referral_id)
        if referral is None:
            raise HTTPException(status_code=404, detail="Referral not found")
        return referral

    @app.put("/api/referrals/{referral_id}", response_model=ReferralRecord)
    async def update_referral(referral_id: int, body: ReferralUpdate):
        existing = await store.get(referral_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Referral not found")

        changes = body.model_dump(exclude_unset=True)
        # Only code and link may be cleared
        for key in ("brand", "tags", "post_date", "expiration_date", "is_valid"):
            if key in changes and changes[key] is None:
                del changes[key]
        brand = changes.get("brand", existing.brand)
        code = changes.get("code", existing.code)
        link = changes.get("link", existing.link)
        if not code and not link:
            raise HTTPException(status_code=400, detail="Either code or link must be provided")

        if (brand, code, link) != (existing.brand, existing.code, existing.link):
            duplicate = await store.find_duplicate(brand, code, link)
            if duplicate and duplicate.id != referral_id:
                raise HTTPException(status_code=400, detail=DUPLICATE_MESSAGE)
            # A changed brand, code or link is re-validated on write
            changes.setdefault("is_valid", True)
            changes["last_validated"] = utcnow()

        try:
            return await store.update(referral_id, **changes)
        except DuplicateConflict:
            raise HTTPException(status_code=400, detail=DUPLICATE_MESSAGE)
        except ValidationFailure as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.delete("/api/referrals/{referral_id}", status_code=204)
    async def delete_referral(referral_id: int):
        if not await store.delete(referral_id):
            raise HTTPException(status_code=404, detail="Referral not found")
        return Response(status_code=204)

    return app


app = create_app(config)


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    from referral_scraper.logging_conf import setup_logging

    setup_logging()
    config.ensure_dirs()
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    run()

from fastapi import Depends, FastAPI
from contextlib import asynccontextmanager
from typing import Any, Dict
import logging
from . import config
from .connectors.google_search import GoogleSearch
from .models import SearchRequest
from .routes import get_archive, get_google_search, router, unwrap

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: close whichever shared clients were created
    if get_google_search.cache_info().currsize:
        await get_google_search().aclose()
        get_google_search.cache_clear()
    if get_archive.cache_info().currsize:
        await get_archive().aclose()
        get_archive.cache_clear()

app = FastAPI(title="SERP Harvester", lifespan=lifespan)
app.include_router(router)


@app.get("/")
def read_root():
    return {"ok": True, "service": "harvester"}


@app.post("/search")
async def search(req: SearchRequest, google: GoogleSearch = Depends(get_google_search)) -> Dict[str, Any]:
    """
    Harvest result pages for `keyword`.
    data is a listing (target found), null (target not found) or a list of listings.
    """
    res = unwrap(await google.search(req))
    return res.to_dict()

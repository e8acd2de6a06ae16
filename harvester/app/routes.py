from functools import lru_cache
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from .clients.archive_org import ArchiveOrg
from .connectors.google_search import GoogleSearch
from .services.result import Result

router = APIRouter()


@lru_cache()
def get_google_search() -> GoogleSearch:
    return GoogleSearch()


@lru_cache()
def get_archive() -> ArchiveOrg:
    return ArchiveOrg()


def unwrap(res: Result) -> Result:
    if not res.ok:
        raise HTTPException(status_code=res.status, detail=res.reason)
    return res


@router.get("/archive/{domain}/index")
async def archive_index(domain: str, archive: ArchiveOrg = Depends(get_archive)) -> Dict[str, Any]:
    res = unwrap(await archive.get_index(domain))
    return {"domain": domain, "count": len(res.data), "results": res.data}


@router.get("/archive/{domain}/snapshots/{timestamp}", response_class=HTMLResponse)
async def archive_snapshot(domain: str, timestamp: str, archive: ArchiveOrg = Depends(get_archive)):
    res = unwrap(await archive.get_snapshot(domain, timestamp))
    return HTMLResponse(res.data)

"""Liveness and dependency probes."""

import datetime
import time

from fastapi import APIRouter, Depends, Request

from porcelain_rag.api.dependencies import get_services
from porcelain_rag.services import Services

router = APIRouter()


def _now() -> str:
    return datetime.datetime.now(tz=datetime.UTC).isoformat()


@router.get("/health")
def health(request: Request):
    return {
        "status": "OK",
        "timestamp": _now(),
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "version": request.app.version,
    }


@router.get("/health/db")
def health_db(services: Services = Depends(get_services)):
    ok = services.store.ping()
    return {
        "status": "OK" if ok else "ERROR",
        "database": "connected" if ok else "disconnected",
        "timestamp": _now(),
    }


@router.get("/health/openai")
def health_openai(services: Services = Depends(get_services)):
    ok = services.embedding_service.check()
    return {
        "status": "OK" if ok else "ERROR",
        "openai": "connected" if ok else "disconnected",
        "timestamp": _now(),
    }


@router.get("/health/retrieval")
def health_retrieval(services: Services = Depends(get_services)):
    ok = services.retriever.check()
    return {
        "status": "OK" if ok else "ERROR",
        "retrieval": "working" if ok else "not working",
        "timestamp": _now(),
    }

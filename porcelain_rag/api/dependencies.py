"""FastAPI dependencies shared by the routers."""

from fastapi import Header, HTTPException, Request

from porcelain_rag.services import Services, build_services


def get_services(request: Request) -> Services:
    """Return the process-wide services, building them on first use."""
    services = request.app.state.services
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services


def get_user_id(x_user_id: str | None = Header(None)) -> str:
    """Identify the caller of the conversation and message endpoints.

    Raises:
        HTTPException: 401 if the ``X-User-Id`` header is missing.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()

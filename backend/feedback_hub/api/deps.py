from fastapi import Request


def client_meta(request: Request) -> dict:
    """IP address and user agent of the caller, as stored in audit rows."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }

# talkback/api/deps.py

from fastapi import Header, HTTPException, Request

from talkback.realtime.hub import ChatHub


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity. Authentication lives in front of this service and
    forwards the verified user id in ``X-User-Id``.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()


def get_hub(request: Request) -> ChatHub:
    return request.app.state.hub

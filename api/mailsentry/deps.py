from fastapi import Header, HTTPException


def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:
    """
    Resolve the calling owner from the X-Owner-ID header.
    Authentication is out of scope; the header is taken on trust.
    """
    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(status_code=400, detail="Missing X-Owner-ID header")
    return x_owner_id.strip()

# carelink/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, status

from carelink.db.store import DocumentStore, get_store
from carelink.schemas.schema_auth import LoginRequest, RegisterRequest
from carelink.services.ids import new_id

router = APIRouter(tags=["auth"])


@router.post("/register")
async def register(request: RegisterRequest, store: DocumentStore = Depends(get_store)):
    """
    Register a user. Email must be unused.
    - 200 {"message": "Registered successfully"}
    - 409 when the email already exists (user list is left untouched)
    """
    with store.transaction() as doc:
        if any(u.get("email") == request.email for u in doc["users"]):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already exists",
            )
        doc["users"].append(
            {
                "id": new_id(),
                "role": request.role,
                "name": request.name,
                "email": request.email,
                # plaintext placeholder, not a security model
                "password": request.password,
            }
        )

    return {"message": "Registered successfully"}


@router.post("/login")
async def login(request: LoginRequest, store: DocumentStore = Depends(get_store)):
    """
    Returns the stored user (without the password) or 400 on mismatch.
    Older records may lack fields such as role, they are returned as stored.
    """
    users = store.load()["users"]
    user = next(
        (u for u in users if u.get("email") == request.email and u.get("password") == request.password),
        None,
    )
    if not user:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid credentials")
    return {k: v for k, v in user.items() if k != "password"}

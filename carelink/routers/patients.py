# carelink/routers/patients.py
import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from carelink.config.settings import settings
from carelink.db.store import DocumentStore, get_store
from carelink.services.ids import new_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["patient"])


def get_upload_dir() -> Path:
    return Path(settings.upload_dir)


def _save_upload(photo: UploadFile, upload_dir: Path) -> str:
    # stored under a generated name; the client filename only lends its extension
    ext = os.path.splitext(photo.filename or "")[1].lower()
    filename = f"{new_id()}{ext}"
    upload_dir.mkdir(parents=True, exist_ok=True)
    with open(upload_dir / filename, "wb") as f:
        f.write(photo.file.read())
    return filename


@router.post("/uploadPerson")
async def upload_person(
    name: str = Form(...),
    relation: str = Form(""),
    phone: str = Form(""),
    owner_id: str = Form("", alias="ownerId"),
    photo: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
    upload_dir: Path = Depends(get_upload_dir),
):
    """
    multipart/form-data: photo(file, optional) + name, relation, phone, ownerId
    The photo is served back at /uploads/<photo>.
    """
    filename = _save_upload(photo, upload_dir) if photo is not None and photo.filename else None

    with store.transaction() as doc:
        doc["patients"].append(
            {
                "id": new_id(),
                "ownerId": owner_id or None,
                "name": name,
                "relation": relation,
                "phone": phone,
                "photo": filename,
            }
        )
    if filename:
        logger.info("[patients] saved photo %s", filename)

    return {"message": "Person saved successfully"}

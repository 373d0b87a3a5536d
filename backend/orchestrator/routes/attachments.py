import io
import os
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import models, schemas, rbac, storage

router = APIRouter(prefix="/api/attachments", tags=["attachments"])


def attachment_row(attachment: models.Attachment) -> schemas.AttachmentOut:
    out = schemas.AttachmentOut.model_validate(attachment)
    out.uploader_name = attachment.uploader.display_name if attachment.uploader else "Unknown"
    out.url = storage.generate_signed_download_url(attachment.storage_path) or (
        f"/api/attachments/{attachment.id}/download"
    )
    return out


def _ensure_parent(db: Session, parent_type: str, parent_id: UUID) -> None:
    if parent_type == "brief":
        rbac.get_or_404(db, models.Brief, parent_id, "Brief")
    else:
        rbac.get_or_404(db, models.Task, parent_id, "Task")


@router.get("/", response_model=List[schemas.AttachmentOut])
async def get_attachments(
    parent_type: schemas.ParentType,
    parent_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    attachments = (
        db.query(models.Attachment)
        .filter_by(parent_type=parent_type, parent_id=parent_id)
        .order_by(models.Attachment.created_at)
        .all()
    )
    return [attachment_row(a) for a in attachments]


@router.post("/", response_model=schemas.AttachmentOut)
async def add_attachment(
    parent_type: schemas.ParentType = Form(...),
    parent_id: UUID = Form(...),
    upload: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    _ensure_parent(db, parent_type, parent_id)
    file_name = os.path.basename(upload.filename or "") or "file.bin"
    content_type = upload.content_type or "application/octet-stream"
    data = await upload.read()
    storage_path, size = storage.save_binary_payload(
        data,
        file_name,
        content_type=content_type,
        namespace=f"{parent_type}s/{parent_id}",
    )
    attachment = models.Attachment(
        parent_type=parent_type,
        parent_id=parent_id,
        file_name=file_name,
        file_type=content_type,
        file_size=size,
        storage_path=storage_path,
        uploaded_by=user.id,
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)
    return attachment_row(attachment)


@router.get("/{attachment_id}/download")
async def download_attachment(
    attachment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    attachment = rbac.get_or_404(db, models.Attachment, attachment_id, "Attachment")
    try:
        data = storage.load_binary_payload(attachment.storage_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Attachment file missing")
    return StreamingResponse(
        io.BytesIO(data),
        media_type=attachment.file_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{attachment.file_name}"'},
    )


@router.delete("/{attachment_id}", status_code=204)
async def delete_attachment(
    attachment_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    attachment = rbac.get_or_404(db, models.Attachment, attachment_id, "Attachment")
    if attachment.uploaded_by != user.id and user.role != "admin":
        raise HTTPException(status_code=403, detail="Not authorized")
    storage_path = attachment.storage_path
    db.delete(attachment)
    db.commit()
    storage.delete_binary_payload(storage_path)
    return Response(status_code=204)

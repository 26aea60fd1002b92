"""
Notifications: PDF circulars published by SBTE to selected colleges.
"""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import List
import json

from app.core.database import get_db
from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import User, UserRole, College, Notification, NotifiedCollege
from app.modules.auth.access_control import Permission, require_permission, require_roles
from app.schemas.common import MessageResponse
from app.schemas.documents import NotificationResponse
from app.services.audit_service import log_audit
from app.services.storage_service import StorageService, get_storage
from app.utils.uploads import pdf_content_disposition, read_pdf_upload

router = APIRouter(prefix="/notification", tags=["Notifications"])

STORAGE_FOLDER = "notifications"

read_notifications = require_roles(UserRole.SBTE_ADMIN, UserRole.COLLEGE_SUPER_ADMIN)


def _serialize(notification: Notification, current_user: User) -> dict:
    is_read = None
    if current_user.role == UserRole.COLLEGE_SUPER_ADMIN:
        is_read = next(
            (r.is_read for r in notification.recipients if str(r.college_id) == str(current_user.college_id)),
            False,
        )
    return NotificationResponse(
        id=notification.id,
        title=notification.title,
        created_at=notification.created_at,
        college_ids=[str(r.college_id) for r in notification.recipients],
        is_read=is_read,
    ).model_dump(by_alias=True, mode="json")


def _parse_college_ids(raw: str) -> List[str]:
    try:
        college_ids = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("collegeIds must be a JSON array of college ids.", field="collegeIds")
    if not isinstance(college_ids, list) or not all(isinstance(c, str) for c in college_ids):
        raise ValidationError("collegeIds must be a JSON array of college ids.", field="collegeIds")
    # de-duplicate, keep order
    return list(dict.fromkeys(college_ids))


async def _get_visible_notification(db: AsyncSession, notification_id: str, current_user: User) -> Notification:
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise ResourceNotFoundError("Notification not found.")
    if current_user.role == UserRole.COLLEGE_SUPER_ADMIN and not any(
        str(r.college_id) == str(current_user.college_id) for r in notification.recipients
    ):
        raise ResourceNotFoundError("Notification not found.")
    return notification


def _mark_read(notification: Notification, current_user: User) -> None:
    if current_user.role != UserRole.COLLEGE_SUPER_ADMIN:
        return
    for recipient in notification.recipients:
        if str(recipient.college_id) == str(current_user.college_id) and not recipient.is_read:
            recipient.is_read = True
            recipient.read_at = datetime.utcnow()


@router.get("")
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(read_notifications)
):
    """SBTE admins see everything; college admins see what was sent to their college"""
    query = select(Notification)
    if current_user.role == UserRole.COLLEGE_SUPER_ADMIN:
        query = query.join(NotifiedCollege).where(NotifiedCollege.college_id == current_user.college_id)

    result = await db.execute(query.order_by(Notification.created_at.desc()))
    notifications = result.scalars().unique().all()

    if not notifications:
        return {"message": "No notifications found."}
    return [_serialize(n, current_user) for n in notifications]


@router.post("/pdfUpload", status_code=status.HTTP_201_CREATED)
async def upload_notification(
    request: Request,
    pdf_file: UploadFile = File(..., alias="pdfFile"),
    title: str = Form(""),
    college_ids: str = Form("[]", alias="collegeIds"),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(require_permission(Permission.PUBLISH_NOTIFICATIONS))
):
    title = title.strip()
    if not title:
        raise ValidationError("Title is required.", field="title")

    ids = _parse_college_ids(college_ids)
    if not ids:
        raise ValidationError("At least one college must be selected.", field="collegeIds")

    result = await db.execute(select(College.id).where(College.id.in_(ids)))
    found = {str(c) for c in result.scalars().all()}
    missing = [c for c in ids if c not in found]
    if missing:
        raise ResourceNotFoundError(f"Colleges not found: {', '.join(missing)}")

    content = await read_pdf_upload(pdf_file)
    key = await storage.save(STORAGE_FOLDER, content)

    notification = Notification(
        title=title,
        pdf_path=key,
        created_by=current_user.id,
        recipients=[NotifiedCollege(college_id=c) for c in ids],
    )
    db.add(notification)
    await db.flush()

    await log_audit(db, "PUBLISH", "notification", user=current_user, resource_id=notification.id,
                    details={"title": title, "colleges": len(ids)}, request=request)
    await db.commit()

    logger.info(f"[Notification] '{title}' published to {len(ids)} colleges")
    return {
        "message": "Notification uploaded successfully.",
        "notification": _serialize(notification, current_user),
    }


@router.get("/{notification_id}")
async def download_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(read_notifications)
):
    """Stream the PDF; a college admin opening it marks it read"""
    notification = await _get_visible_notification(db, notification_id, current_user)
    content = await storage.read(notification.pdf_path)
    response = Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": pdf_content_disposition(notification.title)},
    )

    _mark_read(notification, current_user)
    await db.commit()
    return response


@router.post("/{notification_id}", response_model=MessageResponse)
async def mark_notification_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.COLLEGE_SUPER_ADMIN))
):
    notification = await _get_visible_notification(db, notification_id, current_user)
    _mark_read(notification, current_user)
    await db.commit()
    return {"message": "Notification marked as read."}


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(require_permission(Permission.PUBLISH_NOTIFICATIONS))
):
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise ResourceNotFoundError("Notification not found.")

    pdf_path = notification.pdf_path
    await db.delete(notification)
    await log_audit(db, "DELETE", "notification", user=current_user, resource_id=notification_id,
                    details={"title": notification.title}, request=request)
    await db.commit()

    if not await storage.delete(pdf_path):
        logger.warning(f"[Notification] File already gone: {pdf_path}")

    return {"message": "Notification deleted successfully."}

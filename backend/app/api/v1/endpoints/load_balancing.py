"""
Load balancing PDFs: teaching-load documents uploaded by colleges and
reviewed by SBTE.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models import User, UserRole, College, LoadBalancingPdf
from app.modules.auth.access_control import Permission, require_permission
from app.schemas.common import MessageResponse
from app.schemas.documents import LoadBalancingPdfResponse
from app.services.audit_service import log_audit
from app.services.storage_service import StorageService, get_storage
from app.utils.uploads import pdf_content_disposition, read_pdf_upload

router = APIRouter(prefix="/loadBalancing", tags=["Load Balancing"])

STORAGE_FOLDER = "load_balancing"


def _serialize(pdf: LoadBalancingPdf, college_name=None) -> dict:
    return LoadBalancingPdfResponse(
        id=pdf.id,
        title=pdf.title,
        college_id=pdf.college_id,
        college_name=college_name,
        created_at=pdf.created_at,
    ).model_dump(by_alias=True, mode="json")


async def _get_accessible_pdf(db: AsyncSession, pdf_id: str, current_user: User, action: str) -> LoadBalancingPdf:
    pdf = await db.get(LoadBalancingPdf, pdf_id)
    if not pdf:
        raise ResourceNotFoundError("LoadBalancing file not found.")
    if current_user.role != UserRole.SBTE_ADMIN and str(pdf.college_id) != str(current_user.college_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You are not authorized to {action} this file."
        )
    return pdf


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_load_balancing_pdf(
    request: Request,
    pdf_file: UploadFile = File(..., alias="pdfFile"),
    title: str = Form(""),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(require_permission(Permission.UPLOAD_LOAD_BALANCING))
):
    if not current_user.college_id:
        raise ValidationError("College ID not found in session.")

    title = title.strip()
    if not title:
        raise ValidationError("Title is required.", field="title")

    content = await read_pdf_upload(pdf_file)

    existing = await db.execute(
        select(LoadBalancingPdf.id).where(
            LoadBalancingPdf.college_id == current_user.college_id,
            LoadBalancingPdf.title == title,
        )
    )
    if existing.scalar_one_or_none():
        raise ValidationError("A PDF with the same title already exists for this college.", field="title")

    key = await storage.save(STORAGE_FOLDER, content)
    pdf = LoadBalancingPdf(
        title=title,
        pdf_path=key,
        college_id=current_user.college_id,
        uploaded_by=current_user.id,
    )
    db.add(pdf)
    await db.flush()

    await log_audit(db, "UPLOAD", "load_balancing_pdf", user=current_user, resource_id=pdf.id,
                    details={"title": title}, request=request)
    await db.commit()

    logger.info(f"[LoadBalancing] '{title}' uploaded for college {pdf.college_id}")
    return {
        "message": "Load balancing PDF uploaded successfully.",
        "loadBalancingPdf": _serialize(pdf),
    }


@router.get("")
async def list_load_balancing_pdfs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_LOAD_BALANCING))
):
    """SBTE admins see every college's PDFs with the college name"""
    query = (
        select(LoadBalancingPdf, College.name)
        .join(College, LoadBalancingPdf.college_id == College.id)
        .order_by(LoadBalancingPdf.created_at.desc())
    )
    if current_user.role != UserRole.SBTE_ADMIN:
        query = query.where(LoadBalancingPdf.college_id == current_user.college_id)

    rows = (await db.execute(query)).all()
    if not rows:
        return {"message": "No load balancing PDFs found."}

    include_college = current_user.role == UserRole.SBTE_ADMIN
    return [_serialize(pdf, college_name if include_college else None) for pdf, college_name in rows]


@router.get("/{pdf_id}")
async def download_load_balancing_pdf(
    pdf_id: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(require_permission(Permission.VIEW_LOAD_BALANCING))
):
    pdf = await _get_accessible_pdf(db, pdf_id, current_user, "download")
    content = await storage.read(pdf.pdf_path)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": pdf_content_disposition(pdf.title)},
    )


@router.delete("/{pdf_id}", response_model=MessageResponse)
async def delete_load_balancing_pdf(
    pdf_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    current_user: User = Depends(require_permission(Permission.UPLOAD_LOAD_BALANCING))
):
    pdf = await _get_accessible_pdf(db, pdf_id, current_user, "delete")
    pdf_path = pdf.pdf_path

    await db.delete(pdf)
    await log_audit(db, "DELETE", "load_balancing_pdf", user=current_user, resource_id=pdf_id,
                    details={"title": pdf.title}, request=request)
    await db.commit()

    if not await storage.delete(pdf_path):
        logger.warning(f"[LoadBalancing] File already gone: {pdf_path}")

    return {"message": "LoadBalancing file deleted successfully."}
